"""Configuration package."""

from debt_ledger.config.settings import (
    ApiSettings,
    CacheSettings,
    LedgerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "ApiSettings",
    "CacheSettings",
    "LedgerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
