"""
Configuration Management for the Debt Ledger core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Each concern (cache, backend API, ledger rules) has its own settings class
and environment prefix, so a deployment can tune one without touching the
others. The 5 minute cache TTL is a tunable default, not a protocol value.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """Ledger cache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_CACHE_",
        extra="ignore"
    )

    ttl_seconds: int = Field(
        default=300,
        ge=1,
        description="Seconds a refreshed collection stays valid"
    )


class ApiSettings(BaseSettings):
    """Backend REST API configuration used by the HTTP transport."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_API_",
        extra="ignore"
    )

    base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the debt tracker backend"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout"
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a request failing at the network level"
    )
    retry_backoff_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Base delay for exponential backoff between attempts"
    )
    auth_header: str = Field(
        default="Authorization",
        description="Header carrying the session token"
    )

    # Endpoint paths
    contacts_path: str = "/contacts"
    contact_path: str = "/contact"
    debts_path: str = "/debts"
    create_debt_path: str = "/contact-debt"
    contact_debts_path: str = "/contact-debts"
    overview_path: str = "/home/overview"
    payments_path: str = "/payments"
    mark_paid_suffix: str = "mark-paid"
    health_path: str = "/health"

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Paths are joined with a leading slash."""
        return v.rstrip("/")


class LedgerSettings(BaseSettings):
    """
    Ledger rules and fallback policy switches.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Contact validation
    min_name_length: int = Field(default=2, ge=1)
    max_name_length: int = Field(default=50, ge=1)
    min_phone_digits: int = Field(default=9, ge=1)
    max_phone_digits: int = Field(default=15, ge=1)

    # Debt validation
    min_description_length: int = Field(default=3, ge=0)
    max_description_length: int = Field(default=500, ge=1)
    min_debt_amount: float = Field(
        default=0.01,
        gt=0,
        description="Smallest amount accepted for a debt or payment"
    )
    max_debt_amount: float = Field(
        default=999999.99,
        gt=0,
        description="Largest amount accepted for a debt or payment"
    )

    # Derivation
    default_due_days: int = Field(
        default=30,
        ge=0,
        description="Days added to the creation date when a debt has no due date"
    )
    recent_payment_days: int = Field(
        default=30,
        ge=1,
        description="Window used by the recent payments view"
    )

    # Diagnostics
    diagnostics_buffer_size: int = Field(
        default=200,
        ge=1,
        description="Number of diagnostic events kept in memory"
    )

    # Fallback policies
    use_server_contact_filter: bool = Field(
        default=True,
        description="Try the per-contact debts endpoint before filtering locally"
    )
    use_server_overview: bool = Field(
        default=True,
        description="Try the pre-aggregated overview endpoint before computing locally"
    )
    mark_paid_supported: bool = Field(
        default=True,
        description="Whether the backend exposes the mark-as-paid operation"
    )

    @model_validator(mode='after')
    def validate_ranges(self) -> 'LedgerSettings':
        """Validate min/max pairs."""
        if self.max_name_length < self.min_name_length:
            raise ValueError("max_name_length cannot be below min_name_length")
        if self.max_phone_digits < self.min_phone_digits:
            raise ValueError("max_phone_digits cannot be below min_phone_digits")
        if self.max_description_length < self.min_description_length:
            raise ValueError("max_description_length cannot be below min_description_length")
        if self.max_debt_amount < self.min_debt_amount:
            raise ValueError("max_debt_amount cannot be below min_debt_amount")
        return self


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access. Sub-settings can be
    injected directly, which is how tests pin values without touching
    the environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    cache_settings: Optional[CacheSettings] = None
    api_settings: Optional[ApiSettings] = None
    ledger_settings: Optional[LedgerSettings] = None

    @property
    def cache(self) -> CacheSettings:
        if self.cache_settings is None:
            self.cache_settings = CacheSettings()
        return self.cache_settings

    @property
    def api(self) -> ApiSettings:
        if self.api_settings is None:
            self.api_settings = ApiSettings()
        return self.api_settings

    @property
    def ledger(self) -> LedgerSettings:
        if self.ledger_settings is None:
            self.ledger_settings = LedgerSettings()
        return self.ledger_settings


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus an
    "<name>_error" entry for each section that failed to load.
    """
    results = {}

    sections = {
        "cache": CacheSettings,
        "api": ApiSettings,
        "ledger": LedgerSettings,
    }

    for name, settings_cls in sections.items():
        try:
            settings_cls()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
