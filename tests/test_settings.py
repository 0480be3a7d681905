"""
Tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from debt_ledger.config import (
    ApiSettings,
    CacheSettings,
    LedgerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)


class TestSettings:
    """Environment loading and range checks."""

    def test_defaults(self):
        settings = Settings(
            cache_settings=CacheSettings(),
            api_settings=ApiSettings(),
            ledger_settings=LedgerSettings(),
        )
        assert settings.cache.ttl_seconds == 300
        assert settings.ledger.default_due_days == 30
        assert settings.api.contact_debts_path == "/contact-debts"

    def test_environment_prefixes(self, monkeypatch):
        monkeypatch.setenv("LEDGER_CACHE_TTL_SECONDS", "60")
        monkeypatch.setenv("LEDGER_API_BASE_URL", "https://api.example.com/")
        monkeypatch.setenv("LEDGER_MARK_PAID_SUPPORTED", "false")

        assert CacheSettings().ttl_seconds == 60
        assert ApiSettings().base_url == "https://api.example.com"
        assert LedgerSettings().mark_paid_supported is False

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            CacheSettings(ttl_seconds=0)

    def test_min_max_pairs_checked(self):
        with pytest.raises(ValidationError):
            LedgerSettings(min_name_length=10, max_name_length=5)

    def test_sub_settings_load_lazily(self, monkeypatch):
        monkeypatch.setenv("LEDGER_API_MAX_RETRIES", "5")
        assert Settings().api.max_retries == 5

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()

    def test_validate_all_settings(self, monkeypatch):
        assert validate_all_settings() == {"cache": True, "api": True, "ledger": True}

        monkeypatch.setenv("LEDGER_CACHE_TTL_SECONDS", "-5")
        results = validate_all_settings()
        assert results["cache"] is False
        assert "cache_error" in results
