"""Tests for settings loading."""

from decimal import Decimal

import pytest

from p4p_engine.config import Settings, WagePolicy, get_settings


class TestSettings:
    """Test environment-driven settings."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_MINIMUM_HOURLY_RATE", "19.50")
        monkeypatch.setenv("WAGE_FLOOR_POLICY", "higher_of")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.default_minimum_hourly_rate == Decimal("19.50")
        assert settings.wage_floor_policy == WagePolicy.HIGHER_OF
        assert settings.log_level == "DEBUG"
        assert settings.database_url == "sqlite+aiosqlite:///:memory:"

    def test_invalid_rate(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_MINIMUM_HOURLY_RATE", "twenty")

        with pytest.raises(ValueError, match="not a number"):
            Settings.from_env()

    def test_negative_rate(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_MINIMUM_HOURLY_RATE", "-1")

        with pytest.raises(ValueError):
            Settings.from_env()

    def test_unknown_policy(self, monkeypatch):
        monkeypatch.setenv("WAGE_FLOOR_POLICY", "whatever")

        with pytest.raises(ValueError):
            Settings.from_env()

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
