"""Tests for retryspine.core.settings: env-driven executor defaults."""

import pytest
from pydantic import ValidationError

from retryspine.core.settings import ResilienceSettings, clear_settings_cache, get_settings
from retryspine.execution.backoff import BackoffKind


class TestResilienceSettingsDefaults:
    """Documented defaults."""

    def test_defaults(self):
        settings = ResilienceSettings()
        assert settings.max_retries == 3
        assert settings.base_delay == 1.0
        assert settings.backoff_kind == "exponential"
        assert settings.circuit_threshold == 3
        assert settings.circuit_open_duration == 30.0
        assert settings.request_timeout is None
        assert settings.jitter == 0.0
        assert settings.response_time_window == 1000

    def test_to_policy(self):
        policy = ResilienceSettings().to_policy()
        assert policy.max_retries == 3
        assert policy.max_attempts == 4
        assert policy.backoff_kind is BackoffKind.EXPONENTIAL


class TestResilienceSettingsEnv:
    """RETRYSPINE_* environment overrides."""

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("RETRYSPINE_MAX_RETRIES", "5")
        monkeypatch.setenv("RETRYSPINE_BACKOFF_KIND", "linear")
        monkeypatch.setenv("RETRYSPINE_REQUEST_TIMEOUT", "2.5")

        settings = ResilienceSettings()
        assert settings.max_retries == 5
        assert settings.request_timeout == 2.5
        assert settings.to_policy().backoff_kind is BackoffKind.LINEAR

    def test_unknown_backoff_becomes_fixed(self, monkeypatch):
        monkeypatch.setenv("RETRYSPINE_BACKOFF_KIND", "fibonacci")
        assert ResilienceSettings().to_policy().backoff_kind is BackoffKind.FIXED

    def test_negative_retries_rejected(self, monkeypatch):
        monkeypatch.setenv("RETRYSPINE_MAX_RETRIES", "-1")
        with pytest.raises(ValidationError):
            ResilienceSettings()

    def test_zero_threshold_rejected(self):
        with pytest.raises(ValidationError):
            ResilienceSettings(circuit_threshold=0)


class TestSettingsCache:
    """get_settings / clear_settings_cache."""

    def test_cached_instance(self):
        assert get_settings() is get_settings()

    def test_clear_cache_rereads_env(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("RETRYSPINE_MAX_RETRIES", "9")
        assert get_settings().max_retries == first.max_retries

        clear_settings_cache()
        assert get_settings().max_retries == 9

    def test_force_reload(self, monkeypatch):
        get_settings()
        monkeypatch.setenv("RETRYSPINE_BASE_DELAY", "0.25")
        assert get_settings(_force_reload=True).base_delay == 0.25
