"""Tests for environment-backed settings."""

import pytest

from sopwise.config.settings import Settings, get_settings, load_settings
from sopwise.core.exceptions import ConfigurationError


class TestSettings:
    def test_defaults(self, settings):
        assert settings.provider == "openai"
        assert settings.resolved_model == "gpt-4o-mini"
        assert settings.duplicate_threshold == 0.75
        assert settings.include_intimate_ordering is True

    def test_anthropic_default_model(self):
        settings = Settings(_env_file=None, provider="anthropic")
        assert settings.resolved_model == "claude-3-5-haiku-latest"

    def test_explicit_model_wins(self):
        settings = Settings(_env_file=None, model="gpt-4o")
        assert settings.resolved_model == "gpt-4o"

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("SOPWISE_DUPLICATE_THRESHOLD", "0.9")
        monkeypatch.setenv("SOPWISE_LOG_LEVEL", "debug")
        settings = Settings(_env_file=None)
        assert settings.duplicate_threshold == 0.9
        assert settings.log_level == "DEBUG"

    def test_invalid_values_raise_configuration_error(self, monkeypatch):
        monkeypatch.setenv("SOPWISE_PROVIDER", "mystery")
        with pytest.raises(ConfigurationError):
            load_settings(_env_file=None)

    def test_unknown_log_level(self):
        with pytest.raises(ConfigurationError):
            load_settings(_env_file=None, log_level="chatty")

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
