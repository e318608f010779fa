"""
Unit Tests for Configuration Loading and Validation
===================================================
"""

import logging
import pytest
import yaml
from unittest.mock import patch

from floatchat.config import (
    ConfigManager, Environment, FallbackSettings, LLMSettings, ObservabilityConfig, Settings,
    ValidationResult, configure_logging, validate_credential, validate_settings
)
from floatchat.config.validation import ConfigValidator
from floatchat.error_handling import CredentialInvalid, CredentialMissing

VALID_KEY = "sk-test-0123456789abcdefghij"


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump({
        "environment": "testing",
        "app_name": "FloatChat Test",
        "llm": {"model": "gpt-4o-mini", "timeout": 10.0, "api_key": ""},
        "fallback": {"seed": 5},
        "observability": {"log_level": "DEBUG"},
    }))
    return str(path)


class TestConfigManager:
    """Test YAML loading and environment overrides."""

    def test_load_from_file(self, config_file):
        settings = ConfigManager(config_file, environ={}).settings

        assert settings.environment == Environment.TESTING
        assert settings.app_name == "FloatChat Test"
        assert settings.llm.model == "gpt-4o-mini"
        assert settings.llm.timeout == 10.0
        assert settings.llm.history_window == 6
        assert settings.fallback.seed == 5
        assert settings.observability.log_level == "DEBUG"

    def test_packaged_default_settings(self):
        settings = ConfigManager(environ={}).settings

        assert settings.app_name == "FloatChat"
        assert settings.llm.provider == "openai"
        assert settings.llm.api_key == ""
        assert settings.llm.timeout == 30.0
        assert settings.fallback.seed is None

    def test_environment_overrides(self, config_file):
        environ = {
            "OPENAI_API_KEY": VALID_KEY,
            "FLOATCHAT_LLM_TIMEOUT": "12.5",
            "FLOATCHAT_FALLBACK_SEED": "42",
            "FLOATCHAT_LLM_PROVIDER": "self_hosted",
            "FLOATCHAT_LLM_API_BASE": "http://localhost:8000",
            "FLOATCHAT_LOG_LEVEL": "WARNING",
        }
        settings = ConfigManager(config_file, environ=environ).settings

        assert settings.llm.api_key == VALID_KEY
        assert settings.llm.timeout == 12.5
        assert settings.fallback.seed == 42
        assert settings.llm.provider == "self_hosted"
        assert settings.llm.api_base == "http://localhost:8000"
        assert settings.observability.log_level == "WARNING"

    def test_floatchat_key_wins(self, config_file):
        environ = {"OPENAI_API_KEY": "sk-first-key-0000000000", "FLOATCHAT_API_KEY": VALID_KEY}
        assert ConfigManager(config_file, environ=environ).settings.llm.api_key == VALID_KEY

    def test_invalid_override_ignored(self, config_file):
        settings = ConfigManager(config_file, environ={"FLOATCHAT_LLM_TIMEOUT": "soon"}).settings
        assert settings.llm.timeout == 10.0

    def test_config_path_from_environment(self, config_file):
        manager = ConfigManager(environ={"FLOATCHAT_CONFIG": config_file})
        assert manager.config_path == config_file

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager(str(tmp_path / "missing.yaml"), environ={})

    def test_unknown_setting_raises(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("llm:\n  flux_capacitor: true\n")

        with pytest.raises(TypeError):
            ConfigManager(str(path), environ={})

    def test_reload_keeps_previous_settings_on_failure(self, config_file, tmp_path):
        manager = ConfigManager(config_file, environ={})
        manager.config_path = str(tmp_path / "gone.yaml")

        assert manager.reload_config().app_name == "FloatChat Test"

    def test_to_dict_masks_key(self):
        data = Settings(llm=LLMSettings(api_key=VALID_KEY)).to_dict()

        assert data["llm"]["api_key"] == "***"
        assert data["environment"] == "development"

    def test_configure_logging(self):
        with patch("floatchat.config.config_manager.logging.basicConfig") as basic_config:
            configure_logging(ObservabilityConfig(log_level="debug"))

        kwargs = basic_config.call_args.kwargs
        assert kwargs["level"] == logging.DEBUG
        assert kwargs["format"] == "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class TestCredentialValidation:
    """Test the structural credential check."""

    def test_valid_key(self):
        validate_credential(VALID_KEY)

    @pytest.mark.parametrize("key", [None, "", "   "])
    def test_missing_key(self, key):
        with pytest.raises(CredentialMissing):
            validate_credential(key)

    @pytest.mark.parametrize("key", ["undefined", "null", "abc", "sk-short", "pk-0123456789abcdefghijklmnop"])
    def test_invalid_key(self, key):
        with pytest.raises(CredentialInvalid):
            validate_credential(key)

    def test_custom_prefix(self):
        validate_credential("local-0123456789abcdef", prefix="local-", min_length=10)

    def test_validator_collects_errors(self):
        result = ValidationResult()
        ConfigValidator.validate_api_key("pk-1", "llm.api_key", result)

        assert not result.is_valid
        assert len(result.errors) == 2


class TestSettingsValidation:
    """Test whole-settings validation."""

    def test_defaults_valid_with_key_warning(self):
        result = validate_settings(Settings())

        assert result.is_valid
        assert [w.field_path for w in result.warnings] == ["llm.api_key"]

    def test_valid_key_has_no_warnings(self):
        result = validate_settings(Settings(llm=LLMSettings(api_key=VALID_KEY)))

        assert result.is_valid
        assert result.warnings == []

    def test_self_hosted_needs_base(self):
        result = validate_settings(Settings(llm=LLMSettings(provider="self_hosted")))

        assert not result.is_valid
        assert "llm.api_base" in [e.field_path for e in result.errors]

    def test_unknown_provider(self):
        result = validate_settings(Settings(llm=LLMSettings(provider="anthropic")))
        assert not result.is_valid

    @pytest.mark.parametrize("timeout", [0, -1, "soon"])
    def test_bad_timeout(self, timeout):
        result = validate_settings(Settings(llm=LLMSettings(timeout=timeout)))
        assert not result.is_valid

    def test_long_timeout_warns(self):
        result = validate_settings(Settings(llm=LLMSettings(api_key=VALID_KEY, timeout=300)))

        assert result.is_valid
        assert result.warnings[0].field_path == "llm.timeout"

    def test_bad_history_window(self):
        result = validate_settings(Settings(llm=LLMSettings(history_window=-2)))
        assert not result.is_valid

    def test_fallback_defaults(self):
        assert FallbackSettings().seed is None
        assert FallbackSettings().use_knowledge_base is True
