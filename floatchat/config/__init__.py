"""
Configuration Management Module
===============================

Settings loading, validation and logging setup.
"""

from .config_manager import (
    Settings, ConfigManager, Environment,
    LLMSettings, FallbackSettings, ObservabilityConfig,
    configure_logging, load_config, get_config_manager
)

from .validation import (
    ConfigValidator, ValidationError, ValidationResult,
    validate_credential, validate_settings
)

__all__ = [
    "Settings", "ConfigManager", "Environment",
    "LLMSettings", "FallbackSettings", "ObservabilityConfig",
    "configure_logging", "load_config", "get_config_manager",

    "ConfigValidator", "ValidationError", "ValidationResult",
    "validate_credential", "validate_settings",
]
