"""
Configuration Validation System
==============================

Validation for configuration settings with detailed error reporting. The
credential check is structural only; it never contacts the service.
"""

from typing import Any, List, Optional
from dataclasses import dataclass
import logging

from ..error_handling import CredentialInvalid, CredentialMissing

logger = logging.getLogger(__name__)

PLACEHOLDER_KEYS = {"undefined", "null", "none", "your_api_key", "sk-xxxxxxx", "changeme"}


@dataclass
class ValidationError:
    """Validation error details."""
    field_path: str
    message: str
    severity: str = "error"  # error, warning
    suggested_value: Optional[Any] = None


class ValidationResult:
    """Result of configuration validation."""

    def __init__(self):
        self.errors: List[ValidationError] = []
        self.warnings: List[ValidationError] = []
        self.is_valid = True

    def add_error(self, field_path: str, message: str, suggested_value: Optional[Any] = None):
        """Add validation error."""
        self.errors.append(ValidationError(field_path, message, "error", suggested_value))
        self.is_valid = False

    def add_warning(self, field_path: str, message: str):
        """Add validation warning."""
        self.warnings.append(ValidationError(field_path, message, "warning"))

    def get_summary(self) -> str:
        """Get validation summary."""
        if self.is_valid:
            return f"Configuration valid. {len(self.warnings)} warnings."
        return f"Configuration invalid. {len(self.errors)} errors, {len(self.warnings)} warnings."


class ConfigValidator:
    """Configuration validator."""

    @staticmethod
    def validate_api_key(api_key: Optional[str], field_path: str, result: ValidationResult,
                         prefix: str = "sk-", min_length: int = 20):
        """Validate API key format."""
        if api_key is None or not str(api_key).strip():
            result.add_error(field_path, "API key is required")
            return

        key = str(api_key).strip()
        if key.lower() in PLACEHOLDER_KEYS:
            result.add_error(field_path, "Placeholder API key detected")
            return

        if prefix and not key.startswith(prefix):
            result.add_error(field_path, f"API key must start with '{prefix}'")

        if len(key) < min_length:
            result.add_error(field_path, f"API key is shorter than {min_length} characters")

    @staticmethod
    def validate_timeout(timeout: Any, field_path: str, result: ValidationResult):
        """Validate a timeout in seconds."""
        try:
            value = float(timeout)
        except (TypeError, ValueError):
            result.add_error(field_path, f"Invalid timeout value: {timeout}")
            return

        if value <= 0:
            result.add_error(field_path, "Timeout must be positive", suggested_value=30.0)
        elif value > 120:
            result.add_warning(field_path, f"Timeout of {value}s will keep users waiting")

    @staticmethod
    def validate_history_window(window: Any, field_path: str, result: ValidationResult):
        if not isinstance(window, int) or isinstance(window, bool) or window < 0:
            result.add_error(field_path, f"History window must be a non-negative integer: {window!r}",
                             suggested_value=6)


def validate_credential(api_key: Optional[str], prefix: str = "sk-", min_length: int = 20) -> None:
    """
    Check a credential's shape before it is used for any request.

    Raises:
        CredentialMissing: If no key is configured
        CredentialInvalid: If the key does not look like a valid key
    """
    if api_key is None or not str(api_key).strip():
        raise CredentialMissing("No API key configured")

    result = ValidationResult()
    ConfigValidator.validate_api_key(api_key, "llm.api_key", result, prefix=prefix, min_length=min_length)
    if not result.is_valid:
        raise CredentialInvalid("; ".join(error.message for error in result.errors))


def validate_settings(settings) -> ValidationResult:
    """Validate loaded settings. Credential problems are warnings: the app runs offline."""
    result = ValidationResult()

    llm = settings.llm
    ConfigValidator.validate_timeout(llm.timeout, "llm.timeout", result)
    ConfigValidator.validate_history_window(llm.history_window, "llm.history_window", result)

    key_check = ValidationResult()
    ConfigValidator.validate_api_key(llm.api_key, "llm.api_key", key_check,
                                     prefix=llm.api_key_prefix, min_length=llm.api_key_min_length)
    for error in key_check.errors:
        result.add_warning(error.field_path, f"{error.message}; running with offline responses")

    if llm.provider == "self_hosted" and not llm.api_base:
        result.add_error("llm.api_base", "API base URL required for self-hosted models")

    if llm.provider not in ("openai", "self_hosted"):
        result.add_error("llm.provider", f"Unsupported provider: {llm.provider}")

    logger.debug(result.get_summary())
    return result
