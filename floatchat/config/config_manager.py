"""
Configuration Manager
=====================

Settings loaded from YAML, with environment-variable overrides. The upstream
credential is read once, when the configuration is loaded.
"""

import os
import yaml
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple
from dataclasses import dataclass, field, asdict
from enum import Enum

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Environment(Enum):
    """Deployment environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


@dataclass
class LLMSettings:
    """Upstream answer-service configuration."""
    provider: str = "openai"
    model: str = "gpt-3.5-turbo"
    api_key: str = ""
    api_base: Optional[str] = None
    api_key_prefix: str = "sk-"
    api_key_min_length: int = 20
    max_tokens: int = 500
    temperature: float = 0.7
    timeout: float = 30.0
    history_window: int = 6


@dataclass
class FallbackSettings:
    """Offline responder configuration."""
    seed: Optional[int] = None
    use_knowledge_base: bool = True


@dataclass
class ObservabilityConfig:
    """Logging configuration."""
    log_level: str = "INFO"
    log_format: str = LOG_FORMAT


@dataclass
class Settings:
    """Application settings."""
    environment: Environment = Environment.DEVELOPMENT
    app_name: str = "FloatChat"
    version: str = "1.0.0"
    debug_mode: bool = False

    llm: LLMSettings = field(default_factory=LLMSettings)
    fallback: FallbackSettings = field(default_factory=FallbackSettings)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary, with the credential masked."""
        data = asdict(self)
        data['environment'] = self.environment.value
        if data['llm'].get('api_key'):
            data['llm']['api_key'] = '***'
        return data


def _to_bool(value: str) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


# (config path, environment variable, cast); later entries win
ENV_OVERRIDES: Tuple[Tuple[str, str, Callable[[str], Any]], ...] = (
    ('llm.api_key', 'OPENAI_API_KEY', str),
    ('llm.api_key', 'FLOATCHAT_API_KEY', str),
    ('llm.provider', 'FLOATCHAT_LLM_PROVIDER', str),
    ('llm.api_base', 'FLOATCHAT_LLM_API_BASE', str),
    ('llm.model', 'FLOATCHAT_LLM_MODEL', str),
    ('llm.timeout', 'FLOATCHAT_LLM_TIMEOUT', float),
    ('observability.log_level', 'FLOATCHAT_LOG_LEVEL', str),
    ('fallback.seed', 'FLOATCHAT_FALLBACK_SEED', int),
    ('debug_mode', 'FLOATCHAT_DEBUG', _to_bool),
)


class ConfigManager:
    """Loads and holds application settings."""

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        self.environ = os.environ if environ is None else environ
        self.config_path = config_path or self._find_config_path()
        self._settings: Optional[Settings] = None

        self.load_config()

    def _find_config_path(self) -> str:
        """FLOATCHAT_CONFIG, then settings.<env>.yaml, then settings.yaml."""
        explicit = self.environ.get("FLOATCHAT_CONFIG")
        if explicit:
            return explicit

        env = self.environ.get("ENVIRONMENT", "development")
        config_dir = Path(__file__).parent

        env_config = config_dir / f"settings.{env}.yaml"
        if env_config.exists():
            return str(env_config)

        default_config = config_dir / "settings.yaml"
        if default_config.exists():
            return str(default_config)

        raise FileNotFoundError("No configuration file found")

    def load_config(self) -> Settings:
        """Read the YAML file and apply environment overrides."""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}

            config_data = self._merge_environment_variables(config_data)
            self._settings = self._create_settings_from_dict(config_data)

            logger.info(f"Configuration loaded from {self.config_path}")
            return self._settings

        except Exception as e:
            logger.error(f"Failed to load configuration: {e}")
            raise

    def _merge_environment_variables(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply ENV_OVERRIDES; values that fail to cast are skipped."""
        for config_path, env_var, cast in ENV_OVERRIDES:
            env_value = self.environ.get(env_var)
            if env_value:
                try:
                    self._set_nested_value(config_data, config_path, cast(env_value))
                except ValueError:
                    logger.warning(f"Ignoring invalid value for {env_var}")

        return config_data

    def _set_nested_value(self, data: Dict[str, Any], path: str, value: Any):
        """Set nested dictionary value using dot notation."""
        keys = path.split('.')
        current = data

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def _create_settings_from_dict(self, config_data: Dict[str, Any]) -> Settings:
        """Build typed settings; unknown keys raise TypeError."""
        settings_dict = {}

        settings_dict['environment'] = Environment(config_data.get('environment', 'development'))
        settings_dict['app_name'] = config_data.get('app_name', 'FloatChat')
        settings_dict['version'] = config_data.get('version', '1.0.0')
        settings_dict['debug_mode'] = bool(config_data.get('debug_mode', False))

        if config_data.get('llm'):
            settings_dict['llm'] = LLMSettings(**config_data['llm'])

        if config_data.get('fallback'):
            settings_dict['fallback'] = FallbackSettings(**config_data['fallback'])

        if config_data.get('observability'):
            settings_dict['observability'] = ObservabilityConfig(**config_data['observability'])

        return Settings(**settings_dict)

    @property
    def settings(self) -> Settings:
        """Get current settings."""
        if self._settings is None:
            self.load_config()
        return self._settings

    def reload_config(self) -> Settings:
        """Reload configuration, keeping the current settings if that fails."""
        try:
            return self.load_config()
        except Exception as e:
            logger.error(f"Failed to reload configuration: {e}")
            if self._settings is None:
                raise RuntimeError("No valid configuration available")
            return self._settings


def configure_logging(observability: ObservabilityConfig) -> None:
    """Apply logging settings to the root logger."""
    logging.basicConfig(
        level=getattr(logging, observability.log_level.upper(), logging.INFO),
        format=observability.log_format,
        handlers=[logging.StreamHandler()]
    )


_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Process-wide manager, created on first use."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def load_config(config_path: Optional[str] = None) -> Settings:
    """Load settings from a file, or the default location."""
    if config_path:
        return ConfigManager(config_path).settings
    return get_config_manager().settings
