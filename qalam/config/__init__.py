"""Configuration management for the Qalam notification pipeline."""

from .duration import DurationParseError, parse_duration
from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import build_app_config, load_config, validate_config_file
from .models import (
    DEFAULT_APP_BASE_URL,
    AppConfig,
    EmailConfig,
    IdentityConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ProcessingConfig,
)

__all__ = [
    "load_config",
    "build_app_config",
    "validate_config_file",
    "load_environment_config",
    "parse_duration",
    "AppConfig",
    "ProcessingConfig",
    "EmailConfig",
    "IdentityConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    "DEFAULT_APP_BASE_URL",
    "LogLevel",
    "LogFormat",
    "ConfigurationError",
    "DurationParseError",
]
