"""Load config.yaml and the environment into validated settings objects."""

from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import ValidationError

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .models import AppConfig
from .validators import check_for_warnings, emit_warnings

DEFAULT_CONFIG_LOCATIONS = (Path("config.yaml"), Path("config") / "config.yaml")


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, EnvironmentConfig]:
    """Load and validate configuration from YAML and environment variables.

    Lookup order for the YAML file:
    1. ``config_path`` if given (must exist)
    2. ./config.yaml
    3. ./config/config.yaml

    Every key in the YAML file has a default, so an empty file is valid.
    ``APP_BASE_URL`` from the environment overrides ``app_base_url``.

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid, or
            the environment is incomplete
    """
    config_file = _find_config_file(config_path)
    config_dict = _read_yaml(config_file)

    emit_warnings(check_for_warnings(config_dict))

    env_config = load_environment_config()
    if env_config.app_base_url:
        config_dict["app_base_url"] = env_config.app_base_url

    app_config = build_app_config(config_dict)
    return app_config, env_config


def build_app_config(config_dict: Dict[str, Any]) -> AppConfig:
    """Validate a raw mapping into AppConfig, converting pydantic errors."""
    try:
        return AppConfig.model_validate(config_dict)
    except ValidationError as e:
        raise ConfigurationError.from_pydantic(
            "Configuration validation failed",
            e.errors(),
            suggestions=[
                "Review config.example.yaml for the expected keys",
                "Durations look like '5m', '1h' or 'PT5M'",
            ],
        ) from e


def _read_yaml(config_file: Path) -> Dict[str, Any]:
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse YAML configuration: {e}",
            suggestions=[
                "Check YAML syntax in your config file",
                "Ensure proper indentation (use spaces, not tabs)",
            ],
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read configuration file {config_file}: {e}",
            suggestions=["Check file permissions"],
        ) from e

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(
            f"Configuration file {config_file} must contain a mapping at the top level",
            suggestions=["Copy config.example.yaml to config.yaml"],
        )
    return loaded


def _find_config_file(config_path: Optional[Path] = None) -> Path:
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(
                f"Specified configuration file not found: {config_path}",
                suggestions=["Check the --config path and try again"],
            )
        return config_path

    for candidate in DEFAULT_CONFIG_LOCATIONS:
        if candidate.exists():
            return candidate

    raise ConfigurationError(
        "Configuration file not found",
        errors=[f"Tried: {candidate}" for candidate in DEFAULT_CONFIG_LOCATIONS],
        suggestions=[
            "Copy config.example.yaml to config.yaml",
            "Use --config to specify a custom location",
        ],
    )


def validate_config_file(config_path: Path) -> bool:
    """Validate a YAML file without reading the environment.

    Prints the outcome and returns True when the file is valid.
    """
    try:
        build_app_config(_read_yaml(Path(config_path)))
    except ConfigurationError as e:
        print(f"Configuration validation failed:\n{e}")
        return False
    print(f"Configuration file {config_path} is valid")
    return True
