"""
Configuration management for Serval.

Loads YAML configuration from file with sensible defaults and validation.
Supports environment variable substitution using ${ENV_VAR} syntax.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

from serval.exceptions import InvalidConfigurationError
from serval.logging_config import get_logger

logger = get_logger(__name__)


def _expand_env_vars(value: Any) -> Any:
    """
    Recursively expand environment variables in configuration values.

    Supports ${ENV_VAR} syntax with optional default values: ${ENV_VAR:default}

    Args:
        value: Configuration value (string, dict, list, or other)

    Returns:
        Value with environment variables expanded

    Examples:
        "${UNIFI_CA_BUNDLE}" -> value of UNIFI_CA_BUNDLE env var
        "${SERVAL_HOME:~/.serval}/auth.json" -> expanded path
    """
    if isinstance(value, str):
        # Pattern matches ${VAR} or ${VAR:default}
        pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

        def replace_env_var(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replace_env_var, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    else:
        return value


def _as_bool(value: Any) -> bool:
    """Interpret YAML booleans and their env-expanded string forms."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y", "on")
    return bool(value)


@dataclass
class ControllerConfig:
    """Transport configuration for talking to the controller."""

    verify_tls: bool = True
    ca_bundle: str = ""
    timeout: float = 30.0
    default_site: str = "default"

    def requests_verify(self):
        """Value for the ``verify`` argument of requests."""
        if not self.verify_tls:
            return False
        if self.ca_bundle:
            return os.path.expanduser(self.ca_bundle)
        return True


@dataclass
class StorageConfig:
    """Storage configuration for the credentials file."""

    auth_store: str
    backup_count: int = 3


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""
    format: str = "console"


@dataclass
class ServalConfig:
    """Main Serval configuration."""

    storage: StorageConfig
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_default_config_path() -> str:
    """Get the default configuration file path."""
    return os.path.expanduser("~/.serval/config.yaml")


def get_default_config() -> ServalConfig:
    """
    Get default configuration with sensible defaults.

    Returns:
        ServalConfig: Default configuration object
    """
    home_dir = os.path.expanduser("~/.serval")

    storage = StorageConfig(
        auth_store=os.path.join(home_dir, "auth.json"),
        backup_count=3,
    )

    return ServalConfig(
        storage=storage,
        controller=ControllerConfig(),
        logging=LoggingConfig(),
    )


def load_config(config_path: Optional[str] = None) -> ServalConfig:
    """
    Load configuration from YAML file with validation.

    If config file is not found, returns default configuration.
    If config file is malformed or invalid, raises InvalidConfigurationError.

    Args:
        config_path: Path to configuration file. If None, uses default path.

    Returns:
        ServalConfig: Loaded and validated configuration

    Raises:
        InvalidConfigurationError: If configuration is invalid or malformed
    """
    if config_path is None:
        config_path = get_default_config_path()

    config_path = os.path.expanduser(config_path)

    if not os.path.exists(config_path):
        logger.info(f"Configuration file not found at {config_path}, using defaults")
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f)
        logger.debug(f"Loaded configuration from {config_path}")
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML configuration file '{config_path}': {e}", exc_info=True)
        raise InvalidConfigurationError(
            f"Failed to parse YAML configuration file '{config_path}': {e}"
        ) from e
    except OSError as e:
        logger.error(f"Failed to read configuration file '{config_path}': {e}", exc_info=True)
        raise InvalidConfigurationError(
            f"Failed to read configuration file '{config_path}': {e}"
        ) from e

    if config_data is None:
        logger.info(f"Configuration file {config_path} is empty, using defaults")
        return get_default_config()

    if not isinstance(config_data, dict):
        raise InvalidConfigurationError(
            f"Configuration file '{config_path}' must contain a mapping at the top level"
        )

    config_data = _expand_env_vars(config_data)

    try:
        config = _build_config_from_dict(config_data)
        _validate_config(config)
    except InvalidConfigurationError:
        raise
    except (TypeError, ValueError, AttributeError) as e:
        logger.error(f"Invalid configuration in '{config_path}': {e}", exc_info=True)
        raise InvalidConfigurationError(
            f"Invalid configuration in '{config_path}': {e}"
        ) from e

    logger.info(f"Successfully loaded and validated configuration from {config_path}")
    return config


def _build_config_from_dict(config_data: Dict[str, Any]) -> ServalConfig:
    """
    Build ServalConfig from dictionary loaded from YAML.

    Merges user configuration with defaults. Every section is optional.

    Args:
        config_data: Dictionary loaded from YAML file

    Returns:
        ServalConfig: Configuration object
    """
    default_config = get_default_config()

    storage_data = config_data.get('storage') or {}
    storage = StorageConfig(
        auth_store=os.path.expanduser(
            str(storage_data.get('auth_store', default_config.storage.auth_store))
        ),
        backup_count=int(storage_data.get('backup_count', default_config.storage.backup_count)),
    )

    controller_data = config_data.get('controller') or {}
    controller = ControllerConfig(
        verify_tls=_as_bool(controller_data.get('verify_tls', default_config.controller.verify_tls)),
        ca_bundle=str(controller_data.get('ca_bundle', default_config.controller.ca_bundle) or ""),
        timeout=float(controller_data.get('timeout', default_config.controller.timeout)),
        default_site=str(controller_data.get('default_site', default_config.controller.default_site)),
    )
    if not controller.verify_tls:
        logger.warning("TLS certificate verification is disabled for the controller")

    logging_data = config_data.get('logging') or {}
    logging = LoggingConfig(
        level=str(logging_data.get('level', default_config.logging.level)),
        file=os.path.expanduser(str(logging_data.get('file', default_config.logging.file) or "")),
        format=str(logging_data.get('format', default_config.logging.format)),
    )

    return ServalConfig(
        storage=storage,
        controller=controller,
        logging=logging,
    )


def _validate_config(config: ServalConfig) -> None:
    """
    Validate configuration values.

    Args:
        config: Configuration to validate

    Raises:
        InvalidConfigurationError: If configuration is invalid
    """
    if not config.storage.auth_store:
        logger.error("Configuration validation failed: auth_store path cannot be empty")
        raise InvalidConfigurationError("auth_store path cannot be empty")

    if config.storage.backup_count < 1:
        raise InvalidConfigurationError(
            f"backup_count must be at least 1, got {config.storage.backup_count}"
        )

    if config.controller.timeout <= 0:
        raise InvalidConfigurationError(
            f"controller timeout must be positive, got {config.controller.timeout}"
        )

    if not config.controller.default_site:
        raise InvalidConfigurationError("default_site cannot be empty")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.logging.level.upper() not in valid_log_levels:
        raise InvalidConfigurationError(
            f"logging level must be one of {valid_log_levels}, "
            f"got '{config.logging.level}'"
        )

    valid_formats = ["console", "json"]
    if config.logging.format not in valid_formats:
        raise InvalidConfigurationError(
            f"logging format must be one of {valid_formats}, "
            f"got '{config.logging.format}'"
        )
