"""
Configuration management for Serval.

Handles loading and validation of configuration files.
"""

from serval.config.settings import (
    ControllerConfig,
    LoggingConfig,
    ServalConfig,
    StorageConfig,
    get_default_config,
    get_default_config_path,
    load_config,
)

__all__ = [
    "ControllerConfig",
    "LoggingConfig",
    "ServalConfig",
    "StorageConfig",
    "get_default_config",
    "get_default_config_path",
    "load_config",
]
