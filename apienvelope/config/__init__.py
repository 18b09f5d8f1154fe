"""Configuration module for apienvelope."""

from apienvelope.config.loader import load_config, save_config, get_config_path
from apienvelope.config.schema import Config, EncodingConfig, LoggingConfig
from apienvelope.config.access import get_config, clear_config_cache

__all__ = [
    "Config",
    "EncodingConfig",
    "LoggingConfig",
    "load_config",
    "save_config",
    "get_config_path",
    "get_config",
    "clear_config_cache",
]
