"""Configuration loading, schema, and defaults."""

from githarvest.config.loader import ConfigError, load_config
from githarvest.config.schema import (
    DiffConfig,
    HarvestConfig,
    LogConfig,
    LoggingConfig,
    ProcessConfig,
)

__all__ = [
    "ConfigError",
    "DiffConfig",
    "HarvestConfig",
    "LogConfig",
    "LoggingConfig",
    "ProcessConfig",
    "load_config",
]
