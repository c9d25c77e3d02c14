"""Configuration module for the pool relay."""

from uzi_pool.config.models import (
    Config,
    LoggingConfig,
    MiningConfig,
    NodeConfig,
    ServerConfig,
)
from uzi_pool.config.loader import ConfigError, build_config, load_config, validate_config

__all__ = [
    "Config",
    "LoggingConfig",
    "MiningConfig",
    "NodeConfig",
    "ServerConfig",
    "ConfigError",
    "build_config",
    "load_config",
    "validate_config",
]
