"""
layercache - Configuration Module

Provides typed configuration loading and validation.
"""

from .loader import get_config, load_config, reload_config
from .schemas import (
    BackendType,
    Environment,
    LayerCacheConfig,
    LayerConfig,
    LogFormat,
    LogLevel,
)

__all__ = [
    # Loader functions
    "load_config",
    "get_config",
    "reload_config",
    # Main config
    "LayerCacheConfig",
    "LayerConfig",
    # Enums
    "Environment",
    "BackendType",
    "LogFormat",
    "LogLevel",
]
