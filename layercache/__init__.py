"""
layercache - Multi-layer Cache

One cache surface over an ordered set of backends (process memory,
process-shared diskcache, Redis, SQL database) with cascading reads,
write-through population and broadcast writes.
"""

__version__ = "1.0.0"

from .cache import CacheInterface, LayeredCache, Lookup, create_cache, get_cache
from .errors import (
    BackendFault,
    ConfigurationError,
    InvalidKeyError,
    InvalidTTLError,
    LayerCacheError,
    NoNamedLayersError,
    UnknownLayerError,
)

__all__ = [
    "LayeredCache",
    "CacheInterface",
    "Lookup",
    "create_cache",
    "get_cache",
    "LayerCacheError",
    "ConfigurationError",
    "InvalidKeyError",
    "InvalidTTLError",
    "UnknownLayerError",
    "NoNamedLayersError",
    "BackendFault",
]
