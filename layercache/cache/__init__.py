"""
layercache - Cache Module

Layered caching over pluggable backends.

Canonical exports:
- layered.py: LayeredCache, the multi-layer orchestrator
- interface.py: abstract interface all layers implement
- factory.py: creation of layered caches from configuration
- keys.py / ttl.py / codec.py: contracts shared by every backend

Usage:
    from layercache.cache import LayeredCache
    from layercache.cache.backends import MemoryCacheBackend

    cache = LayeredCache([("memory", MemoryCacheBackend())])
    await cache.set("key", "value", ttl=3600)
    value = await cache.get("key")
"""

from .codec import decode, encode
from .factory import (
    close_all_caches,
    create_backend,
    create_cache,
    get_cache,
    list_cache_instances,
    reset_cache_factory,
)
from .interface import CacheInterface, Lookup
from .keys import derive_key, validate_key
from .layered import Layer, LayeredCache
from .ttl import normalize_ttl

__all__ = [
    # Orchestrator
    "LayeredCache",
    "Layer",
    # Interface
    "CacheInterface",
    "Lookup",
    # Factory functions
    "create_cache",
    "create_backend",
    "get_cache",
    "close_all_caches",
    "list_cache_instances",
    "reset_cache_factory",
    # Shared contracts
    "derive_key",
    "validate_key",
    "normalize_ttl",
    "encode",
    "decode",
]
