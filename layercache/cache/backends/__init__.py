"""
layercache - Cache Backends

Exports available cache backend implementations.

Redis, shared (diskcache) and database backends are lazy-loaded via
factory.py so their client libraries are only imported when used.
"""

from .base import BackendResult, BaseCacheBackend
from .memory import MemoryCacheBackend

__all__ = [
    "BackendResult",
    "BaseCacheBackend",
    "MemoryCacheBackend",
]
