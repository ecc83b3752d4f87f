"""
layercache - Memory Cache Backend

In-process cache layer with per-key TTL support. Values are stored as-is
(no encoding), so they keep their identity within the process.
Suitable as the fastest (first) layer of a layered cache.
"""

import asyncio
import logging
from typing import Any, ClassVar

from ..ttl import is_expired
from .base import BaseCacheBackend, Entry

logger = logging.getLogger(__name__)


class MemoryCacheBackend(BaseCacheBackend):
    """
    In-memory cache backend.

    Features:
    - Per-key TTL support with lazy expiry on access
    - Namespace isolation between instances sharing a process
    - Operations serialized by an asyncio lock
    - No eviction: entries live until deleted, cleared or expired
    """

    LAYER_NAME: ClassVar[str] = "memory"

    def __init__(self, namespace: str | None = None):
        """
        Initialize memory cache backend.

        Args:
            namespace: Cache key namespace/prefix
        """
        super().__init__(namespace)

        # Cache storage: storage_key -> (value, expiry_time)
        self._cache: dict[str, Entry] = {}

        self._lock = asyncio.Lock()

    async def _read(self, storage_key: str) -> Entry | None:
        async with self._lock:
            return self._cache.get(storage_key)

    async def _write(self, storage_key: str, value: Any, expires_at: float | None) -> bool:
        async with self._lock:
            self._cache[storage_key] = (value, expires_at)
            return True

    async def _remove(self, storage_key: str) -> None:
        async with self._lock:
            self._cache.pop(storage_key, None)

    async def _contains(self, storage_key: str) -> bool:
        async with self._lock:
            entry = self._cache.get(storage_key)
            if entry is None:
                return False

            if is_expired(entry[1]):
                # Remove expired entry
                del self._cache[storage_key]
                return False

            return True

    async def _purge(self) -> None:
        async with self._lock:
            size = len(self._cache)
            self._cache.clear()
        logger.debug("Dropped %d entries from memory cache namespace '%s'", size, self.namespace)

    async def _backend_stats(self) -> dict[str, Any]:
        async with self._lock:
            return {"size": len(self._cache)}
