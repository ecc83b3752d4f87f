"""
layercache - Shared Cache Backend

Process-shared cache layer on top of diskcache. Every process (and worker)
opening the same directory sees the same entries, which makes this the
shared-memory tier between the per-process memory layer and remote stores.

diskcache is synchronous; calls run in a worker thread so they never block
the event loop.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, ClassVar

from ..keys import is_namespace_key
from ..ttl import remaining_seconds
from .base import BaseCacheBackend, Entry

logger = logging.getLogger(__name__)

try:
    import diskcache
except ImportError as e:  # pragma: no cover
    raise ImportError(
        "diskcache is required for the shared cache backend but not installed. "
        "Install with: pip install 'diskcache>=5.6'"
    ) from e


class SharedCacheBackend(BaseCacheBackend):
    """
    diskcache-backed cache shared between processes.

    Entries are stored as (value, expires_at); diskcache's own expiry is set
    to the same instant so stale entries are reaped by the store as well.
    """

    LAYER_NAME: ClassVar[str] = "shared"

    def __init__(
        self,
        directory: str | Path | None = None,
        namespace: str | None = None,
        cache: "diskcache.Cache | None" = None,
    ):
        """
        Initialize shared cache backend.

        Args:
            directory: Cache directory (a temporary one when omitted)
            namespace: Cache key namespace/prefix
            cache: Existing diskcache.Cache to share instead of opening directory
        """
        super().__init__(namespace)
        self._cache = cache if cache is not None else diskcache.Cache(str(directory) if directory else None)

    @property
    def directory(self) -> str:
        return self._cache.directory

    def get_connection(self) -> "diskcache.Cache":
        """Return the underlying diskcache store."""
        return self._cache

    async def _read(self, storage_key: str) -> Entry | None:
        return await asyncio.to_thread(self._cache.get, storage_key)

    async def _write(self, storage_key: str, value: Any, expires_at: float | None) -> bool:
        expire = remaining_seconds(expires_at)
        return await asyncio.to_thread(self._cache.set, storage_key, (value, expires_at), expire)

    async def _remove(self, storage_key: str) -> None:
        await asyncio.to_thread(self._cache.delete, storage_key)

    async def _contains(self, storage_key: str) -> bool:
        # diskcache applies its own expiry on membership checks
        return await asyncio.to_thread(self._cache.__contains__, storage_key)

    def _purge_sync(self) -> int:
        if not self.namespace:
            return self._cache.clear()

        # Collect first: deleting while iterating the store is not safe
        keys = [
            key for key in self._cache.iterkeys() if isinstance(key, str) and is_namespace_key(self.namespace, key)
        ]
        for key in keys:
            self._cache.delete(key)
        return len(keys)

    async def _purge(self) -> None:
        removed = await asyncio.to_thread(self._purge_sync)
        logger.debug("Deleted %d entries from shared cache namespace '%s'", removed, self.namespace)

    async def _backend_stats(self) -> dict[str, Any]:
        size = await asyncio.to_thread(len, self._cache)
        return {"size": size, "directory": self.directory}

    async def close(self) -> None:
        """Close the diskcache store."""
        try:
            await asyncio.to_thread(self._cache.close)
            logger.debug("Closed shared cache backend at '%s'", self.directory)
        except Exception as e:
            logger.error(
                f"Error closing shared cache: {e}",
                extra={"namespace": self.namespace, "error": str(e)},
                exc_info=True,
            )
