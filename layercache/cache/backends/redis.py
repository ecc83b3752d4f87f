"""
layercache - Redis Cache Backend

Asynchronous Redis cache layer with:
- Tagged codec serialization for values (JSON for plain data, pickle otherwise)
- Per-key TTL support (PX milliseconds, derived from the absolute expiry)
- Namespace prefixing of hashed keys for safe multi-tenant usage
- Remaining-lifetime reporting via PTTL for TTL-aware population

Requires: redis>=5.0 with asyncio support

Example:
    cache = RedisCacheBackend(redis_url="redis://localhost:6379", namespace="app:")
    await cache.set("greeting", {"msg": "hello"}, ttl=60)
    val = await cache.get("greeting")
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any, ClassVar

from ..codec import decode, encode
from ..keys import DIGEST_LENGTH
from ..ttl import remaining_seconds
from .base import BaseCacheBackend, Entry

logger = logging.getLogger(__name__)

try:
    # redis-py asyncio client (v4.2+)
    from redis.asyncio import Redis
except ImportError as e:  # pragma: no cover
    raise ImportError(
        "Redis async client is required but not installed. "
        "Install with: pip install 'redis>=5.0.0' or add 'redis' to your dependencies."
    ) from e


def _escape_glob(text: str) -> str:
    """Escape Redis glob metacharacters so text matches literally in SCAN MATCH."""
    return "".join("\\" + c if c in "\\*?[]" else c for c in text)


class RedisCacheBackend(BaseCacheBackend):
    """
    Redis cache backend with codec serialization and TTL.

    Notes:
    - Keys are namespace + sha256(key) to avoid collisions.
    - Values are stored as tagged codec strings.
    - clear() with an empty namespace flushes the whole database; with a
      namespace only matching keys are removed (SCAN + DEL in batches).
    """

    LAYER_NAME: ClassVar[str] = "redis"

    SCAN_BATCH_SIZE = 1000

    def __init__(
        self,
        redis_url: str | None = None,
        namespace: str | None = None,
        max_connections: int = 10,
        socket_timeout: int = 5,
        client: Redis | None = None,
    ) -> None:
        """
        Initialize Redis cache backend.

        Args:
            redis_url: Connection URL, e.g., redis://localhost:6379/0 or rediss:// for TLS
            namespace: Prefix for all keys (e.g., "app:")
            max_connections: Connection pool size
            socket_timeout: Socket timeout in seconds
            client: Existing client to share instead of creating one from redis_url
        """
        if client is None and not redis_url:
            raise ValueError("redis_url or client is required")

        super().__init__(namespace)

        if client is not None:
            self._client = client
        else:
            # Lazy connection; connects on first command
            self._client = Redis.from_url(  # type: ignore[call-overload]
                url=redis_url,
                decode_responses=True,
                max_connections=max_connections,
                socket_timeout=socket_timeout,
            )

    def get_connection(self) -> Redis:
        """Return the underlying Redis client (for sharing and health checks)."""
        return self._client

    # ------------ Storage primitives ------------

    async def _read(self, storage_key: str) -> Entry | None:
        pipe = self._client.pipeline(transaction=False)
        pipe.get(storage_key)
        pipe.pttl(storage_key)
        data, pttl = await pipe.execute()

        if data is None:
            return None

        # PTTL: -1 = no expiry, -2 = vanished between the two commands
        expires_at = time.time() + pttl / 1000 if pttl is not None and pttl >= 0 else None
        return decode(data), expires_at

    async def _write(self, storage_key: str, value: Any, expires_at: float | None) -> bool:
        payload = encode(value)

        px = None
        if expires_at is not None:
            px = max(1, math.ceil(remaining_seconds(expires_at) * 1000))

        # redis-py returns True or 'OK' depending on decode_responses
        return bool(await self._client.set(name=storage_key, value=payload, px=px))

    async def _remove(self, storage_key: str) -> None:
        await self._client.delete(storage_key)

    async def _contains(self, storage_key: str) -> bool:
        return bool(await self._client.exists(storage_key))

    async def _purge(self) -> None:
        if not self.namespace:
            await self._client.flushdb()
            return

        # Glob-escape the namespace; "?" per digest char keeps "app" from matching "app2..."
        pattern = _escape_glob(self.namespace) + "?" * DIGEST_LENGTH
        cursor = 0
        total_deleted = 0

        while True:
            cursor, keys = await self._client.scan(cursor=cursor, match=pattern, count=self.SCAN_BATCH_SIZE)
            if keys:
                total_deleted += await self._client.delete(*keys)
            if cursor == 0:
                break

        logger.debug("Deleted %d keys from Redis namespace '%s'", total_deleted, self.namespace)

    # ------------ Lifecycle ------------

    async def _backend_stats(self) -> dict[str, Any]:
        """Return basic Redis server info."""
        stats: dict[str, Any] = {"connected": False}

        try:
            # PING to check connectivity
            pong = await self._client.ping()
            stats["connected"] = bool(pong)

            info = await self._client.info(section="server")
            stats["redis_version"] = info.get("redis_version")
            stats["redis_mode"] = info.get("redis_mode")
        except Exception as e:
            # If INFO is restricted or fails, keep minimal stats
            logger.warning(f"Failed to get Redis INFO (restricted or unavailable): {e}", extra={"error": str(e)})

        return stats

    async def close(self) -> None:
        """Close the Redis client and release resources."""
        try:
            await self._client.aclose()
            logger.info(f"Closed Redis cache backend for namespace '{self.namespace}'")
        except Exception as e:
            logger.error(
                f"Error closing Redis client: {e}", extra={"namespace": self.namespace, "error": str(e)}, exc_info=True
            )
        finally:
            # Ensure pool disconnect
            try:
                await self._client.connection_pool.disconnect()
            except Exception as e:
                logger.warning(f"Error disconnecting Redis connection pool: {e}", extra={"error": str(e)})
