"""
layercache - Backend Base Class

Shared plumbing for all storage backends:
- storage keys derived from the backend namespace (sha256 of the logical key)
- TTLs normalized to absolute expiry instants
- lazy removal of expired entries on read
- every storage primitive wrapped in a fault guard that turns exceptions
  into a typed BackendResult, so nothing but caller errors (invalid key,
  invalid TTL) ever leaves a backend

Subclasses implement the storage primitives only:
    _read(storage_key) -> (value, expires_at) | None
    _write(storage_key, value, expires_at) -> bool
    _remove(storage_key) -> None
    _purge() -> None
and may override _contains() when the store has a cheaper existence check.
"""

import logging
from abc import abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, ClassVar

from ..interface import CacheInterface, Lookup
from ..keys import derive_key, normalize_namespace
from ..ttl import TTL, is_expired, normalize_ttl

logger = logging.getLogger(__name__)

Entry = tuple[Any, float | None]


@dataclass(frozen=True)
class BackendResult:
    """Typed outcome of a storage primitive."""

    ok: bool
    value: Any = None
    reason: str | None = None

    @classmethod
    def success(cls, value: Any = None) -> "BackendResult":
        return cls(True, value)

    @classmethod
    def failure(cls, reason: str) -> "BackendResult":
        return cls(False, None, reason)


class BaseCacheBackend(CacheInterface):
    """Fault-absorbing base for key-value backends."""

    LAYER_NAME: ClassVar[str] = "base"

    def __init__(self, namespace: str | None = None):
        self.namespace = normalize_namespace(namespace)

        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0
        self._faults = 0
        self.last_result: BackendResult | None = None

    def _make_key(self, key: str) -> str:
        """Create namespaced storage key (raises InvalidKeyError)."""
        return derive_key(self.namespace, key)

    async def _guard(self, operation: str, key: str | None, awaitable: Awaitable[Any]) -> BackendResult:
        """Await a storage primitive and absorb any fault into a BackendResult."""
        try:
            result = BackendResult.success(await awaitable)
        except Exception as e:
            self._faults += 1
            logger.error(
                "%s backend failed to %s key '%s': %s",
                self.LAYER_NAME,
                operation,
                key,
                e,
                extra={
                    "backend": self.LAYER_NAME,
                    "operation": operation,
                    "key": key,
                    "namespace": self.namespace,
                    "error": str(e),
                },
                exc_info=True,
            )
            result = BackendResult.failure(f"{type(e).__name__}: {e}")
        self.last_result = result
        return result

    # ------------ Storage primitives ------------

    @abstractmethod
    async def _read(self, storage_key: str) -> Entry | None:
        """Return (value, expires_at) or None when absent."""

    @abstractmethod
    async def _write(self, storage_key: str, value: Any, expires_at: float | None) -> bool:
        """Store an entry; return the store's success flag."""

    @abstractmethod
    async def _remove(self, storage_key: str) -> None:
        """Remove an entry; absent entries are a no-op."""

    @abstractmethod
    async def _purge(self) -> None:
        """Remove every entry of this backend's namespace."""

    async def _contains(self, storage_key: str) -> bool:
        entry = await self._read(storage_key)
        if entry is None:
            return False
        if is_expired(entry[1]):
            await self._remove(storage_key)
            return False
        return True

    # ------------ Core Interface ------------

    async def lookup(self, key: str) -> Lookup:
        """Retrieve an entry with its expiry."""
        storage_key = self._make_key(key)
        result = await self._guard("get", key, self._read(storage_key))

        if not result.ok or result.value is None:
            self._misses += 1
            return Lookup.miss()

        value, expires_at = result.value
        if is_expired(expires_at):
            await self._guard("expire", key, self._remove(storage_key))
            self._misses += 1
            return Lookup.miss()

        self._hits += 1
        return Lookup.hit(value, expires_at)

    async def get(self, key: str, default: Any = None) -> Any:
        """Retrieve value from cache."""
        found = await self.lookup(key)
        return found.value if found.found else default

    async def set(self, key: str, value: Any, ttl: TTL = None) -> bool:
        """Store value in cache."""
        storage_key = self._make_key(key)
        expires_at = normalize_ttl(ttl)
        result = await self._guard("set", key, self._write(storage_key, value, expires_at))
        success = result.ok and result.value is not False
        if success:
            self._sets += 1
        return success

    async def delete(self, key: str) -> bool:
        """Delete key from cache (absent keys count as deleted)."""
        storage_key = self._make_key(key)
        result = await self._guard("delete", key, self._remove(storage_key))
        if result.ok:
            self._deletes += 1
        return result.ok

    async def has(self, key: str) -> bool:
        """Check if key exists and is not expired."""
        storage_key = self._make_key(key)
        result = await self._guard("has", key, self._contains(storage_key))
        return result.ok and bool(result.value)

    async def clear(self) -> bool:
        """Clear every entry under this backend's namespace."""
        result = await self._guard("clear", None, self._purge())
        if result.ok:
            logger.info(
                "Cleared %s cache namespace '%s'",
                self.LAYER_NAME,
                self.namespace,
                extra={"backend": self.LAYER_NAME, "namespace": self.namespace},
            )
        return result.ok

    async def _backend_stats(self) -> dict[str, Any]:
        """Backend-specific statistics, merged into get_stats()."""
        return {}

    async def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0

        stats: dict[str, Any] = {
            "backend": self.LAYER_NAME,
            "namespace": self.namespace,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(hit_rate, 2),
            "sets": self._sets,
            "deletes": self._deletes,
            "faults": self._faults,
        }
        stats.update(await self._backend_stats())
        return stats

    async def close(self) -> None:
        """Close the backend and release resources."""
        logger.debug("%s cache backend closed for namespace '%s'", self.LAYER_NAME, self.namespace)
