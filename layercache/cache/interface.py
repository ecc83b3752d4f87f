"""
layercache - Cache Interface

Defines the abstract interface that every cache layer (and the layered cache
itself) implements, plus the explicit lookup result used for cascading reads.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .ttl import TTL

# Private sentinel: no caller value can ever be identical to it
_MISSING = object()


@dataclass(frozen=True)
class Lookup:
    """
    Outcome of a single-layer read.

    found distinguishes a miss from a stored value that happens to equal a
    caller's default. expires_at is the absolute expiry of the entry when the
    layer knows it (None = never expires or unknown).
    """

    found: bool
    value: Any = None
    expires_at: float | None = None

    @classmethod
    def hit(cls, value: Any, expires_at: float | None = None) -> "Lookup":
        return cls(True, value, expires_at)

    @classmethod
    def miss(cls) -> "Lookup":
        return cls(False)


def iter_items(items: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> list[tuple[str, Any]]:
    """Normalize a mapping or an iterable of pairs into a list of pairs."""
    if isinstance(items, Mapping):
        return list(items.items())
    return list(items)


class CacheInterface(ABC):
    """
    Abstract base class for cache layers.

    All cache implementations must implement this interface to ensure
    consistent behavior across different backends (memory, shared, Redis,
    database) and the layered cache.

    Contract:
    - Reads never raise on backend faults; they return the default / a miss.
    - Writes never raise on backend faults; they return False.
    - Only caller errors (invalid key, invalid TTL) propagate.
    """

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a value from the cache.

        Args:
            key: Cache key
            default: Value returned on a miss

        Returns:
            Cached value if found and not expired, default otherwise
        """
        pass

    async def lookup(self, key: str) -> Lookup:
        """
        Retrieve a value together with an explicit found flag.

        Default implementation calls get() with a private sentinel.
        Backends override it to also report the entry's expiry.
        """
        value = await self.get(key, _MISSING)
        if value is _MISSING:
            return Lookup.miss()
        return Lookup.hit(value)

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: TTL = None) -> bool:
        """
        Store a value in the cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Seconds or timedelta (None or <= 0 = never expires)

        Returns:
            True if stored successfully, False otherwise
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete a key from the cache.

        Returns:
            True if the key is gone afterwards (also when it never existed),
            False on failure
        """
        pass

    @abstractmethod
    async def has(self, key: str) -> bool:
        """
        Check if a key exists in the cache.

        Returns:
            True if key exists and is not expired, False otherwise
        """
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """
        Clear all entries from the cache.

        Returns:
            True if cache was cleared successfully
        """
        pass

    @abstractmethod
    async def get_stats(self) -> dict[str, Any]:
        """Get cache statistics (hits, misses, backend details)."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """
        Close the cache and release resources.

        Should be called during graceful shutdown.
        """
        pass

    async def get_many(self, keys: Iterable[str], default: Any = None) -> dict[str, Any]:
        """
        Retrieve multiple values from the cache.

        Returns:
            Dictionary with an entry for every key (default for misses)
        """
        result = {}
        for key in keys:
            result[key] = await self.get(key, default)
        return result

    async def set_many(
        self,
        items: Mapping[str, Any] | Iterable[tuple[str, Any]],
        ttl: TTL = None,
    ) -> bool:
        """
        Store multiple values in the cache.

        Every item is attempted even after a failure.

        Returns:
            True if every item was stored
        """
        success = True
        for key, value in iter_items(items):
            if not await self.set(key, value, ttl):
                success = False
        return success

    async def delete_many(self, keys: Iterable[str]) -> bool:
        """
        Delete multiple keys from the cache.

        Every key is attempted even after a failure.

        Returns:
            True if every key was deleted
        """
        success = True
        for key in keys:
            if not await self.delete(key):
                success = False
        return success
