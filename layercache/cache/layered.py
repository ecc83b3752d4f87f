"""
layercache - Layered Cache

Orchestrates an ordered list of cache layers (fastest first) behind the
single CacheInterface surface:

- get: cascades through layers in order; a hit in a slower layer is written
  back into every faster layer above it (write-through population)
- set / delete / clear: broadcast to every layer; the result is the AND of
  all layers and a failing layer never stops the broadcast
- has: first layer reporting the key wins
- layer(name): direct, non-cascading access to a named layer

Layers are awaited strictly one after another; there is no concurrent
fan-out, no locking and no atomicity across layers.

Example:
    cache = LayeredCache(
        [
            ("memory", MemoryCacheBackend()),
            ("redis", RedisCacheBackend("redis://localhost:6379", namespace="app:")),
            ("database", DatabaseCacheBackend("sqlite+aiosqlite:///./data/cache.db")),
        ]
    )

    await cache.set("key", "value")                 # all layers
    await cache.layer("redis").set("key", "v", 300)  # redis only
"""

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import timedelta
from types import MappingProxyType
from typing import Any

from ..errors import ConfigurationError, NoNamedLayersError, UnknownLayerError
from .interface import CacheInterface, Lookup, iter_items
from .keys import validate_key
from .ttl import TTL, normalize_ttl, remaining_seconds

logger = logging.getLogger(__name__)

LayerItem = CacheInterface | tuple[str | None, CacheInterface]


@dataclass(frozen=True)
class Layer:
    """A backend plus its priority position (0 = fastest) and optional name."""

    backend: CacheInterface
    position: int
    name: str | None = None


class LayeredCache(CacheInterface):
    """
    Multi-layer cache with cascading reads and broadcast writes.

    Args:
        layers: Ordered backends, fastest first. Each item is either a backend
            or a (name, backend) pair; name may be None.
        populate_ttl: When False (default) values copied into faster layers on
            a lower-layer hit never expire. When True they inherit the
            remaining lifetime of the entry they were copied from.

    Raises:
        ConfigurationError: No layers, duplicate names or invalid items
    """

    def __init__(self, layers: Iterable[LayerItem], *, populate_ttl: bool = False):
        built: list[Layer] = []
        named: dict[str, CacheInterface] = {}

        for position, item in enumerate(layers):
            name, backend = self._unpack(item, position)
            if name is not None:
                if name in named:
                    raise ConfigurationError(
                        f"Duplicate cache layer name: {name}",
                        details={"layer": name, "position": position},
                    )
                named[name] = backend
            built.append(Layer(backend=backend, position=position, name=name))

        if not built:
            raise ConfigurationError("At least one cache layer required", details={"layers": 0})

        self._layers: tuple[Layer, ...] = tuple(built)
        self._named: Mapping[str, CacheInterface] = MappingProxyType(named)
        self.populate_ttl = populate_ttl

        # Stats
        self._hits = 0
        self._misses = 0
        self._populations = 0
        self._population_failures = 0

        logger.debug(
            "Layered cache created with %d layer(s)",
            len(self._layers),
            extra={"layers": [layer.name or type(layer.backend).__name__ for layer in self._layers]},
        )

    @staticmethod
    def _unpack(item: Any, position: int) -> tuple[str | None, CacheInterface]:
        if isinstance(item, CacheInterface):
            return None, item

        if isinstance(item, tuple) and len(item) == 2:
            name, backend = item
            valid_name = name is None or (isinstance(name, str) and name.strip() != "")
            if valid_name and isinstance(backend, CacheInterface):
                return name, backend

        raise ConfigurationError(
            f"Invalid cache layer at position {position}: expected a cache backend or a (name, backend) pair",
            details={"position": position, "type": type(item).__name__},
        )

    # ------------ Introspection ------------

    @property
    def layers(self) -> tuple[Layer, ...]:
        return self._layers

    def get_layers(self) -> list[CacheInterface]:
        """Return all backends in layer order."""
        return [layer.backend for layer in self._layers]

    def layer_names(self) -> list[str]:
        """Return the names of named layers in layer order."""
        return [layer.name for layer in self._layers if layer.name is not None]

    def layer(self, name: str) -> CacheInterface:
        """
        Return the backend registered under name for targeted operations.

        Raises:
            NoNamedLayersError: If the cache was built without any named layer
            UnknownLayerError: If name is not among the named layers
        """
        if not self._named:
            raise NoNamedLayersError(name)

        backend = self._named.get(name)
        if backend is None:
            raise UnknownLayerError(name, self.layer_names())
        return backend

    # ------------ Reads ------------

    async def lookup(self, key: str) -> Lookup:
        """Cascade through the layers and populate faster layers on a hit."""
        validate_key(key)

        for layer in self._layers:
            found = await layer.backend.lookup(key)
            if not found.found:
                continue

            self._hits += 1
            if layer.position > 0:
                await self._populate(key, found, layer.position)
            return found

        self._misses += 1
        return Lookup.miss()

    async def get(self, key: str, default: Any = None) -> Any:
        """Return the value from the fastest layer holding key, else default."""
        found = await self.lookup(key)
        return found.value if found.found else default

    async def _populate(self, key: str, found: Lookup, hit_position: int) -> None:
        """Write a hit back into every layer above it, nearest first."""
        ttl: TTL = None
        if self.populate_ttl and found.expires_at is not None:
            ttl = timedelta(seconds=remaining_seconds(found.expires_at))

        for position in range(hit_position - 1, -1, -1):
            layer = self._layers[position]
            if await layer.backend.set(key, found.value, ttl):
                self._populations += 1
                continue

            self._population_failures += 1
            logger.warning(
                "Failed to populate layer %d with key '%s' found in layer %d",
                position,
                key,
                hit_position,
                extra={"key": key, "layer": layer.name, "position": position, "source_position": hit_position},
            )

    async def has(self, key: str) -> bool:
        """Return True as soon as any layer reports the key."""
        validate_key(key)

        for layer in self._layers:
            if await layer.backend.has(key):
                return True
        return False

    async def get_many(self, keys: Iterable[str], default: Any = None) -> dict[str, Any]:
        """Cascading get for each key; misses map to default."""
        keys = list(keys)
        for key in keys:
            validate_key(key)

        result = {}
        for key in keys:
            result[key] = await self.get(key, default)
        return result

    # ------------ Writes ------------

    async def _broadcast(self, operation: str, call: Callable[[CacheInterface], Awaitable[bool]]) -> bool:
        """Apply call to every layer in order; True only if every layer succeeded."""
        success = True
        for layer in self._layers:
            if not await call(layer.backend):
                success = False
                logger.warning(
                    "Cache layer %d reported failure for %s",
                    layer.position,
                    operation,
                    extra={"operation": operation, "layer": layer.name, "position": layer.position},
                )
        return success

    async def set(self, key: str, value: Any, ttl: TTL = None) -> bool:
        """Store value in every layer."""
        validate_key(key)
        normalize_ttl(ttl)
        return await self._broadcast("set", lambda backend: backend.set(key, value, ttl))

    async def delete(self, key: str) -> bool:
        """Delete key from every layer."""
        validate_key(key)
        return await self._broadcast("delete", lambda backend: backend.delete(key))

    async def clear(self) -> bool:
        """Clear every layer."""
        return await self._broadcast("clear", lambda backend: backend.clear())

    async def set_many(
        self,
        items: Mapping[str, Any] | Iterable[tuple[str, Any]],
        ttl: TTL = None,
    ) -> bool:
        """Broadcast set for each item; every item is attempted."""
        pairs = iter_items(items)
        for key, _ in pairs:
            validate_key(key)
        normalize_ttl(ttl)

        success = True
        for key, value in pairs:
            if not await self.set(key, value, ttl):
                success = False
        return success

    async def delete_many(self, keys: Iterable[str]) -> bool:
        """Broadcast delete for each key; every key is attempted."""
        keys = list(keys)
        for key in keys:
            validate_key(key)

        success = True
        for key in keys:
            if not await self.delete(key):
                success = False
        return success

    # ------------ Lifecycle ------------

    async def get_stats(self) -> dict[str, Any]:
        """Orchestrator counters plus the statistics of every layer."""
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0

        layers = []
        for layer in self._layers:
            layer_stats = await layer.backend.get_stats()
            layers.append({"position": layer.position, "name": layer.name, **layer_stats})

        return {
            "backend": "layered",
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(hit_rate, 2),
            "populations": self._populations,
            "population_failures": self._population_failures,
            "populate_ttl": self.populate_ttl,
            "layers": layers,
        }

    async def close(self) -> None:
        """Close every layer; a failing layer does not stop the others."""
        for layer in self._layers:
            try:
                await layer.backend.close()
            except Exception as e:
                logger.error(
                    "Error closing cache layer %d: %s",
                    layer.position,
                    e,
                    extra={"layer": layer.name, "position": layer.position, "error": str(e)},
                    exc_info=True,
                )

    async def __aenter__(self) -> "LayeredCache":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        parts = []
        for layer in self._layers:
            backend_name = type(layer.backend).__name__
            parts.append(f"{layer.name}={backend_name}" if layer.name else backend_name)
        return f"LayeredCache([{', '.join(parts)}])"
