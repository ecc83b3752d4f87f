"""
layercache - Layered Cache Integration Tests

End-to-end scenarios over real backends: memory in front of a diskcache
shared layer in front of an SQLite table.
"""

import asyncio
from collections.abc import AsyncGenerator

import pytest

from layercache.cache.backends.database import DatabaseCacheBackend
from layercache.cache.backends.memory import MemoryCacheBackend
from layercache.cache.backends.shared import SharedCacheBackend
from layercache.cache.layered import LayeredCache


@pytest.fixture
async def stack(shared_dir: str, sqlite_url: str) -> AsyncGenerator[LayeredCache, None]:
    """Three-layer cache with named layers."""
    cache = LayeredCache(
        [
            ("memory", MemoryCacheBackend(namespace="app:")),
            ("shared", SharedCacheBackend(directory=shared_dir, namespace="app:")),
            ("database", DatabaseCacheBackend(database_url=sqlite_url, namespace="app:")),
        ]
    )
    yield cache
    await cache.close()


class TestLayeredScenarios:
    """Scenarios exercising cascade and broadcast across storage kinds."""

    async def test_database_hit_populates_upper_layers(self, stack: LayeredCache) -> None:
        """Test that a value only in the database is copied into shared and memory."""
        await stack.layer("database").set("u1", "Bob")

        assert await stack.get("u1") == "Bob"

        assert await stack.layer("shared").get("u1") == "Bob"
        assert await stack.layer("memory").get("u1") == "Bob"

    async def test_survives_memory_loss(self, stack: LayeredCache, shared_dir: str, sqlite_url: str) -> None:
        """Test that a fresh process-local layer is refilled from the durable layers."""
        await stack.set("config", {"theme": "dark", "flags": [1, 2]})

        restarted = LayeredCache(
            [
                ("memory", MemoryCacheBackend(namespace="app:")),
                ("shared", SharedCacheBackend(directory=shared_dir, namespace="app:")),
                ("database", DatabaseCacheBackend(database_url=sqlite_url, namespace="app:")),
            ]
        )
        try:
            assert await restarted.layer("memory").has("config") is False
            assert await restarted.get("config") == {"theme": "dark", "flags": [1, 2]}
            assert await restarted.layer("memory").has("config") is True
        finally:
            await restarted.close()

    async def test_types_across_layers(self, stack: LayeredCache) -> None:
        """Test that values needing pickle survive the database round trip."""
        await stack.layer("database").set("tuple", (1, "two"))
        await stack.layer("database").set("numeric", "42")

        assert await stack.get("tuple") == (1, "two")
        assert await stack.get("numeric") == "42"

    async def test_ttl_expires_everywhere(self, stack: LayeredCache) -> None:
        """Test that a broadcast TTL expires the entry in every layer."""
        await stack.set("session", "abc", ttl=0.3)
        assert await stack.has("session") is True

        await asyncio.sleep(0.5)

        assert await stack.get("session") is None
        for name in stack.layer_names():
            assert await stack.layer(name).has("session") is False

    async def test_negative_ttl_persists(self, stack: LayeredCache) -> None:
        """Test that ttl=-10 stores a non-expiring entry in every layer."""
        assert await stack.set("k", "v", ttl=-10) is True

        for name in stack.layer_names():
            lookup = await stack.layer(name).lookup("k")
            assert lookup.found is True
            assert lookup.expires_at is None

    async def test_delete_and_clear(self, stack: LayeredCache) -> None:
        """Test broadcast delete and clear across all storage kinds."""
        await stack.set_many({"a": 1, "b": 2, "c": 3})

        assert await stack.delete("a") is True
        assert await stack.get_many(["a", "b"]) == {"a": None, "b": 2}

        assert await stack.clear() is True
        for name in stack.layer_names():
            assert await stack.layer(name).has("b") is False
            assert await stack.layer(name).has("c") is False

    async def test_stats(self, stack: LayeredCache) -> None:
        """Test aggregated statistics from real backends."""
        await stack.set("key", "value")
        await stack.get("key")
        await stack.get("missing")

        stats = await stack.get_stats()

        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert [layer["backend"] for layer in stats["layers"]] == ["memory", "shared", "database"]
        assert stats["layers"][2]["rows"] == 1
