"""
layercache - Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
Async tests run under pytest-asyncio in auto mode.
"""

import os
import socket
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"


# Redis availability checker
def is_redis_available() -> bool:
    """Check if Redis server is available for testing."""
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("localhost", 6379))
        sock.close()
        return result == 0
    except OSError:
        return False


@pytest.fixture
def test_redis_url() -> str:
    """Get Redis URL for testing (database 15 for isolation); skips without a server."""
    if not is_redis_available():
        pytest.skip("Redis not available")
    return os.environ.get("TEST_REDIS_URL", "redis://localhost:6379/15")


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    """Async SQLite URL in a per-test temporary directory."""
    return f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}"


@pytest.fixture
def shared_dir(tmp_path: Path) -> str:
    """Per-test diskcache directory."""
    directory = tmp_path / "shared"
    directory.mkdir()
    return str(directory)


@pytest.fixture
def mock_env_memory(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for a single memory layer."""
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.setenv("CACHE_LAYERS", "memory")
    monkeypatch.setenv("CACHE_NAMESPACE", "test:")


@pytest.fixture
def sample_cache_data() -> dict[str, Any]:
    """Sample data for cache testing."""
    return {
        "simple_string": "hello",
        "unicode_string": "Hello 世界",
        "empty_string": "",
        "numeric_string": "42",
        "simple_int": 42,
        "simple_float": 3.14159,
        "simple_true": True,
        "simple_false": False,
        "simple_none": None,
        "complex_dict": {"a": 1, "b": [True, False, None, "x"]},
        "complex_list": [
            {"id": 1, "name": "Alice"},
            {"id": 2, "name": "Bob"},
        ],
    }


@pytest.fixture(autouse=True)
def reset_state() -> Generator[None, None, None]:
    """Reset cache factory and loaded config after each test to prevent state leakage."""
    yield
    from layercache.cache.factory import reset_cache_factory
    from layercache.config import loader

    reset_cache_factory()
    loader._config_instance = None
