"""
layercache - Cache Factory

Canonical factory for creating layered caches from configuration.

Key points:
- Layers come from CACHE_LAYERS (memory by default; redis appended when
  REDIS_URL is set and CACHE_LAYERS is not)
- Optional backends are imported lazily, so redis, diskcache and SQLAlchemy
  are only needed when a layer uses them
- Instances are kept in a named registry; close_all_caches() on shutdown

Examples:
    from layercache.cache.factory import create_cache, get_cache

    # Uses env-configured layers
    cache = create_cache()

    # Or explicitly supply a LayerCacheConfig (e.g., for tests)
    from layercache.config import BackendType, LayerCacheConfig, LayerConfig
    cfg = LayerCacheConfig(
        layers=[LayerConfig(backend=BackendType.MEMORY), LayerConfig(backend=BackendType.SHARED)]
    )
    cache = create_cache(cfg, name="test")
"""

from __future__ import annotations

import logging

from ..config import BackendType, LayerCacheConfig, LayerConfig, get_config
from ..errors import ConfigurationError
from .backends.memory import MemoryCacheBackend
from .interface import CacheInterface
from .layered import LayeredCache

logger = logging.getLogger(__name__)

# Global cache instances registry
_cache_instances: dict[str, LayeredCache] = {}


def _create_redis_backend(layer: LayerConfig, namespace: str) -> CacheInterface:
    """Internal helper to construct a redis backend with lazy import."""
    if not layer.redis_url:
        raise ConfigurationError(
            "REDIS_URL must be set for a redis cache layer",
            details={"env": "REDIS_URL", "backend": "redis"},
        )

    try:
        from .backends.redis import RedisCacheBackend
    except ImportError as e:
        logger.error(
            "Redis layer configured but redis client is not installed",
            extra={"package": "redis>=5.0.0", "error": str(e)},
        )
        raise ConfigurationError(
            "Redis layer configured but redis client is unavailable. Install with: pip install 'redis>=5.0.0'",
            details={"package": "redis>=5.0.0", "error": str(e), "backend": "redis"},
        ) from e

    return RedisCacheBackend(
        redis_url=layer.redis_url,
        namespace=namespace,
        max_connections=layer.redis_max_connections,
        socket_timeout=layer.redis_socket_timeout,
    )


def _create_shared_backend(layer: LayerConfig, namespace: str) -> CacheInterface:
    """Internal helper to construct a diskcache-backed shared backend."""
    try:
        from .backends.shared import SharedCacheBackend
    except ImportError as e:
        raise ConfigurationError(
            "Shared layer configured but diskcache is unavailable. Install with: pip install 'diskcache>=5.6'",
            details={"package": "diskcache>=5.6", "error": str(e), "backend": "shared"},
        ) from e

    return SharedCacheBackend(directory=layer.shared_directory, namespace=namespace)


def _create_database_backend(layer: LayerConfig, namespace: str) -> CacheInterface:
    """Internal helper to construct a SQL table backend."""
    try:
        from .backends.database import DatabaseCacheBackend
    except ImportError as e:
        raise ConfigurationError(
            "Database layer configured but SQLAlchemy is unavailable. Install with: pip install 'sqlalchemy[asyncio]'",
            details={"package": "sqlalchemy", "error": str(e), "backend": "database"},
        ) from e

    return DatabaseCacheBackend(
        database_url=layer.database_url,
        namespace=namespace,
        table=layer.database_table,
        key_column=layer.database_key_column,
        value_column=layer.database_value_column,
        expires_column=layer.database_expires_column,
    )


def create_backend(layer: LayerConfig, namespace: str = "") -> CacheInterface:
    """
    Create a single cache backend from its layer configuration.

    Args:
        layer: Layer configuration
        namespace: Namespace used when the layer has none of its own

    Raises:
        ConfigurationError: If the backend is unknown or unavailable
    """
    if layer.namespace is not None:
        namespace = layer.namespace

    backend = layer.backend
    if backend == BackendType.MEMORY:
        return MemoryCacheBackend(namespace=namespace)
    if backend == BackendType.SHARED:
        return _create_shared_backend(layer, namespace)
    if backend == BackendType.REDIS:
        return _create_redis_backend(layer, namespace)
    if backend == BackendType.DATABASE:
        return _create_database_backend(layer, namespace)

    raise ConfigurationError(
        f"Unknown cache backend: {backend}",
        details={"backend": str(backend), "supported": [b.value for b in BackendType]},
    )


def create_cache(
    config: LayerCacheConfig | None = None,
    name: str = "default",
) -> LayeredCache:
    """
    Create a layered cache based on configuration.

    Args:
        config: Cache configuration (uses global config if not provided)
        name: Cache instance name (for multiple cache instances)

    Returns:
        Configured layered cache

    Raises:
        ConfigurationError: If cache configuration is invalid or a backend unavailable
    """
    # Return existing instance if already created
    if name in _cache_instances:
        logger.debug("Returning existing cache instance: %s", name)
        return _cache_instances[name]

    # Use global config if not provided
    if config is None:
        config = get_config()

    layer_names = [layer.layer_name for layer in config.layers]
    logger.info(
        "Creating cache instance '%s' with layers: %s",
        name,
        ", ".join(layer_names),
        extra={"cache_name": name, "layers": layer_names},
    )

    try:
        layers = [(layer.layer_name, create_backend(layer, config.namespace)) for layer in config.layers]
        cache = LayeredCache(layers, populate_ttl=config.populate_ttl)
    except ConfigurationError:
        # Re-raise configuration errors as-is
        raise
    except Exception as e:
        logger.error(
            "Unexpected error creating cache instance '%s': %s",
            name,
            e,
            extra={"cache_name": name, "layers": layer_names, "error": str(e)},
            exc_info=True,
        )
        raise ConfigurationError(
            f"Failed to create cache instance '{name}': {e}",
            details={"cache_name": name, "layers": layer_names, "error": str(e)},
        ) from e

    # Store instance in registry
    _cache_instances[name] = cache

    logger.info("Cache instance '%s' created successfully", name, extra={"cache_name": name})
    return cache


def get_cache(name: str = "default") -> LayeredCache:
    """
    Get an existing cache instance by name.

    If the instance doesn't exist, it will be created automatically
    using the global configuration.
    """
    if name not in _cache_instances:
        logger.debug("Cache instance '%s' not found, creating new instance", name)
        return create_cache(name=name)

    return _cache_instances[name]


async def close_all_caches() -> None:
    """
    Close all cache instances and release resources.

    Should be called during graceful shutdown.
    """
    if not _cache_instances:
        logger.debug("No cache instances to close")
        return

    logger.info("Closing %d cache instance(s)...", len(_cache_instances))

    for name, cache in list(_cache_instances.items()):
        try:
            await cache.close()
            logger.info("Closed cache instance: %s", name)
        except Exception as e:
            logger.error(
                "Error closing cache instance '%s': %s",
                name,
                e,
                extra={"cache_name": name, "error": str(e)},
                exc_info=True,
            )

    _cache_instances.clear()
    logger.info("All cache instances closed")


def reset_cache_factory() -> None:
    """
    Reset the cache factory by clearing all instance references.

    Does NOT call close() on instances - use close_all_caches() for proper cleanup.
    Only use this in testing contexts.
    """
    count = len(_cache_instances)
    _cache_instances.clear()
    logger.debug("Reset cache factory, cleared %d instance reference(s)", count)


def list_cache_instances() -> list[str]:
    """List all registered cache instance names."""
    return list(_cache_instances.keys())
