"""
layercache - Configuration Loader

Loads and validates configuration from environment variables and .env files.
Provides a singleton configuration instance for the runtime.

Environment variables:
    CACHE_LAYERS            comma-separated backends, fastest first
                            (default: memory, plus redis when REDIS_URL is set)
    CACHE_NAMESPACE         default key namespace
    CACHE_POPULATE_TTL      forward remaining TTL on write-through (true/false)
    REDIS_URL, REDIS_MAX_CONNECTIONS, REDIS_SOCKET_TIMEOUT
    CACHE_SHARED_DIRECTORY
    CACHE_DATABASE_URL, CACHE_DATABASE_TABLE
    ENVIRONMENT, LOG_LEVEL, LOG_FORMAT
"""

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from .schemas import LayerCacheConfig

logger = logging.getLogger(__name__)

_config_instance: LayerCacheConfig | None = None


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _layers_from_env() -> list[dict[str, Any]]:
    """Build layer dictionaries from CACHE_LAYERS and backend settings."""
    redis_url = os.getenv("REDIS_URL")

    # Auto-detect: memory, then Redis if REDIS_URL is set
    default_layers = "memory,redis" if redis_url else "memory"
    backends = [b.strip().lower() for b in os.getenv("CACHE_LAYERS", default_layers).split(",") if b.strip()]

    layers: list[dict[str, Any]] = []
    for backend in backends:
        layer: dict[str, Any] = {"backend": backend}
        if backend == "redis":
            layer.update(
                {
                    "redis_url": redis_url,
                    "redis_max_connections": int(os.getenv("REDIS_MAX_CONNECTIONS", "10")),
                    "redis_socket_timeout": int(os.getenv("REDIS_SOCKET_TIMEOUT", "5")),
                }
            )
        elif backend == "shared":
            layer["shared_directory"] = os.getenv("CACHE_SHARED_DIRECTORY")
        elif backend == "database":
            layer.update(
                {
                    "database_url": os.getenv("CACHE_DATABASE_URL", "sqlite+aiosqlite:///./data/cache.db"),
                    "database_table": os.getenv("CACHE_DATABASE_TABLE", "cache"),
                }
            )
        layers.append(layer)

    return layers


def load_config(
    env_file: str | None = None,
    reload: bool = False,
) -> LayerCacheConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Path to .env file (default: .env in working directory)
        reload: Force reload even if config already loaded

    Returns:
        Validated LayerCacheConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    # Load .env file if exists
    env_path = Path(env_file) if env_file else Path.cwd() / ".env"

    if env_path.exists():
        logger.info(f"Loading environment from {env_path}")
        try:
            load_dotenv(env_path, override=True)
        except Exception as e:
            logger.error(
                f"Failed to load .env file from {env_path}: {e}",
                extra={"path": str(env_path), "error": str(e)},
                exc_info=True,
            )
            raise ConfigurationError(
                f"Failed to load environment file: {e}",
                details={"path": str(env_path), "error": str(e)},
            ) from e
    else:
        logger.debug("No .env file found, using environment variables only")

    try:
        config_dict = {
            "environment": os.getenv("ENVIRONMENT", "development"),
            "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
            "log_format": os.getenv("LOG_FORMAT", "json").lower(),
            "namespace": os.getenv("CACHE_NAMESPACE", ""),
            "populate_ttl": _env_bool("CACHE_POPULATE_TTL"),
            "layers": _layers_from_env(),
        }
        _config_instance = LayerCacheConfig(**config_dict)
    except ValidationError as e:
        logger.error(
            f"Configuration validation failed: {e}",
            extra={"validation_errors": e.errors()},
            exc_info=True,
        )
        raise ConfigurationError(
            "Configuration validation failed. Check your environment variables and configuration.",
            details={"validation_errors": e.errors()},
        ) from e
    except ValueError as e:
        # Non-numeric values in numeric environment variables
        logger.error(f"Invalid configuration value: {e}", extra={"error": str(e)}, exc_info=True)
        raise ConfigurationError(f"Invalid configuration value: {e}", details={"error": str(e)}) from e

    logger.info(
        f"Configuration loaded successfully (environment: {_config_instance.environment})",
        extra={
            "environment": _config_instance.environment,
            "layers": [layer.layer_name for layer in _config_instance.layers],
        },
    )
    return _config_instance


def get_config() -> LayerCacheConfig:
    """
    Get the current configuration instance.

    Loads the configuration on first access.
    """
    if _config_instance is None:
        return load_config()

    return _config_instance


def reload_config(env_file: str | None = None) -> LayerCacheConfig:
    """
    Force reload configuration.

    Args:
        env_file: Optional path to .env file

    Returns:
        Reloaded LayerCacheConfig instance
    """
    return load_config(env_file=env_file, reload=True)
