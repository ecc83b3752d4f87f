"""
layercache - Configuration Schemas

Defines typed configuration models using Pydantic for validation and type safety.
All configuration must be defined here and validated at startup.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class BackendType(str, Enum):
    """Supported cache layer backends."""

    MEMORY = "memory"
    SHARED = "shared"  # Requires diskcache
    REDIS = "redis"  # Requires redis
    DATABASE = "database"  # Requires sqlalchemy + async driver


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    TEXT = "text"


class LayerConfig(BaseModel):
    """Configuration of a single cache layer."""

    backend: BackendType = Field(description="Backend used by this layer")
    name: str | None = Field(default=None, description="Layer name for direct access (defaults to backend type)")
    namespace: str | None = Field(default=None, description="Key namespace/prefix (defaults to root namespace)")

    # Redis-specific settings (only used when backend=redis)
    redis_url: str | None = Field(default=None, description="Redis connection URL")
    redis_max_connections: int = Field(default=10, ge=1, description="Redis connection pool size")
    redis_socket_timeout: int = Field(default=5, ge=1, description="Redis socket timeout in seconds")

    # Shared-specific settings (only used when backend=shared)
    shared_directory: str | None = Field(default=None, description="diskcache directory (temporary when unset)")

    # Database-specific settings (only used when backend=database)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/cache.db",
        description="Async SQLAlchemy database URL",
    )
    database_table: str = Field(default="cache", min_length=1, description="Cache table name")
    database_key_column: str = Field(default="cache_key", min_length=1, description="Key column name")
    database_value_column: str = Field(default="cache_value", min_length=1, description="Value column name")
    database_expires_column: str = Field(default="expires_at", min_length=1, description="Expiry column name")

    model_config = ConfigDict(use_enum_values=True)

    @model_validator(mode="after")
    def validate_backend_settings(self) -> "LayerConfig":
        """Ensure redis_url is provided when backend is redis."""
        if self.backend == BackendType.REDIS and not self.redis_url:
            raise ValueError("redis_url is required when layer backend is 'redis'")
        return self

    @property
    def layer_name(self) -> str:
        return self.name or getattr(self.backend, "value", self.backend)


class LayerCacheConfig(BaseModel):
    """Root configuration for the layered cache."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.JSON, description="Log output format")

    namespace: str = Field(default="", description="Default key namespace for layers without their own")
    populate_ttl: bool = Field(
        default=False,
        description="Forward remaining TTL when populating faster layers (False = populated entries never expire)",
    )
    layers: list[LayerConfig] = Field(
        default_factory=lambda: [LayerConfig(backend=BackendType.MEMORY)],
        description="Cache layers, fastest first",
    )

    @field_validator("layers")
    @classmethod
    def validate_layers(cls, v: list[LayerConfig], info: Any) -> list[LayerConfig]:
        """Require at least one layer and unique layer names."""
        if not v:
            raise ValueError("At least one cache layer required")

        names = [layer.layer_name for layer in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate cache layer names: {', '.join(duplicates)}")
        return v

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)
