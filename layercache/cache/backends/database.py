"""
layercache - Database Cache Backend

Durable cache layer stored in a relational table through SQLAlchemy's async
engine (SQLite via aiosqlite by default; any async driver works).

Table layout (all names configurable):
    cache_key    VARCHAR(255) primary key   namespace + sha256(key)
    cache_value  TEXT                        tagged codec payload
    expires_at   FLOAT NULL                  epoch seconds, NULL = never

Expired rows are deleted lazily on read; clean_expired() removes them in bulk.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, ClassVar

from sqlalchemy import Column, Float, MetaData, String, Table, Text, delete, func, insert, select
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ..codec import decode, encode
from ..keys import DIGEST_LENGTH
from ..ttl import is_expired
from .base import BaseCacheBackend, Entry

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./data/cache.db"


class DatabaseCacheBackend(BaseCacheBackend):
    """
    SQL-table cache backend.

    Provides:
    - Automatic, idempotent schema creation on first use
    - Upserts as delete + insert in one transaction (portable across dialects)
    - Namespace-scoped clear via a prefix match on the key column
    """

    LAYER_NAME: ClassVar[str] = "database"

    def __init__(
        self,
        database_url: str | None = None,
        namespace: str | None = None,
        table: str = "cache",
        key_column: str = "cache_key",
        value_column: str = "cache_value",
        expires_column: str = "expires_at",
        engine: AsyncEngine | None = None,
        create_schema: bool = True,
    ):
        """
        Initialize database cache backend.

        Args:
            database_url: Async SQLAlchemy URL (ignored when engine is given)
            namespace: Cache key namespace/prefix
            table: Cache table name
            key_column: Primary key column holding storage keys
            value_column: Column holding encoded values
            expires_column: Column holding absolute expiry (epoch seconds)
            engine: Existing engine to share; it is not disposed by close()
            create_schema: Create the table on first use if missing
        """
        super().__init__(namespace)

        self._owns_engine = engine is None
        if engine is None:
            engine = self._create_engine(database_url or DEFAULT_DATABASE_URL)
        self.engine: AsyncEngine = engine

        self._metadata = MetaData()
        self.table = Table(
            table,
            self._metadata,
            Column(key_column, String(255), primary_key=True),
            Column(value_column, Text, nullable=False),
            Column(expires_column, Float, nullable=True, index=True),
        )
        self._key_col = self.table.c[key_column]
        self._value_col = self.table.c[value_column]
        self._expires_col = self.table.c[expires_column]

        self._create_schema = create_schema
        self._initialized = False
        self._initialization_lock = asyncio.Lock()

    @staticmethod
    def _create_engine(database_url: str) -> AsyncEngine:
        url = make_url(database_url)
        connect_args: dict[str, Any] = {}

        if url.get_backend_name() == "sqlite":
            connect_args["check_same_thread"] = False  # Required for SQLite
            if url.database and url.database != ":memory:":
                # Create parent directory if needed
                Path(url.database).resolve().parent.mkdir(parents=True, exist_ok=True)

        return create_async_engine(url, echo=False, connect_args=connect_args)

    def get_connection(self) -> AsyncEngine:
        """Return the underlying engine (for sharing and health checks)."""
        return self.engine

    async def initialize(self) -> None:
        """
        Initialize database schema.

        Creates the cache table if it doesn't exist.
        Safe to call multiple times (idempotent).
        """
        async with self._initialization_lock:
            if self._initialized:
                return

            if self._create_schema:
                async with self.engine.begin() as conn:
                    await conn.run_sync(self._metadata.create_all)

            self._initialized = True

    # ------------ Storage primitives ------------

    async def _read(self, storage_key: str) -> Entry | None:
        await self.initialize()

        stmt = select(self._value_col, self._expires_col).where(self._key_col == storage_key)
        async with self.engine.connect() as conn:
            row = (await conn.execute(stmt)).first()

        if row is None:
            return None
        return decode(row[0]), row[1]

    async def _write(self, storage_key: str, value: Any, expires_at: float | None) -> bool:
        payload = encode(value)
        await self.initialize()

        async with self.engine.begin() as conn:
            await conn.execute(delete(self.table).where(self._key_col == storage_key))
            await conn.execute(
                insert(self.table).values(
                    {
                        self._key_col.name: storage_key,
                        self._value_col.name: payload,
                        self._expires_col.name: expires_at,
                    }
                )
            )
        return True

    async def _remove(self, storage_key: str) -> None:
        await self.initialize()

        async with self.engine.begin() as conn:
            await conn.execute(delete(self.table).where(self._key_col == storage_key))

    async def _contains(self, storage_key: str) -> bool:
        await self.initialize()

        stmt = select(self._expires_col).where(self._key_col == storage_key)
        async with self.engine.connect() as conn:
            row = (await conn.execute(stmt)).first()

        if row is None:
            return False
        if is_expired(row[0]):
            await self._remove(storage_key)
            return False
        return True

    async def _purge(self) -> None:
        await self.initialize()

        stmt = delete(self.table)
        if self.namespace:
            stmt = stmt.where(
                self._key_col.startswith(self.namespace, autoescape=True),
                func.length(self._key_col) == len(self.namespace) + DIGEST_LENGTH,
            )

        async with self.engine.begin() as conn:
            await conn.execute(stmt)

    async def _delete_expired(self) -> int:
        await self.initialize()

        stmt = delete(self.table).where(self._expires_col.is_not(None), self._expires_col <= time.time())
        async with self.engine.begin() as conn:
            result = await conn.execute(stmt)
        return result.rowcount or 0

    async def clean_expired(self) -> bool:
        """
        Remove all expired rows from the table.

        Covers every namespace sharing the table; should be called periodically.

        Returns:
            True on success, False on failure
        """
        result = await self._guard("clean_expired", None, self._delete_expired())
        if result.ok and result.value:
            logger.info("Removed %d expired rows from cache table '%s'", result.value, self.table.name)
        return result.ok

    # ------------ Lifecycle ------------

    async def _count_rows(self) -> int:
        await self.initialize()

        async with self.engine.connect() as conn:
            return (await conn.execute(select(func.count()).select_from(self.table))).scalar_one()

    async def _backend_stats(self) -> dict[str, Any]:
        result = await self._guard("count", None, self._count_rows())
        return {"table": self.table.name, "rows": result.value if result.ok else None}

    async def close(self) -> None:
        """Close database connections gracefully."""
        if self._owns_engine:
            await self.engine.dispose()
        self._initialized = False
        logger.debug("Database cache backend closed for table '%s'", self.table.name)
