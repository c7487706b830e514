"""SQLAlchemy-backed durable cache store."""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
    delete,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from ..utils.errors import CacheUnavailableError
from ..utils.logging import get_logger
from .models import CacheEntry, CacheKey, CacheKind, CacheMetadata, DeleteCriteria, StoreSummary

logger = get_logger("cache.sql")

# Keeps IN (...) lists below SQLite's bound parameter limit
DELETE_CHUNK_SIZE = 500

metadata = MetaData()

cache_entries = Table(
    "cache_entries",
    metadata,
    Column("key", String(512), primary_key=True),
    Column("data", LargeBinary, nullable=True),
    Column("compressed_data", LargeBinary, nullable=True),
    Column("is_compressed", Boolean, nullable=False, default=False),
    # Unix timestamps
    Column("created_at", Float, nullable=False),
    Column("expires_at", Float, nullable=False, index=True),
    Column("last_accessed_at", Float, nullable=True, index=True),
    Column("access_count", Integer, nullable=False, default=0),
    Column("size_bytes", Integer, nullable=False),
    Column("compression_ratio", Float, nullable=False, default=1.0),
    Column("tags", Text, nullable=False, default="[]"),
    Column("subject_id", String(255), nullable=True, index=True),
    Column("kind", String(64), nullable=False),
    Column("version", String(16), nullable=False),
)


def _to_timestamp(value: datetime | None) -> float | None:
    return value.timestamp() if value is not None else None


def _from_timestamp(value: float | None) -> datetime | None:
    return datetime.fromtimestamp(value, tz=UTC) if value is not None else None


def _entry_to_row(entry: CacheEntry) -> dict[str, Any]:
    return {
        "key": entry.key,
        "data": entry.data,
        "compressed_data": entry.compressed_data,
        "is_compressed": entry.is_compressed,
        "created_at": _to_timestamp(entry.created_at),
        "expires_at": _to_timestamp(entry.expires_at),
        "last_accessed_at": _to_timestamp(entry.last_accessed_at),
        "access_count": entry.access_count,
        "size_bytes": entry.size_bytes,
        "compression_ratio": entry.compression_ratio,
        "tags": json.dumps(sorted(entry.tags)),
        "subject_id": entry.metadata.subject_id,
        "kind": entry.metadata.kind.value,
        "version": entry.metadata.version,
    }


def _row_to_entry(row: Any) -> CacheEntry:
    return CacheEntry(
        key=row["key"],
        data=row["data"],
        compressed_data=row["compressed_data"],
        is_compressed=bool(row["is_compressed"]),
        created_at=_from_timestamp(row["created_at"]),  # type: ignore[arg-type]
        expires_at=_from_timestamp(row["expires_at"]),  # type: ignore[arg-type]
        last_accessed_at=_from_timestamp(row["last_accessed_at"]),
        access_count=row["access_count"],
        size_bytes=row["size_bytes"],
        compression_ratio=row["compression_ratio"],
        tags=frozenset(json.loads(row["tags"] or "[]")),
        metadata=CacheMetadata(
            subject_id=row["subject_id"],
            kind=CacheKind(row["kind"]),
            version=row["version"],
        ),
    )


class SqlStore:
    """Durable store on any SQLAlchemy async database (SQLite by default)."""

    name = "sql"

    def __init__(self, url: str, pool_size: int = 10) -> None:
        self.url = url
        self.pool_size = pool_size
        self._engine: AsyncEngine | None = None

    async def connect(self) -> None:
        """Create the engine and schema.

        Raises:
            CacheUnavailableError: If the database cannot be reached
        """
        if self._engine is not None:
            return

        try:
            url = make_url(self.url)
            options: dict[str, Any] = {"pool_pre_ping": True}
            if url.get_backend_name() != "sqlite":
                options["pool_size"] = self.pool_size
            engine = create_async_engine(url, **options)
        except (SQLAlchemyError, ImportError) as e:
            raise CacheUnavailableError(f"Invalid cache database URL: {e}") from e

        try:
            async with engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            await engine.dispose()
            raise CacheUnavailableError(f"Cache database unreachable: {e}") from e

        self._engine = engine
        logger.info("SQL cache store connected", backend=url.get_backend_name())

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("SQL cache store closed")

    @asynccontextmanager
    async def _connection(self, write: bool = False) -> AsyncIterator[AsyncConnection]:
        """Yield a connection, in a transaction when ``write`` is set."""
        if self._engine is None:
            raise CacheUnavailableError("Cache database is not connected")

        try:
            if write:
                async with self._engine.begin() as conn:
                    yield conn
            else:
                async with self._engine.connect() as conn:
                    yield conn
        except SQLAlchemyError as e:
            raise CacheUnavailableError(f"Cache database error: {e}") from e

    async def get(self, key: CacheKey) -> CacheEntry | None:
        async with self._connection() as conn:
            result = await conn.execute(
                select(cache_entries).where(cache_entries.c.key == key)
            )
            row = result.mappings().first()
        return _row_to_entry(row) if row else None

    async def put(self, entry: CacheEntry) -> None:
        async with self._connection(write=True) as conn:
            await conn.execute(delete(cache_entries).where(cache_entries.c.key == entry.key))
            await conn.execute(insert(cache_entries).values(**_entry_to_row(entry)))

    async def touch(self, key: CacheKey, accessed_at: datetime) -> None:
        async with self._connection(write=True) as conn:
            await conn.execute(
                update(cache_entries)
                .where(cache_entries.c.key == key)
                .values(
                    access_count=cache_entries.c.access_count + 1,
                    last_accessed_at=_to_timestamp(accessed_at),
                )
            )

    async def delete_many(self, criteria: DeleteCriteria) -> int:
        async with self._connection(write=True) as conn:
            if criteria.pattern is None and criteria.tag is None:
                statement = delete(cache_entries)
                if criteria.key is not None:
                    statement = statement.where(cache_entries.c.key == criteria.key)
                if criteria.expired_before is not None:
                    statement = statement.where(
                        cache_entries.c.expires_at <= _to_timestamp(criteria.expired_before)
                    )
                result = await conn.execute(statement)
                return max(result.rowcount, 0)

            # Regex and tag membership are evaluated in Python
            rows = await conn.execute(
                select(cache_entries.c.key, cache_entries.c.tags, cache_entries.c.expires_at)
            )
            keys = [
                row.key
                for row in rows
                if criteria.matches(
                    row.key,
                    json.loads(row.tags or "[]"),
                    _from_timestamp(row.expires_at),  # type: ignore[arg-type]
                )
            ]

            removed = 0
            for start in range(0, len(keys), DELETE_CHUNK_SIZE):
                chunk = keys[start : start + DELETE_CHUNK_SIZE]
                result = await conn.execute(
                    delete(cache_entries).where(cache_entries.c.key.in_(chunk))
                )
                removed += max(result.rowcount, 0)
            return removed

    async def count(self) -> int:
        async with self._connection() as conn:
            result = await conn.execute(select(func.count()).select_from(cache_entries))
            return int(result.scalar_one())

    async def summary(self) -> StoreSummary:
        async with self._connection() as conn:
            result = await conn.execute(
                select(
                    func.count(),
                    func.coalesce(func.sum(cache_entries.c.size_bytes), 0),
                    func.avg(cache_entries.c.compression_ratio),
                    func.coalesce(func.sum(cache_entries.c.access_count), 0),
                ).select_from(cache_entries)
            )
            count, total_size, avg_ratio, total_access = result.one()

        return StoreSummary(
            entry_count=int(count),
            total_size_bytes=int(total_size),
            average_compression_ratio=float(avg_ratio) if avg_ratio is not None else 1.0,
            total_access_count=int(total_access),
        )
