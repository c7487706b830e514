"""Durable cache store protocol."""

from datetime import datetime
from typing import Protocol

from .models import CacheEntry, CacheKey, DeleteCriteria, StoreSummary


class DurableStore(Protocol):
    """Key-value-with-metadata store backing the durable cache tier.

    Implementations raise ``CacheUnavailableError`` when the store cannot be
    reached.
    """

    name: str

    async def connect(self) -> None:
        """Establish the connection and create any schema."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...

    async def get(self, key: CacheKey) -> CacheEntry | None:
        """Return the entry for ``key`` regardless of expiry."""
        ...

    async def put(self, entry: CacheEntry) -> None:
        """Insert or replace an entry."""
        ...

    async def touch(self, key: CacheKey, accessed_at: datetime) -> None:
        """Increment access count and record the access time."""
        ...

    async def delete_many(self, criteria: DeleteCriteria) -> int:
        """Delete matching entries and return how many were removed."""
        ...

    async def count(self) -> int:
        """Number of stored entries."""
        ...

    async def summary(self) -> StoreSummary:
        """Aggregate size, compression and access figures."""
        ...
