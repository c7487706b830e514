"""In-process cache storage."""

import dataclasses
import re
import threading
from dataclasses import dataclass
from datetime import datetime

from ..utils.logging import get_logger
from .models import CacheEntry, CacheKey, DeleteCriteria, StoreSummary

logger = get_logger("cache.memory")


@dataclass(slots=True)
class _MemoryItem:
    payload: str
    expires_at: datetime
    tags: frozenset[str]


class MemoryCache:
    """Lock-guarded short-lived key/value map used as the first cache tier.

    Payloads are stored as serialized JSON text so callers never share mutable
    state with the cache.
    """

    def __init__(self) -> None:
        self._items: dict[CacheKey, _MemoryItem] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def get(self, key: CacheKey, now: datetime) -> str | None:
        """Return the payload for ``key`` or None if missing or expired."""
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            if now >= item.expires_at:
                del self._items[key]
                return None
            return item.payload

    def set(
        self,
        key: CacheKey,
        payload: str,
        expires_at: datetime,
        tags: frozenset[str] = frozenset(),
    ) -> None:
        with self._lock:
            self._items[key] = _MemoryItem(payload, expires_at, frozenset(tags))

    def delete(self, key: CacheKey) -> bool:
        with self._lock:
            return self._items.pop(key, None) is not None

    def delete_matching(
        self, pattern: re.Pattern[str] | None = None, tag: str | None = None
    ) -> int:
        """Delete entries whose key matches ``pattern`` and/or carry ``tag``."""
        with self._lock:
            doomed = [
                key
                for key, item in self._items.items()
                if (pattern is None or pattern.search(key))
                and (tag is None or tag in item.tags)
            ]
            for key in doomed:
                del self._items[key]

        return len(doomed)

    def purge_expired(self, now: datetime) -> int:
        """Delete every expired entry."""
        with self._lock:
            doomed = [key for key, item in self._items.items() if now >= item.expires_at]
            for key in doomed:
                del self._items[key]
        return len(doomed)

    def clear(self) -> int:
        with self._lock:
            count = len(self._items)
            self._items.clear()
        return count


class MemoryStore:
    """Durable-store implementation kept in process memory.

    Backs the ``memory`` cache backend for single-process deployments and
    tests; contents do not survive a restart.
    """

    name = "memory"

    def __init__(self) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}

    async def connect(self) -> None:
        logger.debug("Memory store ready")

    async def close(self) -> None:
        self._entries.clear()

    async def get(self, key: CacheKey) -> CacheEntry | None:
        entry = self._entries.get(key)
        return dataclasses.replace(entry) if entry else None

    async def put(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = dataclasses.replace(entry)

    async def touch(self, key: CacheKey, accessed_at: datetime) -> None:
        entry = self._entries.get(key)
        if entry:
            entry.access(accessed_at)

    async def delete_many(self, criteria: DeleteCriteria) -> int:
        doomed = [
            key
            for key, entry in self._entries.items()
            if criteria.matches(key, entry.tags, entry.expires_at)
        ]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    async def count(self) -> int:
        return len(self._entries)

    async def summary(self) -> StoreSummary:
        entries = list(self._entries.values())
        if not entries:
            return StoreSummary()

        return StoreSummary(
            entry_count=len(entries),
            total_size_bytes=sum(e.size_bytes for e in entries),
            average_compression_ratio=sum(e.compression_ratio for e in entries) / len(entries),
            total_access_count=sum(e.access_count for e in entries),
        )
