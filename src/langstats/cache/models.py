"""Cache-related data models."""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, NamedTuple

from pydantic import BaseModel, Field

from ..utils.errors import InvalidPatternError

# Type alias for cache keys
CacheKey = str

ENTRY_VERSION = "1.0"


class CacheKind(StrEnum):
    """Kind of payload stored in an entry."""

    LANGUAGE_STATS = "language-stats"
    GITHUB_STATS = "github-stats"
    REPO_DATA = "repo-data"


class CacheSource(StrEnum):
    """Where a result was served from."""

    MEMORY = "memory"
    DURABLE = "durable"
    FRESH = "fresh"


@dataclass(slots=True)
class CacheMetadata:
    """Descriptive metadata attached to an entry."""

    subject_id: str | None = None
    kind: CacheKind = CacheKind.GITHUB_STATS
    version: str = ENTRY_VERSION


@dataclass(slots=True)
class CacheEntry:
    """Durable cache entry with metadata.

    Exactly one of ``data`` (raw JSON bytes) and ``compressed_data`` is set,
    matching ``is_compressed``.
    """

    key: CacheKey
    created_at: datetime
    expires_at: datetime
    size_bytes: int
    data: bytes | None = None
    compressed_data: bytes | None = None
    is_compressed: bool = False
    compression_ratio: float = 1.0
    access_count: int = 0
    last_accessed_at: datetime | None = None
    tags: frozenset[str] = field(default_factory=frozenset)
    metadata: CacheMetadata = field(default_factory=CacheMetadata)

    def __post_init__(self) -> None:
        if self.expires_at <= self.created_at:
            raise ValueError("Cache entry must expire after it is created")
        if self.is_compressed != (self.compressed_data is not None):
            raise ValueError("compressed_data must be present iff is_compressed")
        if self.is_compressed == (self.data is not None):
            raise ValueError("data must be present iff not is_compressed")
        self.tags = frozenset(self.tags)

    def is_expired(self, now: datetime) -> bool:
        """Check if entry is expired at ``now``."""
        return now >= self.expires_at

    def access(self, now: datetime) -> None:
        """Mark entry as accessed."""
        self.access_count += 1
        self.last_accessed_at = now


@dataclass(frozen=True, slots=True)
class SetOptions:
    """Per-call options for ``CacheTier.set``."""

    ttl_seconds: float | None = None
    tags: Iterable[str] = ()
    subject_id: str | None = None
    kind: CacheKind = CacheKind.GITHUB_STATS
    # None compresses above the threshold, False never compresses
    compress: bool | None = None


def compile_key_pattern(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    """Compile a key pattern for case-insensitive searching.

    Raises:
        InvalidPatternError: If ``pattern`` is not a valid regular expression
    """
    if isinstance(pattern, re.Pattern):
        source, flags = pattern.pattern, pattern.flags
    else:
        source, flags = pattern, 0

    try:
        return re.compile(source, flags | re.IGNORECASE)
    except re.error as e:
        raise InvalidPatternError(source, str(e)) from e


@dataclass(frozen=True, slots=True)
class DeleteCriteria:
    """Selects durable entries to delete; all given criteria must match."""

    key: CacheKey | None = None
    pattern: re.Pattern[str] | None = None
    tag: str | None = None
    expired_before: datetime | None = None

    def matches(self, key: CacheKey, tags: Iterable[str], expires_at: datetime) -> bool:
        """Check an entry against every given criterion.

        ``pattern`` is searched within the key (see ``compile_key_pattern``).
        Empty criteria match everything.
        """
        if self.key is not None and key != self.key:
            return False
        if self.pattern is not None and not self.pattern.search(key):
            return False
        if self.tag is not None and self.tag not in tags:
            return False
        if self.expired_before is not None and expires_at > self.expired_before:
            return False
        return True


@dataclass(frozen=True, slots=True)
class StoreSummary:
    """Aggregate figures reported by a durable store."""

    entry_count: int = 0
    total_size_bytes: int = 0
    average_compression_ratio: float = 1.0
    total_access_count: int = 0


class CacheResult(NamedTuple):
    """Outcome of a cache lookup."""

    value: Any
    found: bool
    source: CacheSource | None = None


class CacheStats(BaseModel):
    """Cache statistics."""

    backend: str = Field(description="Durable backend name")
    degraded: bool = Field(default=False, description="Running memory-only")
    item_count: int = Field(description="Number of items in the durable tier")
    memory_item_count: int = Field(default=0, description="Number of items in memory")
    hit_count: int = Field(default=0, description="Cache hits")
    miss_count: int = Field(default=0, description="Cache misses")
    memory_hit_count: int = Field(default=0)
    durable_hit_count: int = Field(default=0)
    set_count: int = Field(default=0, description="Successful sets")
    stored_bytes: int = Field(default=0, description="Cumulative bytes set")
    storage_usage_bytes: int = Field(default=0, description="Bytes currently stored")
    average_compression_ratio: float = Field(default=1.0)
    total_access_count: int = Field(default=0)

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate."""
        total_requests = self.hit_count + self.miss_count
        if total_requests == 0:
            return 0.0
        return self.hit_count / total_requests

    @property
    def miss_rate(self) -> float:
        """Calculate miss rate."""
        return 1.0 - self.hit_rate

    @property
    def compression_savings(self) -> float:
        """Percentage of bytes saved by compression."""
        return (1.0 - self.average_compression_ratio) * 100
