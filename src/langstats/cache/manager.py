"""Two-tier cache: in-process memory in front of a durable store."""

import asyncio
import json
import re
import zlib
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from ..config.models import CacheConfig
from ..utils.errors import CacheUnavailableError, PayloadTooLargeError, retry_async
from ..utils.logging import get_logger
from .compression import Compressor, ZlibCompressor
from .memory import MemoryCache
from .models import (
    CacheEntry,
    CacheKey,
    CacheMetadata,
    CacheResult,
    CacheSource,
    CacheStats,
    DeleteCriteria,
    SetOptions,
    StoreSummary,
    compile_key_pattern,
)
from .protocol import DurableStore

logger = get_logger("cache.manager")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class _Counters:
    hits: int = 0
    misses: int = 0
    memory_hits: int = 0
    durable_hits: int = 0
    sets: int = 0
    stored_bytes: int = 0
    compression_ratio_total: float = 0.0


class CacheTier:
    """Memory tier checked first, durable tier behind it.

    The durable tier compresses large payloads, enforces a size ceiling and is
    swept for expired entries by a background task. If the durable store cannot
    be reached at startup the tier runs memory-only for the rest of the process
    lifetime. Store failures never propagate to callers.
    """

    def __init__(
        self,
        config: CacheConfig,
        store: DurableStore | None = None,
        compressor: Compressor | None = None,
        clock: Clock = utcnow,
    ) -> None:
        """Initialize the cache tier.

        Args:
            config: Cache configuration
            store: Durable store, or None to run memory-only
            compressor: Payload compressor for the durable tier
            clock: Source of the current UTC time
        """
        self.config = config
        self.store = store
        self.compressor: Compressor = compressor or ZlibCompressor()
        self.memory = MemoryCache()
        self._clock = clock
        self._counters = _Counters()
        self._durable_ready = False
        self._degraded = False
        self._stop_event: asyncio.Event | None = None
        self._sweep_task: asyncio.Task[None] | None = None

    @property
    def degraded(self) -> bool:
        """True once the tier has permanently fallen back to memory-only."""
        return self._degraded

    @property
    def durable_available(self) -> bool:
        return self._durable_ready and not self._degraded

    def _durable_store(self) -> DurableStore | None:
        """The durable store while it is connected and not degraded."""
        if self.store is None or not self.durable_available:
            return None
        return self.store

    @property
    def backend(self) -> str:
        return self.store.name if self.store is not None else "none"

    async def start(self) -> None:
        """Connect the durable store and start the sweep task."""
        if self._sweep_task is not None:
            return

        if self.store is None:
            self._degraded = True
            logger.warning("No durable cache store configured, running memory-only")
        else:
            try:
                await retry_async(
                    self.store.connect,
                    attempts=self.config.connect_retries,
                    delay=self.config.connect_backoff_seconds,
                    retry_on=(CacheUnavailableError,),
                    description="cache store connect",
                )
                self._durable_ready = True
            except CacheUnavailableError as e:
                self._degraded = True
                logger.warning(
                    "Durable cache unreachable, running memory-only",
                    backend=self.backend,
                    attempts=self.config.connect_retries,
                    error=str(e),
                )

        self._stop_event = asyncio.Event()
        self._sweep_task = asyncio.create_task(self._sweep_loop(self._stop_event))
        logger.info("Cache tier started", backend=self.backend, degraded=self._degraded)

    async def stop(self) -> None:
        """Stop the sweep task and close the durable store."""
        if self._stop_event is not None:
            self._stop_event.set()

        if self._sweep_task is not None:
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
            self._stop_event = None

        if self.store is not None and self._durable_ready:
            await self.store.close()
            self._durable_ready = False

        logger.info("Cache tier stopped")

    async def __aenter__(self) -> "CacheTier":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        """Async context manager exit."""
        await self.stop()

    async def _sweep_loop(self, stop_event: asyncio.Event) -> None:
        """Background sweep of expired entries until ``stop_event`` is set."""
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(
                    stop_event.wait(), timeout=self.config.sweep_interval_seconds
                )
                break
            except TimeoutError:
                pass

            try:
                cleaned_count = await self.cleanup_expired()
                if cleaned_count > 0:
                    logger.info("Background sweep completed", count=cleaned_count)
            except Exception as e:
                logger.error("Error in sweep loop", error=str(e))

    async def get(self, key: CacheKey) -> CacheResult:
        """Look up a value, memory tier first.

        Args:
            key: Cache key

        Returns:
            Cache result; ``found`` is False on a miss
        """
        now = self._clock()

        payload = self.memory.get(key, now)
        if payload is not None:
            self._counters.hits += 1
            self._counters.memory_hits += 1
            logger.debug("Cache hit", key=key, source=CacheSource.MEMORY.value)
            return CacheResult(json.loads(payload), True, CacheSource.MEMORY)

        store = self._durable_store()
        if store is not None:
            result = await self._get_durable(store, key, now)
            if result is not None:
                return result

        self._counters.misses += 1
        logger.debug("Cache miss", key=key)
        return CacheResult(None, False)

    async def _get_durable(
        self, store: DurableStore, key: CacheKey, now: datetime
    ) -> CacheResult | None:
        try:
            entry = await store.get(key)
            if entry is None:
                return None

            if entry.is_expired(now):
                # Not yet swept
                await store.delete_many(DeleteCriteria(key=key))
                logger.debug("Removed expired cache entry", key=key)
                return None

            text = self._decode(entry)
            value = json.loads(text)
            await store.touch(key, now)
        except CacheUnavailableError as e:
            logger.warning("Durable cache read failed", key=key, error=str(e))
            return None
        except (ValueError, zlib.error) as e:
            logger.warning("Unreadable cache entry", key=key, error=str(e))
            return None

        memory_expiry = min(
            now + timedelta(seconds=self.config.memory_ttl_seconds), entry.expires_at
        )
        self.memory.set(key, text, memory_expiry, entry.tags)

        self._counters.hits += 1
        self._counters.durable_hits += 1
        logger.debug("Cache hit", key=key, source=CacheSource.DURABLE.value)
        return CacheResult(value, True, CacheSource.DURABLE)

    def _decode(self, entry: CacheEntry) -> str:
        if entry.compressed_data is not None:
            return self.compressor.decompress(entry.compressed_data).decode("utf-8")
        if entry.data is None:
            raise ValueError(f"Cache entry {entry.key} has no payload")
        return entry.data.decode("utf-8")

    async def set(
        self, key: CacheKey, value: Any, options: SetOptions | None = None
    ) -> bool:
        """Store a JSON-serializable value in both tiers.

        Args:
            key: Cache key
            value: JSON-serializable value
            options: TTL, tags, metadata and compression options

        Returns:
            False if the payload exceeds the size ceiling and was not cached
        """
        options = options or SetOptions()
        now = self._clock()
        ttl_seconds = options.ttl_seconds or self.config.ttl_seconds

        text = json.dumps(value, separators=(",", ":"))
        raw = text.encode("utf-8")
        size = len(raw)

        if size > self.config.max_payload_bytes:
            error = PayloadTooLargeError(size, self.config.max_payload_bytes)
            logger.warning("Payload too large for cache", key=key, error=error.message)
            return False

        tags = frozenset(options.tags)
        expires_at = now + timedelta(seconds=ttl_seconds)
        memory_expiry = min(now + timedelta(seconds=self.config.memory_ttl_seconds), expires_at)
        self.memory.set(key, text, memory_expiry, tags)

        ratio = 1.0
        store = self._durable_store()
        if store is not None:
            compress = (
                options.compress is not False
                and size > self.config.compression_threshold_bytes
            )
            metadata = CacheMetadata(subject_id=options.subject_id, kind=options.kind)
            if compress:
                compressed = self.compressor.compress(raw)
                ratio = len(compressed) / size
                entry = CacheEntry(
                    key=key,
                    compressed_data=compressed,
                    is_compressed=True,
                    compression_ratio=ratio,
                    created_at=now,
                    expires_at=expires_at,
                    last_accessed_at=now,
                    size_bytes=size,
                    tags=tags,
                    metadata=metadata,
                )
            else:
                entry = CacheEntry(
                    key=key,
                    data=raw,
                    created_at=now,
                    expires_at=expires_at,
                    last_accessed_at=now,
                    size_bytes=size,
                    tags=tags,
                    metadata=metadata,
                )

            try:
                await store.put(entry)
            except CacheUnavailableError as e:
                logger.warning(
                    "Durable cache write failed, kept in memory only", key=key, error=str(e)
                )

            logger.debug("Cached entry", key=key, size=size, compressed=compress)

        self._counters.sets += 1
        self._counters.stored_bytes += size
        self._counters.compression_ratio_total += ratio
        return True

    async def invalidate(self, pattern: str | re.Pattern[str]) -> int:
        """Remove entries whose key matches a case-insensitive regex.

        Args:
            pattern: Regular expression searched within keys

        Returns:
            Number of durable entries removed (memory entries when memory-only)

        Raises:
            InvalidPatternError: If ``pattern`` does not compile
        """
        regex = compile_key_pattern(pattern)
        return await self._invalidate(DeleteCriteria(pattern=regex), f"pattern:{regex.pattern}")

    async def invalidate_tag(self, tag: str) -> int:
        """Remove exactly the entries carrying ``tag``.

        Args:
            tag: Tag name

        Returns:
            Number of durable entries removed (memory entries when memory-only)
        """
        return await self._invalidate(DeleteCriteria(tag=tag), f"tag:{tag}")

    async def _invalidate(self, criteria: DeleteCriteria, target: str) -> int:
        memory_count = self.memory.delete_matching(pattern=criteria.pattern, tag=criteria.tag)

        store = self._durable_store()
        if store is None:
            logger.info("Invalidated cache entries", target=target, count=memory_count)
            return memory_count

        try:
            count = await store.delete_many(criteria)
        except CacheUnavailableError as e:
            logger.warning("Durable cache invalidation failed", target=target, error=str(e))
            return 0

        logger.info(
            "Invalidated cache entries",
            target=target,
            count=count,
            memory_count=memory_count,
        )
        return count

    async def cleanup_expired(self) -> int:
        """Delete expired entries from both tiers.

        Returns:
            Number of durable entries removed (memory entries when memory-only)
        """
        now = self._clock()
        memory_count = self.memory.purge_expired(now)

        store = self._durable_store()
        if store is None:
            return memory_count

        try:
            return await store.delete_many(DeleteCriteria(expired_before=now))
        except CacheUnavailableError as e:
            logger.warning("Durable cache sweep failed", error=str(e))
            return 0

    async def clear(self) -> int:
        """Remove every entry from both tiers."""
        count = self.memory.clear()

        store = self._durable_store()
        if store is not None:
            try:
                count = await store.delete_many(DeleteCriteria())
            except CacheUnavailableError as e:
                logger.warning("Durable cache clear failed", error=str(e))

        logger.info("Cleared cache", count=count)
        return count

    async def stats(self) -> CacheStats:
        """Get cache statistics.

        Returns:
            Counters since process start plus durable-store aggregates
        """
        counters = self._counters
        memory_items = len(self.memory)

        summary: StoreSummary | None = None
        store = self._durable_store()
        if store is not None:
            try:
                summary = await store.summary()
            except CacheUnavailableError as e:
                logger.warning("Durable cache stats failed", error=str(e))

        if summary is None:
            average_ratio = (
                counters.compression_ratio_total / counters.sets if counters.sets else 1.0
            )
            summary = StoreSummary(
                entry_count=memory_items,
                average_compression_ratio=average_ratio,
            )

        return CacheStats(
            backend=self.backend,
            degraded=self._degraded,
            item_count=summary.entry_count,
            memory_item_count=memory_items,
            hit_count=counters.hits,
            miss_count=counters.misses,
            memory_hit_count=counters.memory_hits,
            durable_hit_count=counters.durable_hits,
            set_count=counters.sets,
            stored_bytes=counters.stored_bytes,
            storage_usage_bytes=summary.total_size_bytes,
            average_compression_ratio=summary.average_compression_ratio,
            total_access_count=summary.total_access_count,
        )
