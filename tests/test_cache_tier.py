"""Tests for the two-tier cache."""

from __future__ import annotations

import asyncio
import re
from datetime import datetime

import pytest

from langstats.cache.manager import CacheTier
from langstats.cache.memory import MemoryStore
from langstats.cache.models import (
    CacheEntry,
    CacheKey,
    CacheKind,
    CacheSource,
    DeleteCriteria,
    SetOptions,
    StoreSummary,
)
from langstats.config.models import CacheBackend, CacheConfig
from langstats.utils.errors import CacheUnavailableError, InvalidPatternError

LARGE_VALUE = {"languages": [{"name": f"Language{i}", "bytes": i * 1000} for i in range(400)]}


def _tier(config: CacheConfig, clock, store=None) -> CacheTier:
    return CacheTier(config, store=store if store is not None else MemoryStore(), clock=clock)


def test_small_payload_is_stored_uncompressed(memory_cache_config, clock) -> None:
    store = MemoryStore()

    async def run():
        async with _tier(memory_cache_config, clock, store) as cache:
            assert await cache.set("small", "hello")
            entry = await store.get("small")
            result = await cache.get("small")
            return entry, result

    entry, result = asyncio.run(run())

    assert entry is not None
    assert entry.is_compressed is False
    assert entry.data == b'"hello"'
    assert result.found is True
    assert result.value == "hello"


def test_large_payload_is_compressed_and_round_trips(memory_cache_config, clock) -> None:
    store = MemoryStore()

    async def run():
        async with _tier(memory_cache_config, clock, store) as cache:
            assert await cache.set("large", LARGE_VALUE)
            entry = await store.get("large")
            cache.memory.clear()
            result = await cache.get("large")
            return entry, result

    entry, result = asyncio.run(run())

    assert entry is not None
    assert entry.is_compressed is True
    assert entry.data is None
    assert entry.compression_ratio < 1.0
    assert entry.size_bytes > memory_cache_config.compression_threshold_bytes
    assert result.value == LARGE_VALUE
    assert result.source == CacheSource.DURABLE


def test_compress_false_disables_compression(memory_cache_config, clock) -> None:
    store = MemoryStore()

    async def run():
        async with _tier(memory_cache_config, clock, store) as cache:
            await cache.set("large", LARGE_VALUE, SetOptions(compress=False))
            return await store.get("large")

    entry = asyncio.run(run())

    assert entry is not None
    assert entry.is_compressed is False


def test_entry_expires_after_ttl(memory_cache_config, clock) -> None:
    async def run():
        async with _tier(memory_cache_config, clock) as cache:
            await cache.set("key", {"a": 1}, SetOptions(ttl_seconds=60))
            clock.advance(59)
            before = await cache.get("key")
            clock.advance(1)
            after = await cache.get("key")
            return before, after

    before, after = asyncio.run(run())

    assert before.found is True
    assert after.found is False
    assert after.value is None


def test_expired_durable_entry_is_deleted_on_read(memory_cache_config, clock) -> None:
    store = MemoryStore()

    async def run():
        async with _tier(memory_cache_config, clock, store) as cache:
            await cache.set("key", {"a": 1}, SetOptions(ttl_seconds=10))
            stored = await store.count()
            clock.advance(11)
            result = await cache.get("key")
            return stored, result, await store.count()

    stored, result, remaining = asyncio.run(run())

    assert stored == 1
    assert result.found is False
    assert remaining == 0


def test_memory_tier_expires_before_durable_tier(memory_cache_config, clock) -> None:
    async def run():
        async with _tier(memory_cache_config, clock) as cache:
            await cache.set("key", [1, 2, 3], SetOptions(ttl_seconds=3600))
            first = await cache.get("key")
            clock.advance(memory_cache_config.memory_ttl_seconds + 1)
            second = await cache.get("key")
            third = await cache.get("key")
            return first, second, third

    first, second, third = asyncio.run(run())

    assert first.source == CacheSource.MEMORY
    assert second.source == CacheSource.DURABLE
    assert second.value == [1, 2, 3]
    # Durable hits repopulate memory
    assert third.source == CacheSource.MEMORY


def test_durable_hit_increments_access_count(memory_cache_config, clock) -> None:
    store = MemoryStore()

    async def run():
        async with _tier(memory_cache_config, clock, store) as cache:
            await cache.set("key", "v")
            cache.memory.clear()
            await cache.get("key")
            return await store.get("key")

    entry = asyncio.run(run())

    assert entry is not None
    assert entry.access_count == 1
    assert entry.last_accessed_at == clock.now


def test_returned_values_are_independent_copies(memory_cache_config, clock) -> None:
    async def run():
        async with _tier(memory_cache_config, clock) as cache:
            await cache.set("key", {"items": [1]})
            first = await cache.get("key")
            first.value["items"].append(2)
            return await cache.get("key")

    result = asyncio.run(run())

    assert result.value == {"items": [1]}


def test_tag_invalidation_is_exact(memory_cache_config, clock) -> None:
    async def run():
        async with _tier(memory_cache_config, clock) as cache:
            await cache.set("a", 1, SetOptions(tags=("user:al",)))
            await cache.set("b", 2, SetOptions(tags=("user:alice",)))
            removed = await cache.invalidate_tag("user:al")
            return removed, await cache.get("a"), await cache.get("b")

    removed, a, b = asyncio.run(run())

    assert removed == 1
    assert a.found is False
    assert b.found is True


def test_pattern_invalidation_is_case_insensitive(memory_cache_config, clock) -> None:
    async def run():
        async with _tier(memory_cache_config, clock) as cache:
            await cache.set("lang_stats:octo:8", 1)
            await cache.set("lang_stats:other:8", 2)
            removed = await cache.invalidate(re.compile("LANG_STATS:OCTO"))
            return removed, await cache.get("lang_stats:octo:8"), await cache.get("lang_stats:other:8")

    removed, octo, other = asyncio.run(run())

    assert removed == 1
    assert octo.found is False
    assert other.found is True


def test_invalid_pattern_raises_structured_error(memory_cache_config, clock) -> None:
    store = MemoryStore()

    async def run():
        async with _tier(memory_cache_config, clock, store) as cache:
            await cache.set("lang_stats:octo:8", 1)
            with pytest.raises(InvalidPatternError) as exc_info:
                await cache.invalidate("lang_stats:[")
            return exc_info.value, await store.count(), await cache.get("lang_stats:octo:8")

    error, remaining, kept = asyncio.run(run())

    assert error.code == "invalid_pattern"
    assert error.details == {"pattern": "lang_stats:["}
    assert remaining == 1
    assert kept.found is True


def test_payload_over_ceiling_is_rejected(clock) -> None:
    config = CacheConfig(backend=CacheBackend.MEMORY, url=None, max_payload_bytes=64)

    async def run():
        async with _tier(config, clock) as cache:
            stored = await cache.set("big", "x" * 100)
            return stored, await cache.get("big")

    stored, result = asyncio.run(run())

    assert stored is False
    assert result.found is False


def test_cleanup_removes_expired_entries(memory_cache_config, clock) -> None:
    store = MemoryStore()

    async def run():
        async with _tier(memory_cache_config, clock, store) as cache:
            await cache.set("short", 1, SetOptions(ttl_seconds=10))
            await cache.set("long", 2, SetOptions(ttl_seconds=1000))
            clock.advance(10)
            removed = await cache.cleanup_expired()
            return removed, await store.count()

    removed, remaining = asyncio.run(run())

    assert removed == 1
    assert remaining == 1


def test_background_sweep_runs_on_interval(clock) -> None:
    config = CacheConfig(
        backend=CacheBackend.MEMORY, url=None, sweep_interval_seconds=0.01
    )
    store = MemoryStore()

    async def run():
        async with _tier(config, clock, store) as cache:
            await cache.set("short", 1, SetOptions(ttl_seconds=5))
            clock.advance(6)
            for _ in range(100):
                if await store.count() == 0:
                    break
                await asyncio.sleep(0.01)
            return await store.count()

    assert asyncio.run(run()) == 0


def test_stop_is_idempotent(memory_cache_config, clock) -> None:
    async def run():
        cache = _tier(memory_cache_config, clock)
        await cache.start()
        await cache.stop()
        await cache.stop()
        return cache

    cache = asyncio.run(run())

    assert cache.durable_available is False


def test_stats_track_hits_misses_and_sizes(memory_cache_config, clock) -> None:
    async def run():
        async with _tier(memory_cache_config, clock) as cache:
            await cache.set("small", "v")
            await cache.set("large", LARGE_VALUE)
            await cache.get("small")
            await cache.get("missing")
            cache.memory.clear()
            await cache.get("large")
            return await cache.stats()

    stats = asyncio.run(run())

    assert stats.backend == "memory"
    assert stats.degraded is False
    assert stats.item_count == 2
    assert stats.hit_count == 2
    assert stats.miss_count == 1
    assert stats.memory_hit_count == 1
    assert stats.durable_hit_count == 1
    assert stats.set_count == 2
    assert stats.hit_rate == 2 / 3
    assert stats.total_access_count == 1
    assert stats.average_compression_ratio < 1.0
    assert stats.compression_savings > 0


class _UnreachableStore:
    """Durable store whose database never answers."""

    name = "unreachable"

    def __init__(self) -> None:
        self.connect_attempts = 0

    async def connect(self) -> None:
        self.connect_attempts += 1
        raise CacheUnavailableError("connection refused")

    async def close(self) -> None:
        raise AssertionError("never connected")

    async def get(self, key: CacheKey) -> CacheEntry | None:
        raise AssertionError("durable tier should be bypassed")

    async def put(self, entry: CacheEntry) -> None:
        raise AssertionError("durable tier should be bypassed")

    async def touch(self, key: CacheKey, accessed_at: datetime) -> None:
        raise AssertionError("durable tier should be bypassed")

    async def delete_many(self, criteria: DeleteCriteria) -> int:
        raise AssertionError("durable tier should be bypassed")

    async def count(self) -> int:
        raise AssertionError("durable tier should be bypassed")

    async def summary(self) -> StoreSummary:
        raise AssertionError("durable tier should be bypassed")


def test_unreachable_store_degrades_to_memory_only(memory_cache_config, clock) -> None:
    store = _UnreachableStore()

    async def run():
        async with _tier(memory_cache_config, clock, store) as cache:
            stored = await cache.set("key", {"v": 1}, SetOptions(tags=("t",)))
            hit = await cache.get("key")
            miss = await cache.get("other")
            removed = await cache.invalidate_tag("t")
            stats = await cache.stats()
            return cache.degraded, stored, hit, miss, removed, stats

    degraded, stored, hit, miss, removed, stats = asyncio.run(run())

    assert store.connect_attempts == memory_cache_config.connect_retries
    assert degraded is True
    assert stored is True
    assert hit.value == {"v": 1}
    assert hit.source == CacheSource.MEMORY
    assert miss.found is False
    assert removed == 1
    assert stats.degraded is True
    assert stats.item_count == 0


class _FlakyStore(MemoryStore):
    """Connects, then fails every read and write."""

    async def get(self, key: CacheKey) -> CacheEntry | None:
        raise CacheUnavailableError("lost connection")

    async def put(self, entry: CacheEntry) -> None:
        raise CacheUnavailableError("lost connection")


def test_runtime_store_errors_degrade_single_calls(memory_cache_config, clock) -> None:
    async def run():
        async with _tier(memory_cache_config, clock, _FlakyStore()) as cache:
            stored = await cache.set("key", 1)
            from_memory = await cache.get("key")
            cache.memory.clear()
            missing = await cache.get("key")
            return cache.degraded, stored, from_memory, missing

    degraded, stored, from_memory, missing = asyncio.run(run())

    assert degraded is False
    assert stored is True
    assert from_memory.found is True
    assert missing.found is False


def test_entry_metadata_is_recorded(memory_cache_config, clock) -> None:
    store = MemoryStore()

    async def run():
        async with _tier(memory_cache_config, clock, store) as cache:
            await cache.set(
                "key",
                1,
                SetOptions(subject_id="octo", kind=CacheKind.LANGUAGE_STATS, tags=("a", "b")),
            )
            return await store.get("key")

    entry = asyncio.run(run())

    assert entry is not None
    assert entry.metadata.subject_id == "octo"
    assert entry.metadata.kind == CacheKind.LANGUAGE_STATS
    assert entry.tags == frozenset({"a", "b"})
    assert entry.created_at == clock.now
