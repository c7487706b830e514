"""Language statistics orchestration: cache, fetch, aggregate, render."""

import time
from typing import Any

from ..cache.manager import CacheTier
from ..cache.models import CacheKind, CacheSource, CacheStats, SetOptions
from ..charts.renderer import ChartRenderer
from ..config.models import CacheConfig
from ..github.fetcher import RepositoryFetcher
from ..languages.aggregator import LanguageAggregator
from ..languages.models import LanguageEntry
from ..utils.errors import InternalError, LangStatsError
from ..utils.logging import get_logger
from .models import LanguageStatsOptions, LanguageStatsResult

logger = get_logger("service.orchestrator")

LANGUAGE_STATS_TAG = "language-stats"
CACHE_KEY_VERSION = "v2"


def subject_tag(subject_id: str) -> str:
    return f"user:{subject_id.lower()}"


class LanguageStatsService:
    """Serves language statistics from cache or a fresh fetch."""

    def __init__(
        self,
        cache: CacheTier,
        fetcher: RepositoryFetcher,
        cache_config: CacheConfig,
        aggregator: LanguageAggregator | None = None,
        renderer: ChartRenderer | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            cache: Started cache tier
            fetcher: Repository fetcher
            cache_config: Cache configuration (language-stats TTL)
            aggregator: Language aggregator
            renderer: Chart renderer
        """
        self.cache = cache
        self.fetcher = fetcher
        self.cache_config = cache_config
        self.aggregator = aggregator or LanguageAggregator()
        self.renderer = renderer or ChartRenderer()

    @staticmethod
    def cache_key(subject_id: str, options: LanguageStatsOptions) -> str:
        """Cache key covering every option that changes the aggregate."""
        return (
            f"lang_stats:{subject_id.lower()}:{options.max_languages}:"
            f"{options.min_percentage:g}:{options.theme.value}:{CACHE_KEY_VERSION}"
        )

    async def get_language_stats(
        self, subject_id: str, options: LanguageStatsOptions | None = None
    ) -> LanguageStatsResult:
        """Get a subject's language statistics and chart.

        Args:
            subject_id: GitHub login
            options: Aggregation, rendering and output options

        Returns:
            Result with languages, totals, cache source and SVG document

        Raises:
            NotFoundError: If the subject does not exist
            UpstreamError: If the repository host fails
            InternalError: On unexpected failures
        """
        options = options or LanguageStatsOptions()
        started = time.perf_counter()

        try:
            payload, source = await self._load(subject_id, options)

            languages = [LanguageEntry.model_validate(e) for e in payload["languages"]]
            document = None
            if not options.raw:
                elapsed_ms = (time.perf_counter() - started) * 1000
                document = self.renderer.render(
                    languages,
                    theme=options.theme,
                    size=options.size,
                    kind=options.chart_kind,
                    flags=options.chart_flags(),
                    processing_time_ms=elapsed_ms if options.show_processing_time else None,
                )
        except LangStatsError:
            raise
        except Exception as e:
            logger.error("Language stats failed", subject=subject_id, error=str(e))
            raise InternalError(f"Failed to build language stats: {e}") from e

        processing_time_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Served language stats",
            subject=subject_id,
            cache_source=source.value,
            languages=len(languages),
            processing_time_ms=round(processing_time_ms, 2),
        )

        return LanguageStatsResult(
            subject_id=subject_id,
            languages=languages,
            total_languages=payload["total_languages"],
            total_bytes=payload["total_bytes"],
            repository_count=payload["repository_count"],
            cache_source=source,
            processing_time_ms=processing_time_ms,
            document=document,
        )

    async def _load(
        self, subject_id: str, options: LanguageStatsOptions
    ) -> tuple[dict[str, Any], CacheSource]:
        """Return the cached aggregate payload or compute and cache it."""
        key = self.cache_key(subject_id, options)

        cached = await self.cache.get(key)
        if cached.found and cached.source is not None:
            return cached.value, cached.source

        fetched = await self.fetcher.fetch(subject_id, options.auth_token)
        aggregation = self.aggregator.aggregate(
            fetched.histograms, options.aggregation_options()
        )

        payload = {
            "languages": [entry.model_dump() for entry in aggregation.languages],
            "total_languages": aggregation.total_languages,
            "total_bytes": aggregation.total_bytes,
            "repository_count": aggregation.repository_count,
        }

        stored = await self.cache.set(
            key,
            payload,
            SetOptions(
                ttl_seconds=self.cache_config.language_ttl_seconds,
                tags=(LANGUAGE_STATS_TAG, subject_tag(subject_id)),
                subject_id=subject_id,
                kind=CacheKind.LANGUAGE_STATS,
                compress=True,
            ),
        )
        if stored:
            logger.debug("Cached language stats", subject=subject_id, key=key)

        return payload, CacheSource.FRESH

    async def invalidate_subject(self, subject_id: str) -> int:
        """Drop every cached entry for a subject."""
        return await self.cache.invalidate_tag(subject_tag(subject_id))

    async def invalidate_language_stats(self) -> int:
        """Drop every cached language statistics entry."""
        return await self.cache.invalidate_tag(LANGUAGE_STATS_TAG)

    async def cache_stats(self) -> CacheStats:
        return await self.cache.stats()
