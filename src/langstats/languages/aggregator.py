"""Per-language aggregation of repository byte histograms."""

from collections import defaultdict
from collections.abc import Iterable

from ..utils.logging import get_logger
from .colors import color_for_language
from .models import AggregationOptions, AggregationResult, LanguageEntry, RepositoryLanguages

logger = get_logger("languages.aggregator")


class LanguageAggregator:
    """Merges repository histograms into ranked language entries."""

    def aggregate(
        self,
        histograms: Iterable[RepositoryLanguages],
        options: AggregationOptions | None = None,
    ) -> AggregationResult:
        """Aggregate histograms into language entries.

        Percentages are computed against the total of every language before
        ``min_percentage`` filtering and ``max_languages`` truncation, and are
        not renormalized afterwards, so the returned subset may sum to less
        than 100.

        Args:
            histograms: Per-repository byte histograms
            options: Filtering and coloring options

        Returns:
            Aggregation result with entries sorted by bytes, descending
        """
        options = options or AggregationOptions()

        language_bytes: dict[str, int] = defaultdict(int)
        language_repos: dict[str, set[str]] = defaultdict(set)
        contributing: set[str] = set()

        for histogram in histograms:
            for language, size in histogram.languages.items():
                language_bytes[language] += size
                language_repos[language].add(histogram.repository)
                contributing.add(histogram.repository)

        total_bytes = sum(language_bytes.values())
        if total_bytes == 0:
            logger.debug("No language bytes to aggregate")
            return AggregationResult(
                languages=[],
                total_bytes=0,
                total_languages=0,
                repository_count=len(contributing),
            )

        entries = [
            LanguageEntry(
                name=name,
                bytes=size,
                percentage=size / total_bytes * 100,
                color=color_for_language(name, options.theme),
                repo_count=len(language_repos[name]),
            )
            for name, size in language_bytes.items()
        ]

        entries = [e for e in entries if e.percentage >= options.min_percentage]
        entries.sort(key=lambda e: (-e.bytes, e.name))

        logger.debug(
            "Aggregated languages",
            total_languages=len(language_bytes),
            kept=min(len(entries), options.max_languages),
            total_bytes=total_bytes,
        )

        return AggregationResult(
            languages=entries[: options.max_languages],
            total_bytes=total_bytes,
            total_languages=len(language_bytes),
            repository_count=len(contributing),
        )
