"""Repository and language histogram fetching with batched concurrency."""

import asyncio
from dataclasses import dataclass, field

from ..config.models import GitHubConfig
from ..languages.models import RepositoryLanguages
from ..utils.errors import LangStatsError, NotFoundError
from ..utils.logging import get_logger
from .client import GitHubClient
from .models import GitHubRepository, GitHubUser

logger = get_logger("github.fetcher")


@dataclass(slots=True)
class FetchResult:
    """Repositories and histograms fetched for one subject."""

    subject_id: str
    subject: GitHubUser | None
    repositories: list[GitHubRepository] = field(default_factory=list)
    histograms: list[RepositoryLanguages] = field(default_factory=list)

    @property
    def estimated_count(self) -> int:
        """Number of histograms that fell back to an estimate."""
        return sum(1 for h in self.histograms if h.estimated)


class RepositoryFetcher:
    """Fetches a subject's repositories and their language histograms."""

    def __init__(self, client: GitHubClient, config: GitHubConfig) -> None:
        self.client = client
        self.config = config

    async def fetch(self, subject_id: str, auth_token: str | None = None) -> FetchResult:
        """Fetch repositories and per-repository language histograms.

        The repository list and subject metadata are requested concurrently.
        Language histograms are then fetched in fixed-size batches with a short
        pause between batches. A failed histogram fetch never fails the run: the
        repository's primary language and size are used as an estimate instead.

        Args:
            subject_id: GitHub login
            auth_token: Optional token overriding the configured one

        Returns:
            Fetch result with forks and language-less repositories removed

        Raises:
            NotFoundError: If the subject does not exist
            UpstreamError: If the repository list cannot be fetched
            FetchTimeoutError: If the repository list request times out
        """
        logger.info("Fetching repositories", subject=subject_id)

        repos_result, user_result = await asyncio.gather(
            self.client.list_repositories(subject_id, auth_token),
            self.client.get_user(subject_id, auth_token),
            return_exceptions=True,
        )

        if isinstance(repos_result, BaseException):
            raise repos_result
        if isinstance(user_result, NotFoundError):
            raise user_result

        subject: GitHubUser | None = None
        if isinstance(user_result, BaseException):
            if not isinstance(user_result, LangStatsError):
                raise user_result
            logger.warning(
                "Failed to fetch subject metadata", subject=subject_id, error=str(user_result)
            )
        else:
            subject = user_result

        repositories = [r for r in repos_result if not r.fork and r.language]
        histograms = await self._fetch_histograms(subject_id, repositories, auth_token)

        result = FetchResult(
            subject_id=subject_id,
            subject=subject,
            repositories=repositories,
            histograms=histograms,
        )

        logger.info(
            "Fetched language histograms",
            subject=subject_id,
            repositories=len(repositories),
            skipped=len(repos_result) - len(repositories),
            estimated=result.estimated_count,
        )
        return result

    async def _fetch_histograms(
        self,
        subject_id: str,
        repositories: list[GitHubRepository],
        auth_token: str | None,
    ) -> list[RepositoryLanguages]:
        """Fetch histograms batch by batch; every batch completes before the next."""
        histograms: list[RepositoryLanguages] = []
        batch_size = self.config.batch_size

        for start in range(0, len(repositories), batch_size):
            batch = repositories[start : start + batch_size]
            results = await asyncio.gather(
                *(self._fetch_histogram(subject_id, repo, auth_token) for repo in batch)
            )
            histograms.extend(results)

            if start + batch_size < len(repositories) and self.config.batch_delay_seconds:
                await asyncio.sleep(self.config.batch_delay_seconds)

        return histograms

    async def _fetch_histogram(
        self,
        subject_id: str,
        repository: GitHubRepository,
        auth_token: str | None,
    ) -> RepositoryLanguages:
        """Fetch one histogram, falling back to a single-language estimate."""
        try:
            languages = await self.client.get_languages(subject_id, repository, auth_token)
            return RepositoryLanguages(repository=repository.name, languages=languages)
        except (LangStatsError, ValueError) as e:
            logger.warning(
                "Failed to fetch repository languages, using estimate",
                repository=repository.name,
                language=repository.language,
                size=repository.size,
                error=str(e),
            )
            return RepositoryLanguages(
                repository=repository.name,
                languages={repository.language: repository.size} if repository.language else {},
                estimated=True,
            )
