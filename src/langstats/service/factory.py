"""Wiring of the language statistics service from configuration."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from ..cache.factory import create_cache_tier
from ..cache.manager import CacheTier
from ..config.models import LangStatsConfig
from ..github.client import GitHubClient
from ..github.fetcher import RepositoryFetcher
from ..utils.logging import get_logger
from .orchestrator import LanguageStatsService

logger = get_logger("service.factory")


@dataclass(slots=True)
class ServiceComponents:
    """Service together with the resources it owns."""

    service: LanguageStatsService
    cache: CacheTier
    github_client: GitHubClient

    async def start(self) -> None:
        await self.cache.start()

    async def close(self) -> None:
        await self.cache.stop()
        await self.github_client.close()


def create_service(
    config: LangStatsConfig,
    cache: CacheTier | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ServiceComponents:
    """Create the service with all dependencies.

    Args:
        config: Application configuration
        cache: Optional pre-built cache tier
        transport: Optional httpx transport for the GitHub client

    Returns:
        Unstarted service components
    """
    cache = cache or create_cache_tier(config.cache)
    github_client = GitHubClient(config.github, transport=transport)
    fetcher = RepositoryFetcher(github_client, config.github)

    service = LanguageStatsService(cache=cache, fetcher=fetcher, cache_config=config.cache)
    logger.debug("Created language stats service", backend=cache.backend)

    return ServiceComponents(service=service, cache=cache, github_client=github_client)


@asynccontextmanager
async def service_context(config: LangStatsConfig) -> AsyncIterator[LanguageStatsService]:
    """Run a started service for the duration of the context."""
    components = create_service(config)
    await components.start()
    try:
        yield components.service
    finally:
        await components.close()
