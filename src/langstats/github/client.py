"""Async GitHub API client."""

from typing import Any
from urllib.parse import quote

import httpx
from httpx import AsyncClient, Response
from pydantic import TypeAdapter, ValidationError

from .. import __version__
from ..config.models import GitHubConfig
from ..utils.errors import FetchTimeoutError, NotFoundError, UpstreamError
from ..utils.logging import get_logger
from .models import GitHubError, GitHubRepository, GitHubUser

logger = get_logger("github")

LanguageHistogram = TypeAdapter(dict[str, int])


class GitHubClient:
    """Async GitHub API client."""

    def __init__(
        self,
        config: GitHubConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize GitHub client.

        Args:
            config: GitHub configuration
            transport: Optional httpx transport (used to fake the API in tests)
        """
        self.config = config
        self.api_url = str(config.api_url).rstrip("/")

        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": config.user_agent or f"LangStats/{__version__}",
        }
        if config.token:
            headers["Authorization"] = f"token {config.token}"

        # Shared connection pool for every concurrent request
        self.client = AsyncClient(
            timeout=config.timeout,
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def _get(
        self,
        endpoint: str,
        auth_token: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> Response:
        """Make GET request to the GitHub API.

        Args:
            endpoint: API endpoint or absolute URL
            auth_token: Token overriding the configured one for this call
            params: Query parameters

        Returns:
            HTTP response

        Raises:
            NotFoundError: If the resource does not exist
            UpstreamError: If the request fails or returns a non-success status
            FetchTimeoutError: If the request times out
        """
        if endpoint.startswith(("http://", "https://")):
            url = endpoint
        else:
            url = f"{self.api_url}/{endpoint.lstrip('/')}"

        headers = {"Authorization": f"token {auth_token}"} if auth_token else None

        try:
            logger.debug("Making GitHub API request", url=url)
            response = await self.client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(f"Request timed out: {url}") from e
        except httpx.RequestError as e:
            raise UpstreamError(f"Request failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"Not found: {url}", details={"url": url})

        if response.status_code >= 400:
            try:
                error = GitHubError(**response.json())
                message = error.message
            except Exception:
                message = f"HTTP {response.status_code}: {response.text}"

            raise UpstreamError(message, response.status_code)

        logger.debug("GitHub API request successful", status_code=response.status_code)
        return response

    async def list_repositories(
        self, subject_id: str, auth_token: str | None = None
    ) -> list[GitHubRepository]:
        """List repositories owned by a subject.

        Args:
            subject_id: GitHub login
            auth_token: Optional per-call token

        Returns:
            Repositories, most recently updated first
        """
        response = await self._get(
            f"/users/{quote(subject_id, safe='')}/repos",
            auth_token,
            params={"per_page": self.config.per_page, "sort": "updated", "type": "owner"},
        )
        return [GitHubRepository(**repo) for repo in response.json()]

    async def get_user(
        self, subject_id: str, auth_token: str | None = None
    ) -> GitHubUser:
        """Get subject metadata.

        Args:
            subject_id: GitHub login
            auth_token: Optional per-call token

        Returns:
            Subject metadata
        """
        response = await self._get(f"/users/{quote(subject_id, safe='')}", auth_token)
        return GitHubUser(**response.json())

    async def get_languages(
        self,
        subject_id: str,
        repository: GitHubRepository,
        auth_token: str | None = None,
    ) -> dict[str, int]:
        """Get a repository's per-language byte histogram.

        Args:
            subject_id: Repository owner login
            repository: Repository entry
            auth_token: Optional per-call token

        Returns:
            Mapping of language name to bytes

        Raises:
            UpstreamError: If the body is not a language to byte-count map
        """
        endpoint = repository.languages_url or (
            f"/repos/{quote(subject_id, safe='')}/{quote(repository.name, safe='')}/languages"
        )
        response = await self._get(endpoint, auth_token)
        try:
            return LanguageHistogram.validate_json(response.content)
        except ValidationError as e:
            raise UpstreamError(
                f"Malformed language histogram for {repository.name}: {e.error_count()} errors",
                details={"url": str(response.url)},
            ) from e
