from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest

from langstats.config.models import CacheBackend, CacheConfig, GitHubConfig


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeGitHub:
    """Routes GitHub API paths to canned responses and records requests."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def json(self, path: str, body: Any, status_code: int = 200) -> None:
        self.routes[path] = lambda request: httpx.Response(status_code, json=body)

    def handler(self, path: str, func: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[path] = func

    def add_user(
        self,
        login: str,
        repos: list[dict[str, Any]],
        languages: dict[str, dict[str, int]],
    ) -> None:
        """Register a user, their repositories and per-repository histograms."""
        self.json(f"/users/{login}", {"login": login, "public_repos": len(repos)})
        self.json(f"/users/{login}/repos", repos)
        for name, histogram in languages.items():
            self.json(f"/repos/{login}/{name}/languages", histogram)

    def transport(self) -> httpx.MockTransport:
        def handle(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            route = self.routes.get(request.url.path)
            if route is None:
                return httpx.Response(404, content=json.dumps({"message": "Not Found"}))
            return route(request)

        return httpx.MockTransport(handle)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


def repo(name: str, language: str | None = "Python", size: int = 10, fork: bool = False) -> dict[str, Any]:
    return {
        "name": name,
        "full_name": f"octo/{name}",
        "language": language,
        "size": size,
        "fork": fork,
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def make_repo() -> Callable[..., dict[str, Any]]:
    return repo


@pytest.fixture
def github_config() -> GitHubConfig:
    return GitHubConfig(batch_delay_seconds=0)


@pytest.fixture
def memory_cache_config() -> CacheConfig:
    return CacheConfig(backend=CacheBackend.MEMORY, url=None, connect_backoff_seconds=0)
