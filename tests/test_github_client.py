"""Tests for the GitHub API client."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from langstats.config.models import GitHubConfig
from langstats.github.client import GitHubClient
from langstats.github.models import GitHubRepository
from langstats.utils.errors import FetchTimeoutError, NotFoundError, UpstreamError


def _client(handler, token: str | None = None) -> GitHubClient:
    config = GitHubConfig(token=token)
    return GitHubClient(config, transport=httpx.MockTransport(handler))


def test_list_repositories_parses_entries_and_sends_query(fake_github, make_repo) -> None:
    fake_github.json("/users/octo/repos", [make_repo("one"), make_repo("two", fork=True)])
    client = GitHubClient(GitHubConfig(), transport=fake_github.transport())

    async def run() -> list[GitHubRepository]:
        async with client:
            return await client.list_repositories("octo")

    repos = asyncio.run(run())

    assert [r.name for r in repos] == ["one", "two"]
    assert repos[1].fork is True
    params = fake_github.requests[0].url.params
    assert params["per_page"] == "100"
    assert params["sort"] == "updated"
    assert params["type"] == "owner"


def test_default_headers_include_token_and_user_agent() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"login": "octo"})

    client = _client(handler, token="configured")
    user = asyncio.run(client.get_user("octo"))

    assert user.login == "octo"
    assert seen[0].headers["Authorization"] == "token configured"
    assert seen[0].headers["Accept"] == "application/vnd.github.v3+json"
    assert seen[0].headers["User-Agent"].startswith("LangStats/")


def test_per_call_token_overrides_configured_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"login": "octo"})

    client = _client(handler, token="configured")
    asyncio.run(client.get_user("octo", auth_token="override"))

    assert seen[0].headers["Authorization"] == "token override"


def test_no_authorization_header_without_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"login": "octo"})

    asyncio.run(_client(handler).get_user("octo"))

    assert "Authorization" not in seen[0].headers


def test_404_maps_to_not_found() -> None:
    client = _client(lambda request: httpx.Response(404, json={"message": "Not Found"}))

    with pytest.raises(NotFoundError):
        asyncio.run(client.get_user("ghost"))


def test_server_error_maps_to_upstream_with_status() -> None:
    client = _client(lambda request: httpx.Response(502, json={"message": "Bad gateway"}))

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(client.list_repositories("octo"))

    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "Bad gateway"


def test_non_json_error_body_is_reported() -> None:
    client = _client(lambda request: httpx.Response(403, text="rate limited"))

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(client.get_user("octo"))

    assert exc_info.value.status_code == 403
    assert "rate limited" in exc_info.value.message


def test_timeout_maps_to_fetch_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(FetchTimeoutError):
        asyncio.run(_client(handler).get_user("octo"))


def test_connection_error_maps_to_upstream() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(_client(handler).get_user("octo"))

    assert exc_info.value.status_code is None


def test_get_languages_prefers_languages_url() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"Python": 120, "Shell": 3})

    repository = GitHubRepository(
        name="tool", languages_url="https://api.github.com/repos/octo/tool/languages"
    )
    histogram = asyncio.run(_client(handler).get_languages("octo", repository))

    assert histogram == {"Python": 120, "Shell": 3}
    assert seen == ["https://api.github.com/repos/octo/tool/languages"]


def test_get_languages_builds_path_without_languages_url() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json={})

    asyncio.run(_client(handler).get_languages("octo", GitHubRepository(name="tool")))

    assert seen == ["/repos/octo/tool/languages"]


@pytest.mark.parametrize("body", [[], {"Python": None}, {"Python": "lots"}, "nope"])
def test_get_languages_rejects_malformed_histogram(body) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    with pytest.raises(UpstreamError, match="Malformed language histogram for tool"):
        asyncio.run(_client(handler).get_languages("octo", GitHubRepository(name="tool")))
