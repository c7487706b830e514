"""GitHub API data models."""

from pydantic import BaseModel, ConfigDict, Field


class GitHubRepository(BaseModel):
    """Repository entry from the repository list endpoint."""

    model_config = ConfigDict(extra="ignore")

    name: str
    full_name: str | None = None
    language: str | None = None
    languages_url: str | None = None
    size: int = Field(default=0, ge=0)
    stargazers_count: int = 0
    fork: bool = False


class GitHubUser(BaseModel):
    """Subject metadata."""

    model_config = ConfigDict(extra="ignore")

    login: str
    name: str | None = None
    public_repos: int = 0


class GitHubError(BaseModel):
    """Error body returned by the GitHub API."""

    model_config = ConfigDict(extra="ignore")

    message: str
    documentation_url: str | None = None
