"""Language aggregation models."""

from dataclasses import dataclass, field

from pydantic import BaseModel, Field, field_validator

from ..charts.models import Theme
from ..config.models import MAX_LANGUAGES


@dataclass(slots=True)
class RepositoryLanguages:
    """Byte histogram for one repository."""

    repository: str
    languages: dict[str, int] = field(default_factory=dict)
    estimated: bool = False


class LanguageEntry(BaseModel):
    """Aggregated usage of one language."""

    name: str
    bytes: int = Field(ge=0)
    percentage: float = Field(ge=0, le=100)
    color: str
    repo_count: int = Field(ge=0)


class AggregationOptions(BaseModel):
    """Filtering and coloring options for aggregation."""

    min_percentage: float = Field(default=0.0, ge=0, le=100)
    max_languages: int = Field(default=MAX_LANGUAGES, ge=1)
    theme: Theme = Theme.DARK

    @field_validator("max_languages")
    @classmethod
    def clamp_max_languages(cls, v: int) -> int:
        """Clamp to the number of languages a chart can display."""
        return min(v, MAX_LANGUAGES)


@dataclass(slots=True)
class AggregationResult:
    """Aggregated languages with pre-filter totals."""

    languages: list[LanguageEntry]
    total_bytes: int
    total_languages: int
    repository_count: int
