"""Language statistics request and response models."""

from pydantic import BaseModel, Field, field_validator

from ..cache.models import CacheSource
from ..charts.models import ChartFlags, ChartKind, Theme
from ..config.models import MAX_LANGUAGES
from ..languages.models import AggregationOptions, LanguageEntry


class LanguageStatsOptions(BaseModel):
    """Options for one language statistics request."""

    max_languages: int = Field(default=MAX_LANGUAGES, ge=1)
    min_percentage: float = Field(default=0.0, ge=0, le=100)
    theme: Theme = Theme.DARK
    size: int = Field(default=400, gt=0)
    chart_kind: ChartKind = ChartKind.DONUT
    hide_border: bool = False
    hide_title: bool = False
    custom_title: str = ""
    show_percentages: bool = False
    raw: bool = Field(default=False, description="Return data without rendering")
    show_processing_time: bool = True
    auth_token: str | None = Field(default=None, repr=False, exclude=True)

    @field_validator("max_languages")
    @classmethod
    def clamp_max_languages(cls, v: int) -> int:
        """Clamp to the number of languages a chart can display."""
        return min(v, MAX_LANGUAGES)

    def aggregation_options(self) -> AggregationOptions:
        return AggregationOptions(
            min_percentage=self.min_percentage,
            max_languages=self.max_languages,
            theme=self.theme,
        )

    def chart_flags(self) -> ChartFlags:
        return ChartFlags(
            hide_border=self.hide_border,
            hide_title=self.hide_title,
            custom_title=self.custom_title,
            show_percentages=self.show_percentages,
        )


class LanguageStatsResult(BaseModel):
    """Language statistics with the rendered chart and response metadata."""

    subject_id: str
    languages: list[LanguageEntry]
    total_languages: int = Field(description="Languages found before filtering")
    total_bytes: int = Field(description="Bytes across all languages before filtering")
    repository_count: int = 0
    cache_source: CacheSource
    processing_time_ms: float
    document: str | None = Field(default=None, description="SVG chart, None in raw mode")
