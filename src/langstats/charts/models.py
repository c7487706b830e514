"""Chart rendering models."""

from dataclasses import dataclass
from enum import StrEnum


class Theme(StrEnum):
    """Chart color themes."""

    DARK = "dark"
    LIGHT = "light"


class ChartKind(StrEnum):
    """Supported chart layouts."""

    DONUT = "donut"
    PIE = "pie"
    BAR = "bar"


@dataclass(frozen=True, slots=True)
class ChartFlags:
    """Display toggles applied to a rendered chart."""

    hide_border: bool = False
    hide_title: bool = False
    custom_title: str = ""
    show_percentages: bool = False


@dataclass(frozen=True, slots=True)
class ThemePalette:
    """Resolved colors for a theme."""

    background: str
    background_end: str
    text: str
    muted_text: str
    border: str
    accent: str
    track: str
    track_stroke: str
    shadow: str
