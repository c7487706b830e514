"""Pure layout geometry for language charts."""

import math
from collections.abc import Sequence
from dataclasses import dataclass

from .models import ChartKind

PADDING = 25
LEGEND_WIDTH = 280
HEADER_HEIGHT = 50
COMPACT_HEADER_HEIGHT = 25
FOOTER_HEIGHT = 30
MIN_CHART_SIZE = 400
MAX_CHART_SIZE = 600

START_ANGLE = -90.0
FULL_CIRCLE = 360.0
MIN_RADIUS = 120
DONUT_INNER_RATIO = 0.45
PIE_LABEL_RATIO = 0.75
LABEL_MIN_PERCENTAGE = 3.0

BAR_ROW_HEIGHT = 32
BAR_GAP = 8
MIN_BAR_HEIGHT = 25
MAX_BAR_HEIGHT = 40
BAR_TRACK_SCALE = 0.95

LEGEND_TOP = 80
LEGEND_MAX_ROWS = 8
LEGEND_NAME_LIMIT = 12
MIN_LEGEND_ROW_HEIGHT = 30
MAX_LEGEND_ROW_HEIGHT = 36

BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def fmt(value: float) -> str:
    """Format a coordinate with at most two decimals."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def format_bytes(size: int) -> str:
    """Human-readable byte size, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 B"
    exponent = 0
    while exponent < len(BYTE_UNITS) - 1 and size >= 1024 ** (exponent + 1):
        exponent += 1
    value = round(size / 1024**exponent, 1)
    return f"{value:g} {BYTE_UNITS[exponent]}"


def truncate_name(name: str, limit: int = LEGEND_NAME_LIMIT) -> str:
    return name[:limit] + "..." if len(name) > limit else name


@dataclass(frozen=True, slots=True)
class Canvas:
    """Overall document dimensions."""

    chart_size: int
    width: int
    height: int
    header_height: int


def canvas_for(size: int, kind: ChartKind, entry_count: int, hide_title: bool) -> Canvas:
    """Compute document dimensions.

    The chart area is clamped to 400..600 pixels and the fixed-width legend sits
    to its right. Bar charts grow vertically to fit every row.
    """
    header_height = COMPACT_HEADER_HEIGHT if hide_title else HEADER_HEIGHT
    chart_size = int(clamp(size, MIN_CHART_SIZE, MAX_CHART_SIZE))
    width = chart_size + LEGEND_WIDTH + PADDING * 3

    height = chart_size + header_height + FOOTER_HEIGHT
    if kind == ChartKind.BAR:
        rows_height = (
            header_height + FOOTER_HEIGHT + entry_count * BAR_ROW_HEIGHT + PADDING * 2 + 40
        )
        height = max(height, rows_height)

    return Canvas(chart_size=chart_size, width=width, height=height, header_height=header_height)


@dataclass(frozen=True, slots=True)
class Circle:
    """Center and radii of a donut or pie."""

    cx: float
    cy: float
    radius: float
    inner_radius: float


def circle_for(canvas: Canvas, kind: ChartKind) -> Circle:
    size = canvas.chart_size
    max_radius = min(size - PADDING * 2, size - canvas.header_height - PADDING) / 2 - 20
    radius = max(max_radius, MIN_RADIUS)
    inner_radius = 0.0 if kind == ChartKind.PIE else radius * DONUT_INNER_RATIO
    return Circle(
        cx=size / 2,
        cy=(size + canvas.header_height) / 2,
        radius=radius,
        inner_radius=inner_radius,
    )


def sweep_angles(percentages: Sequence[float]) -> list[tuple[float, float]]:
    """Return (start, sweep) in degrees for each share, clockwise from the top."""
    angles = []
    current = START_ANGLE
    for percentage in percentages:
        sweep = percentage / 100 * FULL_CIRCLE
        angles.append((current, sweep))
        current += sweep
    return angles


def polar(cx: float, cy: float, radius: float, degrees: float) -> tuple[float, float]:
    radians = math.radians(degrees)
    return cx + math.cos(radians) * radius, cy + math.sin(radians) * radius


def _full_ring(circle: Circle, start: float) -> str:
    # A single arc cannot close on itself, so draw two half circles
    c = circle
    x1, y1 = polar(c.cx, c.cy, c.radius, start)
    x2, y2 = polar(c.cx, c.cy, c.radius, start + 180)
    r = fmt(c.radius)
    path = (
        f"M {fmt(x1)} {fmt(y1)} A {r} {r} 0 1 1 {fmt(x2)} {fmt(y2)} "
        f"A {r} {r} 0 1 1 {fmt(x1)} {fmt(y1)} Z"
    )
    if c.inner_radius > 0:
        ix1, iy1 = polar(c.cx, c.cy, c.inner_radius, start)
        ix2, iy2 = polar(c.cx, c.cy, c.inner_radius, start + 180)
        ir = fmt(c.inner_radius)
        path += (
            f" M {fmt(ix1)} {fmt(iy1)} A {ir} {ir} 0 1 0 {fmt(ix2)} {fmt(iy2)} "
            f"A {ir} {ir} 0 1 0 {fmt(ix1)} {fmt(iy1)} Z"
        )
    return path


def segment_path(circle: Circle, start: float, sweep: float) -> str:
    """SVG path for one wedge (pie) or ring segment (donut)."""
    if sweep >= FULL_CIRCLE - 1e-9:
        return _full_ring(circle, start)

    c = circle
    end = start + sweep
    large_arc = 1 if sweep > 180 else 0
    x1, y1 = polar(c.cx, c.cy, c.radius, start)
    x2, y2 = polar(c.cx, c.cy, c.radius, end)
    r = fmt(c.radius)

    if c.inner_radius <= 0:
        return (
            f"M {fmt(c.cx)} {fmt(c.cy)} L {fmt(x1)} {fmt(y1)} "
            f"A {r} {r} 0 {large_arc} 1 {fmt(x2)} {fmt(y2)} Z"
        )

    ix1, iy1 = polar(c.cx, c.cy, c.inner_radius, start)
    ix2, iy2 = polar(c.cx, c.cy, c.inner_radius, end)
    ir = fmt(c.inner_radius)
    return (
        f"M {fmt(x1)} {fmt(y1)} A {r} {r} 0 {large_arc} 1 {fmt(x2)} {fmt(y2)} "
        f"L {fmt(ix2)} {fmt(iy2)} A {ir} {ir} 0 {large_arc} 0 {fmt(ix1)} {fmt(iy1)} Z"
    )


def label_position(circle: Circle, start: float, sweep: float) -> tuple[float, float]:
    """Point midway through a segment where its percentage label goes."""
    if circle.inner_radius > 0:
        text_radius = (circle.radius + circle.inner_radius) / 2
    else:
        text_radius = circle.radius * PIE_LABEL_RATIO
    return polar(circle.cx, circle.cy, text_radius, start + sweep / 2)


def shows_label(percentage: float) -> bool:
    return percentage > LABEL_MIN_PERCENTAGE


def bar_height(chart_height: float, count: int) -> float:
    """Height of one bar, clamped to 25..40."""
    return clamp(chart_height / max(count, 1) - BAR_GAP, MIN_BAR_HEIGHT, MAX_BAR_HEIGHT)


def legend_row_height(svg_height: float, count: int) -> float:
    """Vertical spacing of legend rows, clamped to 30..36."""
    return clamp(
        (svg_height - 160) / max(count, 1), MIN_LEGEND_ROW_HEIGHT, MAX_LEGEND_ROW_HEIGHT
    )
