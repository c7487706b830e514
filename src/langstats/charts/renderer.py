"""SVG rendering of language charts."""

from collections.abc import Sequence
from html import escape

from ..languages.models import LanguageEntry
from ..utils.logging import get_logger
from . import layout
from .layout import Canvas, fmt, format_bytes
from .models import ChartFlags, ChartKind, Theme, ThemePalette
from .themes import palette_for

logger = get_logger("charts.renderer")

DEFAULT_TITLE = "Top Programming Languages"
LEGEND_TITLE = "Statistics"
FONT = "'Segoe UI', system-ui, sans-serif"


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


class ChartRenderer:
    """Renders language entries as a self-contained SVG document.

    Output depends only on the arguments: identical inputs give byte-identical
    documents. The processing-time badge is drawn only when a time is passed.
    """

    def render(
        self,
        entries: Sequence[LanguageEntry],
        theme: Theme | str = Theme.DARK,
        size: int = 400,
        kind: ChartKind | str = ChartKind.DONUT,
        flags: ChartFlags | None = None,
        processing_time_ms: float | None = None,
    ) -> str:
        """Render a chart with legend.

        Args:
            entries: Language entries, already sorted by bytes descending
            theme: Color theme
            size: Requested chart area size (clamped to 400..600)
            kind: Donut, pie or bar layout
            flags: Display toggles
            processing_time_ms: Optional time shown in an informational badge

        Returns:
            SVG markup
        """
        flags = flags or ChartFlags()
        kind = ChartKind(kind)
        palette = palette_for(theme)
        canvas = layout.canvas_for(size, kind, len(entries), flags.hide_title)

        parts = [
            self._header(canvas, palette, flags, theme == Theme.DARK),
        ]
        if processing_time_ms is not None:
            parts.append(self._badge(canvas, palette, processing_time_ms))

        if not entries:
            parts.append(self._empty(canvas, palette))
        elif kind == ChartKind.BAR:
            parts.append(self._bars(entries, canvas, palette, flags.show_percentages))
        else:
            parts.append(self._circle(entries, canvas, kind, flags.show_percentages))

        parts.append(self._legend(entries, canvas, palette))
        parts.append("</svg>")

        logger.debug(
            "Rendered chart", kind=kind.value, languages=len(entries), width=canvas.width
        )
        return "\n".join(parts)

    def _header(
        self, canvas: Canvas, palette: ThemePalette, flags: ChartFlags, is_dark: bool
    ) -> str:
        width, height = canvas.width, canvas.height
        lines = [
            f'<svg width="{width}" height="{height}" viewBox="0 0 {width} {height}" '
            f'xmlns="http://www.w3.org/2000/svg">',
            "<defs>",
            '<linearGradient id="bgGradient" x1="0%" y1="0%" x2="100%" y2="100%">',
            f'<stop offset="0%" stop-color="{palette.background}" />',
            f'<stop offset="100%" stop-color="{palette.background_end}" />',
            "</linearGradient>",
            '<filter id="shadow" x="-20%" y="-20%" width="140%" height="140%">',
            f'<feDropShadow dx="2" dy="2" stdDeviation="3" flood-color="{palette.shadow}" />',
            "</filter>",
            '<filter id="glow" x="-20%" y="-20%" width="140%" height="140%">',
            '<feGaussianBlur stdDeviation="3" result="coloredBlur" />',
            '<feMerge><feMergeNode in="coloredBlur" /><feMergeNode in="SourceGraphic" /></feMerge>',
            "</filter>",
            "<style>",
            f".chart-title {{ font: bold 18px {FONT}; fill: {palette.text}; }}",
            f".language-name {{ font: bold 13px {FONT}; fill: {palette.text}; }}",
            f".percentage-text {{ font: bold 12px {FONT}; fill: white; text-anchor: middle; }}",
            f".stats-text {{ font: 11px {FONT}; fill: {palette.muted_text}; }}",
            f".badge-text {{ font: bold 10px {FONT}; fill: white; text-anchor: middle; }}",
            ".segment { transition: filter 0.3s ease; cursor: pointer; }",
            ".segment:hover { filter: brightness(1.1); }",
            "</style>",
            "</defs>",
            f'<rect width="{width}" height="{height}" fill="url(#bgGradient)" rx="15" ry="15" />',
        ]

        if not flags.hide_border:
            lines.append(
                f'<rect width="{width}" height="{height}" fill="none" '
                f'stroke="{palette.border}" stroke-width="1" rx="15" ry="15" />'
            )

        if not flags.hide_title:
            title = escape(flags.custom_title or DEFAULT_TITLE)
            lines.append(f'<text x="{layout.PADDING}" y="40" class="chart-title">{title}</text>')

        return "\n".join(lines)

    def _badge(self, canvas: Canvas, palette: ThemePalette, processing_time_ms: float) -> str:
        x = canvas.width - 140
        return (
            f'<g class="badge"><rect x="{x}" y="20" width="120" height="25" '
            f'fill="{palette.accent}" rx="12" opacity="0.9" filter="url(#shadow)" />'
            f'<text x="{x + 60}" y="37" class="badge-text">{processing_time_ms:.1f}ms</text></g>'
        )

    def _empty(self, canvas: Canvas, palette: ThemePalette) -> str:
        x = canvas.chart_size / 2
        y = (canvas.chart_size + canvas.header_height) / 2
        return (
            f'<text x="{fmt(x)}" y="{fmt(y)}" class="stats-text" text-anchor="middle">'
            "No language data available</text>"
        )

    def _circle(
        self,
        entries: Sequence[LanguageEntry],
        canvas: Canvas,
        kind: ChartKind,
        show_percentages: bool,
    ) -> str:
        circle = layout.circle_for(canvas, kind)
        angles = layout.sweep_angles([e.percentage for e in entries])
        lines = []

        for entry, (start, sweep) in zip(entries, angles):
            name = escape(entry.name)
            lines.append(
                f'<path d="{layout.segment_path(circle, start, sweep)}" fill="{entry.color}" '
                f'fill-rule="evenodd" class="segment" filter="url(#shadow)">'
                f"<title>{name}: {entry.percentage:.1f}% ({entry.repo_count} "
                f"{_plural(entry.repo_count, 'repo', 'repos')})</title></path>"
            )

            if show_percentages and layout.shows_label(entry.percentage):
                x, y = layout.label_position(circle, start, sweep)
                lines.append(
                    f'<text x="{fmt(x)}" y="{fmt(y)}" class="percentage-text" '
                    f'filter="url(#glow)">{entry.percentage:.1f}%</text>'
                )

        if kind == ChartKind.DONUT:
            total_repos = sum(e.repo_count for e in entries)
            lines.append(
                f'<text x="{fmt(circle.cx)}" y="{fmt(circle.cy - 10)}" class="language-name" '
                f'text-anchor="middle">{total_repos}</text>'
            )
            lines.append(
                f'<text x="{fmt(circle.cx)}" y="{fmt(circle.cy + 10)}" class="stats-text" '
                f'text-anchor="middle">{_plural(total_repos, "repository", "repositories")}</text>'
            )

        return "\n".join(lines)

    def _bars(
        self,
        entries: Sequence[LanguageEntry],
        canvas: Canvas,
        palette: ThemePalette,
        show_percentages: bool,
    ) -> str:
        padding = layout.PADDING
        chart_height = canvas.height - canvas.header_height - padding * 2 - 20
        track_width = (canvas.chart_size - padding * 2) * layout.BAR_TRACK_SCALE
        height = layout.bar_height(chart_height, len(entries))
        start_y = canvas.header_height + 20
        lines = []

        for index, entry in enumerate(entries):
            y = start_y + index * (height + layout.BAR_GAP)
            width = entry.percentage / 100 * track_width
            text_y = y + height / 2 + 5
            name = escape(entry.name)

            lines.extend(
                [
                    f'<rect x="{padding}" y="{fmt(y)}" width="{fmt(track_width)}" '
                    f'height="{fmt(height)}" fill="{palette.track}" rx="6" ry="6" '
                    f'stroke="{palette.track_stroke}" stroke-width="1" />',
                    f'<linearGradient id="bar{index}" x1="0%" y1="0%" x2="100%" y2="0%">'
                    f'<stop offset="0%" stop-color="{entry.color}" stop-opacity="1" />'
                    f'<stop offset="100%" stop-color="{entry.color}" stop-opacity="0.8" />'
                    "</linearGradient>",
                    f'<rect x="{padding}" y="{fmt(y)}" width="{fmt(width)}" height="{fmt(height)}" '
                    f'fill="url(#bar{index})" class="segment" filter="url(#shadow)" rx="6" ry="6">'
                    f"<title>{name}: {entry.percentage:.1f}% ({entry.repo_count} "
                    f"{_plural(entry.repo_count, 'repo', 'repos')})</title>"
                    f'<animate attributeName="width" from="0" to="{fmt(width)}" dur="1.5s" '
                    f'fill="freeze" begin="{fmt(index * 0.2)}s" /></rect>',
                    f'<text x="{padding + 12}" y="{fmt(text_y)}" class="language-name">{name}</text>',
                ]
            )

            if show_percentages:
                lines.append(
                    f'<text x="{fmt(padding + track_width - 12)}" y="{fmt(text_y)}" '
                    f'class="percentage-text" style="text-anchor: end; fill: {entry.color}">'
                    f"{entry.percentage:.1f}%</text>"
                )

        return "\n".join(lines)

    def _legend(
        self, entries: Sequence[LanguageEntry], canvas: Canvas, palette: ThemePalette
    ) -> str:
        shown = list(entries[: layout.LEGEND_MAX_ROWS])
        start_x = canvas.chart_size + layout.PADDING * 2
        start_y = layout.LEGEND_TOP
        legend_width = layout.LEGEND_WIDTH
        row_height = layout.legend_row_height(canvas.height, len(shown))

        lines = [
            f'<text x="{start_x}" y="40" class="chart-title">{LEGEND_TITLE}</text>',
            f'<rect x="{start_x - 10}" y="60" width="{legend_width - 20}" '
            f'height="{fmt(len(shown) * row_height + 80)}" fill="{palette.text}" '
            f'fill-opacity="0.02" stroke="{palette.text}" stroke-opacity="0.12" '
            f'stroke-width="1" rx="10" ry="10" />',
        ]

        for index, entry in enumerate(shown):
            y = start_y + index * row_height
            name = escape(layout.truncate_name(entry.name))
            repos = f"{entry.repo_count} {_plural(entry.repo_count, 'repo', 'repos')}"
            lines.extend(
                [
                    "<g>",
                    f'<circle cx="{start_x + 8}" cy="{fmt(y - 2)}" r="8" fill="{entry.color}" '
                    f'filter="url(#shadow)" />',
                    f'<text x="{start_x + 25}" y="{fmt(y + 2)}" class="language-name">{name}</text>',
                    f'<text x="{start_x + legend_width - 40}" y="{fmt(y + 2)}" class="stats-text" '
                    f'text-anchor="end">{entry.percentage:.1f}%</text>',
                    f'<text x="{start_x + 25}" y="{fmt(y + 18)}" class="stats-text">'
                    f"{format_bytes(entry.bytes)} • {repos}</text>",
                    "</g>",
                ]
            )

        total_repos = sum(e.repo_count for e in shown)
        total_bytes = sum(e.bytes for e in shown)
        stats_y = start_y + len(shown) * row_height + 25
        lines.extend(
            [
                f'<line x1="{start_x}" y1="{fmt(stats_y)}" x2="{start_x + legend_width - 50}" '
                f'y2="{fmt(stats_y)}" stroke="{palette.text}" stroke-width="1" opacity="0.3" />',
                f'<text x="{start_x}" y="{fmt(stats_y + 20)}" class="stats-text">'
                f"Total: {format_bytes(total_bytes)}</text>",
                f'<text x="{start_x}" y="{fmt(stats_y + 35)}" class="stats-text">'
                f"{total_repos} {_plural(total_repos, 'Repository', 'Repositories')}</text>",
            ]
        )
        return "\n".join(lines)
