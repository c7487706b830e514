"""Theme palettes."""

from .models import Theme, ThemePalette

PALETTES: dict[Theme, ThemePalette] = {
    Theme.DARK: ThemePalette(
        background="#0d1117",
        background_end="#161b22",
        text="#e6edf3",
        muted_text="#7d8590",
        border="#21262d",
        accent="#238636",
        track="#21262d",
        track_stroke="#30363d",
        shadow="#000000",
    ),
    Theme.LIGHT: ThemePalette(
        background="#ffffff",
        background_end="#f6f8fa",
        text="#24292f",
        muted_text="#656d76",
        border="#d0d7de",
        accent="#0969da",
        track="#f6f8fa",
        track_stroke="#d0d7de",
        shadow="#00000020",
    ),
}


def palette_for(theme: Theme | str) -> ThemePalette:
    """Resolve a theme name; anything other than dark renders light."""
    return PALETTES[Theme.DARK] if theme == Theme.DARK else PALETTES[Theme.LIGHT]
