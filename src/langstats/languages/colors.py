"""Deterministic language colors."""

from ..charts.models import Theme

# GitHub linguist colors for common languages
LANGUAGE_COLORS: dict[str, str] = {
    "JavaScript": "#f1e05a",
    "TypeScript": "#3178c6",
    "Python": "#3572A5",
    "Java": "#b07219",
    "C#": "#239120",
    "C++": "#f34b7d",
    "C": "#555555",
    "PHP": "#4F5D95",
    "Ruby": "#701516",
    "Go": "#00ADD8",
    "Rust": "#dea584",
    "Swift": "#ffac45",
    "Kotlin": "#F18E33",
    "Dart": "#0175C2",
    "Scala": "#c22d40",
    "R": "#198CE7",
    "Perl": "#0298c3",
    "Haskell": "#5e5086",
    "Lua": "#000080",
    "Shell": "#89e051",
    "PowerShell": "#012456",
    "HTML": "#e34c26",
    "CSS": "#1572B6",
    "SCSS": "#c6538c",
    "Less": "#1d365d",
    "Vue": "#4FC08D",
    "Svelte": "#ff3e00",
    "Objective-C": "#438eff",
    "Objective-C++": "#6866fb",
    "Assembly": "#6E4C13",
    "Dockerfile": "#384d54",
    "YAML": "#cb171e",
    "JSON": "#292929",
    "Markdown": "#083fa1",
    "XML": "#0060ac",
    "SQL": "#e38c00",
    "PLSQL": "#dad8d8",
    "MATLAB": "#e16737",
    "Jupyter Notebook": "#DA5B0B",
    "Vim Script": "#199f4b",
    "Emacs Lisp": "#c065db",
    "Makefile": "#427819",
    "CMake": "#DA3434",
    "Nix": "#7e7eff",
    "Elixir": "#6e4a7e",
    "Erlang": "#B83998",
    "Clojure": "#db5855",
    "F#": "#b845fc",
    "Julia": "#a270ba",
    "Nim": "#ffc200",
    "Crystal": "#000100",
    "Zig": "#ec915c",
    "V": "#4f87c4",
}

# (saturation, lightness) of generated colors per theme
_GENERATED_TONE: dict[Theme, tuple[int, int]] = {
    Theme.DARK: (70, 60),
    Theme.LIGHT: (60, 45),
}


def name_hash(name: str) -> int:
    """Signed 32-bit ``h * 31 + c`` string hash."""
    h = 0
    for char in name:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def color_for_language(name: str, theme: Theme | str = Theme.DARK) -> str:
    """Return the display color for a language.

    Known languages use the fixed palette. Anything else gets an HSL color whose
    hue is derived from a stable hash of the name, so the same name always maps
    to the same color for a given theme.

    Args:
        name: Language name
        theme: Chart theme

    Returns:
        CSS color string
    """
    known = LANGUAGE_COLORS.get(name)
    if known:
        return known

    tone = Theme.DARK if theme == Theme.DARK else Theme.LIGHT
    saturation, lightness = _GENERATED_TONE[tone]
    hue = abs(name_hash(name)) % 360
    return f"hsl({hue}, {saturation}%, {lightness}%)"
