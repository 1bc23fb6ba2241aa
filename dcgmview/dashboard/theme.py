"""Display preferences for the dcgmview dashboard."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ThemeMode = Literal["dark", "light", "mono"]

# Empty cell followed by one to eight eighths of a block.
BAR_GLYPHS = " ▁▂▃▄▅▆▇█"

_PALETTES = {
    "dark": {"bar": "cyan", "stats": "grey70", "title": "bold white", "border": "grey50"},
    "light": {"bar": "blue", "stats": "grey30", "title": "bold black", "border": "grey50"},
    "mono": {"bar": "default", "stats": "default", "title": "bold", "border": "default"},
}


@dataclass(slots=True)
class ThemePreferences:
    """Styles used when drawing metric panels."""

    mode: ThemeMode = "dark"
    glyphs: str = BAR_GLYPHS

    def __post_init__(self) -> None:
        validate_theme_mode(self.mode)
        if len(self.glyphs) != 9:
            raise ValueError("glyphs must hold an empty cell plus eight bar levels")

    @property
    def bar_style(self) -> str:
        return _PALETTES[self.mode]["bar"]

    @property
    def stats_style(self) -> str:
        return _PALETTES[self.mode]["stats"]

    @property
    def title_style(self) -> str:
        return _PALETTES[self.mode]["title"]

    @property
    def border_style(self) -> str:
        return _PALETTES[self.mode]["border"]


def validate_theme_mode(mode: str) -> ThemeMode:
    if mode not in _PALETTES:
        raise ValueError("Unsupported theme mode")
    return mode  # type: ignore[return-value]
