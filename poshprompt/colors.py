"""Translation of color names, hex values and palette references into ANSI codes."""

from __future__ import annotations

import string
from dataclasses import dataclass, field
from typing import Protocol

from .palette import Palette, PaletteKeyError, PaletteRecursiveKeyError

TRANSPARENT = "transparent"
ACCENT = "accent"
PARENT_BACKGROUND = "parentBackground"
PARENT_FOREGROUND = "parentForeground"
BACKGROUND = "background"
FOREGROUND = "foreground"


class AnsiColor(str):
    """An ANSI color code ready to print, such as "38;2;255;255;255" or "31"."""

    def is_empty(self) -> bool:
        return self == ""

    def is_transparent(self) -> bool:
        return self == TRANSPARENT

    def to_foreground(self) -> AnsiColor:
        if self.startswith("38;"):
            return AnsiColor(self.replace("38;", "48;", 1))
        return self


EMPTY_ANSI_COLOR = AnsiColor("")
TRANSPARENT_ANSI_COLOR = AnsiColor(TRANSPARENT)

# color name -> (foreground code, background code)
_ANSI_COLOR_CODES: dict[str, tuple[str, str]] = {
    "black": ("30", "40"),
    "red": ("31", "41"),
    "green": ("32", "42"),
    "yellow": ("33", "43"),
    "blue": ("34", "44"),
    "magenta": ("35", "45"),
    "cyan": ("36", "46"),
    "white": ("37", "47"),
    "default": ("39", "49"),
    "darkGray": ("90", "100"),
    "lightRed": ("91", "101"),
    "lightGreen": ("92", "102"),
    "lightYellow": ("93", "103"),
    "lightBlue": ("94", "104"),
    "lightMagenta": ("95", "105"),
    "lightCyan": ("96", "106"),
    "lightWhite": ("97", "107"),
}

_HEX_DIGITS = frozenset(string.hexdigits)


@dataclass
class Color:
    background: str = ""
    foreground: str = ""


class _ColorSource(Protocol):
    def ansi_color_from_string(self, color_string: str, is_background: bool) -> AnsiColor: ...


def is_ansi_color_name(color_string: str) -> bool:
    return color_string in _ANSI_COLOR_CODES


def _hex_to_ansi(color_string: str, is_background: bool) -> AnsiColor:
    digits = color_string.strip().removeprefix("#").lower()
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    if len(digits) != 6 or not set(digits) <= _HEX_DIGITS:
        return EMPTY_ANSI_COLOR
    red, green, blue = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
    kind = "48" if is_background else "38"
    return AnsiColor(f"{kind};2;{red};{green};{blue}")


@dataclass
class DefaultColors:
    """Resolves named ANSI colors, hex colors and the accent color."""

    accent: Color | None = None

    def ansi_color_from_string(self, color_string: str, is_background: bool) -> AnsiColor:
        if not color_string:
            return EMPTY_ANSI_COLOR
        if color_string == TRANSPARENT:
            return TRANSPARENT_ANSI_COLOR
        if color_string == ACCENT:
            if self.accent is None:
                return EMPTY_ANSI_COLOR
            return AnsiColor(self.accent.background if is_background else self.accent.foreground)
        codes = _ANSI_COLOR_CODES.get(color_string)
        if codes is not None:
            return AnsiColor(codes[1] if is_background else codes[0])
        return _hex_to_ansi(color_string, is_background)

    def set_accent_color(self, default_color: str) -> None:
        if not default_color:
            return
        self.accent = Color(
            background=str(self.ansi_color_from_string(default_color, True)),
            foreground=str(self.ansi_color_from_string(default_color, False)),
        )


@dataclass
class PaletteColors:
    """Looks colors up in a palette before converting them to ANSI codes."""

    ansi_colors: _ColorSource
    palette: Palette

    def ansi_color_from_string(self, color_string: str, is_background: bool) -> AnsiColor:
        try:
            resolved = self.palette.resolve_color(color_string)
        except (PaletteKeyError, PaletteRecursiveKeyError):
            return EMPTY_ANSI_COLOR
        return self.ansi_colors.ansi_color_from_string(resolved, is_background)


@dataclass
class CachedColors:
    """Caches color lookups of the wrapped source."""

    ansi_colors: _ColorSource
    cache: dict[tuple[str, bool], AnsiColor] = field(default_factory=dict)

    def ansi_color_from_string(self, color_string: str, is_background: bool) -> AnsiColor:
        key = (color_string, is_background)
        if key not in self.cache:
            self.cache[key] = self.ansi_colors.ansi_color_from_string(color_string, is_background)
        return self.cache[key]


def make_colors(
    palette: Palette | None, cache_enabled: bool, accent_color: str
) -> DefaultColors | PaletteColors | CachedColors:
    """Build the color source for a configuration."""
    default_colors = DefaultColors()
    default_colors.set_accent_color(accent_color)
    colors: DefaultColors | PaletteColors | CachedColors = default_colors
    if palette is not None:
        colors = PaletteColors(ansi_colors=colors, palette=palette)
    if cache_enabled:
        colors = CachedColors(ansi_colors=colors)
    return colors