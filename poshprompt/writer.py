"""Writers that turn colored prompt text into ANSI or plain strings."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .ansi import Ansi
from .colors import (
    BACKGROUND,
    FOREGROUND,
    PARENT_BACKGROUND,
    PARENT_FOREGROUND,
    TRANSPARENT,
    AnsiColor,
    CachedColors,
    Color,
    DefaultColors,
    PaletteColors,
)

COLOR_REGEX = r"<(?P<foreground>[^,>]+)?,?(?P<background>[^>]+)?>(?P<content>[^<]*)</>"

_COLOR_PATTERN = re.compile(COLOR_REGEX)

_KEYWORDS = frozenset({TRANSPARENT, PARENT_BACKGROUND, PARENT_FOREGROUND, BACKGROUND, FOREGROUND})


@dataclass(frozen=True)
class _Override:
    whole: str
    foreground: str
    background: str
    content: str


def _find_overrides(text: str) -> list[_Override]:
    return [
        _Override(
            whole=match.group(0),
            foreground=match.group("foreground") or "",
            background=match.group("background") or "",
            content=match.group("content") or "",
        )
        for match in _COLOR_PATTERN.finditer(text)
    ]


@dataclass
class AnsiWriter:
    """Writes text wrapped in ANSI color sequences and tracks its visible length."""

    ansi: Ansi
    ansi_colors: DefaultColors | PaletteColors | CachedColors
    terminal_background: str = ""
    colors: Color | None = None
    parent_colors: list[Color | None] | None = None
    _parts: list[str] = field(default_factory=list, init=False, repr=False)
    _length: int = field(default=0, init=False, repr=False)

    def set_colors(self, background: str, foreground: str) -> None:
        self.colors = Color(background=background, foreground=foreground)

    def set_parent_colors(self, background: str, foreground: str) -> None:
        """Push colors of the previous segment; the most recent comes first."""
        if self.parent_colors is None:
            self.parent_colors = []
        self.parent_colors.insert(0, Color(background=background, foreground=foreground))

    def clear_parent_colors(self) -> None:
        self.parent_colors = None

    def _ansi_from(self, color_string: str, is_background: bool) -> AnsiColor:
        return self.ansi_colors.ansi_color_from_string(color_string, is_background)

    def _write_colored_text(self, background: AnsiColor, foreground: AnsiColor, text: str) -> None:
        if not text or (foreground.is_transparent() and background.is_transparent()):
            return
        self._length += self.ansi.measure_text(text)
        if foreground.is_empty():
            foreground = self._ansi_from("white", False)
        if foreground.is_transparent() and not background.is_empty() and self.terminal_background:
            terminal = self._ansi_from(self.terminal_background, False)
            self._parts.append(self.ansi.color_full % (background.to_foreground(), terminal, text))
            return
        if foreground.is_transparent() and not background.is_empty():
            self._parts.append(self.ansi.color_transparent % (background, text))
            return
        if background.is_empty() or background.is_transparent():
            self._parts.append(self.ansi.color_single % (foreground, text))
            return
        self._parts.append(self.ansi.color_full % (background, foreground, text))

    def _write_and_remove(
        self,
        background: AnsiColor,
        foreground: AnsiColor,
        text: str,
        text_to_remove: str,
        parent_text: str,
    ) -> str:
        self._write_colored_text(background, foreground, text)
        return parent_text.replace(text_to_remove, "", 1)

    def write(self, background: str, foreground: str, text: str) -> None:
        """Write text in the given colors, honouring inline <fg,bg>...</> overrides."""
        if not text:
            return
        bg_ansi, fg_ansi = self._as_ansi_colors(background, foreground)
        text = self.ansi.format_styles(text)
        text = self.ansi.generate_hyperlink(text)

        for override in _find_overrides(text):
            bg_override = override.background
            if override.foreground == TRANSPARENT and not bg_override:
                bg_override = background
            bg_override_ansi, fg_override_ansi = self._as_ansi_colors(
                bg_override, override.foreground
            )
            if bg_override_ansi.is_empty():
                bg_override_ansi = bg_ansi
            if fg_override_ansi.is_empty():
                fg_override_ansi = fg_ansi
            before = text.split(override.whole, 1)[0]
            text = self._write_and_remove(bg_ansi, fg_ansi, before, before, text)
            text = self._write_and_remove(
                bg_override_ansi, fg_override_ansi, override.content, override.whole, text
            )
        self._write_colored_text(bg_ansi, fg_ansi, text)

    def _as_ansi_colors(self, background: str, foreground: str) -> tuple[AnsiColor, AnsiColor]:
        background = self._expand_keyword(background)
        foreground = self._expand_keyword(foreground)
        inverted = foreground == TRANSPARENT and bool(background)
        background_ansi = self._ansi_from(background, not inverted)
        foreground_ansi = self._ansi_from(foreground, False)
        return background_ansi, foreground_ansi

    def _resolve_parent_color(self, keyword: str) -> str:
        for color in self.parent_colors or ():
            if color is None:
                return TRANSPARENT
            if keyword == PARENT_BACKGROUND:
                keyword = color.background
            elif keyword == PARENT_FOREGROUND:
                keyword = color.foreground
            else:
                return keyword
        return keyword

    def _resolve_keyword(self, keyword: str) -> str:
        if keyword == BACKGROUND and self.colors is not None:
            return self.colors.background
        if keyword == FOREGROUND and self.colors is not None:
            return self.colors.foreground
        if keyword in (PARENT_BACKGROUND, PARENT_FOREGROUND) and self.parent_colors is not None:
            return self._resolve_parent_color(keyword)
        return TRANSPARENT

    def _expand_keyword(self, keyword: str) -> str:
        while keyword in _KEYWORDS:
            resolved = self._resolve_keyword(keyword)
            if resolved == keyword:
                break
            keyword = resolved
        return keyword

    def result(self) -> tuple[str, int]:
        """The text written so far and its visible length."""
        return "".join(self._parts), self._length

    def reset(self) -> None:
        self._length = 0
        self._parts.clear()


@dataclass
class PlainWriter:
    """Writes text without any colors, stripping inline color overrides.

    Colors handed to it are remembered, so callers can inspect them, but they
    never reach the output.
    """

    ansi: Ansi
    colors: Color | None = None
    parent_colors: list[Color] | None = None
    _parts: list[str] = field(default_factory=list, init=False, repr=False)
    _length: int = field(default=0, init=False, repr=False)

    def set_colors(self, background: str, foreground: str) -> None:
        """Remember the current colors; plain output does not use them."""
        self.colors = Color(background=background, foreground=foreground)

    def set_parent_colors(self, background: str, foreground: str) -> None:
        """Remember the previous segment's colors; plain output does not use them."""
        if self.parent_colors is None:
            self.parent_colors = []
        self.parent_colors.insert(0, Color(background=background, foreground=foreground))

    def clear_parent_colors(self) -> None:
        """Forget the remembered parent colors."""
        self.parent_colors = None

    def _write_and_remove(self, text: str, text_to_remove: str, parent_text: str) -> str:
        self._length += self.ansi.measure_text(text)
        self._parts.append(text)
        return parent_text.replace(text_to_remove, "", 1)

    def write(self, background: str, foreground: str, text: str) -> None:
        if not text:
            return
        for override in _find_overrides(text):
            before = text.split(override.whole, 1)[0]
            text = self._write_and_remove(before, before, text)
            text = self._write_and_remove(override.content, override.whole, text)
        self._length += self.ansi.measure_text(text)
        self._parts.append(text)

    def result(self) -> tuple[str, int]:
        """The text written so far and its visible length."""
        return "".join(self._parts), self._length

    def reset(self) -> None:
        # The accumulated length is deliberately kept across resets.
        self._parts.clear()