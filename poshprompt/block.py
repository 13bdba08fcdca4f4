"""Blocks: groups of segments rendered together on one part of the prompt."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .ansi import Ansi
from .colors import BACKGROUND, FOREGROUND, TRANSPARENT
from .segment import Environment, Segment, SegmentStyle, SegmentTiming
from .writer import AnsiWriter


class BlockType(StrEnum):
    PROMPT = "prompt"
    LINE_BREAK = "newline"
    RPROMPT = "rprompt"


class BlockAlignment(StrEnum):
    LEFT = "left"
    RIGHT = "right"


@dataclass
class Block:
    """A part of the prompt holding zero or more segments."""

    type: str = ""
    alignment: str = ""
    horizontal_offset: int = 0
    vertical_offset: int = 0
    segments: list[Segment] = field(default_factory=list)
    newline: bool = False
    filler: str = ""

    _env: Any = field(default=None, init=False, repr=False, compare=False)
    _writer: Any = field(default=None, init=False, repr=False, compare=False)
    _ansi: Ansi | None = field(default=None, init=False, repr=False, compare=False)
    _active: Segment | None = field(default=None, init=False, repr=False, compare=False)
    _previous: Segment | None = field(default=None, init=False, repr=False, compare=False)

    def init(self, env: Environment, writer: Any, ansi: Ansi) -> None:
        """Attach the environment and writer, then evaluate the segments."""
        self._env = env
        self._writer = writer
        self._ansi = ansi
        self._execute_segment_logic()

    def init_plain(self, env: Environment, config: Any) -> None:
        """Like init, but with unescaped sequences and a fresh color writer."""
        self._ansi = Ansi.plain()
        self._writer = AnsiWriter(
            ansi=self._ansi,
            ansi_colors=config.make_colors(env),
            terminal_background=config.terminal_background,
        )
        self._env = env
        self._execute_segment_logic()

    def _execute_segment_logic(self) -> None:
        if getattr(self._env.flags(), "debug", False):
            return
        if not self.segments:
            return
        with ThreadPoolExecutor() as pool:
            list(pool.map(lambda s: s.set_enabled(self._env), self.segments))
        with ThreadPoolExecutor() as pool:
            list(pool.map(lambda s: s.set_text(), self.segments))

    def _set_active_segment(self, segment: Segment) -> None:
        self._active = segment
        self._writer.set_colors(segment.background_color(), segment.foreground_color())

    def enabled(self) -> bool:
        if self.type == BlockType.LINE_BREAK:
            return True
        return any(segment.enabled for segment in self.segments)

    def render_segments(self) -> tuple[str, int]:
        """Render all active segments; returns the text and its visible length."""
        try:
            for segment in self.segments:
                if not segment.enabled and segment.style != SegmentStyle.ACCORDION:
                    continue
                self._set_active_segment(segment)
                self._render_active_segment()
            self._write_powerline(final=True)
            self._writer.clear_parent_colors()
            return self._writer.result()
        finally:
            self._writer.reset()

    def _render_active_segment(self) -> None:
        self._write_powerline(final=False)
        active = self._active
        style = active.style
        if style in (SegmentStyle.PLAIN, SegmentStyle.POWERLINE):
            self._writer.write(BACKGROUND, FOREGROUND, active.text)
        elif style == SegmentStyle.DIAMOND:
            self._writer.write(TRANSPARENT, BACKGROUND, active.leading_diamond)
            self._writer.write(BACKGROUND, FOREGROUND, active.text)
            self._writer.write(TRANSPARENT, BACKGROUND, active.trailing_diamond)
        elif style == SegmentStyle.ACCORDION and active.enabled:
            self._writer.write(BACKGROUND, FOREGROUND, active.text)
        self._previous = active
        self._writer.set_parent_colors(active.background_color(), active.foreground_color())

    def _powerline_symbol(self) -> str:
        if self._active.is_powerline():
            return self._active.powerline_symbol
        if self._previous is not None and self._previous.is_powerline():
            return self._previous.powerline_symbol
        return ""

    def _write_powerline(self, final: bool) -> None:
        if self._active is None:
            return
        symbol = self._powerline_symbol()
        if not symbol:
            return
        bg_color = BACKGROUND
        if final or not self._active.is_powerline():
            bg_color = TRANSPARENT
        if self._active.style == SegmentStyle.DIAMOND and not self._active.leading_diamond:
            bg_color = BACKGROUND
        if self._active.invert_powerline:
            self._writer.write(self._powerline_color(), bg_color, symbol)
            return
        self._writer.write(bg_color, self._powerline_color(), symbol)

    def _powerline_color(self) -> str:
        previous = self._previous
        if previous is None:
            return TRANSPARENT
        if previous.style == SegmentStyle.DIAMOND and not previous.trailing_diamond:
            return previous.background_color()
        if self._active.style == SegmentStyle.DIAMOND and not self._active.leading_diamond:
            return previous.background_color()
        if not previous.is_powerline():
            return TRANSPARENT
        return previous.background_color()

    def debug(self) -> tuple[int, list[SegmentTiming]]:
        """Evaluate and render each segment one by one, timing each of them."""
        timings: list[SegmentTiming] = []
        largest = 0
        for segment in self.segments:
            timing = SegmentTiming(name=str(segment.type))
            largest = max(largest, timing.name_length)
            start = time.perf_counter()
            segment.set_enabled(self._env)
            segment.set_text()
            timing.active = segment.enabled
            if timing.active or segment.style == SegmentStyle.ACCORDION:
                self._set_active_segment(segment)
                self._render_active_segment()
                timing.text, _ = self._writer.result()
                self._writer.reset()
            timing.duration = time.perf_counter() - start
            timings.append(timing)
        return largest, timings