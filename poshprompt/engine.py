"""The prompt engine: renders blocks, right prompts, tooltips and extra prompts."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from .ansi import BASH, CMD, FISH, NU, PLAIN, PWSH, PWSH5, ZSH, Ansi
from .block import Block, BlockAlignment, BlockType
from .config import Config
from .segment import Environment, Segment, SegmentTiming, resolve_color_templates

_PROMPT_BREATHING_ROOM = 30


class ExtraPromptType(IntEnum):
    TRANSIENT = 0
    VALID = 1
    ERROR = 2
    SECONDARY = 3
    DEBUG = 4


_DEFAULT_EXTRA_TEMPLATES = {
    ExtraPromptType.DEBUG: "[DBG]: ",
    ExtraPromptType.TRANSIENT: "{{ .Shell }}> ",
    ExtraPromptType.SECONDARY: "> ",
}


def _format_duration(seconds: float) -> str:
    if seconds >= 1:
        return f"{seconds:.3f}s"
    if seconds >= 0.001:
        return f"{seconds * 1000:.3f}ms"
    return f"{seconds * 1_000_000:.3f}µs"


@dataclass
class Engine:
    """Builds the prompt strings for a shell from a configuration."""

    env: Environment
    config: Config | None = None
    writer: Any = None
    ansi: Ansi | None = None
    plain: bool = False

    current_line_length: int = field(default=0, init=False)
    rprompt: str = field(default="", init=False)
    rprompt_length: int = field(default=0, init=False)
    _console: list[str] = field(default_factory=list, init=False, repr=False)

    def _write(self, text: str) -> None:
        self._console.append(text)

    def _write_ansi(self, text: str) -> None:
        if self.plain:
            return
        self._console.append(text)

    def _string(self) -> str:
        return "".join(self._console)

    def _terminal_width(self) -> int | None:
        try:
            return self.env.terminal_width()
        except OSError:
            return None

    def _console_title(self) -> str:
        try:
            title = self.env.render_template(self.config.console_title_template, None)
        except ValueError:
            title = ""
        return self.ansi.title(self.ansi.trim_ansi(title))

    def can_write_rprompt(self) -> bool:
        """Whether the right prompt fits next to the current line."""
        console_width = self._terminal_width()
        if not console_width:
            return True
        prompt_width = self.current_line_length
        available = console_width - prompt_width
        if available < 0:
            overflow = prompt_width % console_width
            available = console_width - overflow
        return available - self.rprompt_length >= _PROMPT_BREATHING_ROOM

    def print_primary(self) -> str:
        for block in self.config.blocks:
            self._render_block(block)
        if self.config.console_title_template:
            self._write_ansi(self._console_title())
        self._write_ansi(self.ansi.color_reset())
        if self.config.final_space:
            self._write(" ")
        if self.config.osc99:
            self._write_ansi(self.ansi.console_pwd(self.env.pwd()))
        return self._print()

    def _newline(self) -> None:
        self._write("\n")
        self.current_line_length = 0

    def _should_fill(self, block: Block, length: int) -> tuple[str, bool]:
        if not block.filler:
            return "", False
        terminal_width = self._terminal_width()
        if terminal_width is None:
            return "", False
        pad_length = terminal_width - self.current_line_length - length
        if pad_length <= 0:
            return "", False
        self.writer.write("", "", block.filler)
        filler, filler_length = self.writer.result()
        self.writer.reset()
        if filler_length == 0:
            return "", False
        return filler * (pad_length // filler_length), True

    def _render_block(self, block: Block) -> None:
        shell = self.env.shell()
        # bash needs the right prompt written plain and wrapped in escape markers
        if block.type == BlockType.RPROMPT and shell == BASH:
            block.init_plain(self.env, self.config)
        else:
            block.init(self.env, self.writer, self.ansi)
        if not block.enabled():
            return
        if block.newline:
            self._newline()
        if block.type == BlockType.LINE_BREAK:
            self._newline()
        elif block.type == BlockType.PROMPT:
            if block.vertical_offset:
                self._write_ansi(self.ansi.change_line(block.vertical_offset))
            if block.alignment == BlockAlignment.RIGHT:
                text, length = block.render_segments()
                pad_text, ok = self._should_fill(block, length)
                if ok:
                    self._write(pad_text)
                self._write_ansi(self.ansi.carriage_forward())
                self._write_ansi(self.ansi.cursor_for_right_write(length, block.horizontal_offset))
                self.current_line_length = 0
                self._write(text)
            elif block.alignment == BlockAlignment.LEFT:
                text, length = block.render_segments()
                self.current_line_length += length
                self._write(text)
        elif block.type == BlockType.RPROMPT:
            text, length = block.render_segments()
            self.rprompt_length = length
            if shell == BASH:
                text = self.ansi.format_text(text)
            self.rprompt = text
        # PowerShell colors the rest of the line unless it is cleared explicitly.
        if shell in (PWSH, PWSH5):
            self._write_ansi(self.ansi.clear_after())

    def print_debug(self, start_time: float, version: str) -> str:
        """Timings for every segment, followed by paths and logs.

        start_time is a time.perf_counter() value taken when the run started.
        """
        self._write(f"\n\x1b[1mVersion:\x1b[0m {version}\n")
        self._write("\n\x1b[1mSegments:\x1b[0m\n\n")
        title_start = time.perf_counter()
        title = self._console_title().removeprefix("\x1b]0;").removesuffix("\a")
        timings = [
            SegmentTiming(
                name="ConsoleTitle",
                active=bool(self.config.console_title_template),
                text=title,
                duration=time.perf_counter() - title_start,
            )
        ]
        largest = 0
        for block in self.config.blocks:
            block.init(self.env, self.writer, self.ansi)
            longest, block_timings = block.debug()
            timings.extend(block_timings)
            largest = max(largest, longest)
        largest += 7
        for timing in timings:
            name = f"{timing.name}({timing.active})"
            millis = int(timing.duration * 1000)
            self._write(f"{name:<{largest}} - {millis:3d} ms - {timing.text}\n")
        elapsed = _format_duration(time.perf_counter() - start_time)
        self._write(f"\n\x1b[1mRun duration:\x1b[0m {elapsed}\n")
        self._write(f"\n\x1b[1mCache path:\x1b[0m {self.env.cache_path()}\n")
        config_path = getattr(self.env.flags(), "config", "")
        self._write(f"\n\x1b[1mConfig path:\x1b[0m {config_path}\n")
        self._write("\n\x1b[1mLogs:\x1b[0m\n\n")
        self._write(self.env.logs())
        return self._string()

    def _print(self) -> str:
        shell = self.env.shell()
        if shell == ZSH:
            if getattr(self.env.flags(), "eval", False):
                escaped = self._string().replace('"', '\\"')
                return f'PS1="{escaped}"\nRPROMPT="{self.rprompt}"'
        elif shell in (PWSH, PWSH5, BASH, PLAIN, NU):
            if self.rprompt and self.can_write_rprompt() and not self.plain:
                self._write(self.ansi.save_cursor_position())
                self._write(self.ansi.carriage_forward())
                self._write(self.ansi.cursor_for_right_write(self.rprompt_length, 0))
                self._write(self.rprompt)
                self._write(self.ansi.restore_cursor_position())
        return self._string()

    def print_tooltip(self, tip: str) -> str:
        tip = tip.strip(" ")
        tooltip: Segment | None = None
        for candidate in self.config.tooltips:
            if candidate.should_invoke_with_tip(tip):
                tooltip = candidate
        if tooltip is None:
            return ""
        try:
            tooltip.map_writer(self.env)
        except ValueError:
            return ""
        if not tooltip.writer.enabled():
            return ""
        tooltip.enabled = True
        block = Block(alignment=BlockAlignment.RIGHT, segments=[tooltip])
        shell = self.env.shell()
        if shell in (ZSH, CMD, FISH):
            block.init(self.env, self.writer, self.ansi)
            if not block.enabled():
                return ""
            text, _ = block.render_segments()
            return text
        if shell in (PWSH, PWSH5):
            block.init_plain(self.env, self.config)
            if not block.enabled():
                return ""
            text, length = block.render_segments()
            self._write(self.ansi.clear_after())
            self._write(self.ansi.carriage_forward())
            self._write(self.ansi.cursor_for_right_write(length, 0))
            self._write(text)
            return self._string()
        return ""

    def _extra_prompt(self, prompt_type: ExtraPromptType) -> Segment | None:
        return {
            ExtraPromptType.DEBUG: self.config.debug_prompt,
            ExtraPromptType.TRANSIENT: self.config.transient_prompt,
            ExtraPromptType.VALID: self.config.valid_line,
            ExtraPromptType.ERROR: self.config.error_line,
            ExtraPromptType.SECONDARY: self.config.secondary_prompt,
        }[prompt_type]

    def print_extra_prompt(self, prompt_type: ExtraPromptType) -> str:
        prompt_type = ExtraPromptType(prompt_type)
        prompt = self._extra_prompt(prompt_type) or Segment()
        template = prompt.template or _DEFAULT_EXTRA_TEMPLATES.get(prompt_type, "")
        try:
            prompt_text = self.env.render_template(template, None)
        except ValueError as err:
            prompt_text = str(err)
        foreground = resolve_color_templates(prompt.foreground_templates, None, self.env, prompt.foreground)
        background = resolve_color_templates(prompt.background_templates, None, self.env, prompt.background)
        self.writer.set_colors(background, foreground)
        self.writer.write(background, foreground, prompt_text)
        shell = self.env.shell()
        if shell == ZSH:
            text, _ = self.writer.result()
            if prompt_type == ExtraPromptType.TRANSIENT:
                escaped = text.replace('"', '""')
                return f'PS1="{escaped}"\nRPROMPT=""'
            return text
        if shell in (PWSH, PWSH5, CMD, BASH, FISH, NU):
            text, _ = self.writer.result()
            return text
        return ""

    def print_rprompt(self) -> str:
        block = next((b for b in self.config.blocks if b.type == BlockType.RPROMPT), None)
        if block is None:
            return ""
        block.init(self.env, self.writer, self.ansi)
        if not block.enabled():
            return ""
        text, length = block.render_segments()
        self.rprompt_length = length
        return text