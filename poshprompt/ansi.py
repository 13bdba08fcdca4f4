"""Shell-aware ANSI escape sequences and text measurement for prompts."""

from __future__ import annotations

import re
from dataclasses import dataclass

ZSH = "zsh"
BASH = "bash"
FISH = "fish"
PWSH = "pwsh"
PWSH5 = "powershell"
CMD = "cmd"
NU = "nu"
PLAIN = "plain"

ANSI_REGEX = (
    r"[\x1b\x9b][\[\]()#;?]*(?:(?:(?:[a-zA-Z\d]*(?:;[a-zA-Z\d]*)*)?\x07)"
    r"|(?:(?:\d{1,4}(?:;\d{0,4})*)?[\dA-PRZcf-ntqry=><~]))"
)

_ANSI_PATTERN = re.compile(ANSI_REGEX, re.ASCII)
_HYPERLINK_PATTERN = re.compile(r"(?P<ALL>(?:\[(?P<TEXT>.+)\])(?:\((?P<URL>.*)\)))")
_STYLE_PATTERN = re.compile(
    r"(?P<context><(?P<format>[buisrdfo])>(?P<text>[^<]+)</[buisrdfo]>)"
)

# Characters that carry a special meaning in fish when preceded by a backslash.
_FISH_ESCAPED = frozenset("cabefnrtv$*?~%#(){}[]<>^&;\"'xX0uU")

_STYLE_FIELDS = {
    "b": "bold",
    "u": "underline",
    "o": "overline",
    "i": "italic",
    "s": "strikethrough",
    "d": "dimmed",
    "f": "blink",
    "r": "reverse",
}


@dataclass(frozen=True)
class _Sequences:
    format: str
    linechange: str
    right: str
    left: str
    creset: str
    clear_below: str
    clear_line: str
    save_cursor_position: str
    restore_cursor_position: str
    title: str
    color_single: str
    color_full: str
    color_transparent: str
    escape_left: str
    escape_right: str
    hyperlink: str
    hyperlink_regex: str
    osc99: str
    bold: str
    italic: str
    underline: str
    overline: str
    blink: str
    reverse: str
    dimmed: str
    strikethrough: str


_ZSH_SEQUENCES = _Sequences(
    format="%%{%s%%}",
    linechange="%%{\x1b[%d%s%%}",
    right="%%{\x1b[%dC%%}",
    left="%%{\x1b[%dD%%}",
    creset="%{\x1b[0m%}",
    clear_below="%{\x1b[0J%}",
    clear_line="%{\x1b[K%}",
    save_cursor_position="%{\x1b7%}",
    restore_cursor_position="%{\x1b8%}",
    title="%%{\x1b]0;%s\x07%%}",
    color_single="%%{\x1b[%sm%%}%s%%{\x1b[0m%%}",
    color_full="%%{\x1b[%sm\x1b[%sm%%}%s%%{\x1b[0m%%}",
    color_transparent="%%{\x1b[%s;49m\x1b[7m%%}%s%%{\x1b[0m%%}",
    escape_left="%{",
    escape_right="%}",
    hyperlink="%%{\x1b]8;;%s\x1b\\%%}%s%%{\x1b]8;;\x1b\\%%}",
    hyperlink_regex=r"(?P<STR>%{\x1b]8;;(.+)\x1b\\%}(?P<TEXT>.+)%{\x1b]8;;\x1b\\%})",
    osc99="%%{\x1b]9;9;\"%s\"\x1b\\%%}",
    bold="%%{\x1b[1m%%}%s%%{\x1b[22m%%}",
    italic="%%{\x1b[3m%%}%s%%{\x1b[23m%%}",
    underline="%%{\x1b[4m%%}%s%%{\x1b[24m%%}",
    overline="%%{\x1b[53m%%}%s%%{\x1b[55m%%}",
    blink="%%{\x1b[5m%%}%s%%{\x1b[25m%%}",
    reverse="%%{\x1b[7m%%}%s%%{\x1b[27m%%}",
    dimmed="%%{\x1b[2m%%}%s%%{\x1b[22m%%}",
    strikethrough="%%{\x1b[9m%%}%s%%{\x1b[29m%%}",
)

_BASH_SEQUENCES = _Sequences(
    format="\\[%s\\]",
    linechange="\\[\x1b[%d%s\\]",
    right="\\[\x1b[%dC\\]",
    left="\\[\x1b[%dD\\]",
    creset="\\[\x1b[0m\\]",
    clear_below="\\[\x1b[0J\\]",
    clear_line="\\[\x1b[K\\]",
    save_cursor_position="\\[\x1b7\\]",
    restore_cursor_position="\\[\x1b8\\]",
    title="\\[\x1b]0;%s\x07\\]",
    color_single="\\[\x1b[%sm\\]%s\\[\x1b[0m\\]",
    color_full="\\[\x1b[%sm\x1b[%sm\\]%s\\[\x1b[0m\\]",
    color_transparent="\\[\x1b[%s;49m\x1b[7m\\]%s\\[\x1b[0m\\]",
    escape_left="\\[",
    escape_right="\\]",
    hyperlink="\\[\x1b]8;;%s\x1b\\\\\\]%s\\[\x1b]8;;\x1b\\\\\\]",
    hyperlink_regex=(
        r"(?P<STR>\\\[\x1b\]8;;(.+)\x1b\\\\\\\](?P<TEXT>.+)\\\[\x1b\]8;;\x1b\\\\\\\])"
    ),
    osc99="\\[\x1b]9;9;\"%s\"\x1b\\\\\\]",
    bold="\\[\x1b[1m\\]%s\\[\x1b[22m\\]",
    italic="\\[\x1b[3m\\]%s\\[\x1b[23m\\]",
    underline="\\[\x1b[4m\\]%s\\[\x1b[24m\\]",
    overline="\\[\x1b[53m\\]%s\\[\x1b[55m\\]",
    blink="\\[\x1b[5m\\]%s\\[\x1b[25m\\]",
    reverse="\\[\x1b[7m\\]%s\\[\x1b[27m\\]",
    dimmed="\\[\x1b[2m\\]%s\\[\x1b[22m\\]",
    strikethrough="\\[\x1b[9m\\]%s\\[\x1b[29m\\]",
)

_DEFAULT_SEQUENCES = _Sequences(
    format="%s",
    linechange="\x1b[%d%s",
    right="\x1b[%dC",
    left="\x1b[%dD",
    creset="\x1b[0m",
    clear_below="\x1b[0J",
    clear_line="\x1b[K",
    save_cursor_position="\x1b7",
    restore_cursor_position="\x1b8",
    title="\x1b]0;%s\x07",
    color_single="\x1b[%sm%s\x1b[0m",
    color_full="\x1b[%sm\x1b[%sm%s\x1b[0m",
    color_transparent="\x1b[%s;49m\x1b[7m%s\x1b[0m",
    escape_left="",
    escape_right="",
    hyperlink="\x1b]8;;%s\x1b\\%s\x1b]8;;\x1b\\",
    hyperlink_regex="(?P<STR>\x1b]8;;(.+)\x1b\\\\\\\\?(?P<TEXT>.+)\x1b]8;;\x1b\\\\)",
    osc99="\x1b]9;9;\"%s\"\x1b\\",
    bold="\x1b[1m%s\x1b[22m",
    italic="\x1b[3m%s\x1b[23m",
    underline="\x1b[4m%s\x1b[24m",
    overline="\x1b[53m%s\x1b[55m",
    blink="\x1b[5m%s\x1b[25m",
    reverse="\x1b[7m%s\x1b[27m",
    dimmed="\x1b[2m%s\x1b[22m",
    strikethrough="\x1b[9m%s\x1b[29m",
)

_SHELL_SEQUENCES = {ZSH: _ZSH_SEQUENCES, BASH: _BASH_SEQUENCES}


class Ansi:
    """Escape sequences for one shell, with helpers to build and measure text."""

    def __init__(self, shell: str) -> None:
        self.shell = shell
        self._seq = _SHELL_SEQUENCES.get(shell, _DEFAULT_SEQUENCES)
        self._hyperlink_regex = re.compile(self._seq.hyperlink_regex)
        self.color_single = self._seq.color_single
        self.color_full = self._seq.color_full
        self.color_transparent = self._seq.color_transparent

    @classmethod
    def plain(cls) -> Ansi:
        """Sequences without any shell-specific escaping."""
        return cls(PLAIN)

    def generate_hyperlink(self, text: str) -> str:
        """Replace the first markdown-style link in text with an OSC 8 hyperlink."""
        match = _HYPERLINK_PATTERN.search(text)
        if match is None:
            return text
        link_text = self._escape_link_text_for_fish(match.group("TEXT"))
        hyperlink = self._seq.hyperlink % (match.group("URL"), link_text)
        return text.replace(match.group("ALL"), hyperlink, 1)

    def _escape_link_text_for_fish(self, text: str) -> str:
        if self.shell != FISH or not text:
            return text
        if text[0] in _FISH_ESCAPED:
            return "\\" + text
        return text

    def format_styles(self, text: str) -> str:
        """Expand <b>, <u>, <i>, ... style tags into escape sequences."""
        while matches := list(_STYLE_PATTERN.finditer(text)):
            for match in matches:
                template = getattr(self._seq, _STYLE_FIELDS[match.group("format")])
                formatted = template % match.group("text")
                text = text.replace(match.group("context"), formatted, 1)
        return text

    def carriage_forward(self) -> str:
        return self._seq.right % 1000

    def cursor_for_right_write(self, length: int, offset: int) -> str:
        return self._seq.left % (length - offset)

    def change_line(self, number_of_lines: int) -> str:
        position = "B"
        if number_of_lines < 0:
            position = "F"
            number_of_lines = -number_of_lines
        return self._seq.linechange % (number_of_lines, position)

    def console_pwd(self, pwd: str) -> str:
        directory = pwd + "\\" if pwd.endswith(":") else pwd
        return self._seq.osc99 % directory

    def clear_after(self) -> str:
        return self._seq.clear_line + self._seq.clear_below

    def title(self, title: str) -> str:
        return self._seq.title % title

    def color_reset(self) -> str:
        return self._seq.creset

    def format_text(self, text: str) -> str:
        """Wrap text in the shell's non-printing escape markers."""
        return self._seq.format % text

    def save_cursor_position(self) -> str:
        return self._seq.save_cursor_position

    def restore_cursor_position(self) -> str:
        return self._seq.restore_cursor_position

    def measure_text(self, text: str) -> int:
        """Number of visible characters in text."""
        if "\x1b" not in text:
            return len(self.trim_escape_sequences(text))
        if "\x1b]8;;" in text:
            links = [(m.group("STR"), m.group("TEXT")) for m in self._hyperlink_regex.finditer(text)]
            for whole, visible in links:
                text = text.replace(whole, visible)
        text = self.trim_ansi(text)
        text = self.trim_escape_sequences(text)
        return len(text)

    def trim_ansi(self, text: str) -> str:
        if not text or "\x1b" not in text:
            return text
        return _ANSI_PATTERN.sub("", text)

    def trim_escape_sequences(self, text: str) -> str:
        if not text:
            return text
        for marker in (self._seq.escape_left, self._seq.escape_right):
            if marker:
                text = text.replace(marker, "")
        return text