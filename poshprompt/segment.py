"""Prompt segments: configuration, writer mapping, colors and rendered text."""

from __future__ import annotations

import traceback
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

from .ansi import BASH, FISH, ZSH

INCLUDE_FOLDERS = "include_folders"
EXCLUDE_FOLDERS = "exclude_folders"
IGNORE_FOLDERS = "ignore_folders"

ANGULAR = "angular"
AWS = "aws"
AZ = "az"
AZFUNC = "azfunc"
BATTERY = "battery"
BREWFATHER = "brewfather"
CDS = "cds"
CF = "cf"
CFTARGET = "cftarget"
CMD = "command"
CRYSTAL = "crystal"
DART = "dart"
DOTNET = "dotnet"
EXECUTIONTIME = "executiontime"
EXIT = "exit"
GIT = "git"
GO = "go"
HASKELL = "haskell"
IPIFY = "ipify"
ITERM = "iterm"
JAVA = "java"
JULIA = "julia"
KOTLIN = "kotlin"
KUBECTL = "kubectl"
NBGV = "nbgv"
NIGHTSCOUT = "nightscout"
NODE = "node"
NPM = "npm"
OS = "os"
OWM = "owm"
PATH = "path"
PHP = "php"
PLASTIC = "plastic"
POSHGIT = "poshgit"
PROJECT = "project"
PYTHON = "python"
R = "r"
ROOT = "root"
RUBY = "ruby"
RUST = "rust"
SESSION = "session"
SHELL = "shell"
SPOTIFY = "spotify"
STRAVA = "strava"
SWIFT = "swift"
SYSTEMINFO = "sysinfo"
TERRAFORM = "terraform"
TEXT = "text"
TIME = "time"
UI5TOOLING = "ui5tooling"
WAKATIME = "wakatime"
WIFI = "wifi"
WINREG = "winreg"
YTM = "ytm"


class Environment(Protocol):
    """What segments and the engine need to know about the running shell.

    ``render_template`` raises ValueError when a template cannot be rendered;
    ``terminal_width`` raises OSError when the width is unknown.
    """

    def shell(self) -> str: ...

    def pwd(self) -> str: ...

    def home(self) -> str: ...

    def getenv(self, key: str) -> str: ...

    def flags(self) -> Any: ...

    def terminal_width(self) -> int: ...

    def cache_path(self) -> str: ...

    def logs(self) -> str: ...

    def dir_matches_one_of(self, directory: str, patterns: Sequence[str]) -> bool: ...

    def render_template(self, template: str, context: Any) -> str: ...

    def add_segment_data(self, name: str, data: Any) -> None: ...


class _SegmentWriter(Protocol):
    def enabled(self) -> bool: ...

    def template(self) -> str: ...

    def init(self, props: dict[str, Any], env: Environment) -> None: ...


_WRITERS: dict[str, Callable[[], _SegmentWriter]] = {}


def register_writer(segment_type: str, factory: Callable[[], _SegmentWriter]) -> None:
    """Make segments of segment_type use writers created by factory."""
    _WRITERS[segment_type] = factory


class SegmentStyle(StrEnum):
    PLAIN = "plain"
    POWERLINE = "powerline"
    ACCORDION = "accordion"
    DIAMOND = "diamond"


def resolve_color_templates(
    templates: Iterable[str] | None, context: Any, env: Environment, default_color: str
) -> str:
    """Return the first non-empty rendered template, or default_color."""
    for template in templates or ():
        try:
            value = env.render_template(template, context)
        except ValueError:
            continue
        if value:
            return value
    return default_color


def _string_list(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return []


@dataclass
class SegmentTiming:
    """How long a segment took to render, for debug output."""

    name: str
    active: bool = False
    text: str = ""
    duration: float = 0.0

    @property
    def name_length(self) -> int:
        return len(self.name)


@dataclass
class Segment:
    """A single piece of the prompt and its configuration."""

    type: str = ""
    tips: list[str] = field(default_factory=list)
    style: str = ""
    powerline_symbol: str = ""
    invert_powerline: bool = False
    foreground: str = ""
    foreground_templates: list[str] = field(default_factory=list)
    background: str = ""
    background_templates: list[str] = field(default_factory=list)
    leading_diamond: str = ""
    trailing_diamond: str = ""
    template: str = ""
    properties: dict[str, Any] | None = None
    interactive: bool = False

    enabled: bool = False
    writer: Any = field(default=None, repr=False, compare=False)
    env: Any = field(default=None, repr=False, compare=False)
    text: str = field(default="", compare=False)
    _background_cache: str = field(default="", init=False, repr=False, compare=False)
    _foreground_cache: str = field(default="", init=False, repr=False, compare=False)

    def is_powerline(self) -> bool:
        return self.style in (SegmentStyle.POWERLINE, SegmentStyle.ACCORDION)

    def should_include_folder(self) -> bool:
        if self.env is None:
            return True
        return self._cwd_included() and not self._cwd_excluded()

    def _cwd_included(self) -> bool:
        props = self.properties or {}
        if INCLUDE_FOLDERS not in props:
            return True
        folders = _string_list(props[INCLUDE_FOLDERS])
        if not folders:
            return True
        return self.env.dir_matches_one_of(self.env.pwd(), folders)

    def _cwd_excluded(self) -> bool:
        props = self.properties or {}
        value = props[EXCLUDE_FOLDERS] if EXCLUDE_FOLDERS in props else props.get(IGNORE_FOLDERS)
        return self.env.dir_matches_one_of(self.env.pwd(), _string_list(value))

    def should_invoke_with_tip(self, tip: str) -> bool:
        return tip in self.tips

    def foreground_color(self) -> str:
        if not self._foreground_cache:
            self._foreground_cache = resolve_color_templates(
                self.foreground_templates, self.writer, self.env, self.foreground
            )
        return self._foreground_cache

    def background_color(self) -> str:
        if not self._background_cache:
            self._background_cache = resolve_color_templates(
                self.background_templates, self.writer, self.env, self.background
            )
        return self._background_cache

    def map_writer(self, env: Environment) -> None:
        """Attach the writer registered for this segment's type; ValueError if none."""
        self.env = env
        if self.properties is None:
            self.properties = {}
        factory = _WRITERS.get(self.type)
        if factory is None:
            raise ValueError("unable to map writer")
        writer = factory()
        writer.init(self.properties, env)
        self.writer = writer

    def render(self) -> str:
        """Render the segment's template against its writer."""
        if not self.template:
            self.template = self.writer.template()
        try:
            return self.env.render_template(self.template, self.writer)
        except ValueError as err:
            return str(err)

    def set_enabled(self, env: Environment) -> None:
        try:
            try:
                self.map_writer(env)
            except ValueError:
                return
            if not self.should_include_folder():
                return
            if self.writer.enabled():
                self.enabled = True
                env.add_segment_data(self.type, self.writer)
        except Exception as err:  # a broken segment must not break the prompt
            print(
                f"\noh-my-posh fatal error rendering {self.type} segment:{err}\n\n"
                f"{traceback.format_exc()}\n"
            )
            self.enabled = True

    def set_text(self) -> None:
        if not self.enabled:
            return
        self.text = self.render()
        self.enabled = bool(self.text.replace(" ", ""))
        if self.interactive:
            return
        shell = self.env.shell()
        if shell in (BASH, FISH):
            self.text = self.text.replace("\\", "\\\\")
        elif shell == ZSH:
            self.text = self.text.replace("%", "%%")
        self.text = self.text.replace("`", "'")