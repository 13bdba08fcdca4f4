"""Prompt configuration: loading, defaults, export to JSON/YAML/TOML and migration."""

from __future__ import annotations

import copy
import json
import os
import shutil
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w
import yaml

from .block import Block, BlockAlignment, BlockType
from .colors import CachedColors, DefaultColors, PaletteColors, make_colors
from .migrate import CONFIG_VERSION, migrate_config
from .palette import Palette
from .segment import EXIT, PATH, SESSION, SHELL, TEXT, Environment, Segment, SegmentStyle

JSON = "json"
YAML = "yaml"
TOML = "toml"

SCHEMA_URL = "themes/schema.json"

_SEGMENT_KEYS = (
    "type",
    "tips",
    "style",
    "powerline_symbol",
    "invert_powerline",
    "foreground",
    "foreground_templates",
    "background",
    "background_templates",
    "leading_diamond",
    "trailing_diamond",
    "template",
    "properties",
    "interactive",
)
_BLOCK_KEYS = (
    "type",
    "alignment",
    "horizontal_offset",
    "vertical_offset",
    "newline",
    "filler",
)
_CONFIG_SCALAR_KEYS = (
    "final_space",
    "osc99",
    "console_title_template",
    "terminal_background",
    "accent_color",
)
_EXTRA_PROMPT_KEYS = (
    "transient_prompt",
    "valid_line",
    "error_line",
    "secondary_prompt",
    "debug_prompt",
)


class ConfigError(Exception):
    """The configuration could not be read, converted or written."""


def _plain(value: Any) -> Any:
    """Turn enum strings into plain strings so every dumper accepts them."""
    if isinstance(value, str):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _sorted(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _sorted(value[k]) for k in sorted(value)}
    if isinstance(value, list):
        return [_sorted(v) for v in value]
    return value


def _expect_dict(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(f"{what} must be a mapping, got {type(value).__name__}")
    return value


def _expect_list(value: Any, what: str) -> list[Any]:
    if not isinstance(value, list):
        raise ConfigError(f"{what} must be a list, got {type(value).__name__}")
    return value


def _segment_from_dict(data: Any) -> Segment:
    data = _expect_dict(data, "segment")
    values: dict[str, Any] = {}
    for key in _SEGMENT_KEYS:
        value = data.get(key)
        if value is None:
            continue
        if key == "properties":
            values[key] = dict(_expect_dict(value, "segment properties"))
        elif key in ("tips", "foreground_templates", "background_templates"):
            values[key] = [str(item) for item in _expect_list(value, key)]
        else:
            values[key] = copy.deepcopy(value)
    return Segment(**values)


def _segment_to_dict(segment: Segment) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key in _SEGMENT_KEYS:
        value = getattr(segment, key)
        if value:
            result[key] = _plain(copy.deepcopy(value))
    return result


def _block_from_dict(data: Any) -> Block:
    data = _expect_dict(data, "block")
    values = {key: data[key] for key in _BLOCK_KEYS if data.get(key) is not None}
    segments = [_segment_from_dict(s) for s in _expect_list(data.get("segments") or [], "segments")]
    return Block(segments=segments, **values)


def _block_to_dict(block: Block) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key in _BLOCK_KEYS:
        value = getattr(block, key)
        if value:
            result[key] = _plain(value)
    if block.segments:
        result["segments"] = [_segment_to_dict(s) for s in block.segments]
    # keep the same key order as the other fields of a block
    return {key: result[key] for key in (*_BLOCK_KEYS[:4], "segments", *_BLOCK_KEYS[4:]) if key in result}


@dataclass
class Config:
    """Everything needed to render the prompt."""

    version: int = 0
    final_space: bool = False
    osc99: bool = False
    console_title_template: str = ""
    terminal_background: str = ""
    accent_color: str = ""
    blocks: list[Block] = field(default_factory=list)
    tooltips: list[Segment] = field(default_factory=list)
    transient_prompt: Segment | None = None
    valid_line: Segment | None = None
    error_line: Segment | None = None
    secondary_prompt: Segment | None = None
    debug_prompt: Segment | None = None
    palette: Palette | None = None

    output: str = ""
    format: str = ""
    origin: str = ""
    eval: bool = False
    updated: bool = False
    schema_url: str = SCHEMA_URL
    _data: dict[str, Any] | None = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Build a configuration from its mapping form (JSON field names)."""
        data = _expect_dict(data, "configuration")
        values: dict[str, Any] = {key: data[key] for key in _CONFIG_SCALAR_KEYS if data.get(key) is not None}
        version = data.get("version", 0) or 0
        if not isinstance(version, int) or isinstance(version, bool):
            raise ConfigError(f"version must be an integer, got {version!r}")
        values["version"] = version
        values["blocks"] = [_block_from_dict(b) for b in _expect_list(data.get("blocks") or [], "blocks")]
        values["tooltips"] = [
            _segment_from_dict(s) for s in _expect_list(data.get("tooltips") or [], "tooltips")
        ]
        for key in _EXTRA_PROMPT_KEYS:
            if data.get(key) is not None:
                values[key] = _segment_from_dict(data[key])
        if data.get("palette") is not None:
            palette = _expect_dict(data["palette"], "palette")
            values["palette"] = Palette({str(k): str(v) for k, v in palette.items()})
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """The mapping form of the configuration; empty values are left out."""
        result: dict[str, Any] = {"version": self.version}
        for key in _CONFIG_SCALAR_KEYS:
            value = getattr(self, key)
            if value:
                result[key] = _plain(value)
        if self.blocks:
            result["blocks"] = [_block_to_dict(b) for b in self.blocks]
        if self.tooltips:
            result["tooltips"] = [_segment_to_dict(s) for s in self.tooltips]
        for key in _EXTRA_PROMPT_KEYS:
            segment = getattr(self, key)
            if segment is not None:
                converted = _segment_to_dict(segment)
                if converted:
                    result[key] = converted
        if self.palette:
            result["palette"] = dict(self.palette)
        return result

    def make_colors(self, env: Environment) -> DefaultColors | PaletteColors | CachedColors:
        """Color source for this configuration, cached unless OMP_CACHE_DISABLED=1."""
        cache_disabled = env.getenv("OMP_CACHE_DISABLED") == "1"
        return make_colors(self.palette, not cache_disabled, self.accent_color)

    def migrate(self, env: Environment) -> None:
        migrate_config(self, env)

    def _print(self, message: str) -> None:
        if self.eval:
            print(f'echo "{message}"', end="")
            return
        print(message)

    def _export_data(self) -> dict[str, Any]:
        if self.updated or self._data is None:
            return self.to_dict()
        return copy.deepcopy(self._data)

    def export(self, format: str = "") -> str:
        """Serialise the configuration as JSON, YAML or TOML."""
        if format:
            self.format = format
        data = self._export_data()
        if self.format == JSON:
            data["$schema"] = self.schema_url
            text = json.dumps(data, indent=2, ensure_ascii=False, sort_keys=True) + "\n"
            return escape_glyphs(text)
        if self.format == YAML:
            try:
                text = yaml.safe_dump(_plain(data), allow_unicode=True, sort_keys=True)
            except yaml.YAMLError as err:
                raise ConfigError(str(err)) from err
            return f"# yaml-language-server: $schema={self.schema_url}\n\n" + text
        if self.format == TOML:
            try:
                text = tomli_w.dumps(_sorted(_plain(data)))
            except (TypeError, ValueError) as err:
                raise ConfigError(str(err)) from err
            return f"#:schema {self.schema_url}\n\n" + escape_glyphs(text)
        raise ConfigError(f"unsupported config format: {self.format!r}")

    def write(self, format: str = "") -> None:
        """Export to the output path, or back to the file the config came from."""
        content = self.export(format)
        destination = self.output or self.origin
        if not destination:
            raise ConfigError("no destination to write the config to")
        try:
            fd = os.open(destination, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o755)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
        except OSError as err:
            raise ConfigError(str(err)) from err

    def _backup(self) -> str:
        destination = self.origin + ".bak"
        try:
            shutil.copyfile(self.origin, destination)
        except OSError as err:
            raise ConfigError(str(err)) from err
        return destination

    def backup_and_migrate(self, env: Environment) -> None:
        """Keep a .bak copy of the config file, then migrate and rewrite it."""
        backup = self._backup()
        self.migrate(env)
        self.write(self.format)
        self._print(
            f"\nOh My Posh config migrated to version {self.version}\n"
            f"Backup config available at {backup}\n\n"
        )


def _parse(text: str, fmt: str) -> dict[str, Any]:
    try:
        if fmt == JSON:
            data = json.loads(text)
        elif fmt == YAML:
            data = yaml.safe_load(text)
        elif fmt == TOML:
            data = tomllib.loads(text)
        else:
            raise ConfigError(f"unsupported config format: {fmt!r}")
    except (json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError) as err:
        raise ConfigError(str(err)) from err
    if data is None:
        return {}
    return _expect_dict(data, "configuration")


def _load(env: Environment) -> Config:
    config_file = getattr(env.flags(), "config", "") or ""
    if not config_file or not os.path.exists(config_file):
        return default_config()
    fmt = Path(config_file).suffix.removeprefix(".")
    if fmt == "yml":
        fmt = YAML
    try:
        text = Path(config_file).read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigError(str(err)) from err
    data = _parse(text, fmt)
    cfg = Config.from_dict(data)
    cfg.origin = config_file
    cfg.format = fmt
    cfg._data = data
    if cfg.transient_prompt is None:
        cfg.transient_prompt = Segment()
    return cfg


def load_config(env: Environment) -> Config:
    """Load the configured file, or the default configuration when there is none.

    Old configurations are migrated (with a backup) unless migration was requested
    explicitly through the environment's flags.
    """
    cfg = _load(env)
    if not getattr(env.flags(), "migrate", False) and cfg.version < CONFIG_VERSION:
        cfg.backup_and_migrate(env)
    return cfg


def escape_glyphs(s: str) -> str:
    """Write glyphs between U+1000 and U+10000 as \\uXXXX escapes."""
    return "".join(
        char if ord(char) < 0x1000 or ord(char) > 0x10000 else f"\\u{ord(char):04x}"
        for char in s
    )


def default_config() -> Config:
    """The configuration used when no config file is given."""
    return Config(
        version=2,
        final_space=True,
        blocks=[
            Block(
                type=BlockType.PROMPT,
                alignment=BlockAlignment.LEFT,
                segments=[
                    Segment(
                        type=SESSION,
                        style=SegmentStyle.DIAMOND,
                        background="#c386f1",
                        foreground="#ffffff",
                        leading_diamond="\ue0b6",
                        trailing_diamond="\ue0b0",
                    ),
                    Segment(
                        type=PATH,
                        style=SegmentStyle.POWERLINE,
                        powerline_symbol="\ue0b0",
                        background="#ff479c",
                        foreground="#ffffff",
                        properties={"style": "folder"},
                    ),
                    Segment(
                        type=SHELL,
                        style=SegmentStyle.POWERLINE,
                        powerline_symbol="\ue0b0",
                        background="#0077c2",
                        foreground="#ffffff",
                    ),
                    Segment(
                        type=TEXT,
                        style=SegmentStyle.POWERLINE,
                        powerline_symbol="\ue0b0",
                        background="#ffffff",
                        foreground="#111111",
                        template=" no config ",
                    ),
                    Segment(
                        type=EXIT,
                        style=SegmentStyle.DIAMOND,
                        background="#2e9599",
                        foreground="#ffffff",
                        leading_diamond="<transparent,background>\ue0b0</>",
                        trailing_diamond="\ue0b4",
                        background_templates=["{{ if gt .Code 0 }}#f1184c{{ end }}"],
                        template=" \ue23a ",
                        properties={"always_enabled": True},
                    ),
                ],
            )
        ],
    )