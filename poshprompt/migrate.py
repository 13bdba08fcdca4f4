"""Migration of older configuration layouts to the current version."""

from __future__ import annotations

import re
from typing import Any

from .colors import is_ansi_color_name
from .segment import BATTERY, EXIT, GIT, NODE, PYTHON, SESSION, TEXT, Environment, Segment

CONFIG_VERSION = 2

COLOR_BACKGROUND = "color_background"
PREFIX = "prefix"
POSTFIX = "postfix"
SEGMENT_TEMPLATE = "template"

FETCH_VERSION = "fetch_version"
FETCH_STATUS = "fetch_status"
FETCH_STASH_COUNT = "fetch_stash_count"
FETCH_WORKTREE_COUNT = "fetch_worktree_count"
FETCH_UPSTREAM_ICON = "fetch_upstream_icon"
FETCH_VIRTUAL_ENV = "fetch_virtual_env"
FETCH_PACKAGE_MANAGER = "fetch_package_manager"

_HEX_COLOR = re.compile(r"#(?:[0-9A-Fa-f]{3}){1,2}")


def _props(segment: Segment) -> dict[str, Any]:
    if segment.properties is None:
        segment.properties = {}
    return segment.properties


def _get_string(segment: Segment, prop: str, default: str) -> str:
    value = (segment.properties or {}).get(prop)
    return value if isinstance(value, str) else default


def _get_bool(segment: Segment, prop: str, default: bool) -> bool:
    value = (segment.properties or {}).get(prop)
    return value if isinstance(value, bool) else default


def _get_color(segment: Segment, prop: str, default: str) -> str:
    value = (segment.properties or {}).get(prop)
    if not isinstance(value, str):
        return default
    if is_ansi_color_name(value) or _HEX_COLOR.fullmatch(value):
        return value
    return default


def _current_template(segment: Segment) -> str:
    return _get_string(segment, SEGMENT_TEMPLATE, segment.writer.template())


def has_property(segment: Segment, prop: str) -> bool:
    return prop in (segment.properties or {})


def migrate_property_value(segment: Segment, prop: str, value: Any) -> None:
    if not has_property(segment, prop):
        return
    _props(segment)[prop] = value


def migrate_property_key(segment: Segment, old_property: str, new_property: str) -> None:
    if not has_property(segment, old_property):
        return
    props = _props(segment)
    props[new_property] = props.pop(old_property)


def migrate_template(segment: Segment) -> None:
    """Move the writer's template into the properties, merging prefix and postfix."""
    props = _props(segment)
    if has_property(segment, SEGMENT_TEMPLATE):
        # an existing template keeps the old default padding
        props.setdefault(PREFIX, " ")
        props.setdefault(POSTFIX, " ")
    else:
        props[SEGMENT_TEMPLATE] = segment.writer.template()
    migrate_pre_and_postfix(segment)


def migrate_icon_override(segment: Segment, prop: str, override_value: str) -> None:
    if not has_property(segment, prop):
        return
    template = _current_template(segment)
    if override_value in template:
        template = template.replace(override_value, _get_string(segment, prop, ""))
    props = _props(segment)
    props[SEGMENT_TEMPLATE] = template
    del props[prop]


def migrate_color_override(segment: Segment, prop: str, template: str, background: bool) -> None:
    if not has_property(segment, prop):
        return
    color = _get_color(segment, prop, "")
    del _props(segment)[prop]
    if not color:
        return
    color_template = template.replace("%s", color, 1)
    if background:
        segment.background_templates.append(color_template)
        return
    segment.foreground_templates.append(color_template)


def migrate_inline_color_override(segment: Segment, prop: str, old: str) -> None:
    if not has_property(segment, prop):
        return
    color = _get_color(segment, prop, "")
    props = _props(segment)
    del props[prop]
    if not color:
        return
    template = _current_template(segment).replace(old, f"<{color}>{old}</>")
    props[SEGMENT_TEMPLATE] = template


def migrate_pre_and_postfix(segment: Segment) -> None:
    template = _current_template(segment)
    default = " "
    props = _props(segment)
    if has_property(segment, PREFIX):
        prefix = _get_string(segment, PREFIX, default)
        template = prefix + template.removeprefix(default)
        del props[PREFIX]
    if has_property(segment, POSTFIX):
        postfix = _get_string(segment, POSTFIX, default)
        template = template.removesuffix(default) + postfix
        del props[POSTFIX]
    props[SEGMENT_TEMPLATE] = template


def _migrate_git(segment: Segment) -> None:
    has_template = has_property(segment, SEGMENT_TEMPLATE)
    migrate_property_key(segment, "display_status", FETCH_STATUS)
    migrate_property_key(segment, "display_stash_count", FETCH_STASH_COUNT)
    migrate_property_key(segment, "display_worktree_count", FETCH_WORKTREE_COUNT)
    migrate_property_key(segment, "display_upstream_icon", FETCH_UPSTREAM_ICON)
    migrate_template(segment)
    migrate_icon_override(segment, "local_working_icon", " \uf044 ")
    migrate_icon_override(segment, "local_staged_icon", " \uf046 ")
    migrate_icon_override(segment, "stash_count_icon", " \uf692 ")
    migrate_icon_override(segment, "worktree_count_icon", " \uf1bb ")
    migrate_icon_override(segment, "status_separator_icon", " |")
    if _get_bool(segment, "status_colors_enabled", False):
        background = _get_bool(segment, COLOR_BACKGROUND, True)
        migrate_color_override(
            segment, "local_changes_color",
            "{{ if or (.Working.Changed) (.Staging.Changed) }}%s{{ end }}", background,
        )
        migrate_color_override(
            segment, "ahead_and_behind_color",
            "{{ if and (gt .Ahead 0) (gt .Behind 0) }}%s{{ end }}", background,
        )
        migrate_color_override(segment, "behind_color", "{{ if gt .Ahead 0 }}%s{{ end }}", background)
        migrate_color_override(segment, "ahead_color", "{{ if gt .Behind 0 }}%s{{ end }}", background)
    if not has_template:
        migrate_inline_color_override(segment, "working_color", "{{ .Working.String }}")
        migrate_inline_color_override(segment, "staging_color", "{{ .Staging.String }}")
    props = _props(segment)
    for legacy in ("display_branch_status", "display_status_detail", "status_colors_enabled"):
        props.pop(legacy, None)


def _migrate_battery(segment: Segment) -> None:
    migrate_template(segment)
    background = _get_bool(segment, COLOR_BACKGROUND, False)
    migrate_color_override(
        segment, "charged_color", '{{ if eq "Full" .State.String }}%s{{ end }}', background
    )
    migrate_color_override(
        segment, "charging_color", '{{ if eq "Charging" .State.String }}%s{{ end }}', background
    )
    migrate_color_override(
        segment, "discharging_color", '{{ if eq "Discharging" .State.String }}%s{{ end }}', background
    )
    states = ['"Discharging"']
    if _get_bool(segment, "display_charging", True):
        states.append('"Charging"')
    if _get_bool(segment, "display_charged", True):
        states.append('"Full"')
    props = _props(segment)
    if len(states) < 3:
        enabled_template = (
            "{{ $stateList := list %s }}{{ if has .State.String $stateList }}"
            "{{ .Icon }}{{ .Percentage }}{{ end }}"
        ).replace("%s", " ".join(states), 1)
        template = _current_template(segment).replace("{{ .Icon }}{{ .Percentage }}", enabled_template)
        props[SEGMENT_TEMPLATE] = template
    for legacy in ("display_charging", "display_charged", "battery_icon"):
        props.pop(legacy, None)


def _migrate_session(segment: Segment) -> None:
    has_template = has_property(segment, SEGMENT_TEMPLATE)
    migrate_template(segment)
    migrate_icon_override(segment, "ssh_icon", "\uf817 ")
    template = _current_template(segment).replace(".ComputerName", ".HostName")
    if not _get_bool(segment, "display_host", True):
        template = template.replace("@{{ .HostName }}", "")
    if not _get_bool(segment, "display_user", True):
        template = template.replace("@", "").replace("{{ .UserName }}", "")
    _props(segment)[SEGMENT_TEMPLATE] = template
    migrate_icon_override(segment, "user_info_separator", "@")
    if not has_template:
        migrate_inline_color_override(segment, "user_color", "{{ .UserName }}")
        migrate_inline_color_override(segment, "host_color", "{{ .HostName }}")


def _migrate_node(segment: Segment) -> None:
    migrate_template(segment)
    migrate_property_key(segment, "display_package_manager", FETCH_PACKAGE_MANAGER)
    if _get_bool(segment, "enable_version_mismatch", False):
        del _props(segment)["enable_version_mismatch"]
        background = _get_bool(segment, COLOR_BACKGROUND, False)
        migrate_color_override(
            segment, "version_mismatch_color", "{{ if .Mismatch }}%s{{ end }}", background
        )


def _migrate_exit(segment: Segment) -> None:
    props = _props(segment)
    template = _current_template(segment)
    if ".Text" in template:
        template = template.replace(".Text", ".Meaning")
        props[SEGMENT_TEMPLATE] = template
    if not _get_bool(segment, "display_exit_code", True):
        props.pop("display_exit_code", None)
        template = template.replace(" {{ .Meaning }}", "")
    if _get_bool(segment, "always_numeric", False):
        props.pop("always_numeric", None)
        template = template.replace(".Meaning", ".Code")
    props[SEGMENT_TEMPLATE] = template
    migrate_template(segment)
    migrate_icon_override(segment, "success_icon", "\uf42e")
    migrate_icon_override(segment, "error_icon", "\uf00d")
    background = _get_bool(segment, COLOR_BACKGROUND, False)
    migrate_color_override(segment, "error_color", "{{ if gt .Code 0 }}%s{{ end }}", background)


def migration_one(segment: Segment, env: Environment) -> None:
    """Move version 0 properties (prefix, postfix, icons, colors) into templates."""
    try:
        segment.map_writer(env)
    except ValueError:
        return
    migrate_property_key(segment, "display_version", FETCH_VERSION)
    _props(segment).pop("enable_hyperlink", None)
    if segment.type == TEXT:
        migrate_property_key(segment, "text", SEGMENT_TEMPLATE)
        migrate_template(segment)
    elif segment.type == GIT:
        _migrate_git(segment)
    elif segment.type == BATTERY:
        _migrate_battery(segment)
    elif segment.type == PYTHON:
        migrate_template(segment)
        migrate_property_key(segment, "display_virtual_env", FETCH_VIRTUAL_ENV)
    elif segment.type == SESSION:
        _migrate_session(segment)
    elif segment.type == NODE:
        _migrate_node(segment)
    elif segment.type == EXIT:
        _migrate_exit(segment)
    else:
        migrate_template(segment)
    _props(segment).pop(COLOR_BACKGROUND, None)


def migration_two(segment: Segment, env: Environment) -> None:
    """Move the template property to the segment's own template field."""
    try:
        segment.map_writer(env)
    except ValueError:
        return
    if not has_property(segment, SEGMENT_TEMPLATE):
        return
    segment.template = _current_template(segment)
    del _props(segment)[SEGMENT_TEMPLATE]


def migrate_segment(segment: Segment, env: Environment, version: int) -> None:
    if version < 1:
        migration_one(segment, env)
    if version < 2:
        migration_two(segment, env)


def migrate_config(config: Any, env: Environment) -> None:
    """Bring every segment of config up to the current version."""
    for block in config.blocks or ():
        for segment in block.segments or ():
            migrate_segment(segment, env, config.version)
    for segment in config.tooltips or ():
        migrate_segment(segment, env, config.version)
    if ".Path" in config.console_title_template:
        config.console_title_template = config.console_title_template.replace(".Path", ".PWD")
    config.updated = True
    config.version = CONFIG_VERSION