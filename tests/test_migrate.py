from types import SimpleNamespace

import pytest

from poshprompt.migrate import (
    COLOR_BACKGROUND,
    CONFIG_VERSION,
    SEGMENT_TEMPLATE,
    has_property,
    migrate_color_override,
    migrate_config,
    migrate_icon_override,
    migrate_inline_color_override,
    migrate_property_key,
    migrate_property_value,
    migrate_segment,
    migrate_template,
    migration_one,
    migration_two,
)
from poshprompt.segment import BATTERY, EXIT, GIT, SESSION, Segment, register_writer

FOO = "foo"
BAR = "bar"
FOOBAR = "foobar"

_TEMPLATES = {
    GIT: (
        " {{ .HEAD }} {{ .BranchStatus }}{{ if .Working.Changed }} \uf044 {{ .Working.String }}{{ end }}"
        "{{ if and (.Staging.Changed) (.Working.Changed) }} |{{ end }}"
        "{{ if .Staging.Changed }} \uf046 {{ .Staging.String }}{{ end }}"
        "{{ if gt .StashCount 0}} \uf692 {{ .StashCount }}{{ end }}"
        "{{ if gt .WorktreeCount 0}} \uf1bb {{ .WorktreeCount }}{{ end }} "
    ),
    EXIT: " {{ if gt .Code 0 }}\uf00d {{ .Meaning }}{{ else }}\uf42e{{ end }} ",
    BATTERY: " {{ if not .Error }}{{ .Icon }}{{ .Percentage }}{{ end }}{{ .Error }} ",
    SESSION: " {{ if .SSHSession }}\uf817 {{ end }}{{ .UserName }}@{{ .HostName }} ",
}


class MockedWriter:
    def __init__(self, template=""):
        self._template = template

    def enabled(self):
        return True

    def template(self):
        return self._template

    def init(self, props, env):
        pass


@pytest.fixture(autouse=True)
def _register_writers():
    for segment_type, template in _TEMPLATES.items():
        register_writer(segment_type, lambda t=template: MockedWriter(t))


ENV = SimpleNamespace()


@pytest.mark.parametrize(
    "prop, props, expected",
    [(FOO, {FOO: "bar"}, True), (FOO, {BAR: "foo"}, False), (FOO, None, False)],
)
def test_has_property(prop, props, expected):
    assert has_property(Segment(properties=props), prop) is expected


@pytest.mark.parametrize(
    "expected, props", [("foo", {FOO: "bar"}), (None, {BAR: "foo"})]
)
def test_migrate_property_value(expected, props):
    segment = Segment(properties=props)
    migrate_property_value(segment, FOO, expected)
    assert segment.properties.get(FOO) == expected


@pytest.mark.parametrize(
    "expected, props",
    [("bar", {FOO: "bar"}), (None, {FOOBAR: "bar"}), ("bar", {BAR: "bar"})],
)
def test_migrate_property_key(expected, props):
    segment = Segment(properties=props)
    migrate_property_key(segment, FOO, BAR)
    assert segment.properties.get(BAR) == expected
    assert FOO not in segment.properties


@pytest.mark.parametrize(
    "expected, props",
    [
        ("hello bar bar", {FOO: " bar ", SEGMENT_TEMPLATE: "hello foo bar"}),
        ("hello foo bar", {BAR: " bar ", SEGMENT_TEMPLATE: "hello foo bar"}),
    ],
)
def test_icon_override(expected, props):
    segment = Segment(properties=props, writer=MockedWriter(props[SEGMENT_TEMPLATE]))
    migrate_icon_override(segment, FOO, " foo ")
    assert segment.properties[SEGMENT_TEMPLATE] == expected


@pytest.mark.parametrize("background", [False, True])
def test_color_migration(background):
    segment = Segment(properties={FOO: "green"})
    if background:
        segment.properties[COLOR_BACKGROUND] = True
    migrate_color_override(segment, FOO, "hello %s bar", background)
    templates = segment.background_templates if background else segment.foreground_templates
    assert templates[-1] == "hello green bar"
    assert FOO not in segment.properties


def test_color_migration_no_override():
    segment = Segment()
    migrate_color_override(segment, FOO, "hello %s bar", False)
    assert segment.foreground_templates == []
    assert segment.background_templates == []


@pytest.mark.parametrize(
    "segment_type, props, expected",
    [
        (
            GIT,
            {
                "local_working_icon": " working ",
                "local_staged_icon": " staged ",
                "worktree_count_icon": " worktree ",
                "stash_count_icon": " stash ",
                "status_separator_icon": " and",
            },
            " {{ .HEAD }} {{ .BranchStatus }}{{ if .Working.Changed }} working {{ .Working.String }}{{ end }}"
            "{{ if and (.Staging.Changed) (.Working.Changed) }} and{{ end }}"
            "{{ if .Staging.Changed }} staged {{ .Staging.String }}{{ end }}"
            "{{ if gt .StashCount 0}} stash {{ .StashCount }}{{ end }}"
            "{{ if gt .WorktreeCount 0}} worktree {{ .WorktreeCount }}{{ end }} ",
        ),
        (
            GIT,
            {
                "local_working_icon": " working ",
                "local_staged_icon": " staged ",
                "worktree_count_icon": " worktree ",
                "stash_count_icon": " stash ",
                "status_separator_icon": " and",
                "working_color": "#123456",
                "staging_color": "#123456",
            },
            " {{ .HEAD }} {{ .BranchStatus }}{{ if .Working.Changed }} working <#123456>{{ .Working.String }}</>{{ end }}"
            "{{ if and (.Staging.Changed) (.Working.Changed) }} and{{ end }}"
            "{{ if .Staging.Changed }} staged <#123456>{{ .Staging.String }}</>{{ end }}"
            "{{ if gt .StashCount 0}} stash {{ .StashCount }}{{ end }}"
            "{{ if gt .WorktreeCount 0}} worktree {{ .WorktreeCount }}{{ end }} ",
        ),
        (
            EXIT,
            {"display_exit_code": False, "success_icon": "SUCCESS", "error_icon": "FAIL"},
            " {{ if gt .Code 0 }}FAIL{{ else }}SUCCESS{{ end }} ",
        ),
        (
            EXIT,
            {
                "prefix": "",
                "postfix": "",
                "display_exit_code": False,
                "always_enabled": True,
                "success_icon": "🌵",
                "error_icon": "💩",
            },
            "{{ if gt .Code 0 }}💩{{ else }}🌵{{ end }}",
        ),
        (
            EXIT,
            {"always_numeric": True, "success_icon": "SUCCESS", "error_icon": "FAIL"},
            " {{ if gt .Code 0 }}FAIL {{ .Code }}{{ else }}SUCCESS{{ end }} ",
        ),
        (EXIT, {"template": "{{ .Text }}"}, " {{ .Meaning }} "),
        (
            BATTERY,
            {"display_charging": False},
            ' {{ if not .Error }}{{ $stateList := list "Discharging" "Full" }}'
            "{{ if has .State.String $stateList }}{{ .Icon }}{{ .Percentage }}{{ end }}{{ end }}{{ .Error }} ",
        ),
        (
            SESSION,
            {"ssh_icon": "SSH "},
            " {{ if .SSHSession }}SSH {{ end }}{{ .UserName }}@{{ .HostName }} ",
        ),
        (SESSION, {"display_host": False}, " {{ if .SSHSession }}\uf817 {{ end }}{{ .UserName }} "),
        (SESSION, {"display_user": False}, " {{ if .SSHSession }}\uf817 {{ end }}{{ .HostName }} "),
        (
            SESSION,
            {"display_user": False, "display_host": False},
            " {{ if .SSHSession }}\uf817 {{ end }} ",
        ),
        (
            SESSION,
            {"user_color": "#123456", "host_color": "#789012"},
            " {{ if .SSHSession }}\uf817 {{ end }}<#123456>{{ .UserName }}</>@<#789012>{{ .HostName }}</> ",
        ),
        (
            SESSION,
            {"template": "{{ .UserName }}@{{ .ComputerName }}"},
            " {{ .UserName }}@{{ .HostName }} ",
        ),
    ],
)
def test_segment_template_migration(segment_type, props, expected):
    segment = Segment(type=segment_type, properties=dict(props))
    migration_one(segment, ENV)
    assert segment.properties[SEGMENT_TEMPLATE] == expected


@pytest.mark.parametrize(
    "expected, props",
    [
        ("hello <#123456>foo</> bar", {FOO: "#123456", SEGMENT_TEMPLATE: "hello foo bar"}),
        ("hello foo bar", {BAR: "#123456", SEGMENT_TEMPLATE: "hello foo bar"}),
    ],
)
def test_inline_color_override(expected, props):
    segment = Segment(properties=props, writer=MockedWriter(props[SEGMENT_TEMPLATE]))
    migrate_inline_color_override(segment, FOO, "foo")
    assert segment.properties[SEGMENT_TEMPLATE] == expected


@pytest.mark.parametrize(
    "expected, props",
    [
        (
            "<background,transparent>\ue0b6</> \uf489 {{ .Name }} <transparent,background>\ue0b2</>",
            {
                "postfix": " <transparent,background>\ue0b2</>",
                "prefix": "<background,transparent>\ue0b6</> \uf489 ",
                "template": "{{ .Name }}",
            },
        ),
        (" {{ .Name }} ", {"prefix": " ", "template": "{{ .Name }}"}),
        (" {{ .Name }} ", {"postfix": " ", "template": "{{ .Name }} "}),
    ],
)
def test_migrate_pre_and_postfix(expected, props):
    segment = Segment(properties=props, writer=MockedWriter(props[SEGMENT_TEMPLATE]))
    migrate_template(segment)
    assert segment.properties[SEGMENT_TEMPLATE] == expected
    assert "prefix" not in segment.properties
    assert "postfix" not in segment.properties


@pytest.mark.parametrize(
    "template, expected", [("{{ .Path }}", "{{ .PWD }}"), ("foo", "foo"), ("", "")]
)
def test_migrate_config(template, expected):
    config = SimpleNamespace(
        blocks=[], tooltips=[], console_title_template=template, version=0, updated=False
    )
    migrate_config(config, ENV)
    assert config.console_title_template == expected
    assert config.version == CONFIG_VERSION
    assert config.updated is True


def test_migrate_config_migrates_block_segments():
    segment = Segment(type=SESSION, properties={"template": "{{ .UserName }}"})
    config = SimpleNamespace(
        blocks=[SimpleNamespace(segments=[segment])],
        tooltips=[],
        console_title_template="",
        version=0,
        updated=False,
    )
    migrate_config(config, ENV)
    assert segment.template == " {{ .UserName }} "
    assert SEGMENT_TEMPLATE not in segment.properties


@pytest.mark.parametrize("template, expected", [("{{ .Name }}", "{{ .Name }}"), ("", "")])
def test_migration_two(template, expected):
    segment = Segment(type=SESSION, properties={}, writer=MockedWriter(template))
    if template:
        segment.properties[SEGMENT_TEMPLATE] = template
    migration_two(segment, ENV)
    assert segment.template == expected
    assert SEGMENT_TEMPLATE not in segment.properties


def test_migrate_segment_at_current_version_changes_nothing():
    segment = Segment(type=SESSION, properties={"template": "x"})
    migrate_segment(segment, ENV, CONFIG_VERSION)
    assert segment.properties == {"template": "x"}
    assert segment.template == ""


def test_migration_one_unknown_type_is_left_alone():
    segment = Segment(type="nosuchwriter", properties={"prefix": "a"})
    migration_one(segment, ENV)
    assert segment.properties == {"prefix": "a"}