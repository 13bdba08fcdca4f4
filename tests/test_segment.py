from dataclasses import dataclass, field
from typing import Any, Callable

import pytest

from poshprompt.segment import (
    EXCLUDE_FOLDERS,
    INCLUDE_FOLDERS,
    Segment,
    SegmentStyle,
    SegmentTiming,
    register_writer,
    resolve_color_templates,
)

CWD = "Projects/oh-my-posh"


@dataclass
class FakeEnv:
    shell_name: str = "pwsh"
    cwd: str = CWD
    matches: dict = field(default_factory=dict)
    renderers: dict = field(default_factory=dict)
    segment_data: dict = field(default_factory=dict)
    render_calls: int = 0

    def shell(self):
        return self.shell_name

    def pwd(self):
        return self.cwd

    def dir_matches_one_of(self, directory, patterns):
        return self.matches.get((directory, tuple(patterns)), False)

    def render_template(self, template, context):
        self.render_calls += 1
        renderer: Callable[[Any], str] = self.renderers[template]
        return renderer(context)

    def add_segment_data(self, name, data):
        self.segment_data[name] = data


@dataclass
class FakeWriter:
    text: str = "hello"
    is_enabled: bool = True
    props: Any = None
    env: Any = None
    profile: str = ""

    def enabled(self):
        return self.is_enabled

    def template(self):
        return "tmpl"

    def init(self, props, env):
        self.props = props
        self.env = env


class BrokenWriter(FakeWriter):
    def enabled(self):
        raise RuntimeError("boom")


register_writer("fake", FakeWriter)
register_writer("broken", BrokenWriter)
register_writer("disabled", lambda: FakeWriter(is_enabled=False))


def test_map_writer_can_map():
    env = FakeEnv()
    segment = Segment(type="fake", properties={"a": 1})
    segment.map_writer(env)
    assert segment.writer.props == {"a": 1}
    assert segment.writer.env is env
    assert segment.env is env


def test_map_writer_creates_properties():
    segment = Segment(type="fake")
    segment.map_writer(FakeEnv())
    assert segment.properties == {}


def test_map_writer_cannot_map():
    segment = Segment(type="nilwriter")
    with pytest.raises(ValueError, match="unable to map writer"):
        segment.map_writer(FakeEnv())


@pytest.mark.parametrize(
    "included, excluded, expected",
    [
        (True, False, True),
        (False, True, False),
        (True, True, False),
        (False, False, False),
    ],
)
def test_should_include_folder(included, excluded, expected):
    env = FakeEnv(
        matches={
            (CWD, ("Projects/oh-my-posh",)): included,
            (CWD, ("Projects/nope",)): excluded,
        }
    )
    segment = Segment(
        properties={
            INCLUDE_FOLDERS: ["Projects/oh-my-posh"],
            EXCLUDE_FOLDERS: ["Projects/nope"],
        },
        env=env,
    )
    assert segment.should_include_folder() is expected


def test_should_include_folder_without_env():
    assert Segment().should_include_folder() is True


def test_ignore_folders_used_when_no_exclude():
    env = FakeEnv(matches={(CWD, ("Projects/ignored",)): True})
    segment = Segment(properties={"ignore_folders": ["Projects/ignored"]}, env=env)
    assert segment.should_include_folder() is False


def _contains(word):
    return lambda ctx: "color2" if word in ctx.profile else ""


COLOR_RENDERERS = {
    'if-doe': lambda ctx: "color2" if "doe" in ctx.profile else "",
    'if-john-2': lambda ctx: "color2" if "john" in ctx.profile else "",
    'if-john-3': lambda ctx: "color3" if "john" in ctx.profile else "",
    'if-philip-3': lambda ctx: "color3" if "philip" in ctx.profile else "",
}


@pytest.mark.parametrize(
    "background, expected, templates, profile",
    [
        (False, "color", [], ""),
        (True, "color", [], ""),
        (False, "color", None, ""),
        (False, "color", ["if-john-2"], "doe"),
        (False, "color2", ["if-john-2"], "john"),
        (False, "color3", ["if-doe", "if-john-3"], "john"),
        (False, "color", ["if-doe", "if-philip-3"], "john"),
    ],
)
def test_get_colors(background, expected, templates, profile):
    env = FakeEnv(renderers=COLOR_RENDERERS)
    segment = Segment(writer=FakeWriter(profile=profile), env=env)
    if background:
        segment.background = "color"
        segment.background_templates = templates
        assert segment.background_color() == expected
    else:
        segment.foreground = "color"
        segment.foreground_templates = templates
        assert segment.foreground_color() == expected


def test_foreground_color_is_cached():
    env = FakeEnv(renderers=COLOR_RENDERERS)
    segment = Segment(
        writer=FakeWriter(profile="john"),
        env=env,
        foreground="color",
        foreground_templates=["if-john-2"],
    )
    assert segment.foreground_color() == "color2"
    assert segment.foreground_color() == "color2"
    assert env.render_calls == 1


def test_resolve_color_templates_skips_errors():
    def fail(ctx):
        raise ValueError("bad template")

    env = FakeEnv(renderers={"bad": fail, "good": lambda ctx: "#ffffff"})
    assert resolve_color_templates(["bad", "good"], None, env, "default") == "#ffffff"
    assert resolve_color_templates(["bad"], None, env, "default") == "default"


def test_render_uses_writer_template():
    env = FakeEnv(renderers={"tmpl": lambda ctx: f" {ctx.text} "})
    segment = Segment(type="fake")
    segment.map_writer(env)
    assert segment.render() == " hello "
    assert segment.template == "tmpl"


def test_render_returns_error_message():
    def fail(ctx):
        raise ValueError("template: bad")

    segment = Segment(type="fake", template="bad")
    segment.map_writer(FakeEnv(renderers={"bad": fail}))
    assert segment.render() == "template: bad"


def test_set_enabled_registers_segment_data():
    env = FakeEnv()
    segment = Segment(type="fake")
    segment.set_enabled(env)
    assert segment.enabled is True
    assert env.segment_data["fake"] is segment.writer


def test_set_enabled_disabled_writer():
    env = FakeEnv()
    segment = Segment(type="disabled")
    segment.set_enabled(env)
    assert segment.enabled is False
    assert env.segment_data == {}


def test_set_enabled_unknown_type():
    segment = Segment(type="unknown")
    segment.set_enabled(FakeEnv())
    assert segment.enabled is False


def test_set_enabled_recovers_from_failure(capsys):
    segment = Segment(type="broken")
    segment.set_enabled(FakeEnv())
    assert segment.enabled is True
    assert "fatal error rendering broken segment:boom" in capsys.readouterr().out


@pytest.mark.parametrize(
    "shell, rendered, expected",
    [
        ("bash", "a\\b`c", "a\\\\b'c"),
        ("fish", "a\\b", "a\\\\b"),
        ("zsh", "50%", "50%%"),
        ("pwsh", "a\\b%`", "a\\b%'"),
    ],
)
def test_set_text_escapes_for_shell(shell, rendered, expected):
    env = FakeEnv(shell_name=shell, renderers={"t": lambda ctx: rendered})
    segment = Segment(type="fake", template="t", enabled=True)
    segment.map_writer(env)
    segment.set_text()
    assert segment.text == expected
    assert segment.enabled is True


def test_set_text_interactive_not_escaped():
    env = FakeEnv(shell_name="zsh", renderers={"t": lambda ctx: "%F"})
    segment = Segment(type="fake", template="t", enabled=True, interactive=True)
    segment.map_writer(env)
    segment.set_text()
    assert segment.text == "%F"


def test_set_text_blank_disables():
    env = FakeEnv(renderers={"t": lambda ctx: "   "})
    segment = Segment(type="fake", template="t", enabled=True)
    segment.map_writer(env)
    segment.set_text()
    assert segment.enabled is False


def test_set_text_noop_when_disabled():
    segment = Segment(type="fake", template="t", text="old")
    segment.set_text()
    assert segment.text == "old"


def test_should_invoke_with_tip():
    segment = Segment(tips=["git", "g"])
    assert segment.should_invoke_with_tip("g") is True
    assert segment.should_invoke_with_tip("gi") is False


@pytest.mark.parametrize(
    "style, expected",
    [
        (SegmentStyle.POWERLINE, True),
        (SegmentStyle.ACCORDION, True),
        (SegmentStyle.DIAMOND, False),
        ("plain", False),
        ("powerline", True),
    ],
)
def test_is_powerline(style, expected):
    assert Segment(style=style).is_powerline() is expected


def test_segment_timing_name_length():
    assert SegmentTiming(name="ConsoleTitle").name_length == 12