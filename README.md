# poshprompt

`poshprompt` renders shell prompts — coloured segments, powerline and diamond
shapes, right-aligned blocks, transient, tooltip and other extra prompts —
from a theme configuration written in JSON, YAML or TOML.

It knows the escaping rules of zsh and bash (non-printing markers `%{ %}` and
`\[ \]`) and emits unescaped sequences for the other shells (fish, pwsh,
powershell, cmd, nu, plain), so the printable width of a prompt is measured
correctly everywhere.

## Modules

- `poshprompt.ansi` — `Ansi(shell)`, the per-shell escape-sequence vocabulary:
  colour templates, window title, cursor movement, line changes, OSC 99 working
  directory, hyperlinks from `[text](url)`, inline styles such as `<b>bold</b>`
  (`format_styles`), and `measure_text` / `trim_ansi` for the printable width.
  `Ansi.plain()` gives unescaped sequences.
- `poshprompt.palette` — `Palette`, a dict of named colours referenced as
  `p:name`. References may point to other references up to three levels deep;
  failures raise `PaletteKeyError` or `PaletteRecursiveKeyError`, and
  `maybe_resolve_color` returns `""` instead.
- `poshprompt.colors` — converts colour names (`red`, `lightBlue`, ...), hex
  values (`#AABBCC`, `#abc`), `transparent` and `accent` into ANSI codes.
  `make_colors(palette, cache_enabled, accent_color)` stacks `DefaultColors`,
  `PaletteColors` and `CachedColors` as needed.
- `poshprompt.writer` — `AnsiWriter` writes text in background/foreground
  colours, honouring inline overrides like `hello <red>world</>` and the
  keywords `background`, `foreground`, `parentBackground`, `parentForeground`.
  `PlainWriter` strips overrides and writes no colours. Both return
  `(text, visible_length)` from `result()`.
- `poshprompt.segment` — `Segment`, `SegmentStyle`, `SegmentTiming`, the
  `Environment` protocol, `register_writer` and `resolve_color_templates`.
- `poshprompt.block` — `Block`, `BlockType` (`prompt`, `newline`, `rprompt`)
  and `BlockAlignment` (`left`, `right`).
- `poshprompt.migrate` — upgrades version 0 and 1 theme settings (prefix,
  postfix, icon and colour properties) to version 2 templates.
- `poshprompt.config` — `Config`, `load_config`, `default_config`,
  `escape_glyphs` and `ConfigError`. Configurations are exported as JSON, YAML
  or TOML; older files are migrated on load with a `.bak` copy kept beside
  them.
- `poshprompt.engine` — `Engine`, with `print_primary`, `print_rprompt`,
  `print_tooltip`, `print_extra_prompt(ExtraPromptType...)` and `print_debug`.

## Examples

Escape sequences and measurement:

```python
from poshprompt.ansi import Ansi

zsh = Ansi("zsh")
print(repr(zsh.generate_hyperlink("[docs](https://example.com)")))

plain = Ansi.plain()
styled = plain.format_styles("This <b>is</b> bold")
print(plain.measure_text(styled))  # 15: escape sequences are not counted
```

Palette lookups:

```python
from poshprompt.palette import Palette, PaletteKeyError

palette = Palette({"red": "#FF0000", "alert": "p:red"})
palette.resolve_color("p:alert")    # "#FF0000"
palette.resolve_color("#1F1137")    # not a reference, returned as is
palette.maybe_resolve_color("p:x")  # ""

try:
    palette.resolve_color("p:missing")
except PaletteKeyError as err:
    print(err)
```

Colouring text:

```python
from poshprompt.ansi import Ansi
from poshprompt.colors import DefaultColors
from poshprompt.writer import AnsiWriter

writer = AnsiWriter(ansi=Ansi("pwsh"), ansi_colors=DefaultColors())
writer.set_colors("white", "black")
writer.write("white", "black", "hello, <red>world</>")
text, length = writer.result()
```

Exporting a theme:

```python
from poshprompt.config import Config, default_config

cfg = default_config()
print(cfg.export("toml"))

same = Config.from_dict(cfg.to_dict())
```

Glyphs between U+1000 and U+10000 are written as `\uXXXX` escapes in JSON
and TOML exports, so exported files stay readable in any editor.

## Supplying an environment

Segments, blocks, `load_config` and `Engine` work against an object that
follows the `poshprompt.segment.Environment` protocol: it reports the shell,
working directory, terminal width, environment variables and flags (such as
`config`, `migrate`, `eval`, `debug`), matches directories, and renders
templates through `render_template(template, context)`. Segment writers are
registered per segment type with `register_writer(segment_type, factory)`;
a factory returns an object with `init(props, env)`, `enabled()` and
`template()`.

## What the package does not do

- It has no command-line program and no shell initialisation scripts; it is a
  library to be called from your own code.
- It ships no segment writers (git, path, session, battery, ...): segments of
  a type with no registered writer stay disabled.
- It ships no concrete `Environment` and no template language; rendering
  templates is left to the environment you supply.
- It does not read the operating system's accent colour; `accent` resolves
  only from the configuration's `accent_color`.
- It does not export prompts as images.