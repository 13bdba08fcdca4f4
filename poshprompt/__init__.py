"""Shell-aware prompt rendering: ANSI sequences, palettes, colour writers, segments, blocks, theme configuration and the prompt engine."""

__version__ = "0.1.0"