"""Named color palettes with `p:` references."""

from __future__ import annotations

PALETTE_KEY_PREFIX = "p:"
PALETTE_MAX_RECURSION_DEPTH = 3


class PaletteKeyError(LookupError):
    """A palette reference names a color the palette does not hold."""

    def __init__(self, key: str, palette: dict[str, str]) -> None:
        self.key = key
        self.available = sorted(palette)
        super().__init__(str(self))

    def __str__(self) -> str:
        return (
            f"palette: requested color {self.key} does not exist in palette of colors "
            f"{','.join(self.available)}"
        )


class PaletteRecursiveKeyError(LookupError):
    """Resolving a palette reference went through too many other references."""

    def __init__(self, key: str, value: str, depth: int) -> None:
        self.key = key
        self.value = value
        self.depth = depth
        super().__init__(str(self))

    def __str__(self) -> str:
        return (
            f"palette: recursive resolution of color {self.key} returned palette "
            f"reference {self.value} and reached recursion depth {self.depth}"
        )


class Palette(dict[str, str]):
    """A mapping of color names to color values, possibly referring to each other."""

    def resolve_color(self, color_name: str) -> str:
        """Resolve a `p:` reference; other names are returned unchanged."""
        original = color_name
        depth = 1
        while color_name.startswith(PALETTE_KEY_PREFIX):
            key = color_name[len(PALETTE_KEY_PREFIX):]
            if key not in self:
                raise PaletteKeyError(key, self)
            color = self[key]
            if not color.startswith(PALETTE_KEY_PREFIX):
                return color
            if depth > PALETTE_MAX_RECURSION_DEPTH:
                raise PaletteRecursiveKeyError(original, color, depth)
            color_name = color
            depth += 1
        return color_name

    def maybe_resolve_color(self, color_name: str) -> str:
        """Like resolve_color, but an unresolvable reference yields an empty color."""
        try:
            return self.resolve_color(color_name)
        except (PaletteKeyError, PaletteRecursiveKeyError):
            return ""