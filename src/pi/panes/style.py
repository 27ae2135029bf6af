"""Color names and SGR encoding for styled cells."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

RESET = "\x1b[0m"

_FOREGROUND: dict[str, int] = {
    "black": 30,
    "red": 31,
    "green": 32,
    "yellow": 33,
    "blue": 34,
    "magenta": 35,
    "cyan": 36,
    "white": 37,
    "gray": 90,
    "grey": 90,
    "blackbright": 90,
    "redbright": 91,
    "greenbright": 92,
    "yellowbright": 93,
    "bluebright": 94,
    "magentabright": 95,
    "cyanbright": 96,
    "whitebright": 97,
}


def _normalize_color(name: str) -> str:
    key = name.replace("_", "").replace("-", "").lower()
    if key.startswith("bg"):
        key = key[2:]
    if key.startswith("bright"):
        key = key[len("bright"):] + "bright"
    return key


def color_code(name: str | None, background: bool = False) -> int | None:
    """Return the SGR parameter for a color name, or ``None`` if unknown.

    Accepts ``"red"``, ``"redBright"``, ``"bright_red"``, ``"bgRed"``.
    """
    if not name:
        return None
    code = _FOREGROUND.get(_normalize_color(name))
    if code is None:
        return None
    return code + 10 if background else code


@dataclass(frozen=True)
class Style:
    """Visual attributes of one cell."""

    color: str | None = None
    bg: str | None = None
    bold: bool = False
    italic: bool = False
    dim: bool = False
    underline: bool = False
    inverse: bool = False
    strikethrough: bool = False

    def sgr(self) -> str:
        return _sgr(self)

    def merged(self, **changes: object) -> Style:
        """Return a copy with the given attributes replaced."""
        values = {
            "color": self.color,
            "bg": self.bg,
            "bold": self.bold,
            "italic": self.italic,
            "dim": self.dim,
            "underline": self.underline,
            "inverse": self.inverse,
            "strikethrough": self.strikethrough,
        }
        values.update(changes)
        return Style(**values)  # type: ignore[arg-type]


DEFAULT_STYLE = Style()


@lru_cache(maxsize=256)
def _sgr(style: Style) -> str:
    params: list[int] = []
    if style.bold:
        params.append(1)
    if style.dim:
        params.append(2)
    if style.italic:
        params.append(3)
    if style.underline:
        params.append(4)
    if style.inverse:
        params.append(7)
    if style.strikethrough:
        params.append(9)
    fg = color_code(style.color)
    if fg is not None:
        params.append(fg)
    bg = color_code(style.bg, background=True)
    if bg is not None:
        params.append(bg)
    if not params:
        return ""
    return "\x1b[" + ";".join(str(p) for p in params) + "m"
