"""Terminal text measurement: grapheme segmentation and cell widths.

Every row of text ends up in a fixed-width character grid, so all sizing
goes through :func:`visible_width` / :func:`iter_cells` which segment text
into grapheme clusters and measure each one with ``wcwidth``.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Iterator

import grapheme
import wcwidth as _wcwidth

# CSI / OSC sequences that may sneak into row text; they occupy no cells.
_STRIP_RE = re.compile(
    r"\x1b\[[0-9;?]*[A-Za-z]"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
)

TAB_WIDTH = 3

# ---------------------------------------------------------------------------
# Width cache (capped)
# ---------------------------------------------------------------------------

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _cache_width(key: str, value: int) -> int:
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[key] = value
    return value


def grapheme_width(g: str) -> int:
    """Return the number of terminal cells a single grapheme cluster uses."""
    if not g:
        return 0

    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or 0x7F <= cp <= 0x9F:
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        # VS16, ZWJ sequences, skin tones and flags render as emoji
        if cp in (0xFE0F, 0x200D) or 0x1F3FB <= cp <= 0x1F3FF:
            return 2
        if 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first = g[0]
    if ord(first) >= 0x1F000:
        return 2
    if unicodedata.category(first) in ("Mn", "Me", "Cf"):
        return 0
    return max(_wcwidth.wcwidth(first), 0)


def sanitize(text: str) -> str:
    """Drop escape sequences and expand tabs so text maps onto cells."""
    if "\x1b" in text:
        text = _STRIP_RE.sub("", text)
    return text.replace("\t", " " * TAB_WIDTH)


def visible_width(text: str) -> int:
    """Calculate the visible terminal width of *text*."""
    if not text:
        return 0
    text = sanitize(text)
    if text.isascii() and text.isprintable():
        return len(text)

    cached = _width_cache.get(text)
    if cached is not None:
        return cached

    total = sum(grapheme_width(g) for g in grapheme.graphemes(text))
    return _cache_width(text, total)


def iter_cells(text: str) -> Iterator[tuple[str, int]]:
    """Yield ``(grapheme, width)`` pairs, skipping zero-width clusters."""
    for g in grapheme.graphemes(sanitize(text)):
        w = grapheme_width(g)
        if w > 0:
            yield g, w


def truncate_to_width(text: str, max_width: int, ellipsis: str = "") -> str:
    """Cut *text* so it fits in *max_width* cells.

    When truncation happens and *ellipsis* is given, it replaces the tail.
    """
    if max_width <= 0:
        return ""
    if visible_width(text) <= max_width:
        return sanitize(text)

    budget = max_width - visible_width(ellipsis)
    if budget < 0:
        ellipsis = ""
        budget = max_width

    out: list[str] = []
    used = 0
    for g, w in iter_cells(text):
        if used + w > budget:
            break
        out.append(g)
        used += w
    return "".join(out) + ellipsis

