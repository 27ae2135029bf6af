"""Tests for pi.panes.utils and pi.panes.style."""

from __future__ import annotations

from pi.panes.style import RESET, Style, color_code
from pi.panes.utils import iter_cells, sanitize, truncate_to_width, visible_width


class TestVisibleWidth:
    def test_ascii(self) -> None:
        assert visible_width("hello") == 5

    def test_empty(self) -> None:
        assert visible_width("") == 0

    def test_wide_characters(self) -> None:
        assert visible_width("日本") == 4

    def test_escape_sequences_take_no_cells(self) -> None:
        assert visible_width("\x1b[31mred\x1b[0m") == 3

    def test_tab_expands(self) -> None:
        assert visible_width("a\tb") == 5

    def test_combining_mark_is_zero_width(self) -> None:
        assert visible_width("é") == 1


class TestIterCells:
    def test_yields_widths(self) -> None:
        assert list(iter_cells("a日")) == [("a", 1), ("日", 2)]

    def test_strips_escapes(self) -> None:
        assert sanitize("\x1b]0;title\x07x") == "x"


class TestTruncate:
    def test_fits_unchanged(self) -> None:
        assert truncate_to_width("abc", 5) == "abc"

    def test_cuts_ascii(self) -> None:
        assert truncate_to_width("abcdef", 3) == "abc"

    def test_ellipsis_replaces_tail(self) -> None:
        assert truncate_to_width("abcdef", 4, "…") == "abc…"

    def test_wide_glyph_not_split(self) -> None:
        assert truncate_to_width("日本語", 3) == "日"

    def test_zero_width(self) -> None:
        assert truncate_to_width("abc", 0) == ""


class TestStyle:
    def test_color_names(self) -> None:
        assert color_code("red") == 31
        assert color_code("redBright") == 91
        assert color_code("bright_red") == 91
        assert color_code("bgRed", background=True) == 41
        assert color_code("gray") == 90
        assert color_code("nope") is None

    def test_sgr(self) -> None:
        assert Style(color="red", bold=True).sgr() == "\x1b[1;31m"
        assert Style().sgr() == ""

    def test_merged(self) -> None:
        base = Style(color="cyan", dim=True)
        assert base.merged(dim=False, bold=True) == Style(color="cyan", bold=True)

    def test_reset_constant(self) -> None:
        assert RESET == "\x1b[0m"
