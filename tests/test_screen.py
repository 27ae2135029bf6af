"""Tests for pi.panes.screen -- painting, diffing and write failures."""

from __future__ import annotations

import errno

import pytest

from pi.panes.page import StyledText
from pi.panes.screen import BLANK, Screen
from pi.panes.style import RESET, Style

from .virtual_terminal import VirtualTerminal


def make_screen(rows: int = 5, columns: int = 10) -> tuple[Screen, VirtualTerminal]:
    term = VirtualTerminal(rows=rows, columns=columns)
    return Screen(term), term


class TestWrite:
    def test_writes_text(self) -> None:
        screen, _ = make_screen()
        assert screen.write(2, 1, "abc") == 3
        assert screen.get_text()[1] == "  abc     "

    def test_clips_to_screen_width(self) -> None:
        screen, _ = make_screen(columns=5)
        assert screen.write(3, 0, "abcdef") == 2
        assert screen.get_text()[0] == "   ab"

    def test_clips_to_max_width(self) -> None:
        screen, _ = make_screen()
        screen.write(0, 0, "abcdef", max_width=2)
        assert screen.get_text()[0].rstrip() == "ab"

    def test_rows_outside_screen_ignored(self) -> None:
        screen, _ = make_screen()
        assert screen.write(0, 10, "abc") == 0
        assert screen.write(0, -1, "abc") == 0

    def test_segments_keep_style(self) -> None:
        screen, _ = make_screen()
        screen.write(0, 0, "a", StyledText("b", color="red"))
        assert screen.cell(0, 0).style == Style()
        assert screen.cell(1, 0).style == Style(color="red")

    def test_wide_glyph_occupies_two_cells(self) -> None:
        screen, _ = make_screen()
        screen.write(0, 0, "日x")
        assert screen.cell(0, 0).char == "日"
        assert screen.cell(1, 0).char == ""
        assert screen.cell(2, 0).char == "x"

    def test_wide_glyph_at_edge_becomes_space(self) -> None:
        screen, _ = make_screen(columns=3)
        screen.write(2, 0, "日")
        assert screen.cell(2, 0).char == " "

    def test_overwriting_half_of_wide_glyph(self) -> None:
        screen, _ = make_screen()
        screen.write(0, 0, "日")
        screen.write(1, 0, "x")
        assert screen.get_text()[0].startswith(" x")

    def test_fill(self) -> None:
        screen, _ = make_screen()
        screen.fill(1, 1, 2, 2, "#")
        text = screen.get_text()
        assert text[1][:4] == " ## "
        assert text[2][:4] == " ## "
        assert text[3][:4] == "    "


class TestRenderLine:
    def test_plain_line_has_no_codes(self) -> None:
        screen, _ = make_screen(columns=3)
        screen.write(0, 0, "abc")
        assert screen.render_line(0) == "abc"

    def test_styled_line_ends_with_reset(self) -> None:
        screen, _ = make_screen(columns=2)
        screen.write(0, 0, StyledText("ab", color="red"))
        line = screen.render_line(0)
        assert line.startswith(RESET + "\x1b[31mab")
        assert line.endswith(RESET)


class TestFlush:
    def test_first_flush_repaints_everything(self) -> None:
        screen, term = make_screen(rows=3)
        screen.write(0, 0, "hi")
        assert screen.flush() is True
        assert term.write_count == 1
        assert "\x1b[2J" in term.output
        assert "\x1b[1;1H" in term.output and "\x1b[3;1H" in term.output
        assert screen.full_repaints == 1

    def test_only_changed_lines_rewritten(self) -> None:
        screen, term = make_screen(rows=3)
        screen.write(0, 0, "hi")
        screen.flush()
        term.clear_buffer()

        screen.update()
        screen.write(0, 0, "hi")
        screen.write(0, 2, "yo")
        screen.flush()
        assert term.write_count == 1
        assert "\x1b[3;1H" in term.output
        assert "\x1b[1;1H" not in term.output
        assert "\x1b[2J" not in term.output

    def test_unchanged_frame_writes_nothing(self) -> None:
        screen, term = make_screen()
        screen.flush()
        term.clear_buffer()
        screen.update()
        assert screen.flush() is True
        assert term.write_count == 0

    def test_resize_forces_full_repaint(self) -> None:
        screen, term = make_screen(rows=3, columns=10)
        sizes: list[tuple[int, int]] = []
        screen.on_resize(lambda w, h: sizes.append((w, h)))
        screen.flush()
        term.rows, term.columns = 4, 12
        screen.update()
        assert (screen.width, screen.height) == (12, 4)
        assert sizes == [(12, 4)]
        screen.flush()
        assert screen.full_repaints == 2

    def test_update_blanks_the_frame(self) -> None:
        screen, _ = make_screen()
        screen.write(0, 0, "abc")
        screen.update()
        assert screen.cell(0, 0) == BLANK


class TestWriteFailure:
    def test_error_goes_to_callback(self) -> None:
        screen, term = make_screen()
        errors: list[OSError] = []
        screen.on_error(errors.append)
        term.fail_writes = OSError(errno.EAGAIN, "try again")
        assert screen.flush() is False
        assert len(errors) == 1

    def test_failed_flush_repaints_next_time(self) -> None:
        screen, term = make_screen()
        screen.on_error(lambda exc: None)
        screen.flush()
        term.fail_writes = OSError(errno.EAGAIN, "try again")
        screen.update()
        screen.write(0, 0, "x")
        screen.flush()
        term.fail_writes = None
        term.clear_buffer()
        screen.update()
        screen.write(0, 0, "x")
        screen.flush()
        assert "\x1b[2J" in term.output

    def test_error_raised_without_callback(self) -> None:
        screen, term = make_screen()
        term.fail_writes = BrokenPipeError(errno.EPIPE, "broken pipe")
        with pytest.raises(BrokenPipeError):
            screen.flush()
