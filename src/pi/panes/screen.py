"""Frame buffer and differential renderer.

The :class:`Screen` owns a grid of cells the size of the terminal.  Each
redraw cycle starts from a blank grid (:meth:`Screen.update`), the layout,
controls and popups paint into it with :meth:`Screen.write`, and
:meth:`Screen.flush` writes only the lines that differ from the previous
flush, in one terminal write.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, NamedTuple

from pi.panes.page import SegmentLike, to_segment
from pi.panes.style import DEFAULT_STYLE, RESET, Style
from pi.panes.utils import iter_cells

if TYPE_CHECKING:
    from pi.panes.terminal import Terminal

logger = logging.getLogger(__name__)

_CURSOR_TO_FMT = "\x1b[{};{}H"
_CLEAR_SCREEN = "\x1b[2J"


class Cell(NamedTuple):
    """One character cell.  ``char == ""`` marks the right half of a wide glyph."""

    char: str
    style: Style


BLANK = Cell(" ", DEFAULT_STYLE)


class Screen:
    """Terminal-sized cell grid with line-level diffing on flush."""

    def __init__(self, terminal: Terminal) -> None:
        self.terminal = terminal
        self.width: int = max(0, terminal.columns)
        self.height: int = max(0, terminal.rows)
        self._cells: list[list[Cell]] = self._blank_grid()
        # ``None`` means the physical terminal content is unknown.
        self._previous_lines: list[str] | None = None
        self._full_repaint_count = 0

        self._on_resize: Callable[[int, int], None] | None = None
        self._on_error: Callable[[OSError], None] | None = None

    # -- notifications ------------------------------------------------------

    def on_resize(self, callback: Callable[[int, int], None]) -> None:
        """Set the callback fired with ``(width, height)`` after a resize."""
        self._on_resize = callback

    def on_error(self, callback: Callable[[OSError], None]) -> None:
        """Set the callback that receives terminal write failures."""
        self._on_error = callback

    @property
    def full_repaints(self) -> int:
        """Number of flushes that repainted every line."""
        return self._full_repaint_count

    # -- frame lifecycle ----------------------------------------------------

    def update(self) -> None:
        """Resync the size with the terminal and start a blank frame."""
        width = max(0, self.terminal.columns)
        height = max(0, self.terminal.rows)
        resized = (width, height) != (self.width, self.height)
        self.width, self.height = width, height
        self._cells = self._blank_grid()
        if resized:
            logger.debug("terminal resized to %dx%d", width, height)
            self.invalidate()
            if self._on_resize is not None:
                self._on_resize(width, height)

    def invalidate(self) -> None:
        """Force the next flush to repaint the whole screen."""
        self._previous_lines = None

    def _blank_grid(self) -> list[list[Cell]]:
        return [[BLANK] * self.width for _ in range(self.height)]

    # -- painting -----------------------------------------------------------

    def write(
        self,
        x: int,
        y: int,
        *segments: SegmentLike,
        max_width: int | None = None,
    ) -> int:
        """Paint *segments* starting at column *x* of row *y*.

        Output is clipped to the screen and to *max_width* cells.  Returns
        the number of cells painted.
        """
        if y < 0 or y >= self.height:
            return 0
        limit = self.width if max_width is None else min(self.width, x + max_width)
        col = x
        for value in segments:
            seg = to_segment(value)
            style = seg.style
            for g, w in iter_cells(seg.text):
                if col + w > limit:
                    if w == 2 and col < limit and col >= 0:
                        # half a wide glyph does not fit
                        self._put(col, y, " ", 1, style)
                        col += 1
                    return max(0, col - max(x, 0))
                if col >= 0:
                    self._put(col, y, g, w, style)
                col += w
        return max(0, col - max(x, 0))

    def fill(
        self,
        x: int,
        y: int,
        width: int,
        height: int,
        char: str = " ",
        style: Style = DEFAULT_STYLE,
    ) -> None:
        """Paint a rectangle with one character."""
        for row in range(max(0, y), min(self.height, y + height)):
            for col in range(max(0, x), min(self.width, x + width)):
                self._put(col, row, char, 1, style)

    def _put(self, x: int, y: int, char: str, w: int, style: Style) -> None:
        line = self._cells[y]
        # Overwriting either half of a wide glyph blanks the other half.
        if line[x].char == "" and x > 0:
            line[x - 1] = Cell(" ", line[x - 1].style)
        if x + 1 < self.width and line[x + 1].char == "":
            line[x + 1] = Cell(" ", line[x + 1].style)
        line[x] = Cell(char, style)
        if w == 2 and x + 1 < self.width:
            if x + 2 < self.width and line[x + 2].char == "":
                line[x + 2] = Cell(" ", line[x + 2].style)
            line[x + 1] = Cell("", style)

    # -- reading ------------------------------------------------------------

    def cell(self, x: int, y: int) -> Cell:
        return self._cells[y][x]

    def render_line(self, y: int) -> str:
        """Encode row *y* as text with SGR codes, ending in a reset."""
        parts: list[str] = []
        current = DEFAULT_STYLE
        for cell in self._cells[y]:
            if cell.char == "":
                continue
            if cell.style != current:
                parts.append(RESET)
                parts.append(cell.style.sgr())
                current = cell.style
            parts.append(cell.char)
        if current != DEFAULT_STYLE:
            parts.append(RESET)
        return "".join(parts)

    def get_lines(self) -> list[str]:
        return [self.render_line(y) for y in range(self.height)]

    def get_text(self) -> list[str]:
        """The frame as plain text, one string per row."""
        return ["".join(c.char for c in line) for line in self._cells]

    # -- output -------------------------------------------------------------

    def flush(self) -> bool:
        """Write the changed lines to the terminal in a single write.

        Returns ``False`` if the write failed; the failure is passed to the
        error callback, or re-raised when none is set.
        """
        lines = self.get_lines()
        previous = self._previous_lines
        full = previous is None or len(previous) != len(lines)

        out: list[str] = []
        if full:
            self._full_repaint_count += 1
            out.append(RESET + _CLEAR_SCREEN)
        for y, line in enumerate(lines):
            if not full and previous[y] == line:  # type: ignore[index]
                continue
            out.append(_CURSOR_TO_FMT.format(y + 1, 1))
            out.append(line)

        if not out:
            return True

        try:
            self.terminal.write("".join(out))
        except OSError as exc:
            logger.error("terminal write failed: %s", exc)
            self.invalidate()
            if self._on_error is None:
                raise
            self._on_error(exc)
            return False

        self._previous_lines = lines
        return True
