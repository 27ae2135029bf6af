"""Content Page: an ordered, scrollable sequence of styled rows.

A page is the unit every pane and popup renders from.  The scroll index
counts rows up from the tail: ``0`` shows the newest ``rows_per_page`` rows,
larger values reveal older rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import islice
from typing import Iterator, Mapping, Union

from pi.panes.style import Style


@dataclass(frozen=True)
class StyledText:
    """One run of text sharing a single style."""

    text: str
    color: str | None = None
    bg: str | None = None
    bold: bool = False
    italic: bool = False
    dim: bool = False
    underline: bool = False
    inverse: bool = False
    strikethrough: bool = False

    @classmethod
    def with_style(cls, text: str, style: Style) -> StyledText:
        return cls(
            text,
            color=style.color,
            bg=style.bg,
            bold=style.bold,
            italic=style.italic,
            dim=style.dim,
            underline=style.underline,
            inverse=style.inverse,
            strikethrough=style.strikethrough,
        )

    @property
    def style(self) -> Style:
        return Style(
            color=self.color,
            bg=self.bg,
            bold=self.bold,
            italic=self.italic,
            dim=self.dim,
            underline=self.underline,
            inverse=self.inverse,
            strikethrough=self.strikethrough,
        )


# A row is immutable once appended.
Row = tuple[StyledText, ...]

SegmentLike = Union[StyledText, str, Mapping[str, object]]


def to_segment(value: SegmentLike) -> StyledText:
    """Coerce a string, mapping, or :class:`StyledText` into a segment."""
    if isinstance(value, StyledText):
        return value
    if isinstance(value, str):
        return StyledText(value)
    return StyledText(**value)  # type: ignore[arg-type]


def row_text(row: Row) -> str:
    return "".join(seg.text for seg in row)


class Page:
    """Scrollable list of rows with a fixed-size visible window."""

    def __init__(self, rows_per_page: int = 100) -> None:
        self._rows: list[Row] = []
        self._rows_per_page = max(0, rows_per_page)
        self._scroll_index = 0

    # -- mutation -----------------------------------------------------------

    def add_row(self, *segments: SegmentLike) -> Page:
        """Append a row built from *segments*.  Does not move the window."""
        self._rows.append(tuple(to_segment(s) for s in segments))
        return self

    def clear(self) -> None:
        """Drop every row and reset scrolling."""
        self._rows.clear()
        self._scroll_index = 0

    # -- window -------------------------------------------------------------

    def get_rows_per_page(self) -> int:
        return self._rows_per_page

    def set_rows_per_page(self, rows: int) -> None:
        self._rows_per_page = max(0, rows)
        self._scroll_index = self._clamp(self._scroll_index)

    def get_scroll_index(self) -> int:
        return self._scroll_index

    def set_scroll_index(self, index: int) -> None:
        self._scroll_index = self._clamp(index)

    def increase_scroll_index(self) -> None:
        """Scroll one row toward older content."""
        self.set_scroll_index(self._scroll_index + 1)

    def decrease_scroll_index(self) -> None:
        """Scroll one row toward newer content."""
        self.set_scroll_index(self._scroll_index - 1)

    def max_scroll_index(self) -> int:
        return max(0, len(self._rows) - self._rows_per_page)

    def _clamp(self, index: int) -> int:
        return max(0, min(index, self.max_scroll_index()))

    # -- reading ------------------------------------------------------------

    def get_page_height(self) -> int:
        """Total number of rows held."""
        return len(self._rows)

    def get_content(self) -> list[Row]:
        return list(self._rows)

    def iter_visible(self) -> Iterator[Row]:
        """Yield the rows currently inside the window, oldest first."""
        # Re-clamp: rows may have been added since the last scroll.
        scroll = self._clamp(self._scroll_index)
        end = len(self._rows) - scroll
        start = max(0, end - self._rows_per_page)
        return islice(self._rows, start, end)

    def get_visible_rows(self) -> list[Row]:
        return list(self.iter_visible())

    def __len__(self) -> int:
        return len(self._rows)
