"""Layout compositor: splitting the terminal into bordered panes.

The terminal is divided into 1-4 panes along one direction.  A two-pane
layout is proportioned by ``ratio``; three and four panes share the space
evenly.  Pane rectangles are recomputed on every draw, so they always
follow the current terminal size.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, NamedTuple

from pi.panes.errors import PaneIndexError
from pi.panes.geometry import Rect
from pi.panes.page import Page, StyledText
from pi.panes.style import Style
from pi.panes.utils import truncate_to_width

if TYPE_CHECKING:
    from pi.panes.screen import Screen

logger = logging.getLogger(__name__)

LayoutType = Literal["single", "double", "triple", "quad"]
Direction = Literal["vertical", "horizontal"]

PANE_COUNTS: dict[str, int] = {
    "single": 1,
    "double": 2,
    "triple": 3,
    "quad": 4,
}
DEFAULT_LAYOUT_TYPE = "double"

MIN_RATIO = 0.1
MAX_RATIO = 0.9


class BoxGlyphs(NamedTuple):
    top_left: str
    top_right: str
    bottom_left: str
    bottom_right: str
    horizontal: str
    vertical: str


BOX_STYLES: dict[str, BoxGlyphs] = {
    "normal": BoxGlyphs("┌", "┐", "└", "┘", "─", "│"),
    "bold": BoxGlyphs("┏", "┓", "┗", "┛", "━", "┃"),
    "double": BoxGlyphs("╔", "╗", "╚", "╝", "═", "║"),
    "rounded": BoxGlyphs("╭", "╮", "╰", "╯", "─", "│"),
}


@dataclass(frozen=True)
class LayoutOptions:
    """Snapshot of layout settings.  Replacing it rebuilds every pane."""

    type: str = DEFAULT_LAYOUT_TYPE
    direction: Direction = "vertical"
    boxed: bool = True
    show_title: bool = True
    box_color: str = "cyan"
    box_style: str = "bold"
    change_focus_key: str = "ctrl+l"
    page_ratio: float = 0.5


def resolve_pane_count(layout_type: str) -> int:
    """Pane count for *layout_type*; unknown types fall back to two panes."""
    count = PANE_COUNTS.get(layout_type)
    if count is None:
        logger.warning(
            "unsupported layout type %r, using %r", layout_type, DEFAULT_LAYOUT_TYPE
        )
        return PANE_COUNTS[DEFAULT_LAYOUT_TYPE]
    return count


def clamp_ratio(ratio: float) -> float:
    return round(max(MIN_RATIO, min(MAX_RATIO, ratio)), 4)


def partition(rect: Rect, count: int, direction: str, ratio: float = 0.5) -> list[Rect]:
    """Split *rect* into *count* rectangles along *direction*.

    ``"vertical"`` places panes side by side, ``"horizontal"`` stacks them.
    The first cut uses *ratio* when there are two panes; otherwise every
    pane gets an equal share.
    """
    if count <= 1:
        return [rect]
    share = ratio if count == 2 else 1 / count
    if direction == "horizontal":
        size = rect.height
    else:
        size = rect.width
    first_size = int(round(size * share))
    if size >= count:
        first_size = max(1, min(first_size, size - (count - 1)))
    else:
        first_size = max(0, min(first_size, size))

    if direction == "horizontal":
        first = Rect(rect.x, rect.y, rect.width, first_size)
        rest = Rect(rect.x, rect.y + first_size, rect.width, size - first_size)
    else:
        first = Rect(rect.x, rect.y, first_size, rect.height)
        rest = Rect(rect.x + first_size, rect.y, size - first_size, rect.height)
    return [first] + partition(rest, count - 1, direction, 0.5)


@dataclass
class Pane:
    """A pane as computed for one draw."""

    rect: Rect
    page: Page | None
    title: str
    selected: bool


class LayoutCompositor:
    """Binds pages to pane slots and draws them into a :class:`Screen`."""

    def __init__(self, pages: list[Page] | None = None, options: LayoutOptions | None = None) -> None:
        self.options = options or LayoutOptions()
        self.pane_count = resolve_pane_count(self.options.type)
        self.pages: list[Page | None] = [None] * self.pane_count
        self.titles: list[str] = [""] * self.pane_count
        self._ratio = clamp_ratio(self.options.page_ratio)
        self._selected = 0
        if pages:
            self.set_pages(pages)

    # -- page binding -------------------------------------------------------

    def set_pages(self, pages: list[Page]) -> None:
        """Bind *pages* to pane slots in order; extra pages are ignored."""
        if len(pages) > self.pane_count:
            logger.debug(
                "%d pages for %d panes, ignoring the rest", len(pages), self.pane_count
            )
        for index, page in enumerate(pages[: self.pane_count]):
            self.pages[index] = page

    def set_page(self, page: Page, index: int) -> None:
        self._check_index(index)
        self.pages[index] = page

    def set_title(self, title: str, index: int) -> None:
        self._check_index(index)
        self.titles[index] = title

    def set_titles(self, titles: list[str]) -> None:
        for index, title in enumerate(titles[: self.pane_count]):
            self.titles[index] = title

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.pane_count:
            raise PaneIndexError(index, self.pane_count)

    # -- selection / ratio --------------------------------------------------

    def change_layout(self) -> int:
        """Select the next pane, wrapping after the last.  Returns its index."""
        self._selected = (self._selected + 1) % self.pane_count
        return self._selected

    def get_selected(self) -> int:
        return self._selected

    def get_ratio(self) -> float:
        return self._ratio

    def set_ratio(self, ratio: float) -> None:
        self._ratio = clamp_ratio(ratio)

    def increase_ratio(self, step: float = 0.01) -> float:
        self.set_ratio(self._ratio + step)
        return self._ratio

    def decrease_ratio(self, step: float = 0.01) -> float:
        self.set_ratio(self._ratio - step)
        return self._ratio

    # -- geometry -----------------------------------------------------------

    def compute_rects(self, width: int, height: int) -> list[Rect]:
        return partition(
            Rect(0, 0, width, height),
            self.pane_count,
            self.options.direction,
            self._ratio,
        )

    def panes(self, width: int, height: int) -> list[Pane]:
        return [
            Pane(rect, self.pages[i], self.titles[i], i == self._selected)
            for i, rect in enumerate(self.compute_rects(width, height))
        ]

    # -- drawing ------------------------------------------------------------

    def draw(self, screen: Screen) -> None:
        """Paint every pane (border, title, visible rows) into *screen*."""
        for pane in self.panes(screen.width, screen.height):
            self._draw_pane(screen, pane)

    def _border_style(self, selected: bool) -> Style:
        if self.pane_count > 1 and not selected:
            return Style(color=self.options.box_color, dim=True)
        return Style(color=self.options.box_color, bold=True)

    def _draw_pane(self, screen: Screen, pane: Pane) -> None:
        rect = pane.rect
        if rect.width <= 0 or rect.height <= 0:
            return

        opts = self.options
        if opts.boxed and rect.width >= 2 and rect.height >= 2:
            style = self._border_style(pane.selected)
            draw_box(screen, rect, BOX_STYLES.get(opts.box_style, BOX_STYLES["normal"]), style)
            if opts.show_title and pane.title:
                draw_title(screen, rect, pane.title, style.merged(dim=False, bold=True))
            inner = rect.inset(1)
        else:
            inner = rect
            if opts.show_title and pane.title:
                screen.write(
                    inner.x,
                    inner.y,
                    StyledText(pane.title, color=opts.box_color, bold=True),
                    max_width=inner.width,
                )
                inner = Rect(inner.x, inner.y + 1, inner.width, max(0, inner.height - 1))

        if pane.page is None:
            return
        pane.page.set_rows_per_page(inner.height)
        for offset, row in enumerate(pane.page.iter_visible()):
            screen.write(inner.x, inner.y + offset, *row, max_width=inner.width)


def draw_box(screen: Screen, rect: Rect, glyphs: BoxGlyphs, style: Style) -> None:
    """Paint a border along the edge of *rect*."""
    inner_width = max(0, rect.width - 2)

    def seg(text: str) -> StyledText:
        return StyledText.with_style(text, style)

    screen.write(rect.x, rect.y, seg(glyphs.top_left + glyphs.horizontal * inner_width + glyphs.top_right))
    for y in range(rect.y + 1, rect.bottom - 1):
        screen.write(rect.x, y, seg(glyphs.vertical))
        screen.write(rect.right - 1, y, seg(glyphs.vertical))
    screen.write(
        rect.x,
        rect.bottom - 1,
        seg(glyphs.bottom_left + glyphs.horizontal * inner_width + glyphs.bottom_right),
    )


def draw_title(screen: Screen, rect: Rect, title: str, style: Style) -> None:
    """Overlay *title* on the top border of *rect*."""
    room = rect.width - 4
    if room <= 0:
        return
    text = truncate_to_width(f" {title} ", room)
    screen.write(
        rect.x + 2,
        rect.y,
        StyledText.with_style(text, style),
    )
