"""Capability contract for interactive widgets, plus the built-in page popup.

Two kinds of widget take part in dispatch: a :class:`Control` sits on top
of the layout and takes focus by click or focus key; a :class:`Popup` is
modal, so while one is registered ordinary key events go only to the
individually registered listeners.  Both register with the :class:`Console`
when shown and unregister when hidden; the console never infers visibility
on its own.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, Protocol, TypeVar, runtime_checkable

from pi.panes.geometry import Rect
from pi.panes.layout import BOX_STYLES, draw_box, draw_title
from pi.panes.page import Page
from pi.panes.style import Style

if TYPE_CHECKING:
    from pi.panes.console import Console
    from pi.panes.keys import KeyEvent
    from pi.panes.mouse import MouseEvent, RelativeMouseEvent
    from pi.panes.screen import Screen

logger = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class Widget(Protocol):
    """What the console needs from anything it registers."""

    id: str

    @property
    def absolute_values(self) -> Rect: ...

    def draw(self, screen: Screen) -> None: ...

    def is_visible(self) -> bool: ...

    def focus(self) -> None: ...

    def unfocus(self) -> None: ...

    def is_focused(self) -> bool: ...


class OneShot(Generic[T]):
    """A completion callback that runs at most once."""

    def __init__(self) -> None:
        self._callback: Callable[[T], None] | None = None
        self._fired = False

    def set(self, callback: Callable[[T], None]) -> None:
        self._callback = callback

    @property
    def fired(self) -> bool:
        return self._fired

    def fire(self, value: T) -> bool:
        """Run the callback with *value*.  Returns ``False`` if already fired."""
        if self._fired:
            return False
        self._fired = True
        callback, self._callback = self._callback, None
        if callback is not None:
            callback(value)
        return True


@dataclass(frozen=True)
class PopupResult:
    confirmed: bool
    value: Any = None


# ---------------------------------------------------------------------------
# Controls
# ---------------------------------------------------------------------------


class Control(ABC):
    """A focusable widget drawn above the layout at a fixed rectangle."""

    def __init__(
        self,
        console: Console,
        id: str,
        rect: Rect,
        *,
        visible: bool = False,
    ) -> None:
        self.console = console
        self.id = id
        self._rect = rect
        self._visible = False
        self._focused = False
        if visible:
            self.show()

    @property
    def absolute_values(self) -> Rect:
        return self._rect

    def set_absolute_values(self, rect: Rect) -> None:
        self._rect = rect

    def show(self) -> Control:
        if self._visible:
            return self
        self._visible = True
        self.console.register_control(self)
        self.console.set_key_listener(self.id, self._key_listener)
        self.console.set_mouse_listener(self.id, self._mouse_listener)
        self.console.refresh()
        return self

    def hide(self) -> Control:
        if not self._visible:
            return self
        self._visible = False
        self._focused = False
        self.console.remove_key_listener(self.id)
        self.console.remove_mouse_listener(self.id)
        self.console.unregister_control(self)
        self.console.refresh()
        return self

    def is_visible(self) -> bool:
        return self._visible

    def focus(self) -> None:
        self._focused = True

    def unfocus(self) -> None:
        self._focused = False

    def is_focused(self) -> bool:
        return self._focused

    def _key_listener(self, key: KeyEvent) -> None:
        if self._focused:
            self.handle_key(key)

    def _mouse_listener(self, event: MouseEvent) -> None:
        relative = event.relative_to(self._rect)
        if relative.inside:
            self.handle_mouse(relative)

    def handle_key(self, key: KeyEvent) -> None:
        """Called for keys that arrive while this control has focus."""

    def handle_mouse(self, event: RelativeMouseEvent) -> None:
        """Called for mouse events inside the control's rectangle."""

    @abstractmethod
    def draw(self, screen: Screen) -> None: ...


# ---------------------------------------------------------------------------
# Popups
# ---------------------------------------------------------------------------


class Popup(ABC):
    """A modal box centered on the screen unless *x*/*y* are given.

    Showing a popup steals focus from every other widget; hiding it gives
    focus back.  :meth:`on_done` registers a handler that fires exactly
    once, when the popup is confirmed or cancelled.
    """

    def __init__(
        self,
        console: Console,
        id: str,
        width: int,
        height: int | None = None,
        title: str = "",
        *,
        x: int | None = None,
        y: int | None = None,
    ) -> None:
        self.console = console
        self.id = id
        self.title = title
        self.width = width
        self.height = height
        self.x = x
        self.y = y
        self._visible = False
        self._focused = False
        self._done: OneShot[PopupResult] = OneShot()

    # -- geometry -----------------------------------------------------------

    def preferred_height(self, screen_height: int) -> int:
        return self.height if self.height is not None else max(3, screen_height // 2)

    @property
    def absolute_values(self) -> Rect:
        screen = self.console.screen
        width = max(2, min(self.width, screen.width))
        height = max(2, min(self.preferred_height(screen.height), screen.height))
        x = self.x if self.x is not None else (screen.width - width) // 2
        y = self.y if self.y is not None else (screen.height - height) // 2
        return Rect(max(0, x), max(0, y), width, height)

    # -- lifecycle ----------------------------------------------------------

    def show(self) -> Popup:
        if self._visible:
            return self
        self._visible = True
        self.console.register_popup(self)
        self.console.unfocus_other_widgets(self.id)
        self.focus()
        self.console.set_key_listener(self.id, self._key_listener)
        self.console.set_mouse_listener(self.id, self._mouse_listener)
        self.console.refresh()
        return self

    def hide(self) -> Popup:
        if not self._visible:
            return self
        self._visible = False
        self.unfocus()
        self.console.remove_key_listener(self.id)
        self.console.remove_mouse_listener(self.id)
        self.console.unregister_popup(self)
        self.console.restore_focus_in_widgets()
        self.console.refresh()
        return self

    def on_done(self, callback: Callable[[PopupResult], None]) -> Popup:
        """Set the one-shot handler for confirm/cancel."""
        self._done.set(callback)
        return self

    def confirm(self, value: Any = None) -> None:
        self._finish(PopupResult(True, value))

    def cancel(self) -> None:
        self._finish(PopupResult(False))

    def _finish(self, result: PopupResult) -> None:
        self.hide()
        if not self._done.fire(result):
            logger.debug("popup %s already completed", self.id)

    # -- focus --------------------------------------------------------------

    def is_visible(self) -> bool:
        return self._visible

    def focus(self) -> None:
        self._focused = True

    def unfocus(self) -> None:
        self._focused = False

    def is_focused(self) -> bool:
        return self._focused

    # -- input --------------------------------------------------------------

    def _key_listener(self, key: KeyEvent) -> None:
        if self._focused:
            self.handle_key(key)

    def _mouse_listener(self, event: MouseEvent) -> None:
        if self._focused:
            relative = event.relative_to(self.absolute_values)
            if relative.inside:
                self.handle_mouse(relative)

    def handle_key(self, key: KeyEvent) -> None:
        """Called for keys that arrive while this popup has focus."""

    def handle_mouse(self, event: RelativeMouseEvent) -> None:
        """Called for mouse events inside the popup."""

    # -- drawing ------------------------------------------------------------

    def draw_frame(self, screen: Screen) -> Rect:
        """Clear the popup area, draw its border and title; return the inside."""
        rect = self.absolute_values
        screen.fill(rect.x, rect.y, rect.width, rect.height)
        style = Style(color="white", bold=self._focused)
        draw_box(screen, rect, BOX_STYLES["normal"], style)
        if self.title:
            draw_title(screen, rect, self.title, style.merged(bold=True))
        return rect.inset(1)

    @abstractmethod
    def draw(self, screen: Screen) -> None: ...


class PagePopup(Popup):
    """Popup showing a scrollable :class:`Page`; closes on enter or escape."""

    def __init__(
        self,
        console: Console,
        id: str,
        content: Page,
        width: int,
        title: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(console, id, width, title=title, **kwargs)
        self.content = content

    def preferred_height(self, screen_height: int) -> int:
        if self.height is not None:
            return self.height
        rows = max(1, self.content.get_rows_per_page())
        return min(rows, max(1, screen_height - 4)) + 2

    def _inner_height(self) -> int:
        return max(0, self.absolute_values.height - 2)

    def draw(self, screen: Screen) -> None:
        inner = self.draw_frame(screen)
        if inner.height <= 0:
            return
        rows = self.content.get_visible_rows()[-inner.height:]
        for offset, row in enumerate(rows):
            screen.write(inner.x, inner.y + offset, *row, max_width=inner.width)

    def handle_key(self, key: KeyEvent) -> None:
        if key.name in ("escape", "enter"):
            self.confirm()
            return
        if key.name == "up":
            self.content.increase_scroll_index()
        elif key.name == "down":
            self.content.decrease_scroll_index()
        elif key.name == "pageUp":
            self.content.set_scroll_index(
                self.content.get_scroll_index() + self._inner_height()
            )
        elif key.name == "pageDown":
            self.content.set_scroll_index(
                self.content.get_scroll_index() - self._inner_height()
            )
        else:
            return
        self.console.refresh()

    def handle_mouse(self, event: RelativeMouseEvent) -> None:
        if event.name == "MOUSE_WHEEL_UP":
            self.content.increase_scroll_index()
        elif event.name == "MOUSE_WHEEL_DOWN":
            self.content.decrease_scroll_index()
        else:
            return
        self.console.refresh()
