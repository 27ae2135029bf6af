"""Dispatch core: the coordinator that owns the screen, the layout and input.

One :class:`Console` is built at startup and handed to every control and
popup it manages.  It routes each input record through the mouse parser
and the key precedence chain, keeps the control/popup registries and the
focus stack, and runs the redraw pipeline::

    screen.update -> layout.draw -> controls -> popups -> screen.flush
"""

from __future__ import annotations

import errno
import logging
import types
import warnings
from dataclasses import dataclass, field
from typing import Callable, Mapping, Union

from pi.panes.errors import TerminalLostError
from pi.panes.keys import KeyEvent, decode_key, matches_key_combo
from pi.panes.layout import LayoutCompositor, LayoutOptions, resolve_pane_count
from pi.panes.mouse import MouseEvent, MouseFrame, MouseParser
from pi.panes.page import Page, StyledText
from pi.panes.screen import Screen
from pi.panes.terminal import ProcessTerminal, Terminal
from pi.panes.widgets import Control, PagePopup, Popup

logger = logging.getLogger(__name__)

__all__ = [
    "LOG_COLORS",
    "LOG_PAGE_TITLE",
    "LOG_POPUP_ID",
    "Console",
    "ConsoleOptions",
    "LogPageHandler",
]

LogLocation = Union[int, str]

LOG_COLORS: dict[str, str] = {
    "log": "white",
    "info": "blue",
    "warn": "yellow",
    "error": "red",
}
LOG_PAGE_TITLE = "LOGS"
LOG_POPUP_ID = "logPopup"
LOG_POPUP_TITLE = "Application Logs"
DEFAULT_SHOW_LOG_KEY = "o"

_STREAM_LOST_ERRNOS = frozenset({errno.EIO, errno.EPIPE, errno.EBADF, errno.ENXIO})


@dataclass
class ConsoleOptions:
    """Startup settings for a :class:`Console`."""

    title: str = ""
    # pane index, or "popup" to keep logs out of the layout
    log_location: LogLocation = 1
    show_log_key: str | None = None
    log_page_size: int = 10
    layout_options: LayoutOptions = field(default_factory=LayoutOptions)
    enable_mouse: bool = False
    override_console: bool = True
    focus_key: str = "tab"
    mouse_timeout_records: int = 1


class LogPageHandler(logging.Handler):
    """Forward Python log records into the console's log page."""

    def __init__(self, console: Console, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.console = console
        self._emitting = False

    def emit(self, record: logging.LogRecord) -> None:
        # Records from our own modules would recurse through refresh().
        if self._emitting or record.name.split(".")[:2] == ["pi", "panes"]:
            return
        try:
            message = self.format(record)
        except Exception:
            self.handleError(record)
            return
        self._emitting = True
        try:
            if record.levelno >= logging.ERROR:
                self.console.error(message)
            elif record.levelno >= logging.WARNING:
                self.console.warn(message)
            elif record.levelno >= logging.INFO:
                self.console.info(message)
            else:
                self.console.log(message)
        finally:
            self._emitting = False


def _is_stream_lost(exc: OSError) -> bool:
    if isinstance(exc, (BrokenPipeError, ConnectionResetError)):
        return True
    return exc.errno in _STREAM_LOST_ERRNOS


def _widget_id(widget: Control | Popup | str) -> str:
    return widget if isinstance(widget, str) else widget.id


class Console:
    """Routes input, owns the widget registries, and redraws the terminal."""

    def __init__(
        self,
        terminal: Terminal | None = None,
        options: ConsoleOptions | None = None,
    ) -> None:
        self.terminal: Terminal = terminal if terminal is not None else ProcessTerminal()
        self.options = options or ConsoleOptions()
        opts = self.options

        self.screen = Screen(self.terminal)
        self.screen.on_resize(self._handle_screen_resize)
        self.screen.on_error(self._handle_screen_error)

        self.mouse_enabled = opts.enable_mouse
        self.mouse = MouseParser(timeout_records=opts.mouse_timeout_records)
        self.mouse.on_mouse_event(self._dispatch_mouse)

        self.application_title = opts.title
        self.focus_key = opts.focus_key
        self.log_location: LogLocation = self._check_log_location(opts.log_location)
        self.show_log_key = opts.show_log_key
        if self.show_log_key is None and self.log_location == "popup":
            self.show_log_key = DEFAULT_SHOW_LOG_KEY
        self.log_page_size = opts.log_page_size
        self.log_page = Page(rows_per_page=self.log_page_size)

        self._controls: dict[str, Control] = {}
        self._popups: dict[str, Popup] = {}
        self._key_listeners: dict[str, Callable[[KeyEvent], None]] = {}
        self._mouse_listeners: dict[str, Callable[[MouseEvent], None]] = {}
        self._focus_stack: list[str] = []

        self._on_keypressed: Callable[[KeyEvent], None] | None = None
        self._on_resize: Callable[[int, int], None] | None = None
        self._on_exit: Callable[[], None] | None = None
        self._on_layout_ratio_changed: Callable[[float], None] | None = None

        self._log_handler: LogPageHandler | None = None
        self._started = False
        self._input_closed = False

        self._layout_options = opts.layout_options
        self.pages: list[Page] = []
        self.layout: LayoutCompositor
        self._log_pane: int | None = None
        self.update_layout(redraw=False)

    # -- notification channels ---------------------------------------------

    def on_keypressed(self, callback: Callable[[KeyEvent], None] | None) -> None:
        """Set the application key handler.  Not called while a popup is open."""
        self._on_keypressed = callback

    def on_resize(self, callback: Callable[[int, int], None] | None) -> None:
        self._on_resize = callback

    def on_exit(self, callback: Callable[[], None] | None) -> None:
        self._on_exit = callback

    def on_layout_ratio_changed(self, callback: Callable[[float], None] | None) -> None:
        self._on_layout_ratio_changed = callback

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        """Attach to the terminal and draw the first frame."""
        if self._started:
            return
        self._started = True
        self._input_closed = False
        self.terminal.start(
            self.handle_input, self._handle_terminal_resize, self._handle_input_lost
        )
        if self.application_title:
            self.terminal.set_title(self.application_title)
        if self.mouse_enabled:
            self.terminal.enable_mouse()
        if self.options.override_console:
            self._log_handler = LogPageHandler(self)
            logging.getLogger().addHandler(self._log_handler)
        self.screen.invalidate()
        self.refresh()

    def stop(self) -> None:
        """Detach from the terminal and stop accepting input."""
        self._input_closed = True
        if self._log_handler is not None:
            logging.getLogger().removeHandler(self._log_handler)
            self._log_handler = None
        if not self._started:
            return
        self._started = False
        if self.mouse_enabled:
            self.terminal.disable_mouse()
        self.terminal.stop()

    # -- layout -------------------------------------------------------------

    def _check_log_location(self, location: LogLocation) -> LogLocation:
        if location == "popup":
            return location
        if isinstance(location, int) and not isinstance(location, bool) and location >= 0:
            return location
        logger.warning("invalid log location %r, using pane 1", location)
        return 1

    def get_layout_options(self) -> LayoutOptions:
        return self._layout_options

    def set_layout_options(self, options: LayoutOptions, update: bool = True) -> None:
        """Replace the layout options; rebuilds every pane when *update*."""
        self._layout_options = options
        if update:
            self.update_layout()

    def update_layout(self, redraw: bool = True) -> None:
        """Rebuild panes from the current layout options.

        Pages already bound to surviving pane indexes are kept.  The log page
        takes its pane unless logs go to a popup.
        """
        count = resolve_pane_count(self._layout_options.type)
        old_pages = self.pages
        self.pages = [
            old_pages[i] if i < len(old_pages) and old_pages[i] is not self.log_page else Page()
            for i in range(count)
        ]
        self.layout = LayoutCompositor(options=self._layout_options)

        if self.log_location == "popup":
            self._log_pane = None
            self.layout.set_pages(self.pages)
            if self.application_title:
                self.layout.set_title(self.application_title, 0)
        else:
            log_pane = min(int(self.log_location), count - 1)
            if log_pane != self.log_location:
                logger.warning(
                    "log location %s outside a %d-pane layout, using pane %d",
                    self.log_location,
                    count,
                    log_pane,
                )
            self._log_pane = log_pane
            self.pages[log_pane] = self.log_page
            self.layout.set_pages(self.pages)
            self.layout.set_title(LOG_PAGE_TITLE, log_pane)
            if self.application_title and log_pane != 0:
                self.layout.set_title(self.application_title, 0)

        logger.debug("layout rebuilt: %d panes, log pane %s", count, self._log_pane)
        if redraw:
            self.refresh()

    def set_page(self, page: Page, index: int = 0, title: str | None = None) -> None:
        """Bind *page* to pane *index*.  The log pane keeps the log page."""
        if index == self._log_pane:
            logger.debug("ignoring page for log pane %d", index)
        else:
            self.layout.set_page(page, index)
            self.pages[index] = page
        if title is not None:
            self.layout.set_title(title, index)
        self.refresh()

    def set_pages(self, pages: list[Page], titles: list[str] | None = None) -> None:
        """Bind *pages* to panes in order, skipping the log pane."""
        for index, page in enumerate(pages[: len(self.pages)]):
            if index == self._log_pane:
                continue
            self.pages[index] = page
        self.layout.set_pages(self.pages)
        if titles:
            self.layout.set_titles(titles)
        self.refresh()

    def set_home_page(self, page: Page) -> None:
        warnings.warn(
            "set_home_page() is deprecated, use set_page()",
            DeprecationWarning,
            stacklevel=2,
        )
        self.set_page(page, 1 if self._log_pane == 0 else 0)

    def increase_ratio(self, step: float = 0.01) -> float:
        return self._change_ratio(self.layout.increase_ratio(step))

    def decrease_ratio(self, step: float = 0.01) -> float:
        return self._change_ratio(self.layout.decrease_ratio(step))

    def _change_ratio(self, ratio: float) -> float:
        if self._on_layout_ratio_changed is not None:
            self._on_layout_ratio_changed(ratio)
        self.refresh()
        return ratio

    # -- registries ---------------------------------------------------------

    @property
    def controls(self) -> Mapping[str, Control]:
        return types.MappingProxyType(self._controls)

    @property
    def popups(self) -> Mapping[str, Popup]:
        return types.MappingProxyType(self._popups)

    @property
    def focus_stack(self) -> tuple[str, ...]:
        return tuple(self._focus_stack)

    def register_control(self, control: Control) -> None:
        self._controls[control.id] = control
        logger.debug("control %s registered", control.id)

    def unregister_control(self, control: Control | str) -> None:
        self._controls.pop(_widget_id(control), None)

    def register_popup(self, popup: Popup) -> None:
        self._popups[popup.id] = popup
        logger.debug("popup %s registered", popup.id)

    def unregister_popup(self, popup: Popup | str) -> None:
        self._popups.pop(_widget_id(popup), None)

    def set_key_listener(self, id: str, listener: Callable[[KeyEvent], None]) -> None:
        """Install the key listener for *id*, replacing any previous one."""
        self._key_listeners[id] = listener

    def remove_key_listener(self, id: str) -> None:
        self._key_listeners.pop(id, None)

    def set_mouse_listener(self, id: str, listener: Callable[[MouseEvent], None]) -> None:
        """Install the mouse listener for *id*, replacing any previous one."""
        self._mouse_listeners[id] = listener

    def remove_mouse_listener(self, id: str) -> None:
        self._mouse_listeners.pop(id, None)

    # -- focus --------------------------------------------------------------

    def get_focused_widget(self) -> str | None:
        """Id of the focused control, or ``None``."""
        for id, control in self._controls.items():
            if control.is_focused():
                return id
        return None

    def unfocus_other_widgets(self, id: str) -> None:
        """Unfocus every control and popup but *id*, remembering which had focus."""
        for widget in [*self._controls.values(), *self._popups.values()]:
            if widget.id == id or not widget.is_focused():
                continue
            widget.unfocus()
            self._focus_stack.append(widget.id)

    def restore_focus_in_widgets(self) -> None:
        """Refocus everything :meth:`unfocus_other_widgets` took focus from."""
        for id in self._focus_stack:
            widget = self._controls.get(id) or self._popups.get(id)
            if widget is not None:
                widget.focus()
        self._focus_stack.clear()

    def _cycle_focus(self) -> None:
        ids = list(self._controls)
        if not ids:
            return
        current = self.get_focused_widget()
        for control in self._controls.values():
            control.unfocus()
        if current is None:
            target = ids[0]
        else:
            target = ids[(ids.index(current) + 1) % len(ids)]
        self._controls[target].focus()
        logger.debug("focus moved to %s", target)
        self.refresh()

    # -- drawing ------------------------------------------------------------

    def refresh(self) -> None:
        """Redraw layout, controls and popups and flush once."""
        self.screen.update()
        self.layout.draw(self.screen)
        for control in list(self._controls.values()):
            if control.is_visible():
                control.draw(self.screen)
        for popup in list(self._popups.values()):
            if popup.is_visible():
                popup.draw(self.screen)
        self.screen.flush()

    # -- log page -----------------------------------------------------------

    def _append_log(self, message: object, kind: str) -> None:
        self.log_page.add_row(StyledText(str(message), color=LOG_COLORS[kind]))

    def _write_log(self, message: object, kind: str) -> None:
        self._append_log(message, kind)
        self.log_page.set_scroll_index(0)
        self.refresh()

    def log(self, message: object) -> None:
        self._write_log(message, "log")

    def info(self, message: object) -> None:
        self._write_log(message, "info")

    def warn(self, message: object) -> None:
        self._write_log(message, "warn")

    def error(self, message: object) -> None:
        self._write_log(message, "error")

    def get_log_page_size(self) -> int:
        return self.log_page_size

    def set_log_page_size(self, size: int) -> None:
        self.log_page_size = size
        self.log_page.set_rows_per_page(size)

    def show_log_popup(self) -> Popup:
        """Show the log page in a popup; reuses the one already open."""
        existing = self._popups.get(LOG_POPUP_ID)
        if existing is not None:
            return existing
        self.log_page.set_rows_per_page(self.log_page_size)
        popup = PagePopup(
            self,
            LOG_POPUP_ID,
            content=self.log_page,
            width=max(2, self.screen.width - 12),
            title=LOG_POPUP_TITLE,
        )
        return popup.show()

    # -- input --------------------------------------------------------------

    def handle_input(self, data: str) -> None:
        """Process one logical input record."""
        if self._input_closed:
            return
        key = decode_key(data)
        if self.mouse_enabled:
            frame = self.mouse.feed(key)
            if frame is not MouseFrame.PASSTHROUGH:
                return
        self._dispatch_key(key)

    def _dispatch_key(self, key: KeyEvent) -> None:
        change_key = self._layout_options.change_focus_key
        if change_key and matches_key_combo(key, change_key):
            self.layout.change_layout()
            self.refresh()
            return
        if self.focus_key and matches_key_combo(key, self.focus_key):
            self._cycle_focus()
            return
        if self.show_log_key and matches_key_combo(key, self.show_log_key):
            self.show_log_popup()
            return
        if key.ctrl and key.name == "c":
            self._request_exit()
            return

        if not self._popups and self._on_keypressed is not None:
            self._on_keypressed(key)
        for listener in list(self._key_listeners.values()):
            listener(key)

    def _dispatch_mouse(self, event: MouseEvent) -> None:
        if event.name == "MOUSE_LEFT_BUTTON_PRESSED":
            x, y = event.data.x, event.data.y
            # First unfocused control under the pointer wins.
            for control in list(self._controls.values()):
                if control.is_focused() or not control.absolute_values.contains(x, y):
                    continue
                for other in self._controls.values():
                    other.unfocus()
                control.focus()
                logger.debug("focus moved to %s by click", control.id)
                self.refresh()
                break
        for listener in list(self._mouse_listeners.values()):
            listener(event)

    def _request_exit(self) -> None:
        logger.debug("exit requested")
        self.stop()
        if self._on_exit is not None:
            self._on_exit()

    # -- terminal events ----------------------------------------------------

    def _handle_terminal_resize(self) -> None:
        self.refresh()

    def _handle_input_lost(self) -> None:
        if not self._started:
            return
        logger.warning("terminal input stream lost")
        self._append_log("terminal input stream lost", "error")
        self._request_exit()

    def _handle_screen_resize(self, width: int, height: int) -> None:
        if self._on_resize is not None:
            self._on_resize(width, height)

    def _handle_screen_error(self, exc: OSError) -> None:
        # No refresh here: the write path is what just failed.
        self._append_log(f"terminal write failed: {exc}", "error")
        if _is_stream_lost(exc):
            raise TerminalLostError("terminal output stream lost") from exc
