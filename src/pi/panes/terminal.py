"""Terminal abstraction for raw-mode stdin/stdout interaction.

Provides a ``Terminal`` protocol and a concrete ``ProcessTerminal`` that
manages raw mode, the alternate screen, mouse tracking, cursor visibility,
and SIGWINCH-based resize detection.  Input is read through an asyncio
reader and split into key records by :class:`StdinBuffer`.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
import termios
import tty
from typing import Callable, Protocol

from pi.panes.mouse import DISABLE_MOUSE, ENABLE_MOUSE
from pi.panes.stdin_buffer import StdinBuffer

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

_ALT_SCREEN_ENABLE = "\x1b[?1049h"
_ALT_SCREEN_DISABLE = "\x1b[?1049l"
_HIDE_CURSOR = "\x1b[?25l"
_SHOW_CURSOR = "\x1b[?25h"
_CLEAR_SCREEN = "\x1b[2J\x1b[H"
_SET_TITLE_FMT = "\x1b]0;{}\x07"


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface for terminal I/O operations."""

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
        on_lost: Callable[[], None] | None = None,
    ) -> None: ...

    def stop(self) -> None: ...

    def write(self, data: str) -> None: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...

    def enable_mouse(self) -> None: ...

    def disable_mouse(self) -> None: ...

    def hide_cursor(self) -> None: ...

    def show_cursor(self) -> None: ...

    def clear_screen(self) -> None: ...

    def set_title(self, title: str) -> None: ...


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Terminal backed by ``sys.stdin`` / ``sys.stdout``.

    ``write`` lets ``OSError`` propagate so the renderer can tell a failed
    frame from a delivered one.
    """

    def __init__(self, *, alternate_screen: bool = True) -> None:
        self._alternate_screen = alternate_screen
        self._input_handler: Callable[[str], None] | None = None
        self._resize_handler: Callable[[], None] | None = None
        self._lost_handler: Callable[[], None] | None = None
        self._stdin_buffer: StdinBuffer | None = None
        self._stdin_reader_active = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._original_termios: list | None = None
        self._prev_sigwinch_handler: signal.Handlers | None = None
        self._mouse_enabled = False
        self._write_log_path: str = os.environ.get("PI_PANES_WRITE_LOG", "")

    # -- properties ---------------------------------------------------------

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).columns
        except (ValueError, OSError):
            return 80

    @property
    def rows(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).lines
        except (ValueError, OSError):
            return 24

    # -- start / stop -------------------------------------------------------

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
        on_lost: Callable[[], None] | None = None,
    ) -> None:
        """Enter raw mode and begin delivering key records to *on_input*.

        *on_lost* is called once if stdin reaches EOF or fails to read.
        """
        self._input_handler = on_input
        self._resize_handler = on_resize
        self._lost_handler = on_lost

        fd = sys.stdin.fileno()
        self._original_termios = termios.tcgetattr(fd)
        tty.setraw(fd)

        if self._alternate_screen:
            self.write(_ALT_SCREEN_ENABLE)
        self.hide_cursor()

        self._prev_sigwinch_handler = signal.getsignal(signal.SIGWINCH)
        signal.signal(signal.SIGWINCH, self._on_sigwinch)

        self._stdin_buffer = StdinBuffer(timeout=0.05)
        self._stdin_buffer.on_data(self._on_record)
        self._start_stdin_reader()

    def stop(self) -> None:
        """Restore the terminal and stop reading input.  Safe to call twice."""
        if self._input_handler is None and self._original_termios is None:
            return

        if self._stdin_buffer is not None:
            self._stdin_buffer.clear()
            self._stdin_buffer = None
        self._remove_stdin_reader()

        if self._prev_sigwinch_handler is not None:
            signal.signal(signal.SIGWINCH, self._prev_sigwinch_handler)
            self._prev_sigwinch_handler = None

        try:
            if self._mouse_enabled:
                self.disable_mouse()
            self.show_cursor()
            if self._alternate_screen:
                self.write(_ALT_SCREEN_DISABLE)
        except OSError as exc:
            logger.debug("could not reset terminal modes: %s", exc)

        if self._original_termios is not None:
            termios.tcsetattr(
                sys.stdin.fileno(), termios.TCSADRAIN, self._original_termios
            )
            self._original_termios = None

        self._input_handler = None
        self._resize_handler = None
        self._lost_handler = None

    # -- output -------------------------------------------------------------

    def write(self, data: str) -> None:
        """Write *data* to stdout and flush it."""
        sys.stdout.write(data)
        sys.stdout.flush()

        if self._write_log_path:
            try:
                with open(self._write_log_path, "a", encoding="utf-8") as f:
                    f.write(data)
            except OSError:
                pass

    def enable_mouse(self) -> None:
        self._mouse_enabled = True
        self.write(ENABLE_MOUSE)

    def disable_mouse(self) -> None:
        self._mouse_enabled = False
        self.write(DISABLE_MOUSE)

    def hide_cursor(self) -> None:
        self.write(_HIDE_CURSOR)

    def show_cursor(self) -> None:
        self.write(_SHOW_CURSOR)

    def clear_screen(self) -> None:
        self.write(_CLEAR_SCREEN)

    def set_title(self, title: str) -> None:
        self.write(_SET_TITLE_FMT.format(title))

    # -- private: stdin reading ---------------------------------------------

    def _on_record(self, record: str) -> None:
        if self._input_handler is not None:
            self._input_handler(record)

    def _start_stdin_reader(self) -> None:
        if self._stdin_reader_active:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("no running event loop, terminal input is disabled")
            return
        loop.add_reader(sys.stdin.fileno(), self._on_stdin_readable)
        self._loop = loop
        self._stdin_reader_active = True

    def _remove_stdin_reader(self) -> None:
        if not self._stdin_reader_active:
            return
        try:
            if self._loop is not None:
                self._loop.remove_reader(sys.stdin.fileno())
        except (RuntimeError, ValueError):
            pass
        self._loop = None
        self._stdin_reader_active = False

    def _on_stdin_readable(self) -> None:
        try:
            raw = os.read(sys.stdin.fileno(), 4096)
        except OSError as exc:
            logger.error("reading stdin failed: %s", exc)
            self._input_lost()
            return
        if not raw:
            logger.warning("stdin closed, no further input will arrive")
            self._input_lost()
            return

        data = raw.decode("utf-8", errors="replace")
        if self._stdin_buffer is not None:
            self._stdin_buffer.process(data)

    def _input_lost(self) -> None:
        self._remove_stdin_reader()
        handler, self._lost_handler = self._lost_handler, None
        if handler is not None:
            handler()

    # -- private: SIGWINCH --------------------------------------------------

    def _on_sigwinch(self, signum: int, frame: object) -> None:
        # Run on the loop so a resize never lands in the middle of dispatch.
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._fire_resize)
        else:
            self._fire_resize()

    def _fire_resize(self) -> None:
        if self._resize_handler is not None:
            self._resize_handler()
