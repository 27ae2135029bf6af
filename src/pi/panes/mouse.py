"""Mouse tracking: parsing xterm mouse reports out of the key stream.

With mouse tracking on, the terminal interleaves mouse reports with normal
keypresses.  A report may reach us whole or cut into several key records,
so :class:`MouseParser` is a small state machine fed with every record.
For each one it answers with a :class:`MouseFrame`:

* ``START`` / ``CONTINUE`` -- the record is (part of) a mouse report that
  is not finished yet; the caller must not treat it as a key.
* ``END`` -- the record finished a report; the decoded :class:`MouseEvent`
  has been emitted.
* ``PASSTHROUGH`` -- the record has nothing to do with the mouse.

Both SGR (``ESC [ < b ; x ; y M|m``) and X10 (``ESC [ M bxy``) reports are
understood.  A report that stops making sense is dropped and the parser
goes back to idle after ``timeout_records`` unrelated records, so key
dispatch can never stay blocked.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Callable

from pi.panes.geometry import Rect
from pi.panes.keys import KeyEvent

logger = logging.getLogger(__name__)

SGR_PREFIX = "\x1b[<"
X10_PREFIX = "\x1b[M"
_CSI = "\x1b["

# Enable button, drag and SGR extended reporting / disable them again
ENABLE_MOUSE = "\x1b[?1000h\x1b[?1002h\x1b[?1006h"
DISABLE_MOUSE = "\x1b[?1006l\x1b[?1002l\x1b[?1000l"

_SGR_COMPLETE_RE = re.compile(r"^(\d+);(\d+);(\d+)([Mm])$")
_SGR_PARTIAL_RE = re.compile(r"^(?:\d+(?:;(?:\d+(?:;\d*)?)?)?)?$")

_BUTTON_NAMES = ("LEFT", "MIDDLE", "RIGHT")

_SHIFT = 4
_ALT = 8
_CTRL = 16
_MOTION = 32
_WHEEL = 64


class MouseFrame(enum.Enum):
    START = "start"
    CONTINUE = "continue"
    END = "end"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class MouseEventArgs:
    x: int
    y: int
    shift: bool = False
    alt: bool = False
    ctrl: bool = False


@dataclass(frozen=True)
class MouseEvent:
    """A decoded mouse report in absolute, 0-based cell coordinates."""

    name: str
    data: MouseEventArgs

    def relative_to(self, rect: Rect) -> RelativeMouseEvent:
        """Translate into coordinates relative to *rect*'s top-left cell."""
        return RelativeMouseEvent(
            name=self.name,
            data=MouseEventArgs(
                self.data.x - rect.x,
                self.data.y - rect.y,
                self.data.shift,
                self.data.alt,
                self.data.ctrl,
            ),
            inside=rect.contains(self.data.x, self.data.y),
        )


@dataclass(frozen=True)
class RelativeMouseEvent:
    name: str
    data: MouseEventArgs
    inside: bool


def _event_name(button_code: int, released: bool, last_button: int | None) -> str:
    if button_code & _WHEEL:
        return "MOUSE_WHEEL_DOWN" if button_code & 1 else "MOUSE_WHEEL_UP"
    button = button_code & 3
    if button == 3:
        # X10 release does not say which button
        if button_code & _MOTION:
            return "MOUSE_MOTION"
        if last_button is None:
            return "MOUSE_BUTTON_RELEASED"
        button, released = last_button, True
    prefix = f"MOUSE_{_BUTTON_NAMES[button]}_BUTTON_"
    if released:
        return prefix + "RELEASED"
    if button_code & _MOTION:
        return prefix + "DRAG"
    return prefix + "PRESSED"


class MouseParser:
    """Incremental classifier for mouse reports in the key stream."""

    def __init__(self, *, timeout_records: int = 1, max_length: int = 32) -> None:
        self._timeout_records = max(1, timeout_records)
        self._max_length = max_length
        self._buffer: str = ""
        self._stray_records = 0
        self._last_button: int | None = None
        self._on_mouse_event: Callable[[MouseEvent], None] | None = None

    def on_mouse_event(self, callback: Callable[[MouseEvent], None]) -> None:
        """Set the callback that receives each decoded event."""
        self._on_mouse_event = callback

    @property
    def accumulating(self) -> bool:
        return bool(self._buffer)

    def reset(self) -> None:
        self._buffer = ""
        self._stray_records = 0

    # -- classification -----------------------------------------------------

    def feed(self, record: KeyEvent | str) -> MouseFrame:
        """Classify one input record, emitting an event when a report ends."""
        seq = record if isinstance(record, str) else record.sequence

        if not self._buffer:
            return self._start(seq)

        candidate = self._buffer + seq
        if self._viable(candidate):
            self._buffer = candidate
            self._stray_records = 0
            if self._complete():
                return MouseFrame.END
            return MouseFrame.CONTINUE

        if self._starts_report(seq):
            # A fresh report replaces the unfinished one.
            logger.debug("dropping incomplete mouse report %r", self._buffer)
            self.reset()
            return self._start(seq)

        self._stray_records += 1
        if self._stray_records >= self._timeout_records:
            logger.debug("dropping incomplete mouse report %r", self._buffer)
            self.reset()
            return MouseFrame.PASSTHROUGH
        return MouseFrame.CONTINUE

    def _starts_report(self, seq: str) -> bool:
        return seq.startswith(_CSI) and self._viable(seq)

    def _start(self, seq: str) -> MouseFrame:
        if not self._starts_report(seq):
            return MouseFrame.PASSTHROUGH
        self._buffer = seq
        if self._complete():
            return MouseFrame.END
        return MouseFrame.START

    def _viable(self, buf: str) -> bool:
        """Whether *buf* is a mouse report or a prefix of one."""
        if len(buf) > self._max_length:
            return False
        if buf == _CSI:
            return True
        if buf.startswith(SGR_PREFIX):
            body = buf[len(SGR_PREFIX):]
            return bool(
                _SGR_PARTIAL_RE.match(body) or _SGR_COMPLETE_RE.match(body)
            )
        if buf.startswith(X10_PREFIX):
            return len(buf) <= len(X10_PREFIX) + 3
        return False

    def _complete(self) -> bool:
        """Decode and emit if the buffer holds a whole report."""
        buf = self._buffer
        event: MouseEvent | None = None
        if buf.startswith(SGR_PREFIX):
            m = _SGR_COMPLETE_RE.match(buf[len(SGR_PREFIX):])
            if m is None:
                return False
            code, x, y = int(m.group(1)), int(m.group(2)), int(m.group(3))
            event = self._make_event(code, x - 1, y - 1, m.group(4) == "m")
        elif buf.startswith(X10_PREFIX) and len(buf) == len(X10_PREFIX) + 3:
            raw = buf[len(X10_PREFIX):]
            code = ord(raw[0]) - 32
            x, y = ord(raw[1]) - 33, ord(raw[2]) - 33
            event = self._make_event(code, x, y, False)
        if event is None:
            return False

        self.reset()
        if self._on_mouse_event is not None:
            self._on_mouse_event(event)
        return True

    def _make_event(self, code: int, x: int, y: int, released: bool) -> MouseEvent:
        name = _event_name(code, released, self._last_button)
        if not code & (_WHEEL | _MOTION):
            button = code & 3
            if button == 3 or released:
                self._last_button = None
            else:
                self._last_button = button
        return MouseEvent(
            name=name,
            data=MouseEventArgs(
                x=max(0, x),
                y=max(0, y),
                shift=bool(code & _SHIFT),
                alt=bool(code & _ALT),
                ctrl=bool(code & _CTRL),
            ),
        )
