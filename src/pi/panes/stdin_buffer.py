"""StdinBuffer splits raw terminal input into logical key records.

Reads from stdin arrive in arbitrary chunks: one chunk may hold several
keypresses, and an escape sequence may be cut in two.  The buffer emits one
record per keypress or complete escape sequence and holds back an
unfinished escape prefix until the next chunk arrives.  If nothing arrives
within ``timeout`` seconds the held prefix is emitted as-is, so a lone
``ESC`` still reaches the application as the escape key.
"""

from __future__ import annotations

import asyncio
import re
from typing import Callable, Literal

ESC = "\x1b"

SequenceStatus = Literal["complete", "incomplete", "not-escape"]

_SGR_MOUSE_BODY_RE = re.compile(r"^<[\d;]*$")


def sequence_status(data: str) -> SequenceStatus:
    """Classify *data* as a complete escape sequence or a prefix of one."""
    if not data.startswith(ESC):
        return "not-escape"
    if len(data) == 1:
        return "incomplete"

    intro = data[1]
    if intro == "[":
        return _csi_status(data)
    if intro == "O":
        # SS3: ESC O <final>, with an optional modifier digit
        if len(data) < 3:
            return "incomplete"
        if data[2].isdigit():
            return "complete" if len(data) >= 4 else "incomplete"
        return "complete"
    if intro in "]P_":
        # OSC / DCS / APC run until BEL or ST
        if data.endswith("\x07") or data.endswith(ESC + "\\"):
            return "complete"
        return "incomplete"
    # Meta-modified key: ESC followed by one character
    return "complete"


def _csi_status(data: str) -> SequenceStatus:
    if len(data) < 3:
        return "incomplete"
    payload = data[2:]
    if payload.startswith("M"):
        # X10 mouse report: ESC [ M <button> <x> <y>
        return "complete" if len(payload) >= 4 else "incomplete"
    if payload.startswith("<"):
        # SGR mouse report: ESC [ < b ; x ; y (M|m)
        if payload[-1] in "Mm" and len(payload) > 1:
            return "complete"
        if _SGR_MOUSE_BODY_RE.match(payload):
            return "incomplete"
        return "complete"
    if 0x40 <= ord(payload[-1]) <= 0x7E:
        return "complete"
    return "incomplete"


def split_sequences(buffer: str) -> tuple[list[str], str]:
    """Split *buffer* into complete records plus an unfinished remainder."""
    records: list[str] = []
    pos = 0
    while pos < len(buffer):
        if buffer[pos] != ESC:
            records.append(buffer[pos])
            pos += 1
            continue

        end = pos + 1
        while True:
            status = sequence_status(buffer[pos:end])
            if status != "incomplete":
                break
            if end >= len(buffer):
                return records, buffer[pos:]
            # A second ESC can only start a new sequence, except for
            # ESC ESC (meta+escape) and ST terminators.
            if buffer[end] == ESC and end > pos + 1 and buffer[pos + 1] not in "]P_":
                break
            end += 1
        records.append(buffer[pos:end])
        pos = end
    return records, ""


class StdinBuffer:
    """Buffers stdin chunks and emits complete key records."""

    def __init__(self, *, timeout: float = 0.01) -> None:
        self._buffer: str = ""
        self._timeout = timeout
        self._timeout_handle: asyncio.TimerHandle | None = None
        self._on_data: Callable[[str], None] | None = None

    def on_data(self, callback: Callable[[str], None]) -> None:
        """Set the callback that receives each complete record."""
        self._on_data = callback

    def _emit(self, record: str) -> None:
        if self._on_data is not None:
            self._on_data(record)

    def process(self, data: str) -> None:
        """Feed a chunk of input."""
        self._cancel_timeout()
        self._buffer += data
        records, self._buffer = split_sequences(self._buffer)
        for record in records:
            self._emit(record)

        if self._buffer:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # Nothing would ever fire the timer; hand it over now.
                for record in self.flush():
                    self._emit(record)
                return
            self._timeout_handle = loop.call_later(
                self._timeout, self._flush_timeout
            )

    def _flush_timeout(self) -> None:
        self._timeout_handle = None
        for record in self.flush():
            self._emit(record)

    def _cancel_timeout(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

    def flush(self) -> list[str]:
        """Return and clear whatever partial sequence is held."""
        self._cancel_timeout()
        if not self._buffer:
            return []
        held, self._buffer = self._buffer, ""
        return [held]

    def get_buffer(self) -> str:
        return self._buffer

    def clear(self) -> None:
        self._cancel_timeout()
        self._buffer = ""
