"""Exception types raised by pi-panes."""

from __future__ import annotations


class PanesError(Exception):
    """Base class for all pi-panes errors."""


class PaneIndexError(PanesError, IndexError):
    """A page was bound to a pane slot the current layout does not have."""

    def __init__(self, index: int, pane_count: int) -> None:
        super().__init__(
            f"pane index {index} out of range for a {pane_count}-pane layout"
        )
        self.index = index
        self.pane_count = pane_count


class TerminalLostError(PanesError):
    """The terminal output stream is gone and cannot be written to."""
