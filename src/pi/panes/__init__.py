"""pi-panes: split-pane terminal console with logging, popups and mouse input."""

# Dispatch core
from pi.panes.console import Console, ConsoleOptions, LogPageHandler

# Errors
from pi.panes.errors import PaneIndexError, PanesError, TerminalLostError

# Geometry
from pi.panes.geometry import Rect

# Keyboard input
from pi.panes.keys import KeyEvent, decode_key, matches_key_combo, parse_key_combo

# Layout
from pi.panes.layout import BOX_STYLES, LayoutCompositor, LayoutOptions, Pane

# Mouse input
from pi.panes.mouse import MouseEvent, MouseEventArgs, MouseFrame, MouseParser, RelativeMouseEvent

# Content pages
from pi.panes.page import Page, Row, StyledText

# Rendering
from pi.panes.screen import Cell, Screen

# Input buffering
from pi.panes.stdin_buffer import StdinBuffer

# Styling
from pi.panes.style import Style

# Terminal
from pi.panes.terminal import ProcessTerminal, Terminal

# Text measurement
from pi.panes.utils import truncate_to_width, visible_width

# Widgets
from pi.panes.widgets import Control, OneShot, PagePopup, Popup, PopupResult, Widget

__all__ = [
    # Dispatch core
    "Console",
    "ConsoleOptions",
    "LogPageHandler",
    # Errors
    "PanesError",
    "PaneIndexError",
    "TerminalLostError",
    # Geometry
    "Rect",
    # Keyboard input
    "KeyEvent",
    "decode_key",
    "matches_key_combo",
    "parse_key_combo",
    # Layout
    "BOX_STYLES",
    "LayoutCompositor",
    "LayoutOptions",
    "Pane",
    # Mouse input
    "MouseEvent",
    "MouseEventArgs",
    "MouseFrame",
    "MouseParser",
    "RelativeMouseEvent",
    # Content pages
    "Page",
    "Row",
    "StyledText",
    # Rendering
    "Cell",
    "Screen",
    # Input buffering
    "StdinBuffer",
    # Styling
    "Style",
    # Terminal
    "ProcessTerminal",
    "Terminal",
    # Text measurement
    "truncate_to_width",
    "visible_width",
    # Widgets
    "Control",
    "OneShot",
    "PagePopup",
    "Popup",
    "PopupResult",
    "Widget",
]
