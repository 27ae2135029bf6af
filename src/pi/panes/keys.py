"""Keyboard records: decoding raw terminal input into :class:`KeyEvent`.

Each logical keypress becomes one ``KeyEvent`` carrying the key name, the
raw sequence, and the modifier flags.  Key combinations such as
``"ctrl+l"`` or ``"shift+tab"`` are matched with :func:`matches_key_combo`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# xterm modifier parameter is 1 + bitmask of these
MODIFIER_BITS: dict[str, int] = {
    "shift": 1,
    "alt": 2,
    "ctrl": 4,
    "meta": 8,
}

# Final byte of ``CSI 1;<mod> X`` / ``SS3 X`` sequences
_LETTER_KEYS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "E": "clear",
    "F": "end",
    "H": "home",
    "P": "f1",
    "Q": "f2",
    "R": "f3",
    "S": "f4",
}

# Numeric parameter of ``CSI <n>;<mod> ~`` sequences
_TILDE_KEYS: dict[int, str] = {
    1: "home",
    2: "insert",
    3: "delete",
    4: "end",
    5: "pageUp",
    6: "pageDown",
    7: "home",
    8: "end",
    15: "f5",
    17: "f6",
    18: "f7",
    19: "f8",
    20: "f9",
    21: "f10",
    23: "f11",
    24: "f12",
}

# Kitty CSI-u codepoints with a name of their own
_CODEPOINT_KEYS: dict[int, str] = {
    9: "tab",
    13: "enter",
    27: "escape",
    32: "space",
    127: "backspace",
}

_CSI_LETTER_RE = re.compile(r"^\x1b\[(?:1;(\d+))?([A-FHPQRS])$")
_SS3_RE = re.compile(r"^\x1bO(\d?)([A-FHPQRS])$")
_CSI_TILDE_RE = re.compile(r"^\x1b\[(\d+)(?:;(\d+))?~$")
_CSI_U_RE = re.compile(r"^\x1b\[(\d+)(?::\d+)*(?:;(\d+))?u$")


@dataclass(frozen=True)
class KeyEvent:
    """One logical keypress."""

    name: str | None
    sequence: str
    ctrl: bool = False
    alt: bool = False
    shift: bool = False
    meta: bool = False
    code: str = ""

    def matches(self, combo: str) -> bool:
        return matches_key_combo(self, combo)


def _with_modifier_param(
    name: str, sequence: str, param: str | None, code: str
) -> KeyEvent:
    bits = max(0, int(param) - 1) if param else 0
    return KeyEvent(
        name=name,
        sequence=sequence,
        shift=bool(bits & MODIFIER_BITS["shift"]),
        alt=bool(bits & MODIFIER_BITS["alt"]),
        ctrl=bool(bits & MODIFIER_BITS["ctrl"]),
        meta=bool(bits & (MODIFIER_BITS["meta"] | MODIFIER_BITS["alt"])),
        code=code,
    )


def _decode_single(ch: str, sequence: str) -> KeyEvent:
    if ch in ("\r", "\n"):
        return KeyEvent("enter", sequence)
    if ch == "\t":
        return KeyEvent("tab", sequence)
    if ch in ("\x7f", "\x08"):
        return KeyEvent("backspace", sequence)
    if ch == "\x1b":
        return KeyEvent("escape", sequence)
    if ch == " ":
        return KeyEvent("space", sequence)
    if ch == "\x00":
        return KeyEvent("space", sequence, ctrl=True)
    cp = ord(ch)
    if 1 <= cp <= 26:
        return KeyEvent(chr(cp + ord("a") - 1), sequence, ctrl=True)
    if ch.isalpha():
        return KeyEvent(ch.lower(), sequence, shift=ch.isupper())
    if ch.isprintable():
        return KeyEvent(ch, sequence)
    return KeyEvent(None, sequence)


def decode_key(data: str) -> KeyEvent:
    """Turn one raw input record into a :class:`KeyEvent`.

    Unknown sequences decode to a ``KeyEvent`` whose ``name`` is ``None``.
    """
    if not data:
        return KeyEvent(None, data)

    if len(data) == 1:
        return _decode_single(data, data)

    if data[0] != "\x1b":
        # Multi-character text (an unsplit chunk or a grapheme cluster)
        return KeyEvent(data if data.isprintable() else None, data)

    code = data[1:]

    if data == "\x1b[Z":
        return KeyEvent("tab", data, shift=True, code=code)

    m = _CSI_LETTER_RE.match(data)
    if m:
        return _with_modifier_param(_LETTER_KEYS[m.group(2)], data, m.group(1), code)

    m = _SS3_RE.match(data)
    if m:
        return _with_modifier_param(_LETTER_KEYS[m.group(2)], data, m.group(1), code)

    m = _CSI_TILDE_RE.match(data)
    if m:
        name = _TILDE_KEYS.get(int(m.group(1)))
        if name is None:
            return KeyEvent(None, data, code=code)
        return _with_modifier_param(name, data, m.group(2), code)

    m = _CSI_U_RE.match(data)
    if m:
        cp = int(m.group(1))
        name = _CODEPOINT_KEYS.get(cp)
        if name is None:
            ch = chr(cp)
            name = ch.lower() if ch.isprintable() else None
        if name is None:
            return KeyEvent(None, data, code=code)
        return _with_modifier_param(name, data, m.group(2), code)

    if len(data) == 2:
        # ESC-prefixed key: alt/meta + key
        inner = _decode_single(data[1], data)
        return KeyEvent(
            name=inner.name,
            sequence=data,
            ctrl=inner.ctrl,
            alt=True,
            shift=inner.shift,
            meta=True,
            code=code,
        )

    return KeyEvent(None, data, code=code)


# ---------------------------------------------------------------------------
# Combination matching
# ---------------------------------------------------------------------------


def parse_key_combo(combo: str) -> tuple[frozenset[str], str] | None:
    """Split ``"ctrl+shift+a"`` into ``({"ctrl", "shift"}, "a")``.

    ``meta`` is accepted as a synonym for ``alt``.  Returns ``None`` for an
    empty combo.
    """
    if not combo:
        return None
    parts = combo.split("+")
    # "ctrl++" binds the plus key
    if combo.endswith("++"):
        parts = parts[:-2] + ["+"]
    modifiers: set[str] = set()
    key_parts: list[str] = []
    for part in parts:
        lower = part.lower()
        if lower in ("ctrl", "shift", "alt"):
            modifiers.add(lower)
        elif lower == "meta":
            modifiers.add("alt")
        else:
            key_parts.append(part)
    key = "+".join(key_parts)
    if not key:
        return None
    return frozenset(modifiers), key


def matches_key_combo(key: KeyEvent, combo: str) -> bool:
    """Return ``True`` if *key* is the key combination *combo*.

    A combination needs exactly its ctrl/alt modifiers, so a bare key name
    matches the key pressed without ctrl or alt.  Shift must match exactly
    for named keys such as ``tab`` or ``up``.  A single character ignores
    shift unless the combination names it, since ``A`` already carries it.
    """
    parsed = parse_key_combo(combo)
    if parsed is None or key.name is None:
        return False
    modifiers, name = parsed
    if key.name.lower() != name.lower():
        return False
    if key.ctrl != ("ctrl" in modifiers):
        return False
    if (key.alt or key.meta) != ("alt" in modifiers):
        return False
    if len(name) > 1:
        if key.shift != ("shift" in modifiers):
            return False
    elif "shift" in modifiers and not key.shift:
        return False
    return True
