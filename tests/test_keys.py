"""Tests for pi.panes.keys -- decoding and key combinations."""

from __future__ import annotations

import pytest

from pi.panes.keys import KeyEvent, decode_key, matches_key_combo, parse_key_combo


class TestDecodeKey:
    def test_letter(self) -> None:
        key = decode_key("a")
        assert key.name == "a"
        assert not (key.ctrl or key.alt or key.shift)
        assert key.sequence == "a"

    def test_uppercase_sets_shift(self) -> None:
        key = decode_key("A")
        assert key.name == "a"
        assert key.shift

    @pytest.mark.parametrize(
        "data, name",
        [
            ("\r", "enter"),
            ("\t", "tab"),
            ("\x7f", "backspace"),
            ("\x1b", "escape"),
            (" ", "space"),
            ("\x1b[A", "up"),
            ("\x1b[B", "down"),
            ("\x1bOP", "f1"),
            ("\x1b[3~", "delete"),
            ("\x1b[5~", "pageUp"),
            ("\x1b[6~", "pageDown"),
            ("\x1b[15~", "f5"),
        ],
    )
    def test_named_keys(self, data: str, name: str) -> None:
        assert decode_key(data).name == name

    def test_ctrl_letter(self) -> None:
        key = decode_key("\x03")
        assert key.name == "c"
        assert key.ctrl

    def test_modified_arrow(self) -> None:
        key = decode_key("\x1b[1;5C")
        assert key.name == "right"
        assert key.ctrl and not key.shift

    def test_shift_tab(self) -> None:
        key = decode_key("\x1b[Z")
        assert key.name == "tab"
        assert key.shift

    def test_alt_letter(self) -> None:
        key = decode_key("\x1bx")
        assert key.name == "x"
        assert key.alt and key.meta
        assert key.code == "x"

    def test_kitty_csi_u(self) -> None:
        key = decode_key("\x1b[97;5u")
        assert key.name == "a"
        assert key.ctrl

    def test_unknown_sequence(self) -> None:
        key = decode_key("\x1b[999~")
        assert key.name is None
        assert key.sequence == "\x1b[999~"

    def test_mouse_report_has_no_name(self) -> None:
        assert decode_key("\x1b[<0;1;1M").name is None


class TestParseKeyCombo:
    def test_modifiers_and_key(self) -> None:
        assert parse_key_combo("ctrl+shift+a") == (frozenset({"ctrl", "shift"}), "a")

    def test_meta_is_alt(self) -> None:
        assert parse_key_combo("meta+x") == (frozenset({"alt"}), "x")

    def test_plus_key(self) -> None:
        assert parse_key_combo("ctrl++") == (frozenset({"ctrl"}), "+")

    def test_bare_key(self) -> None:
        assert parse_key_combo("o") == (frozenset(), "o")

    def test_empty(self) -> None:
        assert parse_key_combo("") is None


class TestMatchesKeyCombo:
    def test_ctrl_combo(self) -> None:
        assert matches_key_combo(decode_key("\x0c"), "ctrl+l")
        assert not matches_key_combo(decode_key("l"), "ctrl+l")

    def test_bare_key_needs_no_ctrl(self) -> None:
        assert matches_key_combo(decode_key("o"), "o")
        assert not matches_key_combo(decode_key("\x0f"), "o")

    def test_meta_combo(self) -> None:
        assert matches_key_combo(decode_key("\x1bx"), "meta+x")
        assert matches_key_combo(decode_key("\x1bx"), "alt+x")
        assert not matches_key_combo(decode_key("x"), "meta+x")

    def test_shift_combo(self) -> None:
        assert matches_key_combo(decode_key("\x1b[Z"), "shift+tab")
        assert not matches_key_combo(decode_key("\t"), "shift+tab")

    def test_named_key_rejects_unnamed_shift(self) -> None:
        assert not matches_key_combo(decode_key("\x1b[Z"), "tab")
        assert not matches_key_combo(decode_key("\x1b[1;2A"), "up")
        assert matches_key_combo(decode_key("\x1b[1;2A"), "shift+up")

    def test_letter_ignores_unnamed_shift(self) -> None:
        assert matches_key_combo(decode_key("A"), "a")
        assert matches_key_combo(decode_key("A"), "shift+a")
        assert not matches_key_combo(decode_key("a"), "shift+a")

    def test_case_insensitive_name(self) -> None:
        assert matches_key_combo(decode_key("\x0c"), "Ctrl+L")

    def test_nameless_key_never_matches(self) -> None:
        assert not matches_key_combo(KeyEvent(None, "\x1b[999~"), "escape")

    def test_method_form(self) -> None:
        assert decode_key("\t").matches("tab")
