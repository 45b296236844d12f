"""Tests for residual control-sequence cleaning."""

from qube.parsing.ansi import clean_control_sequences
from tests.parsing.conftest import (
    CAPTURED_BARE_CURSOR_SHOW,
    CAPTURED_PASTE_MODE,
    CAPTURED_TOOL_USE,
)


class TestCleanControlSequences:
    def test_sgr_removed(self):
        assert clean_control_sequences("\x1b[1;32mok\x1b[0m") == "ok"

    def test_cursor_visibility_with_escape(self):
        assert clean_control_sequences("\x1b[?25lbusy\x1b[?25h") == "busy"

    def test_cursor_visibility_without_escape(self):
        assert clean_control_sequences(CAPTURED_BARE_CURSOR_SHOW) == "Hello there"

    def test_cursor_visibility_without_bracket(self):
        assert clean_control_sequences("?25hHello there?25l") == "Hello there"

    def test_erase_line_and_home(self):
        assert clean_control_sequences("\x1b[K\x1b[Htext") == "text"

    def test_private_mode_toggles(self):
        assert clean_control_sequences(CAPTURED_PASTE_MODE) == ">"

    def test_captured_tool_header(self):
        assert (
            clean_control_sequences(CAPTURED_TOOL_USE)
            == "🛠️  Using tool: fs_read (trusted)"
        )

    def test_unknown_sequence_is_literal(self):
        # Cursor-forward is not in the strip set
        assert clean_control_sequences("a\x1b[1Cb") == "a\x1b[1Cb"

    def test_lone_escape_is_literal(self):
        assert clean_control_sequences("x\x1b") == "x\x1b"

    def test_keeps_indentation(self):
        assert clean_control_sequences("    - nested  ") == "    - nested"

    def test_only_codes_gives_empty(self):
        assert clean_control_sequences("\x1b[0m\x1b[?25h") == ""
