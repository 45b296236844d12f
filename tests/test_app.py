from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from rich.console import Console

from qube.app import QubeApp, TerminalView, build_pipeline, render_fixture
from qube.config import AppConfig
from qube.fixtures import DIRECTIVE_PREFIX
from qube.q_process import CLINotFoundError


def _console() -> Console:
    return Console(record=True, width=80, color_system=None)


def _app(**display) -> tuple[QubeApp, Console]:
    config = AppConfig()
    for key, value in display.items():
        setattr(config.display, key, value)
    console = _console()
    app = QubeApp(config, console=console)
    app._process = MagicMock()
    app._process.send = AsyncMock()
    return app, console


class TestTerminalView:
    def test_records_printed(self):
        console = _console()
        view = TerminalView(console)
        pipeline = build_pipeline(view)
        pipeline.feed("# Title\nbody text\n")
        output = console.export_text()
        assert "◆ Title" in output
        assert "body text" in output

    def test_progress_status_started_and_stopped(self):
        view = TerminalView(_console())
        pipeline = build_pipeline(view)
        pipeline.feed("⠋ Loading...\r")
        assert view._status is not None
        pipeline.feed("done\n")
        assert view._status is None


class TestRenderFixture:
    def test_echo_suppressed_and_records_counted(self):
        console = _console()
        text = f"{DIRECTIVE_PREFIX}hello\nhello\r\n🤖 Hi there\r\n+ 1: x"
        count = render_fixture(text, console)
        output = console.export_text()
        assert count == 2
        assert "◆ Hi there" in output
        assert "hello" not in output


class TestHandleOutput:
    def test_init_clears_pipeline(self):
        app, console = _app()
        with patch.object(console, "clear") as clear:
            app.handle_output("Welcome\r\n⠋ Loading...\r")
            assert app.pipeline.progress is not None
            app.handle_output("You are chatting with claude-sonnet-4\r\n")
        clear.assert_called_once()
        assert app.pipeline.progress is None

    def test_clear_on_init_disabled(self):
        app, console = _app(clear_on_init=False)
        with patch.object(console, "clear") as clear:
            app.handle_output("You are chatting with q\n")
        clear.assert_not_called()

    def test_after_init_output_flows(self):
        app, console = _app()
        app.handle_output("You are chatting with q\n")
        app.handle_output("Answer line\n")
        assert "Answer line" in console.export_text()

    def test_empty_chunk_ignored(self):
        app, _ = _app()
        app.handle_output("")
        assert not app._init.done


class TestSubmit:
    @pytest.mark.asyncio
    async def test_command_sent_and_echo_armed(self):
        app, console = _app()
        assert await app.submit("  ls -la ")
        app._process.send.assert_awaited_once_with("ls -la")
        assert "▶ ls -la" in console.export_text()
        app.handle_output("ls -la\r\nfile.txt\r\n")
        output = console.export_text()
        assert "file.txt" in output
        # Only the framed input remains; the PTY echo is dropped
        assert output.count("ls -la") == 1

    @pytest.mark.asyncio
    async def test_user_input_hidden(self):
        app, console = _app(show_user_input=False)
        await app.submit("hello")
        assert "hello" not in console.export_text()

    @pytest.mark.asyncio
    async def test_exit(self):
        app, _ = _app()
        assert await app.submit("/exit") is False
        app._process.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_clear(self):
        app, console = _app()
        app.handle_output("⠋ Loading...\r")
        with patch.object(console, "clear") as clear:
            assert await app.submit("/clear")
        clear.assert_called_once()
        assert app.pipeline.progress is None
        app._process.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_line_sends_enter(self):
        app, _ = _app()
        await app.submit("")
        app._process.send.assert_awaited_once_with("")


class TestBuildProcess:
    def test_uses_configured_command(self):
        config = AppConfig()
        config.session.command = "/opt/q"
        config.session.args = ["--trust-all-tools"]
        app = QubeApp(config, console=_console())
        proc = app._build_process()
        assert proc._command == "/opt/q"
        assert proc._args == ["chat", "--trust-all-tools"]

    def test_detects_cli(self):
        app = QubeApp(AppConfig(), console=_console())
        with patch("qube.app.detect_q_cli", return_value="/usr/bin/amazonq"):
            assert app._build_process()._command == "/usr/bin/amazonq"

    def test_missing_cli_raises(self):
        app = QubeApp(AppConfig(), console=_console())
        with patch("qube.app.detect_q_cli", side_effect=CLINotFoundError("none")):
            with pytest.raises(CLINotFoundError):
                app._build_process()
