from __future__ import annotations

import asyncio
import logging
import os
from unittest.mock import patch

import pytest

from qube.q_process import (
    CLINotFoundError,
    InitDetector,
    QProcess,
    SessionError,
    detect_q_cli,
)


class TestQProcess:
    @pytest.mark.asyncio
    async def test_spawn_and_read(self):
        proc = QProcess(command="cat", args=[], cwd="/tmp")
        await proc.spawn()
        assert proc.is_alive()
        await proc.write("hello\n")
        await asyncio.sleep(0.2)
        output = proc.read_available()
        assert "hello" in output
        await proc.terminate()

    @pytest.mark.asyncio
    async def test_terminate(self):
        proc = QProcess(command="cat", args=[], cwd="/tmp")
        await proc.spawn()
        assert proc.is_alive()
        await proc.terminate()
        assert not proc.is_alive()

    @pytest.mark.asyncio
    async def test_exit_code_after_terminate(self):
        proc = QProcess(command="cat", args=[], cwd="/tmp")
        await proc.spawn()
        await proc.terminate()
        assert proc.exit_code() is not None

    @pytest.mark.asyncio
    async def test_write_to_terminated_process(self):
        proc = QProcess(command="cat", args=[], cwd="/tmp")
        await proc.spawn()
        await proc.terminate()
        # Should not raise
        await proc.write("hello\n")

    @pytest.mark.asyncio
    async def test_send_to_terminated_process_raises(self):
        proc = QProcess(command="cat", args=[], cwd="/tmp")
        await proc.spawn()
        await proc.terminate()
        with pytest.raises(SessionError, match="not running"):
            await proc.send("hello")

    @pytest.mark.asyncio
    async def test_spawn_missing_command_raises(self):
        proc = QProcess(command="/nonexistent/amazonq", args=["chat"])
        with pytest.raises(SessionError, match="Failed to start"):
            await proc.spawn()

    def test_not_spawned_is_not_alive(self):
        proc = QProcess(command="cat", args=[])
        assert not proc.is_alive()

    def test_read_before_spawn(self):
        proc = QProcess(command="cat", args=[])
        assert proc.read_available() == ""

    def test_exit_code_before_spawn(self):
        proc = QProcess(command="cat", args=[])
        assert proc.exit_code() is None

    @pytest.mark.asyncio
    async def test_spawn_with_args(self):
        proc = QProcess(command="echo", args=["hello", "world"], cwd="/tmp")
        await proc.spawn()
        await asyncio.sleep(0.2)
        output = proc.read_available()
        assert "hello world" in output

    @pytest.mark.asyncio
    async def test_pty_dimensions(self):
        proc = QProcess(command="stty", args=["size"], rows=42, cols=100)
        await proc.spawn()
        await asyncio.sleep(0.3)
        assert "42 100" in proc.read_available()


class TestBuildEnv:
    def test_merges_extra_vars(self):
        env = QProcess._build_env({"AWS_PROFILE": "dev"})
        assert env["AWS_PROFILE"] == "dev"
        # Inherits existing env
        assert "PATH" in env

    def test_expands_tilde_in_values(self):
        env = QProcess._build_env({"Q_HOME": "~/.aws/amazonq"})
        assert env["Q_HOME"] == os.path.expanduser("~/.aws/amazonq")

    def test_no_tilde_left_unchanged(self):
        env = QProcess._build_env({"FOO": "/absolute/path"})
        assert env["FOO"] == "/absolute/path"

    def test_empty_extra_returns_environ_copy(self):
        assert QProcess._build_env({}) == os.environ.copy()


class TestSend:
    @pytest.mark.asyncio
    async def test_send_appends_cr(self):
        proc = QProcess(command="cat", args=[], cwd="/tmp")
        await proc.spawn()
        calls = []

        async def mock_write(text):
            calls.append(text)

        proc.write = mock_write
        await proc.send("test msg")
        assert calls == ["test msg\r"]
        await proc.terminate()

    @pytest.mark.asyncio
    async def test_send_reaches_process(self):
        proc = QProcess(command="cat", args=[], cwd="/tmp")
        await proc.spawn()
        await proc.send("hello")
        await asyncio.sleep(0.3)
        assert "hello" in proc.read_available()
        await proc.terminate()


class TestDetectQCli:
    def test_env_var_wins(self):
        with patch.dict(os.environ, {"Q_BIN": "custom-q"}), \
                patch("qube.q_process.shutil.which", return_value="/opt/custom-q") as which:
            assert detect_q_cli() == "/opt/custom-q"
        which.assert_called_once_with("custom-q")

    def test_env_var_not_found_raises(self):
        with patch.dict(os.environ, {"Q_BIN": "missing-q"}), \
                patch("qube.q_process.shutil.which", return_value=None):
            with pytest.raises(CLINotFoundError, match="Q_BIN"):
                detect_q_cli()

    def test_prefers_amazonq(self):
        paths = {"amazonq": "/usr/bin/amazonq", "q": "/usr/bin/q"}
        with patch.dict(os.environ, {}, clear=False), \
                patch("qube.q_process.shutil.which", side_effect=paths.get):
            os.environ.pop("Q_BIN", None)
            assert detect_q_cli() == "/usr/bin/amazonq"

    def test_falls_back_to_q(self):
        paths = {"q": "/usr/local/bin/q"}
        with patch.dict(os.environ, {}, clear=False), \
                patch("qube.q_process.shutil.which", side_effect=paths.get):
            os.environ.pop("Q_BIN", None)
            assert detect_q_cli() == "/usr/local/bin/q"

    def test_nothing_found_raises(self):
        with patch.dict(os.environ, {}, clear=False), \
                patch("qube.q_process.shutil.which", return_value=None):
            os.environ.pop("Q_BIN", None)
            with pytest.raises(CLINotFoundError):
                detect_q_cli()

    def test_not_found_is_session_error(self):
        assert issubclass(CLINotFoundError, SessionError)


class TestInitDetector:
    def test_chatting_with_phrase(self):
        detector = InitDetector()
        assert detector.feed("\x1b[1mYou are chatting with \x1b[32mclaude-sonnet-4\x1b[0m\r\n")
        assert detector.done

    def test_phrase_split_across_chunks(self):
        detector = InitDetector()
        assert not detector.feed("You are chat")
        assert detector.feed("ting with claude-sonnet-4\n")

    def test_separator_then_blank_line(self):
        detector = InitDetector()
        assert not detector.feed("\x1b[38;5;8m━━━━━━━━━━━━━━━━━━━━\x1b[0m\r\n")
        assert detector.feed("\r\n")

    def test_short_rule_not_enough(self):
        detector = InitDetector()
        assert not detector.feed("━━━━━\n\n")

    def test_stays_done(self):
        detector = InitDetector()
        detector.feed("You are chatting with q\n")
        assert detector.feed("anything")

    def test_banner_without_marker(self):
        detector = InitDetector()
        assert not detector.feed("Welcome to Amazon Q!\r\nLoading MCP servers...\r\n")


class TestQProcessLogging:
    @pytest.mark.asyncio
    async def test_spawn_logs_command(self, caplog):
        from qube.log_setup import setup_logging
        setup_logging(debug=True, trace=False, verbose=False)
        proc = QProcess(command="echo", args=["hello"], cwd="/tmp")
        with caplog.at_level(logging.DEBUG, logger="qube.q_process"):
            await proc.spawn()
        assert any("spawn" in r.message.lower() for r in caplog.records)
        await proc.terminate()
