from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
from pathlib import Path

import pexpect

from qube.log_setup import TRACE

logger = logging.getLogger(__name__)

Q_BIN_ENV = "Q_BIN"
_CANDIDATES = ("amazonq", "q")


class SessionError(Exception):
    """Raised when a session operation fails."""

    pass


class CLINotFoundError(SessionError):
    """Raised when no Amazon Q CLI executable can be located."""

    pass


def detect_q_cli() -> str:
    """Locate the Amazon Q CLI executable.

    Lookup order: the ``Q_BIN`` environment variable, then ``amazonq`` and
    ``q`` on PATH.

    Returns:
        Absolute path of the executable.

    Raises:
        CLINotFoundError: If ``Q_BIN`` names something that cannot be found,
            or neither candidate is on PATH.
    """
    explicit = os.environ.get(Q_BIN_ENV)
    if explicit:
        path = shutil.which(explicit)
        if path is None:
            raise CLINotFoundError(
                f"Amazon Q CLI named by {Q_BIN_ENV} not found: {explicit}"
            )
        return path

    for candidate in _CANDIDATES:
        path = shutil.which(candidate)
        if path is not None:
            logger.debug("Found Amazon Q CLI at %s", path)
            return path

    raise CLINotFoundError(
        f"Amazon Q CLI not found. Set {Q_BIN_ENV} or install amazonq."
    )


# Initialization is detected on text with SGR/erase codes removed
_INIT_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[mGKJH]")
_INIT_PHRASE_RE = re.compile(r"You are chatting with .+", re.IGNORECASE)
_INIT_SEPARATOR_RE = re.compile(r"[━─]{10,}[\s\S]*?\n\s*\n")


class InitDetector:
    """Detect when the interactive session has finished its startup banner.

    Startup is complete once the output mentions "You are chatting with ..."
    or shows a rule of box-drawing characters followed by a blank line.
    """

    def __init__(self) -> None:
        self._buffer: str = ""
        self.done: bool = False

    def feed(self, text: str) -> bool:
        """Accumulate startup output; return True once initialization is seen."""
        if self.done:
            return True
        self._buffer += text.replace("\r\n", "\n")
        plain = _INIT_ANSI_RE.sub("", self._buffer)
        if _INIT_PHRASE_RE.search(plain) or _INIT_SEPARATOR_RE.search(plain):
            logger.debug("Session initialization detected")
            self.done = True
            self._buffer = ""
        return self.done


class QProcess:
    """Async wrapper around a pexpect-managed Amazon Q CLI subprocess.

    Manages the PTY process lifecycle: spawning, reading output, submitting
    input, and termination. Blocking pexpect calls run on the default
    executor so the event loop stays responsive.
    """

    def __init__(
        self,
        command: str,
        args: list[str],
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        rows: int = 30,
        cols: int = 80,
    ) -> None:
        """Initialize a QProcess without spawning it.

        Args:
            command: The CLI executable (e.g. the result of detect_q_cli()).
            args: Command-line arguments, typically the session mode.
            cwd: Working directory for the process; defaults to the current one.
            env: Extra environment variables merged over the current
                environment. Tilde (~) in values is expanded.
            rows: PTY height.
            cols: PTY width.
        """
        self._command = command
        self._args = args
        self._cwd = cwd
        self._env = self._build_env(env or {})
        self._dimensions = (rows, cols)
        self._process: pexpect.spawn | None = None
        self._buffer: str = ""

    @staticmethod
    def _build_env(extra: dict[str, str]) -> dict[str, str]:
        """Merge extra env vars into a copy of the current environment."""
        merged = os.environ.copy()
        for key, value in extra.items():
            value = str(value)
            merged[key] = str(Path(value).expanduser()) if "~" in value else value
        return merged

    async def spawn(self) -> None:
        """Spawn the CLI in a PTY.

        Raises:
            SessionError: If pexpect cannot start the executable.
        """
        logger.debug("Spawning process: cmd=%s args=%s", self._command, self._args)
        loop = asyncio.get_running_loop()
        try:
            self._process = await loop.run_in_executor(
                None,
                lambda: pexpect.spawn(
                    self._command,
                    self._args,
                    cwd=self._cwd,
                    env=self._env,
                    encoding="utf-8",
                    codec_errors="replace",
                    dimensions=self._dimensions,
                    timeout=5,
                    maxread=4096,
                ),
            )
        except pexpect.ExceptionPexpect as exc:
            raise SessionError(f"Failed to start {self._command}: {exc}") from exc
        logger.debug("Process spawned pid=%d", self._process.pid)

    def is_alive(self) -> bool:
        """Check whether the underlying PTY process is still running."""
        if self._process is None:
            return False
        return self._process.isalive()

    async def write(self, text: str) -> None:
        """Send raw text to the PTY. Does nothing if the process is not alive."""
        if not self.is_alive():
            return
        logger.debug("PTY write: %r", text[:200])
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._process.send, text)

    async def send(self, text: str) -> None:
        """Submit one line of input, terminated with a carriage return (Enter).

        Raises:
            SessionError: If the process is not running.
        """
        if not self.is_alive():
            raise SessionError("Session is not running")
        await self.write(text + "\r")

    def read_available(self) -> str:
        """Drain and return all output currently buffered in the PTY.

        The PTY decodes incrementally, so a multi-byte character split
        across reads comes back whole on a later call.

        Returns:
            Output since the last call, or an empty string.
        """
        if self._process is None:
            return ""
        while True:
            try:
                chunk = self._process.read_nonblocking(size=4096, timeout=0)
                logger.log(TRACE, "PTY read chunk len=%d %r", len(chunk), chunk)
                self._buffer += chunk
            except pexpect.TIMEOUT:
                break
            except pexpect.EOF:
                break
        result = self._buffer
        self._buffer = ""
        return result

    async def terminate(self) -> None:
        """Terminate the PTY process if it is still alive."""
        if self._process is None:
            return
        logger.debug("Terminating process pid=%s", self._process.pid)
        loop = asyncio.get_running_loop()
        if self._process.isalive():
            await loop.run_in_executor(None, self._process.close, True)

    def exit_code(self) -> int | None:
        """Return the exit code, or the signal number if the process was killed."""
        if self._process is None:
            return None
        # pexpect sets signalstatus (not exitstatus) when killed by a signal
        if self._process.exitstatus is not None:
            return self._process.exitstatus
        return self._process.signalstatus
