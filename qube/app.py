"""Interactive terminal front-end for an Amazon Q chat session."""

from __future__ import annotations

import asyncio
import logging
import sys

from rich.console import Console
from rich.status import Status

from qube.config import AppConfig
from qube.fixtures import iter_fixture
from qube.parsing.models import RenderRecord
from qube.pipeline import StreamPipeline
from qube.q_process import InitDetector, QProcess, detect_q_cli
from qube.renderer import render_progress, render_record, render_user_input

logger = logging.getLogger(__name__)

CLEAR_COMMAND = "/clear"
EXIT_COMMAND = "/exit"


class TerminalView:
    """Prints committed records and keeps the progress indicator on a status line."""

    def __init__(self, console: Console) -> None:
        self.console = console
        self.pipeline: StreamPipeline | None = None
        self._status: Status | None = None

    def attach(self, pipeline: StreamPipeline) -> None:
        self.pipeline = pipeline

    def show_records(self, records: list[RenderRecord]) -> None:
        for record in records:
            self.console.print(render_record(record))

    def show_progress(self, text: str | None) -> None:
        indicator = self.pipeline.progress if self.pipeline is not None else None
        if text is None or indicator is None:
            self.stop_progress()
            return
        renderable = render_progress(indicator)
        if self._status is None:
            self._status = self.console.status(renderable)
            self._status.start()
        else:
            self._status.update(renderable)

    def stop_progress(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def clear(self) -> None:
        self.stop_progress()
        self.console.clear()


def build_pipeline(view: TerminalView) -> StreamPipeline:
    """Create a pipeline whose callbacks print into ``view``."""
    pipeline = StreamPipeline(
        on_committed=view.show_records,
        on_progress=view.show_progress,
    )
    view.attach(pipeline)
    return pipeline


def render_fixture(text: str, console: Console) -> int:
    """Render a recorded stream offline, as a live session would have.

    Returns:
        Number of records printed.
    """
    view = TerminalView(console)
    pipeline = build_pipeline(view)
    count = 0
    for item, value in iter_fixture(text):
        if item == "directive":
            pipeline.set_last_sent(value)
            continue
        count += len(pipeline.feed(value).records)
    count += len(pipeline.finish().records)
    view.stop_progress()
    return count


class QubeApp:
    """Run one Amazon Q session in the terminal.

    Output is polled from the PTY and fed through the stream pipeline while
    stdin lines are forwarded to the session. The app ends when the process
    exits, stdin closes or the user enters ``/exit``.
    """

    def __init__(self, config: AppConfig, console: Console | None = None) -> None:
        self._config = config
        self._view = TerminalView(console or Console())
        self._pipeline = build_pipeline(self._view)
        self._init = InitDetector()
        self._process: QProcess | None = None
        self._input: asyncio.Queue[str | None] = asyncio.Queue()

    @property
    def pipeline(self) -> StreamPipeline:
        return self._pipeline

    def _build_process(self) -> QProcess:
        session = self._config.session
        command = session.command or detect_q_cli()
        return QProcess(
            command,
            [session.mode] + session.args,
            env=session.env,
            rows=session.rows,
            cols=session.cols,
        )

    async def run(self) -> int:
        """Spawn the session and run until it ends.

        Returns:
            The process exit code, 0 when unknown.

        Raises:
            SessionError: If the CLI cannot be found or started.
        """
        self._process = self._build_process()
        await self._process.spawn()

        loop = asyncio.get_running_loop()
        loop.add_reader(sys.stdin.fileno(), self._on_stdin)
        pump = asyncio.create_task(self._pump_output())
        commands = asyncio.create_task(self._handle_input())
        try:
            done, pending = await asyncio.wait(
                {pump, commands}, return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in done:
                task.result()
        finally:
            loop.remove_reader(sys.stdin.fileno())
            self.handle_output(self._process.read_available())
            self._pipeline.finish()
            self._view.stop_progress()
            await self._process.terminate()

        code = self._process.exit_code()
        logger.debug("Session ended with exit code %s", code)
        return code or 0

    def _on_stdin(self) -> None:
        line = sys.stdin.readline()
        # An empty read is EOF; None tells the input loop to stop
        self._input.put_nowait(line.rstrip("\n") if line else None)

    async def _pump_output(self) -> None:
        interval = self._config.session.poll_interval_ms / 1000
        while self._process.is_alive():
            self.handle_output(self._process.read_available())
            await asyncio.sleep(interval)

    def handle_output(self, chunk: str) -> None:
        """Feed one chunk of session output, watching for startup completion."""
        if not chunk:
            return
        self._pipeline.on_data("stdout", chunk)
        if self._init.done:
            return
        if self._init.feed(chunk):
            logger.info("Session ready")
            if self._config.display.clear_on_init:
                self._view.clear()
            self._pipeline.clear()

    async def _handle_input(self) -> None:
        while True:
            line = await self._input.get()
            if line is None or not await self.submit(line):
                return

    async def submit(self, line: str) -> bool:
        """Handle one line of user input.

        Returns:
            False when the session should end.
        """
        command = line.strip()
        if command == EXIT_COMMAND:
            return False
        if command == CLEAR_COMMAND:
            self._view.clear()
            self._pipeline.clear()
            return True
        if not command:
            await self._process.send("")
            return True
        self._pipeline.set_last_sent(command)
        if self._config.display.show_user_input:
            self._view.console.print(render_user_input(command))
        await self._process.send(command)
        return True
