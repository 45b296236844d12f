"""StreamPipeline: raw session output → ordered render records.

Wires the parsing stages together for one session:

1. :class:`~qube.parsing.accumulator.LineAccumulator`: chunks to committed
   lines plus the transient progress indicator.
2. :class:`~qube.parsing.echo_filter.EchoFilter`: drops the echo of the
   command the user just sent.
3. :func:`~qube.parsing.line_classifier.classify`: one record per line.
4. :class:`~qube.parsing.diff_pairer.DiffPairer`: numbered diff entries
   are buffered and emitted as a single paired record when the run ends.

All mutable state lives in one :class:`PipelineState` value, so
:meth:`StreamPipeline.clear` is a single replacement. The pipeline does no
I/O; callers must serialize calls for one instance.
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from qube.log_setup import TRACE
from qube.parsing.accumulator import LineAccumulator
from qube.parsing.diff_pairer import DiffPairer
from qube.parsing.echo_filter import EchoFilter
from qube.parsing.line_classifier import classify
from qube.parsing.models import (
    DiffSentinel,
    ProgressIndicator,
    ProgressUpdate,
    RecordType,
    RenderRecord,
)

logger = logging.getLogger(__name__)


class PipelinePhase(Enum):
    """Structural state of the classified stream.

    Values:
        NORMAL: Lines render as they are classified.
        IN_CODE_BLOCK: Inside a fenced block; unmatched lines render as code.
        BUFFERING_DIFF: A numbered diff run is being collected.
    """

    NORMAL = "normal"
    IN_CODE_BLOCK = "in_code_block"
    BUFFERING_DIFF = "buffering_diff"


def _utf8_decoder() -> codecs.IncrementalDecoder:
    return codecs.getincrementaldecoder("utf-8")(errors="replace")


@dataclass
class PipelineState:
    """Everything one session's pipeline mutates."""

    accumulator: LineAccumulator = field(default_factory=LineAccumulator)
    echo: EchoFilter = field(default_factory=EchoFilter)
    diff: DiffPairer = field(default_factory=DiffPairer)
    in_code_block: bool = False
    # Holds the bytes of a codepoint split across chunks
    decoder: codecs.IncrementalDecoder = field(default_factory=_utf8_decoder)


@dataclass
class FeedResult:
    """Outcome of one :meth:`StreamPipeline.feed` call.

    Attributes:
        records: Completed records in source order (never ``IGNORE``).
        progress: Indicator change, or None when unchanged.
    """

    records: list[RenderRecord] = field(default_factory=list)
    progress: ProgressUpdate | None = None


class StreamPipeline:
    """Turn a session's raw output stream into renderable records."""

    def __init__(
        self,
        on_committed: Callable[[list[RenderRecord]], None] | None = None,
        on_progress: Callable[[str | None], None] | None = None,
    ) -> None:
        """Create a pipeline for one session.

        Args:
            on_committed: Called once per feed with the records it completed,
                only when there is at least one.
            on_progress: Called with the indicator text whenever it changes,
                or None when it clears.
        """
        self._on_committed = on_committed
        self._on_progress = on_progress
        self._state = PipelineState()

    @property
    def phase(self) -> PipelinePhase:
        if self._state.diff.is_open:
            return PipelinePhase.BUFFERING_DIFF
        if self._state.in_code_block:
            return PipelinePhase.IN_CODE_BLOCK
        return PipelinePhase.NORMAL

    @property
    def progress(self) -> ProgressIndicator | None:
        return self._state.accumulator.progress

    def on_data(self, stream_tag: str, chunk: str | bytes) -> FeedResult:
        """Session data callback; the tag is only logged."""
        logger.log(TRACE, "data from %s", stream_tag)
        return self.feed(chunk)

    def feed(self, chunk: str | bytes) -> FeedResult:
        """Process one raw chunk completely.

        Args:
            chunk: Decoded text, or raw bytes decoded here as UTF-8.

        Returns:
            The records completed by this chunk and the progress change.
        """
        state = self._state
        if isinstance(chunk, bytes):
            chunk = state.decoder.decode(chunk)
        acc = state.accumulator.feed(chunk)
        records: list[RenderRecord] = []
        for line in acc.lines:
            self._route(line, records)
        return self._emit(FeedResult(records=records, progress=acc.progress))

    def finish(self) -> FeedResult:
        """Flush everything held back, for end of stream.

        Commits the unterminated tail and closes any open diff run.
        """
        state = self._state
        fed = state.accumulator.feed(state.decoder.decode(b"", final=True))
        done = state.accumulator.finish()
        records: list[RenderRecord] = []
        for line in fed.lines + done.lines:
            self._route(line, records)
        self._flush_diff(records)
        progress = done.progress if done.progress is not None else fed.progress
        return self._emit(FeedResult(records=records, progress=progress))

    def set_last_sent(self, command: str) -> None:
        """Arm echo suppression for a command about to be submitted."""
        self._state.echo.set_last_sent(command)

    def clear(self) -> None:
        """Reset to the state of a freshly constructed pipeline.

        Records already handed to the consumer are unaffected.
        """
        logger.debug("Pipeline cleared (phase was %s)", self.phase.value)
        self._state = PipelineState()

    def _route(self, line: str, records: list[RenderRecord]) -> None:
        state = self._state
        if state.echo.should_suppress(line):
            return

        result = classify(line, state.in_code_block)
        if isinstance(result, DiffSentinel):
            state.diff.accept(result.line)
            return

        self._flush_diff(records)
        if result.type is RecordType.IGNORE:
            return
        if result.type is RecordType.MARKDOWN and result.kind == "code_fence":
            state.in_code_block = not state.in_code_block
            logger.debug("Code block %s", "opened" if state.in_code_block else "closed")
        records.append(result)

    def _flush_diff(self, records: list[RenderRecord]) -> None:
        pairs = self._state.diff.flush()
        if pairs:
            records.append(RenderRecord(type=RecordType.DIFF, pairs=pairs))

    def _emit(self, result: FeedResult) -> FeedResult:
        if result.progress is not None and self._on_progress is not None:
            indicator = result.progress.indicator
            self._on_progress(indicator.text if indicator else None)
        if result.records and self._on_committed is not None:
            self._on_committed(list(result.records))
        return result
