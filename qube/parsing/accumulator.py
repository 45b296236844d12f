"""Incremental line accumulation with carriage-return overwrite semantics.

The wrapped process writes through a pseudo-terminal, so its output arrives
in arbitrary chunks and animates progress by returning the cursor with a bare
``\\r`` and overwriting the line. :class:`LineAccumulator` turns that into two
channels:

- committed lines, in arrival order, each terminated by a line feed;
- a single transient :class:`ProgressIndicator`, replaced in place.

Overwrites are resolved per line: only the last non-empty CR-delimited
segment of a line is visible, and every segment is offered to the progress
classifier on the way. Resolving per line (rather than across the whole
buffer) keeps the committed sequence identical whether the stream arrives in
one piece or one character at a time.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from qube.log_setup import TRACE
from qube.parsing.models import ProgressIndicator, ProgressKind, ProgressUpdate
from qube.parsing.progress import classify_progress, starts_with_spinner

logger = logging.getLogger(__name__)

# Covers CRLF as well as the CR CR LF pairs real PTYs emit
_LINE_END_RE = re.compile(r"\r+\n")


@dataclass
class AccumulatorResult:
    """Outcome of one :meth:`LineAccumulator.feed` call.

    Attributes:
        lines: Newly committed lines, in arrival order.
        progress: The indicator change, or None if it did not change.
    """

    lines: list[str] = field(default_factory=list)
    progress: ProgressUpdate | None = None


class LineAccumulator:
    """Turn chunked raw text into committed lines plus progress updates."""

    def __init__(self) -> None:
        # Never contains "\n"; may end with one "\r" awaiting its LF.
        self._pending: str = ""
        self._progress: ProgressIndicator | None = None

    @property
    def pending(self) -> str:
        return self._pending

    @property
    def progress(self) -> ProgressIndicator | None:
        return self._progress

    def feed(self, chunk: str) -> AccumulatorResult:
        """Consume one raw chunk.

        Args:
            chunk: Text of any length; no alignment with lines is assumed.

        Returns:
            The lines completed by this chunk and the net progress change.
        """
        before = self._progress
        merged = _LINE_END_RE.sub("\n", self._pending + chunk)
        parts = merged.split("\n")
        tail = parts.pop()

        committed: list[str] = []
        for raw in parts:
            self._commit(self._resolve(raw), committed)
        self._pending = self._hold(tail)

        logger.log(
            TRACE, "feed len=%d committed=%d pending=%d",
            len(chunk), len(committed), len(self._pending),
        )
        return AccumulatorResult(lines=committed, progress=self._change(before))

    def finish(self) -> AccumulatorResult:
        """Commit whatever is pending, for end of stream.

        Returns:
            The final line (if any) and the net progress change.
        """
        before = self._progress
        committed: list[str] = []
        if self._pending:
            self._commit(self._resolve(self._pending), committed)
        self._pending = ""
        return AccumulatorResult(lines=committed, progress=self._change(before))

    def _change(self, before: ProgressIndicator | None) -> ProgressUpdate | None:
        if self._progress == before:
            return None
        logger.debug("progress %r -> %r", before, self._progress)
        return ProgressUpdate(self._progress)

    def _observe(self, fragment: str) -> None:
        """Offer one in-place fragment to the progress classifier."""
        if not fragment.strip():
            return
        indicator = classify_progress(fragment)
        if indicator is not None:
            self._progress = indicator

    def _resolve(self, text: str) -> str:
        """Apply carriage-return overwrites to one line; return what stays visible."""
        if "\r" not in text:
            return text
        segments = text.split("\r")
        for segment in segments:
            self._observe(segment)
        return _last_visible(segments)

    def _hold(self, tail: str) -> str:
        """Compute the new pending buffer from the unterminated tail."""
        if "\r" not in tail:
            return tail
        visible = self._resolve(tail)
        # A trailing CR might be the first half of a CRLF split across chunks
        return visible + "\r" if tail.endswith("\r") else visible

    def _commit(self, line: str, committed: list[str]) -> None:
        if not line.strip():
            return

        indicator = classify_progress(line)
        if indicator is not None and indicator.kind is ProgressKind.THINKING:
            # Thinking is only ever shown transiently
            self._progress = indicator
            return

        active = self._progress
        if indicator is not None:
            final_frame = (
                indicator.text == active.text if active is not None
                else starts_with_spinner(line)
            )
            if final_frame:
                # Last frame of the animation: keep it once, without the glyph
                self._progress = None
                committed.append(indicator.text)
                return
            if starts_with_spinner(line):
                line = indicator.text

        if active is not None:
            self._progress = None
            if active.kind is not ProgressKind.THINKING:
                committed.append(active.text)
        committed.append(line)


def _last_visible(segments: list[str]) -> str:
    for segment in reversed(segments):
        if segment:
            return segment
    return ""
