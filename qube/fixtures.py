"""Replay recorded stream fixtures through the pipeline.

A fixture is a raw capture of session output (CRs, escape codes and partial
lines included). Lines starting with :data:`DIRECTIVE_PREFIX` are not stream
data: they arm echo suppression with the rest of the line, exactly as the
input path does before submitting a command, and are removed before replay.

Replay feeds the stream one character at a time so fixtures exercise the
same buffering paths as a slow PTY.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from qube.parsing.accumulator import LineAccumulator
from qube.parsing.echo_filter import EchoFilter
from qube.parsing.models import RenderRecord
from qube.pipeline import StreamPipeline

logger = logging.getLogger(__name__)

DIRECTIVE_PREFIX = ">>SET_LAST_CMD: "


def load_fixture(path: Path) -> str:
    """Read a fixture file without newline translation, so bare CRs survive."""
    return path.read_bytes().decode("utf-8")


def iter_fixture(text: str) -> Iterator[tuple[str, str]]:
    """Split fixture text into ``("directive", command)`` / ``("data", raw)`` items.

    Data items keep their trailing newline, if the source line had one.
    """
    # str.splitlines would also break on the bare CRs the stream relies on
    parts = text.split("\n")
    for index, part in enumerate(parts):
        raw = part + "\n" if index < len(parts) - 1 else part
        if not raw:
            continue
        if raw.startswith(DIRECTIVE_PREFIX):
            yield "directive", raw[len(DIRECTIVE_PREFIX):].rstrip("\n")
        else:
            yield "data", raw


def _chunks(raw: str, char_by_char: bool) -> Iterator[str]:
    if char_by_char:
        yield from raw
    else:
        yield raw


def replay(text: str, *, char_by_char: bool = True) -> list[str]:
    """Replay a fixture and return the committed, echo-filtered lines.

    This is the golden-file format: progress updates are not recorded. The
    stream is finished at the end, so an unterminated last line is kept.

    Args:
        text: Fixture contents.
        char_by_char: Feed one character per call instead of one line.

    Returns:
        Committed lines in order.
    """
    accumulator = LineAccumulator()
    echo = EchoFilter()
    lines: list[str] = []

    def _keep(committed: list[str]) -> None:
        lines.extend(line for line in committed if not echo.should_suppress(line))

    for item, value in iter_fixture(text):
        if item == "directive":
            echo.set_last_sent(value)
            continue
        for chunk in _chunks(value, char_by_char):
            _keep(accumulator.feed(chunk).lines)
    _keep(accumulator.finish().lines)
    return lines


def replay_records(text: str, *, char_by_char: bool = True) -> list[RenderRecord]:
    """Replay a fixture through the full pipeline and return every record.

    The stream is finished at the end, so a trailing diff run is flushed.
    """
    pipeline = StreamPipeline()
    records: list[RenderRecord] = []
    for item, value in iter_fixture(text):
        if item == "directive":
            pipeline.set_last_sent(value)
            continue
        for chunk in _chunks(value, char_by_char):
            records.extend(pipeline.feed(chunk).records)
    records.extend(pipeline.finish().records)
    return records


def generate_golden(streams_dir: Path, golden_dir: Path) -> dict[str, int]:
    """Write one golden file per ``*.txt`` fixture.

    Args:
        streams_dir: Directory of raw stream fixtures.
        golden_dir: Output directory, created if missing.

    Returns:
        Mapping of golden file name to the number of lines written.
    """
    golden_dir.mkdir(parents=True, exist_ok=True)
    written: dict[str, int] = {}
    for source in sorted(streams_dir.glob("*.txt")):
        lines = replay(load_fixture(source))
        output = "\n".join(lines) + ("\n" if lines else "")
        target = golden_dir / source.name
        target.write_text(output, encoding="utf-8")
        written[target.name] = len(lines)
        logger.info("Generated %s (%d lines)", target, len(lines))
    return written
