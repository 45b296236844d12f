from __future__ import annotations

import logging

from qube.log_setup import TRACE
from qube.parsing.line_classifier import (
    DIFF_ADDED_RE,
    DIFF_REMOVED_RE,
    DIFF_UNCHANGED_RE,
)
from qube.parsing.models import DiffPair

logger = logging.getLogger(__name__)


class DiffPairer:
    """Reassemble a run of numbered diff lines into side-by-side pairs.

    The upstream tool prints a file edit as separate entries per line:

    - unchanged ``  N,  M: code`` (both sides)
    - removed ``•  N : code`` or ``- N : code`` (old side)
    - added ``+  N: code`` (new side)

    Entries for the same line number merge into one :class:`DiffPair`;
    a later entry for a field overwrites an earlier one while the run is open.
    """

    def __init__(self) -> None:
        self._pairs: dict[int, DiffPair] = {}

    @property
    def is_open(self) -> bool:
        """True while at least one entry is buffered."""
        return bool(self._pairs)

    def accept(self, line: str) -> None:
        """Parse one diff entry into the open run.

        Lines matching none of the three shapes are ignored.

        Args:
            line: A cleaned committed line the classifier marked as diff.
        """
        m = DIFF_UNCHANGED_RE.match(line)
        if m:
            number, content = int(m.group(1)), m.group(3)
            self._pairs[number] = DiffPair(
                line_number=number,
                old_content=content,
                new_content=content,
                unchanged=True,
            )
            logger.log(TRACE, "diff unchanged line=%d", number)
            return

        m = DIFF_REMOVED_RE.match(line)
        if m:
            pair = self._pair(int(m.group(1)))
            pair.old_content = m.group(2)
            pair.unchanged = False
            logger.log(TRACE, "diff removed line=%d", pair.line_number)
            return

        m = DIFF_ADDED_RE.match(line)
        if m:
            pair = self._pair(int(m.group(1)))
            pair.new_content = m.group(2)
            pair.unchanged = False
            logger.log(TRACE, "diff added line=%d", pair.line_number)

    def flush(self) -> list[DiffPair]:
        """Close the run.

        Returns:
            Buffered pairs sorted by line number, or an empty list. The
            pairer is empty afterwards.
        """
        pairs = sorted(self._pairs.values(), key=lambda p: p.line_number)
        self._pairs = {}
        if pairs:
            logger.debug("Flushed diff run with %d pairs", len(pairs))
        return pairs

    def _pair(self, number: int) -> DiffPair:
        pair = self._pairs.get(number)
        if pair is None:
            pair = DiffPair(line_number=number)
            self._pairs[number] = pair
        return pair
