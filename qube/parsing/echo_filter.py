from __future__ import annotations

import logging

from qube.parsing.ansi import clean_control_sequences

logger = logging.getLogger(__name__)


class EchoFilter:
    """Suppress the first echo of the command the user just submitted.

    The PTY echoes typed input back into the output stream. After
    :meth:`set_last_sent` the next committed line equal to the command is
    dropped once; later identical lines are genuine output and pass through.
    """

    def __init__(self) -> None:
        self.last_sent: str | None = None
        self.armed: bool = False

    def set_last_sent(self, command: str) -> None:
        """Arm the filter with the submitted command, replacing any prior one."""
        self.last_sent = command.strip()
        self.armed = True

    def should_suppress(self, line: str) -> bool:
        """Return True (and disarm) if ``line`` is the pending echo.

        Comparison ignores escape codes and surrounding whitespace so an
        echo redrawn with color or padded by the PTY still matches.
        """
        if not self.armed:
            return False
        if clean_control_sequences(line).strip() != self.last_sent:
            return False
        logger.debug("Suppressed echo of %r", self.last_sent)
        self.armed = False
        return True
