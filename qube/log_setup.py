from __future__ import annotations

import logging
import os
import sys
from datetime import datetime

TRACE = 5
TRACE_DIR = "debug"
LOGGER_NAME = "qube"

logging.addLevelName(TRACE, "TRACE")


def _trace(self, message, *args, **kwargs):
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)


logging.Logger.trace = _trace

_CONSOLE_FMT = "%(levelname)s %(name)s: %(message)s"
_FILE_FMT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s:%(funcName)s:%(lineno)d %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _console_level(debug: bool, trace: bool, verbose: bool) -> int:
    # verbose only widens the console when a trace is being written anyway
    if trace and verbose:
        return TRACE
    if debug or trace:
        return logging.DEBUG
    return logging.WARNING


def _reset_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logging(
    *, debug: bool, trace: bool, verbose: bool, trace_dir: str | None = None,
) -> logging.Logger:
    """Configure the ``qube`` logger tree.

    The console handler writes to stderr so log lines never interleave with
    the rendered session output on stdout. With ``trace`` a timestamped file
    under ``trace_dir`` (default :data:`TRACE_DIR`) receives everything down
    to :data:`TRACE`, including every raw chunk the pipeline is fed.

    Calling it again replaces (and closes) the previous handlers.
    """
    root = logging.getLogger(LOGGER_NAME)
    _reset_handlers(root)
    root.setLevel(TRACE)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(_console_level(debug, trace, verbose))
    console.setFormatter(logging.Formatter(_CONSOLE_FMT))
    root.addHandler(console)

    if trace:
        directory = trace_dir or TRACE_DIR
        os.makedirs(directory, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
        filepath = os.path.join(directory, f"trace-{timestamp}.log")
        fh = logging.FileHandler(filepath, encoding="utf-8")
        fh.setLevel(TRACE)
        fh.setFormatter(logging.Formatter(_FILE_FMT, datefmt=_FILE_DATEFMT))
        root.addHandler(fh)
        root.debug("Tracing session output to %s", filepath)

    return root
