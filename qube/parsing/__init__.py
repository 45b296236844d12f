"""Output stream pipeline: accumulator → echo filter → line classifier → diff pairer."""

from qube.parsing.models import (  # noqa: F401
    DiffPair,
    ProgressIndicator,
    ProgressKind,
    ProgressUpdate,
    RecordType,
    RenderRecord,
)

__all__ = [
    "DiffPair",
    "ProgressIndicator",
    "ProgressKind",
    "ProgressUpdate",
    "RecordType",
    "RenderRecord",
]
