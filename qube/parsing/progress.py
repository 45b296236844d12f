from __future__ import annotations

import re

from qube.parsing.ansi import clean_control_sequences
from qube.parsing.models import ProgressIndicator, ProgressKind

SPINNER_GLYPHS = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

_SPINNER_RE = re.compile(rf"[{SPINNER_GLYPHS}].*\.{{3}}")
_KEYWORD_RE = re.compile(
    r"Loading|Processing|Downloading|Uploading|Indexing", re.IGNORECASE
)
_THINKING_RE = re.compile(r"Thinking", re.IGNORECASE)
_LEADING_GLYPH_RE = re.compile(rf"^\s*[{SPINNER_GLYPHS}]\s*")


def starts_with_spinner(fragment: str) -> bool:
    """Return True if the fragment begins with a braille spinner glyph."""
    return _LEADING_GLYPH_RE.match(clean_control_sequences(fragment)) is not None


def classify_progress(fragment: str) -> ProgressIndicator | None:
    """Classify a carriage-return-delimited fragment as a progress indicator.

    Thinking takes priority over spinner matches on the same fragment.
    The display text is the fragment with escape codes and the leading
    spinner glyph removed.

    Args:
        fragment: One in-place update, as written between carriage returns.

    Returns:
        A :class:`ProgressIndicator`, or None for ordinary output.
    """
    if _THINKING_RE.search(fragment):
        kind = ProgressKind.THINKING
    elif _SPINNER_RE.search(fragment) or _KEYWORD_RE.search(fragment):
        kind = ProgressKind.SPINNER
    else:
        return None
    text = _LEADING_GLYPH_RE.sub("", clean_control_sequences(fragment)).strip()
    return ProgressIndicator(kind=kind, text=text)
