from __future__ import annotations

import re

# Cursor show/hide. ESC and "[" are both optional: by the time a line reaches
# the classifier the introducer has sometimes already been consumed upstream,
# leaving a bare "[?25h" or "?25h" in the text.
_CURSOR_VISIBILITY_RE = re.compile(r"\x1b?\[?\?25[hl]")

# SGR (color/style), erase-in-line and cursor-home
_SGR_ERASE_HOME_RE = re.compile(r"\x1b\[[0-9;]*[mKH]")

# Private-mode toggles and their ESC-less remnants: [?2004h, [?1l, [?0c ...
_PRIVATE_MODE_RE = re.compile(r"\x1b?\[\?[0-9;]*[mKHhlc]")


def clean_control_sequences(text: str) -> str:
    """Strip residual terminal control sequences from a committed line.

    Only cursor visibility, SGR, erase-line/cursor-home and private-mode
    sequences are removed. Anything else (including a lone ESC or an
    unknown CSI) is left in place as literal text.

    Args:
        text: A committed line that may still carry escape codes.

    Returns:
        The line with known sequences removed and trailing whitespace
        trimmed. Leading indentation is kept because list nesting and code
        depend on it.
    """
    text = _CURSOR_VISIBILITY_RE.sub("", text)
    text = _SGR_ERASE_HOME_RE.sub("", text)
    text = _PRIVATE_MODE_RE.sub("", text)
    return text.rstrip()
