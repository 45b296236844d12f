"""Classify committed lines into render records.

Each committed line is cleaned of residual escape codes and then offered to
an ordered list of rules; the first rule that returns a result wins. The
order matters because shapes overlap: ``- 4 : code`` is both a numbered
diff entry and a markdown list item, and must be read as the former.

Rules, highest priority first:

1. permission prompt (``... [y/n/t]:``)
2. tool invocation / status markers, plus decorative continuation noise
3. numbered diff entries (returned as :class:`DiffSentinel`)
4. markdown constructs
5. glyph-prefixed themed status lines
6. source code (heuristic, or anything inside a fenced block)
7. plain text
"""

from __future__ import annotations

import re
from typing import Callable, Union

from qube.parsing.ansi import clean_control_sequences
from qube.parsing.models import (
    PROMPT_CHOICES,
    DiffSentinel,
    InlineSpan,
    MarkdownKind,
    RecordType,
    RenderRecord,
    ThemedKind,
    ToolKind,
)

Classification = Union[RenderRecord, DiffSentinel]
Rule = Callable[[str, bool], Union[Classification, None]]


# ---------------------------------------------------------------------------
# 1. Permission prompt
# ---------------------------------------------------------------------------

_PROMPT_MARKER_RE = re.compile(r"\s*\[y/n/t\]:?\s*$")
_PROMPT_TOPIC_RE = re.compile(
    r"\b(Allow|trust|action|command|execute)\b", re.IGNORECASE
)
_TRUST_HINT_RE = re.compile(r"Use\s+'[^']*'\s+to\s+trust[^.]*\.", re.IGNORECASE)


def _match_prompt(line: str, in_code_block: bool) -> RenderRecord | None:
    if not _PROMPT_MARKER_RE.search(line) or not _PROMPT_TOPIC_RE.search(line):
        return None
    question = _PROMPT_MARKER_RE.sub("", line)
    question = _TRUST_HINT_RE.sub("", question).strip()
    return RenderRecord(
        type=RecordType.PROMPT,
        text=question or "Allow this action?",
        payload={"choices": PROMPT_CHOICES},
    )


# ---------------------------------------------------------------------------
# 2. Tool status markers
# ---------------------------------------------------------------------------

_TOOL_USE_RE = re.compile(r"🛠️?\s+Using tool:\s+(\w+)\s*(\([^)]*\))?")
_TOOL_FS_RE = re.compile(r"🔧\s+(\w+)")
_CONTINUATION_PREFIX_RE = re.compile(r"^[│⋮●\s]*")
_TOOL_ACTION_RE = re.compile(
    r"^[│⋮●\s]*(Reading|Writing|Creating|Updating|Processing)\s+"
)
_TOOL_SUCCESS_RE = re.compile(r"✓\s+Successfully\s+")
_TOOL_COMPLETED_RE = re.compile(r"●\s+Completed\s+in\s+([\d.]+s)")
_TOOL_PARAMS_FAILED_RE = re.compile(
    r"^[│⋮●\s]*Failed to validate tool parameters:\s*"
)
_DECORATIVE_RE = re.compile(r"^[│⋮●\s]*$")
_CONTINUATION_NOISE_RE = re.compile(r"^\s*[│⋮●]+\s+")
_TOOL_VERB_RE = re.compile(
    r"Reading|Writing|Creating|Updating|Processing|Successfully|Completed|Failed"
)


def _ignored() -> RenderRecord:
    return RenderRecord(type=RecordType.IGNORE)


def _tool(kind: ToolKind, text: str, **payload) -> RenderRecord:
    return RenderRecord(
        type=RecordType.TOOL_STATUS, kind=kind, text=text, payload=payload,
    )


def _match_tool(line: str, in_code_block: bool) -> RenderRecord | None:
    m = _TOOL_USE_RE.search(line)
    if m:
        name, status = m.group(1), m.group(2) or ""
        return _tool("start", f"{name}{status}", tool=name, status=status)
    m = _TOOL_FS_RE.search(line)
    if m:
        return _tool("start", m.group(1), tool=m.group(1), status="")

    if _TOOL_ACTION_RE.match(line):
        return _tool("action", _CONTINUATION_PREFIX_RE.sub("", line).strip())

    if _TOOL_SUCCESS_RE.search(line):
        message = _CONTINUATION_PREFIX_RE.sub("", line).strip()
        return _tool("success", re.sub(r"^✓\s*", "", message))

    m = _TOOL_COMPLETED_RE.search(line)
    if m:
        return _tool("completed", m.group(1), duration=m.group(1))

    if "Tool validation failed" in line:
        return _tool("validation_failed", "Tool validation error")
    if _TOOL_PARAMS_FAILED_RE.match(line):
        return _tool("validation_failed", _TOOL_PARAMS_FAILED_RE.sub("", line).strip())

    if _DECORATIVE_RE.match(line):
        return _ignored()
    if _CONTINUATION_NOISE_RE.match(line) and not _TOOL_VERB_RE.search(line):
        return _ignored()
    return None


# ---------------------------------------------------------------------------
# 3. Numbered diff entries
# ---------------------------------------------------------------------------

DIFF_UNCHANGED_RE = re.compile(r"^\s*(\d+),\s*(\d+):\s?(.*)$")
DIFF_REMOVED_RE = re.compile(r"^\s*[•-]\s*(\d+)\s*:\s?(.*)$")
DIFF_ADDED_RE = re.compile(r"^\s*\+\s*(\d+):\s?(.*)$")


def _match_diff(line: str, in_code_block: bool) -> DiffSentinel | None:
    # Bare +/- lines are left alone; without a line number they are
    # indistinguishable from markdown bullets.
    for pattern in (DIFF_UNCHANGED_RE, DIFF_REMOVED_RE, DIFF_ADDED_RE):
        if pattern.match(line):
            return DiffSentinel(line=line)
    return None


# ---------------------------------------------------------------------------
# 4. Markdown
# ---------------------------------------------------------------------------

_HEADER_RE = re.compile(r"^(#{1,6})\s+(.+)$")
_FENCE_RE = re.compile(r"^\s*```(.*)$")
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")
_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*|__([^_]+)__")
_ITALIC_RE = re.compile(
    r"(?<![*\w])\*(?![\s*])([^*]+?)(?<![\s*])\*(?![*\w])"
    r"|(?<![_\w])_(?![\s_])([^_]+?)(?<![\s_])_(?![_\w])"
)
_LIST_ITEM_RE = re.compile(r"^(\s*)([-*+]|\d+\.)\s+(.+)$")
_QUOTE_RE = re.compile(r"^(>+)\s*(.*)$")
_RULE_RE = re.compile(r"^(?:---+|\*\*\*+|___+)$")
_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")


def _split_spans(
    line: str, pattern: re.Pattern, style: str,
) -> list[InlineSpan]:
    """Split a line on an inline pattern into plain and styled spans."""
    spans: list[InlineSpan] = []
    pos = 0
    for m in pattern.finditer(line):
        if m.start() > pos:
            spans.append(InlineSpan(line[pos:m.start()]))
        inner = next(g for g in m.groups() if g is not None)
        if style == "link":
            spans.append(InlineSpan(m.group(1), "link", url=m.group(2)))
        else:
            spans.append(InlineSpan(inner, style))
        pos = m.end()
    if pos < len(line):
        spans.append(InlineSpan(line[pos:]))
    return spans


def _inline(
    kind: MarkdownKind, line: str, pattern: re.Pattern, style: str,
) -> RenderRecord:
    spans = _split_spans(line, pattern, style)
    return RenderRecord(
        type=RecordType.MARKDOWN,
        kind=kind,
        text="".join(span.text for span in spans),
        payload={"spans": spans},
    )


def _match_markdown(line: str, in_code_block: bool) -> RenderRecord | None:
    m = _HEADER_RE.match(line)
    if m:
        return RenderRecord(
            type=RecordType.MARKDOWN, kind="header", text=m.group(2),
            payload={"level": len(m.group(1))},
        )

    m = _FENCE_RE.match(line)
    if m:
        language = m.group(1).strip()
        return RenderRecord(
            type=RecordType.MARKDOWN, kind="code_fence", text=language,
            payload={"language": language},
        )

    if _INLINE_CODE_RE.search(line):
        return _inline("inline_code", line, _INLINE_CODE_RE, "code")
    if _BOLD_RE.search(line):
        return _inline("bold", line, _BOLD_RE, "bold")
    if _ITALIC_RE.search(line):
        return _inline("italic", line, _ITALIC_RE, "italic")

    m = _LIST_ITEM_RE.match(line)
    if m:
        marker = m.group(2)
        return RenderRecord(
            type=RecordType.MARKDOWN, kind="list_item", text=m.group(3),
            payload={
                "depth": len(m.group(1)) // 2,
                "ordered": marker[0].isdigit(),
                "marker": marker,
            },
        )

    m = _QUOTE_RE.match(line)
    if m:
        return RenderRecord(
            type=RecordType.MARKDOWN, kind="block_quote", text=m.group(2),
            payload={"level": len(m.group(1))},
        )

    if _RULE_RE.match(line.strip()):
        return RenderRecord(type=RecordType.MARKDOWN, kind="horizontal_rule")

    if _LINK_RE.search(line):
        return _inline("link", line, _LINK_RE, "link")
    return None


# ---------------------------------------------------------------------------
# 5. Themed status lines
# ---------------------------------------------------------------------------

_PURPOSE_RE = re.compile(r"↳\s*Purpose:\s*")
_SEPARATOR_RE = re.compile(r"^[━─═]+$")

# (glyph, theme); variation selectors are optional in terminal output
_THEMED_GLYPHS: tuple[tuple[str, ThemedKind], ...] = (
    ("💬", "user_input"),
    ("🤖", "assistant"),
    ("❌", "error"),
    ("✅", "success"),
    ("✨", "start"),
    ("⚠️", "warning"),
    ("⚠", "warning"),
    ("🚀", "launch"),
)


def _match_themed(line: str, in_code_block: bool) -> RenderRecord | None:
    stripped = line.strip()
    m = _PURPOSE_RE.search(stripped)
    if m:
        return RenderRecord(
            type=RecordType.THEMED_STATUS, kind="purpose",
            text=stripped[m.end():].strip(),
        )
    for glyph, theme in _THEMED_GLYPHS:
        if stripped.startswith(glyph):
            text = stripped if theme == "launch" else stripped[len(glyph):].strip()
            return RenderRecord(type=RecordType.THEMED_STATUS, kind=theme, text=text)
    if _SEPARATOR_RE.match(stripped):
        return RenderRecord(
            type=RecordType.THEMED_STATUS, kind="separator", text=stripped,
        )
    return None


# ---------------------------------------------------------------------------
# 6. Source code
# ---------------------------------------------------------------------------

_CODE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"^(import|export|from|const|let|var|function|class|interface|type|def)\s+"),
    re.compile(r"^(if|else|for|while|switch|case|try|catch|finally)\s*\("),
    re.compile(r"^\s*(return|throw|break|continue)\s+"),
    re.compile(r"^(public|private|protected|static|async|await)\s+"),
    re.compile(r"[=<>!]=|[&|]{2}|[+\-*/%]=|\+\+|--|=>"),
    re.compile(r"[{}\[\]();].*[{}\[\]();]"),
    re.compile(r"^\s*//|^\s*/\*|^\s*\*"),
    # Assignment or object-literal key; "Note: text" is prose, not code
    re.compile(r"^\s*[a-zA-Z_$][\w$]*\s*=\s*\S"),
    re.compile(r"^\s*[a-zA-Z_$][\w$]*:\s*[\[{\"'\d]"),
    re.compile(r"^\s*<[^>]+>"),
    re.compile(r"console\.(log|error|warn|info)"),
    re.compile(r"require\(|import\("),
)


def _match_code(line: str, in_code_block: bool) -> RenderRecord | None:
    if in_code_block or any(p.search(line) for p in _CODE_PATTERNS):
        return RenderRecord(
            type=RecordType.CODE, text=line,
            payload={"in_block": in_code_block},
        )
    return None


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

RULES: list[Rule] = [
    _match_prompt,
    _match_tool,
    _match_diff,
    _match_markdown,
    _match_themed,
    _match_code,
]


def classify(line: str, in_code_block: bool = False) -> Classification:
    """Classify one committed line.

    Args:
        line: A committed line, possibly still carrying escape codes.
        in_code_block: Whether the line sits inside a fenced code block.

    Returns:
        A :class:`RenderRecord` (``RecordType.IGNORE`` for lines that should
        not be rendered) or a :class:`DiffSentinel` for numbered diff
        entries. Never raises.
    """
    cleaned = clean_control_sequences(line)
    if not cleaned.strip():
        return _ignored()

    for rule in RULES:
        result = rule(cleaned, in_code_block)
        if result is not None:
            return result

    return RenderRecord(
        type=RecordType.PLAIN_TEXT, text=cleaned,
        payload={"indented": cleaned.startswith("  ")},
    )
