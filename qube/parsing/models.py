"""Shared data types for the output stream pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Union


# --- Progress indicator ---


class ProgressKind(Enum):
    """Kinds of transient, overwritten-in-place status lines."""

    SPINNER = "spinner"
    THINKING = "thinking"


@dataclass(frozen=True)
class ProgressIndicator:
    """The single transient status line currently shown below the output."""

    kind: ProgressKind
    text: str


@dataclass(frozen=True)
class ProgressUpdate:
    """A change of the transient indicator.

    ``indicator=None`` is an explicit clear. Callers receive ``None`` instead
    of a ``ProgressUpdate`` when nothing changed.
    """

    indicator: ProgressIndicator | None


# --- Render records ---


class RecordType(Enum):
    """Top-level categories a committed line is classified into."""

    PLAIN_TEXT = "plain_text"
    PROMPT = "prompt"
    TOOL_STATUS = "tool_status"
    MARKDOWN = "markdown"
    THEMED_STATUS = "themed_status"
    CODE = "code"
    DIFF = "diff"
    IGNORE = "ignore"


ToolKind = Literal[
    "start", "action", "success", "completed", "validation_failed"
]

MarkdownKind = Literal[
    "header", "code_fence", "inline_code", "bold", "italic",
    "list_item", "block_quote", "horizontal_rule", "link",
]

ThemedKind = Literal[
    "purpose", "user_input", "assistant", "error", "success",
    "start", "warning", "launch", "separator",
]

SpanStyle = Literal["plain", "code", "bold", "italic", "link"]

# Empty for plain text, code, diff and ignored records
RecordKind = Union[ToolKind, MarkdownKind, ThemedKind, Literal[""]]


@dataclass(frozen=True, slots=True)
class InlineSpan:
    """A run of inline markdown text sharing one style.

    Attributes:
        text: The visible text, markers removed.
        style: How the run is emphasised.
        url: Link target, only set for ``style="link"``.
    """

    text: str
    style: SpanStyle = "plain"
    url: str = ""


@dataclass(frozen=True)
class PromptChoice:
    """One answer the permission prompt accepts."""

    key: str
    name: str
    label: str


PROMPT_CHOICES: tuple[PromptChoice, ...] = (
    PromptChoice("y", "yes_once", "Yes - Allow once"),
    PromptChoice("n", "no", "No - Deny action"),
    PromptChoice("t", "trust_always", "Trust - Always allow this tool"),
)


@dataclass
class DiffPair:
    """Old and new content of one source line in a buffered diff run.

    Either side may be missing; the renderer leaves that column blank.
    """

    line_number: int
    old_content: str | None = None
    new_content: str | None = None
    unchanged: bool = False


@dataclass
class RenderRecord:
    """Classified, renderer-agnostic form of one committed line.

    Attributes:
        type: Top-level category.
        text: Cleaned display text (question, tool detail, header text...).
        kind: Sub-category within ``type`` (tool kind, markdown kind, theme).
        payload: Extra structured data for the kind (header level, spans,
            prompt choices, list nesting...).
        pairs: Line-numbered pairs, only for ``RecordType.DIFF``.
    """

    type: RecordType
    text: str = ""
    kind: RecordKind = ""
    payload: dict = field(default_factory=dict)
    pairs: list[DiffPair] = field(default_factory=list)


@dataclass(frozen=True)
class DiffSentinel:
    """Classifier answer for a numbered diff line: buffer it, don't render it."""

    line: str
