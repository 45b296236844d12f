"""Rich renderables for classified output records."""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from qube.parsing.models import (
    DiffPair,
    InlineSpan,
    ProgressIndicator,
    ProgressKind,
    RecordType,
    RenderRecord,
)

# Header prefixes and colors by level (1-6)
_HEADER_PREFIXES = ("◆", "◇", "◈", "◉", "○", "●")
_HEADER_STYLES = (
    "bold black on bright_magenta",
    "bold black on bright_cyan",
    "bold blue",
    "bold green",
    "bold yellow",
    "bold white",
)

_SPAN_STYLES = {
    "plain": "",
    "code": "cyan on grey23",
    "bold": "bold",
    "italic": "italic",
    "link": "underline blue",
}

# theme -> (prefix, style)
_THEMES: dict[str, tuple[str, str]] = {
    "purpose": ("↳ Purpose: ", "black on bright_cyan"),
    "user_input": ("▶ ", "bold white"),
    "assistant": ("◆ ", "white"),
    "error": ("✗ ", "white on bright_red"),
    "success": ("✓ ", "green"),
    "start": ("◈ ", "yellow"),
    "warning": ("⚠ ", "black on bright_yellow"),
    "launch": ("", "bold magenta"),
    "separator": ("", "dim"),
}


def _spans(spans: list[InlineSpan]) -> Text:
    text = Text()
    for span in spans:
        text.append(span.text, style=_SPAN_STYLES[span.style])
        if span.style == "link":
            text.append(f" ({span.url})", style="dim")
    return text


def _markdown(record: RenderRecord) -> RenderableType:
    kind = record.kind
    if kind == "header":
        level = record.payload.get("level", 1)
        return Text(
            f"{_HEADER_PREFIXES[level - 1]} {record.text}",
            style=_HEADER_STYLES[level - 1],
        )
    if kind == "code_fence":
        label = f"▼ {record.text}" if record.text else "▼ Code"
        return Text(label, style="black on bright_yellow")
    if kind == "list_item":
        symbol = "▸" if record.payload.get("ordered") else "•"
        indent = "  " * record.payload.get("depth", 0)
        return Text.assemble(indent, (f"{symbol} ", "blue"), record.text)
    if kind == "block_quote":
        indent = " " * record.payload.get("level", 1)
        return Text.assemble(indent, ("▐ ", "yellow"), (record.text, "italic grey62"))
    if kind == "horizontal_rule":
        return Rule(style="dim")
    return _spans(record.payload.get("spans", []))


def _column(number: str, content: str | None, style: str) -> Text:
    if content is None:
        return Text("")
    return Text.assemble((f"{number}│ ", f"bold {style}"), (content, style))


def render_diff(pairs: list[DiffPair]) -> RenderableType:
    """Render a diff run as two columns: old on the left, new on the right."""
    table = Table.grid(expand=True, padding=(0, 1))
    table.add_column(ratio=1, no_wrap=True, overflow="ellipsis")
    table.add_column(width=1, style="grey50")
    table.add_column(ratio=1, no_wrap=True, overflow="ellipsis")
    for pair in pairs:
        number = str(pair.line_number).rjust(2)
        if pair.unchanged:
            left = _column(number, pair.old_content or "", "grey50")
            right = _column(number, pair.new_content or "", "grey50")
        else:
            left = _column(number, pair.old_content, "red")
            right = _column(number, pair.new_content, "green")
        table.add_row(left, "│", right)
    return Group(Rule(style="grey50"), table, Rule(style="grey50"))


def _prompt(record: RenderRecord) -> RenderableType:
    body = Text(record.text, style="white")
    body.append("\n")
    colors = {"y": "green", "n": "red", "t": "cyan"}
    for choice in record.payload.get("choices", ()):
        body.append(f"\n[{choice.key}] ", style=f"bold {colors.get(choice.key, 'white')}")
        body.append(choice.label, style="grey62")
    return Panel(
        body,
        title="🔐 Permission Required",
        title_align="left",
        border_style="yellow",
        subtitle="Enter your choice",
        subtitle_align="left",
    )


def _tool(record: RenderRecord) -> RenderableType:
    kind = record.kind
    if kind == "start":
        return Text(f" 🔧 {record.text} ", style="bold white on blue")
    if kind == "action":
        return Text(f"    → {record.text}", style="cyan")
    if kind == "success":
        return Text(f"    ✓ {record.text}", style="green")
    if kind == "completed":
        return Text(f"    ⏱ {record.text}", style="green dim")
    return Text(f"⚠ {record.text}", style="red")


def render_record(record: RenderRecord) -> RenderableType:
    """Build the rich renderable for one record.

    Args:
        record: A record emitted by the pipeline (never ``IGNORE``).

    Returns:
        Something a :class:`rich.console.Console` can print.
    """
    if record.type is RecordType.DIFF:
        return render_diff(record.pairs)
    if record.type is RecordType.PROMPT:
        return _prompt(record)
    if record.type is RecordType.TOOL_STATUS:
        return _tool(record)
    if record.type is RecordType.MARKDOWN:
        return _markdown(record)
    if record.type is RecordType.THEMED_STATUS:
        prefix, style = _THEMES.get(record.kind, ("", ""))
        return Text(f"{prefix}{record.text}", style=style)
    if record.type is RecordType.CODE:
        return Text(record.text, style="green" if record.payload.get("in_block") else "cyan")
    style = "grey62" if record.payload.get("indented") else ""
    return Text(record.text, style=style)


def render_progress(indicator: ProgressIndicator) -> Text:
    """Transient indicator line."""
    if indicator.kind is ProgressKind.THINKING:
        return Text(f"💭 {indicator.text}", style="italic magenta")
    return Text(indicator.text, style="cyan")


def render_user_input(command: str) -> RenderableType:
    """Framed echo of a submitted command."""
    return Panel(Text(f"▶ {command}", style="cyan"), border_style="cyan", expand=False)
