"""Terminal rendering for transcripts, tool definitions and errors."""

import json
from typing import Any, Sequence

from rich.console import Console
from rich.json import JSON
from rich.table import Table
from rich.text import Text

from .cost import ChatCost
from .messages import ChatEntry, Content, MultiContent, Text as TextPart, ToolCall, ToolResult

console = Console()

ERROR = "#e55a6e"
ACCENT = "#00d4e5"
DIM = "#4a4a60"


def describe_message(entry: ChatEntry) -> tuple[str, str]:
    """Return ``(label, body)`` for one transcript entry."""
    message = entry.message
    if isinstance(message, Content):
        return message.role.value, message.message
    if isinstance(message, MultiContent):
        texts = [p.content for p in message.parts if isinstance(p, TextPart)]
        others = len(message.parts) - len(texts)
        body = " ".join(texts) + (f" [+{others} attachment(s)]" if others else "")
        return message.role.value, body
    if isinstance(message, ToolCall):
        calls = ", ".join(
            f"{r.function}({json.dumps(r.arguments)})" for r in message.requests
        )
        return "tool-call", calls
    if isinstance(message, ToolResult):
        return "tool-result", f"{message.response.id}: {json.dumps(message.response.response)}"
    return type(message).__name__, repr(message)


def render_transcript(entries: Sequence[ChatEntry], cost: ChatCost) -> None:
    """Print a transcript as a table followed by the total cost."""
    table = Table(show_header=True, header_style=f"bold {ACCENT}", box=None)
    table.add_column("role", style=ACCENT, no_wrap=True)
    table.add_column("message")
    table.add_column("cost", justify="right", style=DIM)

    for entry in entries:
        label, body = describe_message(entry)
        table.add_row(label, body, f"{entry.cost.total:.4f}" if entry.cost.total else "")

    console.print(table)
    console.print(render_cost(cost))


def render_cost(cost: ChatCost) -> Text:
    line = Text()
    line.append("cost ", style=f"bold {ACCENT}")
    line.append("| ", style=DIM)
    line.append(f"{cost.input_cost:.4f} in / {cost.output_cost:.4f} out = {cost.total:.4f}")
    return line


def render_json(data: Any) -> None:
    console.print(JSON(json.dumps(data)))


def render_error(text: str) -> None:
    """Render an error message."""
    err = Text()
    err.append("err ", style=f"bold {ERROR}")
    err.append("| ", style=DIM)
    err.append(text, style=ERROR)
    console.print(err)
