"""Shared Rich console instance and renderables for CLI output."""

from collections.abc import Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import MentionSpan
from .models import Segment

MENTION_STYLE = "bold white on blue"


def render_segments(segments: Sequence[Segment]) -> Text:
    """Render buffer segments with mention runs highlighted."""
    text = Text()
    for segment in segments:
        text.append(segment.text, style=MENTION_STYLE if segment.kind == "mention" else None)
    return text


def spans_table(spans: Sequence[MentionSpan], title: str = "Mentions") -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Start", justify="right", style="yellow")
    table.add_column("End", justify="right", style="yellow")
    table.add_column("Id", style="green")
    table.add_column("Display", style="white")
    for span in spans:
        table.add_row(str(span.start), str(span.end), span.id, span.display_text)
    return table


console = Console()

__all__ = ["console", "render_segments", "spans_table"]
