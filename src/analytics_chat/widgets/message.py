"""Message bubble widget for conversation rendering."""

from __future__ import annotations

from typing import Any

from rich.markdown import Markdown
from rich.table import Table as RichTable
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Static

from ..models import Chart, FileDownloadAck, Message, Notice, Origin, Table
from .chart import ChartView


def build_rich_table(table: Table) -> RichTable:
    """Render table rows with headers taken from the first row."""
    rendered = RichTable(*table.header_labels, expand=False, show_lines=False)
    for cells in table.cells():
        rendered.add_row(*cells)
    return rendered


class MessageBubble(Vertical):
    """Render a single conversation turn with its text and payload."""

    DEFAULT_CSS = """
    MessageBubble {
        height: auto;
    }
    MessageBubble > #header-block {
        padding: 0;
    }
    MessageBubble > #content-block {
        height: auto;
    }
    MessageBubble > #table-block {
        height: auto;
        margin-top: 1;
    }
    MessageBubble.notice {
        border: round $error;
    }
    MessageBubble.download {
        border: round $success;
    }
    """

    def __init__(self, message: Message, timestamp: str = "", **kwargs: Any) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self.message = message
        self.role = message.origin.value
        self.timestamp = timestamp
        self.add_class(f"role-{self.role}")
        payload = message.payload
        if isinstance(payload, Notice):
            self.add_class("notice", f"notice-{payload.kind.value}")
        elif isinstance(payload, FileDownloadAck):
            self.add_class("download")

    @property
    def role_prefix(self) -> str:
        """Return a human-friendly role label."""
        return "You" if self.message.origin is Origin.USER else "Assistant"

    @property
    def message_content(self) -> str:
        return self.message.text

    def _compose_header(self) -> str:
        if self.timestamp:
            return f"**{self.role_prefix}**  _{self.timestamp}_"
        return f"**{self.role_prefix}**"

    def compose(self) -> ComposeResult:
        """Compose header, narrative text, and the payload-specific block."""
        yield Static(Markdown(self._compose_header()), id="header-block")

        text = self.message.text.rstrip()
        if text:
            if self.message.origin is Origin.USER:
                # User input is shown verbatim, never interpreted as markup.
                yield Static(text, id="content-block", markup=False)
            else:
                yield Static(Markdown(text), id="content-block")

        payload = self.message.payload
        if isinstance(payload, Table):
            yield Static(build_rich_table(payload), id="table-block")
        elif isinstance(payload, Chart):
            yield ChartView(payload, id="chart-block")
