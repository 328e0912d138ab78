"""Status bar widget for backend and conversation telemetry."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.widgets import Label, Static


class StatusBar(Static):
    """Render compact runtime status information.

    Segments (left to right):
        Backend: analytics.example.com  online  |  Messages: 4  |  ⏳ waiting
    """

    DEFAULT_CSS = """
    StatusBar {
        layout: horizontal;
        height: auto;
    }
    StatusBar Label {
        margin-right: 1;
    }
    StatusBar Label.offline {
        color: $error;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose child labels for each status segment."""
        yield Label("Backend: —", id="status_backend")
        yield Label("", id="status_connection")
        yield Label("|", id="status_sep1")
        yield Label("Messages: 0", id="status_messages")
        yield Label("|", id="status_sep2")
        yield Label("✅ ready", id="status_state")

    def on_mount(self) -> None:
        """Cache label references once after the DOM is ready."""
        self._lbl_backend = self.query_one("#status_backend", Label)
        self._lbl_connection = self.query_one("#status_connection", Label)
        self._lbl_messages = self.query_one("#status_messages", Label)
        self._lbl_state = self.query_one("#status_state", Label)

    def set_status(self, *, backend: str, message_count: int, loading: bool) -> None:
        """Update all status segment labels."""
        self._lbl_backend.update(f"Backend: {backend}")
        self._lbl_messages.update(f"Messages: {message_count}")
        self._lbl_state.update("⏳ waiting" if loading else "✅ ready")

    def set_connection(self, online: bool) -> None:
        """Show whether the backend answered the startup reachability check."""
        self._lbl_connection.update("online" if online else "offline")
        self._lbl_connection.set_class(not online, "offline")
