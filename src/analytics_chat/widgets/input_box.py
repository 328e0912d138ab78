"""Input row containing the query field and send button."""

from __future__ import annotations

from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.widgets import Button, Input


class InputBox(Vertical):
    """Input region with the query field and a send button."""

    class SendRequested(Message):
        """Posted when the user clicks the send button."""

    def compose(self):  # type: ignore[override]
        with Horizontal(id="input_row"):
            yield Input(
                placeholder="Type your question here... (/ for commands)",
                id="message_input",
            )
            yield Button("Send", id="send_button", variant="success")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Forward send button clicks as SendRequested messages."""
        if event.button.id == "send_button":
            event.stop()
            self.post_message(self.SendRequested())

    def set_busy(self, busy: bool) -> None:
        """Lock the field and button while a query is in flight."""
        self.query_one("#message_input", Input).disabled = busy
        self.query_one("#send_button", Button).disabled = busy
