"""Scrollable conversation view widget."""

from __future__ import annotations

from collections.abc import Sequence

from textual.containers import VerticalScroll

from ..models import Message
from .message import MessageBubble


class ConversationView(VerticalScroll):
    """A scrollable container that mirrors the conversation transcript."""

    def __init__(self, show_timestamps: bool = True, **kwargs) -> None:
        super().__init__(**kwargs)
        self.show_timestamps = show_timestamps
        self._rendered: list[Message] = []

    @property
    def rendered_messages(self) -> tuple[Message, ...]:
        return tuple(self._rendered)

    def _is_extension(self, messages: Sequence[Message]) -> bool:
        if len(messages) < len(self._rendered):
            return False
        return all(
            shown is current for shown, current in zip(self._rendered, messages)
        )

    async def sync_messages(self, messages: Sequence[Message]) -> None:
        """Bring the view in line with ``messages``.

        Appends mount only the new bubbles; a reset or clear rebuilds the view.
        """
        if not self._is_extension(messages):
            await self.remove_children()
            self._rendered = []

        new_messages = list(messages[len(self._rendered) :])
        if not new_messages:
            return
        for message in new_messages:
            await self.add_message(message)
        self.scroll_end(animate=True)

    async def add_message(self, message: Message) -> MessageBubble:
        """Create and mount a bubble for one message."""
        timestamp = (
            message.created_at.strftime("%H:%M:%S") if self.show_timestamps else ""
        )
        bubble = MessageBubble(message=message, timestamp=timestamp)
        bubble.add_class(f"message-{message.origin.value}")
        self._rendered.append(message)
        await self.mount(bubble)
        return bubble
