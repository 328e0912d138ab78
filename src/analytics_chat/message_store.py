"""Append-only conversation storage with push notification."""

from __future__ import annotations

from collections.abc import Callable
import json
import logging

from .models import Message, build_seed_message, to_backend_history

LOGGER = logging.getLogger(__name__)

StoreListener = Callable[[tuple[Message, ...]], None]


class MessageStore:
    """Own the ordered transcript and notify subscribers on every mutation."""

    def __init__(self, greeting: str, include_seed_in_history: bool = False) -> None:
        self.greeting = greeting.strip()
        self.include_seed_in_history = include_seed_in_history
        self._seed: Message | None = None
        self._messages: list[Message] = []
        self._listeners: list[StoreListener] = []
        self._seed_conversation()

    @property
    def messages(self) -> tuple[Message, ...]:
        """Return a read-only view of all stored messages."""
        return tuple(self._messages)

    @property
    def message_count(self) -> int:
        """Return the number of stored messages."""
        return len(self._messages)

    def snapshot(self) -> tuple[Message, ...]:
        return self.messages

    def subscribe(self, listener: StoreListener) -> None:
        """Register a callback invoked with the new snapshot after each change."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: StoreListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def append(self, message: Message) -> None:
        """Append one message; past messages are never edited or removed."""
        self._messages.append(message)
        LOGGER.debug(
            "store.append",
            extra={
                "event": "store.append",
                "origin": message.origin.value,
                "payload": type(message.payload).__name__,
                "count": len(self._messages),
            },
        )
        self._notify()

    def reset(self) -> None:
        """Discard every message and reseed the greeting."""
        self._seed_conversation()
        LOGGER.info("store.reset", extra={"event": "store.reset"})
        self._notify()

    def clear(self) -> None:
        """Discard every message and leave the conversation empty."""
        self._seed = None
        self._messages = []
        LOGGER.info("store.clear", extra={"event": "store.clear"})
        self._notify()

    def history_for_backend(self) -> list[dict[str, str]]:
        """Build the role/content context sent alongside the next query."""
        has_seed = (
            self._seed is not None
            and bool(self._messages)
            and self._messages[0] is self._seed
        )
        return to_backend_history(
            self._messages, skip_seed=has_seed and not self.include_seed_in_history
        )

    def export_json(self) -> str:
        """Export the transcript using stable list and field ordering."""
        stable_messages = [
            {
                "role": message.origin.value,
                "content": message.text,
                "payload": type(message.payload).__name__,
            }
            for message in self._messages
        ]
        return json.dumps(
            stable_messages, ensure_ascii=False, separators=(",", ":"), sort_keys=False
        )

    def _seed_conversation(self) -> None:
        self._seed = build_seed_message(self.greeting) if self.greeting else None
        self._messages = [self._seed] if self._seed is not None else []

    def _notify(self) -> None:
        snapshot = tuple(self._messages)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:  # noqa: BLE001 - one bad subscriber must not block others.
                LOGGER.error(
                    "store.listener.failed",
                    extra={"event": "store.listener.failed", "error": str(exc)},
                )
