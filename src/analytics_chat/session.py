"""Session controller: the UI-facing surface of the chat core."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
import logging
from typing import Any

from .client import AnalyticsBackend
from .dispatcher import Backend, QueryDispatcher
from .downloads import DownloadSaver
from .message_store import MessageStore
from .models import Message
from .state import ConversationState

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view handed to the presentation layer."""

    messages: tuple[Message, ...]
    loading: bool
    pending_input: str
    suggestions_visible: bool


SessionListener = Callable[[SessionSnapshot], None]


class ChatSession:
    """Own the conversation, the draft input, and the single-flight dispatcher.

    The presentation layer never holds conversation state; it calls the
    operations below and re-renders from the snapshots pushed to
    :meth:`subscribe` listeners.
    """

    def __init__(
        self,
        store: MessageStore,
        dispatcher: QueryDispatcher,
        suggestions: Sequence[str] = (),
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.suggestions: tuple[str, ...] = tuple(
            prompt.strip() for prompt in suggestions if prompt.strip()
        )
        self._pending_input = ""
        self._listeners: list[SessionListener] = []
        self.store.subscribe(self._on_store_changed)
        self.dispatcher.on_accepted = self._on_query_accepted
        self.dispatcher.on_state_change = self._on_state_changed

    @property
    def loading(self) -> bool:
        return self.dispatcher.loading

    @property
    def pending_input(self) -> str:
        return self._pending_input

    @property
    def suggestions_visible(self) -> bool:
        """Prompts show only on a fresh conversation with nothing in flight."""
        return self.store.message_count <= 1 and not self.loading

    def get_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            messages=self.store.snapshot(),
            loading=self.loading,
            pending_input=self._pending_input,
            suggestions_visible=self.suggestions_visible,
        )

    def subscribe(self, listener: SessionListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: SessionListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def set_pending_input(self, text: str) -> None:
        """Track the not-yet-submitted draft."""
        if text == self._pending_input:
            return
        self._pending_input = text
        self._notify()

    async def submit_query(self, text: str) -> None:
        await self.dispatcher.submit_query(text)

    async def submit_pending(self) -> None:
        """Submit the current draft."""
        await self.dispatcher.submit_query(self._pending_input)

    async def select_suggestion(self, prompt: str) -> None:
        """Picking a suggestion is the same as typing and submitting it."""
        await self.dispatcher.submit_query(prompt)

    def reset_session(self) -> None:
        """Start over from the seed greeting."""
        self._pending_input = ""
        self.store.reset()
        LOGGER.info("session.reset", extra={"event": "session.reset"})

    def clear_session(self) -> None:
        """Empty the conversation entirely."""
        self._pending_input = ""
        self.store.clear()
        LOGGER.info("session.clear", extra={"event": "session.clear"})

    def _on_query_accepted(self, _query: str) -> None:
        self._pending_input = ""

    def _on_store_changed(self, _messages: tuple[Message, ...]) -> None:
        self._notify()

    def _on_state_changed(self, _state: ConversationState) -> None:
        self._notify()

    def _notify(self) -> None:
        snapshot = self.get_snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:  # noqa: BLE001 - one bad subscriber must not block others.
                LOGGER.error(
                    "session.listener.failed",
                    extra={"event": "session.listener.failed", "error": str(exc)},
                )


def build_session(
    config: dict[str, dict[str, Any]],
    backend: Backend | None = None,
    saver: DownloadSaver | None = None,
) -> ChatSession:
    """Wire a store, dispatcher, and session from loaded configuration."""
    conversation_cfg = config["conversation"]
    backend_cfg = config["backend"]
    downloads_cfg = config["downloads"]

    store = MessageStore(
        greeting=str(conversation_cfg["greeting"]),
        include_seed_in_history=bool(conversation_cfg["include_seed_in_history"]),
    )
    if backend is None:
        backend = AnalyticsBackend(
            url=str(backend_cfg["url"]),
            timeout=float(backend_cfg["timeout"]),
            verify_tls=bool(backend_cfg["verify_tls"]),
        )
    dispatcher = QueryDispatcher(
        store=store,
        backend=backend,
        saver=saver or DownloadSaver(str(downloads_cfg["directory"])),
        fallback_filename=str(downloads_cfg["fallback_filename"]),
    )
    return ChatSession(
        store=store,
        dispatcher=dispatcher,
        suggestions=list(conversation_cfg.get("suggestions") or []),
    )
