"""Send queries to the backend and route replies into the conversation."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Protocol

from .classifier import (
    DEFAULT_DOWNLOAD_FILENAME,
    RawReply,
    ReplyKind,
    classify_reply,
)
from .downloads import DownloadSaver
from .exceptions import (
    BackendConnectionError,
    BackendReplyError,
    DownloadError,
)
from .message_store import MessageStore
from .models import Message, Notice, NoticeKind
from .state import ConversationState, StateManager

LOGGER = logging.getLogger(__name__)

NETWORK_ERROR_TEXT = "Sorry, a network error occurred. Please check the connection."
DOWNLOAD_ERROR_TEXT = "Sorry, the file from the server could not be saved."


class Backend(Protocol):
    async def submit(
        self, message: str, history: list[dict[str, str]]
    ) -> RawReply: ...


def network_error_message(exc: Exception, reason: str = "") -> Message:
    """Build the apology turn; only a short reason tag leaks into the text."""
    reason = reason or getattr(exc, "reason", "") or "error"
    return Message.assistant(
        f"{NETWORK_ERROR_TEXT} ({reason})", Notice(NoticeKind.NETWORK_ERROR)
    )


class QueryDispatcher:
    """Run at most one backend query at a time against a ``MessageStore``."""

    def __init__(
        self,
        store: MessageStore,
        backend: Backend,
        saver: DownloadSaver,
        state: StateManager | None = None,
        fallback_filename: str = DEFAULT_DOWNLOAD_FILENAME,
        on_accepted: Callable[[str], None] | None = None,
        on_state_change: Callable[[ConversationState], None] | None = None,
    ) -> None:
        self.store = store
        self.backend = backend
        self.saver = saver
        self.state = state or StateManager()
        self.fallback_filename = fallback_filename
        self.on_accepted = on_accepted
        self.on_state_change = on_state_change

    @property
    def loading(self) -> bool:
        return self.state.loading

    async def submit_query(self, text: str) -> None:
        """Submit ``text`` unless it is blank or another query is in flight."""
        query = text.strip()
        if not query:
            LOGGER.debug(
                "dispatcher.skip", extra={"event": "dispatcher.skip", "reason": "empty"}
            )
            return

        # Compare-and-set: only one IDLE -> AWAITING winner.
        if not await self.state.transition_if(
            ConversationState.IDLE, ConversationState.AWAITING
        ):
            LOGGER.debug(
                "dispatcher.skip", extra={"event": "dispatcher.skip", "reason": "busy"}
            )
            return

        try:
            history = self.store.history_for_backend()
            self.store.append(Message.user(query))
            if self.on_accepted is not None:
                self.on_accepted(query)
            self._emit_state(ConversationState.AWAITING)
            LOGGER.info(
                "dispatcher.query.start",
                extra={"event": "dispatcher.query.start", "history_length": len(history)},
            )
            reply = await self._exchange(query, history)
            self.store.append(reply)
        finally:
            await self.state.transition_to(ConversationState.IDLE)
            self._emit_state(ConversationState.IDLE)

    async def _exchange(self, query: str, history: list[dict[str, str]]) -> Message:
        """Perform the request and turn every outcome into one assistant turn."""
        try:
            raw = await self.backend.submit(query, history)
            classification = classify_reply(raw, fallback_filename=self.fallback_filename)
            if classification.kind is ReplyKind.FILE_TRANSFER:
                await self.saver.save(
                    classification.filename, classification.content
                )
        except (BackendConnectionError, BackendReplyError) as exc:
            LOGGER.warning(
                "dispatcher.query.failed",
                extra={
                    "event": "dispatcher.query.failed",
                    "error_type": exc.__class__.__name__,
                    "reason": getattr(exc, "reason", ""),
                },
            )
            return network_error_message(exc)
        except DownloadError:
            return Message.assistant(
                DOWNLOAD_ERROR_TEXT, Notice(NoticeKind.DOWNLOAD_ERROR)
            )
        except Exception as exc:
            LOGGER.exception(
                "dispatcher.query.failed",
                extra={
                    "event": "dispatcher.query.failed",
                    "error_type": exc.__class__.__name__,
                    "reason": "unexpected",
                },
            )
            return network_error_message(exc, reason="unexpected")

        LOGGER.info(
            "dispatcher.query.complete",
            extra={
                "event": "dispatcher.query.complete",
                "kind": classification.kind.value,
            },
        )
        return classification.message

    def _emit_state(self, state: ConversationState) -> None:
        LOGGER.info(
            "dispatcher.state.transition",
            extra={"event": "dispatcher.state.transition", "to_state": state.value},
        )
        if self.on_state_change is not None:
            self.on_state_change(state)
