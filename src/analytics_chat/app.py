"""Main Textual application for chatting with the analytics backend."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
import sys
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.widgets import Footer, Header, Input, LoadingIndicator

from .config import load_config
from .logging_utils import configure_logging
from .session import ChatSession, SessionSnapshot, build_session
from .task_manager import TaskManager
from .widgets.conversation import ConversationView
from .widgets.input_box import InputBox
from .widgets.status_bar import StatusBar
from .widgets.suggestions import SuggestionPrompts

LOGGER = logging.getLogger(__name__)

_SlashCommand = Callable[[str], Awaitable[None]]

# Session chords must win over the focused Input's own key handling.
_PRIORITY_ACTIONS = frozenset({"reset_session", "clear_session", "quit"})


class AnalyticsChatApp(App[None]):
    """Chat-style TUI for asking an analytics backend questions."""

    CSS = """
    Screen {
        layout: vertical;
        background: $background;
    }

    #app-root {
        layout: vertical;
        width: 100%;
        height: 1fr;
        background: $background;
    }

    #conversation {
        height: 1fr;
        padding: 1;
    }

    #suggestions {
        max-height: 50%;
    }

    #suggestions.hidden, #loading.hidden {
        display: none;
    }

    #loading {
        height: 1;
    }

    InputBox {
        height: auto;
        padding: 0 1 1 1;
        border-top: solid $panel;
        background: $surface;
    }

    #message_input {
        width: 1fr;
    }

    #send_button {
        margin-left: 1;
        min-width: 10;
    }

    #input_row {
        height: auto;
    }

    #status_bar {
        height: auto;
        padding: 0 1;
        border-top: solid $panel;
        background: $surface;
    }

    MessageBubble {
        width: 85%;
        margin: 1 0;
        padding: 1 2;
        border: round $panel;
    }

    .message-user {
        align-horizontal: right;
        background: $primary;
    }

    .message-assistant {
        align-horizontal: left;
        background: $surface;
    }
    """

    DEFAULT_ACTION_DESCRIPTIONS: dict[str, str] = {
        "send_message": "Send",
        "reset_session": "New Chat",
        "clear_session": "Clear",
        "quit": "Quit",
        "scroll_up": "Scroll Up",
        "scroll_down": "Scroll Down",
        "copy_transcript": "Copy",
    }

    BINDINGS = [
        Binding(
            "ctrl+enter", "send_message", "Send", id="send_message"
        ),
        Binding(
            "ctrl+r", "reset_session", "New Chat", id="reset_session", priority=True
        ),
        Binding(
            "ctrl+l", "clear_session", "Clear", id="clear_session", priority=True
        ),
        Binding("ctrl+q", "quit", "Quit", id="quit", priority=True),
        Binding("ctrl+k", "scroll_up", "Scroll Up", id="scroll_up"),
        Binding("ctrl+j", "scroll_down", "Scroll Down", id="scroll_down"),
        Binding("ctrl+y", "copy_transcript", "Copy", id="copy_transcript"),
    ]

    def __init__(
        self,
        config: dict[str, dict[str, Any]] | None = None,
        session: ChatSession | None = None,
    ) -> None:
        self.config = config if config is not None else load_config()
        self.window_title = str(self.config["app"]["title"])
        configure_logging(self.config["logging"])
        self.session = session if session is not None else build_session(self.config)
        LOGGER.info(
            "app.start",
            extra={
                "event": "app.start",
                "backend_url": self.config["backend"]["url"],
                "python": sys.version.split()[0],
            },
        )
        self._task_manager = TaskManager()
        self._binding_specs = self._binding_specs_from_config(self.config)
        self._unbound_actions = set(self.DEFAULT_ACTION_DESCRIPTIONS) - {
            binding.action for binding in self._binding_specs
        }
        self._slash_registry = self._build_slash_registry()
        self._render_scheduled = False
        self._was_loading = False

        # Cached widget references, populated in on_mount().
        self._w_input: Input | None = None
        self._w_input_box: InputBox | None = None
        self._w_conversation: ConversationView | None = None
        self._w_suggestions: SuggestionPrompts | None = None
        self._w_loading: LoadingIndicator | None = None
        self._w_status: StatusBar | None = None
        super().__init__()

    @classmethod
    def _binding_specs_from_config(
        cls, config: dict[str, dict[str, Any]]
    ) -> list[Binding]:
        keybinds = config.get("keybinds", {})
        bindings: list[Binding] = []
        for action_name in cls.DEFAULT_ACTION_DESCRIPTIONS:
            binding_key = keybinds.get(action_name)
            if isinstance(binding_key, str) and binding_key.strip():
                bindings.append(
                    Binding(
                        key=binding_key.strip(),
                        action=action_name,
                        description=cls.DEFAULT_ACTION_DESCRIPTIONS[action_name],
                        show=True,
                        priority=action_name in _PRIORITY_ACTIONS,
                        id=action_name,
                    )
                )
        return bindings

    def _keymap_from_config(self) -> dict[str, str]:
        """Map binding ids to the configured chords."""
        return {binding.id: binding.key for binding in self._binding_specs if binding.id}

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        """Blank keybinds in the config switch their chord off."""
        if action in self._unbound_actions:
            return False
        return True

    @property
    def backend_label(self) -> str:
        backend = self.session.dispatcher.backend
        return str(getattr(backend, "host", "") or self.config["backend"]["url"])

    def compose(self) -> ComposeResult:
        """Compose app widgets."""
        yield Header()
        with Container(id="app-root"):
            yield ConversationView(
                show_timestamps=bool(self.config["ui"]["show_timestamps"]),
                id="conversation",
            )
            yield SuggestionPrompts(
                self.session.suggestions,
                title=str(self.config["conversation"]["suggestions_title"]),
                id="suggestions",
            )
            yield LoadingIndicator(id="loading", classes="hidden")
            yield InputBox()
            yield StatusBar(id="status_bar")
        yield Footer()

    async def on_mount(self) -> None:
        """Apply keybindings, subscribe to the session, and render it."""
        self.title = self.window_title
        self.set_keymap(self._keymap_from_config())

        self._w_input = self.query_one("#message_input", Input)
        self._w_input_box = self.query_one(InputBox)
        self._w_conversation = self.query_one(ConversationView)
        self._w_suggestions = self.query_one(SuggestionPrompts)
        self._w_loading = self.query_one("#loading", LoadingIndicator)
        self._w_status = self.query_one("#status_bar", StatusBar)

        self.session.subscribe(self._on_session_changed)
        await self._render_snapshot(self.session.get_snapshot())
        self._w_input.focus()
        self._task_manager.add(asyncio.create_task(self._check_backend()))

    async def _check_backend(self) -> None:
        """Check backend reachability once and show it in the status bar."""
        check = getattr(self.session.dispatcher.backend, "check_connection", None)
        if check is None:
            return
        online = await check()
        LOGGER.info(
            "app.connection",
            extra={"event": "app.connection", "online": online},
        )
        status = self._w_status or self.query_one("#status_bar", StatusBar)
        status.set_connection(online)

    def _on_session_changed(self, _snapshot: SessionSnapshot) -> None:
        """Session listener: coalesce bursts of changes into one render."""
        if self._render_scheduled:
            return
        self._render_scheduled = True
        self.call_later(self._render_latest)

    async def _render_latest(self) -> None:
        self._render_scheduled = False
        await self._render_snapshot(self.session.get_snapshot())

    async def _render_snapshot(self, snapshot: SessionSnapshot) -> None:
        """Mirror one session snapshot into the widgets."""
        conversation = self._w_conversation or self.query_one(ConversationView)
        await conversation.sync_messages(snapshot.messages)

        suggestions = self._w_suggestions or self.query_one(SuggestionPrompts)
        suggestions.set_class(
            not snapshot.suggestions_visible or not self.session.suggestions, "hidden"
        )
        loading = self._w_loading or self.query_one("#loading", LoadingIndicator)
        loading.set_class(not snapshot.loading, "hidden")

        input_box = self._w_input_box or self.query_one(InputBox)
        input_box.set_busy(snapshot.loading)
        if self._was_loading and not snapshot.loading:
            self._input_widget().focus()
        self._was_loading = snapshot.loading

        self.sub_title = "Waiting for response..." if snapshot.loading else "Ready"
        status = self._w_status or self.query_one("#status_bar", StatusBar)
        status.set_status(
            backend=self.backend_label,
            message_count=len(snapshot.messages),
            loading=snapshot.loading,
        )

    def _input_widget(self) -> Input:
        return self._w_input or self.query_one("#message_input", Input)

    def _clear_input(self) -> None:
        self._input_widget().value = ""
        self.session.set_pending_input("")

    def submit_text(self, text: str) -> asyncio.Task[None] | None:
        """Start a query in the background; slash commands run immediately."""
        stripped = text.strip()
        if stripped.startswith("/"):
            parts = stripped.split(maxsplit=1)
            handler = self._slash_registry.get(parts[0].lower())
            if handler is not None:
                self._clear_input()
                return self._task_manager.add(
                    asyncio.create_task(handler(parts[1] if len(parts) == 2 else ""))
                )
        if not stripped:
            self.sub_title = "Cannot send an empty message."
            return None
        if self.session.loading:
            self.sub_title = "Busy. Wait for current request to finish."
            return None
        self._clear_input()
        return self._task_manager.add(
            asyncio.create_task(self.session.submit_query(text))
        )

    def on_input_changed(self, event: Input.Changed) -> None:
        """Keep the session's draft in step with the input field."""
        if event.input.id == "message_input":
            self.session.set_pending_input(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Handle input submit events."""
        if event.input.id == "message_input":
            self.submit_text(event.value)

    def on_input_box_send_requested(self, _message: InputBox.SendRequested) -> None:
        self.action_send_message()

    def on_suggestion_prompts_selected(self, message: SuggestionPrompts.Selected) -> None:
        """A suggestion submits its text exactly like typed input."""
        if self.session.loading:
            return
        self._clear_input()
        self._task_manager.add(
            asyncio.create_task(self.session.select_suggestion(message.prompt))
        )

    def action_send_message(self) -> None:
        """Action invoked by keybinding for sending a message."""
        self.submit_text(self._input_widget().value)

    def action_reset_session(self) -> None:
        """Start a new conversation from the greeting."""
        self._clear_input()
        self.session.reset_session()

    def action_clear_session(self) -> None:
        """Remove every message, including the greeting."""
        self._clear_input()
        self.session.clear_session()

    def action_scroll_up(self) -> None:
        conversation = self._w_conversation or self.query_one(ConversationView)
        conversation.scroll_up(animate=False)

    def action_scroll_down(self) -> None:
        conversation = self._w_conversation or self.query_one(ConversationView)
        conversation.scroll_down(animate=False)

    def action_copy_transcript(self) -> None:
        """Copy the transcript as JSON to the clipboard."""
        self.copy_to_clipboard(self.session.store.export_json())
        self.sub_title = "Transcript copied."

    async def action_quit(self) -> None:
        """Exit the app."""
        self.exit()

    def _help_text(self) -> str:
        lines = ["Commands:"]
        lines.extend(f"{prefix}" for prefix in sorted(self._slash_registry))
        lines.append("Keys:")
        for binding in self._binding_specs:
            lines.append(f"{binding.key} - {binding.description}")
        return "\n".join(lines)

    def _build_slash_registry(self) -> dict[str, _SlashCommand]:
        """Build the default mapping of slash command prefixes to async handlers."""

        async def _handle_reset(_args: str) -> None:
            self.action_reset_session()

        async def _handle_clear(_args: str) -> None:
            self.action_clear_session()

        async def _handle_help(_args: str) -> None:
            self.notify(self._help_text(), title="Help", timeout=10)

        return {
            "/reset": _handle_reset,
            "/new": _handle_reset,
            "/clear": _handle_clear,
            "/help": _handle_help,
        }

    async def on_unmount(self) -> None:
        """Cancel and await all background tasks during shutdown."""
        self.session.unsubscribe(self._on_session_changed)
        await self._task_manager.cancel_all()
        close = getattr(self.session.dispatcher.backend, "aclose", None)
        if close is not None:
            await close()
