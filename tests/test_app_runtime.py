"""Runtime-style tests for the real Textual app class."""

from __future__ import annotations

from copy import deepcopy
import json
import logging
import tempfile
import unittest

from analytics_chat.classifier import RawReply
from analytics_chat.config import DEFAULT_CONFIG
from analytics_chat.session import build_session

try:
    from textual.widgets import Input, Label

    from analytics_chat.app import AnalyticsChatApp
    from analytics_chat.widgets.conversation import ConversationView
    from analytics_chat.widgets.message import MessageBubble
    from analytics_chat.widgets.suggestions import SuggestionPrompts
except ModuleNotFoundError:
    Input = Label = None  # type: ignore[assignment,misc]
    AnalyticsChatApp = None  # type: ignore[assignment]


class _RuntimeFakeBackend:
    host = "analytics.test"

    def __init__(self) -> None:
        self.calls: list[tuple[str, list[dict[str, str]]]] = []
        self.closed = False

    async def submit(self, message: str, history: list[dict[str, str]]) -> RawReply:
        self.calls.append((message, history))
        if message.startswith("table"):
            payload: dict[str, object] = {
                "response": "Here is the table.",
                "isTable": True,
                "tableData": [{"entity_name": "Acme", "rate": 0.3}],
            }
        else:
            payload = {"response": f"re: {message}"}
        return RawReply(
            status_code=200,
            content=json.dumps(payload).encode("utf-8"),
            content_type="application/json",
        )

    async def aclose(self) -> None:
        self.closed = True


class _UnreachableFakeBackend(_RuntimeFakeBackend):
    async def check_connection(self) -> bool:
        return False


@unittest.skipIf(AnalyticsChatApp is None, "textual is not installed")
class AppRuntimeTests(unittest.IsolatedAsyncioTestCase):
    """Exercise the app against a fake backend."""

    def setUp(self) -> None:
        root = logging.getLogger()
        self._original_level = root.level
        self._original_handlers = list(root.handlers)
        self._temp_dir = tempfile.TemporaryDirectory()

    def tearDown(self) -> None:
        root = logging.getLogger()
        root.setLevel(self._original_level)
        root.handlers.clear()
        root.handlers.extend(self._original_handlers)
        self._temp_dir.cleanup()

    def _build_app(
        self, backend: _RuntimeFakeBackend | None = None, **keybinds: str
    ) -> AnalyticsChatApp:
        assert AnalyticsChatApp is not None
        config = deepcopy(DEFAULT_CONFIG)
        config["keybinds"].update(keybinds)
        config["downloads"]["directory"] = self._temp_dir.name
        config["conversation"]["greeting"] = "Welcome!"
        self.backend = backend or _RuntimeFakeBackend()
        session = build_session(config, backend=self.backend)
        return AnalyticsChatApp(config=config, session=session)

    async def _settle(self, app: AnalyticsChatApp, pilot) -> None:
        await pilot.pause()
        await app._task_manager.await_all()
        await pilot.pause()

    async def test_initial_render_shows_greeting_and_suggestions(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            await pilot.pause()
            bubbles = list(app.query(MessageBubble))
            self.assertEqual(len(bubbles), 1)
            self.assertEqual(bubbles[0].message_content, "Welcome!")
            self.assertFalse(app.query_one(SuggestionPrompts).has_class("hidden"))
            self.assertTrue(app.query_one("#loading").has_class("hidden"))

    async def test_enter_submits_and_renders_reply(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            app.query_one("#message_input", Input).value = "How much tax?"
            await pilot.press("enter")
            await self._settle(app, pilot)

            texts = [message.text for message in app.session.store.messages]
            self.assertEqual(texts, ["Welcome!", "How much tax?", "re: How much tax?"])
            self.assertEqual(self.backend.calls, [("How much tax?", [])])
            self.assertEqual(app.query_one("#message_input", Input).value, "")
            self.assertEqual(len(app.query_one(ConversationView).rendered_messages), 3)
            self.assertTrue(app.query_one(SuggestionPrompts).has_class("hidden"))
            self.assertFalse(app.session.loading)

    async def test_table_reply_renders_table_block(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            app.submit_text("table please")
            await self._settle(app, pilot)
            self.assertEqual(len(app.query("#table-block")), 1)

    async def test_suggestion_button_submits_prompt(self) -> None:
        app = self._build_app()
        async with app.run_test(size=(100, 50)) as pilot:
            await pilot.click("#suggestion_0")
            await self._settle(app, pilot)
            first_prompt = app.session.suggestions[0]
            self.assertEqual(self.backend.calls[0][0], first_prompt)

    async def test_reset_and_clear_keys(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            app.submit_text("q1")
            await self._settle(app, pilot)
            self.assertEqual(len(app.session.store.messages), 3)

            await pilot.press("ctrl+r")
            await self._settle(app, pilot)
            self.assertEqual(len(app.session.store.messages), 1)
            self.assertEqual(len(app.query(MessageBubble)), 1)

            await pilot.press("ctrl+l")
            await self._settle(app, pilot)
            self.assertEqual(len(app.session.store.messages), 0)
            self.assertEqual(len(app.query(MessageBubble)), 0)

    async def test_configured_chord_replaces_default_binding(self) -> None:
        app = self._build_app(reset_session="ctrl+n")
        self.assertEqual(app._keymap_from_config()["reset_session"], "ctrl+n")
        async with app.run_test() as pilot:
            app.submit_text("q1")
            await self._settle(app, pilot)
            self.assertEqual(len(app.session.store.messages), 3)
            await pilot.press("ctrl+n")
            await self._settle(app, pilot)
            self.assertEqual(len(app.session.store.messages), 1)

    async def test_suggestion_discards_typed_draft(self) -> None:
        app = self._build_app()
        async with app.run_test(size=(100, 50)) as pilot:
            input_widget = app.query_one("#message_input", Input)
            input_widget.value = "half a thought"
            await pilot.pause()
            self.assertEqual(app.session.pending_input, "half a thought")

            await pilot.click("#suggestion_0")
            await self._settle(app, pilot)
            self.assertEqual(self.backend.calls[0][0], app.session.suggestions[0])
            self.assertEqual(input_widget.value, "")
            self.assertEqual(app.session.pending_input, "")

    async def test_session_chords_win_over_focused_input(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            app.submit_text("q1")
            await self._settle(app, pilot)
            input_widget = app.query_one("#message_input", Input)

            input_widget.focus()
            input_widget.value = "draft"
            await pilot.pause()
            await pilot.press("ctrl+r")
            await self._settle(app, pilot)
            self.assertEqual(len(app.session.store.messages), 1)
            self.assertEqual(input_widget.value, "")
            self.assertEqual(app.session.pending_input, "")

            input_widget.focus()
            input_widget.value = "another draft"
            await pilot.pause()
            await pilot.press("ctrl+l")
            await self._settle(app, pilot)
            self.assertEqual(len(app.session.store.messages), 0)
            self.assertEqual(input_widget.value, "")
            self.assertEqual(app.session.pending_input, "")

    async def test_unreachable_backend_marked_offline(self) -> None:
        app = self._build_app(backend=_UnreachableFakeBackend())
        async with app.run_test() as pilot:
            await self._settle(app, pilot)
            label = app.query_one("#status_connection", Label)
            self.assertIn("offline", str(label.render()))
            self.assertTrue(label.has_class("offline"))

    async def test_slash_clear_command(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            app.submit_text("/clear")
            await self._settle(app, pilot)
            self.assertEqual(len(app.session.store.messages), 0)
            self.assertEqual(self.backend.calls, [])

    async def test_blank_submit_is_ignored(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            self.assertIsNone(app.submit_text("   "))
            await pilot.pause()
            self.assertEqual(len(app.session.store.messages), 1)

    async def test_blank_keybind_disables_action(self) -> None:
        app = self._build_app(copy_transcript="")
        self.assertFalse(app.check_action("copy_transcript", ()))
        self.assertTrue(app.check_action("reset_session", ()))

    async def test_backend_closed_on_exit(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            await pilot.pause()
        self.assertTrue(self.backend.closed)


if __name__ == "__main__":
    unittest.main()
