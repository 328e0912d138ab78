"""Unit tests for individual widget classes."""

from __future__ import annotations

import unittest

from analytics_chat.models import (
    Chart,
    ChartKind,
    FileDownloadAck,
    Message,
    Notice,
    NoticeKind,
    Table,
)

try:
    from textual.app import App, ComposeResult
    from textual.widgets import Button, Label, Sparkline

    from analytics_chat.widgets.chart import ChartView, chart_rows, chart_title
    from analytics_chat.widgets.conversation import ConversationView
    from analytics_chat.widgets.input_box import InputBox
    from analytics_chat.widgets.message import MessageBubble, build_rich_table
    from analytics_chat.widgets.status_bar import StatusBar
    from analytics_chat.widgets.suggestions import SuggestionPrompts
except ModuleNotFoundError:
    App = None  # type: ignore[assignment,misc]
    MessageBubble = None  # type: ignore[assignment,misc]


@unittest.skipIf(MessageBubble is None, "textual is not installed")
class ChartRowsTests(unittest.TestCase):
    """Validate chart flattening into table rows."""

    def test_bar_chart_has_one_column_per_dataset(self) -> None:
        chart = Chart(
            kind=ChartKind.BAR,
            data={
                "labels": ["2022", "2023"],
                "datasets": [
                    {"label": "Revenue", "data": [10, 12.5]},
                    {"label": "Tax", "data": [2]},
                ],
            },
        )
        headers, rows = chart_rows(chart)
        self.assertEqual(headers, ["label", "Revenue", "Tax"])
        self.assertEqual(rows, [["2022", "10", "2"], ["2023", "12.5", "—"]])

    def test_pie_chart_reports_shares(self) -> None:
        chart = Chart(
            kind=ChartKind.PIE,
            data={"labels": ["A", "B"], "datasets": [{"data": [1, 3]}]},
        )
        headers, rows = chart_rows(chart)
        self.assertEqual(headers, ["label", "value", "share"])
        self.assertEqual(rows, [["A", "1", "25.0%"], ["B", "3", "75.0%"]])

    def test_bubble_chart_lists_points(self) -> None:
        chart = Chart(
            kind=ChartKind.BUBBLE,
            data={"datasets": [{"label": "Entities", "data": [{"x": 1, "y": 2, "r": 5}]}]},
        )
        headers, rows = chart_rows(chart)
        self.assertEqual(headers, ["series", "x", "y", "r"])
        self.assertEqual(rows, [["Entities", "1", "2", "5"]])

    def test_empty_chart_has_no_rows(self) -> None:
        headers, rows = chart_rows(Chart(kind=ChartKind.LINE, data={}))
        self.assertEqual(headers, ["label"])
        self.assertEqual(rows, [])

    def test_title_only_when_displayed(self) -> None:
        shown = Chart(
            kind=ChartKind.BAR,
            data={},
            options={"plugins": {"title": {"display": True, "text": "Rates"}}},
        )
        self.assertEqual(chart_title(shown), "Rates")
        self.assertEqual(chart_title(Chart(kind=ChartKind.BAR, data={})), "")


@unittest.skipIf(MessageBubble is None, "textual is not installed")
class MessageBubbleTests(unittest.TestCase):
    """Validate MessageBubble classes and content."""

    def test_role_class_and_prefix(self) -> None:
        user = MessageBubble(Message.user("hello"))
        assistant = MessageBubble(Message.assistant("hi"))
        self.assertIn("role-user", user.classes)
        self.assertIn("role-assistant", assistant.classes)
        self.assertEqual(user.role_prefix, "You")
        self.assertEqual(assistant.role_prefix, "Assistant")
        self.assertEqual(user.message_content, "hello")

    def test_notice_and_download_classes(self) -> None:
        notice = MessageBubble(
            Message.assistant("oops", Notice(NoticeKind.NETWORK_ERROR))
        )
        download = MessageBubble(
            Message.assistant("saved", FileDownloadAck("report.xlsx"))
        )
        self.assertIn("notice", notice.classes)
        self.assertIn("notice-network_error", notice.classes)
        self.assertIn("download", download.classes)

    def test_rich_table_uses_readable_headers(self) -> None:
        rendered = build_rich_table(
            Table(rows=({"entity_name": "Acme", "rate": 0.3},))
        )
        self.assertEqual(
            [str(column.header) for column in rendered.columns],
            ["entity name", "rate"],
        )
        self.assertEqual(rendered.row_count, 1)


@unittest.skipIf(MessageBubble is None, "textual is not installed")
class ConversationViewTests(unittest.IsolatedAsyncioTestCase):
    """Validate incremental syncing of the transcript."""

    async def test_sync_appends_then_rebuilds_on_reset(self) -> None:
        class _TestApp(App[None]):
            def compose(self) -> ComposeResult:
                yield ConversationView(show_timestamps=False, id="conv")

        seed = Message.assistant("Welcome!")
        question = Message.user("q1")
        app = _TestApp()
        async with app.run_test() as pilot:
            view = app.query_one("#conv", ConversationView)
            await view.sync_messages((seed,))
            await view.sync_messages((seed, question))
            await pilot.pause()
            self.assertEqual(view.rendered_messages, (seed, question))
            self.assertEqual(len(view.query(MessageBubble)), 2)
            self.assertIn("message-user", view.query(MessageBubble).last().classes)

            await view.sync_messages(())
            await pilot.pause()
            self.assertEqual(view.rendered_messages, ())
            self.assertEqual(len(view.query(MessageBubble)), 0)

    async def test_chart_bubble_mounts_chart_view(self) -> None:
        class _TestApp(App[None]):
            def compose(self) -> ComposeResult:
                yield ConversationView(id="conv")

        chart = Chart(
            kind=ChartKind.LINE,
            data={"labels": ["a", "b"], "datasets": [{"label": "s", "data": [1, 2]}]},
        )
        app = _TestApp()
        async with app.run_test() as pilot:
            view = app.query_one("#conv", ConversationView)
            await view.add_message(Message.assistant("trend", chart))
            await pilot.pause()
            chart_view = view.query_one(ChartView)
            self.assertIn("chart-line", chart_view.classes)
            self.assertEqual(len(chart_view.query(Sparkline)), 1)


@unittest.skipIf(MessageBubble is None, "textual is not installed")
class SmallWidgetTests(unittest.IsolatedAsyncioTestCase):
    """Validate status bar, input box, and suggestion widgets."""

    async def test_status_bar_set_status(self) -> None:
        class _TestApp(App[None]):
            def compose(self) -> ComposeResult:
                yield StatusBar(id="sb")

        app = _TestApp()
        async with app.run_test() as pilot:
            bar = app.query_one("#sb", StatusBar)
            bar.set_status(backend="analytics.test", message_count=3, loading=True)
            await pilot.pause()
            self.assertIn(
                "analytics.test", str(app.query_one("#status_backend", Label).render())
            )
            self.assertIn("3", str(app.query_one("#status_messages", Label).render()))
            self.assertIn("waiting", str(app.query_one("#status_state", Label).render()))

            bar.set_connection(False)
            await pilot.pause()
            connection = app.query_one("#status_connection", Label)
            self.assertIn("offline", str(connection.render()))
            self.assertTrue(connection.has_class("offline"))
            bar.set_connection(True)
            await pilot.pause()
            self.assertIn("online", str(connection.render()))
            self.assertFalse(connection.has_class("offline"))

    async def test_input_box_busy_disables_controls(self) -> None:
        class _TestApp(App[None]):
            def compose(self) -> ComposeResult:
                yield InputBox()

        app = _TestApp()
        async with app.run_test():
            box = app.query_one(InputBox)
            box.set_busy(True)
            self.assertTrue(app.query_one("#send_button", Button).disabled)
            box.set_busy(False)
            self.assertFalse(app.query_one("#send_button", Button).disabled)

    async def test_suggestion_press_posts_selected(self) -> None:
        selected: list[str] = []

        class _TestApp(App[None]):
            def compose(self) -> ComposeResult:
                yield SuggestionPrompts(["First", "Second"], title="Try these")

            def on_suggestion_prompts_selected(
                self, message: SuggestionPrompts.Selected
            ) -> None:
                selected.append(message.prompt)

        app = _TestApp()
        async with app.run_test() as pilot:
            await pilot.click("#suggestion_1")
            await pilot.pause()
        self.assertEqual(selected, ["Second"])


if __name__ == "__main__":
    unittest.main()
