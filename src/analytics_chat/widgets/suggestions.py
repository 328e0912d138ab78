"""Suggestion prompts shown on a fresh conversation."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.message import Message
from textual.widgets import Button, Label


class SuggestionPrompts(Vertical):
    """A titled column of clickable prompt buttons."""

    DEFAULT_CSS = """
    SuggestionPrompts {
        height: auto;
        padding: 0 1;
    }
    SuggestionPrompts > Button {
        width: 100%;
        margin-bottom: 1;
    }
    """

    class Selected(Message):
        """Posted when a suggestion button is pressed."""

        def __init__(self, prompt: str) -> None:
            super().__init__()
            self.prompt = prompt

    def __init__(
        self, prompts: Sequence[str], title: str = "", **kwargs: Any
    ) -> None:
        super().__init__(**kwargs)
        self.prompts = tuple(prompts)
        self.heading = title

    def compose(self) -> ComposeResult:
        if self.heading:
            yield Label(self.heading, classes="suggestion-title")
        for index, prompt in enumerate(self.prompts):
            yield Button(prompt, id=f"suggestion_{index}", classes="suggestion-prompt")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Translate a button press into a ``Selected`` message."""
        button_id = event.button.id or ""
        if not button_id.startswith("suggestion_"):
            return
        event.stop()
        index = int(button_id.removeprefix("suggestion_"))
        self.post_message(self.Selected(self.prompts[index]))
