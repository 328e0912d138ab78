"""Widget exports for analytics_chat UI."""

from .chart import ChartView
from .conversation import ConversationView
from .input_box import InputBox
from .message import MessageBubble
from .status_bar import StatusBar
from .suggestions import SuggestionPrompts

__all__ = [
    "ChartView",
    "ConversationView",
    "InputBox",
    "MessageBubble",
    "StatusBar",
    "SuggestionPrompts",
]
