"""Top-level package for analytics-chat-tui."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .app import AnalyticsChatApp
    from .client import AnalyticsBackend
    from .config import ensure_config_dir, load_config
    from .exceptions import (
        AnalyticsChatError,
        BackendConnectionError,
        BackendReplyError,
        ConfigValidationError,
        DownloadError,
    )
    from .message_store import MessageStore
    from .session import ChatSession, build_session
    from .state import ConversationState, StateManager

__all__ = [
    "AnalyticsBackend",
    "AnalyticsChatApp",
    "AnalyticsChatError",
    "BackendConnectionError",
    "BackendReplyError",
    "ChatSession",
    "ConfigValidationError",
    "ConversationState",
    "DownloadError",
    "MessageStore",
    "StateManager",
    "build_session",
    "ensure_config_dir",
    "load_config",
]


def __getattr__(name: str) -> Any:
    """Lazily import symbols to keep the UI dependency optional at import time."""
    if name == "AnalyticsBackend":
        from .client import AnalyticsBackend

        return AnalyticsBackend
    if name in {"ensure_config_dir", "load_config"}:
        from .config import ensure_config_dir, load_config

        return {"ensure_config_dir": ensure_config_dir, "load_config": load_config}[name]
    if name in {
        "AnalyticsChatError",
        "BackendConnectionError",
        "BackendReplyError",
        "ConfigValidationError",
        "DownloadError",
    }:
        from . import exceptions

        return getattr(exceptions, name)
    if name == "MessageStore":
        from .message_store import MessageStore

        return MessageStore
    if name in {"ChatSession", "build_session"}:
        from .session import ChatSession, build_session

        return {"ChatSession": ChatSession, "build_session": build_session}[name]
    if name in {"ConversationState", "StateManager"}:
        from .state import ConversationState, StateManager

        return {"ConversationState": ConversationState, "StateManager": StateManager}[
            name
        ]
    if name == "AnalyticsChatApp":
        from .app import AnalyticsChatApp

        return AnalyticsChatApp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
