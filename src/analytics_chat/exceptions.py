"""Domain exception hierarchy for the analytics chat client."""

from __future__ import annotations


class AnalyticsChatError(RuntimeError):
    """Base class for all domain-level chat errors."""


class BackendConnectionError(AnalyticsChatError):
    """Raised when the analytics backend cannot be reached or times out."""

    def __init__(self, message: str, reason: str = "connection") -> None:
        super().__init__(message)
        self.reason = reason


class BackendReplyError(AnalyticsChatError):
    """Raised when the backend answers with a body that cannot be parsed."""

    reason = "malformed reply"


class DownloadError(AnalyticsChatError):
    """Raised when a downloaded spreadsheet cannot be written to disk."""


class ConfigValidationError(AnalyticsChatError):
    """Raised when configuration cannot be validated safely."""
