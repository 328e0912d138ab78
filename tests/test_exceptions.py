"""Tests for domain exception hierarchy."""

from __future__ import annotations

import unittest

from analytics_chat.exceptions import (
    AnalyticsChatError,
    BackendConnectionError,
    BackendReplyError,
    ConfigValidationError,
    DownloadError,
)


class ExceptionHierarchyTests(unittest.TestCase):
    """Validate exception inheritance contract."""

    def test_exception_hierarchy(self) -> None:
        self.assertTrue(issubclass(BackendConnectionError, AnalyticsChatError))
        self.assertTrue(issubclass(BackendReplyError, AnalyticsChatError))
        self.assertTrue(issubclass(DownloadError, AnalyticsChatError))
        self.assertTrue(issubclass(ConfigValidationError, AnalyticsChatError))

    def test_reason_tags(self) -> None:
        self.assertEqual(BackendConnectionError("x").reason, "connection")
        self.assertEqual(BackendConnectionError("x", reason="timeout").reason, "timeout")
        self.assertEqual(BackendReplyError("x").reason, "malformed reply")


if __name__ == "__main__":
    unittest.main()
