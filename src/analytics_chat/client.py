"""Async HTTP client for the remote analytics backend."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .classifier import RawReply
from .exceptions import AnalyticsChatError, BackendConnectionError

LOGGER = logging.getLogger(__name__)


class AnalyticsBackend:
    """Submit one query with its conversation history and return the raw reply.

    HTTP error statuses are not raised; they come back as a ``RawReply`` so
    the classifier can surface the backend's own error text.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 120.0,
        verify_tls: bool = True,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout), verify=verify_tls
        )

    @property
    def host(self) -> str:
        return httpx.URL(self.url).host

    async def submit(
        self, message: str, history: list[dict[str, str]]
    ) -> RawReply:
        """POST ``{"message", "history"}`` and wait for exactly one reply."""
        payload: dict[str, Any] = {"message": message, "history": history}
        LOGGER.info(
            "backend.request.start",
            extra={
                "event": "backend.request.start",
                "history_length": len(history),
            },
        )
        try:
            response = await self._client.post(self.url, json=payload)
            content = await response.aread()
        except Exception as exc:  # noqa: BLE001 - transport can fail in many ways.
            mapped = self._map_exception(exc)
            LOGGER.warning(
                "backend.request.failed",
                extra={
                    "event": "backend.request.failed",
                    "reason": getattr(mapped, "reason", type(mapped).__name__),
                    "error_type": exc.__class__.__name__,
                },
            )
            raise mapped from exc

        LOGGER.info(
            "backend.request.complete",
            extra={
                "event": "backend.request.complete",
                "status_code": response.status_code,
                "content_type": response.headers.get("content-type", ""),
            },
        )
        return RawReply(
            status_code=response.status_code,
            content=content,
            content_type=response.headers.get("content-type", ""),
            content_disposition=response.headers.get("content-disposition", ""),
        )

    async def check_connection(self) -> bool:
        """Return whether the backend host answers at all."""
        try:
            await self._client.head(self.url)
            return True
        except httpx.HTTPError:
            return False

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _map_exception(self, exc: Exception) -> AnalyticsChatError:
        if isinstance(exc, AnalyticsChatError):
            return exc
        if isinstance(exc, httpx.TimeoutException):
            return BackendConnectionError(
                f"Timed out waiting for {self.url}.", reason="timeout"
            )
        if isinstance(exc, httpx.ConnectError):
            return BackendConnectionError(
                f"Unable to connect to {self.url}.", reason="connect"
            )
        if isinstance(exc, (httpx.NetworkError, httpx.RemoteProtocolError)):
            return BackendConnectionError(
                f"Connection to {self.url} was interrupted.", reason="network"
            )
        if isinstance(exc, httpx.HTTPError):
            return BackendConnectionError(
                f"Request to {self.url} failed.", reason="transport"
            )
        return BackendConnectionError(
            f"Request to {self.url} failed unexpectedly.", reason="unexpected"
        )
