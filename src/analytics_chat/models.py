"""Conversation message shapes and the backend history projection."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

Scalar = Union[str, int, float, bool, None]
Row = Mapping[str, Scalar]


class Origin(str, Enum):
    """Who produced a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


class ChartKind(str, Enum):
    """Chart families the presentation layer knows how to draw."""

    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    DOUGHNUT = "doughnut"
    RADAR = "radar"
    POLAR_AREA = "polar-area"
    BUBBLE = "bubble"
    SCATTER = "scatter"

    @classmethod
    def parse(cls, raw: Any) -> ChartKind | None:
        """Resolve a backend chart type name, or ``None`` when unsupported.

        A missing or blank type is drawn as a bar chart.
        """
        if raw is None:
            return cls.BAR
        if not isinstance(raw, str):
            return None
        normalized = raw.strip().lower().replace("_", "").replace("-", "")
        if not normalized:
            return cls.BAR
        for kind in cls:
            if kind.value.replace("-", "") == normalized:
                return kind
        return None


class NoticeKind(str, Enum):
    """Failure notices that are rendered as a distinct assistant turn."""

    SERVER_ERROR = "server_error"
    UNSUPPORTED_CHART = "unsupported_chart"
    NETWORK_ERROR = "network_error"
    DOWNLOAD_ERROR = "download_error"


DEFAULT_CHART_OPTIONS: dict[str, Any] = {
    "responsive": True,
    "maintainAspectRatio": False,
    "plugins": {
        "legend": {"position": "top"},
        "title": {"display": False},
    },
    "scales": {
        "x": {"ticks": {"autoSkip": False}, "grid": {"display": False}},
        "y": {"beginAtZero": True},
    },
}


@dataclass(frozen=True)
class PlainText:
    """Narrative-only reply."""


@dataclass(frozen=True)
class Table:
    """Tabular reply; every row shares the first row's key set."""

    rows: tuple[Row, ...]

    @property
    def columns(self) -> list[str]:
        """Return column names in the first row's insertion order."""
        if not self.rows:
            return []
        return list(self.rows[0].keys())

    @property
    def header_labels(self) -> list[str]:
        return [column.replace("_", " ") for column in self.columns]

    def cells(self) -> list[list[str]]:
        """Return every row as display strings aligned to ``columns``."""
        columns = self.columns
        return [[str(row.get(column)) for column in columns] for row in self.rows]


@dataclass(frozen=True)
class Chart:
    """Chart reply described by a chart config block."""

    kind: ChartKind
    data: Mapping[str, Any]
    options: Mapping[str, Any] | None = None

    def merged_options(self) -> dict[str, Any]:
        """Overlay the reply's options onto the defaults (top-level keys only)."""
        merged = dict(DEFAULT_CHART_OPTIONS)
        if self.options:
            merged.update(self.options)
        return merged


@dataclass(frozen=True)
class FileDownloadAck:
    """Acknowledges that a spreadsheet transfer was saved."""

    filename: str


@dataclass(frozen=True)
class Notice:
    """A visible failure notice (server error, unsupported chart, ...)."""

    kind: NoticeKind


Payload = Union[PlainText, Table, Chart, FileDownloadAck, Notice]


@dataclass(frozen=True)
class Message:
    """One immutable conversation turn."""

    origin: Origin
    text: str
    payload: Payload = field(default_factory=PlainText)
    created_at: datetime = field(default_factory=datetime.now, compare=False)

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(origin=Origin.USER, text=text)

    @classmethod
    def assistant(cls, text: str, payload: Payload | None = None) -> Message:
        return cls(
            origin=Origin.ASSISTANT,
            text=text,
            payload=payload if payload is not None else PlainText(),
        )


def build_seed_message(greeting: str) -> Message:
    """Return the bootstrap assistant greeting that opens every conversation."""
    return Message.assistant(greeting)


def to_backend_history(
    messages: Sequence[Message] | Iterable[Message],
    skip_seed: bool = True,
) -> list[dict[str, str]]:
    """Project a conversation into ``[{"role", "content"}]`` backend context.

    When ``skip_seed`` is set, a leading assistant greeting is left out so the
    synthetic bootstrap line is never fed back to the backend.
    """
    items = list(messages)
    if skip_seed and items and items[0].origin is Origin.ASSISTANT:
        items = items[1:]
    return [
        {
            "role": "user" if message.origin is Origin.USER else "assistant",
            "content": message.text,
        }
        for message in items
    ]
