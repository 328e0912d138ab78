"""Classify raw backend replies into conversation messages."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
import json
import logging
from pathlib import PurePosixPath, PureWindowsPath
import re
from typing import Any
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import BackendReplyError
from .models import (
    Chart,
    ChartKind,
    FileDownloadAck,
    Message,
    Notice,
    NoticeKind,
    Table,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_FILENAME = "financial-report.xlsx"
SERVER_ERROR_TEXT = "Sorry, something went wrong on the server."

SPREADSHEET_CONTENT_TYPES = frozenset(
    {
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-excel",
        "application/vnd.ms-excel.sheet.macroenabled.12",
    }
)
SPREADSHEET_EXTENSIONS = frozenset({".xlsx", ".xls", ".xlsm"})

_FILENAME_STAR_PATTERN = re.compile(
    r"filename\*\s*=\s*(?P<charset>[\w!#$%&+^`{}~-]*)'[\w-]*'(?P<value>[^;]+)",
    re.IGNORECASE,
)
_FILENAME_PATTERN = re.compile(
    r"""filename\s*=\s*(?:"(?P<quoted>(?:[^"\\]|\\.)*)"|(?P<bare>[^;\s]+))""",
    re.IGNORECASE,
)


class ReplyKind(str, Enum):
    """Rendering strategy chosen for a backend reply."""

    FILE_TRANSFER = "file_transfer"
    SERVER_ERROR = "server_error"
    TABLE = "table"
    CHART = "chart"
    UNSUPPORTED_CHART = "unsupported_chart"
    PLAIN_TEXT = "plain_text"


@dataclass(frozen=True)
class RawReply:
    """Transport-level view of one backend response."""

    status_code: int
    content: bytes = b""
    content_type: str = ""
    content_disposition: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def media_type(self) -> str:
        return self.content_type.split(";", 1)[0].strip().lower()


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying a reply.

    ``message`` is the assistant turn to append. For ``FILE_TRANSFER`` it is
    the acknowledgement, which must only be appended after ``content`` has
    been saved under ``filename``.
    """

    kind: ReplyKind
    message: Message
    filename: str = ""
    content: bytes = b""


class ChartConfig(BaseModel):
    """``chartConfig`` block of a structured reply."""

    model_config = ConfigDict(extra="ignore")
    type: Any = None
    data: dict[str, Any] = Field(default_factory=dict)
    options: dict[str, Any] | None = None

    @field_validator("data", mode="before")
    @classmethod
    def _coerce_data(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @field_validator("options", mode="before")
    @classmethod
    def _coerce_options(cls, value: Any) -> dict[str, Any] | None:
        return value if isinstance(value, dict) else None


class BackendReply(BaseModel):
    """Structured JSON reply; unexpected shapes are coerced, not rejected."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    response: str = ""
    is_table: bool = Field(default=False, alias="isTable")
    table_data: list[dict[str, Any]] | None = Field(default=None, alias="tableData")
    is_chart: bool = Field(default=False, alias="isChart")
    chart_config: ChartConfig | None = Field(default=None, alias="chartConfig")
    error: str | None = None

    @field_validator("response", mode="before")
    @classmethod
    def _coerce_response(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("is_table", "is_chart", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        return value is True or (isinstance(value, str) and value.lower() == "true")

    @field_validator("table_data", mode="before")
    @classmethod
    def _keep_mapping_rows(cls, value: Any) -> list[dict[str, Any]] | None:
        if not isinstance(value, list):
            return None
        return [dict(row) for row in value if isinstance(row, Mapping)]

    @field_validator("chart_config", mode="before")
    @classmethod
    def _drop_non_mapping_config(cls, value: Any) -> Any:
        return value if isinstance(value, Mapping) else None

    @field_validator("error", mode="before")
    @classmethod
    def _coerce_error(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = value if isinstance(value, str) else str(value)
        return text.strip() or None


def _strip_directories(name: str) -> str:
    """Keep only the final path component of a suggested filename."""
    return PureWindowsPath(PurePosixPath(name).name).name.strip()


def parse_disposition_filename(
    header: str | None, fallback: str = DEFAULT_DOWNLOAD_FILENAME
) -> str:
    """Extract the suggested filename from a Content-Disposition value.

    ``filename*`` (RFC 5987) wins over ``filename``. Anything absent or
    unusable (including names with control characters) yields ``fallback``.
    """
    if not header:
        return fallback

    candidate = ""
    star = _FILENAME_STAR_PATTERN.search(header)
    if star is not None:
        charset = star.group("charset") or "utf-8"
        try:
            candidate = unquote(star.group("value").strip(), encoding=charset)
        except LookupError:
            candidate = unquote(star.group("value").strip())

    if not candidate:
        match = _FILENAME_PATTERN.search(header)
        if match is not None:
            if match.group("quoted") is not None:
                candidate = re.sub(r"\\(.)", r"\1", match.group("quoted"))
            else:
                candidate = match.group("bare").strip("'\"")

    candidate = _strip_directories(candidate) if candidate else ""
    if (
        not candidate
        or candidate in {".", ".."}
        or any(ord(char) < 32 or ord(char) == 127 for char in candidate)
    ):
        return fallback
    return candidate


def is_spreadsheet_reply(raw: RawReply) -> bool:
    """Return True when transport metadata announces a spreadsheet payload."""
    if raw.media_type in SPREADSHEET_CONTENT_TYPES:
        return True
    disposition = raw.content_disposition.lower()
    if "attachment" not in disposition:
        return False
    filename = parse_disposition_filename(raw.content_disposition, fallback="")
    return PurePosixPath(filename.lower()).suffix in SPREADSHEET_EXTENSIONS


def download_ack_text(filename: str) -> str:
    return f'Your download for "{filename}" has started.'


def parse_structured_reply(content: bytes) -> BackendReply:
    """Decode a JSON reply body, raising ``BackendReplyError`` when malformed."""
    try:
        payload = json.loads(content.decode("utf-8")) if content else None
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise BackendReplyError("Backend reply is not valid JSON.") from exc
    if not isinstance(payload, dict):
        raise BackendReplyError("Backend reply is not a JSON object.")
    try:
        return BackendReply.model_validate(payload)
    except ValidationError as exc:
        raise BackendReplyError("Backend reply has an unexpected shape.") from exc


def classify_structured(reply: BackendReply, ok: bool = True) -> Classification:
    """Route a parsed structured reply to its rendering variant."""
    if not ok or (reply.error and not reply.response):
        text = reply.error or SERVER_ERROR_TEXT
        return Classification(
            kind=ReplyKind.SERVER_ERROR,
            message=Message.assistant(text, Notice(NoticeKind.SERVER_ERROR)),
        )

    if reply.is_table and reply.table_data:
        return Classification(
            kind=ReplyKind.TABLE,
            message=Message.assistant(reply.response, Table(tuple(reply.table_data))),
        )

    if reply.is_chart and reply.chart_config is not None:
        config = reply.chart_config
        kind = ChartKind.parse(config.type)
        if kind is None:
            return Classification(
                kind=ReplyKind.UNSUPPORTED_CHART,
                message=Message.assistant(
                    f"Unsupported chart type: {config.type}",
                    Notice(NoticeKind.UNSUPPORTED_CHART),
                ),
            )
        return Classification(
            kind=ReplyKind.CHART,
            message=Message.assistant(
                reply.response,
                Chart(kind=kind, data=config.data, options=config.options),
            ),
        )

    if reply.is_table or reply.is_chart:
        LOGGER.info(
            "classifier.degraded",
            extra={
                "event": "classifier.degraded",
                "is_table": reply.is_table,
                "is_chart": reply.is_chart,
            },
        )
    return Classification(
        kind=ReplyKind.PLAIN_TEXT, message=Message.assistant(reply.response)
    )


def classify_reply(
    raw: RawReply, fallback_filename: str = DEFAULT_DOWNLOAD_FILENAME
) -> Classification:
    """Decide how a raw backend reply is rendered.

    Spreadsheet transfers are detected from transport metadata first; every
    other reply is parsed as structured JSON.
    """
    if raw.ok and is_spreadsheet_reply(raw):
        filename = parse_disposition_filename(
            raw.content_disposition, fallback=fallback_filename
        )
        return Classification(
            kind=ReplyKind.FILE_TRANSFER,
            message=Message.assistant(
                download_ack_text(filename), FileDownloadAck(filename)
            ),
            filename=filename,
            content=raw.content,
        )

    try:
        reply = parse_structured_reply(raw.content)
    except BackendReplyError:
        if raw.ok:
            raise
        # Failure statuses often carry HTML or empty bodies.
        reply = BackendReply()
    return classify_structured(reply, ok=raw.ok)
