"""Configuration loading and validation for the analytics chat TUI."""

from __future__ import annotations

from copy import deepcopy
import logging
import os
from pathlib import Path
import tomllib
from typing import Any
from urllib.parse import urlparse

from platformdirs import user_downloads_dir
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .exceptions import ConfigValidationError

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "analytics-chat"
CONFIG_PATH = CONFIG_DIR / "config.toml"

VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}

DEFAULT_SUGGESTIONS: list[str] = [
    "Which entities show an effective tax rate more than 10% above the statutory rate?",
    "Compare total disallowed and allowable donations claimed.",
    "Create a pie chart of the top 5 entities by effective tax rate.",
    "Create a line chart of qualifying expenditure vs capital allowances.",
    "What is the tax position for the latest year of assessment?",
]


def _require_string(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("Expected a string value.")
    normalized = value.strip()
    if not normalized:
        raise ValueError("String value must not be empty.")
    return normalized


class AppConfig(BaseModel):
    """Application metadata and terminal integration options."""

    title: str = "Analytics Assistant"

    @field_validator("title", mode="before")
    @classmethod
    def _validate_non_empty_string(cls, value: Any) -> str:
        return _require_string(value)


class BackendConfig(BaseModel):
    """Remote analytics endpoint settings."""

    url: str = "http://localhost:8000/chat"
    timeout: int = Field(default=120, ge=1, le=3600)
    verify_tls: bool = True

    @field_validator("url", mode="before")
    @classmethod
    def _validate_url(cls, value: Any) -> str:
        normalized = _require_string(value)
        parsed = urlparse(normalized)
        if parsed.scheme.lower() not in {"http", "https"}:
            raise ValueError("backend.url must use http or https scheme.")
        if not (parsed.hostname or "").strip():
            raise ValueError("backend.url must include a hostname.")
        return normalized


class ConversationConfig(BaseModel):
    """Greeting, suggestion prompts, and history projection settings."""

    greeting: str = "Welcome! I am your AI analytics assistant. How can I help you today?"
    suggestions_title: str = "Here are the top questions."
    suggestions: list[str] = Field(default_factory=lambda: list(DEFAULT_SUGGESTIONS))
    include_seed_in_history: bool = False

    @field_validator("greeting", "suggestions_title", mode="before")
    @classmethod
    def _validate_text(cls, value: Any) -> str:
        return _require_string(value)

    @field_validator("suggestions", mode="before")
    @classmethod
    def _validate_suggestions(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("suggestions must be a list of prompts.")
        normalized: list[str] = []
        for item in value:
            if not isinstance(item, str):
                raise ValueError("Each suggestion must be a string.")
            candidate = item.strip()
            if candidate and candidate not in normalized:
                normalized.append(candidate)
        return normalized


class DownloadsConfig(BaseModel):
    """Where spreadsheet transfers are saved."""

    directory: str = Field(default_factory=user_downloads_dir)
    fallback_filename: str = "financial-report.xlsx"

    @field_validator("directory", "fallback_filename", mode="before")
    @classmethod
    def _validate_path_string(cls, value: Any) -> str:
        return _require_string(value)

    @field_validator("fallback_filename")
    @classmethod
    def _validate_bare_name(cls, value: str) -> str:
        if "/" in value or "\\" in value:
            raise ValueError("fallback_filename must not contain directories.")
        return value


class UIConfig(BaseModel):
    """Visual settings for Textual rendering."""

    show_timestamps: bool = True


class KeybindsConfig(BaseModel):
    """Keyboard action mapping."""

    send_message: str = "ctrl+enter"
    reset_session: str = "ctrl+r"
    clear_session: str = "ctrl+l"
    quit: str = "ctrl+q"
    scroll_up: str = "ctrl+k"
    scroll_down: str = "ctrl+j"
    copy_transcript: str = "ctrl+y"

    @field_validator("*", mode="before")
    @classmethod
    def _validate_keybind(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("keybinds take a key chord string, e.g. \"ctrl+r\".")
        return value.strip()


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/analytics-chat/app.log"

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        level = _require_string(value).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"level must be one of {sorted(VALID_LOG_LEVELS)}.")
        return level

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        return _require_string(value)


class Config(BaseModel):
    """Root configuration model for all sections."""

    model_config = ConfigDict(populate_by_name=True)
    app: AppConfig = AppConfig()
    backend: BackendConfig = BackendConfig()
    conversation: ConversationConfig = ConversationConfig()
    downloads: DownloadsConfig = DownloadsConfig()
    ui: UIConfig = UIConfig()
    keybinds: KeybindsConfig = KeybindsConfig()
    logging: LoggingConfig = LoggingConfig()


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump(by_alias=True)


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Create the config directory if needed and return it."""
    target = config_dir or CONFIG_DIR
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning(
            "config.dir.unavailable",
            extra={"event": "config.dir.unavailable", "path": str(target), "error": str(exc)},
        )
    return target


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` layered on top, section by section."""
    result: dict[str, Any] = deepcopy(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = _deep_merge(current, value)
        else:
            result[key] = value
    return result


def _enforce_private_permissions(path: Path) -> None:
    """Restrict the config file to its owner on POSIX systems."""
    if os.name != "posix" or not path.is_file():
        return
    try:
        path.chmod(0o600)
    except OSError as exc:
        LOGGER.warning(
            "config.chmod.failed",
            extra={"event": "config.chmod.failed", "path": str(path), "error": str(exc)},
        )


def _read_toml(path: Path) -> dict[str, Any]:
    """Return the parsed file, or an empty mapping when it is missing or broken."""
    if not path.exists():
        return {}
    _enforce_private_permissions(path)
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        LOGGER.warning(
            "config.parse.failed",
            extra={"event": "config.parse.failed", "path": str(path), "error": str(exc)},
        )
        return {}
    return data


def _validate_config(raw: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Validate merged values; any invalid field falls back to the full defaults."""
    try:
        return Config.model_validate(raw).model_dump(by_alias=True)
    except ValidationError as exc:
        LOGGER.warning(
            "config.invalid",
            extra={
                "event": "config.invalid",
                "fields": [".".join(map(str, err["loc"])) for err in exc.errors()],
            },
        )
        return deepcopy(DEFAULT_CONFIG)
    except Exception as exc:  # noqa: BLE001 - surfaced as a domain error.
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc


def load_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> dict[str, dict[str, Any]]:
    """
    Load ``config.toml``, layer it over the defaults, and validate the result.

    ``config_path`` exists for tests and tooling. ``overrides`` are layered
    last, e.g. values given on the command line.
    """
    path = config_path or CONFIG_PATH
    ensure_config_dir(path.parent)
    merged = _deep_merge(DEFAULT_CONFIG, _read_toml(path))
    if overrides:
        merged = _deep_merge(merged, overrides)
    return _validate_config(merged)
