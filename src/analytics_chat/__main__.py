"""CLI entrypoint for analytics-chat."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from importlib import metadata

from pydantic import ValidationError

from .app import AnalyticsChatApp
from .config import BackendConfig, ensure_config_dir, load_config


def _backend_url(value: str) -> str:
    """Validate a --backend-url value with the same rules as the config file."""
    try:
        return BackendConfig(url=value).url
    except ValidationError as exc:
        raise argparse.ArgumentTypeError(
            f"invalid backend URL {value!r}: expected an http(s) URL with a hostname"
        ) from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="analytics-chat",
        description="Analytics Chat - terminal client for a conversational analytics backend",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--backend-url",
        metavar="URL",
        type=_backend_url,
        default=None,
        help="Override backend.url from the config file for this run",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Ensure configuration exists, handle CLI flags, and run the TUI."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("analytics-chat-tui")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"analytics-chat {version}")
        return

    ensure_config_dir()
    if args.backend_url:
        app = AnalyticsChatApp(
            config=load_config(overrides={"backend": {"url": args.backend_url}})
        )
    else:
        app = AnalyticsChatApp()
    app.run()


if __name__ == "__main__":
    main()
