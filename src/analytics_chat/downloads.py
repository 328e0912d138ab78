"""Save spreadsheet transfers from the backend to the local downloads folder."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .exceptions import DownloadError

LOGGER = logging.getLogger(__name__)


class DownloadSaver:
    """Write downloaded bytes under ``directory`` without overwriting files."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).expanduser()

    def target_for(self, filename: str) -> Path:
        """Return a free path for ``filename``, adding `` (n)`` when taken."""
        candidate = self.directory / filename
        if not candidate.exists():
            return candidate
        stem, suffix = candidate.stem, candidate.suffix
        counter = 1
        while True:
            candidate = self.directory / f"{stem} ({counter}){suffix}"
            if not candidate.exists():
                return candidate
            counter += 1

    def _write(self, filename: str, content: bytes) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.target_for(filename)
        # "xb" refuses to clobber a file created since target_for() looked.
        with target.open("xb") as handle:
            handle.write(content)
        return target

    async def save(self, filename: str, content: bytes) -> Path:
        """Persist ``content`` in a worker thread and return the written path."""
        try:
            target = await asyncio.to_thread(self._write, filename, content)
        except (OSError, ValueError) as exc:
            LOGGER.warning(
                "download.save_failed",
                extra={
                    "event": "download.save_failed",
                    "download_name": filename,
                    "reason": str(exc),
                },
            )
            raise DownloadError(f"Unable to save {filename!r}.") from exc
        LOGGER.info(
            "download.saved",
            extra={
                "event": "download.saved",
                "path": str(target),
                "bytes": len(content),
            },
        )
        return target
