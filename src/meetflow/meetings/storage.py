"""Local-disk media storage for uploaded recordings.

Files land under ``<root>/<folder>/<timestamp>-<uuid>-<name>``. The
pipeline never reads from here; it receives the upload bytes directly,
so storage and processing are decoupled.
"""

from __future__ import annotations

import asyncio
import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class StoredMedia:
    """Where a stored file lives.

    Attributes:
        locator: Path relative to the storage root.
        access_url: URL a client can use to fetch the file.
    """

    locator: str
    access_url: str


def _safe_name(filename: str) -> str:
    name = _UNSAFE_CHARS.sub("_", Path(filename or "recording").name).strip("._")
    return name or "recording"


class MediaStorage:
    """Stores media bytes on the local filesystem.

    Args:
        root: Directory all folders are created under.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    async def store(self, data: bytes, filename: str, folder: str = "recordings") -> StoredMedia:
        """Write ``data`` and return its locator.

        Raises:
            ValueError: ``folder`` escapes the storage root.
            OSError: The file could not be written.
        """
        directory = (self._root / folder).resolve()
        if directory != self._root and self._root not in directory.parents:
            raise ValueError(f"Folder outside storage root: {folder!r}")

        unique = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{_safe_name(filename)}"
        path = directory / unique

        await asyncio.to_thread(self._write, path, data)

        locator = path.relative_to(self._root).as_posix()
        logger.info("media.stored", locator=locator, size_bytes=len(data))
        return StoredMedia(locator=locator, access_url=path.as_uri())

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
