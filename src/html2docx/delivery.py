"""Hand finished DOCX bytes to the user.

The exporter only knows the :class:`Delivery` interface: "here are the
bytes, here is the suggested filename".  Adapters decide what offering a
file means on their platform: writing it to a directory, keeping it in
memory, or streaming it back as an HTTP download (see
:mod:`html2docx.server`).
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

DOCX_EXTENSION = "docx"

# Characters no common filesystem accepts in a filename
_UNSAFE_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def suggested_filename(
    title: str,
    fallback: str = "Document",
    *,
    today: Optional[date] = None,
    extension: str = DOCX_EXTENSION,
) -> str:
    """Return ``<title or fallback>-<YYYY-MM-DD>.<extension>``.

    Without *today* the date is the current UTC calendar day.
    """
    stem = _UNSAFE_RE.sub("_", (title or "").strip()) or fallback
    day = (today or datetime.now(timezone.utc).date()).isoformat()
    return f"{stem}-{day}.{extension}"


class Delivery(Protocol):
    """Offer *data* to the user under *filename*."""

    def deliver(self, data: bytes, filename: str) -> None:
        ...


class FileDelivery:
    """Write each delivered file into *directory*."""

    def __init__(self, directory: str | Path = ".") -> None:
        self.directory = Path(directory)
        self.last_path: Optional[Path] = None

    def deliver(self, data: bytes, filename: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / filename
        path.write_bytes(data)
        self.last_path = path
        logger.info("Saved %s (%d bytes)", path, len(data))


class MemoryDelivery:
    """Keep delivered files in memory, keyed by filename."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}

    def deliver(self, data: bytes, filename: str) -> None:
        self.files[filename] = data
