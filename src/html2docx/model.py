"""Intermediate document model handed from the translator to the renderer.

Everything here is transient: built once per export, consumed by
:class:`~html2docx.renderer.DocxRenderer` and then discarded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from html2docx.numbering import NumberingFamily


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextRun:
    """A span of text with uniform character formatting."""

    text: str
    bold: bool = False
    italic: bool = False
    underline: bool = False
    color: str = ""

    @property
    def is_break(self) -> bool:
        return self.text == "\n"


_IMAGE_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
)


def sniff_image_type(data: bytes) -> str:
    """Guess the MIME type of *data* from its magic number.

    Unknown payloads are reported as PNG, which is what Word assumes for a
    picture part without a recognisable header.
    """
    for signature, mime in _IMAGE_SIGNATURES:
        if data.startswith(signature):
            return mime
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data.lstrip()[:5] in (b"<svg ", b"<?xml"):
        return "image/svg+xml"
    return "image/png"


# Formats a DOCX picture part can hold without an alternate rendition
EMBEDDABLE_IMAGE_TYPES = frozenset({
    "image/png", "image/jpeg", "image/gif", "image/bmp", "image/tiff",
})


@dataclass(frozen=True)
class ImageRun:
    """An inline picture with a fixed display size in pixels."""

    data: bytes = field(repr=False)
    width: int
    height: int

    @property
    def content_type(self) -> str:
        return sniff_image_type(self.data)


StyledRun = Union[TextRun, ImageRun]


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

class BlockKind(Enum):
    TITLE = "title"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST_ITEM = "list_item"
    QUOTE = "quote"
    THEMATIC_BREAK = "thematic_break"
    STANDALONE_IMAGE = "standalone_image"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class DocumentBlock:
    """One paragraph-equivalent unit of output, in document order.

    ``level`` is the heading level for :attr:`BlockKind.HEADING` and the
    0-based nesting depth for :attr:`BlockKind.LIST_ITEM`; ``family`` is only
    set on list items.
    """

    kind: BlockKind
    runs: tuple[StyledRun, ...] = ()
    level: int = 0
    family: Optional[NumberingFamily] = None

    @property
    def text(self) -> str:
        """Concatenated text of all text runs (images contribute nothing)."""
        return "".join(r.text for r in self.runs if isinstance(r, TextRun))

    @property
    def images(self) -> list[ImageRun]:
        return [r for r in self.runs if isinstance(r, ImageRun)]
