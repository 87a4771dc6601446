"""Export configuration."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ExportMode(Enum):
    """What happens to a standalone image whose bytes cannot be resolved.

    ``DROP`` silently leaves the block out.  ``PLACEHOLDER`` writes a short
    ``[Image Attachment: <type>]`` paragraph instead and also turns videos
    into a captured still frame (or a placeholder when capture fails).
    """

    DROP = "drop"
    PLACEHOLDER = "placeholder"


@dataclass
class ExportOptions:
    """Settings for one :class:`~html2docx.converter.Exporter`."""

    mode: Optional[ExportMode] = None
    style_preset: str = "default"
    fallback_title: str = "Untitled Document"
    file_fallback: str = "Document"
    # (width, height) in pixels
    inline_image_size: tuple[int, int] = (550, 350)
    block_image_size: tuple[int, int] = (500, 350)
    capture_offset: float = 0.5
    capture_timeout: float = 5.0
    # None leaves the transport default in place
    http_timeout: Optional[float] = None
    # plain paths and file:// URLs; off for exports driven by remote callers
    allow_local: bool = True

    def derive(self, **overrides) -> ExportOptions:
        """Return a copy with selected fields overridden."""
        clone = deepcopy(self)
        for k, v in overrides.items():
            if not hasattr(clone, k):
                raise TypeError(f"Unknown export option: {k}")
            setattr(clone, k, v)
        return clone

    def resolved_mode(self, default: ExportMode) -> ExportMode:
        """The configured mode, or *default* when none was chosen."""
        return self.mode if self.mode is not None else default
