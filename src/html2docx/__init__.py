"""Rich-text (HTML) to DOCX exporter."""

__version__ = "0.1.0"

from html2docx.config import ExportMode, ExportOptions  # noqa: E402
from html2docx.converter import ExportResult, Exporter  # noqa: E402
from html2docx.errors import (  # noqa: E402
    AssemblyError,
    CaptureTimeout,
    DecodeError,
    ExportError,
    FetchError,
    ResourceError,
)

__all__ = [
    "__version__",
    "AssemblyError",
    "CaptureTimeout",
    "DecodeError",
    "ExportError",
    "ExportMode",
    "ExportOptions",
    "ExportResult",
    "Exporter",
    "FetchError",
    "ResourceError",
]
