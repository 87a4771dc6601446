"""Exception hierarchy raised by the exporter."""

from __future__ import annotations


class ExportError(Exception):
    """Base class for every error raised by html2docx."""


class ResourceError(ExportError):
    """A media reference could not be turned into bytes."""

    def __init__(self, ref: str, reason: str) -> None:
        self.ref = ref
        self.reason = reason
        super().__init__(f"{reason}: {_shorten(ref)}")


class DecodeError(ResourceError):
    """An embedded ``data:`` payload is malformed."""


class FetchError(ResourceError):
    """An external resource is unreachable, revoked or answered with an error."""


class CaptureTimeout(ResourceError):
    """No still frame could be extracted from a video in time."""


class AssemblyError(ExportError):
    """The DOCX package could not be assembled."""


def _shorten(ref: str, limit: int = 80) -> str:
    # data URIs can be megabytes long
    if len(ref) <= limit:
        return ref
    return ref[:limit] + "..."
