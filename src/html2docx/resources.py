"""Resolve media references into raw bytes.

A reference is either self-contained (a ``data:`` URI carrying a base64
payload) or externally fetchable: an ``http(s)`` URL, a ``file://`` URL or
plain path, or a ``blob:`` handle registered in a :class:`BlobStore`.

Every call handles exactly one resource and nothing is cached between
calls, so callers decide whether to await them one by one (the exporter
does) or fan them out.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import mimetypes
import os
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Callable, Optional, Union
from urllib.parse import unquote, unquote_to_bytes, urlparse

import cv2
import httpx

from html2docx.errors import CaptureTimeout, DecodeError, FetchError
from html2docx.model import EMBEDDABLE_IMAGE_TYPES, sniff_image_type

logger = logging.getLogger(__name__)

FrameGrabber = Callable[[str, float], bytes]

_REMOTE_SCHEMES = ("http", "https")


# ---------------------------------------------------------------------------
# Blob handles
# ---------------------------------------------------------------------------

class BlobStore:
    """Table of ``blob:`` handles created by the editing surface.

    A handle maps to in-memory bytes or to a local file.  Revoking is the
    owner's job; the resolver only ever reads.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Union[bytes, Path]] = {}

    def register(self, source: Union[bytes, str, Path]) -> str:
        """Store *source* and return a fresh ``blob:`` handle for it."""
        handle = f"blob:{uuid.uuid4()}"
        self._entries[handle] = source if isinstance(source, bytes) else Path(source)
        return handle

    def revoke(self, handle: str) -> None:
        self._entries.pop(handle, None)

    def __contains__(self, handle: object) -> bool:
        return handle in self._entries

    def lookup(self, handle: str) -> Union[bytes, Path]:
        """Return the bytes or path behind *handle*; ``KeyError`` if revoked."""
        return self._entries[handle]


# ---------------------------------------------------------------------------
# Still frames
# ---------------------------------------------------------------------------

def grab_frame(path: str, offset: float) -> bytes:
    """Decode the frame *offset* seconds into the video at *path* as JPEG."""
    cap = cv2.VideoCapture(path)
    try:
        if not cap.isOpened():
            raise ValueError(f"cannot open video {path}")
        cap.set(cv2.CAP_PROP_POS_MSEC, offset * 1000.0)
        ok, frame = cap.read()
        if not ok or frame is None:
            # clip shorter than the offset: take the first frame
            cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
            ok, frame = cap.read()
        if not ok or frame is None:
            raise ValueError("no decodable frame")
        ok, buf = cv2.imencode(".jpg", frame)
        if not ok:
            raise ValueError("JPEG encoding failed")
        return buf.tobytes()
    finally:
        cap.release()


def run_detached(func: Callable[..., bytes], *args) -> asyncio.Future:
    """Run *func* in a daemon thread and return a future for its result.

    Unlike ``asyncio.to_thread`` the thread is not owned by the loop's
    executor, so a caller that stops waiting never has to join it.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def settle(result: Optional[bytes], exc: Optional[BaseException]) -> None:
        if future.done():
            return
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(result)

    def work() -> None:
        try:
            outcome = (func(*args), None)
        except Exception as exc:
            outcome = (None, exc)
        try:
            loop.call_soon_threadsafe(settle, *outcome)
        except RuntimeError:
            # the loop closed after the caller gave up
            logger.debug("Discarding late result of %s", getattr(func, "__name__", func))

    threading.Thread(target=work, name="html2docx-capture", daemon=True).start()
    return future


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

def is_embedded(ref: str) -> bool:
    return ref.startswith("data:")


def decode_data_uri(ref: str) -> bytes:
    """Decode a ``data:`` URI; raise :class:`DecodeError` if malformed."""
    header, sep, body = ref.partition(",")
    if not sep:
        raise DecodeError(ref, "data URI without payload separator")
    if header.endswith(";base64"):
        payload = "".join(body.split())
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError(ref, f"invalid base64 payload ({exc})") from exc
    return unquote_to_bytes(body)


class ResourceResolver:
    """Turn resource references into bytes, one reference per call.

    Use as an async context manager so an owned HTTP client is closed::

        async with ResourceResolver() as resolver:
            data = await resolver.resolve(src)
    """

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        blobs: Optional[BlobStore] = None,
        http_timeout: Optional[float] = None,
        capture_offset: float = 0.5,
        capture_timeout: float = 5.0,
        frame_grabber: Optional[FrameGrabber] = None,
        allow_local: bool = True,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._http_timeout = http_timeout
        self.blobs = blobs or BlobStore()
        self.capture_offset = capture_offset
        self.capture_timeout = capture_timeout
        self._grab_frame = frame_grabber or grab_frame
        # False for network-facing callers: plain paths and file:// are refused
        self.allow_local = allow_local

    async def __aenter__(self) -> ResourceResolver:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs = {"follow_redirects": True}
            if self._http_timeout is not None:
                kwargs["timeout"] = self._http_timeout
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    # -- bytes --------------------------------------------------------------

    async def resolve(self, ref: str) -> bytes:
        """Return the bytes behind *ref*.

        Raises:
            DecodeError: the embedded payload is malformed.
            FetchError: the resource could not be read.
        """
        if not ref:
            raise FetchError(ref, "empty resource reference")
        if is_embedded(ref):
            return decode_data_uri(ref)
        if ref.startswith("blob:"):
            return await self._read_blob(ref)
        if _scheme(ref) in _REMOTE_SCHEMES:
            return await self._fetch_http(ref)
        return await self._read_file(ref, self._local_path(ref))

    async def resolve_image(self, ref: str) -> bytes:
        """Like :meth:`resolve`, but only for pictures Word can display.

        Raises:
            DecodeError: the payload is malformed or in a format (SVG, WebP)
                that a DOCX picture part cannot carry without a fallback.
        """
        data = await self.resolve(ref)
        content_type = sniff_image_type(data)
        if content_type not in EMBEDDABLE_IMAGE_TYPES:
            raise DecodeError(ref, f"unsupported picture format {content_type}")
        return data

    async def _fetch_http(self, ref: str) -> bytes:
        logger.debug("Fetching %s", ref)
        try:
            response = await self._http().get(ref)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(ref, f"HTTP {exc.response.status_code}") from exc
        except httpx.InvalidURL as exc:
            raise FetchError(ref, "malformed reference") from exc
        except httpx.HTTPError as exc:
            raise FetchError(ref, f"request failed ({exc.__class__.__name__})") from exc
        return response.content

    async def _read_blob(self, ref: str) -> bytes:
        try:
            entry = self.blobs.lookup(ref)
        except KeyError:
            raise FetchError(ref, "unknown or revoked blob handle") from None
        if isinstance(entry, bytes):
            return entry
        return await self._read_file(ref, entry)

    async def _read_file(self, ref: str, path: Path) -> bytes:
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise FetchError(ref, f"cannot read {path} ({exc.strerror or exc})") from exc

    def _local_path(self, ref: str) -> Path:
        if not self.allow_local:
            raise FetchError(ref, "local file access is disabled")
        if _scheme(ref) == "file":
            return Path(unquote(urlparse(ref).path))
        return Path(ref)

    # -- video stills -------------------------------------------------------

    async def capture_still_frame(self, ref: str, mime_type: str = "") -> bytes:
        """Return a JPEG still taken :attr:`capture_offset` seconds into a video.

        Loading and decoding together are bounded by :attr:`capture_timeout`;
        any failure raises :class:`CaptureTimeout`.
        """
        try:
            return await asyncio.wait_for(
                self._capture(ref, mime_type), timeout=self.capture_timeout,
            )
        except asyncio.TimeoutError:
            raise CaptureTimeout(
                ref, f"no frame within {self.capture_timeout:g}s"
            ) from None

    async def _capture(self, ref: str, mime_type: str) -> bytes:
        tmp_path: Optional[str] = None
        try:
            path = self._video_path(ref)
            if path is None:
                data = await self.resolve(ref)
                suffix = mimetypes.guess_extension(mime_type or "") or ".video"
                fd, tmp_path = tempfile.mkstemp(prefix="html2docx-", suffix=suffix)
                with os.fdopen(fd, "wb") as fh:
                    fh.write(data)
                path = tmp_path
            return await run_detached(self._grab_frame, path, self.capture_offset)
        except (DecodeError, FetchError) as exc:
            raise CaptureTimeout(ref, f"video not loadable ({exc.reason})") from exc
        except (ValueError, OSError, cv2.error) as exc:
            raise CaptureTimeout(ref, f"frame decode failed ({exc})") from exc
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.debug("Could not remove %s", tmp_path)

    def _video_path(self, ref: str) -> Optional[str]:
        """A local file OpenCV can open directly, or ``None`` to download first."""
        if is_embedded(ref):
            return None
        if ref.startswith("blob:"):
            if ref not in self.blobs:
                raise FetchError(ref, "unknown or revoked blob handle")
            entry = self.blobs.lookup(ref)
            return str(entry) if isinstance(entry, Path) else None
        if _scheme(ref) in _REMOTE_SCHEMES:
            return None
        path = self._local_path(ref)
        if not path.is_file():
            raise FetchError(ref, f"no such file {path}")
        return str(path)


def _scheme(ref: str) -> str:
    try:
        return urlparse(ref).scheme.lower()
    except ValueError as exc:
        # e.g. an unbalanced IPv6 bracket in the host
        raise FetchError(ref, "malformed reference") from exc
