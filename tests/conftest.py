"""Shared fixtures: tiny images, data URIs and an offline HTTP client."""

from __future__ import annotations

import base64
import io
import zipfile
from pathlib import Path

import httpx
import pytest

from html2docx.resources import BlobStore, ResourceResolver

FIXTURE_DIR = Path(__file__).parent / "fixtures"

# 1x1 transparent PNG
PNG_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
PNG_BYTES = base64.b64decode(PNG_B64)
PNG_DATA_URI = f"data:image/png;base64,{PNG_B64}"

JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 32
SVG_BYTES = b'<svg xmlns="http://www.w3.org/2000/svg" width="1" height="1"></svg>'
WEBP_BYTES = b"RIFF\x1a\x00\x00\x00WEBPVP8L" + b"\x00" * 18

REMOTE_IMAGE = "https://cdn.example.com/chart.png"
MISSING_IMAGE = "https://cdn.example.com/missing.png"
# unbalanced IPv6 bracket; urlparse raises ValueError
BAD_HOST_URL = "http://[bad/x.png"


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/chart.png":
        return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})
    if request.url.path == "/photo.jpg":
        return httpx.Response(200, content=JPEG_BYTES, headers={"content-type": "image/jpeg"})
    if request.url.path == "/broken":
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Response(404)


@pytest.fixture
def http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(_handler))


@pytest.fixture
def blobs() -> BlobStore:
    return BlobStore()


@pytest.fixture
def resolver(http_client: httpx.AsyncClient, blobs: BlobStore) -> ResourceResolver:
    return ResourceResolver(client=http_client, blobs=blobs)


def read_part(data: bytes, name: str) -> str:
    """Return one part of a DOCX package as text."""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return zf.read(name).decode("utf-8")
