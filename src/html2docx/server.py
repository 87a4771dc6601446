"""FastAPI web service for HTML to DOCX export.

Endpoints::

    GET  /health          Health check.
    GET  /styles          List available style presets.
    POST /export          Form fields title + html, receive .docx back.
    POST /export/blocks   JSON editor state, receive .docx back.

Run::

    uvicorn html2docx.server:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, Form, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field

from html2docx import __version__
from html2docx.config import ExportMode, ExportOptions
from html2docx.converter import ExportResult, Exporter
from html2docx.errors import AssemblyError
from html2docx.renderer import DOCX_MEDIA_TYPE
from html2docx.style_manager import StyleManager

logger = logging.getLogger(__name__)

app = FastAPI(
    title="html2docx",
    description="Editor document to DOCX export service",
    version=__version__,
)


class BlockIn(BaseModel):
    type: str
    content: str = ""
    mimeType: Optional[str] = None
    id: Optional[str] = None


class DocumentIn(BaseModel):
    title: str = ""
    blocks: list[BlockIn] = Field(default_factory=list)
    style: str = "default"
    mode: Optional[ExportMode] = None


def _content_disposition(filename: str) -> str:
    """Build Content-Disposition header, RFC 5987 for non-ASCII names."""
    try:
        filename.encode("ascii")
        return f'attachment; filename="{filename}"'
    except UnicodeEncodeError:
        encoded = quote(filename)
        return f"attachment; filename*=UTF-8''{encoded}"


def _exporter(style: str, mode: Optional[ExportMode]) -> Exporter:
    try:
        return Exporter(ExportOptions(style_preset=style, mode=mode, allow_local=False))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _download(result: ExportResult) -> Response:
    return Response(
        content=result.data,
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": _content_disposition(result.filename)},
    )


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


@app.get("/styles")
async def list_styles() -> dict[str, list[str]]:
    """List available style presets."""
    return {"presets": StyleManager.PRESETS}


@app.post("/export")
async def export_html(
    html: str = Form(""),
    title: str = Form(""),
    style: str = Form("default"),
    mode: Optional[ExportMode] = Form(None),
) -> Response:
    """Send a title and HTML body and receive the DOCX file.

    - **html**: document body markup
    - **title**: document title (the fallback title is used when empty)
    - **style**: style preset name (default, academic, business, minimal)
    - **mode**: ``drop`` or ``placeholder`` for images that cannot be loaded
    """
    exporter = _exporter(style, mode)
    try:
        result = await exporter.export_html(title, html)
    except AssemblyError:
        logger.exception("Export of %r failed", title)
        raise HTTPException(status_code=500, detail="Export failed") from None
    return _download(result)


@app.post("/export/blocks")
async def export_blocks(doc: DocumentIn) -> Response:
    """Send the editor's block list as JSON and receive the DOCX file."""
    exporter = _exporter(doc.style, doc.mode)
    try:
        result = await exporter.export_blocks(
            doc.title, [b.model_dump(exclude_none=True) for b in doc.blocks],
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except AssemblyError:
        logger.exception("Export of %r failed", doc.title)
        raise HTTPException(status_code=500, detail="Export failed") from None
    return _download(result)
