"""High-level HTML-to-DOCX export orchestrator.

Ties together the parser, resource resolver, block translator and renderer
into a single public API.  Every call builds its own translator, numbering
registry and renderer, so concurrent exports never share state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Optional

from html2docx.config import ExportOptions
from html2docx.delivery import Delivery, suggested_filename
from html2docx.model import DocumentBlock
from html2docx.numbering import NumberingRegistry
from html2docx.parser import ContentBlock, HtmlParser
from html2docx.renderer import DocxRenderer
from html2docx.resources import BlobStore, ResourceResolver
from html2docx.style_manager import StyleManager
from html2docx.translator import BlockTranslator

logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    """A finished export: the package bytes and the filename to offer."""

    filename: str
    data: bytes
    blocks: list[DocumentBlock]


class Exporter:
    """Export editor documents to DOCX.

    Usage::

        exporter = Exporter(ExportOptions(style_preset="business"))
        result = await exporter.export_html("Q1 Report", "<h1>Intro</h1>...")

        # or offer the file straight away
        await exporter.export_html(title, html, delivery=FileDelivery("out"))

        # synchronous callers
        data = exporter.convert_text("<p>Hello</p>", title="Notes")
    """

    STYLE_PRESETS = StyleManager.PRESETS

    def __init__(
        self,
        options: Optional[ExportOptions] = None,
        *,
        blobs: Optional[BlobStore] = None,
        resolver: Optional[ResourceResolver] = None,
    ) -> None:
        self.options = options or ExportOptions()
        # fail fast on a bad preset
        self.style_manager = StyleManager(self.options.style_preset)
        self.parser = HtmlParser()
        self.blobs = blobs or BlobStore()
        self._resolver = resolver

    # -- public API ---------------------------------------------------------

    async def export_html(
        self,
        title: str,
        html: str,
        *,
        delivery: Optional[Delivery] = None,
        today: Optional[date] = None,
    ) -> ExportResult:
        """Export a title and HTML body through the primary path.

        Raises:
            AssemblyError: the package could not be built; nothing is delivered.
        """
        root = self.parser.parse(html)
        async with self._resolver_scope() as resolver:
            translator = BlockTranslator(resolver, self.options)
            blocks = await translator.translate(title, root)
        return self._finish(title, blocks, delivery, today)

    async def export_blocks(
        self,
        title: str,
        blocks: Iterable[ContentBlock | dict[str, Any]],
        *,
        delivery: Optional[Delivery] = None,
        today: Optional[date] = None,
    ) -> ExportResult:
        """Export the editor's flat block list (text / image / video items)."""
        items = [
            b if isinstance(b, ContentBlock) else ContentBlock.from_dict(b)
            for b in blocks
        ]
        async with self._resolver_scope() as resolver:
            translator = BlockTranslator(resolver, self.options)
            doc_blocks = await translator.translate_blocks(title, items)
        return self._finish(title, doc_blocks, delivery, today)

    def convert_text(self, html: str, title: str = "") -> bytes:
        """Synchronously convert an HTML body to DOCX bytes."""
        return asyncio.run(self.export_html(title, html)).data

    # -- internals ----------------------------------------------------------

    def _resolver_scope(self) -> ResourceResolver | _Borrowed:
        if self._resolver is not None:
            return _Borrowed(self._resolver)
        return ResourceResolver(
            blobs=self.blobs,
            http_timeout=self.options.http_timeout,
            capture_offset=self.options.capture_offset,
            capture_timeout=self.options.capture_timeout,
            allow_local=self.options.allow_local,
        )

    def _finish(
        self,
        title: str,
        blocks: list[DocumentBlock],
        delivery: Optional[Delivery],
        today: Optional[date],
    ) -> ExportResult:
        renderer = DocxRenderer(self.style_manager, NumberingRegistry())
        data = renderer.render(blocks)
        filename = suggested_filename(title, self.options.file_fallback, today=today)
        logger.info(
            "Exported %r: %d blocks, %d bytes", filename, len(blocks), len(data),
        )
        if delivery is not None:
            delivery.deliver(data, filename)
        return ExportResult(filename=filename, data=data, blocks=blocks)


class _Borrowed:
    """Async context wrapper that leaves a caller-owned resolver open."""

    def __init__(self, resolver: ResourceResolver) -> None:
        self.resolver = resolver

    async def __aenter__(self) -> ResourceResolver:
        return self.resolver

    async def __aexit__(self, *exc_info) -> None:
        return None
