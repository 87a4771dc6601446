"""Block translator - converts the parsed AST into ordered document blocks.

Two entry points mirror the two ways the editor hands a document over:

* :meth:`BlockTranslator.translate` takes the body markup as one tree.
* :meth:`BlockTranslator.translate_blocks` takes the editor's flat list of
  text / image / video blocks.

Both always start with a synthetic title block.  Media references are
resolved one at a time, in document order, as they are encountered.
"""

from __future__ import annotations

import logging
from typing import Optional

from html2docx.config import ExportMode, ExportOptions
from html2docx.errors import CaptureTimeout, ResourceError
from html2docx.model import BlockKind, DocumentBlock, ImageRun, StyledRun, TextRun
from html2docx.numbering import NumberingFamily
from html2docx.parser import (
    INLINE_TYPES,
    LIST_TYPES,
    ASTNode,
    ContentBlock,
    ContentBlockType,
    HtmlParser,
    NodeType,
)
from html2docx.resources import ResourceResolver
from html2docx.runs import RunBuilder, trim_runs

logger = logging.getLogger(__name__)

PLACEHOLDER_COLOR = "666666"

# Children that turn a <div>/<blockquote> into a block container.
_BLOCK_TYPES = (
    NodeType.HEADING,
    NodeType.PARAGRAPH,
    NodeType.ORDERED_LIST,
    NodeType.UNORDERED_LIST,
    NodeType.LIST_ITEM,
    NodeType.BLOCKQUOTE,
    NodeType.HORIZONTAL_RULE,
    NodeType.VIDEO,
)


def _has_block_children(node: ASTNode) -> bool:
    return any(child.type in _BLOCK_TYPES for child in node.children)


class BlockTranslator:
    """Translate one document into :class:`DocumentBlock` objects."""

    def __init__(
        self,
        resolver: ResourceResolver,
        options: Optional[ExportOptions] = None,
    ) -> None:
        self.resolver = resolver
        self.options = options or ExportOptions()
        self.parser = HtmlParser()

    # ======================================================================
    # Public API
    # ======================================================================

    def title_block(self, title: str) -> DocumentBlock:
        text = (title or "").strip() or self.options.fallback_title
        return DocumentBlock(BlockKind.TITLE, (TextRun(text),), level=1)

    async def translate(self, title: str, root: ASTNode) -> list[DocumentBlock]:
        """Translate a parsed markup tree (the primary export path)."""
        mode = self.options.resolved_mode(ExportMode.DROP)
        ctx = _Context(
            RunBuilder(self.resolver, self.options.inline_image_size),
            mode,
            videos=mode is ExportMode.PLACEHOLDER,
        )
        blocks = [self.title_block(title)]
        blocks.extend(await self._translate_nodes(root.children, ctx))
        return blocks

    async def translate_html(self, title: str, html: str) -> list[DocumentBlock]:
        return await self.translate(title, self.parser.parse(html))

    async def translate_blocks(
        self, title: str, items: list[ContentBlock]
    ) -> list[DocumentBlock]:
        """Translate the editor's flat block list (the alternate export path).

        Text blocks hold markup and go through the same block algorithm as
        :meth:`translate`.  Videos are always turned into a still frame or a
        placeholder here.
        """
        mode = self.options.resolved_mode(ExportMode.PLACEHOLDER)
        ctx = _Context(
            RunBuilder(self.resolver, self.options.block_image_size),
            mode,
            videos=True,
        )
        blocks = [self.title_block(title)]
        for item in items:
            if item.type is ContentBlockType.TEXT:
                doc = self.parser.parse(item.content)
                blocks.extend(await self._translate_nodes(doc.children, ctx))
            elif item.type is ContentBlockType.IMAGE:
                blocks.extend(await self._image_blocks(item.content, item.mime_type, ctx))
            else:
                blocks.extend(await self._video_blocks(item.content, item.mime_type, ctx))
        return blocks

    # ======================================================================
    # Node dispatch
    # ======================================================================

    async def _translate_nodes(
        self, nodes: list[ASTNode], ctx: _Context
    ) -> list[DocumentBlock]:
        blocks: list[DocumentBlock] = []
        pending: list[ASTNode] = []
        for node in nodes:
            if node.type in INLINE_TYPES:
                # stray inline content between blocks forms its own paragraph
                pending.append(node)
                continue
            if pending:
                blocks.extend(await self._paragraph(pending, ctx))
                pending = []
            blocks.extend(await self._translate_node(node, ctx))
        if pending:
            blocks.extend(await self._paragraph(pending, ctx))
        return blocks

    async def _translate_node(self, node: ASTNode, ctx: _Context) -> list[DocumentBlock]:
        nt = node.type

        if nt is NodeType.HEADING:
            runs = await self._runs(node.children, ctx)
            if not runs:
                return []
            level = max(1, min(6, node.level))
            return [DocumentBlock(BlockKind.HEADING, tuple(runs), level=level)]

        if nt is NodeType.PARAGRAPH:
            if _has_block_children(node):
                return await self._translate_nodes(node.children, ctx)
            return await self._paragraph(node.children, ctx)

        if nt in LIST_TYPES:
            return await self._translate_list(node, 0, ctx)

        if nt is NodeType.LIST_ITEM:
            # <li> outside of any list renders as a bullet
            wrapper = ASTNode(type=NodeType.UNORDERED_LIST, children=[node])
            return await self._translate_list(wrapper, 0, ctx)

        if nt is NodeType.BLOCKQUOTE:
            return await self._translate_quote(node, ctx)

        if nt is NodeType.HORIZONTAL_RULE:
            return [DocumentBlock(BlockKind.THEMATIC_BREAK)]

        if nt is NodeType.IMAGE:
            return await self._image_blocks(node.url, node.mime_type, ctx)

        if nt is NodeType.VIDEO:
            if not ctx.videos:
                logger.debug("Ignoring video %s", node.url[:80])
                return []
            return await self._video_blocks(node.url, node.mime_type, ctx)

        logger.debug("Ignoring unsupported <%s> element", node.tag or nt.value)
        return []

    # ======================================================================
    # Helpers
    # ======================================================================

    async def _runs(self, nodes: list[ASTNode], ctx: _Context) -> list[StyledRun]:
        return trim_runs(await ctx.runs.build(nodes))

    async def _paragraph(self, nodes: list[ASTNode], ctx: _Context) -> list[DocumentBlock]:
        runs = await self._runs(nodes, ctx)
        if not runs:
            return []
        return [DocumentBlock(BlockKind.PARAGRAPH, tuple(runs))]

    async def _translate_list(
        self, node: ASTNode, level: int, ctx: _Context
    ) -> list[DocumentBlock]:
        """Emit one list-item block per ``<li>``, nested lists depth-first.

        The family comes from the list's own tag; *level* is the depth
        inherited from enclosing items.
        """
        family = (
            NumberingFamily.ORDERED
            if node.type is NodeType.ORDERED_LIST
            else NumberingFamily.BULLET
        )
        blocks: list[DocumentBlock] = []
        for item in node.children:
            if item.type in LIST_TYPES:
                # <ul> directly inside <ul>
                blocks.extend(await self._translate_list(item, level + 1, ctx))
                continue
            if item.type is not NodeType.LIST_ITEM:
                continue

            nested = [c for c in item.children if c.type in LIST_TYPES]
            leaf = [c for c in item.children if c.type not in LIST_TYPES]

            runs = await self._runs(leaf, ctx)
            blocks.append(DocumentBlock(
                BlockKind.LIST_ITEM, tuple(runs), level=level, family=family,
            ))
            for child in nested:
                blocks.extend(await self._translate_list(child, level + 1, ctx))
        return blocks

    async def _quote(self, nodes: list[ASTNode], ctx: _Context) -> list[DocumentBlock]:
        runs = await self._runs(nodes, ctx)
        if not runs:
            return []
        return [DocumentBlock(BlockKind.QUOTE, tuple(runs))]

    async def _translate_quote(self, node: ASTNode, ctx: _Context) -> list[DocumentBlock]:
        """One quote block per inner paragraph or heading.

        Lists and rules inside a quotation are translated as usual.
        """
        if not _has_block_children(node):
            return await self._quote(node.children, ctx)

        blocks: list[DocumentBlock] = []
        pending: list[ASTNode] = []
        for child in node.children:
            if child.type in INLINE_TYPES or child.type is NodeType.IMAGE:
                pending.append(child)
                continue
            blocks.extend(await self._quote(pending, ctx))
            pending = []
            if child.type in (NodeType.PARAGRAPH, NodeType.HEADING):
                blocks.extend(await self._quote(child.children, ctx))
            else:
                blocks.extend(await self._translate_node(child, ctx))
        blocks.extend(await self._quote(pending, ctx))
        return blocks

    async def _image_blocks(
        self, url: str, mime_type: str, ctx: _Context
    ) -> list[DocumentBlock]:
        try:
            data = await self.resolver.resolve_image(url)
        except ResourceError as exc:
            if ctx.mode is ExportMode.DROP:
                logger.warning("Dropping image block: %s", exc)
                return []
            logger.warning("Image replaced by placeholder: %s", exc)
            label = mime_type or "Image"
            return [_placeholder(f"[Image Attachment: {label}]")]
        width, height = ctx.runs.image_size
        return [DocumentBlock(BlockKind.STANDALONE_IMAGE, (ImageRun(data, width, height),))]

    async def _video_blocks(
        self, url: str, mime_type: str, ctx: _Context
    ) -> list[DocumentBlock]:
        try:
            still = await self.resolver.capture_still_frame(url, mime_type)
        except CaptureTimeout as exc:
            logger.warning("No video still: %s", exc)
            label = mime_type or "Video"
            return [_placeholder(f"[Video Attachment: {label}]")]
        width, height = ctx.runs.image_size
        return [
            _placeholder("[Video Snapshot]", italic=True, color=PLACEHOLDER_COLOR),
            DocumentBlock(BlockKind.STANDALONE_IMAGE, (ImageRun(still, width, height),)),
        ]


class _Context:
    """Per-call translation settings shared by the recursive helpers."""

    def __init__(self, runs: RunBuilder, mode: ExportMode, *, videos: bool) -> None:
        self.runs = runs
        self.mode = mode
        self.videos = videos


def _placeholder(text: str, *, italic: bool = False, color: str = "") -> DocumentBlock:
    return DocumentBlock(
        BlockKind.PLACEHOLDER, (TextRun(text, italic=italic, color=color),),
    )
