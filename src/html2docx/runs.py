"""Inline run builder.

Walks inline markup in document order and emits :class:`TextRun` and
:class:`ImageRun` objects.  Character formatting is carried down the
recursion in an immutable :class:`StyleAccumulator`, so sibling subtrees
never see each other's formatting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from html2docx.errors import ResourceError
from html2docx.model import ImageRun, StyledRun, TextRun
from html2docx.parser import ASTNode, NodeType
from html2docx.resources import ResourceResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StyleAccumulator:
    """Bold / italic / underline flags inherited from enclosing wrappers."""

    bold: bool = False
    italic: bool = False
    underline: bool = False

    def extend(self, node_type: NodeType) -> StyleAccumulator:
        """Return the accumulator for the children of a *node_type* wrapper.

        Wrappers only ever switch a flag on.
        """
        if node_type is NodeType.BOLD:
            return replace(self, bold=True)
        if node_type is NodeType.ITALIC:
            return replace(self, italic=True)
        if node_type is NodeType.UNDERLINE:
            return replace(self, underline=True)
        return self

    def text_run(self, text: str) -> TextRun:
        return TextRun(text, bold=self.bold, italic=self.italic, underline=self.underline)


_STYLE_WRAPPERS = (NodeType.BOLD, NodeType.ITALIC, NodeType.UNDERLINE)

# Containers whose content is inlined when they appear inside a run context.
_TRANSPARENT = (
    NodeType.SPAN,
    NodeType.PARAGRAPH,
    NodeType.HEADING,
    NodeType.LIST_ITEM,
    NodeType.BLOCKQUOTE,
    NodeType.ORDERED_LIST,
    NodeType.UNORDERED_LIST,
    NodeType.DOCUMENT,
)


class RunBuilder:
    """Build styled runs for one export.

    *image_size* is the ``(width, height)`` given to every inline picture
    reached through this builder.
    """

    def __init__(self, resolver: ResourceResolver, image_size: tuple[int, int]) -> None:
        self.resolver = resolver
        self.image_size = image_size

    async def build(
        self,
        nodes: list[ASTNode],
        style: StyleAccumulator = StyleAccumulator(),
    ) -> list[StyledRun]:
        """Return the runs of *nodes* in document order."""
        runs: list[StyledRun] = []
        for node in nodes:
            await self._visit(node, style, runs)
        return runs

    async def _visit(
        self, node: ASTNode, style: StyleAccumulator, runs: list[StyledRun]
    ) -> None:
        nt = node.type

        if nt is NodeType.TEXT:
            if node.text:
                runs.append(style.text_run(node.text))
            return

        if nt in _STYLE_WRAPPERS:
            inner = style.extend(nt)
            for child in node.children:
                await self._visit(child, inner, runs)
            return

        if nt in _TRANSPARENT:
            for child in node.children:
                await self._visit(child, style, runs)
            return

        if nt is NodeType.LINE_BREAK:
            runs.append(style.text_run("\n"))
            return

        if nt is NodeType.IMAGE:
            image = await self.image_run(node)
            if image is not None:
                runs.append(image)
            return

        # video, rules and unknown elements have no inline representation
        logger.debug("Skipping inline %s element", node.tag or nt.value)

    async def image_run(self, node: ASTNode) -> ImageRun | None:
        """Resolve *node* into an :class:`ImageRun`; ``None`` on failure."""
        try:
            data = await self.resolver.resolve_image(node.url)
        except ResourceError as exc:
            logger.warning("Skipping image: %s", exc)
            return None
        width, height = self.image_size
        return ImageRun(data, width, height)


def trim_runs(runs: list[StyledRun]) -> list[StyledRun]:
    """Strip whitespace and line breaks from both ends of a run sequence."""
    runs = list(runs)
    while runs and isinstance(runs[0], TextRun):
        text = runs[0].text.lstrip()
        if text:
            runs[0] = replace(runs[0], text=text)
            break
        runs.pop(0)
    while runs and isinstance(runs[-1], TextRun):
        text = runs[-1].text.rstrip()
        if text:
            runs[-1] = replace(runs[-1], text=text)
            break
        runs.pop()
    return runs
