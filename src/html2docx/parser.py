"""Editor markup parser that produces an intermediate AST for DOCX export.

Uses lxml to parse the HTML body produced by the editor and converts the
element tree into a closed set of node kinds defined by :class:`NodeType`,
so the translator never has to inspect raw tags.  The flat block list of
the editor state (``text`` / ``image`` / ``video`` items) is parsed into
:class:`ContentBlock` objects.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

import lxml.html


# ---------------------------------------------------------------------------
# AST node definitions
# ---------------------------------------------------------------------------

class NodeType(Enum):
    DOCUMENT = "document"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    TEXT = "text"
    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"
    SPAN = "span"
    ORDERED_LIST = "ordered_list"
    UNORDERED_LIST = "unordered_list"
    LIST_ITEM = "list_item"
    BLOCKQUOTE = "blockquote"
    HORIZONTAL_RULE = "horizontal_rule"
    IMAGE = "image"
    VIDEO = "video"
    LINE_BREAK = "line_break"
    UNKNOWN = "unknown"


LIST_TYPES = (NodeType.ORDERED_LIST, NodeType.UNORDERED_LIST)

INLINE_TYPES = (
    NodeType.TEXT,
    NodeType.BOLD,
    NodeType.ITALIC,
    NodeType.UNDERLINE,
    NodeType.SPAN,
    NodeType.LINE_BREAK,
)


@dataclass
class ASTNode:
    type: NodeType
    children: list[ASTNode] = field(default_factory=list)
    text: str = ""
    # Heading
    level: int = 0
    # Image / video
    url: str = ""
    mime_type: str = ""
    alt: str = ""
    # Original tag, kept for logging unknown elements
    tag: str = ""


_TAG_TYPES = {
    "p": NodeType.PARAGRAPH,
    "div": NodeType.PARAGRAPH,
    "strong": NodeType.BOLD,
    "b": NodeType.BOLD,
    "em": NodeType.ITALIC,
    "i": NodeType.ITALIC,
    "u": NodeType.UNDERLINE,
    "ins": NodeType.UNDERLINE,
    "ul": NodeType.UNORDERED_LIST,
    "ol": NodeType.ORDERED_LIST,
    "li": NodeType.LIST_ITEM,
    "blockquote": NodeType.BLOCKQUOTE,
    "hr": NodeType.HORIZONTAL_RULE,
    "img": NodeType.IMAGE,
    "video": NodeType.VIDEO,
    "br": NodeType.LINE_BREAK,
    # Inline wrappers without formatting of their own
    "span": NodeType.SPAN,
    "a": NodeType.SPAN,
    "font": NodeType.SPAN,
    "code": NodeType.SPAN,
    "mark": NodeType.SPAN,
    "small": NodeType.SPAN,
    "sub": NodeType.SPAN,
    "sup": NodeType.SPAN,
    "s": NodeType.SPAN,
    "strike": NodeType.SPAN,
    "label": NodeType.SPAN,
}

_HEADING_RE = re.compile(r"^h([1-6])$")
_WS_RE = re.compile(r"\s+")
_DATA_MIME_RE = re.compile(r"^data:([^;,]+)")

_MIME_ATTRS = ("data-mime-type", "data-mimetype", "mimetype", "type")

_HTML_PARSER = lxml.html.HTMLParser(huge_tree=True, remove_comments=True)


def _collapse(text: Optional[str]) -> str:
    """Collapse whitespace the way an HTML renderer does."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text)


def mime_type_of(url: str, hint: str = "") -> str:
    """Return *hint*, or the media type declared in a ``data:`` URI."""
    if hint:
        return hint
    m = _DATA_MIME_RE.match(url or "")
    return m.group(1) if m else ""


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class HtmlParser:
    """Parse editor HTML into an :class:`ASTNode` tree."""

    # -- public API ---------------------------------------------------------

    def parse(self, html: str) -> ASTNode:
        """Return a *DOCUMENT* ``ASTNode`` for *html*."""
        if not html or not html.strip():
            return ASTNode(type=NodeType.DOCUMENT)
        root = lxml.html.fragment_fromstring(
            html, create_parent="div", parser=_HTML_PARSER,
        )
        return ASTNode(type=NodeType.DOCUMENT, children=self._convert_children(root))

    # -- element conversion -------------------------------------------------

    def _convert_children(self, el: Any) -> list[ASTNode]:
        nodes: list[ASTNode] = []
        text = _collapse(el.text)
        if text:
            nodes.append(ASTNode(type=NodeType.TEXT, text=text))
        for child in el:
            node = self._convert_element(child)
            if node is not None:
                nodes.append(node)
            tail = _collapse(child.tail)
            if tail:
                nodes.append(ASTNode(type=NodeType.TEXT, text=tail))
        return nodes

    def _convert_element(self, el: Any) -> Optional[ASTNode]:
        if not isinstance(el.tag, str):
            # comments / processing instructions
            return None
        tag = el.tag.lower()

        m = _HEADING_RE.match(tag)
        if m:
            return ASTNode(
                type=NodeType.HEADING,
                level=int(m.group(1)),
                children=self._convert_children(el),
                tag=tag,
            )

        ntype = _TAG_TYPES.get(tag, NodeType.UNKNOWN)
        if ntype is NodeType.IMAGE:
            return self._handle_image(el)
        if ntype is NodeType.VIDEO:
            return self._handle_video(el)
        if ntype in (NodeType.HORIZONTAL_RULE, NodeType.LINE_BREAK, NodeType.UNKNOWN):
            # leaves; children of unknown elements are never visited
            return ASTNode(type=ntype, tag=tag)
        return ASTNode(type=ntype, children=self._convert_children(el), tag=tag)

    # -- media --------------------------------------------------------------

    def _media_hint(self, el: Any) -> str:
        for attr in _MIME_ATTRS:
            value = el.get(attr)
            if value:
                return value.strip()
        return ""

    def _handle_image(self, el: Any) -> ASTNode:
        url = (el.get("src") or "").strip()
        mime = mime_type_of(url, self._media_hint(el))
        # an <img> the editor tagged as video still points at a video file
        ntype = NodeType.VIDEO if mime.startswith("video/") else NodeType.IMAGE
        return ASTNode(
            type=ntype,
            url=url,
            mime_type=mime,
            alt=el.get("alt") or "",
            tag="img",
        )

    def _handle_video(self, el: Any) -> ASTNode:
        url = (el.get("src") or "").strip()
        hint = self._media_hint(el)
        if not url:
            for source in el.iter("source"):
                if source.get("src"):
                    url = source.get("src").strip()
                    hint = hint or self._media_hint(source)
                    break
        return ASTNode(
            type=NodeType.VIDEO,
            url=url,
            mime_type=mime_type_of(url, hint),
            tag="video",
        )


# ---------------------------------------------------------------------------
# Flat editor blocks
# ---------------------------------------------------------------------------

class ContentBlockType(Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


@dataclass
class ContentBlock:
    """One item of the editor's flat block list.

    ``content`` holds markup for text blocks and a resource reference for
    image and video blocks.
    """

    type: ContentBlockType
    content: str = ""
    mime_type: str = ""
    id: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentBlock:
        try:
            btype = ContentBlockType(data.get("type", ""))
        except ValueError:
            raise ValueError(f"Unknown block type: {data.get('type')!r}") from None
        return cls(
            type=btype,
            content=str(data.get("content") or ""),
            mime_type=str(data.get("mimeType") or data.get("mime_type") or ""),
            id=str(data.get("id") or ""),
        )


def parse_blocks(items: Iterable[dict[str, Any]]) -> list[ContentBlock]:
    """Convert the editor's JSON block list into :class:`ContentBlock` objects."""
    return [ContentBlock.from_dict(item) for item in items]
