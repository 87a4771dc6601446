"""Tests for the HTML parser."""

from __future__ import annotations

from pathlib import Path

import pytest

from html2docx.parser import (
    ASTNode,
    ContentBlock,
    ContentBlockType,
    HtmlParser,
    NodeType,
    mime_type_of,
    parse_blocks,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def find_nodes(root: ASTNode, ntype: NodeType) -> list[ASTNode]:
    """Recursively collect all nodes of *ntype* under *root*."""
    found: list[ASTNode] = []
    if root.type == ntype:
        found.append(root)
    for child in root.children:
        found.extend(find_nodes(child, ntype))
    return found


def first_node(root: ASTNode, ntype: NodeType) -> ASTNode:
    nodes = find_nodes(root, ntype)
    assert nodes, f"No {ntype.value} node found"
    return nodes[0]


def extract_text(node: ASTNode) -> str:
    """Concatenate the text of *node* and all of its descendants."""
    return (node.text or "") + "".join(extract_text(c) for c in node.children)


@pytest.fixture
def parser() -> HtmlParser:
    return HtmlParser()


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

class TestDocument:
    def test_empty_input(self, parser: HtmlParser) -> None:
        doc = parser.parse("")
        assert doc.type == NodeType.DOCUMENT
        assert doc.children == []

    def test_whitespace_only(self, parser: HtmlParser) -> None:
        assert parser.parse("   \n\t ").children == []

    def test_top_level_order(self, parser: HtmlParser) -> None:
        doc = parser.parse("<h1>A</h1><p>B</p><hr><ul><li>C</li></ul>")
        types = [c.type for c in doc.children]
        assert types == [
            NodeType.HEADING,
            NodeType.PARAGRAPH,
            NodeType.HORIZONTAL_RULE,
            NodeType.UNORDERED_LIST,
        ]

    def test_leading_text_kept(self, parser: HtmlParser) -> None:
        doc = parser.parse("loose text<p>para</p>")
        assert doc.children[0].type == NodeType.TEXT
        assert doc.children[0].text == "loose text"

    def test_comments_dropped(self, parser: HtmlParser) -> None:
        doc = parser.parse("<p>a<!-- note -->b</p>")
        assert extract_text(doc) == "ab"

    def test_sample_fixture(self, parser: HtmlParser) -> None:
        html = (FIXTURES_DIR / "sample.html").read_text(encoding="utf-8")
        doc = parser.parse(html)
        assert len(find_nodes(doc, NodeType.HEADING)) == 2
        assert len(find_nodes(doc, NodeType.LIST_ITEM)) == 4
        assert first_node(doc, NodeType.BLOCKQUOTE)


# ---------------------------------------------------------------------------
# Headings and inline formatting
# ---------------------------------------------------------------------------

class TestHeadings:
    @pytest.mark.parametrize("level", [1, 2, 3, 4, 5, 6])
    def test_heading_levels(self, parser: HtmlParser, level: int) -> None:
        doc = parser.parse(f"<h{level}>Heading Level {level}</h{level}>")
        headings = find_nodes(doc, NodeType.HEADING)
        assert len(headings) == 1
        assert headings[0].level == level
        assert extract_text(headings[0]) == f"Heading Level {level}"

    def test_uppercase_tags(self, parser: HtmlParser) -> None:
        doc = parser.parse("<H2>Shout</H2>")
        assert first_node(doc, NodeType.HEADING).level == 2


class TestInline:
    @pytest.mark.parametrize("tag,ntype", [
        ("strong", NodeType.BOLD),
        ("b", NodeType.BOLD),
        ("em", NodeType.ITALIC),
        ("i", NodeType.ITALIC),
        ("u", NodeType.UNDERLINE),
    ])
    def test_wrappers(self, parser: HtmlParser, tag: str, ntype: NodeType) -> None:
        doc = parser.parse(f"<p>x <{tag}>y</{tag}></p>")
        node = first_node(doc, ntype)
        assert extract_text(node) == "y"

    def test_tail_text_preserved(self, parser: HtmlParser) -> None:
        doc = parser.parse("<p>Hello <strong>World</strong> again</p>")
        para = doc.children[0]
        assert [c.type for c in para.children] == [
            NodeType.TEXT, NodeType.BOLD, NodeType.TEXT,
        ]
        assert para.children[2].text == " again"

    def test_whitespace_collapsed(self, parser: HtmlParser) -> None:
        doc = parser.parse("<p>a \n\n   b</p>")
        assert extract_text(doc) == "a b"

    def test_line_break(self, parser: HtmlParser) -> None:
        doc = parser.parse("<p>a<br>b</p>")
        assert first_node(doc, NodeType.LINE_BREAK)

    def test_links_are_transparent(self, parser: HtmlParser) -> None:
        doc = parser.parse('<p><a href="https://example.com">site</a></p>')
        span = first_node(doc, NodeType.SPAN)
        assert extract_text(span) == "site"


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------

class TestLists:
    def test_nested_lists(self, parser: HtmlParser) -> None:
        doc = parser.parse("<ol><li>a<ul><li>b</li></ul></li></ol>")
        outer = doc.children[0]
        assert outer.type == NodeType.ORDERED_LIST
        item = outer.children[0]
        assert item.type == NodeType.LIST_ITEM
        assert item.children[1].type == NodeType.UNORDERED_LIST


# ---------------------------------------------------------------------------
# Media and unknown elements
# ---------------------------------------------------------------------------

class TestMedia:
    def test_image_src_and_hint(self, parser: HtmlParser) -> None:
        doc = parser.parse('<img src="https://x/y.png" data-mime-type="image/png" alt="y">')
        img = first_node(doc, NodeType.IMAGE)
        assert img.url == "https://x/y.png"
        assert img.mime_type == "image/png"
        assert img.alt == "y"

    def test_image_mime_from_data_uri(self, parser: HtmlParser) -> None:
        doc = parser.parse('<img src="data:image/gif;base64,R0lGOD">')
        assert first_node(doc, NodeType.IMAGE).mime_type == "image/gif"

    def test_mimetype_attribute(self, parser: HtmlParser) -> None:
        doc = parser.parse('<img src="blob:abc" mimeType="image/webp">')
        assert first_node(doc, NodeType.IMAGE).mime_type == "image/webp"

    def test_img_with_video_type_becomes_video(self, parser: HtmlParser) -> None:
        doc = parser.parse('<img src="blob:abc" type="video/mp4">')
        assert first_node(doc, NodeType.VIDEO).url == "blob:abc"

    def test_video_source_child(self, parser: HtmlParser) -> None:
        doc = parser.parse('<video controls><source src="clip.webm" type="video/webm"></video>')
        video = first_node(doc, NodeType.VIDEO)
        assert video.url == "clip.webm"
        assert video.mime_type == "video/webm"

    def test_unknown_children_not_visited(self, parser: HtmlParser) -> None:
        doc = parser.parse("<table><tr><td><p>cell</p></td></tr></table>")
        unknown = first_node(doc, NodeType.UNKNOWN)
        assert unknown.tag == "table"
        assert unknown.children == []
        assert find_nodes(doc, NodeType.PARAGRAPH) == []


def test_mime_type_of() -> None:
    assert mime_type_of("data:video/mp4;base64,AAAA") == "video/mp4"
    assert mime_type_of("https://x/y", "image/png") == "image/png"
    assert mime_type_of("https://x/y") == ""


# ---------------------------------------------------------------------------
# Flat blocks
# ---------------------------------------------------------------------------

class TestContentBlocks:
    def test_from_dict(self) -> None:
        block = ContentBlock.from_dict(
            {"id": "7", "type": "video", "content": "blob:v", "mimeType": "video/mp4"}
        )
        assert block.type is ContentBlockType.VIDEO
        assert block.mime_type == "video/mp4"
        assert block.id == "7"

    def test_parse_blocks_order(self) -> None:
        blocks = parse_blocks([
            {"type": "text", "content": "<p>a</p>"},
            {"type": "image", "content": "data:image/png;base64,AA=="},
        ])
        assert [b.type for b in blocks] == [ContentBlockType.TEXT, ContentBlockType.IMAGE]

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValueError):
            ContentBlock.from_dict({"type": "audio", "content": ""})
