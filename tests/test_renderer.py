"""Tests for the DOCX package renderer."""

from __future__ import annotations

import io
import zipfile
from xml.etree import ElementTree as ET

import pytest

from html2docx.errors import AssemblyError
from html2docx.model import BlockKind, DocumentBlock, ImageRun, TextRun
from html2docx.numbering import NumberingFamily
from html2docx.renderer import EMU_PER_PIXEL, DocxRenderer
from html2docx.style_manager import StyleManager

from conftest import JPEG_BYTES, PNG_BYTES, read_part

NS = {
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "rel": "http://schemas.openxmlformats.org/package/2006/relationships",
    "ct": "http://schemas.openxmlformats.org/package/2006/content-types",
}
W = "{%s}" % NS["w"]


def title(text: str = "Report") -> DocumentBlock:
    return DocumentBlock(BlockKind.TITLE, (TextRun(text),), level=1)


def para(*runs) -> DocumentBlock:
    return DocumentBlock(BlockKind.PARAGRAPH, tuple(runs))


def item(text: str, level: int, family: NumberingFamily) -> DocumentBlock:
    return DocumentBlock(BlockKind.LIST_ITEM, (TextRun(text),), level=level, family=family)


def body(data: bytes) -> ET.Element:
    return ET.fromstring(read_part(data, "word/document.xml")).find("w:body", NS)


def paragraphs(data: bytes) -> list[ET.Element]:
    return body(data).findall("w:p", NS)


@pytest.fixture
def renderer() -> DocxRenderer:
    return DocxRenderer()


class TestPackage:
    def test_required_parts(self, renderer: DocxRenderer) -> None:
        data = renderer.render([title()])
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            names = set(zf.namelist())
        assert {
            "[Content_Types].xml",
            "_rels/.rels",
            "docProps/core.xml",
            "docProps/app.xml",
            "word/document.xml",
            "word/_rels/document.xml.rels",
            "word/styles.xml",
            "word/numbering.xml",
            "word/settings.xml",
        } <= names

    def test_title_is_first_paragraph(self, renderer: DocxRenderer) -> None:
        data = renderer.render([title("Q1 Report"), para(TextRun("body"))])
        first = paragraphs(data)[0]
        assert first.find("w:pPr/w:pStyle", NS).get(f"{W}val") == "Heading1"
        assert "".join(t.text for t in first.iter(f"{W}t")) == "Q1 Report"

    def test_core_properties_title(self, renderer: DocxRenderer) -> None:
        data = renderer.render([title("Q1 Report")])
        assert "<dc:title>Q1 Report</dc:title>" in read_part(data, "docProps/core.xml")

    def test_must_start_with_title(self, renderer: DocxRenderer) -> None:
        with pytest.raises(AssemblyError):
            renderer.render([para(TextRun("x"))])

    def test_empty_block_list(self, renderer: DocxRenderer) -> None:
        with pytest.raises(AssemblyError):
            renderer.render([])

    def test_list_item_needs_family(self, renderer: DocxRenderer) -> None:
        orphan = DocumentBlock(BlockKind.LIST_ITEM, (TextRun("x"),))
        with pytest.raises(AssemblyError):
            renderer.render([title(), orphan])

    def test_control_characters_removed(self, renderer: DocxRenderer) -> None:
        data = renderer.render([title(), para(TextRun("a\x00b\x0bc"))])
        texts = [t.text for t in body(data).iter(f"{W}t")]
        assert "abc" in texts


class TestRuns:
    def test_run_formatting(self, renderer: DocxRenderer) -> None:
        run = TextRun("x", bold=True, italic=True, underline=True)
        data = renderer.render([title(), para(run)])
        rpr = paragraphs(data)[1].find("w:r/w:rPr", NS)
        tags = [child.tag.replace(W, "") for child in rpr]
        assert tags == ["rFonts", "b", "i", "sz", "szCs", "u"]

    def test_color(self, renderer: DocxRenderer) -> None:
        data = renderer.render([title(), para(TextRun("x", color="#666666"))])
        color = paragraphs(data)[1].find("w:r/w:rPr/w:color", NS)
        assert color.get(f"{W}val") == "666666"

    def test_line_break(self, renderer: DocxRenderer) -> None:
        data = renderer.render([title(), para(TextRun("a"), TextRun("\n"), TextRun("b"))])
        runs = paragraphs(data)[1].findall("w:r", NS)
        assert runs[1].find("w:br", NS) is not None
        assert runs[1].find("w:t", NS) is None

    def test_heading_level(self, renderer: DocxRenderer) -> None:
        heading = DocumentBlock(BlockKind.HEADING, (TextRun("h"),), level=3)
        data = renderer.render([title(), heading])
        p_style = paragraphs(data)[1].find("w:pPr/w:pStyle", NS)
        assert p_style.get(f"{W}val") == "Heading3"

    def test_thematic_break_border(self, renderer: DocxRenderer) -> None:
        data = renderer.render([title(), DocumentBlock(BlockKind.THEMATIC_BREAK)])
        assert paragraphs(data)[1].find("w:pPr/w:pBdr/w:bottom", NS) is not None

    def test_quote_indented(self, renderer: DocxRenderer) -> None:
        quote = DocumentBlock(BlockKind.QUOTE, (TextRun("q"),))
        data = renderer.render([title(), quote])
        ppr = paragraphs(data)[1].find("w:pPr", NS)
        assert ppr.find("w:pStyle", NS).get(f"{W}val") == "Quote"
        assert ppr.find("w:ind", NS) is not None


class TestNumbering:
    def test_list_items_reference_shared_ids(self, renderer: DocxRenderer) -> None:
        blocks = [
            title(),
            item("a", 0, NumberingFamily.BULLET),
            para(TextRun("between")),
            item("b", 0, NumberingFamily.BULLET),
            item("c", 1, NumberingFamily.ORDERED),
        ]
        data = renderer.render(blocks)
        refs = [
            (
                p.find("w:pPr/w:numPr/w:numId", NS).get(f"{W}val"),
                p.find("w:pPr/w:numPr/w:ilvl", NS).get(f"{W}val"),
            )
            for p in paragraphs(data)
            if p.find("w:pPr/w:numPr", NS) is not None
        ]
        assert refs == [("1", "0"), ("1", "0"), ("2", "1")]

    def test_deep_level_clamped(self, renderer: DocxRenderer) -> None:
        data = renderer.render([title(), item("deep", 14, NumberingFamily.BULLET)])
        ilvl = paragraphs(data)[1].find("w:pPr/w:numPr/w:ilvl", NS)
        assert ilvl.get(f"{W}val") == "8"

    def test_numbering_definitions(self, renderer: DocxRenderer) -> None:
        data = renderer.render([title()])
        root = ET.fromstring(read_part(data, "word/numbering.xml"))
        assert len(root.findall("w:abstractNum", NS)) == 2
        nums = root.findall("w:num", NS)
        assert [n.get(f"{W}numId") for n in nums] == ["1", "2"]

        ordered = root.findall("w:abstractNum", NS)[1]
        formats = [
            lvl.find("w:numFmt", NS).get(f"{W}val")
            for lvl in ordered.findall("w:lvl", NS)
        ]
        assert formats[:4] == ["decimal", "lowerLetter", "lowerRoman", "lowerRoman"]
        assert len(formats) == 9


class TestMedia:
    def test_each_image_is_its_own_part(self, renderer: DocxRenderer) -> None:
        image = ImageRun(PNG_BYTES, 550, 350)
        blocks = [
            title(),
            para(TextRun("a"), image),
            DocumentBlock(BlockKind.STANDALONE_IMAGE, (image,)),
            DocumentBlock(BlockKind.STANDALONE_IMAGE, (ImageRun(JPEG_BYTES, 500, 350),)),
        ]
        data = renderer.render(blocks)
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            media = sorted(n for n in zf.namelist() if n.startswith("word/media/"))
            assert zf.read("word/media/image1.png") == PNG_BYTES
        assert media == [
            "word/media/image1.png",
            "word/media/image2.png",
            "word/media/image3.jpeg",
        ]

        rels = ET.fromstring(read_part(data, "word/_rels/document.xml.rels"))
        targets = {r.get("Id"): r.get("Target") for r in rels.findall("rel:Relationship", NS)}
        assert targets["rId4"] == "media/image1.png"
        assert targets["rId6"] == "media/image3.jpeg"

        blips = [b.get(f"{{{NS['r']}}}embed") for b in body(data).iter(f"{{{NS['a']}}}blip")]
        assert blips == ["rId4", "rId5", "rId6"]

    def test_display_size(self, renderer: DocxRenderer) -> None:
        data = renderer.render([
            title(),
            DocumentBlock(BlockKind.STANDALONE_IMAGE, (ImageRun(PNG_BYTES, 500, 350),)),
        ])
        extent = body(data).find(".//wp:extent", NS)
        assert extent.get("cx") == str(500 * EMU_PER_PIXEL)
        assert extent.get("cy") == str(350 * EMU_PER_PIXEL)

    def test_content_types_declare_media(self, renderer: DocxRenderer) -> None:
        data = renderer.render([
            title(),
            DocumentBlock(BlockKind.STANDALONE_IMAGE, (ImageRun(JPEG_BYTES, 1, 1),)),
        ])
        types = ET.fromstring(read_part(data, "[Content_Types].xml"))
        defaults = {
            d.get("Extension"): d.get("ContentType")
            for d in types.findall("ct:Default", NS)
        }
        assert defaults["jpeg"] == "image/jpeg"

    def test_render_resets_between_calls(self, renderer: DocxRenderer) -> None:
        blocks = [title(), DocumentBlock(BlockKind.STANDALONE_IMAGE, (ImageRun(PNG_BYTES, 1, 1),))]
        renderer.render(blocks)
        data = renderer.render(blocks)
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert [n for n in zf.namelist() if n.startswith("word/media/")] == [
                "word/media/image1.png",
            ]


@pytest.mark.parametrize("preset", StyleManager.PRESETS)
def test_every_preset_renders(preset: str) -> None:
    renderer = DocxRenderer(StyleManager(preset))
    data = renderer.render([title(), para(TextRun("x"))])
    assert ET.fromstring(read_part(data, "word/styles.xml")) is not None
