"""DOCX document renderer - converts document blocks to a DOCX package.

This module turns the block sequence produced by
:mod:`html2docx.translator` into a WordprocessingML package: a ZIP archive
holding ``word/document.xml``, its styles, numbering and settings parts,
one media part per picture, and the package relationship / content-type
bookkeeping Word needs to open it.

List paragraphs reference one of the two numbering instances defined by
:class:`~html2docx.numbering.NumberingRegistry`; pictures are embedded
through generated ``rIdN`` relationships.
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
from datetime import datetime, timezone
from typing import Optional
from xml.etree.ElementTree import Element, SubElement, tostring

from html2docx import __version__
from html2docx.errors import AssemblyError
from html2docx.model import BlockKind, DocumentBlock, ImageRun, TextRun
from html2docx.numbering import MAX_LEVEL, NumberingRegistry
from html2docx.style_manager import FontSpec, ParaSpec, StyleDef, StyleManager

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Register OOXML namespaces for ElementTree serialization
# ---------------------------------------------------------------------------

import xml.etree.ElementTree as _ET  # noqa: E402

NS = {
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "pic": "http://schemas.openxmlformats.org/drawingml/2006/picture",
    "cp": "http://schemas.openxmlformats.org/package/2006/metadata/core-properties",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
}

for _prefix, _uri in NS.items():
    _ET.register_namespace(_prefix, _uri)

W = f"{{{NS['w']}}}"
R = f"{{{NS['r']}}}"
WP = f"{{{NS['wp']}}}"
A = f"{{{NS['a']}}}"
PIC = f"{{{NS['pic']}}}"
XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"

# ---------------------------------------------------------------------------
# OOXML constants
# ---------------------------------------------------------------------------

DOCX_MEDIA_TYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)

_CT_MAIN = "application/vnd.openxmlformats-officedocument.wordprocessingml"
_REL_BASE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
_PKG_RELS_NS = "http://schemas.openxmlformats.org/package/2006/relationships"

_ALIGN_MAP = {
    "left": "left",
    "center": "center",
    "right": "right",
    "both": "both",
    "justify": "both",
}

_IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpeg",
    "image/gif": "gif",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
}

# A4 page in twips, 1 inch margins
_PAGE_WIDTH = 11906
_PAGE_HEIGHT = 16838
_MARGIN = 1440

EMU_PER_PIXEL = 9525

# Characters that are not allowed anywhere in an XML 1.0 document
_INVALID_XML_RE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")

# Paragraph styles referenced by non-heading blocks
_STYLE_IDS = {
    BlockKind.QUOTE: "Quote",
    BlockKind.LIST_ITEM: "ListParagraph",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _xml_safe(s: str) -> str:
    return _INVALID_XML_RE.sub("", s)


def _to_xml(root: Element) -> bytes:
    body = tostring(root, encoding="unicode")
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n' + body
    ).encode("utf-8")


def _w(parent: Element, tag: str, **attrs: object) -> Element:
    """Append a ``w:`` element whose attributes are all ``w:``-qualified."""
    el = SubElement(parent, f"{W}{tag}")
    for k, v in attrs.items():
        el.set(f"{W}{k}", str(v))
    return el


class _Media:
    """One embedded picture part."""

    def __init__(self, rel_id: str, index: int, image: ImageRun) -> None:
        self.rel_id = rel_id
        self.content_type = image.content_type
        self.extension = _IMAGE_EXTENSIONS.get(self.content_type, "png")
        self.name = f"image{index}.{self.extension}"
        self.data = image.data

    @property
    def part_name(self) -> str:
        return f"word/media/{self.name}"


# ---------------------------------------------------------------------------
# DocxRenderer
# ---------------------------------------------------------------------------

class DocxRenderer:
    """Render a list of :class:`~html2docx.model.DocumentBlock` to DOCX bytes."""

    # rId1..rId3 are taken by styles, numbering and settings
    _FIRST_MEDIA_REL = 4

    def __init__(
        self,
        style_manager: Optional[StyleManager] = None,
        registry: Optional[NumberingRegistry] = None,
    ) -> None:
        self.style: StyleManager = style_manager or StyleManager()
        self.registry: NumberingRegistry = registry or NumberingRegistry()
        self._media: list[_Media] = []
        self._drawing_id: int = 0

    # ======================================================================
    # Public API
    # ======================================================================

    def render(self, blocks: list[DocumentBlock]) -> bytes:
        """Return a complete DOCX file as *bytes*.

        The first block must be the title block.

        Raises:
            AssemblyError: the blocks violate the renderer's expectations or
                the package could not be written.
        """
        self._media = []
        self._drawing_id = 0
        try:
            self._check(blocks)
            document = self._build_document_xml(blocks)
            data = self._package(document, blocks[0].text)
        except AssemblyError:
            raise
        except Exception as exc:
            raise AssemblyError(f"Could not assemble DOCX package: {exc}") from exc
        logger.debug(
            "Rendered %d blocks, %d media parts, %d bytes",
            len(blocks), len(self._media), len(data),
        )
        return data

    def _check(self, blocks: list[DocumentBlock]) -> None:
        if not blocks or blocks[0].kind is not BlockKind.TITLE:
            raise AssemblyError("Block sequence must start with the title block")
        for block in blocks:
            if block.kind is BlockKind.LIST_ITEM and block.family is None:
                raise AssemblyError("List item without numbering family")

    # ======================================================================
    # word/document.xml
    # ======================================================================

    def _build_document_xml(self, blocks: list[DocumentBlock]) -> bytes:
        root = Element(f"{W}document")
        body = SubElement(root, f"{W}body")

        for block in blocks:
            body.append(self._render_block(block))

        sect = _w(body, "sectPr")
        _w(sect, "pgSz", w=_PAGE_WIDTH, h=_PAGE_HEIGHT)
        _w(
            sect, "pgMar",
            top=_MARGIN, right=_MARGIN, bottom=_MARGIN, left=_MARGIN,
            header=720, footer=720, gutter=0,
        )
        return _to_xml(root)

    def _style_for(self, block: DocumentBlock) -> StyleDef:
        kind = block.kind
        if kind is BlockKind.TITLE:
            return self.style.get_style("title")
        if kind is BlockKind.HEADING:
            return self.style.get_heading(block.level)
        if kind is BlockKind.QUOTE:
            return self.style.get_style("blockquote")
        if kind is BlockKind.LIST_ITEM:
            return self.style.get_style("list_item")
        if kind is BlockKind.THEMATIC_BREAK:
            return self.style.get_style("horizontal_rule")
        if kind is BlockKind.STANDALONE_IMAGE:
            return self.style.get_style("image")
        if kind is BlockKind.PLACEHOLDER:
            return self.style.get_style("placeholder")
        return self.style.get_style("body")

    def _style_id(self, block: DocumentBlock) -> Optional[str]:
        if block.kind is BlockKind.TITLE:
            return "Heading1"
        if block.kind is BlockKind.HEADING:
            return f"Heading{max(1, min(6, block.level))}"
        return _STYLE_IDS.get(block.kind)

    def _render_block(self, block: DocumentBlock) -> Element:
        style = self._style_for(block)
        p = Element(f"{W}p")
        ppr = _w(p, "pPr")

        style_id = self._style_id(block)
        if style_id:
            _w(ppr, "pStyle", val=style_id)

        if block.kind is BlockKind.LIST_ITEM:
            num_pr = _w(ppr, "numPr")
            _w(num_pr, "ilvl", val=self.registry.clamp_level(block.level))
            _w(num_pr, "numId", val=self.registry.num_id(block.family))

        if block.kind is BlockKind.THEMATIC_BREAK:
            borders = _w(ppr, "pBdr")
            _w(borders, "bottom", val="single", sz=6, space=1, color="auto")

        self._paragraph_props(ppr, style.para, indent=block.kind is BlockKind.QUOTE)

        for run in block.runs:
            if isinstance(run, ImageRun):
                p.append(self._image_run(run))
            else:
                p.append(self._text_run(run, style.font))
        return p

    def _paragraph_props(self, ppr: Element, para: ParaSpec, *, indent: bool) -> None:
        _w(
            ppr, "spacing",
            before=para.space_before_twips,
            after=para.space_after_twips,
            line=para.line_twips,
            lineRule="auto",
        )
        if indent and para.left_margin_twips:
            _w(ppr, "ind", left=para.left_margin_twips)
        _w(ppr, "jc", val=_ALIGN_MAP.get(para.align, "left"))

    # ======================================================================
    # Runs
    # ======================================================================

    def _text_run(self, run: TextRun, font: FontSpec) -> Element:
        r = Element(f"{W}r")
        rpr = _w(r, "rPr")
        _w(rpr, "rFonts", ascii=font.name, hAnsi=font.name, cs=font.name)
        if font.bold or run.bold:
            _w(rpr, "b")
        if font.italic or run.italic:
            _w(rpr, "i")
        color = run.color or font.color
        if color and color.lower() != "000000":
            _w(rpr, "color", val=color.lstrip("#").upper())
        _w(rpr, "sz", val=font.size_half_points)
        _w(rpr, "szCs", val=font.size_half_points)
        if font.underline or run.underline:
            _w(rpr, "u", val="single")

        if run.is_break:
            _w(r, "br")
            return r

        t = SubElement(r, f"{W}t")
        t.set(XML_SPACE, "preserve")
        t.text = _xml_safe(run.text)
        return r

    def _image_run(self, image: ImageRun) -> Element:
        rel_id = f"rId{self._FIRST_MEDIA_REL + len(self._media)}"
        media = _Media(rel_id, len(self._media) + 1, image)
        self._media.append(media)
        self._drawing_id += 1
        cx = image.width * EMU_PER_PIXEL
        cy = image.height * EMU_PER_PIXEL

        r = Element(f"{W}r")
        drawing = SubElement(r, f"{W}drawing")
        inline = SubElement(drawing, f"{WP}inline")
        for side in ("distT", "distB", "distL", "distR"):
            inline.set(side, "0")

        extent = SubElement(inline, f"{WP}extent")
        extent.set("cx", str(cx))
        extent.set("cy", str(cy))
        effect = SubElement(inline, f"{WP}effectExtent")
        for side in ("l", "t", "r", "b"):
            effect.set(side, "0")
        doc_pr = SubElement(inline, f"{WP}docPr")
        doc_pr.set("id", str(self._drawing_id))
        doc_pr.set("name", f"Picture {self._drawing_id}")
        frame_pr = SubElement(inline, f"{WP}cNvGraphicFramePr")
        locks = SubElement(frame_pr, f"{A}graphicFrameLocks")
        locks.set("noChangeAspect", "1")

        graphic = SubElement(inline, f"{A}graphic")
        data = SubElement(graphic, f"{A}graphicData")
        data.set("uri", NS["pic"])
        pic = SubElement(data, f"{PIC}pic")

        nv = SubElement(pic, f"{PIC}nvPicPr")
        c_nv = SubElement(nv, f"{PIC}cNvPr")
        c_nv.set("id", "0")
        c_nv.set("name", media.name)
        SubElement(nv, f"{PIC}cNvPicPr")

        fill = SubElement(pic, f"{PIC}blipFill")
        blip = SubElement(fill, f"{A}blip")
        blip.set(f"{R}embed", rel_id)
        stretch = SubElement(fill, f"{A}stretch")
        SubElement(stretch, f"{A}fillRect")

        sp_pr = SubElement(pic, f"{PIC}spPr")
        xfrm = SubElement(sp_pr, f"{A}xfrm")
        off = SubElement(xfrm, f"{A}off")
        off.set("x", "0")
        off.set("y", "0")
        ext = SubElement(xfrm, f"{A}ext")
        ext.set("cx", str(cx))
        ext.set("cy", str(cy))
        geom = SubElement(sp_pr, f"{A}prstGeom")
        geom.set("prst", "rect")
        SubElement(geom, f"{A}avLst")
        return r

    # ======================================================================
    # DOCX ZIP packaging
    # ======================================================================

    def _package(self, document_xml: bytes, title: str) -> bytes:
        """Assemble all parts into a DOCX ZIP archive."""
        buf = io.BytesIO()

        with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
            zf.writestr("[Content_Types].xml", self._build_content_types())
            zf.writestr("_rels/.rels", self._build_package_rels())
            zf.writestr("docProps/core.xml", self._build_core_xml(title))
            zf.writestr("docProps/app.xml", self._build_app_xml())
            zf.writestr("word/document.xml", document_xml)
            zf.writestr("word/_rels/document.xml.rels", self._build_document_rels())
            zf.writestr("word/styles.xml", self._build_styles_xml())
            zf.writestr("word/numbering.xml", self._build_numbering_xml())
            zf.writestr("word/settings.xml", self._build_settings_xml())
            for media in self._media:
                # already-compressed formats gain nothing from deflate
                zf.writestr(media.part_name, media.data, compress_type=zipfile.ZIP_STORED)

        return buf.getvalue()

    # -- package bookkeeping -----------------------------------------------

    def _build_content_types(self) -> bytes:
        root = Element("Types")
        root.set("xmlns", "http://schemas.openxmlformats.org/package/2006/content-types")

        defaults = {
            "rels": "application/vnd.openxmlformats-package.relationships+xml",
            "xml": "application/xml",
        }
        for media in self._media:
            defaults.setdefault(media.extension, media.content_type)
        for ext, ctype in defaults.items():
            d = SubElement(root, "Default")
            d.set("Extension", ext)
            d.set("ContentType", ctype)

        overrides = {
            "/word/document.xml": f"{_CT_MAIN}.document.main+xml",
            "/word/styles.xml": f"{_CT_MAIN}.styles+xml",
            "/word/numbering.xml": f"{_CT_MAIN}.numbering+xml",
            "/word/settings.xml": f"{_CT_MAIN}.settings+xml",
            "/docProps/core.xml": "application/vnd.openxmlformats-package.core-properties+xml",
            "/docProps/app.xml": (
                "application/vnd.openxmlformats-officedocument.extended-properties+xml"
            ),
        }
        for part, ctype in overrides.items():
            o = SubElement(root, "Override")
            o.set("PartName", part)
            o.set("ContentType", ctype)
        return _to_xml(root)

    def _relationships(self, rels: list[tuple[str, str, str]]) -> bytes:
        root = Element("Relationships")
        root.set("xmlns", _PKG_RELS_NS)
        for rel_id, rel_type, target in rels:
            rel = SubElement(root, "Relationship")
            rel.set("Id", rel_id)
            rel.set("Type", rel_type)
            rel.set("Target", target)
        return _to_xml(root)

    def _build_package_rels(self) -> bytes:
        return self._relationships([
            ("rId1", f"{_REL_BASE}/officeDocument", "word/document.xml"),
            (
                "rId2",
                "http://schemas.openxmlformats.org/package/2006/relationships"
                "/metadata/core-properties",
                "docProps/core.xml",
            ),
            ("rId3", f"{_REL_BASE}/extended-properties", "docProps/app.xml"),
        ])

    def _build_document_rels(self) -> bytes:
        rels = [
            ("rId1", f"{_REL_BASE}/styles", "styles.xml"),
            ("rId2", f"{_REL_BASE}/numbering", "numbering.xml"),
            ("rId3", f"{_REL_BASE}/settings", "settings.xml"),
        ]
        for media in self._media:
            rels.append((media.rel_id, f"{_REL_BASE}/image", f"media/{media.name}"))
        return self._relationships(rels)

    def _build_core_xml(self, title: str) -> bytes:
        now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        root = Element(f"{{{NS['cp']}}}coreProperties")
        SubElement(root, f"{{{NS['dc']}}}title").text = _xml_safe(title)
        SubElement(root, f"{{{NS['dc']}}}creator").text = "html2docx"
        for tag in ("created", "modified"):
            el = SubElement(root, f"{{{NS['dcterms']}}}{tag}")
            el.set(f"{{{NS['xsi']}}}type", "dcterms:W3CDTF")
            el.text = now
        return _to_xml(root)

    def _build_app_xml(self) -> bytes:
        return (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
            '<Properties xmlns="http://schemas.openxmlformats.org/officeDocument'
            '/2006/extended-properties">'
            f'<Application>html2docx {__version__}</Application>'
            '</Properties>'
        ).encode("utf-8")

    def _build_settings_xml(self) -> bytes:
        root = Element(f"{W}settings")
        _w(root, "defaultTabStop", val=720)
        compat = _w(root, "compat")
        _w(
            compat, "compatSetting",
            name="compatibilityMode", uri="http://schemas.microsoft.com/office/word", val=15,
        )
        return _to_xml(root)

    # -- word/styles.xml ---------------------------------------------------

    def _style_rpr(self, parent: Element, font: FontSpec) -> None:
        rpr = _w(parent, "rPr")
        _w(rpr, "rFonts", ascii=font.name, hAnsi=font.name, cs=font.name)
        if font.bold:
            _w(rpr, "b")
        if font.italic:
            _w(rpr, "i")
        if font.color and font.color.lower() != "000000":
            _w(rpr, "color", val=font.color.upper())
        _w(rpr, "sz", val=font.size_half_points)
        _w(rpr, "szCs", val=font.size_half_points)

    def _add_style(
        self,
        root: Element,
        style_id: str,
        name: str,
        spec: StyleDef,
        *,
        default: bool = False,
        outline_level: Optional[int] = None,
    ) -> None:
        st = _w(root, "style", type="paragraph", styleId=style_id)
        if default:
            st.set(f"{W}default", "1")
        _w(st, "name", val=name)
        if not default:
            _w(st, "basedOn", val="Normal")
            _w(st, "next", val="Normal")
        _w(st, "qFormat")
        ppr = _w(st, "pPr")
        if outline_level is not None:
            _w(ppr, "keepNext")
            _w(ppr, "outlineLvl", val=outline_level)
        self._style_rpr(st, spec.font)

    def _build_styles_xml(self) -> bytes:
        root = Element(f"{W}styles")

        body = self.style.get_style("body")
        defaults = _w(root, "docDefaults")
        rpr_default = _w(defaults, "rPrDefault")
        self._style_rpr(rpr_default, body.font)
        ppr_default = _w(defaults, "pPrDefault")
        ppr = _w(ppr_default, "pPr")
        _w(ppr, "spacing", after=body.para.space_after_twips, line=body.para.line_twips,
           lineRule="auto")

        self._add_style(root, "Normal", "Normal", body, default=True)
        for level in range(1, 7):
            self._add_style(
                root, f"Heading{level}", f"heading {level}",
                self.style.get_heading(level), outline_level=level - 1,
            )
        self._add_style(root, "Quote", "Quote", self.style.get_style("blockquote"))
        self._add_style(root, "ListParagraph", "List Paragraph", self.style.get_style("list_item"))
        return _to_xml(root)

    # -- word/numbering.xml ------------------------------------------------

    def _build_numbering_xml(self) -> bytes:
        """Two abstract definitions (bullet, ordered) and one instance each."""
        root = Element(f"{W}numbering")
        reg = self.registry

        for family in reg.families:
            abstract = _w(root, "abstractNum", abstractNumId=reg.abstract_num_id(family))
            _w(abstract, "multiLevelType", val="hybridMultilevel")
            for level in range(MAX_LEVEL + 1):
                marker = reg.level_style(family, level)
                left, hanging = reg.indent(level)
                lvl = _w(abstract, "lvl", ilvl=level)
                _w(lvl, "start", val=1)
                _w(lvl, "numFmt", val=marker.num_format)
                _w(lvl, "lvlText", val=marker.level_text)
                _w(lvl, "lvlJc", val=marker.align)
                lvl_ppr = _w(lvl, "pPr")
                _w(lvl_ppr, "ind", left=left, hanging=hanging)

        for family in reg.families:
            num = _w(root, "num", numId=reg.num_id(family))
            _w(num, "abstractNumId", val=reg.abstract_num_id(family))
        return _to_xml(root)
