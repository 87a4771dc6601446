"""Style presets for the DOCX renderer.

A preset maps semantic style names (``title``, ``heading_1`` .. ``heading_6``,
``body``, ``blockquote``, ``list_item``, ``horizontal_rule``, ``image``,
``placeholder``) to a font and a paragraph layout.  Block spacing comes from
the preset by block kind and cannot be set per block.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

PT_TO_TWIPS = 20


def _twips(points: float) -> int:
    return int(round(points * PT_TO_TWIPS))


@dataclass(frozen=True)
class FontSpec:
    """Character formatting applied to every run of a paragraph style."""

    name: str = "Calibri"
    size_pt: float = 12.0
    bold: bool = False
    italic: bool = False
    underline: bool = False
    color: str = "000000"

    @property
    def size_half_points(self) -> int:
        """Size in ``w:sz`` units."""
        return int(round(self.size_pt * 2))


@dataclass(frozen=True)
class ParaSpec:
    align: str = "left"
    left_margin_pt: float = 0.0
    line_spacing_percent: int = 100
    space_before_pt: float = 0.0
    space_after_pt: float = 15.0

    @property
    def left_margin_twips(self) -> int:
        return _twips(self.left_margin_pt)

    @property
    def space_before_twips(self) -> int:
        return _twips(self.space_before_pt)

    @property
    def space_after_twips(self) -> int:
        return _twips(self.space_after_pt)

    @property
    def line_twips(self) -> int:
        """``w:line`` for ``lineRule="auto"``, where 240 is single spacing."""
        return int(round(self.line_spacing_percent * 240 / 100))


@dataclass(frozen=True)
class StyleDef:
    name: str
    font: FontSpec
    para: ParaSpec


@dataclass(frozen=True)
class _Preset:
    """Knobs that distinguish one preset from another.

    The three heading tuples are indexed by ``level - 1``.
    """

    font: FontSpec
    para: ParaSpec
    heading_sizes: tuple[float, ...]
    heading_before: tuple[float, ...]
    heading_after: tuple[float, ...]
    quote_indent_pt: float
    heading_color: str = "000000"

    def styles(self) -> dict[str, StyleDef]:
        font, para = self.font, self.para
        styles = {"body": StyleDef("body", font, para)}

        for level in range(1, 7):
            name = f"heading_{level}"
            styles[name] = StyleDef(
                name,
                replace(font, size_pt=self.heading_sizes[level - 1], bold=True,
                        color=self.heading_color),
                replace(para, align="left",
                        space_before_pt=self.heading_before[level - 1],
                        space_after_pt=self.heading_after[level - 1]),
            )

        h1 = styles["heading_1"]
        styles["title"] = StyleDef(
            "title", h1.font, replace(h1.para, space_before_pt=0.0, space_after_pt=20.0),
        )
        styles["blockquote"] = StyleDef(
            "blockquote",
            replace(font, italic=True, color="555555"),
            replace(para, left_margin_pt=self.quote_indent_pt),
        )
        styles["list_item"] = StyleDef(
            "list_item", font, replace(para, space_after_pt=para.space_after_pt / 3),
        )
        styles["horizontal_rule"] = StyleDef(
            "horizontal_rule", font, replace(para, space_before_pt=6.0, space_after_pt=6.0),
        )
        styles["image"] = StyleDef(
            "image", font, replace(para, space_before_pt=5.0, space_after_pt=15.0),
        )
        styles["placeholder"] = StyleDef(
            "placeholder", font, replace(para, space_after_pt=5.0),
        )
        return styles


_PRESETS = {
    "default": _Preset(
        font=FontSpec("Calibri", 12.0),
        para=ParaSpec("left", space_after_pt=15.0),
        heading_sizes=(20.0, 16.0, 14.0, 13.0, 12.0, 12.0),
        heading_before=(12.0, 10.0, 8.0, 6.0, 6.0, 6.0),
        heading_after=(8.0, 6.0, 6.0, 4.0, 4.0, 4.0),
        quote_indent_pt=36.0,
    ),
    # serif, justified, double spaced
    "academic": _Preset(
        font=FontSpec("Times New Roman", 12.0),
        para=ParaSpec("both", line_spacing_percent=200, space_after_pt=8.0),
        heading_sizes=(24.0, 20.0, 16.0, 13.0, 12.0, 12.0),
        heading_before=(20.0, 16.0, 14.0, 12.0, 10.0, 8.0),
        heading_after=(12.0, 10.0, 8.0, 8.0, 6.0, 6.0),
        quote_indent_pt=48.0,
    ),
    "business": _Preset(
        font=FontSpec("Arial", 10.0),
        para=ParaSpec("left", line_spacing_percent=115, space_after_pt=6.0),
        heading_sizes=(18.0, 15.0, 13.0, 11.0, 10.5, 10.0),
        heading_before=(14.0, 12.0, 10.0, 8.0, 6.0, 6.0),
        heading_after=(8.0, 6.0, 4.0, 4.0, 4.0, 4.0),
        quote_indent_pt=24.0,
        heading_color="1F3864",
    ),
    "minimal": _Preset(
        font=FontSpec("Helvetica Neue", 10.5),
        para=ParaSpec("left", line_spacing_percent=110, space_after_pt=4.0),
        heading_sizes=(16.0, 14.0, 12.0, 11.0, 10.5, 10.5),
        heading_before=(10.0, 8.0, 6.0, 6.0, 4.0, 4.0),
        heading_after=(4.0, 4.0, 2.0, 2.0, 2.0, 2.0),
        quote_indent_pt=18.0,
    ),
}


class StyleManager:
    """Resolve semantic style names for one preset.

    Usage::

        sm = StyleManager("academic")
        sm.get_style("blockquote").para.left_margin_twips
    """

    PRESETS = list(_PRESETS)

    def __init__(self, preset: str = "default") -> None:
        if preset not in _PRESETS:
            raise ValueError(
                f"Unknown preset {preset!r}. Choose from: {', '.join(_PRESETS)}"
            )
        self.preset = preset
        self._styles = _PRESETS[preset].styles()

    def get_style(self, name: str) -> StyleDef:
        """Style for *name*; unknown names fall back to ``body``."""
        return self._styles.get(name, self._styles["body"])

    def get_heading(self, level: int) -> StyleDef:
        return self.get_style(f"heading_{max(1, min(6, level))}")
