"""Numbering registry for bulleted and ordered lists.

Every list in a document shares one of exactly two numbering definitions:
one for bulleted lists and one for ordered lists.  The nesting depth is
carried on each list item (``w:ilvl``), never on the definition, so two
unrelated bulleted lists reference the same ``w:numId``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class NumberingFamily(Enum):
    BULLET = "bullet"
    ORDERED = "ordered"


@dataclass(frozen=True)
class MarkerStyle:
    """How the marker of one list level looks.

    ``num_format`` and ``level_text`` use WordprocessingML vocabulary
    (``decimal``, ``lowerLetter``, ``lowerRoman``, ``bullet`` and
    ``%1.``-style placeholders).
    """

    num_format: str
    level_text: str
    align: str = "left"


# Word supports ilvl 0..8 inside one abstract definition.
MAX_LEVEL = 8

INDENT_STEP_TWIPS = 720
HANGING_TWIPS = 360

BULLET_GLYPH = "•"

_ORDERED_FORMATS = ("decimal", "lowerLetter", "lowerRoman")


class NumberingRegistry:
    """Fixed numbering configuration for one export.

    The registry holds no mutable state; it only answers which ``numId`` a
    family uses and which marker a level gets.
    """

    BULLET_NUM_ID = 1
    ORDERED_NUM_ID = 2

    _NUM_IDS = {
        NumberingFamily.BULLET: BULLET_NUM_ID,
        NumberingFamily.ORDERED: ORDERED_NUM_ID,
    }

    def num_id(self, family: NumberingFamily) -> int:
        return self._NUM_IDS[family]

    def abstract_num_id(self, family: NumberingFamily) -> int:
        return self._NUM_IDS[family] - 1

    @property
    def families(self) -> tuple[NumberingFamily, ...]:
        return (NumberingFamily.BULLET, NumberingFamily.ORDERED)

    def clamp_level(self, level: int) -> int:
        """Clamp a translator nesting depth to a level Word can display."""
        return max(0, min(MAX_LEVEL, level))

    def level_style(self, family: NumberingFamily, level: int) -> MarkerStyle:
        """Return the marker style of *family* at nesting depth *level*.

        Ordered lists use decimal, then lower-letter, then lower-roman for
        every deeper level.  Bulleted lists use one glyph at every depth.
        """
        level = self.clamp_level(level)
        if family is NumberingFamily.BULLET:
            return MarkerStyle(num_format="bullet", level_text=BULLET_GLYPH)
        fmt = _ORDERED_FORMATS[min(level, len(_ORDERED_FORMATS) - 1)]
        return MarkerStyle(num_format=fmt, level_text=f"%{level + 1}.")

    def indent(self, level: int) -> tuple[int, int]:
        """Return ``(left, hanging)`` indentation in twips for *level*."""
        level = self.clamp_level(level)
        return INDENT_STEP_TWIPS * (level + 1), HANGING_TWIPS
