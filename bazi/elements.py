from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple


class Element(str, Enum):
    WOOD = "wood"
    FIRE = "fire"
    EARTH = "earth"
    METAL = "metal"
    WATER = "water"


ELEMENT_ORDER = (Element.WOOD, Element.FIRE, Element.EARTH, Element.METAL, Element.WATER)

# =========================================================
# Stems / branches
# =========================================================
STEMS = ["甲", "乙", "丙", "丁", "戊", "己", "庚", "辛", "壬", "癸"]
BRANCHES = ["子", "丑", "寅", "卯", "辰", "巳", "午", "未", "申", "酉", "戌", "亥"]

W, F, E, M, A = Element.WOOD, Element.FIRE, Element.EARTH, Element.METAL, Element.WATER

STEM_ELEM = [W, W, F, F, E, E, M, M, A, A]
STEM_YY = ["yang", "yin", "yang", "yin", "yang", "yin", "yang", "yin", "yang", "yin"]

BRANCH_ELEM = [A, E, W, W, E, F, F, E, M, M, E, A]
BRANCH_YY = ["yang", "yin", "yang", "yin", "yang", "yin", "yang", "yin", "yang", "yin", "yang", "yin"]

BRANCH_ANIMALS = [
    "Rat", "Ox", "Tiger", "Rabbit", "Dragon", "Snake",
    "Horse", "Goat", "Monkey", "Rooster", "Dog", "Pig",
]

# 藏干: (stem, weight), main qi first
HIDDEN_STEMS: Dict[str, Tuple[Tuple[str, float], ...]] = {
    "子": (("癸", 1.0),),
    "丑": (("己", 0.6), ("癸", 0.3), ("辛", 0.1)),
    "寅": (("甲", 0.7), ("丙", 0.2), ("戊", 0.1)),
    "卯": (("乙", 1.0),),
    "辰": (("戊", 0.6), ("乙", 0.3), ("癸", 0.1)),
    "巳": (("丙", 0.7), ("戊", 0.2), ("庚", 0.1)),
    "午": (("丁", 0.7), ("己", 0.3)),
    "未": (("己", 0.6), ("丁", 0.3), ("乙", 0.1)),
    "申": (("庚", 0.7), ("壬", 0.2), ("戊", 0.1)),
    "酉": (("辛", 1.0),),
    "戌": (("戊", 0.6), ("辛", 0.3), ("丁", 0.1)),
    "亥": (("壬", 0.7), ("甲", 0.3)),
}

# =========================================================
# Five-element cycles
# =========================================================
# 相生: key generates value
GENERATES = {W: F, F: E, E: M, M: A, A: W}
# 相克: key controls value
CONTROLS = {W: E, E: A, A: F, F: M, M: W}

GENERATED_BY = {v: k for k, v in GENERATES.items()}
CONTROLLED_BY = {v: k for k, v in CONTROLS.items()}

# =========================================================
# Element Mapper
# =========================================================
LOCALIZED_NAMES = {
    Element.WOOD: "Дерево",
    Element.FIRE: "Огонь",
    Element.EARTH: "Земля",
    Element.METAL: "Металл",
    Element.WATER: "Вода",
}
_KEYS_BY_NAME = {name: key for key, name in LOCALIZED_NAMES.items()}


def to_key(localized_name: Optional[str]) -> Optional[Element]:
    """Localized (or english) element name -> Element; None when unknown."""
    if not isinstance(localized_name, str):
        return None
    name = localized_name.strip()
    if name in _KEYS_BY_NAME:
        return _KEYS_BY_NAME[name]
    try:
        return Element(name.lower())
    except ValueError:
        return None


def to_localized(element: Element) -> str:
    return LOCALIZED_NAMES[Element(element)]


def element_of(glyph: str) -> Optional[Element]:
    """Element of a stem or branch glyph."""
    if glyph in STEMS:
        return STEM_ELEM[STEMS.index(glyph)]
    if glyph in BRANCHES:
        return BRANCH_ELEM[BRANCHES.index(glyph)]
    return None
