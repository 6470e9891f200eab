from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from bazi.chart import BaziChart, PillarSlot
from bazi.elements import (
    CONTROLLED_BY,
    ELEMENT_ORDER,
    GENERATED_BY,
    GENERATES,
    HIDDEN_STEMS,
    Element,
    element_of,
)
from bazi.errors import InvalidChart
from bazi.structures import Structure, determine_card_type, noble_people, temperature_balance, ten_gods

W, F, E, M, A = Element.WOOD, Element.FIRE, Element.EARTH, Element.METAL, Element.WATER


class StrengthCategory(str, Enum):
    WEAK = "weak"
    BALANCED = "balanced"
    STRONG = "strong"


class Impact(str, Enum):
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    POSITIVE = "positive"
    DYNAMIC = "dynamic"
    VERY_POSITIVE = "very_positive"

    @property
    def rank(self) -> int:
        return IMPACT_RANK[self]


IMPACT_RANK = {
    Impact.NEUTRAL: 1,
    Impact.POSITIVE: 2,
    Impact.NEGATIVE: 3,
    Impact.DYNAMIC: 4,
    Impact.VERY_POSITIVE: 5,
}

# score < WEAK_BELOW -> weak; score > STRONG_ABOVE -> strong; otherwise balanced
WEAK_BELOW = 2.0
STRONG_ABOVE = 4.0

MIN_SCORE = 1.0
MAX_SCORE = 5.0


def categorize(score: float) -> StrengthCategory:
    if score < WEAK_BELOW:
        return StrengthCategory.WEAK
    if score > STRONG_ABOVE:
        return StrengthCategory.STRONG
    return StrengthCategory.BALANCED


# =========================================================
# Interaction tables
# =========================================================
# 六合
SIX_COMBINATIONS = {
    frozenset("子丑"): ("子丑合", E),
    frozenset("寅亥"): ("寅亥合", W),
    frozenset("卯戌"): ("卯戌合", F),
    frozenset("辰酉"): ("辰酉合", M),
    frozenset("巳申"): ("巳申合", A),
    frozenset("午未"): ("午未合", E),
}

# 六冲
CLASHES = {
    frozenset("子午"): "子午冲",
    frozenset("丑未"): "丑未冲",
    frozenset("寅申"): "寅申冲",
    frozenset("卯酉"): "卯酉冲",
    frozenset("辰戌"): "辰戌冲",
    frozenset("巳亥"): "巳亥冲",
}

# 刑 (pairs; self punishment handled separately)
PUNISHMENTS = {
    frozenset("寅巳"): "寅刑巳",
    frozenset("巳申"): "巳刑申",
    frozenset("申寅"): "申刑寅",
    frozenset("丑戌"): "丑刑戌",
    frozenset("戌未"): "戌刑未",
    frozenset("未丑"): "未刑丑",
    frozenset("子卯"): "子刑卯",
}
SELF_PUNISHING = ("辰", "午", "酉", "亥")

# 六害
HARMS = {
    frozenset("子未"): "子害未",
    frozenset("丑午"): "丑害午",
    frozenset("寅巳"): "寅害巳",
    frozenset("卯辰"): "卯害辰",
    frozenset("申亥"): "申害亥",
    frozenset("酉戌"): "酉害戌",
}

# 天干五合
STEM_COMBINATIONS = {
    frozenset("甲己"): ("甲己合化土", E),
    frozenset("乙庚"): ("乙庚合化金", M),
    frozenset("丙辛"): ("丙辛合化水", A),
    frozenset("丁壬"): ("丁壬合化木", W),
    frozenset("戊癸"): ("戊癸合化火", F),
}

# 三合 and 三会
TRIADS = (
    ("三合", ("申", "子", "辰"), "申子辰三合水", A),
    ("三合", ("亥", "卯", "未"), "亥卯未三合木", W),
    ("三合", ("寅", "午", "戌"), "寅午戌三合火", F),
    ("三合", ("巳", "酉", "丑"), "巳酉丑三合金", M),
    ("三会", ("寅", "卯", "辰"), "寅卯辰三会木", W),
    ("三会", ("巳", "午", "未"), "巳午未三会火", F),
    ("三会", ("申", "酉", "戌"), "申酉戌三会金", M),
    ("三会", ("亥", "子", "丑"), "亥子丑三会水", A),
)

# Season table for the day master, first match wins (旺 相 休 囚 死)
SEASON_RULES = {
    W: (("寅卯辰", 5), ("亥子丑", 4), ("申酉戌", 3), ("巳午未", 2), ("辰戌丑未", 1)),
    F: (("巳午未", 5), ("寅卯辰", 4), ("亥子丑", 3), ("申酉戌", 2), ("辰戌丑未", 1)),
    E: (("辰戌丑未", 5), ("巳午未", 4), ("寅卯辰", 3), ("亥子丑", 2), ("申酉戌", 1)),
    M: (("申酉戌", 5), ("辰戌丑未", 4), ("巳午未", 3), ("寅卯辰", 2), ("亥子丑", 1)),
    A: (("亥子丑", 5), ("申酉戌", 4), ("辰戌丑未", 3), ("巳午未", 2), ("寅卯辰", 1)),
}

ROOT_BRANCHES = {
    W: "寅卯辰",
    F: "巳午未",
    E: "辰戌丑未",
    M: "申酉戌",
    A: "亥子丑",
}


@dataclass(frozen=True)
class Interaction:
    kind: str
    name: str
    impact: Impact
    pillars: Tuple[PillarSlot, ...]
    element: Optional[Element] = None
    complete: Optional[bool] = None

    @property
    def pillar(self) -> PillarSlot:
        """The most significant pillar the interaction touches."""
        return max(self.pillars, key=lambda s: s.priority)

    def to_dict(self) -> Dict:
        out = {
            "type": self.kind,
            "name": self.name,
            "impact": self.impact.value,
            "pillar": self.pillar.value,
            "pillars": [p.value for p in self.pillars],
        }
        if self.element is not None:
            out["element"] = self.element.value
        if self.complete is not None:
            out["complete"] = self.complete
        return out


@dataclass(frozen=True)
class Imbalance:
    excess: FrozenSet[Element] = frozenset()
    deficient: FrozenSet[Element] = frozenset()

    def __bool__(self):
        return bool(self.excess or self.deficient)

    def to_dict(self) -> Dict:
        return {
            "excess": [e.value for e in ELEMENT_ORDER if e in self.excess],
            "deficient": [e.value for e in ELEMENT_ORDER if e in self.deficient],
        }


@dataclass(frozen=True)
class Profile:
    element: Element
    strength_score: float
    strength_category: StrengthCategory
    useful_elements: Tuple[Element, ...]
    harmful_elements: Tuple[Element, ...]
    interactions: Tuple[Interaction, ...]
    imbalance: Imbalance
    active_pillar: PillarSlot
    element_balance: Dict[Element, float] = field(default_factory=dict)
    strength_details: Dict[str, int] = field(default_factory=dict)
    structure: Optional[Structure] = None
    temperature: Dict[str, str] = field(default_factory=dict)
    noble_people: Tuple[Dict[str, Any], ...] = ()
    ten_gods: Dict[str, Dict[str, str]] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "element": self.element.value,
            "strength": round(self.strength_score, 2),
            "strengthCategory": self.strength_category.value,
            "strengthDetails": dict(self.strength_details),
            "usefulElements": [e.value for e in self.useful_elements],
            "harmfulElements": [e.value for e in self.harmful_elements],
            "interactions": [i.to_dict() for i in self.interactions],
            "imbalance": self.imbalance.to_dict(),
            "activePillar": self.active_pillar.value,
            "elementBalance": {e.value: round(self.element_balance.get(e, 0.0), 2) for e in ELEMENT_ORDER},
            "cardType": self.structure.to_dict() if self.structure else None,
            "temperatureBalance": dict(self.temperature),
            "noblePeople": [dict(n) for n in self.noble_people],
            "tenGods": {k: dict(v) for k, v in self.ten_gods.items()},
        }


# =========================================================
# Strength
# =========================================================
def _element_weight(chart: BaziChart, target: Element) -> float:
    """Stems and branches count 1.0, hidden stems by their weight."""
    total = 0.0
    for _, p in chart.items():
        if p.stem_element == target:
            total += 1.0
        if p.branch_element == target:
            total += 1.0
        for stem, weight in HIDDEN_STEMS[p.branch]:
            if element_of(stem) == target:
                total += weight
    return total


def strength_details(chart: BaziChart) -> Dict[str, int]:
    dm = chart.day.stem_element
    month_branch = chart.month.branch

    season = 3
    for branches, score in SEASON_RULES[dm]:
        if month_branch in branches:
            season = score
            break

    roots = 0.0
    for _, p in chart.items():
        if p.branch in ROOT_BRANCHES[dm]:
            roots += 1
        for stem, weight in HIDDEN_STEMS[p.branch]:
            if element_of(stem) == dm:
                roots += weight * 0.5
    if roots == 0:
        root = 1
    elif roots < 1:
        root = 2
    elif roots < 2:
        root = 3
    elif roots < 3:
        root = 4
    else:
        root = 5

    support_count = _element_weight(chart, GENERATED_BY[dm])
    if support_count == 0:
        support = 1
    elif support_count < 2:
        support = 3
    elif support_count < 4:
        support = 4
    else:
        support = 5

    control_count = _element_weight(chart, CONTROLLED_BY[dm])
    if control_count == 0:
        control = 5
    elif control_count < 2:
        control = 3
    elif control_count < 4:
        control = 2
    else:
        control = 1

    return {"season": season, "root": root, "support": support, "control": control}


def strength_score(chart: BaziChart) -> float:
    d = strength_details(chart)
    score = d["season"] * 0.4 + d["root"] * 0.3 + d["support"] * 0.2 + d["control"] * 0.1
    return round(min(MAX_SCORE, max(MIN_SCORE, score)), 2)


def useful_elements(element: Element, category: StrengthCategory) -> Tuple[Tuple[Element, ...], Tuple[Element, ...]]:
    """(useful, harmful) for a day master of the given strength."""
    support = GENERATED_BY[element]
    drain = GENERATES[element]
    control = CONTROLLED_BY[element]
    if category is StrengthCategory.WEAK:
        return (support, element), (drain, control)
    if category is StrengthCategory.STRONG:
        return (drain, control), (support, element)
    return (support, control), (drain,)


# =========================================================
# Interactions
# =========================================================
def detect_interactions(chart: BaziChart) -> Tuple[Interaction, ...]:
    found: List[Interaction] = []
    slots = list(chart.items())

    for (s1, p1), (s2, p2) in combinations(slots, 2):
        pair = frozenset((p1.branch, p2.branch))
        pillars = (s1, s2)
        if pair in SIX_COMBINATIONS:
            name, elem = SIX_COMBINATIONS[pair]
            found.append(Interaction("合", name, Impact.POSITIVE, pillars, elem))
        if pair in CLASHES:
            found.append(Interaction("冲", CLASHES[pair], Impact.DYNAMIC, pillars))
        if pair in PUNISHMENTS:
            found.append(Interaction("刑", PUNISHMENTS[pair], Impact.NEGATIVE, pillars))
        if pair in HARMS:
            found.append(Interaction("害", HARMS[pair], Impact.NEGATIVE, pillars))

        stems = frozenset((p1.stem, p2.stem))
        if stems in STEM_COMBINATIONS:
            name, elem = STEM_COMBINATIONS[stems]
            found.append(Interaction("合化", name, Impact.POSITIVE, pillars, elem))

    for branch in SELF_PUNISHING:
        hits = tuple(s for s, p in slots if p.branch == branch)
        if len(hits) >= 2:
            found.append(Interaction("刑", f"{branch}自刑", Impact.NEGATIVE, hits))

    for kind, members, name, elem in TRIADS:
        hits = tuple(s for s, p in slots if p.branch in members)
        present = {p.branch for _, p in slots if p.branch in members}
        if len(present) >= 2:
            complete = len(present) == 3
            impact = Impact.VERY_POSITIVE if complete else Impact.POSITIVE
            found.append(Interaction(kind, name, impact, hits, elem, complete))

    return tuple(found)


def active_pillar(interactions: Tuple[Interaction, ...]) -> PillarSlot:
    if not interactions:
        return PillarSlot.DAY
    best = max(interactions, key=lambda i: (i.impact.rank, i.pillar.priority))
    return best.pillar


# =========================================================
# Balance
# =========================================================
def element_balance(chart: BaziChart) -> Dict[Element, float]:
    return {e: round(_element_weight(chart, e), 2) for e in ELEMENT_ORDER}


def detect_imbalance(balance: Dict[Element, float]) -> Imbalance:
    avg = sum(balance.values()) / len(ELEMENT_ORDER)
    excess = frozenset(e for e, v in balance.items() if v > avg * 1.5)
    deficient = frozenset(e for e, v in balance.items() if v < avg * 0.7)
    return Imbalance(excess=excess, deficient=deficient)


# =========================================================
# Entry point
# =========================================================
def classify(chart: BaziChart, score: Optional[float] = None) -> Profile:
    if not isinstance(chart, BaziChart):
        raise InvalidChart(f"Expected BaziChart, got {type(chart).__name__}")

    element = chart.day.stem_element
    details = strength_details(chart)
    if score is None:
        score = strength_score(chart)
    try:
        score = float(score)
    except (TypeError, ValueError):
        raise InvalidChart(f"Strength score must be numeric, got {score!r}") from None
    if math.isnan(score):
        raise InvalidChart("Strength score is NaN")

    category = categorize(score)
    useful, harmful = useful_elements(element, category)
    # a special structure decides the useful elements on its own
    structure = determine_card_type(chart)
    if structure.special:
        useful = structure.useful_elements
        harmful = tuple(e for e in ELEMENT_ORDER if e not in useful)
    interactions = detect_interactions(chart)
    balance = element_balance(chart)

    return Profile(
        element=element,
        strength_score=score,
        strength_category=category,
        useful_elements=useful,
        harmful_elements=harmful,
        interactions=interactions,
        imbalance=detect_imbalance(balance),
        active_pillar=active_pillar(interactions),
        element_balance=balance,
        strength_details=details,
        structure=structure,
        temperature=temperature_balance(chart),
        noble_people=tuple(noble_people(chart)),
        ten_gods=ten_gods(chart),
    )
