from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from bazi.chart import BaziChart, PillarSlot
from bazi.elements import (
    BRANCH_ELEM,
    BRANCH_YY,
    BRANCHES,
    CONTROLLED_BY,
    CONTROLS,
    ELEMENT_ORDER,
    GENERATED_BY,
    GENERATES,
    HIDDEN_STEMS,
    STEM_ELEM,
    STEM_YY,
    Element,
    element_of,
)

W, F, E, M, A = Element.WOOD, Element.FIRE, Element.EARTH, Element.METAL, Element.WATER

# each hidden stem counts the same here, whatever its qi weight
HIDDEN_PRESENCE = 0.3

DOMINANT_COUNT = 2.5
BREAKER_LIMIT = 1.5
VIBRATION_SHARE = 0.7

ELEMENT_GLYPH = {W: "木", F: "火", E: "土", M: "金", A: "水"}

# 甲己 土, 乙庚 金, 丙辛 水, 丁壬 木, 戊癸 火 (keyed by the lower stem index)
COMBINATION_ELEMENT = (E, M, A, W, F)


class StructureKind(str, Enum):
    TRANSFORMATION = "transformation"
    FOLLOW = "follow"
    VIBRATIONAL = "vibrational"
    RARE = "rare"
    NORMAL = "normal"


@dataclass(frozen=True)
class Structure:
    kind: StructureKind
    name: str
    useful_elements: Tuple[Element, ...] = ()
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def special(self) -> bool:
        return self.kind is not StructureKind.NORMAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "name": self.name,
            "special": self.special,
            "usefulElements": [e.value for e in self.useful_elements],
            "details": dict(self.details),
        }


# =========================================================
# Counting / support
# =========================================================
def element_count(chart: BaziChart, element: Element) -> float:
    total = 0.0
    for _, p in chart.items():
        if p.stem_element is element:
            total += 1.0
        if p.branch_element is element:
            total += 1.0
        for stem, _ in HIDDEN_STEMS[p.branch]:
            if element_of(stem) is element:
                total += HIDDEN_PRESENCE
    return round(total, 2)


def _in_branches(chart: BaziChart, element: Element) -> bool:
    for _, p in chart.items():
        if p.branch_element is element:
            return True
        if any(element_of(stem) is element for stem, _ in HIDDEN_STEMS[p.branch]):
            return True
    return False


def has_resource(chart: BaziChart) -> bool:
    resource = GENERATED_BY[chart.day.stem_element]
    return any(p.stem_element is resource for _, p in chart.items()) or _in_branches(chart, resource)


def has_companion(chart: BaziChart) -> bool:
    dm = chart.day.stem_element
    others = (chart.year, chart.month, chart.hour)
    return any(p.stem_element is dm for p in others) or _in_branches(chart, dm)


def has_root(chart: BaziChart) -> bool:
    """A branch of the day master's element hiding the day stem itself."""
    dm_stem = chart.day.stem
    for _, p in chart.items():
        if p.branch_element is chart.day.stem_element and any(s == dm_stem for s, _ in HIDDEN_STEMS[p.branch]):
            return True
    return False


def unsupported(chart: BaziChart) -> bool:
    return not (has_resource(chart) or has_companion(chart) or has_root(chart))


# =========================================================
# Funnel
# =========================================================
def _transformation(chart: BaziChart) -> Optional[Structure]:
    day = chart.day.stem_index
    partner_slot = None
    for slot in (PillarSlot.MONTH, PillarSlot.HOUR):
        if chart.pillar(slot).stem_index == (day + 5) % 10:
            partner_slot = slot
            break
    if partner_slot is None:
        return None

    partner = chart.pillar(partner_slot).stem_index
    element = COMBINATION_ELEMENT[min(day, partner) % 5]
    if chart.month.branch_element is not element:
        return None
    if not unsupported(chart):
        return None
    breaker = CONTROLLED_BY[element]
    breaker_count = element_count(chart, breaker)
    if breaker_count >= BREAKER_LIMIT:
        return None

    return Structure(
        StructureKind.TRANSFORMATION,
        f"化{ELEMENT_GLYPH[element]}格",
        (element, GENERATED_BY[element]),
        {
            "pair": chart.day.stem + chart.pillar(partner_slot).stem,
            "pillar": partner_slot.value,
            "element": element.value,
            "breakerCount": breaker_count,
        },
    )


def _follow(chart: BaziChart) -> Optional[Structure]:
    if not unsupported(chart):
        return None

    dm = chart.day.stem_element
    wealth, power, output = CONTROLS[dm], CONTROLLED_BY[dm], GENERATES[dm]
    counts = {"wealth": element_count(chart, wealth),
              "power": element_count(chart, power),
              "output": element_count(chart, output)}

    if counts["wealth"] >= DOMINANT_COUNT and counts["output"] >= 1:
        return Structure(StructureKind.FOLLOW, "从财格", (wealth, output), counts)
    if counts["power"] >= DOMINANT_COUNT:
        return Structure(StructureKind.FOLLOW, "从杀格", (power, wealth), counts)
    if counts["output"] >= DOMINANT_COUNT:
        return Structure(StructureKind.FOLLOW, "从儿格", (output, wealth), counts)
    return None


def _vibrational(chart: BaziChart) -> Optional[Structure]:
    counts = {e: element_count(chart, e) for e in ELEMENT_ORDER}
    present = sorted((e for e in ELEMENT_ORDER if counts[e] > 0.5), key=lambda e: -counts[e])
    if len(present) != 2:
        return None
    total = sum(counts.values())
    if (counts[present[0]] + counts[present[1]]) / total < VIBRATION_SHARE:
        return None
    name = "两神成象格 (" + "".join(ELEMENT_GLYPH[e] for e in present) + ")"
    return Structure(StructureKind.VIBRATIONAL, name, tuple(present),
                     {e.value: counts[e] for e in present})


def _rare(chart: BaziChart) -> Optional[Structure]:
    branches = [p.branch for _, p in chart.items()]
    for branch, n in Counter(branches).items():
        if n < 3:
            continue
        partner = BRANCHES[(BRANCHES.index(branch) + 6) % 12]
        if partner in branches:
            continue
        element = element_of(partner)
        return Structure(
            StructureKind.RARE,
            f"三{branch}缺{partner}",
            (element, GENERATED_BY[element]),
            {"branch": branch, "count": n, "clashPartner": partner},
        )
    return None


def _normal(chart: BaziChart) -> Structure:
    dm = chart.day.stem_element
    return Structure(
        StructureKind.NORMAL,
        "正格",
        (),
        {
            "companionCount": round(element_count(chart, dm) - 1, 2),
            "resourceCount": element_count(chart, GENERATED_BY[dm]),
        },
    )


FUNNEL = (_transformation, _follow, _vibrational, _rare)


def determine_card_type(chart: BaziChart) -> Structure:
    """First matching special structure, otherwise a normal chart."""
    for check in FUNNEL:
        found = check(chart)
        if found is not None:
            return found
    return _normal(chart)


# =========================================================
# Temperature balance (调候)
# =========================================================
SEASONS = (
    ("寅卯辰", "spring", "warm"),
    ("巳午未", "summer", "hot"),
    ("申酉戌", "autumn", "cool"),
    ("亥子丑", "winter", "cold"),
)

# day master -> {season temperature: balance}, anything else falls back to the default
TEMPERATURE_RULES = {
    F: ({"hot": "too_hot", "cold": "balanced"}, "moderate"),
    A: ({"cold": "too_cold", "hot": "balanced"}, "moderate"),
    E: ({"warm": "balanced", "cool": "balanced"}, "neutral"),
    M: ({"cool": "balanced", "cold": "balanced"}, "neutral"),
    W: ({"warm": "balanced", "hot": "balanced"}, "neutral"),
}


def temperature_balance(chart: BaziChart) -> Dict[str, str]:
    month_branch = chart.month.branch
    season, temperature = "unknown", "neutral"
    for branches, name, temp in SEASONS:
        if month_branch in branches:
            season, temperature = name, temp
            break

    dm = chart.day.stem_element
    rules, default = TEMPERATURE_RULES[dm]
    balance = rules.get(temperature, default)
    return {
        "balance": balance,
        "season": season,
        "seasonTemperature": temperature,
        "description": f"{dm.value.capitalize()} day master born in a {temperature} {season} month ({month_branch}).",
    }


# =========================================================
# Noble people (天乙贵人)
# =========================================================
NOBLE_BRANCHES = {
    "甲": ("子", "申"), "乙": ("子", "申"),
    "丙": ("亥", "酉"), "丁": ("亥", "酉"),
    "戊": ("丑", "未"), "己": ("子", "申"),
    "庚": ("丑", "未"), "辛": ("午", "寅"),
    "壬": ("卯", "巳"), "癸": ("卯", "巳"),
}


def noble_people(chart: BaziChart) -> List[Dict[str, Any]]:
    out = []
    for branch in NOBLE_BRANCHES[chart.day.stem]:
        slot = next((s for s, p in chart.items() if p.branch == branch), None)
        out.append({
            "branch": branch,
            "element": element_of(branch).value,
            "pillar": slot.value if slot else None,
            "present": slot is not None,
        })
    return out


# =========================================================
# Ten gods (十神)
# =========================================================
def ten_god(day_stem_idx: int, target_elem: Element, target_yy: str) -> str:
    day_elem = STEM_ELEM[day_stem_idx]
    same_yy = (STEM_YY[day_stem_idx] == target_yy)

    if target_elem == day_elem:
        return "比肩" if same_yy else "劫财"
    if GENERATES[day_elem] == target_elem:
        return "食神" if same_yy else "伤官"
    if CONTROLS[day_elem] == target_elem:
        return "偏财" if same_yy else "正财"
    if CONTROLS[target_elem] == day_elem:
        return "七杀" if same_yy else "正官"
    return "偏印" if same_yy else "正印"


def ten_gods(chart: BaziChart) -> Dict[str, Dict[str, str]]:
    d_stem = chart.day.stem_index
    out = {}
    for slot, p in chart.items():
        b = p.branch_index
        out[slot.value] = {
            "stem": "日主" if slot is PillarSlot.DAY else ten_god(d_stem, p.stem_element, STEM_YY[p.stem_index]),
            "branch": ten_god(d_stem, BRANCH_ELEM[b], BRANCH_YY[b]),
        }
    return out
