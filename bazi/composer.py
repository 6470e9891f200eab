from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Sequence

from bazi import content, transform
from bazi.archetypes import ARCHETYPE_ORDER, Archetype, Gender, Style
from bazi.chart import PillarSlot
from bazi.classifier import Imbalance, Impact, Interaction, Profile, StrengthCategory, categorize
from bazi.elements import ELEMENT_ORDER, Element, to_localized
from bazi.errors import InvalidInput

logger = logging.getLogger(__name__)

ARCHETYPE_TITLES = {
    Archetype.FORECAST: "Forecast",
    Archetype.ENERGY: "Energy",
    Archetype.ADVICE: "Advice",
    Archetype.RITUAL: "Ritual",
    Archetype.TRANSFORMATION: "Transformation",
}


@dataclass(frozen=True)
class Recommendation:
    amulet: str
    action: str
    colors: str
    health: str
    special_note: Optional[str] = None
    balance_note: Optional[str] = None
    year_context: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "amulet": self.amulet,
            "action": self.action,
            "colors": self.colors,
            "health": self.health,
            "specialNote": self.special_note,
            "balanceNote": self.balance_note,
            "yearContext": self.year_context,
        }


@dataclass(frozen=True)
class ContentBundle:
    element: Element
    strength_category: StrengthCategory
    style: Style
    gender: Gender
    texts: Dict[Archetype, str] = field(default_factory=dict)
    recommendation: Optional[Recommendation] = None

    def to_dict(self) -> Dict:
        return {
            "element": self.element.value,
            "elementName": to_localized(self.element),
            "strengthCategory": self.strength_category.value,
            "style": self.style.value,
            "gender": self.gender.value,
            **{a.value: self.texts[a] for a in ARCHETYPE_ORDER},
            "recommendation": self.recommendation.to_dict() if self.recommendation else None,
        }


def _enum(cls, value, what: str):
    try:
        return cls(value)
    except ValueError:
        raise InvalidInput(f"Unknown {what}: {value!r}") from None


def _voice(text: str, gender: Gender, element: Element, category: StrengthCategory, style: Style,
           archetype: Optional[Archetype] = None) -> str:
    if gender is Gender.FEMALE:
        return transform.apply(text, archetype, element, category, style)
    return text


def _ordered(elements: Iterable[Element]) -> Sequence[Element]:
    wanted = set(elements)
    return [e for e in ELEMENT_ORDER if e in wanted]


def _amulet(element: Element, useful: Sequence[Element]) -> str:
    primary = useful[0] if useful else element
    symbol, material, color = content.AMULETS[primary]
    text = f"A {symbol} of {material} in {color} tones"
    if primary is not element:
        own_symbol = content.AMULETS[element][0]
        text += f", paired with a small {own_symbol} charm for your own {element.value}"
    return text + "."


def _colors(useful: Sequence[Element]) -> str:
    if not useful:
        return "Neutral tones suit you this year."
    parts = [content.COLORS[e] for e in useful]
    return "Favor " + "; ".join(parts) + " in clothing and at home."


def _special_note(interactions: Sequence[Interaction], active: PillarSlot) -> Optional[str]:
    strong = [i for i in interactions if i.impact is Impact.VERY_POSITIVE]
    if not strong:
        return None
    names = ", ".join(i.name for i in strong)
    return f"Rare harmony in your chart ({names}). {content.PILLAR_FOCUS[active]}"


def _balance_note(imbalance: Imbalance) -> Optional[str]:
    if not imbalance:
        return None
    parts = []
    excess = _ordered(imbalance.excess)
    deficient = _ordered(imbalance.deficient)
    if excess:
        parts.append("Strong presence of " + " and ".join(e.value for e in excess) + ": soften it with calm routines.")
    if deficient:
        parts.append("Little " + " and ".join(e.value for e in deficient) + " in the chart: bring in "
                     + "; ".join(content.COLORS[e] for e in deficient) + ".")
    return " ".join(parts)


def _year_context(year, year_animal) -> Optional[str]:
    if not year_animal:
        return None
    return f"{year} is the year of the {year_animal}."


def compose(
    element,
    strength_score,
    useful_elements,
    interactions,
    imbalance,
    active_pillar,
    gender,
    style,
    year,
    year_animal,
) -> Recommendation:
    element = _enum(Element, element, "element")
    gender = _enum(Gender, gender, "gender")
    style = _enum(Style, style, "style")
    active_pillar = _enum(PillarSlot, active_pillar, "pillar")
    try:
        category = categorize(float(strength_score))
    except (TypeError, ValueError):
        raise InvalidInput(f"Strength score must be numeric, got {strength_score!r}") from None
    useful = [_enum(Element, e, "element") for e in useful_elements or ()]
    imbalance = imbalance or Imbalance()

    def voiced(text, archetype=None):
        return _voice(text, gender, element, category, style, archetype) if text else text

    # matrix output is already in the requested voice
    action = content.lookup(element, category, Archetype.ADVICE, style, gender)
    health = f"Watch your {content.HEALTH[element]}. {content.HEALTH_BY_STRENGTH[category]}"

    return Recommendation(
        amulet=voiced(_amulet(element, useful)),
        action=action,
        colors=voiced(_colors(useful)),
        health=voiced(health),
        special_note=voiced(_special_note(tuple(interactions or ()), active_pillar)),
        balance_note=voiced(_balance_note(imbalance)),
        year_context=voiced(_year_context(year, year_animal)),
    )


def generate_content(profile: Profile, year, year_animal, style, gender) -> ContentBundle:
    style = _enum(Style, style, "style")
    gender = _enum(Gender, gender, "gender")
    texts = {
        a: content.lookup(profile.element, profile.strength_category, a, style, gender)
        for a in ARCHETYPE_ORDER
    }
    recommendation = compose(
        profile.element,
        profile.strength_score,
        profile.useful_elements,
        profile.interactions,
        profile.imbalance,
        profile.active_pillar,
        gender,
        style,
        year,
        year_animal,
    )
    logger.debug("content for %s/%s/%s/%s", profile.element.value, profile.strength_category.value,
                 style.value, gender.value)
    return ContentBundle(
        element=profile.element,
        strength_category=profile.strength_category,
        style=style,
        gender=gender,
        texts=texts,
        recommendation=recommendation,
    )


def format_content_for_display(bundle: ContentBundle) -> str:
    lines = [f"## {to_localized(bundle.element)} ({bundle.element.value}, {bundle.strength_category.value})", ""]
    for a in ARCHETYPE_ORDER:
        lines.append(f"### {ARCHETYPE_TITLES[a]}")
        lines.append(bundle.texts[a])
        lines.append("")

    rec = bundle.recommendation
    if rec is not None:
        lines.append("### Recommendation")
        lines.append(f"- Amulet: {rec.amulet}")
        lines.append(f"- Action: {rec.action}")
        lines.append(f"- Colors: {rec.colors}")
        lines.append(f"- Health: {rec.health}")
        if rec.special_note:
            lines.append(f"- Special: {rec.special_note}")
        if rec.balance_note:
            lines.append(f"- Balance: {rec.balance_note}")
        if rec.year_context:
            lines.append(f"- Year: {rec.year_context}")

    return "\n".join(lines).rstrip() + "\n"
