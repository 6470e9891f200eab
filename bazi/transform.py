from __future__ import annotations

import re
from dataclasses import dataclass
from functools import reduce
from typing import Callable, Optional, Tuple

from bazi.archetypes import Archetype, Style
from bazi.elements import Element


@dataclass(frozen=True)
class RuleContext:
    archetype: Optional[str] = None
    element: Optional[str] = None
    strength: Optional[str] = None
    style: Optional[str] = None


Predicate = Callable[[RuleContext], bool]


def always(ctx: RuleContext) -> bool:
    return True


def for_element(element: Element) -> Predicate:
    return lambda ctx: ctx.element == element


def for_archetype(archetype: Archetype) -> Predicate:
    return lambda ctx: ctx.archetype == archetype


def for_style(style: Style) -> Predicate:
    return lambda ctx: ctx.style == style


def for_strength(strength: str) -> Predicate:
    return lambda ctx: ctx.strength == strength


@dataclass(frozen=True)
class Rule:
    pattern: "re.Pattern[str]"
    replacement: str
    eligible: Predicate = always

    def __call__(self, text: str, ctx: RuleContext) -> str:
        if not self.eligible(ctx):
            return text
        return self.pattern.sub(self.replacement, text)


def literal(phrase: str, replacement: str, eligible: Predicate = always) -> Rule:
    return Rule(re.compile(re.escape(phrase)), replacement, eligible)


def regex(pattern: str, replacement: str, eligible: Predicate = always) -> Rule:
    return Rule(re.compile(pattern), replacement, eligible)


# Order is behaviour: phrases before the single words they contain.
# Plain substring matching, so "assertive" becomes "cultivateive".
RULES: Tuple[Rule, ...] = (
    # agency -> receptivity
    literal("Take control of", "Stay attentive to"),
    literal("take control of", "stay attentive to"),
    literal("Take the lead", "Set the tone"),
    literal("take the lead", "set the tone"),
    literal("Assert", "Cultivate"),
    literal("assert", "cultivate"),
    literal("Control", "Observe"),
    literal("control", "observe"),
    literal("Expand", "Deepen"),
    literal("expand", "deepen"),
    literal("Conquer", "Attract"),
    literal("conquer", "attract"),
    literal("Dominate", "Harmonize"),
    literal("dominate", "harmonize"),
    literal("Seize", "Welcome"),
    literal("seize", "welcome"),
    literal("Push", "Guide"),
    literal("push", "guide"),
    literal("competitors", "allies"),
    literal("Compete", "Collaborate"),
    literal("compete", "collaborate"),

    # element imagery
    literal("oak", "willow", for_element(Element.WOOD)),
    literal("cedar", "blossoming cherry", for_element(Element.WOOD)),
    literal("torch", "candle", for_element(Element.FIRE)),
    literal("bonfire", "hearth", for_element(Element.FIRE)),
    literal("mountain", "garden", for_element(Element.EARTH)),
    literal("fortress", "home", for_element(Element.EARTH)),
    literal("sword", "mirror", for_element(Element.METAL)),
    literal("blade", "bell", for_element(Element.METAL)),
    literal("ocean", "spring", for_element(Element.WATER)),
    literal("waterfall", "stream", for_element(Element.WATER)),

    # archetype phrasing
    regex(r"\bFocus on\b", "Gently focus on", for_archetype(Archetype.ADVICE)),
    regex(r"(?<![Gg]ently )\bfocus on\b", "gently focus on", for_archetype(Archetype.ADVICE)),
    literal("at dawn", "at dusk", for_archetype(Archetype.RITUAL)),
    literal("At dawn", "At dusk", for_archetype(Archetype.RITUAL)),
    literal("morning", "evening", for_archetype(Archetype.RITUAL)),
    regex(r"(?<!inner )\bpower\b", "inner power", for_archetype(Archetype.TRANSFORMATION)),

    # style phrasing
    literal("warrior", "keeper", for_style(Style.POETIC)),
    literal("Go all in", "Pace yourself", for_style(Style.PRACTICAL)),
    literal("hustle", "steady rhythm", for_style(Style.PRACTICAL)),

    # strength phrasing
    literal("full force", "quiet strength", for_strength("strong")),
)

# Phrases no female-voiced text keeps once the rules have run
AGENCY_VOCABULARY: Tuple[str, ...] = tuple(
    rule.pattern.pattern.replace("\\", "")
    for rule in RULES
    if rule.eligible is always
)


def apply(text, archetype=None, element=None, strength=None, style=None):
    """Rewrite a male-voiced template into the female voice.

    Non-string input is returned untouched; string input never raises.
    """
    if not isinstance(text, str) or not text:
        return text
    ctx = RuleContext(
        archetype=_value(archetype),
        element=_value(element),
        strength=_value(strength),
        style=_value(style),
    )
    return reduce(lambda acc, rule: rule(acc, ctx), RULES, text)


def _value(v) -> Optional[str]:
    return getattr(v, "value", v)
