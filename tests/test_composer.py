from itertools import product

import pytest

from bazi import transform
from bazi.archetypes import Archetype, Gender, Style
from bazi.chart import PillarSlot
from bazi.classifier import Imbalance, Impact, Interaction, StrengthCategory, classify
from bazi.composer import (
    ContentBundle,
    Recommendation,
    compose,
    format_content_for_display,
    generate_content,
)
from bazi.elements import Element
from bazi.errors import InvalidInput

W, F, E, M, A = Element.WOOD, Element.FIRE, Element.EARTH, Element.METAL, Element.WATER

FULL_TRIAD = Interaction("三合", "申子辰三合水", Impact.VERY_POSITIVE,
                         (PillarSlot.YEAR, PillarSlot.MONTH, PillarSlot.DAY), A, True)
CLASH = Interaction("冲", "寅申冲", Impact.DYNAMIC, (PillarSlot.MONTH, PillarSlot.HOUR))

SCORES = {StrengthCategory.WEAK: 1.5, StrengthCategory.BALANCED: 3.0, StrengthCategory.STRONG: 4.5}


def _compose(**overrides):
    kwargs = dict(
        element=A,
        strength_score=4.5,
        useful_elements=(W, E),
        interactions=(FULL_TRIAD, CLASH),
        imbalance=Imbalance(excess=frozenset({A}), deficient=frozenset({F})),
        active_pillar=PillarSlot.DAY,
        gender=Gender.MALE,
        style=Style.POETIC,
        year=2026,
        year_animal="Fire Horse",
    )
    kwargs.update(overrides)
    return compose(**kwargs)


class TestCompose:

    def test_fields(self):
        rec = _compose()
        assert isinstance(rec, Recommendation)
        assert rec.amulet.startswith("A bamboo sprig of carved sandalwood")
        assert "golden carp" in rec.amulet
        assert rec.colors == "Favor green and teal; yellow, ochre and terracotta in clothing and at home."
        assert "kidneys" in rec.health
        assert "申子辰三合水" in rec.special_note
        assert "water" in rec.balance_note and "fire" in rec.balance_note
        assert rec.year_context == "2026 is the year of the Fire Horse."

    def test_action_comes_from_advice_template(self):
        rec = _compose()
        assert rec.action.startswith("Dominate the flood")

    def test_optional_notes_absent(self):
        rec = _compose(interactions=(CLASH,), imbalance=Imbalance(), year_animal="")
        assert rec.special_note is None
        assert rec.balance_note is None
        assert rec.year_context is None

    def test_deterministic(self):
        assert _compose() == _compose()
        assert _compose().to_dict() == _compose().to_dict()

    def test_plain_string_inputs(self):
        assert _compose(element="water", gender="male", style="poetic", active_pillar="day",
                        useful_elements=["wood", "earth"]) == _compose()

    @pytest.mark.parametrize("overrides", [
        {"element": "aether"},
        {"gender": "other"},
        {"style": "epic"},
        {"strength_score": "high"},
        {"active_pillar": "minute"},
    ])
    def test_bad_input(self, overrides):
        with pytest.raises(InvalidInput):
            _compose(**overrides)

    def test_female_voice(self):
        male = _compose()
        female = _compose(gender=Gender.FEMALE)
        assert female.action.startswith("Harmonize the flood")
        assert female.special_note.endswith("Cultivate what you need in close relationships; "
                                             "the self and partnership pillar is active.")
        assert male.special_note != female.special_note


@pytest.mark.parametrize("element, category, style, pillar", list(product(
    Element, StrengthCategory, Style, PillarSlot,
)))
def test_female_output_has_no_agency_vocabulary(element, category, style, pillar):
    rec = _compose(
        element=element,
        strength_score=SCORES[category],
        useful_elements=(F, M),
        active_pillar=pillar,
        gender=Gender.FEMALE,
        style=style,
    )
    for text in rec.to_dict().values():
        if not text:
            continue
        for phrase in transform.AGENCY_VOCABULARY:
            assert phrase not in text


class TestGenerateContent:

    def test_bundle(self, water_chart):
        profile = classify(water_chart)
        bundle = generate_content(profile, 2026, "Fire Horse", "practical", "female")
        assert isinstance(bundle, ContentBundle)
        assert set(bundle.texts) == set(Archetype)
        assert bundle.gender is Gender.FEMALE
        assert bundle.recommendation.year_context == "2026 is the year of the Fire Horse."
        d = bundle.to_dict()
        assert d["elementName"] == "Вода"
        assert d["recommendation"]["yearContext"] == "2026 is the year of the Fire Horse."

    def test_deterministic(self, water_chart):
        profile = classify(water_chart)
        a = format_content_for_display(generate_content(profile, 2026, "Fire Horse", "poetic", "male"))
        b = format_content_for_display(generate_content(profile, 2026, "Fire Horse", "poetic", "male"))
        assert a == b

    def test_display(self, water_chart):
        profile = classify(water_chart)
        text = format_content_for_display(generate_content(profile, 2026, "Fire Horse", "poetic", "male"))
        assert text.startswith("## Вода (water, balanced)")
        for title in ("### Forecast", "### Energy", "### Advice", "### Ritual", "### Transformation",
                      "### Recommendation", "- Amulet:", "- Special:", "- Balance:", "- Year:"):
            assert title in text
        assert text.endswith("\n")
