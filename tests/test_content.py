from itertools import product

import pytest

from bazi import content, transform
from bazi.archetypes import Archetype, Gender, Style
from bazi.classifier import StrengthCategory
from bazi.chart import PillarSlot
from bazi.elements import Element
from bazi.errors import MissingTemplate


ALL_COORDINATES = list(product(Element, StrengthCategory, Archetype, Style, Gender))


def test_matrix_is_complete():
    assert len(ALL_COORDINATES) == 300
    assert content.missing_coordinates() == []
    assert len(content.TEMPLATES) == 300


@pytest.mark.parametrize("coordinate", ALL_COORDINATES, ids=lambda c: "-".join(x.value for x in c))
def test_lookup_non_empty(coordinate):
    text = content.lookup(*coordinate)
    assert isinstance(text, str)
    assert text.strip()


def test_lookup_accepts_plain_strings():
    assert content.lookup("wood", "weak", "advice", "poetic", "male") == \
        content.lookup(Element.WOOD, StrengthCategory.WEAK, Archetype.ADVICE, Style.POETIC, Gender.MALE)


@pytest.mark.parametrize("coordinate", [
    ("aether", "weak", "advice", "poetic", "male"),
    ("wood", "medium", "advice", "poetic", "male"),
    ("wood", "weak", "prophecy", "poetic", "male"),
    ("wood", "weak", "advice", "epic", "male"),
    ("wood", "weak", "advice", "poetic", "other"),
])
def test_unknown_coordinate(coordinate):
    with pytest.raises(MissingTemplate) as exc:
        content.lookup(*coordinate)
    assert exc.value.coordinate == coordinate


def test_matrix_is_read_only():
    with pytest.raises(TypeError):
        content.TEMPLATES[("wood", "weak", "advice", "poetic", "male")] = "x"


def test_female_derived_from_male():
    for e, s, a, st in product(Element, StrengthCategory, Archetype, Style):
        male = content.lookup(e, s, a, st, Gender.MALE)
        female = content.lookup(e, s, a, st, Gender.FEMALE)
        assert female == transform.apply(male, a, e, s, st)


def test_female_voice_differs_where_rules_apply():
    male = content.lookup(Element.METAL, StrengthCategory.STRONG, Archetype.ADVICE, Style.PRACTICAL, Gender.MALE)
    female = content.lookup(Element.METAL, StrengthCategory.STRONG, Archetype.ADVICE, Style.PRACTICAL, Gender.FEMALE)
    assert male.startswith("Focus on listening. Conquer")
    assert female.startswith("Gently focus on listening. Attract")


def test_female_templates_free_of_agency_vocabulary():
    for (e, s, a, st, g), text in content.TEMPLATES.items():
        if g is not Gender.FEMALE:
            continue
        for phrase in transform.AGENCY_VOCABULARY:
            assert phrase not in text, (e, s, a, st, phrase)


def test_male_templates_avoid_accidental_matches():
    # words the rules would rewrite mid-token
    for key, text in content.TEMPLATES.items():
        for word in ("assertive", "uncontrolled", "soak", "cloak", "pushy"):
            assert word not in text, key


def test_auxiliary_tables_cover_everything():
    for e in Element:
        assert len(content.AMULETS[e]) == 3
        assert content.COLORS[e]
        assert content.HEALTH[e]
    for s in StrengthCategory:
        assert content.HEALTH_BY_STRENGTH[s]
    for slot in PillarSlot:
        assert content.PILLAR_FOCUS[slot]
