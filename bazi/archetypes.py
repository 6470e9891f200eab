from __future__ import annotations

from enum import Enum


class Archetype(str, Enum):
    FORECAST = "forecast"
    ENERGY = "energy"
    ADVICE = "advice"
    RITUAL = "ritual"
    TRANSFORMATION = "transformation"


class Style(str, Enum):
    POETIC = "poetic"
    PRACTICAL = "practical"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


ARCHETYPE_ORDER = tuple(Archetype)
STYLE_ORDER = tuple(Style)
GENDER_ORDER = tuple(Gender)
