from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Sequence, Tuple

from bazi.elements import BRANCHES, STEMS, STEM_ELEM, STEM_YY, BRANCH_ELEM, Element
from bazi.errors import InvalidChart


class PillarSlot(str, Enum):
    YEAR = "year"
    MONTH = "month"
    DAY = "day"
    HOUR = "hour"

    @property
    def priority(self) -> int:
        """Higher wins when two pillars carry equally strong interactions."""
        return SLOT_PRIORITY[self]

    @property
    def domain(self) -> str:
        return SLOT_DOMAINS[self]


SLOT_ORDER = (PillarSlot.YEAR, PillarSlot.MONTH, PillarSlot.DAY, PillarSlot.HOUR)

# day > month > year > hour
SLOT_PRIORITY = {
    PillarSlot.DAY: 4,
    PillarSlot.MONTH: 3,
    PillarSlot.YEAR: 2,
    PillarSlot.HOUR: 1,
}

SLOT_DOMAINS = {
    PillarSlot.YEAR: "external world",
    PillarSlot.MONTH: "career",
    PillarSlot.DAY: "self and partnership",
    PillarSlot.HOUR: "private life",
}


@dataclass(frozen=True)
class Pillar:
    stem: str
    branch: str

    def __post_init__(self):
        if self.stem not in STEMS:
            raise InvalidChart(f"Unknown heavenly stem: {self.stem!r}")
        if self.branch not in BRANCHES:
            raise InvalidChart(f"Unknown earthly branch: {self.branch!r}")
        if STEMS.index(self.stem) % 2 != BRANCHES.index(self.branch) % 2:
            raise InvalidChart(f"{self.stem}{self.branch} is not a sexagenary pair")

    @classmethod
    def parse(cls, ganzhi: str) -> "Pillar":
        if not isinstance(ganzhi, str) or len(ganzhi.strip()) != 2:
            raise InvalidChart(f"Pillar must be two glyphs, got {ganzhi!r}")
        g = ganzhi.strip()
        return cls(g[0], g[1])

    @classmethod
    def from_indices(cls, stem_idx: int, branch_idx: int) -> "Pillar":
        return cls(STEMS[stem_idx % 10], BRANCHES[branch_idx % 12])

    @property
    def stem_index(self) -> int:
        return STEMS.index(self.stem)

    @property
    def branch_index(self) -> int:
        return BRANCHES.index(self.branch)

    @property
    def stem_element(self) -> Element:
        return STEM_ELEM[self.stem_index]

    @property
    def branch_element(self) -> Element:
        return BRANCH_ELEM[self.branch_index]

    @property
    def polarity(self) -> str:
        return STEM_YY[self.stem_index]

    @property
    def ganzhi(self) -> str:
        return self.stem + self.branch

    def __str__(self):
        return self.ganzhi


@dataclass(frozen=True)
class BaziChart:
    year: Pillar
    month: Pillar
    day: Pillar
    hour: Pillar

    def __post_init__(self):
        for slot in SLOT_ORDER:
            if not isinstance(getattr(self, slot.value), Pillar):
                raise InvalidChart(f"Missing {slot.value} pillar")

    @classmethod
    def from_strings(cls, pillars: Sequence[str]) -> "BaziChart":
        if isinstance(pillars, str):
            pillars = pillars.split()
        if pillars is None or len(pillars) != 4:
            raise InvalidChart(f"Expected four pillars, got {pillars!r}")
        return cls(*(Pillar.parse(p) for p in pillars))

    def pillar(self, slot: PillarSlot) -> Pillar:
        return getattr(self, PillarSlot(slot).value)

    def items(self) -> Iterator[Tuple[PillarSlot, Pillar]]:
        for slot in SLOT_ORDER:
            yield slot, self.pillar(slot)

    @property
    def day_master(self) -> str:
        return self.day.stem

    def to_strings(self) -> Tuple[str, str, str, str]:
        return tuple(p.ganzhi for _, p in self.items())

    def to_dict(self) -> Dict[str, str]:
        return {slot.value: p.ganzhi for slot, p in self.items()}
