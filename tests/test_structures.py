import pytest

from bazi.chart import BaziChart
from bazi.classifier import classify
from bazi.elements import Element
from bazi.structures import (
    StructureKind,
    determine_card_type,
    element_count,
    has_companion,
    has_resource,
    noble_people,
    temperature_balance,
    ten_god,
    ten_gods,
    unsupported,
)

W, F, E, M, A = Element.WOOD, Element.FIRE, Element.EARTH, Element.METAL, Element.WATER


# ════════════════════ counting ════════════════════


class TestCounting:

    def test_hidden_stems_count_flat(self, water_chart):
        # 4 壬 stems + 子 branch + 壬/癸 hidden in 申 子 辰
        assert element_count(water_chart, A) == pytest.approx(5.9)
        assert element_count(water_chart, F) == pytest.approx(0.3)

    def test_support(self, water_chart):
        assert has_resource(water_chart)
        assert has_companion(water_chart)
        assert not unsupported(water_chart)

    def test_unsupported_wood(self):
        chart = BaziChart.from_strings("戊午 戊午 甲戌 庚午")
        assert not has_resource(chart)
        assert not has_companion(chart)
        assert unsupported(chart)


# ════════════════════ card type funnel ════════════════════


class TestCardType:

    def test_transformation(self):
        # 甲 merges with the 己 hour, 戌 month is earth, no water or wood anywhere
        s = determine_card_type(BaziChart.from_strings("庚午 戊戌 甲戌 己巳"))
        assert s.kind is StructureKind.TRANSFORMATION
        assert s.name == "化土格"
        assert s.useful_elements == (E, F)
        assert s.details["pair"] == "甲己"
        assert s.details["pillar"] == "hour"

    def test_transformation_needs_season(self):
        # same merge but a 午 month carries fire, not earth
        s = determine_card_type(BaziChart.from_strings("庚午 庚午 甲戌 己巳"))
        assert s.kind is not StructureKind.TRANSFORMATION

    def test_follow_wealth(self):
        s = determine_card_type(BaziChart.from_strings("戊午 戊午 甲戌 庚午"))
        assert s.kind is StructureKind.FOLLOW
        assert s.name == "从财格"
        assert s.useful_elements == (E, F)
        assert s.details == {"wealth": 4.2, "power": 1.3, "output": 4.2}

    def test_follow_power(self):
        s = determine_card_type(BaziChart.from_strings("辛酉 辛酉 甲午 庚午"))
        assert s.name == "从杀格"
        assert s.useful_elements == (M, E)

    def test_follow_output(self):
        s = determine_card_type(BaziChart.from_strings("丙午 丁巳 甲午 丙午"))
        assert s.name == "从儿格"
        assert s.useful_elements == (F, E)

    def test_vibrational(self):
        s = determine_card_type(BaziChart.from_strings("辛酉 辛酉 癸酉 壬子"))
        assert s.kind is StructureKind.VIBRATIONAL
        assert s.useful_elements == (M, A)

    def test_rare(self):
        s = determine_card_type(BaziChart.from_strings("甲午 庚午 壬午 丙午"))
        assert s.kind is StructureKind.RARE
        assert s.name == "三午缺子"
        assert s.useful_elements == (A, M)
        assert s.details == {"branch": "午", "count": 4, "clashPartner": "子"}

    def test_rare_needs_missing_partner(self):
        s = determine_card_type(BaziChart.from_strings("甲午 庚午 壬午 丙子"))
        assert s.kind is not StructureKind.RARE

    def test_normal(self, water_chart, clash_chart):
        for chart in (water_chart, clash_chart):
            s = determine_card_type(chart)
            assert s.kind is StructureKind.NORMAL
            assert not s.special
            assert s.useful_elements == ()

    def test_to_dict(self):
        d = determine_card_type(BaziChart.from_strings("甲午 庚午 壬午 丙午")).to_dict()
        assert d["type"] == "rare"
        assert d["special"] is True
        assert d["usefulElements"] == ["water", "metal"]


class TestClassifierOverride:

    def test_special_structure_overrides_useful(self):
        profile = classify(BaziChart.from_strings("戊午 戊午 甲戌 庚午"))
        assert profile.useful_elements == (E, F)
        assert profile.harmful_elements == (W, M, A)
        assert profile.to_dict()["cardType"]["name"] == "从财格"

    def test_normal_keeps_strength_rule(self, water_chart):
        profile = classify(water_chart)
        assert profile.structure.kind is StructureKind.NORMAL
        assert profile.useful_elements == (M, E)


# ════════════════════ temperature / nobles / ten gods ════════════════════


class TestTemperature:

    @pytest.mark.parametrize("pillars, balance, season", [
        ("壬申 壬子 壬辰 壬寅", "too_cold", "winter"),
        ("壬申 丙午 丙辰 壬寅", "too_hot", "summer"),
        ("壬申 壬子 丙辰 壬寅", "balanced", "winter"),
        ("壬申 戊申 丙辰 壬寅", "moderate", "autumn"),
        ("壬申 戊寅 戊辰 壬寅", "balanced", "spring"),
        ("壬申 壬子 戊辰 壬寅", "neutral", "winter"),
    ])
    def test_balance(self, pillars, balance, season):
        t = temperature_balance(BaziChart.from_strings(pillars))
        assert t["balance"] == balance
        assert t["season"] == season

    def test_shape(self, water_chart):
        t = temperature_balance(water_chart)
        assert set(t) == {"balance", "season", "seasonTemperature", "description"}
        assert t["seasonTemperature"] == "cold"
        assert "子" in t["description"]


class TestNoblePeople:

    def test_absent(self, water_chart):
        nobles = noble_people(water_chart)
        assert [n["branch"] for n in nobles] == ["卯", "巳"]
        assert all(n["present"] is False and n["pillar"] is None for n in nobles)

    def test_present_takes_first_pillar(self):
        nobles = noble_people(BaziChart.from_strings("甲子 丙寅 甲申 甲子"))
        assert nobles == [
            {"branch": "子", "element": "water", "pillar": "year", "present": True},
            {"branch": "申", "element": "metal", "pillar": "day", "present": True},
        ]


class TestTenGods:

    @pytest.mark.parametrize("target, yy, expected", [
        (W, "yang", "比肩"),
        (W, "yin", "劫财"),
        (F, "yang", "食神"),
        (F, "yin", "伤官"),
        (E, "yang", "偏财"),
        (E, "yin", "正财"),
        (M, "yang", "七杀"),
        (M, "yin", "正官"),
        (A, "yang", "偏印"),
        (A, "yin", "正印"),
    ])
    def test_relations_of_jia(self, target, yy, expected):
        assert ten_god(0, target, yy) == expected

    def test_chart(self, water_chart):
        gods = ten_gods(water_chart)
        assert gods["day"] == {"stem": "日主", "branch": "七杀"}
        assert gods["year"] == {"stem": "比肩", "branch": "偏印"}
        assert gods["month"]["branch"] == "比肩"
        assert gods["hour"]["branch"] == "食神"
