"""
Calendar adapter checks against known reference charts.
"""
from datetime import datetime, timezone

import pytest

pytest.importorskip("swisseph", reason="pyswisseph not installed")

from bazi.calendar import (
    day_pillar,
    ganzhi_of_year,
    get_calendar,
    hour_pillar,
    jdn_gregorian,
    parse_local_datetime,
    resolve_timezone,
)
from bazi.elements import BRANCHES, STEMS
from bazi.errors import InvalidInput


@pytest.fixture(scope="module")
def calendar():
    return get_calendar()


def test_singleton():
    assert get_calendar() is get_calendar()


def test_adapter_uses_moshier_flags():
    import swisseph as swe

    from bazi.calendar import SWE_FLAGS, SwissEphemerisCalendar
    assert SWE_FLAGS == swe.FLG_MOSEPH
    assert not hasattr(SwissEphemerisCalendar(), "flags")


class TestYearBoundary:

    def test_before_lichun_2000(self, calendar):
        result = calendar.calculate("2000-02-04 20:40", "Asia/Shanghai", gender="male")
        assert result.chart.year.ganzhi == "己卯"
        assert result.adjusted_year == 1999

    def test_after_lichun_2000(self, calendar):
        result = calendar.calculate("2000-02-04 20:41", "Asia/Shanghai", gender="male")
        assert result.chart.year.ganzhi == "庚辰"
        assert result.adjusted_year == 2000

    def test_month_changes_with_year(self, calendar):
        before = calendar.calculate("2000-02-04 20:40", "Asia/Shanghai")
        after = calendar.calculate("2000-02-04 20:41", "Asia/Shanghai")
        assert before.chart.month.branch == "丑"
        assert after.chart.month.ganzhi == "戊寅"

    def test_january_is_previous_year(self, calendar):
        result = calendar.calculate("2000-01-01 12:00", "Asia/Shanghai")
        assert result.chart.year.ganzhi == "己卯"


class TestHistoricalOffsets:

    def test_moscow_1983_decree_time(self, calendar):
        result = calendar.calculate("1983-11-19 08:15", "Europe/Moscow", gender="female", longitude=37.6173)
        assert result.time_info["utcOffsetMinutes"] == 180
        assert result.time_info["isDST"] is False
        assert result.utc_time == datetime(1983, 11, 19, 5, 15, tzinfo=timezone.utc)
        assert result.chart.year.ganzhi == "癸亥"
        assert result.chart.month.ganzhi == "癸亥"

    def test_moscow_summer_1983(self, calendar):
        result = calendar.calculate("1983-07-01 12:00", "Europe/Moscow", longitude=37.6173)
        assert result.time_info["utcOffsetMinutes"] == 240
        assert result.time_info["isDST"] is True


class TestDayAndHour:

    def test_day_pillar_2000_01_01(self):
        stem, branch = day_pillar(datetime(2000, 1, 1, 12, 0))
        assert STEMS[stem] + BRANCHES[branch] == "戊午"

    def test_late_rat_hour_keeps_civil_day(self):
        assert day_pillar(datetime(2000, 1, 1, 23, 30)) == day_pillar(datetime(2000, 1, 1, 0, 30))

    def test_late_rat_hour_stays_on_civil_day(self, calendar):
        result = calendar.calculate("2023-02-03 23:10", "Europe/Moscow", longitude=37.6173)
        assert result.chart.day.ganzhi == "壬辰"
        assert result.chart.hour.ganzhi == "壬子"
        assert result.time_info["dayShifted"] is False

    def test_late_rat_hour_1972(self, calendar):
        # 23:55 on 28 Jan 1972 is still a 戊午 day; the hour stem comes from 己
        result = calendar.calculate("1972-01-28 23:55", "Europe/Moscow", longitude=37.6173)
        assert result.chart.day.ganzhi == "戊午"
        assert result.chart.hour.ganzhi == "甲子"

    def test_early_rat_hour_uses_own_day(self, calendar):
        result = calendar.calculate("1972-01-29 00:10", "Europe/Moscow", longitude=37.6173)
        assert result.chart.day.ganzhi == "己未"
        assert result.chart.hour.ganzhi == "甲子"

    def test_hour_branches(self):
        assert hour_pillar(datetime(2000, 1, 1, 0, 30), 0) == (0, 0)
        assert hour_pillar(datetime(2000, 1, 1, 1, 0), 0) == (1, 1)
        assert hour_pillar(datetime(2000, 1, 1, 12, 0), 4)[1] == BRANCHES.index("午")

    def test_late_rat_hour_stem_from_next_day(self):
        # 甲 day: early 子 is 甲子, late 子 takes 乙's 丙子
        assert hour_pillar(datetime(2000, 1, 1, 0, 10), 0) == (0, 0)
        assert hour_pillar(datetime(2000, 1, 1, 23, 10), 0) == (2, 0)

    def test_jdn(self):
        assert jdn_gregorian(2000, 1, 1) == 2451545

    def test_ganzhi_of_year(self):
        assert ganzhi_of_year(1984) == "甲子"
        assert ganzhi_of_year(2026) == "丙午"


class TestSolarTime:

    def test_solar_time_moves_hour_moment(self, calendar):
        # Moscow 37.6E sits far west of the UTC+3 zone meridian (45E)
        result = calendar.calculate(
            "2023-06-15 12:00", "Europe/Moscow", longitude=37.6173, use_solar_time=True,
        )
        assert result.time_info["useSolarTime"] is True
        assert result.time_info["totalCorrectionMinutes"] < -20
        assert result.hour_moment < datetime(2023, 6, 15, 12, 0)

    def test_missing_longitude_uses_zone_meridian(self, calendar, caplog):
        with caplog.at_level("WARNING", logger="bazi.calendar"):
            result = calendar.calculate("2023-06-15 12:00", "Europe/Moscow")
        assert result.time_info["longitude"] == 45.0
        assert "longitude missing" in caplog.text

    def test_solar_time_never_moves_day(self, calendar):
        # Madrid 00:30 CEST is about 22:15 apparent solar time on the previous date
        kwargs = dict(longitude=-3.7038)
        clock = calendar.calculate("2023-06-15 00:30", "Europe/Madrid", **kwargs)
        solar = calendar.calculate("2023-06-15 00:30", "Europe/Madrid", use_solar_time=True, **kwargs)
        assert clock.chart.day.ganzhi == "甲辰"
        assert solar.chart.day.ganzhi == "甲辰"
        assert clock.chart.hour.ganzhi == "甲子"
        assert solar.chart.hour.ganzhi == "乙亥"
        assert solar.time_info["hourMomentUsed"].startswith("2023-06-14 22:")


class TestLuck:

    def test_direction_and_sequence(self, calendar):
        # yin year stem 癸 + female -> forward
        result = calendar.calculate("1983-11-19 08:15", "Europe/Moscow", gender="female", longitude=37.6173)
        luck = result.luck
        assert luck["direction"] == "forward"
        assert len(luck["pillars"]) == 8
        assert luck["pillars"][0]["pillar"] == "甲子"
        assert 0 <= luck["startAge"] <= 10
        assert luck["pillars"][1]["startAge"] == pytest.approx(luck["pillars"][0]["startAge"] + 10, abs=0.11)

    def test_male_yin_year_goes_backward(self, calendar):
        result = calendar.calculate("1983-11-19 08:15", "Europe/Moscow", gender="male", longitude=37.6173)
        assert result.luck["direction"] == "backward"
        assert result.luck["pillars"][0]["pillar"] == "壬戌"

    def test_annual_pillars_follow_target_year(self, calendar):
        result = calendar.calculate("1983-11-19 08:15", "Europe/Moscow", target_year=2026)
        annual = result.luck["annual"]
        assert annual[0] == {"year": 2026, "pillar": "丙午"}
        assert len(annual) == 10


class TestInput:

    def test_unknown_timezone(self, calendar):
        with pytest.raises(InvalidInput):
            calendar.calculate("2000-01-01 12:00", "Mars/Olympus")

    def test_missing_timezone(self):
        with pytest.raises(InvalidInput):
            resolve_timezone("")

    @pytest.mark.parametrize("raw", ["", "yesterday", "2000-13-01 12:00"])
    def test_bad_datetime(self, raw):
        with pytest.raises(InvalidInput):
            parse_local_datetime(raw, "Europe/Moscow")

    def test_offset_out_of_range(self):
        with pytest.raises(InvalidInput):
            parse_local_datetime("0001-01-01T00:10:00+05:00", "Europe/Moscow")

    def test_formats(self):
        a = parse_local_datetime("1983-11-19 08:15", "Europe/Moscow")
        b = parse_local_datetime("1983-11-19T08:15:00", "Europe/Moscow")
        assert a == b
        assert a.utcoffset().total_seconds() == 3 * 3600

    def test_bad_gender(self, calendar):
        with pytest.raises(InvalidInput):
            calendar.calculate("2000-01-01 12:00", "Europe/Moscow", gender="other")
