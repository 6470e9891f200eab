from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional

import swisseph as swe
from dateutil import tz

from bazi.chart import BaziChart, Pillar
from bazi.elements import BRANCHES, STEMS, STEM_YY
from bazi.errors import AdapterFailure, InvalidInput

logger = logging.getLogger(__name__)

SWE_FLAGS = swe.FLG_MOSEPH  # Moshier, no ephemeris files needed

# year starts at Lichun (315°), months at the twelve jie terms, days at civil midnight

# Solar longitude of the twelve jie (month-opening) terms
TERM_LON_12 = {
    "Xiaohan": 285.0,  # 小寒
    "Lichun": 315.0,   # 立春
    "Jingzhe": 345.0,  # 惊蛰
    "Qingming": 15.0,  # 清明
    "Lixia": 45.0,     # 立夏
    "Mangzhong": 75.0, # 芒种
    "Xiaoshu": 105.0,  # 小暑
    "Liqiu": 135.0,    # 立秋
    "Bailu": 165.0,    # 白露
    "Hanlu": 195.0,    # 寒露
    "Lidong": 225.0,   # 立冬
    "Daxue": 255.0,    # 大雪
}

# Stem of the 寅 month, keyed by year stem index
YIN_MONTH_STEM_START = {
    0: 2,  # 甲 -> 丙
    5: 2,  # 己 -> 丙
    1: 4,  # 乙 -> 戊
    6: 4,  # 庚 -> 戊
    2: 6,  # 丙 -> 庚
    7: 6,  # 辛 -> 庚
    3: 8,  # 丁 -> 壬
    8: 8,  # 壬 -> 壬
    4: 0,  # 戊 -> 甲
    9: 0,  # 癸 -> 甲
}

MONTH_BRANCHES = ["寅", "卯", "辰", "巳", "午", "未", "申", "酉", "戌", "亥", "子", "丑"]
BRANCH_TO_MONTH_INDEX = {b: i for i, b in enumerate(MONTH_BRANCHES)}

INPUT_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S")

Gender = Literal["male", "female"]


# =========================================================
# Swiss Ephemeris helpers
# =========================================================
def jd_from_utc(dt_utc: datetime) -> float:
    dt_utc = dt_utc.astimezone(timezone.utc)
    y, m, d = dt_utc.year, dt_utc.month, dt_utc.day
    h = dt_utc.hour + dt_utc.minute/60 + dt_utc.second/3600 + dt_utc.microsecond/3.6e9
    return swe.julday(y, m, d, h, swe.GREG_CAL)


def utc_from_jd(jd: float) -> datetime:
    y, m, d, h = swe.revjul(jd, swe.GREG_CAL)
    base = datetime(y, m, d, tzinfo=timezone.utc)
    return base + timedelta(hours=h)


@lru_cache(maxsize=1024)
def solcross_utc(year: int, lon_deg: float) -> datetime:
    """First instant of `year` (UTC) at which the Sun reaches `lon_deg`."""
    start = datetime(year, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
    jd_cross = swe.solcross_ut(float(lon_deg), jd_from_utc(start), SWE_FLAGS)
    return utc_from_jd(jd_cross)


def sun_longitude(dt_utc: datetime) -> float:
    pos, _ = swe.calc_ut(jd_from_utc(dt_utc), swe.SUN, SWE_FLAGS)
    return float(pos[0] % 360.0)


def equation_of_time_minutes(dt_utc: datetime) -> float:
    # swe.time_equ returns apparent - mean solar time in days
    return float(swe.time_equ(jd_from_utc(dt_utc))) * 1440.0


# =========================================================
# Ganzhi core
# =========================================================
def jdn_gregorian(y: int, m: int, d: int) -> int:
    a = (14 - m)//12
    y2 = y + 4800 - a
    m2 = m + 12*a - 3
    return d + (153*m2 + 2)//5 + 365*y2 + y2//4 - y2//100 + y2//400 - 32045


def sexagenary_index(stem_idx: int, branch_idx: int) -> int:
    for n in range(60):
        if n % 10 == stem_idx and n % 12 == branch_idx:
            return n
    raise ValueError("Invalid stem/branch")


def ganzhi_of_year(year: int) -> str:
    return STEMS[(year - 4) % 10] + BRANCHES[(year - 4) % 12]


def year_pillar(dt_utc: datetime, civil_year: int) -> tuple[int, int, int, datetime]:
    lichun = solcross_utc(civil_year, TERM_LON_12["Lichun"])
    adj_y = civil_year - 1 if dt_utc < lichun else civil_year
    return (adj_y - 4) % 10, (adj_y - 4) % 12, adj_y, lichun


def month_pillar(dt_utc: datetime, civil_year: int, year_stem_idx: int) -> tuple[int, int]:
    y = civil_year
    boundaries = sorted([
        (solcross_utc(y-1, TERM_LON_12["Daxue"]), "子"),
        (solcross_utc(y, TERM_LON_12["Xiaohan"]), "丑"),
        (solcross_utc(y, TERM_LON_12["Lichun"]), "寅"),
        (solcross_utc(y, TERM_LON_12["Jingzhe"]), "卯"),
        (solcross_utc(y, TERM_LON_12["Qingming"]), "辰"),
        (solcross_utc(y, TERM_LON_12["Lixia"]), "巳"),
        (solcross_utc(y, TERM_LON_12["Mangzhong"]), "午"),
        (solcross_utc(y, TERM_LON_12["Xiaoshu"]), "未"),
        (solcross_utc(y, TERM_LON_12["Liqiu"]), "申"),
        (solcross_utc(y, TERM_LON_12["Bailu"]), "酉"),
        (solcross_utc(y, TERM_LON_12["Hanlu"]), "戌"),
        (solcross_utc(y, TERM_LON_12["Lidong"]), "亥"),
        (solcross_utc(y, TERM_LON_12["Daxue"]), "子"),
        (solcross_utc(y+1, TERM_LON_12["Xiaohan"]), "丑"),
    ], key=lambda x: x[0])

    month_branch = None
    for i in range(len(boundaries)-1):
        start_dt, br = boundaries[i]
        end_dt, _ = boundaries[i+1]
        if start_dt <= dt_utc < end_dt:
            month_branch = br
            break
    if month_branch is None:
        month_branch = boundaries[0][1]

    start_stem = YIN_MONTH_STEM_START[year_stem_idx]
    m_index = BRANCH_TO_MONTH_INDEX[month_branch]  # 寅=0 ... 丑=11
    return (start_stem + m_index) % 10, BRANCHES.index(month_branch)


def day_pillar(dt_local: datetime) -> tuple[int, int]:
    # civil midnight is the day boundary, 23:xx stays on its own date
    idx = (jdn_gregorian(dt_local.year, dt_local.month, dt_local.day) + 49) % 60
    return idx % 10, idx % 12


def hour_pillar(dt_local: datetime, day_stem_idx: int) -> tuple[int, int]:
    # 子 hour spans 23:00-00:59; late 子 (23:xx) takes its stem from the next day
    hour_branch = ((dt_local.hour + 1)//2) % 12
    stem_base = day_stem_idx + 1 if dt_local.hour == 23 else day_stem_idx
    hour_stem = (stem_base * 2 + hour_branch) % 10
    return hour_stem, hour_branch


# =========================================================
# Input parsing
# =========================================================
def resolve_timezone(tz_name: Optional[str]) -> tzinfo:
    if not tz_name:
        raise InvalidInput("timezone is required")
    tzinfo_ = tz.gettz(tz_name)
    if tzinfo_ is None:
        raise InvalidInput(f"Unknown timezone: {tz_name}")
    return tzinfo_


def parse_local_datetime(value: str, tz_name: str) -> datetime:
    """Civil datetime string in `tz_name` -> aware datetime."""
    tzinfo_ = resolve_timezone(tz_name)
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput("dateTime is required")

    raw = value.strip()
    parsed: Optional[datetime] = None
    for fmt in INPUT_FORMATS:
        try:
            parsed = datetime.strptime(raw, fmt)
            break
        except ValueError:
            continue
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            raise InvalidInput(f"Unparseable dateTime: {value!r}") from None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tzinfo_)
    try:
        return parsed.astimezone(tzinfo_)
    except (OverflowError, ValueError):
        raise InvalidInput(f"dateTime out of range in {tz_name}: {value!r}") from None


# =========================================================
# Result
# =========================================================
@dataclass(frozen=True)
class CalendarResult:
    chart: BaziChart
    gender: str
    local_time: datetime
    utc_time: datetime
    hour_moment: datetime
    lichun: datetime
    adjusted_year: int
    time_info: Dict[str, Any] = field(default_factory=dict)
    luck: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pillars": list(self.chart.to_strings()),
            "chart": self.chart.to_dict(),
            "timeInfo": self.time_info,
            "luck": self.luck,
            "lichun": self.lichun.isoformat(),
            "adjustedYear": self.adjusted_year,
        }


class SwissEphemerisCalendar:
    """Stateless after construction; one instance is shared per process."""

    def __init__(self):
        logger.info("calendar adapter ready (swisseph %s)", getattr(swe, "version", "?"))

    def calculate(
        self,
        date_time: str,
        tz_name: str,
        gender: Gender = "female",
        longitude: Optional[float] = None,
        use_solar_time: bool = False,
        target_year: Optional[int] = None,
    ) -> CalendarResult:
        if gender not in ("male", "female"):
            raise InvalidInput(f"gender must be 'male' or 'female', got {gender!r}")

        dt_local = parse_local_datetime(date_time, tz_name)
        try:
            return self._calculate(dt_local, tz_name, gender, longitude, use_solar_time, target_year)
        except (swe.Error, ValueError, OverflowError) as e:
            raise AdapterFailure(f"Calendar computation failed for {date_time} {tz_name}: {e}") from e

    def _calculate(self, dt_local, tz_name, gender, longitude, use_solar_time, target_year) -> CalendarResult:
        dt_utc = dt_local.astimezone(timezone.utc)
        offset = dt_local.utcoffset() or timedelta(0)
        offset_minutes = offset.total_seconds() / 60

        if longitude is None:
            # zone meridian as a stand-in
            longitude = offset_minutes / 4.0
            logger.warning(
                "longitude missing for %s %s, using zone meridian %.2f",
                dt_local.isoformat(), tz_name, longitude,
            )

        eot = equation_of_time_minutes(dt_utc)
        solar_naive = (dt_utc + timedelta(minutes=longitude * 4.0 + eot)).replace(tzinfo=None)
        hour_moment = solar_naive if use_solar_time else dt_local.replace(tzinfo=None)

        y_stem, y_branch, adj_year, lichun = year_pillar(dt_utc, dt_local.year)
        m_stem, m_branch = month_pillar(dt_utc, dt_local.year, y_stem)
        # day always from the civil date, solar time only moves the hour
        d_stem, d_branch = day_pillar(dt_local)
        h_stem, h_branch = hour_pillar(hour_moment, d_stem)

        chart = BaziChart(
            Pillar.from_indices(y_stem, y_branch),
            Pillar.from_indices(m_stem, m_branch),
            Pillar.from_indices(d_stem, d_branch),
            Pillar.from_indices(h_stem, h_branch),
        )

        is_dst = bool(dt_local.dst())
        time_info = {
            "localTime": dt_local.strftime("%Y-%m-%d %H:%M:%S"),
            "utcTime": dt_utc.strftime("%Y-%m-%d %H:%M:%S"),
            "solarTime": solar_naive.strftime("%Y-%m-%d %H:%M:%S"),
            "hourMomentUsed": hour_moment.strftime("%Y-%m-%d %H:%M:%S"),
            "useSolarTime": bool(use_solar_time),
            "longitude": round(longitude, 4),
            "timezone": tz_name,
            "utcOffsetMinutes": offset_minutes,
            "eotMinutes": round(eot, 2),
            "totalCorrectionMinutes": round((solar_naive - dt_local.replace(tzinfo=None)).total_seconds() / 60, 2),
            "isDST": is_dst,
            "dayShifted": False,
        }

        luck = build_luck(
            birth_utc=dt_utc,
            gender=gender,
            year_stem_idx=y_stem,
            month_stem_idx=m_stem,
            month_branch_idx=m_branch,
            target_year=target_year or adj_year,
        )

        logger.debug("chart %s for %s %s", " ".join(chart.to_strings()), dt_local.isoformat(), tz_name)
        return CalendarResult(
            chart=chart,
            gender=gender,
            local_time=dt_local,
            utc_time=dt_utc,
            hour_moment=hour_moment,
            lichun=lichun,
            adjusted_year=adj_year,
            time_info=time_info,
            luck=luck,
        )


# =========================================================
# Luck pillars
# =========================================================
def _adjacent_jie(dt_utc: datetime) -> tuple[float, datetime, float, datetime]:
    """Previous and next jie term around `dt_utc` (jie sit at 15° + 30°k)."""
    lon = sun_longitude(dt_utc)
    prev_lon = (15.0 + 30.0 * ((lon - 15.0) // 30.0)) % 360.0
    next_lon = (prev_lon + 30.0) % 360.0

    jd = jd_from_utc(dt_utc)
    dt_next = utc_from_jd(swe.solcross_ut(next_lon, jd, SWE_FLAGS))
    dt_prev = utc_from_jd(swe.solcross_ut(prev_lon, jd - 40, SWE_FLAGS))
    return prev_lon, dt_prev, next_lon, dt_next


def build_luck(
    birth_utc: datetime,
    gender: Gender,
    year_stem_idx: int,
    month_stem_idx: int,
    month_branch_idx: int,
    target_year: int,
    periods: int = 8,
) -> Dict[str, Any]:
    is_year_yang = (STEM_YY[year_stem_idx] == "yang")
    forward = (gender == "male" and is_year_yang) or (gender == "female" and not is_year_yang)

    prev_lon, dt_prev, next_lon, dt_next = _adjacent_jie(birth_utc)
    if forward:
        diff_days = (dt_next - birth_utc).total_seconds()/86400
    else:
        diff_days = (birth_utc - dt_prev).total_seconds()/86400
    start_age = diff_days / 3.0

    month_idx = sexagenary_index(month_stem_idx, month_branch_idx)
    step = 1 if forward else -1

    pillars: List[Dict[str, Any]] = []
    for i in range(periods):
        idx = (month_idx + step*(i+1)) % 60
        pillars.append({
            "pillar": STEMS[idx % 10] + BRANCHES[idx % 12],
            "startAge": round(start_age + i*10, 1),
            "endAge": round(start_age + (i+1)*10, 1),
        })

    annual = [{"year": y, "pillar": ganzhi_of_year(y)} for y in range(target_year, target_year + 10)]

    return {
        "direction": "forward" if forward else "backward",
        "startAge": round(start_age, 1),
        "startAgeBasis": {
            "prevTermLon": prev_lon,
            "prevTermUtc": dt_prev.isoformat(),
            "nextTermLon": next_lon,
            "nextTermUtc": dt_next.isoformat(),
        },
        "pillars": pillars,
        "annual": annual,
    }


@lru_cache(maxsize=1)
def get_calendar() -> SwissEphemerisCalendar:
    """Process-wide adapter, created on first use."""
    return SwissEphemerisCalendar()
