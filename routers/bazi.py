from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import AliasChoices, BaseModel, Field, field_validator

import config
from bazi.calendar import CalendarResult, SwissEphemerisCalendar, get_calendar
from bazi.classifier import Profile, classify
from bazi.composer import ContentBundle, format_content_for_display, generate_content
from bazi.elements import to_localized

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bazi"])


# -----------------------
# Auth
# - Only enforced when BAZI_BRIDGE_API_KEY is set. Accepts BOTH:
#   1) x-api-key: <key>
#   2) Authorization: Bearer <key>
# -----------------------
def require_api_key(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None, alias="x-api-key"),
) -> None:
    expected = config.API_KEY
    if not expected:
        return

    token: Optional[str] = None

    # Prefer x-api-key if present
    if x_api_key:
        token = x_api_key.strip()

    # Fallback to Authorization: Bearer <token>
    elif authorization:
        token = authorization.removeprefix("Bearer ").strip()

    if not token:
        raise HTTPException(status_code=401, detail="Missing API key")

    if token != expected:
        raise HTTPException(status_code=401, detail="Invalid API key")


# =========================================================
# Models
# =========================================================
class BaziRequest(BaseModel):
    # "1983-11-19 08:15" or "1983-11-19T08:15:00"
    date_time: str = Field(
        ...,
        validation_alias=AliasChoices("dateTime", "date_time"),
        min_length=1,
        examples=["1983-11-19 08:15"],
    )
    gender: Literal["male", "female"] = Field(..., examples=["female"])
    timezone: str = Field(..., min_length=1, examples=["Europe/Moscow"])

    longitude: Optional[float] = Field(None, examples=[37.6173])
    latitude: Optional[float] = Field(None, examples=[55.7558])
    use_solar_time: bool = Field(False, validation_alias=AliasChoices("useSolarTime", "use_solar_time"))

    year: int = Field(default_factory=lambda: config.DEFAULT_YEAR, examples=[2026])
    year_animal: str = Field(
        default_factory=lambda: config.DEFAULT_YEAR_ANIMAL,
        validation_alias=AliasChoices("yearAnimal", "year_animal"),
    )
    style: Literal["poetic", "practical"] = Field(default_factory=lambda: config.DEFAULT_STYLE)

    # forms send "" for an empty coordinate field
    @field_validator("longitude", "latitude", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


# =========================================================
# Pipeline
# =========================================================
def run_pipeline(req: BaziRequest, calendar: SwissEphemerisCalendar):
    result = calendar.calculate(
        req.date_time,
        req.timezone,
        gender=req.gender,
        longitude=req.longitude,
        use_solar_time=req.use_solar_time,
        target_year=req.year,
    )
    profile = classify(result.chart)
    bundle = generate_content(profile, req.year, req.year_animal, req.style, req.gender)
    return result, profile, bundle


def build_analysis(req: BaziRequest, result: CalendarResult, profile: Profile) -> Dict[str, Any]:
    out = result.to_dict()
    out.update(profile.to_dict())
    out["dayMaster"] = {
        "stem": result.chart.day_master,
        "element": profile.element.value,
        "elementName": to_localized(profile.element),
    }
    out["gender"] = req.gender
    out["location"] = {"longitude": req.longitude, "latitude": req.latitude}
    return out


# =========================================================
# Endpoints
# =========================================================
@router.get("/api/time")
def server_time() -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {
        "timestamp": now.isoformat().replace("+00:00", "Z"),
        "timezone": "UTC",
        "source": "server",
        "success": True,
    }


@router.post("/api/bazi", dependencies=[Depends(require_api_key)])
def bazi_calc(
    req: BaziRequest,
    calendar: SwissEphemerisCalendar = Depends(get_calendar),
) -> Dict[str, Any]:
    result, profile, bundle = run_pipeline(req, calendar)

    logger.info(
        "bazi %s %s -> %s (%s, %.2f)",
        req.date_time, req.timezone, " ".join(result.chart.to_strings()),
        profile.strength_category.value, profile.strength_score,
    )

    return {
        "success": True,
        "analysis": build_analysis(req, result, profile),
        "content": format_content_for_display(bundle),
        "rawContent": bundle.to_dict(),
    }


# =========================================================
# Summary (short, prompt-ready output)
# =========================================================
def _fmt_pillars_line(result: CalendarResult) -> str:
    return " | ".join(f"{slot.value} {p.ganzhi}" for slot, p in result.chart.items())


def _fmt_balance_line(profile: Profile) -> str:
    return " / ".join(f"{e.value} {v:g}" for e, v in profile.element_balance.items())


def _fmt_interactions_line(profile: Profile) -> str:
    if not profile.interactions:
        return "none"
    return ", ".join(f"{i.name}({i.impact.value}@{i.pillar.value})" for i in profile.interactions)


def _fmt_luck_preview(luck: Dict[str, Any]) -> Optional[str]:
    # preview only, keep the line short
    if not luck:
        return None
    preview = ", ".join(f'{x["pillar"]}({x["startAge"]}~{x["endAge"]})' for x in luck.get("pillars", [])[:3])
    return f'direction={luck.get("direction")}, start_age={luck.get("startAge")}, top3=[{preview}]'


def build_summary(req: BaziRequest, result: CalendarResult, profile: Profile, bundle: ContentBundle) -> Dict[str, Any]:
    useful = ", ".join(e.value for e in profile.useful_elements)
    lines = [
        "[BAZI_SUMMARY]",
        f"birth: {result.time_info['localTime']} {req.timezone} ({req.gender})",
        f"pillars: {_fmt_pillars_line(result)}",
        f"day_master: {result.chart.day_master} ({profile.element.value}, {profile.strength_category.value} {profile.strength_score:.2f})",
        f"useful: {useful}",
        f"structure: {profile.structure.name} ({profile.structure.kind.value})",
        f"temperature: {profile.temperature['balance']} ({profile.temperature['season']})",
        f"elements: {_fmt_balance_line(profile)}",
        f"interactions: {_fmt_interactions_line(profile)}",
        f"active_pillar: {profile.active_pillar.value} ({profile.active_pillar.domain})",
        f"solar_time: {'ON' if req.use_solar_time else 'OFF'}",
    ]
    luck_preview = _fmt_luck_preview(result.luck)
    if luck_preview:
        lines.append(f"luck: {luck_preview}")
    if bundle.recommendation and bundle.recommendation.year_context:
        lines.append(f"year: {bundle.recommendation.year_context}")

    compact_json = {
        "gender": req.gender,
        "localTime": result.time_info["localTime"],
        "timezone": req.timezone,
        "pillars": result.chart.to_dict(),
        "dayMaster": result.chart.day_master,
        "element": profile.element.value,
        "strength": round(profile.strength_score, 2),
        "strengthCategory": profile.strength_category.value,
        "usefulElements": [e.value for e in profile.useful_elements],
        "cardType": profile.structure.kind.value,
        "activePillar": profile.active_pillar.value,
        "imbalance": profile.imbalance.to_dict(),
        "recommendation": bundle.recommendation.to_dict() if bundle.recommendation else None,
    }
    return {"text": "\n".join(lines), "json": compact_json}


@router.post("/api/bazi/summary", dependencies=[Depends(require_api_key)])
def bazi_summary(
    req: BaziRequest,
    calendar: SwissEphemerisCalendar = Depends(get_calendar),
) -> Dict[str, Any]:
    result, profile, bundle = run_pipeline(req, calendar)
    return build_summary(req, result, profile, bundle)
