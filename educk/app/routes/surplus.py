"""
Renewable Surplus API routes (ENTSO-E).

- GET /api/v1/countries
- GET /api/v1/zones/{country}
- GET /api/v1/renewable-surplus/{country}/night
- GET /api/v1/renewable-surplus/{country}/next-6h
- GET /api/v1/renewable-surplus/{country}/next-24h
- GET /api/v1/renewable-surplus/{country}/next?hours=N
- GET /api/v1/renewable-surplus/{country}/plot?hours=N  (HTML, templates/_plot.html)
- GET /api/v1/renewable-surplus/{country}/plot-json?hours=N

Envelope: {"success": bool, "data": ..., "error": str | None}
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Annotated, Any

from fastapi import APIRouter, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse

from educk.domain.constants import PLOT_TEMPLATE
from educk.domain.errors import EntsoeError, ErrorCodes, RequestParseError
from educk.entsoe import areas
from educk.entsoe.analysis import (
    RenewableSurplus,
    filter_next_hours,
    filter_night_hours,
    find_max,
    generate_plot_data,
    get_renewable_surplus_series,
)
from educk.entsoe.areas import BiddingZone
from educk.entsoe.client import EntsoeClient, format_period
from educk.templates.store import TemplateStore

logger = logging.getLogger(__name__)

api_router = APIRouter()

NIGHT_LOOKAHEAD_HOURS = 48  # enough to contain a full night window
DEFAULT_HOURS = 24
MAX_HOURS = 168

HoursQuery = Annotated[int, Query(ge=0, le=MAX_HOURS, description="Hours to look ahead")]


# =============================================================================
# Helpers
# =============================================================================


def utc_now() -> datetime:
    return datetime.now(UTC)


def success(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data, "error": None}


def failure(message: str) -> dict[str, Any]:
    return {"success": False, "data": None, "error": message}


def get_client(request: Request) -> EntsoeClient:
    """
    Raises:
        EntsoeError: UPSTREAM_NOT_CONFIGURED (→ 503) when ENTSOE_API_KEY is unset
    """
    client: EntsoeClient | None = request.app.state.entsoe_client
    if client is None:
        raise EntsoeError(
            ErrorCodes.UPSTREAM_NOT_CONFIGURED,
            "ENTSO-E API key not configured",
        )
    return client


def primary_zone(country_code: str) -> BiddingZone:
    """
    Raises:
        RequestParseError: unknown country (→ 400)
    """
    zone = areas.get_primary_zone(country_code)
    if zone is None:
        raise RequestParseError(
            ErrorCodes.REQUEST_INVALID,
            f"Unknown country code: {country_code}",
            country=country_code,
        )
    return zone


async def fetch_series(
    request: Request,
    zone: BiddingZone,
    now: datetime,
    hours: int,
) -> list[RenewableSurplus]:
    """Surplus series for [now, now + hours]."""
    client = get_client(request)
    period_start = format_period(now)
    period_end = format_period(now + timedelta(hours=hours))
    logger.debug(f"Fetching surplus zone={zone.code} start={period_start} end={period_end}")
    return await get_renewable_surplus_series(client, zone.code, period_start, period_end)


def max_surplus_payload(
    surplus: RenewableSurplus,
    country_code: str,
    filter_applied: str,
) -> dict[str, Any]:
    return {
        "country_code": country_code,
        "timestamp": surplus.timestamp.isoformat(),
        "timestamp_utc": surplus.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC"),
        "generation_mw": surplus.generation,
        "load_mw": surplus.load,
        "surplus_mw": surplus.surplus,
        "surplus_percentage": surplus.surplus_percentage(),
        "renewable_penetration": surplus.renewable_penetration(),
        "filter_applied": filter_applied,
    }


async def next_hours_surplus(request: Request, country: str, hours: int) -> dict[str, Any]:
    """Max surplus within the next N hours."""
    zone = primary_zone(country)
    now = utc_now()
    # one extra hour so the last full hour is included
    series = await fetch_series(request, zone, now, hours + 1)

    best = find_max(filter_next_hours(series, hours, now))
    if best is None:
        return failure(f"No data found for next {hours} hours")
    return success(max_surplus_payload(best, country, f"Next {hours} hours from now"))


# =============================================================================
# API Routes
# =============================================================================


@api_router.get("/countries")
async def list_countries() -> dict[str, Any]:
    """All country codes with at least one bidding zone."""
    return success(areas.list_countries())


@api_router.get("/zones/{country}")
async def get_country_zones(country: str) -> JSONResponse:
    """Bidding zones for a country (404 if unknown)."""
    zones = areas.get_zones_by_country(country)
    if zones is None:
        return JSONResponse(status_code=404, content=failure(f"Unknown country code: {country}"))
    return JSONResponse(content=success([zone.to_dict() for zone in zones]))


@api_router.get("/renewable-surplus/{country}/night")
async def get_night_surplus(request: Request, country: str) -> dict[str, Any]:
    """Max surplus during night hours (22:00-06:00 UTC) in the next 48h."""
    zone = primary_zone(country)
    series = await fetch_series(request, zone, utc_now(), NIGHT_LOOKAHEAD_HOURS)

    best = find_max(filter_night_hours(series))
    if best is None:
        return failure("No night hours found in forecast period")
    return success(max_surplus_payload(best, country, "Night hours (22:00-06:00)"))


@api_router.get("/renewable-surplus/{country}/next-6h")
async def get_next_6h_surplus(request: Request, country: str) -> dict[str, Any]:
    return await next_hours_surplus(request, country, 6)


@api_router.get("/renewable-surplus/{country}/next-24h")
async def get_next_24h_surplus(request: Request, country: str) -> dict[str, Any]:
    return await next_hours_surplus(request, country, 24)


@api_router.get("/renewable-surplus/{country}/next")
async def get_custom_hours_surplus(
    request: Request,
    country: str,
    hours: HoursQuery = DEFAULT_HOURS,
) -> dict[str, Any]:
    """Max surplus within the next `hours` hours (default 24)."""
    return await next_hours_surplus(request, country, hours)


@api_router.get("/renewable-surplus/{country}/plot", response_class=HTMLResponse)
async def get_plot(
    request: Request,
    country: str,
    hours: HoursQuery = DEFAULT_HOURS,
) -> HTMLResponse:
    """Interactive Plotly page rendered from templates/_plot.html."""
    zone = primary_zone(country)
    series = await fetch_series(request, zone, utc_now(), hours + 1)
    if not series:
        return HTMLResponse("No data available", status_code=404)

    plot_data, plot_layout = generate_plot_data(series)
    store: TemplateStore = request.app.state.templates
    html = store.render(
        PLOT_TEMPLATE,
        {
            "country_code": country,
            "country_name": zone.name,
            "period_start": series[0].timestamp.strftime("%Y-%m-%d %H:%M UTC"),
            "period_end": series[-1].timestamp.strftime("%Y-%m-%d %H:%M UTC"),
            "data_points": len(series),
            "plot_data": plot_data,
            "plot_layout": plot_layout,
        },
    )
    return HTMLResponse(html)


@api_router.get("/renewable-surplus/{country}/plot-json")
async def get_plot_json(
    request: Request,
    country: str,
    hours: HoursQuery = DEFAULT_HOURS,
) -> dict[str, Any]:
    """Plot series as JSON (for frontend frameworks)."""
    zone = primary_zone(country)
    series = await fetch_series(request, zone, utc_now(), hours + 1)
    if not series:
        return failure("No data available")

    return success(
        {
            "timestamps": [s.timestamp.isoformat() for s in series],
            "generation": [s.generation for s in series],
            "load": [s.load for s in series],
            "surplus": [s.surplus for s in series],
        }
    )
