"""
Renewable surplus analysis: generation forecast vs. load forecast.

surplus = generation - load (MW), joined on timestamp.
"""

import asyncio
import json
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from educk.domain.errors import EntsoeError, ErrorCodes

from .client import EntsoeClient, MarketDocument

NIGHT_START_HOUR = 22
NIGHT_END_HOUR = 6


@dataclass(frozen=True)
class RenewableSurplus:
    """Surplus at one point in time."""

    timestamp: datetime
    generation: float
    load: float

    @property
    def surplus(self) -> float:
        return self.generation - self.load

    def surplus_percentage(self) -> float:
        """Surplus as a percentage of generation (0 when generation is 0)."""
        if self.generation == 0.0:
            return 0.0
        return self.surplus / self.generation * 100.0

    def renewable_penetration(self) -> float:
        """Generation as a percentage of load (0 when load is 0)."""
        if self.load == 0.0:
            return 0.0
        return self.generation / self.load * 100.0

    def has_excess(self) -> bool:
        return self.surplus > 0.0


# =============================================================================
# Combining forecasts
# =============================================================================


def combine_forecasts(
    generation: MarketDocument,
    load: MarketDocument,
) -> list[RenewableSurplus]:
    """
    Join generation and load points by timestamp.

    Generation points without a load value are dropped. Sorted by timestamp.
    """
    load_map = {p.timestamp: p.quantity for p in load.all_timestamped_points()}

    surpluses = [
        RenewableSurplus(timestamp=p.timestamp, generation=p.quantity, load=load_map[p.timestamp])
        for p in generation.all_timestamped_points()
        if p.timestamp in load_map
    ]
    surpluses.sort(key=lambda s: s.timestamp)
    return surpluses


async def get_renewable_surplus_series(
    client: EntsoeClient,
    bidding_zone: str,
    period_start: str,
    period_end: str,
) -> list[RenewableSurplus]:
    """Fetch both forecasts concurrently and combine them."""
    generation, load = await asyncio.gather(
        client.fetch_day_ahead_generation_forecast(bidding_zone, period_start, period_end),
        client.fetch_day_ahead_total_load_forecast(bidding_zone, period_start, period_end),
    )
    return combine_forecasts(generation, load)


async def find_max_renewable_surplus(
    client: EntsoeClient,
    bidding_zone: str,
    period_start: str,
    period_end: str,
) -> RenewableSurplus:
    """
    Point with the highest surplus in the period.

    Raises:
        EntsoeError: UPSTREAM_NO_DATA when no timestamps match
    """
    series = await get_renewable_surplus_series(client, bidding_zone, period_start, period_end)
    best = find_max(series)
    if best is None:
        raise EntsoeError(
            ErrorCodes.UPSTREAM_NO_DATA,
            "No matching data points found",
            bidding_zone=bidding_zone,
        )
    return best


# =============================================================================
# Filters
# =============================================================================


def filter_night_hours(series: list[RenewableSurplus]) -> list[RenewableSurplus]:
    """Points between 22:00 and 06:00 (UTC)."""
    return [
        s for s in series
        if s.timestamp.hour >= NIGHT_START_HOUR or s.timestamp.hour < NIGHT_END_HOUR
    ]


def filter_next_hours(
    series: list[RenewableSurplus],
    hours: int,
    now: datetime | None = None,
) -> list[RenewableSurplus]:
    """Points within [now, now + hours]."""
    now = now or datetime.now(UTC)
    end_time = now + timedelta(hours=hours)
    return [s for s in series if now <= s.timestamp <= end_time]


def find_max(series: list[RenewableSurplus]) -> RenewableSurplus | None:
    """Highest surplus (first one wins on ties)."""
    if not series:
        return None
    return max(series, key=lambda s: s.surplus)


# =============================================================================
# Plot data (Plotly)
# =============================================================================


def _trace(x: list[str], y: list[float], name: str, color: str) -> dict:
    return {
        "x": x,
        "y": y,
        "name": name,
        "type": "scatter",
        "mode": "lines+markers",
        "line": {"color": color, "width": 2},
        "marker": {"size": 4},
    }


def generate_plot_data(series: list[RenewableSurplus]) -> tuple[str, str]:
    """
    Plotly traces + layout as JSON strings.

    Returns:
        (traces_json, layout_json)
    """
    timestamps = [s.timestamp.strftime("%Y-%m-%d %H:%M") for s in series]

    traces = [
        _trace(timestamps, [s.generation for s in series], "Wind + Solar Generation", "rgb(34, 139, 34)"),
        _trace(timestamps, [s.load for s in series], "Total Load", "rgb(30, 144, 255)"),
        _trace(timestamps, [s.surplus for s in series], "Surplus (Generation - Load)", "rgb(255, 140, 0)"),
    ]

    layout = {
        "title": {"text": "Renewable Energy Forecast", "font": {"size": 20}},
        "xaxis": {"title": "Time", "tickangle": -45},
        "yaxis": {"title": "Power (MW)"},
        "hovermode": "x unified",
        "plot_bgcolor": "rgb(250, 250, 250)",
        "paper_bgcolor": "white",
        "showlegend": True,
        "legend": {
            "x": 0.01,
            "y": 0.99,
            "bgcolor": "rgba(255, 255, 255, 0.8)",
            "bordercolor": "rgba(0, 0, 0, 0.2)",
            "borderwidth": 1,
        },
    }

    return json.dumps(traces), json.dumps(layout)
