"""
ENTSO-E Transparency Platform client.

Documents used:
- A65 / A01: day-ahead total load forecast (outBiddingZone_Domain)
- A71 / A01: day-ahead generation forecast (in_Domain)

Period strings: YYYYMMDDHHmm (UTC).
Error responses come back as an Acknowledgement_MarketDocument with a
<Reason><code>...</code></Reason> block, sometimes with HTTP 200.
"""

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

from educk.domain.errors import EntsoeError, ErrorCodes
from educk.utils.retry import retry_with_exponential_backoff

logger = logging.getLogger(__name__)

BASE_URL = "https://web-api.tp.entsoe.eu/api"
DEFAULT_TIMEOUT = 30.0

PERIOD_FORMAT = "%Y%m%d%H%M"
INTERVAL_FORMATS = ("%Y-%m-%dT%H:%MZ", "%Y-%m-%dT%H:%M:%SZ")

DURATION_PATTERN = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class TimeInterval:
    start: str
    end: str


@dataclass
class Point:
    position: int
    quantity: float


@dataclass
class Period:
    time_interval: TimeInterval
    resolution: str
    points: list[Point] = field(default_factory=list)


@dataclass
class TimeSeries:
    mrid: str
    business_type: str
    quantity_measure_unit: str
    curve_type: str
    period: Period
    out_bidding_zone: str | None = None
    in_bidding_zone: str | None = None


@dataclass
class TimestampedPoint:
    timestamp: datetime
    quantity: float


@dataclass
class MarketDocument:
    """GL_MarketDocument (generation/load)."""

    mrid: str
    revision_number: str
    doc_type: str
    process_type: str
    created_date_time: str
    time_period_interval: TimeInterval
    time_series: list[TimeSeries] = field(default_factory=list)

    def all_points_with_time(self) -> list[tuple[str, int, float]]:
        """(period start, position, quantity) for every point."""
        return [
            (series.period.time_interval.start, point.position, point.quantity)
            for series in self.time_series
            for point in series.period.points
        ]

    def all_points(self) -> list[tuple[str, float]]:
        """(period start, quantity) for every point."""
        return [(start, qty) for start, _pos, qty in self.all_points_with_time()]

    def total_forecast(self) -> float:
        return sum(p.quantity for ts in self.time_series for p in ts.period.points)

    def average_forecast(self) -> float:
        total_points = sum(len(ts.period.points) for ts in self.time_series)
        if total_points == 0:
            return 0.0
        return self.total_forecast() / total_points

    def min_max(self) -> tuple[float, float] | None:
        values = [p.quantity for ts in self.time_series for p in ts.period.points]
        if not values:
            return None
        return min(values), max(values)

    def all_timestamped_points(self) -> list[TimestampedPoint]:
        """
        Absolute timestamp for every point.

        timestamp = period start + (position - 1) * resolution

        Raises:
            EntsoeError: UPSTREAM_PARSE_FAILED (bad interval or resolution)
        """
        result: list[TimestampedPoint] = []
        for series in self.time_series:
            start = parse_interval_time(series.period.time_interval.start)
            step = parse_resolution(series.period.resolution)
            for point in series.period.points:
                result.append(
                    TimestampedPoint(
                        timestamp=start + step * (point.position - 1),
                        quantity=point.quantity,
                    )
                )
        return result


# =============================================================================
# Parsing
# =============================================================================


def format_period(moment: datetime) -> str:
    """datetime → YYYYMMDDHHmm (UTC)."""
    return moment.astimezone(UTC).strftime(PERIOD_FORMAT)


def parse_interval_time(value: str) -> datetime:
    """'2023-08-14T00:00Z' → aware datetime (UTC)."""
    for fmt in INTERVAL_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).replace(tzinfo=UTC)
        except ValueError:
            continue
    raise EntsoeError(ErrorCodes.UPSTREAM_PARSE_FAILED, "invalid interval timestamp", value=value)


def parse_resolution(value: str) -> timedelta:
    """ISO 8601 duration ('PT15M', 'PT60M', 'P1D') → timedelta."""
    match = DURATION_PATTERN.match(value.strip())
    if not match or not any(match.groupdict().values()):
        raise EntsoeError(ErrorCodes.UPSTREAM_PARSE_FAILED, "invalid resolution", value=value)
    parts = {k: int(v) for k, v in match.groupdict().items() if v}
    step = timedelta(**parts)
    if step <= timedelta(0):
        raise EntsoeError(ErrorCodes.UPSTREAM_PARSE_FAILED, "invalid resolution", value=value)
    return step


def _strip_namespaces(root: ET.Element) -> None:
    for elem in root.iter():
        if isinstance(elem.tag, str) and "}" in elem.tag:
            elem.tag = elem.tag.split("}", 1)[1]


def _text(elem: ET.Element, path: str, required: bool = True) -> str | None:
    child = elem.find(path)
    if child is None or child.text is None:
        if required:
            raise EntsoeError(
                ErrorCodes.UPSTREAM_PARSE_FAILED,
                "missing element",
                element=path,
            )
        return None
    return child.text.strip()


def _interval(elem: ET.Element, path: str) -> TimeInterval:
    node = elem.find(path)
    if node is None:
        raise EntsoeError(ErrorCodes.UPSTREAM_PARSE_FAILED, "missing element", element=path)
    return TimeInterval(start=_text(node, "start") or "", end=_text(node, "end") or "")


def _parse_point(elem: ET.Element) -> Point:
    try:
        return Point(
            position=int(_text(elem, "position") or ""),
            quantity=float(_text(elem, "quantity") or ""),
        )
    except ValueError as e:
        raise EntsoeError(ErrorCodes.UPSTREAM_PARSE_FAILED, "invalid point", error=str(e)) from e


def _parse_series(elem: ET.Element) -> TimeSeries:
    period_elem = elem.find("Period")
    if period_elem is None:
        raise EntsoeError(ErrorCodes.UPSTREAM_PARSE_FAILED, "missing element", element="Period")

    period = Period(
        time_interval=_interval(period_elem, "timeInterval"),
        resolution=_text(period_elem, "resolution") or "",
        points=[_parse_point(p) for p in period_elem.findall("Point")],
    )
    return TimeSeries(
        mrid=_text(elem, "mRID") or "",
        business_type=_text(elem, "businessType", required=False) or "",
        quantity_measure_unit=_text(elem, "quantity_Measure_Unit.name", required=False) or "",
        curve_type=_text(elem, "curveType", required=False) or "",
        period=period,
        out_bidding_zone=_text(elem, "outBiddingZone_Domain.mRID", required=False),
        in_bidding_zone=_text(elem, "inBiddingZone_Domain.mRID", required=False),
    )


def parse_market_document(xml: str) -> MarketDocument:
    """
    Parse a GL_MarketDocument.

    Raises:
        EntsoeError: UPSTREAM_PARSE_FAILED
    """
    try:
        root = ET.fromstring(xml.encode("utf-8"))
    except ET.ParseError as e:
        raise EntsoeError(ErrorCodes.UPSTREAM_PARSE_FAILED, "malformed XML", error=str(e)) from e

    _strip_namespaces(root)
    if root.tag != "GL_MarketDocument":
        raise EntsoeError(
            ErrorCodes.UPSTREAM_PARSE_FAILED,
            "unexpected document type",
            root=root.tag,
        )

    return MarketDocument(
        mrid=_text(root, "mRID") or "",
        revision_number=_text(root, "revisionNumber", required=False) or "",
        doc_type=_text(root, "type") or "",
        process_type=_text(root, "process.processType", required=False) or "",
        created_date_time=_text(root, "createdDateTime", required=False) or "",
        time_period_interval=_interval(root, "time_Period.timeInterval"),
        time_series=[_parse_series(ts) for ts in root.findall("TimeSeries")],
    )


def is_error_response(xml: str) -> bool:
    """Acknowledgement documents carry a <Reason> block."""
    return "<Reason>" in xml or "<code>" in xml


# =============================================================================
# Client
# =============================================================================


class EntsoeClient:
    """
    Async ENTSO-E API client.

    Usage:
        client = EntsoeClient(api_key)
        doc = await client.fetch_day_ahead_total_load_forecast(
            "10YCZ-CEPS-----N", "202601070000", "202601080000"
        )
        await client.aclose()
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 2,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Args:
            api_key: security token (ENTSOE_API_KEY)
            base_url: API endpoint
            timeout: per-request timeout (seconds)
            max_retries: retries on transport errors
            http_client: injected client (tests: httpx.MockTransport)
        """
        self.api_key = api_key
        self.base_url = base_url
        self.max_retries = max_retries
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_day_ahead_total_load_forecast(
        self,
        out_bidding_zone: str,
        period_start: str,
        period_end: str,
    ) -> MarketDocument:
        """Day-ahead total load forecast (A65)."""
        return await self._fetch_and_parse(
            {
                "documentType": "A65",
                "processType": "A01",
                "outBiddingZone_Domain": out_bidding_zone,
                "periodStart": period_start,
                "periodEnd": period_end,
            }
        )

    async def fetch_day_ahead_generation_forecast(
        self,
        in_domain: str,
        period_start: str,
        period_end: str,
    ) -> MarketDocument:
        """Day-ahead generation forecast (A71)."""
        return await self._fetch_and_parse(
            {
                "documentType": "A71",
                "processType": "A01",
                "in_Domain": in_domain,
                "periodStart": period_start,
                "periodEnd": period_end,
            }
        )

    async def _fetch_and_parse(self, params: dict[str, Any]) -> MarketDocument:
        query = {"securityToken": self.api_key, **params}
        label = f"ENTSO-E {params['documentType']}"

        try:
            response = await retry_with_exponential_backoff(
                lambda: self._client.get(self.base_url, params=query),
                max_retries=self.max_retries,
                exceptions=(httpx.TransportError,),
                description=label,
            )
        except httpx.HTTPError as e:
            raise EntsoeError(
                ErrorCodes.UPSTREAM_REQUEST_FAILED,
                "HTTP request failed",
                document_type=params["documentType"],
                error=str(e),
            ) from e

        xml = response.text
        if response.status_code >= 400 or is_error_response(xml):
            logger.warning(f"{label} rejected: status={response.status_code}")
            raise EntsoeError(
                ErrorCodes.UPSTREAM_INVALID_RESPONSE,
                "invalid response",
                status=response.status_code,
                body=xml[:500],
            )

        try:
            return parse_market_document(xml)
        except EntsoeError:
            logger.error(f"Failed to parse {label} XML ({len(xml)} bytes)")
            logger.debug(f"XML content: {xml}")
            raise
