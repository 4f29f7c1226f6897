"""
ENTSO-E bidding zones / control areas.

Country code: ISO 3166-1 alpha-2. Area code: ENTSO-E EIC code.
A country may have several zones (e.g. DE per TSO); the first listed one is
the primary zone used by the surplus API.
"""

from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class BiddingZone:
    """An ENTSO-E bidding zone or control area."""

    code: str
    country_code: str
    name: str
    tso: str | None = None  # Transmission System Operator

    def __str__(self) -> str:
        if self.tso:
            return f"{self.name} ({self.country_code}) - {self.tso}"
        return f"{self.name} ({self.country_code})"

    def to_dict(self) -> dict[str, str | None]:
        return {"code": self.code, "name": self.name, "tso": self.tso}


BIDDING_ZONES: tuple[BiddingZone, ...] = (
    BiddingZone("10YAL-KESH-----5", "AL", "Albania", None),
    BiddingZone("10YAT-APG------L", "AT", "Austria", None),
    BiddingZone("10Y1001A1001A51S", "BY", "Belarus", None),
    BiddingZone("10YBE----------2", "BE", "Belgium", None),
    BiddingZone("10YBA-JPCC-----D", "BA", "Bosnia and Herzegovina", None),
    BiddingZone("10YCA-BULGARIA-R", "BG", "Bulgaria", None),
    BiddingZone("10YHR-HEP------M", "HR", "Croatia", None),
    BiddingZone("10YCY-1001A0003J", "CY", "Cyprus", None),
    BiddingZone("10YCZ-CEPS-----N", "CZ", "Czech Republic", None),
    BiddingZone("10Y1001A1001A796", "DK", "Denmark", None),
    BiddingZone("10Y1001A1001A39I", "EE", "Estonia", None),
    BiddingZone("10YFI-1--------U", "FI", "Finland", None),
    BiddingZone("10YFR-RTE------C", "FR", "France", None),
    BiddingZone("10Y1001A1001A83F", "DE", "Germany", None),
    BiddingZone("10YDE-VE-------2", "DE", "Germany", "50Hertz"),
    BiddingZone("10YDE-RWENET---I", "DE", "Germany", "Amprion"),
    BiddingZone("10YDE-EON------1", "DE", "Germany", "TenneT"),
    BiddingZone("10YDE-ENBW-----N", "DE", "Germany", "TransnetBW"),
    BiddingZone("10YGR-HTSO-----Y", "GR", "Greece", None),
    BiddingZone("10YHU-MAVIR----U", "HU", "Hungary", None),
    BiddingZone("IS", "IS", "Iceland", None),
    BiddingZone("10YIE-1001A00010", "IE", "Ireland", None),
    BiddingZone("10Y1001A1001A016", "GB", "Northern Ireland", None),
    BiddingZone("10YIT-GRTN-----B", "IT", "Italy", None),
    BiddingZone("10Y1001A1001A885", "IT", "Italy", "Saco AC"),
    BiddingZone("10Y1001A1001A893", "IT", "Italy", "Saco DC"),
    BiddingZone("10Y1001A1001A50U", "RU", "Kaliningrad", None),
    BiddingZone("10YLV-1001A00074", "LV", "Latvia", None),
    BiddingZone("10YLT-1001A0008Q", "LT", "Lithuania", None),
    BiddingZone("10YLU-CEGEDEL-NQ", "LU", "Luxembourg", None),
    BiddingZone("10YMK-MEPSO----8", "MK", "North Macedonia", None),
    BiddingZone("10Y1001A1001A93C", "MT", "Malta", None),
    BiddingZone("10Y1001A1001A990", "MD", "Moldova", None),
    BiddingZone("10YCS-CG-TSO---S", "ME", "Montenegro", None),
    BiddingZone("10YNL----------L", "NL", "Netherlands", None),
    BiddingZone("10YNO-0--------C", "NO", "Norway", None),
    BiddingZone("10YPL-AREA-----S", "PL", "Poland", None),
    BiddingZone("10YPT-REN------W", "PT", "Portugal", None),
    BiddingZone("10YRO-TEL------P", "RO", "Romania", None),
    BiddingZone("10Y1001A1001A49F", "RU", "Russia", None),
    BiddingZone("10YCS-SERBIATSOV", "RS", "Serbia", None),
    BiddingZone("10YSK-SEPS-----K", "SK", "Slovakia", None),
    BiddingZone("10YSI-ELES-----O", "SI", "Slovenia", None),
    BiddingZone("10YES-REE------0", "ES", "Spain", None),
    BiddingZone("10YSE-1--------K", "SE", "Sweden", None),
    BiddingZone("10YCH-SWISSGRIDZ", "CH", "Switzerland", None),
    BiddingZone("10YTR-TEIAS----W", "TR", "Turkey", None),
    BiddingZone("10Y1001C--00003F", "UA", "Ukraine", None),
)


def _group_by_country(zones: tuple[BiddingZone, ...]) -> dict[str, tuple[BiddingZone, ...]]:
    grouped: dict[str, list[BiddingZone]] = {}
    for zone in zones:
        grouped.setdefault(zone.country_code, []).append(zone)
    return {cc: tuple(items) for cc, items in grouped.items()}


ZONES_BY_COUNTRY = MappingProxyType(_group_by_country(BIDDING_ZONES))


def get_zones_by_country(country_code: str) -> tuple[BiddingZone, ...] | None:
    """All zones for a country (None if unknown)."""
    return ZONES_BY_COUNTRY.get(country_code)


def get_zone_by_code(area_code: str) -> BiddingZone | None:
    """Zone by its ENTSO-E code."""
    for zone in BIDDING_ZONES:
        if zone.code == area_code:
            return zone
    return None


def get_primary_zone(country_code: str) -> BiddingZone | None:
    """First zone listed for a country."""
    zones = ZONES_BY_COUNTRY.get(country_code)
    return zones[0] if zones else None


def list_countries() -> list[str]:
    """Sorted country codes."""
    return sorted(ZONES_BY_COUNTRY)
