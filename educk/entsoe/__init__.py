"""
ENTSO-E Transparency Platform: client, bidding zones, surplus analysis.
"""

from .analysis import (
    RenewableSurplus,
    combine_forecasts,
    filter_next_hours,
    filter_night_hours,
    find_max,
    find_max_renewable_surplus,
    generate_plot_data,
    get_renewable_surplus_series,
)
from .areas import (
    BiddingZone,
    get_primary_zone,
    get_zone_by_code,
    get_zones_by_country,
    list_countries,
)
from .client import EntsoeClient, MarketDocument, format_period, parse_market_document

__all__ = [
    # client
    "EntsoeClient",
    "MarketDocument",
    "parse_market_document",
    "format_period",
    # areas
    "BiddingZone",
    "get_zones_by_country",
    "get_zone_by_code",
    "get_primary_zone",
    "list_countries",
    # analysis
    "RenewableSurplus",
    "combine_forecasts",
    "get_renewable_surplus_series",
    "find_max_renewable_surplus",
    "filter_night_hours",
    "filter_next_hours",
    "find_max",
    "generate_plot_data",
]
