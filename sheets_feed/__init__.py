"""Spreadsheet-backed positions and market research feed."""

from sheets_feed.core import (
    EventBus,
    EventName,
    SheetsConfig,
    TimedCache,
    build_config,
    compute_statistics,
    configure_logging,
    load_environment,
    parse_delimited,
)
from sheets_feed.providers.prices import CoinGeckoPriceProvider
from sheets_feed.providers.sheets import SheetsClient, SheetsData

__all__ = [
    "CoinGeckoPriceProvider",
    "EventBus",
    "EventName",
    "SheetsClient",
    "SheetsConfig",
    "SheetsData",
    "TimedCache",
    "build_config",
    "compute_statistics",
    "configure_logging",
    "load_environment",
    "parse_delimited",
]
