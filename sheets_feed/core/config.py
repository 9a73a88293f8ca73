"""Configuration utilities for the spreadsheet feed client."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from sheets_feed.core.cache import DEFAULT_CACHE_EXPIRY
from sheets_feed.core.scheduler import DEFAULT_REFRESH_INTERVAL
from sheets_feed.providers.base import DEFAULT_TIMEOUT, ProviderConfigurationError

DEFAULT_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/export"
DEFAULT_PRICE_API_URL = "https://api.coingecko.com/api/v3"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_TRUTHY = {"1", "true", "yes", "y", "on"}


def _coerce_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _coerce_float(value: Any, default: float) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass
class SheetsConfig:
    """Runtime configuration for :class:`~sheets_feed.providers.sheets.SheetsClient`."""

    spreadsheet_id: str
    positions_gid: str
    market_research_gid: str
    cache_enabled: bool = True
    debug: bool = True
    cache_expiry: float = DEFAULT_CACHE_EXPIRY
    auto_refresh: bool = False
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    request_timeout: float = DEFAULT_TIMEOUT
    retries: int = 1
    export_url: str = DEFAULT_EXPORT_URL
    price_api_url: str = DEFAULT_PRICE_API_URL

    def __post_init__(self) -> None:
        self.spreadsheet_id = str(self.spreadsheet_id or "").strip()
        if not self.spreadsheet_id:
            raise ProviderConfigurationError("spreadsheet_id is required.")
        self.positions_gid = str(self.positions_gid).strip()
        self.market_research_gid = str(self.market_research_gid).strip()
        if not self.positions_gid or not self.market_research_gid:
            raise ProviderConfigurationError("Both sheet ids (gid) are required.")
        self.cache_enabled = _coerce_bool(self.cache_enabled, True)
        self.debug = _coerce_bool(self.debug, True)
        self.auto_refresh = _coerce_bool(self.auto_refresh, False)
        self.cache_expiry = _coerce_float(self.cache_expiry, DEFAULT_CACHE_EXPIRY)
        if self.cache_expiry < 0:
            raise ProviderConfigurationError("cache_expiry must be non-negative.")
        self.refresh_interval = _coerce_float(self.refresh_interval, DEFAULT_REFRESH_INTERVAL)
        if self.refresh_interval <= 0:
            raise ProviderConfigurationError("refresh_interval must be positive.")
        self.request_timeout = max(0.1, _coerce_float(self.request_timeout, DEFAULT_TIMEOUT))
        try:
            self.retries = max(1, int(self.retries))
        except (TypeError, ValueError):
            self.retries = 1
        self.export_url = str(self.export_url or DEFAULT_EXPORT_URL)
        self.price_api_url = str(self.price_api_url or DEFAULT_PRICE_API_URL).rstrip("/")

    def sheet_url(self) -> str:
        """Return the CSV export endpoint for the configured spreadsheet."""

        return self.export_url.format(spreadsheet_id=self.spreadsheet_id)


def load_environment() -> None:
    """Load configuration from an optional ``.env`` file."""

    load_dotenv()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


_ENV_KEYS: Mapping[str, str] = {
    "spreadsheet_id": "SHEETS_SPREADSHEET_ID",
    "positions_gid": "SHEETS_POSITIONS_GID",
    "market_research_gid": "SHEETS_MARKET_RESEARCH_GID",
    "cache_enabled": "SHEETS_CACHE_ENABLED",
    "debug": "SHEETS_DEBUG",
    "cache_expiry": "SHEETS_CACHE_EXPIRY",
    "auto_refresh": "SHEETS_AUTO_REFRESH",
    "refresh_interval": "SHEETS_REFRESH_INTERVAL",
}


def build_config(
    spreadsheet_id: Optional[str] = None,
    positions_gid: Optional[str] = None,
    market_research_gid: Optional[str] = None,
    cache_enabled: Optional[bool] = None,
    debug: Optional[bool] = None,
    cache_expiry: Optional[float] = None,
    auto_refresh: Optional[bool] = None,
    refresh_interval: Optional[float] = None,
    **extra: Any,
) -> SheetsConfig:
    """Build a :class:`SheetsConfig` from keyword overrides and ``SHEETS_*`` variables.

    Explicit arguments take precedence over the environment. Call
    :func:`load_environment` first to pick up a ``.env`` file.
    """

    supplied = {
        "spreadsheet_id": spreadsheet_id,
        "positions_gid": positions_gid,
        "market_research_gid": market_research_gid,
        "cache_enabled": cache_enabled,
        "debug": debug,
        "cache_expiry": cache_expiry,
        "auto_refresh": auto_refresh,
        "refresh_interval": refresh_interval,
    }
    resolved: dict[str, Any] = {}
    for key, value in supplied.items():
        if value is None:
            value = os.environ.get(_ENV_KEYS[key])
        if value is not None:
            resolved[key] = value

    if not resolved.get("spreadsheet_id"):
        raise ProviderConfigurationError(
            "A spreadsheet id is required. Pass spreadsheet_id or set SHEETS_SPREADSHEET_ID."
        )
    resolved.setdefault("positions_gid", "0")
    if "market_research_gid" not in resolved:
        raise ProviderConfigurationError(
            "A market research sheet id is required. Pass market_research_gid or set "
            "SHEETS_MARKET_RESEARCH_GID."
        )
    return SheetsConfig(**resolved, **extra)


__all__ = [
    "DEFAULT_EXPORT_URL",
    "DEFAULT_PRICE_API_URL",
    "SheetsConfig",
    "build_config",
    "configure_logging",
    "load_environment",
]
