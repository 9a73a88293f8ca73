"""CoinGecko adapter for spot prices and short price histories."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
import pandas as pd

from sheets_feed.core.config import DEFAULT_PRICE_API_URL

from .base import BaseProvider, ProviderError, RecordModel

LOGGER = logging.getLogger(__name__)

# Roughly the 300ms spacing used between chart history requests.
DEFAULT_PRICE_RATE_LIMIT_PER_SEC = 1.0 / 0.3


def _parse_float(value: Any) -> float | None:
    try:
        if value is None:
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


class PriceQuote(RecordModel):
    """Current USD price and 24 hour change for one asset."""

    asset_id: str
    usd: float | None = None
    usd_24h_change: float | None = None


class PricePoint(RecordModel):
    timestamp: datetime
    price: float


class CoinGeckoPriceProvider(BaseProvider):
    """Look up crypto prices by CoinGecko asset id (``bitcoin``, ``ethereum``)."""

    name = "coingecko"

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_PRICE_API_URL,
        client: httpx.AsyncClient | None = None,
        rate_limit_per_sec: float = DEFAULT_PRICE_RATE_LIMIT_PER_SEC,
        retries: int = 1,
    ) -> None:
        super().__init__(client=client, rate_limit_per_sec=rate_limit_per_sec, retries=retries)
        self.base_url = base_url.rstrip("/")

    async def get_price(self, asset_id: str) -> PriceQuote | None:
        """Return the latest quote, or ``None`` when it cannot be retrieved."""

        params = {
            "ids": asset_id,
            "vs_currencies": "usd",
            "include_24hr_change": "true",
        }
        try:
            payload = await self._get_json(f"{self.base_url}/simple/price", params)
        except (ProviderError, ValueError) as exc:
            LOGGER.warning("Error fetching price for %s: %s", asset_id, exc)
            return None
        entry = payload.get(asset_id) if isinstance(payload, dict) else None
        if not isinstance(entry, dict):
            LOGGER.warning("No price returned for %s", asset_id)
            return None
        return PriceQuote(
            asset_id=asset_id,
            usd=_parse_float(entry.get("usd")),
            usd_24h_change=_parse_float(entry.get("usd_24h_change")),
        )

    async def get_historical(self, asset_id: str, days: int = 7) -> list[PricePoint]:
        """Return ``(timestamp, price)`` points for the last ``days`` days."""

        params = {"vs_currency": "usd", "days": str(int(days))}
        try:
            payload = await self._get_json(
                f"{self.base_url}/coins/{asset_id}/market_chart", params
            )
        except (ProviderError, ValueError) as exc:
            LOGGER.warning("Error fetching historical data for %s: %s", asset_id, exc)
            return []
        raw_prices = payload.get("prices", []) if isinstance(payload, dict) else []
        points: list[PricePoint] = []
        for item in raw_prices:
            if not isinstance(item, (list, tuple)) or len(item) < 2:
                continue
            millis = _parse_float(item[0])
            price = _parse_float(item[1])
            if millis is None or price is None:
                continue
            points.append(
                PricePoint(
                    timestamp=datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc),
                    price=price,
                )
            )
        return points

    async def get_historical_frame(self, asset_id: str, days: int = 7) -> pd.DataFrame:
        return history_frame(await self.get_historical(asset_id, days))


def history_frame(points: list[PricePoint]) -> pd.DataFrame:
    """Return ``points`` as a ``price`` column indexed by UTC timestamp."""

    if not points:
        index = pd.DatetimeIndex([], tz="UTC", name="timestamp")
        return pd.DataFrame(columns=["price"], index=index)
    frame = pd.DataFrame([point.model_dump() for point in points])
    frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True)
    return frame.set_index("timestamp").sort_index()


__all__ = [
    "CoinGeckoPriceProvider",
    "DEFAULT_PRICE_RATE_LIMIT_PER_SEC",
    "PricePoint",
    "PriceQuote",
    "history_frame",
]
