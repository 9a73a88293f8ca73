"""Network-facing adapters for spreadsheet exports and price feeds."""

from __future__ import annotations

from typing import Any

__all__ = [
    "CoinGeckoPriceProvider",
    "SheetsClient",
    "SheetsData",
]


def __getattr__(name: str) -> Any:  # pragma: no cover - trivial passthrough
    if name in {"SheetsClient", "SheetsData"}:
        from sheets_feed.providers import sheets as _sheets

        return getattr(_sheets, name)
    if name == "CoinGeckoPriceProvider":
        from sheets_feed.providers.prices import (
            CoinGeckoPriceProvider as _CoinGeckoPriceProvider,
        )

        return _CoinGeckoPriceProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
