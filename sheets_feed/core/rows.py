"""Row helpers and the read-only views computed from parsed spreadsheet rows.

A :data:`Row` is an ordered mapping of column header to raw string value.
Nothing here caches or mutates its input; every view is recomputed from the
rows passed at call time.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Sequence

from sheets_feed.providers.base import RecordModel

Row = dict[str, str]

NO_POSITIONS_SENTINEL = "NO POSITIONS"

SYMBOL_FIELD = "Symbol"
SIGNAL_FIELD = "Signal"
SENTIMENT_FIELD = "Sentiment"
CONFIDENCE_FIELD = "Confidence %"
CHANGE_FIELD = "24h Change %"


def parse_number(value: Any, default: float = 0.0) -> float:
    """Interpret spreadsheet text as a float, falling back to ``default``.

    Surrounding whitespace, ``%`` and ``$`` signs and thousands separators are
    ignored, so ``" $1,250.5 "`` parses as ``1250.5`` and ``"12%"`` as ``12.0``.
    Empty, unparsable and non-finite values yield ``default``.

    This is stricter than a browser-style ``parseFloat(text) || 0`` that reads
    a numeric prefix: every comma is treated as a thousands separator, so
    ``"1,5"`` is ``15.0`` rather than ``1``, and trailing text makes the whole
    value unparsable, so ``"12abc"`` yields ``default`` rather than ``12``.
    """

    if value is None:
        return default
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = float(value)
        return number if math.isfinite(number) else default
    text = str(value).strip().replace(",", "").replace("$", "").rstrip("%").strip()
    if not text:
        return default
    try:
        number = float(text)
    except ValueError:
        return default
    return number if math.isfinite(number) else default


def has_content(row: Mapping[str, Any]) -> bool:
    """Return ``True`` when at least one field holds non-blank text."""

    return any(value is not None and str(value).strip() for value in row.values())


def is_active_position(row: Mapping[str, Any], *, symbol_field: str = SYMBOL_FIELD) -> bool:
    """Return whether ``row`` describes a real position.

    Rows with a blank symbol, the ``NO POSITIONS`` placeholder or no content
    at all are rejected.
    """

    symbol = str(row.get(symbol_field) or "").strip()
    if not symbol or symbol == NO_POSITIONS_SENTINEL:
        return False
    return has_content(row)


def filter_by_field(rows: Iterable[Row], field_name: str, value: str) -> list[Row]:
    return [row for row in rows if row.get(field_name) == value]


def filter_by_symbol(rows: Iterable[Row], symbol: str) -> list[Row]:
    return filter_by_field(rows, SYMBOL_FIELD, symbol)


def _filter_casefold(rows: Iterable[Row], field_name: str, value: str) -> list[Row]:
    wanted = value.lower()
    return [row for row in rows if (row.get(field_name) or "").lower() == wanted]


def filter_by_signal(rows: Iterable[Row], status: str) -> list[Row]:
    """Rows whose ``Signal`` matches ``status`` ignoring case."""

    return _filter_casefold(rows, SIGNAL_FIELD, status)


def filter_by_sentiment(rows: Iterable[Row], sentiment: str) -> list[Row]:
    """Rows whose ``Sentiment`` matches ``sentiment`` ignoring case."""

    return _filter_casefold(rows, SENTIMENT_FIELD, sentiment)


class StatisticsSnapshot(RecordModel):
    """Aggregate counts and extrema over a set of position rows."""

    total_positions: int = 0
    bullish_count: int = 0
    bearish_count: int = 0
    neutral_count: int = 0
    buy_signals: int = 0
    sell_signals: int = 0
    hold_signals: int = 0
    average_confidence: float = 0.0
    top_asset: str | None = None
    worst_asset: str | None = None


class PortfolioMetrics(RecordModel):
    """Balance and profit figures derived from position rows."""

    total_balance: float = 0.0
    total_cost_basis: float = 0.0
    total_pnl: float = 0.0
    total_pnl_percent: float = 0.0


def compute_statistics(
    rows: Sequence[Row],
    *,
    symbol_field: str = SYMBOL_FIELD,
    sentiment_field: str = SENTIMENT_FIELD,
    signal_field: str = SIGNAL_FIELD,
    confidence_field: str = CONFIDENCE_FIELD,
    change_field: str = CHANGE_FIELD,
) -> StatisticsSnapshot:
    """Tally sentiment and signal buckets and locate the best and worst movers.

    Sentiment values other than bullish/bearish count as neutral. Signals that
    are not buy/sell/hold are not counted. The first row reaching a new maximum
    or minimum change keeps the title on ties.
    """

    if not rows:
        return StatisticsSnapshot()

    sentiments = {"bullish": 0, "bearish": 0, "neutral": 0}
    signals = {"buy": 0, "sell": 0, "hold": 0}
    confidence_sum = 0.0
    max_change = -math.inf
    min_change = math.inf
    top_asset: str | None = None
    worst_asset: str | None = None

    for row in rows:
        sentiment = (row.get(sentiment_field) or "").lower()
        sentiments[sentiment if sentiment in ("bullish", "bearish") else "neutral"] += 1

        signal = (row.get(signal_field) or "").lower()
        if signal in signals:
            signals[signal] += 1

        confidence_sum += parse_number(row.get(confidence_field))

        change = parse_number(row.get(change_field))
        if change > max_change:
            max_change = change
            top_asset = row.get(symbol_field)
        if change < min_change:
            min_change = change
            worst_asset = row.get(symbol_field)

    return StatisticsSnapshot(
        total_positions=len(rows),
        bullish_count=sentiments["bullish"],
        bearish_count=sentiments["bearish"],
        neutral_count=sentiments["neutral"],
        buy_signals=signals["buy"],
        sell_signals=signals["sell"],
        hold_signals=signals["hold"],
        average_confidence=round(confidence_sum / len(rows), 2),
        top_asset=top_asset,
        worst_asset=worst_asset,
    )


def _first_present(row: Mapping[str, str], *keys: str) -> str | None:
    for key in keys:
        value = row.get(key)
        if value:
            return value
    return None


def calculate_portfolio_metrics(rows: Sequence[Row]) -> PortfolioMetrics:
    """Sum market value and cost basis across positions."""

    total_balance = 0.0
    total_cost_basis = 0.0
    for row in rows:
        quantity = parse_number(_first_present(row, "Quantity", "Size"))
        entry_price = parse_number(row.get("Entry Price"))
        current_price = parse_number(_first_present(row, "Mark Price", "Current Price"))
        total_balance += quantity * current_price
        total_cost_basis += quantity * entry_price

    total_pnl = total_balance - total_cost_basis
    pnl_percent = (total_pnl / total_cost_basis) * 100 if total_cost_basis else 0.0
    return PortfolioMetrics(
        total_balance=total_balance,
        total_cost_basis=total_cost_basis,
        total_pnl=total_pnl,
        total_pnl_percent=pnl_percent,
    )


__all__ = [
    "NO_POSITIONS_SENTINEL",
    "PortfolioMetrics",
    "Row",
    "StatisticsSnapshot",
    "calculate_portfolio_metrics",
    "compute_statistics",
    "filter_by_field",
    "filter_by_sentiment",
    "filter_by_signal",
    "filter_by_symbol",
    "has_content",
    "is_active_position",
    "parse_number",
]
