"""Series normalizer: heterogeneous provider rows -> ordered PricePoints.

Providers disagree on field names ("close", "4. close", "Close"), on how
rows are keyed (a list of records vs. a mapping of date -> record) and on
how dates are written (ISO dates, timestamps with a time component, epoch
seconds). Everything funnels through ``normalize_rows`` so the rest of the
system only ever sees ``PricePoint``.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timezone
from typing import Any

from market_lens.core.exceptions import EmptySeriesError
from market_lens.prices.models import PricePoint, PriceSeries, TimeRange

logger = logging.getLogger(__name__)

_DATE_PREFIX = re.compile(r"^\s*(\d{4}-\d{2}-\d{2})")

# Lookup order matters: the first key present wins.
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "date": ("date", "Date", "datetime", "timestamp", "time", "t"),
    "open": ("open", "Open", "1. open", "1a. open (USD)", "o"),
    "high": ("high", "High", "2. high", "2a. high (USD)", "h"),
    "low": ("low", "Low", "3. low", "3a. low (USD)", "l"),
    "close": ("close", "Close", "4. close", "4a. close (USD)", "c"),
    "adjusted_close": (
        "adjustedClose",
        "adjusted_close",
        "adj_close",
        "adjclose",
        "Adj Close",
        "5. adjusted close",
    ),
    "volume": ("volume", "Volume", "6. volume", "5. volume", "v"),
}


def normalize_rows(raw: Mapping[str, Any] | Iterable[Mapping[str, Any]]) -> list[PricePoint]:
    """Convert provider records into a date-sorted list of PricePoints.

    ``raw`` is either an iterable of records that carry their own date
    field, or a mapping of date string -> record (the Alpha Vantage shape).
    Missing or unparseable numeric fields become 0; a missing adjusted
    close falls back to the close. Rows without a usable date are dropped.
    When a date repeats, the last record wins.
    """
    by_date: dict[date, PricePoint] = {}
    for row_date, record in _iter_records(raw):
        if row_date is None:
            logger.warning("Dropping price row without a usable date: %r", record)
            continue

        close = _number(_pick(record, "close"))
        adjusted = _pick(record, "adjusted_close")
        by_date[row_date] = PricePoint(
            date=row_date,
            open=_number(_pick(record, "open")),
            high=_number(_pick(record, "high")),
            low=_number(_pick(record, "low")),
            close=close,
            adjusted_close=_number(adjusted) if adjusted is not None else close,
            volume=int(_number(_pick(record, "volume"))),
        )

    return [by_date[d] for d in sorted(by_date)]


def apply_range(points: list[PricePoint], time_range: TimeRange) -> list[PricePoint]:
    """Keep the trailing ``time_range.trading_days`` points (all for MAX)."""
    days = time_range.trading_days
    if days is None:
        return list(points)
    return list(points[-days:])


def build_series(
    raw: Mapping[str, Any] | Iterable[Mapping[str, Any]],
    symbol: str,
    time_range: TimeRange,
    *,
    provider: str = "unknown",
    last_updated: str | None = None,
    timezone_name: str | None = None,
) -> PriceSeries:
    """Normalize, sort and trim raw rows into a PriceSeries.

    Raises:
        EmptySeriesError: normalization yielded zero points.
    """
    points = normalize_rows(raw)
    if not points:
        raise EmptySeriesError(
            f"No price data for {symbol}",
            context={"symbol": symbol, "provider": provider, "suggestions": []},
        )

    return PriceSeries(
        symbol=symbol,
        range=time_range,
        points=apply_range(points, time_range),
        last_updated=last_updated,
        timezone=timezone_name,
        provider=provider,
    )


def parse_calendar_date(value: Any) -> date | None:
    """Reduce a provider date/timestamp to its calendar date.

    Strings keep only their ``YYYY-MM-DD`` prefix; epoch numbers are read
    as UTC seconds (milliseconds when implausibly large).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, int | float):
        seconds = value / 1000 if value > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        match = _DATE_PREFIX.match(value)
        if match is None:
            return None
        try:
            return date.fromisoformat(match.group(1))
        except ValueError:
            return None
    return None


def _iter_records(raw: Any) -> Iterable[tuple[date | None, Mapping[str, Any]]]:
    if isinstance(raw, Mapping):
        for key, record in raw.items():
            if isinstance(record, Mapping):
                yield parse_calendar_date(key), record
        return

    for record in raw:
        if isinstance(record, Mapping):
            yield parse_calendar_date(_pick(record, "date")), record


def _pick(record: Mapping[str, Any], field: str) -> Any:
    for key in _FIELD_ALIASES[field]:
        if key in record and record[key] is not None:
            return record[key]
    return None


def _number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(result):
        return 0.0
    return result
