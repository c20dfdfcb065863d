"""Source-agnostic daily quotes.

Architecture
------------
    Provider API → raw rows → Series Normalizer → PriceSeries → Consumer

Key abstractions:

- ``PricePoint`` / ``PriceSeries``: the canonical daily OHLCV records.
- ``QuotesProvider``: consumer-facing async interface for fetching a series.
- ``normalize_rows`` / ``build_series``: the Series Normalizer.

Built-in implementations:

- ``AlphaVantageQuotesProvider``: Alpha Vantage daily time series (API key).
- ``YahooChartQuotesProvider``: Yahoo Finance chart API (no key).
"""

from __future__ import annotations

import httpx

from market_lens.core.config import QuotesConfig
from market_lens.core.models import QuotesProviderName
from market_lens.prices.alphavantage import AlphaVantageQuotesProvider
from market_lens.prices.models import (
    RANGE_TO_DAYS,
    PricePoint,
    PriceSeries,
    SymbolSuggestion,
    TimeRange,
)
from market_lens.prices.normalizer import apply_range, build_series, normalize_rows
from market_lens.prices.provider import QuotesProvider
from market_lens.prices.yahoo import YahooChartAdapter, YahooChartQuotesProvider


def create_quotes_provider(
    config: QuotesConfig,
    client: httpx.AsyncClient | None = None,
) -> QuotesProvider:
    """Instantiate the configured quotes provider."""
    if config.provider == QuotesProviderName.YAHOO:
        return YahooChartQuotesProvider(config, client=client)
    return AlphaVantageQuotesProvider(config, client=client)


__all__ = [
    # Models
    "PricePoint",
    "PriceSeries",
    "SymbolSuggestion",
    "TimeRange",
    "RANGE_TO_DAYS",
    # Normalizer
    "normalize_rows",
    "apply_range",
    "build_series",
    # Providers
    "QuotesProvider",
    "AlphaVantageQuotesProvider",
    "YahooChartAdapter",
    "YahooChartQuotesProvider",
    "create_quotes_provider",
]
