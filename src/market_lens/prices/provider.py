"""Quotes provider protocol — the source-agnostic interface layer.

Architecture
------------
    Provider HTTP API → raw rows → Series Normalizer → PriceSeries → Consumer

- **QuotesProvider** is the consumer-facing protocol. The explorer session
  and the HTTP routes depend only on this interface.

- Each concrete provider knows its own wire format and hands the raw rows
  to ``prices.normalizer.build_series``; no consumer ever parses provider
  JSON itself.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from market_lens.prices.models import PriceSeries, SymbolSuggestion, TimeRange


@runtime_checkable
class QuotesProvider(Protocol):
    """Consumer-facing interface for fetching a daily price series."""

    @property
    def name(self) -> str: ...

    async def get_series(self, symbol: str, time_range: TimeRange) -> PriceSeries:
        """Fetch the daily series for ``symbol`` trimmed to ``time_range``.

        Raises
        ------
        NotFoundError
            No data for the symbol; ``suggestions`` may carry alternatives.
        RateLimitError, TransportError, UpstreamError, ServiceUnavailableError
            Provider-side failures.
        """
        ...

    async def suggest_symbols(self, keywords: str) -> list[SymbolSuggestion]:
        """Best-effort symbol search. Never raises; returns [] on failure."""
        ...

    async def close(self) -> None: ...
