"""Yahoo Finance daily quotes provider, direct HTTP implementation.

Uses the unauthenticated ``/v8/finance/chart/`` endpoint via httpx, so it
works without an API key. Symbol suggestions come from the public
``/v1/finance/search`` endpoint.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from aiolimiter import AsyncLimiter

from market_lens.core.config import QuotesConfig
from market_lens.core.exceptions import NotFoundError, ProviderError, UpstreamError, ValidationError
from market_lens.core.http import read_json, send_request
from market_lens.prices.models import PriceSeries, SymbolSuggestion, TimeRange
from market_lens.prices.normalizer import build_series

logger = logging.getLogger(__name__)

_BASE_URL = "https://query2.finance.yahoo.com"
_CHART_PATH = "/v8/finance/chart"
_SEARCH_PATH = "/v1/finance/search"
_USER_AGENT = "Mozilla/5.0 (compatible; market-lens/0.1)"
_PROVIDER = "yahoo"

# Fetch a calendar window comfortably wider than the trading-day tail
_RANGE_MAP: dict[TimeRange, str] = {
    TimeRange.ONE_MONTH: "3mo",
    TimeRange.THREE_MONTHS: "6mo",
    TimeRange.SIX_MONTHS: "1y",
    TimeRange.ONE_YEAR: "2y",
    TimeRange.MAX: "max",
}


class YahooChartAdapter:
    """Transforms a Yahoo ``chart.result[0]`` object into raw price rows.

    Yahoo ships parallel arrays (timestamps, opens, closes, ...). The
    adapter zips them into records the series normalizer understands;
    bars whose close is null (holidays, halted sessions) are skipped.
    Timestamps are shifted by the exchange's ``meta.gmtoffset`` so they
    reduce to the local trading date.
    """

    def rows(self, raw_data: dict[str, Any]) -> list[dict[str, Any]]:
        timestamps: list[int] = raw_data.get("timestamp") or []
        if not timestamps:
            return []
        offset = int((raw_data.get("meta") or {}).get("gmtoffset") or 0)

        indicators = raw_data.get("indicators") or {}
        quotes = (indicators.get("quote") or [{}])[0]
        adjclose_data = indicators.get("adjclose") or []
        adj_closes: list[float | None] = (
            adjclose_data[0].get("adjclose", []) if adjclose_data else []
        )

        columns = {
            "open": quotes.get("open") or [],
            "high": quotes.get("high") or [],
            "low": quotes.get("low") or [],
            "close": quotes.get("close") or [],
            "volume": quotes.get("volume") or [],
            "adjclose": adj_closes,
        }

        rows: list[dict[str, Any]] = []
        for i, ts in enumerate(timestamps):
            row: dict[str, Any] = {
                "timestamp": ts + offset if isinstance(ts, int | float) else ts
            }
            for field, values in columns.items():
                row[field] = values[i] if i < len(values) else None
            if row["close"] is None:
                continue
            rows.append(row)
        return rows


class YahooChartQuotesProvider:
    """Fetches daily series from Yahoo Finance's chart API.

    Parameters
    ----------
    config : QuotesConfig
        Timeout, rate limit (per minute) and suggestion count.
        ``api_key`` is ignored.
    client : httpx.AsyncClient | None
        Shared client. When omitted the provider creates and owns one.
    adapter : YahooChartAdapter | None
        Custom adapter instance. Uses default if None.
    """

    def __init__(
        self,
        config: QuotesConfig,
        client: httpx.AsyncClient | None = None,
        adapter: YahooChartAdapter | None = None,
    ) -> None:
        self._config = config
        self._base_url = (config.base_url or _BASE_URL).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.request_timeout)
        )
        self._adapter = adapter or YahooChartAdapter()
        self._limiter = AsyncLimiter(max_rate=config.rate_limit, time_period=60.0)

    @property
    def name(self) -> str:
        return _PROVIDER

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_series(self, symbol: str, time_range: TimeRange) -> PriceSeries:
        cleaned = symbol.strip().upper()
        if not cleaned:
            raise ValidationError(
                'The "symbol" parameter is required',
                context={"field": "symbol", "value": symbol},
            )

        try:
            result = await self._fetch_chart(cleaned, _RANGE_MAP[time_range])
            meta = result.get("meta") or {}
            return build_series(
                self._adapter.rows(result),
                cleaned,
                time_range,
                provider=_PROVIDER,
                last_updated=_epoch_to_iso(meta.get("regularMarketTime")),
                timezone_name=meta.get("exchangeTimezoneName"),
            )
        except NotFoundError as e:
            suggestions = await self.suggest_symbols(cleaned)
            context = dict(e.context)
            context.update(
                symbol=cleaned,
                suggestions=[s.model_dump() for s in suggestions],
            )
            raise NotFoundError(
                f"No historical data found for {cleaned}", context=context
            ) from e

    async def suggest_symbols(self, keywords: str) -> list[SymbolSuggestion]:
        if not keywords.strip():
            return []
        try:
            response = await send_request(
                self._client,
                "GET",
                f"{self._base_url}{_SEARCH_PATH}",
                provider=_PROVIDER,
                limiter=self._limiter,
                params={"q": keywords.strip(), "quotesCount": str(self._config.suggestion_limit)},
                headers={"User-Agent": _USER_AGENT},
            )
            payload = read_json(response, provider=_PROVIDER)
        except ProviderError as e:
            logger.warning("Could not fetch symbol suggestions for %s: %s", keywords, e)
            return []

        quotes = payload.get("quotes") if isinstance(payload, dict) else None
        suggestions: list[SymbolSuggestion] = []
        for quote in (quotes or [])[: self._config.suggestion_limit]:
            if not isinstance(quote, dict) or not quote.get("symbol"):
                continue
            suggestions.append(
                SymbolSuggestion(
                    symbol=quote["symbol"],
                    name=quote.get("longname") or quote.get("shortname"),
                    region=quote.get("exchDisp"),
                    currency=quote.get("currency"),
                )
            )
        return suggestions

    async def _fetch_chart(self, symbol: str, yahoo_range: str) -> dict[str, Any]:
        """Fetch the ``chart.result[0]`` object for a symbol."""
        response = await send_request(
            self._client,
            "GET",
            f"{self._base_url}{_CHART_PATH}/{symbol}",
            provider=_PROVIDER,
            limiter=self._limiter,
            params={"range": yahoo_range, "interval": "1d", "events": "div,split"},
            headers={"User-Agent": _USER_AGENT},
        )
        data = read_json(response, provider=_PROVIDER)
        chart = data.get("chart", {}) if isinstance(data, dict) else {}

        if chart.get("error"):
            err = chart["error"]
            logger.error(
                "Yahoo Finance API error for %s: %s (%s)",
                symbol,
                err.get("code"),
                err.get("description"),
            )
            if err.get("code") == "Not Found":
                raise NotFoundError(
                    err.get("description") or f"No data for {symbol}",
                    context={"provider": _PROVIDER, "symbol": symbol},
                )
            raise UpstreamError(
                f"Yahoo Finance error: {err.get('description')}",
                context={"provider": _PROVIDER, "response_body": str(err)[:200]},
            )

        results = chart.get("result")
        if not results:
            raise NotFoundError(
                f"Yahoo Finance returned no results for {symbol}",
                context={"provider": _PROVIDER, "symbol": symbol},
            )
        return results[0]


def _epoch_to_iso(value: Any) -> str | None:
    if not isinstance(value, int | float):
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
