"""Alpha Vantage daily quotes provider.

Alpha Vantage reports most problems with HTTP 200 and a JSON body whose
keys describe the problem:

- ``Note``: the per-minute quota is exhausted.
- ``Information`` / ``Error Message``: the function or symbol was rejected.
- no ``Time Series (...)`` key: nothing to show for this symbol.

The adjusted daily function is tried first and the plain daily function
second, since free keys are not always entitled to the adjusted one.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from aiolimiter import AsyncLimiter

from market_lens.core.config import QuotesConfig
from market_lens.core.exceptions import (
    EmptySeriesError,
    NotFoundError,
    ProviderError,
    RateLimitError,
    ServiceUnavailableError,
    UpstreamError,
    ValidationError,
)
from market_lens.core.http import read_json, send_request
from market_lens.prices.models import PriceSeries, SymbolSuggestion, TimeRange
from market_lens.prices.normalizer import build_series

logger = logging.getLogger(__name__)

_BASE_URL = "https://www.alphavantage.co/query"
_PROVIDER = "alphavantage"

TIME_SERIES_KEYS: tuple[str, ...] = (
    "Time Series (Daily)",
    "Time Series (Daily Adjusted)",
    "Time Series (Digital Currency Daily)",
)

FUNCTIONS_TO_TRY: tuple[str, ...] = (
    "TIME_SERIES_DAILY_ADJUSTED",
    "TIME_SERIES_DAILY",
)

# "compact" returns ~100 points, enough for everything up to 6M
_FULL_OUTPUT_RANGES = frozenset({TimeRange.ONE_YEAR, TimeRange.MAX})


def extract_series(payload: dict[str, Any]) -> dict[str, Any] | None:
    """Return the first recognized time-series mapping in the payload."""
    for key in TIME_SERIES_KEYS:
        series = payload.get(key)
        if isinstance(series, dict):
            return series
    return None


class AlphaVantageQuotesProvider:
    """Fetches daily series and symbol suggestions from Alpha Vantage.

    Parameters
    ----------
    config : QuotesConfig
        API key, timeout, per-minute rate limit and suggestion count.
    client : httpx.AsyncClient | None
        Shared client. When omitted the provider creates and owns one.
    """

    def __init__(
        self,
        config: QuotesConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._base_url = config.base_url or _BASE_URL
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.request_timeout)
        )
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
        api_key = self._require_key()

        last_error: ProviderError | None = None
        for function in FUNCTIONS_TO_TRY:
            payload = await self._query(
                {
                    "function": function,
                    "symbol": cleaned,
                    "outputsize": "full" if time_range in _FULL_OUTPUT_RANGES else "compact",
                    "datatype": "json",
                    "apikey": api_key,
                }
            )

            if payload.get("Note"):
                raise RateLimitError(
                    "Alpha Vantage request limit reached. Try again in a minute.",
                    context={"provider": _PROVIDER, "retry_after": 60},
                )

            rejection = payload.get("Information") or payload.get("Error Message")
            if rejection:
                logger.warning(
                    "Alpha Vantage rejected %s for %s: %s", function, cleaned, rejection
                )
                last_error = ValidationError(
                    str(rejection),
                    context={"provider": _PROVIDER, "tried_function": function},
                )
                continue

            raw_series = extract_series(payload)
            if raw_series is None:
                last_error = NotFoundError(
                    f"No historical data found for {cleaned}",
                    context={"provider": _PROVIDER, "symbol": cleaned, "tried_function": function},
                )
                continue

            meta = payload.get("Meta Data") or {}
            try:
                return build_series(
                    raw_series,
                    cleaned,
                    time_range,
                    provider=_PROVIDER,
                    last_updated=meta.get("3. Last Refreshed"),
                    timezone_name=meta.get("5. Time Zone"),
                )
            except EmptySeriesError as e:
                last_error = e

        if last_error is None or isinstance(last_error, NotFoundError):
            suggestions = await self.suggest_symbols(cleaned)
            context = dict(last_error.context) if last_error else {"provider": _PROVIDER}
            context["suggestions"] = [s.model_dump() for s in suggestions]
            message = str(last_error) if last_error else f"No historical data found for {cleaned}"
            raise NotFoundError(message, context=context)
        raise last_error

    async def suggest_symbols(self, keywords: str) -> list[SymbolSuggestion]:
        api_key = self._config.api_key
        if not api_key or not keywords.strip():
            return []

        try:
            payload = await self._query(
                {"function": "SYMBOL_SEARCH", "keywords": keywords.strip(), "apikey": api_key}
            )
        except ProviderError as e:
            logger.warning("Could not fetch symbol suggestions for %s: %s", keywords, e)
            return []

        matches = payload.get("bestMatches") or []
        suggestions: list[SymbolSuggestion] = []
        for match in matches[: self._config.suggestion_limit]:
            if not isinstance(match, dict) or not match.get("1. symbol"):
                continue
            suggestions.append(
                SymbolSuggestion(
                    symbol=match["1. symbol"],
                    name=match.get("2. name"),
                    region=match.get("4. region"),
                    currency=match.get("8. currency"),
                )
            )
        return suggestions

    def _require_key(self) -> str:
        if not self._config.api_key:
            raise ServiceUnavailableError(
                "Alpha Vantage API key is not configured on the server",
                context={"provider": _PROVIDER, "field": "quotes.api_key"},
            )
        return self._config.api_key

    async def _query(self, params: dict[str, str]) -> dict[str, Any]:
        response = await send_request(
            self._client,
            "GET",
            self._base_url,
            provider=_PROVIDER,
            limiter=self._limiter,
            params=params,
        )
        payload = read_json(response, provider=_PROVIDER)
        if not isinstance(payload, dict):
            raise UpstreamError(
                f"Expected a JSON object from Alpha Vantage, got {type(payload).__name__}",
                context={"provider": _PROVIDER},
            )
        return payload
