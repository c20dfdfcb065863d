"""FastAPI route definitions for the Market Lens API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

import market_lens
from market_lens.api.deps import AppState, get_app_state, get_config, get_news, get_quotes
from market_lens.api.schemas import (
    DetectorSettings,
    HealthResponse,
    ServiceInfo,
    SpikesResponse,
    StockResponse,
)
from market_lens.core.config import MarketLensConfig
from market_lens.core.exceptions import ValidationError
from market_lens.explorer.detector import DetectorParams, detect_extrema
from market_lens.news.models import NewsQuery, NewsResult
from market_lens.news.provider import NewsProvider
from market_lens.prices.models import PriceSeries, TimeRange
from market_lens.prices.provider import QuotesProvider

logger = logging.getLogger(__name__)

router = APIRouter()


# -- Service --


@router.get("", response_model=ServiceInfo)
async def service_info():
    """Describe the service and its endpoints."""
    return ServiceInfo(
        service="Market Lens API",
        version=market_lens.__version__,
        description="Daily stock prices, price spikes and the news behind them",
        endpoints={
            "/api/stocks": "Daily price series for a symbol and range",
            "/api/stocks/spikes": "Price series plus detected peaks and valleys",
            "/api/news": "Google News search by query and date or trailing days",
            "/api/health": "Service health",
        },
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(state: AppState = Depends(get_app_state)):
    """Service health and configured collaborators."""
    return HealthResponse(
        status="ok",
        version=market_lens.__version__,
        quotes_provider=state.quotes.name,
        news_provider=state.news.name,
        summarizer_enabled=state.summarizer_enabled,
    )


# -- Stocks --


async def _fetch_series(
    quotes: QuotesProvider, symbol: str | None, range_: str | None
) -> PriceSeries:
    if symbol is None or not symbol.strip():
        raise ValidationError(
            'The "symbol" parameter is required',
            context={"field": "symbol", "value": symbol},
        )
    time_range = TimeRange.parse(range_, default=TimeRange.THREE_MONTHS)
    return await quotes.get_series(symbol, time_range)


@router.get("/stocks", response_model=StockResponse)
async def get_stock(
    symbol: str | None = Query(None, description="Ticker symbol, e.g. AAPL"),
    range_: str | None = Query(None, alias="range", description="1M, 3M, 6M, 1Y or MAX"),
    quotes: QuotesProvider = Depends(get_quotes),
):
    """Daily price series for a symbol."""
    series = await _fetch_series(quotes, symbol, range_)
    return StockResponse.from_series(series)


@router.get("/stocks/spikes", response_model=SpikesResponse)
async def get_stock_spikes(
    symbol: str | None = Query(None),
    range_: str | None = Query(None, alias="range"),
    left: int | None = Query(None, ge=1, le=60),
    right: int | None = Query(None, ge=1, le=60),
    min_prominence: float | None = Query(None, alias="minProminence", ge=0),
    quotes: QuotesProvider = Depends(get_quotes),
    config: MarketLensConfig = Depends(get_config),
):
    """Daily price series plus its fractal peaks and valleys."""
    defaults = config.detector
    params = DetectorParams(
        left_window=left if left is not None else defaults.left_window,
        right_window=right if right is not None else defaults.right_window,
        min_prominence_percent=(
            min_prominence if min_prominence is not None else defaults.min_prominence_percent
        ),
    )

    series = await _fetch_series(quotes, symbol, range_)
    spikes = detect_extrema(series.points, params)
    logger.debug("Detected %d spikes for %s %s", len(spikes), series.symbol, series.range)

    base = StockResponse.from_series(series)
    return SpikesResponse(
        **base.model_dump(),
        detector=DetectorSettings(
            left_window=params.left_window,
            right_window=params.right_window,
            min_prominence_percent=params.min_prominence_percent,
        ),
        spikes=spikes,
    )


# -- News --


@router.get("/news", response_model=NewsResult)
async def search_news(
    query: str | None = Query(None, description="Search terms"),
    days: str | None = Query(None, description="Trailing window in days"),
    date: str | None = Query(None, description="One calendar day, YYYY-MM-DD"),
    language: str | None = Query(None),
    country: str | None = Query(None),
    limit: str | None = Query(None),
    news: NewsProvider = Depends(get_news),
    config: MarketLensConfig = Depends(get_config),
):
    """Search Google News, optionally with an LLM digest of the headlines."""
    news_query = NewsQuery.from_params(
        query,
        date=date,
        days=days,
        language=language or config.news.language,
        country=country or config.news.country,
        limit=limit if limit is not None else config.news.default_limit,
        default_days=config.news.default_days,
    )
    return await news.search(news_query)
