"""Dependency injection for FastAPI routes."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse

from market_lens.core.config import MarketLensConfig
from market_lens.news.provider import NewsProvider
from market_lens.prices.provider import QuotesProvider


@dataclass
class AppState:
    """Shared application state, attached to app.state during lifespan."""

    config: MarketLensConfig
    client: httpx.AsyncClient
    quotes: QuotesProvider
    news: NewsProvider
    summarizer_enabled: bool = False


def get_app_state(request: Request) -> AppState:
    """Dependency: retrieve AppState from the request."""
    return request.app.state.app_state


def get_config(request: Request) -> MarketLensConfig:
    """Dependency: retrieve config."""
    return request.app.state.app_state.config


def get_quotes(request: Request) -> QuotesProvider:
    """Dependency: retrieve the quotes provider."""
    return request.app.state.app_state.quotes


def get_news(request: Request) -> NewsProvider:
    """Dependency: retrieve the news provider."""
    return request.app.state.app_state.news


EXEMPT_PATHS = {"/api/health"}


async def api_key_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware: validate X-API-Key header when authentication is enabled."""
    if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
        return await call_next(request)

    config = request.app.state.app_state.config
    if config.api.api_key:
        api_key = request.headers.get("X-API-Key")
        if api_key != config.api.api_key:
            return JSONResponse(
                status_code=401,
                content={"error": "Unauthorized", "message": "Invalid or missing API key"},
            )
    return await call_next(request)
