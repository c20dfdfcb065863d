"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from market_lens.api.deps import AppState, api_key_middleware
from market_lens.api.routes import router
from market_lens.core.config import MarketLensConfig, load_config
from market_lens.core.exceptions import (
    ConfigError,
    MarketLensError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    TransportError,
    UpstreamError,
    ValidationError,
)
from market_lens.news.google_news import GoogleNewsProvider
from market_lens.news.summarizer import create_summarizer
from market_lens.prices import create_quotes_provider

logger = logging.getLogger(__name__)

STATUS_MAP: dict[type[MarketLensError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    RateLimitError: 429,
    UpstreamError: 502,
    ServiceUnavailableError: 503,
    TransportError: 504,
    ConfigError: 500,
}


def status_for(exc: MarketLensError) -> int:
    """HTTP status for ``exc``: the nearest mapped class in its MRO."""
    for cls in type(exc).__mro__:
        if cls in STATUS_MAP:
            return STATUS_MAP[cls]
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    config = app.state._pending_config
    client = httpx.AsyncClient(
        timeout=httpx.Timeout(max(config.quotes.request_timeout, config.news.request_timeout)),
        follow_redirects=True,
    )
    quotes = create_quotes_provider(config.quotes, client=client)
    summarizer = create_summarizer(config.summarizer)
    news = GoogleNewsProvider(config.news, summarizer=summarizer, client=client)

    app.state.app_state = AppState(
        config=config,
        client=client,
        quotes=quotes,
        news=news,
        summarizer_enabled=summarizer is not None,
    )
    logger.info(
        "market-lens API ready (quotes=%s, summarizer=%s)",
        quotes.name,
        summarizer.backend_name if summarizer else "disabled",
    )

    yield

    await quotes.close()
    await news.close()
    await client.aclose()


def create_app(config: MarketLensConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    import market_lens

    if config is None:
        config = load_config()

    app = FastAPI(
        title="Market Lens API",
        description="Daily stock prices, price spikes and the news behind them",
        version=market_lens.__version__,
        lifespan=lifespan,
    )

    # Stash config so lifespan can retrieve it
    app.state._pending_config = config

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Optional API key middleware
    if config.api.api_key:
        app.middleware("http")(api_key_middleware)

    app.include_router(router, prefix="/api")

    # Exception handlers
    @app.exception_handler(MarketLensError)
    async def market_lens_exception_handler(request: Request, exc: MarketLensError):
        status = status_for(exc)
        content: dict = {"error": type(exc).__name__, "message": str(exc)}
        if isinstance(exc, NotFoundError):
            content["suggestions"] = exc.suggestions
        headers = None
        if isinstance(exc, RateLimitError) and exc.context.get("retry_after"):
            headers = {"Retry-After": str(exc.context["retry_after"])}
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:])}: {err['msg']}"
            for err in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content={"error": "ValidationError", "message": details or "Invalid request"},
        )

    return app
