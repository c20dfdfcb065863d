"""API-specific response schemas (Pydantic v2).

Wire names are camelCase; FastAPI serializes response models by alias.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from market_lens.core.models import PriceSpike
from market_lens.prices.models import PricePoint, PriceSeries


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -- Error --


class ErrorResponse(_CamelModel):
    """Standard error envelope."""

    error: str
    message: str
    suggestions: list[dict] | None = None


# -- Service --


class ServiceInfo(_CamelModel):
    """Service descriptor returned by GET /api."""

    service: str
    version: str
    description: str
    endpoints: dict[str, str]


class HealthResponse(_CamelModel):
    """System health."""

    status: str
    version: str
    quotes_provider: str
    news_provider: str
    summarizer_enabled: bool


# -- Stocks --


class StockResponse(_CamelModel):
    """A daily price series."""

    success: bool = True
    symbol: str
    range: str
    provider: str
    last_updated: str | None = None
    timezone: str | None = None
    data: list[PricePoint]

    @classmethod
    def from_series(cls, series: PriceSeries) -> StockResponse:
        return cls(
            symbol=series.symbol,
            range=series.range.value,
            provider=series.provider,
            last_updated=series.last_updated,
            timezone=series.timezone,
            data=series.points,
        )


class DetectorSettings(_CamelModel):
    """Detector parameters actually used for a spikes response."""

    left_window: int
    right_window: int
    min_prominence_percent: float


class SpikesResponse(StockResponse):
    """A daily price series plus its detected peaks and valleys."""

    detector: DetectorSettings
    spikes: list[PriceSpike]
