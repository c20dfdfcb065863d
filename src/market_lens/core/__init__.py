"""market_lens.core — Foundation types, config, and exceptions."""

from market_lens.core.config import (
    APIConfig,
    DetectorConfig,
    EnrichmentConfig,
    LoggingConfig,
    MarketLensConfig,
    NewsConfig,
    PopoverConfig,
    QuotesConfig,
    SummarizerConfig,
    load_config,
)
from market_lens.core.exceptions import (
    ConfigError,
    EmptySeriesError,
    MarketLensError,
    NotFoundError,
    ProviderError,
    RateLimitError,
    ServiceUnavailableError,
    SummarizerError,
    TransportError,
    UpstreamError,
    ValidationError,
)
from market_lens.core.models import (
    DateKey,
    PriceSpike,
    QuotesProviderName,
    ScreenPoint,
    SelectionState,
    SpikeKind,
    SummarizerProvider,
    Symbol,
)

__all__ = [
    # Type aliases
    "DateKey",
    "Symbol",
    # Enums
    "QuotesProviderName",
    "SelectionState",
    "SpikeKind",
    "SummarizerProvider",
    # Models
    "PriceSpike",
    "ScreenPoint",
    # Config
    "MarketLensConfig",
    "QuotesConfig",
    "NewsConfig",
    "SummarizerConfig",
    "DetectorConfig",
    "EnrichmentConfig",
    "PopoverConfig",
    "APIConfig",
    "LoggingConfig",
    "load_config",
    # Exceptions
    "MarketLensError",
    "ConfigError",
    "ValidationError",
    "ProviderError",
    "NotFoundError",
    "EmptySeriesError",
    "RateLimitError",
    "TransportError",
    "UpstreamError",
    "ServiceUnavailableError",
    "SummarizerError",
]
