"""Custom exception hierarchy for market-lens."""

from typing import Any


class MarketLensError(Exception):
    """Base exception for all market-lens errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(MarketLensError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str — the config field that failed validation
        value: Any — the invalid value (redacted for secrets)
    """


class ValidationError(MarketLensError):
    """A required request parameter is missing or malformed.

    Policy: surface to the caller immediately. No network call is made.

    Context keys:
        field: str — the offending parameter
        value: Any — the rejected value
    """


class ProviderError(MarketLensError):
    """An external collaborator (quotes, news) failed.

    Context keys:
        provider: str — "alphavantage", "yahoo", "google_news"
    """


class NotFoundError(ProviderError):
    """The provider answered but has no data for the request.

    Context keys:
        symbol: str — the symbol or query that was looked up
        suggestions: list[dict] — alternative symbols, possibly empty
    """

    @property
    def suggestions(self) -> list[dict[str, Any]]:
        return list(self.context.get("suggestions") or [])


class EmptySeriesError(NotFoundError):
    """Normalization produced zero price points.

    Distinct from a transport failure: the caller should offer ticker
    suggestions rather than connectivity guidance.
    """


class RateLimitError(ProviderError):
    """Provider rate limit exceeded.

    Policy: surface with a retry-later message.

    Context keys:
        retry_after: int | None — seconds to wait
    """


class TransportError(ProviderError):
    """Network failure or timeout talking to a provider.

    Context keys:
        url: str — the URL that was being fetched
    """


class UpstreamError(ProviderError):
    """Provider returned an error status or a payload we cannot read.

    Context keys:
        status_code: int | None — upstream HTTP status
        response_body: str | None — truncated body for debugging
    """


class ServiceUnavailableError(ProviderError):
    """Collaborator is not configured (missing API key, etc.)."""


class SummarizerError(MarketLensError):
    """LLM backend returned an error or an unusable response.

    Policy: log and omit the summary. Never surfaced to clients.

    Context keys:
        provider: str — "openai" or "anthropic"
        status_code: int | None — HTTP status code if applicable
    """
