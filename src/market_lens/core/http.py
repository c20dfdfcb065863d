"""Shared httpx request helper for provider adapters.

Maps transport failures and HTTP error statuses onto the ProviderError
hierarchy so every adapter reports failures the same way.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from aiolimiter import AsyncLimiter

from market_lens.core.exceptions import (
    NotFoundError,
    RateLimitError,
    TransportError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

_BODY_PREVIEW = 200


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    provider: str,
    limiter: AsyncLimiter | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Execute one HTTP request and return a 2xx response.

    No retries: the explorer is interactive, so failures surface at once
    and the user decides whether to try again.

    Raises:
        TransportError: timeout or connection failure.
        NotFoundError: HTTP 404.
        RateLimitError: HTTP 429 (context carries ``retry_after``).
        UpstreamError: any other non-2xx status.
    """
    try:
        if limiter is not None:
            await limiter.acquire()
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        logger.error("%s request timed out: %s", provider, url)
        raise TransportError(
            f"Request to {provider} timed out",
            context={"provider": provider, "url": url, "error": str(e)},
        ) from e
    except httpx.RequestError as e:
        logger.error("%s request error for %s: %s", provider, url, e)
        raise TransportError(
            f"Could not connect to {provider}",
            context={"provider": provider, "url": url, "error": str(e)},
        ) from e

    if response.is_success:
        return response

    status = response.status_code
    body = response.text[:_BODY_PREVIEW]
    logger.error("%s HTTP error for %s: %s %s", provider, url, status, body)

    if status == 404:
        raise NotFoundError(
            f"{provider} returned 404",
            context={"provider": provider, "url": url, "suggestions": []},
        )
    if status == 429:
        retry_after = response.headers.get("Retry-After")
        raise RateLimitError(
            f"{provider} rate limit reached, try again later",
            context={
                "provider": provider,
                "url": url,
                "retry_after": int(retry_after) if retry_after and retry_after.isdigit() else None,
            },
        )
    raise UpstreamError(
        f"{provider} returned HTTP {status}",
        context={
            "provider": provider,
            "url": url,
            "status_code": status,
            "response_body": body,
        },
    )


def read_json(response: httpx.Response, *, provider: str) -> Any:
    """Decode a JSON body, mapping garbage to UpstreamError."""
    try:
        return response.json()
    except ValueError as e:
        raise UpstreamError(
            f"{provider} returned a non-JSON body",
            context={
                "provider": provider,
                "status_code": response.status_code,
                "response_body": response.text[:_BODY_PREVIEW],
            },
        ) from e
