"""News provider protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from market_lens.news.models import NewsQuery, NewsResult


@runtime_checkable
class NewsProvider(Protocol):
    """Consumer-facing interface for searching news.

    Implementations raise ProviderError subclasses on failure; the
    summary field of the result is optional and never an error source.
    """

    @property
    def name(self) -> str: ...

    async def search(self, query: NewsQuery) -> NewsResult: ...

    async def close(self) -> None: ...
