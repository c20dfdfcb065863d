"""Per-date news enrichment with at-most-one fetch per date."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from market_lens.core.config import EnrichmentConfig, NewsConfig
from market_lens.core.exceptions import NotFoundError, ProviderError, ValidationError
from market_lens.core.models import DateKey
from market_lens.news.models import NewsQuery
from market_lens.news.provider import NewsProvider

logger = logging.getLogger(__name__)

Fetcher = Callable[[DateKey], Awaitable[str]]


class EnrichmentCache:
    """Memoized date -> summary text, shared by every call site.

    Entries are never evicted or invalidated for the lifetime of the
    cache. Concurrent lookups of the same missing date share one in-flight
    fetch; a caller that stops waiting does not cancel it for the others.
    A fetcher that raises is cached as ``error_text`` like any other answer.

    Parameters
    ----------
    fetcher : Fetcher | None
        Default coroutine used on a miss. Callers may pass their own to
        ``get_or_fetch`` (e.g. one bound to the current symbol).
    error_text : str
        Text stored when the fetcher raises.
    """

    def __init__(
        self,
        fetcher: Fetcher | None = None,
        error_text: str = EnrichmentConfig().error_text,
    ) -> None:
        self._fetcher = fetcher
        self._error_text = error_text
        self._entries: dict[DateKey, str] = {}
        self._inflight: dict[DateKey, asyncio.Task[str]] = {}
        self.fetch_count = 0

    def __contains__(self, date_key: object) -> bool:
        return date_key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, date_key: DateKey) -> str | None:
        """Return the cached text without fetching."""
        return self._entries.get(date_key)

    async def get_or_fetch(self, date_key: DateKey, fetcher: Fetcher | None = None) -> str:
        """Return the summary for ``date_key``, fetching it on first use."""
        cached = self._entries.get(date_key)
        if cached is not None:
            logger.debug("Enrichment cache hit for %s", date_key)
            return cached

        task = self._inflight.get(date_key)
        if task is None:
            fetch = fetcher or self._fetcher
            if fetch is None:
                raise RuntimeError("EnrichmentCache has no fetcher configured")
            task = asyncio.ensure_future(self._load(date_key, fetch))
            self._inflight[date_key] = task
        else:
            logger.debug("Joining in-flight enrichment for %s", date_key)

        return await asyncio.shield(task)

    async def _load(self, date_key: DateKey, fetch: Fetcher) -> str:
        self.fetch_count += 1
        try:
            text = await fetch(date_key)
        except Exception:
            logger.exception("Enrichment fetch failed for %s", date_key)
            text = self._error_text
        finally:
            self._inflight.pop(date_key, None)
        self._entries[date_key] = text
        return text


class NewsEnricher:
    """Fetches the news digest for one instrument on one date.

    Best-effort: provider failures come back as the configured fallback
    strings so they can be cached like any other answer.
    """

    def __init__(
        self,
        provider: NewsProvider,
        config: EnrichmentConfig | None = None,
        news_config: NewsConfig | None = None,
    ) -> None:
        self._provider = provider
        self._config = config or EnrichmentConfig()
        self._news_config = news_config or NewsConfig()

    def query_for(self, symbol: str, date_key: DateKey) -> NewsQuery:
        return NewsQuery.from_params(
            self._config.query_template.format(symbol=symbol),
            date=date_key,
            language=self._news_config.language,
            country=self._news_config.country,
            limit=self._config.limit,
        )

    async def fetch(self, symbol: str, date_key: DateKey) -> str:
        try:
            result = await self._provider.search(self.query_for(symbol, date_key))
        except (NotFoundError, ValidationError) as e:
            logger.warning("No news for %s on %s: %s", symbol, date_key, e)
            return self._config.not_found_text
        except ProviderError as e:
            logger.error("Error fetching news for %s on %s: %s", symbol, date_key, e)
            return self._config.error_text

        return result.summary or self._config.missing_summary_text

    def fetcher_for(self, symbol: str) -> Fetcher:
        """Bind ``fetch`` to a symbol for use with EnrichmentCache."""

        async def _fetch(date_key: DateKey) -> str:
            return await self.fetch(symbol, date_key)

        return _fetch
