"""Google News RSS search provider.

Builds a Google News RSS search URL for a query scoped either to one
calendar day (``after:``/``before:`` operators) or to a trailing window
(``when:Nd``), downloads the feed with httpx, parses it with feedparser,
and optionally asks the headline summarizer for a short digest.
"""

from __future__ import annotations

import logging
import re
from datetime import timedelta
from typing import Any
from urllib.parse import urlencode

import feedparser
import httpx
from bs4 import BeautifulSoup

from market_lens.core.config import NewsConfig
from market_lens.core.exceptions import SummarizerError, UpstreamError
from market_lens.core.http import send_request
from market_lens.news.models import Headline, NewsArticle, NewsQuery, NewsResult
from market_lens.news.summarizer import HeadlineSummarizer

logger = logging.getLogger(__name__)

_PROVIDER = "google_news"
_WHITESPACE = re.compile(r"\s+")


def build_search_url(base_url: str, query: NewsQuery) -> str:
    """Return the RSS search URL for ``query``."""
    if query.date is not None:
        next_day = query.date + timedelta(days=1)
        time_filter = f"after:{query.date.isoformat()} before:{next_day.isoformat()}"
    else:
        time_filter = f"when:{query.window_days}d"

    params = {
        "q": f"{query.query} {time_filter}",
        "hl": query.language,
        "gl": query.country,
        "ceid": f"{query.country}:{query.language}",
    }
    return f"{base_url}?{urlencode(params)}"


def clean_html(text: str | None) -> str:
    """Strip tags and collapse whitespace in a feed description."""
    if not text:
        return ""
    soup = BeautifulSoup(text, "html.parser")
    return _WHITESPACE.sub(" ", soup.get_text(separator=" ")).strip()


def parse_feed(xml_text: str) -> list[NewsArticle]:
    """Parse an RSS document into articles, in feed order.

    Raises:
        UpstreamError: the document is not a readable feed.
    """
    parsed = feedparser.parse(xml_text)
    entries = getattr(parsed, "entries", None) or []
    if parsed.get("bozo") and not entries and not parsed.get("feed"):
        raise UpstreamError(
            f"Error parsing RSS: {parsed.get('bozo_exception')}",
            context={"provider": _PROVIDER, "response_body": xml_text[:200]},
        )
    return [_to_article(entry) for entry in entries]


def extract_headlines(articles: list[NewsArticle]) -> list[Headline]:
    """Project articles onto the fields the summarizer may use."""
    return [
        Headline(
            title=article.title,
            source=article.source or None,
            pub_date=article.pub_date or None,
        )
        for article in articles
    ]


def _to_article(entry: Any) -> NewsArticle:
    source = entry.get("source") or {}
    if isinstance(source, dict):
        source_name = source.get("title") or source.get("value") or ""
    else:
        source_name = str(source)

    return NewsArticle(
        title=entry.get("title", "") or "",
        link=entry.get("link", "") or "",
        description=clean_html(entry.get("description") or entry.get("summary")),
        pub_date=entry.get("published", "") or "",
        source=source_name,
        guid=entry.get("id", "") or "",
    )


class GoogleNewsProvider:
    """News provider backed by the Google News RSS search endpoint.

    Parameters
    ----------
    config : NewsConfig
        Base URL, locale defaults, timeout and user agent.
    summarizer : HeadlineSummarizer | None
        Optional digest generator. ``None`` is a valid configuration: the
        result then carries no summary.
    client : httpx.AsyncClient | None
        Shared client. When omitted the provider creates and owns one.
    """

    def __init__(
        self,
        config: NewsConfig,
        summarizer: HeadlineSummarizer | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._summarizer = summarizer
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.request_timeout),
            follow_redirects=True,
        )

    @property
    def name(self) -> str:
        return _PROVIDER

    @property
    def has_summarizer(self) -> bool:
        return self._summarizer is not None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def search(self, query: NewsQuery) -> NewsResult:
        """Run a news search.

        The summary, when a summarizer is configured, is built from every
        headline in the feed; the article list is then cut to ``limit``.
        """
        url = build_search_url(self._config.base_url, query)
        logger.debug("Fetching news feed: %s", url)

        response = await send_request(
            self._client,
            "GET",
            url,
            provider=_PROVIDER,
            headers={"User-Agent": self._config.user_agent},
        )
        articles = parse_feed(response.text)

        summary = await self._summarize(articles, query)

        limited = articles if query.limit is None else articles[: query.limit]
        return NewsResult(
            query=query.query,
            total_results=len(limited),
            specific_date=query.date,
            requested_days=None if query.date is not None else query.window_days,
            language=query.language,
            country=query.country,
            rss_url=url,
            summary=summary,
            news=limited,
        )

    async def _summarize(self, articles: list[NewsArticle], query: NewsQuery) -> str | None:
        if self._summarizer is None:
            logger.debug("No summarizer configured, skipping digest for %r", query.query)
            return None
        try:
            return await self._summarizer.summarize(extract_headlines(articles))
        except SummarizerError as e:
            logger.warning("Could not summarize headlines for %r: %s", query.query, e)
            return None
