"""market_lens.news — news search, feed parsing and headline digests."""

from market_lens.news.google_news import (
    GoogleNewsProvider,
    build_search_url,
    clean_html,
    extract_headlines,
    parse_feed,
)
from market_lens.news.models import Headline, NewsArticle, NewsQuery, NewsResult
from market_lens.news.provider import NewsProvider
from market_lens.news.summarizer import (
    AnthropicBackend,
    HeadlineSummarizer,
    OpenAIBackend,
    SummarizerBackend,
    create_summarizer,
)

__all__ = [
    # Models
    "Headline",
    "NewsArticle",
    "NewsQuery",
    "NewsResult",
    # Provider
    "NewsProvider",
    "GoogleNewsProvider",
    "build_search_url",
    "clean_html",
    "extract_headlines",
    "parse_feed",
    # Summarizer
    "SummarizerBackend",
    "OpenAIBackend",
    "AnthropicBackend",
    "HeadlineSummarizer",
    "create_summarizer",
]
