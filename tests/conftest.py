"""Shared pytest fixtures for market-lens."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from market_lens.core.exceptions import NotFoundError
from market_lens.news.models import NewsQuery, NewsResult
from market_lens.prices.models import PricePoint, PriceSeries, TimeRange


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep developer env vars and a local market-lens.yml out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("MARKET_LENS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)


def build_points(closes: list[float], start: date = date(2024, 1, 1)) -> list[PricePoint]:
    return [
        PricePoint(
            date=start + timedelta(days=i),
            open=c,
            high=c,
            low=c,
            close=c,
            adjusted_close=c,
            volume=1000 + i,
        )
        for i, c in enumerate(closes)
    ]


@pytest.fixture
def make_points():
    """Factory: closes -> consecutive daily PricePoints from 2024-01-01."""
    return build_points


@pytest.fixture
def spike_closes() -> list[float]:
    """Nine points, flat at 100 with a 10% spike at index 4."""
    return [100.0, 100.0, 100.0, 100.0, 110.0, 100.0, 100.0, 100.0, 100.0]


@pytest.fixture
def make_series(make_points):
    def _make(
        closes: list[float],
        symbol: str = "AAPL",
        time_range: TimeRange = TimeRange.THREE_MONTHS,
    ) -> PriceSeries:
        return PriceSeries(
            symbol=symbol,
            range=time_range,
            points=make_points(closes),
            provider="fake",
        )

    return _make


class FakeQuotesProvider:
    """In-memory QuotesProvider; unknown symbols raise NotFoundError."""

    def __init__(self, series: dict[str, PriceSeries] | None = None) -> None:
        self.series = series or {}
        self.calls: list[tuple[str, TimeRange]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "fake"

    async def get_series(self, symbol: str, time_range: TimeRange) -> PriceSeries:
        self.calls.append((symbol, time_range))
        try:
            return self.series[symbol]
        except KeyError:
            raise NotFoundError(
                f"No historical data found for {symbol}",
                context={
                    "provider": "fake",
                    "symbol": symbol,
                    "suggestions": [{"symbol": f"{symbol}.BA", "name": "Suggested"}],
                },
            ) from None

    async def suggest_symbols(self, keywords: str):
        return []

    async def close(self) -> None:
        self.closed = True


class FakeNewsProvider:
    """Returns a canned summary per query date and records every search."""

    def __init__(self, summary: str | None = "Resumen", error: Exception | None = None) -> None:
        self.summary = summary
        self.error = error
        self.queries: list[NewsQuery] = []

    @property
    def name(self) -> str:
        return "fake_news"

    async def search(self, query: NewsQuery) -> NewsResult:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        summary = self.summary
        if summary is not None and query.date is not None:
            summary = f"{summary} {query.date.isoformat()}"
        return NewsResult(
            query=query.query,
            total_results=0,
            specific_date=query.date,
            requested_days=None if query.date else query.window_days,
            language=query.language,
            country=query.country,
            rss_url="https://news.example/rss",
            summary=summary,
            news=[],
        )

    async def close(self) -> None:
        pass


@pytest.fixture
def fake_news() -> FakeNewsProvider:
    return FakeNewsProvider()


@pytest.fixture
def alphavantage_payload() -> dict:
    """TIME_SERIES_DAILY_ADJUSTED body with three days, newest first."""
    return {
        "Meta Data": {
            "1. Information": "Daily Time Series with Splits and Dividend Events",
            "2. Symbol": "AAPL",
            "3. Last Refreshed": "2024-01-04",
            "4. Output Size": "Compact",
            "5. Time Zone": "US/Eastern",
        },
        "Time Series (Daily Adjusted)": {
            "2024-01-04": {
                "1. open": "182.15",
                "2. high": "183.09",
                "3. low": "180.88",
                "4. close": "181.91",
                "5. adjusted close": "181.50",
                "6. volume": "71983570",
            },
            "2024-01-03": {
                "1. open": "184.22",
                "2. high": "185.88",
                "3. low": "183.43",
                "4. close": "184.25",
                "5. adjusted close": "183.84",
                "6. volume": "58414460",
            },
            "2024-01-02": {
                "1. open": "187.15",
                "2. high": "188.44",
                "3. low": "183.89",
                "4. close": "185.64",
                "5. adjusted close": "185.22",
                "6. volume": "82488670",
            },
        },
    }


@pytest.fixture
def yahoo_chart_payload() -> dict:
    """Chart API body with three bars, the middle one a null holiday bar."""
    return {
        "chart": {
            "result": [
                {
                    "meta": {
                        "symbol": "AAPL",
                        "exchangeTimezoneName": "America/New_York",
                        "regularMarketTime": 1704402000,
                    },
                    "timestamp": [1704205800, 1704292200, 1704378600],
                    "indicators": {
                        "quote": [
                            {
                                "open": [187.15, None, 182.15],
                                "high": [188.44, None, 183.09],
                                "low": [183.89, None, 180.88],
                                "close": [185.64, None, 181.91],
                                "volume": [82488700, None, 71983600],
                            }
                        ],
                        "adjclose": [{"adjclose": [185.22, None, 181.50]}],
                    },
                }
            ],
            "error": None,
        }
    }


@pytest.fixture
def rss_xml() -> str:
    return """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>"Acciones AAPL" - Google News</title>
    <link>https://news.google.com</link>
    <item>
      <title>Apple sube tras resultados - Infobae</title>
      <link>https://news.google.com/articles/1</link>
      <guid isPermaLink="false">guid-1</guid>
      <pubDate>Tue, 02 Jan 2024 14:00:00 GMT</pubDate>
      <description>&lt;a href="https://infobae.com/1"&gt;Apple sube&lt;/a&gt;&amp;nbsp;&amp;nbsp;&lt;font color="#6f6f6f"&gt;Infobae&lt;/font&gt;</description>
      <source url="https://www.infobae.com">Infobae</source>
    </item>
    <item>
      <title>Las acciones de Apple caen - La Nacion</title>
      <link>https://news.google.com/articles/2</link>
      <guid isPermaLink="false">guid-2</guid>
      <pubDate>Tue, 02 Jan 2024 16:30:00 GMT</pubDate>
      <description>&lt;b&gt;Apple&lt;/b&gt; cae</description>
      <source url="https://www.lanacion.com.ar">La Nacion</source>
    </item>
    <item>
      <title>Wall Street abre mixto - Ambito</title>
      <link>https://news.google.com/articles/3</link>
      <guid isPermaLink="false">guid-3</guid>
      <pubDate>Tue, 02 Jan 2024 18:00:00 GMT</pubDate>
      <description>Wall Street</description>
      <source url="https://www.ambito.com">Ambito</source>
    </item>
  </channel>
</rss>
"""


@pytest.fixture
def fake_quotes(make_series, spike_closes) -> FakeQuotesProvider:
    """AAPL has one isolated spike; MSFT is a straight ramp."""
    return FakeQuotesProvider(
        {
            "AAPL": make_series(spike_closes, symbol="AAPL"),
            "MSFT": make_series([100.0 + i for i in range(30)], symbol="MSFT"),
        }
    )
