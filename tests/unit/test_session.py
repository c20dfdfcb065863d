"""Tests for the explorer session."""

from __future__ import annotations

import asyncio

import pytest

from market_lens.core.config import EnrichmentConfig, MarketLensConfig
from market_lens.core.exceptions import NotFoundError, ValidationError
from market_lens.core.models import SelectionState, SpikeKind
from market_lens.explorer.enrichment import EnrichmentCache
from market_lens.explorer.layout import LinearChartLayout
from market_lens.explorer.session import ExplorerSession
from market_lens.prices.models import TimeRange


@pytest.fixture
def session(fake_quotes, fake_news):
    layout = LinearChartLayout(width=800, height=400)
    return ExplorerSession(fake_quotes, fake_news, layout=layout, viewport_width=1200)


class GatedQuotes:
    """Quotes provider whose responses are released manually per symbol."""

    def __init__(self, series: dict) -> None:
        self.series = series
        self.gates = {symbol: asyncio.Event() for symbol in series}

    @property
    def name(self) -> str:
        return "gated"

    async def get_series(self, symbol, time_range):
        await self.gates[symbol].wait()
        return self.series[symbol]

    async def suggest_symbols(self, keywords):
        return []

    async def close(self):
        pass


class TestLoad:
    async def test_load_detects_spikes(self, session, fake_quotes):
        assert await session.load("aapl", "1m") is True

        assert fake_quotes.calls == [("AAPL", TimeRange.ONE_MONTH)]
        assert session.symbol == "AAPL"
        assert session.time_range == TimeRange.ONE_MONTH
        assert len(session.series) == 9
        assert [(s.index, s.kind) for s in session.spikes] == [(4, SpikeKind.PEAK)]
        assert session.loading is False
        assert session.error is None

    async def test_blank_symbol_rejected_without_fetch(self, session, fake_quotes):
        with pytest.raises(ValidationError):
            await session.load("   ")
        assert fake_quotes.calls == []

    async def test_unknown_range_rejected(self, session, fake_quotes):
        with pytest.raises(ValidationError):
            await session.load("AAPL", "2W")
        assert fake_quotes.calls == []

    async def test_failure_clears_state_and_records_suggestions(self, session):
        await session.load("AAPL")
        await session.select_index(4)

        assert await session.load("NOPE") is False

        assert session.series is None
        assert session.spikes == []
        assert session.selection is None
        assert isinstance(session.error, NotFoundError)
        assert session.suggestions == [{"symbol": "NOPE.BA", "name": "Suggested"}]

    async def test_new_load_resets_selection(self, session):
        await session.load("AAPL")
        await session.select_index(4)
        await session.load("MSFT", TimeRange.SIX_MONTHS)
        assert session.state == SelectionState.IDLE
        assert session.spikes == []

    async def test_stale_response_discarded(self, make_series, spike_closes, fake_news):
        quotes = GatedQuotes(
            {
                "SLOW": make_series(spike_closes, symbol="SLOW"),
                "FAST": make_series([1.0, 2.0, 3.0], symbol="FAST"),
            }
        )
        session = ExplorerSession(quotes, fake_news)

        slow = asyncio.create_task(session.load("SLOW"))
        await asyncio.sleep(0)
        fast = asyncio.create_task(session.load("FAST"))
        await asyncio.sleep(0)

        quotes.gates["FAST"].set()
        assert await fast is True
        quotes.gates["SLOW"].set()
        assert await slow is False

        assert session.symbol == "FAST"
        assert session.series.symbol == "FAST"
        assert session.spikes == []

    async def test_prefetch_on_load(self, fake_quotes, fake_news):
        config = MarketLensConfig(enrichment=EnrichmentConfig(prefetch=True))
        session = ExplorerSession(fake_quotes, fake_news, config=config)

        await session.load("AAPL")

        assert len(fake_news.queries) == 1
        [spike] = session.spikes
        assert spike.news_loaded is True
        assert spike.news_summary == "Resumen 2024-01-05"


class TestSelection:
    async def test_select_spike_loads_summary(self, session, fake_news):
        await session.load("AAPL")

        selection = await session.select_index(4)

        assert session.state == SelectionState.LOADED
        assert selection.spike.news_summary == "Resumen 2024-01-05"
        assert session.spikes[0].news_loaded is True
        assert session.spikes[0].news_summary == "Resumen 2024-01-05"
        assert fake_news.queries[0].query == "Acciones AAPL"

    async def test_click_resolves_nearest_point(self, session, fake_news):
        await session.load("AAPL")

        selection = await session.click(205)

        assert selection.spike.index == 2
        assert selection.spike.kind == SpikeKind.POINT
        assert session.spikes[0].news_loaded is False

    async def test_click_without_series(self, session):
        assert await session.click(10) is None

    async def test_click_non_finite_cursor(self, session, fake_news):
        await session.load("AAPL")
        assert await session.click(float("nan")) is None
        assert session.state == SelectionState.IDLE
        assert fake_news.queries == []

    async def test_select_without_series(self, session):
        with pytest.raises(ValidationError):
            await session.select_index(0)

    async def test_reselect_uses_cache(self, session, fake_news):
        await session.load("AAPL")
        await session.select_index(4)
        session.dismiss()
        await session.select_index(4)
        assert len(fake_news.queries) == 1
        assert session.state == SelectionState.LOADED

    async def test_pending_while_fetching(self, fake_quotes, fake_news):
        gate = asyncio.Event()
        original = fake_news.search

        async def slow_search(query):
            await gate.wait()
            return await original(query)

        fake_news.search = slow_search
        session = ExplorerSession(fake_quotes, fake_news)
        await session.load("AAPL")

        task = asyncio.create_task(session.select_index(4))
        await asyncio.sleep(0)
        assert session.state == SelectionState.PENDING

        gate.set()
        await task
        assert session.state == SelectionState.LOADED

    async def test_dismiss(self, session):
        await session.load("AAPL")
        await session.select_index(4)
        session.dismiss()
        assert session.selection is None
        assert session.state == SelectionState.IDLE


class TestSharedCache:
    async def test_prefetch_and_click_share_one_fetch(self, fake_quotes, fake_news):
        gate = asyncio.Event()
        original = fake_news.search

        async def slow_search(query):
            await gate.wait()
            return await original(query)

        fake_news.search = slow_search
        session = ExplorerSession(fake_quotes, fake_news)
        await session.load("AAPL")

        prefetch = asyncio.create_task(session.prefetch())
        click = asyncio.create_task(session.select_index(4))
        await asyncio.sleep(0)
        gate.set()
        await asyncio.gather(prefetch, click)

        assert len(fake_news.queries) == 1
        assert session.state == SelectionState.LOADED

    async def test_cache_survives_ticker_change(self, fake_quotes, fake_news):
        cache = EnrichmentCache()
        session = ExplorerSession(fake_quotes, fake_news, cache=cache)
        await session.load("AAPL")
        await session.select_index(4)

        await session.load("MSFT")
        await session.select_index(4)

        # keyed by date only, so MSFT reuses the AAPL entry for that day
        assert len(fake_news.queries) == 1
        assert session.selection.spike.news_summary == "Resumen 2024-01-05"

    async def test_summary_not_applied_after_series_change(self, fake_quotes, fake_news):
        gate = asyncio.Event()
        original = fake_news.search

        async def slow_search(query):
            await gate.wait()
            return await original(query)

        fake_news.search = slow_search
        session = ExplorerSession(fake_quotes, fake_news)
        await session.load("AAPL")

        task = asyncio.create_task(session.select_index(4))
        await asyncio.sleep(0)
        await session.load("AAPL", TimeRange.ONE_YEAR)
        gate.set()
        await task

        assert session.selection is None
        assert session.spikes[0].news_loaded is False
        assert session.cache.peek("2024-01-05") == "Resumen 2024-01-05"


class TestTickerSwitch:
    @pytest.fixture
    def gated(self, make_series, spike_closes):
        quotes = GatedQuotes(
            {
                "AAPL": make_series(spike_closes, symbol="AAPL"),
                "MSFT": make_series(spike_closes, symbol="MSFT"),
            }
        )
        quotes.gates["AAPL"].set()
        return quotes

    async def test_old_chart_not_selectable_while_loading(self, gated, fake_news):
        session = ExplorerSession(gated, fake_news)
        await session.load("AAPL")

        pending = asyncio.create_task(session.load("MSFT"))
        await asyncio.sleep(0)

        assert session.loading is True
        assert session.series is None
        assert session.spikes == []
        assert await session.click(400) is None
        with pytest.raises(ValidationError):
            await session.select_index(4)
        assert session.state == SelectionState.IDLE
        assert fake_news.queries == []
        assert len(session.cache) == 0

        gated.gates["MSFT"].set()
        assert await pending is True
        await session.select_index(4)
        assert [q.query for q in fake_news.queries] == ["Acciones MSFT"]

    async def test_inflight_enrichment_keeps_its_symbol(self, gated, fake_news):
        gate = asyncio.Event()
        original = fake_news.search

        async def slow_search(query):
            await gate.wait()
            return await original(query)

        fake_news.search = slow_search
        session = ExplorerSession(gated, fake_news)
        await session.load("AAPL")

        click = asyncio.create_task(session.select_index(4))
        await asyncio.sleep(0)
        pending = asyncio.create_task(session.load("MSFT"))
        await asyncio.sleep(0)
        gate.set()
        await click

        assert [q.query for q in fake_news.queries] == ["Acciones AAPL"]
        assert session.selection is None

        gated.gates["MSFT"].set()
        await pending
