"""Tests for the enrichment cache and news enricher."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from market_lens.core.config import EnrichmentConfig
from market_lens.core.exceptions import NotFoundError, TransportError, ValidationError
from market_lens.explorer.enrichment import EnrichmentCache, NewsEnricher


class CountingFetcher:
    def __init__(self, text: str = "summary", gate: asyncio.Event | None = None) -> None:
        self.text = text
        self.gate = gate
        self.calls: list[str] = []

    async def __call__(self, date_key: str) -> str:
        self.calls.append(date_key)
        if self.gate is not None:
            await self.gate.wait()
        return f"{self.text} {date_key}"


class TestEnrichmentCache:
    async def test_second_call_is_cache_hit(self):
        fetcher = CountingFetcher()
        cache = EnrichmentCache(fetcher)

        first = await cache.get_or_fetch("2024-03-01")
        second = await cache.get_or_fetch("2024-03-01")

        assert first == second == "summary 2024-03-01"
        assert fetcher.calls == ["2024-03-01"]
        assert cache.fetch_count == 1

    async def test_distinct_dates_fetch_separately(self):
        fetcher = CountingFetcher()
        cache = EnrichmentCache(fetcher)
        await cache.get_or_fetch("2024-03-01")
        await cache.get_or_fetch("2024-03-04")
        assert fetcher.calls == ["2024-03-01", "2024-03-04"]
        assert len(cache) == 2
        assert "2024-03-04" in cache

    async def test_concurrent_requests_coalesce(self):
        gate = asyncio.Event()
        fetcher = CountingFetcher(gate=gate)
        cache = EnrichmentCache(fetcher)

        first = asyncio.create_task(cache.get_or_fetch("2024-03-01"))
        second = asyncio.create_task(cache.get_or_fetch("2024-03-01"))
        await asyncio.sleep(0)
        gate.set()

        assert await first == await second
        assert fetcher.calls == ["2024-03-01"]

    async def test_cancelled_waiter_does_not_cancel_fetch(self):
        gate = asyncio.Event()
        fetcher = CountingFetcher(gate=gate)
        cache = EnrichmentCache(fetcher)

        waiter = asyncio.create_task(cache.get_or_fetch("2024-03-01"))
        await asyncio.sleep(0)
        waiter.cancel()
        gate.set()

        assert await cache.get_or_fetch("2024-03-01") == "summary 2024-03-01"
        assert fetcher.calls == ["2024-03-01"]

    async def test_fetcher_exception_cached_as_error_text(self):
        calls = []

        async def broken(date_key: str) -> str:
            calls.append(date_key)
            raise RuntimeError("boom")

        cache = EnrichmentCache(broken, error_text="Error al cargar")
        assert await cache.get_or_fetch("2024-03-01") == "Error al cargar"
        assert await cache.get_or_fetch("2024-03-01") == "Error al cargar"
        assert calls == ["2024-03-01"]

    async def test_per_call_fetcher(self):
        cache = EnrichmentCache()
        assert await cache.get_or_fetch("2024-03-01", CountingFetcher("x")) == "x 2024-03-01"
        assert cache.peek("2024-03-01") == "x 2024-03-01"

    async def test_no_fetcher(self):
        with pytest.raises(RuntimeError):
            await EnrichmentCache().get_or_fetch("2024-03-01")

    def test_peek_miss(self):
        assert EnrichmentCache().peek("2024-03-01") is None


class TestNewsEnricher:
    def test_query(self, fake_news):
        enricher = NewsEnricher(fake_news, EnrichmentConfig(limit=3))
        query = enricher.query_for("GGAL", "2024-03-01")
        assert query.query == "Acciones GGAL"
        assert query.date == date(2024, 3, 1)
        assert query.days is None
        assert query.limit == 3
        assert query.language == "es-419"

    async def test_returns_summary(self, fake_news):
        enricher = NewsEnricher(fake_news)
        assert await enricher.fetch("GGAL", "2024-03-01") == "Resumen 2024-03-01"

    async def test_missing_summary_text(self, fake_news):
        fake_news.summary = None
        config = EnrichmentConfig()
        assert await NewsEnricher(fake_news, config).fetch("GGAL", "2024-03-01") == (
            config.missing_summary_text
        )

    @pytest.mark.parametrize("error", [NotFoundError("none"), ValidationError("bad")])
    async def test_not_found_text(self, fake_news, error):
        fake_news.error = error
        config = EnrichmentConfig()
        assert await NewsEnricher(fake_news, config).fetch("GGAL", "2024-03-01") == (
            config.not_found_text
        )

    async def test_error_text(self, fake_news):
        fake_news.error = TransportError("timeout")
        config = EnrichmentConfig(error_text="falló")
        assert await NewsEnricher(fake_news, config).fetch("GGAL", "2024-03-01") == "falló"

    async def test_bound_fetcher_through_cache(self, fake_news):
        enricher = NewsEnricher(fake_news)
        cache = EnrichmentCache()
        text = await cache.get_or_fetch("2024-03-01", enricher.fetcher_for("YPF"))
        assert text == "Resumen 2024-03-01"
        assert fake_news.queries[0].query == "Acciones YPF"
