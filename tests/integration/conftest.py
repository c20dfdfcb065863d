"""Integration test fixtures: real providers against mocked HTTP."""

from __future__ import annotations

from datetime import date, timedelta

import pytest


class StaticSummarizer:
    """Summarizer stand-in that echoes how many headlines it saw."""

    backend_name = "static"

    def __init__(self) -> None:
        self.calls: list[list] = []

    async def summarize(self, headlines):
        self.calls.append(headlines)
        return f"{len(headlines)} titulares"


@pytest.fixture
def summarizer() -> StaticSummarizer:
    return StaticSummarizer()


@pytest.fixture
def spike_payload(spike_closes) -> dict:
    """TIME_SERIES_DAILY_ADJUSTED body for nine days with a spike on 2024-01-05."""
    start = date(2024, 1, 1)
    series = {}
    for i, close in enumerate(spike_closes):
        day = (start + timedelta(days=i)).isoformat()
        series[day] = {
            "1. open": str(close),
            "2. high": str(close),
            "3. low": str(close),
            "4. close": str(close),
            "5. adjusted close": str(close),
            "6. volume": str(1000 + i),
        }
    return {
        "Meta Data": {
            "2. Symbol": "AAPL",
            "3. Last Refreshed": "2024-01-09",
            "5. Time Zone": "US/Eastern",
        },
        "Time Series (Daily Adjusted)": series,
    }
