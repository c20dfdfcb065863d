"""Chart exploration: extremum detection, news enrichment and the popover."""

from market_lens.explorer.controller import (
    Selection,
    SelectionController,
    clamp_anchor_x,
    spike_at,
)
from market_lens.explorer.detector import DetectorParams, change_percent, detect_extrema
from market_lens.explorer.enrichment import EnrichmentCache, NewsEnricher
from market_lens.explorer.layout import ChartDataset, ChartLayout, LinearChartLayout
from market_lens.explorer.session import ExplorerSession, SeriesRequest

__all__ = [
    "DetectorParams",
    "change_percent",
    "detect_extrema",
    "EnrichmentCache",
    "NewsEnricher",
    "ChartDataset",
    "ChartLayout",
    "LinearChartLayout",
    "Selection",
    "SelectionController",
    "clamp_anchor_x",
    "spike_at",
    "ExplorerSession",
    "SeriesRequest",
]
