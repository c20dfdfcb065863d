"""Stock explorer session: one instrument, one range, one open popover.

The session owns the current series, its detected spikes, the popover
controller and the enrichment cache, and wires them together:

    load(symbol, range)  -> quotes provider -> detector -> layout
    click(x)             -> layout -> controller -> cache -> news provider

Every series request is tagged with a sequence number. A response is
applied only while its request is still the active one, so a slow
response for an older ticker or range can never overwrite newer state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from market_lens.core.config import MarketLensConfig
from market_lens.core.exceptions import NotFoundError, ProviderError, ValidationError
from market_lens.core.models import DateKey, PriceSpike, SelectionState
from market_lens.explorer.controller import Selection, SelectionController
from market_lens.explorer.detector import DetectorParams, detect_extrema
from market_lens.explorer.enrichment import EnrichmentCache, NewsEnricher
from market_lens.explorer.layout import ChartLayout, LinearChartLayout
from market_lens.news.provider import NewsProvider
from market_lens.prices.models import PriceSeries, TimeRange
from market_lens.prices.provider import QuotesProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeriesRequest:
    """Descriptor of one outbound series fetch."""

    sequence: int
    symbol: str
    time_range: TimeRange


class ExplorerSession:
    """Interactive state behind the price chart and its news popover."""

    def __init__(
        self,
        quotes: QuotesProvider,
        news: NewsProvider,
        config: MarketLensConfig | None = None,
        layout: ChartLayout | None = None,
        viewport_width: float = 0.0,
        cache: EnrichmentCache | None = None,
    ) -> None:
        self._config = config or MarketLensConfig()
        self._quotes = quotes
        self._enricher = NewsEnricher(news, self._config.enrichment, self._config.news)
        self._params = DetectorParams.from_config(self._config.detector)
        self.layout = layout or LinearChartLayout()
        self.viewport_width = viewport_width
        self.cache = cache or EnrichmentCache(error_text=self._config.enrichment.error_text)
        self.controller = SelectionController(self._config.popover)

        self.symbol: str | None = None
        self.time_range: TimeRange = TimeRange.THREE_MONTHS
        self.series: PriceSeries | None = None
        self.spikes: list[PriceSpike] = []
        self.error: ProviderError | None = None
        self.suggestions: list[dict] = []

        self._sequence = 0
        self._active: SeriesRequest | None = None
        self._applied_sequence = 0

    # --- Read-only views ---

    @property
    def loading(self) -> bool:
        return self._active is not None

    @property
    def state(self) -> SelectionState:
        return self.controller.state

    @property
    def selection(self) -> Selection | None:
        return self.controller.selection

    # --- Series ---

    async def load(self, symbol: str, time_range: TimeRange | str | None = None) -> bool:
        """Fetch and display a new series.

        Returns True when the response was applied, False when it failed or
        was superseded by a newer request.

        Raises:
            ValidationError: blank symbol or unknown range; nothing is fetched.
        """
        symbol = (symbol or "").strip().upper()
        if not symbol:
            raise ValidationError(
                "Symbol is required", context={"field": "symbol", "value": symbol}
            )
        if not isinstance(time_range, TimeRange):
            time_range = TimeRange.parse(time_range, default=self.time_range)

        self._sequence += 1
        request = SeriesRequest(self._sequence, symbol, time_range)
        self._active = request
        self.symbol, self.time_range = symbol, time_range

        # the previous chart is gone until this request resolves
        self.controller.dismiss()
        self.series = None
        self.spikes = []
        self.layout.set_data([], [])
        self.error = None
        self.suggestions = []

        logger.info("Loading %s %s (request #%d)", symbol, time_range, request.sequence)
        try:
            series = await self._quotes.get_series(symbol, time_range)
        except ProviderError as e:
            if not self._is_active(request):
                logger.debug("Discarding stale failure for request #%d", request.sequence)
                return False
            self._fail(request, e)
            return False

        if not self._is_active(request):
            logger.debug("Discarding stale response for request #%d", request.sequence)
            return False

        self._active = None
        self._applied_sequence = request.sequence
        self.series = series
        self.spikes = detect_extrema(series.points, self._params)
        self.layout.set_data(series.points, self.spikes)
        logger.info(
            "Loaded %d points for %s, %d spikes", len(series), symbol, len(self.spikes)
        )

        if self._config.enrichment.prefetch:
            await self.prefetch()
        return True

    def _is_active(self, request: SeriesRequest) -> bool:
        return self._active is not None and self._active.sequence == request.sequence

    def _fail(self, request: SeriesRequest, error: ProviderError) -> None:
        self._active = None
        self._applied_sequence = request.sequence
        self.error = error
        if isinstance(error, NotFoundError):
            self.suggestions = list(error.suggestions)
        logger.warning("Failed to load %s %s: %s", request.symbol, request.time_range, error)

    # --- Selection ---

    async def click(self, cursor_x: float) -> Selection | None:
        """Select the series point nearest to ``cursor_x``."""
        if self.series is None:
            return None
        index = self.layout.nearest_index(cursor_x)
        if index is None:
            return None
        return await self.select_index(index)

    async def select_index(self, index: int) -> Selection | None:
        """Open the popover on ``index`` and load its news summary.

        The controller is pending while the summary is fetched; a cached
        summary opens it directly in the loaded state.
        """
        if self.series is None:
            raise ValidationError(
                "No series loaded", context={"field": "index", "value": index}
            )
        point = self.series.points[index] if 0 <= index < len(self.series) else None
        cached = self.cache.peek(point.date.isoformat()) if point is not None else None

        selection = self.controller.select(
            index,
            self.series.points,
            self.spikes,
            self.layout,
            self.viewport_width,
            cached_summary=cached,
        )
        if cached is None:
            await self._enrich(selection.spike.date_key)
        return self.controller.selection

    def dismiss(self) -> None:
        self.controller.dismiss()

    # --- Enrichment ---

    async def prefetch(self) -> int:
        """Warm the cache for every detected spike; returns how many."""
        targets = [s.date_key for s in self.spikes if s.is_detected]
        await asyncio.gather(*(self._enrich(key) for key in targets))
        return len(targets)

    async def _enrich(self, date_key: DateKey) -> None:
        # scope the query to the series the spike belongs to
        symbol = self.series.symbol if self.series is not None else (self.symbol or "")
        sequence = self._applied_sequence
        text = await self.cache.get_or_fetch(date_key, self._enricher.fetcher_for(symbol))
        if sequence != self._applied_sequence:
            logger.debug("Series changed while enriching %s, not applying", date_key)
            return
        self._apply_summary(date_key, text)

    def _apply_summary(self, date_key: DateKey, text: str) -> None:
        self.spikes = [
            s.with_summary(text) if s.is_detected and s.date_key == date_key else s
            for s in self.spikes
        ]
        self.controller.apply_summary(date_key, text)
