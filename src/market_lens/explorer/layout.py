"""Chart geometry: where rendered elements sit on screen.

The popover anchors to a rendered chart element rather than to the raw
cursor, so the controller asks a ``ChartLayout`` for element positions.
Two datasets are drawn: the full close series and the detected markers.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from enum import IntEnum
from typing import Protocol, runtime_checkable

from market_lens.core.models import PriceSpike, ScreenPoint
from market_lens.prices.models import PricePoint


class ChartDataset(IntEnum):
    """Drawn datasets, in draw order."""

    PRICE = 0
    SPIKES = 1


@runtime_checkable
class ChartLayout(Protocol):
    """Resolves rendered element positions in viewport pixels."""

    def set_data(
        self, points: Sequence[PricePoint], spikes: Sequence[PriceSpike]
    ) -> None: ...

    def element_position(
        self, dataset: ChartDataset, index: int
    ) -> ScreenPoint | None: ...

    def nearest_index(self, x: float) -> int | None: ...


class LinearChartLayout:
    """Evenly spaced category x axis over a linear y axis.

    Parameters
    ----------
    canvas_left, canvas_top : float
        Offset of the canvas rectangle inside the viewport.
    width, height : float
        Size of the plot area.
    padding : float
        Inset of the plot area from the canvas edges.
    """

    def __init__(
        self,
        canvas_left: float = 0.0,
        canvas_top: float = 0.0,
        width: float = 800.0,
        height: float = 400.0,
        padding: float = 0.0,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be > 0")
        self._left = canvas_left + padding
        self._top = canvas_top + padding
        self._width = width
        self._height = height
        self._closes: list[float] = []
        self._spike_indices: set[int] = set()

    def set_data(
        self, points: Sequence[PricePoint], spikes: Sequence[PriceSpike]
    ) -> None:
        self._closes = [p.close for p in points]
        self._spike_indices = {s.index for s in spikes if s.is_detected}

    def element_position(
        self, dataset: ChartDataset, index: int
    ) -> ScreenPoint | None:
        if not 0 <= index < len(self._closes):
            return None
        # markers exist only where a spike was detected
        if dataset == ChartDataset.SPIKES and index not in self._spike_indices:
            return None
        return ScreenPoint(x=self._x_for(index), y=self._y_for(self._closes[index]))

    def nearest_index(self, x: float) -> int | None:
        n = len(self._closes)
        if n == 0 or not math.isfinite(x):
            return None
        if n == 1:
            return 0
        step = self._width / (n - 1)
        index = round((x - self._left) / step)
        return min(max(index, 0), n - 1)

    def _x_for(self, index: int) -> float:
        n = len(self._closes)
        if n == 1:
            return self._left + self._width / 2
        return self._left + index * self._width / (n - 1)

    def _y_for(self, close: float) -> float:
        low, high = min(self._closes), max(self._closes)
        if high == low:
            return self._top + self._height / 2
        return self._top + (high - close) / (high - low) * self._height
