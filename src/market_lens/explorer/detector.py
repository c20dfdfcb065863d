"""Fractal-style extremum detection over a daily close series.

A point is a peak when its close is strictly above every close in the
``left_window`` points before it and the ``right_window`` points after
it, and a valley when strictly below all of them (Williams fractals).
Candidates must also stand out from the average of those neighbors by
at least ``min_prominence_percent``; the rest are noise.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from market_lens.core.config import DetectorConfig
from market_lens.core.models import PriceSpike, SpikeKind
from market_lens.prices.models import PricePoint


@dataclass(frozen=True)
class DetectorParams:
    """Window sizes and prominence threshold for ``detect_extrema``."""

    left_window: int = 4
    right_window: int = 4
    min_prominence_percent: float = 2.0

    def __post_init__(self) -> None:
        if self.left_window < 1 or self.right_window < 1:
            raise ValueError("left_window and right_window must be >= 1")
        if self.min_prominence_percent < 0:
            raise ValueError("min_prominence_percent must be >= 0")

    @classmethod
    def from_config(cls, config: DetectorConfig) -> DetectorParams:
        return cls(
            left_window=config.left_window,
            right_window=config.right_window,
            min_prominence_percent=config.min_prominence_percent,
        )

    @property
    def min_length(self) -> int:
        return self.left_window + self.right_window + 1


def change_percent(points: Sequence[PricePoint], index: int) -> float:
    """Percent change of ``points[index].close`` vs. the previous close.

    0 when there is no previous point or its close is 0.
    """
    if index <= 0 or index >= len(points):
        return 0.0
    prev_close = points[index - 1].close
    if prev_close == 0:
        return 0.0
    return (points[index].close - prev_close) / prev_close * 100


def detect_extrema(
    points: Sequence[PricePoint],
    params: DetectorParams | None = None,
) -> list[PriceSpike]:
    """Return peaks and valleys in date order.

    Every returned spike starts with ``news_loaded=False``; enrichment
    state is never carried over from a previous detection pass.
    """
    params = params or DetectorParams()
    n = len(points)
    if n < params.min_length:
        return []

    closes = np.fromiter((p.close for p in points), dtype=float, count=n)
    left, right = params.left_window, params.right_window

    spikes: list[PriceSpike] = []
    for i in range(left, n - right):
        current = closes[i]
        neighbors = np.concatenate((closes[i - left : i], closes[i + 1 : i + right + 1]))

        if np.all(current > neighbors):
            kind = SpikeKind.PEAK
        elif np.all(current < neighbors):
            kind = SpikeKind.VALLEY
        else:
            continue

        if _prominence_percent(current, neighbors) < params.min_prominence_percent:
            continue

        spikes.append(
            PriceSpike(
                date=points[i].date,
                index=i,
                close=float(current),
                change_percent=change_percent(points, i),
                kind=kind,
            )
        )

    return spikes


def _prominence_percent(value: float, neighbors: np.ndarray) -> float:
    mean = float(neighbors.mean())
    if mean == 0:
        return 0.0
    return abs((value - mean) / mean) * 100
