"""Popover selection state machine.

idle -> pending when a chart point is selected, pending -> loaded once its
news summary resolves, and back to idle on dismiss or when the series
changes. The selected spike and its anchor are held in one ``Selection``
so they can only be replaced or cleared together.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from market_lens.core.config import PopoverConfig
from market_lens.core.exceptions import ValidationError
from market_lens.core.models import (
    DateKey,
    PriceSpike,
    ScreenPoint,
    SelectionState,
    SpikeKind,
)
from market_lens.explorer.detector import change_percent
from market_lens.explorer.layout import ChartDataset, ChartLayout
from market_lens.prices.models import PricePoint

logger = logging.getLogger(__name__)


def clamp_anchor_x(
    raw_x: float,
    viewport_width: float,
    popover_width: float = 360.0,
    margin: float = 16.0,
) -> float:
    """Keep a popover centered on ``raw_x`` fully inside the viewport.

    A viewport width of 0 means unknown and leaves ``raw_x`` untouched.
    """
    if viewport_width <= 0:
        return raw_x
    width = min(popover_width, viewport_width - 2 * margin)
    half = max(width, 0) / 2
    low = margin + half
    high = viewport_width - margin - half
    if high < low:
        return viewport_width / 2
    return min(max(raw_x, low), high)


def spike_at(
    index: int,
    points: Sequence[PricePoint],
    spikes: Sequence[PriceSpike],
) -> PriceSpike:
    """The detected spike at ``index``, or an ad-hoc point spike."""
    if not 0 <= index < len(points):
        raise ValidationError(
            f"Index {index} is outside the series",
            context={"field": "index", "value": index, "length": len(points)},
        )
    for spike in spikes:
        if spike.index == index and spike.is_detected:
            return spike
    point = points[index]
    return PriceSpike(
        date=point.date,
        index=index,
        close=point.close,
        change_percent=change_percent(points, index),
        kind=SpikeKind.POINT,
    )


@dataclass(frozen=True)
class Selection:
    """The open popover: what was picked and where it is drawn."""

    spike: PriceSpike
    anchor: ScreenPoint


class SelectionController:
    """Owns the single open popover, if any."""

    def __init__(self, popover: PopoverConfig | None = None) -> None:
        self._popover = popover or PopoverConfig()
        self._selection: Selection | None = None

    @property
    def selection(self) -> Selection | None:
        return self._selection

    @property
    def state(self) -> SelectionState:
        if self._selection is None:
            return SelectionState.IDLE
        if self._selection.spike.news_loaded:
            return SelectionState.LOADED
        return SelectionState.PENDING

    def select(
        self,
        index: int,
        points: Sequence[PricePoint],
        spikes: Sequence[PriceSpike],
        layout: ChartLayout,
        viewport_width: float = 0.0,
        cached_summary: str | None = None,
    ) -> Selection:
        """Open the popover on ``index``, replacing any current selection.

        With ``cached_summary`` the selection goes straight to loaded.
        """
        spike = spike_at(index, points, spikes)
        if cached_summary is not None:
            spike = spike.with_summary(cached_summary)

        # anchor to the drawn marker, falling back to the line point
        position = layout.element_position(ChartDataset.SPIKES, index)
        if position is None:
            position = layout.element_position(ChartDataset.PRICE, index)
        if position is None:
            raise ValidationError(
                f"No rendered chart element at index {index}",
                context={"field": "index", "value": index},
            )

        anchor = ScreenPoint(
            x=clamp_anchor_x(
                position.x,
                viewport_width,
                self._popover.width,
                self._popover.edge_margin,
            ),
            y=position.y,
        )
        self._selection = Selection(spike=spike, anchor=anchor)
        logger.debug("Selected %s (%s) at %s", spike.date_key, spike.kind, anchor)
        return self._selection

    def apply_summary(self, date_key: DateKey, summary: str) -> bool:
        """Load ``summary`` into the open selection if it is for ``date_key``."""
        current = self._selection
        if current is None or current.spike.date_key != date_key:
            return False
        self._selection = Selection(
            spike=current.spike.with_summary(summary), anchor=current.anchor
        )
        return True

    def dismiss(self) -> None:
        self._selection = None
