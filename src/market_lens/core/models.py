"""Pydantic data models shared across market-lens packages."""

from __future__ import annotations

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

# --- Type Aliases ---

Symbol = str
DateKey = str  # ISO calendar date, "YYYY-MM-DD"

# --- Enumerations ---


class SpikeKind(StrEnum):
    """How a PriceSpike came to exist."""

    PEAK = "peak"
    VALLEY = "valley"
    POINT = "point"  # directly selected by the user, not detected


class QuotesProviderName(StrEnum):
    """Supported daily quotes providers."""

    ALPHAVANTAGE = "alphavantage"
    YAHOO = "yahoo"


class SummarizerProvider(StrEnum):
    """Supported LLM backends for headline summaries."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class SelectionState(StrEnum):
    """Popover controller states."""

    IDLE = "idle"
    PENDING = "pending"
    LOADED = "loaded"


# --- Spike Models ---


class PriceSpike(BaseModel):
    """A flagged point of interest on a price chart.

    Detected extrema (peak/valley) and ad-hoc user selections (point) share
    this one shape. `index` is only meaningful against the series version it
    was computed from.
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    date: date
    index: int
    close: float
    change_percent: float
    kind: SpikeKind
    news_loaded: bool = False
    news_summary: str | None = None

    @field_validator("index")
    @classmethod
    def index_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"index must be >= 0, got {v}")
        return v

    @property
    def date_key(self) -> DateKey:
        return self.date.isoformat()

    @property
    def is_detected(self) -> bool:
        """True for detector output (peak/valley), False for ad-hoc points."""
        return self.kind != SpikeKind.POINT

    def with_summary(self, summary: str) -> PriceSpike:
        """Return a copy marked as loaded with the given summary."""
        return self.model_copy(update={"news_loaded": True, "news_summary": summary})


# --- Screen Geometry ---


class ScreenPoint(BaseModel):
    """A position in viewport pixels."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
