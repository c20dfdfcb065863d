"""Price data models for the quotes side of the explorer."""

from __future__ import annotations

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from market_lens.core.exceptions import ValidationError


class TimeRange(StrEnum):
    """Trailing display windows offered by the explorer."""

    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    MAX = "MAX"

    @property
    def trading_days(self) -> int | None:
        """Tail length in trading days, or None for no trimming."""
        return RANGE_TO_DAYS.get(self)

    @classmethod
    def parse(cls, value: str | None, default: TimeRange | None = None) -> TimeRange:
        """Parse a user-supplied range, case-insensitively.

        Raises:
            ValidationError: unknown range, or missing with no default.
        """
        if value is None or not value.strip():
            if default is None:
                raise ValidationError(
                    'The "range" parameter is required',
                    context={"field": "range", "value": value},
                )
            return default
        try:
            return cls(value.strip().upper())
        except ValueError:
            allowed = ", ".join(r.value for r in cls)
            raise ValidationError(
                f"Unknown range {value!r}; expected one of {allowed}",
                context={"field": "range", "value": value},
            ) from None


RANGE_TO_DAYS: dict[TimeRange, int] = {
    TimeRange.ONE_MONTH: 22,
    TimeRange.THREE_MONTHS: 66,
    TimeRange.SIX_MONTHS: 132,
    TimeRange.ONE_YEAR: 264,
}


class PricePoint(BaseModel):
    """One trading day of OHLCV data, immutable once normalized."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    date: date
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0
    adjusted_close: float = 0.0
    volume: int = 0


class PriceSeries(BaseModel):
    """An ordered daily series for one symbol and range.

    Replaced wholesale on every fetch; never merged incrementally.
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    symbol: str
    range: TimeRange
    points: list[PricePoint]
    last_updated: str | None = None
    timezone: str | None = None
    provider: str = "unknown"

    @model_validator(mode="after")
    def dates_strictly_increasing(self) -> PriceSeries:
        for prev, curr in zip(self.points, self.points[1:]):
            if curr.date <= prev.date:
                raise ValueError(
                    f"points must be strictly increasing by date: "
                    f"{prev.date} then {curr.date}"
                )
        return self

    def __len__(self) -> int:
        return len(self.points)

    @property
    def closes(self) -> list[float]:
        return [p.close for p in self.points]

    @property
    def latest(self) -> PricePoint | None:
        return self.points[-1] if self.points else None


class SymbolSuggestion(BaseModel):
    """An alternative ticker offered when a lookup finds nothing."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str | None = None
    region: str | None = None
    currency: str | None = None
