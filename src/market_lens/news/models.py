"""News search models."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from market_lens.core.exceptions import ValidationError

DEFAULT_DAYS = 7


class NewsArticle(BaseModel):
    """One item from the news feed, HTML already stripped from the text."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""
    source: str = ""
    guid: str = ""


class Headline(BaseModel):
    """The slice of an article the summarizer is allowed to see."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    title: str
    source: str | None = None
    pub_date: str | None = None


class NewsQuery(BaseModel):
    """A validated news search.

    Either ``date`` (one calendar day) or ``days`` (trailing window) scopes
    the search, never both. Build instances through ``from_params`` when
    the values come straight from a request.
    """

    model_config = ConfigDict(frozen=True)

    query: str
    date: dt.date | None = None
    days: int | None = None
    language: str = "es-419"
    country: str = "AR"
    limit: int | None = 10

    @model_validator(mode="after")
    def date_xor_days(self) -> NewsQuery:
        if self.date is not None and self.days is not None:
            raise ValueError('"date" and "days" cannot be used together')
        if not self.query.strip():
            raise ValueError('"query" must not be blank')
        return self

    @property
    def window_days(self) -> int:
        return self.days if self.days is not None else DEFAULT_DAYS

    @classmethod
    def from_params(
        cls,
        query: str | None,
        *,
        date: str | None = None,
        days: str | int | None = None,
        language: str = "es-419",
        country: str = "AR",
        limit: str | int | None = 10,
        default_days: int = DEFAULT_DAYS,
    ) -> NewsQuery:
        """Validate loosely-typed request parameters.

        Raises:
            ValidationError: missing query, both date and days, bad date.
        """
        if query is None or not query.strip():
            raise ValidationError(
                'The "query" parameter is required',
                context={"field": "query", "value": query},
            )
        if date and days is not None:
            raise ValidationError(
                'Cannot use "date" and "days" at the same time. Use one or the other.',
                context={"field": "date", "value": date},
            )

        specific: dt.date | None = None
        if date:
            try:
                specific = dt.date.fromisoformat(date.strip())
            except ValueError:
                raise ValidationError(
                    "Invalid date format. Use YYYY-MM-DD",
                    context={"field": "date", "value": date},
                ) from None

        window: int | None = None
        if specific is None:
            window = _positive_int(days, default_days)

        parsed_limit = _positive_int(limit, None)

        return cls(
            query=query.strip(),
            date=specific,
            days=window,
            language=language,
            country=country,
            limit=parsed_limit,
        )


class NewsResult(BaseModel):
    """A news search response, with an optional LLM digest."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    success: bool = True
    query: str
    total_results: int
    specific_date: dt.date | None = None
    requested_days: int | None = None
    language: str
    country: str
    rss_url: str
    summary: str | None = None
    news: list[NewsArticle]


def _positive_int(value: str | int | None, default: int | None) -> int | None:
    """Parse a positive int; anything else falls back to ``default``."""
    if value is None:
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 1 else default
