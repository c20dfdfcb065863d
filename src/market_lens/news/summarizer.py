"""LLM headline summarizer with pluggable provider backends."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Protocol, runtime_checkable

from market_lens.core.config import SummarizerConfig
from market_lens.core.exceptions import SummarizerError
from market_lens.core.models import SummarizerProvider
from market_lens.news.models import Headline

logger = logging.getLogger(__name__)

# --- Prompt Template ---

SYSTEM_PROMPT = (
    "You are an expert news analyst. You read Google News RSS headlines "
    "and report what happened, accurately and without speculation."
)

DIGEST_PROMPT_TEMPLATE = """Role / goal
You receive ONLY a JSON array of news headlines. Produce a SHORT summary, in a single paragraph, of "what happened" according to those headlines.

Strict rules
- Use EXCLUSIVELY what can be inferred from the headlines. Do not invent details.
- Deduplicate near-identical headlines (lowercase, drop punctuation and filler words; treat similarity >= 0.8 as a duplicate).
- Group the headlines by topic and give the most repeated topics priority.
- Informative, neutral and concise tone.
- Length: 2 to 4 sentences (about 100 words at most).
- Write the summary in the language of the headlines.
- Output ONLY the summary paragraph, with no headings, lists or extra text.

Input (JSON array of headlines)
<<<HEADLINES_JSON
{headlines_json}
HEADLINES_JSON>>>

Return the final paragraph directly."""

EMPTY_HEADLINES_TEXT = "No se recibieron títulos para resumir."


# --- Provider Protocol ---


@runtime_checkable
class SummarizerBackend(Protocol):
    """Protocol for LLM API backends."""

    @property
    def name(self) -> str: ...

    async def complete(
        self,
        system: str,
        prompt: str,
        max_tokens: int = 1500,
        temperature: float = 0.2,
    ) -> str: ...


# --- Provider Implementations ---


class OpenAIBackend:
    """Summarizer backend using the OpenAI Chat Completions API.

    Requires: pip install openai
    Authentication: OPENAI_API_KEY environment variable or explicit key.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        timeout_seconds: int = 60,
    ) -> None:
        try:
            import openai
        except ImportError:
            raise SummarizerError(
                "openai package not installed. "
                "Install with: pip install market-lens[openai]",
                context={"provider": "openai"},
            )
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
        )
        self._model = model

    @property
    def name(self) -> str:
        return "openai"

    async def complete(
        self,
        system: str,
        prompt: str,
        max_tokens: int = 1500,
        temperature: float = 0.2,
    ) -> str:
        import openai

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
            )
            return response.choices[0].message.content or ""
        except openai.APIStatusError as e:
            raise SummarizerError(
                f"OpenAI API error: {e.message}",
                context={
                    "provider": self.name,
                    "status_code": e.status_code,
                },
            ) from e
        except openai.APIConnectionError as e:
            raise SummarizerError(
                f"OpenAI connection error: {e}",
                context={"provider": self.name},
            ) from e


class AnthropicBackend:
    """Summarizer backend using the Anthropic Messages API.

    Requires: pip install anthropic
    Authentication: ANTHROPIC_API_KEY environment variable or explicit key.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-3-5-haiku-latest",
        timeout_seconds: int = 60,
    ) -> None:
        try:
            import anthropic
        except ImportError:
            raise SummarizerError(
                "anthropic package not installed. "
                "Install with: pip install market-lens[anthropic]",
                context={"provider": "anthropic"},
            )
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=timeout_seconds,
        )
        self._model = model

    @property
    def name(self) -> str:
        return "anthropic"

    async def complete(
        self,
        system: str,
        prompt: str,
        max_tokens: int = 1500,
        temperature: float = 0.2,
    ) -> str:
        import anthropic

        try:
            message = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
            return message.content[0].text
        except anthropic.APIStatusError as e:
            raise SummarizerError(
                f"Anthropic API error: {e.message}",
                context={
                    "provider": self.name,
                    "status_code": e.status_code,
                },
            ) from e
        except anthropic.APIConnectionError as e:
            raise SummarizerError(
                f"Anthropic connection error: {e}",
                context={"provider": self.name},
            ) from e


# --- Summarizer ---


class HeadlineSummarizer:
    """Turns a list of headlines into a short neutral paragraph."""

    def __init__(
        self,
        backend: SummarizerBackend,
        config: SummarizerConfig | None = None,
    ) -> None:
        self._backend = backend
        self._config = config or SummarizerConfig()

    @property
    def backend_name(self) -> str:
        return self._backend.name

    async def summarize(self, headlines: list[Headline]) -> str:
        """Return the digest paragraph for ``headlines``.

        Raises:
            SummarizerError: every attempt failed or returned nothing.
        """
        if not headlines:
            return EMPTY_HEADLINES_TEXT

        payload = [h.model_dump(by_alias=True) for h in headlines]
        prompt = DIGEST_PROMPT_TEMPLATE.format(
            headlines_json=json.dumps(payload, ensure_ascii=False, indent=2)
        )

        max_retries = self._config.max_retries
        last_error: SummarizerError | None = None
        for attempt in range(max_retries):
            try:
                text = await self._backend.complete(
                    SYSTEM_PROMPT,
                    prompt,
                    max_tokens=self._config.max_tokens,
                    temperature=self._config.temperature,
                )
                text = text.strip()
                if not text:
                    raise SummarizerError(
                        "Empty completion",
                        context={"provider": self._backend.name},
                    )
                return text
            except SummarizerError as e:
                last_error = e
                if attempt < max_retries - 1:
                    backoff = 2 ** (attempt + 1)
                    logger.warning(
                        "Summarizer attempt %d/%d failed: %s. Retrying in %ds.",
                        attempt + 1, max_retries, e, backoff,
                    )
                    await asyncio.sleep(backoff)

        raise SummarizerError(
            f"Summarization failed after {max_retries} attempts: {last_error}",
            context={
                "provider": self._backend.name,
                "attempts": max_retries,
            },
        )


# --- Factory ---


def create_summarizer(config: SummarizerConfig) -> HeadlineSummarizer | None:
    """Build the configured summarizer, or None when it cannot run.

    A missing SDK or a missing API key (explicit or via the provider's
    standard environment variable) disables summaries instead of failing.
    """
    if not config.enabled:
        return None

    env_var = (
        "OPENAI_API_KEY"
        if config.provider == SummarizerProvider.OPENAI
        else "ANTHROPIC_API_KEY"
    )
    api_key = config.api_key or os.environ.get(env_var)
    if not api_key:
        logger.info("%s not configured, headline summaries disabled", env_var)
        return None

    options = {"api_key": api_key, "timeout_seconds": config.timeout_seconds}
    if config.model:
        options["model"] = config.model

    try:
        if config.provider == SummarizerProvider.ANTHROPIC:
            backend: SummarizerBackend = AnthropicBackend(**options)
        else:
            backend = OpenAIBackend(**options)
    except SummarizerError as e:
        logger.warning("Headline summaries disabled: %s", e)
        return None

    return HeadlineSummarizer(backend, config)
