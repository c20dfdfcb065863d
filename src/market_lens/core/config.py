"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

from market_lens.core.exceptions import ConfigError
from market_lens.core.models import QuotesProviderName, SummarizerProvider


class QuotesConfig(BaseModel):
    """Daily quotes provider configuration."""

    model_config = ConfigDict(frozen=True)

    provider: QuotesProviderName = QuotesProviderName.ALPHAVANTAGE
    api_key: str | None = None
    base_url: str | None = None
    request_timeout: float = 10.0
    rate_limit: int = 5  # requests per minute
    suggestion_limit: int = 5

    @field_validator("api_key", mode="before")
    @classmethod
    def api_key_as_string(cls, v: object) -> object:
        # env auto-cast turns all-digit keys into ints
        return str(v) if isinstance(v, int | float) else v

    @field_validator("rate_limit")
    @classmethod
    def rate_limit_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("rate_limit must be >= 1")
        return v

    @field_validator("request_timeout")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("request_timeout must be > 0")
        return v


class NewsConfig(BaseModel):
    """Google News RSS configuration."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://news.google.com/rss/search"
    language: str = "es-419"
    country: str = "AR"
    default_days: int = 7
    default_limit: int = 10
    request_timeout: float = 10.0
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    )

    @field_validator("default_days", "default_limit")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v


class SummarizerConfig(BaseModel):
    """Configuration for the optional LLM headline summarizer."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    provider: SummarizerProvider = SummarizerProvider.OPENAI
    api_key: str | None = None
    model: str | None = None  # None: the backend default
    temperature: float = 0.2
    max_tokens: int = 1500
    timeout_seconds: int = 60
    max_retries: int = 2

    @field_validator("api_key", mode="before")
    @classmethod
    def api_key_as_string(cls, v: object) -> object:
        return str(v) if isinstance(v, int | float) else v

    @field_validator("max_retries")
    @classmethod
    def retries_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_retries must be >= 1")
        return v


class DetectorConfig(BaseModel):
    """Fractal extremum detector parameters."""

    model_config = ConfigDict(frozen=True)

    left_window: int = 4
    right_window: int = 4
    min_prominence_percent: float = 2.0

    @field_validator("left_window", "right_window")
    @classmethod
    def window_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("window must be >= 1")
        return v

    @field_validator("min_prominence_percent")
    @classmethod
    def prominence_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("min_prominence_percent must be >= 0")
        return v


class EnrichmentConfig(BaseModel):
    """Per-date news enrichment settings."""

    model_config = ConfigDict(frozen=True)

    query_template: str = "Acciones {symbol}"
    limit: int = 5
    missing_summary_text: str = "No hay resumen disponible."
    not_found_text: str = "No se encontraron noticias para esta fecha."
    error_text: str = "Error al cargar las noticias."
    prefetch: bool = False

    @field_validator("query_template")
    @classmethod
    def template_mentions_symbol(cls, v: str) -> str:
        if "{symbol}" not in v:
            raise ValueError("query_template must contain '{symbol}'")
        return v


class PopoverConfig(BaseModel):
    """Popover geometry used for viewport clamping."""

    model_config = ConfigDict(frozen=True)

    width: float = 360.0
    edge_margin: float = 16.0


class APIConfig(BaseModel):
    """FastAPI server configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 8000
    api_key: str | None = None
    cors_origins: list[str] = ["*"]

    @field_validator("api_key", mode="before")
    @classmethod
    def api_key_as_string(cls, v: object) -> object:
        return str(v) if isinstance(v, int | float) else v


class LoggingConfig(BaseModel):
    """Root logger settings applied by the CLI."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown logging level: {v!r}")
        return upper


class MarketLensConfig(BaseModel):
    """Root configuration for the entire market-lens system."""

    model_config = ConfigDict(frozen=True)

    quotes: QuotesConfig = QuotesConfig()
    news: NewsConfig = NewsConfig()
    summarizer: SummarizerConfig = SummarizerConfig()
    detector: DetectorConfig = DetectorConfig()
    enrichment: EnrichmentConfig = EnrichmentConfig()
    popover: PopoverConfig = PopoverConfig()
    api: APIConfig = APIConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(
    config_path: str | None = None,
    env_prefix: str = "MARKET_LENS_",
) -> MarketLensConfig:
    """Load configuration from environment + YAML file + defaults.

    Resolution order (highest priority first):
    1. Environment variables (MARKET_LENS_QUOTES__API_KEY, etc.)
    2. YAML file at config_path
    3. Built-in defaults

    Nested keys use double-underscore in env vars:
        MARKET_LENS_DETECTOR__LEFT_WINDOW=5  ->  detector.left_window = 5
    """
    try:
        yaml_path = _resolve_config_path(config_path)
        base: dict = {}
        if yaml_path is not None:
            base = _load_yaml(yaml_path)

        merged = _merge_env_vars(base, env_prefix)
        return MarketLensConfig.model_validate(merged)
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def _resolve_config_path(explicit: str | None) -> Path | None:
    """Determine config file path."""
    if explicit is not None:
        p = Path(explicit)
        if not p.exists():
            raise ConfigError(
                f"Config file not found: {explicit}",
                context={"field": "config_path", "value": explicit},
            )
        return p

    env_path = os.environ.get("MARKET_LENS_CONFIG")
    if env_path:
        p = Path(env_path)
        if not p.exists():
            raise ConfigError(
                f"Config file from MARKET_LENS_CONFIG not found: {env_path}",
                context={"field": "MARKET_LENS_CONFIG", "value": env_path},
            )
        return p

    default = Path("market-lens.yml")
    if default.exists():
        return default

    return None


def _load_yaml(path: Path) -> dict:
    """Load and parse YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"YAML config must be a mapping, got {type(data).__name__}",
                context={"field": "config_file", "value": str(path)},
            )
        return data
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse YAML config: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Overlay environment variables onto base config dict.

    Double-underscore separates nesting levels.
    Values are auto-cast: "true"/"false" -> bool, numeric strings -> int/float.
    """
    result = dict(base)

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        parts = [p.lower() for p in remainder.split("__")]

        # MARKET_LENS_CONFIG points at the file, it is not a setting
        if parts == ["config"]:
            continue

        cast_value = _auto_cast(value)

        target = result
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            target = target[part]
        target[parts[-1]] = cast_value

    return result


def _auto_cast(value: str) -> str | int | float | bool:
    """Auto-cast string values from environment variables."""
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value
