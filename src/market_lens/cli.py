"""Click-based CLI for market-lens.

Thin wrapper around library modules. Zero business logic: every command
delegates to the prices, explorer or news packages.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os

import click
from rich.console import Console
from rich.table import Table

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from market_lens.core import ConfigError, load_config

        try:
            ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
        except ConfigError as e:
            console.print(f"[red]Invalid configuration: {e}[/red]")
            raise SystemExit(1)
        _configure_logging(ctx.obj["config"], ctx.obj.get("verbose", False))
    return ctx.obj["config"]


def _configure_logging(config, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.logging.level,
        format=config.logging.format,
        force=True,
    )
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _report_error(error) -> None:
    """Print a library error and its suggestions, then exit 1."""
    from market_lens.core import NotFoundError

    console.print(f"[red]{type(error).__name__}: {error}[/red]")
    if isinstance(error, NotFoundError) and error.suggestions:
        console.print("Did you mean:")
        for s in error.suggestions:
            details = ", ".join(v for v in (s.get("name"), s.get("region")) if v)
            console.print(f"  [bold]{s.get('symbol')}[/bold] {details}")
    raise SystemExit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="MARKET_LENS_CONFIG",
    default=None,
    help="Path to market-lens.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
@click.version_option(package_name="market-lens")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """Market Lens: stock prices, price spikes and the news behind them."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["console"] = console


_RANGE_CHOICE = click.Choice(["1M", "3M", "6M", "1Y", "MAX"], case_sensitive=False)
_FORMAT_CHOICE = click.Choice(["table", "json"], case_sensitive=False)


# ---------------------------------------------------------------------------
# quotes
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("symbol")
@click.option("--range", "-r", "range_", type=_RANGE_CHOICE, default="3M", help="Time range.")
@click.option("--format", "output_format", type=_FORMAT_CHOICE, default="table")
@click.pass_context
def quotes(ctx: click.Context, symbol: str, range_: str, output_format: str) -> None:
    """Fetch the daily price series for SYMBOL."""
    async def _run():
        from market_lens.core import MarketLensError
        from market_lens.prices import TimeRange, create_quotes_provider

        config = _load_config(ctx)
        provider = create_quotes_provider(config.quotes)
        try:
            series = await provider.get_series(symbol, TimeRange.parse(range_))
        except MarketLensError as e:
            _report_error(e)
        finally:
            await provider.close()

        if output_format == "json":
            click.echo(series.model_dump_json(by_alias=True, indent=2))
            return

        table = Table(title=f"{series.symbol} {series.range.value} ({series.provider})")
        table.add_column("Date")
        for name in ("Open", "High", "Low", "Close"):
            table.add_column(name, justify="right")
        table.add_column("Volume", justify="right")
        for p in series.points:
            table.add_row(
                p.date.isoformat(),
                f"{p.open:.2f}",
                f"{p.high:.2f}",
                f"{p.low:.2f}",
                f"{p.close:.2f}",
                f"{p.volume:,}",
            )
        console.print(table)

    _run_async(_run())


# ---------------------------------------------------------------------------
# spikes
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("symbol")
@click.option("--range", "-r", "range_", type=_RANGE_CHOICE, default="3M", help="Time range.")
@click.option("--left", type=click.IntRange(min=1), default=None, help="Left window.")
@click.option("--right", type=click.IntRange(min=1), default=None, help="Right window.")
@click.option(
    "--min-prominence",
    type=click.FloatRange(min=0),
    default=None,
    help="Minimum prominence, in percent.",
)
@click.option("--format", "output_format", type=_FORMAT_CHOICE, default="table")
@click.pass_context
def spikes(
    ctx: click.Context,
    symbol: str,
    range_: str,
    left: int | None,
    right: int | None,
    min_prominence: float | None,
    output_format: str,
) -> None:
    """Detect peaks and valleys in the daily series for SYMBOL."""
    async def _run():
        from market_lens.core import MarketLensError
        from market_lens.explorer import DetectorParams, detect_extrema
        from market_lens.prices import TimeRange, create_quotes_provider

        config = _load_config(ctx)
        params = DetectorParams(
            left_window=left or config.detector.left_window,
            right_window=right or config.detector.right_window,
            min_prominence_percent=(
                min_prominence
                if min_prominence is not None
                else config.detector.min_prominence_percent
            ),
        )
        provider = create_quotes_provider(config.quotes)
        try:
            series = await provider.get_series(symbol, TimeRange.parse(range_))
        except MarketLensError as e:
            _report_error(e)
        finally:
            await provider.close()

        found = detect_extrema(series.points, params)

        if output_format == "json":
            payload = [s.model_dump(mode="json", by_alias=True) for s in found]
            click.echo(json.dumps(payload, indent=2))
            return

        if not found:
            console.print(f"[yellow]No spikes detected in {len(series)} points.[/yellow]")
            return

        table = Table(title=f"{series.symbol} {series.range.value} spikes")
        table.add_column("Date")
        table.add_column("Kind")
        table.add_column("Close", justify="right")
        table.add_column("Change %", justify="right")
        for s in found:
            color = "green" if s.change_percent >= 0 else "red"
            table.add_row(
                s.date_key,
                s.kind.value,
                f"{s.close:.2f}",
                f"[{color}]{s.change_percent:+.2f}[/{color}]",
            )
        console.print(table)

    _run_async(_run())


# ---------------------------------------------------------------------------
# news
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("query")
@click.option("--date", "-d", "on_date", default=None, help="One calendar day (YYYY-MM-DD).")
@click.option("--days", type=int, default=None, help="Trailing window in days.")
@click.option("--limit", "-n", type=int, default=None, help="Maximum articles.")
@click.option("--language", default=None, help="Feed language, e.g. es-419.")
@click.option("--country", default=None, help="Feed country, e.g. AR.")
@click.option("--format", "output_format", type=_FORMAT_CHOICE, default="table")
@click.pass_context
def news(
    ctx: click.Context,
    query: str,
    on_date: str | None,
    days: int | None,
    limit: int | None,
    language: str | None,
    country: str | None,
    output_format: str,
) -> None:
    """Search Google News for QUERY, with a digest when a summarizer is set up."""
    async def _run():
        from market_lens.core import MarketLensError
        from market_lens.news import GoogleNewsProvider, NewsQuery, create_summarizer

        config = _load_config(ctx)
        provider = GoogleNewsProvider(config.news, summarizer=create_summarizer(config.summarizer))
        try:
            news_query = NewsQuery.from_params(
                query,
                date=on_date,
                days=days,
                language=language or config.news.language,
                country=country or config.news.country,
                limit=limit if limit is not None else config.news.default_limit,
                default_days=config.news.default_days,
            )
            result = await provider.search(news_query)
        except MarketLensError as e:
            _report_error(e)
        finally:
            await provider.close()

        if output_format == "json":
            click.echo(result.model_dump_json(by_alias=True, indent=2))
            return

        if result.summary:
            console.print(f"[bold]Summary:[/bold] {result.summary}\n")
        table = Table(title=f"{result.query} ({result.total_results} results)")
        table.add_column("Published")
        table.add_column("Source")
        table.add_column("Title")
        for article in result.news:
            table.add_row(article.pub_date, article.source, article.title)
        console.print(table)

    _run_async(_run())


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", type=str, default=None, help="Bind address.")
@click.option("--port", "-p", type=int, default=None, help="Port number.")
@click.option("--reload", is_flag=True, default=False, help="Auto-reload on code changes.")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool) -> None:
    """Start the REST API server."""
    import uvicorn

    config = _load_config(ctx)
    host = host or config.api.host
    port = port or config.api.port

    # the app factory loads its own config; point it at the same file
    if ctx.obj.get("config_path"):
        os.environ["MARKET_LENS_CONFIG"] = ctx.obj["config_path"]

    console.print(f"Starting market-lens API on [bold]{host}:{port}[/bold]")
    console.print(f"API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "market_lens.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
