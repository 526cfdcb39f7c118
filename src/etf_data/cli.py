#!/usr/bin/env python3
"""
ETF Market Data Command Line Interface

A CLI over the market data engine providing:
- Quotes for one or several symbols
- Price charts
- Split-adjusted dividend histories and forward yields
- Trailing returns
- Batch refresh of stored total returns

Usage:
    etf-data quote --symbol JEPI
    etf-data batch --symbols JEPI,JEPQ,SCHD
    etf-data chart --symbols JEPI,SCHD --timeframe 1Y
    etf-data dividends --symbol SCHD
    etf-data returns --symbol JEPI
    etf-data yield --symbol JEPI --payments 12
    etf-data refresh-returns --file etfs.json
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, TypeVar

import click
import pandas as pd

from .analytics.returns import calculate_average_dividend
from .config import MarketDataConfig, configure_logging
from .data.charts import TIMEFRAME_PARAMS
from .data.fetcher import MarketDataFetcher
from .data.refresh import refresh_total_returns_file
from .exceptions import MarketDataError

T = TypeVar("T")


def format_currency(value: float | None) -> str:
    """Format a number as currency."""
    return "n/a" if value is None else f"${value:,.2f}"


def format_percent(value: float | None) -> str:
    """Format a number as percentage."""
    return "n/a" if value is None else f"{value:.2f}%"


def parse_symbols(symbols: str) -> list[str]:
    return [s.strip().upper() for s in symbols.split(",") if s.strip()]


class EtfDataCLI:
    """CLI helper owning the configuration and fetcher lifecycle."""

    def __init__(self, config: MarketDataConfig) -> None:
        self.config = config

    def run(self, action: Callable[[MarketDataFetcher], Awaitable[T]]) -> T:
        """Run *action* against a fresh fetcher inside an event loop."""

        async def runner() -> T:
            async with MarketDataFetcher(self.config) as fetcher:
                return await action(fetcher)

        return asyncio.run(runner())


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


@click.group()
@click.version_option(version="1.0.0", prog_name="etf-data")
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML configuration file",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable debug logging",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """
    ETF Market Data CLI

    Fetch quotes, charts, dividend histories and derived returns for
    dividend ETFs.

    \b
    Examples:
        # Latest quote
        etf-data quote --symbol JEPI

        # Compare two ETFs over a year
        etf-data chart --symbols JEPI,SCHD --timeframe 1Y --output csv
    """
    config = MarketDataConfig.from_yaml(config_path) if config_path else MarketDataConfig()
    if verbose:
        config.logging.level = "DEBUG"
    configure_logging(config.logging)

    ctx.ensure_object(dict)
    ctx.obj["cli"] = EtfDataCLI(config)


output_option = click.option(
    "--output", "-o",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Output format",
    show_default=True,
)


@cli.command()
@click.option("--symbol", "-s", required=True, help="ETF symbol")
@output_option
@click.pass_context
def quote(ctx: click.Context, symbol: str, output: str) -> None:
    """Show the latest quote for a symbol."""
    etf_cli: EtfDataCLI = ctx.obj["cli"]
    symbol = symbol.upper()

    try:
        result = etf_cli.run(lambda f: f.fetch_quote(symbol))
    except MarketDataError as e:
        click.secho(f"Error fetching quote: {e}", fg="red")
        sys.exit(1)

    if output == "json":
        echo_json({"data": result.to_dict()})
        return

    click.echo(f"{result.symbol}: {format_currency(result.price)}")
    click.echo(f"  Change:         {format_currency(result.price_change)}")
    click.echo(f"  Previous close: {format_currency(result.previous_close)}")
    click.echo(f"  Exchange:       {result.exchange or 'n/a'} ({result.currency or 'n/a'})")


@cli.command()
@click.option(
    "--symbols", "-s",
    required=True,
    help="Comma-separated ETF symbols",
)
@output_option
@click.pass_context
def batch(ctx: click.Context, symbols: str, output: str) -> None:
    """Show quotes for several symbols. Failed symbols show empty fields."""
    etf_cli: EtfDataCLI = ctx.obj["cli"]
    symbol_list = parse_symbols(symbols)
    if not symbol_list:
        click.secho("Error: at least one symbol is required.", fg="red")
        sys.exit(1)

    quotes = etf_cli.run(lambda f: f.fetch_batch_quotes(symbol_list))

    if output == "json":
        echo_json({"data": {s: q.to_dict() for s, q in quotes.items()}})
        return

    for symbol, q in quotes.items():
        click.echo(f"  {symbol:<8} {format_currency(q.price):>12} {format_currency(q.price_change):>10}")


@cli.command()
@click.option(
    "--symbols", "-s",
    required=True,
    help="Comma-separated ETF symbols",
)
@click.option(
    "--timeframe", "-t",
    type=click.Choice(list(TIMEFRAME_PARAMS), case_sensitive=False),
    default="1M",
    help="Chart timeframe",
    show_default=True,
)
@click.option(
    "--output", "-o",
    type=click.Choice(["text", "json", "csv"], case_sensitive=False),
    default="text",
    help="Output format",
    show_default=True,
)
@click.pass_context
def chart(ctx: click.Context, symbols: str, timeframe: str, output: str) -> None:
    """
    Show closing prices for one or more symbols.

    \b
    Examples:
        etf-data chart --symbols JEPI --timeframe 3M
        etf-data chart --symbols JEPI,SCHD --timeframe 1Y --output csv > prices.csv
    """
    etf_cli: EtfDataCLI = ctx.obj["cli"]
    symbol_list = parse_symbols(symbols)
    timeframe = timeframe.upper()

    charts = etf_cli.run(lambda f: f.fetch_comparison_charts(symbol_list, timeframe))

    if output == "json":
        echo_json({"data": charts.to_dict()})
        return

    frames = [
        pd.DataFrame({"symbol": s.symbol, "timestamp": s.timestamps, "close": s.closes})
        for s in charts.data.values()
    ]
    df = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame(
        columns=["symbol", "timestamp", "close"]
    )

    if output == "csv":
        click.echo(df.to_csv(index=False))
        return

    for symbol, series in charts.data.items():
        if series.is_empty:
            click.secho(f"{symbol}: no data", fg="yellow")
            continue
        first, last = series.closes[0], series.closes[-1]
        click.echo(
            f"{symbol}: {len(series)} points, {format_currency(first)} -> {format_currency(last)}"
        )


@cli.command()
@click.option("--symbol", "-s", required=True, help="ETF symbol")
@click.option(
    "--payments", "-p",
    type=int,
    default=12,
    help="Dividend payments per year",
    show_default=True,
)
@output_option
@click.pass_context
def dividends(ctx: click.Context, symbol: str, payments: int, output: str) -> None:
    """Show the split-adjusted dividend history of a symbol."""
    etf_cli: EtfDataCLI = ctx.obj["cli"]
    symbol = symbol.upper()

    history = etf_cli.run(lambda f: f.fetch_dividend_history(symbol))
    average = calculate_average_dividend(history.dividends, payments)

    if output == "json":
        data = history.to_dict()
        data["averageDividend"] = average
        echo_json(data)
        return

    if not history.dividends:
        click.secho(f"{symbol}: no dividend history", fg="yellow")
        return

    for record in history.dividends:
        click.echo(f"  {record.date}  {record.dividend:.4f}")
    click.echo(f"\nAverage dividend: {average:.4f} ({len(history.dividends)} payments)")


@cli.command()
@click.option("--symbol", "-s", required=True, help="ETF symbol")
@output_option
@click.pass_context
def returns(ctx: click.Context, symbol: str, output: str) -> None:
    """Show 1-week to 3-year trailing price returns."""
    etf_cli: EtfDataCLI = ctx.obj["cli"]
    symbol = symbol.upper()

    try:
        result = etf_cli.run(lambda f: f.fetch_returns(symbol))
    except MarketDataError as e:
        click.secho(f"Error fetching returns: {e}", fg="red")
        sys.exit(1)

    if output == "json":
        echo_json(result.to_dict())
        return

    click.echo(f"{symbol} @ {format_currency(result.current_price)}")
    for label, value in [
        ("1 Week", result.return_1w),
        ("1 Month", result.return_1m),
        ("3 Month", result.return_3m),
        ("6 Month", result.return_6m),
        ("12 Month", result.return_12m),
        ("3 Year", result.return_3y),
    ]:
        click.echo(f"  {label:<10} {format_percent(value):>10}")


@cli.command("yield")
@click.option("--symbol", "-s", required=True, help="ETF symbol")
@click.option(
    "--payments", "-p",
    type=int,
    default=12,
    help="Dividend payments per year",
    show_default=True,
)
@click.option(
    "--fallback", "-f",
    type=float,
    default=None,
    help="Yield to report when it cannot be derived",
)
@click.pass_context
def forward_yield_command(
    ctx: click.Context, symbol: str, payments: int, fallback: float | None
) -> None:
    """Show the forward yield derived from the average dividend."""
    etf_cli: EtfDataCLI = ctx.obj["cli"]
    symbol = symbol.upper()

    value = etf_cli.run(lambda f: f.fetch_forward_yield(symbol, payments, fallback))
    click.echo(f"{symbol} forward yield: {format_percent(value)}")


@cli.command("refresh-returns")
@click.option(
    "--file", "-f",
    "path",
    type=click.Path(exists=True, dir_okay=False, writable=True),
    required=True,
    help="JSON array of ETF records with a 'symbol' key",
)
@click.option(
    "--batch-size", "-b",
    type=click.IntRange(min=1),
    default=None,
    help="Symbols per batch",
)
@click.option("--pause", type=float, default=None, help="Seconds between batches")
@click.pass_context
def refresh_returns(
    ctx: click.Context, path: str, batch_size: int | None, pause: float | None
) -> None:
    """Recompute stored 3M to 3Y total returns in an ETF JSON file."""
    etf_cli: EtfDataCLI = ctx.obj["cli"]
    refresh = etf_cli.config.refresh

    updated, errors = etf_cli.run(
        lambda f: refresh_total_returns_file(
            f,
            path,
            batch_size=batch_size or refresh.batch_size,
            pause_seconds=refresh.pause_seconds if pause is None else pause,
            timeframe=refresh.timeframe,
        )
    )
    click.echo(f"Update complete: {updated} ETFs updated, {errors} errors")


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
