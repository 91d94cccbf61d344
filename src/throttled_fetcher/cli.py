"""Command-line interface for throttled-fetcher."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from throttled_fetcher import __version__
from throttled_fetcher.config import AppConfig
from throttled_fetcher.errors import FetchError, RequestFailed
from throttled_fetcher.fetcher import FetchResult, ThrottledFetcher

app = typer.Typer(
    name="throttled-fetcher",
    help="Fetch URLs with bounded concurrency, 429 back-off and response caching.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"throttled-fetcher version {__version__}")
        raise typer.Exit()


def _load_config(config_file: Optional[Path]) -> AppConfig:
    if config_file is None:
        return AppConfig()
    try:
        return AppConfig.from_toml(config_file)
    except (OSError, ValueError) as e:
        console.print(f"[red]Invalid config {config_file}: {e}[/red]")
        raise typer.Exit(1)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


async def _fetch_all(
    fetcher: ThrottledFetcher, urls: list[str], repeat: int
) -> list[FetchResult | BaseException]:
    results: list[FetchResult | BaseException] = []
    async with fetcher:
        for _ in range(repeat):
            results.extend(await fetcher.get_many(urls))
    return results


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """Throttle-aware HTTP GET fetcher."""
    pass


@app.command()
def fetch(
    urls: list[str] = typer.Argument(..., help="URLs to fetch"),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        "-c",
        min=0,
        help="Maximum requests in flight (0 = unlimited)",
    ),
    timeout_ms: Optional[int] = typer.Option(
        None,
        "--timeout-ms",
        help="Per-request timeout in milliseconds",
    ),
    repeat: int = typer.Option(
        1,
        "--repeat",
        "-r",
        min=1,
        help="Fetch every URL this many times (repeats are served from cache)",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        help="TOML configuration file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
):
    """
    Fetch one or more URLs concurrently and summarize the responses.

    Examples:

        throttled-fetcher fetch https://example.com/a https://example.com/b

        throttled-fetcher fetch https://example.com -c 2 --repeat 3 -v
    """
    config = _load_config(config_file)
    updates = {}
    if concurrency is not None:
        updates["max_concurrent_requests"] = concurrency
    if timeout_ms is not None:
        updates["timeout_ms"] = timeout_ms
    try:
        config = config.model_copy(
            update={
                "fetcher": config.fetcher.model_validate(
                    {**config.fetcher.model_dump(), **updates}
                ),
                "verbose": verbose or config.verbose,
            }
        )
    except ValueError as e:
        console.print(f"[red]Invalid option: {e}[/red]")
        raise typer.Exit(1)

    _setup_logging(config.verbose)
    fetcher = ThrottledFetcher.from_config(config)

    try:
        results = asyncio.run(_fetch_all(fetcher, urls, repeat))
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/yellow]")
        raise typer.Exit(130)

    table = Table(title="Fetch results")
    table.add_column("URL", style="cyan")
    table.add_column("Status", justify="right")
    table.add_column("Bytes", justify="right")
    table.add_column("Attempts", justify="right")

    failed = 0
    for url, result in zip(urls * repeat, results):
        if isinstance(result, FetchResult):
            table.add_row(url, str(result.status_code), str(len(result.content)), str(result.attempts))
            continue
        failed += 1
        if isinstance(result, RequestFailed):
            table.add_row(url, f"[red]{result.status_code}[/red]", "-", "-")
        elif isinstance(result, FetchError):
            table.add_row(url, f"[red]{type(result).__name__}[/red]", "-", "-")
        else:
            table.add_row(url, f"[red]{escape(repr(result))}[/red]", "-", "-")

    console.print(table)

    stats = fetcher.stats()
    cache_stats = stats["cache"]
    console.print(
        f"  Cache:       {cache_stats['hits']} hit(s), {cache_stats['misses']} miss(es)"
    )
    console.print(f"  429 backoffs: {stats['throttle_count']}")
    if stats["throttle_count"]:
        console.print(f"  Peak delay:   {stats['peak_throttle_delay']:.1f}s")
    console.print(f"  Peak in flight: {stats['peak_in_flight']}")

    if failed:
        console.print(f"[red]{failed} request(s) failed.[/red]")
        raise typer.Exit(1)


@app.command("show-config")
def show_config(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        help="TOML configuration file",
    ),
):
    """Print the effective configuration as TOML."""
    config = _load_config(config_file)
    console.print(config.to_toml(exclude_defaults=False), markup=False, highlight=False)


if __name__ == "__main__":
    app()
