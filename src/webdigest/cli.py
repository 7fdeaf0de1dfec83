"""Command-line interface for webdigest."""

from __future__ import annotations

import asyncio
import json
import signal
import sys
from pathlib import Path
from typing import Any, List, Optional

import click
import structlog
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from webdigest import __version__
from webdigest.config.config import Config, get_settings
from webdigest.crawler.cancellation import CancellationSignal
from webdigest.models import ExtractionResult
from webdigest.observability.logging import configure_logging
from webdigest.pipeline import ContentExtractor

console = Console()
logger = structlog.get_logger(__name__)


def _load_config(config_path: Optional[Path], log_level: Optional[str]) -> Config:
    if config_path:
        config = Config.from_yaml(config_path)
    else:
        # Command-line overrides must not leak into the process-wide settings.
        config = get_settings().model_copy(deep=True)
    if log_level:
        config.monitoring.log_level = log_level
    return config


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path), help="Configuration file path"
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides the configuration file)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], log_level: Optional[str]) -> None:
    """webdigest - readable text from arbitrary URLs."""
    ctx.ensure_object(dict)
    config = _load_config(config_path, log_level)
    configure_logging(config.monitoring)
    ctx.obj["config"] = config


@cli.command()
@click.argument("urls", nargs=-1, required=False)
@click.option("--from-file", "-f", type=click.File("r"), help="Read URLs from a file, one per line")
@click.option("--timeout-ms", type=click.IntRange(min=1), default=None, help="Per-request timeout in milliseconds")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@click.option("--max-chars", type=click.IntRange(min=1), default=None, help="Truncate content to N characters")
@click.option("--content/--no-content", default=True, help="Print extracted content after the summary table")
@click.pass_context
def fetch(
    ctx: click.Context,
    urls: tuple[str, ...],
    from_file: Optional[Any],
    timeout_ms: Optional[int],
    as_json: bool,
    max_chars: Optional[int],
    content: bool,
) -> None:
    """Fetch URLS and print their readable content."""
    url_list: List[str] = list(urls)
    if from_file:
        url_list.extend(line.strip() for line in from_file if line.strip() and not line.startswith("#"))

    if not url_list:
        console.print("[red]Error: No URLs provided[/red]")
        sys.exit(2)

    config: Config = ctx.obj["config"]
    if max_chars is not None:
        config.fetch.max_content_length = max_chars
    results = asyncio.run(_run_fetch(config, url_list, timeout_ms))

    if as_json:
        click.echo(json.dumps([result.to_dict() for result in results], indent=2, ensure_ascii=False))
    else:
        _print_results(results, show_content=content)

    if any(not result.ok for result in results):
        sys.exit(1)


def _interrupt(cancel: CancellationSignal, sig: signal.Signals) -> None:
    logger.warning("Interrupted, aborting in-flight fetches", signal=sig.name)
    cancel.cancel("interrupted")


async def _run_fetch(config: Config, urls: List[str], timeout_ms: Optional[int]) -> List[ExtractionResult]:
    cancel = CancellationSignal()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _interrupt, cancel, sig)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no add_signal_handler
            pass

    try:
        async with ContentExtractor(config) as extractor:
            return await extractor.extract_many(urls, signal=cancel, timeout_ms=timeout_ms)
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass


def _print_results(results: List[ExtractionResult], *, show_content: bool) -> None:
    table = Table(title="Extraction results")
    table.add_column("URL", overflow="fold")
    table.add_column("Title", overflow="fold")
    table.add_column("Chars", justify="right")
    table.add_column("Status")

    for result in results:
        status = "[green]ok[/green]" if result.ok else f"[red]{result.error}[/red]"
        table.add_row(result.url, result.title, str(len(result.content)), status)
    console.print(table)

    if not show_content:
        return
    for result in results:
        if result.ok and result.content:
            console.print(Panel(Markdown(result.content), title=result.title or result.url, border_style="blue"))


@cli.command("config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Print the effective configuration."""
    config: Config = ctx.obj["config"]
    click.echo(json.dumps(config.model_dump(mode="json"), indent=2))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
