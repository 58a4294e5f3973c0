"""
CLI interface for Usage Heatmap.

Provides command-line access to fetching, merging and rendering usage.
"""

import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from usage_heatmap.config.loader import HeatmapConfig, default_config, load_config
from usage_heatmap.core.aggregate import format_cost, format_tokens
from usage_heatmap.core.dates import canonical_date, parse_canonical
from usage_heatmap.core.ingest import records_from_payload
from usage_heatmap.core.merger import merge_history
from usage_heatmap.core.renderer import HeatmapRenderer
from usage_heatmap.sources import PublishError, UsageFetchError, commit_and_push, fetch_usage, pull
from usage_heatmap.storage.repository import HistoryRepository

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

HISTORY_COMMIT_MESSAGE = "data: update usage history"
GRAPH_COMMIT_MESSAGE = "chore: update usage graph"


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """Usage Heatmap CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-5s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        ctx.obj = load_config(config_path) if config_path else default_config()
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading config:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if ctx.invoked_subcommand is None:
        console.print("Usage Heatmap - Use --help to see available commands")


@app.command()
def fetch(
    ctx: typer.Context,
    push: bool = typer.Option(
        False,
        "--push",
        "-p",
        help="Pull before merging and commit + push the history afterwards"
    )
):
    """Fetch fresh usage and merge it into the stored history."""
    config: HeatmapConfig = ctx.obj
    try:
        _fetch_and_merge(config, push)
        if push:
            _publish([config.paths.history], HISTORY_COMMIT_MESSAGE)
    except UsageFetchError as e:
        console.print(f"[red]Error fetching usage:[/] {str(e)}")
        console.print("Make sure the usage tool is installed and you are logged in.")
        sys.exit(EXIT_CODE_FAIL)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def generate(
    ctx: typer.Context,
    as_of: Optional[str] = typer.Option(
        None,
        "--as-of",
        help="Last day of the graph (YYYY-MM-DD), defaults to today (UTC)"
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Where to write the SVG, overrides the configured path"
    )
):
    """Render the stored history as an SVG heatmap."""
    config: HeatmapConfig = ctx.obj
    day = _resolve_as_of(as_of)
    try:
        _render(config, day, output or config.paths.svg)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def update(
    ctx: typer.Context,
    push: bool = typer.Option(
        False,
        "--push",
        "-p",
        help="Pull before merging and commit + push history and graph afterwards"
    )
):
    """Fetch, merge and render in one step."""
    config: HeatmapConfig = ctx.obj
    try:
        _fetch_and_merge(config, push)
        _render(config, _today(), config.paths.svg)
        if push:
            _publish([config.paths.history, config.paths.svg], GRAPH_COMMIT_MESSAGE)
    except UsageFetchError as e:
        console.print(f"[red]Error fetching usage:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def stats(
    ctx: typer.Context,
    as_of: Optional[str] = typer.Option(
        None,
        "--as-of",
        help="Last day of the window (YYYY-MM-DD), defaults to today (UTC)"
    )
):
    """Show window statistics for the stored history."""
    config: HeatmapConfig = ctx.obj
    day = _resolve_as_of(as_of)
    try:
        history = HistoryRepository(config.paths.history).load()
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    window = HeatmapRenderer(config).layout(history, day).stats

    table = Table(title=f"Usage {window.window_start.isoformat()} to {window.window_end.isoformat()}")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total cost", format_cost(window.total_cost))
    table.add_row("Total tokens", format_tokens(window.total_tokens))
    table.add_row("Active days", str(window.active_days))
    table.add_row("Busiest day cost", format_cost(window.max_cost if window.active_days else 0.0))
    table.add_row("Days stored", str(len(history)))
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _resolve_as_of(value: Optional[str]) -> date:
    """Parse the --as-of option, defaulting to today."""
    if value is None:
        return _today()
    key = canonical_date(value)
    if key is None:
        raise typer.BadParameter(f"Invalid date: {value}", param_hint="--as-of")
    return parse_canonical(key)


def _fetch_and_merge(config: HeatmapConfig, sync: bool) -> None:
    """Fetch fresh usage, merge it into the stored history and save it."""
    if sync:
        pull()

    report = fetch_usage(config.fetch.command, timeout=config.fetch.timeout)
    fresh = records_from_payload(report, config.get_source_config())
    if fresh.dropped:
        console.print(f"[yellow]Skipped {fresh.dropped} malformed daily entries[/]")

    repository = HistoryRepository(config.paths.history)
    existing = repository.load()
    merged = merge_history(existing, fresh.records)
    repository.save(merged)

    added = len(merged) - len(existing)
    console.print(
        f"[green]✓[/] Merged {len(fresh.records)} fetched days "
        f"({added} new, {len(merged)} total) into {config.paths.history}"
    )


def _render(config: HeatmapConfig, as_of: date, output: str) -> None:
    history = HistoryRepository(config.paths.history).load()
    svg = HeatmapRenderer(config).render(history, as_of)

    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(svg, encoding="utf-8")
    console.print(f"[green]✓[/] Rendered {len(history)} days of history to {output}")


def _publish(paths, message: str) -> None:
    try:
        if commit_and_push(paths, message):
            console.print("[green]✓[/] Changes pushed")
        else:
            console.print("No changes to push.")
    except PublishError as e:
        console.print(f"[yellow]Warning:[/] {str(e)}")


if __name__ == "__main__":
    app()
