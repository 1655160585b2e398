"""OBS Source Tracker CLI.

Usage:
    obs-source-tracker serve                        # Track OBS and serve the API
    obs-source-tracker serve --port 8080            # Custom HTTP port
    obs-source-tracker serve --obs-host 10.0.0.5    # Remote OBS instance

    obs-source-tracker report                       # Today's counters
    obs-source-tracker report --date 2024-05-01     # Counters for a given day
    obs-source-tracker report --format csv          # CSV export
    obs-source-tracker dates                        # Days with counters

    obs-source-tracker health                       # Check HTTP server health
"""

from __future__ import annotations

import asyncio
import csv
import json
import logging
import os
import sys
from datetime import UTC, date, datetime

import click
import httpx

from .config import ENV_PREFIX, TrackerConfig
from .store import AggregationStore, DailyAggregate

# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"
FORMAT_CSV = "csv"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

CSV_HEADERS = [
    "Source Name",
    "Title",
    "Category",
    "Brand",
    "Show Count",
    "Total Duration",
    "Avg Duration",
]


def format_duration(seconds: int) -> str:
    """Format seconds as `1h 2m 3s`, `2m 3s` or `3s`."""
    hours, rest = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def truncate(text: str | None, max_len: int = 30) -> str:
    """Truncate text for display."""
    if not text:
        return ""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def configure_logging(level: str) -> None:
    """Send log records to stderr."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr, force=True)


def _open_store(db_path: str | None) -> AggregationStore:
    path = db_path or TrackerConfig.from_env().db_path
    return AggregationStore(path)


@click.group()
def main() -> None:
    """OBS Source Tracker - counts how often and how long OBS sources are shown."""


# =============================================================================
# Server
# =============================================================================


@main.command()
@click.option("--host", default="127.0.0.1", help="Host to bind the HTTP server to")
@click.option("--port", default=3000, help="Port to bind the HTTP server to")
@click.option("--obs-host", help="OBS WebSocket host")
@click.option("--obs-port", type=int, help="OBS WebSocket port")
@click.option("--db", "db_path", type=click.Path(dir_okay=False), help="SQLite database path")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="info",
    help="Log level",
)
def serve(
    host: str,
    port: int,
    obs_host: str | None,
    obs_port: int | None,
    db_path: str | None,
    log_level: str,
) -> None:
    """Connect to OBS and serve the tracker API."""
    import uvicorn

    # CLI options override the environment for the app factory
    if obs_host:
        os.environ[f"{ENV_PREFIX}OBS_HOST"] = obs_host
    if obs_port is not None:
        os.environ[f"{ENV_PREFIX}OBS_PORT"] = str(obs_port)
    if db_path:
        os.environ[f"{ENV_PREFIX}DB_PATH"] = db_path

    try:
        config = TrackerConfig.from_env()
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    configure_logging(log_level)
    click.echo(f"Starting OBS Source Tracker on http://{host}:{port}", err=True)
    click.echo(f"  OBS WebSocket: {config.obs_url}", err=True)
    click.echo(f"  Database: {config.db_path}", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(
        "obs_source_tracker.app:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=log_level.lower(),
    )


@main.command()
@click.option("--url", default="http://localhost:3000", help="Server URL")
def health(url: str) -> None:
    """Check server health."""

    async def check() -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(f"{url}/health")
                if response.status_code == 200:
                    data = response.json()
                    click.echo(f"Server is healthy: {data}")
                else:
                    click.echo(f"Server returned {response.status_code}", err=True)
                    sys.exit(1)
        except httpx.ConnectError:
            click.echo(f"Cannot connect to server at {url}", err=True)
            sys.exit(1)

    asyncio.run(check())


# =============================================================================
# Reports
# =============================================================================


@main.command()
@click.option("--date", "day", help="Day to report (YYYY-MM-DD, default today in UTC)")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON, FORMAT_CSV]),
    default=FORMAT_TABLE,
    help="Output format",
)
@click.option("--db", "db_path", type=click.Path(dir_okay=False), help="SQLite database path")
def report(day: str | None, output_format: str, db_path: str | None) -> None:
    """Show counters for one day, most shown first.

    Examples:

        # Today's report
        obs-source-tracker report

        # CSV for a spreadsheet
        obs-source-tracker report --date 2024-05-01 --format csv > report.csv
    """
    try:
        report_day = date.fromisoformat(day) if day else datetime.now(UTC).date()
    except ValueError as e:
        raise click.BadParameter(f"Invalid date: {day}", param_hint="--date") from e

    store = _open_store(db_path)
    try:
        rows = store.read_day(report_day, order="count")
    finally:
        store.close()

    if output_format == FORMAT_JSON:
        click.echo(json.dumps([row.model_dump() for row in rows], indent=2, ensure_ascii=False))
        return

    if output_format == FORMAT_CSV:
        _write_csv(rows)
        return

    if not rows:
        click.echo(f"No data for {report_day.isoformat()}.")
        return

    click.echo(f"Report for {report_day.isoformat()}\n")
    click.echo(
        f"{'Source':<25} {'Title':<20} {'Category':<15} {'Shows':>6} {'Total':>12} {'Avg':>10}"
    )
    click.echo("-" * 93)
    for row in rows:
        click.echo(
            f"{truncate(row.source_name, 25):<25} "
            f"{truncate(row.title, 20):<20} "
            f"{truncate(row.category, 15):<15} "
            f"{row.visible_count:>6} "
            f"{format_duration(row.total_duration_seconds):>12} "
            f"{format_duration(row.average_duration_seconds):>10}"
        )
    click.echo(f"\nTotal: {len(rows)} source(s)")


def _write_csv(rows: list[DailyAggregate]) -> None:
    writer = csv.writer(sys.stdout)
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow(
            [
                row.source_name,
                row.title or "",
                row.category or "",
                row.brand or "",
                row.visible_count,
                row.total_duration_seconds,
                row.average_duration_seconds,
            ]
        )


@main.command()
@click.option("--db", "db_path", type=click.Path(dir_okay=False), help="SQLite database path")
def dates(db_path: str | None) -> None:
    """List the days that have counters, newest first."""
    store = _open_store(db_path)
    try:
        days = store.list_dates()
    finally:
        store.close()

    if not days:
        click.echo("No data recorded yet.")
        return
    for day in days:
        click.echo(day)


if __name__ == "__main__":
    main()
