"""CLI commands for the engagement scoring system."""

import json
import sqlite3
import sys
import uuid
from datetime import UTC, date, datetime
from pathlib import Path
from typing import TextIO

import click
import structlog
from pydantic import TypeAdapter, ValidationError

from engaged_papers.feed import build_feed, list_papers
from engaged_papers.observability.logging import bind_run_context, configure_logging
from engaged_papers.recalculate import ScoreRecalculator
from engaged_papers.scoring import (
    EngagementScorer,
    RawMetric,
    ScorerConfig,
    ScoringMetrics,
)
from engaged_papers.settings import AppSettings, get_settings
from engaged_papers.store import MetricStore, MetricStoreError, StoreMetrics


logger = structlog.get_logger()

COMPONENT_CLI = "cli"

_RAW_METRICS = TypeAdapter(list[RawMetric])


def _setup(settings: AppSettings, command: str) -> structlog.typing.FilteringBoundLogger:
    """Configure logging and bind a fresh run ID.

    Args:
        settings: Application settings.
        command: Command name for log context.

    Returns:
        Bound logger for the command.
    """
    run_id = str(uuid.uuid4())
    configure_logging(
        level=settings.log_level_number(), json_format=settings.json_logs
    )
    bind_run_context(run_id)
    return logger.bind(component=COMPONENT_CLI, command=command)  # type: ignore[no-any-return]


def _resolve_state(state_path: Path | None, settings: AppSettings) -> Path:
    return state_path if state_path is not None else settings.state_path


@click.group()
@click.version_option(version="0.1.0")
def cli() -> None:
    """Engaged papers scoring CLI."""


@cli.command()
@click.argument("input_file", type=click.File("r"), default="-")
@click.option(
    "--now",
    "now",
    type=click.DateTime(formats=["%Y-%m-%dT%H:%M:%S", "%Y-%m-%d"]),
    default=None,
    help="Reference time (UTC) for recency weights. Defaults to the current time.",
)
def score(input_file: TextIO, now: datetime | None) -> None:
    """Score a JSON array of raw metrics and print the scored batch."""
    settings = get_settings()
    log = _setup(settings, "score")

    try:
        metrics = _RAW_METRICS.validate_json(input_file.read())
    except ValidationError as e:
        log.warning("invalid_score_input", errors=e.error_count())
        click.echo(f"Error: invalid input: {e}", err=True)
        sys.exit(1)

    reference = now.replace(tzinfo=UTC) if now is not None else None
    scorer = EngagementScorer(run_id="cli", config=ScorerConfig(now=reference))
    scored = scorer.score_batch_detailed(metrics)

    output = {
        "scoring_path": scored.path.value,
        "metrics": [m.model_dump(mode="json") for m in scored.metrics],
    }
    click.echo(json.dumps(output, indent=2))


@cli.command()
@click.option(
    "--state",
    "state_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to SQLite state database (defaults to ENGAGED_PAPERS_STATE_PATH).",
)
@click.option(
    "--date",
    "snapshot_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Snapshot date to re-score (defaults to today, UTC).",
)
def recalculate(state_path: Path | None, snapshot_date: datetime | None) -> None:
    """Recompute every engagement score of a snapshot date."""
    settings = get_settings()
    log = _setup(settings, "recalculate")
    target: date = (
        snapshot_date.date() if snapshot_date is not None else datetime.now(UTC).date()
    )

    try:
        with MetricStore(_resolve_state(state_path, settings)) as store:
            result = ScoreRecalculator(store).recalculate(target)
    except (MetricStoreError, sqlite3.Error) as e:
        log.error("recalculation_failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    log.info(
        "recalculate_finished",
        scoring_metrics=ScoringMetrics.get_instance().to_dict(),
        store_metrics=StoreMetrics.get_instance().to_dict(),
    )
    click.echo(
        f"Recalculated engagement scores for {target.isoformat()}: "
        f"{result.items_updated}/{result.items_scored} updated "
        f"({result.scoring_path.value})"
    )
    for failure in result.failures:
        click.echo(
            f"  failed: metric {failure.metric_id} ({failure.paper_id}): {failure.message}",
            err=True,
        )


@cli.command()
@click.option(
    "--state",
    "state_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to SQLite state database (defaults to ENGAGED_PAPERS_STATE_PATH).",
)
@click.option(
    "--fraction",
    "rising_fraction",
    type=click.FloatRange(min=0.0, max=1.0, min_open=True),
    default=None,
    help="Share of positive scores listed as rising.",
)
def feed(state_path: Path | None, rising_fraction: float | None) -> None:
    """Print new and rising papers as JSON."""
    settings = get_settings()
    _setup(settings, "feed")
    fraction = rising_fraction if rising_fraction is not None else settings.rising_fraction

    with MetricStore(_resolve_state(state_path, settings)) as store:
        listing = build_feed(store, rising_fraction=fraction)

    click.echo(listing.model_dump_json(indent=2))


@cli.command()
@click.option(
    "--state",
    "state_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to SQLite state database (defaults to ENGAGED_PAPERS_STATE_PATH).",
)
@click.option(
    "--from-date",
    "from_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Earliest publish date (defaults to seven days ago).",
)
@click.option("--category", default=None, help="Only list papers in this category.")
@click.option(
    "--min-score",
    "min_score",
    type=click.FloatRange(min=0.0, max=1.0),
    default=0.0,
    show_default=True,
    help="Drop papers whose latest score is below this value.",
)
def papers(
    state_path: Path | None,
    from_date: datetime | None,
    category: str | None,
    min_score: float,
) -> None:
    """Print recent papers ranked by latest engagement score as JSON."""
    settings = get_settings()
    log = _setup(settings, "papers")

    try:
        with MetricStore(_resolve_state(state_path, settings)) as store:
            rows = list_papers(
                store,
                from_date=from_date.date() if from_date is not None else None,
                category=category,
                min_score=min_score,
            )
    except (MetricStoreError, sqlite3.Error) as e:
        log.error("papers_listing_failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps([r.model_dump(mode="json") for r in rows], indent=2))


@cli.command("db-stats")
@click.option(
    "--state",
    "state_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to SQLite state database (defaults to ENGAGED_PAPERS_STATE_PATH).",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output as JSON.",
)
def db_stats(state_path: Path | None, json_output: bool) -> None:
    """Display metric database statistics."""
    settings = get_settings()
    _setup(settings, "db-stats")

    with MetricStore(_resolve_state(state_path, settings)) as store:
        stats = store.get_stats()

    if json_output:
        click.echo(json.dumps(stats, indent=2))
        return

    click.echo("Metric Database Statistics")
    click.echo("=" * 40)
    click.echo(f"  Schema Version: {stats['schema_version']}")
    click.echo(f"  Papers: {stats['papers']}")
    click.echo(f"  Paper Metrics: {stats['paper_metrics']}")
    dates: list[str] = stats["snapshot_dates"]  # type: ignore[assignment]
    click.echo(f"  Snapshot Dates: {', '.join(dates) if dates else 'None'}")


if __name__ == "__main__":
    cli()
