"""CLI command implementations for running batches against the SQLite store."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from smartbatch.exceptions import ConfigurationError
from smartbatch.models.config import Settings
from smartbatch.repositories.record_repository import RecordRepository
from smartbatch.services.batch_processor import SmartBatchProcessor
from smartbatch.services.database import Database
from smartbatch.utils.logger import configure_logging

if TYPE_CHECKING:
    from collections.abc import Callable

    from smartbatch.models.batch_result import BatchOutcome, ProgressSnapshot


def _get_settings() -> Settings:
    """Load configuration from environment and .env file."""
    return Settings()


def _get_db(settings: Settings) -> Database:
    """Initialize database with schema."""
    db = Database(db_path=settings.database_path)
    db.init_db()
    return db


def _load_json_array(path: str) -> list[Any]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        msg = f"{path} must contain a JSON array"
        raise click.BadParameter(msg)
    return data


def _print_summary(title: str, stats: dict[str, Any]) -> None:
    """Print a formatted summary of batch operation results."""
    status = "SUCCESS" if not stats.get("errors") else "PARTIAL"
    click.echo(f"\n[{status}] {title}")
    for key, value in stats.items():
        if key == "errors" and isinstance(value, list):
            if value:
                click.echo(f"  Errors ({len(value)}):")
                for error in value[:10]:
                    click.echo(f"    - {error}")
                if len(value) > 10:
                    click.echo(f"    ... and {len(value) - 10} more")
        else:
            click.echo(f"  {key}: {value}")


def _print_report(processor: SmartBatchProcessor) -> None:
    report = processor.get_performance_report()
    click.echo("\n[INFO] Performance report")
    click.echo(f"  total_operations: {report.total_operations}")
    click.echo(f"  average_processing_time_ms: {report.average_processing_time_ms:.2f}")
    for profile in report.profiles:
        click.echo(
            f"  {profile.operation.value}: executions={profile.execution_count} "
            f"optimal_batch_size={profile.optimal_batch_size} "
            f"avg_ms={profile.average_processing_time_ms:.2f}"
        )
    for recommendation in report.recommendations:
        click.echo(f"  - {recommendation}")


def _echo_progress(snapshot: ProgressSnapshot) -> None:
    click.echo(
        f"  chunk {snapshot.current_chunk}/{snapshot.total_chunks}: "
        f"{snapshot.items_processed}/{snapshot.total_items} "
        f"({snapshot.percent_complete}%), ~{snapshot.estimated_remaining_ms}ms remaining"
    )


def _batch_options(**flags: Any) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Attach the shared batch option flags to a command."""
    extra = flags

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        func = click.option(
            "--max-concurrency", default=None, type=int, help="Chunks in flight per wave"
        )(func)
        func = click.option(
            "--parallel/--sequential", default=False, help="Run chunks in concurrent waves"
        )(func)
        func = click.option(
            "--batch-size", default="auto", help="Items per chunk, or 'auto' to self-tune"
        )(func)
        for flag, help_text in extra.items():
            func = click.option(f"--{flag}", is_flag=True, help=help_text)(func)
        return func

    return decorator


def _run(
    title: str,
    runner: Callable[[SmartBatchProcessor], Any],
) -> None:
    settings = _get_settings()
    configure_logging(settings.log_level)
    db = _get_db(settings)
    try:
        processor = SmartBatchProcessor.from_settings(RecordRepository(db), settings)
        try:
            outcome: BatchOutcome = asyncio.run(runner(processor))
        except ConfigurationError as exc:
            raise click.UsageError(str(exc)) from exc
        _print_summary(title, outcome.summary())
        _print_report(processor)
    finally:
        db.close()


def _options(batch_size: str, parallel: bool, max_concurrency: int | None, **flags: bool) -> dict:
    options: dict[str, Any] = {"batch_size": batch_size, "parallel": parallel, **flags}
    if batch_size.isdigit():
        options["batch_size"] = int(batch_size)
    if max_concurrency is not None:
        options["max_concurrency"] = max_concurrency
    return options


@click.command()
def init_db() -> None:
    """Create the records schema."""
    settings = _get_settings()
    configure_logging(settings.log_level)
    db = _get_db(settings)
    click.echo(f"[SUCCESS] Database initialized at {settings.database_path}")
    db.close()


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@_batch_options(validate="Reject chunks containing empty items", progress="Report progress")
def create(
    path: str,
    batch_size: str,
    parallel: bool,
    max_concurrency: int | None,
    validate: bool,
    progress: bool,
) -> None:
    """Create records from a JSON array of objects."""
    items = _load_json_array(path)
    options = _options(batch_size, parallel, max_concurrency, validate=validate)

    def runner(processor: SmartBatchProcessor) -> Any:
        if progress:
            return processor.create_batch_with_progress(items, _echo_progress, options)
        return processor.create_batch(items, options)

    _run("Batch create complete", runner)


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@_batch_options(**{"detect-changes": "Skip updates that change nothing"})
def update(
    path: str,
    batch_size: str,
    parallel: bool,
    max_concurrency: int | None,
    detect_changes: bool,
) -> None:
    """Update records from a JSON array of {"id": ..., "data": {...}} objects."""
    updates = _load_json_array(path)
    options = _options(batch_size, parallel, max_concurrency, detect_changes=detect_changes)
    _run("Batch update complete", lambda processor: processor.update_batch(updates, options))


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@_batch_options(**{"soft-delete": "Mark records deleted instead of removing them"})
def delete(
    path: str,
    batch_size: str,
    parallel: bool,
    max_concurrency: int | None,
    soft_delete: bool,
) -> None:
    """Delete records whose ids are listed in a JSON array."""
    ids = _load_json_array(path)
    options = _options(batch_size, parallel, max_concurrency, soft_delete=soft_delete)
    _run("Batch delete complete", lambda processor: processor.delete_batch(ids, options))
