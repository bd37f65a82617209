from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from sheetwatch.config import Settings, settings, validate_settings
from sheetwatch.exceptions import ConfigError, PersistenceError
from sheetwatch.logs import setup_logging
from sheetwatch.services import (
    RetentionSweeper,
    ScanCoordinator,
    ScanScheduler,
    SourceStatusService,
    install_signal_handlers,
)
from sheetwatch.store import ScanStore, build_store

cli = typer.Typer(help="Sheetwatch CLI (workbook row watcher)")
logger = logging.getLogger(__name__)


def _prepare(verbose: bool, root: Optional[Path] = None, pattern: Optional[str] = None) -> Settings:
    # Overrides apply to this command only; the shared settings stay untouched.
    config = settings.model_copy(deep=True)
    if root is not None:
        config.scan.root_directory = root
    if pattern is not None:
        config.scan.file_pattern = pattern
    setup_logging(verbose=verbose, config=config)
    try:
        validate_settings(config)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        raise typer.Exit(code=2)
    return config


def _open_store(config: Settings) -> Optional[ScanStore]:
    try:
        return build_store(config)
    except PersistenceError as exc:
        logger.warning("Store unavailable, continuing without persistence: %s", exc)
        return None


@cli.command()
def version() -> None:
    """Print runtime version."""
    typer.echo(f"Sheetwatch {settings.app.version}")


@cli.command()
def scan(
    root: Optional[Path] = typer.Option(None, help="Root directory to scan (overrides config)"),
    pattern: Optional[str] = typer.Option(None, help="Filename glob (overrides config)"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Run a single scan and print its summary as JSON."""
    config = _prepare(verbose, root, pattern)
    coordinator = ScanCoordinator.from_settings(_open_store(config), config)
    result = coordinator.run()
    typer.echo(json.dumps(result.summary(), ensure_ascii=False, indent=2))


@cli.command()
def run(
    root: Optional[Path] = typer.Option(None, help="Root directory to scan (overrides config)"),
    pattern: Optional[str] = typer.Option(None, help="Filename glob (overrides config)"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Scan on the configured interval until SIGINT/SIGTERM."""
    config = _prepare(verbose, root, pattern)
    store = _open_store(config)
    stop_event = threading.Event()
    install_signal_handlers(stop_event)

    scheduler = ScanScheduler(
        coordinator=ScanCoordinator.from_settings(store, config),
        sweeper=RetentionSweeper(store) if store is not None else None,
        interval_minutes=config.scan.interval_minutes,
        retention_days=config.retention.days,
        stop_event=stop_event,
        timezone=config.app.timezone,
    )
    scheduler.run_forever()


@cli.command()
def sweep(
    days: Optional[int] = typer.Option(None, help="Retention window in days (overrides config)"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Delete scans older than the retention window."""
    config = _prepare(verbose)
    store = _open_store(config)
    if store is None:
        raise typer.Exit(code=1)
    result = RetentionSweeper(store).run(days or config.retention.days)
    typer.echo(json.dumps(result.to_dict(), indent=2))


@cli.command()
def status(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    """Print the lifecycle status of every known source sheet."""
    config = _prepare(verbose)
    store = _open_store(config)
    if store is None:
        raise typer.Exit(code=1)
    service = SourceStatusService(
        store,
        active_marker=config.status.active_marker,
        maintenance_marker=config.status.maintenance_marker,
    )
    statuses = service.list_statuses()
    if not statuses:
        typer.echo("No sources recorded yet.")
        return
    for item in statuses:
        typer.echo(f"{item.status:<12} {item.folder}/{item.filename} [{item.sheet_name}] row {item.last_row_number or '-'}")


@cli.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind"),
    port: int = typer.Option(8000, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload for local development"),
) -> None:
    """Run the read-only Sheetwatch API server."""
    uvicorn.run(
        "sheetwatch.api.main:app",
        host=host,
        port=port,
        reload=reload,
        app_dir="src",
    )


if __name__ == "__main__":
    cli()
