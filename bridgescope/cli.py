import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional

import typer

from bridgescope.config import settings
from bridgescope.utils.errors import FatalStartupError
from bridgescope.utils.logging_config import configure_logging

log = logging.getLogger(__name__)

app = typer.Typer(help="bridgescope: bridge transfer ingestion and reconciliation")


@app.callback()
def _setup(log_level: str = typer.Option("INFO", help="Root log level")):
    configure_logging(log_level)


@app.command("migrate")
def migrate():
    """Create tables and mirror the dApp registry into the database."""
    from bridgescope.container import init_services
    from bridgescope.storage.db import engine
    from bridgescope.storage.migrate import run_migrations, sync_dapp_registry

    services = init_services()
    run_migrations(engine)
    with services.session_factory() as db:
        sync_dapp_registry(db, services.registry)


@app.command("sync")
def sync(
    once: bool = typer.Option(False, "--once", help="Run a single tick and exit"),
    interval: int = typer.Option(settings.SYNC_INTERVAL_SECONDS, help="Seconds between ticks"),
):
    """
    Reconcile the store against the subgraphs (long running unless --once).
    """
    from bridgescope.container import init_services
    from bridgescope.storage.db import engine
    from bridgescope.sync.bootstrap import bootstrap

    try:
        reconciler = bootstrap(init_services(), engine)
    except FatalStartupError as e:
        log.error(f"[cli] cannot start sync: {e}")
        raise typer.Exit(code=1)

    if once:
        results = reconciler.tick()
        typer.echo(json.dumps({chain.value: stats.as_dict() for chain, stats in results.items()}))
        return
    try:
        reconciler.run_forever(interval)
    except KeyboardInterrupt:
        log.info("[cli] sync interrupted")


@app.command("replay")
def replay(payload: Path = typer.Argument(..., exists=True, readable=True, help="Saved webhook body (JSON)")):
    """Feed a saved webhook payload through the ingestion path, inline."""
    from bridgescope.container import init_services
    from bridgescope.ingestion.worker import handle_payload

    services = init_services()
    body = json.loads(payload.read_text())
    report = handle_payload(services.pipeline, body)
    typer.echo(json.dumps(report._asdict()))


@app.command("aggregate")
def aggregate(day: Optional[str] = typer.Option(None, help="UTC day, YYYY-MM-DD (default: today)")):
    """Rebuild global and per-dApp daily stats for one day."""
    from bridgescope.container import init_services
    from bridgescope.sync.stats import aggregate_day

    services = init_services()
    target = date.fromisoformat(day) if day else None
    global_row, dapp_rows = aggregate_day(services.session_factory, services.cache, target)
    typer.echo(f"{global_row['date']}: {global_row['transfer_count']} transfers, {len(dapp_rows)} dApps")


def main():
    app()


if __name__ == "__main__":
    main()
