"""
Command line entry point.

    ambr                      # dashboard with an embedded recorder
    ambr record               # recorder only, in the foreground
    ambr serve --port 8000    # JSON API with an embedded recorder
    ambr usage daily -n 7     # print calendar buckets
    ambr live -m 5            # print per-interface usage for the last 5 min
"""

import click

from ambr import aggregation
from ambr.config import settings
from ambr.logging_setup import configure_logging
from ambr.store import EventStore, QueryError, StorageError


def _open_store(ctx: click.Context) -> EventStore:
    """Open and initialize the store once per invocation; init failure is fatal."""
    if ctx.obj.get("store") is None:
        try:
            store = EventStore.from_url(ctx.obj["database_url"])
            store.initialize()
        except StorageError as exc:
            raise click.ClickException(str(exc)) from exc
        ctx.obj["store"] = store
    return ctx.obj["store"]


@click.group(invoke_without_command=True)
@click.option(
    "--database-url",
    default=None,
    help="SQLAlchemy URL of the event store (default: DATABASE_URL or DATA_DIR/ambr.db).",
)
@click.option("--log-level", default=None, help="Logging level (default: LOG_LEVEL).")
@click.pass_context
def cli(ctx, database_url, log_level):
    """Record per-interface network usage and browse it."""
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url or settings.resolved_database_url
    ctx.obj["log_level"] = log_level or settings.log_level
    if ctx.invoked_subcommand is None:
        ctx.invoke(dashboard)


@cli.command()
@click.option("--no-recorder", is_flag=True, help="Only browse, do not sample counters.")
@click.pass_context
def dashboard(ctx, no_recorder):
    """Interactive terminal dashboard."""
    from ambr.dashboard import run_dashboard
    from ambr.recorder import build_recorder

    configure_logging(ctx.obj["log_level"], settings.log_file or settings.data_dir / "ambr.log")
    store = _open_store(ctx)
    if not no_recorder:
        build_recorder(store).start()
    run_dashboard(store)


@cli.command()
@click.pass_context
def record(ctx):
    """Sample counters forever and store deltas."""
    from ambr.recorder import build_recorder

    configure_logging(ctx.obj["log_level"], settings.log_file)
    build_recorder(_open_store(ctx)).run()


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.option("--no-recorder", is_flag=True, help="Serve stored data without sampling.")
@click.pass_context
def serve(ctx, host, port, no_recorder):
    """Serve the JSON API with uvicorn."""
    import uvicorn

    from ambr.api import create_app

    configure_logging(ctx.obj["log_level"], settings.log_file)
    store = _open_store(ctx)
    app = create_app(store=store, start_recorder=not no_recorder)
    uvicorn.run(app, host=host, port=port)


def _echo_rows(first_header: str, rows) -> None:
    click.echo(f"{first_header:<20}{'Rx (MiB)':>12}{'Tx (MiB)':>12}{'Total (MiB)':>14}")
    for label, r in rows:
        click.echo(f"{label:<20}{r.rx_mib:>12.2f}{r.tx_mib:>12.2f}{r.total_mib:>14.2f}")


@cli.command()
@click.argument("period", type=click.Choice(sorted(aggregation.PERIOD_QUERIES)))
@click.option("-n", "--limit", type=click.IntRange(min=1), default=None,
              help="Number of buckets (default depends on PERIOD).")
@click.pass_context
def usage(ctx, period, limit):
    """Print usage per hour, day, week or month, newest first."""
    store = _open_store(ctx)
    if limit is None:
        limit = aggregation.DEFAULT_LIMITS[period]
    try:
        rows = aggregation.usage_by_period(store, period, limit)
    except QueryError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_rows("Period", [(r.period, r) for r in rows])


@cli.command()
@click.option("-m", "--minutes", type=click.IntRange(min=0), default=1, show_default=True)
@click.pass_context
def live(ctx, minutes):
    """Print per-interface usage over the last few minutes."""
    store = _open_store(ctx)
    try:
        totals = aggregation.recent_totals(store, minutes)
        rows = aggregation.recent_by_interface(store, minutes)
    except QueryError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_rows("Interface", [(r.interface, r) for r in rows] + [("(all)", totals)])


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
