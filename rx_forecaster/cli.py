"""
Pharmacy demand forecaster: CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute (DB init, CSV import, forecast run, ...).
  5. Report the result to stdout; errors go to stderr with exit code 1.

Install and run::

    pip install -e .
    rx-forecaster --help
    rx-forecaster init-db
    rx-forecaster validate-config
    rx-forecaster import-csv --stock data/raw/stock.csv --sales data/raw/sales.csv
    rx-forecaster forecast --owner pharmacy-1 --horizon 30
    rx-forecaster summary --owner pharmacy-1
    rx-forecaster insights --owner pharmacy-1
    rx-forecaster show-profile
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="rx-forecaster",
    help="Pharmacy demand forecasting and seasonal-risk engine.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from rx_forecaster.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    from rx_forecaster.utils.logging import configure_logging
    configure_logging(config.logging)


def _with_db_path(config, db_path: Optional[str]):
    """Return ``config`` with ``database.db_path`` replaced when given."""
    if not db_path:
        return config
    database = config.database.model_copy(update={"db_path": db_path})
    return config.model_copy(update={"database": database})


def _parse_as_of(as_of: Optional[str]) -> Optional[date]:
    if not as_of:
        return None
    try:
        return date.fromisoformat(as_of)
    except ValueError:
        typer.echo(f"[ERROR] Invalid --as-of '{as_of}'. Expected YYYY-MM-DD.", err=True)
        raise typer.Exit(code=1)


def _build_sources(config, source: str, ledger_parquet: Optional[str]):
    """Return ``(stock_source, ledger_source)`` for the chosen backend."""
    from rx_forecaster.collaborators.hosted_client import HostedStoreClient
    from rx_forecaster.collaborators.parquet_ledger import ParquetLedger
    from rx_forecaster.collaborators.sqlite_store import SqliteStore

    if source == "sqlite":
        stock = SqliteStore(config.database)
    elif source == "hosted":
        try:
            stock = HostedStoreClient(config.store)
        except ValueError as exc:
            typer.echo(f"[ERROR] {exc}", err=True)
            raise typer.Exit(code=1)
    else:
        typer.echo(f"[ERROR] Unknown --source '{source}'. Use 'sqlite' or 'hosted'.", err=True)
        raise typer.Exit(code=1)

    ledger = ParquetLedger(Path(ledger_parquet)) if ledger_parquet else stock
    return stock, ledger


def _resolve_environment(config):
    """Load the seasonal profile and market provider, exiting on bad files."""
    from rx_forecaster.environment.market import resolve_market_provider
    from rx_forecaster.environment.profiles import resolve_profile

    try:
        profile = resolve_profile(config.data.seasonal_profile_file)
        market = resolve_market_provider(config.data.market_trends_file)
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    return profile, market


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None, "--db-path", help="Override DB path from config."
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file."
    ),
) -> None:
    """Create the local SQLite store. Safe to run repeatedly."""
    from rx_forecaster.db.connection import get_connection
    from rx_forecaster.db.schema import apply_schema, table_names

    config = _with_db_path(_load_config_or_exit(config_path), db_path)
    _configure_logging(config)

    target = config.database.db_path
    typer.echo(f"Initializing database at: {target}")
    with get_connection(
        target,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)
        tables = table_names(conn)

    typer.echo(f"  Tables: {', '.join(sorted(tables))}")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file."
    ),
    show_full: bool = typer.Option(
        False, "--show-full", help="Print the full merged config as JSON."
    ),
) -> None:
    """Load and validate configuration, then print the key settings."""
    config = _load_config_or_exit(config_path)

    ens = config.ensemble
    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:     {config.database.db_path}")
    typer.echo(f"  History window:    {config.history.window_days} days "
               f"({config.history.bucket_days}-day buckets)")
    typer.echo(f"  Estimator weights: trend={ens.trend_weight} "
               f"smoothing={ens.smoothing_weight} cyclical={ens.cyclical_weight}")
    typer.echo(f"  Seasonal profile:  {config.data.seasonal_profile_file or '(built-in)'}")
    typer.echo(f"  Market trends:     {config.data.market_trends_file or '(built-in)'}")
    typer.echo(f"  Hosted store:      {config.store.base_url or '(not configured)'}")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        dump = config.model_dump()
        if dump["store"].get("api_key"):
            dump["store"]["api_key"] = "***"
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(dump, indent=2, default=str))

    _resolve_environment(config)
    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("import-csv")
def import_csv(
    stock_file: Optional[str] = typer.Option(
        None, "--stock", help="Stock snapshot CSV."
    ),
    sales_file: Optional[str] = typer.Option(
        None, "--sales", help="Sales ledger CSV."
    ),
    parquet_out: Optional[str] = typer.Option(
        None, "--parquet-out", help="Also write the parsed sales rows to this Parquet file."
    ),
    db_path: Optional[str] = typer.Option(
        None, "--db-path", help="Override DB path from config."
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Validate only; write nothing."
    ),
) -> None:
    """Validate stock / sales CSV files and load them into the local store.

    Each file is all-or-nothing: one bad row rejects the whole file.
    """
    from rx_forecaster.collaborators.csv_import import parse_sales_csv, parse_stock_csv
    from rx_forecaster.collaborators.parquet_ledger import write_sales_parquet
    from rx_forecaster.db.connection import get_connection
    from rx_forecaster.db.repositories.sales_repo import SalesRepository
    from rx_forecaster.db.repositories.stock_repo import StockRepository
    from rx_forecaster.db.schema import apply_schema

    if not stock_file and not sales_file:
        typer.echo("[ERROR] Pass --stock and/or --sales.", err=True)
        raise typer.Exit(code=1)

    config = _with_db_path(_load_config_or_exit(config_path), db_path)
    _configure_logging(config)

    try:
        snapshots = parse_stock_csv(Path(stock_file)) if stock_file else []
        sales = parse_sales_csv(Path(sales_file)) if sales_file else []
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except ValueError as exc:
        typer.echo(f"[ERROR] CSV parse failed:\n{exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"  Validated {len(snapshots)} stock row(s), {len(sales)} sales row(s).")

    if dry_run:
        typer.echo("[DRY RUN] Nothing written.")
        return

    with get_connection(
        config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)
        StockRepository(conn).upsert_many(snapshots)
        known = {r["item_id"] for r in conn.execute("SELECT item_id FROM items;")}
        orphans = sorted({r.item_id for r in sales} - known)
        if orphans:
            typer.echo(
                f"[ERROR] Sales reference unknown item(s): {orphans[:5]}"
                f"{' ...' if len(orphans) > 5 else ''}. Import their stock first.",
                err=True,
            )
            raise typer.Exit(code=1)
        SalesRepository(conn).insert_many(sales)

    typer.echo(f"  Upserted {len(snapshots)} snapshot(s); appended {len(sales)} sale(s).")

    if parquet_out and sales:
        path = write_sales_parquet(sales, Path(parquet_out))
        typer.echo(f"  Sales ledger Parquet: {path}")

    typer.echo("[OK] Import complete.")


@app.command("forecast")
def forecast(
    owner: str = typer.Option(..., "--owner", help="Owning entity (pharmacy) id."),
    horizon: int = typer.Option(30, "--horizon", help="Horizon in days: 30, 60 or 90."),
    as_of: Optional[str] = typer.Option(
        None, "--as-of", help="Reference date YYYY-MM-DD (default: today, UTC)."
    ),
    source: str = typer.Option(
        "sqlite", "--source", help="Stock / ledger backend: sqlite or hosted."
    ),
    ledger_parquet: Optional[str] = typer.Option(
        None, "--ledger-parquet", help="Read sales history from this Parquet file."
    ),
    export: bool = typer.Option(
        False, "--export", help="Write CSV + JSON reports to data.output_dir."
    ),
    show_risks: bool = typer.Option(
        False, "--show-risks", help="List risk factors under each item."
    ),
    db_path: Optional[str] = typer.Option(
        None, "--db-path", help="Override DB path from config."
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file."
    ),
) -> None:
    """Forecast every stocked item for one owner and print the ranked report."""
    from rx_forecaster.collaborators.base import DataFetchError
    from rx_forecaster.pipeline.forecast import build_forecast_report
    from rx_forecaster.recommendations.reporter import write_forecast_csv, write_report_json
    from rx_forecaster.reporting.formatters import format_forecast_report
    from rx_forecaster.utils.time_utils import VALID_HORIZONS

    if horizon not in VALID_HORIZONS:
        typer.echo(
            f"[ERROR] --horizon must be one of {sorted(VALID_HORIZONS)}, got {horizon}.",
            err=True,
        )
        raise typer.Exit(code=1)

    config = _with_db_path(_load_config_or_exit(config_path), db_path)
    _configure_logging(config)
    run_date = _parse_as_of(as_of)
    stock, ledger = _build_sources(config, source, ledger_parquet)
    profile, market = _resolve_environment(config)

    try:
        report = build_forecast_report(
            owner, horizon, stock, ledger,
            config=config, as_of=run_date, market_provider=market, profile=profile,
        )
    except DataFetchError as exc:
        typer.echo(f"[ERROR] Data fetch failed: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(format_forecast_report(report, show_risks=show_risks))

    if export:
        out_dir = Path(config.data.output_dir) / "forecasts"
        csv_path = write_forecast_csv(report.results, out_dir, owner, report.as_of)
        json_path = write_report_json(report, out_dir)
        typer.echo("")
        typer.echo(f"  CSV:  {csv_path}")
        typer.echo(f"  JSON: {json_path}")

    typer.echo("")
    typer.echo("[OK] Forecast complete.")


@app.command("summary")
def summary(
    owner: str = typer.Option(..., "--owner", help="Owning entity (pharmacy) id."),
    as_of: Optional[str] = typer.Option(
        None, "--as-of", help="Reference date YYYY-MM-DD (default: today, UTC)."
    ),
    source: str = typer.Option(
        "sqlite", "--source", help="Stock / ledger backend: sqlite or hosted."
    ),
    ledger_parquet: Optional[str] = typer.Option(
        None, "--ledger-parquet", help="Read sales history from this Parquet file."
    ),
    db_path: Optional[str] = typer.Option(
        None, "--db-path", help="Override DB path from config."
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file."
    ),
) -> None:
    """Print the 30-day dashboard summary for one owner."""
    from rx_forecaster.collaborators.base import DataFetchError
    from rx_forecaster.pipeline.forecast import quick_summary
    from rx_forecaster.reporting.formatters import format_quick_summary

    config = _with_db_path(_load_config_or_exit(config_path), db_path)
    _configure_logging(config)
    run_date = _parse_as_of(as_of)
    stock, ledger = _build_sources(config, source, ledger_parquet)
    profile, market = _resolve_environment(config)

    try:
        result = quick_summary(
            owner, stock, ledger,
            config=config, as_of=run_date, market_provider=market, profile=profile,
        )
    except DataFetchError as exc:
        typer.echo(f"[ERROR] Data fetch failed: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(format_quick_summary(result, owner))
    typer.echo("")
    typer.echo("[OK] Summary complete.")


@app.command("insights")
def insights(
    owner: str = typer.Option(..., "--owner", help="Owning entity (pharmacy) id."),
    as_of: Optional[str] = typer.Option(
        None, "--as-of", help="Reference date YYYY-MM-DD (default: today, UTC)."
    ),
    source: str = typer.Option(
        "sqlite", "--source", help="Stock / ledger backend: sqlite or hosted."
    ),
    ledger_parquet: Optional[str] = typer.Option(
        None, "--ledger-parquet", help="Read sales history from this Parquet file."
    ),
    db_path: Optional[str] = typer.Option(
        None, "--db-path", help="Override DB path from config."
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file."
    ),
) -> None:
    """Print seasonal alert counts and the items to restock first."""
    from rx_forecaster.collaborators.base import DataFetchError
    from rx_forecaster.pipeline.forecast import quick_seasonal_insights
    from rx_forecaster.reporting.formatters import format_quick_seasonal_insights

    config = _with_db_path(_load_config_or_exit(config_path), db_path)
    _configure_logging(config)
    run_date = _parse_as_of(as_of)
    stock, ledger = _build_sources(config, source, ledger_parquet)
    profile, market = _resolve_environment(config)

    try:
        result = quick_seasonal_insights(
            owner, stock, ledger,
            config=config, as_of=run_date, market_provider=market, profile=profile,
        )
    except DataFetchError as exc:
        typer.echo(f"[ERROR] Data fetch failed: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(format_quick_seasonal_insights(result, owner))
    typer.echo("")
    typer.echo("[OK] Insights complete.")


@app.command("show-profile")
def show_profile(
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file."
    ),
) -> None:
    """Print the active seasonal profile."""
    from rx_forecaster.reporting.formatters import format_profile

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    profile, _ = _resolve_environment(config)
    typer.echo(format_profile(profile))


if __name__ == "__main__":
    app()
