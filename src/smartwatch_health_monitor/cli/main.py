"""
Command-line interface for Smartwatch Health Monitor.

Provides commands for loading, merging, syncing and watching smartwatch readings.
"""

import time
from datetime import datetime
from datetime import timezone as dt_timezone
from pathlib import Path
from typing import Any

import typer

from smartwatch_health_monitor.domain.reading import Reading
from smartwatch_health_monitor.infrastructure.firebase_project.registry import ProjectRegistry
from smartwatch_health_monitor.infrastructure.firestore_client.client import FirestoreManager
from smartwatch_health_monitor.infrastructure.fit_client.client import GoogleFitClient
from smartwatch_health_monitor.infrastructure.parsers.csv_parser import CSVReadingLoader
from smartwatch_health_monitor.infrastructure.storage_client.client import CloudStorageManager
from smartwatch_health_monitor.services.environments import EnvironmentSwitcher
from smartwatch_health_monitor.services.mock_generator import MockDataGenerator
from smartwatch_health_monitor.services.output import OutputService
from smartwatch_health_monitor.services.reconciler import ReconciliationService
from smartwatch_health_monitor.services.series import metric_series, to_frame
from smartwatch_health_monitor.utils.exceptions import SmartwatchHealthError
from smartwatch_health_monitor.utils.logging_config import get_logger, setup_logging
from smartwatch_health_monitor.utils.parameters import ParameterLoader
from smartwatch_health_monitor.utils.timezone_utils import (
    millis_to_datetime,
    parse_datetime_to_millis,
)

app = typer.Typer(help="Smartwatch Health Monitor - smartwatch reading ingestion and sync")

logger = get_logger(__name__)

DEFAULT_CONFIG = "config/config.yaml"
DEFAULT_CSV = "data/smartwatch_data.csv"


def init_config(config_path: str = DEFAULT_CONFIG) -> ParameterLoader:
    """
    Initialize configuration and logging.

    Args:
        config_path: Path to configuration file.

    Returns:
        Parameter loader instance.
    """
    param_loader = ParameterLoader(config_path)
    setup_logging(param_loader.get_logging_config(), "smartwatch_health_monitor")
    return param_loader


def activate_environment(
    param_loader: ParameterLoader, env_name: str | None
) -> tuple[ProjectRegistry, str]:
    """
    Build the project registry and activate an environment.

    Args:
        param_loader: Loaded configuration.
        env_name: Environment to activate; the default one if None.

    Returns:
        The registry and the name of the environment now active.
    """
    registry = ProjectRegistry(param_loader.get_environments_config())
    switcher = EnvironmentSwitcher(registry)
    if env_name:
        switcher.select(env_name)
    active = switcher.apply()
    return registry, active


def _event(action: str, **fields: Any) -> dict[str, Any]:
    return {
        "timestamp": datetime.now(dt_timezone.utc).isoformat(),
        "action": action,
        **fields,
    }


def _echo_summary(readings: list[Reading], timezone: str) -> None:
    if not readings:
        typer.echo("No readings")
        return

    first = millis_to_datetime(readings[0].timestamp, timezone)
    last = millis_to_datetime(readings[-1].timestamp, timezone)
    typer.echo(f"{len(readings)} readings from {first.isoformat()} to {last.isoformat()}")

    for series in metric_series(readings).values():
        typer.echo(f"  {series.name}: min={series.min():g} max={series.max():g} mean={series.mean():.1f}")


def _fetch_fit(param_loader: ParameterLoader, start: str | None, end: str | None) -> list[Reading]:
    timezone = param_loader.get_processing_config().timezone
    start_ms = parse_datetime_to_millis(start, timezone) if start else None
    end_ms = parse_datetime_to_millis(end, timezone) if end else None

    fit_client = GoogleFitClient(param_loader.get_fit_config())
    if not fit_client.has_permission():
        raise SmartwatchHealthError("Google Fit permission not granted")
    return fit_client.fetch_readings(start_ms, end_ms)


@app.command()
def environments(
    config_path: str = typer.Option(DEFAULT_CONFIG, help="Path to configuration file"),
) -> None:
    """List the configured Firebase environments."""
    try:
        param_loader = init_config(config_path)
        registry = ProjectRegistry(param_loader.get_environments_config())

        for name in registry.names():
            env = registry.environment(name)
            marker = "*" if name == registry.default_name else " "
            try:
                project = registry.options_for(name).project_id
            except SmartwatchHealthError as e:
                project = f"unavailable ({e})"
            typer.echo(f"{marker} {name}: {env.config_file} -> {project}")

    except SmartwatchHealthError as e:
        logger.error(f"Listing environments failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command()
def load(
    config_path: str = typer.Option(DEFAULT_CONFIG, help="Path to configuration file"),
    csv_file: str = typer.Option(DEFAULT_CSV, "--csv", help="CSV file to load"),
) -> None:
    """
    Load readings from a CSV file.

    Writes the parsed readings to the output directory and prints a summary.
    """
    try:
        param_loader = init_config(config_path)
        processing_config = param_loader.get_processing_config()
        output_service = OutputService(param_loader.get_output_config())

        loader = CSVReadingLoader(param_loader.get_csv_config())
        result = loader.load(Path(csv_file))

        output_service.write_readings(result.readings)
        output_service.write_ingestion_log(
            [_event("load", file=csv_file, records=len(result.readings), skipped=result.skipped)]
        )

        typer.echo(f"Parsed {len(result.readings)} readings ({result.skipped} skipped)")
        _echo_summary(result.readings, processing_config.timezone)

    except SmartwatchHealthError as e:
        logger.error(f"Load failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command("fetch-fit")
def fetch_fit(
    config_path: str = typer.Option(DEFAULT_CONFIG, help="Path to configuration file"),
    start: str | None = typer.Option(None, help="Window start (default: lookback_hours ago)"),
    end: str | None = typer.Option(None, help="Window end (default: now)"),
) -> None:
    """Fetch readings from Google Fit."""
    try:
        param_loader = init_config(config_path)
        readings = _fetch_fit(param_loader, start, end)

        OutputService(param_loader.get_output_config()).write_readings(readings)
        _echo_summary(readings, param_loader.get_processing_config().timezone)

    except SmartwatchHealthError as e:
        logger.error(f"Google Fit fetch failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command()
def sync(
    config_path: str = typer.Option(DEFAULT_CONFIG, help="Path to configuration file"),
    csv_file: str = typer.Option(DEFAULT_CSV, "--csv", help="CSV file to load"),
    env: str | None = typer.Option(None, help="Firebase environment (default from config)"),
    fit: bool = typer.Option(True, help="Merge live Google Fit readings"),
    upload: bool = typer.Option(True, help="Upload the merged readings to Firestore"),
) -> None:
    """
    Merge CSV and Google Fit readings and upload them to Firestore.

    Falls back to CSV-only data when Google Fit is unavailable.
    """
    try:
        param_loader = init_config(config_path)
        processing_config = param_loader.get_processing_config()
        output_service = OutputService(param_loader.get_output_config())
        events: list[dict[str, Any]] = []

        loader = CSVReadingLoader(param_loader.get_csv_config())
        csv_result = loader.load(Path(csv_file))
        events.append(
            _event("load", file=csv_file, records=len(csv_result.readings), skipped=csv_result.skipped)
        )

        fit_readings: list[Reading] = []
        if fit and param_loader.get_fit_config().enabled:
            try:
                fit_readings = _fetch_fit(param_loader, None, None)
                events.append(_event("fetch_fit", status="success", records=len(fit_readings)))
            except SmartwatchHealthError as e:
                logger.warning(f"Google Fit unavailable, using CSV only: {e}")
                typer.echo("Google Fit unavailable - using CSV only")
                events.append(_event("fetch_fit", status="error", error=str(e)))

        merged = ReconciliationService(processing_config).reconcile(
            csv_result.readings, fit_readings
        )
        output_service.write_readings(merged)
        _echo_summary(merged, processing_config.timezone)

        if upload:
            registry, active = activate_environment(param_loader, env)
            manager = FirestoreManager(
                registry.firestore_client(active), param_loader.get_firestore_config()
            )
            written = manager.upload_batch(merged)
            events.append(_event("upload", environment=active, records=written))
            typer.echo(f"Uploaded {written} readings to Firestore ({active})")

        output_service.write_ingestion_log(events)
        output_service.append_snapshot(
            {
                "synced_at": datetime.now(dt_timezone.utc).isoformat(),
                "csv_records": len(csv_result.readings),
                "fit_records": len(fit_readings),
                "merged_records": len(merged),
                "readings": [r.to_map() for r in merged],
            }
        )

    except SmartwatchHealthError as e:
        logger.error(f"Sync failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command()
def pull(
    config_path: str = typer.Option(DEFAULT_CONFIG, help="Path to configuration file"),
    env: str | None = typer.Option(None, help="Firebase environment (default from config)"),
) -> None:
    """Fetch every stored reading from Firestore."""
    try:
        param_loader = init_config(config_path)
        registry, active = activate_environment(param_loader, env)

        manager = FirestoreManager(
            registry.firestore_client(active), param_loader.get_firestore_config()
        )
        readings = manager.fetch_all()

        OutputService(param_loader.get_output_config()).write_readings(readings)
        typer.echo(f"Source: Firestore {active} ({len(readings)})")
        _echo_summary(readings, param_loader.get_processing_config().timezone)

    except SmartwatchHealthError as e:
        logger.error(f"Pull failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command()
def watch(
    config_path: str = typer.Option(DEFAULT_CONFIG, help="Path to configuration file"),
    env: str | None = typer.Option(None, help="Firebase environment (default from config)"),
) -> None:
    """
    Follow live changes of the Firestore readings collection.

    Runs until interrupted with Ctrl+C.
    """
    try:
        param_loader = init_config(config_path)
        registry, active = activate_environment(param_loader, env)
        manager = FirestoreManager(
            registry.firestore_client(active), param_loader.get_firestore_config()
        )

        def on_update(added: list[Reading], modified: list[Reading], removed: list[Reading]) -> None:
            typer.echo(f"added={len(added)} modified={len(modified)} removed={len(removed)}")

        def on_error(error: Exception) -> None:
            typer.echo(f"Realtime error: {error}", err=True)

        with manager.start_realtime_listener(on_update, on_error):
            typer.echo(f"Realtime sync started on {active} (Ctrl+C to stop)")
            try:
                while True:
                    time.sleep(1.0)
            except KeyboardInterrupt:
                typer.echo("Stopping realtime sync")

    except SmartwatchHealthError as e:
        logger.error(f"Watch failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command()
def generate(
    output_file: str = typer.Option(DEFAULT_CSV, "--output", help="CSV file to write"),
    count: int = typer.Option(60, min=1, help="Number of readings"),
    seed: int | None = typer.Option(None, help="Random seed"),
) -> None:
    """Generate a CSV file of mock readings, one minute apart."""
    readings = MockDataGenerator(seed).generate_batch(count)
    readings.reverse()

    path = Path(output_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    to_frame(readings).to_csv(path, index=False, encoding="utf-8")

    typer.echo(f"Wrote {len(readings)} mock readings to {path}")


@app.command()
def upload(
    file: str = typer.Argument(..., help="Local file to upload"),
    config_path: str = typer.Option(DEFAULT_CONFIG, help="Path to configuration file"),
    env: str | None = typer.Option(None, help="Firebase environment (default from config)"),
    remote_path: str | None = typer.Option(None, help="Object name (default: prefix/file name)"),
    force: bool = typer.Option(False, help="Upload even if the checksum matches"),
) -> None:
    """Upload a file to the environment's Cloud Storage bucket."""
    try:
        param_loader = init_config(config_path)
        storage_config = param_loader.get_storage_config()
        registry, active = activate_environment(param_loader, env)

        file_path = Path(file)
        target = remote_path or f"{storage_config.remote_prefix}/{file_path.name}"

        manager = CloudStorageManager(registry.storage_bucket(active), storage_config)
        url = manager.upload_file(file_path, target, force=force)

        typer.echo(f"Uploaded {file_path.name} to {active}: {url}")

    except SmartwatchHealthError as e:
        logger.error(f"Upload failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
