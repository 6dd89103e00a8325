"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from lighthousectl.core.config import load_settings
from lighthousectl.core.errors import ConfigError
from lighthousectl.core.model import Command, ErrorCode, OperationResult
from lighthousectl.core.service import LighthouseService
from lighthousectl.logging_setup import setup_logging

app = typer.Typer(help="Power control for SteamVR Lighthouse base stations over Bluetooth LE")

JSON_OPTION = typer.Option(False, "--json", help="Print the result as a single JSON object")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Increase log verbosity"),
    log_file: Path | None = typer.Option(None, "--log-file", help="Also write logs to this file"),
    config: Path | None = typer.Option(None, "--config", help="Path to a YAML settings file"),
) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    setup_logging(level=level, log_file=log_file)
    ctx.obj = {"config": config}


def _emit(result: OperationResult, json_mode: bool) -> None:
    if json_mode:
        typer.echo(result.to_json())
    elif result.success:
        typer.echo(result.message)
        for device in result.devices:
            typer.echo(f"  {device.address} {device.name}")
    else:
        typer.echo(f"Error: {result.message}", err=True)


def _finish(result: OperationResult, json_mode: bool) -> None:
    _emit(result, json_mode)
    if result.error_code != ErrorCode.SUCCESS:
        raise typer.Exit(code=int(result.error_code))


def _build_service(ctx: typer.Context, json_mode: bool) -> LighthouseService:
    config_path = (ctx.obj or {}).get("config")
    try:
        service = LighthouseService(settings=load_settings(config_path))
    except ConfigError as exc:
        _emit(OperationResult.failure(str(exc), exc.error_code), json_mode)
        raise typer.Exit(code=int(exc.error_code)) from None

    for warning in getattr(service, "runtime_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


@app.command("devices")
def list_devices(ctx: typer.Context, json_mode: bool = JSON_OPTION) -> None:
    """List cached lighthouses, scanning if none are cached yet."""
    service = _build_service(ctx, json_mode)
    _finish(service.list_cached_devices(scan_if_empty=True, json_mode=json_mode), json_mode)


@app.command("scan")
def scan(ctx: typer.Context, json_mode: bool = JSON_OPTION) -> None:
    """Scan for lighthouses and replace the cache with what was found."""
    service = _build_service(ctx, json_mode)
    _finish(service.scan_and_cache(json_mode=json_mode), json_mode)


@app.command("clear")
def clear(ctx: typer.Context, json_mode: bool = JSON_OPTION) -> None:
    """Forget all cached lighthouses."""
    service = _build_service(ctx, json_mode)
    _finish(service.clear_cache(), json_mode)


@app.command("poweron")
def power_on(ctx: typer.Context, json_mode: bool = JSON_OPTION) -> None:
    """Power on the known lighthouses that are in range."""
    service = _build_service(ctx, json_mode)
    _finish(service.dispatch(Command.POWER_ON, json_mode=json_mode), json_mode)


@app.command("standby")
def standby(ctx: typer.Context, json_mode: bool = JSON_OPTION) -> None:
    """Put the known lighthouses that are in range into standby."""
    service = _build_service(ctx, json_mode)
    _finish(service.dispatch(Command.STANDBY, json_mode=json_mode), json_mode)


@app.command("steamvr-started")
def steamvr_started(ctx: typer.Context, json_mode: bool = JSON_OPTION) -> None:
    """Hook for SteamVR startup: quick scan, then power on every lighthouse found."""
    service = _build_service(ctx, json_mode)
    _finish(service.power_event(Command.POWER_ON, json_mode=json_mode), json_mode)


@app.command("steamvr-stopped")
def steamvr_stopped(ctx: typer.Context, json_mode: bool = JSON_OPTION) -> None:
    """Hook for SteamVR shutdown: quick scan, then put every lighthouse found into standby."""
    service = _build_service(ctx, json_mode)
    _finish(service.power_event(Command.STANDBY, json_mode=json_mode), json_mode)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
