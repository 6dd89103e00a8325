"""Service layer used by the CLI and any other frontend."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Coroutine
from typing import Any

from bleak.exc import BleakError

from lighthousectl.ble.adapter import AdapterManager
from lighthousectl.ble.dispatcher import CommandDispatcher
from lighthousectl.ble.scanner import Scanner
from lighthousectl.core.cache import DeviceCache
from lighthousectl.core.config import Settings, load_settings
from lighthousectl.core.errors import CacheIOError, LighthouseError
from lighthousectl.core.model import Command, ErrorCode, OperationResult
from lighthousectl.core.reconcile import ReconciliationEngine
from lighthousectl.core.reporter import Reporter, reporter_for

LOGGER = logging.getLogger(__name__)


class LighthouseService:
    """Caller-facing operations. Every method returns an `OperationResult` and never raises pipeline errors."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        cache: DeviceCache | None = None,
        scanner: Scanner | None = None,
        dispatcher: CommandDispatcher | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.runtime_warnings = _runtime_warnings(self.settings)
        self.cache = cache or DeviceCache(self.settings.resolved_cache_path())
        self.scanner = scanner or Scanner(AdapterManager(adapter=self.settings.adapter))
        self.dispatcher = dispatcher or CommandDispatcher(
            inter_device_delay_s=self.settings.inter_device_delay_s,
            connect_timeout_s=self.settings.connect_timeout_s,
        )
        self.engine = ReconciliationEngine(
            self.cache,
            self.scanner,
            self.dispatcher,
            scan_timeout_s=self.settings.scan_timeout_s,
            event_scan_timeout_s=self.settings.event_scan_timeout_s,
        )

    def list_cached_devices(
        self,
        *,
        scan_if_empty: bool = False,
        json_mode: bool = False,
        reporter: Reporter | None = None,
    ) -> OperationResult:
        reporter = reporter or reporter_for(json_mode)
        try:
            devices = self.cache.load()
        except CacheIOError as exc:
            return _failure("Failed to load device cache", exc)

        if devices:
            reporter.info(f"Found {len(devices)} cached devices")
            return OperationResult.ok("Successfully retrieved device information", devices)
        if not scan_if_empty:
            return OperationResult.ok("No cached devices", [])

        reporter.info("No cached devices found. Performing a scan...")
        return self.scan_and_cache(reporter=reporter)

    def clear_cache(self) -> OperationResult:
        try:
            self.cache.clear()
        except CacheIOError as exc:
            return _failure("Failed to clear device cache", exc)
        return OperationResult.ok("Cleared all saved devices", [])

    def scan_and_cache(
        self,
        *,
        json_mode: bool = False,
        reporter: Reporter | None = None,
    ) -> OperationResult:
        reporter = reporter or reporter_for(json_mode)
        return _run(self.engine.scan_and_cache(reporter), "Failed to scan for devices")

    def dispatch(
        self,
        command: Command,
        *,
        json_mode: bool = False,
        reporter: Reporter | None = None,
    ) -> OperationResult:
        """Reconcile the cache with a live scan and send `command` to the result."""
        reporter = reporter or reporter_for(json_mode)
        return _run(
            self.engine.resolve_and_dispatch(command, reporter),
            f"Failed to send {command.label} command",
        )

    def power_event(
        self,
        command: Command,
        *,
        json_mode: bool = False,
        reporter: Reporter | None = None,
    ) -> OperationResult:
        reporter = reporter or reporter_for(json_mode)
        action = "power on lighthouses" if command is Command.POWER_ON else "put lighthouses in standby"
        return _run(
            self.engine.power_event(command, reporter),
            f"Failed to {action}",
            error_code=ErrorCode.COMMAND_FAILED,
        )


def _failure(prefix: str, exc: LighthouseError, error_code: ErrorCode | None = None) -> OperationResult:
    LOGGER.debug("%s", prefix, exc_info=exc)
    return OperationResult.failure(f"{prefix}: {exc}", error_code or exc.error_code)


def _run(
    operation: Coroutine[Any, Any, OperationResult],
    failure_prefix: str,
    *,
    error_code: ErrorCode | None = None,
) -> OperationResult:
    try:
        return asyncio.run(operation)
    except LighthouseError as exc:
        return _failure(failure_prefix, exc, error_code)
    except BleakError as exc:
        LOGGER.debug("%s", failure_prefix, exc_info=exc)
        return OperationResult.failure(f"{failure_prefix}: {exc}", error_code or ErrorCode.BLUETOOTH)


def _runtime_warnings(settings: Settings) -> tuple[str, ...]:
    warnings: list[str] = []
    if settings.adapter and not sys.platform.startswith("linux"):
        warnings.append(
            f"Adapter '{settings.adapter}' is ignored: adapter selection is only supported on Linux (BlueZ)."
        )
    return tuple(warnings)
