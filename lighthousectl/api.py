"""Stable public API for building tooling on top of lighthousectl.

This module is the supported integration surface for frontends (GUI, TUI,
SteamVR hooks, scripts). Frontends format the returned `OperationResult`;
they never touch BLE or the cache directly.
"""

from __future__ import annotations

from pathlib import Path

from lighthousectl.ble.dispatcher import CommandDispatcher
from lighthousectl.ble.scanner import Scanner
from lighthousectl.core.config import Settings, load_settings
from lighthousectl.core.errors import (
    AdapterUnavailable,
    CacheIOError,
    CharacteristicNotFound,
    ConfigError,
    DispatchError,
    LighthouseError,
    ScanFailure,
    ScanStartFailure,
    ScanStopFailure,
    WriteFailure,
)
from lighthousectl.core.model import Command, DeviceRecord, ErrorCode, OperationResult
from lighthousectl.core.reporter import ConsoleReporter, Reporter, SilentReporter
from lighthousectl.core.service import LighthouseService

__all__ = [
    "LighthouseError",
    "AdapterUnavailable",
    "CacheIOError",
    "CharacteristicNotFound",
    "ConfigError",
    "DispatchError",
    "ScanFailure",
    "ScanStartFailure",
    "ScanStopFailure",
    "WriteFailure",
    "Command",
    "DeviceRecord",
    "ErrorCode",
    "OperationResult",
    "Reporter",
    "ConsoleReporter",
    "SilentReporter",
    "Settings",
    "Client",
]


class Client:
    """Public client wrapping cache access, discovery and power control."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        config_path: Path | None = None,
        scanner: Scanner | None = None,
        dispatcher: CommandDispatcher | None = None,
    ) -> None:
        if settings is None:
            settings = load_settings(config_path)
        self._service = LighthouseService(settings=settings, scanner=scanner, dispatcher=dispatcher)

    @property
    def runtime_warnings(self) -> tuple[str, ...]:
        return self._service.runtime_warnings

    def list_cached_devices(self) -> OperationResult:
        return self._service.list_cached_devices(json_mode=True)

    def clear_cache(self) -> OperationResult:
        return self._service.clear_cache()

    def scan_and_cache(self) -> OperationResult:
        return self._service.scan_and_cache(json_mode=True)

    def dispatch(self, command: Command) -> OperationResult:
        return self._service.dispatch(command, json_mode=True)

    def power_on(self) -> OperationResult:
        return self._service.power_event(Command.POWER_ON, json_mode=True)

    def standby(self) -> OperationResult:
        return self._service.power_event(Command.STANDBY, json_mode=True)
