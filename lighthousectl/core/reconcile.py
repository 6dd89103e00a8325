"""Cache/scan reconciliation ahead of command dispatch.

The cache is a hint. Every dispatch path confirms with a live scan which
devices are actually on the air before anything is written.

    LOAD_CACHE          empty -> FRESH_SCAN, otherwise -> CACHED_SCAN
    FRESH_SCAN          lighthouses found -> DISPATCH, otherwise -> DONE
    CACHED_SCAN         cached and visible -> DISPATCH, otherwise -> EMPTY_INTERSECTION
    EMPTY_INTERSECTION  operator accepts a rescan -> FRESH_SCAN, otherwise -> DONE
    DISPATCH            -> DONE

Adapter and scan-start errors propagate to the caller untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum, auto

from lighthousectl.ble.dispatcher import CommandDispatcher
from lighthousectl.ble.scanner import Scanner
from lighthousectl.core.cache import DeviceCache
from lighthousectl.core.classifier import classify, to_records
from lighthousectl.core.errors import CacheIOError
from lighthousectl.core.model import (
    Command,
    DeviceRecord,
    ErrorCode,
    OperationResult,
    Peripheral,
    ScanResult,
)
from lighthousectl.core.protocol import UNKNOWN_NAME
from lighthousectl.core.reporter import Reporter

LOGGER = logging.getLogger(__name__)


class State(Enum):
    LOAD_CACHE = auto()
    FRESH_SCAN = auto()
    CACHED_SCAN = auto()
    EMPTY_INTERSECTION = auto()
    DISPATCH = auto()
    DONE = auto()


@dataclass
class _Run:
    command: Command
    reporter: Reporter
    scan_timeout_s: float
    cached: list[DeviceRecord] = field(default_factory=list)
    targets: list[Peripheral] = field(default_factory=list)
    result: OperationResult | None = None


class ReconciliationEngine:
    def __init__(
        self,
        cache: DeviceCache,
        scanner: Scanner,
        dispatcher: CommandDispatcher,
        *,
        scan_timeout_s: float = 5.0,
        event_scan_timeout_s: float = 3.0,
    ) -> None:
        self.cache = cache
        self.scanner = scanner
        self.dispatcher = dispatcher
        self.scan_timeout_s = scan_timeout_s
        self.event_scan_timeout_s = event_scan_timeout_s
        self._handlers: dict[State, Callable[[_Run], Awaitable[State]]] = {
            State.LOAD_CACHE: self._load_cache,
            State.FRESH_SCAN: self._fresh_scan,
            State.CACHED_SCAN: self._cached_scan,
            State.EMPTY_INTERSECTION: self._empty_intersection,
            State.DISPATCH: self._dispatch,
        }

    async def resolve_and_dispatch(self, command: Command, reporter: Reporter) -> OperationResult:
        """Send `command` to known lighthouses that are currently visible."""
        run = _Run(command=command, reporter=reporter, scan_timeout_s=self.scan_timeout_s)
        return await self._drive(run, State.LOAD_CACHE)

    async def power_event(self, command: Command, reporter: Reporter) -> OperationResult:
        """Short fresh scan and dispatch, used by SteamVR start/stop hooks."""
        run = _Run(command=command, reporter=reporter, scan_timeout_s=self.event_scan_timeout_s)
        return await self._drive(run, State.FRESH_SCAN)

    async def scan_and_cache(self, reporter: Reporter) -> OperationResult:
        reporter.info("Scanning for Bluetooth devices...")
        scan = await self.scanner.scan(self.scan_timeout_s)
        lighthouses = self._discover(scan, reporter)
        reporter.info("Scanning completed")
        if not lighthouses:
            return OperationResult.ok("No Lighthouse base stations found", [])
        return OperationResult.ok(
            "Successfully scanned and saved device information",
            to_records(lighthouses),
        )

    async def _drive(self, run: _Run, state: State) -> OperationResult:
        while state is not State.DONE:
            LOGGER.debug("Reconciliation state %s", state.name)
            state = await self._handlers[state](run)
        assert run.result is not None
        return run.result

    async def _load_cache(self, run: _Run) -> State:
        try:
            run.cached = self.cache.load()
        except CacheIOError as exc:
            LOGGER.warning("Ignoring unreadable device cache: %s", exc)
            run.reporter.error(f"Failed to load known devices: {exc}")
            run.cached = []

        if not run.cached:
            run.reporter.info("No known devices found. Performing a scan automatically...")
            return State.FRESH_SCAN

        run.reporter.info(f"Found {len(run.cached)} known Lighthouse devices:")
        for index, record in enumerate(run.cached, start=1):
            run.reporter.info(f"Known device {index}: {record.name} ({record.address})")
        return State.CACHED_SCAN

    async def _fresh_scan(self, run: _Run) -> State:
        run.reporter.info("Scanning for Lighthouse devices...")
        scan = await self.scanner.scan(run.scan_timeout_s)
        run.targets = self._discover(scan, run.reporter)
        if not run.targets:
            run.result = OperationResult.failure(
                "No Lighthouse base stations found",
                ErrorCode.NO_DEVICES_FOUND,
            )
            return State.DONE
        return State.DISPATCH

    async def _cached_scan(self, run: _Run) -> State:
        run.reporter.info("Scanning for known devices...")
        scan = await self.scanner.scan(run.scan_timeout_s)
        known = {record.address.upper() for record in run.cached}
        seen: set[str] = set()
        for peripheral in scan:
            if peripheral.address in known and peripheral.address not in seen:
                seen.add(peripheral.address)
                run.targets.append(peripheral)

        if not run.targets:
            return State.EMPTY_INTERSECTION

        run.reporter.info(
            f"Found {len(run.targets)} of {len(run.cached)} known devices in the current scan"
        )
        return State.DISPATCH

    async def _empty_intersection(self, run: _Run) -> State:
        run.reporter.info("None of the cached devices were found in the current scan.")
        if not run.reporter.interactive:
            run.result = OperationResult.failure(
                "No cached devices found in the current scan",
                ErrorCode.NO_DEVICES_FOUND,
            )
            return State.DONE

        if run.reporter.confirm("Would you like to perform a new scan to find devices?"):
            run.reporter.info("Performing a new scan...")
            return State.FRESH_SCAN

        run.reporter.info("Exiting without performing a new scan.")
        run.result = OperationResult.failure(
            "User chose not to perform a new scan",
            ErrorCode.NO_DEVICES_FOUND,
        )
        return State.DONE

    async def _dispatch(self, run: _Run) -> State:
        outcome = await self.dispatcher.send_batch(run.targets, run.command, run.reporter)
        names = {record.address.upper(): record.name for record in run.cached}
        devices = [_record_for(p, names) for p in outcome.attempted]

        message = f"Successfully sent {run.command.label} command to {len(devices)} devices"
        if outcome.failed:
            LOGGER.warning(
                "%d of %d devices did not acknowledge %s",
                len(outcome.failed),
                len(devices),
                run.command.label,
            )
            message += f" ({len(outcome.failed)} failed)"
        run.result = OperationResult.ok(message, devices)
        return State.DONE

    def _discover(self, scan: ScanResult, reporter: Reporter) -> list[Peripheral]:
        """Classify a scan and persist the lighthouses it contains."""
        reporter.info(f"Found {len(scan)} devices")
        lighthouses = classify(scan)
        if not lighthouses:
            reporter.info("No Lighthouse Base Stations found")
            return []

        reporter.info(f"Found {len(lighthouses)} Lighthouse Base Stations:")
        for index, peripheral in enumerate(lighthouses, start=1):
            reporter.info(f"Lighthouse {index}: {peripheral.name} ({peripheral.address})")

        try:
            self.cache.save(to_records(lighthouses))
        except CacheIOError as exc:
            LOGGER.warning("%s", exc)
            reporter.error(f"Failed to save device information: {exc}")
        else:
            reporter.info("Successfully saved device information to config file")
        return lighthouses


def _record_for(peripheral: Peripheral, cached_names: dict[str, str]) -> DeviceRecord:
    name = peripheral.name
    if name == UNKNOWN_NAME:
        name = cached_names.get(peripheral.address, UNKNOWN_NAME)
    return DeviceRecord(address=peripheral.address, name=name)
