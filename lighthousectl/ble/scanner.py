"""Timed discovery sweep."""

from __future__ import annotations

import asyncio
import logging

from lighthousectl.ble.adapter import AdapterManager
from lighthousectl.core.errors import ScanStopFailure
from lighthousectl.core.model import ScanResult

LOGGER = logging.getLogger(__name__)


class Scanner:
    def __init__(self, adapters: AdapterManager | None = None) -> None:
        self.adapters = adapters or AdapterManager()

    async def scan(self, duration: float) -> ScanResult:
        """Scan for `duration` seconds and return every peripheral the adapter knows about.

        Raises `AdapterUnavailable` or `ScanStartFailure` if scanning cannot start.
        A failure to stop scanning is only logged.
        """
        scanner = self.adapters.open_scanner()
        await self.adapters.start(scanner)
        try:
            await asyncio.sleep(duration)
            peripherals = self.adapters.peripherals(scanner)
        finally:
            try:
                await self.adapters.stop(scanner)
            except ScanStopFailure as exc:
                LOGGER.warning("%s", exc)

        LOGGER.info("Scan finished after %.1fs: %d devices visible", duration, len(peripherals))
        return ScanResult(peripherals=tuple(peripherals))
