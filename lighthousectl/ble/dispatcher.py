"""GATT command dispatch to lighthouses."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

from bleak import BleakClient
from bleak.exc import BleakError

from lighthousectl.core.errors import CharacteristicNotFound, DispatchError, WriteFailure
from lighthousectl.core.model import BatchOutcome, Command, Peripheral
from lighthousectl.core.protocol import LIGHTHOUSE_CHAR_UUID, LIGHTHOUSE_SERVICE_UUID, WRITE_PROPERTIES
from lighthousectl.core.reporter import Reporter, SilentReporter

LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[..., Any]


def select_characteristic(services: Iterable[Any]) -> Any | None:
    """Pick the power characteristic, falling back to the first writable one."""
    fallback: Any = None
    for service in services:
        service_uuid = str(service.uuid).lower()
        for characteristic in service.characteristics:
            char_uuid = str(characteristic.uuid).lower()
            if service_uuid == LIGHTHOUSE_SERVICE_UUID and char_uuid == LIGHTHOUSE_CHAR_UUID:
                return characteristic
            if fallback is None and WRITE_PROPERTIES.intersection(characteristic.properties):
                fallback = characteristic
    return fallback


class CommandDispatcher:
    def __init__(
        self,
        *,
        inter_device_delay_s: float = 0.5,
        connect_timeout_s: float = 10.0,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.inter_device_delay_s = inter_device_delay_s
        self.connect_timeout_s = connect_timeout_s
        self._client_factory = client_factory or BleakClient

    async def send(
        self,
        peripheral: Peripheral,
        command: Command,
        reporter: Reporter | None = None,
    ) -> None:
        reporter = reporter or SilentReporter()
        target = peripheral.handle if peripheral.handle is not None else peripheral.address
        client = self._client_factory(target, timeout=self.connect_timeout_s)
        try:
            await self._connect(client, peripheral, reporter)
            await self._write(client, peripheral, command, reporter)
        finally:
            try:
                await client.disconnect()
                reporter.info(f"Disconnected from {peripheral.name}")
            except (BleakError, OSError, asyncio.TimeoutError) as exc:
                LOGGER.warning("Disconnect from %s failed: %s", peripheral.address, exc)

    async def _connect(self, client: Any, peripheral: Peripheral, reporter: Reporter) -> None:
        reporter.info(f"Connecting to {peripheral.name}...")
        if client.is_connected:
            reporter.info(f"Already connected to {peripheral.name}")
            return
        try:
            await client.connect()
        except (BleakError, OSError, asyncio.TimeoutError) as exc:
            raise WriteFailure(f"Could not connect to {peripheral.address}: {exc}") from exc
        reporter.info(f"Connected to {peripheral.name}")

    async def _write(self, client: Any, peripheral: Peripheral, command: Command, reporter: Reporter) -> None:
        try:
            services = list(client.services)
        except BleakError as exc:
            raise WriteFailure(f"Service discovery on {peripheral.address} failed: {exc}") from exc
        LOGGER.debug("Found %d services on %s", len(services), peripheral.address)

        characteristic = select_characteristic(services)
        if characteristic is None:
            raise CharacteristicNotFound(
                f"Could not find a writable characteristic on {peripheral.name} ({peripheral.address})"
            )
        LOGGER.debug("Writing %#04x to %s on %s", command.value, characteristic.uuid, peripheral.address)

        reporter.info(f"Sending {command.label} command to {peripheral.name}...")
        try:
            await client.write_gatt_char(characteristic, bytes([command.value]), response=False)
        except (BleakError, OSError, asyncio.TimeoutError) as exc:
            raise WriteFailure(f"Write to {peripheral.address} failed: {exc}") from exc
        reporter.info(f"{command.label.capitalize()} command sent to {peripheral.name}")

    async def send_batch(
        self,
        peripherals: Iterable[Peripheral],
        command: Command,
        reporter: Reporter | None = None,
    ) -> BatchOutcome:
        """Send `command` to each peripheral in order, one connection at a time.

        A failing device is logged and recorded; the rest of the batch still runs.
        """
        reporter = reporter or SilentReporter()
        targets = tuple(peripherals)
        failed: dict[str, str] = {}

        reporter.info(f"Sending {command.label} command to {len(targets)} Lighthouse devices...")
        for index, peripheral in enumerate(targets):
            reporter.info(f"Processing device {index + 1} of {len(targets)}...")
            try:
                await self.send(peripheral, command, reporter)
            except DispatchError as exc:
                failed[peripheral.address] = str(exc)
                LOGGER.warning("Failed to send %s to %s: %s", command.label, peripheral.address, exc)
                reporter.error(f"Failed to send {command.label} command to device {index + 1}: {exc}")
            except Exception as exc:
                failed[peripheral.address] = f"Unexpected error talking to {peripheral.address}: {exc!r}"
                LOGGER.warning("Failed to send %s to %s", command.label, peripheral.address, exc_info=exc)
                reporter.error(f"Failed to send {command.label} command to device {index + 1}: {exc!r}")

            if index < len(targets) - 1:
                await asyncio.sleep(self.inter_device_delay_s)

        reporter.info(f"{command.label.capitalize()} operation completed")
        return BatchOutcome(attempted=targets, failed=failed)
