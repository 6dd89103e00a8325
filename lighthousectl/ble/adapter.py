"""Access to the host BLE adapter through bleak."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from bleak import BleakScanner
from bleak.exc import BleakError

from lighthousectl.core.errors import AdapterUnavailable, ScanStartFailure, ScanStopFailure
from lighthousectl.core.model import Peripheral
from lighthousectl.core.protocol import UNKNOWN_NAME

_NO_ADAPTER_RE = re.compile(
    r"no bluetooth adapter|adapter .*not found|bluetooth .*(turned off|powered off|not available|unavailable)",
    re.IGNORECASE,
)
LOGGER = logging.getLogger(__name__)

ScannerFactory = Callable[..., Any]


def _is_adapter_missing(exc: BaseException) -> bool:
    return bool(_NO_ADAPTER_RE.search(str(exc)))


def to_peripheral(device: Any, adv: Any) -> Peripheral:
    """Build a `Peripheral` from a bleak `BLEDevice` and its `AdvertisementData`."""
    name = getattr(adv, "local_name", None) or getattr(device, "name", None) or UNKNOWN_NAME
    manufacturer_data = {
        int(company_id): bytes(data)
        for company_id, data in (getattr(adv, "manufacturer_data", None) or {}).items()
    }
    service_uuids = frozenset(u.lower() for u in (getattr(adv, "service_uuids", None) or ()))
    return Peripheral(
        address=str(device.address).upper(),
        name=name,
        manufacturer_data=manufacturer_data,
        service_uuids=service_uuids,
        handle=device,
    )


class AdapterManager:
    def __init__(
        self,
        *,
        adapter: str | None = None,
        scanner_factory: ScannerFactory | None = None,
    ) -> None:
        self.adapter = adapter
        self._scanner_factory = scanner_factory or BleakScanner

    def open_scanner(self) -> Any:
        kwargs: dict[str, Any] = {}
        if self.adapter:
            kwargs["adapter"] = self.adapter
        try:
            return self._scanner_factory(**kwargs)
        except (BleakError, OSError) as exc:
            raise AdapterUnavailable(f"No usable Bluetooth adapter: {exc}") from exc

    async def start(self, scanner: Any) -> None:
        try:
            await scanner.start()
        except BleakError as exc:
            if _is_adapter_missing(exc):
                raise AdapterUnavailable(f"No usable Bluetooth adapter: {exc}") from exc
            raise ScanStartFailure(f"Failed to start Bluetooth scan: {exc}") from exc
        except OSError as exc:
            raise AdapterUnavailable(f"No usable Bluetooth adapter: {exc}") from exc
        LOGGER.debug("Scanning started on adapter %s", self.adapter or "<default>")

    async def stop(self, scanner: Any) -> None:
        try:
            await scanner.stop()
        except (BleakError, OSError) as exc:
            raise ScanStopFailure(f"Failed to stop Bluetooth scan: {exc}") from exc
        LOGGER.debug("Scanning stopped")

    def peripherals(self, scanner: Any) -> list[Peripheral]:
        """All devices the adapter has seen since scanning started."""
        seen = scanner.discovered_devices_and_advertisement_data
        return [to_peripheral(device, adv) for device, adv in seen.values()]
