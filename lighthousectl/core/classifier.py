"""Lighthouse identification from advertisement data."""

from __future__ import annotations

from collections.abc import Iterable

from lighthousectl.core.model import DeviceRecord, Peripheral, ScanResult
from lighthousectl.core.protocol import LHB_PREFIX, LIGHTHOUSE_MANUFACTURER_ID


def is_lighthouse(peripheral: Peripheral) -> bool:
    """True iff the name carries the LHB prefix and manufacturer id 1373 is advertised."""
    name_match = peripheral.name.startswith(LHB_PREFIX)
    manufacturer_match = LIGHTHOUSE_MANUFACTURER_ID in peripheral.manufacturer_data
    return name_match and manufacturer_match


def classify(scan: ScanResult) -> list[Peripheral]:
    seen: set[str] = set()
    lighthouses: list[Peripheral] = []
    for peripheral in scan:
        if peripheral.address in seen or not is_lighthouse(peripheral):
            continue
        seen.add(peripheral.address)
        lighthouses.append(peripheral)
    return lighthouses


def to_records(peripherals: Iterable[Peripheral]) -> list[DeviceRecord]:
    return [p.to_record() for p in peripherals]
