"""Core data models used across the pipeline, service, and CLI."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from lighthousectl.core.protocol import UNKNOWN_NAME


class Command(IntEnum):
    STANDBY = 0x00
    POWER_ON = 0x01

    @property
    def label(self) -> str:
        return "standby" if self is Command.STANDBY else "power on"


class ErrorCode(IntEnum):
    SUCCESS = 0
    GENERAL = 1
    BLUETOOTH = 2
    NO_DEVICES_FOUND = 3
    COMMAND_FAILED = 4
    INTEGRATION = 5


@dataclass(frozen=True)
class DeviceRecord:
    """A known lighthouse. Identity is the address; the name is informational."""

    address: str
    name: str = field(default=UNKNOWN_NAME, compare=False)

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "address": self.address}


@dataclass(frozen=True)
class Peripheral:
    """A device seen during one scan.

    `handle` is the platform object (a bleak `BLEDevice`) and is only valid
    while the scan session that produced it is alive.
    """

    address: str
    name: str = UNKNOWN_NAME
    manufacturer_data: dict[int, bytes] = field(default_factory=dict, compare=False)
    service_uuids: frozenset[str] = field(default_factory=frozenset, compare=False)
    handle: Any = field(default=None, compare=False, repr=False)

    def to_record(self) -> DeviceRecord:
        return DeviceRecord(address=self.address, name=self.name)


@dataclass(frozen=True)
class ScanResult:
    peripherals: tuple[Peripheral, ...] = ()

    def __len__(self) -> int:
        return len(self.peripherals)

    def __iter__(self):
        return iter(self.peripherals)

    def addresses(self) -> set[str]:
        return {p.address for p in self.peripherals}

    def find(self, address: str) -> Peripheral | None:
        for peripheral in self.peripherals:
            if peripheral.address == address:
                return peripheral
        return None


@dataclass(frozen=True)
class BatchOutcome:
    attempted: tuple[Peripheral, ...]
    failed: dict[str, str]

    @property
    def succeeded(self) -> tuple[Peripheral, ...]:
        return tuple(p for p in self.attempted if p.address not in self.failed)


@dataclass(frozen=True)
class OperationResult:
    """Uniform result handed back to every frontend."""

    success: bool
    message: str
    devices: tuple[DeviceRecord, ...] = ()
    error_code: ErrorCode = ErrorCode.SUCCESS

    @classmethod
    def ok(cls, message: str, devices: list[DeviceRecord] | tuple[DeviceRecord, ...] = ()) -> OperationResult:
        return cls(success=True, message=message, devices=tuple(devices), error_code=ErrorCode.SUCCESS)

    @classmethod
    def failure(cls, message: str, error_code: ErrorCode) -> OperationResult:
        return cls(success=False, message=message, devices=(), error_code=error_code)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "devices": [device.to_dict() for device in self.devices],
            "error_code": int(self.error_code),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())
