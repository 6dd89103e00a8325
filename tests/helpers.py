from __future__ import annotations

from types import SimpleNamespace

from bleak.exc import BleakError

from lighthousectl.core.model import Peripheral, ScanResult
from lighthousectl.core.protocol import (
    LIGHTHOUSE_CHAR_UUID,
    LIGHTHOUSE_MANUFACTURER_ID,
    LIGHTHOUSE_SERVICE_UUID,
)


def lighthouse(address: str, name: str | None = None) -> Peripheral:
    return Peripheral(
        address=address,
        name=name or f"LHB-{address[-5:].replace(':', '')}",
        manufacturer_data={LIGHTHOUSE_MANUFACTURER_ID: b"\x02\x15"},
    )


def other_device(address: str, name: str = "Phone") -> Peripheral:
    return Peripheral(address=address, name=name, manufacturer_data={76: b"\x10"})


def scan_of(*peripherals: Peripheral) -> ScanResult:
    return ScanResult(peripherals=tuple(peripherals))


def char(uuid: str, *properties: str) -> SimpleNamespace:
    return SimpleNamespace(uuid=uuid, properties=list(properties))


def service(uuid: str, *characteristics: SimpleNamespace) -> SimpleNamespace:
    return SimpleNamespace(uuid=uuid, characteristics=list(characteristics))


def lighthouse_services() -> list[SimpleNamespace]:
    return [
        service("00001800-0000-1000-8000-00805f9b34fb", char("00002a00-0000-1000-8000-00805f9b34fb", "read")),
        service(
            LIGHTHOUSE_SERVICE_UUID,
            char("00001524-1212-efde-1523-785feabcd124", "read", "write"),
            char(LIGHTHOUSE_CHAR_UUID, "read", "write"),
        ),
    ]


class FakeScanner:
    """Returns queued scan results in order; the last one repeats."""

    def __init__(self, *results: ScanResult | Exception) -> None:
        self.results = list(results)
        self.durations: list[float] = []

    async def scan(self, duration: float) -> ScanResult:
        self.durations.append(duration)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeClient:
    def __init__(self, ble: FakeBLE, address: str) -> None:
        self.ble = ble
        self.address = address
        self.is_connected = False

    @property
    def services(self) -> list[SimpleNamespace]:
        return self.ble.services.get(self.address, lighthouse_services())

    async def connect(self) -> None:
        self.ble.events.append(("connect", self.address))
        if self.address in self.ble.unreachable:
            raise BleakError(f"Device with address {self.address} was not found")
        self.is_connected = True

    async def write_gatt_char(self, characteristic, data: bytes, response: bool = False) -> None:
        self.ble.writes.append((self.address, str(characteristic.uuid), bytes(data), response))
        if self.address in self.ble.write_errors:
            raise BleakError("Write not permitted")

    async def disconnect(self) -> None:
        self.ble.events.append(("disconnect", self.address))
        self.is_connected = False
        if self.address in self.ble.disconnect_errors:
            raise self.ble.disconnect_errors[self.address]


class FakeBLE:
    """Stands in for bleak's BleakClient and records every GATT write."""

    def __init__(self) -> None:
        self.services: dict[str, list[SimpleNamespace]] = {}
        self.unreachable: set[str] = set()
        self.write_errors: set[str] = set()
        self.disconnect_errors: dict[str, Exception] = {}
        self.writes: list[tuple[str, str, bytes, bool]] = []
        self.events: list[tuple[str, str]] = []

    def client_factory(self, target, timeout: float = 10.0) -> FakeClient:
        return FakeClient(self, getattr(target, "address", target))

    def written_addresses(self) -> list[str]:
        return [address for address, _, _, _ in self.writes]
