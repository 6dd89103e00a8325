from __future__ import annotations

import asyncio

import pytest

from lighthousectl.ble.dispatcher import CommandDispatcher, select_characteristic
from lighthousectl.core.errors import CharacteristicNotFound, WriteFailure
from lighthousectl.core.model import Command
from lighthousectl.core.protocol import LIGHTHOUSE_CHAR_UUID

from helpers import FakeBLE, char, lighthouse, service


def _dispatcher(ble: FakeBLE) -> CommandDispatcher:
    return CommandDispatcher(inter_device_delay_s=0, client_factory=ble.client_factory)


def test_send_writes_command_byte_without_response() -> None:
    ble = FakeBLE()

    asyncio.run(_dispatcher(ble).send(lighthouse("AA:BB:CC:DD:B9:1A"), Command.POWER_ON))

    assert ble.writes == [("AA:BB:CC:DD:B9:1A", LIGHTHOUSE_CHAR_UUID, b"\x01", False)]
    assert ble.events == [("connect", "AA:BB:CC:DD:B9:1A"), ("disconnect", "AA:BB:CC:DD:B9:1A")]


def test_standby_sends_zero_byte() -> None:
    ble = FakeBLE()
    asyncio.run(_dispatcher(ble).send(lighthouse("AA:BB"), Command.STANDBY))
    assert ble.writes[0][2] == b"\x00"


def test_exact_characteristic_wins_over_earlier_writable_one() -> None:
    services = [
        service("0000fe59-0000-1000-8000-00805f9b34fb", char("8ec90003-f315-4f60-9fb8-838830daea50", "write")),
        service(
            "00001523-1212-EFDE-1523-785FEABCD124",
            char("00001525-1212-EFDE-1523-785FEABCD124", "write"),
        ),
    ]
    picked = select_characteristic(services)
    assert picked.uuid == "00001525-1212-EFDE-1523-785FEABCD124"


def test_falls_back_to_first_writable_characteristic() -> None:
    ble = FakeBLE()
    ble.services["AA:BB"] = [
        service("0000180a-0000-1000-8000-00805f9b34fb", char("00002a29-0000-1000-8000-00805f9b34fb", "read")),
        service(
            "0000fff0-0000-1000-8000-00805f9b34fb",
            char("0000fff1-0000-1000-8000-00805f9b34fb", "notify"),
            char("0000fff2-0000-1000-8000-00805f9b34fb", "write-without-response"),
            char("0000fff3-0000-1000-8000-00805f9b34fb", "write"),
        ),
    ]

    asyncio.run(_dispatcher(ble).send(lighthouse("AA:BB"), Command.POWER_ON))

    assert ble.writes == [("AA:BB", "0000fff2-0000-1000-8000-00805f9b34fb", b"\x01", False)]


def test_no_writable_characteristic_raises_and_disconnects() -> None:
    ble = FakeBLE()
    ble.services["AA:BB"] = [
        service("0000180a-0000-1000-8000-00805f9b34fb", char("00002a29-0000-1000-8000-00805f9b34fb", "read")),
    ]

    with pytest.raises(CharacteristicNotFound):
        asyncio.run(_dispatcher(ble).send(lighthouse("AA:BB"), Command.POWER_ON))

    assert ble.writes == []
    assert ble.events[-1] == ("disconnect", "AA:BB")


def test_connect_failure_raises_write_failure() -> None:
    ble = FakeBLE()
    ble.unreachable.add("AA:BB")
    with pytest.raises(WriteFailure):
        asyncio.run(_dispatcher(ble).send(lighthouse("AA:BB"), Command.POWER_ON))


def test_batch_continues_after_failed_device() -> None:
    ble = FakeBLE()
    ble.write_errors.add("00:00:00:00:00:02")
    devices = [lighthouse(f"00:00:00:00:00:0{i}") for i in (1, 2, 3)]

    outcome = asyncio.run(_dispatcher(ble).send_batch(devices, Command.POWER_ON))

    assert ble.written_addresses() == ["00:00:00:00:00:01", "00:00:00:00:00:02", "00:00:00:00:00:03"]
    assert [p.address for p in outcome.attempted] == ble.written_addresses()
    assert list(outcome.failed) == ["00:00:00:00:00:02"]
    assert [p.address for p in outcome.succeeded] == ["00:00:00:00:00:01", "00:00:00:00:00:03"]


def test_batch_holds_one_connection_at_a_time() -> None:
    ble = FakeBLE()
    ble.unreachable.add("00:00:00:00:00:01")
    devices = [lighthouse("00:00:00:00:00:01"), lighthouse("00:00:00:00:00:02")]

    asyncio.run(_dispatcher(ble).send_batch(devices, Command.STANDBY))

    assert ble.events == [
        ("connect", "00:00:00:00:00:01"),
        ("disconnect", "00:00:00:00:00:01"),
        ("connect", "00:00:00:00:00:02"),
        ("disconnect", "00:00:00:00:00:02"),
    ]


def test_batch_pauses_between_devices_only(monkeypatch: pytest.MonkeyPatch) -> None:
    pauses: list[float] = []
    real_sleep = asyncio.sleep

    async def fake_sleep(delay: float) -> None:
        pauses.append(delay)
        await real_sleep(0)

    monkeypatch.setattr("lighthousectl.ble.dispatcher.asyncio.sleep", fake_sleep)
    ble = FakeBLE()
    dispatcher = CommandDispatcher(inter_device_delay_s=0.5, client_factory=ble.client_factory)
    devices = [lighthouse(f"00:00:00:00:00:0{i}") for i in (1, 2, 3)]

    asyncio.run(dispatcher.send_batch(devices, Command.POWER_ON))

    assert pauses == [0.5, 0.5]


def test_batch_survives_unexpected_error_from_one_device() -> None:
    ble = FakeBLE()
    ble.disconnect_errors["00:00:00:00:00:02"] = EOFError("bus connection lost")
    devices = [lighthouse(f"00:00:00:00:00:0{i}") for i in (1, 2, 3)]

    outcome = asyncio.run(_dispatcher(ble).send_batch(devices, Command.POWER_ON))

    assert ble.written_addresses() == ["00:00:00:00:00:01", "00:00:00:00:00:02", "00:00:00:00:00:03"]
    assert list(outcome.failed) == ["00:00:00:00:00:02"]
    assert "bus connection lost" in outcome.failed["00:00:00:00:00:02"]
    assert [p.address for p in outcome.succeeded] == ["00:00:00:00:00:01", "00:00:00:00:00:03"]


def test_disconnect_timeout_is_only_logged() -> None:
    ble = FakeBLE()
    ble.disconnect_errors["AA:BB"] = asyncio.TimeoutError()

    asyncio.run(_dispatcher(ble).send(lighthouse("AA:BB"), Command.POWER_ON))

    assert ble.written_addresses() == ["AA:BB"]
