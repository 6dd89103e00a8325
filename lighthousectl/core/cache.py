"""Persistent JSON cache of known lighthouses."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path

from lighthousectl.core.errors import CacheIOError
from lighthousectl.core.model import DeviceRecord
from lighthousectl.core.protocol import UNKNOWN_NAME

LOGGER = logging.getLogger(__name__)


def dedupe(records: Iterable[DeviceRecord]) -> list[DeviceRecord]:
    seen: set[str] = set()
    unique: list[DeviceRecord] = []
    for record in records:
        if record.address in seen:
            continue
        seen.add(record.address)
        unique.append(record)
    return unique


class DeviceCache:
    """Whole-file cache; the last successful save wins."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> list[DeviceRecord]:
        if not self.path.exists():
            return []

        LOGGER.debug("Loading device cache from %s", self.path)
        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise CacheIOError(f"Could not read device cache {self.path}: {exc}") from exc

        try:
            loaded = json.loads(content)
        except json.JSONDecodeError as exc:
            raise CacheIOError(f"Invalid JSON in device cache {self.path}: {exc}") from exc

        if not isinstance(loaded, list):
            raise CacheIOError(f"Device cache {self.path} must contain a JSON array")

        records: list[DeviceRecord] = []
        for index, entry in enumerate(loaded):
            if not isinstance(entry, dict) or not isinstance(entry.get("address"), str):
                raise CacheIOError(f"Device cache entry {index} in {self.path} has no address")
            name = entry.get("name")
            records.append(
                DeviceRecord(
                    address=entry["address"],
                    name=name if isinstance(name, str) and name else UNKNOWN_NAME,
                )
            )
        return dedupe(records)

    def save(self, records: Iterable[DeviceRecord]) -> list[DeviceRecord]:
        unique = dedupe(records)
        payload = json.dumps([r.to_dict() for r in unique], indent=2)

        LOGGER.debug("Saving %d devices to %s", len(unique), self.path)
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise CacheIOError(f"Could not write device cache {self.path}: {exc}") from exc
        return unique

    def clear(self) -> None:
        self.save([])
