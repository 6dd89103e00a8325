"""Settings loading and validation for the optional YAML config file."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from lighthousectl.core.errors import ConfigError

APP_DIR_NAME = "lighthousectl"
CACHE_FILENAME = "lighthouse_devices.json"
CONFIG_FILENAME = "config.yaml"
LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    scan_timeout_s: float = 5.0
    event_scan_timeout_s: float = 3.0
    inter_device_delay_s: float = 0.5
    connect_timeout_s: float = 10.0
    adapter: str | None = None
    cache_path: Path | None = None

    def resolved_cache_path(self) -> Path:
        return self.cache_path or data_dir() / CACHE_FILENAME


def data_dir() -> Path:
    local_appdata = os.environ.get("LOCALAPPDATA")
    if local_appdata:
        return Path(local_appdata) / APP_DIR_NAME
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_data / APP_DIR_NAME


def config_dir() -> Path:
    appdata = os.environ.get("APPDATA")
    if appdata:
        return Path(appdata) / APP_DIR_NAME
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / APP_DIR_NAME


def _load_schema_validator() -> Any:
    schema_text = resources.files("lighthousectl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at root")
    return loaded


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from `path`, or the default config location.

    An explicit path must exist; the default location is optional.
    """
    explicit = path is not None
    config_path = path if explicit else config_dir() / CONFIG_FILENAME
    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file {config_path} does not exist")
        return Settings()

    doc = _read_yaml(config_path)
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        where = ".".join(str(p) for p in exc.path)
        where = f" ({where})" if where else ""
        raise ConfigError(f"Schema validation failed for {config_path}{where}: {exc.message}") from exc

    LOGGER.debug("Loaded settings from %s", config_path)
    defaults = Settings()
    cache_path = doc.get("cache_path")
    return Settings(
        scan_timeout_s=float(doc.get("scan_timeout_s", defaults.scan_timeout_s)),
        event_scan_timeout_s=float(doc.get("event_scan_timeout_s", defaults.event_scan_timeout_s)),
        inter_device_delay_s=float(doc.get("inter_device_delay_s", defaults.inter_device_delay_s)),
        connect_timeout_s=float(doc.get("connect_timeout_s", defaults.connect_timeout_s)),
        adapter=doc.get("adapter"),
        cache_path=Path(cache_path).expanduser() if cache_path else None,
    )
