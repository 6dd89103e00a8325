"""Domain-specific errors for lighthousectl."""

from __future__ import annotations

from lighthousectl.core.model import ErrorCode


class LighthouseError(Exception):
    """Base error for lighthousectl."""

    error_code: ErrorCode = ErrorCode.GENERAL


class ConfigError(LighthouseError):
    """Raised when the settings file cannot be read or fails validation."""


class CacheIOError(LighthouseError):
    """Raised when the device cache cannot be read, parsed or written."""


class AdapterUnavailable(LighthouseError):
    """Raised when no usable Bluetooth adapter is present."""

    error_code = ErrorCode.BLUETOOTH


class ScanFailure(LighthouseError):
    """Base error for scan start/stop failures."""

    error_code = ErrorCode.BLUETOOTH


class ScanStartFailure(ScanFailure):
    """Raised when the platform refuses to start scanning."""


class ScanStopFailure(ScanFailure):
    """Raised when the platform fails to stop scanning."""


class DispatchError(LighthouseError):
    """Base error for per-device command dispatch."""

    error_code = ErrorCode.COMMAND_FAILED


class CharacteristicNotFound(DispatchError):
    """Raised when a device exposes no writable characteristic."""


class WriteFailure(DispatchError):
    """Raised on connect, write or disconnect failures."""
