"""Power control for SteamVR Lighthouse base stations over BLE."""

__version__ = "0.1.0"
