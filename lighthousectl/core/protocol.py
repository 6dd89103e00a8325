"""Lighthouse v2 BLE protocol constants."""

LHB_PREFIX = "LHB"
LIGHTHOUSE_MANUFACTURER_ID = 1373
UNKNOWN_NAME = "Unknown"

LIGHTHOUSE_SERVICE_UUID = "00001523-1212-efde-1523-785feabcd124"
LIGHTHOUSE_CHAR_UUID = "00001525-1212-efde-1523-785feabcd124"

WRITE_PROPERTIES = frozenset({"write", "write-without-response"})
