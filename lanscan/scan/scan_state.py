"""Defines ScanState, the lifecycle state of a ScanController."""

from enum import Enum


class ScanState(Enum):
    """Whether a scan window is currently open.

    Attributes:
        IDLE: No scan is running. Discovered devices from the last scan stay
            readable until the next scan starts.
        SCANNING: The browser and the countdown are running.
    """

    IDLE = 0
    SCANNING = 1
