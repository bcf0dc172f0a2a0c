"""Events published while a scan runs."""

import dataclasses
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Optional

from lanscan.discovery.device import Device

NEW_DEVICE_EVENT = "new-device"
SCAN_TICK_EVENT = "scan-tick"
SCAN_STOPPED_EVENT = "scan-stopped"


class ScanEvent(ABC):
    """Base class for everything an `EventSink` receives.

    `name` is the event's wire name; `payload()` is its JSON-compatible body.
    """

    name: ClassVar[str]

    @abstractmethod
    def payload(self) -> Any:
        """Returns the body subscribers receive for this event."""


@dataclasses.dataclass(frozen=True)
class NewDeviceEvent(ScanEvent):
    """A device was seen for the first time in the current scan."""

    name: ClassVar[str] = NEW_DEVICE_EVENT

    device: Device

    def payload(self) -> Dict[str, Any]:
        return self.device.to_payload()


@dataclasses.dataclass(frozen=True)
class ScanTickEvent(ScanEvent):
    """One second of the scan window elapsed."""

    name: ClassVar[str] = SCAN_TICK_EVENT

    seconds_remaining: int

    def payload(self) -> int:
        return self.seconds_remaining


@dataclasses.dataclass(frozen=True)
class ScanStoppedEvent(ScanEvent):
    """The scan ended, by timeout or manual stop. Always the last event."""

    name: ClassVar[str] = SCAN_STOPPED_EVENT

    def payload(self) -> Optional[Any]:
        return None
