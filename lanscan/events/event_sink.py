"""Defines the EventSink interface scan events are published through."""

from abc import ABC, abstractmethod

from lanscan.events.scan_event import ScanEvent


# pylint: disable=R0903 # Abstract event sink interface
class EventSink(ABC):
    """Receives every event a `ScanController` emits, in emission order.

    `publish` is called while the controller holds its state lock, so it
    must not block. Reading from the controller (`is_scanning()`,
    `get_discovered_devices()`) inside `publish` is allowed; starting or
    stopping a scan is not.
    """

    @abstractmethod
    def publish(self, event: ScanEvent) -> None:
        """Delivers |event| to whatever is listening.

        Args:
            event: The event, one of `NewDeviceEvent`, `ScanTickEvent`, or
                `ScanStoppedEvent`.
        """
        raise NotImplementedError(
            "EventSink.publish must be implemented by subclasses."
        )
