"""Scan events and the sinks they are published through."""

from lanscan.events.broadcast_event_sink import BroadcastEventSink
from lanscan.events.event_sink import EventSink
from lanscan.events.event_subscription import EventSubscription
from lanscan.events.scan_event import (
    NewDeviceEvent,
    ScanEvent,
    ScanStoppedEvent,
    ScanTickEvent,
)

__all__ = [
    "BroadcastEventSink",
    "EventSink",
    "EventSubscription",
    "NewDeviceEvent",
    "ScanEvent",
    "ScanStoppedEvent",
    "ScanTickEvent",
]
