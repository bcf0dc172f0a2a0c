"""lanscan package for discovering devices on the local network over mDNS.

The package listens for multicast service announcements for a bounded scan
window, classifies every device by the services it advertises, and streams
discovery events (new devices, a countdown, and the end of the scan) to any
number of subscribers.
"""

from lanscan.discovery.device import Device, DiscoveredService
from lanscan.discovery.device_type import DeviceType, classify
from lanscan.discovery.network_error import NetworkError
from lanscan.events.broadcast_event_sink import BroadcastEventSink
from lanscan.events.event_sink import EventSink
from lanscan.scan.scan_config import ScanConfig
from lanscan.scan.scan_controller import ScanController

__all__ = [
    "BroadcastEventSink",
    "Device",
    "DeviceType",
    "DiscoveredService",
    "EventSink",
    "NetworkError",
    "ScanConfig",
    "ScanController",
    "classify",
]
