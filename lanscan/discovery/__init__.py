"""Device discovery: classification, the device model, and the registry.

The `mdns` subpackage holds the network-facing service browser; this package
holds the pieces that turn its normalized records into classified devices.
"""

from lanscan.discovery.device import Device, DiscoveredService
from lanscan.discovery.device_registry import DeviceRegistry, UpsertResult
from lanscan.discovery.device_type import (
    WATCHED_SERVICE_TYPES,
    DeviceType,
    classify,
)
from lanscan.discovery.network_error import NetworkError

__all__ = [
    "Device",
    "DeviceRegistry",
    "DeviceType",
    "DiscoveredService",
    "NetworkError",
    "UpsertResult",
    "WATCHED_SERVICE_TYPES",
    "classify",
]
