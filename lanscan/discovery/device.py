"""Defines the Device and DiscoveredService records produced by a scan."""

import dataclasses
from typing import Any, Dict, List, Optional

from lanscan.discovery.device_type import DeviceType


@dataclasses.dataclass
class DiscoveredService:
    """A single mDNS service observed on a device.

    `last_seen_ms` is the time, in milliseconds since the scan started, at
    which this service was most recently advertised.
    """

    service_type: str
    port: int
    device_type: DeviceType
    last_seen_ms: int

    def to_payload(self) -> Dict[str, Any]:
        """Returns the camelCase dictionary form handed to subscribers."""
        return {
            "serviceType": self.service_type,
            "port": self.port,
            "deviceType": self.device_type.value,
            "lastSeenMs": self.last_seen_ms,
        }


@dataclasses.dataclass
class Device:
    """A device on the local network, keyed by its IP address.

    `discovery_time_ms` is when the first service on this device was seen,
    relative to the scan start. It is set once and never changes.
    """

    name: str
    ip: str
    discovery_time_ms: int
    services: List[DiscoveredService] = dataclasses.field(
        default_factory=list
    )

    def find_service(self, service_type: str) -> Optional[DiscoveredService]:
        """Returns the service of |service_type|, or None if not seen yet."""
        for service in self.services:
            if service.service_type == service_type:
                return service
        return None

    def add_or_update_service(
        self,
        service_type: str,
        port: int,
        device_type: DeviceType,
        now_ms: int,
    ) -> bool:
        """Records an advertisement of |service_type| on this device.

        An existing entry is refreshed in place, so each service type appears
        at most once.

        Returns:
            True if a new service entry was appended, False if one was updated.
        """
        existing = self.find_service(service_type)
        if existing is not None:
            existing.port = port
            existing.device_type = device_type
            existing.last_seen_ms = now_ms
            return False

        self.services.append(
            DiscoveredService(
                service_type=service_type,
                port=port,
                device_type=device_type,
                last_seen_ms=now_ms,
            )
        )
        return True

    def snapshot(self) -> "Device":
        """Returns a copy that shares no mutable state with this device."""
        return Device(
            name=self.name,
            ip=self.ip,
            discovery_time_ms=self.discovery_time_ms,
            services=[dataclasses.replace(s) for s in self.services],
        )

    def to_payload(self) -> Dict[str, Any]:
        """Returns the camelCase dictionary form handed to subscribers."""
        return {
            "name": self.name,
            "ip": self.ip,
            "discoveryTimeMs": self.discovery_time_ms,
            "services": [s.to_payload() for s in self.services],
        }
