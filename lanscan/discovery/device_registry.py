"""DeviceRegistry: the in-memory store of devices found during one scan."""

import dataclasses
import logging
from typing import Dict, List, Optional

from lanscan.discovery.device import Device
from lanscan.discovery.device_type import classify

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class UpsertResult:
    """Outcome of `DeviceRegistry.upsert`.

    `device` is a snapshot taken right after the upsert, safe to publish.
    """

    is_new_device: bool
    device: Device


class DeviceRegistry:
    """Stores devices by IP address in first-discovery order.

    Merges every advertisement into at most one `Device` per IP, and at most
    one service per service type on that device.

    NOTE: This class is not thread-safe. The owner must serialize all calls,
    which `ScanController` does with its state lock.
    """

    def __init__(self) -> None:
        # Dicts keep insertion order, which is first-discovery order here.
        self.__devices: Dict[str, Device] = {}

    def upsert(
        self,
        ip: str,
        name: str,
        service_type: str,
        port: int,
        now_ms: int,
    ) -> UpsertResult:
        """Merges one advertisement into the registry.

        Args:
            ip: Address of the advertising device, the device key.
            name: Advertised instance name.
            service_type: mDNS service type of the advertisement.
            port: Advertised port.
            now_ms: Milliseconds since the scan started.

        Returns:
            An `UpsertResult`; `is_new_device` is True only when |ip| had
            not been seen before.
        """
        device = self.__devices.get(ip)
        is_new_device = device is None
        if device is None:
            device = Device(name=name, ip=ip, discovery_time_ms=now_ms)
            self.__devices[ip] = device

        added = device.add_or_update_service(
            service_type, port, classify(service_type, name), now_ms
        )
        if not is_new_device:
            logger.debug(
                "%s %s on %s (%s) at %dms.",
                "Added" if added else "Refreshed",
                service_type,
                ip,
                device.name,
                now_ms,
            )

        return UpsertResult(is_new_device, device.snapshot())

    def get(self, ip: str) -> Optional[Device]:
        """Returns a snapshot of the device at |ip|, or None."""
        device = self.__devices.get(ip)
        return device.snapshot() if device is not None else None

    def list(self) -> List[Device]:
        """Returns snapshots of all devices in first-discovery order."""
        return [device.snapshot() for device in self.__devices.values()]

    def clear(self) -> None:
        """Forgets every device."""
        self.__devices.clear()

    def __len__(self) -> int:
        return len(self.__devices)
