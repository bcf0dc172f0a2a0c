"""Classification of devices by the mDNS service types they advertise."""

from enum import Enum
from typing import Dict, Optional, Tuple

BLUESOUND_SERVICE_TYPE = "_musc._tcp.local."
VOLUMIO_SERVICE_TYPE = "_http._tcp.local."
SPOTIFY_CONNECT_SERVICE_TYPE = "_spotify-connect._tcp.local."
QOBUZ_CONNECT_SERVICE_TYPE = "_qobuz-connect._tcp.local."

# Service types browsed for by default, in the order they are registered.
WATCHED_SERVICE_TYPES: Tuple[str, ...] = (
    BLUESOUND_SERVICE_TYPE,
    VOLUMIO_SERVICE_TYPE,
    SPOTIFY_CONNECT_SERVICE_TYPE,
    QOBUZ_CONNECT_SERVICE_TYPE,
)

# Volumio advertises a plain HTTP service, so the instance name must say so.
VOLUMIO_NAME_HINT = "volumio"


class DeviceType(Enum):
    """The kind of device, derived from a single advertised service type.

    Values are the names used when a device is serialized for subscribers.
    """

    BLUESOUND = "Bluesound"
    VOLUMIO = "Volumio"
    SPOTIFY_CONNECT = "SpotifyConnect"
    QOBUZ_CONNECT = "QobuzConnect"
    GENERIC = "Generic"


__SERVICE_TYPE_TABLE: Dict[str, DeviceType] = {
    BLUESOUND_SERVICE_TYPE: DeviceType.BLUESOUND,
    VOLUMIO_SERVICE_TYPE: DeviceType.VOLUMIO,
    SPOTIFY_CONNECT_SERVICE_TYPE: DeviceType.SPOTIFY_CONNECT,
    QOBUZ_CONNECT_SERVICE_TYPE: DeviceType.QOBUZ_CONNECT,
}


def normalize_service_type(service_type: str) -> str:
    """Returns |service_type| lower-cased and fully qualified with a final dot.

    mDNS labels are case-insensitive, and zeroconf reports types with the
    trailing root label while hand-written types often omit it.
    """
    normalized = service_type.strip().lower()
    if normalized and not normalized.endswith("."):
        normalized += "."
    return normalized


def classify(
    service_type: str, instance_name: Optional[str] = None
) -> DeviceType:
    """Maps an advertised service type to a `DeviceType`.

    Never fails: anything not in the lookup table is `DeviceType.GENERIC`.

    Args:
        service_type: mDNS service type, e.g. "_musc._tcp.local.".
        instance_name: Optional advertised instance name. Only consulted for
            the generic HTTP service type, which is attributed to Volumio only
            when the name contains "volumio".

    Returns:
        The matching `DeviceType`.
    """
    if not isinstance(service_type, str):
        return DeviceType.GENERIC

    normalized = normalize_service_type(service_type)
    device_type = __SERVICE_TYPE_TABLE.get(normalized, DeviceType.GENERIC)

    if device_type is DeviceType.VOLUMIO:
        if (
            instance_name is None
            or VOLUMIO_NAME_HINT not in instance_name.lower()
        ):
            return DeviceType.GENERIC

    return device_type
