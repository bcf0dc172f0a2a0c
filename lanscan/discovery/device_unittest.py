"""Tests for Device and DiscoveredService."""

from lanscan.discovery.device import Device, DiscoveredService
from lanscan.discovery.device_type import DeviceType


def make_device() -> Device:
    return Device(name="Living Room", ip="192.168.1.20", discovery_time_ms=40)


def test_add_or_update_service_appends_new_type():
    device = make_device()

    assert device.add_or_update_service(
        "_musc._tcp.local.", 11000, DeviceType.BLUESOUND, 40
    )
    assert device.add_or_update_service(
        "_spotify-connect._tcp.local.", 4070, DeviceType.SPOTIFY_CONNECT, 90
    )

    assert [s.service_type for s in device.services] == [
        "_musc._tcp.local.",
        "_spotify-connect._tcp.local.",
    ]


def test_add_or_update_service_refreshes_existing_type():
    device = make_device()
    device.add_or_update_service(
        "_musc._tcp.local.", 11000, DeviceType.BLUESOUND, 40
    )

    appended = device.add_or_update_service(
        "_musc._tcp.local.", 11001, DeviceType.BLUESOUND, 700
    )

    assert not appended
    assert len(device.services) == 1
    assert device.services[0].last_seen_ms == 700
    assert device.services[0].port == 11001
    assert device.discovery_time_ms == 40


def test_add_or_update_service_refreshes_device_type():
    device = make_device()
    device.add_or_update_service(
        "_http._tcp.local.", 80, DeviceType.GENERIC, 40
    )

    device.add_or_update_service(
        "_http._tcp.local.", 80, DeviceType.VOLUMIO, 90
    )

    assert len(device.services) == 1
    assert device.services[0].device_type is DeviceType.VOLUMIO


def test_find_service():
    device = make_device()
    device.add_or_update_service(
        "_musc._tcp.local.", 11000, DeviceType.BLUESOUND, 40
    )
    assert device.find_service("_musc._tcp.local.") is device.services[0]
    assert device.find_service("_http._tcp.local.") is None


def test_snapshot_is_independent():
    device = make_device()
    device.add_or_update_service(
        "_musc._tcp.local.", 11000, DeviceType.BLUESOUND, 40
    )

    copy = device.snapshot()
    device.add_or_update_service(
        "_musc._tcp.local.", 11000, DeviceType.BLUESOUND, 900
    )
    device.add_or_update_service(
        "_http._tcp.local.", 80, DeviceType.GENERIC, 950
    )

    assert copy == Device(
        name="Living Room",
        ip="192.168.1.20",
        discovery_time_ms=40,
        services=[
            DiscoveredService(
                "_musc._tcp.local.", 11000, DeviceType.BLUESOUND, 40
            )
        ],
    )


def test_to_payload_uses_camel_case():
    device = make_device()
    device.add_or_update_service(
        "_musc._tcp.local.", 11000, DeviceType.BLUESOUND, 40
    )

    assert device.to_payload() == {
        "name": "Living Room",
        "ip": "192.168.1.20",
        "discoveryTimeMs": 40,
        "services": [
            {
                "serviceType": "_musc._tcp.local.",
                "port": 11000,
                "deviceType": "Bluesound",
                "lastSeenMs": 40,
            }
        ],
    }
