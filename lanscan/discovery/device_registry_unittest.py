"""Tests for DeviceRegistry."""

import pytest

from lanscan.discovery.device_registry import DeviceRegistry
from lanscan.discovery.device_type import DeviceType

BLUESOUND = "_musc._tcp.local."
HTTP = "_http._tcp.local."
SPOTIFY = "_spotify-connect._tcp.local."


@pytest.fixture
def registry() -> DeviceRegistry:
    return DeviceRegistry()


def test_empty_registry(registry: DeviceRegistry) -> None:
    assert registry.list() == []
    assert len(registry) == 0
    assert registry.get("192.168.1.20") is None


def test_first_sighting_creates_device(registry: DeviceRegistry) -> None:
    result = registry.upsert("192.168.1.20", "Node", BLUESOUND, 11000, 120)

    assert result.is_new_device
    device = result.device
    assert device.ip == "192.168.1.20"
    assert device.name == "Node"
    assert device.discovery_time_ms == 120
    assert len(device.services) == 1
    service = device.services[0]
    assert service.service_type == BLUESOUND
    assert service.port == 11000
    assert service.device_type is DeviceType.BLUESOUND
    assert service.last_seen_ms == 120


def test_second_service_on_same_ip(registry: DeviceRegistry) -> None:
    registry.upsert("192.168.1.20", "Node", BLUESOUND, 11000, 120)
    result = registry.upsert("192.168.1.20", "Node", SPOTIFY, 4070, 300)

    assert not result.is_new_device
    assert [s.service_type for s in result.device.services] == [
        BLUESOUND,
        SPOTIFY,
    ]
    assert result.device.discovery_time_ms == 120
    assert result.device.services[1].device_type is DeviceType.SPOTIFY_CONNECT


def test_rediscovery_updates_last_seen(registry: DeviceRegistry) -> None:
    registry.upsert("192.168.1.20", "Node", BLUESOUND, 11000, 120)
    result = registry.upsert("192.168.1.20", "Node", BLUESOUND, 11000, 5000)

    assert not result.is_new_device
    assert len(result.device.services) == 1
    assert result.device.services[0].last_seen_ms == 5000
    assert result.device.discovery_time_ms == 120


def test_first_name_is_kept(registry: DeviceRegistry) -> None:
    registry.upsert("192.168.1.20", "Node", BLUESOUND, 11000, 120)
    registry.upsert("192.168.1.20", "Spotify Node", SPOTIFY, 4070, 300)

    device = registry.get("192.168.1.20")
    assert device is not None
    assert device.name == "Node"


def test_two_services_on_one_device(
    registry: DeviceRegistry,
) -> None:
    first = registry.upsert("192.168.1.20", "Node", BLUESOUND, 8090, 10)
    second = registry.upsert("192.168.1.20", "Node", HTTP, 80, 20)

    assert first.is_new_device
    assert not second.is_new_device
    devices = registry.list()
    assert len(devices) == 1
    assert [s.port for s in devices[0].services] == [8090, 80]


def test_unknown_type_is_generic(registry: DeviceRegistry) -> None:
    result = registry.upsert("192.168.1.30", "Thing", "_foo._tcp.local.", 1, 0)
    assert result.device.services[0].device_type is DeviceType.GENERIC


def test_volumio_uses_name(registry: DeviceRegistry) -> None:
    volumio = registry.upsert("192.168.1.40", "volumio", HTTP, 80, 0)
    printer = registry.upsert("192.168.1.41", "Printer", HTTP, 80, 0)

    assert volumio.device.services[0].device_type is DeviceType.VOLUMIO
    assert printer.device.services[0].device_type is DeviceType.GENERIC


def test_readvertisement_reclassifies_service(
    registry: DeviceRegistry,
) -> None:
    registry.upsert("192.168.1.40", "kitchen", HTTP, 80, 10)
    result = registry.upsert("192.168.1.40", "Volumio kitchen", HTTP, 80, 20)

    assert not result.is_new_device
    assert len(result.device.services) == 1
    assert result.device.services[0].device_type is DeviceType.VOLUMIO
    assert result.device.name == "kitchen"


def test_list_in_first_discovery_order(registry: DeviceRegistry) -> None:
    registry.upsert("192.168.1.30", "C", BLUESOUND, 1, 5)
    registry.upsert("192.168.1.10", "A", BLUESOUND, 1, 10)
    registry.upsert("192.168.1.30", "C", SPOTIFY, 1, 15)
    registry.upsert("192.168.1.20", "B", BLUESOUND, 1, 20)

    devices = registry.list()
    assert [d.ip for d in devices] == [
        "192.168.1.30",
        "192.168.1.10",
        "192.168.1.20",
    ]
    times = [d.discovery_time_ms for d in devices]
    assert times == sorted(times)


def test_results_are_snapshots(registry: DeviceRegistry) -> None:
    result = registry.upsert("192.168.1.20", "Node", BLUESOUND, 11000, 120)
    listed = registry.list()

    result.device.services.clear()
    listed[0].name = "changed"

    device = registry.get("192.168.1.20")
    assert device is not None
    assert device.name == "Node"
    assert len(device.services) == 1


def test_clear(registry: DeviceRegistry) -> None:
    registry.upsert("192.168.1.20", "Node", BLUESOUND, 11000, 120)
    registry.clear()

    assert registry.list() == []
    result = registry.upsert("192.168.1.20", "Node", BLUESOUND, 11000, 7)
    assert result.is_new_device
    assert result.device.discovery_time_ms == 7
