"""Tests for ScanConfig."""

import pytest
from zeroconf import InterfaceChoice

from lanscan.discovery.device_type import WATCHED_SERVICE_TYPES
from lanscan.scan.scan_config import ScanConfig


class TestScanConfig:
    """Tests for the ScanConfig class."""

    def test_defaults(self):
        config = ScanConfig()
        assert config.scan_duration_seconds == 30
        assert config.tick_interval_seconds == 1.0
        assert config.service_types == WATCHED_SERVICE_TYPES
        assert config.resolve_timeout_ms == 3000
        assert config.interfaces is InterfaceChoice.All

    def test_custom_values(self):
        config = ScanConfig(
            scan_duration_seconds=5,
            tick_interval_seconds=0.01,
            service_types=["_musc._tcp.local."],
            resolve_timeout_ms=250,
            interfaces=["192.168.1.2"],
        )
        assert config.scan_duration_seconds == 5
        assert config.tick_interval_seconds == 0.01
        assert config.service_types == ("_musc._tcp.local.",)
        assert config.resolve_timeout_ms == 250
        assert config.interfaces == ["192.168.1.2"]

    def test_init_copy_constructor(self):
        original = ScanConfig(
            scan_duration_seconds=10,
            tick_interval_seconds=0.5,
            interfaces=InterfaceChoice.Default,
        )

        copied = ScanConfig(other_config=original)

        assert copied is not original
        assert copied.scan_duration_seconds == 10
        assert copied.tick_interval_seconds == 0.5
        assert copied.service_types == original.service_types
        assert copied.interfaces is InterfaceChoice.Default

    def test_interface_list_is_copied(self):
        interfaces = ["192.168.1.2"]
        config = ScanConfig(interfaces=interfaces)
        interfaces.append("10.0.0.2")
        assert config.interfaces == ["192.168.1.2"]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"scan_duration_seconds": 0},
            {"scan_duration_seconds": -1},
            {"tick_interval_seconds": 0},
            {"resolve_timeout_ms": 0},
            {"service_types": []},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            ScanConfig(**kwargs)

    def test_single_string_service_types(self):
        with pytest.raises(TypeError):
            ScanConfig(service_types="_musc._tcp.local.")

    @pytest.mark.parametrize("service_type", ["bogus", "musc._tcp.local."])
    def test_malformed_service_type(self, service_type):
        with pytest.raises(ValueError, match="must start with '_'"):
            ScanConfig(service_types=[service_type])

    def test_non_str_service_type(self):
        with pytest.raises(TypeError):
            ScanConfig(service_types=[42])  # type: ignore[list-item]

    def test_service_types_are_qualified_and_deduplicated(self):
        config = ScanConfig(
            service_types=["_musc", "_musc._tcp", "_SPOTIFY-CONNECT._tcp.local"]
        )
        assert config.service_types == (
            "_musc._tcp.local.",
            "_spotify-connect._tcp.local.",
        )
