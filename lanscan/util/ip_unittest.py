import socket

import pytest

from lanscan.util import ip as ip_util


# Helper to create a mock address object
def create_mock_address(mocker, family, address):
    mock_addr = mocker.MagicMock()
    mock_addr.family = family
    mock_addr.address = address
    return mock_addr


class TestIpUtils:

    # --- Tests for is_usable_ipv4 / select_ipv4_address ---

    @pytest.mark.parametrize(
        "address",
        ["192.168.1.20", "10.0.0.7", "127.0.0.1"],
    )
    def test_is_usable_ipv4_accepts_routable(self, address):
        assert ip_util.is_usable_ipv4(address)

    @pytest.mark.parametrize(
        "address",
        ["169.254.10.2", "0.0.0.0", "224.0.0.251", "fe80::1", "not-an-ip", ""],
    )
    def test_is_usable_ipv4_rejects_unusable(self, address):
        assert not ip_util.is_usable_ipv4(address)

    def test_select_ipv4_address_skips_link_local(self):
        addresses = ["169.254.3.4", "fe80::1", "192.168.1.50", "192.168.1.51"]
        assert ip_util.select_ipv4_address(addresses) == "192.168.1.50"

    def test_select_ipv4_address_none_usable(self):
        assert ip_util.select_ipv4_address(["169.254.3.4"]) is None
        assert ip_util.select_ipv4_address([]) is None

    # --- Tests for get_all_address_strings ---

    def test_get_all_address_strings_no_interfaces(self, mocker):
        mock_net_if_addrs = mocker.patch("psutil.net_if_addrs")
        mock_net_if_addrs.return_value = {}

        assert ip_util.get_all_address_strings() == []
        mock_net_if_addrs.assert_called_once()

    def test_get_all_address_strings_filters_non_ipv4(self, mocker):
        mock_net_if_addrs = mocker.patch("psutil.net_if_addrs")
        mock_net_if_addrs.return_value = {
            "eth0": [
                create_mock_address(mocker, socket.AF_INET, "192.168.1.100"),
                create_mock_address(mocker, socket.AF_INET6, "fe80::1"),
            ],
            "wlan0": [
                create_mock_address(mocker, socket.AF_INET, "10.0.0.5"),
            ],
        }

        assert ip_util.get_all_address_strings() == [
            "192.168.1.100",
            "10.0.0.5",
        ]

    # --- Tests for lan_interfaces ---

    def test_lan_interfaces_excludes_loopback_and_link_local(self, mocker):
        mock_net_if_addrs = mocker.patch("psutil.net_if_addrs")
        mock_net_if_addrs.return_value = {
            "lo": [create_mock_address(mocker, socket.AF_INET, "127.0.0.1")],
            "eth0": [
                create_mock_address(mocker, socket.AF_INET, "169.254.0.9"),
                create_mock_address(mocker, socket.AF_INET, "192.168.1.100"),
            ],
        }

        assert ip_util.lan_interfaces() == ["192.168.1.100"]
