"""Utilities for choosing and enumerating IPv4 addresses."""

import ipaddress
import socket
from typing import Iterable, Optional

import psutil  # type: ignore[import-untyped]


def is_usable_ipv4(address: str) -> bool:
    """Returns True if |address| is an IPv4 address a device can be reached at.

    Link-local (169.254/16), unspecified, and multicast addresses are not
    usable, nor is anything that does not parse as IPv4.
    """
    try:
        parsed = ipaddress.ip_address(address)
    except ValueError:
        return False

    if not isinstance(parsed, ipaddress.IPv4Address):
        return False
    return not (
        parsed.is_link_local or parsed.is_unspecified or parsed.is_multicast
    )


def select_ipv4_address(addresses: Iterable[str]) -> Optional[str]:
    """Returns the first usable IPv4 address of |addresses|, or None."""
    for address in addresses:
        if is_usable_ipv4(address):
            return address
    return None


def get_all_address_strings() -> list[str]:
    """Retrieves all IPv4 address strings for all network interfaces.

    Returns:
        A list of IPv4 address strings. Empty if no IPv4 addresses found.
    """
    addresses: list[str] = []
    for _, interface_addresses in psutil.net_if_addrs().items():
        for address in interface_addresses:
            if address.family == socket.AF_INET:
                addresses.append(address.address)
    return addresses


def lan_interfaces() -> list[str]:
    """Returns the IPv4 addresses of interfaces facing the local network.

    Loopback and link-local addresses are excluded. The result can be passed
    as `ScanConfig(interfaces=...)` to keep mDNS traffic off other links.
    """
    return [
        address
        for address in get_all_address_strings()
        if is_usable_ipv4(address)
        and not ipaddress.ip_address(address).is_loopback
    ]
