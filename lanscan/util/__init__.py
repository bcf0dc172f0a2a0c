"""Utility functions for lanscan."""

from lanscan.util.ip import (
    get_all_address_strings,
    is_usable_ipv4,
    lan_interfaces,
    select_ipv4_address,
)

__all__ = [
    "get_all_address_strings",
    "is_usable_ipv4",
    "lan_interfaces",
    "select_ipv4_address",
]
