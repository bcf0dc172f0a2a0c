"""Initializes the lanscan.discovery.mdns package.

This package provides the network side of a scan: browsing the watched mDNS
service types and turning resolved advertisements into records.
"""

from lanscan.discovery.mdns.mdns_browser import MdnsBrowser
from lanscan.discovery.mdns.service_browser import ServiceBrowser

__all__ = ["MdnsBrowser", "ServiceBrowser"]
