"""Browser for the watched mDNS service types, using zeroconf."""

import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from zeroconf import Error as ZeroconfError
from zeroconf import InterfaceChoice, IPVersion, Zeroconf
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf

from lanscan.discovery.device_type import (
    WATCHED_SERVICE_TYPES,
    normalize_service_type,
)
from lanscan.discovery.mdns.mdns_browser import MdnsBrowser
from lanscan.discovery.network_error import NetworkError
from lanscan.util.ip import select_ipv4_address

DEFAULT_RESOLVE_TIMEOUT_MS = 3000

InterfacesT = Union[InterfaceChoice, List[str]]


def qualify_service_type(service_type: str) -> str:
    """Returns |service_type| in the fully qualified form zeroconf browses.

    Accepts "_name", "_name._tcp", or "_name._tcp.local." (any case).

    Raises:
        ValueError: If the type does not start with '_'.
        TypeError: If |service_type| is not a str.
    """
    if not isinstance(service_type, str):
        raise TypeError(
            f"service_type must be str, got {type(service_type).__name__}."
        )
    normalized = normalize_service_type(service_type)
    if not normalized.startswith("_"):
        raise ValueError(
            f"service_type must start with '_', got '{service_type}'."
        )
    if normalized.endswith("._tcp.local.") or normalized.endswith(
        "._udp.local."
    ):
        return normalized
    if normalized.endswith("._tcp.") or normalized.endswith("._udp."):
        return f"{normalized}local."
    return f"{normalized[:-1]}._tcp.local."


def instance_name(full_name: str, service_type: str) -> str:
    """Strips the service type from an mDNS instance |full_name|.

    "Living Room._musc._tcp.local." becomes "Living Room". Names that do not
    end with |service_type| fall back to their first label.
    """
    suffix = f".{service_type}"
    if full_name.lower().endswith(suffix.lower()):
        return full_name[: -len(suffix)]
    return full_name.split(".", 1)[0]


class ServiceBrowser(MdnsBrowser):
    """Browses a fixed set of mDNS service types and reports records.

    zeroconf invokes the `ServiceListener` methods for every advertisement;
    they only queue the instance name. `run()` is the browse task: it
    resolves each queued name to its address and port and hands complete
    records to the client. Incomplete advertisements are dropped silently.
    """

    def __init__(
        self,
        client: MdnsBrowser.Client,
        service_types: Sequence[str] = WATCHED_SERVICE_TYPES,
        *,
        zc_instance: Optional[AsyncZeroconf] = None,
        interfaces: InterfacesT = InterfaceChoice.All,
        resolve_timeout_ms: int = DEFAULT_RESOLVE_TIMEOUT_MS,
    ) -> None:
        """Initializes the ServiceBrowser.

        Args:
            client: Implements `MdnsBrowser.Client`, receives records.
            service_types: Service types to browse for.
            zc_instance: Optional shared `AsyncZeroconf`. When omitted, one
                is created in `start()` and closed in `close()`.
            interfaces: Interfaces an owned zeroconf instance binds to.
            resolve_timeout_ms: Upper bound for resolving one advertisement.

        Raises:
            ValueError: If args invalid or a service type is malformed.
            TypeError: If args are not of expected types.
        """
        if client is None:
            raise ValueError("Client cannot be None for ServiceBrowser.")
        if not isinstance(client, MdnsBrowser.Client):
            raise TypeError(
                f"Client must be MdnsBrowser.Client, got {type(client).__name__}."
            )
        if isinstance(service_types, str):
            raise TypeError("service_types must be a sequence of str.")
        if resolve_timeout_ms <= 0:
            raise ValueError(
                f"resolve_timeout_ms must be positive, got {resolve_timeout_ms}."
            )
        super().__init__()

        self.__client: MdnsBrowser.Client = client
        self.__service_types: Tuple[str, ...] = tuple(
            dict.fromkeys(qualify_service_type(t) for t in service_types)
        )
        if not self.__service_types:
            raise ValueError("At least one service type must be browsed.")

        self.__interfaces: InterfacesT = interfaces
        self.__resolve_timeout_ms = resolve_timeout_ms
        self.__is_shared_zc: bool = zc_instance is not None
        self.__mdns: Optional[AsyncZeroconf] = zc_instance
        self.__browser: Optional[AsyncServiceBrowser] = None
        self.__pending: Optional[asyncio.Queue[Tuple[str, str]]] = None
        self.__event_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def service_types(self) -> Tuple[str, ...]:
        return self.__service_types

    async def start(self) -> None:
        if self.__browser is not None:
            raise RuntimeError("ServiceBrowser has already been started.")

        self.__event_loop = asyncio.get_running_loop()
        self.__pending = asyncio.Queue()
        try:
            if self.__mdns is None:
                self.__mdns = AsyncZeroconf(
                    interfaces=self.__interfaces,
                    ip_version=IPVersion.V4Only,
                )
                logging.info(
                    "Created AsyncZeroconf for ServiceBrowser, types: %s",
                    ", ".join(self.__service_types),
                )
            self.__browser = AsyncServiceBrowser(
                self.__mdns.zeroconf, list(self.__service_types), listener=self
            )
        except (OSError, ZeroconfError) as e:
            logging.error("Failed to start mDNS browsing: %s", e)
            await self.__close_owned_zc()
            raise NetworkError(f"Failed to start mDNS browsing: {e}") from e

    async def run(self) -> None:
        if self.__pending is None:
            raise RuntimeError("ServiceBrowser.run called before start.")

        while True:
            type_, name = await self.__pending.get()
            await self.__resolve(type_, name)

    # --- ServiceListener interface methods ---

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called by `zeroconf` when a new service is discovered."""
        logging.debug("add_service: type='%s', name='%s'.", type_, name)
        self.__enqueue(type_, name)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called by `zeroconf` when a service is re-advertised or changed."""
        logging.debug("update_service: type='%s', name='%s'.", type_, name)
        self.__enqueue(type_, name)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called by `zeroconf` when a service says goodbye.

        A scan only accumulates devices, so removals are only logged.
        """
        logging.debug("remove_service: type='%s', name='%s'.", type_, name)

    def __enqueue(self, type_: str, name: str) -> None:
        loop = self.__event_loop
        pending = self.__pending
        if loop is None or pending is None or loop.is_closed():
            return
        # zeroconf may call listeners from its own thread.
        loop.call_soon_threadsafe(pending.put_nowait, (type_, name))

    async def __resolve(self, type_: str, name: str) -> None:
        service_type = normalize_service_type(type_)
        if service_type not in self.__service_types:
            logging.debug(
                "Ignoring '%s', type '%s' is not watched.", name, type_
            )
            return

        mdns = self.__mdns
        if mdns is None:
            return

        try:
            info = await mdns.async_get_service_info(
                type_, name, self.__resolve_timeout_ms
            )
        except ZeroconfError as e:
            logging.warning("Failed to resolve '%s': %s", name, e)
            return

        record = self.__to_record(service_type, name, info)
        if record is None:
            return

        ip, readable_name, port = record
        # pylint: disable=W0212 # Calling client's notification method
        await self.__client._on_record(ip, readable_name, service_type, port)

    def __to_record(
        self,
        service_type: str,
        name: str,
        info: Optional[AsyncServiceInfo],
    ) -> Optional[Tuple[str, str, int]]:
        """Returns (ip, name, port), or None if |info| is incomplete."""
        if info is None:
            logging.debug("No info resolved for '%s'.", name)
            return None

        if not info.port:
            logging.debug("No port for '%s'.", name)
            return None

        ip = select_ipv4_address(self.__parsed_addresses(info))
        if ip is None:
            logging.debug("No usable IPv4 address for '%s'.", name)
            return None

        return ip, instance_name(name, service_type), info.port

    @staticmethod
    def __parsed_addresses(info: AsyncServiceInfo) -> Iterable[str]:
        return info.parsed_addresses(IPVersion.V4Only)

    async def close(self) -> None:
        if self.__browser is not None:
            browser = self.__browser
            self.__browser = None
            try:
                await browser.async_cancel()
            except ZeroconfError as e:
                logging.error(
                    "Error cancelling AsyncServiceBrowser: %s", e, exc_info=True
                )

        await self.__close_owned_zc()
        self.__pending = None
        self.__event_loop = None

    async def __close_owned_zc(self) -> None:
        if self.__is_shared_zc or self.__mdns is None:
            return

        mdns = self.__mdns
        self.__mdns = None
        logging.info("Closing owned AsyncZeroconf instance for ServiceBrowser.")
        try:
            await mdns.async_close()
        except (OSError, ZeroconfError) as e:
            logging.error(
                "Error during owned AsyncZeroconf.async_close(): %s",
                e,
                exc_info=True,
            )
