"""MdnsBrowser ABC and client interface for mDNS service browsing."""

from abc import ABC, abstractmethod

from zeroconf import ServiceListener, Zeroconf


class MdnsBrowser(ServiceListener):
    """ABC for mDNS browsers used by a scan.

    Extends `zeroconf.ServiceListener` and defines the async lifecycle a scan
    drives: `start` (may fail with `NetworkError`), `run` (the long-lived
    browse task, ended by cancellation), and `close`.
    """

    @abstractmethod
    async def start(self) -> None:
        """Binds the multicast socket and starts browsing.

        Raises:
            NetworkError: If the socket cannot be bound or the multicast
                group cannot be joined.
        """
        raise NotImplementedError(
            "MdnsBrowser.start must be implemented by subclasses."
        )

    @abstractmethod
    async def run(self) -> None:
        """Resolves advertisements and reports them until cancelled."""
        raise NotImplementedError(
            "MdnsBrowser.run must be implemented by subclasses."
        )

    @abstractmethod
    async def close(self) -> None:
        """Stops browsing and releases network resources. Idempotent."""
        raise NotImplementedError(
            "MdnsBrowser.close must be implemented by subclasses."
        )

    @abstractmethod
    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called when a new service is discovered."""
        raise NotImplementedError()

    @abstractmethod
    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called when a service is removed."""
        raise NotImplementedError()

    @abstractmethod
    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called when a service is updated."""
        raise NotImplementedError()

    # pylint: disable=R0903 # Abstract browser client interface
    class Client(ABC):
        """Interface for `MdnsBrowser` clients.

        Notified once per resolved advertisement, whether it is the first
        sighting or a re-advertisement.
        """

        @abstractmethod
        async def _on_record(
            self,
            ip: str,
            name: str,
            service_type: str,
            port: int,
        ) -> None:
            """Callback for every complete service record.

            Args:
                ip: IPv4 address the service resolved to.
                name: Advertised instance name, without the service type.
                service_type: Watched service type, e.g. "_musc._tcp.local.".
                port: Advertised service port.
            """
            raise NotImplementedError(
                "MdnsBrowser.Client._on_record must be implemented by subclasses."
            )
