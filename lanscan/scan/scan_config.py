"""Configuration parameters for a ScanController.

`ScanConfig` bundles the scan window, the countdown interval, the watched
service types and the network interfaces used for browsing. The defaults
give the standard 30 second scan over every interface.
"""

from typing import List, Optional, Sequence, Tuple, Union, overload

from zeroconf import InterfaceChoice

from lanscan.discovery.device_type import WATCHED_SERVICE_TYPES
from lanscan.discovery.mdns.service_browser import (
    DEFAULT_RESOLVE_TIMEOUT_MS,
    qualify_service_type,
)

SCAN_DURATION_SECONDS = 30
TICK_INTERVAL_SECONDS = 1.0


class ScanConfig:
    """Holds configuration parameters for a `ScanController`.

    Instances can be created either from individual keyword arguments or by
    cloning another `ScanConfig`.
    """

    @overload
    def __init__(
        self,
        *,
        scan_duration_seconds: int = SCAN_DURATION_SECONDS,
        tick_interval_seconds: float = TICK_INTERVAL_SECONDS,
        service_types: Sequence[str] = WATCHED_SERVICE_TYPES,
        resolve_timeout_ms: int = DEFAULT_RESOLVE_TIMEOUT_MS,
        interfaces: Union[InterfaceChoice, List[str]] = InterfaceChoice.All,
    ):
        ...

    @overload
    def __init__(self, *, other_config: "ScanConfig"):
        """Initializes by cloning settings from another ScanConfig instance.

        Args:
            other_config: An existing `ScanConfig` instance to clone.
        """
        ...

    def __init__(
        self,
        *,
        other_config: Optional["ScanConfig"] = None,
        scan_duration_seconds: int = SCAN_DURATION_SECONDS,
        tick_interval_seconds: float = TICK_INTERVAL_SECONDS,
        service_types: Sequence[str] = WATCHED_SERVICE_TYPES,
        resolve_timeout_ms: int = DEFAULT_RESOLVE_TIMEOUT_MS,
        interfaces: Union[InterfaceChoice, List[str]] = InterfaceChoice.All,
    ):
        """Initializes the ScanConfig.

        Args:
            other_config: An existing `ScanConfig` to copy. If provided, the
                remaining arguments are ignored.
            scan_duration_seconds: Length of the scan window, and the number
                of countdown ticks published. Defaults to 30.
            tick_interval_seconds: Time between countdown ticks. Defaults to
                one second; only tests should change it.
            service_types: mDNS service types to browse for. Short forms
                such as "_musc" are qualified to "_musc._tcp.local.".
            resolve_timeout_ms: Upper bound for resolving one advertisement.
            interfaces: `InterfaceChoice.All`, `InterfaceChoice.Default`, or a
                list of local IPv4 addresses to bind to (see
                `lanscan.util.ip.lan_interfaces`).

        Raises:
            ValueError: If a duration, interval or timeout is not positive,
                no service type is given, or a service type does not start
                with '_'.
            TypeError: If `service_types` is a single str, or holds a
                non-str entry.
        """
        if other_config is not None:
            ScanConfig.__init__(
                self,
                scan_duration_seconds=other_config.scan_duration_seconds,
                tick_interval_seconds=other_config.tick_interval_seconds,
                service_types=other_config.service_types,
                resolve_timeout_ms=other_config.resolve_timeout_ms,
                interfaces=other_config.interfaces,
            )
            return

        if scan_duration_seconds <= 0:
            raise ValueError(
                "scan_duration_seconds must be positive, got "
                f"{scan_duration_seconds}."
            )
        if tick_interval_seconds <= 0:
            raise ValueError(
                "tick_interval_seconds must be positive, got "
                f"{tick_interval_seconds}."
            )
        if resolve_timeout_ms <= 0:
            raise ValueError(
                f"resolve_timeout_ms must be positive, got {resolve_timeout_ms}."
            )
        if isinstance(service_types, str):
            raise TypeError(
                "service_types must be a sequence of str, not a single str."
            )
        if len(service_types) == 0:
            raise ValueError("service_types must not be empty.")

        self.__scan_duration_seconds: int = scan_duration_seconds
        self.__tick_interval_seconds: float = tick_interval_seconds
        self.__service_types: Tuple[str, ...] = tuple(
            dict.fromkeys(qualify_service_type(t) for t in service_types)
        )
        self.__resolve_timeout_ms: int = resolve_timeout_ms
        self.__interfaces: Union[InterfaceChoice, List[str]] = (
            list(interfaces)
            if not isinstance(interfaces, InterfaceChoice)
            else interfaces
        )

    @property
    def scan_duration_seconds(self) -> int:
        """Length of the scan window in seconds."""
        return self.__scan_duration_seconds

    @property
    def tick_interval_seconds(self) -> float:
        """Time between countdown ticks, in seconds."""
        return self.__tick_interval_seconds

    @property
    def service_types(self) -> Tuple[str, ...]:
        return self.__service_types

    @property
    def resolve_timeout_ms(self) -> int:
        return self.__resolve_timeout_ms

    @property
    def interfaces(self) -> Union[InterfaceChoice, List[str]]:
        return self.__interfaces
