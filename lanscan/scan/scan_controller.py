"""ScanController: owns the scan lifecycle, countdown and event emission."""

import asyncio
import logging
import threading
import time
from typing import Callable, List, Optional

from lanscan.discovery.device import Device
from lanscan.discovery.device_registry import DeviceRegistry
from lanscan.discovery.mdns.mdns_browser import MdnsBrowser
from lanscan.discovery.mdns.service_browser import ServiceBrowser
from lanscan.events.event_sink import EventSink
from lanscan.events.scan_event import (
    NewDeviceEvent,
    ScanEvent,
    ScanStoppedEvent,
    ScanTickEvent,
)
from lanscan.scan.scan_config import ScanConfig
from lanscan.scan.scan_state import ScanState

logger = logging.getLogger(__name__)

BrowserFactory = Callable[[MdnsBrowser.Client, ScanConfig], MdnsBrowser]


def default_browser_factory(
    client: MdnsBrowser.Client, config: ScanConfig
) -> MdnsBrowser:
    """Creates the zeroconf-backed `ServiceBrowser` described by |config|."""
    return ServiceBrowser(
        client,
        config.service_types,
        interfaces=config.interfaces,
        resolve_timeout_ms=config.resolve_timeout_ms,
    )


class _ScanSession(MdnsBrowser.Client):
    """One scan window: its browser, its tasks and its start time.

    Acts as the browser's client so records can be traced back to the scan
    they were produced for; records from a finished scan are discarded.
    """

    def __init__(
        self, on_record: Callable[["_ScanSession", str, str, str, int], None]
    ) -> None:
        self.__on_record = on_record
        self.browser: Optional[MdnsBrowser] = None
        self.started_at: float = 0.0
        self.is_closing: bool = False
        self.browse_task: Optional[asyncio.Task[None]] = None
        self.tick_task: Optional[asyncio.Task[None]] = None

    async def _on_record(
        self, ip: str, name: str, service_type: str, port: int
    ) -> None:
        self.__on_record(self, ip, name, service_type, port)

    def tasks(self) -> List["asyncio.Task[None]"]:
        return [
            task
            for task in (self.browse_task, self.tick_task)
            if task is not None
        ]


class ScanController:
    """Runs bounded mDNS scans and publishes their events.

    States are `ScanState.IDLE` (initial) and `ScanState.SCANNING`. A scan
    runs two tasks: the browse task feeding the `DeviceRegistry`, and the
    countdown task publishing one `ScanTickEvent` per interval. When the
    countdown reaches zero, or on `stop_scan()`, both tasks are cancelled and
    exactly one `ScanStoppedEvent` is published.

    The registry, the state and the current session are guarded by a single
    lock. Every event is published while holding it, after checking that its
    scan is still live, so nothing is published after "scan stopped".
    `start_scan` and `stop_scan` are additionally serialized with each other.

    Construct one instance per process and pass it to whatever exposes the
    commands.
    """

    def __init__(
        self,
        event_sink: EventSink,
        config: Optional[ScanConfig] = None,
        *,
        browser_factory: Optional[BrowserFactory] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initializes the ScanController.

        Args:
            event_sink: Receives every event, in emission order.
            config: Scan settings. Defaults to `ScanConfig()`.
            browser_factory: Creates the `MdnsBrowser` for each scan. Defaults
                to a zeroconf `ServiceBrowser`.
            clock: Monotonic clock in seconds, used for discovery timestamps.

        Raises:
            ValueError: If `event_sink` is None.
            TypeError: If `event_sink` is not an `EventSink`.
        """
        if event_sink is None:
            raise ValueError("event_sink cannot be None for ScanController.")
        if not isinstance(event_sink, EventSink):
            raise TypeError(
                f"event_sink must be EventSink, got {type(event_sink).__name__}."
            )

        self.__event_sink: EventSink = event_sink
        self.__config: ScanConfig = (
            config if config is not None else ScanConfig()
        )
        self.__browser_factory: BrowserFactory = (
            browser_factory or default_browser_factory
        )
        self.__clock = clock

        # Guards everything below. Never held across an await. Re-entrant so
        # a sink may query the controller from inside publish().
        self.__lock = threading.RLock()
        self.__state = ScanState.IDLE
        self.__registry = DeviceRegistry()
        self.__session: Optional[_ScanSession] = None

        # Serializes start_scan / stop_scan / timeout.
        self.__lifecycle_lock = asyncio.Lock()

    @property
    def config(self) -> ScanConfig:
        return self.__config

    @property
    def state(self) -> ScanState:
        with self.__lock:
            return self.__state

    def is_scanning(self) -> bool:
        """Returns whether a scan window is open. Never waits on the network."""
        with self.__lock:
            return self.__state == ScanState.SCANNING

    def get_discovered_devices(self) -> List[Device]:
        """Returns the devices of the current or last scan, first-seen first."""
        with self.__lock:
            return self.__registry.list()

    def elapsed_ms(self) -> int:
        """Returns milliseconds since the current scan started, or 0 if idle."""
        with self.__lock:
            if self.__session is None:
                return 0
            return self.__elapsed_ms(self.__session)

    async def start_scan(self) -> None:
        """Starts a new scan window and returns without waiting for it.

        A scan that is already running is stopped first (publishing its
        "scan stopped"), and a fresh one started with an empty registry.

        Raises:
            NetworkError: If the mDNS socket cannot be set up. The controller
                stays idle and no task is left running.
        """
        async with self.__lifecycle_lock:
            with self.__lock:
                running_session = self.__session
            if running_session is not None:
                logger.info("Scan already in progress; restarting it.")
                await self.__stop_impl(running_session)

            session = _ScanSession(self.__on_record)
            browser = self.__browser_factory(session, self.__config)
            try:
                await browser.start()
            # Cancellation must also release the browser's sockets.
            except BaseException:
                logger.error("Failed to start scan.")
                await self.__close_browser(browser)
                raise

            with self.__lock:
                self.__registry.clear()
                session.browser = browser
                session.started_at = self.__clock()
                self.__session = session
                self.__state = ScanState.SCANNING

            session.browse_task = asyncio.create_task(
                self.__browse(session), name="lanscan-browse"
            )
            session.tick_task = asyncio.create_task(
                self.__count_down(session), name="lanscan-countdown"
            )

        logger.info(
            "Scan started for %d seconds.", self.__config.scan_duration_seconds
        )

    async def stop_scan(self) -> None:
        """Stops the running scan. A no-op when idle.

        Returns once both scan tasks have ended and "scan stopped" has been
        published. Safe to race with the countdown reaching zero: exactly
        one "scan stopped" is published either way.
        """
        async with self.__lifecycle_lock:
            with self.__lock:
                session = self.__session
            if session is None:
                logger.info("Scan is not running.")
                return
            await self.__stop_impl(session)

    async def close(self) -> None:
        """Stops any running scan. Call on process shutdown."""
        await self.stop_scan()

    async def __stop_session(self, session: _ScanSession) -> None:
        async with self.__lifecycle_lock:
            await self.__stop_impl(session)

    async def __stop_impl(self, session: _ScanSession) -> None:
        """Stops |session|. The lifecycle lock must be held."""
        with self.__lock:
            if self.__session is not session or session.is_closing:
                return
            # From here on nothing more is published for this session.
            session.is_closing = True

        current_task = asyncio.current_task()
        tasks = [task for task in session.tasks() if task is not current_task]
        try:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if session.browser is not None:
                await self.__close_browser(session.browser)
        finally:
            with self.__lock:
                self.__session = None
                self.__state = ScanState.IDLE
                device_count = len(self.__registry)
                self.__publish(ScanStoppedEvent())

        logger.info("Scan stopped, %d device(s) found.", device_count)

    async def __browse(self, session: _ScanSession) -> None:
        assert session.browser is not None
        try:
            await session.browser.run()
        # pylint: disable=W0718 # The scan outlives a failed browser
        except Exception as e:
            logger.error("Browse task ended unexpectedly: %s", e, exc_info=True)

    async def __count_down(self, session: _ScanSession) -> None:
        duration = self.__config.scan_duration_seconds
        interval = self.__config.tick_interval_seconds
        loop = asyncio.get_running_loop()
        started_at = loop.time()

        for elapsed in range(1, duration + 1):
            # Sleep to an absolute deadline so ticks do not drift.
            deadline = started_at + elapsed * interval
            await asyncio.sleep(max(0.0, deadline - loop.time()))

            seconds_remaining = duration - elapsed
            if not self.__publish_for(session, ScanTickEvent(seconds_remaining)):
                return
            logger.debug("Scan stopping in %d seconds...", seconds_remaining)

        logger.info("Scan timeout reached. Stopping scan automatically.")
        await self.__stop_session(session)

    def __on_record(
        self,
        session: _ScanSession,
        ip: str,
        name: str,
        service_type: str,
        port: int,
    ) -> None:
        with self.__lock:
            if self.__session is not session or session.is_closing:
                logger.debug("Dropping record for %s after scan end.", ip)
                return

            now_ms = self.__elapsed_ms(session)
            result = self.__registry.upsert(
                ip, name, service_type, port, now_ms
            )
            if not result.is_new_device:
                return

            logger.info(
                "%s (%s:%d) %s (%dms)", name, ip, port, service_type, now_ms
            )
            self.__publish(NewDeviceEvent(result.device))

    def __publish_for(self, session: _ScanSession, event: ScanEvent) -> bool:
        """Publishes |event| only if |session| is live. Returns that check."""
        with self.__lock:
            if self.__session is not session or session.is_closing:
                return False
            self.__publish(event)
            return True

    def __publish(self, event: ScanEvent) -> None:
        """Hands |event| to the sink. The state lock must be held."""
        try:
            self.__event_sink.publish(event)
        # pylint: disable=W0718 # A faulty sink must not break the scan
        except Exception as e:
            logger.error(
                "Failed to publish %s event: %s", event.name, e, exc_info=True
            )

    def __elapsed_ms(self, session: _ScanSession) -> int:
        return max(0, int((self.__clock() - session.started_at) * 1000))

    @staticmethod
    async def __close_browser(browser: MdnsBrowser) -> None:
        try:
            await browser.close()
        # pylint: disable=W0718 # Closing is best effort
        except Exception as e:
            logger.error("Error closing mDNS browser: %s", e, exc_info=True)
