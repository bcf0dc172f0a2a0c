import asyncio
import threading
from typing import Callable, List, Optional, Type

from zeroconf import Zeroconf

from lanscan.discovery.mdns.mdns_browser import MdnsBrowser
from lanscan.events.event_sink import EventSink
from lanscan.events.scan_event import (
    NewDeviceEvent,
    ScanEvent,
    ScanStoppedEvent,
    ScanTickEvent,
)
from lanscan.scan.scan_config import ScanConfig


class RecordingEventSink(EventSink):
    """Keeps every published event, in order."""

    __test__ = False

    def __init__(self) -> None:
        self.__lock = threading.Lock()
        self.__events: List[ScanEvent] = []

    def publish(self, event: ScanEvent) -> None:
        with self.__lock:
            self.__events.append(event)

    @property
    def events(self) -> List[ScanEvent]:
        with self.__lock:
            return list(self.__events)

    def of_type(self, event_type: Type[ScanEvent]) -> List[ScanEvent]:
        return [e for e in self.events if isinstance(e, event_type)]

    def ticks(self) -> List[int]:
        return [e.seconds_remaining for e in self.of_type(ScanTickEvent)]  # type: ignore[attr-defined]

    def new_devices(self) -> List[NewDeviceEvent]:
        return self.of_type(NewDeviceEvent)  # type: ignore[return-value]

    def stopped_count(self) -> int:
        return len(self.of_type(ScanStoppedEvent))


class FakeBrowser(MdnsBrowser):
    """In-memory MdnsBrowser. Tests feed records with `deliver()`."""

    __test__ = False

    def __init__(
        self,
        client: MdnsBrowser.Client,
        config: ScanConfig,
        start_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__()
        self.client = client
        self.config = config
        self.start_error = start_error
        self.started = False
        self.closed = False
        self.run_cancelled = False
        self.__stop_running: Optional[asyncio.Event] = None

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.__stop_running = asyncio.Event()
        self.started = True

    async def run(self) -> None:
        assert self.__stop_running is not None
        try:
            await self.__stop_running.wait()
        except asyncio.CancelledError:
            self.run_cancelled = True
            raise

    def finish_run(self) -> None:
        """Makes `run()` return as if the browser gave up on its own."""
        assert self.__stop_running is not None
        self.__stop_running.set()

    async def deliver(
        self, ip: str, name: str, service_type: str, port: int
    ) -> None:
        """Hands one resolved record to the client, as `run()` would."""
        await self.client._on_record(ip, name, service_type, port)

    async def close(self) -> None:
        self.closed = True

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        pass

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        pass

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        pass


class FakeBrowserFactory:
    """Browser factory handing out `FakeBrowser`s and remembering them."""

    __test__ = False

    def __init__(self, start_error: Optional[BaseException] = None) -> None:
        self.start_error = start_error
        self.browsers: List[FakeBrowser] = []

    def __call__(
        self, client: MdnsBrowser.Client, config: ScanConfig
    ) -> FakeBrowser:
        browser = FakeBrowser(client, config, self.start_error)
        self.browsers.append(browser)
        return browser

    @property
    def latest(self) -> FakeBrowser:
        assert self.browsers, "No browser was created."
        return self.browsers[-1]


async def wait_until(
    predicate: Callable[[], bool], timeout: float = 2.0
) -> None:
    """Polls |predicate| on the event loop until it holds or |timeout| ends."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout.")
        await asyncio.sleep(0.001)
