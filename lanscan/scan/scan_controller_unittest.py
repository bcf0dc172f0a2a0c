"""Tests for ScanController."""

import asyncio
from typing import AsyncGenerator, List, Optional, Tuple

import pytest
import pytest_asyncio

from lanscan.discovery.device_type import DeviceType
from lanscan.discovery.mdns.mdns_browser import MdnsBrowser
from lanscan.discovery.mdns.service_browser import ServiceBrowser
from lanscan.discovery.network_error import NetworkError
from lanscan.events.broadcast_event_sink import BroadcastEventSink
from lanscan.events.event_sink import EventSink
from lanscan.events.scan_event import (
    NewDeviceEvent,
    ScanEvent,
    ScanStoppedEvent,
    ScanTickEvent,
)
from lanscan.scan.scan_config import ScanConfig
from lanscan.scan.scan_controller import (
    ScanController,
    default_browser_factory,
)
from lanscan.scan.scan_state import ScanState
from lanscan.test.scan_fixtures import (
    FakeBrowser,
    FakeBrowserFactory,
    RecordingEventSink,
    wait_until,
)

BLUESOUND = "_musc._tcp.local."
HTTP = "_http._tcp.local."
SPOTIFY = "_spotify-connect._tcp.local."

# 30 ticks at 10ms: a full scan window takes about 0.3 seconds.
FAST_TICK_SECONDS = 0.01


class FakeClock:
    __test__ = False

    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def sink() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture
def factory() -> FakeBrowserFactory:
    return FakeBrowserFactory()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def controller(
    sink: RecordingEventSink, factory: FakeBrowserFactory, clock: FakeClock
) -> AsyncGenerator[ScanController, None]:
    controller = ScanController(
        sink,
        ScanConfig(tick_interval_seconds=FAST_TICK_SECONDS),
        browser_factory=factory,
        clock=clock,
    )
    yield controller
    await controller.close()


# --- Construction ---


def test_event_sink_none_raises():
    with pytest.raises(ValueError, match="event_sink cannot be None"):
        ScanController(None)  # type: ignore[arg-type]


def test_event_sink_wrong_type_raises():
    with pytest.raises(TypeError, match="EventSink"):
        ScanController(object())  # type: ignore[arg-type]


def test_default_config_is_thirty_seconds(sink):
    controller = ScanController(sink)
    assert controller.config.scan_duration_seconds == 30
    assert controller.config.tick_interval_seconds == 1.0


class NullClient(MdnsBrowser.Client):
    __test__ = False

    async def _on_record(
        self, ip: str, name: str, service_type: str, port: int
    ) -> None:
        pass


def test_default_browser_factory_builds_service_browser():
    config = ScanConfig(service_types=[BLUESOUND, SPOTIFY])

    browser = default_browser_factory(NullClient(), config)

    assert isinstance(browser, ServiceBrowser)
    assert browser.service_types == (BLUESOUND, SPOTIFY)


# --- Idle behaviour ---


@pytest.mark.asyncio
async def test_initially_idle(
    controller: ScanController, sink: RecordingEventSink
):
    assert not controller.is_scanning()
    assert controller.state is ScanState.IDLE
    assert controller.get_discovered_devices() == []
    assert controller.elapsed_ms() == 0
    assert sink.events == []


@pytest.mark.asyncio
async def test_stop_while_idle_is_noop(controller, sink, factory):
    await controller.stop_scan()
    await controller.stop_scan()

    assert sink.events == []
    assert factory.browsers == []
    assert not controller.is_scanning()


# --- Lifecycle ---


@pytest.mark.asyncio
async def test_start_scan_returns_immediately(controller, sink, factory):
    await controller.start_scan()

    assert controller.is_scanning()
    assert controller.state is ScanState.SCANNING
    assert factory.latest.started
    assert sink.events == []

    await controller.stop_scan()


@pytest.mark.asyncio
async def test_full_scan_counts_down_then_stops(controller, sink, factory):
    await controller.start_scan()

    await wait_until(lambda: sink.stopped_count() == 1, timeout=5.0)

    assert sink.ticks() == list(range(29, -1, -1))
    assert isinstance(sink.events[-1], ScanStoppedEvent)
    assert sink.stopped_count() == 1
    assert not controller.is_scanning()
    assert factory.latest.run_cancelled
    assert factory.latest.closed

    # Nothing follows "scan stopped".
    await asyncio.sleep(5 * FAST_TICK_SECONDS)
    assert sink.stopped_count() == 1
    assert len(sink.ticks()) == 30


@pytest.mark.asyncio
async def test_short_scan_duration(sink, factory):
    controller = ScanController(
        sink,
        ScanConfig(scan_duration_seconds=3, tick_interval_seconds=0.01),
        browser_factory=factory,
    )
    await controller.start_scan()
    await wait_until(lambda: sink.stopped_count() == 1)

    assert [type(e) for e in sink.events] == [
        ScanTickEvent,
        ScanTickEvent,
        ScanTickEvent,
        ScanStoppedEvent,
    ]
    assert sink.ticks() == [2, 1, 0]


@pytest.mark.asyncio
async def test_manual_stop_halts_ticks(sink, factory):
    controller = ScanController(
        sink,
        ScanConfig(tick_interval_seconds=0.05),
        browser_factory=factory,
    )
    await controller.start_scan()
    await wait_until(lambda: len(sink.ticks()) == 5)

    await controller.stop_scan()

    assert sink.ticks() == [29, 28, 27, 26, 25]
    assert sink.stopped_count() == 1
    assert isinstance(sink.events[-1], ScanStoppedEvent)
    assert not controller.is_scanning()
    assert factory.latest.run_cancelled
    assert factory.latest.closed

    await asyncio.sleep(0.2)
    assert len(sink.events) == 6


@pytest.mark.asyncio
async def test_double_stop_emits_once(controller, sink):
    await controller.start_scan()

    await controller.stop_scan()
    await controller.stop_scan()

    assert sink.stopped_count() == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("delay_ticks", [0.0, 0.5, 0.9, 1.0, 1.1, 1.5])
async def test_stop_racing_timeout_emits_once(sink, factory, delay_ticks):
    interval = 0.02
    controller = ScanController(
        sink,
        ScanConfig(scan_duration_seconds=1, tick_interval_seconds=interval),
        browser_factory=factory,
    )
    await controller.start_scan()
    await asyncio.sleep(delay_ticks * interval)

    await asyncio.gather(
        controller.stop_scan(), controller.stop_scan(), controller.stop_scan()
    )
    await asyncio.sleep(3 * interval)

    assert sink.stopped_count() == 1
    assert isinstance(sink.events[-1], ScanStoppedEvent)
    assert sink.ticks() in ([], [0])
    assert not controller.is_scanning()


@pytest.mark.asyncio
async def test_network_error_leaves_controller_idle(sink):
    factory = FakeBrowserFactory(
        start_error=NetworkError("Failed to start mDNS browsing")
    )
    controller = ScanController(sink, browser_factory=factory)

    with pytest.raises(NetworkError):
        await controller.start_scan()

    assert not controller.is_scanning()
    assert factory.latest.closed
    assert not factory.latest.started

    await asyncio.sleep(0.01)
    assert sink.events == []


@pytest.mark.asyncio
async def test_retry_after_network_error(sink):
    factory = FakeBrowserFactory(start_error=NetworkError("bind failed"))
    controller = ScanController(
        sink,
        ScanConfig(tick_interval_seconds=FAST_TICK_SECONDS),
        browser_factory=factory,
    )
    with pytest.raises(NetworkError):
        await controller.start_scan()

    factory.start_error = None
    await controller.start_scan()

    assert controller.is_scanning()
    await controller.stop_scan()
    assert sink.stopped_count() == 1


class HangingBrowser(FakeBrowser):
    __test__ = False

    async def start(self) -> None:
        await asyncio.Event().wait()


@pytest.mark.asyncio
async def test_cancelled_start_closes_browser(sink):
    browsers = []

    def factory(client, config):
        browser = HangingBrowser(client, config)
        browsers.append(browser)
        return browser

    controller = ScanController(sink, browser_factory=factory)
    start_task = asyncio.create_task(controller.start_scan())
    await wait_until(lambda: len(browsers) == 1)
    await asyncio.sleep(0.01)

    start_task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await start_task

    assert browsers[0].closed
    assert not controller.is_scanning()
    assert sink.events == []

    # The lifecycle lock was released.
    await asyncio.wait_for(controller.stop_scan(), timeout=1.0)


@pytest.mark.asyncio
async def test_browser_ending_early_does_not_end_scan(
    controller, sink, factory
):
    await controller.start_scan()
    factory.latest.finish_run()
    await asyncio.sleep(3 * FAST_TICK_SECONDS)

    assert controller.is_scanning()
    await wait_until(lambda: sink.stopped_count() == 1, timeout=5.0)
    assert sink.ticks()[-1] == 0


# --- Devices ---


@pytest.mark.asyncio
async def test_new_device_event_once_per_ip(controller, sink, factory, clock):
    await controller.start_scan()
    browser = factory.latest

    clock.now += 0.25
    await browser.deliver("192.168.1.20", "Node", BLUESOUND, 8090)
    clock.now += 0.25
    await browser.deliver("192.168.1.20", "Node", HTTP, 80)
    await browser.deliver("192.168.1.20", "Node", BLUESOUND, 8090)

    new_devices = sink.new_devices()
    assert len(new_devices) == 1
    assert new_devices[0].device.discovery_time_ms == 250
    assert len(new_devices[0].device.services) == 1

    devices = controller.get_discovered_devices()
    assert len(devices) == 1
    assert devices[0].discovery_time_ms == 250
    assert [(s.service_type, s.port) for s in devices[0].services] == [
        (BLUESOUND, 8090),
        (HTTP, 80),
    ]
    assert devices[0].services[0].last_seen_ms == 500
    assert devices[0].services[1].last_seen_ms == 500

    await controller.stop_scan()


@pytest.mark.asyncio
async def test_unknown_service_type_is_generic(controller, sink, factory):
    await controller.start_scan()

    await factory.latest.deliver("192.168.1.9", "Thing", "_foo._tcp.local.", 1)

    device = sink.new_devices()[0].device
    assert device.services[0].device_type is DeviceType.GENERIC
    await controller.stop_scan()


@pytest.mark.asyncio
async def test_devices_match_events(controller, sink, factory, clock):
    await controller.start_scan()
    browser = factory.latest

    for index, ip in enumerate(["192.168.1.5", "192.168.1.3", "192.168.1.9"]):
        clock.now += 0.1
        await browser.deliver(ip, f"Device {index}", SPOTIFY, 4070)

    events = sink.new_devices()
    devices = controller.get_discovered_devices()
    assert [e.device for e in events] == devices
    assert len({d.ip for d in devices}) == 3
    times = [d.discovery_time_ms for d in devices]
    assert times == sorted(times)

    # Reading is idempotent.
    assert controller.get_discovered_devices() == devices
    await controller.stop_scan()


@pytest.mark.asyncio
async def test_devices_readable_after_stop(controller, factory):
    await controller.start_scan()
    await factory.latest.deliver("192.168.1.20", "Node", BLUESOUND, 11000)
    await controller.stop_scan()

    devices = controller.get_discovered_devices()
    assert [d.ip for d in devices] == ["192.168.1.20"]


@pytest.mark.asyncio
async def test_records_after_stop_are_dropped(controller, sink, factory):
    await controller.start_scan()
    browser = factory.latest
    await controller.stop_scan()

    await browser.deliver("192.168.1.20", "Node", BLUESOUND, 11000)

    assert sink.new_devices() == []
    assert controller.get_discovered_devices() == []
    assert isinstance(sink.events[-1], ScanStoppedEvent)


@pytest.mark.asyncio
async def test_restart_clears_registry_and_stops_old_scan(
    controller, sink, factory
):
    await controller.start_scan()
    first_browser = factory.latest
    await first_browser.deliver("192.168.1.20", "Node", BLUESOUND, 11000)

    await controller.start_scan()

    assert len(factory.browsers) == 2
    assert first_browser.closed
    assert controller.is_scanning()
    assert controller.get_discovered_devices() == []
    assert sink.stopped_count() == 1

    # The old scan's browser can no longer add devices.
    await first_browser.deliver("192.168.1.21", "Late", BLUESOUND, 11000)
    await factory.latest.deliver("192.168.1.20", "Node", BLUESOUND, 11000)

    assert [e.device.ip for e in sink.new_devices()] == [
        "192.168.1.20",
        "192.168.1.20",
    ]
    await controller.stop_scan()
    assert sink.stopped_count() == 2


@pytest.mark.asyncio
async def test_elapsed_ms_uses_clock(controller, clock):
    await controller.start_scan()
    clock.now += 1.5

    assert controller.elapsed_ms() == 1500
    await controller.stop_scan()
    assert controller.elapsed_ms() == 0


# --- Sinks ---


class FailingSink(EventSink):
    __test__ = False

    def __init__(self) -> None:
        self.events = []

    def publish(self, event: ScanEvent) -> None:
        self.events.append(event)
        if isinstance(event, NewDeviceEvent):
            raise RuntimeError("subscriber went away")


@pytest.mark.asyncio
async def test_failing_sink_does_not_break_scan(factory):
    sink = FailingSink()
    controller = ScanController(
        sink,
        ScanConfig(scan_duration_seconds=2, tick_interval_seconds=0.01),
        browser_factory=factory,
    )
    await controller.start_scan()
    await factory.latest.deliver("192.168.1.20", "Node", BLUESOUND, 11000)

    await wait_until(
        lambda: any(isinstance(e, ScanStoppedEvent) for e in sink.events)
    )

    assert len(controller.get_discovered_devices()) == 1
    assert [type(e) for e in sink.events] == [
        NewDeviceEvent,
        ScanTickEvent,
        ScanTickEvent,
        ScanStoppedEvent,
    ]


@pytest.mark.asyncio
async def test_broadcast_subscriber_sees_whole_scan(factory):
    sink = BroadcastEventSink()
    subscription = sink.subscribe()
    controller = ScanController(
        sink,
        ScanConfig(scan_duration_seconds=2, tick_interval_seconds=0.01),
        browser_factory=factory,
    )

    await controller.start_scan()
    await factory.latest.deliver("192.168.1.20", "Node", BLUESOUND, 11000)

    received = []
    async for event in subscription:
        received.append((event.name, event.payload()))
        if isinstance(event, ScanStoppedEvent):
            break

    assert received[0][0] == "new-device"
    assert received[0][1]["ip"] == "192.168.1.20"
    assert received[1:] == [
        ("scan-tick", 1),
        ("scan-tick", 0),
        ("scan-stopped", None),
    ]


class QueryingSink(EventSink):
    """Reads the controller's state from inside publish()."""

    __test__ = False

    def __init__(self) -> None:
        self.controller: Optional[ScanController] = None
        self.seen: List[Tuple[str, bool, int]] = []

    def publish(self, event: ScanEvent) -> None:
        assert self.controller is not None
        self.seen.append(
            (
                event.name,
                self.controller.is_scanning(),
                len(self.controller.get_discovered_devices()),
            )
        )


@pytest.mark.asyncio
async def test_sink_can_query_controller_while_publishing(factory):
    sink = QueryingSink()
    controller = ScanController(sink, browser_factory=factory)
    sink.controller = controller

    await controller.start_scan()
    await factory.latest.deliver("192.168.1.20", "Node", BLUESOUND, 11000)
    await controller.stop_scan()

    assert sink.seen == [
        ("new-device", True, 1),
        ("scan-stopped", False, 1),
    ]
