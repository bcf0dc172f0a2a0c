"""Tests for BroadcastEventSink."""

import asyncio

import pytest

from lanscan.discovery.device import Device
from lanscan.events.broadcast_event_sink import BroadcastEventSink
from lanscan.events.event_sink import EventSink
from lanscan.events.scan_event import (
    NewDeviceEvent,
    ScanStoppedEvent,
    ScanTickEvent,
)


def test_is_event_sink():
    assert isinstance(BroadcastEventSink(), EventSink)


def test_publish_without_subscribers():
    sink = BroadcastEventSink()
    sink.publish(ScanTickEvent(29))
    assert len(sink) == 0


@pytest.mark.asyncio
async def test_every_subscriber_gets_every_event():
    sink = BroadcastEventSink()
    first = sink.subscribe()
    second = sink.subscribe()
    device = Device(name="Node", ip="192.168.1.20", discovery_time_ms=5)

    sink.publish(NewDeviceEvent(device))
    sink.publish(ScanTickEvent(29))
    sink.publish(ScanStoppedEvent())
    sink.close()

    expected = [NewDeviceEvent(device), ScanTickEvent(29), ScanStoppedEvent()]
    assert [e async for e in first] == expected
    assert [e async for e in second] == expected


@pytest.mark.asyncio
async def test_late_subscriber_misses_earlier_events():
    sink = BroadcastEventSink()
    sink.publish(ScanTickEvent(29))

    subscription = sink.subscribe()
    sink.publish(ScanTickEvent(28))

    assert await subscription.next_event() == ScanTickEvent(28)


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery():
    sink = BroadcastEventSink()
    subscription = sink.subscribe()
    assert len(sink) == 1

    sink.unsubscribe(subscription)
    sink.publish(ScanTickEvent(1))

    assert len(sink) == 0
    assert await subscription.next_event() is None


@pytest.mark.asyncio
async def test_subscriber_waits_for_publish():
    sink = BroadcastEventSink()
    subscription = sink.subscribe()
    wait_task = asyncio.create_task(subscription.next_event())
    await asyncio.sleep(0.01)

    sink.publish(ScanStoppedEvent())

    assert await asyncio.wait_for(wait_task, 1.0) == ScanStoppedEvent()


def test_event_names_and_payloads():
    device = Device(name="Node", ip="192.168.1.20", discovery_time_ms=5)

    assert NewDeviceEvent(device).name == "new-device"
    assert NewDeviceEvent(device).payload() == device.to_payload()
    assert ScanTickEvent(12).name == "scan-tick"
    assert ScanTickEvent(12).payload() == 12
    assert ScanStoppedEvent().name == "scan-stopped"
    assert ScanStoppedEvent().payload() is None
