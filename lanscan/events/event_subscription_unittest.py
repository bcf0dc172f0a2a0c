"""Unit tests for the EventSubscription class."""

import asyncio
import threading

import pytest

from lanscan.events.event_subscription import EventSubscription
from lanscan.events.scan_event import ScanStoppedEvent, ScanTickEvent


def test_invalid_max_queued_events():
    with pytest.raises(ValueError):
        EventSubscription(max_queued_events=0)


@pytest.mark.asyncio
class TestEventSubscription:
    """Tests core functionality of the EventSubscription."""

    async def test_event_available_before_wait(self) -> None:
        subscription = EventSubscription()
        subscription._on_event(ScanTickEvent(29))

        assert len(subscription) == 1
        assert await subscription.next_event() == ScanTickEvent(29)
        assert len(subscription) == 0

    async def test_wait_blocks_until_event(self) -> None:
        subscription = EventSubscription()

        wait_task = asyncio.create_task(subscription.next_event())
        await asyncio.sleep(0.01)
        assert not wait_task.done()

        subscription._on_event(ScanTickEvent(3))
        result = await asyncio.wait_for(wait_task, timeout=1.0)

        assert result == ScanTickEvent(3)

    async def test_events_delivered_in_order(self) -> None:
        subscription = EventSubscription()
        for remaining in (2, 1, 0):
            subscription._on_event(ScanTickEvent(remaining))
        subscription._on_event(ScanStoppedEvent())
        subscription.close()

        received = [event async for event in subscription]

        assert received == [
            ScanTickEvent(2),
            ScanTickEvent(1),
            ScanTickEvent(0),
            ScanStoppedEvent(),
        ]

    async def test_queue_limit_drops_oldest(self) -> None:
        subscription = EventSubscription(max_queued_events=3)
        for remaining in range(5, 0, -1):
            subscription._on_event(ScanTickEvent(remaining))

        assert len(subscription) == 3
        assert subscription.dropped_count == 2
        assert await subscription.next_event() == ScanTickEvent(3)

    async def test_close_wakes_waiting_reader(self) -> None:
        subscription = EventSubscription()
        wait_task = asyncio.create_task(subscription.next_event())
        await asyncio.sleep(0.01)

        subscription.close()

        assert await asyncio.wait_for(wait_task, timeout=1.0) is None
        assert subscription.is_closed

    async def test_events_after_close_are_ignored(self) -> None:
        subscription = EventSubscription()
        subscription.close()
        subscription._on_event(ScanTickEvent(1))

        assert len(subscription) == 0
        with pytest.raises(StopAsyncIteration):
            await subscription.__anext__()

    async def test_close_is_idempotent_and_calls_back_once(self) -> None:
        closed = []
        subscription = EventSubscription(on_close=closed.append)

        subscription.close()
        subscription.close()

        assert closed == [subscription]

    async def test_event_from_other_thread(self) -> None:
        subscription = EventSubscription()
        wait_task = asyncio.create_task(subscription.next_event())
        await asyncio.sleep(0.01)

        thread = threading.Thread(
            target=subscription._on_event, args=(ScanTickEvent(7),)
        )
        thread.start()
        thread.join()

        assert await asyncio.wait_for(wait_task, timeout=1.0) == (
            ScanTickEvent(7)
        )

    async def test_reading_from_other_loop_raises(self) -> None:
        subscription = EventSubscription()
        subscription._on_event(ScanTickEvent(1))
        await subscription.next_event()

        errors = []

        def read_on_new_loop() -> None:
            try:
                asyncio.run(subscription.next_event())
            except RuntimeError as e:
                errors.append(e)

        subscription._on_event(ScanTickEvent(0))
        thread = threading.Thread(target=read_on_new_loop)
        thread.start()
        thread.join()

        assert len(errors) == 1
        assert "different event loop" in str(errors[0])
