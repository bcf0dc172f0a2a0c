"""Provides EventSubscription, an async iterator over published scan events.

Producers hand events over with `_on_event()` from any thread; a single
consumer reads them with `async for event in subscription`. The queue is
bounded: when a consumer falls behind, the oldest events are discarded.
"""

import asyncio
import logging
import threading
from collections import deque
from typing import AsyncIterator, Callable, Deque, Optional

from lanscan.events.scan_event import ScanEvent

logger = logging.getLogger(__name__)

# Enough for a full scan window of ticks plus a busy network.
MAX_QUEUED_EVENTS: int = 256


class EventSubscription(AsyncIterator[ScanEvent]):
    """A single subscriber's view of the event stream.

    The subscription binds to the event loop of its first reader. Iteration
    ends once `close()` has been called and every queued event was read.
    """

    def __init__(
        self,
        max_queued_events: int = MAX_QUEUED_EVENTS,
        on_close: Optional[Callable[["EventSubscription"], None]] = None,
    ) -> None:
        """Initializes the EventSubscription.

        Args:
            max_queued_events: Bound of the internal queue; must be positive.
            on_close: Optional callback invoked once when closed, used by
                `BroadcastEventSink` to forget the subscription.
        """
        if max_queued_events <= 0:
            raise ValueError(
                f"max_queued_events must be positive, got {max_queued_events}."
            )

        self.__max_queued_events = max_queued_events
        self.__on_close = on_close
        self.__events: Deque[ScanEvent] = deque()
        self.__barrier = asyncio.Event()
        self.__lock = threading.Lock()  # Protects everything below.
        self.__event_loop: Optional[asyncio.AbstractEventLoop] = None
        self.__is_closed = False
        self.__dropped_count = 0

    @property
    def is_closed(self) -> bool:
        with self.__lock:
            return self.__is_closed

    @property
    def dropped_count(self) -> int:
        """Number of events discarded because the queue was full."""
        with self.__lock:
            return self.__dropped_count

    def _on_event(self, event: ScanEvent) -> None:
        """Queues |event| for the consumer. Thread-safe, never blocks."""
        with self.__lock:
            if self.__is_closed:
                return
            if len(self.__events) >= self.__max_queued_events:
                dropped = self.__events.popleft()
                self.__dropped_count += 1
                logger.warning(
                    "EventSubscription full, dropping oldest '%s' event.",
                    dropped.name,
                )
            self.__events.append(event)
            event_loop = self.__event_loop

        self.__wake(event_loop)

    async def next_event(self) -> Optional[ScanEvent]:
        """Waits for the next event.

        Returns:
            The oldest queued event, or None once the subscription is closed
            and drained.

        Raises:
            RuntimeError: If called from a different event loop than the one
                the subscription was first read from.
        """
        current_loop = asyncio.get_running_loop()
        while True:
            with self.__lock:
                if self.__event_loop is None:
                    self.__event_loop = current_loop
                elif self.__event_loop is not current_loop:
                    raise RuntimeError(
                        "EventSubscription read from a different event loop "
                        "than it was first associated with."
                    )

                if self.__events:
                    return self.__events.popleft()
                if self.__is_closed:
                    return None
                self.__barrier.clear()

            await self.__barrier.wait()

    def close(self) -> None:
        """Ends the subscription. Queued events can still be read. Idempotent."""
        with self.__lock:
            if self.__is_closed:
                return
            self.__is_closed = True
            event_loop = self.__event_loop

        self.__wake(event_loop)
        if self.__on_close is not None:
            self.__on_close(self)

    def __wake(self, event_loop: Optional[asyncio.AbstractEventLoop]) -> None:
        # No loop yet means no reader is waiting.
        if event_loop is None or event_loop.is_closed():
            return
        event_loop.call_soon_threadsafe(self.__barrier.set)

    def __aiter__(self) -> "EventSubscription":
        return self

    async def __anext__(self) -> ScanEvent:
        event = await self.next_event()
        if event is None:
            raise StopAsyncIteration()
        return event

    def __len__(self) -> int:
        """Returns the number of events waiting to be read."""
        with self.__lock:
            return len(self.__events)
