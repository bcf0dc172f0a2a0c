"""BroadcastEventSink: fans scan events out to any number of subscribers."""

import logging
import threading
from typing import List

from lanscan.events.event_sink import EventSink
from lanscan.events.event_subscription import (
    MAX_QUEUED_EVENTS,
    EventSubscription,
)
from lanscan.events.scan_event import ScanEvent

logger = logging.getLogger(__name__)


class BroadcastEventSink(EventSink):
    """An `EventSink` that copies every event to each open subscription.

    This is the surface a command/event bridge taps: it calls `subscribe()`
    once per listener and forwards `event.name` and `event.payload()`.
    Subscribing and publishing are thread-safe; publishing never blocks.
    """

    def __init__(self, max_queued_events: int = MAX_QUEUED_EVENTS) -> None:
        self.__max_queued_events = max_queued_events
        self.__subscriptions: List[EventSubscription] = []
        self.__lock = threading.Lock()

    def subscribe(self) -> EventSubscription:
        """Returns a new subscription receiving every later event."""
        subscription = EventSubscription(
            self.__max_queued_events, on_close=self.__remove
        )
        with self.__lock:
            self.__subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: EventSubscription) -> None:
        """Closes |subscription|; it receives nothing further."""
        subscription.close()

    def publish(self, event: ScanEvent) -> None:
        with self.__lock:
            subscriptions = list(self.__subscriptions)

        logger.debug(
            "Publishing '%s' to %d subscriber(s).",
            event.name,
            len(subscriptions),
        )
        for subscription in subscriptions:
            # pylint: disable=W0212 # Feeding the subscription's queue
            subscription._on_event(event)

    def close(self) -> None:
        """Closes every open subscription."""
        with self.__lock:
            subscriptions = list(self.__subscriptions)
        for subscription in subscriptions:
            subscription.close()

    def __remove(self, subscription: EventSubscription) -> None:
        with self.__lock:
            try:
                self.__subscriptions.remove(subscription)
            except ValueError:
                logger.debug("Subscription was already removed.")

    def __len__(self) -> int:
        """Returns the number of open subscriptions."""
        with self.__lock:
            return len(self.__subscriptions)
