"""
Broadcast subscription channels for change propagation
"""

import queue
import threading
from typing import Any, Callable, List, Optional

from .errors import ChannelClosedError
from ignore_status.utils import get_logger

logger = get_logger(__name__)

# Queued behind the last event when a subscription closes
_CLOSED = object()


class Subscription:
    """
    A single consumer of a Channel.

    Events go to the callback, synchronously on the publishing thread, when
    one is given; otherwise they are queued for polling with get() or drain().
    """

    def __init__(self, channel: 'Channel', callback: Optional[Callable[[Any], None]] = None):
        self._channel = channel
        self._callback = callback
        self._queue: queue.Queue = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def deliver(self, event: Any):
        if self.closed:
            return
        if self._callback is None:
            self._queue.put(event)
            return
        try:
            self._callback(event)
        except Exception as e:
            logger.error(f"Subscriber of '{self._channel.name}' failed: {e}", exc_info=True)

    def get(self, timeout: Optional[float] = None) -> Any:
        """
        Take the next queued event

        Args:
            timeout: Seconds to wait (None waits forever)

        Returns:
            The event, or None if nothing arrived before the timeout

        Raises:
            ChannelClosedError: if the subscription is closed and drained
        """
        try:
            event = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if event is _CLOSED:
            # keep the marker so later reads fail the same way
            self._queue.put(_CLOSED)
            raise ChannelClosedError(f"Subscription to '{self._channel.name}' is closed")
        return event

    def drain(self) -> List[Any]:
        """Return every queued event without blocking"""
        events = []
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                break
            if event is not _CLOSED:
                events.append(event)
        if self.closed:
            self._queue.put(_CLOSED)
        return events

    def close(self):
        """Detach from the channel. Safe to call more than once."""
        if self.closed:
            return
        self._closed.set()
        self._queue.put(_CLOSED)
        self._channel._remove(self)


class Channel:
    """Multi-consumer broadcast channel"""

    def __init__(self, name: str):
        self.name = name
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, callback: Optional[Callable[[Any], None]] = None) -> Subscription:
        """
        Subscribe to the channel

        Args:
            callback: Optional function called with each event; events
                for a callback subscription are not queued

        Returns:
            Subscription handle; close it to unsubscribe
        """
        subscription = Subscription(self, callback)
        with self._lock:
            if self._closed:
                subscription._closed.set()
                subscription._queue.put(_CLOSED)
                return subscription
            self._subscriptions.append(subscription)
        return subscription

    def publish(self, event: Any) -> int:
        """
        Deliver an event to every live subscription

        Returns:
            Number of subscriptions the event was delivered to
        """
        with self._lock:
            if self._closed:
                return 0
            targets = list(self._subscriptions)
        for subscription in targets:
            subscription.deliver(event)
        logger.trace(f"Published {event!r} on '{self.name}' to {len(targets)} subscribers")
        return len(targets)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def close(self):
        """Close the channel and every subscription"""
        with self._lock:
            self._closed = True
            targets = list(self._subscriptions)
        for subscription in targets:
            subscription.close()

    def _remove(self, subscription: Subscription):
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
