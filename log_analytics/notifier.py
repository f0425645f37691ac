"""One-way publish/subscribe channel for newly created log records."""

import logging
import queue
import threading
from collections import defaultdict
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "/topic/logs"


class NotificationError(Exception):
    """Raised when a record cannot be published."""


@runtime_checkable
class NotificationSink(Protocol):
    def publish(self, topic: str, record) -> None: ...


class Subscription:
    """A subscriber's bounded inbox for one topic."""

    def __init__(self, topic, maxsize):
        self.topic = topic
        self._queue = queue.Queue(maxsize=maxsize)
        self.dropped = 0

    def offer(self, record) -> bool:
        try:
            self._queue.put_nowait(record)
            return True
        except queue.Full:
            self.dropped += 1
            return False

    def get(self, timeout=None):
        """Block for the next record; raises queue.Empty on timeout."""
        return self._queue.get(timeout=timeout)

    def drain(self):
        items = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items


class Broadcaster:
    """Fans published records out to every subscription on the topic.

    Publishing never blocks: a subscriber whose inbox is full misses the record.
    """

    def __init__(self, queue_size=100):
        self._queue_size = queue_size
        self._subscriptions = defaultdict(list)
        self._lock = threading.Lock()
        self._closed = False

    def subscribe(self, topic=DEFAULT_TOPIC):
        subscription = Subscription(topic, self._queue_size)
        with self._lock:
            self._subscriptions[topic].append(subscription)
        logger.info("Subscriber added to %s", topic)
        return subscription

    def unsubscribe(self, subscription):
        with self._lock:
            subscribers = self._subscriptions.get(subscription.topic, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
                logger.info("Subscriber removed from %s", subscription.topic)

    def subscriber_count(self, topic=DEFAULT_TOPIC):
        with self._lock:
            return len(self._subscriptions.get(topic, []))

    def publish(self, topic, record):
        with self._lock:
            if self._closed:
                raise NotificationError("Broadcaster is closed")
            subscribers = list(self._subscriptions.get(topic, []))

        for subscription in subscribers:
            if not subscription.offer(record):
                logger.warning("Subscriber inbox full on %s, dropped record %s",
                               topic, getattr(record, "id", None))

    def close(self):
        with self._lock:
            self._closed = True
            self._subscriptions.clear()
