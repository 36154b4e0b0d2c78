"""
consulconf - Change Notification

Two ways to hear about refreshed configuration:

- watch(callback): one slot, last registration wins, called with the source
- subscribe(): any number of Subscription streams of ChangeEvent

Neither fires for the load done while the source is built, and both fire
exactly once per refresh that applied a newer version. Everything runs on the
refresh thread, so a slow callback delays the next poll.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from consulconf.core.logging import get_logger

logger = get_logger(__name__)

WatchCallback = Callable[[Any], None]


@dataclass(frozen=True)
class ChangeEvent:
    """A refresh that replaced the snapshot.

    Attributes:
        previous_version: Version served before the refresh
        version: Version now served
        changed_keys: Namespace-relative keys added, removed or modified
    """

    previous_version: int
    version: int
    changed_keys: frozenset[str]


class Subscription:
    """Stream of ChangeEvents for one observer.

    Iterating blocks until the next event and stops once the subscription
    is closed, either explicitly or because the source was cancelled.

    Usage:
        with source.subscribe() as changes:
            for event in changes:
                reload(event.changed_keys)
    """

    def __init__(self, notifier: WatchNotifier, maxsize: int = 0) -> None:
        self._notifier = notifier
        self._queue: queue.Queue[ChangeEvent | None] = queue.Queue(maxsize)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def _publish(self, event: ChangeEvent | None) -> None:
        # A bounded queue keeps the newest events.
        while True:
            try:
                self._queue.put_nowait(event)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass

    def get(self, timeout: float | None = None) -> ChangeEvent | None:
        """Wait for the next event.

        Args:
            timeout: Seconds to wait (None blocks)

        Returns:
            The next ChangeEvent, or None on timeout or once closed
        """
        if self.closed and self._queue.empty():
            return None
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        """Stop receiving events and end any iteration in progress."""
        if self.closed:
            return
        self._closed.set()
        self._notifier.detach(self)
        self._publish(None)

    def __iter__(self) -> Iterator[ChangeEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class WatchNotifier:
    """Holds the watch slot and the open subscriptions of one source."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._callback: WatchCallback | None = None
        self._subscriptions: list[Subscription] = []

    def watch(self, callback: WatchCallback) -> None:
        """Register callback, replacing any earlier one."""
        with self._lock:
            self._callback = callback

    def subscribe(self, maxsize: int = 0) -> Subscription:
        """Open a new subscription.

        Args:
            maxsize: Queue bound (0 is unbounded; when full, oldest events drop)
        """
        subscription = Subscription(self, maxsize=maxsize)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def detach(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def notify(self, source: Any, event: ChangeEvent) -> None:
        """Run the watch callback, then fan the event out to subscribers.

        A failing callback is logged and does not stop delivery.
        """
        with self._lock:
            callback = self._callback
            subscriptions = list(self._subscriptions)

        if callback is not None:
            try:
                callback(source)
            except Exception:
                logger.exception("watch_callback_failed", version=event.version)

        for subscription in subscriptions:
            subscription._publish(event)

    def close_all(self) -> None:
        """Close every open subscription."""
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.close()
