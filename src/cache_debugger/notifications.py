"""
In-process signal transport.

A small named publish/subscribe bus that decouples the instrumented facade
from the subscribers that turn signals into events.

Thread Safety:
- Registration and removal are guarded by a threading.Lock
- publish() snapshots the listener list under the lock and invokes
  listeners outside it, so listeners may subscribe/unsubscribe freely
"""

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]

_subscription_ids = itertools.count(1)


@dataclass(eq=False)
class Subscription:
    """Handle returned by Notifier.subscribe.

    Attributes:
        name: Signal name, or None for a catch-all listener
        listener: Callable invoked with (name, payload)
    """

    name: str | None
    listener: Listener
    id: int = field(default_factory=lambda: next(_subscription_ids))
    active: bool = True

    def matches(self, name: str) -> bool:
        return self.name is None or self.name == name


class Notifier:
    """Thread-safe named publish/subscribe bus.

    Example:
        ```python
        notifier = Notifier()
        handle = notifier.subscribe("cache_read.hit", lambda name, payload: print(name))
        notifier.publish("cache_read.hit", payload)
        notifier.unsubscribe(handle)
        ```
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._subscriptions: list[Subscription] = []

    def subscribe(self, name: str | None, listener: Listener) -> Subscription:
        """Register a listener for one signal name (or all, when name is None).

        Raises:
            TypeError: If listener is not callable
        """
        if not callable(listener):
            raise TypeError(f"listener must be callable, got {type(listener).__name__}")

        subscription = Subscription(name=name, listener=listener)
        with self._lock:
            # Copy-on-write keeps snapshots taken by publish() stable
            self._subscriptions = [*self._subscriptions, subscription]
        logger.debug("Subscribed listener %d to %s", subscription.id, name or "*")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove a subscription.

        Idempotent: removing a handle twice is a no-op.

        Returns:
            True if the subscription was active and has been removed
        """
        with self._lock:
            if not subscription.active:
                return False
            subscription.active = False
            self._subscriptions = [s for s in self._subscriptions if s is not subscription]
        logger.debug("Unsubscribed listener %d from %s", subscription.id, subscription.name or "*")
        return True

    def publish(self, name: str, payload: Any) -> int:
        """Deliver a payload to every listener registered for name.

        Listener failures are logged and never reach the publisher.

        Returns:
            Number of listeners invoked
        """
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(name)]

        delivered = 0
        for subscription in targets:
            # Skip listeners removed after the snapshot was taken
            if not subscription.active:
                continue
            try:
                subscription.listener(name, payload)
            except Exception as e:
                logger.warning("Listener %d failed for signal '%s': %s", subscription.id, name, e)
            delivered += 1
        return delivered

    def listener_count(self, name: str | None = None) -> int:
        """Count active listeners, optionally only those receiving name."""
        with self._lock:
            if name is None:
                return len(self._subscriptions)
            return sum(1 for s in self._subscriptions if s.matches(name))

    def clear(self) -> None:
        """Remove every subscription."""
        with self._lock:
            for subscription in self._subscriptions:
                subscription.active = False
            self._subscriptions = []


_default_notifier = Notifier()


def get_notifier() -> Notifier:
    """Return the process-wide notifier shared by facades and subscribers."""
    return _default_notifier
