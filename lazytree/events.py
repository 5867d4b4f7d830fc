"""Explicit publish/subscribe channels used for tree notifications.

Subscribers are plain callables. Delivery is synchronous on the emitting
thread, in subscription order. A subscriber that raises is logged and the
remaining subscribers still receive the value.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Handle returned by ``EventChannel.subscribe``."""

    def __init__(self, channel: "EventChannel", callback: Callable) -> None:
        self._channel = channel
        self._callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        """Stop delivery to this subscriber; repeated calls are harmless."""
        if not self.active:
            return
        self.active = False
        self._channel._remove(self)


class EventChannel(Generic[T]):
    """Named synchronous event channel."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._subscriptions: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        subscription = Subscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass

    def emit(self, value: T) -> None:
        """Deliver ``value`` to a snapshot of current subscribers."""
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                subscription._callback(value)
            except Exception:
                logger.exception("subscriber of %r failed", self.name or "channel")


__all__ = [
    "EventChannel",
    "Subscription",
]
