"""Explicit publish/subscribe channel for HUD notifications and voice status.

Subscribers are tracked by handle rather than by event-name strings, so a
component can unsubscribe exactly what it registered.
"""

from __future__ import annotations

import itertools
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Notification:
    """One HUD-facing message (pinch, mode switch, voice status...)."""

    source: str
    message: str
    level: str = "info"
    timestamp: float = field(default_factory=time.time)


class Subscription:
    """Handle returned by ``Channel.subscribe``; cancel it to stop receiving."""

    def __init__(self, channel: "Channel[Any]", key: int) -> None:
        self._channel = channel
        self.key = key

    @property
    def active(self) -> bool:
        return self._channel.is_subscribed(self)

    def cancel(self) -> None:
        self._channel.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.cancel()


class Channel(Generic[T]):
    """Publisher holding a set of subscriber handles.

    Usage
    -----
    channel = Channel("tracker")
    handle = channel.subscribe(print)
    channel.publish(Notification("tracker", "pinch start"))
    channel.unsubscribe(handle)
    """

    def __init__(self, name: str = "channel") -> None:
        self.name = name
        self._subscribers: Dict[int, Callable[[T], None]] = {}
        self._keys = itertools.count()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        key = next(self._keys)
        self._subscribers[key] = callback
        return Subscription(self, key)

    def unsubscribe(self, handle: Subscription) -> None:
        """Remove ``handle``; unknown or already-cancelled handles are ignored."""

        self._subscribers.pop(handle.key, None)

    def is_subscribed(self, handle: Subscription) -> bool:
        return handle.key in self._subscribers

    def publish(self, message: T) -> int:
        """Deliver ``message`` to every subscriber and return how many were called.

        A failing subscriber is logged and skipped so the others still receive
        the message.
        """

        delivered = 0
        # Copy so callbacks may unsubscribe themselves while we iterate.
        for key, callback in list(self._subscribers.items()):
            try:
                callback(message)
            except Exception:
                logger.exception(f"Subscriber {key} on channel '{self.name}' failed")
                continue
            delivered += 1
        return delivered


class NotificationLog:
    """Bounded buffer of recent notifications for the HUD to render."""

    def __init__(self, maxlen: int = 6) -> None:
        self._items: Deque[Notification] = deque(maxlen=maxlen)
        self._subscription: Optional[Subscription] = None

    def __call__(self, notification: Notification) -> None:
        self._items.append(notification)

    def attach(self, channel: Channel[Notification]) -> Subscription:
        self._subscription = channel.subscribe(self)
        return self._subscription

    def recent(self) -> List[Notification]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()
