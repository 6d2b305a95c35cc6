"""In-process publish/subscribe channels.

Each channel carries one event type. Handlers run synchronously in
``publish``; a failing handler is logged and does not stop delivery to
the others.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class LanguageAdded:
    project_id: str
    code: str
    name: str


@dataclass(frozen=True)
class KeyChanged:
    project_id: str
    key_id: str
    translations: dict = field(default_factory=dict)


class Subscription:
    def __init__(self, channel: "Channel", handler: Callable) -> None:
        self._channel: Optional[Channel] = channel
        self.handler = handler

    @property
    def active(self) -> bool:
        return self._channel is not None

    def close(self) -> None:
        channel, self._channel = self._channel, None
        if channel is not None:
            channel._remove(self)


class Channel(Generic[T]):
    def __init__(self, name: str) -> None:
        self.name = name
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: Callable[[T], None]) -> Subscription:
        subscription = Subscription(self, handler)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def __len__(self) -> int:
        return len(self._subscriptions)

    def publish(self, event: T) -> int:
        with self._lock:
            targets = list(self._subscriptions)
        delivered = 0
        for subscription in targets:
            try:
                subscription.handler(event)
            except Exception:
                logger.exception("Handler failed on channel %s", self.name)
                continue
            delivered += 1
        return delivered


class EventBus:
    def __init__(self) -> None:
        self.language_added: Channel[LanguageAdded] = Channel("language_added")
        self.key_changed: Channel[KeyChanged] = Channel("key_changed")
