"""In-process pub/sub used to fan push notifications out to live connections.

Subscribers are plain callables; the websocket route wraps an asyncio queue.
A failing subscriber is logged and skipped so one dead connection never
blocks delivery to the others.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import lru_cache

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, dict[str, object]], None]


@dataclass
class _Subscription:
    subscription_id: str
    topics: frozenset[str]
    callback: Subscriber


class NotificationHub:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: dict[str, _Subscription] = {}
        self.publish_total = 0
        self.send_failures = 0

    def subscribe(self, topics: Iterable[str], callback: Subscriber) -> str:
        subscription_id = str(uuid.uuid4())
        with self._lock:
            self._subscriptions[subscription_id] = _Subscription(
                subscription_id=subscription_id,
                topics=frozenset(topics),
                callback=callback,
            )
        return subscription_id

    def unsubscribe(self, subscription_id: str) -> None:
        with self._lock:
            self._subscriptions.pop(subscription_id, None)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, topic: str, message: dict[str, object]) -> int:
        with self._lock:
            targets = [sub for sub in self._subscriptions.values() if topic in sub.topics]
            self.publish_total += 1

        delivered = 0
        for sub in targets:
            try:
                sub.callback(topic, message)
                delivered += 1
            except Exception:  # noqa: BLE001
                self.send_failures += 1
                logger.exception("Subscriber %s failed on topic %s", sub.subscription_id, topic)
        return delivered


@lru_cache
def get_hub() -> NotificationHub:
    return NotificationHub()
