from __future__ import annotations

import threading

from push_server.models.notification import Endpoint
from push_server.utils.ids import TimeBasedIdGenerator


class SubscriptionRepository:
    def __init__(self, id_generator: TimeBasedIdGenerator | None = None) -> None:
        self._subscriptions: dict[str, Endpoint] = {}
        self._lock = threading.Lock()
        self._ids = id_generator or TimeBasedIdGenerator()

    def add(self, endpoint: Endpoint) -> str:
        subscription_id = self._ids.next_id()
        with self._lock:
            self._subscriptions[subscription_id] = endpoint
        return subscription_id

    def remove(self, subscription_id: str) -> bool:
        # Absent ids are ignored: evictions for the same endpoint may race.
        with self._lock:
            return self._subscriptions.pop(subscription_id, None) is not None

    def get(self, subscription_id: str) -> Endpoint | None:
        with self._lock:
            return self._subscriptions.get(subscription_id)

    def list_all(self) -> list[tuple[str, Endpoint]]:
        with self._lock:
            return list(self._subscriptions.items())

    def count(self) -> int:
        with self._lock:
            return len(self._subscriptions)
