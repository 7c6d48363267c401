"""In-memory stores - Imperative Shell.

Process-local implementations of the subscription and report stores.
Used for tests, local development and single-instance deployments.
Each store guards its dict with a lock so concurrent requests see
last-write-wins per key.
"""

import threading
from typing import Iterable

from incident_alerts.core.report import Report
from incident_alerts.core.subscription import Subscription


class InMemorySubscriptionStore:
    """Subscriptions keyed by subscriber id."""

    def __init__(self, subscriptions: Iterable[Subscription] = ()) -> None:
        self._lock = threading.Lock()
        self._items: dict[str, Subscription] = {
            s.subscriber_id: s for s in subscriptions
        }

    def get(self, subscriber_id: str) -> Subscription | None:
        with self._lock:
            return self._items.get(subscriber_id)

    def put(self, subscription: Subscription) -> None:
        with self._lock:
            self._items[subscription.subscriber_id] = subscription

    def all(self) -> list[Subscription]:
        with self._lock:
            return list(self._items.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class InMemoryReportStore:
    """Accepted reports keyed by id, with a source-key index."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reports: dict[str, Report] = {}
        self._source_keys: set[str] = set()

    def add(self, report: Report) -> None:
        with self._lock:
            self._reports[report.id] = report
            if report.source_key:
                self._source_keys.add(report.source_key)

    def get(self, report_id: str) -> Report | None:
        with self._lock:
            return self._reports.get(report_id)

    def has_source_key(self, source_key: str) -> bool:
        with self._lock:
            return source_key in self._source_keys

    def addresses(self) -> list[str | None]:
        with self._lock:
            return [r.address for r in self._reports.values()]

    def all(self) -> list[Report]:
        with self._lock:
            return list(self._reports.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._reports)
