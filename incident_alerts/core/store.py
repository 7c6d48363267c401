"""Store interfaces - Pure type definitions.

The registry and the dedup index only talk to persistence through these
small interfaces, so they can run against the in-memory stores in tests
and Firestore in production.

Implementations raise StoreUnavailable when the backing store cannot be
reached.
"""

from typing import Iterable, Protocol

from incident_alerts.core.report import Report
from incident_alerts.core.subscription import Subscription


class SubscriptionStore(Protocol):
    """Persistence for subscriptions, keyed by subscriber id."""

    def get(self, subscriber_id: str) -> Subscription | None:
        ...

    def put(self, subscription: Subscription) -> None:
        ...

    def all(self) -> Iterable[Subscription]:
        ...


class ReportStore(Protocol):
    """Persistence for accepted reports."""

    def add(self, report: Report) -> None:
        ...

    def get(self, report_id: str) -> Report | None:
        ...

    def has_source_key(self, source_key: str) -> bool:
        ...

    def addresses(self) -> Iterable[str | None]:
        ...
