"""Tests for the in-memory stores."""

import threading

from incident_alerts.core.report import Report, ReportCategory
from incident_alerts.core.subscription import Subscription
from incident_alerts.shell.memory_store import InMemoryReportStore, InMemorySubscriptionStore


def make_report(report_id="r1", address="Lake St, Minneapolis", source_key="lake-st,-minneapolis"):
    return Report(
        id=report_id,
        latitude=44.9,
        longitude=-93.2,
        category=ReportCategory.OBSERVED,
        title="t",
        description="d",
        address=address,
        source_key=source_key,
    )


class TestInMemorySubscriptionStore:
    """Tests for InMemorySubscriptionStore."""

    def test_put_then_get(self):
        store = InMemorySubscriptionStore()
        sub = Subscription("1", 44.9, -93.2, 5.0)

        store.put(sub)

        assert store.get("1") == sub

    def test_put_replaces(self):
        store = InMemorySubscriptionStore()
        store.put(Subscription("1", 44.9, -93.2, 5.0))
        store.put(Subscription("1", 45.0, -93.0, 10.0))

        assert store.get("1").radius_miles == 10.0
        assert len(store) == 1

    def test_get_missing(self):
        assert InMemorySubscriptionStore().get("nope") is None

    def test_initial_subscriptions(self):
        store = InMemorySubscriptionStore([Subscription("1", 44.9, -93.2, 5.0)])

        assert [s.subscriber_id for s in store.all()] == ["1"]

    def test_concurrent_puts(self):
        """Parallel writers don't lose subscriptions."""
        store = InMemorySubscriptionStore()

        def writer(start):
            for i in range(start, start + 100):
                store.put(Subscription(str(i), 44.9, -93.2, 5.0))

        threads = [threading.Thread(target=writer, args=(n * 100,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 400


class TestInMemoryReportStore:
    """Tests for InMemoryReportStore."""

    def test_add_then_get(self):
        store = InMemoryReportStore()
        report = make_report()

        store.add(report)

        assert store.get("r1") == report

    def test_source_key_index(self):
        store = InMemoryReportStore()
        store.add(make_report())

        assert store.has_source_key("lake-st,-minneapolis") is True
        assert store.has_source_key("other") is False

    def test_empty_source_key_not_indexed(self):
        store = InMemoryReportStore()
        store.add(make_report(source_key=""))

        assert store.has_source_key("") is False

    def test_addresses(self):
        store = InMemoryReportStore()
        store.add(make_report("r1", address="A"))
        store.add(make_report("r2", address=None))

        assert sorted(store.addresses(), key=str) == ["A", None]
