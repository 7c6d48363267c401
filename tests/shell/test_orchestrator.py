"""Tests for the Orchestrator module.

Tests the coordination between functional core and imperative shell.
Uses in-memory stores, a mocked geocoder and fake channels.
"""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from incident_alerts.core.config import Config, TelegramConfig
from incident_alerts.core.delivery import DeliveryOutcome, DeliveryResult
from incident_alerts.core.dedup import DedupMode
from incident_alerts.core.errors import StoreUnavailable
from incident_alerts.core.geo import BoundingBox
from incident_alerts.core.geocode import GeocodeResult
from incident_alerts.core.report import ReportCategory, ReportSource
from incident_alerts.orchestrator import Orchestrator, RejectionReason
from incident_alerts.shell.memory_store import InMemoryReportStore, InMemorySubscriptionStore


LAKE_AND_CHICAGO = GeocodeResult(44.9483, -93.2626, city="Minneapolis", region="MN")
POWDERHORN = GeocodeResult(44.9397, -93.2624, city="Minneapolis", region="MN")


@pytest.fixture
def geocoder():
    """Geocoder that resolves everything to Lake St & Chicago Ave."""
    mock = Mock()
    mock.resolve.return_value = LAKE_AND_CHICAGO
    return mock


@pytest.fixture
def channel():
    mock = Mock()
    mock.send.side_effect = lambda recipient, text: DeliveryResult(
        outcome=DeliveryOutcome.SUCCESS, recipient=recipient, status_code=200
    )
    return mock


@pytest.fixture
def report_store():
    return InMemoryReportStore()


def make_orchestrator(
    geocoder, channel=None, report_store=None, config=None, channels=None, subscription_store=None
):
    if channels is None:
        channels = {"telegram": channel} if channel is not None else {}
    return Orchestrator(
        config or Config(),
        geocoder=geocoder,
        report_store=report_store if report_store is not None else InMemoryReportStore(),
        subscription_store=subscription_store
        if subscription_store is not None
        else InMemorySubscriptionStore(),
        channels=channels,
    )


class TestIngest:
    """Tests for Orchestrator.ingest()."""

    def test_accepts_new_report(self, geocoder, channel, report_store):
        orchestrator = make_orchestrator(geocoder, channel, report_store)

        result = orchestrator.ingest(
            "Lake St & Chicago Ave", "active", "Vehicles staged", notify=False
        )

        assert result.accepted is True
        assert result.reason is None
        report = result.report
        assert report.category == ReportCategory.ACTIVE
        assert report.coordinates == (44.9483, -93.2626)
        assert report.city == "Minneapolis"
        assert report.region == "MN"
        assert report.title == "ACTIVE - Lake St & Chicago Ave"
        assert report.source_key == "lake-st-&-chicago-ave"
        assert report.source == ReportSource.WEB
        assert report_store.get(report.id) == report

    def test_same_report_twice_is_duplicate(self, geocoder, channel):
        """The second submission is rejected before geocoding, whatever its category."""
        orchestrator = make_orchestrator(geocoder, channel)

        first = orchestrator.ingest("Lake St & Chicago Ave", "ACTIVE", "x", notify=False)
        second = orchestrator.ingest("  lake st & chicago AVE ", "CRITICAL", "x", notify=False)

        assert first.accepted is True
        assert second.accepted is False
        assert second.reason == RejectionReason.DUPLICATE
        assert geocoder.resolve.call_count == 1

    def test_geocode_failure(self, geocoder, channel, report_store):
        geocoder.resolve.return_value = None
        orchestrator = make_orchestrator(geocoder, channel, report_store)

        result = orchestrator.ingest("Nowhere Lane", "ACTIVE", "x")

        assert result.accepted is False
        assert result.reason == RejectionReason.GEOCODE_FAILED
        assert len(report_store) == 0

    def test_empty_address(self, geocoder, channel):
        result = make_orchestrator(geocoder, channel).ingest("   ", "ACTIVE", "x")

        assert result.reason == RejectionReason.GEOCODE_FAILED
        geocoder.resolve.assert_not_called()

    def test_invalid_category(self, geocoder, channel):
        result = make_orchestrator(geocoder, channel).ingest("Lake St", "URGENT", "x")

        assert result.reason == RejectionReason.INVALID_CATEGORY
        geocoder.resolve.assert_not_called()

    def test_invalid_source(self, geocoder, channel):
        result = make_orchestrator(geocoder, channel).ingest("Lake St", "ACTIVE", "x", source="fax")

        assert result.reason == RejectionReason.INVALID_SOURCE

    def test_aggregated_category_mapped_leniently(self, geocoder, channel):
        result = make_orchestrator(geocoder, channel).ingest(
            "Lake St", "Critical Incident", "x", source=ReportSource.AGGREGATED, notify=False
        )

        assert result.report.category == ReportCategory.CRITICAL

    def test_outside_service_area(self, geocoder, channel, report_store):
        config = Config(service_area=BoundingBox(45.5, 46.0, -94.0, -93.0))
        orchestrator = make_orchestrator(geocoder, channel, report_store, config=config)

        result = orchestrator.ingest("Lake St", "ACTIVE", "x")

        assert result.reason == RejectionReason.OUTSIDE_SERVICE_AREA
        assert len(report_store) == 0

    def test_store_unavailable_on_dedup_check(self, geocoder, channel):
        store = Mock()
        store.has_source_key.side_effect = StoreUnavailable("down")
        orchestrator = make_orchestrator(geocoder, channel, report_store=store)

        result = orchestrator.ingest("Lake St", "ACTIVE", "x")

        assert result.reason == RejectionReason.STORE_UNAVAILABLE
        geocoder.resolve.assert_not_called()

    def test_store_unavailable_on_write(self, geocoder, channel):
        store = Mock()
        store.has_source_key.return_value = False
        store.add.side_effect = StoreUnavailable("down")
        orchestrator = make_orchestrator(geocoder, channel, report_store=store)

        result = orchestrator.ingest("Lake St", "ACTIVE", "x")

        assert result.accepted is False
        assert result.reason == RejectionReason.STORE_UNAVAILABLE
        channel.send.assert_not_called()

    def test_fuzzy_mode_for_aggregated_source(self, geocoder, channel):
        """Aggregated imports use prefix matching by default."""
        orchestrator = make_orchestrator(geocoder, channel)
        orchestrator.ingest("2800 E Lake St, Minneapolis, MN 55406, USA", "ACTIVE", "x", notify=False)

        result = orchestrator.ingest(
            "2800 E Lake St, Minneapolis", "Active", "x", source=ReportSource.AGGREGATED, notify=False
        )

        assert result.reason == RejectionReason.DUPLICATE

    def test_source_mode_override(self, geocoder, channel):
        orchestrator = make_orchestrator(geocoder, channel)
        orchestrator.ingest("2800 E Lake St, Minneapolis, MN 55406, USA", "ACTIVE", "x", notify=False)

        result = orchestrator.ingest(
            "2800 E Lake St, Minneapolis", "ACTIVE", "x",
            source_mode=DedupMode.FUZZY_PREFIX, notify=False,
        )

        assert result.reason == RejectionReason.DUPLICATE

    def test_occurred_at_kept(self, geocoder, channel):
        occurred = datetime(2026, 1, 5, 14, 30, tzinfo=timezone.utc)

        result = make_orchestrator(geocoder, channel).ingest(
            "Lake St", "ACTIVE", "x", occurred_at=occurred, notify=False
        )

        assert result.report.occurred_at == occurred
        assert result.report.ingested_at is not None

    def test_long_text_truncated(self, geocoder, channel):
        result = make_orchestrator(geocoder, channel).ingest(
            "Lake St", "ACTIVE", "d" * 5000, title="t" * 500, notify=False
        )

        assert len(result.report.title) == 100
        assert len(result.report.description) == 2000


class TestIngestNotify:
    """Tests for alert dispatch during ingestion."""

    def test_notify_false_sends_nothing(self, geocoder, channel):
        orchestrator = make_orchestrator(geocoder, channel)
        orchestrator.subscribe("42", "44.9397, -93.2624", 5)

        result = orchestrator.ingest("Lake St", "ACTIVE", "x", notify=False)

        assert result.dispatch is None
        channel.send.assert_not_called()

    def test_notify_true_alerts_nearby_subscriber(self, geocoder, channel):
        orchestrator = make_orchestrator(geocoder, channel)
        orchestrator.subscribe("42", "44.9397, -93.2624", 5)

        result = orchestrator.ingest("Lake St", "ACTIVE", "x")

        assert result.dispatch.recipients_sent == 1
        assert channel.send.call_args.args[0] == "42"

    def test_broadcasts_to_configured_channel(self, geocoder, channel):
        config = Config(telegram=TelegramConfig(bot_token="t", channel_id="@alerts"))
        orchestrator = make_orchestrator(geocoder, channel, config=config)

        result = orchestrator.ingest("Lake St", "ACTIVE", "x")

        assert result.dispatch.channel_sent is True
        channel.send.assert_called_once()
        assert channel.send.call_args.args[0] == "@alerts"

    def test_no_channels_still_stores_report(self, geocoder, report_store):
        orchestrator = make_orchestrator(geocoder, report_store=report_store, channels={})

        result = orchestrator.ingest("Lake St", "ACTIVE", "x")

        assert result.accepted is True
        assert result.dispatch is None
        assert len(report_store) == 1

    def test_deactivation_outage_still_accepted(self, geocoder, report_store):
        subscriptions = InMemorySubscriptionStore()
        channel = Mock()
        channel.send.side_effect = lambda recipient, text: DeliveryResult(
            outcome=DeliveryOutcome.PERMANENT if recipient == "blocked" else DeliveryOutcome.SUCCESS,
            recipient=recipient,
        )
        orchestrator = make_orchestrator(
            geocoder, channel, report_store, subscription_store=subscriptions
        )
        orchestrator.subscribe("42", "44.9397, -93.2624", 5)
        orchestrator.subscribe("blocked", "44.9397, -93.2624", 5)
        subscriptions.put = Mock(side_effect=StoreUnavailable("write down"))

        result = orchestrator.ingest("Lake Street & Chicago Ave", "ACTIVE", "x")

        assert result.accepted is True
        assert result.dispatch.recipients_sent == 1
        assert result.dispatch.recipients_failed == 1
        assert len(report_store) == 1

    def test_subscription_read_outage_still_accepted(self, geocoder, channel, report_store):
        """The report is stored even when subscribers cannot be looked up."""
        subscriptions = Mock()
        subscriptions.all.side_effect = StoreUnavailable("read down")
        orchestrator = make_orchestrator(
            geocoder, channel, report_store, subscription_store=subscriptions
        )

        result = orchestrator.ingest("Lake St", "ACTIVE", "x")

        assert result.accepted is True
        assert result.dispatch is None
        assert len(report_store) == 1


class TestSubscribe:
    """Tests for Orchestrator.subscribe() and unsubscribe()."""

    def test_literal_coordinates_skip_geocoding(self, geocoder, channel):
        orchestrator = make_orchestrator(geocoder, channel)

        result = orchestrator.subscribe("42", "44.9397, -93.2624", 5)

        assert result.ok is True
        assert result.subscription.coordinates == (44.9397, -93.2624)
        geocoder.resolve.assert_not_called()

    def test_location_is_geocoded(self, geocoder, channel):
        geocoder.resolve.return_value = POWDERHORN
        orchestrator = make_orchestrator(geocoder, channel)

        result = orchestrator.subscribe("42", "55407", 10)

        assert result.ok is True
        assert result.subscription.coordinates == (44.9397, -93.2624)
        assert result.subscription.label == "55407"
        geocoder.resolve.assert_called_once_with("55407")

    def test_default_radius(self, geocoder, channel):
        result = make_orchestrator(geocoder, channel).subscribe("42", "55407")

        assert result.subscription.radius_miles == 5.0

    def test_invalid_radius_checked_before_geocoding(self, geocoder, channel):
        result = make_orchestrator(geocoder, channel).subscribe("42", "55407", 75)

        assert result.ok is False
        assert result.reason == RejectionReason.INVALID_RADIUS
        geocoder.resolve.assert_not_called()

    def test_unknown_location(self, geocoder, channel):
        geocoder.resolve.return_value = None

        result = make_orchestrator(geocoder, channel).subscribe("42", "Atlantis", 5)

        assert result.reason == RejectionReason.INVALID_LOCATION

    def test_status_reflects_subscription(self, geocoder, channel):
        orchestrator = make_orchestrator(geocoder, channel)
        assert orchestrator.subscription_status("42") is None

        orchestrator.subscribe("42", "55407", 5)

        assert orchestrator.subscription_status("42").active is True

    def test_unsubscribe_stops_alerts(self, geocoder, channel):
        orchestrator = make_orchestrator(geocoder, channel)
        orchestrator.subscribe("42", "44.9397, -93.2624", 5)

        assert orchestrator.unsubscribe("42") is True
        result = orchestrator.ingest("Lake St", "ACTIVE", "x")

        assert result.dispatch.recipients_sent == 0
        assert orchestrator.subscription_status("42").active is False

    def test_unsubscribe_unknown_is_ok(self, geocoder, channel):
        assert make_orchestrator(geocoder, channel).unsubscribe("nobody") is True

    def test_resubscribe_reactivates(self, geocoder, channel):
        orchestrator = make_orchestrator(geocoder, channel)
        orchestrator.subscribe("42", "55407", 5)
        orchestrator.unsubscribe("42")

        orchestrator.subscribe("42", "55407", 5)

        assert orchestrator.subscription_status("42").active is True

    def test_unsubscribe_store_outage_returns_false(self, geocoder, channel):
        store = InMemorySubscriptionStore()
        orchestrator = make_orchestrator(geocoder, channel, subscription_store=store)
        orchestrator.subscribe("42", "55407", 5)
        store.put = Mock(side_effect=StoreUnavailable("write down"))

        assert orchestrator.unsubscribe("42") is False
