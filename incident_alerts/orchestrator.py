"""Orchestrator - Wires Functional Core and Imperative Shell.

This module coordinates the flow of data between the pure functional
core and the I/O-performing shell components. It's the "glue" that
makes the application work, and the interface every collaborator
(web form, bot, batch importer) talks to.

Ingestion flow for one report:
1. Validate the category
2. Check the deduplication index (before geocoding, so duplicates
   never spend a rate-limited lookup)
3. Geocode the address through the fallback chain
4. Reject points outside the service area (if one is configured)
5. Persist the report and register its dedup key
6. Optionally dispatch alerts
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from incident_alerts.core.config import Config
from incident_alerts.core.dedup import DedupMode, normalize_source_key, resolve_mode
from incident_alerts.core.errors import (
    InvalidLocation,
    InvalidRadius,
    MisconfiguredChannel,
    StoreUnavailable,
)
from incident_alerts.core.formatter import format_report_summary
from incident_alerts.core.geo import GeoPoint, parse_coordinates
from incident_alerts.core.report import (
    MAX_DESCRIPTION_LENGTH,
    MAX_TITLE_LENGTH,
    Report,
    ReportCategory,
    ReportSource,
    build_title,
    map_feed_category,
    new_report_id,
    parse_city,
    parse_state,
    utc_now,
)
from incident_alerts.core.store import ReportStore, SubscriptionStore
from incident_alerts.core.subscription import DEFAULT_CHANNEL, Subscription, validate_radius
from incident_alerts.dedup_index import DeduplicationIndex
from incident_alerts.dispatcher import AlertDispatcher, DeliveryChannel, DispatchResult
from incident_alerts.geocoder import Geocoder
from incident_alerts.registry import SubscriptionRegistry
from incident_alerts.shell.firestore_client import (
    FirestoreClient,
    FirestoreConfig,
    FirestoreReportStore,
    FirestoreSubscriptionStore,
)
from incident_alerts.shell.memory_store import InMemoryReportStore, InMemorySubscriptionStore
from incident_alerts.shell.nominatim_client import NominatimClient
from incident_alerts.shell.telegram_client import TelegramClient
from incident_alerts.shell.whatsapp_client import WhatsAppClient, WhatsAppCredentials


logger = logging.getLogger(__name__)


class RejectionReason(str, Enum):
    """Why a submission or subscription was not accepted."""
    GEOCODE_FAILED = "GEOCODE_FAILED"
    DUPLICATE = "DUPLICATE"
    INVALID_CATEGORY = "INVALID_CATEGORY"
    INVALID_SOURCE = "INVALID_SOURCE"
    OUTSIDE_SERVICE_AREA = "OUTSIDE_SERVICE_AREA"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    INVALID_LOCATION = "INVALID_LOCATION"
    INVALID_RADIUS = "INVALID_RADIUS"


@dataclass
class IngestResult:
    """Result of ingesting one report.

    Attributes:
        accepted: Whether the report was stored
        report: The stored report (None if rejected)
        reason: Why it was rejected (None if accepted)
        dispatch: Alert dispatch outcome (None if not notified)
    """
    accepted: bool
    report: Report | None = None
    reason: RejectionReason | None = None
    dispatch: DispatchResult | None = None


@dataclass
class SubscribeResult:
    """Result of a subscribe request.

    Attributes:
        ok: Whether the subscription was saved
        reason: Why it was rejected (None if ok)
        subscription: The saved subscription (None if rejected)
    """
    ok: bool
    reason: RejectionReason | None = None
    subscription: Subscription | None = None


def _build_stores(config: Config) -> tuple[ReportStore, SubscriptionStore]:
    if config.storage == "firestore":
        client = FirestoreClient(
            FirestoreConfig(
                database=config.firestore_database,
                subscriptions_collection=config.subscriptions_collection,
                reports_collection=config.reports_collection,
            )
        )
        return FirestoreReportStore(client), FirestoreSubscriptionStore(client)
    return InMemoryReportStore(), InMemorySubscriptionStore()


def _build_channels(config: Config) -> dict[str, DeliveryChannel]:
    channels: dict[str, DeliveryChannel] = {}
    if config.telegram and config.telegram.bot_token:
        channels["telegram"] = TelegramClient(config.telegram.bot_token)
    if config.whatsapp and config.whatsapp.account_sid:
        channels["whatsapp"] = WhatsAppClient(
            WhatsAppCredentials(
                account_sid=config.whatsapp.account_sid,
                auth_token=config.whatsapp.auth_token,
                from_number=config.whatsapp.from_number,
            )
        )
    return channels


class Orchestrator:
    """Coordinates report ingestion, subscriptions and alerting.

    This class wires together:
    - Geocoder (address -> coordinates, via Nominatim)
    - Deduplication index (over the report store)
    - Subscription registry (over the subscription store)
    - Alert dispatcher (Telegram / WhatsApp channels)
    """

    def __init__(
        self,
        config: Config,
        geocoder: Geocoder | None = None,
        report_store: ReportStore | None = None,
        subscription_store: SubscriptionStore | None = None,
        channels: dict[str, DeliveryChannel] | None = None,
    ) -> None:
        """Initialize orchestrator with configuration.

        Args:
            config: Application configuration
            geocoder: Geocoder (created from config if not provided)
            report_store: Report store (created from config if not provided)
            subscription_store: Subscription store (created from config if not provided)
            channels: Delivery channels by type (created from config if not provided)
        """
        self.config = config

        if report_store is None or subscription_store is None:
            default_reports, default_subscriptions = _build_stores(config)
            if report_store is None:
                report_store = default_reports
            if subscription_store is None:
                subscription_store = default_subscriptions

        self.geocoder = geocoder or Geocoder(
            client=NominatimClient(
                base_url=config.geocoder.base_url,
                user_agent=config.geocoder.user_agent,
                timeout=config.geocoder.timeout,
                min_interval=config.geocoder.min_interval_seconds,
            ),
            default_region=config.geocoder.default_region,
            region_tokens=config.geocoder.region_tokens,
            cache_size=config.geocoder.cache_size,
        )
        self.dedup_index = DeduplicationIndex(report_store)
        self.registry = SubscriptionRegistry(
            subscription_store,
            min_radius=config.min_radius_miles,
            max_radius=config.max_radius_miles,
        )
        self.dispatcher = AlertDispatcher(
            registry=self.registry,
            channels=channels if channels is not None else _build_channels(config),
            broadcast_target=config.telegram.channel_id if config.telegram else None,
            app_url=config.app_url,
            timezone=config.timezone,
            max_workers=config.dispatch_workers,
        )

    def _parse_category(
        self,
        category: ReportCategory | str,
        source: ReportSource,
    ) -> ReportCategory | None:
        """Strict for people, lenient for aggregated feeds."""
        if source == ReportSource.AGGREGATED and not isinstance(category, ReportCategory):
            return map_feed_category(category)
        try:
            return ReportCategory.parse(category)
        except ValueError:
            return None

    def _reject(self, reason: RejectionReason, address: str) -> IngestResult:
        logger.info("Rejected report at %r: %s", address, reason.value)
        return IngestResult(accepted=False, reason=reason)

    def ingest(
        self,
        raw_address: str,
        category: ReportCategory | str,
        description: str,
        occurred_at: datetime | None = None,
        source_mode: DedupMode | None = None,
        source: ReportSource | str = ReportSource.WEB,
        title: str | None = None,
        notify: bool = True,
    ) -> IngestResult:
        """Ingest a candidate report.

        Args:
            raw_address: Address, intersection or landmark as submitted
            category: Report category (strict name, or a feed label for
                      aggregated sources)
            description: Free-text description
            occurred_at: When it happened (defaults to now)
            source_mode: Dedup mode override (defaults to the source's mode)
            source: Where the report came from
            title: Title override (defaults to "CATEGORY - address")
            notify: Dispatch alerts once the report is stored

        Returns:
            IngestResult with the stored report or a rejection reason
        """
        address = (raw_address or "").strip()

        try:
            report_source = ReportSource(source)
        except ValueError:
            return self._reject(RejectionReason.INVALID_SOURCE, address)

        report_category = self._parse_category(category, report_source)
        if report_category is None:
            return self._reject(RejectionReason.INVALID_CATEGORY, address)

        if not address:
            return self._reject(RejectionReason.GEOCODE_FAILED, address)

        mode = source_mode or resolve_mode(report_source.value, self.config.dedup_modes)

        try:
            if self.dedup_index.is_duplicate(address, mode):
                return self._reject(RejectionReason.DUPLICATE, address)
        except StoreUnavailable as e:
            logger.error("Dedup check failed for %r: %s", address, str(e))
            return self._reject(RejectionReason.STORE_UNAVAILABLE, address)

        location = self.geocoder.resolve(address)
        if location is None:
            return self._reject(RejectionReason.GEOCODE_FAILED, address)

        service_area = self.config.service_area
        if service_area is not None and not service_area.contains(
            location.latitude, location.longitude
        ):
            return self._reject(RejectionReason.OUTSIDE_SERVICE_AREA, address)

        now = utc_now()
        report = Report(
            id=new_report_id(),
            latitude=location.latitude,
            longitude=location.longitude,
            category=report_category,
            title=(title or build_title(report_category, address))[:MAX_TITLE_LENGTH],
            description=(description or "")[:MAX_DESCRIPTION_LENGTH],
            address=address,
            city=location.city or parse_city(address),
            region=location.region or parse_state(address),
            source_key=normalize_source_key(address),
            source=report_source,
            occurred_at=occurred_at or now,
            ingested_at=now,
        )

        try:
            self.dedup_index.register(report)
        except StoreUnavailable as e:
            logger.error("Could not store report at %r: %s", address, str(e))
            return self._reject(RejectionReason.STORE_UNAVAILABLE, address)

        logger.info("Accepted report %s (%s)", report.id, format_report_summary(report))

        dispatch = None
        if notify:
            try:
                dispatch = self.notify_new_report(report)
            except (MisconfiguredChannel, StoreUnavailable) as e:
                logger.error("Report %s stored but not dispatched: %s", report.id, str(e))

        return IngestResult(accepted=True, report=report, dispatch=dispatch)

    def subscribe(
        self,
        subscriber_id: str,
        raw_location_or_zip: str,
        radius: float | None = None,
        channel: str = DEFAULT_CHANNEL,
    ) -> SubscribeResult:
        """Subscribe (or re-subscribe) to alerts around a location.

        A literal "lat, lon" pair is used as-is; anything else is
        geocoded.

        Args:
            subscriber_id: Stable subscriber id
            raw_location_or_zip: Address, ZIP code or "lat, lon"
            radius: Alert radius in miles (defaults to the configured default)
            channel: Delivery channel type

        Returns:
            SubscribeResult with the saved subscription or a rejection reason
        """
        if radius is None:
            radius = self.config.default_radius_miles

        problem = validate_radius(
            radius,
            self.config.min_radius_miles,
            self.config.max_radius_miles,
        )
        if problem:
            logger.info("Rejected subscription for %s: %s", subscriber_id, problem)
            return SubscribeResult(ok=False, reason=RejectionReason.INVALID_RADIUS)

        location_text = (raw_location_or_zip or "").strip()
        point = parse_coordinates(location_text)
        if point is None and location_text:
            resolved = self.geocoder.resolve(location_text)
            if resolved is not None:
                point = GeoPoint(resolved.latitude, resolved.longitude)

        if point is None:
            logger.info("Could not locate %r for %s", location_text, subscriber_id)
            return SubscribeResult(ok=False, reason=RejectionReason.INVALID_LOCATION)

        try:
            subscription = self.registry.upsert(
                subscriber_id,
                point,
                radius,
                channel=channel,
                label=location_text,
            )
        except InvalidLocation:
            return SubscribeResult(ok=False, reason=RejectionReason.INVALID_LOCATION)
        except InvalidRadius:
            return SubscribeResult(ok=False, reason=RejectionReason.INVALID_RADIUS)
        except StoreUnavailable as e:
            logger.error("Could not save subscription for %s: %s", subscriber_id, str(e))
            return SubscribeResult(ok=False, reason=RejectionReason.STORE_UNAVAILABLE)

        return SubscribeResult(ok=True, subscription=subscription)

    def unsubscribe(self, subscriber_id: str) -> bool:
        """Turn off alerts for a subscriber.

        Returns:
            True once the subscriber has no active subscription (including
            when there was none), False if the store could not be updated
        """
        try:
            changed = self.registry.deactivate(subscriber_id)
        except StoreUnavailable as e:
            logger.error("Could not turn off alerts for %s: %s", subscriber_id, str(e))
            return False

        if not changed:
            logger.info("No active subscription to turn off for %s", subscriber_id)
        return True

    def subscription_status(self, subscriber_id: str) -> Subscription | None:
        """Current subscription for a subscriber, active or not."""
        return self.registry.get(subscriber_id)

    def notify_new_report(self, report: Report) -> DispatchResult:
        """Dispatch alerts for an already-stored report.

        Raises:
            MisconfiguredChannel: If no delivery channel is registered
            StoreUnavailable: If the subscription store cannot be read
        """
        return self.dispatcher.dispatch(report)
