"""Firestore Client - Imperative Shell.

This module persists subscriptions and accepted reports in Google Cloud
Firestore. All I/O is contained here; matching and dedup logic are in
the core module.

Document structure:

    subscriptions/<subscriber_id>
    {
        "subscriber_id": "12345",
        "latitude": 44.97, "longitude": -93.26,
        "radius_miles": 5.0,
        "active": true,
        "channel": "telegram",
        "label": "Powderhorn Park",
        "updated_at": <timestamp>
    }

    reports/<report_id>
    {
        "latitude": ..., "longitude": ..., "category": "ACTIVE",
        "title": ..., "description": ..., "address": ..., "city": ...,
        "region": ..., "source_key": ..., "source": "web",
        "occurred_at": <timestamp>, "ingested_at": <timestamp>
    }

Read and write failures are raised as StoreUnavailable so callers can
reject the submission instead of guessing.
"""

import logging
from dataclasses import dataclass
from typing import Any

from google.cloud import firestore

from incident_alerts.core.errors import StoreUnavailable
from incident_alerts.core.report import Report, ReportCategory, ReportSource
from incident_alerts.core.subscription import Subscription


logger = logging.getLogger(__name__)


# Default collection names
DEFAULT_SUBSCRIPTIONS_COLLECTION = "subscriptions"
DEFAULT_REPORTS_COLLECTION = "reports"


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        subscriptions_collection: Collection holding subscriptions
        reports_collection: Collection holding reports
    """
    project_id: str | None = None
    database: str | None = None
    subscriptions_collection: str = DEFAULT_SUBSCRIPTIONS_COLLECTION
    reports_collection: str = DEFAULT_REPORTS_COLLECTION


class FirestoreClient:
    """Lazily-created Firestore connection shared by the stores.

    This is part of the imperative shell - it handles database I/O.
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore client.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs['project'] = self.config.project_id
            if self.config.database:
                kwargs['database'] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def collection(self, name: str) -> Any:
        """Get a collection reference."""
        return self.client.collection(name)


def subscription_to_document(subscription: Subscription) -> dict[str, Any]:
    """Serialize a subscription for Firestore."""
    return {
        "subscriber_id": subscription.subscriber_id,
        "latitude": subscription.latitude,
        "longitude": subscription.longitude,
        "radius_miles": subscription.radius_miles,
        "active": subscription.active,
        "channel": subscription.channel,
        "label": subscription.label,
        "updated_at": subscription.updated_at,
    }


def subscription_from_document(data: dict[str, Any]) -> Subscription:
    """Deserialize a subscription document."""
    return Subscription(
        subscriber_id=str(data["subscriber_id"]),
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
        radius_miles=float(data["radius_miles"]),
        active=bool(data.get("active", True)),
        channel=data.get("channel", "telegram"),
        label=data.get("label"),
        updated_at=data.get("updated_at"),
    )


def report_to_document(report: Report) -> dict[str, Any]:
    """Serialize a report for Firestore."""
    return {
        "latitude": report.latitude,
        "longitude": report.longitude,
        "category": report.category.value,
        "title": report.title,
        "description": report.description,
        "address": report.address,
        "city": report.city,
        "region": report.region,
        "source_key": report.source_key,
        "source": report.source.value,
        "occurred_at": report.occurred_at,
        "ingested_at": report.ingested_at,
    }


def report_from_document(report_id: str, data: dict[str, Any]) -> Report:
    """Deserialize a report document."""
    return Report(
        id=report_id,
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
        category=ReportCategory.parse(data.get("category", "OTHER")),
        title=data.get("title", ""),
        description=data.get("description", ""),
        address=data.get("address"),
        city=data.get("city"),
        region=data.get("region"),
        source_key=data.get("source_key", ""),
        source=ReportSource(data.get("source", ReportSource.WEB.value)),
        occurred_at=data.get("occurred_at"),
        ingested_at=data.get("ingested_at"),
    )


class FirestoreSubscriptionStore:
    """Subscriptions, one document per subscriber id."""

    def __init__(self, client: FirestoreClient) -> None:
        self._client = client

    def _collection(self) -> Any:
        return self._client.collection(self._client.config.subscriptions_collection)

    def get(self, subscriber_id: str) -> Subscription | None:
        try:
            doc = self._collection().document(subscriber_id).get()
        except Exception as e:
            logger.error("Failed to fetch subscription %s: %s", subscriber_id, str(e))
            raise StoreUnavailable(str(e)) from e

        if not doc.exists:
            return None
        return subscription_from_document(doc.to_dict())

    def put(self, subscription: Subscription) -> None:
        try:
            self._collection().document(subscription.subscriber_id).set(
                subscription_to_document(subscription)
            )
        except Exception as e:
            logger.error(
                "Failed to save subscription %s: %s",
                subscription.subscriber_id,
                str(e),
            )
            raise StoreUnavailable(str(e)) from e

    def all(self) -> list[Subscription]:
        try:
            docs = list(self._collection().stream())
        except Exception as e:
            logger.error("Failed to list subscriptions: %s", str(e))
            raise StoreUnavailable(str(e)) from e

        subscriptions = []
        for doc in docs:
            try:
                subscriptions.append(subscription_from_document(doc.to_dict()))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed subscription %s: %s", doc.id, str(e))
        return subscriptions


class FirestoreReportStore:
    """Accepted reports, one document per report id."""

    def __init__(self, client: FirestoreClient) -> None:
        self._client = client

    def _collection(self) -> Any:
        return self._client.collection(self._client.config.reports_collection)

    def add(self, report: Report) -> None:
        try:
            self._collection().document(report.id).set(report_to_document(report))
            logger.info("Saved report %s", report.id)
        except Exception as e:
            logger.error("Failed to save report %s: %s", report.id, str(e))
            raise StoreUnavailable(str(e)) from e

    def get(self, report_id: str) -> Report | None:
        try:
            doc = self._collection().document(report_id).get()
        except Exception as e:
            logger.error("Failed to fetch report %s: %s", report_id, str(e))
            raise StoreUnavailable(str(e)) from e

        if not doc.exists:
            return None
        return report_from_document(report_id, doc.to_dict())

    def has_source_key(self, source_key: str) -> bool:
        try:
            docs = list(
                self._collection()
                .where(filter=firestore.FieldFilter("source_key", "==", source_key))
                .limit(1)
                .stream()
            )
        except Exception as e:
            logger.error("Failed to query source key: %s", str(e))
            raise StoreUnavailable(str(e)) from e
        return len(docs) > 0

    def addresses(self) -> list[str | None]:
        try:
            docs = self._collection().select(["address"]).stream()
            return [(doc.to_dict() or {}).get("address") for doc in docs]
        except Exception as e:
            logger.error("Failed to list report addresses: %s", str(e))
            raise StoreUnavailable(str(e)) from e
