"""Subscription Registry - Who wants alerts, where, and how far out.

One subscription per subscriber id. Subscriptions are never deleted;
turning alerts off flips the active flag so the history stays.
"""

import logging
from dataclasses import replace

from incident_alerts.core.errors import InvalidLocation, InvalidRadius
from incident_alerts.core.geo import GeoPoint
from incident_alerts.core.report import utc_now
from incident_alerts.core.store import SubscriptionStore
from incident_alerts.core.subscription import (
    DEFAULT_CHANNEL,
    MAX_RADIUS_MILES,
    MIN_RADIUS_MILES,
    Subscription,
    match_subscriptions,
    validate_anchor,
    validate_radius,
)


logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """Stores subscriptions and answers radius queries."""

    def __init__(
        self,
        store: SubscriptionStore,
        min_radius: float = MIN_RADIUS_MILES,
        max_radius: float = MAX_RADIUS_MILES,
    ) -> None:
        self.store = store
        self.min_radius = min_radius
        self.max_radius = max_radius

    def upsert(
        self,
        subscriber_id: str,
        point: GeoPoint,
        radius: float,
        channel: str = DEFAULT_CHANNEL,
        label: str | None = None,
    ) -> Subscription:
        """Create or replace a subscriber's subscription.

        Args:
            subscriber_id: Stable subscriber id (chat id or phone number)
            point: Anchor point
            radius: Alert radius in miles
            channel: Delivery channel type
            label: What the subscriber typed, for status messages

        Returns:
            The stored, active subscription

        Raises:
            InvalidLocation: If the anchor is out of range
            InvalidRadius: If the radius is outside the allowed bounds
            StoreUnavailable: If the store cannot be written
        """
        problem = validate_anchor(point.latitude, point.longitude)
        if problem:
            raise InvalidLocation(problem)

        problem = validate_radius(radius, self.min_radius, self.max_radius)
        if problem:
            raise InvalidRadius(problem)

        subscription = Subscription(
            subscriber_id=str(subscriber_id),
            latitude=point.latitude,
            longitude=point.longitude,
            radius_miles=float(radius),
            active=True,
            channel=channel,
            label=label,
            updated_at=utc_now(),
        )
        self.store.put(subscription)

        logger.info(
            "Subscription saved for %s: %.1f mi around (%.4f, %.4f) via %s",
            subscription.subscriber_id,
            subscription.radius_miles,
            subscription.latitude,
            subscription.longitude,
            subscription.channel,
        )
        return subscription

    def deactivate(self, subscriber_id: str) -> bool:
        """Turn off a subscriber's alerts. Safe to call repeatedly.

        Returns:
            True if an active subscription was switched off
        """
        current = self.store.get(str(subscriber_id))
        if current is None or not current.active:
            return False

        self.store.put(replace(current, active=False, updated_at=utc_now()))
        logger.info("Subscription deactivated for %s", subscriber_id)
        return True

    def get(self, subscriber_id: str) -> Subscription | None:
        return self.store.get(str(subscriber_id))

    def find_within_radius(self, point: GeoPoint) -> list[tuple[Subscription, float]]:
        """Active subscriptions whose own radius covers a point.

        Returns:
            List of (subscription, distance_miles); order is not meaningful
        """
        return match_subscriptions(self.store.all(), point.latitude, point.longitude)
