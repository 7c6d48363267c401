"""Subscription model and radius matching - Pure functions.

A subscriber registers one anchor point and a personal radius. An event
matches a subscription when the event lies inside that subscriber's own
circle. All functions here are pure.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from incident_alerts.core.geo import calculate_distance, validate_coordinates


MIN_RADIUS_MILES = 1.0
MAX_RADIUS_MILES = 50.0
DEFAULT_RADIUS_MILES = 5.0

DEFAULT_CHANNEL = "telegram"


@dataclass(frozen=True)
class Subscription:
    """A subscriber's alert area.

    Attributes:
        subscriber_id: Opaque subscriber identity (e.g. chat id)
        latitude: Anchor latitude
        longitude: Anchor longitude
        radius_miles: Alert radius around the anchor
        active: Whether alerts should be delivered
        channel: Delivery channel type ("telegram", "whatsapp")
        label: Location text the subscriber registered
        updated_at: Last change (UTC)
    """
    subscriber_id: str
    latitude: float
    longitude: float
    radius_miles: float
    active: bool = True
    channel: str = DEFAULT_CHANNEL
    label: str | None = None
    updated_at: datetime | None = None

    @property
    def coordinates(self) -> tuple[float, float]:
        """Return (latitude, longitude) tuple."""
        return (self.latitude, self.longitude)


def validate_radius(
    radius: float,
    min_radius: float = MIN_RADIUS_MILES,
    max_radius: float = MAX_RADIUS_MILES,
) -> str | None:
    """Validate an alert radius.

    Pure function.

    Returns:
        A human-readable problem, or None if the radius is valid
    """
    try:
        value = float(radius)
    except (TypeError, ValueError):
        return f"Radius {radius!r} is not a number"

    if not min_radius <= value <= max_radius:
        return f"Radius must be between {min_radius:g} and {max_radius:g} miles, got {value:g}"

    return None


def validate_anchor(latitude: float, longitude: float) -> str | None:
    """Validate a subscription anchor point.

    Pure function.

    Returns:
        A human-readable problem, or None if the point is valid
    """
    problems = validate_coordinates(latitude, longitude)
    if problems:
        return "; ".join(problems)
    return None


def distance_to_subscription(
    subscription: Subscription,
    latitude: float,
    longitude: float,
) -> float:
    """Distance in miles from a subscription's anchor to a point.

    Pure function.
    """
    return calculate_distance(
        subscription.latitude,
        subscription.longitude,
        latitude,
        longitude,
    )


def match_subscriptions(
    subscriptions: Iterable[Subscription],
    latitude: float,
    longitude: float,
) -> list[tuple[Subscription, float]]:
    """Find active subscriptions whose own radius covers a point.

    Pure function. A full scan with the haversine check; the boundary is
    inclusive. Result order is not meaningful.

    Args:
        subscriptions: Candidate subscriptions
        latitude: Event latitude
        longitude: Event longitude

    Returns:
        List of (subscription, distance_miles) tuples
    """
    matches = []

    for subscription in subscriptions:
        if not subscription.active:
            continue
        miles = distance_to_subscription(subscription, latitude, longitude)
        if miles <= subscription.radius_miles:
            matches.append((subscription, miles))

    return matches
