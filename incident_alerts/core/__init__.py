"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Geo/distance calculations
- Geocode query rewriting and response parsing
- Report and subscription models
- Deduplication keys and matching
- Message formatting

All functions here are deterministic and have no I/O.
"""

from incident_alerts.core.geo import GeoPoint, calculate_distance, distance, format_distance
from incident_alerts.core.geocode import GeocodeResult, build_geocode_queries, parse_geocode_response
from incident_alerts.core.report import Report, ReportCategory, ReportSource
from incident_alerts.core.subscription import Subscription, match_subscriptions
from incident_alerts.core.dedup import DedupMode, normalize_source_key
from incident_alerts.core.delivery import DeliveryOutcome, DeliveryResult
from incident_alerts.core.formatter import format_channel_message, format_subscriber_message

__all__ = [
    # Geo
    "GeoPoint",
    "calculate_distance",
    "distance",
    "format_distance",
    # Geocode
    "GeocodeResult",
    "build_geocode_queries",
    "parse_geocode_response",
    # Models
    "Report",
    "ReportCategory",
    "ReportSource",
    "Subscription",
    "match_subscriptions",
    # Dedup
    "DedupMode",
    "normalize_source_key",
    # Delivery
    "DeliveryOutcome",
    "DeliveryResult",
    # Formatter
    "format_channel_message",
    "format_subscriber_message",
]
