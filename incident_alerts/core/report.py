"""Report data model and parsing - Pure functions.

This module defines the Report record consumed by the dispatcher and the
helpers that turn loosely-formatted input (feed labels, "1:05 AM" times,
address strings) into typed values. All functions are pure.
"""

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from incident_alerts.core.geo import is_valid_coordinate


MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 2000

_TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})\s*([AP]M)", re.IGNORECASE)
_STATE_PATTERN = re.compile(
    r",\s*([A-Z]{2})\s*\d{5}|,\s*([A-Z]{2}),?\s*USA",
    re.IGNORECASE,
)


class ReportCategory(str, Enum):
    """Severity/urgency classification of a report."""
    CRITICAL = "CRITICAL"
    ACTIVE = "ACTIVE"
    OBSERVED = "OBSERVED"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: "str | ReportCategory") -> "ReportCategory":
        """Strictly parse a category name (case-insensitive).

        Raises:
            ValueError: If the value is not a known category
        """
        if isinstance(value, ReportCategory):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown report category: {value!r}") from None


class ReportSource(str, Enum):
    """Where a report came from."""
    WEB = "web"
    TELEGRAM = "telegram"
    AGGREGATED = "aggregated"


@dataclass(frozen=True)
class Report:
    """Immutable incident report.

    Attributes:
        id: Opaque unique id assigned at creation
        latitude: Report latitude
        longitude: Report longitude
        category: Severity classification
        title: Short title
        description: Free-text description
        address: Address as submitted
        city: City (from geocoder or address text)
        region: State/region abbreviation
        source_key: Deduplication key derived from the address
        source: Where the report came from
        occurred_at: When the event happened (UTC)
        ingested_at: When the report was recorded (UTC)
    """
    id: str
    latitude: float
    longitude: float
    category: ReportCategory
    title: str
    description: str
    address: str | None = None
    city: str | None = None
    region: str | None = None
    source_key: str = ""
    source: ReportSource = ReportSource.WEB
    occurred_at: datetime | None = None
    ingested_at: datetime | None = None

    @property
    def coordinates(self) -> tuple[float, float]:
        """Return (latitude, longitude) tuple."""
        return (self.latitude, self.longitude)

    @property
    def has_valid_coordinates(self) -> bool:
        """True if the report can be placed on the map."""
        return is_valid_coordinate(self.latitude, self.longitude)


def new_report_id() -> str:
    """Generate an opaque report id."""
    return uuid.uuid4().hex


def map_feed_category(label: str | None) -> ReportCategory:
    """Map a loosely-formatted feed label onto a category.

    Pure function. Matches by substring, so "Critical Incident" maps to
    CRITICAL; anything unrecognised becomes OTHER.
    """
    normalized = (label or "").lower()
    if "critical" in normalized:
        return ReportCategory.CRITICAL
    if "active" in normalized:
        return ReportCategory.ACTIVE
    if "observed" in normalized:
        return ReportCategory.OBSERVED
    return ReportCategory.OTHER


def build_title(category: ReportCategory, address: str) -> str:
    """Build a report title from its category and address.

    Pure function.
    """
    return f"{category.value} - {address}"[:MAX_TITLE_LENGTH]


def parse_time_occurred(text: str | None, day: datetime) -> datetime:
    """Place a "1:05 AM" style time on a given day.

    Pure function. If the text can't be parsed the day itself is
    returned unchanged.

    Args:
        text: Clock time such as "10:15 AM" or "12:30 am"
        day: Date (and timezone) to attach the time to

    Returns:
        Datetime on `day` at the parsed time
    """
    if not text:
        return day

    match = _TIME_PATTERN.search(text)
    if not match:
        return day

    hour = int(match.group(1))
    minute = int(match.group(2))
    period = match.group(3).upper()

    if hour > 12 or minute > 59:
        return day

    if period == "PM" and hour != 12:
        hour += 12
    if period == "AM" and hour == 12:
        hour = 0

    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


def parse_state(address: str) -> str | None:
    """Extract a two-letter state from "…, MN 55407" or "…, MN, USA".

    Pure function.
    """
    match = _STATE_PATTERN.search(address or "")
    if not match:
        return None
    return (match.group(1) or match.group(2)).upper()


def parse_city(address: str) -> str | None:
    """Guess the city from a comma-separated address.

    Pure function. Feed addresses end with "City, ST ZIP, USA", so the
    third-from-last segment is the city; shorter strings fall back to
    the first segment.
    """
    parts = [p.strip() for p in (address or "").split(",")]
    if len(parts) < 2:
        return None
    if len(parts) >= 3 and parts[-3]:
        return parts[-3]
    return parts[0] or None


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)
