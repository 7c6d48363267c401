"""Geographic calculations - Pure functions.

This module provides distance, boundary and coordinate-parsing helpers
for report and subscription locations. All functions are pure with no
side effects.
"""

import math
import re
from dataclasses import dataclass


# Earth's radius in miles
EARTH_RADIUS_MILES = 3959.0

FEET_PER_MILE = 5280

# "44.9778, -93.2650" anywhere in free text; both parts need decimals
_COORDINATE_PATTERN = re.compile(
    r"(?<![\d.])(-?\d{1,2}\.\d+)\s*,\s*(-?\d{1,3}\.\d+)(?![\d.])"
)


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box.

    Attributes:
        min_latitude: Southern boundary
        max_latitude: Northern boundary
        min_longitude: Western boundary
        max_longitude: Eastern boundary
    """
    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check if a point is within this bounding box."""
        return (
            self.min_latitude <= latitude <= self.max_latitude
            and self.min_longitude <= longitude <= self.max_longitude
        )


def calculate_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate distance between two points using Haversine formula.

    Pure function.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in miles
    """
    # Convert to radians
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    # Haversine formula
    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_MILES * c


def distance(point_a: GeoPoint, point_b: GeoPoint) -> float:
    """Great-circle distance in miles between two points.

    Pure function.
    """
    return calculate_distance(
        point_a.latitude,
        point_a.longitude,
        point_b.latitude,
        point_b.longitude,
    )


def is_valid_coordinate(latitude: float | None, longitude: float | None) -> bool:
    """Check that a latitude/longitude pair is present and in range.

    Pure function.
    """
    if latitude is None or longitude is None:
        return False
    if isinstance(latitude, float) and math.isnan(latitude):
        return False
    if isinstance(longitude, float) and math.isnan(longitude):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def validate_coordinates(latitude: float, longitude: float) -> list[str]:
    """Validate latitude/longitude ranges.

    Pure function.

    Args:
        latitude: Latitude value
        longitude: Longitude value

    Returns:
        List of human-readable problems (empty if valid)
    """
    problems = []

    if not -90 <= latitude <= 90:
        problems.append(f"Latitude {latitude} out of range [-90, 90]")

    if not -180 <= longitude <= 180:
        problems.append(f"Longitude {longitude} out of range [-180, 180]")

    return problems


def parse_coordinates(text: str) -> GeoPoint | None:
    """Extract a literal "lat, lon" pair from free text.

    Pure function.

    Args:
        text: Text that may contain coordinates (e.g. "44.97, -93.26")

    Returns:
        GeoPoint if a pair in valid ranges was found, else None
    """
    if not text:
        return None

    match = _COORDINATE_PATTERN.search(text)
    if not match:
        return None

    latitude = float(match.group(1))
    longitude = float(match.group(2))

    if not is_valid_coordinate(latitude, longitude):
        return None

    return GeoPoint(latitude=latitude, longitude=longitude)


def format_distance(miles: float) -> str:
    """Render a distance for a notification.

    Pure function. Under one mile the distance is shown in feet,
    otherwise in miles with one decimal place.

    Examples:
        0.25 -> "1,320 ft"
        2.03 -> "2.0 mi"
    """
    if miles < 1:
        feet = round(miles * FEET_PER_MILE)
        return f"{feet:,} ft"
    return f"{miles:.1f} mi"
