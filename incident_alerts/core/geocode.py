"""Geocoding query rewrites and response parsing - Pure functions.

The lookup service is only asked one free-text query at a time, so the
geocoder builds an ordered list of rewrites of the submitted address and
tries them in turn. This module holds the rewrite rules and the parsing
of a lookup response into a GeocodeResult. No I/O happens here.
"""

import re
from dataclasses import dataclass
from typing import Any


DEFAULT_REGION = "Minneapolis, MN"
DEFAULT_REGION_TOKENS = ("MN", "Minnesota")

# "Lake Street & Chicago Ave, Minneapolis, MN" / "Lake St and Chicago Ave"
_INTERSECTION_PATTERN = re.compile(
    r"^([^,]+?)\s*(?:&|\+|\band\b)\s*([^,]+?)\s*(?:,|$)",
    re.IGNORECASE,
)

# Unit, suite, apartment and "#" qualifiers
_UNIT_PATTERN = re.compile(
    r"\s*(?:\b(?:suite|ste|unit|apt)\b\.?|#)\s*\w+",
    re.IGNORECASE,
)

US_STATE_ABBREVIATIONS = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT",
    "delaware": "DE", "district of columbia": "DC", "florida": "FL",
    "georgia": "GA", "hawaii": "HI", "idaho": "ID", "illinois": "IL",
    "indiana": "IN", "iowa": "IA", "kansas": "KS", "kentucky": "KY",
    "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN",
    "mississippi": "MS", "missouri": "MO", "montana": "MT",
    "nebraska": "NE", "nevada": "NV", "new hampshire": "NH",
    "new jersey": "NJ", "new mexico": "NM", "new york": "NY",
    "north carolina": "NC", "north dakota": "ND", "ohio": "OH",
    "oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA",
    "rhode island": "RI", "south carolina": "SC", "south dakota": "SD",
    "tennessee": "TN", "texas": "TX", "utah": "UT", "vermont": "VT",
    "virginia": "VA", "washington": "WA", "west virginia": "WV",
    "wisconsin": "WI", "wyoming": "WY",
}


@dataclass(frozen=True)
class GeocodeResult:
    """A resolved address.

    Attributes:
        latitude: Decimal latitude
        longitude: Decimal longitude
        city: City (or town/village) from the address breakdown
        region: State/region abbreviation
        query: The query variant that produced this result
    """
    latitude: float
    longitude: float
    city: str | None = None
    region: str | None = None
    query: str = ""

    @property
    def coordinates(self) -> tuple[float, float]:
        """Return (latitude, longitude) tuple."""
        return (self.latitude, self.longitude)


def has_region_token(address: str, region_tokens: tuple[str, ...]) -> bool:
    """Check if the address already names the service region.

    Pure function.
    """
    for token in region_tokens:
        if re.search(rf"\b{re.escape(token)}\b", address, re.IGNORECASE):
            return True
    return False


def strip_unit_qualifiers(address: str) -> str:
    """Remove suite/unit/apartment/# qualifiers from an address.

    Pure function.

    Examples:
        "123 Main St Suite 200, Minneapolis" -> "123 Main St, Minneapolis"
        "500 Lake St #4B" -> "500 Lake St"
    """
    return _UNIT_PATTERN.sub("", address).strip()


def _dedupe_preserving_order(items: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def build_geocode_queries(
    address: str,
    default_region: str = DEFAULT_REGION,
    region_tokens: tuple[str, ...] = DEFAULT_REGION_TOKENS,
) -> list[str]:
    """Build the ordered list of lookup queries for an address.

    Pure function.

    Order:
    1. Intersection rewrites ("A and B" + suffix, then "A" + suffix)
    2. The address as submitted
    3. The address with the default region appended (if no region token)
    4. The address without unit qualifiers (and with default region)

    Args:
        address: Free-text address
        default_region: Region appended when the address names none
        region_tokens: Tokens that mark the address as already regional

    Returns:
        De-duplicated list of queries, most specific first
    """
    base = address.strip()
    if not base:
        return []

    queries: list[str] = []
    regional = has_region_token(base, region_tokens)
    region_suffix = f", {default_region}"

    match = _INTERSECTION_PATTERN.match(base)
    if match:
        first_street = match.group(1).strip()
        second_street = match.group(2).strip()
        suffix = base[base.index(","):] if "," in base else region_suffix
        if first_street and second_street:
            queries.append(f"{first_street} and {second_street}{suffix}")
            queries.append(f"{first_street}{suffix}")

    queries.append(base)

    if not regional:
        queries.append(f"{base}{region_suffix}")

    simplified = strip_unit_qualifiers(base)
    if simplified and simplified != base:
        queries.append(simplified)
        if not regional:
            queries.append(f"{simplified}{region_suffix}")

    return _dedupe_preserving_order(queries)


def state_abbreviation(state_name: str) -> str:
    """Convert a state name to its two-letter abbreviation.

    Pure function. Names that are already abbreviations are upper-cased;
    unknown names fall back to their first two letters.
    """
    name = state_name.strip()
    if len(name) == 2:
        return name.upper()
    return US_STATE_ABBREVIATIONS.get(name.lower(), name[:2].upper())


def parse_geocode_response(
    data: Any,
    query: str = "",
) -> GeocodeResult | None:
    """Parse a Nominatim search response into a GeocodeResult.

    Pure function: returns None for an empty or malformed result set.

    Args:
        data: Decoded JSON (list of place dicts)
        query: Query that produced the response

    Returns:
        GeocodeResult for the best (first) match, or None
    """
    if not isinstance(data, list) or not data:
        return None

    place = data[0]
    try:
        latitude = float(place["lat"])
        longitude = float(place["lon"])
    except (KeyError, TypeError, ValueError):
        return None

    address = place.get("address") or {}
    city = address.get("city") or address.get("town") or address.get("village")
    state = address.get("state")

    return GeocodeResult(
        latitude=latitude,
        longitude=longitude,
        city=city,
        region=state_abbreviation(state) if state else None,
        query=query,
    )
