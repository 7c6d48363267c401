"""Deduplication logic - Pure functions.

This module handles logic for deciding whether a candidate report
describes an event that is already known. All functions are pure with
no side effects.

Note: The actual persistence of known reports is handled by the
imperative shell (report stores). This module only contains the pure
key derivation and matching rules.
"""

import re
from enum import Enum
from typing import Iterable


MAX_SOURCE_KEY_LENGTH = 100

_WHITESPACE = re.compile(r"\s+")


class DedupMode(str, Enum):
    """How a candidate is compared against known reports.

    EXACT: normalized source keys must be equal.
    FUZZY_PREFIX: the candidate's first comma-delimited segment must
        appear (case-insensitively) inside a known report's address.
    """
    EXACT = "exact"
    FUZZY_PREFIX = "fuzzy_prefix"


def normalize_source_key(text: str) -> str:
    """Derive the deduplication key for an address.

    Pure function.

    Lowercases, collapses each whitespace run to a single hyphen and
    truncates to MAX_SOURCE_KEY_LENGTH characters.

    Examples:
        "  Lake Street   &  Chicago Ave " -> "lake-street-&-chicago-ave"
    """
    collapsed = _WHITESPACE.sub("-", (text or "").strip().lower())
    return collapsed[:MAX_SOURCE_KEY_LENGTH]


def first_segment(address: str) -> str:
    """Return the address text before the first comma.

    Pure function.
    """
    return (address or "").split(",")[0].strip()


def is_fuzzy_duplicate(address: str, known_addresses: Iterable[str | None]) -> bool:
    """Check whether a candidate's first segment appears in a known address.

    Pure function. An empty first segment never matches.

    Args:
        address: Candidate address as submitted
        known_addresses: Addresses of already-stored reports

    Returns:
        True if any known address contains the candidate's first segment
    """
    segment = first_segment(address).lower()
    if not segment:
        return False

    for known in known_addresses:
        if known and segment in known.lower():
            return True

    return False


def resolve_mode(
    source: str,
    configured_modes: dict[str, str],
    default: DedupMode = DedupMode.EXACT,
) -> DedupMode:
    """Pick the dedup mode for an ingestion source.

    Pure function.

    Args:
        source: Ingestion source name (e.g. "aggregated")
        configured_modes: Mapping of source name to mode value
        default: Mode used for sources without an entry

    Returns:
        The DedupMode for this source
    """
    value = configured_modes.get(source)
    if value is None:
        return default
    return DedupMode(value)
