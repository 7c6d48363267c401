"""Deduplication Index - Answers "has this event already been recorded?".

Backed by a ReportStore. Key derivation and matching rules live in
core.dedup; this module only feeds them stored data.

Two submissions of the same event racing each other may both pass the
check; the index does not lock across check and insert.
"""

import logging

from incident_alerts.core.dedup import (
    DedupMode,
    is_fuzzy_duplicate,
    normalize_source_key,
)
from incident_alerts.core.report import Report
from incident_alerts.core.store import ReportStore


logger = logging.getLogger(__name__)


class DeduplicationIndex:
    """Duplicate check over the stored reports."""

    def __init__(self, store: ReportStore) -> None:
        self.store = store

    def is_duplicate(self, address: str, mode: DedupMode = DedupMode.EXACT) -> bool:
        """Check whether an address matches an already-stored report.

        Args:
            address: Candidate address as submitted
            mode: EXACT compares normalized source keys; FUZZY_PREFIX
                  looks for the first address segment inside stored
                  addresses

        Returns:
            True if the candidate duplicates a stored report

        Raises:
            StoreUnavailable: If the backing store cannot be read
        """
        if mode == DedupMode.FUZZY_PREFIX:
            duplicate = is_fuzzy_duplicate(address, self.store.addresses())
        else:
            key = normalize_source_key(address)
            duplicate = bool(key) and self.store.has_source_key(key)

        if duplicate:
            logger.info("Duplicate detected (%s): %s", mode.value, address)
        return duplicate

    def register(self, report: Report) -> None:
        """Record a report so later submissions of it are caught.

        Raises:
            StoreUnavailable: If the backing store cannot be written
        """
        self.store.add(report)
        logger.debug("Registered source key %s", report.source_key)
