"""Tests for the DeduplicationIndex service."""

from unittest.mock import Mock

import pytest

from incident_alerts.core.dedup import DedupMode, normalize_source_key
from incident_alerts.core.errors import StoreUnavailable
from incident_alerts.core.report import Report, ReportCategory
from incident_alerts.dedup_index import DeduplicationIndex
from incident_alerts.shell.memory_store import InMemoryReportStore


def make_report(address, report_id="r1"):
    return Report(
        id=report_id,
        latitude=44.9483,
        longitude=-93.2626,
        category=ReportCategory.OBSERVED,
        title="t",
        description="d",
        address=address,
        source_key=normalize_source_key(address),
    )


@pytest.fixture
def index():
    return DeduplicationIndex(InMemoryReportStore())


class TestExactMode:
    """Tests for EXACT duplicate detection."""

    def test_unknown_address_not_duplicate(self, index):
        assert index.is_duplicate("Lake St & Chicago Ave") is False

    def test_registered_address_is_duplicate(self, index):
        index.register(make_report("Lake St & Chicago Ave"))

        assert index.is_duplicate("Lake St & Chicago Ave") is True

    def test_whitespace_and_case_normalized(self, index):
        index.register(make_report("Lake St & Chicago Ave"))

        assert index.is_duplicate("  lake st   &  CHICAGO ave ") is True

    def test_different_address_not_duplicate(self, index):
        index.register(make_report("Lake St & Chicago Ave"))

        assert index.is_duplicate("Lake St & Bloomington Ave") is False

    def test_empty_address_never_duplicate(self, index):
        index.register(make_report(""))

        assert index.is_duplicate("") is False


class TestFuzzyPrefixMode:
    """Tests for FUZZY_PREFIX duplicate detection."""

    def test_first_segment_found_in_known_address(self, index):
        index.register(make_report("2800 E Lake St, Minneapolis, MN 55406, USA"))

        assert index.is_duplicate("2800 E Lake St, Minneapolis", DedupMode.FUZZY_PREFIX) is True

    def test_unrelated_address(self, index):
        index.register(make_report("2800 E Lake St, Minneapolis, MN 55406, USA"))

        assert index.is_duplicate("1500 Franklin Ave, Minneapolis", DedupMode.FUZZY_PREFIX) is False

    def test_exact_mode_misses_what_fuzzy_catches(self, index):
        index.register(make_report("2800 E Lake St, Minneapolis, MN 55406, USA"))

        assert index.is_duplicate("2800 E Lake St, Minneapolis", DedupMode.EXACT) is False


class TestStoreFailures:
    """Store errors are raised to the caller."""

    def test_read_failure_propagates(self):
        store = Mock()
        store.has_source_key.side_effect = StoreUnavailable("down")

        with pytest.raises(StoreUnavailable):
            DeduplicationIndex(store).is_duplicate("Lake St")

    def test_write_failure_propagates(self):
        store = Mock()
        store.add.side_effect = StoreUnavailable("down")

        with pytest.raises(StoreUnavailable):
            DeduplicationIndex(store).register(make_report("Lake St"))
