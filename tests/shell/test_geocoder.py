"""Tests for the Geocoder service.

The Nominatim client is replaced with a Mock so the fallback chain can
be checked query by query.
"""

from unittest.mock import Mock

import requests

from incident_alerts.geocoder import Geocoder


PLACE = [{
    "lat": "44.9483",
    "lon": "-93.2626",
    "address": {"city": "Minneapolis", "state": "Minnesota"},
}]


def make_geocoder(responses_by_query=None, default=None, **kwargs):
    """Geocoder whose client answers from a dict, falling back to `default`."""
    responses_by_query = responses_by_query or {}
    client = Mock()

    def search(query):
        value = responses_by_query.get(query, default if default is not None else [])
        if isinstance(value, Exception):
            raise value
        return value

    client.search.side_effect = search
    return Geocoder(client=client, **kwargs), client


def queried(client):
    return [c.args[0] for c in client.search.call_args_list]


class TestGeocoderResolve:
    """Tests for Geocoder.resolve()."""

    def test_intersection_tried_first(self):
        """An intersection is looked up as "A and B" with the region appended."""
        geocoder, client = make_geocoder(default=PLACE)

        result = geocoder.resolve("Lake Street & Chicago Ave")

        assert queried(client) == ["Lake Street and Chicago Ave, Minneapolis, MN"]
        assert result.latitude == 44.9483
        assert result.longitude == -93.2626
        assert result.city == "Minneapolis"
        assert result.region == "MN"
        assert result.query == "Lake Street and Chicago Ave, Minneapolis, MN"

    def test_falls_through_empty_results(self):
        """Empty answers move on to the next variant."""
        geocoder, client = make_geocoder({"Lake Street, Minneapolis, MN": PLACE})

        result = geocoder.resolve("Lake Street & Chicago Ave")

        assert result is not None
        assert queried(client) == [
            "Lake Street and Chicago Ave, Minneapolis, MN",
            "Lake Street, Minneapolis, MN",
        ]

    def test_continues_past_request_errors(self):
        geocoder, client = make_geocoder({
            "Lake Street and Chicago Ave, Minneapolis, MN": requests.ConnectionError("down"),
            "Lake Street, Minneapolis, MN": ValueError("not json"),
            "Lake Street & Chicago Ave": PLACE,
        })

        result = geocoder.resolve("Lake Street & Chicago Ave")

        assert result.query == "Lake Street & Chicago Ave"
        assert len(queried(client)) == 3

    def test_exhausted_chain_returns_none(self):
        """When no variant matches the result is None, not an exception."""
        geocoder, client = make_geocoder()

        assert geocoder.resolve("Lake Street & Chicago Ave") is None
        assert queried(client) == [
            "Lake Street and Chicago Ave, Minneapolis, MN",
            "Lake Street, Minneapolis, MN",
            "Lake Street & Chicago Ave",
            "Lake Street & Chicago Ave, Minneapolis, MN",
        ]

    def test_empty_address_makes_no_requests(self):
        geocoder, client = make_geocoder(default=PLACE)

        assert geocoder.resolve("   ") is None
        client.search.assert_not_called()

    def test_uses_configured_region(self):
        geocoder, client = make_geocoder(
            default=PLACE,
            default_region="St. Paul, MN",
        )

        geocoder.resolve("55104")

        # A bare ZIP has no region token, but is tried as submitted first
        assert queried(client) == ["55104"]

    def test_malformed_place_skipped(self):
        geocoder, client = make_geocoder({"55407": [{"lat": "x"}]}, default=[])

        assert geocoder.resolve("55407") is None
        assert queried(client) == ["55407", "55407, Minneapolis, MN"]


class TestGeocoderCache:
    """Tests for the per-process resolve cache."""

    def test_cache_off_by_default(self):
        geocoder, client = make_geocoder(default=PLACE)

        geocoder.resolve("55407")
        geocoder.resolve("55407")

        assert client.search.call_count == 2

    def test_cached_result_reused(self):
        geocoder, client = make_geocoder(default=PLACE, cache_size=10)

        first = geocoder.resolve("55407")
        second = geocoder.resolve(" 55407 ")

        assert first == second
        assert client.search.call_count == 1

    def test_misses_not_cached(self):
        geocoder, client = make_geocoder(cache_size=10)

        geocoder.resolve("55407")
        geocoder.resolve("55407")

        assert client.search.call_count == 4

    def test_least_recently_used_evicted(self):
        geocoder, client = make_geocoder(default=PLACE, cache_size=1)

        geocoder.resolve("55407")
        geocoder.resolve("55408")
        geocoder.resolve("55407")

        assert client.search.call_count == 3
