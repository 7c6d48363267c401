"""Geocoder - Resolves free-text addresses to coordinates.

Wires the pure query builder and response parser from core.geocode to
the rate-limited Nominatim client. Each query variant is tried in order
and the first non-empty result wins.
"""

import logging
import threading
from collections import OrderedDict

import requests

from incident_alerts.core.geocode import (
    DEFAULT_REGION,
    DEFAULT_REGION_TOKENS,
    GeocodeResult,
    build_geocode_queries,
    parse_geocode_response,
)
from incident_alerts.shell.nominatim_client import NominatimClient


logger = logging.getLogger(__name__)


class Geocoder:
    """Resolves addresses by walking a fallback chain of query variants.

    Not finding an address is a normal outcome: resolve() returns None.
    """

    def __init__(
        self,
        client: NominatimClient | None = None,
        default_region: str = DEFAULT_REGION,
        region_tokens: tuple[str, ...] = DEFAULT_REGION_TOKENS,
        cache_size: int = 0,
    ) -> None:
        """Initialize geocoder.

        Args:
            client: Nominatim client (created if not provided)
            default_region: Region appended to addresses that name none
            region_tokens: Tokens that mark an address as already regional
            cache_size: Number of resolved addresses to remember (0 = off)
        """
        self.client = client or NominatimClient()
        self.default_region = default_region
        self.region_tokens = region_tokens
        self.cache_size = cache_size
        self._cache: OrderedDict[str, GeocodeResult] = OrderedDict()
        self._cache_lock = threading.Lock()

    def _cache_get(self, key: str) -> GeocodeResult | None:
        if self.cache_size <= 0:
            return None
        with self._cache_lock:
            result = self._cache.get(key)
            if result is not None:
                self._cache.move_to_end(key)
            return result

    def _cache_put(self, key: str, result: GeocodeResult) -> None:
        if self.cache_size <= 0:
            return
        with self._cache_lock:
            self._cache[key] = result
            self._cache.move_to_end(key)
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)

    def _lookup(self, query: str) -> GeocodeResult | None:
        """Try a single query variant. Failures are logged, never raised."""
        try:
            data = self.client.search(query)
        except requests.RequestException as e:
            logger.warning("Geocode lookup failed for %r: %s", query, str(e))
            return None
        except ValueError as e:
            logger.warning("Geocode response for %r was not JSON: %s", query, str(e))
            return None

        return parse_geocode_response(data, query)

    def resolve(self, address: str) -> GeocodeResult | None:
        """Resolve an address to coordinates.

        Args:
            address: Free-text address, intersection or ZIP code

        Returns:
            GeocodeResult from the first variant that matched, or None
        """
        key = (address or "").strip().lower()
        cached = self._cache_get(key)
        if cached is not None:
            logger.debug("Geocode cache hit for %r", address)
            return cached

        queries = build_geocode_queries(address, self.default_region, self.region_tokens)

        for query in queries:
            result = self._lookup(query)
            if result is not None:
                logger.info(
                    "Geocoded %r via %r -> (%.5f, %.5f)",
                    address,
                    query,
                    result.latitude,
                    result.longitude,
                )
                self._cache_put(key, result)
                return result

        logger.warning("Could not geocode %r after %d variants", address, len(queries))
        return None
