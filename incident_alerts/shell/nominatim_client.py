"""Nominatim API Client - Imperative Shell.

This module handles HTTP communication with the OpenStreetMap Nominatim
search API. All I/O is contained here; query rewriting and response
parsing are in the core module.

The public service allows at most one request per second per application.
The lock and last-request time are module-level, so every
NominatimClient in the process shares them and each call starts at
least `min_interval` seconds after the previous one.
"""

import logging
import threading
import time
from typing import Any, Callable

import requests

from incident_alerts.core.throttle import (
    MIN_REQUEST_INTERVAL,
    compute_wait,
    effective_interval,
)


logger = logging.getLogger(__name__)


# Nominatim search endpoint
NOMINATIM_API_BASE = "https://nominatim.openstreetmap.org/search"

# Default timeout for API requests (seconds)
DEFAULT_TIMEOUT = 10

DEFAULT_USER_AGENT = "IncidentAlerts/1.0 (community safety tool)"

# Shared by every client in the process
_request_lock = threading.Lock()
_last_request_at: float | None = None


class NominatimClient:
    """Client for free-text address lookups against Nominatim.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(
        self,
        base_url: str = NOMINATIM_API_BASE,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: int = DEFAULT_TIMEOUT,
        min_interval: float = MIN_REQUEST_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize Nominatim client.

        Args:
            base_url: Nominatim search endpoint
            user_agent: User-Agent header sent with every request
            timeout: Request timeout in seconds
            min_interval: Minimum spacing between requests (seconds);
                          values below the policy minimum are raised to it
            clock: Monotonic clock (injectable for tests)
            sleep: Sleep function (injectable for tests)
        """
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout
        self.min_interval = effective_interval(min_interval)
        self._clock = clock
        self._sleep = sleep

    def _wait_for_slot(self) -> None:
        """Block until the next request is allowed. Caller holds the lock."""
        global _last_request_at
        decision = compute_wait(_last_request_at, self._clock(), self.min_interval)
        if decision.wait_seconds > 0:
            logger.debug("Throttling geocode lookup for %.2fs", decision.wait_seconds)
            self._sleep(decision.wait_seconds)
        _last_request_at = self._clock()

    def search(self, query: str) -> list[dict[str, Any]]:
        """Look up a free-text query.

        This method performs HTTP I/O.

        Args:
            query: Free-text address

        Returns:
            List of matching places (at most one), empty if none

        Raises:
            requests.RequestException: If the request fails or returns
                a non-2xx status
            ValueError: If the response body is not JSON
        """
        params = {
            "q": query,
            "format": "json",
            "limit": "1",
            "addressdetails": "1",
        }

        with _request_lock:
            self._wait_for_slot()

            logger.info("Geocoding query: %s", query)

            response = requests.get(
                self.base_url,
                params=params,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )

        response.raise_for_status()
        data = response.json()

        if not isinstance(data, list):
            logger.warning("Unexpected Nominatim response type: %s", type(data).__name__)
            return []

        return data
