"""Request spacing logic - Pure functions.

The public geocoding service allows at most one request per second per
client. The shell client keeps the timestamps; this module only decides
how long to wait.
"""

from dataclasses import dataclass


# Minimum spacing required by the Nominatim usage policy (seconds)
MIN_REQUEST_INTERVAL = 1.0


@dataclass(frozen=True)
class ThrottleDecision:
    """Result of checking whether a request may start.

    Attributes:
        wait_seconds: How long to sleep before sending (0 if none)
        next_allowed_at: Clock value at which the request may start
    """
    wait_seconds: float
    next_allowed_at: float


def effective_interval(configured: float) -> float:
    """Clamp a configured interval so it never undercuts the policy.

    Pure function.
    """
    return max(configured, MIN_REQUEST_INTERVAL)


def compute_wait(
    last_request_at: float | None,
    now: float,
    min_interval: float = MIN_REQUEST_INTERVAL,
) -> ThrottleDecision:
    """Compute how long to wait before the next request.

    Pure function.

    Args:
        last_request_at: Monotonic clock value of the previous request
                         start, or None if there was none
        now: Current monotonic clock value
        min_interval: Minimum spacing between request starts

    Returns:
        ThrottleDecision with the wait and the allowed start time
    """
    if last_request_at is None:
        return ThrottleDecision(wait_seconds=0.0, next_allowed_at=now)

    next_allowed_at = last_request_at + min_interval
    wait_seconds = max(0.0, next_allowed_at - now)

    return ThrottleDecision(
        wait_seconds=wait_seconds,
        next_allowed_at=max(now, next_allowed_at),
    )
