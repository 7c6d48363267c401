"""Delivery outcome model - Pure data structures.

Channel clients report every send attempt as one of three outcomes. The
dispatcher branches on the outcome: permanent failures deactivate the
subscription, transient ones are only logged.
"""

from dataclasses import dataclass
from enum import Enum


class DeliveryOutcome(str, Enum):
    """Result class of a single delivery attempt."""
    SUCCESS = "success"
    TRANSIENT = "transient"
    PERMANENT = "permanent"


@dataclass(frozen=True)
class DeliveryResult:
    """Result of one delivery attempt.

    Attributes:
        outcome: Success, transient failure or permanent failure
        recipient: Who the message was addressed to
        status_code: HTTP status (0 when no response was received)
        error: Error description if failed
    """
    outcome: DeliveryOutcome
    recipient: str
    status_code: int = 0
    error: str | None = None

    @property
    def success(self) -> bool:
        """True if the message was delivered."""
        return self.outcome == DeliveryOutcome.SUCCESS

    @property
    def permanent(self) -> bool:
        """True if the recipient is unreachable for good."""
        return self.outcome == DeliveryOutcome.PERMANENT
