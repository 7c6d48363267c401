"""Alert Dispatcher - Fans a new report out to nearby subscribers.

For each report:
1. One broadcast message to the shared channel (if configured)
2. One personalised message to every active subscriber whose radius
   covers the report
3. Subscribers whose delivery failed permanently are deactivated

A single recipient's failure never stops the others.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Protocol

from incident_alerts.core.delivery import DeliveryOutcome, DeliveryResult
from incident_alerts.core.errors import MisconfiguredChannel, StoreUnavailable
from incident_alerts.core.formatter import (
    DEFAULT_TIMEZONE,
    format_channel_message,
    format_report_summary,
    format_subscriber_message,
)
from incident_alerts.core.geo import GeoPoint
from incident_alerts.core.report import Report
from incident_alerts.core.subscription import Subscription
from incident_alerts.registry import SubscriptionRegistry


logger = logging.getLogger(__name__)


class DeliveryChannel(Protocol):
    """Anything that can deliver a text message to a recipient."""

    def send(self, recipient: str, text: str) -> DeliveryResult:
        ...


@dataclass
class DispatchResult:
    """Outcome of dispatching one report.

    Attributes:
        channel_sent: Whether the broadcast message went out
        recipients_sent: Personalised messages delivered
        recipients_failed: Personalised messages not delivered
        deactivated: Subscriber ids switched off after a permanent failure
    """
    channel_sent: bool = False
    recipients_sent: int = 0
    recipients_failed: int = 0
    deactivated: list[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        """Human-readable summary of the dispatch."""
        return (
            f"channel={'sent' if self.channel_sent else 'skipped'}, "
            f"{self.recipients_sent} sent, "
            f"{self.recipients_failed} failed, "
            f"{len(self.deactivated)} deactivated"
        )


class AlertDispatcher:
    """Delivers report alerts through the registered channels."""

    def __init__(
        self,
        registry: SubscriptionRegistry,
        channels: dict[str, DeliveryChannel],
        broadcast_target: str | None = None,
        broadcast_channel: str = "telegram",
        app_url: str = "",
        timezone: str = DEFAULT_TIMEZONE,
        max_workers: int = 1,
    ) -> None:
        """Initialize dispatcher.

        Args:
            registry: Subscription registry to query and deactivate through
            channels: Delivery channels keyed by channel type
            broadcast_target: Shared channel id (None to skip the broadcast)
            broadcast_channel: Channel type used for the broadcast
            app_url: Map URL included in messages
            timezone: Timezone for displayed times
            max_workers: Parallel deliveries (1 = sequential)
        """
        self.registry = registry
        self.channels = channels
        self.broadcast_target = broadcast_target
        self.broadcast_channel = broadcast_channel
        self.app_url = app_url
        self.timezone = timezone
        self.max_workers = max(1, max_workers)

    def _broadcast(self, report: Report) -> bool:
        if not self.broadcast_target:
            return False

        channel = self.channels.get(self.broadcast_channel)
        if channel is None:
            logger.error("Broadcast channel type %r is not registered", self.broadcast_channel)
            return False

        text = format_channel_message(report, self.app_url, self.timezone)
        try:
            result = channel.send(self.broadcast_target, text)
        except Exception as e:
            logger.error("Broadcast for report %s raised: %s", report.id, str(e))
            return False

        if result.success:
            logger.info("Broadcast sent for report %s", report.id)
        else:
            logger.error("Broadcast failed for report %s: %s", report.id, result.error)
        return result.success

    def _deliver(
        self,
        report: Report,
        subscription: Subscription,
        distance_miles: float,
    ) -> DeliveryResult:
        """Attempt delivery to one subscriber, exactly once."""
        recipient = subscription.subscriber_id
        channel = self.channels.get(subscription.channel)
        if channel is None:
            logger.error(
                "No %r channel registered for subscriber %s",
                subscription.channel,
                recipient,
            )
            return DeliveryResult(
                outcome=DeliveryOutcome.TRANSIENT,
                recipient=recipient,
                error=f"Channel {subscription.channel!r} not registered",
            )

        text = format_subscriber_message(report, distance_miles, self.app_url, self.timezone)
        try:
            return channel.send(recipient, text)
        except Exception as e:
            logger.error("Delivery to %s raised: %s", recipient, str(e))
            return DeliveryResult(
                outcome=DeliveryOutcome.TRANSIENT,
                recipient=recipient,
                error=str(e),
            )

    def dispatch(self, report: Report) -> DispatchResult:
        """Send alerts for a newly accepted report.

        Args:
            report: The accepted report

        Returns:
            DispatchResult with delivery counts

        Raises:
            MisconfiguredChannel: If no delivery channel is registered
            StoreUnavailable: If subscriptions cannot be read
        """
        if not self.channels:
            raise MisconfiguredChannel("No delivery channels registered")

        result = DispatchResult()
        result.channel_sent = self._broadcast(report)

        if not report.has_valid_coordinates:
            logger.warning("Report %s has no usable coordinates, skipping fan-out", report.id)
            return result

        matches = self.registry.find_within_radius(
            GeoPoint(report.latitude, report.longitude)
        )
        logger.info("%s: %d subscribers in range", format_report_summary(report), len(matches))

        if self.max_workers > 1 and len(matches) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(
                    lambda match: self._deliver(report, match[0], match[1]),
                    matches,
                ))
        else:
            outcomes = [self._deliver(report, sub, miles) for sub, miles in matches]

        for (subscription, _), outcome in zip(matches, outcomes):
            if outcome.success:
                result.recipients_sent += 1
                continue

            result.recipients_failed += 1
            if outcome.permanent:
                logger.warning(
                    "Permanent delivery failure for %s, deactivating: %s",
                    subscription.subscriber_id,
                    outcome.error,
                )
                try:
                    if self.registry.deactivate(subscription.subscriber_id):
                        result.deactivated.append(subscription.subscriber_id)
                except StoreUnavailable as e:
                    logger.error(
                        "Could not deactivate %s: %s",
                        subscription.subscriber_id,
                        str(e),
                    )
            else:
                logger.warning(
                    "Transient delivery failure for %s: %s",
                    subscription.subscriber_id,
                    outcome.error,
                )

        logger.info("Dispatch for report %s: %s", report.id, result.summary)
        return result
