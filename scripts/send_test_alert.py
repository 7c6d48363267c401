#!/usr/bin/env python3
"""Send a test alert through the configured channels.

⚠️  WARNING: This script sends REAL notifications!
    - Telegram: Posts to the broadcast channel
    - Subscribers: Messages every active subscriber in range

This script creates a synthetic test report (marked [TEST]) and runs it
through the same dispatcher and formatting as production alerts. The
report is not stored.

Usage:
    # Dry run (preview only, no sends)
    python scripts/send_test_alert.py --dry-run

    # Send only to one chat instead of the channel and subscribers
    python scripts/send_test_alert.py --chat-id 123456789

    # Send for a specific point
    python scripts/send_test_alert.py --latitude 44.9488 --longitude -93.2583

Environment:
    CONFIG_PATH: Path to config file (default: config/config.yaml)
    GCP_PROJECT: GCP project ID for Secret Manager access
"""

import argparse
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from incident_alerts.core.errors import MisconfiguredChannel
from incident_alerts.core.formatter import format_channel_message, format_subscriber_message
from incident_alerts.core.geo import GeoPoint
from incident_alerts.core.report import (
    Report,
    ReportCategory,
    ReportSource,
    new_report_id,
    utc_now,
)
from incident_alerts.orchestrator import Orchestrator
from incident_alerts.shell.config_loader import load_config

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def create_test_report(
    category: ReportCategory = ReportCategory.OBSERVED,
    address: str = "Lake Street & Chicago Ave, Minneapolis, MN",
    latitude: float = 44.9483,
    longitude: float = -93.2626,
) -> Report:
    """Create a synthetic test report.

    Args:
        category: Report category
        address: Address shown in the message
        latitude: Report latitude
        longitude: Report longitude

    Returns:
        Synthetic Report object
    """
    now = utc_now()
    return Report(
        id=new_report_id(),
        latitude=latitude,
        longitude=longitude,
        category=category,
        title=f"[TEST] {category.value} - {address}",
        description="[TEST] This is a test alert. No action needed.",
        address=address,
        source_key="test",
        source=ReportSource.WEB,
        occurred_at=now,
        ingested_at=now,
    )


def main():
    parser = argparse.ArgumentParser(
        description="Send a test alert to configured channels",
        epilog="⚠️  WARNING: This sends REAL notifications! Use --dry-run first.",
    )
    parser.add_argument(
        "--category",
        type=str,
        default="OBSERVED",
        help="Report category (default: OBSERVED)",
    )
    parser.add_argument(
        "--address",
        type=str,
        default="Lake Street & Chicago Ave, Minneapolis, MN",
        help="Address shown in the alert",
    )
    parser.add_argument("--latitude", type=float, default=44.9483)
    parser.add_argument("--longitude", type=float, default=-93.2626)
    parser.add_argument(
        "--chat-id",
        type=str,
        default=None,
        help="Send only to this Telegram chat (skips the channel and subscribers)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print what would be sent without actually sending",
    )
    args = parser.parse_args()

    config = load_config(os.environ.get("CONFIG_PATH"))

    try:
        category = ReportCategory.parse(args.category)
    except ValueError as e:
        logger.error("%s", e)
        return 1

    report = create_test_report(category, args.address, args.latitude, args.longitude)
    orchestrator = Orchestrator(config)

    logger.info("")
    logger.info("Test Report Details:")
    logger.info("  Category: %s", report.category.value)
    logger.info("  Address: %s", report.address)
    logger.info("  Coordinates: (%.4f, %.4f)", report.latitude, report.longitude)
    logger.info("")

    if args.dry_run:
        logger.info("DRY RUN - Channel message:")
        print(format_channel_message(report, config.app_url, config.timezone))
        print()

        matches = orchestrator.registry.find_within_radius(
            GeoPoint(report.latitude, report.longitude)
        )
        logger.info("DRY RUN - %d subscriber(s) in range", len(matches))
        for subscription, miles in matches:
            logger.info("  - %s (%s)", subscription.subscriber_id, subscription.channel)
        if matches:
            subscription, miles = matches[0]
            print(format_subscriber_message(report, miles, config.app_url, config.timezone))
        return 0

    if args.chat_id:
        channel = orchestrator.dispatcher.channels.get("telegram")
        if channel is None:
            logger.error("Telegram is not configured")
            return 1
        result = channel.send(
            args.chat_id,
            format_channel_message(report, config.app_url, config.timezone),
        )
        if result.success:
            logger.info("  ✓ Test alert sent to %s", args.chat_id)
            return 0
        logger.error("  ✗ Failed to send test alert (%s): %s", result.outcome.value, result.error)
        return 1

    try:
        result = orchestrator.notify_new_report(report)
    except MisconfiguredChannel as e:
        logger.error("%s", e)
        return 1

    logger.info("=" * 50)
    logger.info("Test Alert Summary: %s", result.summary)

    return 0 if result.recipients_failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
