#!/usr/bin/env python3
"""Import a batch of aggregated sightings.

Reads a YAML list of sightings, skips any whose first address segment
already appears in a stored report, geocodes the rest and stores them
as aggregated reports. Sightings are processed one at a time; the
geocoder spaces lookups at least one second apart.

Sightings file format:

    - type: OBSERVED
      address: "9100 3rd Ave S, Minneapolis, MN 55420, USA"
      time_occurred: "10:39 AM"
    - type: Critical
      address: "701 E 77th St, Richfield, MN, USA"
      time_occurred: "2:41 AM"

Usage:
    # Import without sending alerts
    python scripts/import_sightings.py sightings.yaml

    # Import and alert nearby subscribers
    python scripts/import_sightings.py sightings.yaml --notify

Environment:
    CONFIG_PATH: Path to config file (default: config/config.yaml)
    GCP_PROJECT: GCP project ID for Secret Manager access
"""

import argparse
import logging
import os
import sys
from datetime import datetime
from zoneinfo import ZoneInfo

import yaml

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from incident_alerts.core.dedup import first_segment
from incident_alerts.core.report import ReportSource, map_feed_category, parse_time_occurred
from incident_alerts.orchestrator import Orchestrator, RejectionReason
from incident_alerts.shell.config_loader import load_config

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def load_sightings(path: str) -> list[dict]:
    """Load the sightings list from a YAML file."""
    with open(path, "r") as f:
        data = yaml.safe_load(f) or []

    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of sightings")

    return [s for s in data if isinstance(s, dict) and s.get("address")]


def import_sightings(
    orchestrator: Orchestrator,
    sightings: list[dict],
    source_name: str = "community feed",
    notify: bool = False,
) -> dict[str, int]:
    """Ingest sightings one by one.

    Returns:
        Counts of imported, skipped (duplicate) and failed sightings
    """
    counts = {"imported": 0, "skipped": 0, "failed": 0}
    today = datetime.now(ZoneInfo(orchestrator.config.timezone)).replace(
        hour=0, minute=0, second=0, microsecond=0
    )

    for sighting in sightings:
        address = str(sighting["address"])
        time_text = sighting.get("time_occurred")
        category = map_feed_category(sighting.get("type"))

        description = f"Activity reported at {address}."
        if time_text:
            description += f" Time occurred: {time_text}."
        description += f" Source: {source_name}"

        result = orchestrator.ingest(
            address,
            category,
            description,
            occurred_at=parse_time_occurred(time_text, today),
            source=ReportSource.AGGREGATED,
            title=f"{category.value} - {first_segment(address)}",
            notify=notify,
        )

        if result.accepted:
            logger.info("OK: %s - %s", result.report.id, address[:40])
            counts["imported"] += 1
        elif result.reason == RejectionReason.DUPLICATE:
            logger.info("SKIP (duplicate): %s", address[:50])
            counts["skipped"] += 1
        else:
            logger.warning("FAIL (%s): %s", result.reason.value, address[:50])
            counts["failed"] += 1

    return counts


def main():
    parser = argparse.ArgumentParser(description="Import aggregated sightings")
    parser.add_argument("sightings", help="YAML file with a list of sightings")
    parser.add_argument(
        "--source-name",
        default="community feed",
        help="Source named in each report description",
    )
    parser.add_argument(
        "--notify",
        action="store_true",
        help="Alert nearby subscribers for each imported report",
    )
    args = parser.parse_args()

    config = load_config(os.environ.get("CONFIG_PATH"))
    if config.storage == "memory":
        logger.warning("Storage is in-memory; imported reports will not persist")

    sightings = load_sightings(args.sightings)
    logger.info("Importing %d sightings...", len(sightings))

    counts = import_sightings(
        Orchestrator(config),
        sightings,
        source_name=args.source_name,
        notify=args.notify,
    )

    logger.info(
        "Done! Imported: %d, Skipped: %d, Failed: %d",
        counts["imported"],
        counts["skipped"],
        counts["failed"],
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
