"""Cloud Function Entry Point - Root Module.

This is the root-level entry point for Google Cloud Functions.
It imports from the incident_alerts package.
"""

from incident_alerts.main import (
    report_submit,
    telegram_webhook,
)

__all__ = [
    "report_submit",
    "telegram_webhook",
]
