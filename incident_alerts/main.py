"""Cloud Function Entry Points.

This module provides the entry points for Google Cloud Functions.
They are thin wrappers that load configuration once per instance and
hand requests to the orchestrator.
"""

import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any

import functions_framework
from flask import Request

from incident_alerts.bot import handle_update
from incident_alerts.core.config import Config, validate_config
from incident_alerts.orchestrator import Orchestrator, RejectionReason
from incident_alerts.shell.config_loader import load_config, load_config_from_env


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


_REJECTION_STATUS = {
    RejectionReason.DUPLICATE: 409,
    RejectionReason.STORE_UNAVAILABLE: 503,
}

_orchestrator: Orchestrator | None = None
_orchestrator_lock = threading.Lock()


def _get_config() -> Config:
    """Load configuration from file or environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        config = load_config(config_path)
    elif os.environ.get("TELEGRAM_BOT_TOKEN"):
        # Simple env-based config
        config = load_config_from_env()
    else:
        # Try default config path
        config = load_config()

    validation = validate_config(config)
    for problem in validation.errors:
        log = logger.error if problem.severity == "error" else logger.warning
        log("Config %s: %s", problem.field, problem.message)

    return config


def _get_orchestrator() -> Orchestrator:
    """Create the orchestrator once per instance.

    The in-memory stores live as long as the instance, so every request
    must see the same orchestrator.
    """
    global _orchestrator
    with _orchestrator_lock:
        if _orchestrator is None:
            _orchestrator = Orchestrator(_get_config())
        return _orchestrator


def _parse_occurred_at(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp. Naive values are taken as UTC.

    Raises:
        ValueError: If the value is not a timestamp
    """
    if value in (None, ""):
        return None
    moment = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


@functions_framework.http
def report_submit(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function for report submissions.

    Expects a JSON body:
        {"address": "...", "type": "ACTIVE", "description": "...",
         "occurred_at": "2026-01-05T14:30:00Z", "source": "web"}

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return {"status": "error", "message": "Expected a JSON object"}, 400

    address = str(data.get("address") or "").strip()
    category = data.get("type") or data.get("category")
    if not address or not category:
        return {"status": "error", "message": "address and type are required"}, 400

    try:
        occurred_at = _parse_occurred_at(data.get("occurred_at"))
    except ValueError:
        return {"status": "error", "message": "occurred_at must be an ISO 8601 timestamp"}, 400

    try:
        orchestrator = _get_orchestrator()
        result = orchestrator.ingest(
            address,
            category,
            str(data.get("description") or ""),
            occurred_at=occurred_at,
            source=data.get("source") or "web",
            title=data.get("title"),
        )
    except Exception as e:
        logger.exception("Unexpected error handling report submission")
        return {"status": "error", "message": str(e)}, 500

    if not result.accepted:
        return {
            "status": "rejected",
            "reason": result.reason.value,
        }, _REJECTION_STATUS.get(result.reason, 400)

    response: dict[str, Any] = {
        "status": "accepted",
        "id": result.report.id,
        "latitude": result.report.latitude,
        "longitude": result.report.longitude,
    }
    if result.dispatch is not None:
        response["dispatch"] = {
            "channel_sent": result.dispatch.channel_sent,
            "recipients_sent": result.dispatch.recipients_sent,
            "recipients_failed": result.dispatch.recipients_failed,
        }
    return response, 200


@functions_framework.http
def telegram_webhook(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function receiving Telegram bot updates.

    Replies are returned in the webhook response as a sendMessage call,
    so no extra request to the Bot API is needed.

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    secret = os.environ.get("TELEGRAM_WEBHOOK_SECRET")
    if secret and request.headers.get("X-Telegram-Bot-Api-Secret-Token") != secret:
        logger.warning("Rejected webhook call with a bad secret token")
        return {"status": "forbidden"}, 403

    update = request.get_json(silent=True)
    if not isinstance(update, dict):
        return {"status": "ignored"}, 200

    try:
        orchestrator = _get_orchestrator()
        reply = handle_update(update, orchestrator, orchestrator.config)
    except Exception:
        # Telegram retries non-2xx responses, so answer 200 and log
        logger.exception("Unexpected error handling Telegram update")
        return {"status": "error"}, 200

    if reply is None:
        return {"status": "ignored"}, 200

    chat_id, text = reply
    return {
        "method": "sendMessage",
        "chat_id": chat_id,
        "text": text,
        "parse_mode": "HTML",
        "disable_web_page_preview": True,
    }, 200


# For local testing
if __name__ == "__main__":
    class MockRequest:
        headers: dict[str, str] = {}

        def __init__(self, body: dict[str, Any]) -> None:
            self._body = body

        def get_json(self, silent: bool = False) -> dict[str, Any]:
            return self._body

    response, status = telegram_webhook(MockRequest({
        "message": {"chat": {"id": 1}, "from": {"id": 1}, "text": "/help"},
    }))
    print(f"\nResponse ({status}):")
    print(json.dumps(response, indent=2))
