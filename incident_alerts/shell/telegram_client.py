"""Telegram Bot API Client - Imperative Shell.

This module handles HTTP communication with the Telegram Bot API.
All I/O is contained here; message formatting is in the core module.

Every send is classified into a DeliveryOutcome so the dispatcher can
tell an unreachable recipient (blocked bot, deleted account) from a
temporary problem (rate limit, timeout, server error).
"""

import logging

import requests

from incident_alerts.core.delivery import DeliveryOutcome, DeliveryResult


logger = logging.getLogger(__name__)


TELEGRAM_API_BASE = "https://api.telegram.org"

# Default timeout for API requests (seconds)
DEFAULT_TIMEOUT = 10

# Bad Request descriptions that mean the recipient is gone
PERMANENT_ERROR_MARKERS = (
    "chat not found",
    "user is deactivated",
    "bot was blocked",
    "bot was kicked",
    "peer_id_invalid",
)


def classify_error(status_code: int, description: str) -> DeliveryOutcome:
    """Classify a failed Bot API response.

    Args:
        status_code: HTTP status code
        description: Bot API error description

    Returns:
        PERMANENT if the recipient is unreachable, TRANSIENT otherwise
    """
    if status_code == 403:
        return DeliveryOutcome.PERMANENT

    lowered = description.lower()
    if status_code == 400 and any(marker in lowered for marker in PERMANENT_ERROR_MARKERS):
        return DeliveryOutcome.PERMANENT

    return DeliveryOutcome.TRANSIENT


class TelegramClient:
    """Client for sending messages through a Telegram bot.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(
        self,
        bot_token: str,
        base_url: str = TELEGRAM_API_BASE,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize Telegram client.

        Args:
            bot_token: Bot API token
            base_url: Bot API base URL
            timeout: Request timeout in seconds
        """
        self.bot_token = bot_token
        self.base_url = base_url
        self.timeout = timeout

    def _method_url(self, method: str) -> str:
        return f"{self.base_url}/bot{self.bot_token}/{method}"

    def send(self, recipient: str, text: str) -> DeliveryResult:
        """Send an HTML message to a chat.

        This method performs HTTP I/O.

        Args:
            recipient: Chat id (user, group or channel)
            text: Message text (Telegram HTML)

        Returns:
            DeliveryResult classifying the attempt
        """
        logger.info("Sending Telegram message to %s", recipient)

        payload = {
            "chat_id": recipient,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }

        try:
            response = requests.post(
                self._method_url("sendMessage"),
                json=payload,
                timeout=self.timeout,
            )
        except requests.Timeout:
            logger.error("Telegram request to %s timed out", recipient)
            return DeliveryResult(
                outcome=DeliveryOutcome.TRANSIENT,
                recipient=recipient,
                error="Request timed out",
            )
        except requests.RequestException as e:
            logger.error("Telegram request to %s failed: %s", recipient, str(e))
            return DeliveryResult(
                outcome=DeliveryOutcome.TRANSIENT,
                recipient=recipient,
                error=str(e),
            )

        if response.status_code == 200:
            logger.info("Message sent successfully to %s", recipient)
            return DeliveryResult(
                outcome=DeliveryOutcome.SUCCESS,
                recipient=recipient,
                status_code=200,
            )

        try:
            body = response.json()
            description = body.get("description", "") if isinstance(body, dict) else ""
        except ValueError:
            description = response.text

        outcome = classify_error(response.status_code, description)

        if response.status_code == 429:
            logger.warning("Telegram rate limit hit sending to %s: %s", recipient, description)
        else:
            logger.warning(
                "Telegram returned %d for %s (%s): %s",
                response.status_code,
                recipient,
                outcome.value,
                description,
            )

        return DeliveryResult(
            outcome=outcome,
            recipient=recipient,
            status_code=response.status_code,
            error=description or f"HTTP {response.status_code}",
        )
