"""WhatsApp Client via Twilio - Imperative Shell.

This module handles sending WhatsApp messages via Twilio's WhatsApp API.
All I/O is contained here; message formatting is in the core module.
"""

import html
import logging
import re
from dataclasses import dataclass

from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException

from incident_alerts.core.delivery import DeliveryOutcome, DeliveryResult


logger = logging.getLogger(__name__)


# Twilio error codes meaning the recipient can't be reached on WhatsApp
PERMANENT_ERROR_CODES = frozenset({
    21211,  # Invalid 'To' phone number
    21610,  # Recipient replied STOP
    21614,  # 'To' number is not a valid mobile number
    63003,  # Channel could not find the 'To' address
})

_HTML_TAG = re.compile(r"<[^>]+>")


@dataclass
class WhatsAppCredentials:
    """Twilio credentials for WhatsApp API.

    Attributes:
        account_sid: Twilio Account SID
        auth_token: Twilio Auth Token
        from_number: WhatsApp sender number (format: whatsapp:+14155238886)
    """
    account_sid: str
    auth_token: str
    from_number: str


def to_plain_text(text: str) -> str:
    """Strip the HTML markup used for Telegram messages."""
    return html.unescape(_HTML_TAG.sub("", text))


def _with_prefix(number: str) -> str:
    if number.startswith("whatsapp:"):
        return number
    return f"whatsapp:{number}"


class WhatsAppClient:
    """Client for sending WhatsApp messages via Twilio.

    This is part of the imperative shell - it handles I/O.
    Uses Twilio's WhatsApp Business API.
    """

    def __init__(self, credentials: WhatsAppCredentials) -> None:
        """Initialize WhatsApp client.

        Args:
            credentials: Twilio credentials
        """
        self.credentials = credentials
        self._client: Client | None = None

    @property
    def client(self) -> Client:
        """Lazy initialization of the Twilio client."""
        if self._client is None:
            self._client = Client(
                self.credentials.account_sid,
                self.credentials.auth_token,
            )
        return self._client

    def send(self, recipient: str, text: str) -> DeliveryResult:
        """Send a WhatsApp message via Twilio.

        This method performs HTTP I/O.

        Args:
            recipient: Recipient phone number (with or without whatsapp: prefix)
            text: Message text (HTML markup is stripped)

        Returns:
            DeliveryResult classifying the attempt
        """
        logger.info("Sending WhatsApp message via Twilio")

        try:
            message = self.client.messages.create(
                body=to_plain_text(text),
                from_=_with_prefix(self.credentials.from_number),
                to=_with_prefix(recipient),
            )

            logger.info("WhatsApp message sent: %s", message.sid)
            return DeliveryResult(
                outcome=DeliveryOutcome.SUCCESS,
                recipient=recipient,
                status_code=201,
            )

        except TwilioRestException as e:
            outcome = (
                DeliveryOutcome.PERMANENT
                if e.code in PERMANENT_ERROR_CODES
                else DeliveryOutcome.TRANSIENT
            )
            logger.error("Twilio API error (%s): %s", outcome.value, str(e))
            return DeliveryResult(
                outcome=outcome,
                recipient=recipient,
                status_code=e.status or 0,
                error=f"Twilio error: {e.msg}",
            )
        except Exception as e:
            logger.error("WhatsApp send failed: %s", str(e))
            return DeliveryResult(
                outcome=DeliveryOutcome.TRANSIENT,
                recipient=recipient,
                error=str(e),
            )
