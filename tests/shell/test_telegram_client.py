"""Tests for the Telegram Bot API client.

Uses the `responses` library to mock HTTP requests.
"""

import json

import pytest
import requests
import responses

from incident_alerts.core.delivery import DeliveryOutcome
from incident_alerts.shell.telegram_client import TelegramClient, classify_error


TOKEN = "123:abc"
SEND_URL = f"https://api.telegram.org/bot{TOKEN}/sendMessage"


class TestTelegramClientSend:
    """Tests for TelegramClient.send()."""

    @responses.activate
    def test_success(self):
        """200 response is a successful delivery."""
        responses.add(responses.POST, SEND_URL, json={"ok": True}, status=200)

        result = TelegramClient(TOKEN).send("42", "<b>hi</b>")

        assert result.outcome == DeliveryOutcome.SUCCESS
        assert result.success is True
        assert result.recipient == "42"

    @responses.activate
    def test_sends_html_without_previews(self):
        """Payload uses HTML parse mode and disables link previews."""
        responses.add(responses.POST, SEND_URL, json={"ok": True}, status=200)

        TelegramClient(TOKEN).send("42", "<b>hi</b>")

        body = json.loads(responses.calls[0].request.body)
        assert body == {
            "chat_id": "42",
            "text": "<b>hi</b>",
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }

    @responses.activate
    def test_blocked_bot_is_permanent(self):
        """403 means the user blocked the bot."""
        responses.add(
            responses.POST,
            SEND_URL,
            json={"ok": False, "error_code": 403, "description": "Forbidden: bot was blocked by the user"},
            status=403,
        )

        result = TelegramClient(TOKEN).send("42", "hi")

        assert result.outcome == DeliveryOutcome.PERMANENT
        assert result.status_code == 403
        assert "blocked" in result.error

    @responses.activate
    def test_chat_not_found_is_permanent(self):
        responses.add(
            responses.POST,
            SEND_URL,
            json={"ok": False, "error_code": 400, "description": "Bad Request: chat not found"},
            status=400,
        )

        result = TelegramClient(TOKEN).send("42", "hi")

        assert result.outcome == DeliveryOutcome.PERMANENT

    @responses.activate
    def test_other_bad_request_is_transient(self):
        """A malformed message is our problem, not the recipient's."""
        responses.add(
            responses.POST,
            SEND_URL,
            json={"ok": False, "error_code": 400, "description": "Bad Request: can't parse entities"},
            status=400,
        )

        result = TelegramClient(TOKEN).send("42", "<b>hi")

        assert result.outcome == DeliveryOutcome.TRANSIENT

    @responses.activate
    def test_rate_limit_is_transient(self):
        responses.add(
            responses.POST,
            SEND_URL,
            json={"ok": False, "error_code": 429, "description": "Too Many Requests: retry after 5"},
            status=429,
        )

        result = TelegramClient(TOKEN).send("42", "hi")

        assert result.outcome == DeliveryOutcome.TRANSIENT
        assert result.status_code == 429

    @responses.activate
    def test_server_error_with_non_json_body(self):
        responses.add(responses.POST, SEND_URL, body="Bad Gateway", status=502)

        result = TelegramClient(TOKEN).send("42", "hi")

        assert result.outcome == DeliveryOutcome.TRANSIENT
        assert result.error == "Bad Gateway"

    @responses.activate
    def test_timeout_is_transient(self):
        responses.add(responses.POST, SEND_URL, body=requests.Timeout("slow"))

        result = TelegramClient(TOKEN).send("42", "hi")

        assert result.outcome == DeliveryOutcome.TRANSIENT
        assert result.error == "Request timed out"

    @responses.activate
    def test_connection_error_is_transient(self):
        responses.add(responses.POST, SEND_URL, body=requests.ConnectionError("refused"))

        result = TelegramClient(TOKEN).send("42", "hi")

        assert result.outcome == DeliveryOutcome.TRANSIENT


class TestClassifyError:
    """Tests for classify_error()."""

    @pytest.mark.parametrize("status,description,expected", [
        (403, "Forbidden: user is deactivated", DeliveryOutcome.PERMANENT),
        (403, "", DeliveryOutcome.PERMANENT),
        (400, "Bad Request: chat not found", DeliveryOutcome.PERMANENT),
        (400, "Forbidden: USER IS DEACTIVATED", DeliveryOutcome.PERMANENT),
        (400, "Bad Request: message is too long", DeliveryOutcome.TRANSIENT),
        (429, "Too Many Requests", DeliveryOutcome.TRANSIENT),
        (500, "Internal Server Error", DeliveryOutcome.TRANSIENT),
        (404, "Not Found", DeliveryOutcome.TRANSIENT),
    ])
    def test_classification(self, status, description, expected):
        assert classify_error(status, description) == expected
