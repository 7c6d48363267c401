"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- Nominatim geocoding client (HTTP)
- Telegram Bot API client (HTTP)
- WhatsApp client via Twilio (HTTP)
- Firestore and in-memory stores (database)
- Configuration loading (environment/files/secrets)

Keep this layer thin and simple. All business logic should be in core.
"""

from incident_alerts.shell.nominatim_client import NominatimClient
from incident_alerts.shell.telegram_client import TelegramClient
from incident_alerts.shell.whatsapp_client import WhatsAppClient
from incident_alerts.shell.firestore_client import FirestoreClient
from incident_alerts.shell.memory_store import InMemoryReportStore, InMemorySubscriptionStore
from incident_alerts.shell.config_loader import load_config

__all__ = [
    "NominatimClient",
    "TelegramClient",
    "WhatsAppClient",
    "FirestoreClient",
    "InMemoryReportStore",
    "InMemorySubscriptionStore",
    "load_config",
]
