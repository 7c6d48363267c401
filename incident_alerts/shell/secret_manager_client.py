"""Secret Manager Client - Imperative Shell.

This module reads bot tokens and Twilio credentials from Google Cloud
Secret Manager. All I/O is contained here; configuration models are in
the core module.

Config values may reference secrets or environment variables:

    bot_token: "${secret:telegram-bot-token}"
    channel_id: "${TELEGRAM_CHANNEL_ID}"
"""

import logging
import os
import re
from dataclasses import dataclass

from google.cloud import secretmanager


logger = logging.getLogger(__name__)


# ${secret:name} or ${ENV_VAR}, covering the whole value
_PLACEHOLDER_PATTERN = re.compile(r"^\$\{(secret:)?([A-Za-z0-9_.\-]+)\}$")


@dataclass
class SecretManagerConfig:
    """Configuration for Secret Manager client.

    Attributes:
        project_id: GCP project ID (None for default)
    """
    project_id: str | None = None


class SecretManagerClient:
    """Client for reading secrets from Google Cloud Secret Manager.

    This is part of the imperative shell - it handles secret I/O.
    """

    def __init__(self, config: SecretManagerConfig | None = None) -> None:
        """Initialize Secret Manager client.

        Args:
            config: Secret Manager configuration
        """
        self.config = config or SecretManagerConfig()
        self._client: secretmanager.SecretManagerServiceClient | None = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy initialization of Secret Manager client."""
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def get_secret(
        self,
        secret_name: str,
        version: str = "latest",
        project_id: str | None = None,
    ) -> str | None:
        """Fetch a secret value from Secret Manager.

        This method performs I/O.

        Args:
            secret_name: Name of the secret (not the full resource path)
            version: Version of the secret (default: "latest")
            project_id: GCP project ID (uses config if not provided)

        Returns:
            Secret value as string, or None if not found
        """
        project = project_id or self.config.project_id

        if not project:
            logger.error("No project ID configured for Secret Manager")
            return None

        name = f"projects/{project}/secrets/{secret_name}/versions/{version}"

        try:
            logger.info("Fetching secret: %s", secret_name)
            response = self.client.access_secret_version(request={"name": name})
            return response.payload.data.decode("UTF-8")
        except Exception as e:
            logger.error("Failed to fetch secret %s: %s", secret_name, str(e))
            return None

    def resolve(self, value: str) -> str:
        """Resolve a `${secret:name}` or `${ENV_VAR}` placeholder.

        Values without a placeholder are returned unchanged. A secret
        that cannot be fetched falls back to the environment variable
        of the same name upper-cased with dashes turned into
        underscores (telegram-bot-token -> TELEGRAM_BOT_TOKEN). An
        unresolvable placeholder is returned as-is so validation can
        flag it.

        Args:
            value: Raw config value

        Returns:
            Resolved value
        """
        match = _PLACEHOLDER_PATTERN.match(value)
        if not match:
            return value

        is_secret, name = match.groups()

        if is_secret:
            secret_value = self.get_secret(name)
            if secret_value:
                return secret_value
            env_name = name.upper().replace("-", "_")
        else:
            env_name = name

        env_value = os.environ.get(env_name)
        if env_value:
            return env_value

        logger.warning("Could not resolve %s", value)
        return value
