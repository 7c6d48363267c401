"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, GeocoderConfig, ...) are defined in
incident_alerts/core/config.py to avoid information leakage between layers.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Any

import yaml

from incident_alerts.core.config import (
    Config,
    GeocoderConfig,
    TelegramConfig,
    WhatsAppConfig,
)
from incident_alerts.core.geo import BoundingBox
from incident_alerts.shell.secret_manager_client import (
    SecretManagerClient,
    SecretManagerConfig,
)


logger = logging.getLogger(__name__)


def _get_secret_manager_client() -> SecretManagerClient | None:
    """Get or create a Secret Manager client.

    Returns None if no GCP project can be determined (e.g., local development).
    """
    project_id = os.environ.get("GCP_PROJECT")
    if not project_id:
        try:
            result = subprocess.run(
                ["gcloud", "config", "get-value", "project"],
                capture_output=True,
                text=True,
                timeout=2,
            )
            if result.returncode == 0 and result.stdout.strip():
                project_id = result.stdout.strip()
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("gcloud project lookup unavailable: %s", str(e))

    if project_id:
        return SecretManagerClient(SecretManagerConfig(project_id=project_id))
    return None


def _resolve_value(value: Any, secret_client: SecretManagerClient | None = None) -> Any:
    """Resolve a value that may contain secret or env var placeholders.

    Args:
        value: Value to resolve (may contain ${...} placeholders)
        secret_client: Client for resolving secrets

    Returns:
        Resolved value
    """
    if not isinstance(value, str):
        return value

    if secret_client:
        return secret_client.resolve(value)

    # No secret client - only handle env vars
    if value.startswith("${") and value.endswith("}"):
        var_spec = value[2:-1]
        if not var_spec.startswith("secret:"):
            env_value = os.environ.get(var_spec)
            if env_value:
                return env_value
            logger.warning("Environment variable %s not set", var_spec)

    return value


def _parse_bounds(data: dict[str, Any]) -> BoundingBox:
    """Parse a bounding box from config data."""
    return BoundingBox(
        min_latitude=float(data["min_latitude"]),
        max_latitude=float(data["max_latitude"]),
        min_longitude=float(data["min_longitude"]),
        max_longitude=float(data["max_longitude"]),
    )


def _parse_ids(value: Any) -> tuple[str, ...]:
    """Parse a list or comma-separated string of ids."""
    if not value:
        return ()
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    return tuple(str(v) for v in value)


def _parse_geocoder(data: dict[str, Any]) -> GeocoderConfig:
    defaults = GeocoderConfig()
    tokens = data.get("region_tokens")
    return GeocoderConfig(
        base_url=data.get("base_url", defaults.base_url),
        user_agent=data.get("user_agent", defaults.user_agent),
        min_interval_seconds=float(
            data.get("min_interval_seconds", defaults.min_interval_seconds)
        ),
        timeout=int(data.get("timeout", defaults.timeout)),
        default_region=data.get("default_region", defaults.default_region),
        region_tokens=tuple(tokens) if tokens else defaults.region_tokens,
        cache_size=int(data.get("cache_size", defaults.cache_size)),
    )


def _parse_telegram(
    data: dict[str, Any],
    secret_client: SecretManagerClient | None,
) -> TelegramConfig:
    channel_id = _resolve_value(data.get("channel_id"), secret_client)
    return TelegramConfig(
        bot_token=_resolve_value(data.get("bot_token", ""), secret_client),
        channel_id=str(channel_id) if channel_id is not None else None,
        trusted_reporter_ids=_parse_ids(
            _resolve_value(data.get("trusted_reporter_ids"), secret_client)
        ),
    )


def _parse_whatsapp(
    data: dict[str, Any],
    secret_client: SecretManagerClient | None,
) -> WhatsAppConfig:
    return WhatsAppConfig(
        account_sid=_resolve_value(data.get("account_sid", ""), secret_client),
        auth_token=_resolve_value(data.get("auth_token", ""), secret_client),
        from_number=_resolve_value(data.get("from_number", ""), secret_client),
    )


def load_config_from_dict(
    data: dict[str, Any],
    secret_client: SecretManagerClient | None = None,
) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only placeholder expansion has side effects).

    Args:
        data: Configuration dictionary
        secret_client: Client for ${secret:...} placeholders

    Returns:
        Parsed Config object
    """
    defaults = Config()

    service_area = None
    if data.get("service_area"):
        service_area = _parse_bounds(data["service_area"])

    telegram = None
    if data.get("telegram"):
        telegram = _parse_telegram(data["telegram"], secret_client)

    whatsapp = None
    if data.get("whatsapp"):
        whatsapp = _parse_whatsapp(data["whatsapp"], secret_client)

    dedup_modes = dict(defaults.dedup_modes)
    dedup_modes.update({
        str(source): str(mode).lower()
        for source, mode in (data.get("dedup_modes") or {}).items()
    })

    return Config(
        app_url=data.get("app_url", defaults.app_url),
        timezone=data.get("timezone", defaults.timezone),
        geocoder=_parse_geocoder(data.get("geocoder") or {}),
        telegram=telegram,
        whatsapp=whatsapp,
        service_area=service_area,
        min_radius_miles=float(data.get("min_radius_miles", defaults.min_radius_miles)),
        max_radius_miles=float(data.get("max_radius_miles", defaults.max_radius_miles)),
        default_radius_miles=float(
            data.get("default_radius_miles", defaults.default_radius_miles)
        ),
        dedup_modes=dedup_modes,
        storage=data.get("storage", defaults.storage),
        firestore_database=data.get("firestore_database"),
        subscriptions_collection=data.get(
            "subscriptions_collection", defaults.subscriptions_collection
        ),
        reports_collection=data.get("reports_collection", defaults.reports_collection),
        dispatch_workers=int(data.get("dispatch_workers", defaults.dispatch_workers)),
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using environment")
        return load_config_from_env()

    config = load_config_from_dict(data, _get_secret_manager_client())

    logger.info(
        "Loaded config: telegram=%s, whatsapp=%s, storage=%s",
        config.telegram is not None,
        config.whatsapp is not None,
        config.storage,
    )

    return config


def load_config_from_env() -> Config:
    """Load minimal configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        TELEGRAM_BOT_TOKEN: Bot token (or use Secret Manager)
        TELEGRAM_BOT_TOKEN_SECRET: Secret name holding the bot token
        TELEGRAM_CHANNEL_ID: Broadcast channel id
        TELEGRAM_TRUSTED_IDS: Comma-separated trusted reporter ids
        APP_URL: Public map URL
        DEFAULT_REGION: Region appended to bare addresses
        STORAGE_BACKEND: "memory" or "firestore"
        FIRESTORE_DATABASE: Firestore database name

    Returns:
        Config object from environment
    """
    secret_client = _get_secret_manager_client()
    bot_token = None

    secret_name = os.environ.get("TELEGRAM_BOT_TOKEN_SECRET", "telegram-bot-token")
    if secret_client:
        bot_token = secret_client.get_secret(secret_name)
        if bot_token:
            logger.info("Using Telegram bot token from Secret Manager")

    if not bot_token:
        bot_token = os.environ.get("TELEGRAM_BOT_TOKEN")

    telegram = None
    if bot_token:
        telegram = TelegramConfig(
            bot_token=bot_token,
            channel_id=os.environ.get("TELEGRAM_CHANNEL_ID") or None,
            trusted_reporter_ids=_parse_ids(os.environ.get("TELEGRAM_TRUSTED_IDS")),
        )
    else:
        logger.warning("TELEGRAM_BOT_TOKEN not set and no secret found")

    geocoder = GeocoderConfig()
    default_region = os.environ.get("DEFAULT_REGION")
    if default_region:
        geocoder = GeocoderConfig(default_region=default_region)

    defaults = Config()

    return Config(
        app_url=os.environ.get("APP_URL", defaults.app_url),
        geocoder=geocoder,
        telegram=telegram,
        storage=os.environ.get("STORAGE_BACKEND", defaults.storage),
        firestore_database=os.environ.get("FIRESTORE_DATABASE"),
    )
