"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field

from incident_alerts.core.geo import BoundingBox, validate_coordinates
from incident_alerts.core.geocode import DEFAULT_REGION, DEFAULT_REGION_TOKENS
from incident_alerts.core.dedup import DedupMode
from incident_alerts.core.subscription import (
    DEFAULT_RADIUS_MILES,
    MAX_RADIUS_MILES,
    MIN_RADIUS_MILES,
)
from incident_alerts.core.throttle import MIN_REQUEST_INTERVAL


NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_USER_AGENT = "IncidentAlerts/1.0 (community safety tool)"
DEFAULT_APP_URL = "http://localhost:3000"


@dataclass
class GeocoderConfig:
    """Settings for the external geocoding lookup.

    Attributes:
        base_url: Nominatim search endpoint
        user_agent: User-Agent header (required by the usage policy)
        min_interval_seconds: Minimum spacing between lookups
        timeout: Request timeout in seconds
        default_region: Region appended to addresses that name none
        region_tokens: Tokens that mark an address as already regional
        cache_size: Resolved addresses kept per process (0 = off)
    """
    base_url: str = NOMINATIM_URL
    user_agent: str = DEFAULT_USER_AGENT
    min_interval_seconds: float = MIN_REQUEST_INTERVAL
    timeout: int = 10
    default_region: str = DEFAULT_REGION
    region_tokens: tuple[str, ...] = DEFAULT_REGION_TOKENS
    cache_size: int = 0


@dataclass
class TelegramConfig:
    """Telegram bot settings.

    Attributes:
        bot_token: Bot API token
        channel_id: Shared channel for broadcasts (None to skip)
        trusted_reporter_ids: Users whose bot reports are broadcast at once
    """
    bot_token: str = ""
    channel_id: str | None = None
    trusted_reporter_ids: tuple[str, ...] = ()


@dataclass
class WhatsAppConfig:
    """Twilio WhatsApp sender settings.

    Attributes:
        account_sid: Twilio Account SID
        auth_token: Twilio Auth Token
        from_number: WhatsApp sender number
    """
    account_sid: str = ""
    auth_token: str = ""
    from_number: str = ""


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        app_url: Public map URL used in messages
        timezone: Timezone for displayed times
        geocoder: Geocoding lookup settings
        telegram: Telegram bot settings (None to disable)
        whatsapp: WhatsApp settings (None to disable)
        service_area: Reports outside this box are rejected (None = anywhere)
        min_radius_miles: Smallest subscription radius
        max_radius_miles: Largest subscription radius
        default_radius_miles: Radius used when a subscriber gives none
        dedup_modes: Dedup mode per ingestion source
        storage: "memory" or "firestore"
        firestore_database: Firestore database name (None for default)
        subscriptions_collection: Firestore collection for subscriptions
        reports_collection: Firestore collection for reports
        dispatch_workers: Parallel deliveries per dispatch (1 = sequential)
    """
    app_url: str = DEFAULT_APP_URL
    timezone: str = "America/Chicago"
    geocoder: GeocoderConfig = field(default_factory=GeocoderConfig)
    telegram: TelegramConfig | None = None
    whatsapp: WhatsAppConfig | None = None
    service_area: BoundingBox | None = None
    min_radius_miles: float = MIN_RADIUS_MILES
    max_radius_miles: float = MAX_RADIUS_MILES
    default_radius_miles: float = DEFAULT_RADIUS_MILES
    dedup_modes: dict[str, str] = field(
        default_factory=lambda: {"aggregated": DedupMode.FUZZY_PREFIX.value}
    )
    storage: str = "memory"
    firestore_database: str | None = None
    subscriptions_collection: str = "subscriptions"
    reports_collection: str = "reports"
    dispatch_workers: int = 1


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def validate_bounds(bounds: BoundingBox, field_name: str) -> list[ValidationError]:
    """Validate a bounding box.

    Pure function.

    Args:
        bounds: Bounding box to validate
        field_name: Name of the field for error messages

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    for lat, lon, suffix in (
        (bounds.min_latitude, bounds.min_longitude, "min"),
        (bounds.max_latitude, bounds.max_longitude, "max"),
    ):
        for problem in validate_coordinates(lat, lon):
            errors.append(ValidationError(field=f"{field_name}.{suffix}", message=problem))

    if bounds.min_latitude > bounds.max_latitude:
        errors.append(ValidationError(
            field=field_name,
            message=f"min_latitude ({bounds.min_latitude}) > max_latitude ({bounds.max_latitude})",
        ))

    if bounds.min_longitude > bounds.max_longitude:
        errors.append(ValidationError(
            field=field_name,
            message=f"min_longitude ({bounds.min_longitude}) > max_longitude ({bounds.max_longitude})",
        ))

    return errors


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    if config.service_area is not None:
        errors.extend(validate_bounds(config.service_area, "service_area"))

    if config.geocoder.min_interval_seconds < MIN_REQUEST_INTERVAL:
        errors.append(ValidationError(
            field="geocoder.min_interval_seconds",
            message=(
                f"Interval {config.geocoder.min_interval_seconds}s is below the "
                f"{MIN_REQUEST_INTERVAL}s lookup policy; {MIN_REQUEST_INTERVAL}s will be used"
            ),
            severity="warning",
        ))

    if not config.geocoder.user_agent:
        errors.append(ValidationError(
            field="geocoder.user_agent",
            message="A User-Agent is required by the geocoding service",
        ))

    if config.min_radius_miles <= 0 or config.min_radius_miles > config.max_radius_miles:
        errors.append(ValidationError(
            field="min_radius_miles",
            message=(
                f"Radius bounds invalid: min={config.min_radius_miles}, "
                f"max={config.max_radius_miles}"
            ),
        ))
    elif not config.min_radius_miles <= config.default_radius_miles <= config.max_radius_miles:
        errors.append(ValidationError(
            field="default_radius_miles",
            message=f"Default radius {config.default_radius_miles} outside radius bounds",
        ))

    valid_modes = {m.value for m in DedupMode}
    for source, mode in config.dedup_modes.items():
        if mode not in valid_modes:
            errors.append(ValidationError(
                field=f"dedup_modes.{source}",
                message=f"Unknown dedup mode '{mode}' (expected one of {sorted(valid_modes)})",
            ))

    if config.storage not in ("memory", "firestore"):
        errors.append(ValidationError(
            field="storage",
            message=f"Unknown storage backend '{config.storage}'",
        ))

    if config.dispatch_workers < 1:
        errors.append(ValidationError(
            field="dispatch_workers",
            message=f"dispatch_workers must be at least 1, got {config.dispatch_workers}",
        ))

    telegram_ready = bool(config.telegram and config.telegram.bot_token)
    whatsapp_ready = bool(config.whatsapp and config.whatsapp.account_sid)

    if config.telegram and (
        not config.telegram.bot_token or config.telegram.bot_token.startswith("${")
    ):
        errors.append(ValidationError(
            field="telegram.bot_token",
            message="Bot token not resolved (still contains placeholder)",
            severity="warning",
        ))

    if not telegram_ready and not whatsapp_ready:
        errors.append(ValidationError(
            field="channels",
            message="No delivery channels configured",
            severity="warning",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
