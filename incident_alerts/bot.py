"""Bot command table - Turns chat commands into orchestrator calls.

Each command maps to a handler taking a CommandContext and returning
the reply text (Telegram HTML). The table is explicit so adding a
command is one entry, and handlers can be tested without Telegram.
"""

import html
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

from incident_alerts.core.config import Config
from incident_alerts.core.geo import format_distance
from incident_alerts.core.report import ReportCategory, ReportSource
from incident_alerts.orchestrator import Orchestrator, RejectionReason


logger = logging.getLogger(__name__)


SUBMIT_USAGE = (
    "Please use the format:\n"
    "<code>/submit TYPE, Address, Description</code>\n\n"
    "Types: CRITICAL, ACTIVE, OBSERVED, OTHER\n\n"
    "Example:\n"
    "<code>/submit ACTIVE, Lake Street &amp; Chicago Ave, Two vehicles spotted</code>"
)

ALERTS_USAGE = (
    "Please use the format:\n"
    "<code>/alerts LOCATION [RADIUS]</code>\n\n"
    "LOCATION can be an address, a ZIP code or <code>lat, lon</code>.\n"
    "Example: <code>/alerts 55407 3</code>"
)

# "<location> <radius>" where the location doesn't end in a comma
_ALERTS_ARGS_PATTERN = re.compile(r"^(?P<location>.*[^,\s])\s+(?P<radius>\d+(?:\.\d+)?)$")

_SUBMIT_REJECTIONS = {
    RejectionReason.DUPLICATE: "ℹ️ This location has already been reported.",
    RejectionReason.GEOCODE_FAILED: (
        "❌ Couldn't find that location. Try a more specific address "
        "or a cross street like <code>Lake St &amp; Chicago Ave</code>."
    ),
    RejectionReason.OUTSIDE_SERVICE_AREA: "❌ That location is outside the area we cover.",
    RejectionReason.INVALID_CATEGORY: "❌ Invalid type. Use: CRITICAL, ACTIVE, OBSERVED, or OTHER",
    RejectionReason.STORE_UNAVAILABLE: "❌ Failed to submit report. Please try again shortly.",
}


@dataclass
class CommandContext:
    """Everything a command handler may need.

    Attributes:
        caller_id: User id of the sender
        chat_id: Chat the command was sent in (reply target)
        args: Text after the command name
        orchestrator: Application orchestrator
        config: Application configuration
    """
    caller_id: str
    chat_id: str
    args: str
    orchestrator: Orchestrator
    config: Config

    @property
    def is_trusted(self) -> bool:
        """True if the caller's reports are published without review."""
        telegram = self.config.telegram
        return bool(telegram and self.caller_id in telegram.trusted_reporter_ids)


def handle_start(ctx: CommandContext) -> str:
    return (
        "👋 Welcome!\n\n"
        "This bot shares community reports and can alert you when "
        "something is reported near you.\n\n"
        f"📍 View the map: {html.escape(ctx.config.app_url)}\n\n"
        + _command_list()
        + "\n\n⚠️ Always verify info with local rapid response networks."
    )


def handle_help(ctx: CommandContext) -> str:
    return _command_list() + f"\n\n📍 Map: {html.escape(ctx.config.app_url)}"


def handle_map(ctx: CommandContext) -> str:
    return f"📍 View the map:\n{html.escape(ctx.config.app_url)}"


def handle_submit(ctx: CommandContext) -> str:
    """Submit a report: /submit TYPE, Address, Description."""
    parts = [p.strip() for p in ctx.args.split(",")]
    if len(parts) < 3 or not parts[1]:
        return SUBMIT_USAGE

    type_name, address, *description_parts = parts
    description = ", ".join(description_parts)

    try:
        category = ReportCategory.parse(type_name)
    except ValueError:
        return _SUBMIT_REJECTIONS[RejectionReason.INVALID_CATEGORY]

    result = ctx.orchestrator.ingest(
        address,
        category,
        description,
        source=ReportSource.TELEGRAM,
        notify=ctx.is_trusted,
    )

    if not result.accepted:
        return _SUBMIT_REJECTIONS.get(
            result.reason,
            "❌ Failed to submit report. Please try again.",
        )

    follow_up = (
        "Your report is now visible on the map."
        if ctx.is_trusted
        else "Your report will appear on the map once reviewed."
    )
    return (
        "✅ Report submitted!\n\n"
        f"Type: {category.value}\n"
        f"Location: {html.escape(address)}\n\n"
        f"{follow_up}\n\n"
        f"📍 View map: {html.escape(ctx.config.app_url)}"
    )


def parse_alerts_args(args: str) -> tuple[str, float | None]:
    """Split "/alerts" arguments into (location, radius)."""
    text = args.strip()
    match = _ALERTS_ARGS_PATTERN.match(text)
    if match:
        return match.group("location").strip(), float(match.group("radius"))
    return text, None


def handle_alerts(ctx: CommandContext) -> str:
    """Subscribe to nearby alerts: /alerts LOCATION [RADIUS]."""
    location, radius = parse_alerts_args(ctx.args)
    if not location:
        return ALERTS_USAGE

    result = ctx.orchestrator.subscribe(ctx.chat_id, location, radius)

    if result.reason == RejectionReason.INVALID_RADIUS:
        return (
            f"❌ Radius must be between {ctx.config.min_radius_miles:g} "
            f"and {ctx.config.max_radius_miles:g} miles."
        )
    if result.reason == RejectionReason.INVALID_LOCATION:
        return "❌ Couldn't find that location. Try an address or ZIP code."
    if not result.ok:
        return "❌ Couldn't save your alert settings. Please try again shortly."

    subscription = result.subscription
    return (
        "🔔 Alerts on!\n\n"
        f"You'll get a message for reports within {subscription.radius_miles:g} miles "
        f"of {html.escape(location)}.\n\n"
        "Send /alertsoff to stop."
    )


def handle_alerts_off(ctx: CommandContext) -> str:
    if not ctx.orchestrator.unsubscribe(ctx.chat_id):
        return "❌ Couldn't update your alert settings. Please try again shortly."
    return "🔕 Alerts off. Send /alerts to turn them back on."


def handle_alert_status(ctx: CommandContext) -> str:
    subscription = ctx.orchestrator.subscription_status(ctx.chat_id)
    if subscription is None or not subscription.active:
        return "🔕 Alerts are off. Use /alerts LOCATION [RADIUS] to turn them on."

    where = subscription.label or f"{subscription.latitude:.4f}, {subscription.longitude:.4f}"
    return (
        "🔔 Alerts are on.\n\n"
        f"Area: {format_distance(subscription.radius_miles)} around {html.escape(where)}"
    )


COMMANDS: dict[str, tuple[Callable[[CommandContext], str], str]] = {
    "start": (handle_start, "Welcome message"),
    "help": (handle_help, "List commands"),
    "map": (handle_map, "Get link to the map"),
    "submit": (handle_submit, "Submit a report: TYPE, Address, Description"),
    "alerts": (handle_alerts, "Get alerts near a location: LOCATION [RADIUS]"),
    "alertsoff": (handle_alerts_off, "Stop nearby alerts"),
    "alertstatus": (handle_alert_status, "Show your alert settings"),
}


def _command_list() -> str:
    lines = ["Commands:"]
    lines.extend(f"/{name} - {summary}" for name, (_, summary) in COMMANDS.items())
    return "\n".join(lines)


def parse_command(text: str) -> tuple[str, str] | None:
    """Split "/name@bot args" into (name, args). None if not a command."""
    text = (text or "").strip()
    if not text.startswith("/"):
        return None
    head, _, args = text.partition(" ")
    name = head[1:].split("@", 1)[0].lower()
    return name, args.strip()


def handle_update(
    update: dict[str, Any],
    orchestrator: Orchestrator,
    config: Config,
) -> tuple[str, str] | None:
    """Run the command in a Telegram update.

    Args:
        update: Telegram update JSON
        orchestrator: Application orchestrator
        config: Application configuration

    Returns:
        (chat_id, reply_text), or None if there is nothing to answer
    """
    message = update.get("message") or update.get("edited_message")
    if not isinstance(message, dict):
        return None

    parsed = parse_command(message.get("text", ""))
    if parsed is None:
        return None

    chat = message.get("chat") or {}
    sender = message.get("from") or {}
    chat_id = str(chat.get("id", ""))
    if not chat_id:
        return None

    name, args = parsed
    entry = COMMANDS.get(name)
    if entry is None:
        return chat_id, "Unknown command. Send /help for the list."

    ctx = CommandContext(
        caller_id=str(sender.get("id", chat_id)),
        chat_id=chat_id,
        args=args,
        orchestrator=orchestrator,
        config=config,
    )

    logger.info("Bot command /%s from %s", name, ctx.caller_id)
    handler, _ = entry
    return chat_id, handler(ctx)
