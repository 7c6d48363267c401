"""Message formatting - Pure functions.

This module formats reports into notification messages: one shared
channel broadcast and one personalised message per matched subscriber.
Messages use Telegram's HTML subset. All functions are pure with no
side effects.
"""

import html
from datetime import datetime
from zoneinfo import ZoneInfo

from incident_alerts.core.geo import format_distance
from incident_alerts.core.report import Report, ReportCategory


DEFAULT_TIMEZONE = "America/Chicago"

VERIFY_FOOTER = "⚠️ Always verify with your local rapid response network"


def get_category_emoji(category: ReportCategory | str) -> str:
    """Get an emoji representing report severity.

    Pure function.
    """
    value = category.value if isinstance(category, ReportCategory) else str(category)
    return {
        "CRITICAL": "🔴",
        "ACTIVE": "🟠",
        "OBSERVED": "🟡",
        "OTHER": "⚪",
    }.get(value.upper(), "📍")


def maps_link(latitude: float, longitude: float) -> str:
    """Google Maps link for a point.

    Pure function.
    """
    return f"https://maps.google.com/?q={latitude},{longitude}"


def format_local_time(moment: datetime | None, tz_name: str = DEFAULT_TIMEZONE) -> str:
    """Format a timestamp as a local clock time, e.g. "3:05 PM".

    Pure function. Naive datetimes are treated as UTC.
    """
    if moment is None:
        return "time unknown"
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=ZoneInfo("UTC"))
    local = moment.astimezone(ZoneInfo(tz_name))
    hour = local.hour % 12 or 12
    period = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {period}"


def format_channel_message(
    report: Report,
    app_url: str,
    tz_name: str = DEFAULT_TIMEZONE,
) -> str:
    """Format the shared-channel broadcast for a report.

    Pure function.

    Args:
        report: The accepted report
        app_url: Link to the public map
        tz_name: Timezone for the displayed time

    Returns:
        HTML message text
    """
    emoji = get_category_emoji(report.category)
    lines = [
        f"{emoji} <b>{report.category.value}: {html.escape(report.title)}</b>",
        "",
    ]

    if report.address:
        lines.append(f"📍 {html.escape(report.address)}")
    if report.has_valid_coordinates:
        link = maps_link(report.latitude, report.longitude)
        lines.append(f'🗺 <a href="{link}">Open in maps</a>')
    lines.append(f"🕐 {format_local_time(report.occurred_at, tz_name)}")

    if report.description:
        lines.extend(["", html.escape(report.description)])

    lines.extend([
        "",
        f'<a href="{html.escape(app_url)}">View on map →</a>',
        "",
        VERIFY_FOOTER,
    ])

    return "\n".join(lines)


def format_subscriber_message(
    report: Report,
    distance_miles: float,
    app_url: str,
    tz_name: str = DEFAULT_TIMEZONE,
) -> str:
    """Format a personalised alert for one subscriber.

    Pure function.

    Args:
        report: The accepted report
        distance_miles: Distance from the subscriber's anchor
        app_url: Link to the public map
        tz_name: Timezone for the displayed time

    Returns:
        HTML message text
    """
    emoji = get_category_emoji(report.category)
    lines = [
        f"{emoji} <b>{report.category.value} report {format_distance(distance_miles)} from you</b>",
        "",
    ]

    if report.address:
        lines.append(f"📍 {html.escape(report.address)}")
    lines.append(f'🗺 <a href="{maps_link(report.latitude, report.longitude)}">Open in maps</a>')
    lines.append(f"🕐 {format_local_time(report.occurred_at, tz_name)}")

    if report.description:
        lines.extend(["", html.escape(report.description)])

    lines.extend([
        "",
        f'<a href="{html.escape(app_url)}">View on map →</a>',
        "Send /alertsoff to stop these alerts.",
    ])

    return "\n".join(lines)


def format_report_summary(report: Report) -> str:
    """Format a one-line summary of a report for log lines.

    Pure function.
    """
    where = report.address or f"{report.latitude:.4f}, {report.longitude:.4f}"
    return f"{report.category.value} - {where}"
