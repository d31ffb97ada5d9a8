from datetime import datetime, timedelta
from churchflow.models import Event
from churchflow.utils.dates import as_utc, utcnow

DEFAULT_DURATION = timedelta(hours=1)


def escape_text(value: str | None) -> str:
    """Escapes a TEXT value (backslash, semicolon, comma, newline)."""
    if not value:
        return ""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def format_datetime(value: datetime) -> str:
    return as_utc(value).strftime("%Y%m%dT%H%M%SZ")


def _event_lines(event: Event, stamp: str) -> list[str]:
    start = as_utc(event.start_date)
    end = as_utc(event.end_date) if event.end_date else start + DEFAULT_DURATION

    lines = [
        "BEGIN:VEVENT",
        f"UID:{event.id}@churchflow.app",
        f"DTSTAMP:{stamp}",
        f"DTSTART:{format_datetime(start)}",
        f"DTEND:{format_datetime(end)}",
        f"SUMMARY:{escape_text(event.title)}",
        f"CREATED:{format_datetime(event.created_at or start)}",
        f"LAST-MODIFIED:{format_datetime(event.updated_at or event.created_at or start)}",
    ]
    if event.description:
        lines.append(f"DESCRIPTION:{escape_text(event.description)}")
    location = event.location or event.address
    if location:
        lines.append(f"LOCATION:{escape_text(location)}")
    if event.is_recurring and event.recurrence_rule:
        # Passed through verbatim, never expanded
        lines.append(event.recurrence_rule)
    lines.append("END:VEVENT")
    return lines


def build_calendar(church_name: str, timezone: str | None, events: list[Event]) -> str:
    """Renders a VCALENDAR document with CRLF line endings."""
    stamp = format_datetime(utcnow())
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:-//ChurchFlow//{church_name}//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{escape_text(church_name)} Events",
        f"X-WR-TIMEZONE:{timezone or 'America/New_York'}",
    ]
    for event in events:
        lines.extend(_event_lines(event, stamp))
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"
