"""Jinja filters and date formatting helpers."""
from datetime import datetime, timezone

import pytz
from flask import current_app, has_app_context

FALLBACK_TZ = "Europe/London"


def _zone():
    name = FALLBACK_TZ
    if has_app_context():
        name = current_app.config.get("TIMEZONE") or FALLBACK_TZ
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return pytz.timezone(FALLBACK_TZ)


def fmt_iso_local(value, with_time: bool = False) -> str:
    """
    Format a date/datetime (or ISO string) in the configured local zone.
    Date-only output is dd/mm/YYYY; with_time adds HH:MM.
    On parse error, returns the original value (so the UI never goes blank).
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value).strip()
        if not s:
            return ""
        try:
            dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            return s

    # If naive datetime, assume UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    local = dt.astimezone(_zone())
    return local.strftime("%d/%m/%Y %H:%M" if with_time else "%d/%m/%Y")


def money(value) -> str:
    """£ with two decimals; blank for missing values."""
    if value is None or value == "":
        return ""
    try:
        return f"£{float(value):,.2f}"
    except (TypeError, ValueError):
        return str(value)
