from __future__ import annotations

from datetime import datetime, timezone as dt_timezone
from zoneinfo import ZoneInfo

import dateparser
from tzlocal import get_localzone_name

from property_holds.core.config import get_config_value


def parse_instant(value: str, timezone: str) -> datetime | None:
    """Parse "2026-03-01 09:00", "in 2 hours", "yesterday 18:00" into an aware UTC datetime."""
    if not value:
        return None

    settings = {
        "RETURN_AS_TIMEZONE_AWARE": True,
        "TIMEZONE": timezone,
        "TO_TIMEZONE": "UTC",
    }

    parsed = dateparser.parse(value, settings=settings)
    if not parsed:
        return None
    return parsed.astimezone(dt_timezone.utc)


def get_local_timezone() -> str:
    try:
        return get_localzone_name()
    except Exception:
        return "UTC"


def display_timezone() -> str:
    return get_config_value("timezone") or get_local_timezone()


def format_local(value: datetime, timezone: str | None = None) -> str:
    tzinfo = ZoneInfo(timezone or display_timezone())
    return value.astimezone(tzinfo).strftime("%H:%M %d/%m/%Y")
