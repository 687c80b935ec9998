"""
Timezone and epoch-millisecond utilities.

Readings carry their timestamp as milliseconds since the Unix epoch; these
helpers convert between that representation and timezone-aware datetimes.
"""

import time
from datetime import datetime

import pytz
from dateutil import parser


def now_millis() -> int:
    """Return the current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def make_timezone_aware(
    dt: datetime, timezone_str: str = "UTC", assume_local: bool = False
) -> datetime:
    """
    Make a datetime object timezone-aware.

    Args:
        dt: Datetime object (may be naive or aware).
        timezone_str: Timezone string (e.g., "Europe/Madrid").
        assume_local: If True and dt is naive, assume it's in timezone_str.

    Returns:
        Timezone-aware datetime object.
    """
    tz = pytz.timezone(timezone_str)

    if dt.tzinfo is None:
        if assume_local:
            return tz.localize(dt)
        else:
            return pytz.utc.localize(dt).astimezone(tz)
    else:
        return dt.astimezone(tz)


def datetime_to_millis(dt: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    return int(dt.timestamp() * 1000)


def millis_to_datetime(millis: int, timezone_str: str = "UTC") -> datetime:
    """
    Convert epoch milliseconds to a timezone-aware datetime.

    Args:
        millis: Milliseconds since the epoch.
        timezone_str: Target timezone.

    Returns:
        Timezone-aware datetime in the requested timezone.
    """
    dt = datetime.fromtimestamp(millis / 1000, tz=pytz.utc)
    return dt.astimezone(pytz.timezone(timezone_str))


def parse_datetime_to_millis(value: str, timezone_str: str = "UTC") -> int:
    """
    Parse a date/time string into epoch milliseconds.

    Naive values are interpreted in ``timezone_str``.

    Args:
        value: Date or date-time string (any format dateutil understands).
        timezone_str: Timezone for naive values.

    Returns:
        Milliseconds since the epoch.
    """
    dt = parser.parse(value)
    return datetime_to_millis(make_timezone_aware(dt, timezone_str, assume_local=True))
