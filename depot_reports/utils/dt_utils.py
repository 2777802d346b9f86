# File: utils/dt_utils.py
"""Date and time utilities for depot-reports.

Pure Python calendar-day functions. Everything here works on wall-calendar
values. The only timezone conversion is dt_align_to(), which brings a stored
offset-bearing instant onto the caller's clock. Nothing reads the clock
except dt_now_local(), which is reserved for report metadata.

Functions:
    - dt_now_local: Current wall-clock datetime (report metadata only)
    - dt_parse_event_date: Parse a day-first event date ("DD/MM/YYYY")
    - dt_parse_iso_date: Parse an ISO date string ("YYYY-MM-DD")
    - dt_parse_send_time: Parse a 24-hour "HH:MM" send time
    - dt_parse_instant: Parse an ISO datetime string
    - dt_align_to: Match a datetime's tz-awareness to a reference
    - days_in_month: Number of days in a calendar month
    - start_of_day / end_of_day: Day boundaries as datetimes
    - dt_format_date: Format a date as ISO string
    - dt_format_short: Format a datetime for the "next send" estimate
"""

from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, time
import logging
import re

# Module-level logger
_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# These mirror const.py values but are defined locally for purity.
# ==============================================================================

_EVENT_DATE_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_SEND_TIME_PATTERN = re.compile(r"^(\d{2}):(\d{2})$")

END_OF_DAY = time(23, 59, 59)


# ==============================================================================
# Current Date/Time
# ==============================================================================


def dt_now_local() -> datetime:
    """Return the current wall-clock datetime (naive).

    Engines never call this; they take `now` as an argument.
    """
    return datetime.now()


# ==============================================================================
# Parsing
# ==============================================================================


def dt_parse_event_date(value: str | date | datetime | None) -> date | None:
    """Parse an event's `date_added` into a `datetime.date`.

    The stored wire format is day-first ("15/04/2024"). Day and month are
    read positionally; the value is never tried as month-first.

    Args:
        value: Day-first date string, date, datetime, or None

    Returns:
        The calendar date, or None if the value is missing or unparseable.

    Examples:
        "15/04/2024" → date(2024, 4, 15)
        "5/4/2024"   → date(2024, 4, 5)
        "31/02/2024" → None
    """
    if value is None:
        return None
    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    match = _EVENT_DATE_PATTERN.match(value.strip())
    if not match:
        return None

    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def dt_parse_iso_date(value: str | date | None) -> date | None:
    """Safely parse an ISO "YYYY-MM-DD" string into a `datetime.date`.

    Returns:
        datetime.date or None if parsing fails.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def dt_parse_send_time(send_time: str) -> tuple[int, int]:
    """Parse a 24-hour "HH:MM" string into (hour, minute).

    Raises:
        ValueError: If the string is not two-digit HH:MM within 00:00-23:59.
    """
    match = _SEND_TIME_PATTERN.match(send_time.strip()) if send_time else None
    if not match:
        raise ValueError(f"Send time must be in HH:MM format, got {send_time!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Send time out of range: {send_time!r}")
    return hour, minute


def dt_parse_instant(value: str | datetime | None) -> datetime | None:
    """Parse an ISO datetime string; pass datetimes through unchanged."""
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        _LOGGER.debug("dt_parse_instant: could not parse %r", value)
        return None


def dt_align_to(value: datetime, reference: datetime) -> datetime:
    """Return `value` with the same tz-awareness as `reference`.

    An aware value checked against a naive reference is converted to the
    local zone and made naive, so "+01:00" instants land on the local wall
    clock. A naive value checked against an aware reference takes the
    reference's tzinfo.

    Examples:
        (08:00+01:00, naive ref)   → 07:00 naive on a UTC host
        (08:00 naive, 09:00+00:00) → 08:00+00:00
    """
    if value.tzinfo is None and reference.tzinfo is None:
        return value
    if reference.tzinfo is None:
        return value.astimezone().replace(tzinfo=None)
    if value.tzinfo is None:
        return value.replace(tzinfo=reference.tzinfo)
    return value.astimezone(reference.tzinfo)


# ==============================================================================
# Calendar Arithmetic
# ==============================================================================


def days_in_month(year: int, month: int) -> int:
    """Return the number of days in a month (handles leap-year February)."""
    return monthrange(year, month)[1]


def start_of_day(day: date) -> datetime:
    """Return 00:00:00 on the given day."""
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    """Return 23:59:59 on the given day."""
    return datetime.combine(day, END_OF_DAY)


# ==============================================================================
# Formatting
# ==============================================================================


def dt_format_date(day: date) -> str:
    """Format a date as "YYYY-MM-DD"."""
    return day.isoformat()


def dt_format_short(dt_obj: datetime | None) -> str:
    """Format a datetime into the short form shown for the next send.

    Example:
        datetime(2024, 4, 17, 8, 0) → "Wed 17 Apr, 08:00"
    """
    if dt_obj is None:
        return ""
    return f"{dt_obj:%a} {dt_obj.day} {dt_obj:%b}, {dt_obj:%H:%M}"
