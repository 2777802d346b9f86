"""Calendar Engine - ISO-8601 week labels and inclusive date ranges.

Converts between calendar dates and ISO week labels ("YYYY-Www"):
- A week runs Monday..Sunday.
- The week belongs to the year that contains its Thursday, so Dec 29-31 can
  fall in week 1 of the next year and Jan 1-3 in week 52/53 of the previous one.

ARCHITECTURE: Pure logic, no I/O, no clock reads. All methods are static.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
import re

from .. import const
from ..utils.dt_utils import dt_format_date, end_of_day, start_of_day

_WEEK_LABEL_RE = re.compile(const.WEEK_LABEL_PATTERN)


class InvalidPeriodFormat(ValueError):
    """Raised when a week label, month label or day value cannot be resolved.

    Attributes:
        period_type: The period being resolved ("day", "week", "month")
        value: The raw value that failed to parse
    """

    def __init__(self, period_type: str, value: object, reason: str) -> None:
        """Initialize InvalidPeriodFormat.

        Args:
            period_type: The period being resolved
            value: The offending raw value
            reason: Human-readable explanation
        """
        self.period_type = period_type
        self.value = value
        super().__init__(f"Invalid {period_type} value {value!r}: {reason}")


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive calendar-day range.

    Both ends are day-truncated: `start` covers from 00:00:00 and `end`
    runs through 23:59:59 when compared against event timestamps.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        """Enforce start <= end."""
        if self.start > self.end:
            raise ValueError(f"DateRange start {self.start} is after end {self.end}")

    @property
    def start_datetime(self) -> datetime:
        """Start of the first day (00:00:00)."""
        return start_of_day(self.start)

    @property
    def end_datetime(self) -> datetime:
        """End of the last day (23:59:59)."""
        return end_of_day(self.end)

    @property
    def days(self) -> int:
        """Number of calendar days covered, inclusive."""
        return (self.end - self.start).days + 1

    def contains(self, value: date | datetime) -> bool:
        """Return True if the day of `value` lies within the range."""
        day = value.date() if isinstance(value, datetime) else value
        return self.start <= day <= self.end

    def as_dict(self) -> dict[str, str]:
        """Return the range as ISO date strings."""
        return {"start": dt_format_date(self.start), "end": dt_format_date(self.end)}


class CalendarWeekResolver:
    """Date ⇄ ISO week label conversion.

    Example:
        >>> CalendarWeekResolver.resolve_week(date(2024, 12, 30))
        '2025-W01'
        >>> CalendarWeekResolver.week_range("2025-W01")
        DateRange(start=datetime.date(2024, 12, 30), end=datetime.date(2025, 1, 5))
    """

    @staticmethod
    def resolve_week(day: date | datetime) -> str:
        """Return the ISO week label ("YYYY-Www") containing `day`.

        The label's year is the ISO week-year (the year of that week's
        Thursday), which differs from the calendar year near Jan 1.
        """
        if isinstance(day, datetime):
            day = day.date()
        iso = day.isocalendar()
        return f"{iso.year:04d}-W{iso.week:02d}"

    @staticmethod
    def weeks_in_year(year: int) -> int:
        """Return 52 or 53: the number of ISO weeks in an ISO week-year.

        Dec 28 always falls in the last ISO week of its year.
        """
        return date(year, 12, 28).isocalendar().week

    @staticmethod
    def parse_week_label(label: str) -> tuple[int, int]:
        """Validate a week label and return (year, week).

        Raises:
            InvalidPeriodFormat: Wrong pattern, or a week number that does not
                exist in that ISO year (e.g. "2023-W53").
        """
        if not isinstance(label, str):
            raise InvalidPeriodFormat(const.PERIOD_WEEK, label, "expected YYYY-Www")

        match = _WEEK_LABEL_RE.match(label.strip())
        if not match:
            raise InvalidPeriodFormat(const.PERIOD_WEEK, label, "expected YYYY-Www")

        year, week = int(match.group(1)), int(match.group(2))
        if year < 1:
            raise InvalidPeriodFormat(const.PERIOD_WEEK, label, "year out of range")
        last_week = CalendarWeekResolver.weeks_in_year(year)
        if not const.MIN_ISO_WEEK <= week <= last_week:
            raise InvalidPeriodFormat(
                const.PERIOD_WEEK,
                label,
                f"week must be between 01 and {last_week:02d} for {year}",
            )
        return year, week

    @staticmethod
    def week_range(label: str) -> DateRange:
        """Return the Monday..Sunday range for an ISO week label.

        Raises:
            InvalidPeriodFormat: If the label is malformed or out of range.
        """
        year, week = CalendarWeekResolver.parse_week_label(label)
        monday = date.fromisocalendar(year, week, 1)
        sunday = monday + timedelta(days=const.DAYS_PER_WEEK - 1)
        return DateRange(start=monday, end=sunday)


# =============================================================================
# Convenience Functions
# =============================================================================


def resolve_week(day: date | datetime) -> str:
    """Module-level shortcut for CalendarWeekResolver.resolve_week."""
    return CalendarWeekResolver.resolve_week(day)


def week_range(label: str) -> DateRange:
    """Module-level shortcut for CalendarWeekResolver.week_range."""
    return CalendarWeekResolver.week_range(label)
