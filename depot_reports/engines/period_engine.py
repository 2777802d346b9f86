"""Period Engine - resolve a day/week/month selector into a DateRange.

Selector values:
- day:   a date, or an ISO "YYYY-MM-DD" string
- week:  an ISO week label "YYYY-Www" (delegates to CalendarWeekResolver)
- month: a "YYYY-MM" label

ARCHITECTURE: Pure logic, no I/O, no clock reads.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
import re

from .. import const
from ..utils.dt_utils import days_in_month, dt_parse_iso_date
from .calendar_engine import CalendarWeekResolver, DateRange, InvalidPeriodFormat

_MONTH_LABEL_RE = re.compile(const.MONTH_LABEL_PATTERN)


@dataclass(frozen=True, slots=True)
class PeriodSelector:
    """A tagged period choice: one of day, week or month plus its raw value."""

    period_type: str
    value: str | date

    @classmethod
    def for_instant(cls, period_type: str, when: date | datetime) -> PeriodSelector:
        """Build the selector of `period_type` that contains `when`.

        Raises:
            InvalidPeriodFormat: If period_type is not day, week or month.
        """
        day = when.date() if isinstance(when, datetime) else when
        if period_type == const.PERIOD_DAY:
            return cls(const.PERIOD_DAY, day)
        if period_type == const.PERIOD_WEEK:
            return cls(const.PERIOD_WEEK, CalendarWeekResolver.resolve_week(day))
        if period_type == const.PERIOD_MONTH:
            return cls(const.PERIOD_MONTH, day.strftime(const.MONTH_LABEL_FORMAT))
        raise InvalidPeriodFormat(period_type, when, "unknown period type")


class PeriodRangeResolver:
    """Turns a PeriodSelector into an inclusive DateRange.

    Example:
        >>> PeriodRangeResolver.resolve_range(PeriodSelector("month", "2024-02"))
        DateRange(start=datetime.date(2024, 2, 1), end=datetime.date(2024, 2, 29))
    """

    @staticmethod
    def resolve_range(selector: PeriodSelector) -> DateRange:
        """Resolve a selector to its inclusive [start, end] range.

        Raises:
            InvalidPeriodFormat: Unknown period type or malformed value.
        """
        period_type = selector.period_type
        if period_type == const.PERIOD_DAY:
            return PeriodRangeResolver._day_range(selector.value)
        if period_type == const.PERIOD_WEEK:
            if not isinstance(selector.value, str):
                raise InvalidPeriodFormat(
                    period_type, selector.value, "expected YYYY-Www"
                )
            return CalendarWeekResolver.week_range(selector.value)
        if period_type == const.PERIOD_MONTH:
            return PeriodRangeResolver.month_range(selector.value)
        raise InvalidPeriodFormat(period_type, selector.value, "unknown period type")

    @staticmethod
    def month_range(label: str | date) -> DateRange:
        """Return the first..last day range of a "YYYY-MM" month.

        The last day comes from the calendar, so leap-year February and
        30-day months are handled without a lookup table.
        """
        if not isinstance(label, str):
            raise InvalidPeriodFormat(const.PERIOD_MONTH, label, "expected YYYY-MM")
        match = _MONTH_LABEL_RE.match(label.strip())
        if not match:
            raise InvalidPeriodFormat(const.PERIOD_MONTH, label, "expected YYYY-MM")

        year, month = int(match.group(1)), int(match.group(2))
        if year < 1 or not 1 <= month <= 12:
            raise InvalidPeriodFormat(const.PERIOD_MONTH, label, "month out of range")

        return DateRange(
            start=date(year, month, 1),
            end=date(year, month, days_in_month(year, month)),
        )

    @staticmethod
    def _day_range(value: str | date) -> DateRange:
        """Single-day range."""
        day = dt_parse_iso_date(value)
        if day is None:
            raise InvalidPeriodFormat(const.PERIOD_DAY, value, "expected YYYY-MM-DD")
        return DateRange(start=day, end=day)


# =============================================================================
# Convenience Functions
# =============================================================================


def resolve_range(selector: PeriodSelector) -> DateRange:
    """Module-level shortcut for PeriodRangeResolver.resolve_range."""
    return PeriodRangeResolver.resolve_range(selector)
