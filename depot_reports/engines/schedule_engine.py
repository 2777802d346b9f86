"""Schedule Engine - next send instants for recurring email triggers.

Uses `dateutil.rrule` for every supported frequency:
- daily:   every day at send_time
- weekly:  every week on day_of_week (0=Sunday .. 6=Saturday) at send_time
- monthly: on day_of_month (1..31) or the last day ("last") at send_time

A numeric day_of_month that does not exist in a month (31 in April, 30 in
February) is skipped: the next occurrence is in the next month that has it.
rrule's BYMONTHDAY does this natively.

All computation is on wall-calendar values; `now` is always passed in and
the result is strictly later than `now`.

IMPORTANT: This module must NOT import from helpers or cli.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, ClassVar

from dateutil.relativedelta import relativedelta
from dateutil.rrule import DAILY, FR, MO, MONTHLY, SA, SU, TH, TU, WE, WEEKLY, rrule

from .. import const
from ..utils.dt_utils import dt_parse_send_time

if TYPE_CHECKING:
    from ..type_defs import RecurrenceSpec


class RecurrenceCalculator:
    """Stateless next-run calculator for RecurrenceSpec values.

    Every call rebuilds the rule from the spec, so the calculator is
    reentrant and safe to share across triggers.
    """

    FREQUENCY_TO_RRULE: ClassVar[dict[str, int]] = {
        const.FREQUENCY_DAILY: DAILY,
        const.FREQUENCY_WEEKLY: WEEKLY,
        const.FREQUENCY_MONTHLY: MONTHLY,
    }

    # Indexed by persisted day_of_week (Sunday first)
    DAY_OF_WEEK_TO_RRULE: ClassVar[tuple] = (SU, MO, TU, WE, TH, FR, SA)
    DAY_OF_WEEK_TO_ICAL: ClassVar[tuple[str, ...]] = (
        "SU",
        "MO",
        "TU",
        "WE",
        "TH",
        "FR",
        "SA",
    )

    @staticmethod
    def next_run(spec: RecurrenceSpec, now: datetime) -> datetime:
        """Return the first scheduled instant strictly after `now`.

        Args:
            spec: Recurrence spec (frequency, send_time, day_of_week/day_of_month)
            now: Reference instant

        Returns:
            The next send instant (same tzinfo as `now`, seconds zeroed).

        Raises:
            ValueError: Unknown frequency, unparseable send_time, or a missing
                day_of_week/day_of_month for weekly/monthly.

        Example:
            >>> RecurrenceCalculator.next_run(
            ...     {"frequency": "monthly", "day_of_month": "last", "send_time": "09:00"},
            ...     datetime(2024, 4, 10),
            ... )
            datetime.datetime(2024, 4, 30, 9, 0)
        """
        rule = RecurrenceCalculator._build_rule(spec, now)
        next_occurrence = rule.after(now, inc=False)
        if next_occurrence is None:
            # Only reachable at the very end of the datetime range
            raise ValueError(f"No occurrence after {now.isoformat()}")
        return next_occurrence

    @staticmethod
    def upcoming_runs(
        spec: RecurrenceSpec, now: datetime, count: int
    ) -> list[datetime]:
        """Return the next `count` send instants after `now`, ascending."""
        rule = RecurrenceCalculator._build_rule(spec, now)
        runs: list[datetime] = []
        cursor = now
        for _ in range(max(0, count)):
            cursor = rule.after(cursor, inc=False)
            if cursor is None:
                break
            runs.append(cursor)
        return runs

    @staticmethod
    def to_rrule_string(spec: RecurrenceSpec) -> str:
        """Generate an RFC 5545 RRULE string for calendar export.

        Returns:
            e.g. "FREQ=WEEKLY;INTERVAL=1;BYDAY=WE;BYHOUR=8;BYMINUTE=0"
        """
        freq = spec.get("frequency")
        hour, minute = dt_parse_send_time(spec.get("send_time", ""))
        time_part = f"BYHOUR={hour};BYMINUTE={minute}"

        if freq == const.FREQUENCY_DAILY:
            return f"FREQ=DAILY;INTERVAL=1;{time_part}"
        if freq == const.FREQUENCY_WEEKLY:
            day = RecurrenceCalculator._day_of_week(spec)
            byday = RecurrenceCalculator.DAY_OF_WEEK_TO_ICAL[day]
            return f"FREQ=WEEKLY;INTERVAL=1;BYDAY={byday};{time_part}"
        if freq == const.FREQUENCY_MONTHLY:
            monthday = RecurrenceCalculator._month_day(spec)
            return f"FREQ=MONTHLY;INTERVAL=1;BYMONTHDAY={monthday};{time_part}"
        raise ValueError(f"Unknown frequency: {freq!r}")

    # =========================================================================
    # Private: rule construction
    # =========================================================================

    @staticmethod
    def _build_rule(spec: RecurrenceSpec, now: datetime) -> rrule:
        """Build the rrule whose occurrences are the trigger's send instants.

        dtstart is anchored at or before `now` (today, or the 1st of this
        month for monthly) so the first candidate considered is in the
        current day/week/month.
        """
        freq = spec.get("frequency")
        rrule_freq = RecurrenceCalculator.FREQUENCY_TO_RRULE.get(freq)
        if rrule_freq is None:
            raise ValueError(f"Unknown frequency: {freq!r}")

        hour, minute = dt_parse_send_time(spec.get("send_time", ""))
        anchor = now + relativedelta(hour=hour, minute=minute, second=0, microsecond=0)

        if freq == const.FREQUENCY_WEEKLY:
            day = RecurrenceCalculator._day_of_week(spec)
            return rrule(
                WEEKLY,
                dtstart=anchor,
                byweekday=RecurrenceCalculator.DAY_OF_WEEK_TO_RRULE[day],
            )

        if freq == const.FREQUENCY_MONTHLY:
            return rrule(
                MONTHLY,
                dtstart=anchor + relativedelta(day=1),
                bymonthday=RecurrenceCalculator._month_day(spec),
            )

        return rrule(DAILY, dtstart=anchor)

    @staticmethod
    def _day_of_week(spec: RecurrenceSpec) -> int:
        """Return the weekly trigger's 0=Sunday..6=Saturday day."""
        day = spec.get("day_of_week")
        if not isinstance(day, int) or isinstance(day, bool):
            raise ValueError(f"Weekly schedule needs day_of_week, got {day!r}")
        if not const.MIN_DAY_OF_WEEK <= day <= const.MAX_DAY_OF_WEEK:
            raise ValueError(f"day_of_week out of range: {day!r}")
        return day

    @staticmethod
    def _month_day(spec: RecurrenceSpec) -> int:
        """Return rrule's BYMONTHDAY value: 1..31, or -1 for "last"."""
        day = spec.get("day_of_month")
        if day == const.DAY_OF_MONTH_LAST:
            return -1
        if not isinstance(day, int) or isinstance(day, bool):
            raise ValueError(f"Monthly schedule needs day_of_month, got {day!r}")
        if not const.MIN_DAY_OF_MONTH <= day <= const.MAX_DAY_OF_MONTH:
            raise ValueError(f"day_of_month out of range: {day!r}")
        return day


# =============================================================================
# Convenience Functions
# =============================================================================


def next_run(spec: RecurrenceSpec, now: datetime) -> datetime:
    """Module-level shortcut for RecurrenceCalculator.next_run."""
    return RecurrenceCalculator.next_run(spec, now)


def upcoming_runs(spec: RecurrenceSpec, now: datetime, count: int) -> list[datetime]:
    """Module-level shortcut for RecurrenceCalculator.upcoming_runs."""
    return RecurrenceCalculator.upcoming_runs(spec, now, count)
