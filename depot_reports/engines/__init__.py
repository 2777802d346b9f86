"""Engine modules for depot-reports.

Contains the pure computation engines:
- calendar_engine: ISO week labels and DateRange
- period_engine: day/week/month selector resolution
- aggregation_engine: filter, group, score and rank scan events
- schedule_engine: next send instants for recurring triggers
"""

# Use relative imports within package to avoid mypy module resolution issues
from .aggregation_engine import AggregationEngine, RankedEntry, aggregate
from .calendar_engine import (
    CalendarWeekResolver,
    DateRange,
    InvalidPeriodFormat,
    resolve_week,
    week_range,
)
from .period_engine import PeriodRangeResolver, PeriodSelector, resolve_range
from .schedule_engine import RecurrenceCalculator, next_run

__all__ = [
    "AggregationEngine",
    "CalendarWeekResolver",
    "DateRange",
    "InvalidPeriodFormat",
    "PeriodRangeResolver",
    "PeriodSelector",
    "RankedEntry",
    "RecurrenceCalculator",
    "aggregate",
    "next_run",
    "resolve_range",
    "resolve_week",
    "week_range",
]
