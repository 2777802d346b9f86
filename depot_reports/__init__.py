"""Depot parcel reports.

Period resolution, ranked report aggregation and recurring send schedules
for a parcel depot's missing-parcel log.

Public entry points:
    - engines: CalendarWeekResolver, PeriodRangeResolver, AggregationEngine,
      RecurrenceCalculator
    - helpers.report_helpers: ReportAssembler and the report definitions
    - helpers.trigger_helpers: email trigger validation and dispatch
"""

from .engines import (
    AggregationEngine,
    CalendarWeekResolver,
    DateRange,
    InvalidPeriodFormat,
    PeriodRangeResolver,
    PeriodSelector,
    RankedEntry,
    RecurrenceCalculator,
)

__version__ = "0.1.0"

__all__ = [
    "AggregationEngine",
    "CalendarWeekResolver",
    "DateRange",
    "InvalidPeriodFormat",
    "PeriodRangeResolver",
    "PeriodSelector",
    "RankedEntry",
    "RecurrenceCalculator",
]
