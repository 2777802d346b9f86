# File: cli.py
"""Command-line interface for depot-reports.

Usage:
    depot-reports week 2024-04-17
    depot-reports range month 2024-02
    depot-reports report worst_courier_performance_report \\
        --period month --value 2024-04 --events events.yaml --config depot.yaml
    depot-reports next-run --frequency weekly --day-of-week 3 \\
        --send-time 08:00 --now 2024-04-17T09:00 --count 3

Exit codes: 0 on success (including "no data"), 2 on usage or input errors.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import TYPE_CHECKING

from . import const
from .config import ConfigError, load_config, load_events
from .engines.calendar_engine import CalendarWeekResolver, InvalidPeriodFormat
from .engines.period_engine import PeriodRangeResolver, PeriodSelector
from .engines.schedule_engine import RecurrenceCalculator
from .helpers.report_helpers import (
    ReportAssembler,
    format_report_text,
    get_report_definition,
)
from .utils.dt_utils import (
    dt_format_short,
    dt_now_local,
    dt_parse_event_date,
    dt_parse_instant,
    dt_parse_iso_date,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .type_defs import RecurrenceSpec

EXIT_OK = 0
EXIT_ERROR = 2


# ==============================================================================
# Argument Parsing
# ==============================================================================


def _day_of_month(value: str) -> int | str:
    """argparse type for --day-of-month: 1..31 or "last"."""
    if value.strip().lower() == const.DAY_OF_MONTH_LAST:
        return const.DAY_OF_MONTH_LAST
    try:
        return int(value)
    except ValueError as err:
        raise argparse.ArgumentTypeError(
            f"expected 1-31 or '{const.DAY_OF_MONTH_LAST}', got {value!r}"
        ) from err


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser."""
    parser = argparse.ArgumentParser(
        prog="depot-reports",
        description=f"{const.TITLE}: periods, rankings and send schedules",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    week = subparsers.add_parser("week", help="ISO week label and range for a date")
    week.add_argument("date", help="Date as YYYY-MM-DD or DD/MM/YYYY")

    range_parser = subparsers.add_parser("range", help="Resolve a period selector")
    range_parser.add_argument("period", choices=const.PERIOD_TYPES)
    range_parser.add_argument(
        "value", help="YYYY-MM-DD (day), YYYY-Www (week) or YYYY-MM (month)"
    )

    report = subparsers.add_parser("report", help="Generate a ranked report")
    report.add_argument("report_type", choices=const.REPORT_TYPES)
    report.add_argument("--period", choices=const.PERIOD_TYPES, required=True)
    report.add_argument("--value", required=True, help="Period value")
    report.add_argument(
        "--events", required=True, help="YAML or JSON file with a list of events"
    )
    report.add_argument("--config", default=None, help="YAML config file")
    report.add_argument(
        "--top", type=int, default=None, help="Show only the first N entries"
    )
    report.add_argument("--json", action="store_true", help="Print JSON")

    next_run = subparsers.add_parser("next-run", help="Upcoming send instants")
    next_run.add_argument(
        "--frequency", choices=const.FREQUENCY_OPTIONS, required=True
    )
    next_run.add_argument(
        "--day-of-week", type=int, default=None, help="0=Sunday .. 6=Saturday"
    )
    next_run.add_argument(
        "--day-of-month", type=_day_of_month, default=None, help="1-31 or 'last'"
    )
    next_run.add_argument("--send-time", required=True, help="HH:MM (24-hour)")
    next_run.add_argument(
        "--now", default=None, help="Reference instant (ISO); defaults to now"
    )
    next_run.add_argument("--count", type=int, default=1)

    return parser


# ==============================================================================
# Commands
# ==============================================================================


def _cmd_week(args: argparse.Namespace) -> int:
    day = dt_parse_iso_date(args.date) or dt_parse_event_date(args.date)
    if day is None:
        raise InvalidPeriodFormat(const.PERIOD_DAY, args.date, "expected a date")
    label = CalendarWeekResolver.resolve_week(day)
    date_range = CalendarWeekResolver.week_range(label)
    print(f"{label}: {date_range.start} to {date_range.end}")
    return EXIT_OK


def _cmd_range(args: argparse.Namespace) -> int:
    date_range = PeriodRangeResolver.resolve_range(
        PeriodSelector(args.period, args.value)
    )
    print(f"{date_range.start} to {date_range.end} ({date_range.days} days)")
    return EXIT_OK


def _cmd_report(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    events = load_events(args.events)
    top = config["top_n"] if args.top is None else args.top

    report = ReportAssembler.generate(
        args.report_type,
        PeriodSelector(args.period, args.value),
        events,
        lookups=config["lookups"],
        generated_by=config["generated_by"],
        top_n=top,
    )
    if report is None:
        print(get_report_definition(args.report_type).empty_message)
        return EXIT_OK

    if args.json:
        print(json.dumps(report.as_dict(), indent=2, default=str))
    else:
        print(format_report_text(report))
    return EXIT_OK


def _cmd_next_run(args: argparse.Namespace) -> int:
    now = dt_parse_instant(args.now) if args.now else dt_now_local()
    if now is None:
        raise ValueError(f"Invalid --now value: {args.now!r}")

    spec: RecurrenceSpec = {"frequency": args.frequency, "send_time": args.send_time}
    if args.frequency == const.FREQUENCY_WEEKLY:
        spec["day_of_week"] = args.day_of_week
    elif args.frequency == const.FREQUENCY_MONTHLY:
        spec["day_of_month"] = args.day_of_month

    for run in RecurrenceCalculator.upcoming_runs(spec, now, args.count):
        print(f"{run.isoformat()}  ({dt_format_short(run)})")
    return EXIT_OK


COMMANDS = {
    "week": _cmd_week,
    "range": _cmd_range,
    "report": _cmd_report,
    "next-run": _cmd_next_run,
}


# ==============================================================================
# Entry Point
# ==============================================================================


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return its exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return COMMANDS[args.command](args)
    except (ConfigError, ValueError) as err:
        const.LOGGER.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {err}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
