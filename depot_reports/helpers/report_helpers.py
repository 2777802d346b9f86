# File: helpers/report_helpers.py
"""Report definitions and assembly for depot-reports.

Every operational report is the generic AggregationEngine pipeline plus a
ReportDefinition (key / metrics / score / tie-break / display name). The
ReportAssembler resolves the period, runs the pipeline and wraps the ranked
entries in an immutable Report with identity and metadata.

This module is read-only with respect to events: nothing here mutates input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.aggregation_engine import AggregationEngine, RankedEntry
from ..engines.calendar_engine import InvalidPeriodFormat
from ..engines.period_engine import PeriodRangeResolver
from ..utils.dt_utils import dt_format_date, dt_now_local
from ..utils.math_utils import recovery_rate

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from ..engines.calendar_engine import DateRange
    from ..engines.period_engine import PeriodSelector
    from ..type_defs import GroupKey, Lookups, ScanEventData


# ==============================================================================
# Report Definitions
# ==============================================================================


@dataclass(frozen=True, slots=True)
class ReportDefinition:
    """Parameters that specialize the aggregation pipeline for one report."""

    report_type: str
    title: str
    key_of: Callable[[ScanEventData], GroupKey | None]
    metrics_of: Callable[[ScanEventData], Mapping[str, int | float]]
    score_of: Callable[[Mapping[str, int | float]], int | float]
    display_name_of: Callable[[GroupKey, Lookups], str]
    tie_break: tuple[str | tuple[str, bool], ...] = ()
    reasons_of: Callable[[RankedEntry], tuple[str, ...]] | None = None
    empty_message: str = const.DISPLAY_NO_DATA
    period_types: tuple[str, ...] = tuple(const.PERIOD_TYPES)

    @property
    def id_prefix(self) -> str:
        """Report id prefix, e.g. "CML"."""
        return const.REPORT_ID_PREFIXES[self.report_type]


def _lookup_name(lookups: Lookups, table: str, key: Any) -> str | None:
    """Find a display name by raw key, falling back to its string form."""
    names = lookups.get(table) or {}
    if key in names:
        return names[key]
    return names.get(str(key))


def _client_name(key: GroupKey, lookups: Lookups) -> str:
    return _lookup_name(lookups, const.LOOKUP_CLIENTS, key) or f"Client ID: {key}"


def _courier_name(key: GroupKey, lookups: Lookups) -> str:
    return _lookup_name(lookups, const.LOOKUP_COURIERS, key) or str(key)


def _delivery_unit_name(key: GroupKey, lookups: Lookups) -> str:
    return _lookup_name(lookups, const.LOOKUP_DELIVERY_UNITS, key) or str(key)


def _round_name(key: GroupKey, lookups: Lookups) -> str:
    """Label a (round_id, sub_depot_id) key."""
    round_id, sub_depot_id = key
    sub_depot = (
        _lookup_name(lookups, const.LOOKUP_SUB_DEPOTS, sub_depot_id)
        or f"Sub Depot {sub_depot_id}"
    )
    return f"Round {round_id} ({sub_depot})"


def _weekly_client_name(key: GroupKey, lookups: Lookups) -> str:
    if key == const.UNASSIGNED_CLIENT_KEY:
        return const.DISPLAY_UNASSIGNED_CLIENT
    return _lookup_name(lookups, const.LOOKUP_CLIENTS, key) or str(key)


def _name_or_id(lookups: Lookups, table: str, value: Any) -> str:
    """Display name for a parcel field, the raw id when unknown, "" when unset."""
    if value is None:
        return ""
    return _lookup_name(lookups, table, value) or str(value)


def _weekly_client_key(event: ScanEventData) -> GroupKey:
    """Every parcel in the week counts; parcels without a client share a group."""
    return event.get(const.DATA_EVENT_CLIENT_ID) or const.UNASSIGNED_CLIENT_KEY


def _round_key(event: ScanEventData) -> tuple[Any, Any] | None:
    round_id = event.get(const.DATA_EVENT_ROUND_ID)
    if round_id is None:
        return None
    return (round_id, event.get(const.DATA_EVENT_SUB_DEPOT_ID))


def _field_key(field_name: str) -> Callable[[Any], Any]:
    """Key extractor for one event field; blank ids are excluded."""
    return lambda event: event.get(field_name) or None


def _scan_type_key(scan_type: str, field_name: str) -> Callable[[Any], Any]:
    """Key extractor restricted to one scan type."""

    def key_of(event: ScanEventData) -> Any:
        if event.get(const.DATA_EVENT_SCAN_TYPE) != scan_type:
            return None
        return event.get(field_name) or None

    return key_of


def _courier_performance_metrics(event: ScanEventData) -> dict[str, int]:
    """Missing +1, unrecovered +1 when not recovered, carry forwards summed."""
    increments = {
        const.METRIC_TOTAL_MISSING: 1,
        const.METRIC_UNRECOVERED: 0 if event.get(const.DATA_EVENT_IS_RECOVERED) else 1,
        const.METRIC_CARRY_FORWARDS: 0,
    }
    carry_forwards = event.get(const.DATA_EVENT_CARRY_FORWARDS) or 0
    if carry_forwards > 0:
        increments[const.METRIC_CARRY_FORWARDS] = carry_forwards
    return increments


def _courier_performance_score(metrics: Mapping[str, int | float]) -> int | float:
    return (
        metrics.get(const.METRIC_UNRECOVERED, 0) * const.SCORE_WEIGHT_UNRECOVERED
        + metrics.get(const.METRIC_CARRY_FORWARDS, 0)
        * const.SCORE_WEIGHT_CARRY_FORWARDS
        + metrics.get(const.METRIC_TOTAL_MISSING, 0) * const.SCORE_WEIGHT_TOTAL_MISSING
    )


def _courier_performance_reasons(entry: RankedEntry) -> tuple[str, ...]:
    return (
        f"Score: {entry.score}",
        f"Unrecovered: {entry.metrics.get(const.METRIC_UNRECOVERED, 0)}",
        f"Carry Fwds: {entry.metrics.get(const.METRIC_CARRY_FORWARDS, 0)}",
    )


def _round_reasons(entry: RankedEntry) -> tuple[str, ...]:
    return (f"Total Missing: {entry.metrics.get(const.METRIC_TOTAL_MISSING, 0)}",)


def _metric(name: str) -> Callable[[Mapping[str, int | float]], int | float]:
    """Score function that reads a single counter."""
    return lambda metrics: metrics.get(name, 0)


REPORT_DEFINITIONS: dict[str, ReportDefinition] = {
    const.REPORT_CLIENT_MISSING_LEAGUE: ReportDefinition(
        report_type=const.REPORT_CLIENT_MISSING_LEAGUE,
        title="Client Missing League",
        key_of=_field_key(const.DATA_EVENT_CLIENT_ID),
        metrics_of=lambda event: {const.METRIC_TOTAL_MISSING: 1},
        score_of=_metric(const.METRIC_TOTAL_MISSING),
        display_name_of=_client_name,
        empty_message="No missing parcel data found for the selected period.",
    ),
    const.REPORT_TOP_MISROUTED_DESTINATIONS: ReportDefinition(
        report_type=const.REPORT_TOP_MISROUTED_DESTINATIONS,
        title="Top Misrouted Destinations",
        key_of=_scan_type_key(
            const.SCAN_TYPE_MISROUTED, const.DATA_EVENT_MISROUTED_DU_ID
        ),
        metrics_of=lambda event: {const.METRIC_COUNT: 1},
        score_of=_metric(const.METRIC_COUNT),
        display_name_of=_delivery_unit_name,
        empty_message="No misrouted parcel data found for the selected period.",
    ),
    const.REPORT_WORST_COURIER_CARRY_FORWARD: ReportDefinition(
        report_type=const.REPORT_WORST_COURIER_CARRY_FORWARD,
        title="Worst Couriers for Carry Forwards",
        key_of=_scan_type_key(const.SCAN_TYPE_CARRY_FORWARD, const.DATA_EVENT_COURIER_ID),
        metrics_of=lambda event: {const.METRIC_TOTAL_CARRY_FORWARDS: 1},
        score_of=_metric(const.METRIC_TOTAL_CARRY_FORWARDS),
        display_name_of=_courier_name,
        empty_message="No carry forward data found for the selected period.",
    ),
    const.REPORT_WORST_COURIER_PERFORMANCE: ReportDefinition(
        report_type=const.REPORT_WORST_COURIER_PERFORMANCE,
        title="Worst Courier Performance Report",
        key_of=_field_key(const.DATA_EVENT_COURIER_ID),
        metrics_of=_courier_performance_metrics,
        score_of=_courier_performance_score,
        display_name_of=_courier_name,
        tie_break=(const.METRIC_UNRECOVERED, const.METRIC_CARRY_FORWARDS),
        reasons_of=_courier_performance_reasons,
        empty_message="No missing parcel data found for the selected period.",
    ),
    const.REPORT_WORST_ROUND_PERFORMANCE: ReportDefinition(
        report_type=const.REPORT_WORST_ROUND_PERFORMANCE,
        title="Worst Round Performance",
        key_of=_round_key,
        metrics_of=lambda event: {const.METRIC_TOTAL_MISSING: 1},
        score_of=_metric(const.METRIC_TOTAL_MISSING),
        display_name_of=_round_name,
        tie_break=(const.METRIC_TOTAL_MISSING,),
        reasons_of=_round_reasons,
        empty_message="No missing parcel data found for the selected period.",
    ),
    const.REPORT_WEEKLY_MISSING_SUMMARY: ReportDefinition(
        report_type=const.REPORT_WEEKLY_MISSING_SUMMARY,
        title="Weekly Missing Summary",
        key_of=_weekly_client_key,
        metrics_of=lambda event: {const.METRIC_COUNT: 1},
        score_of=_metric(const.METRIC_COUNT),
        display_name_of=_weekly_client_name,
        empty_message="No missing parcels found for the selected week.",
        period_types=(const.PERIOD_WEEK,),
    ),
}


def get_report_definition(report_type: str) -> ReportDefinition:
    """Return the definition for a report type.

    Raises:
        ValueError: If the report type is unknown.
    """
    try:
        return REPORT_DEFINITIONS[report_type]
    except KeyError:
        raise ValueError(f"Unknown report type: {report_type!r}") from None


# ==============================================================================
# Report
# ==============================================================================


@dataclass(frozen=True, slots=True)
class Report:
    """Immutable snapshot of one generated report."""

    id: str
    report_type: str
    title: str
    period_type: str
    start: date
    end: date
    entries: tuple[RankedEntry, ...]
    total_events: int
    generated_at: datetime
    generated_by: str
    details: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def subject(self) -> str:
        """Email subject line, e.g. "Client Missing League: 2024-04-01 to 2024-04-30"."""
        return f"{self.title}: {dt_format_date(self.start)} to {dt_format_date(self.end)}"

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict."""
        return {
            "id": self.id,
            "report_type": self.report_type,
            "title": self.title,
            "period_type": self.period_type,
            "start": dt_format_date(self.start),
            "end": dt_format_date(self.end),
            "entries": [entry.as_dict() for entry in self.entries],
            "total_events": self.total_events,
            "generated_at": self.generated_at.isoformat(),
            "generated_by": self.generated_by,
            "details": {
                key: _plain(value) for key, value in self.details.items()
            },
        }


def _plain(value: Any) -> Any:
    """Convert tuples of tuples into lists for JSON output."""
    if isinstance(value, tuple):
        return [_plain(item) for item in value]
    return value


# ==============================================================================
# Assembly
# ==============================================================================


class ReportAssembler:
    """Runs a report definition over an event log for one period."""

    @staticmethod
    def generate(
        report_type: str,
        selector: PeriodSelector,
        events: Iterable[ScanEventData],
        *,
        lookups: Lookups | None = None,
        generated_by: str = const.DEFAULT_GENERATED_BY,
        generated_at: datetime | None = None,
        top_n: int = 0,
    ) -> Report | None:
        """Generate a report, or None when no event falls in the period.

        Args:
            report_type: One of const.REPORT_TYPES
            selector: Period to report on
            events: Scan event log (read-only)
            lookups: Display-name tables keyed by const.LOOKUP_*
            generated_by: Author label stored on the report
            generated_at: Report timestamp; defaults to the current time
            top_n: Keep only the first N entries (0 keeps all)

        Raises:
            ValueError: Unknown report type.
            InvalidPeriodFormat: Malformed selector, or a period type the
                report does not support.
        """
        definition = get_report_definition(report_type)
        if selector.period_type not in definition.period_types:
            raise InvalidPeriodFormat(
                selector.period_type,
                selector.value,
                f"{report_type} supports only {', '.join(definition.period_types)}",
            )

        date_range = PeriodRangeResolver.resolve_range(selector)
        events = list(events)
        names = lookups or {}

        ranked = AggregationEngine.aggregate(
            events,
            date_range,
            definition.key_of,
            definition.metrics_of,
            definition.score_of,
            tie_break=definition.tie_break,
            display_name_of=lambda key: definition.display_name_of(key, names),
        )
        if not ranked:
            const.LOGGER.info(
                "%s for %s to %s: %s",
                definition.title,
                date_range.start,
                date_range.end,
                definition.empty_message,
            )
            return None

        entries = tuple(AggregationEngine.top_n(ranked, top_n))
        details: dict[str, Any] = {}
        if definition.reasons_of is not None:
            details[const.DETAIL_REASONS] = tuple(
                definition.reasons_of(entry) for entry in entries
            )
        if report_type == const.REPORT_WEEKLY_MISSING_SUMMARY:
            details.update(_weekly_summary_details(events, date_range, names))

        when = generated_at or dt_now_local()
        report = Report(
            id=f"{definition.id_prefix}-{int(when.timestamp() * 1000)}",
            report_type=report_type,
            title=definition.title,
            period_type=selector.period_type,
            start=date_range.start,
            end=date_range.end,
            entries=entries,
            total_events=sum(entry.event_count for entry in ranked),
            generated_at=when,
            generated_by=generated_by,
            details=MappingProxyType(details),
        )
        const.LOGGER.info(
            "Generated %s (%s entries, %s events)",
            report.id,
            len(report.entries),
            report.total_events,
        )
        return report


def _weekly_summary_details(
    events: list[ScanEventData], date_range: DateRange, lookups: Lookups
) -> dict[str, Any]:
    """Parcel list and recovery figures for the weekly missing summary.

    Covers the same in-range events the client table groups, so the totals
    agree with Report.total_events.
    """
    in_range = AggregationEngine.filter_events(events, date_range)
    unrecovered = sum(
        1 for event in in_range if not event.get(const.DATA_EVENT_IS_RECOVERED)
    )
    parcels = tuple(
        {
            const.DATA_EVENT_ID: event.get(const.DATA_EVENT_ID),
            const.DATA_EVENT_BARCODE: event.get(const.DATA_EVENT_BARCODE),
            const.DATA_EVENT_SORTER_ID: event.get(const.DATA_EVENT_SORTER_ID),
            const.DETAIL_SORTER_NAME: _name_or_id(
                lookups, const.LOOKUP_SORTERS, event.get(const.DATA_EVENT_SORTER_ID)
            ),
            const.DATA_EVENT_CLIENT_ID: event.get(const.DATA_EVENT_CLIENT_ID),
            const.DETAIL_CLIENT_NAME: _weekly_client_name(
                _weekly_client_key(event), lookups
            ),
            const.DATA_EVENT_ROUND_ID: event.get(const.DATA_EVENT_ROUND_ID),
            const.DATA_EVENT_SUB_DEPOT_ID: event.get(const.DATA_EVENT_SUB_DEPOT_ID),
            const.DETAIL_SUB_DEPOT_NAME: _name_or_id(
                lookups,
                const.LOOKUP_SUB_DEPOTS,
                event.get(const.DATA_EVENT_SUB_DEPOT_ID),
            ),
            const.DATA_EVENT_DATE_ADDED: event.get(const.DATA_EVENT_DATE_ADDED),
            const.DATA_EVENT_IS_RECOVERED: bool(
                event.get(const.DATA_EVENT_IS_RECOVERED)
            ),
        }
        for event in in_range
    )
    return {
        const.DETAIL_PARCELS: parcels,
        const.DETAIL_TOTAL_MISSING: len(in_range),
        const.DETAIL_UNRECOVERED: unrecovered,
        const.DETAIL_RECOVERY_RATE: recovery_rate(len(in_range), unrecovered),
    }


# ==============================================================================
# Rendering
# ==============================================================================


def format_report_text(report: Report) -> str:
    """Render a report as a plain-text table for the CLI and email body."""
    lines = [
        report.subject,
        f"Generated {report.generated_at:%Y-%m-%d %H:%M} by {report.generated_by}"
        f" ({report.id})",
        "",
    ]

    reasons = report.details.get(const.DETAIL_REASONS)
    for index, entry in enumerate(report.entries):
        if reasons is not None:
            summary = ", ".join(reasons[index])
        else:
            summary = ", ".join(
                f"{metric}={value}" for metric, value in entry.metrics.items()
            )
        lines.append(f"#{entry.rank:<3} {entry.display_name}: {summary}")

    lines.append("")
    lines.append(f"Total events: {report.total_events}")
    if const.DETAIL_RECOVERY_RATE in report.details:
        lines.append(
            f"Unrecovered: {report.details[const.DETAIL_UNRECOVERED]}"
            f" | Recovery rate: {report.details[const.DETAIL_RECOVERY_RATE]}%"
        )
    return "\n".join(lines)


# =============================================================================
# Convenience Functions
# =============================================================================


def generate_report(
    report_type: str,
    selector: PeriodSelector,
    events: Iterable[ScanEventData],
    **kwargs: Any,
) -> Report | None:
    """Module-level shortcut for ReportAssembler.generate."""
    return ReportAssembler.generate(report_type, selector, events, **kwargs)
