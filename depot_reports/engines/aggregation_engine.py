"""Aggregation Engine - fold a scan-event log into a ranked per-entity table.

Pipeline (each step a pure function of its inputs):
1. Filter: keep events whose `date_added` falls inside the DateRange.
   Events with a missing or unparseable date are skipped, never fatal.
2. Group: fold events into per-key counters using caller-supplied increments.
3. Score: apply the score function once per group, after folding.
4. Sort & rank: descending score, then the tie-break chain (each metric
   descending unless given as ("metric", False)), then first-seen order. Ranks are positional 1..N; ties never share a rank.

Design Principles:
    - Stateless: events are read, never mutated
    - Generic: report-specific behavior is injected through extractors
    - Deterministic: identical inputs always produce identical rankings
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import dt_parse_event_date
from ..utils.math_utils import round_metric

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from ..type_defs import GroupKey, ScanEventData
    from .calendar_engine import DateRange

    KeyFn = Callable[[ScanEventData], GroupKey | None]
    MetricsFn = Callable[[ScanEventData], Mapping[str, int | float]]
    ScoreFn = Callable[[Mapping[str, int | float]], int | float]
    DisplayNameFn = Callable[[GroupKey], str]
    TieBreakTerm = str | tuple[str, bool]


@dataclass(frozen=True, slots=True)
class RankedEntry:
    """One row of a ranked report.

    Attributes:
        key: Grouping identity returned by the key extractor
        display_name: Human-readable label for the key
        metrics: Read-only accumulated counters
        score: Derived ranking score
        rank: 1-based position after sorting
        event_count: Number of events folded into this group
    """

    key: Any
    display_name: str
    metrics: Mapping[str, int | float]
    score: int | float
    rank: int
    event_count: int

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict (tuple keys become lists)."""
        key = list(self.key) if isinstance(self.key, tuple) else self.key
        return {
            "rank": self.rank,
            "key": key,
            "display_name": self.display_name,
            "score": self.score,
            "metrics": dict(self.metrics),
            "event_count": self.event_count,
        }


class AggregationEngine:
    """Generic filter → group → score → rank pipeline.

    All methods are static; the engine holds no state between calls.

    Example:
        entries = AggregationEngine.aggregate(
            events,
            resolve_range(PeriodSelector("month", "2024-04")),
            key_of=lambda e: e.get("client_id"),
            metrics_of=lambda e: {"total_missing": 1},
            score_of=lambda m: m["total_missing"],
        )
    """

    # ────────────────────────────────────────────────────────────────
    # Filtering
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def filter_events(
        events: Iterable[ScanEventData], date_range: DateRange
    ) -> list[ScanEventData]:
        """Return the events whose date lies within `date_range` (inclusive).

        Events without a parseable `date_added` are dropped with a debug log.
        Input order is preserved.
        """
        kept: list[ScanEventData] = []
        for event in events:
            occurred_on = dt_parse_event_date(event.get(const.DATA_EVENT_DATE_ADDED))
            if occurred_on is None:
                const.LOGGER.debug(
                    "Skipping event %s: unparseable date %r",
                    event.get(const.DATA_EVENT_ID),
                    event.get(const.DATA_EVENT_DATE_ADDED),
                )
                continue
            if date_range.contains(occurred_on):
                kept.append(event)
        return kept

    # ────────────────────────────────────────────────────────────────
    # Aggregation
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def aggregate(
        events: Iterable[ScanEventData],
        date_range: DateRange,
        key_of: KeyFn,
        metrics_of: MetricsFn,
        score_of: ScoreFn,
        tie_break: Sequence[TieBreakTerm] = (),
        display_name_of: DisplayNameFn | None = None,
    ) -> list[RankedEntry]:
        """Filter, group, score and rank events.

        Args:
            events: Raw scan events (read-only)
            date_range: Inclusive range events must fall in
            key_of: Maps an event to its group key; None excludes the event
            metrics_of: Maps an event to counter increments for its group
            score_of: Maps a group's final counters to its score
            tie_break: Comparator chain applied when scores are equal. Each
                term is a metric name (compared descending) or a
                (metric, descending) pair.
            display_name_of: Maps a key to a label; defaults to str(key)

        Returns:
            Ranked entries, best (highest score) first. Empty when no event
            passes the filter.
        """
        groups: dict[Any, dict[str, int | float]] = {}
        counts: dict[Any, int] = {}

        for event in AggregationEngine.filter_events(events, date_range):
            key = key_of(event)
            if key is None:
                continue
            if key not in groups:
                const.LOGGER.debug("Aggregation: new group %r", key)
                groups[key] = {}
                counts[key] = 0
            AggregationEngine._apply_increments(groups[key], metrics_of(event))
            counts[key] += 1

        # Scores are computed from final counters only
        scored = [(key, metrics, score_of(metrics)) for key, metrics in groups.items()]

        terms = AggregationEngine._tie_break_terms(tie_break)

        # Stable sort keeps first-seen order for full ties
        scored.sort(
            key=lambda item: (
                -item[2],
                *(
                    -item[1].get(metric, 0) if descending else item[1].get(metric, 0)
                    for metric, descending in terms
                ),
            )
        )

        name_of = display_name_of or str
        return [
            RankedEntry(
                key=key,
                display_name=name_of(key),
                metrics=MappingProxyType(dict(metrics)),
                score=score,
                rank=position,
                event_count=counts[key],
            )
            for position, (key, metrics, score) in enumerate(scored, start=1)
        ]

    @staticmethod
    def top_n(entries: Sequence[RankedEntry], n: int) -> list[RankedEntry]:
        """Return the first `n` entries; `n <= 0` returns all of them."""
        if n <= 0:
            return list(entries)
        return list(entries[:n])

    @staticmethod
    def _tie_break_terms(tie_break: Sequence[TieBreakTerm]) -> list[tuple[str, bool]]:
        """Normalize tie-break terms to (metric, descending) pairs."""
        terms: list[tuple[str, bool]] = []
        for term in tie_break:
            if isinstance(term, str):
                terms.append((term, True))
            else:
                metric, descending = term
                terms.append((metric, bool(descending)))
        return terms

    @staticmethod
    def _apply_increments(
        bucket: dict[str, int | float], increments: Mapping[str, int | float]
    ) -> None:
        """Add increments into a group's counters (mutates bucket)."""
        for metric, value in increments.items():
            current = bucket.get(metric, 0)
            if isinstance(value, float):
                bucket[metric] = round_metric(current + value)
            else:
                bucket[metric] = current + value


# =============================================================================
# Convenience Functions
# =============================================================================


def filter_events(
    events: Iterable[ScanEventData], date_range: DateRange
) -> list[ScanEventData]:
    """Module-level shortcut for AggregationEngine.filter_events."""
    return AggregationEngine.filter_events(events, date_range)


def aggregate(
    events: Iterable[ScanEventData],
    date_range: DateRange,
    key_of: KeyFn,
    metrics_of: MetricsFn,
    score_of: ScoreFn,
    tie_break: Sequence[TieBreakTerm] = (),
    display_name_of: DisplayNameFn | None = None,
) -> list[RankedEntry]:
    """Module-level shortcut for AggregationEngine.aggregate."""
    return AggregationEngine.aggregate(
        events,
        date_range,
        key_of,
        metrics_of,
        score_of,
        tie_break=tie_break,
        display_name_of=display_name_of,
    )


def top_n(entries: Sequence[RankedEntry], n: int) -> list[RankedEntry]:
    """Module-level shortcut for AggregationEngine.top_n."""
    return AggregationEngine.top_n(entries, n)
