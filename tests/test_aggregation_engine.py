"""Tests for AggregationEngine.

Tests cover:
- Inclusive period filtering on day-first event dates
- Tolerance of missing/unparseable dates
- Grouping, conservation of event counts, float rounding
- Scoring after folding, descending sort, tie-break chain
- Positional ranks (ties never share a rank)
- Read-only results and untouched inputs
"""

from __future__ import annotations

import copy
from datetime import date
from typing import TYPE_CHECKING, Any

import pytest

from depot_reports import const
from depot_reports.engines.aggregation_engine import (
    AggregationEngine,
    RankedEntry,
    aggregate,
    filter_events,
    top_n,
)
from depot_reports.engines.calendar_engine import DateRange

from tests.helpers import make_event

if TYPE_CHECKING:
    from depot_reports.type_defs import ScanEventData


def by_client(event: ScanEventData) -> Any:
    """Group by client id."""
    return event.get(const.DATA_EVENT_CLIENT_ID)


def one_count(event: ScanEventData) -> dict[str, int]:
    """Count each event once."""
    return {const.METRIC_COUNT: 1}


def count_score(metrics: Any) -> int:
    """Score by count."""
    return metrics.get(const.METRIC_COUNT, 0)


class TestFilterEvents:
    """Tests for the period filter."""

    def test_month_scenario(self, april_2024: DateRange) -> None:
        """April includes 10/04 and 15/04 and excludes 02/05."""
        events = [
            make_event("a", "10/04/2024"),
            make_event("b", "15/04/2024"),
            make_event("c", "02/05/2024"),
        ]

        kept = filter_events(events, april_2024)

        assert [event["id"] for event in kept] == ["a", "b"]

    def test_bounds_inclusive(self, april_2024: DateRange) -> None:
        """First and last day of the range are included."""
        events = [
            make_event("before", "31/03/2024"),
            make_event("first", "01/04/2024"),
            make_event("last", "30/04/2024"),
            make_event("after", "01/05/2024"),
        ]

        kept = AggregationEngine.filter_events(events, april_2024)

        assert [event["id"] for event in kept] == ["first", "last"]

    def test_day_first_parsing(self, april_2024: DateRange) -> None:
        """04/10/2024 is 4 October, not 10 April."""
        assert filter_events([make_event("x", "04/10/2024")], april_2024) == []

    def test_single_digit_day_and_month(self, april_2024: DateRange) -> None:
        """5/4/2024 parses as 5 April."""
        assert len(filter_events([make_event("x", "5/4/2024")], april_2024)) == 1

    def test_date_objects_accepted(self, april_2024: DateRange) -> None:
        """Events already carrying a date are filtered the same way."""
        assert len(filter_events([make_event("x", date(2024, 4, 9))], april_2024)) == 1

    @pytest.mark.parametrize(
        "bad_date", [None, "", "2024-04-10", "31/02/2024", "garbage", "10/04/24", 20240410]
    )
    def test_unparseable_dates_skipped(
        self, april_2024: DateRange, bad_date: Any
    ) -> None:
        """Bad dates drop only that event; the batch continues."""
        events = [make_event("bad", bad_date), make_event("good", "10/04/2024")]

        kept = filter_events(events, april_2024)

        assert [event["id"] for event in kept] == ["good"]

    def test_missing_date_key_skipped(self, april_2024: DateRange) -> None:
        """An event without date_added is skipped."""
        event = make_event("nodate", None)
        del event["date_added"]

        assert filter_events([event], april_2024) == []


class TestAggregate:
    """Tests for grouping, scoring and ranking."""

    def test_empty_when_nothing_in_range(self, sample_events: list) -> None:
        """No event in range gives an empty sequence, not an error."""
        january = DateRange(date(2024, 1, 1), date(2024, 1, 31))

        assert aggregate(sample_events, january, by_client, one_count, count_score) == []

    def test_groups_and_ranks(self, sample_events: list, april_2024: DateRange) -> None:
        """Client 1 has three April events, client 2 has two."""
        entries = aggregate(sample_events, april_2024, by_client, one_count, count_score)

        assert [(e.key, e.score, e.rank) for e in entries] == [(1, 3, 1), (2, 2, 2)]

    def test_conservation(self, sample_events: list, april_2024: DateRange) -> None:
        """Summed group counts equal the number of filtered events."""
        entries = aggregate(sample_events, april_2024, by_client, one_count, count_score)
        filtered = filter_events(sample_events, april_2024)

        assert sum(e.metrics[const.METRIC_COUNT] for e in entries) == len(filtered)
        assert sum(e.event_count for e in entries) == len(filtered)

    def test_ranks_unique_under_ties(self, april_2024: DateRange) -> None:
        """Equal scores still get distinct consecutive ranks, first seen first."""
        events = [
            make_event("1", "01/04/2024", client_id="c"),
            make_event("2", "02/04/2024", client_id="a"),
            make_event("3", "03/04/2024", client_id="b"),
        ]

        entries = aggregate(events, april_2024, by_client, one_count, count_score)

        assert [e.rank for e in entries] == [1, 2, 3]
        assert [e.key for e in entries] == ["c", "a", "b"]

    def test_tie_break_chain(self, april_2024: DateRange) -> None:
        """Equal scores are ordered by the tie-break metrics, descending."""

        def metrics_of(event: ScanEventData) -> dict[str, int]:
            return {"primary": event["p"], "secondary": event["s"]}  # type: ignore[typeddict-item]

        events = [
            make_event("1", "01/04/2024", client_id="low", p=1, s=0),
            make_event("2", "01/04/2024", client_id="mid", p=1, s=1),
            make_event("3", "01/04/2024", client_id="high", p=2, s=0),
        ]

        entries = aggregate(
            events,
            april_2024,
            by_client,
            metrics_of,
            score_of=lambda metrics: 5,
            tie_break=("primary", "secondary"),
        )

        assert [e.key for e in entries] == ["high", "mid", "low"]

    def test_tie_break_direction(self, april_2024: DateRange) -> None:
        """A (metric, False) term compares that metric ascending."""

        def metrics_of(event: ScanEventData) -> dict[str, int]:
            return {"primary": event["p"], "secondary": event["s"]}  # type: ignore[typeddict-item]

        events = [
            make_event("1", "01/04/2024", client_id="low", p=1, s=0),
            make_event("2", "01/04/2024", client_id="mid", p=1, s=1),
            make_event("3", "01/04/2024", client_id="high", p=2, s=0),
        ]

        entries = aggregate(
            events,
            april_2024,
            by_client,
            metrics_of,
            score_of=lambda metrics: 5,
            tie_break=(("primary", False), "secondary"),
        )

        assert [e.key for e in entries] == ["mid", "low", "high"]
        assert [e.rank for e in entries] == [1, 2, 3]

    def test_score_applied_after_folding(self, april_2024: DateRange) -> None:
        """Score is a function of final counters, computed once per group."""
        calls: list[int] = []

        def squared(metrics: Any) -> int:
            calls.append(1)
            return metrics[const.METRIC_COUNT] ** 2

        events = [make_event(str(n), "01/04/2024", client_id=1) for n in range(3)]

        entries = aggregate(events, april_2024, by_client, one_count, squared)

        assert entries[0].score == 9
        assert len(calls) == 1

    def test_none_key_excludes_event(self, april_2024: DateRange) -> None:
        """Events whose key is None are not grouped."""
        events = [
            make_event("1", "01/04/2024", client_id=1),
            make_event("2", "01/04/2024", client_id=None),
        ]

        entries = aggregate(events, april_2024, by_client, one_count, count_score)

        assert [e.key for e in entries] == [1]

    def test_float_increments_rounded(self, april_2024: DateRange) -> None:
        """Float counters are rounded to two decimals as they accumulate."""
        events = [make_event(str(n), "01/04/2024", client_id=1) for n in range(3)]

        entries = aggregate(
            events,
            april_2024,
            by_client,
            metrics_of=lambda event: {"weight": 0.1},
            score_of=lambda metrics: metrics["weight"],
        )

        assert entries[0].metrics["weight"] == 0.3

    def test_composite_keys(self, sample_events: list, april_2024: DateRange) -> None:
        """Tuple keys group by several fields at once."""
        entries = aggregate(
            sample_events,
            april_2024,
            key_of=lambda e: (e.get("round_id"), e.get("sub_depot_id")),
            metrics_of=one_count,
            score_of=count_score,
        )

        assert {e.key: e.score for e in entries} == {
            ("R1", 3): 2,
            ("R2", 3): 2,
            ("R1", 4): 1,
        }

    def test_display_name(self, sample_events: list, april_2024: DateRange) -> None:
        """Display names default to str(key) and can be overridden."""
        default = aggregate(sample_events, april_2024, by_client, one_count, count_score)
        named = aggregate(
            sample_events,
            april_2024,
            by_client,
            one_count,
            count_score,
            display_name_of=lambda key: f"Client #{key}",
        )

        assert default[0].display_name == "1"
        assert named[0].display_name == "Client #1"

    def test_deterministic(self, sample_events: list, april_2024: DateRange) -> None:
        """Identical inputs give identical output."""
        first = aggregate(sample_events, april_2024, by_client, one_count, count_score)
        second = aggregate(sample_events, april_2024, by_client, one_count, count_score)

        assert first == second

    def test_events_not_mutated(self, sample_events: list, april_2024: DateRange) -> None:
        """The engine never writes to its input."""
        before = copy.deepcopy(sample_events)

        aggregate(sample_events, april_2024, by_client, one_count, count_score)

        assert sample_events == before

    def test_metrics_read_only(self, sample_events: list, april_2024: DateRange) -> None:
        """Returned metrics cannot be modified."""
        entry = aggregate(sample_events, april_2024, by_client, one_count, count_score)[0]

        with pytest.raises(TypeError):
            entry.metrics[const.METRIC_COUNT] = 99  # type: ignore[index]

    def test_accepts_generator(self, sample_events: list, april_2024: DateRange) -> None:
        """Any iterable of events is accepted."""
        entries = aggregate(
            (event for event in sample_events),
            april_2024,
            by_client,
            one_count,
            count_score,
        )

        assert len(entries) == 2


class TestTopN:
    """Tests for display truncation."""

    @pytest.fixture
    def entries(self) -> list[RankedEntry]:
        """Three ranked entries."""
        return [
            RankedEntry(key=k, display_name=k, metrics={}, score=3 - i, rank=i + 1, event_count=1)
            for i, k in enumerate("abc")
        ]

    def test_truncates(self, entries: list[RankedEntry]) -> None:
        """n keeps the first n entries."""
        assert [e.key for e in top_n(entries, 2)] == ["a", "b"]

    @pytest.mark.parametrize("n", [0, -1, 10])
    def test_non_positive_or_large_keeps_all(
        self, entries: list[RankedEntry], n: int
    ) -> None:
        """n <= 0 or n beyond the length keeps everything."""
        assert len(AggregationEngine.top_n(entries, n)) == 3

    def test_as_dict_tuple_key(self) -> None:
        """Tuple keys serialize as lists."""
        entry = RankedEntry(
            key=("R1", 3),
            display_name="Round R1 (East)",
            metrics={"total_missing": 2},
            score=2,
            rank=1,
            event_count=2,
        )

        assert entry.as_dict()["key"] == ["R1", 3]
        assert entry.as_dict()["metrics"] == {"total_missing": 2}
