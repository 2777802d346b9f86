"""Tests for email trigger validation, scheduling and dispatch helpers."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

import pytest
import voluptuous as vol

from depot_reports import const
from depot_reports.helpers.trigger_helpers import (
    build_trigger_data,
    describe_next_send,
    filter_events_for_trigger,
    is_trigger_due,
    parse_recipients,
    prepare_trigger_dispatch,
    recurrence_spec_from_trigger,
    selector_for_trigger,
    validate_trigger_inputs,
)

if TYPE_CHECKING:
    from depot_reports.type_defs import EmailTriggerData


def trigger_input(**overrides: Any) -> dict[str, Any]:
    """Valid monthly trigger input with overrides applied."""
    data: dict[str, Any] = {
        const.DATA_TRIGGER_NAME: "Month end league",
        const.DATA_TRIGGER_REPORT_TYPE: const.REPORT_CLIENT_MISSING_LEAGUE,
        const.DATA_TRIGGER_FREQUENCY: const.FREQUENCY_MONTHLY,
        const.DATA_TRIGGER_DAY_OF_MONTH: const.DAY_OF_MONTH_LAST,
        const.DATA_TRIGGER_SEND_TIME: "09:00",
        const.DATA_TRIGGER_RECIPIENTS: "ops@depot.example",
    }
    data.update(overrides)
    return data


# =============================================================================
# Validation
# =============================================================================


class TestValidateTriggerInputs:
    """Field-by-field error mapping."""

    def test_valid_inputs(self, weekly_trigger: EmailTriggerData) -> None:
        """A complete trigger has no errors."""
        assert validate_trigger_inputs(dict(weekly_trigger)) == {}
        assert validate_trigger_inputs(trigger_input()) == {}

    @pytest.mark.parametrize(
        ("overrides", "field", "error"),
        [
            ({"name": "  "}, "name", const.ERROR_NAME_REQUIRED),
            ({"report_type": "best_courier"}, "report_type", const.ERROR_REPORT_TYPE_INVALID),
            ({"frequency": "yearly"}, "frequency", const.ERROR_FREQUENCY_INVALID),
            ({"day_of_month": None}, "day_of_month", const.ERROR_DAY_OF_MONTH_REQUIRED),
            ({"day_of_month": 32}, "day_of_month", const.ERROR_DAY_OF_MONTH_INVALID),
            ({"day_of_month": "first"}, "day_of_month", const.ERROR_DAY_OF_MONTH_INVALID),
            ({"day_of_week": 2}, "day_of_week", const.ERROR_DAY_OF_WEEK_NOT_ALLOWED),
            ({"send_time": "9am"}, "send_time", const.ERROR_SEND_TIME_INVALID),
            ({"send_time": "24:00"}, "send_time", const.ERROR_SEND_TIME_INVALID),
            ({"recipients": ""}, "recipients", const.ERROR_RECIPIENTS_REQUIRED),
            ({"recipients": " , "}, "recipients", const.ERROR_RECIPIENTS_REQUIRED),
            ({"recipients": []}, "recipients", const.ERROR_RECIPIENTS_REQUIRED),
        ],
    )
    def test_single_field_errors(
        self, overrides: dict[str, Any], field: str, error: str
    ) -> None:
        """Each invalid field maps to its error key."""
        assert validate_trigger_inputs(trigger_input(**overrides)) == {field: error}

    def test_weekly_day_rules(self) -> None:
        """Weekly needs a valid day_of_week and forbids day_of_month."""
        missing = trigger_input(frequency=const.FREQUENCY_WEEKLY, day_of_month=None)
        out_of_range = trigger_input(
            frequency=const.FREQUENCY_WEEKLY, day_of_month=None, day_of_week=7
        )
        both = trigger_input(frequency=const.FREQUENCY_WEEKLY, day_of_week=3)

        assert validate_trigger_inputs(missing) == {
            "day_of_week": const.ERROR_DAY_OF_WEEK_REQUIRED
        }
        assert validate_trigger_inputs(out_of_range) == {
            "day_of_week": const.ERROR_DAY_OF_WEEK_INVALID
        }
        assert validate_trigger_inputs(both) == {
            "day_of_month": const.ERROR_DAY_OF_MONTH_NOT_ALLOWED
        }

    def test_all_errors_reported_together(self) -> None:
        """An empty form reports every required field at once."""
        errors = validate_trigger_inputs({})

        assert set(errors) == {
            "name",
            "report_type",
            "frequency",
            "send_time",
            "recipients",
        }

    def test_schema_fallback(self) -> None:
        """Type problems the field checks miss map to base."""
        errors = validate_trigger_inputs(trigger_input(enabled="yes"))

        assert errors == {const.ERROR_FIELD_BASE: const.ERROR_INVALID_INPUT}


class TestBuildTriggerData:
    """Schema normalization."""

    def test_normalizes(self) -> None:
        """Strings are stripped, recipients split and defaults filled."""
        data = build_trigger_data(
            trigger_input(
                name="  Month end league ",
                day_of_month="15",
                recipients="a@depot.example, b@depot.example,",
            )
        )

        assert data["name"] == "Month end league"
        assert data["day_of_month"] == 15
        assert data["recipients"] == ["a@depot.example", "b@depot.example"]
        assert data["enabled"] is True
        assert data["sub_depot_id_filter"] == const.SUB_DEPOT_FILTER_ALL

    def test_sub_depot_coerced(self) -> None:
        """A numeric sub-depot filter string becomes an int."""
        data = build_trigger_data(trigger_input(sub_depot_id_filter="3"))

        assert data["sub_depot_id_filter"] == 3

    def test_last_day_kept(self) -> None:
        """The literal last is a valid day_of_month."""
        assert build_trigger_data(trigger_input())["day_of_month"] == "last"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"frequency": const.FREQUENCY_WEEKLY, "day_of_month": None},
            {"frequency": const.FREQUENCY_DAILY},
            {"send_time": "8:00"},
            {"recipients": []},
            {"last_sent_at": "not a time"},
        ],
    )
    def test_invalid_raises(self, overrides: dict[str, Any]) -> None:
        """Invalid input raises vol.Invalid."""
        with pytest.raises(vol.Invalid):
            build_trigger_data(trigger_input(**overrides))

    def test_input_not_mutated(self) -> None:
        """The caller's dict is left as given."""
        raw = trigger_input(recipients="a@depot.example")

        build_trigger_data(raw)

        assert raw["recipients"] == "a@depot.example"


def test_parse_recipients() -> None:
    """Lists and comma strings both work; blanks are dropped."""
    assert parse_recipients(["a@x.example", " ", "b@x.example "]) == [
        "a@x.example",
        "b@x.example",
    ]
    assert parse_recipients("a@x.example,,b@x.example") == ["a@x.example", "b@x.example"]
    with pytest.raises(vol.Invalid):
        parse_recipients(None)


# =============================================================================
# Scheduling
# =============================================================================


class TestScheduling:
    """Next-send estimates and due checks."""

    def test_recurrence_spec(self, weekly_trigger: EmailTriggerData) -> None:
        """Only the fields for the trigger's frequency are carried over."""
        spec = recurrence_spec_from_trigger(weekly_trigger)

        assert spec == {
            "frequency": const.FREQUENCY_WEEKLY,
            "send_time": "08:00",
            "enabled": True,
            "day_of_week": 3,
        }

    def test_describe_next_send(self, weekly_trigger: EmailTriggerData) -> None:
        """Tuesday noon → Wednesday 08:00."""
        now = datetime(2024, 4, 16, 12, 0)

        assert describe_next_send(weekly_trigger, now) == "Wed 17 Apr, 08:00"

    def test_describe_disabled(self, weekly_trigger: EmailTriggerData) -> None:
        """Disabled triggers show "Disabled"."""
        weekly_trigger["enabled"] = False

        assert describe_next_send(weekly_trigger, datetime(2024, 4, 16)) == "Disabled"

    @pytest.mark.parametrize(
        ("now", "due"),
        [
            (datetime(2024, 4, 17, 7, 59), False),
            (datetime(2024, 4, 17, 8, 0), True),
            (datetime(2024, 4, 17, 8, 30), True),
            (datetime(2024, 4, 16, 12, 0), False),
        ],
    )
    def test_never_sent(
        self, weekly_trigger: EmailTriggerData, now: datetime, due: bool
    ) -> None:
        """A never-sent trigger is due once today's slot has passed."""
        assert is_trigger_due(weekly_trigger, now) is due

    @pytest.mark.parametrize(
        ("now", "due"),
        [
            (datetime(2024, 4, 17, 9, 0), False),
            (datetime(2024, 4, 23, 23, 0), False),
            (datetime(2024, 4, 24, 8, 0), True),
            (datetime(2024, 5, 2, 10, 0), True),
        ],
    )
    def test_after_last_sent(
        self, weekly_trigger: EmailTriggerData, now: datetime, due: bool
    ) -> None:
        """Due when a slot lies between last_sent_at and now."""
        weekly_trigger["last_sent_at"] = "2024-04-17T08:00:05"

        assert is_trigger_due(weekly_trigger, now) is due

    def test_last_sent_with_utc_offset(self) -> None:
        """An offset-bearing last_sent_at is compared on the local clock."""
        trigger = build_trigger_data(
            trigger_input(
                frequency=const.FREQUENCY_DAILY,
                day_of_month=None,
                send_time="08:00",
                last_sent_at="2024-04-17T08:00:05+01:00",
            )
        )

        # Any local zone puts the last send before 18 Apr 08:00
        assert is_trigger_due(trigger, datetime(2024, 4, 18, 9, 0)) is True

    def test_disabled_never_due(self, weekly_trigger: EmailTriggerData) -> None:
        """Disabled triggers are never due."""
        weekly_trigger["enabled"] = False

        assert is_trigger_due(weekly_trigger, datetime(2024, 4, 17, 8, 30)) is False


class TestSelectorForTrigger:
    """Period a trigger reports on."""

    def test_weekly(self, weekly_trigger: EmailTriggerData) -> None:
        """Weekly triggers report on the current ISO week."""
        selector = selector_for_trigger(weekly_trigger, datetime(2024, 4, 17, 8, 0))

        assert (selector.period_type, selector.value) == (const.PERIOD_WEEK, "2024-W16")

    def test_daily(self, weekly_trigger: EmailTriggerData) -> None:
        """Daily triggers report on today."""
        weekly_trigger["frequency"] = const.FREQUENCY_DAILY

        selector = selector_for_trigger(weekly_trigger, datetime(2024, 4, 17, 8, 0))

        assert (selector.period_type, selector.value) == (const.PERIOD_DAY, date(2024, 4, 17))

    def test_monthly(self) -> None:
        """Monthly triggers report on the current month."""
        trigger = build_trigger_data(trigger_input())

        selector = selector_for_trigger(trigger, datetime(2024, 4, 30, 9, 0))

        assert (selector.period_type, selector.value) == (const.PERIOD_MONTH, "2024-04")

    def test_weekly_summary_always_week(self) -> None:
        """The weekly missing summary uses the week even on a monthly trigger."""
        trigger = build_trigger_data(
            trigger_input(report_type=const.REPORT_WEEKLY_MISSING_SUMMARY)
        )

        selector = selector_for_trigger(trigger, datetime(2024, 4, 30, 9, 0))

        assert (selector.period_type, selector.value) == (const.PERIOD_WEEK, "2024-W18")


# =============================================================================
# Dispatch
# =============================================================================


class TestDispatch:
    """Report generation for a firing trigger."""

    def test_sub_depot_filter(
        self, weekly_trigger: EmailTriggerData, sample_events: list
    ) -> None:
        """A numeric filter keeps only that sub-depot's events."""
        weekly_trigger["sub_depot_id_filter"] = 4

        kept = filter_events_for_trigger(weekly_trigger, sample_events)

        assert [event["id"] for event in kept] == ["e4"]

    @pytest.mark.parametrize("value", [const.SUB_DEPOT_FILTER_ALL, None])
    def test_no_filter(
        self, weekly_trigger: EmailTriggerData, sample_events: list, value: Any
    ) -> None:
        """The all filter or None keeps every event."""
        weekly_trigger["sub_depot_id_filter"] = value

        assert len(filter_events_for_trigger(weekly_trigger, sample_events)) == 7

    def test_monthly_dispatch(self, sample_events: list, sample_lookups: dict) -> None:
        """Month-end league goes to the recipients with the April subject."""
        trigger = build_trigger_data(
            trigger_input(recipients="ops@depot.example, hub@depot.example")
        )

        dispatch = prepare_trigger_dispatch(
            trigger, sample_events, datetime(2024, 4, 30, 9, 0), lookups=sample_lookups
        )

        assert dispatch is not None
        assert dispatch["recipients"] == ["ops@depot.example", "hub@depot.example"]
        assert dispatch["subject"] == "Client Missing League: 2024-04-01 to 2024-04-30"
        assert dispatch["body"].startswith(dispatch["subject"])
        assert "Acme Retail: total_missing=3" in dispatch["body"]

    def test_filtered_weekly_dispatch(
        self, weekly_trigger: EmailTriggerData, sample_events: list, sample_lookups: dict
    ) -> None:
        """Only sub-depot 4 events feed the report."""
        weekly_trigger["sub_depot_id_filter"] = 4

        dispatch = prepare_trigger_dispatch(
            weekly_trigger,
            sample_events,
            datetime(2024, 4, 17, 8, 0),
            lookups=sample_lookups,
        )

        assert dispatch is not None
        assert "Bob: Score: 6, Unrecovered: 1, Carry Fwds: 1" in dispatch["body"]
        assert "Alice" not in dispatch["body"]

    def test_nothing_to_send(self, sample_events: list) -> None:
        """An empty period gives None."""
        trigger = build_trigger_data(trigger_input())

        assert (
            prepare_trigger_dispatch(trigger, sample_events, datetime(2023, 4, 30, 9, 0))
            is None
        )
