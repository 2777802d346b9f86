# File: helpers/trigger_helpers.py
"""Email trigger helpers for depot-reports.

Two layers, mirroring how triggers are handled at save time and send time:

Layer 1 - Validation (save time):
    TRIGGER_SCHEMA normalizes a trigger dict and raises vol.Invalid.
    validate_trigger_inputs() returns a field -> error-key mapping instead,
    for callers that want to show every problem at once.

Layer 2 - Scheduling / dispatch (send time):
    describe_next_send(), is_trigger_due(), selector_for_trigger() and
    prepare_trigger_dispatch() turn a stored trigger into a report and an
    EmailDispatch envelope. Nothing here sends mail or records "last sent";
    that bookkeeping stays with the caller.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from dateutil.relativedelta import relativedelta
import voluptuous as vol

from .. import const
from ..engines.period_engine import PeriodSelector
from ..engines.schedule_engine import RecurrenceCalculator
from ..utils.dt_utils import (
    dt_align_to,
    dt_format_short,
    dt_parse_instant,
    dt_parse_send_time,
)
from .report_helpers import ReportAssembler, format_report_text

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..type_defs import (
        EmailDispatch,
        EmailTriggerData,
        Lookups,
        RecurrenceSpec,
        ScanEventData,
    )
    from .report_helpers import Report


# Period each frequency reports on at send time
FREQUENCY_TO_PERIOD: dict[str, str] = {
    const.FREQUENCY_DAILY: const.PERIOD_DAY,
    const.FREQUENCY_WEEKLY: const.PERIOD_WEEK,
    const.FREQUENCY_MONTHLY: const.PERIOD_MONTH,
}


# =============================================================================
# INPUT VALIDATION HELPERS
# =============================================================================


def validate_send_time(value: Any) -> str:
    """Validate a 24-hour "HH:MM" send time.

    Raises:
        vol.Invalid: If the value is not HH:MM within 00:00-23:59.
    """
    if not isinstance(value, str):
        raise vol.Invalid(f"Send time must be a string, got {value!r}")
    try:
        dt_parse_send_time(value)
    except ValueError as err:
        raise vol.Invalid(str(err)) from err
    return value.strip()


def validate_instant(value: Any) -> str:
    """Validate an ISO datetime string."""
    if dt_parse_instant(value) is None:
        raise vol.Invalid(f"Invalid ISO datetime: {value!r}")
    return value


def parse_recipients(value: Any) -> list[str]:
    """Accept a list or a comma-separated string of addresses.

    Blank entries are dropped; surrounding whitespace is stripped.
    """
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        raise vol.Invalid("Recipients must be a list or comma-separated string")
    return [str(item).strip() for item in value if str(item).strip()]


def _check_day_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Enforce day_of_week iff weekly and day_of_month iff monthly."""
    frequency = data[const.DATA_TRIGGER_FREQUENCY]
    day_of_week = data.get(const.DATA_TRIGGER_DAY_OF_WEEK)
    day_of_month = data.get(const.DATA_TRIGGER_DAY_OF_MONTH)

    if frequency == const.FREQUENCY_WEEKLY and day_of_week is None:
        raise vol.Invalid(
            "day_of_week is required for weekly triggers",
            path=[const.DATA_TRIGGER_DAY_OF_WEEK],
        )
    if frequency != const.FREQUENCY_WEEKLY and day_of_week is not None:
        raise vol.Invalid(
            "day_of_week is only allowed for weekly triggers",
            path=[const.DATA_TRIGGER_DAY_OF_WEEK],
        )
    if frequency == const.FREQUENCY_MONTHLY and day_of_month is None:
        raise vol.Invalid(
            "day_of_month is required for monthly triggers",
            path=[const.DATA_TRIGGER_DAY_OF_MONTH],
        )
    if frequency != const.FREQUENCY_MONTHLY and day_of_month is not None:
        raise vol.Invalid(
            "day_of_month is only allowed for monthly triggers",
            path=[const.DATA_TRIGGER_DAY_OF_MONTH],
        )
    return data


_DAY_OF_WEEK = vol.All(
    vol.Coerce(int), vol.Range(min=const.MIN_DAY_OF_WEEK, max=const.MAX_DAY_OF_WEEK)
)
_DAY_OF_MONTH = vol.Any(
    const.DAY_OF_MONTH_LAST,
    vol.All(
        vol.Coerce(int),
        vol.Range(min=const.MIN_DAY_OF_MONTH, max=const.MAX_DAY_OF_MONTH),
    ),
)

TRIGGER_SCHEMA = vol.All(
    vol.Schema(
        {
            vol.Required(const.DATA_TRIGGER_NAME): vol.All(
                str, vol.Strip, vol.Length(min=1)
            ),
            vol.Required(const.DATA_TRIGGER_REPORT_TYPE): vol.In(const.REPORT_TYPES),
            vol.Required(const.DATA_TRIGGER_FREQUENCY): vol.In(
                const.FREQUENCY_OPTIONS
            ),
            vol.Optional(const.DATA_TRIGGER_DAY_OF_WEEK): vol.Any(None, _DAY_OF_WEEK),
            vol.Optional(const.DATA_TRIGGER_DAY_OF_MONTH): vol.Any(
                None, _DAY_OF_MONTH
            ),
            vol.Required(const.DATA_TRIGGER_SEND_TIME): validate_send_time,
            vol.Required(const.DATA_TRIGGER_RECIPIENTS): vol.All(
                parse_recipients, vol.Length(min=1)
            ),
            vol.Optional(const.DATA_TRIGGER_ENABLED, default=True): bool,
            vol.Optional(
                const.DATA_TRIGGER_SUB_DEPOT_FILTER, default=const.SUB_DEPOT_FILTER_ALL
            ): vol.Any(None, const.SUB_DEPOT_FILTER_ALL, vol.Coerce(int)),
            vol.Optional(const.DATA_TRIGGER_LAST_SENT_AT): vol.Any(
                None, validate_instant
            ),
        },
        extra=vol.ALLOW_EXTRA,
    ),
    _check_day_fields,
)


def build_trigger_data(user_input: dict[str, Any]) -> EmailTriggerData:
    """Validate and normalize raw trigger input into EmailTriggerData.

    Raises:
        vol.Invalid: If any field is invalid.
    """
    return TRIGGER_SCHEMA(dict(user_input))


def validate_trigger_inputs(user_input: dict[str, Any]) -> dict[str, str]:
    """Validate email trigger inputs.

    Args:
        user_input: Raw trigger fields (DATA_TRIGGER_* keys).

    Returns:
        Dictionary of errors (empty if validation passes).
        Key is the offending field (or "base"), value is an ERROR_* key.
    """
    errors: dict[str, str] = {}

    name = user_input.get(const.DATA_TRIGGER_NAME)
    if not isinstance(name, str) or not name.strip():
        errors[const.DATA_TRIGGER_NAME] = const.ERROR_NAME_REQUIRED

    if user_input.get(const.DATA_TRIGGER_REPORT_TYPE) not in const.REPORT_TYPES:
        errors[const.DATA_TRIGGER_REPORT_TYPE] = const.ERROR_REPORT_TYPE_INVALID

    frequency = user_input.get(const.DATA_TRIGGER_FREQUENCY)
    if frequency not in const.FREQUENCY_OPTIONS:
        errors[const.DATA_TRIGGER_FREQUENCY] = const.ERROR_FREQUENCY_INVALID

    day_of_week = user_input.get(const.DATA_TRIGGER_DAY_OF_WEEK)
    if frequency == const.FREQUENCY_WEEKLY:
        if day_of_week is None:
            errors[const.DATA_TRIGGER_DAY_OF_WEEK] = const.ERROR_DAY_OF_WEEK_REQUIRED
        else:
            try:
                _DAY_OF_WEEK(day_of_week)
            except vol.Invalid:
                errors[const.DATA_TRIGGER_DAY_OF_WEEK] = const.ERROR_DAY_OF_WEEK_INVALID
    elif day_of_week is not None:
        errors[const.DATA_TRIGGER_DAY_OF_WEEK] = const.ERROR_DAY_OF_WEEK_NOT_ALLOWED

    day_of_month = user_input.get(const.DATA_TRIGGER_DAY_OF_MONTH)
    if frequency == const.FREQUENCY_MONTHLY:
        if day_of_month is None:
            errors[const.DATA_TRIGGER_DAY_OF_MONTH] = const.ERROR_DAY_OF_MONTH_REQUIRED
        else:
            try:
                _DAY_OF_MONTH(day_of_month)
            except vol.Invalid:
                errors[const.DATA_TRIGGER_DAY_OF_MONTH] = (
                    const.ERROR_DAY_OF_MONTH_INVALID
                )
    elif day_of_month is not None:
        errors[const.DATA_TRIGGER_DAY_OF_MONTH] = const.ERROR_DAY_OF_MONTH_NOT_ALLOWED

    try:
        validate_send_time(user_input.get(const.DATA_TRIGGER_SEND_TIME))
    except vol.Invalid:
        errors[const.DATA_TRIGGER_SEND_TIME] = const.ERROR_SEND_TIME_INVALID

    try:
        recipients = parse_recipients(user_input.get(const.DATA_TRIGGER_RECIPIENTS))
    except vol.Invalid:
        recipients = []
    if not recipients:
        errors[const.DATA_TRIGGER_RECIPIENTS] = const.ERROR_RECIPIENTS_REQUIRED

    if errors:
        return errors

    # Field checks passed; let the schema catch anything left (types, extras)
    try:
        TRIGGER_SCHEMA(dict(user_input))
    except vol.Invalid as err:
        const.LOGGER.debug("Trigger input rejected by schema: %s", err)
        errors[const.ERROR_FIELD_BASE] = const.ERROR_INVALID_INPUT

    return errors


# =============================================================================
# SCHEDULING HELPERS
# =============================================================================


def recurrence_spec_from_trigger(trigger: EmailTriggerData) -> RecurrenceSpec:
    """Extract the recurrence portion of a trigger."""
    frequency = trigger[const.DATA_TRIGGER_FREQUENCY]
    spec: RecurrenceSpec = {
        "frequency": frequency,
        "send_time": trigger[const.DATA_TRIGGER_SEND_TIME],
        "enabled": trigger.get(const.DATA_TRIGGER_ENABLED, True),
    }
    if frequency == const.FREQUENCY_WEEKLY:
        spec["day_of_week"] = trigger.get(const.DATA_TRIGGER_DAY_OF_WEEK)
    elif frequency == const.FREQUENCY_MONTHLY:
        spec["day_of_month"] = trigger.get(const.DATA_TRIGGER_DAY_OF_MONTH)
    return spec


def describe_next_send(trigger: EmailTriggerData, now: datetime) -> str:
    """Human-readable next send estimate, e.g. "Wed 17 Apr, 08:00"."""
    if not trigger.get(const.DATA_TRIGGER_ENABLED, True):
        return const.DISPLAY_DISABLED
    spec = recurrence_spec_from_trigger(trigger)
    return dt_format_short(RecurrenceCalculator.next_run(spec, now))


def is_trigger_due(trigger: EmailTriggerData, now: datetime) -> bool:
    """Return True if a scheduled send lies in (last_sent_at, now].

    A trigger that has never been sent is due once today's slot has passed.
    Disabled triggers are never due.
    """
    if not trigger.get(const.DATA_TRIGGER_ENABLED, True):
        return False

    last_sent = dt_parse_instant(trigger.get(const.DATA_TRIGGER_LAST_SENT_AT))
    if last_sent is None:
        start_of_today = now + relativedelta(hour=0, minute=0, second=0, microsecond=0)
        reference = start_of_today - timedelta(microseconds=1)
    else:
        # Stored instants may carry a UTC offset; compare on now's clock
        reference = dt_align_to(last_sent, now)

    spec = recurrence_spec_from_trigger(trigger)
    due_at = RecurrenceCalculator.next_run(spec, reference)
    const.LOGGER.debug(
        "Trigger %s: next slot after %s is %s",
        trigger.get(const.DATA_TRIGGER_NAME),
        reference,
        due_at,
    )
    return due_at <= now


def selector_for_trigger(trigger: EmailTriggerData, now: datetime) -> PeriodSelector:
    """Period a trigger reports on when it fires at `now`.

    daily → today, weekly → current ISO week, monthly → current month.
    The weekly missing summary always covers the current ISO week.
    """
    if trigger[const.DATA_TRIGGER_REPORT_TYPE] == const.REPORT_WEEKLY_MISSING_SUMMARY:
        period_type = const.PERIOD_WEEK
    else:
        period_type = FREQUENCY_TO_PERIOD[trigger[const.DATA_TRIGGER_FREQUENCY]]
    return PeriodSelector.for_instant(period_type, now)


# =============================================================================
# DISPATCH HELPERS
# =============================================================================


def filter_events_for_trigger(
    trigger: EmailTriggerData, events: Iterable[ScanEventData]
) -> list[ScanEventData]:
    """Apply the trigger's sub-depot filter ("all" or None keeps everything)."""
    sub_depot = trigger.get(const.DATA_TRIGGER_SUB_DEPOT_FILTER)
    if sub_depot in (None, const.SUB_DEPOT_FILTER_ALL):
        return list(events)
    return [
        event
        for event in events
        if event.get(const.DATA_EVENT_SUB_DEPOT_ID) == sub_depot
    ]


def build_trigger_dispatch(trigger: EmailTriggerData, report: Report) -> EmailDispatch:
    """Build the envelope handed to the mail-composition collaborator."""
    return {
        "recipients": list(trigger[const.DATA_TRIGGER_RECIPIENTS]),
        "subject": report.subject,
        "body": format_report_text(report),
    }


def prepare_trigger_dispatch(
    trigger: EmailTriggerData,
    events: Iterable[ScanEventData],
    now: datetime,
    *,
    lookups: Lookups | None = None,
    generated_by: str = const.DEFAULT_GENERATED_BY,
    top_n: int = 0,
) -> EmailDispatch | None:
    """Run the trigger's report for the period containing `now`.

    Returns:
        The dispatch envelope, or None when the period has no data.
    """
    report = ReportAssembler.generate(
        trigger[const.DATA_TRIGGER_REPORT_TYPE],
        selector_for_trigger(trigger, now),
        filter_events_for_trigger(trigger, events),
        lookups=lookups,
        generated_by=generated_by,
        generated_at=now,
        top_n=top_n,
    )
    if report is None:
        const.LOGGER.info(
            "Trigger %s: nothing to send", trigger.get(const.DATA_TRIGGER_NAME)
        )
        return None
    return build_trigger_dispatch(trigger, report)
