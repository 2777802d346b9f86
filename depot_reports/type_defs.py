"""Type definitions for depot-reports data structures.

Hybrid approach:

1. **TypedDict for STATIC structures** (fixed keys known at design time):
   persisted records such as scan events, email triggers and the loaded config.

2. **dict[str, Any] / Mapping for DYNAMIC structures** (keys chosen at runtime):
   metric bundles, whose counter names are supplied by each report definition.

Computed values returned by the engines (DateRange, RankedEntry, Report) are
frozen dataclasses defined next to the engine that produces them.

IMPORTANT: This file must NOT import from engines or helpers.
Only import from typing (type machinery).

NOTE: TypedDict is STATIC ANALYSIS ONLY. Runtime validation lives in
helpers/trigger_helpers.py and config.py.
"""

from collections.abc import Hashable, Mapping
from datetime import date
from typing import Any, Literal, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

ClientId = int
CourierId = str
RoundId = str
SorterId = str
SubDepotId = int
DeliveryUnitId = str
WeekLabel = str  # ISO week label "2024-W17"
MonthLabel = str  # "2024-04"
EventDate = str  # day-first wire date "15/04/2024"
SendTime = str  # 24-hour "HH:MM"
ISODatetime = str  # "2024-04-30T09:00:00"

GroupKey = Hashable
MetricBundle = dict[str, int | float]
Lookups = Mapping[str, Mapping[Any, str]]


# =============================================================================
# Scan Events (read-only input to the engines)
# =============================================================================


class ScanEventData(TypedDict):
    """A single parcel-handling event as stored in the missing-parcels log.

    Only `date_added` is consulted by the period filter; everything else is
    read by report key/metric extractors.
    """

    id: NotRequired[str]
    barcode: NotRequired[str]
    date_added: NotRequired[EventDate | date | None]
    client_id: NotRequired[ClientId | None]
    courier_id: NotRequired[CourierId | None]
    round_id: NotRequired[RoundId | None]
    sorter_id: NotRequired[SorterId | None]
    sub_depot_id: NotRequired[SubDepotId | None]
    misrouted_du_id: NotRequired[DeliveryUnitId | None]
    scan_type: NotRequired[str]
    is_recovered: NotRequired[bool]
    carry_forwards: NotRequired[int | None]


# =============================================================================
# Recurrence / Email Triggers
# =============================================================================


class RecurrenceSpec(TypedDict):
    """Recurrence portion of an email trigger.

    day_of_week is present only for weekly (0=Sunday .. 6=Saturday);
    day_of_month only for monthly (1..31 or "last").
    """

    frequency: Literal["daily", "weekly", "monthly"]
    send_time: SendTime
    day_of_week: NotRequired[int | None]
    day_of_month: NotRequired[int | Literal["last"] | None]
    enabled: NotRequired[bool]


class EmailTriggerData(RecurrenceSpec):
    """Persisted email trigger definition."""

    name: str
    report_type: str
    recipients: list[str]
    sub_depot_id_filter: NotRequired[SubDepotId | Literal["all"] | None]
    last_sent_at: NotRequired[ISODatetime | None]


class EmailDispatch(TypedDict):
    """Envelope handed to the mail-composition collaborator."""

    recipients: list[str]
    subject: str
    body: str


# =============================================================================
# Configuration
# =============================================================================


class ReportConfig(TypedDict):
    """Fully-defaulted configuration returned by config.load_config()."""

    generated_by: str
    top_n: int
    lookups: dict[str, dict[Any, str]]
