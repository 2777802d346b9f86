"""Shared fixtures for depot-reports tests.

The sample log covers April 2024 plus one event in May and one with an
unparseable date:

| id | date       | client | courier | round/sub-depot | scan type    | recovered | carry fwds |
|----|------------|--------|---------|-----------------|--------------|-----------|------------|
| e1 | 10/04/2024 | 1      | C1      | R1 / 3          | NoScan       | no        | 0          |
| e2 | 11/04/2024 | 1      | C1      | R1 / 3          | CarryForward | no        | 2          |
| e3 | 15/04/2024 | 2      | C2      | R2 / 3          | Misrouted    | yes       | 0          |
| e4 | 16/04/2024 | 2      | C2      | R1 / 4          | Misrouted    | no        | 1          |
| e5 | 17/04/2024 | 1      | C3      | R2 / 3          | CarryForward | yes       | 0          |
| e6 | 02/05/2024 | 2      | C2      | R2 / 3          | NoScan       | no        | 0          |
| e7 | not a date | 1      | C1      | R1 / 3          | NoScan       | no        | -          |
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from depot_reports import const
from depot_reports.engines.calendar_engine import DateRange
from depot_reports.engines.period_engine import PeriodSelector, resolve_range
from tests.helpers import make_event

if TYPE_CHECKING:
    from depot_reports.type_defs import EmailTriggerData, ScanEventData


@pytest.fixture
def sample_events() -> list[ScanEventData]:
    """Return the sample missing-parcel log described in the module docstring."""
    return [
        make_event(
            "e1",
            "10/04/2024",
            client_id=1,
            courier_id="C1",
            round_id="R1",
            sub_depot_id=3,
            carry_forwards=0,
        ),
        make_event(
            "e2",
            "11/04/2024",
            client_id=1,
            courier_id="C1",
            round_id="R1",
            sub_depot_id=3,
            scan_type=const.SCAN_TYPE_CARRY_FORWARD,
            carry_forwards=2,
        ),
        make_event(
            "e3",
            "15/04/2024",
            client_id=2,
            courier_id="C2",
            round_id="R2",
            sub_depot_id=3,
            scan_type=const.SCAN_TYPE_MISROUTED,
            misrouted_du_id="DU9",
            is_recovered=True,
            carry_forwards=0,
        ),
        make_event(
            "e4",
            "16/04/2024",
            client_id=2,
            courier_id="C2",
            round_id="R1",
            sub_depot_id=4,
            scan_type=const.SCAN_TYPE_MISROUTED,
            misrouted_du_id="DU9",
            carry_forwards=1,
        ),
        make_event(
            "e5",
            "17/04/2024",
            client_id=1,
            courier_id="C3",
            round_id="R2",
            sub_depot_id=3,
            scan_type=const.SCAN_TYPE_CARRY_FORWARD,
            is_recovered=True,
            carry_forwards=0,
        ),
        make_event(
            "e6",
            "02/05/2024",
            client_id=2,
            courier_id="C2",
            round_id="R2",
            sub_depot_id=3,
            carry_forwards=0,
        ),
        make_event(
            "e7",
            "not a date",
            client_id=1,
            courier_id="C1",
            round_id="R1",
            sub_depot_id=3,
        ),
    ]


@pytest.fixture
def april_2024() -> DateRange:
    """Return the April 2024 month range."""
    return resolve_range(PeriodSelector(const.PERIOD_MONTH, "2024-04"))


@pytest.fixture
def sample_lookups() -> dict[str, dict[Any, str]]:
    """Return display-name lookup tables for the sample log."""
    return {
        const.LOOKUP_CLIENTS: {1: "Acme Retail"},
        const.LOOKUP_COURIERS: {"C1": "Alice", "C2": "Bob"},
        const.LOOKUP_DELIVERY_UNITS: {"DU9": "North DU"},
        const.LOOKUP_SUB_DEPOTS: {3: "East"},
    }


@pytest.fixture
def weekly_trigger() -> EmailTriggerData:
    """Return a valid weekly trigger: Wednesdays at 08:00."""
    return {
        "name": "Courier league",
        "report_type": const.REPORT_WORST_COURIER_PERFORMANCE,
        "frequency": const.FREQUENCY_WEEKLY,
        "day_of_week": 3,
        "send_time": "08:00",
        "recipients": ["ops@depot.example"],
        "enabled": True,
    }
