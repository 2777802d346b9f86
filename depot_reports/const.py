# File: const.py
"""Constants for depot-reports.

This file centralizes wire formats, data keys, period and frequency names,
report types, and defaults for consistency across the engines, helpers and CLI.
"""

import logging

# ------------------------------------------------------------------------------------------------
# General
# ------------------------------------------------------------------------------------------------
TITLE = "Depot Reports"

# Logger
LOGGER = logging.getLogger(__package__)

# ------------------------------------------------------------------------------------------------
# Wire Formats
# ------------------------------------------------------------------------------------------------
MONTH_LABEL_FORMAT = "%Y-%m"

# ISO week label, e.g. "2024-W17"
WEEK_LABEL_PATTERN = r"^(\d{4})-W(\d{2})$"
MONTH_LABEL_PATTERN = r"^(\d{4})-(\d{2})$"

# ------------------------------------------------------------------------------------------------
# Periods
# ------------------------------------------------------------------------------------------------
PERIOD_DAY = "day"
PERIOD_WEEK = "week"
PERIOD_MONTH = "month"

PERIOD_TYPES = [PERIOD_DAY, PERIOD_WEEK, PERIOD_MONTH]

DAYS_PER_WEEK = 7
MIN_ISO_WEEK = 1

# ------------------------------------------------------------------------------------------------
# Frequencies
# ------------------------------------------------------------------------------------------------
FREQUENCY_DAILY = "daily"
FREQUENCY_MONTHLY = "monthly"
FREQUENCY_WEEKLY = "weekly"

FREQUENCY_OPTIONS = [FREQUENCY_DAILY, FREQUENCY_WEEKLY, FREQUENCY_MONTHLY]

# Persisted trigger weekdays count from Sunday: 0=Sunday .. 6=Saturday
MIN_DAY_OF_WEEK = 0
MAX_DAY_OF_WEEK = 6
MIN_DAY_OF_MONTH = 1
MAX_DAY_OF_MONTH = 31
DAY_OF_MONTH_LAST = "last"

# ------------------------------------------------------------------------------------------------
# Scan Event Data Keys
# ------------------------------------------------------------------------------------------------
DATA_EVENT_ID = "id"
DATA_EVENT_BARCODE = "barcode"
DATA_EVENT_DATE_ADDED = "date_added"
DATA_EVENT_CLIENT_ID = "client_id"
DATA_EVENT_COURIER_ID = "courier_id"
DATA_EVENT_ROUND_ID = "round_id"
DATA_EVENT_SORTER_ID = "sorter_id"
DATA_EVENT_SUB_DEPOT_ID = "sub_depot_id"
DATA_EVENT_MISROUTED_DU_ID = "misrouted_du_id"
DATA_EVENT_SCAN_TYPE = "scan_type"
DATA_EVENT_IS_RECOVERED = "is_recovered"
DATA_EVENT_CARRY_FORWARDS = "carry_forwards"

SCAN_TYPE_NO_SCAN = "NoScan"
SCAN_TYPE_CARRY_FORWARD = "CarryForward"
SCAN_TYPE_MISROUTED = "Misrouted"

# ------------------------------------------------------------------------------------------------
# Email Trigger Data Keys
# ------------------------------------------------------------------------------------------------
DATA_TRIGGER_NAME = "name"
DATA_TRIGGER_REPORT_TYPE = "report_type"
DATA_TRIGGER_FREQUENCY = "frequency"
DATA_TRIGGER_DAY_OF_WEEK = "day_of_week"
DATA_TRIGGER_DAY_OF_MONTH = "day_of_month"
DATA_TRIGGER_SEND_TIME = "send_time"
DATA_TRIGGER_RECIPIENTS = "recipients"
DATA_TRIGGER_ENABLED = "enabled"
DATA_TRIGGER_SUB_DEPOT_FILTER = "sub_depot_id_filter"
DATA_TRIGGER_LAST_SENT_AT = "last_sent_at"

SUB_DEPOT_FILTER_ALL = "all"

# Validation error keys (field -> key mapping returned by validate_trigger_inputs)
ERROR_FIELD_BASE = "base"
ERROR_NAME_REQUIRED = "name_required"
ERROR_REPORT_TYPE_INVALID = "report_type_invalid"
ERROR_FREQUENCY_INVALID = "frequency_invalid"
ERROR_DAY_OF_WEEK_REQUIRED = "day_of_week_required"
ERROR_DAY_OF_WEEK_INVALID = "day_of_week_invalid"
ERROR_DAY_OF_WEEK_NOT_ALLOWED = "day_of_week_not_allowed"
ERROR_DAY_OF_MONTH_REQUIRED = "day_of_month_required"
ERROR_DAY_OF_MONTH_INVALID = "day_of_month_invalid"
ERROR_DAY_OF_MONTH_NOT_ALLOWED = "day_of_month_not_allowed"
ERROR_SEND_TIME_INVALID = "send_time_invalid_format"
ERROR_RECIPIENTS_REQUIRED = "recipients_required"
ERROR_INVALID_INPUT = "invalid_input"

# ------------------------------------------------------------------------------------------------
# Metrics
# ------------------------------------------------------------------------------------------------
METRIC_COUNT = "count"
METRIC_TOTAL_MISSING = "total_missing"
METRIC_UNRECOVERED = "unrecovered"
METRIC_CARRY_FORWARDS = "carry_forwards"
METRIC_TOTAL_CARRY_FORWARDS = "total_carry_forwards"

# Worst courier performance weighting
SCORE_WEIGHT_UNRECOVERED = 3
SCORE_WEIGHT_CARRY_FORWARDS = 2
SCORE_WEIGHT_TOTAL_MISSING = 1

# ------------------------------------------------------------------------------------------------
# Report Types
# ------------------------------------------------------------------------------------------------
REPORT_CLIENT_MISSING_LEAGUE = "client_missing_league_report"
REPORT_TOP_MISROUTED_DESTINATIONS = "top_misrouted_destinations_report"
REPORT_WORST_COURIER_CARRY_FORWARD = "worst_courier_carry_forward_report"
REPORT_WORST_COURIER_PERFORMANCE = "worst_courier_performance_report"
REPORT_WORST_ROUND_PERFORMANCE = "worst_round_performance_report"
REPORT_WEEKLY_MISSING_SUMMARY = "weekly_missing_summary"

REPORT_TYPES = [
    REPORT_CLIENT_MISSING_LEAGUE,
    REPORT_TOP_MISROUTED_DESTINATIONS,
    REPORT_WORST_COURIER_CARRY_FORWARD,
    REPORT_WORST_COURIER_PERFORMANCE,
    REPORT_WORST_ROUND_PERFORMANCE,
    REPORT_WEEKLY_MISSING_SUMMARY,
]

# Lookup tables used to resolve display names
LOOKUP_CLIENTS = "clients"
LOOKUP_COURIERS = "couriers"
LOOKUP_DELIVERY_UNITS = "delivery_units"
LOOKUP_SORTERS = "sorters"
LOOKUP_SUB_DEPOTS = "sub_depots"

LOOKUP_TABLES = [
    LOOKUP_CLIENTS,
    LOOKUP_COURIERS,
    LOOKUP_DELIVERY_UNITS,
    LOOKUP_SORTERS,
    LOOKUP_SUB_DEPOTS,
]

# Report detail keys (weekly missing summary)
DETAIL_PARCELS = "parcels"
DETAIL_TOTAL_MISSING = "total_missing"
DETAIL_UNRECOVERED = "unrecovered"
DETAIL_RECOVERY_RATE = "recovery_rate"
# Display names added to each parcel row
DETAIL_SORTER_NAME = "sorter_name"
DETAIL_CLIENT_NAME = "client_name"
DETAIL_SUB_DEPOT_NAME = "sub_depot_name"
# Per-entry explanation lines, aligned with Report.entries
DETAIL_REASONS = "reasons"

# Report id prefixes ("<PREFIX>-<epoch-ms>")
REPORT_ID_PREFIXES = {
    REPORT_CLIENT_MISSING_LEAGUE: "CML",
    REPORT_TOP_MISROUTED_DESTINATIONS: "TMD",
    REPORT_WORST_COURIER_CARRY_FORWARD: "WCCF",
    REPORT_WORST_COURIER_PERFORMANCE: "WCP",
    REPORT_WORST_ROUND_PERFORMANCE: "WRP",
    REPORT_WEEKLY_MISSING_SUMMARY: "WMS",
}

# ------------------------------------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------------------------------------
CONF_GENERATED_BY = "generated_by"
CONF_TOP_N = "top_n"
CONF_LOOKUPS = "lookups"

DEFAULT_GENERATED_BY = "System"
DEFAULT_TOP_N = 10

# ------------------------------------------------------------------------------------------------
# Display
# ------------------------------------------------------------------------------------------------
DISPLAY_DISABLED = "Disabled"
DISPLAY_NO_DATA = "No data found for the selected period."
DISPLAY_UNASSIGNED_CLIENT = "Unassigned"

# Weekly summary group for parcels logged without a client
UNASSIGNED_CLIENT_KEY = "unassigned"
