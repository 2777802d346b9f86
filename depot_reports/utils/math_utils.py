# File: utils/math_utils.py
"""Math and calculation utilities for depot-reports.

Pure Python math functions with no I/O.

Functions:
    - round_metric: Consistent rounding for accumulated float counters
    - calculate_percentage: Whole-number percentage of a part over a total
    - recovery_rate: Percentage of missing parcels that were recovered
"""

from __future__ import annotations

import logging

# Module-level logger
_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# ==============================================================================

DATA_FLOAT_PRECISION = 2


def round_metric(value: float, precision: int = DATA_FLOAT_PRECISION) -> float:
    """Round an accumulated metric to the configured precision.

    Examples:
        round_metric(0.1 + 0.2) → 0.3
        round_metric(10.456) → 10.46
    """
    return round(value, precision)


def calculate_percentage(part: float, total: float) -> int:
    """Return `part / total` as a rounded whole-number percentage.

    Returns 0 when total is zero or negative instead of raising.

    Examples:
        calculate_percentage(1, 3) → 33
        calculate_percentage(5, 0) → 0
    """
    if total <= 0:
        return 0
    return round(part / total * 100)


def recovery_rate(total_missing: int, unrecovered: int) -> int:
    """Percentage of missing parcels that have since been recovered."""
    if unrecovered > total_missing:
        _LOGGER.warning(
            "recovery_rate: unrecovered (%s) exceeds total (%s)",
            unrecovered,
            total_missing,
        )
        unrecovered = total_missing
    return calculate_percentage(total_missing - unrecovered, total_missing)
