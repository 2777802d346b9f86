# File: utils/__init__.py
"""Pure Python utilities for depot-reports.

Submodules:
    - dt_utils: Calendar-day parsing, arithmetic and formatting
    - math_utils: Metric rounding and percentage calculations

Usage:
    from . import dt_utils
    from .math_utils import recovery_rate
"""

from . import dt_utils, math_utils

__all__ = ["dt_utils", "math_utils"]
