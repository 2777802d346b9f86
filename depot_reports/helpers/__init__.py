# File: helpers/__init__.py
"""Report and trigger helpers for depot-reports.

These sit on top of the pure engines and shape their output for callers:
report definitions and assembly, trigger validation and dispatch.

NOTE: Pure period/aggregation/recurrence logic belongs in engines/, NOT here.

Submodules:
    - report_helpers: Report definitions, ReportAssembler, text rendering
    - trigger_helpers: Trigger schema/validation, due checks, dispatch envelopes

Usage:
    from . import report_helpers
    from .trigger_helpers import validate_trigger_inputs
"""

from . import report_helpers, trigger_helpers

__all__ = ["report_helpers", "trigger_helpers"]
