"""Test helpers for depot-reports tests.

    from tests.helpers import make_event
"""

from tests.helpers.events import make_event

__all__ = ["make_event"]
