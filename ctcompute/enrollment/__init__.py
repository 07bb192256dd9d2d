"""
Patient enrollment and event accrual.

Piecewise-constant enrollment schedules and the expected number of observed
events under constant event and dropout hazards.
"""

from ctcompute.enrollment._rate import EnrollmentRate
from ctcompute.enrollment._events import event_probability, expected_events

__all__ = [
    "EnrollmentRate",
    "event_probability",
    "expected_events",
]
