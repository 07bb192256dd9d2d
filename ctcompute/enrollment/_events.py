"""Expected event counts under exponential events with competing dropout.

A patient followed for time ``u`` has an observed event with probability::

    lam / (lam + eta) * (1 - exp(-(lam + eta) * u))

where ``lam`` is the event hazard and ``eta`` the dropout hazard. Integrating
against a piecewise-constant enrollment rate is closed form per segment.
"""

from __future__ import annotations

import math

import numpy as np

from ctcompute.enrollment._rate import EnrollmentRate


def event_probability(hazard: float, dropout: float, follow_up: float) -> float:
    """Probability of an observed event within *follow_up* time units."""
    if follow_up <= 0:
        return 0.0
    h = hazard + dropout
    if math.isinf(follow_up):
        return hazard / h
    return -hazard / h * math.expm1(-h * follow_up)


def expected_events(
    enrollment: EnrollmentRate,
    hazard: float,
    duration: float,
    *,
    accrual_duration: float = math.inf,
    dropout: float = 0.0,
) -> float:
    """Expected number of events observed by calendar time *duration*.

    Patients are enrolled according to *enrollment* until
    ``min(accrual_duration, duration)``; every enrolled patient is followed
    until *duration*.

    Parameters
    ----------
    enrollment : EnrollmentRate
    hazard : float
        Constant event hazard (> 0).
    duration : float
        Calendar time of the analysis.
    accrual_duration : float
        Time at which enrollment closes.
    dropout : float
        Constant dropout hazard (>= 0).
    """
    end_of_entry = min(accrual_duration, duration)
    if end_of_entry <= 0:
        return 0.0

    starts, ends, rates = enrollment._segments()
    a = np.minimum(starts, end_of_entry)
    b = np.minimum(ends, end_of_entry)
    length = b - a

    h = hazard + dropout
    # integral over [a, b] of (1 - exp(-h * (duration - s))) ds
    exposed = length + np.exp(-h * (duration - b)) * np.expm1(-h * length) / h
    return float(hazard / h * np.dot(rates, exposed))
