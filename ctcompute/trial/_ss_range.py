"""Plausible sample-size range by diminishing returns in trial duration.

Adding patients shortens an event-driven trial, but only until the time
needed to enroll them dominates. The search sweeps the patient count upward in
fixed steps and stops once the relative reduction in trial duration per step
falls below a threshold on two consecutive steps.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from ctcompute._errors import InvalidParameterRange, NonConvergence
from ctcompute.enrollment import EnrollmentRate
from ctcompute.spending import SpendingFunction, look_fractions as _look_fractions
from ctcompute.trial._common import _check_design_args
from ctcompute.trial._compute_trial import _TrialModel, _check_spending_fcn, compute_trial
from ctcompute.trial._sequential import compute_boundaries, rejection_probability, solve_drift

logger = logging.getLogger(__name__)

# Grid resolution used by the sweep.
_SWEEP_R = 32

# Sweep steps before giving up.
_MAX_STEPS = 10_000


def _seed_sample_size(
    alpha: float,
    power: float,
    lower_spending_fcn: SpendingFunction | None,
    upper_spending_fcn: SpendingFunction | None,
    fractions: tuple[float, ...],
    prop_treated: float,
    lambda_event_trt: float,
    lambda_event_ctrl: float,
    dropout: float,
    enrollment_rate: EnrollmentRate,
    tol: float,
) -> int:
    """Smallest patient count that reaches *power* with unlimited follow-up.

    With every patient followed forever the drift grows like ``sqrt(n)``
    while the critical-value scale does not depend on ``n``.
    """
    boundaries = compute_boundaries(
        fractions, upper_spending_fcn, lower_spending_fcn, alpha, _SWEEP_R, tol,
    )
    # One patient enrolled at t = 0 gives the per-patient drift and the scale.
    model = _TrialModel(
        enrollment_rate, enrollment_rate.time_for_patients(1.0), prop_treated,
        lambda_event_trt, lambda_event_ctrl, dropout,
    )
    unit_drift, scale = model.statistic(math.inf)
    unit_drift /= math.sqrt(model.enrolled(math.inf))

    drift = solve_drift(boundaries, power, _SWEEP_R, min(tol, 1e-10), scale)
    n = max(1, math.floor((drift / unit_drift) ** 2) + 1)
    # Keep a margin of tol so rounding in the enrollment inverse cannot
    # push the seed back below the target.
    while rejection_probability(boundaries, math.sqrt(n) * unit_drift, _SWEEP_R, scale) < power + tol:
        n += 1
    return n


def compute_ss_range(
    alpha: float,
    power: float,
    *,
    lambda_event_trt: float,
    lambda_event_ctrl: float,
    enrollment_rate: EnrollmentRate,
    delta: float,
    min_perc_change: float,
    lower_spending_fcn: SpendingFunction | None = None,
    upper_spending_fcn: SpendingFunction | None = None,
    look_fractions: Sequence[float] | None = None,
    prop_treated: float = 0.5,
    lambda_dropout: float | None = None,
    tol: float = 1e-6,
) -> tuple[int, int]:
    """Range of sample sizes past which extra patients barely shorten the trial.

    Starting from the smallest feasible patient count, the patient count is
    increased by *delta* and :func:`compute_trial` re-solved. The percentage
    reduction in trial duration between consecutive counts is
    ``100 * (D_prev - D) / D_prev``. The first step whose reduction is below
    *min_perc_change* gives ``(n_low, n_high)``; it is returned once the next
    step confirms the slowdown.

    Parameters
    ----------
    alpha, power, lambda_event_trt, lambda_event_ctrl, enrollment_rate,
    lower_spending_fcn, upper_spending_fcn, look_fractions, prop_treated,
    lambda_dropout, tol
        As in :func:`compute_trial`.
    delta : float
        Step in number of patients (>= 1, rounded up to an integer).
    min_perc_change : float
        Threshold on the percentage reduction in trial duration (> 0).

    Returns
    -------
    tuple of int
        ``(n_low, n_high)`` with ``n_low <= n_high``.

    Raises
    ------
    NonConvergence
        If the slowdown is not confirmed within the step budget.
    """
    dropout = _check_design_args(
        alpha=alpha, power=power, prop_treated=prop_treated,
        lambda_event_trt=lambda_event_trt, lambda_event_ctrl=lambda_event_ctrl,
        lambda_dropout=lambda_dropout, tol=tol,
    )
    if not (math.isfinite(delta) and delta >= 1.0):
        raise InvalidParameterRange(f"delta must be >= 1, got {delta}")
    if not (math.isfinite(min_perc_change) and min_perc_change > 0.0):
        raise InvalidParameterRange(f"min_perc_change must be > 0, got {min_perc_change}")
    fractions = _look_fractions(look_fractions)
    _check_spending_fcn(lower_spending_fcn, "lower", alpha, fractions)
    _check_spending_fcn(upper_spending_fcn, "upper", alpha, fractions)

    step = math.ceil(delta)
    design_args = dict(
        lower_spending_fcn=lower_spending_fcn,
        upper_spending_fcn=upper_spending_fcn,
        look_fractions=fractions,
        prop_treated=prop_treated,
        lambda_event_trt=lambda_event_trt,
        lambda_event_ctrl=lambda_event_ctrl,
        lambda_dropout=dropout,
        enrollment_rate=enrollment_rate,
        r=_SWEEP_R,
        tol=tol,
    )

    def duration(n: int) -> float:
        return compute_trial(n, alpha, power, **design_args).trial_duration

    n_prev = _seed_sample_size(
        alpha, power, lower_spending_fcn, upper_spending_fcn, fractions,
        prop_treated, lambda_event_trt, lambda_event_ctrl, dropout,
        enrollment_rate, tol,
    )
    d_prev = duration(n_prev)
    logger.debug("sample size sweep seed n=%d duration=%g", n_prev, d_prev)

    candidate: tuple[int, int] | None = None
    for _ in range(_MAX_STEPS):
        n = n_prev + step
        d = duration(n)
        perc_change = 100.0 * (d_prev - d) / d_prev
        logger.debug("n=%d duration=%g reduction=%.4f%%", n, d, perc_change)

        if perc_change < min_perc_change:
            if candidate is not None:
                return candidate
            candidate = (n_prev, n)
        else:
            candidate = None
        n_prev, d_prev = n, d

    raise NonConvergence(
        f"trial duration still improving by at least {min_perc_change}% "
        f"per {step} patients after {_MAX_STEPS} steps"
    )
