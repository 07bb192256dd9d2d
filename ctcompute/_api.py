"""Entry points taking plain arguments (selector strings, rate/time lists).

These resolve the spending selectors and the enrollment schedule once and
hand typed objects to the engine. Errors propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence

from ctcompute.enrollment import EnrollmentRate
from ctcompute.spending import look_fractions as _look_fractions, make_spending_function
from ctcompute.trial import TrialDesign, compute_ss_range, compute_trial


def _resolve_design(
    alpha: float,
    lower_spending_fcn: str | None,
    upper_spending_fcn: str | None,
    look_fractions: Sequence[float] | None,
    enrollment_rates: Sequence[float],
    enrollment_times: Sequence[float],
    custom_alpha_spend: Sequence[float] | None,
) -> dict:
    fractions = _look_fractions(look_fractions)
    return dict(
        lower_spending_fcn=make_spending_function(
            lower_spending_fcn, alpha, fractions, custom_alpha_spend,
        ),
        upper_spending_fcn=make_spending_function(
            upper_spending_fcn, alpha, fractions, custom_alpha_spend,
        ),
        look_fractions=fractions,
        enrollment_rate=EnrollmentRate(times=enrollment_times, rates=enrollment_rates),
    )


def compute_trial_design(
    n_patients: int,
    alpha: float,
    power: float,
    *,
    lambda_event_trt: float,
    lambda_event_ctrl: float,
    enrollment_rates: Sequence[float],
    enrollment_times: Sequence[float],
    lower_spending_fcn: str | None = None,
    upper_spending_fcn: str | None = None,
    look_fractions: Sequence[float] | None = None,
    prop_treated: float = 0.5,
    lambda_dropout: float | None = None,
    custom_alpha_spend: Sequence[float] | None = None,
    r: int = 32,
    tol: float = 1e-6,
) -> TrialDesign:
    """Design a trial from plain arguments.

    ``lower_spending_fcn`` / ``upper_spending_fcn`` are ``'LDOF'``,
    ``'custom'`` or ``None``; ``'custom'`` on either side uses
    *custom_alpha_spend* (one cumulative value per look). All other
    arguments are as in :func:`ctcompute.trial.compute_trial`.

    Examples
    --------
    >>> d = compute_trial_design(
    ...     300, 0.025, 0.9, lambda_event_trt=0.02, lambda_event_ctrl=0.04,
    ...     enrollment_rates=[10.0], enrollment_times=[0.0],
    ... )
    >>> 0 < d.n_events < 300
    True
    """
    design = _resolve_design(
        alpha, lower_spending_fcn, upper_spending_fcn, look_fractions,
        enrollment_rates, enrollment_times, custom_alpha_spend,
    )
    return compute_trial(
        n_patients, alpha, power,
        lambda_event_trt=lambda_event_trt,
        lambda_event_ctrl=lambda_event_ctrl,
        prop_treated=prop_treated,
        lambda_dropout=lambda_dropout,
        r=r,
        tol=tol,
        **design,
    )


def compute_sample_size_range(
    alpha: float,
    power: float,
    *,
    lambda_event_trt: float,
    lambda_event_ctrl: float,
    enrollment_rates: Sequence[float],
    enrollment_times: Sequence[float],
    delta: float,
    min_perc_change: float,
    lower_spending_fcn: str | None = None,
    upper_spending_fcn: str | None = None,
    look_fractions: Sequence[float] | None = None,
    prop_treated: float = 0.5,
    lambda_dropout: float | None = None,
    custom_alpha_spend: Sequence[float] | None = None,
    tol: float = 1e-6,
) -> tuple[int, int]:
    """Sample-size range from plain arguments.

    See :func:`ctcompute.trial.compute_ss_range` for the search and
    :func:`compute_trial_design` for the argument conventions.
    """
    design = _resolve_design(
        alpha, lower_spending_fcn, upper_spending_fcn, look_fractions,
        enrollment_rates, enrollment_times, custom_alpha_spend,
    )
    return compute_ss_range(
        alpha, power,
        lambda_event_trt=lambda_event_trt,
        lambda_event_ctrl=lambda_event_ctrl,
        prop_treated=prop_treated,
        lambda_dropout=lambda_dropout,
        delta=delta,
        min_perc_change=min_perc_change,
        tol=tol,
        **design,
    )
