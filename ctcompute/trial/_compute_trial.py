"""Duration, events and expected sample size of an event-driven trial.

For a fixed number of patients the trial duration is the calendar time at
which the group sequential test reaches the target power. Every patient is
enrolled, so the duration is never shorter than the accrual duration. The
test is the Lachin & Foulkes (1986) statistic for the difference of
exponential hazards. Its null variance takes both arms at the control
hazard, i.e. a treatment without effect::

    sigma2(lam) = lam^2 / P(event | lam)
    V0 = sigma2(lam_ctrl) * (1/p + 1/(1 - p))
    V1 = sigma2(lam_trt) / p + sigma2(lam_ctrl) / (1 - p)

Under the alternative the statistic behaves like Brownian motion with drift
``sqrt(n) * |lam_ctrl - lam_trt| / sqrt(V1)`` crossing the null critical
values scaled by ``sqrt(V0 / V1)``. Looks are event driven: look ``k``
happens when the expected number of events reaches ``t_k`` times the final
count.

References
----------
Lachin, J.M. & Foulkes, M.A. (1986). Evaluation of sample size and power for
analyses of survival with allowance for nonuniform patient entry, losses to
follow-up, noncompliance, and stratification. *Biometrics* 42, 507-519.

Validates against: R ``gsDesign::nSurv()``, ``gsDesign::gsSurv()``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from ctcompute._errors import InvalidParameterRange, InvalidSpendingFunction, MissingCustomSpend, Unreachable
from ctcompute.enrollment import EnrollmentRate, expected_events
from ctcompute.spending import CustomSpending, SpendingFunction, look_fractions as _look_fractions
from ctcompute.trial._common import (
    TrialDesign,
    _check_count,
    _check_design_args,
    _check_grid,
    _expand_bracket,
    _solve_root,
)
from ctcompute.trial._sequential import SequentialBoundaries, compute_boundaries, crossing_probabilities

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event and statistic model
# ---------------------------------------------------------------------------

class _TrialModel:
    """Enrollment, hazards and dropout of one two-arm trial."""

    def __init__(
        self,
        enrollment: EnrollmentRate,
        accrual_duration: float,
        prop_treated: float,
        lambda_trt: float,
        lambda_ctrl: float,
        dropout: float,
    ) -> None:
        self.enrollment = enrollment
        self.accrual_duration = accrual_duration
        self.p = prop_treated
        self.lambda_trt = lambda_trt
        self.lambda_ctrl = lambda_ctrl
        self.dropout = dropout

    def enrolled(self, duration: float) -> float:
        return self.enrollment.cumulative_patients(min(self.accrual_duration, duration))

    def _events(self, hazard: float, duration: float) -> float:
        return expected_events(
            self.enrollment, hazard, duration,
            accrual_duration=self.accrual_duration, dropout=self.dropout,
        )

    def events(self, duration: float, null: bool = False) -> float:
        """Expected events in both arms by *duration*.

        Under the null both arms follow the control hazard.
        """
        if null:
            return self._events(self.lambda_ctrl, duration)
        return (
            self.p * self._events(self.lambda_trt, duration)
            + (1.0 - self.p) * self._events(self.lambda_ctrl, duration)
        )

    def statistic(self, duration: float) -> tuple[float, float]:
        """Return (drift, scale) of the test statistic at *duration*.

        Before anyone is enrolled the statistic carries no information and
        behaves as under the null.
        """
        m = self.enrolled(duration)
        if m <= 0.0:
            return 0.0, 1.0
        p_trt = self._events(self.lambda_trt, duration) / m
        p_ctrl = self._events(self.lambda_ctrl, duration) / m
        if min(p_trt, p_ctrl) <= 0.0:
            return 0.0, 1.0

        sigma2_trt = self.lambda_trt ** 2 / p_trt
        sigma2_ctrl = self.lambda_ctrl ** 2 / p_ctrl
        v0 = sigma2_ctrl * (1.0 / self.p + 1.0 / (1.0 - self.p))
        v1 = sigma2_trt / self.p + sigma2_ctrl / (1.0 - self.p)
        drift = math.sqrt(m) * abs(self.lambda_ctrl - self.lambda_trt) / math.sqrt(v1)
        return drift, math.sqrt(v0 / v1)

    def look_time(self, n_events: float, start: float, null: bool, tol: float) -> float:
        """Calendar time at which *n_events* events are expected."""
        def excess(d: float) -> float:
            return self.events(d, null) - n_events

        hi = _expand_bracket(excess, max(start, 1.0), what="look time")
        return _solve_root(excess, (0.0, hi), xtol=tol, what="look time")


def _power(model: _TrialModel, boundaries: SequentialBoundaries, duration: float, r: int) -> float:
    drift, scale = model.statistic(duration)
    up, _ = crossing_probabilities(boundaries, drift, r, scale)
    return float(up.sum())


def _stop_probabilities(boundaries: SequentialBoundaries, drift: float, r: int, scale: float) -> np.ndarray:
    up, low = crossing_probabilities(boundaries, drift, r, scale)
    stop = np.clip(up + low, 0.0, 1.0)
    stop[-1] = max(0.0, 1.0 - stop[:-1].sum())
    return stop


def _check_spending_fcn(
    fcn: SpendingFunction | None,
    side: str,
    alpha: float,
    fractions: tuple[float, ...],
) -> None:
    if fcn is None:
        return
    if not isinstance(fcn, SpendingFunction):
        raise InvalidSpendingFunction(
            f"{side}_spending_fcn must be a SpendingFunction or None, got {type(fcn).__name__}"
        )
    if not math.isclose(fcn.alpha, alpha, rel_tol=1e-12):
        raise InvalidParameterRange(
            f"{side}_spending_fcn was built for alpha={fcn.alpha}, design uses alpha={alpha}"
        )
    if isinstance(fcn, CustomSpending) and fcn.look_fractions != fractions:
        raise MissingCustomSpend(
            f"{side} custom alpha spend belongs to looks {fcn.look_fractions}, "
            f"design looks are {fractions}"
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def compute_trial(
    n_patients: int,
    alpha: float,
    power: float,
    *,
    lambda_event_trt: float,
    lambda_event_ctrl: float,
    enrollment_rate: EnrollmentRate,
    lower_spending_fcn: SpendingFunction | None = None,
    upper_spending_fcn: SpendingFunction | None = None,
    look_fractions: Sequence[float] | None = None,
    prop_treated: float = 0.5,
    lambda_dropout: float | None = None,
    r: int = 32,
    tol: float = 1e-6,
) -> TrialDesign:
    """Solve for the duration of a group sequential time-to-event trial.

    Parameters
    ----------
    n_patients : int
        Number of patients to enroll (both arms).
    alpha : float
        One-sided type-I error.
    power : float
        Target power under the alternative.
    lambda_event_trt, lambda_event_ctrl : float
        Constant event hazards of the treated and control arms.
    enrollment_rate : EnrollmentRate
        Piecewise-constant enrollment schedule.
    lower_spending_fcn, upper_spending_fcn : SpendingFunction or None
        Alpha spending on each side. Without an upper function all alpha is
        spent at the final look; without a lower function the trial never
        stops early on the lower side.
    look_fractions : sequence of float or None
        Information fractions of the looks (default: final analysis only).
    prop_treated : float
        Proportion randomized to treatment.
    lambda_dropout : float or None
        Constant dropout hazard, same in both arms (default 0).
    r : int
        Grid resolution of the numerical integration (>= 16, 32 recommended).
    tol : float
        Root-finding tolerance.

    Returns
    -------
    TrialDesign
        ``trial_duration >= accrual_duration``. If the target power is
        already exceeded when the last patient enrolls, the trial ends there
        and ``power`` reports the higher achieved value.

    Raises
    ------
    InvalidParameterRange, InvalidSpendingFunction, MissingCustomSpend
        On invalid input.
    Unreachable
        If *n_patients* cannot be enrolled or cannot deliver *power* at any
        duration.
    NonConvergence
        If a root search runs out of iterations.

    Examples
    --------
    >>> er = EnrollmentRate(times=[0.0], rates=[10.0])
    >>> d = compute_trial(200, 0.025, 0.9, lambda_event_trt=0.02,
    ...                   lambda_event_ctrl=0.04, enrollment_rate=er)
    >>> d.trial_duration > d.accrual_duration
    True
    """
    n_patients = _check_count("n_patients", n_patients)
    r = _check_grid(r)
    dropout = _check_design_args(
        alpha=alpha, power=power, prop_treated=prop_treated,
        lambda_event_trt=lambda_event_trt, lambda_event_ctrl=lambda_event_ctrl,
        lambda_dropout=lambda_dropout, tol=tol,
    )
    if not isinstance(enrollment_rate, EnrollmentRate):
        raise InvalidParameterRange(
            f"enrollment_rate must be an EnrollmentRate, got {type(enrollment_rate).__name__}"
        )
    fractions = _look_fractions(look_fractions)
    _check_spending_fcn(lower_spending_fcn, "lower", alpha, fractions)
    _check_spending_fcn(upper_spending_fcn, "upper", alpha, fractions)

    boundaries = compute_boundaries(
        fractions, upper_spending_fcn, lower_spending_fcn, alpha, r, tol,
    )

    accrual = enrollment_rate.time_for_patients(n_patients)
    model = _TrialModel(
        enrollment_rate, accrual, prop_treated,
        lambda_event_trt, lambda_event_ctrl, dropout,
    )

    def shortfall(duration: float) -> float:
        return _power(model, boundaries, duration, r) - power

    # Power with unlimited follow-up bounds what any duration can deliver.
    if shortfall(math.inf) <= 0.0:
        raise Unreachable(
            f"n_patients={n_patients} cannot reach power {power} at any trial "
            f"duration (maximum {_power(model, boundaries, math.inf, r):.4f})"
        )

    # The final analysis cannot precede the last enrollment.
    if shortfall(accrual) >= 0.0:
        logger.debug(
            "n_patients=%d reach power %g by the end of accrual at %g",
            n_patients, power, accrual,
        )
        duration = accrual
    else:
        hi = _expand_bracket(shortfall, max(accrual, 1.0), what="trial duration")
        logger.debug("trial duration bracket [%g, %g] for n_patients=%d", accrual, hi, n_patients)
        duration = _solve_root(shortfall, (accrual, hi), xtol=tol, what="trial duration")

    n_events = model.events(duration)
    drift, scale = model.statistic(duration)
    achieved = _power(model, boundaries, duration, r)
    logger.debug(
        "n_patients=%d: duration=%g events=%g drift=%g scale=%g power=%g",
        n_patients, duration, n_events, drift, scale, achieved,
    )

    # Event-driven looks; the final H1 look is the solved duration itself.
    targets = [t * n_events for t in fractions]
    h1_times = [model.look_time(e, duration, False, tol) for e in targets[:-1]] + [duration]
    h0_times = [model.look_time(e, duration, True, tol) for e in targets]

    h1_stop = _stop_probabilities(boundaries, drift, r, scale)
    h0_stop = _stop_probabilities(boundaries, 0.0, r, 1.0)

    def expectations(stop: np.ndarray, times: list[float]) -> tuple[float, float, float]:
        times_arr = np.asarray(times)
        accrual_at_stop = np.minimum(times_arr, accrual)
        enrolled_at_stop = np.asarray(enrollment_rate.cumulative_patients(accrual_at_stop))
        return (
            float(np.dot(stop, accrual_at_stop)),
            float(np.dot(stop, times_arr)),
            float(np.dot(stop, enrolled_at_stop)),
        )

    h0_accrual, h0_duration, h0_n = expectations(h0_stop, h0_times)
    h1_accrual, h1_duration, h1_n = expectations(h1_stop, h1_times)

    return TrialDesign(
        accrual_duration=accrual,
        trial_duration=duration,
        n_events=n_events,
        n_patients=n_patients,
        h0_expected_accrual_duration=h0_accrual,
        h1_expected_accrual_duration=h1_accrual,
        h0_expected_trial_duration=h0_duration,
        h1_expected_trial_duration=h1_duration,
        h0_expected_sample_size=h0_n,
        h1_expected_sample_size=h1_n,
        power=achieved,
        look_fractions=fractions,
        look_times=tuple(h1_times),
        boundaries=boundaries,
    )
