"""Shared result types and helpers for trial design calculations."""

from __future__ import annotations

import logging
import math
import numbers
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from scipy.optimize import brentq

from ctcompute._errors import InvalidParameterRange, NonConvergence

if TYPE_CHECKING:
    from ctcompute.trial._sequential import SequentialBoundaries

logger = logging.getLogger(__name__)

# Iteration budget of every Brent search.
_MAXITER = 200

# Below this the grid is too coarse for accurate tail probabilities.
_MIN_RECOMMENDED_R = 16


@dataclass(frozen=True)
class TrialDesign:
    """Result of a group sequential trial design calculation.

    Durations are in the time unit of the hazards and enrollment schedule.
    ``h0_*`` / ``h1_*`` fields are expectations over the stopping look under
    the null (both arms at the control hazard) and the alternative.
    """

    accrual_duration: float
    trial_duration: float
    n_events: float
    n_patients: int
    h0_expected_accrual_duration: float
    h1_expected_accrual_duration: float
    h0_expected_trial_duration: float
    h1_expected_trial_duration: float
    h0_expected_sample_size: float
    h1_expected_sample_size: float
    power: float  # achieved power at trial_duration
    look_fractions: tuple[float, ...]
    look_times: tuple[float, ...]  # calendar time of each look under H1
    boundaries: SequentialBoundaries

    def summary(self) -> str:
        """Human-readable summary of the design."""
        lines = ["Group sequential time-to-event design", ""]
        lines.append(f"      n patients = {self.n_patients}")
        lines.append(f"        n events = {self.n_events:.2f}")
        lines.append(f"accrual duration = {self.accrual_duration:.4f}")
        lines.append(f"  trial duration = {self.trial_duration:.4f}")
        lines.append(f"           power = {self.power:.6f}")
        lines.append("")
        lines.append("  look  fraction      time     upper     lower")
        for k, (frac, time) in enumerate(zip(self.look_fractions, self.look_times)):
            lines.append(
                f"  {k + 1:>4d}  {frac:>8.4f}  {time:>8.3f}"
                f"  {self.boundaries.upper[k]:>8.4f}  {self.boundaries.lower[k]:>8.4f}"
            )
        lines.append("")
        lines.append("                      H0          H1")
        lines.append(
            f"  E[accrual]  {self.h0_expected_accrual_duration:>10.4f}"
            f"  {self.h1_expected_accrual_duration:>10.4f}"
        )
        lines.append(
            f"  E[duration] {self.h0_expected_trial_duration:>10.4f}"
            f"  {self.h1_expected_trial_duration:>10.4f}"
        )
        lines.append(
            f"  E[n]        {self.h0_expected_sample_size:>10.2f}"
            f"  {self.h1_expected_sample_size:>10.2f}"
        )
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Shared validation
# ---------------------------------------------------------------------------

def _check_design_args(
    *,
    alpha: float,
    power: float,
    prop_treated: float,
    lambda_event_trt: float,
    lambda_event_ctrl: float,
    lambda_dropout: float | None,
    tol: float,
) -> float:
    """Validate design inputs shared by every entry point.

    Returns
    -------
    float
        The dropout hazard (``None`` mapped to 0).

    Raises
    ------
    InvalidParameterRange
        On any validation failure.
    """
    if not (0.0 < alpha < 1.0):
        raise InvalidParameterRange(f"alpha must be in (0, 1), got {alpha}")
    if not (0.0 < power < 1.0):
        raise InvalidParameterRange(f"power must be in (0, 1), got {power}")
    if power <= alpha:
        raise InvalidParameterRange(
            f"power must exceed alpha, got power={power} and alpha={alpha}"
        )
    if not (0.0 < prop_treated < 1.0):
        raise InvalidParameterRange(f"prop_treated must be in (0, 1), got {prop_treated}")

    for name, value in (
        ("lambda_event_trt", lambda_event_trt),
        ("lambda_event_ctrl", lambda_event_ctrl),
    ):
        if not (math.isfinite(value) and value > 0.0):
            raise InvalidParameterRange(f"{name} must be > 0, got {value}")
    if lambda_event_trt == lambda_event_ctrl:
        raise InvalidParameterRange(
            "lambda_event_trt must differ from lambda_event_ctrl (no effect)"
        )

    dropout = 0.0 if lambda_dropout is None else lambda_dropout
    if not (math.isfinite(dropout) and dropout >= 0.0):
        raise InvalidParameterRange(f"lambda_dropout must be >= 0, got {dropout}")

    if not (tol > 0.0):
        raise InvalidParameterRange(f"tol must be > 0, got {tol}")
    return float(dropout)


def _check_count(name: str, value, minimum: int = 1) -> int:
    """Validate a positive integer argument."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < minimum:
        raise InvalidParameterRange(f"{name} must be an integer >= {minimum}, got {value!r}")
    return int(value)


def _check_grid(r) -> int:
    r = _check_count("r", r)
    if r < _MIN_RECOMMENDED_R:
        logger.warning(
            "grid resolution r=%d is below the recommended minimum of %d; "
            "boundary and power calculations may be inaccurate",
            r, _MIN_RECOMMENDED_R,
        )
    return r


# ---------------------------------------------------------------------------
# Shared root-finding
# ---------------------------------------------------------------------------

def _solve_root(
    func: Callable[[float], float],
    bracket: tuple[float, float],
    *,
    xtol: float,
    maxiter: int = _MAXITER,
    what: str = "root",
) -> float:
    """Solve ``func(x) == 0`` on *bracket* via Brent's method.

    Raises
    ------
    NonConvergence
        If the iteration budget runs out before the bracket shrinks below
        *xtol*.
    """
    lo, hi = bracket
    root, info = brentq(func, lo, hi, xtol=xtol, maxiter=maxiter, full_output=True, disp=False)
    if not info.converged:
        raise NonConvergence(
            f"{what} did not converge within {maxiter} iterations "
            f"(bracket [{lo:g}, {hi:g}], last estimate {root:g})"
        )
    return float(root)


def _expand_bracket(
    func: Callable[[float], float],
    start: float,
    *,
    what: str,
    max_doublings: int = _MAXITER,
) -> float:
    """Double *start* until ``func`` becomes non-negative."""
    hi = start
    for _ in range(max_doublings):
        if func(hi) >= 0.0:
            return hi
        hi *= 2.0
    raise NonConvergence(
        f"could not bracket {what}: still short after {max_doublings} doublings"
    )
