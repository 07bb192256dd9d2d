"""Numerical integration for group sequential boundaries.

The standardized statistic at information fraction ``t_k`` is
``Z_k = W(t_k) / sqrt(t_k)`` where ``W`` is Brownian motion with drift
``theta``. The sub-density of ``Z_k`` on the continuation region is carried
from look to look by convolution with the normal increment density and
evaluated on a grid of ``6r - 1`` points (plus Simpson midpoints), following
Jennison & Turnbull (2000), chapter 19.

The recursion starts from a point mass at ``Z = 0`` for ``t = 0``, so the
first look is handled by the same formulas as every later one.

References
----------
Jennison, C. & Turnbull, B.W. (2000). *Group Sequential Methods with
Applications to Clinical Trials*. Chapman & Hall/CRC.

Validates against: R ``gsDesign::gsDesign()``, ``gsDesign::gsProbability()``.
"""

from __future__ import annotations

import functools
import math
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.stats import norm

from ctcompute._errors import InvalidSpendingFunction, Unreachable
from ctcompute.spending import SpendingFunction
from ctcompute.trial._common import _solve_root

# Critical values are searched in [-_Z_LIMIT, _Z_LIMIT].
_Z_LIMIT = 40.0


@dataclass(frozen=True)
class SequentialBoundaries:
    """Critical values of a group sequential design on the Z scale.

    ``upper[k] = +inf`` where the upper side spends nothing at look ``k``
    and ``lower[k] = -inf`` where the lower side does not stop. At the final
    look ``lower == upper``.
    """

    look_fractions: tuple[float, ...]
    upper: NDArray[np.float64]
    lower: NDArray[np.float64]
    upper_spend: NDArray[np.float64]  # cumulative alpha, upper side
    lower_spend: NDArray[np.float64]  # cumulative alpha, lower side

    @property
    def n_looks(self) -> int:
        return len(self.look_fractions)


@dataclass(frozen=True)
class _State:
    """Weighted sub-density of Z on the continuation region of one look."""

    z: NDArray[np.float64]
    g: NDArray[np.float64]  # quadrature weight * density
    t: float


_ORIGIN = _State(z=np.zeros(1), g=np.ones(1), t=0.0)


# ---------------------------------------------------------------------------
# Grid and recursion
# ---------------------------------------------------------------------------

def _grid(r: int, mu: float, a: float, b: float) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Simpson nodes and weights on ``(a, b)`` centred at *mu*.

    Points are dense within 3 of *mu* and spread logarithmically into the
    tails. Infinite limits are replaced by the outermost grid point.
    """
    empty = np.empty(0)
    if a >= b:
        return empty, empty

    i = np.arange(1, 6 * r, dtype=np.float64)
    x = np.where(
        i < r,
        mu - 3.0 - 4.0 * np.log(r / i),
        np.where(
            i <= 5 * r,
            mu - 3.0 + 3.0 * (i - r) / (2.0 * r),
            mu + 3.0 + 4.0 * np.log(r / (6.0 * r - i)),
        ),
    )
    nodes = x[(x > a) & (x < b)]
    if math.isfinite(a):
        nodes = np.concatenate(([a], nodes))
    if math.isfinite(b):
        nodes = np.concatenate((nodes, [b]))
    if nodes.shape[0] < 2:
        return empty, empty

    m = nodes.shape[0]
    z = np.empty(2 * m - 1)
    z[0::2] = nodes
    z[1::2] = 0.5 * (nodes[:-1] + nodes[1:])

    d = np.diff(nodes)
    w = np.zeros(2 * m - 1)
    w[0:-1:2] += d / 6.0
    w[2::2] += d / 6.0
    w[1::2] = 4.0 * d / 6.0
    return z, w


def _standardized(state: _State, t: float, drift: float, c: float | NDArray) -> NDArray:
    """Standardized increment needed to move from each node of *state* to *c*."""
    dt = t - state.t
    c = np.asarray(c, dtype=np.float64)[..., None]
    return (c * math.sqrt(t) - state.z * math.sqrt(state.t) - drift * dt) / math.sqrt(dt)


def _upper_tail(state: _State, t: float, drift: float, c: float) -> float:
    """P(continue to the previous look and Z(t) >= c)."""
    return float(np.dot(norm.sf(_standardized(state, t, drift, c)), state.g))


def _lower_tail(state: _State, t: float, drift: float, c: float) -> float:
    """P(continue to the previous look and Z(t) < c)."""
    return float(np.dot(norm.cdf(_standardized(state, t, drift, c)), state.g))


def _advance(state: _State, t: float, drift: float, lower: float, upper: float, r: int) -> _State:
    """Sub-density of Z(t) on ``(lower, upper)``."""
    z, w = _grid(r, drift * math.sqrt(t), lower, upper)
    if z.shape[0] == 0 or state.z.shape[0] == 0:
        return _State(z=np.empty(0), g=np.empty(0), t=t)
    x = _standardized(state, t, drift, z)
    density = (norm.pdf(x) @ state.g) * math.sqrt(t / (t - state.t))
    return _State(z=z, g=w * density, t=t)


# ---------------------------------------------------------------------------
# Boundaries
# ---------------------------------------------------------------------------

def _critical_value(tail, target: float, mass: float, tol: float, side: str) -> float:
    """Critical value where *tail* spends *target* of the remaining *mass*."""
    if target <= 0.0:
        return math.inf if side == "upper" else -math.inf
    if target >= mass:
        raise InvalidSpendingFunction(
            f"{side} spending increment {target:.3g} exceeds the remaining "
            f"probability {mass:.3g}"
        )
    return _solve_root(
        lambda c: tail(c) - target,
        (-_Z_LIMIT, _Z_LIMIT),
        xtol=tol,
        what=f"{side} critical value",
    )


@functools.lru_cache(maxsize=64)
def compute_boundaries(
    fractions: tuple[float, ...],
    upper_spending_fcn: SpendingFunction | None,
    lower_spending_fcn: SpendingFunction | None,
    alpha: float,
    r: int = 32,
    tol: float = 1e-6,
) -> SequentialBoundaries:
    """Critical values that spend alpha under the null hypothesis.

    Parameters
    ----------
    fractions : tuple of float
        Validated look schedule ending at 1.0.
    upper_spending_fcn, lower_spending_fcn : SpendingFunction or None
        ``None`` on the upper side spends all of *alpha* at the final look;
        ``None`` on the lower side never stops early.
    alpha : float
        One-sided alpha.
    r : int
        Grid resolution.
    tol : float
        Root-finding tolerance on the Z scale.

    Returns
    -------
    SequentialBoundaries
    """
    k_looks = len(fractions)
    if upper_spending_fcn is None:
        upper_spend = np.zeros(k_looks)
        upper_spend[-1] = alpha
    else:
        upper_spend = upper_spending_fcn.cumulative_spend(fractions)
    if lower_spending_fcn is None:
        lower_spend = np.zeros(k_looks)
    else:
        lower_spend = lower_spending_fcn.cumulative_spend(fractions)

    upper_inc = np.diff(upper_spend, prepend=0.0)
    lower_inc = np.diff(lower_spend, prepend=0.0)

    upper = np.empty(k_looks)
    lower = np.empty(k_looks)
    state = _ORIGIN
    for k, t in enumerate(fractions):
        mass = float(state.g.sum())
        u = _critical_value(
            lambda c: _upper_tail(state, t, 0.0, c), upper_inc[k], mass, tol, "upper",
        )
        if k == k_looks - 1:
            lo = u
        else:
            lo = _critical_value(
                lambda c: _lower_tail(state, t, 0.0, c), lower_inc[k], mass, tol, "lower",
            )
            lo = min(lo, u)
            state = _advance(state, t, 0.0, lo, u, r)
        upper[k] = u
        lower[k] = lo

    for arr in (upper, lower, upper_spend, lower_spend):
        arr.setflags(write=False)
    return SequentialBoundaries(
        look_fractions=fractions,
        upper=upper,
        lower=lower,
        upper_spend=upper_spend,
        lower_spend=lower_spend,
    )


# ---------------------------------------------------------------------------
# Crossing probabilities
# ---------------------------------------------------------------------------

def crossing_probabilities(
    boundaries: SequentialBoundaries,
    drift: float,
    r: int = 32,
    scale: float = 1.0,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Probability of stopping at each look through each side.

    Parameters
    ----------
    boundaries : SequentialBoundaries
    drift : float
        Drift of the underlying Brownian motion (expected Z at t = 1).
    r : int
        Grid resolution.
    scale : float
        Multiplier applied to every critical value (used when the statistic
        has a different variance under the alternative).

    Returns
    -------
    upper, lower : ndarray
        ``upper[k]`` is the probability of first crossing the upper value at
        look ``k``; ``lower[k]`` likewise for the lower value. At the final
        look the two values coincide, so the arrays sum to 1 up to
        quadrature error.
    """
    upper_c = boundaries.upper * scale
    lower_c = boundaries.lower * scale
    up = np.empty(boundaries.n_looks)
    low = np.empty(boundaries.n_looks)

    state = _ORIGIN
    for k, t in enumerate(boundaries.look_fractions):
        up[k] = _upper_tail(state, t, drift, upper_c[k])
        low[k] = _lower_tail(state, t, drift, lower_c[k])
        if k < boundaries.n_looks - 1:
            state = _advance(state, t, drift, lower_c[k], upper_c[k], r)
    return up, low


def rejection_probability(
    boundaries: SequentialBoundaries,
    drift: float,
    r: int = 32,
    scale: float = 1.0,
) -> float:
    """Probability of crossing the upper boundary at any look."""
    up, _ = crossing_probabilities(boundaries, drift, r, scale)
    return float(up.sum())


def solve_drift(
    boundaries: SequentialBoundaries,
    power: float,
    r: int = 32,
    tol: float = 1e-6,
    scale: float = 1.0,
) -> float:
    """Smallest drift whose rejection probability equals *power*."""
    def excess(theta: float) -> float:
        return rejection_probability(boundaries, theta, r, scale) - power

    if excess(0.0) >= 0.0:
        return 0.0
    hi = 1.0
    while excess(hi) < 0.0:
        hi *= 2.0
        if hi > 1e6:
            raise Unreachable(
                f"boundaries cannot reach power {power} at any drift"
            )
    return _solve_root(excess, (0.0, hi), xtol=tol, what="drift")
