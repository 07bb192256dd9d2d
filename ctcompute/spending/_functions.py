"""Alpha-spending functions.

A spending function maps information fraction ``t`` to the cumulative
type-I error spent by that look. Two families are supported:

``LDOF``
    Lan & DeMets (1983) O'Brien-Fleming type:
    ``a(t) = 2 * (1 - Phi(z_{1-alpha/2} / sqrt(t)))``.
``custom``
    Caller-supplied cumulative spend, one value per look.

References
----------
Lan, K.K.G. & DeMets, D.L. (1983). Discrete sequential boundaries for
clinical trials. *Biometrika* 70(3), 659-663.

Validates against: R ``gsDesign::sfLDOF()``.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.stats import norm

from ctcompute._errors import InvalidParameterRange, InvalidSpendingFunction, MissingCustomSpend
from ctcompute.spending._common import look_fractions as _look_fractions

_VALID_NAMES = ("LDOF", "custom")


def _check_alpha(alpha: float) -> None:
    if not (0.0 < alpha < 1.0):
        raise InvalidParameterRange(f"alpha must be in (0, 1), got {alpha}")


class SpendingFunction(ABC):
    """Common interface of the spending function variants."""

    alpha: float

    @abstractmethod
    def boundary_value(self, t: float) -> float:
        """Cumulative alpha spent by information fraction *t*."""

    def cumulative_spend(self, fractions: Sequence[float]) -> NDArray[np.float64]:
        """Cumulative alpha spent at each look of *fractions*."""
        return np.array([self.boundary_value(t) for t in fractions], dtype=np.float64)


@dataclass(frozen=True)
class LDOFSpending(SpendingFunction):
    """Lan-DeMets O'Brien-Fleming type spending function.

    Spends almost nothing at low information and reaches *alpha* at t = 1.
    """

    alpha: float

    def __post_init__(self) -> None:
        _check_alpha(self.alpha)

    def boundary_value(self, t: float) -> float:
        if t <= 0.0:
            return 0.0
        if t >= 1.0:
            return self.alpha
        z = norm.isf(self.alpha / 2.0)
        return float(2.0 * norm.sf(z / math.sqrt(t)))


@dataclass(frozen=True)
class CustomSpending(SpendingFunction):
    """User-supplied cumulative alpha spend, one value per look.

    Parameters
    ----------
    alpha : float
        Overall one-sided alpha; the last cumulative value must equal it.
    look_fractions : sequence of float
        The look schedule the spend values belong to.
    cumulative_spend : sequence of float
        Non-negative, non-decreasing cumulative alpha at each look.

    Raises
    ------
    MissingCustomSpend
        If the number of spend values does not match the number of looks.
    InvalidSpendingFunction
        If the values are negative, decreasing, or do not end at *alpha*.
    """

    alpha: float
    look_fractions: tuple[float, ...]
    cumulative_spend_values: tuple[float, ...]

    def __post_init__(self) -> None:
        _check_alpha(self.alpha)
        fractions = _look_fractions(self.look_fractions)
        spend = np.asarray(self.cumulative_spend_values, dtype=np.float64).ravel()

        if spend.shape[0] != len(fractions):
            raise MissingCustomSpend(
                f"custom alpha spend needs one value per look: "
                f"{len(fractions)} looks, got {spend.shape[0]} values"
            )
        if not np.all(np.isfinite(spend)) or np.any(spend < 0.0):
            raise InvalidSpendingFunction(
                f"custom alpha spend must be non-negative, got {spend.tolist()}"
            )
        if np.any(np.diff(spend) < 0.0):
            raise InvalidSpendingFunction(
                f"custom alpha spend must be non-decreasing, got {spend.tolist()}"
            )
        if not math.isclose(spend[-1], self.alpha, rel_tol=1e-9, abs_tol=1e-12):
            raise InvalidSpendingFunction(
                f"custom alpha spend must end at alpha={self.alpha}, got {spend[-1]}"
            )

        object.__setattr__(self, "look_fractions", fractions)
        object.__setattr__(self, "cumulative_spend_values", tuple(spend.tolist()))

    def boundary_value(self, t: float) -> float:
        """Supplied cumulative spend at look fraction *t*.

        Only defined at the supplied looks; no interpolation.
        """
        for frac, value in zip(self.look_fractions, self.cumulative_spend_values):
            if math.isclose(t, frac, rel_tol=0.0, abs_tol=1e-12):
                return value
        raise InvalidParameterRange(
            f"custom spending is only defined at looks {self.look_fractions}, got t={t}"
        )

    def cumulative_spend(self, fractions: Sequence[float]) -> NDArray[np.float64]:
        if len(fractions) != len(self.look_fractions):
            raise MissingCustomSpend(
                f"custom alpha spend covers {len(self.look_fractions)} looks, "
                f"design has {len(fractions)}"
            )
        return super().cumulative_spend(fractions)


def make_spending_function(
    name: str | None,
    alpha: float,
    fractions: Sequence[float] | None = None,
    custom_alpha_spend: Sequence[float] | None = None,
) -> SpendingFunction | None:
    """Resolve a spending function selector.

    Parameters
    ----------
    name : str or None
        ``'LDOF'``, ``'custom'``, or ``None`` (no boundary on this side).
    alpha : float
        Overall one-sided alpha.
    fractions : sequence of float or None
        Look schedule (needed for ``'custom'``).
    custom_alpha_spend : sequence of float or None
        Cumulative spend per look (required for ``'custom'``).

    Returns
    -------
    SpendingFunction or None

    Raises
    ------
    InvalidSpendingFunction
        If *name* is not a known selector.
    MissingCustomSpend
        If ``'custom'`` is requested without *custom_alpha_spend*.
    """
    if name is None:
        return None
    if name not in _VALID_NAMES:
        raise InvalidSpendingFunction(
            f"invalid spending function: {name!r}, must be one of {_VALID_NAMES}"
        )
    if name == "LDOF":
        return LDOFSpending(alpha)
    if custom_alpha_spend is None:
        raise MissingCustomSpend(
            "spending function 'custom' requires custom_alpha_spend"
        )
    return CustomSpending(
        alpha=alpha,
        look_fractions=_look_fractions(fractions),
        cumulative_spend_values=tuple(custom_alpha_spend),
    )
