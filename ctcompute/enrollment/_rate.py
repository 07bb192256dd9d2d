"""Piecewise-constant patient enrollment.

The enrollment rate is a step function: ``rates[i]`` patients per unit time
on ``[times[i], times[i+1])``, with the last rate holding forever. Nobody is
enrolled before ``times[0]``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from ctcompute._errors import InvalidEnrollmentModel, Unreachable


@dataclass(frozen=True)
class EnrollmentRate:
    """Immutable piecewise-constant enrollment schedule.

    Parameters
    ----------
    times : sequence of float
        Segment start times, strictly increasing, first >= 0.
    rates : sequence of float
        Enrollment rate on each segment, each >= 0.

    Raises
    ------
    InvalidEnrollmentModel
        On length mismatch, empty input, non-finite values, non-increasing
        times, negative start time, or negative rate.
    """

    times: tuple[float, ...]
    rates: tuple[float, ...]

    def __post_init__(self) -> None:
        times = np.asarray(self.times, dtype=np.float64).ravel()
        rates = np.asarray(self.rates, dtype=np.float64).ravel()

        if times.shape[0] == 0:
            raise InvalidEnrollmentModel("enrollment times must not be empty")
        if times.shape[0] != rates.shape[0]:
            raise InvalidEnrollmentModel(
                f"enrollment times and rates must have equal length, "
                f"got {times.shape[0]} and {rates.shape[0]}"
            )
        if not (np.all(np.isfinite(times)) and np.all(np.isfinite(rates))):
            raise InvalidEnrollmentModel("enrollment times and rates must be finite")
        if times[0] < 0:
            raise InvalidEnrollmentModel(
                f"first enrollment time must be >= 0, got {times[0]}"
            )
        if np.any(np.diff(times) <= 0):
            raise InvalidEnrollmentModel(
                f"enrollment times must be strictly increasing, got {times.tolist()}"
            )
        if np.any(rates < 0):
            raise InvalidEnrollmentModel(
                f"enrollment rates must be non-negative, got {rates.tolist()}"
            )

        object.__setattr__(self, "times", tuple(times.tolist()))
        object.__setattr__(self, "rates", tuple(rates.tolist()))

    def _segments(self) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
        """Return (starts, ends, rates); the last segment ends at +inf."""
        starts = np.array(self.times)
        ends = np.append(starts[1:], np.inf)
        return starts, ends, np.array(self.rates)

    @property
    def total_patients(self) -> float:
        """Asymptotic enrollment (``inf`` unless the last rate is zero)."""
        if self.rates[-1] > 0:
            return math.inf
        starts, ends, rates = self._segments()
        return float(np.dot(rates[:-1], (ends - starts)[:-1]))

    def cumulative_patients(self, t: float | NDArray[np.floating]) -> float | NDArray[np.float64]:
        """Expected number of patients enrolled by time *t*.

        Continuous, non-decreasing and piecewise linear in *t*; zero for
        ``t <= times[0]``. Accepts a scalar or an array.
        """
        t_arr = np.asarray(t, dtype=np.float64)
        starts, ends, rates = self._segments()
        exposure = np.clip(t_arr[..., None], starts, ends) - starts
        # Closed segments carry no patients, even over infinite exposure.
        exposure = np.where(rates > 0, exposure, 0.0)
        total = exposure @ rates
        if t_arr.ndim == 0:
            return float(total)
        return total

    def time_for_patients(self, n: float) -> float:
        """Earliest time at which *n* patients have been enrolled.

        Raises
        ------
        Unreachable
            If enrollment stops (terminal rate 0) before *n* patients.
        """
        if n <= 0:
            return 0.0
        starts, ends, rates = self._segments()
        enrolled = 0.0
        for start, end, rate in zip(starts, ends, rates):
            if rate <= 0:
                continue
            segment = rate * (end - start)
            if enrolled + segment >= n:
                return float(start + (n - enrolled) / rate)
            enrolled += segment
        raise Unreachable(
            f"enrollment model reaches at most {enrolled:g} patients, "
            f"cannot enroll {n:g}"
        )
