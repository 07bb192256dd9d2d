"""Look schedule validation shared by the spending functions and the solver."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from ctcompute._errors import InvalidParameterRange


def look_fractions(fractions: Sequence[float] | None = None) -> tuple[float, ...]:
    """Validate an information-fraction schedule.

    ``None`` means a single final analysis. A schedule that lists interim
    looks only (last value below 1) gets the final analysis appended.

    Returns
    -------
    tuple of float
        Strictly increasing fractions in (0, 1], ending with 1.0.

    Raises
    ------
    InvalidParameterRange
        If a fraction is outside (0, 1] or the schedule is not strictly
        increasing.
    """
    if fractions is None:
        return (1.0,)

    arr = np.asarray(fractions, dtype=np.float64).ravel()
    if arr.shape[0] == 0:
        raise InvalidParameterRange("look_fractions must not be empty")
    if not np.all(np.isfinite(arr)) or np.any(arr <= 0.0) or np.any(arr > 1.0):
        raise InvalidParameterRange(
            f"look_fractions must lie in (0, 1], got {arr.tolist()}"
        )
    if np.any(np.diff(arr) <= 0.0):
        raise InvalidParameterRange(
            f"look_fractions must be strictly increasing, got {arr.tolist()}"
        )

    out = arr.tolist()
    if out[-1] < 1.0:
        out.append(1.0)
    return tuple(out)
