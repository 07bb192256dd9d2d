"""Exception types raised by the design engine.

Validation failures derive from ``ValueError`` so callers that only care
about bad input can catch that. Numerical failures derive from
``RuntimeError``.
"""

from __future__ import annotations


class CTComputeError(Exception):
    """Base class for every error raised by ctcompute."""


class InvalidEnrollmentModel(CTComputeError, ValueError):
    """Enrollment times/rates are malformed."""


class InvalidSpendingFunction(CTComputeError, ValueError):
    """Unknown spending function selector or unusable spend values."""


class MissingCustomSpend(CTComputeError, ValueError):
    """``"custom"`` spending requested without matching cumulative spend."""


class InvalidParameterRange(CTComputeError, ValueError):
    """A design parameter lies outside its admissible range."""


class Unreachable(CTComputeError, RuntimeError):
    """A required patient or event count can never be reached."""


class NonConvergence(CTComputeError, RuntimeError):
    """Root finding exhausted its iteration budget."""
