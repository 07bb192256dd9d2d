"""
ctcompute: design calculations for event-driven group sequential trials.

Given alpha, power, an enrollment schedule, event and dropout hazards and an
interim-analysis schedule with alpha-spending boundaries, ctcompute solves
for the trial duration, the number of events, and the expected duration and
sample size under the null and alternative hypotheses.

Usage:
    from ctcompute import compute_trial_design, compute_sample_size_range
    from ctcompute import enrollment, spending, trial
"""

import logging

__version__ = "0.1.0"

from ctcompute._errors import (
    CTComputeError,
    InvalidEnrollmentModel,
    InvalidParameterRange,
    InvalidSpendingFunction,
    MissingCustomSpend,
    NonConvergence,
    Unreachable,
)
from ctcompute import enrollment
from ctcompute import spending
from ctcompute import trial
from ctcompute._api import compute_sample_size_range, compute_trial_design

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "enrollment",
    "spending",
    "trial",
    "compute_trial_design",
    "compute_sample_size_range",
    "CTComputeError",
    "InvalidEnrollmentModel",
    "InvalidSpendingFunction",
    "MissingCustomSpend",
    "InvalidParameterRange",
    "Unreachable",
    "NonConvergence",
]
