"""
Group sequential design of event-driven two-arm trials.

Solves for the trial duration that gives the target power for a fixed
number of patients, and searches for a sample-size range past which extra
patients barely shorten the trial.

Validates against: R gsDesign (gsDesign, gsSurv, nSurv).
"""

from ctcompute.trial._common import TrialDesign
from ctcompute.trial._sequential import (
    SequentialBoundaries,
    compute_boundaries,
    crossing_probabilities,
    rejection_probability,
    solve_drift,
)
from ctcompute.trial._compute_trial import compute_trial
from ctcompute.trial._ss_range import compute_ss_range

__all__ = [
    "TrialDesign",
    "SequentialBoundaries",
    "compute_boundaries",
    "crossing_probabilities",
    "rejection_probability",
    "solve_drift",
    "compute_trial",
    "compute_ss_range",
]
