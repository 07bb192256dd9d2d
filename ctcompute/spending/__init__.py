"""
Alpha-spending functions and look schedules for group sequential designs.

Validates against: R gsDesign (sfLDOF, sfPoints).
"""

from ctcompute.spending._common import look_fractions
from ctcompute.spending._functions import (
    CustomSpending,
    LDOFSpending,
    SpendingFunction,
    make_spending_function,
)

__all__ = [
    "look_fractions",
    "SpendingFunction",
    "LDOFSpending",
    "CustomSpending",
    "make_spending_function",
]
