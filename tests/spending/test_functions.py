"""Tests for alpha-spending functions and look schedules."""

import numpy as np
import pytest
from scipy.stats import norm

from ctcompute import InvalidParameterRange, InvalidSpendingFunction, MissingCustomSpend
from ctcompute.spending import (
    CustomSpending,
    LDOFSpending,
    SpendingFunction,
    look_fractions,
    make_spending_function,
)


class TestLookFractions:
    """Look schedule validation."""

    def test_default_single_look(self):
        assert look_fractions() == (1.0,)

    def test_full_schedule(self):
        assert look_fractions([0.25, 0.5, 1.0]) == (0.25, 0.5, 1.0)

    def test_interim_only_schedule_gets_final(self):
        assert look_fractions([0.5]) == (0.5, 1.0)

    def test_not_increasing(self):
        with pytest.raises(InvalidParameterRange, match="strictly increasing"):
            look_fractions([0.5, 0.5, 1.0])

    def test_out_of_range(self):
        with pytest.raises(InvalidParameterRange, match=r"\(0, 1\]"):
            look_fractions([0.0, 1.0])
        with pytest.raises(InvalidParameterRange, match=r"\(0, 1\]"):
            look_fractions([0.5, 1.2])


class TestLDOF:
    """Lan-DeMets O'Brien-Fleming spending."""

    def test_full_alpha_at_end(self):
        assert LDOFSpending(0.025).boundary_value(1.0) == 0.025

    def test_nothing_at_zero(self):
        assert LDOFSpending(0.025).boundary_value(0.0) == 0.0

    def test_known_value(self):
        """a(0.5) = 2 * (1 - Phi(z_{0.9875} / sqrt(0.5)))."""
        expected = 2 * norm.sf(norm.isf(0.0125) / np.sqrt(0.5))
        assert LDOFSpending(0.025).boundary_value(0.5) == pytest.approx(expected)
        assert expected == pytest.approx(0.001525, abs=1e-5)

    def test_monotone(self):
        fcn = LDOFSpending(0.05)
        values = [fcn.boundary_value(t) for t in np.linspace(0.01, 1.0, 100)]
        assert np.all(np.diff(values) >= 0)
        assert values[-1] == 0.05

    def test_conservative_early(self):
        """Spends far less than a linear share early on."""
        fcn = LDOFSpending(0.025)
        assert fcn.boundary_value(0.25) < 0.1 * 0.25 * 0.025

    def test_cumulative_spend(self):
        spend = LDOFSpending(0.025).cumulative_spend((0.5, 1.0))
        assert spend[-1] == 0.025
        assert spend[0] == pytest.approx(LDOFSpending(0.025).boundary_value(0.5))

    def test_invalid_alpha(self):
        with pytest.raises(InvalidParameterRange, match="alpha"):
            LDOFSpending(1.5)


class TestCustom:
    """User-supplied cumulative spend."""

    def test_exact_values_at_looks(self):
        fcn = CustomSpending(0.025, (0.3, 0.6, 1.0), (0.001, 0.0087, 0.025))
        assert fcn.boundary_value(0.3) == 0.001
        assert fcn.boundary_value(0.6) == 0.0087
        assert fcn.boundary_value(1.0) == 0.025

    def test_no_interpolation(self):
        fcn = CustomSpending(0.025, (0.5, 1.0), (0.01, 0.025))
        with pytest.raises(InvalidParameterRange, match="only defined at looks"):
            fcn.boundary_value(0.75)

    def test_length_mismatch(self):
        with pytest.raises(MissingCustomSpend, match="one value per look"):
            CustomSpending(0.025, (0.5, 1.0), (0.025,))

    def test_decreasing(self):
        with pytest.raises(InvalidSpendingFunction, match="non-decreasing"):
            CustomSpending(0.025, (0.5, 1.0), (0.03, 0.025))

    def test_must_end_at_alpha(self):
        with pytest.raises(InvalidSpendingFunction, match="end at alpha"):
            CustomSpending(0.025, (0.5, 1.0), (0.01, 0.02))

    def test_schedule_mismatch_at_use(self):
        fcn = CustomSpending(0.025, (0.5, 1.0), (0.01, 0.025))
        with pytest.raises(MissingCustomSpend):
            fcn.cumulative_spend((1.0,))


class TestMakeSpendingFunction:
    """Selector resolution."""

    def test_none(self):
        assert make_spending_function(None, 0.025) is None

    def test_ldof(self):
        assert make_spending_function("LDOF", 0.025) == LDOFSpending(0.025)

    def test_custom(self):
        fcn = make_spending_function("custom", 0.025, [0.5], [0.01, 0.025])
        assert isinstance(fcn, CustomSpending)
        assert fcn.look_fractions == (0.5, 1.0)

    def test_custom_without_spend(self):
        with pytest.raises(MissingCustomSpend, match="requires custom_alpha_spend"):
            make_spending_function("custom", 0.025, [0.5, 1.0])

    def test_unknown_name(self):
        with pytest.raises(InvalidSpendingFunction, match="invalid spending function"):
            make_spending_function("OBF", 0.025)

    def test_name_is_case_sensitive(self):
        with pytest.raises(InvalidSpendingFunction):
            make_spending_function("ldof", 0.025)


class TestSpendingFunctionInterface:

    def test_base_is_abstract(self):
        with pytest.raises(TypeError):
            SpendingFunction()

    def test_variant_without_boundary_value(self):
        class Incomplete(SpendingFunction):
            alpha = 0.025

        with pytest.raises(TypeError):
            Incomplete()

    def test_variants_are_spending_functions(self):
        assert isinstance(LDOFSpending(0.025), SpendingFunction)
        assert isinstance(make_spending_function("LDOF", 0.025), SpendingFunction)
