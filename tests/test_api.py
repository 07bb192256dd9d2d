"""Tests for the plain-argument entry points."""

import pytest

import ctcompute
from ctcompute import (
    InvalidEnrollmentModel,
    InvalidSpendingFunction,
    MissingCustomSpend,
    compute_sample_size_range,
    compute_trial_design,
)
from ctcompute.enrollment import EnrollmentRate
from ctcompute.spending import LDOFSpending
from ctcompute.trial import compute_trial

SCENARIO = dict(
    alpha=0.025,
    power=0.9,
    lambda_event_trt=0.02,
    lambda_event_ctrl=0.04,
    enrollment_rates=[10.0],
    enrollment_times=[0.0],
)


class TestComputeTrialDesign:

    def test_reference_scenario(self):
        d = compute_trial_design(300, **SCENARIO)
        assert d.trial_duration > d.accrual_duration > 0
        assert 0 < d.n_events < 300

    def test_matches_engine(self):
        d = compute_trial_design(
            200, upper_spending_fcn="LDOF", look_fractions=[1 / 3, 2 / 3], **SCENARIO,
        )
        e = compute_trial(
            200, 0.025, 0.9,
            lambda_event_trt=0.02, lambda_event_ctrl=0.04,
            enrollment_rate=EnrollmentRate(times=[0.0], rates=[10.0]),
            upper_spending_fcn=LDOFSpending(0.025),
            look_fractions=[1 / 3, 2 / 3, 1.0],
        )
        assert d.look_fractions == pytest.approx((1 / 3, 2 / 3, 1.0))
        assert d.trial_duration == pytest.approx(e.trial_duration)
        assert d.h1_expected_sample_size == pytest.approx(e.h1_expected_sample_size)

    def test_custom_spend(self):
        d = compute_trial_design(
            200, upper_spending_fcn="custom", look_fractions=[0.5, 1.0],
            custom_alpha_spend=[0.005, 0.025], **SCENARIO,
        )
        assert tuple(d.boundaries.upper_spend) == pytest.approx((0.005, 0.025))

    def test_custom_without_spend(self):
        with pytest.raises(MissingCustomSpend, match="custom_alpha_spend"):
            compute_trial_design(300, lower_spending_fcn="custom", **SCENARIO)

    def test_custom_spend_length_mismatch(self):
        with pytest.raises(MissingCustomSpend, match="one value per look"):
            compute_trial_design(
                300, upper_spending_fcn="custom", look_fractions=[0.5, 1.0],
                custom_alpha_spend=[0.025], **SCENARIO,
            )

    def test_unknown_selector(self):
        with pytest.raises(InvalidSpendingFunction, match="invalid spending function"):
            compute_trial_design(300, upper_spending_fcn="Pocock", **SCENARIO)

    def test_non_monotone_enrollment(self):
        args = dict(SCENARIO, enrollment_rates=[5.0, 10.0, 15.0], enrollment_times=[0.0, 5.0, 3.0])
        with pytest.raises(InvalidEnrollmentModel, match="strictly increasing"):
            compute_trial_design(300, **args)

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            compute_trial_design(300, upper_spending_fcn="Pocock", **SCENARIO)


class TestComputeSampleSizeRange:

    def test_scenario(self):
        n_low, n_high = compute_sample_size_range(
            delta=10, min_perc_change=1.0, **SCENARIO,
        )
        assert n_low <= n_high
        assert n_high - n_low == 10


def test_public_names():
    for name in ctcompute.__all__:
        assert hasattr(ctcompute, name)
