"""Tests for EnrollmentRate."""

import numpy as np
import pytest

from ctcompute import InvalidEnrollmentModel, Unreachable
from ctcompute.enrollment import EnrollmentRate


@pytest.fixture
def ramp_up():
    """5/unit for 10 units, then 20/unit."""
    return EnrollmentRate(times=[0.0, 10.0], rates=[5.0, 20.0])


class TestConstruction:
    """Validation at construction time."""

    def test_stores_tuples(self):
        er = EnrollmentRate(times=np.array([0, 5]), rates=[1, 2])
        assert er.times == (0.0, 5.0)
        assert er.rates == (1.0, 2.0)

    def test_non_monotonic_times(self):
        with pytest.raises(InvalidEnrollmentModel, match="strictly increasing"):
            EnrollmentRate(times=[0.0, 5.0, 3.0], rates=[1.0, 1.0, 1.0])

    def test_repeated_time(self):
        with pytest.raises(InvalidEnrollmentModel, match="strictly increasing"):
            EnrollmentRate(times=[0.0, 5.0, 5.0], rates=[1.0, 1.0, 1.0])

    def test_length_mismatch(self):
        with pytest.raises(InvalidEnrollmentModel, match="equal length"):
            EnrollmentRate(times=[0.0, 5.0], rates=[1.0])

    def test_negative_rate(self):
        with pytest.raises(InvalidEnrollmentModel, match="non-negative"):
            EnrollmentRate(times=[0.0, 5.0], rates=[1.0, -1.0])

    def test_negative_start(self):
        with pytest.raises(InvalidEnrollmentModel, match=">= 0"):
            EnrollmentRate(times=[-1.0], rates=[1.0])

    def test_empty(self):
        with pytest.raises(InvalidEnrollmentModel, match="empty"):
            EnrollmentRate(times=[], rates=[])

    def test_is_value_error(self):
        """Construction errors are also ValueErrors."""
        with pytest.raises(ValueError):
            EnrollmentRate(times=[1.0, 0.0], rates=[1.0, 1.0])

    def test_hashable(self):
        a = EnrollmentRate(times=[0.0, 1.0], rates=[1.0, 2.0])
        b = EnrollmentRate(times=[0.0, 1.0], rates=[1.0, 2.0])
        assert a == b
        assert hash(a) == hash(b)


class TestCumulativePatients:
    """Integral of the step-rate function."""

    def test_zero_at_origin(self, ramp_up):
        assert ramp_up.cumulative_patients(0.0) == 0.0

    def test_negative_time(self, ramp_up):
        assert ramp_up.cumulative_patients(-3.0) == 0.0

    def test_first_segment(self, ramp_up):
        assert ramp_up.cumulative_patients(4.0) == pytest.approx(20.0)

    def test_breakpoint(self, ramp_up):
        assert ramp_up.cumulative_patients(10.0) == pytest.approx(50.0)

    def test_last_segment(self, ramp_up):
        # 50 in the first 10 units, then 20/unit
        assert ramp_up.cumulative_patients(13.0) == pytest.approx(110.0)

    def test_late_start(self):
        """Nobody is enrolled before the first breakpoint."""
        er = EnrollmentRate(times=[2.0], rates=[4.0])
        assert er.cumulative_patients(1.0) == 0.0
        assert er.cumulative_patients(3.0) == pytest.approx(4.0)

    def test_array_input(self, ramp_up):
        out = ramp_up.cumulative_patients(np.array([0.0, 4.0, 13.0]))
        np.testing.assert_allclose(out, [0.0, 20.0, 110.0])

    def test_monotone_and_continuous(self, ramp_up):
        t = np.linspace(0.0, 30.0, 3001)
        n = ramp_up.cumulative_patients(t)
        assert np.all(np.diff(n) >= 0)
        # max jump bounded by max rate * grid spacing
        assert np.max(np.diff(n)) <= 20.0 * (t[1] - t[0]) + 1e-9

    def test_pause(self):
        """A zero-rate segment holds the count constant."""
        er = EnrollmentRate(times=[0.0, 5.0, 8.0], rates=[2.0, 0.0, 2.0])
        assert er.cumulative_patients(6.0) == pytest.approx(10.0)
        assert er.cumulative_patients(9.0) == pytest.approx(12.0)

    def test_total_patients(self):
        assert EnrollmentRate(times=[0.0], rates=[1.0]).total_patients == np.inf
        capped = EnrollmentRate(times=[0.0, 10.0], rates=[3.0, 0.0])
        assert capped.total_patients == pytest.approx(30.0)

    def test_infinite_time_with_closed_enrollment(self):
        capped = EnrollmentRate(times=[0.0, 10.0], rates=[10.0, 0.0])
        assert capped.cumulative_patients(np.inf) == pytest.approx(capped.total_patients)
        np.testing.assert_allclose(
            capped.cumulative_patients(np.array([5.0, np.inf])), [50.0, 100.0],
        )

    def test_infinite_time_with_open_enrollment(self):
        assert EnrollmentRate(times=[0.0], rates=[2.0]).cumulative_patients(np.inf) == np.inf


class TestTimeForPatients:
    """Inverse of cumulative_patients."""

    def test_zero(self, ramp_up):
        assert ramp_up.time_for_patients(0) == 0.0

    def test_first_segment(self, ramp_up):
        assert ramp_up.time_for_patients(20) == pytest.approx(4.0)

    def test_last_segment(self, ramp_up):
        assert ramp_up.time_for_patients(110) == pytest.approx(13.0)

    def test_roundtrip(self, ramp_up):
        for t in (0.5, 3.0, 9.99, 10.0, 12.5, 100.0):
            n = ramp_up.cumulative_patients(t)
            assert ramp_up.time_for_patients(n) == pytest.approx(t, rel=1e-12)

    def test_skips_pause(self):
        er = EnrollmentRate(times=[0.0, 5.0, 8.0], rates=[2.0, 0.0, 2.0])
        assert er.time_for_patients(11.0) == pytest.approx(8.5)

    def test_unreachable(self):
        er = EnrollmentRate(times=[0.0, 10.0], rates=[10.0, 0.0])
        assert er.time_for_patients(100) == pytest.approx(10.0)
        with pytest.raises(Unreachable, match="at most 100"):
            er.time_for_patients(101)
