"""Tests for the GIUH unit-hydrograph operator."""

import numpy as np
import pytest

from tshirt import ConfigurationError, GIUHKernel, compute_giuh_ordinates


@pytest.fixture
def two_hour_kernel() -> GIUHKernel:
    return GIUHKernel.from_cdf([0.0, 7200.0], [0.0, 1.0], interval_seconds=3600.0)


class TestComputeGiuhOrdinates:
    """Tests for CDF regularisation."""

    def test_uniform_travel_time(self) -> None:
        ordinates = compute_giuh_ordinates([0.0, 7200.0], [0.0, 1.0], 3600.0)

        np.testing.assert_allclose(ordinates, [0.5, 0.5])

    def test_partial_final_interval(self) -> None:
        """A distribution ending mid-interval still fills the last ordinate."""
        ordinates = compute_giuh_ordinates([0.0, 5400.0], [0.0, 1.0], 3600.0)

        np.testing.assert_allclose(ordinates, [2.0 / 3.0, 1.0 / 3.0])
        assert ordinates.sum() == pytest.approx(1.0)

    def test_interpolates_between_points(self) -> None:
        ordinates = compute_giuh_ordinates([0.0, 1800.0, 10800.0], [0.0, 0.5, 1.0], 3600.0)

        assert len(ordinates) == 3
        assert ordinates[0] == pytest.approx(0.5 + 0.5 * 1800.0 / 9000.0)
        assert ordinates.sum() == pytest.approx(1.0)

    def test_rejects_cdf_not_starting_at_zero(self) -> None:
        with pytest.raises(ConfigurationError, match="start at 0"):
            compute_giuh_ordinates([600.0, 3600.0], [0.0, 1.0])

    def test_rejects_cdf_not_reaching_one(self) -> None:
        with pytest.raises(ConfigurationError, match="end at 1.0"):
            compute_giuh_ordinates([0.0, 3600.0], [0.0, 0.8])

    def test_rejects_decreasing_frequencies(self) -> None:
        with pytest.raises(ConfigurationError, match="non-decreasing"):
            compute_giuh_ordinates([0.0, 3600.0, 7200.0], [0.0, 0.7, 1.0 - 0.5])

    def test_rejects_mismatched_lengths(self) -> None:
        with pytest.raises(ConfigurationError, match="equal length"):
            compute_giuh_ordinates([0.0, 3600.0], [0.0, 0.5, 1.0])


class TestGIUHKernel:
    """Tests for the stateful convolution operator."""

    def test_delays_runoff_pulse(self, two_hour_kernel: GIUHKernel) -> None:
        outputs = [two_hour_kernel.convolve(3600.0, r) for r in [1.0, 0.0, 0.0]]

        np.testing.assert_allclose(outputs, [0.5, 0.5, 0.0])

    def test_conserves_runoff(self, two_hour_kernel: GIUHKernel) -> None:
        inputs = [1.0, 3.0, 0.0, 2.0, 0.0, 0.0, 0.0]

        outputs = [two_hour_kernel.convolve(3600.0, r) for r in inputs]

        assert sum(outputs) == pytest.approx(sum(inputs))
        assert two_hour_kernel.pending == pytest.approx(0.0)

    def test_pending_tracks_water_in_transit(self, two_hour_kernel: GIUHKernel) -> None:
        two_hour_kernel.convolve(3600.0, 1.0)

        assert two_hour_kernel.pending == pytest.approx(0.5)

    def test_reset_empties_buffer(self, two_hour_kernel: GIUHKernel) -> None:
        two_hour_kernel.convolve(3600.0, 1.0)
        two_hour_kernel.reset()

        assert two_hour_kernel.pending == 0.0
        assert two_hour_kernel.convolve(3600.0, 0.0) == 0.0

    def test_rejects_mismatched_dt(self, two_hour_kernel: GIUHKernel) -> None:
        with pytest.raises(ValueError, match="does not match GIUH interval"):
            two_hour_kernel.convolve(900.0, 1.0)

    def test_identity_passes_through_any_dt(self) -> None:
        kernel = GIUHKernel.identity()

        assert kernel.convolve(900.0, 2.5e-6) == 2.5e-6
        assert kernel.convolve(86400.0, 0.0) == 0.0
        assert kernel.interval_seconds is None

    def test_from_ordinates(self) -> None:
        kernel = GIUHKernel.from_ordinates([0.2, 0.3, 0.5], interval_seconds=900.0)

        np.testing.assert_allclose(kernel.ordinates, [0.2, 0.3, 0.5])
        assert kernel.interval_seconds == 900.0

    def test_ordinates_returns_copy(self, two_hour_kernel: GIUHKernel) -> None:
        two_hour_kernel.ordinates[0] = 99.0

        assert two_hour_kernel.ordinates[0] == pytest.approx(0.5)

    def test_rejects_ordinates_not_summing_to_one(self) -> None:
        with pytest.raises(ConfigurationError, match="sum to 1.0"):
            GIUHKernel([0.5, 0.4])

    def test_rejects_negative_ordinates(self) -> None:
        with pytest.raises(ConfigurationError, match="non-negative"):
            GIUHKernel([1.5, -0.5])
