"""Geomorphological instantaneous unit hydrograph (GIUH) operator.

The kernel turns an instantaneous surface-runoff pulse into a response spread
over the following timesteps. Ordinates are derived from a cumulative
distribution of travel times, regularised onto a fixed interval, and applied
through a delay buffer that persists between calls.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Default regularisation interval for travel-time distributions [s]
DEFAULT_INTERVAL_SECONDS: float = 3600.0

# Tolerance on the final cumulative frequency and on ordinate sums
_CDF_TOLERANCE: float = 1e-6


def compute_giuh_ordinates(
    cdf_times: Sequence[float] | np.ndarray,
    cdf_frequencies: Sequence[float] | np.ndarray,
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
) -> np.ndarray:
    """Compute regularised GIUH ordinates from a travel-time CDF.

    The CDF is linearly interpolated at multiples of `interval_seconds` and
    differenced, so ordinate k is the fraction of runoff arriving during
    interval k.

    Args:
        cdf_times: Travel times [s], strictly increasing, starting at 0.
        cdf_frequencies: Cumulative fraction of runoff arrived by each time,
            non-decreasing from 0 to 1.
        interval_seconds: Regularisation interval [s].

    Returns:
        Array of ordinates summing to 1.

    Raises:
        ConfigurationError: If the distribution is malformed.
    """
    times = np.asarray(cdf_times, dtype=np.float64)
    freqs = np.asarray(cdf_frequencies, dtype=np.float64)

    if times.ndim != 1 or freqs.ndim != 1 or len(times) != len(freqs):
        msg = f"cdf_times and cdf_frequencies must be 1D of equal length, got {times.shape} and {freqs.shape}"
        raise ConfigurationError(msg)
    if len(times) < 2:
        msg = "GIUH distribution needs at least two points"
        raise ConfigurationError(msg)
    if not (math.isfinite(interval_seconds) and interval_seconds > 0.0):
        msg = f"interval_seconds must be positive, got {interval_seconds}"
        raise ConfigurationError(msg)
    if times[0] != 0.0 or np.any(np.diff(times) <= 0.0):
        msg = "cdf_times must start at 0 and be strictly increasing"
        raise ConfigurationError(msg)
    if np.any(np.diff(freqs) < 0.0) or freqs[0] < 0.0:
        msg = "cdf_frequencies must be non-negative and non-decreasing"
        raise ConfigurationError(msg)
    if abs(freqs[-1] - 1.0) > _CDF_TOLERANCE:
        msg = f"cdf_frequencies must end at 1.0, got {freqs[-1]}"
        raise ConfigurationError(msg)

    n_ordinates = max(int(math.ceil(times[-1] / interval_seconds)), 1)
    regular_times = interval_seconds * np.arange(n_ordinates + 1, dtype=np.float64)
    cumulative = np.interp(regular_times, times, freqs)
    cumulative[-1] = 1.0

    return np.diff(cumulative)


class GIUHKernel:
    """Stateful unit-hydrograph convolution operator.

    Args:
        ordinates: Fraction of a runoff pulse released in each successive step.
        interval_seconds: Step length the ordinates were built for [s]. When
            None the kernel accepts any dt.
    """

    def __init__(self, ordinates: Sequence[float] | np.ndarray, interval_seconds: float | None = None) -> None:
        arr = np.asarray(ordinates, dtype=np.float64)
        if arr.ndim != 1 or len(arr) == 0:
            msg = "GIUH ordinates must be a non-empty 1D array"
            raise ConfigurationError(msg)
        if np.any(~np.isfinite(arr)) or np.any(arr < 0.0):
            msg = "GIUH ordinates must be finite and non-negative"
            raise ConfigurationError(msg)
        if abs(arr.sum() - 1.0) > _CDF_TOLERANCE:
            msg = f"GIUH ordinates must sum to 1.0, got {arr.sum()}"
            raise ConfigurationError(msg)

        self._ordinates = arr
        self._interval_seconds = interval_seconds
        self._buffer = np.zeros(len(arr) + 1, dtype=np.float64)

    @classmethod
    def from_cdf(
        cls,
        cdf_times: Sequence[float] | np.ndarray,
        cdf_frequencies: Sequence[float] | np.ndarray,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> GIUHKernel:
        """Build a kernel from a travel-time cumulative distribution."""
        ordinates = compute_giuh_ordinates(cdf_times, cdf_frequencies, interval_seconds)
        logger.debug("Built GIUH kernel with %d ordinates at %.0f s", len(ordinates), interval_seconds)
        return cls(ordinates, interval_seconds)

    @classmethod
    def from_ordinates(
        cls,
        ordinates: Sequence[float] | np.ndarray,
        interval_seconds: float | None = None,
    ) -> GIUHKernel:
        """Build a kernel from precomputed ordinates."""
        return cls(ordinates, interval_seconds)

    @classmethod
    def identity(cls) -> GIUHKernel:
        """Pass-through kernel: output equals input every step."""
        return cls([1.0])

    @property
    def ordinates(self) -> np.ndarray:
        return self._ordinates.copy()

    @property
    def interval_seconds(self) -> float | None:
        return self._interval_seconds

    @property
    def pending(self) -> float:
        """Runoff still queued in the delay buffer, in the units of the input."""
        return float(self._buffer.sum())

    def reset(self) -> None:
        """Empty the delay buffer."""
        self._buffer[:] = 0.0

    def check_interval(self, dt: float) -> None:
        """Raise ValueError if dt does not match the kernel interval."""
        if self._interval_seconds is not None and not math.isclose(dt, self._interval_seconds):
            msg = f"dt {dt} s does not match GIUH interval {self._interval_seconds} s"
            raise ValueError(msg)

    def convolve(self, dt: float, runoff: float) -> float:
        """Convolve one step of instantaneous runoff.

        Args:
            dt: Step length [s].
            runoff: Instantaneous surface runoff for the step [m/s].

        Returns:
            Distributed surface runoff released this step [m/s].

        Raises:
            ValueError: If dt does not match the kernel interval.
        """
        self.check_interval(dt)

        n = len(self._ordinates)
        self._buffer[:n] += self._ordinates * runoff
        output = float(self._buffer[0])

        # Shift queue for the next step
        self._buffer[:-1] = self._buffer[1:]
        self._buffer[-1] = 0.0

        return output

    def __repr__(self) -> str:
        return f"GIUHKernel(n_ordinates={len(self._ordinates)}, interval_seconds={self._interval_seconds})"
