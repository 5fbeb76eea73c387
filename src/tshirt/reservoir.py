"""Nonlinear reservoir engine.

A reservoir is a bounded storage drained by one or more outlets. Each outlet
discharges at a velocity that depends on how far the storage sits above the
outlet's activation threshold, capped at a maximum velocity:

- ReservoirOutlet: power law, a * ((S - thr) / (Smax - thr)) ** b
- ExponentialOutlet: exponential law, a * (exp(b * (S - thr) / (Smax - thr)) - 1)

NonlinearReservoir advances storage by one step and reports any inflow it
could not hold as excess.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservoirOutlet:
    """Power-law reservoir outlet.

    Attributes:
        coefficient: Linear coefficient of the outlet law [m/s].
        exponent: Exponent applied to the relative fill above threshold [-].
        activation_threshold: Storage below which the outlet is closed [m].
        max_velocity: Upper cap on the outlet velocity [m/s].
    """

    coefficient: float
    exponent: float
    activation_threshold: float
    max_velocity: float

    def __post_init__(self) -> None:
        for name in ("coefficient", "exponent", "activation_threshold", "max_velocity"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0.0:
                msg = f"Outlet {name} must be finite and non-negative, got {value}"
                raise ConfigurationError(msg)

    def _law(self, relative_fill: float) -> float:
        return self.coefficient * relative_fill**self.exponent

    def velocity(self, storage: float, max_storage: float) -> float:
        """Compute the outlet velocity for the given storage.

        Args:
            storage: Current storage height [m].
            max_storage: Maximum storage height of the owning reservoir [m].

        Returns:
            Outlet velocity [m/s], zero at or below the activation threshold.
        """
        if storage <= self.activation_threshold:
            return 0.0
        relative_fill = (storage - self.activation_threshold) / (max_storage - self.activation_threshold)
        return min(self._law(relative_fill), self.max_velocity)


@dataclass(frozen=True)
class ExponentialOutlet(ReservoirOutlet):
    """Exponential-law reservoir outlet, used for groundwater baseflow."""

    def _law(self, relative_fill: float) -> float:
        return self.coefficient * (math.exp(self.exponent * relative_fill) - 1.0)


class NonlinearReservoir:
    """Bounded storage drained by an ordered list of outlets.

    Outlets are evaluated in order, each on the storage left by the previous
    one, so the first outlet has priority when storage is scarce.

    Args:
        min_storage: Lower storage bound [m].
        max_storage: Upper storage bound [m].
        initial_storage: Starting storage height [m].
        outlets: One or more outlet configurations.

    Raises:
        ConfigurationError: If the bounds, initial storage or any outlet threshold
            are inconsistent.
    """

    def __init__(
        self,
        min_storage: float,
        max_storage: float,
        initial_storage: float,
        outlets: Sequence[ReservoirOutlet],
    ) -> None:
        if not (math.isfinite(min_storage) and math.isfinite(max_storage)) or min_storage >= max_storage:
            msg = f"Reservoir bounds must be finite with min < max, got [{min_storage}, {max_storage}]"
            raise ConfigurationError(msg)
        for i, outlet in enumerate(outlets):
            if outlet.activation_threshold >= max_storage:
                msg = (
                    f"Outlet {i} activation threshold {outlet.activation_threshold} "
                    f"must be below the reservoir maximum {max_storage}"
                )
                raise ConfigurationError(msg)

        self._min_storage = float(min_storage)
        self._max_storage = float(max_storage)
        self._outlets: tuple[ReservoirOutlet, ...] = tuple(outlets)
        self._velocities: list[float] = [0.0] * len(self._outlets)
        self.storage = initial_storage

    @property
    def min_storage(self) -> float:
        return self._min_storage

    @property
    def max_storage(self) -> float:
        return self._max_storage

    @property
    def outlets(self) -> tuple[ReservoirOutlet, ...]:
        return self._outlets

    @property
    def storage(self) -> float:
        """Current storage height [m]."""
        return self._storage

    @storage.setter
    def storage(self, value: float) -> None:
        if not math.isfinite(value) or value < self._min_storage or value > self._max_storage:
            msg = f"Storage {value} outside reservoir bounds [{self._min_storage}, {self._max_storage}]"
            raise ConfigurationError(msg)
        self._storage = float(value)

    def velocity_for_outlet(self, index: int) -> float:
        """Velocity of outlet `index` from the most recent response [m/s]."""
        return self._velocities[index]

    def respond(self, input_velocity: float, dt: float) -> tuple[float, float]:
        """Advance the reservoir by one step.

        Args:
            input_velocity: Inflow rate [m/s], non-negative.
            dt: Step length [s], positive.

        Returns:
            Tuple of (output_velocity, excess):
            - output_velocity: Sum of outlet velocities [m/s]
            - excess: Water above the maximum storage that could not be held [m]
        """
        if dt <= 0.0:
            msg = f"dt must be positive, got {dt}"
            raise ValueError(msg)
        if input_velocity < 0.0:
            msg = f"input_velocity must be non-negative, got {input_velocity}"
            raise ValueError(msg)

        storage = self._storage + input_velocity * dt
        total_velocity = 0.0

        for i, outlet in enumerate(self._outlets):
            velocity = outlet.velocity(storage, self._max_storage)
            storage -= velocity * dt
            # Outlet cannot drain below the floor
            if storage < self._min_storage:
                velocity += (storage - self._min_storage) / dt
                storage = self._min_storage
            self._velocities[i] = velocity
            total_velocity += velocity

        excess = 0.0
        if storage > self._max_storage:
            excess = storage - self._max_storage
            storage = self._max_storage
            logger.debug("Reservoir overflow of %.6g m (max storage %.6g m)", excess, self._max_storage)

        self._storage = storage
        return total_velocity, excess

    def __repr__(self) -> str:
        return (
            f"NonlinearReservoir(min_storage={self._min_storage}, max_storage={self._max_storage}, "
            f"storage={self._storage}, outlets={len(self._outlets)})"
        )
