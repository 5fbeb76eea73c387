"""Tshirt data structures for parameters, state, fluxes and step results.

This module defines the core data types used by the Tshirt model:
- Parameters: Static watershed parameters and the values derived from them
- State: Storages carried between timesteps
- Fluxes: Per-step outputs of the timestep engine
- EvapotranspirationConfig: Per-step ET forcing and soil thresholds
- StepResult: Tagged outcome of one timestep
"""

from __future__ import annotations

import logging
import math
import sys
from collections.abc import Iterator
from dataclasses import dataclass, field, fields
from typing import ClassVar

import numpy as np

from ..errors import ConfigurationError, ErrorCode
from .constants import (
    PARAM_NAMES,
    SCHAAKE_MULTIPLIER,
    SCHAAKE_REFERENCE_CONDUCTIVITY,
    SOIL_DEPTH_METERS,
    TYPICAL_RANGES,
)
from .processes import field_capacity_storage

logger = logging.getLogger(__name__)

_NON_NEGATIVE: tuple[str, ...] = ("wltsmc", "satdk", "slope", "multiplier", "klf", "kn", "cgw", "expon")

# Largest exponent with a finite e**x
_MAX_EXPON: float = math.log(sys.float_info.max)


def _warn_if_outside_ranges(params: Parameters) -> None:
    """Log warnings for parameters outside typical ranges.

    This does not raise errors - parameters outside these ranges may still be
    valid for specific catchments.
    """
    for name, (lower, upper) in TYPICAL_RANGES.items():
        value = getattr(params, name)
        if value < lower or value > upper:
            logger.warning(
                "Parameter %s=%.4g is outside typical range [%.4g, %.4g]",
                name,
                value,
                lower,
                upper,
            )


def _validate_parameters(params: Parameters) -> None:
    """Reject parameter sets outside the model's domain.

    Raises:
        ConfigurationError: On the first violated constraint.
    """
    for name in PARAM_NAMES:
        value = getattr(params, name)
        if not math.isfinite(value):
            msg = f"Parameter {name} must be finite, got {value}"
            raise ConfigurationError(msg)

    if params.maxsmc <= 0.0:
        msg = f"maxsmc must be positive (zero gives no soil storage), got {params.maxsmc}"
        raise ConfigurationError(msg)
    for name in _NON_NEGATIVE:
        if getattr(params, name) < 0.0:
            msg = f"Parameter {name} must be non-negative, got {getattr(params, name)}"
            raise ConfigurationError(msg)
    # Groundwater velocity cap cgw * (e^expon - 1) must be representable
    if params.expon >= _MAX_EXPON or not math.isfinite(params.cgw * math.expm1(params.expon)):
        msg = f"expon {params.expon} overflows the groundwater velocity cap"
        raise ConfigurationError(msg)
    if params.wltsmc > params.maxsmc:
        msg = f"wltsmc ({params.wltsmc}) cannot exceed maxsmc ({params.maxsmc})"
        raise ConfigurationError(msg)
    if isinstance(params.nash_n, bool) or not isinstance(params.nash_n, (int, np.integer)) or params.nash_n < 0:
        msg = f"nash_n must be a non-negative integer, got {params.nash_n!r}"
        raise ConfigurationError(msg)
    if params.max_groundwater_storage <= 0.0:
        msg = f"max_groundwater_storage must be positive, got {params.max_groundwater_storage}"
        raise ConfigurationError(msg)

    # Also rejects b == 1, b <= 0, satpsi <= 0 and a non-positive integration bound
    sfc = field_capacity_storage(params.maxsmc, params.satpsi, params.b, params.alpha_fc)
    if sfc >= params.max_soil_storage:
        msg = (
            f"Field-capacity storage {sfc:.4f} m must be below the maximum soil storage "
            f"{params.max_soil_storage:.4f} m"
        )
        raise ConfigurationError(msg)


@dataclass(frozen=True)
class Parameters:
    """Tshirt watershed parameters.

    Primary parameters are supplied by the caller. The derived values are
    computed in __post_init__ and cannot be passed in or reassigned.

    Attributes:
        maxsmc: Saturated soil moisture content [-].
        wltsmc: Wilting point soil moisture content [-].
        satdk: Vertical saturated hydraulic conductivity [m/s].
        satpsi: Saturated capillary head [m].
        slope: Slope coefficient scaling percolation [-].
        b: Clapp-Hornberger exponent [-].
        multiplier: Multiplier on satdk for rapid lateral subsurface flow [-].
        alpha_fc: Relative suction head at field capacity, w.r.t. atmospheric head [-].
        klf: Lateral flow coefficient [m/s].
        kn: Nash cascade reservoir coefficient [m/s].
        nash_n: Number of Nash cascade stages [-]. Zero disables the cascade.
        cgw: Groundwater flow coefficient [m/s].
        expon: Groundwater flow exponent [-].
        max_groundwater_storage: Maximum groundwater storage [m].
        max_soil_storage: Derived, depth * maxsmc [m].
        schaake_constant: Derived, 3 * satdk / 2e-6 [1/day].
        max_lateral_flow: Derived, satdk * multiplier * max_soil_storage [m/s].
    """

    depth: ClassVar[float] = SOIL_DEPTH_METERS

    maxsmc: float
    wltsmc: float
    satdk: float
    satpsi: float
    slope: float
    b: float
    multiplier: float
    alpha_fc: float
    klf: float
    kn: float
    nash_n: int
    cgw: float
    expon: float
    max_groundwater_storage: float

    max_soil_storage: float = field(init=False)
    schaake_constant: float = field(init=False)
    max_lateral_flow: float = field(init=False)

    def __post_init__(self) -> None:
        max_soil_storage = self.depth * self.maxsmc
        object.__setattr__(self, "max_soil_storage", max_soil_storage)
        object.__setattr__(self, "schaake_constant", SCHAAKE_MULTIPLIER * self.satdk / SCHAAKE_REFERENCE_CONDUCTIVITY)
        object.__setattr__(self, "max_lateral_flow", self.satdk * self.multiplier * max_soil_storage)

        _validate_parameters(self)
        _warn_if_outside_ranges(self)

    @property
    def wilting_point_storage(self) -> float:
        """Soil storage at wilting point, depth * wltsmc [m]."""
        return self.depth * self.wltsmc

    def __array__(self, dtype: np.dtype | None = None, copy: bool | None = None) -> np.ndarray:
        """Convert primary parameters to a 1D array in PARAM_NAMES order."""
        arr = np.array([getattr(self, name) for name in PARAM_NAMES], dtype=np.float64)
        if dtype is not None:
            arr = arr.astype(dtype)
        return arr

    @classmethod
    def from_array(cls, arr: np.ndarray) -> Parameters:
        """Reconstruct Parameters from array; derived values are recomputed."""
        if len(arr) != len(PARAM_NAMES):
            msg = f"Expected array of length {len(PARAM_NAMES)}, got {len(arr)}"
            raise ValueError(msg)
        values: dict[str, float | int] = {name: float(arr[i]) for i, name in enumerate(PARAM_NAMES)}
        nash_n = values["nash_n"]
        if not float(nash_n).is_integer():
            msg = f"nash_n must be integral, got {nash_n}"
            raise ConfigurationError(msg)
        values["nash_n"] = int(nash_n)
        return cls(**values)


@dataclass
class State:
    """Tshirt model state at a timestep boundary.

    Attributes:
        soil_storage: Soil column reservoir storage [m].
        groundwater_storage: Groundwater reservoir storage [m].
        nash_storages: Storage of each Nash cascade stage [m], one per stage.
    """

    soil_storage: float
    groundwater_storage: float
    nash_storages: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float64))

    def __post_init__(self) -> None:
        self.nash_storages = np.array(self.nash_storages, dtype=np.float64).reshape(-1)

    @property
    def n_stages(self) -> int:
        """Number of Nash cascade stages."""
        return len(self.nash_storages)

    @property
    def total_storage(self) -> float:
        """Soil, groundwater and cascade storages summed [m]."""
        return self.soil_storage + self.groundwater_storage + float(self.nash_storages.sum())

    @classmethod
    def initialize(cls, params: Parameters) -> State:
        """Create an empty state sized for the parameter set.

        All storages start at zero.
        """
        return cls(
            soil_storage=0.0,
            groundwater_storage=0.0,
            nash_storages=np.zeros(params.nash_n, dtype=np.float64),
        )

    def copy(self) -> State:
        """Return an independent copy of this state."""
        return State(
            soil_storage=self.soil_storage,
            groundwater_storage=self.groundwater_storage,
            nash_storages=self.nash_storages.copy(),
        )

    def validate_for(self, params: Parameters) -> None:
        """Check this state against a parameter set.

        Raises:
            ConfigurationError: If the cascade length differs from params.nash_n
                or any storage lies outside its bounds.
        """
        if self.n_stages != params.nash_n:
            msg = f"State has {self.n_stages} Nash cascade storages but nash_n is {params.nash_n}"
            raise ConfigurationError(msg)
        _check_bounds("soil_storage", self.soil_storage, params.max_soil_storage)
        _check_bounds("groundwater_storage", self.groundwater_storage, params.max_groundwater_storage)
        for i, storage in enumerate(self.nash_storages):
            _check_bounds(f"nash_storages[{i}]", float(storage), params.max_soil_storage)

    def __array__(self, dtype: np.dtype | None = None, copy: bool | None = None) -> np.ndarray:
        """Convert state to a 1D array.

        Layout: [soil_storage, groundwater_storage, nash_storages...]
        """
        arr = np.empty(2 + self.n_stages, dtype=np.float64)
        arr[0] = self.soil_storage
        arr[1] = self.groundwater_storage
        arr[2:] = self.nash_storages
        if dtype is not None:
            arr = arr.astype(dtype)
        return arr

    @classmethod
    def from_array(cls, arr: np.ndarray) -> State:
        """Reconstruct State from array."""
        if len(arr) < 2:
            msg = f"Expected array of length >= 2, got {len(arr)}"
            raise ValueError(msg)
        return cls(
            soil_storage=float(arr[0]),
            groundwater_storage=float(arr[1]),
            nash_storages=np.array(arr[2:], dtype=np.float64),
        )


def _check_bounds(name: str, value: float, upper: float) -> None:
    if not math.isfinite(value) or value < 0.0 or value > upper:
        msg = f"{name}={value} outside [0, {upper}]"
        raise ConfigurationError(msg)


@dataclass(frozen=True)
class Fluxes:
    """Tshirt fluxes for one timestep.

    Attributes:
        surface_runoff: Surface runoff after unit-hydrograph routing [m/s].
        groundwater_flow: Baseflow from the groundwater reservoir [m/s].
        soil_percolation_flow: Percolation from soil to groundwater (Qperc) [m/s].
        soil_lateral_flow: Lateral subsurface flow after the Nash cascade (Qlf) [m/s].
        et_loss: Evapotranspiration removed from soil this step [m].
        direct_runoff: Surface runoff before unit-hydrograph routing [m/s].
        infiltration: Water entering the soil reservoir [m/s].
    """

    surface_runoff: float
    groundwater_flow: float
    soil_percolation_flow: float
    soil_lateral_flow: float
    et_loss: float
    direct_runoff: float = 0.0
    infiltration: float = 0.0

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary of floats."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def is_finite(self) -> bool:
        """True when every flux is a finite number."""
        return all(math.isfinite(v) for v in self.to_dict().values())


@dataclass(frozen=True)
class EvapotranspirationConfig:
    """ET forcing for one timestep.

    Attributes:
        potential_et: Potential ET depth for the step [m].
        wilting_point_storage: Soil storage below which ET stops [m].
        field_capacity_storage: Soil storage above which ET is unrestricted [m].
    """

    potential_et: float
    wilting_point_storage: float = 0.0
    field_capacity_storage: float = 0.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not math.isfinite(value) or value < 0.0:
                msg = f"{f.name} must be finite and non-negative, got {value}"
                raise ConfigurationError(msg)

    @classmethod
    def for_soil(cls, params: Parameters, potential_et: float) -> EvapotranspirationConfig:
        """ET configuration with thresholds taken from the soil parameters."""
        return cls(
            potential_et=potential_et,
            wilting_point_storage=params.wilting_point_storage,
            field_capacity_storage=field_capacity_storage(params.maxsmc, params.satpsi, params.b, params.alpha_fc),
        )


@dataclass(frozen=True)
class StepResult:
    """Outcome of one timestep.

    Attributes:
        status: NO_ERROR, or the kind of failure detected.
        state: New state on success; a copy of the input state otherwise.
        fluxes: Fluxes computed during the step.
    """

    status: ErrorCode
    state: State
    fluxes: Fluxes

    @property
    def ok(self) -> bool:
        return self.status.ok

    def __iter__(self) -> Iterator[State | Fluxes]:
        """Unpack as (state, fluxes)."""
        yield self.state
        yield self.fluxes
