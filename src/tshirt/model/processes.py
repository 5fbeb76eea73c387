"""Tshirt process functions.

Pure functions for the soil physics pieces of a Tshirt timestep:
- Field-capacity storage from the Clapp-Hornberger retention curve
- Schaake infiltration partitioning
- Evapotranspiration loss from soil storage
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from ..errors import ConfigurationError
from .constants import (
    ATMOSPHERIC_PRESSURE_PASCALS,
    FIELD_CAPACITY_Z_OFFSET,
    FIELD_CAPACITY_Z_SPAN,
    SECONDS_PER_DAY,
    WATER_SPECIFIC_WEIGHT,
)

if TYPE_CHECKING:
    from .types import EvapotranspirationConfig, Parameters


def field_capacity_storage(maxsmc: float, satpsi: float, b: float, alpha_fc: float) -> float:
    """Compute the soil storage at which free gravity drainage stops (Sfc).

    Integrates the Clapp-Hornberger moisture retention curve
    theta(z) = maxsmc * (z / satpsi) ** (-1/b) over a 2 m column whose bottom
    sits 0.5 m below the suction head above the water table.

    Args:
        maxsmc: Saturated soil moisture content [-].
        satpsi: Saturated capillary head [m].
        b: Clapp-Hornberger exponent [-].
        alpha_fc: Relative suction coefficient at field capacity [-].

    Returns:
        Field-capacity storage height [m].

    Raises:
        ConfigurationError: If b == 1 (singular antiderivative), satpsi <= 0,
            or the lower integration bound is not positive.
    """
    if b == 1.0:
        msg = "Clapp-Hornberger exponent b = 1 makes the field-capacity integral singular"
        raise ConfigurationError(msg)
    if b <= 0.0:
        msg = f"Clapp-Hornberger exponent b must be positive, got {b}"
        raise ConfigurationError(msg)
    if satpsi <= 0.0:
        msg = f"satpsi must be positive, got {satpsi}"
        raise ConfigurationError(msg)

    # Suction head above the water table (Hwt)
    head_above_water_table = alpha_fc * (ATMOSPHERIC_PRESSURE_PASCALS / WATER_SPECIFIC_WEIGHT)

    z1 = head_above_water_table - FIELD_CAPACITY_Z_OFFSET
    z2 = z1 + FIELD_CAPACITY_Z_SPAN
    if z1 <= 0.0:
        msg = (
            f"Head above water table {head_above_water_table:.4f} m must exceed "
            f"{FIELD_CAPACITY_Z_OFFSET} m (alpha_fc={alpha_fc})"
        )
        raise ConfigurationError(msg)

    # z^(1 - 1/b) / (1 - 1/b) == b * z^((b - 1) / b) / (b - 1)
    power = (b - 1.0) / b
    antiderivative_span = b * z2**power / (b - 1.0) - b * z1**power / (b - 1.0)

    return maxsmc * (1.0 / satpsi) ** (-1.0 / b) * antiderivative_span


def soil_field_capacity_storage(params: Parameters) -> float:
    """Field-capacity storage for a parameter set [m]."""
    return field_capacity_storage(params.maxsmc, params.satpsi, params.b, params.alpha_fc)


def partition_schaake(dt: float, constant: float, deficit: float, input_flux: float) -> tuple[float, float]:
    """Partition input water into surface runoff and infiltration (Schaake et al. 1996).

    Args:
        dt: Timestep length [s].
        constant: Schaake adjusted constant, 3 * satdk / 2e-6 [1/day].
        deficit: Soil column moisture deficit [m].
        input_flux: Water input rate [m/s].

    Returns:
        Tuple of (surface_runoff, infiltration) rates [m/s] that sum to input_flux.
    """
    if input_flux <= 0.0:
        return 0.0, 0.0
    if deficit <= 0.0:
        return input_flux, 0.0

    input_depth = input_flux * dt
    infiltration_capacity = deficit * (1.0 - math.exp(-constant * dt / SECONDS_PER_DAY))

    infiltration_depth = input_depth * (infiltration_capacity / (input_depth + infiltration_capacity))
    infiltration = min(max(infiltration_depth / dt, 0.0), input_flux)
    surface_runoff = input_flux - infiltration

    return surface_runoff, infiltration


def evapotranspiration_loss(storage: float, et_config: EvapotranspirationConfig) -> float:
    """Compute the ET loss drawn from soil storage this step.

    Full potential ET above field capacity, reduced linearly between wilting
    point and field capacity, none at or below wilting point.

    Args:
        storage: Soil storage after subsurface routing [m].
        et_config: Potential ET depth and soil moisture thresholds.

    Returns:
        ET loss depth [m], bounded by [0, storage].
    """
    potential = et_config.potential_et
    if potential <= 0.0 or storage <= 0.0:
        return 0.0

    wilting = et_config.wilting_point_storage
    field_capacity = et_config.field_capacity_storage

    if storage >= field_capacity:
        loss = potential
    elif storage > wilting:
        loss = potential * (storage - wilting) / (field_capacity - wilting)
    else:
        loss = 0.0

    return min(loss, storage)
