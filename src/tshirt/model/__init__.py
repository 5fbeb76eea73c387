"""Tshirt model subpackage.

Public API for the Tshirt timestep engine.
"""

from .constants import PARAM_NAMES, TYPICAL_RANGES
from .mass_balance import MassBalanceResult, mass_check
from .outputs import TshirtFluxes
from .processes import evapotranspiration_loss, field_capacity_storage, partition_schaake, soil_field_capacity_storage
from .run import TshirtModel, TshirtReservoirs, build_reservoirs, run, step
from .types import EvapotranspirationConfig, Fluxes, Parameters, State, StepResult

__all__ = [
    "EvapotranspirationConfig",
    "Fluxes",
    "MassBalanceResult",
    "PARAM_NAMES",
    "Parameters",
    "State",
    "StepResult",
    "TYPICAL_RANGES",
    "TshirtFluxes",
    "TshirtModel",
    "TshirtReservoirs",
    "build_reservoirs",
    "evapotranspiration_loss",
    "field_capacity_storage",
    "mass_check",
    "partition_schaake",
    "run",
    "soil_field_capacity_storage",
    "step",
]
