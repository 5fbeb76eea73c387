"""Tshirt hydrological model.

A lumped conceptual rainfall-runoff model built from nonlinear reservoirs:
Schaake infiltration partitioning, a two-outlet soil reservoir, a Nash
cascade on lateral flow, an exponential groundwater reservoir and a
geomorphological unit hydrograph on surface runoff.
"""

from .errors import ConfigurationError, ErrorCode, NumericalError, TshirtError
from .giuh import GIUHKernel, compute_giuh_ordinates
from .inputs import ForcingData
from .model import (
    EvapotranspirationConfig,
    Fluxes,
    MassBalanceResult,
    Parameters,
    State,
    StepResult,
    TshirtFluxes,
    TshirtModel,
    build_reservoirs,
    mass_check,
    run,
    step,
)
from .outputs import ModelOutput
from .reservoir import ExponentialOutlet, NonlinearReservoir, ReservoirOutlet

__all__ = [
    "ConfigurationError",
    "ErrorCode",
    "EvapotranspirationConfig",
    "ExponentialOutlet",
    "Fluxes",
    "ForcingData",
    "GIUHKernel",
    "MassBalanceResult",
    "ModelOutput",
    "NonlinearReservoir",
    "NumericalError",
    "Parameters",
    "ReservoirOutlet",
    "State",
    "StepResult",
    "TshirtError",
    "TshirtFluxes",
    "TshirtModel",
    "build_reservoirs",
    "compute_giuh_ordinates",
    "mass_check",
    "run",
    "step",
]
