"""Water-balance cross-check for a single Tshirt timestep.

The check is independent of the engine's own bookkeeping: it compares the
water entering the column with the change in storage plus everything that
left it during the step.

    input * dt = d(soil) + d(groundwater) + sum(d(cascade))
                 + (direct_runoff + lateral_flow + groundwater_flow) * dt
                 + et_loss

Direct runoff (before the unit hydrograph) is used because the hydrograph
buffer holds water across steps. Percolation is internal to the column.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from ..errors import ErrorCode
from .types import Fluxes, Parameters, State

logger = logging.getLogger(__name__)

# Tolerance policy: |residual| <= ABS_TOL + REL_TOL * gross water moved
DEFAULT_REL_TOL: float = 1e-9
DEFAULT_ABS_TOL: float = 1e-12  # [m]


@dataclass(frozen=True)
class MassBalanceResult:
    """Result of a mass-balance check.

    Attributes:
        status: NO_ERROR or MASS_BALANCE_ERROR.
        residual: Unaccounted water for the step [m]; positive means water was lost.
        scale: Gross water volume moved during the step [m], used for the relative tolerance.
    """

    status: ErrorCode
    residual: float
    scale: float

    @property
    def ok(self) -> bool:
        return self.status.ok


def mass_check(
    params: Parameters,
    current_state: State,
    input_flux: float,
    next_state: State,
    fluxes: Fluxes,
    dt: float,
    rel_tol: float = DEFAULT_REL_TOL,
    abs_tol: float = DEFAULT_ABS_TOL,
) -> MassBalanceResult:
    """Verify that a timestep conserved water.

    Advisory only: nothing is raised or corrected, and neither state is modified.

    Args:
        params: Parameter set used for the step.
        current_state: State before the step.
        input_flux: Water input rate for the step [m/s].
        next_state: State after the step.
        fluxes: Fluxes computed for the step.
        dt: Step length [s].
        rel_tol: Relative tolerance on the gross water moved.
        abs_tol: Absolute tolerance [m].

    Returns:
        MassBalanceResult with MASS_BALANCE_ERROR when the residual exceeds tolerance.
    """
    if current_state.n_stages != params.nash_n or next_state.n_stages != params.nash_n:
        msg = (
            f"States have {current_state.n_stages} and {next_state.n_stages} cascade stages, "
            f"expected {params.nash_n}"
        )
        raise ValueError(msg)

    inflow = input_flux * dt
    delta_soil = next_state.soil_storage - current_state.soil_storage
    delta_groundwater = next_state.groundwater_storage - current_state.groundwater_storage
    delta_cascade = float((next_state.nash_storages - current_state.nash_storages).sum())
    outflow = (fluxes.direct_runoff + fluxes.soil_lateral_flow + fluxes.groundwater_flow) * dt + fluxes.et_loss

    residual = inflow - (delta_soil + delta_groundwater + delta_cascade) - outflow
    scale = (
        abs(inflow)
        + abs(outflow)
        + fluxes.soil_percolation_flow * dt
        + current_state.total_storage
        + next_state.total_storage
    )

    if not math.isfinite(residual) or abs(residual) > abs_tol + rel_tol * scale:
        logger.warning("Mass balance residual %.3e m exceeds tolerance (scale %.3e m)", residual, scale)
        return MassBalanceResult(status=ErrorCode.MASS_BALANCE_ERROR, residual=residual, scale=scale)

    return MassBalanceResult(status=ErrorCode.NO_ERROR, residual=residual, scale=scale)
