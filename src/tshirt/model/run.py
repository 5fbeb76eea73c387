"""Tshirt model orchestration.

This module provides the entry points for running the Tshirt model:
- build_reservoirs(): Construct the soil, groundwater and Nash cascade reservoirs
- step(): Execute a single timestep without retained state
- TshirtModel: Stateful model instance that owns its reservoirs across steps
- run(): Execute the model over a forcing timeseries
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from ..errors import ConfigurationError, ErrorCode, NumericalError
from ..giuh import GIUHKernel
from ..outputs import ModelOutput
from ..reservoir import ExponentialOutlet, NonlinearReservoir, ReservoirOutlet
from .mass_balance import MassBalanceResult, mass_check
from .outputs import TshirtFluxes
from .processes import evapotranspiration_loss, partition_schaake, soil_field_capacity_storage
from .types import EvapotranspirationConfig, Fluxes, Parameters, State, StepResult

if TYPE_CHECKING:
    from ..inputs import ForcingData

logger = logging.getLogger(__name__)

# Outlet positions in the soil reservoir
LATERAL_FLOW_OUTLET: int = 0
PERCOLATION_OUTLET: int = 1


@dataclass
class TshirtReservoirs:
    """Reservoirs driven by the timestep engine.

    Attributes:
        soil: Two-outlet soil reservoir (lateral flow, percolation).
        groundwater: Single exponential-outlet groundwater reservoir.
        nash_cascade: Single-outlet reservoirs delaying lateral flow, in order.
        field_capacity: Activation threshold the soil and cascade outlets were built with [m].
    """

    soil: NonlinearReservoir
    groundwater: NonlinearReservoir
    nash_cascade: list[NonlinearReservoir]
    field_capacity: float

    def load(self, state: State) -> None:
        """Set every reservoir storage from a state."""
        if state.n_stages != len(self.nash_cascade):
            msg = f"State has {state.n_stages} cascade storages, reservoirs have {len(self.nash_cascade)}"
            raise ConfigurationError(msg)
        self.soil.storage = state.soil_storage
        self.groundwater.storage = state.groundwater_storage
        for reservoir, storage in zip(self.nash_cascade, state.nash_storages):
            reservoir.storage = float(storage)

    def matches(self, state: State) -> bool:
        """True when reservoir storages equal the state's storages."""
        return (
            self.soil.storage == state.soil_storage
            and self.groundwater.storage == state.groundwater_storage
            and len(self.nash_cascade) == state.n_stages
            and all(r.storage == s for r, s in zip(self.nash_cascade, state.nash_storages))
        )


def build_reservoirs(params: Parameters, state: State, field_capacity: float | None = None) -> TshirtReservoirs:
    """Construct the Tshirt reservoirs for a parameter set and state.

    Outlet configuration:
    - Lateral flow: klf, exponent 1, threshold Sfc, cap max_lateral_flow
    - Percolation: satdk * slope, exponent 1, threshold Sfc, cap satdk
    - Groundwater: cgw, exponent expon, threshold 0, cap cgw * (e^expon - 1)
    - Cascade stages: kn, exponent 1, threshold Sfc, cap max_lateral_flow

    Args:
        params: Model parameters.
        state: State providing initial storages.
        field_capacity: Field-capacity storage [m]. Computed from params if None.

    Returns:
        Freshly constructed reservoirs.

    Raises:
        ConfigurationError: If the state does not fit the parameters.
    """
    state.validate_for(params)
    sfc = soil_field_capacity_storage(params) if field_capacity is None else field_capacity

    # Order must match LATERAL_FLOW_OUTLET and PERCOLATION_OUTLET
    soil_outlets = [
        ReservoirOutlet(
            coefficient=params.klf,
            exponent=1.0,
            activation_threshold=sfc,
            max_velocity=params.max_lateral_flow,
        ),
        # Percolation can never exceed the saturated conductivity
        ReservoirOutlet(
            coefficient=params.satdk * params.slope,
            exponent=1.0,
            activation_threshold=sfc,
            max_velocity=params.satdk,
        ),
    ]
    soil = NonlinearReservoir(0.0, params.max_soil_storage, state.soil_storage, soil_outlets)

    # Velocity law value when storage reaches its maximum
    max_groundwater_velocity = params.cgw * (math.exp(params.expon) - 1.0)
    groundwater = NonlinearReservoir(
        0.0,
        params.max_groundwater_storage,
        state.groundwater_storage,
        [ExponentialOutlet(params.cgw, params.expon, 0.0, max_groundwater_velocity)],
    )

    nash_outlet = ReservoirOutlet(params.kn, 1.0, sfc, params.max_lateral_flow)
    nash_cascade = [
        NonlinearReservoir(0.0, params.max_soil_storage, float(storage), [nash_outlet])
        for storage in state.nash_storages
    ]

    return TshirtReservoirs(soil=soil, groundwater=groundwater, nash_cascade=nash_cascade, field_capacity=sfc)


def _validate_step_inputs(dt: float, input_flux: float, giuh: GIUHKernel) -> None:
    """Reject step inputs before any reservoir is advanced."""
    if not math.isfinite(dt) or dt <= 0.0:
        msg = f"dt must be finite and positive, got {dt}"
        raise ValueError(msg)
    if not math.isfinite(input_flux) or input_flux < 0.0:
        msg = f"input_flux must be finite and non-negative, got {input_flux}"
        raise ValueError(msg)
    giuh.check_interval(dt)


def _advance_or_restore(
    dt: float,
    params: Parameters,
    state: State,
    input_flux: float,
    et_config: EvapotranspirationConfig,
    giuh: GIUHKernel,
    reservoirs: TshirtReservoirs,
) -> StepResult:
    """Run _advance, reloading `state` into the reservoirs unless the step succeeds."""
    try:
        result = _advance(dt, params, state, input_flux, et_config, giuh, reservoirs)
    except Exception:
        reservoirs.load(state)
        raise
    if not result.ok:
        reservoirs.load(state)
    return result


def _advance(
    dt: float,
    params: Parameters,
    state: State,
    input_flux: float,
    et_config: EvapotranspirationConfig,
    giuh: GIUHKernel,
    reservoirs: TshirtReservoirs,
) -> StepResult:
    """Advance reservoirs by one timestep and assemble the result.

    Reservoirs are mutated in place; `state` is only read.
    """
    # 1. Soil column moisture deficit
    deficit = params.max_soil_storage - state.soil_storage

    # 2. Schaake partitioning (surface runoff not yet routed through the GIUH)
    direct_runoff, infiltration = partition_schaake(dt, params.schaake_constant, deficit, input_flux)

    # 3. Field capacity
    sfc = soil_field_capacity_storage(params)
    if sfc != reservoirs.field_capacity:
        msg = f"Reservoirs built for field capacity {reservoirs.field_capacity}, parameters give {sfc}"
        raise ConfigurationError(msg)

    # 4. Subsurface soil reservoir
    _, soil_excess = reservoirs.soil.respond(infiltration, dt)
    lateral_flow = reservoirs.soil.velocity_for_outlet(LATERAL_FLOW_OUTLET)
    percolation_flow = reservoirs.soil.velocity_for_outlet(PERCOLATION_OUTLET)

    # 5. Evapotranspiration from the routed soil storage
    routed_soil_storage = reservoirs.soil.storage
    et_loss = min(max(evapotranspiration_loss(routed_soil_storage, et_config), 0.0), routed_soil_storage)
    new_soil_storage = max(routed_soil_storage - et_loss, 0.0)
    if math.isfinite(new_soil_storage):
        reservoirs.soil.storage = new_soil_storage

    # 6. Nash cascade on lateral flow; overflow from the soil and every stage rejoins at the end
    excess = soil_excess
    for reservoir in reservoirs.nash_cascade:
        lateral_flow, stage_excess = reservoir.respond(lateral_flow, dt)
        excess += stage_excess
    lateral_flow += excess / dt

    # 7. Groundwater reservoir on percolation; overflow leaves as baseflow
    groundwater_flow, groundwater_excess = reservoirs.groundwater.respond(percolation_flow, dt)
    groundwater_flow += groundwater_excess / dt

    # 8. Unit hydrograph on surface runoff
    surface_runoff = giuh.convolve(dt, direct_runoff)

    # 9. Fluxes
    fluxes = Fluxes(
        surface_runoff=surface_runoff,
        groundwater_flow=groundwater_flow,
        soil_percolation_flow=percolation_flow,
        soil_lateral_flow=lateral_flow,
        et_loss=et_loss,
        direct_runoff=direct_runoff,
        infiltration=infiltration,
    )

    # 10. New state
    new_state = State(
        soil_storage=new_soil_storage,
        groundwater_storage=reservoirs.groundwater.storage,
        nash_storages=np.array([r.storage for r in reservoirs.nash_cascade], dtype=np.float64),
    )

    if not (fluxes.is_finite() and np.all(np.isfinite(np.asarray(new_state)))):
        logger.error("Non-finite fluxes or storages in timestep (input_flux=%.6g, dt=%.6g)", input_flux, dt)
        return StepResult(status=ErrorCode.NUMERICAL_ERROR, state=state.copy(), fluxes=fluxes)

    logger.debug(
        "Step dt=%.0f s: runoff=%.3e lateral=%.3e perc=%.3e gw=%.3e et=%.3e excess=%.3e",
        dt,
        surface_runoff,
        lateral_flow,
        percolation_flow,
        groundwater_flow,
        et_loss,
        excess + groundwater_excess,
    )

    return StepResult(status=ErrorCode.NO_ERROR, state=new_state, fluxes=fluxes)


def step(
    dt: float,
    params: Parameters,
    state: State,
    input_flux: float,
    et_config: EvapotranspirationConfig,
    giuh: GIUHKernel | None = None,
    reservoirs: TshirtReservoirs | None = None,
) -> StepResult:
    """Execute one timestep of the Tshirt model.

    Stages, in order:
    1. Soil moisture deficit
    2. Schaake partitioning into surface runoff and infiltration
    3. Field-capacity storage (Sfc)
    4. Soil reservoir routing into lateral flow and percolation
    5. ET loss from the routed soil storage
    6. Nash cascade on lateral flow, with accumulated overflow added back
    7. Groundwater reservoir routing of percolation
    8. GIUH convolution of surface runoff
    9-10. Assemble fluxes and new state

    Args:
        dt: Timestep length [s].
        params: Model parameters.
        state: State at the start of the step. Never modified.
        input_flux: Water input rate [m/s].
        et_config: ET forcing for the step.
        giuh: Unit-hydrograph operator, advanced in place. A pass-through
            kernel is used if None.
        reservoirs: Reservoirs to advance in place. Built from `state` if None.
            Reloaded from `state` when the step fails.

    Returns:
        StepResult holding the status, the new state and the fluxes.

    Raises:
        ValueError: If dt or input_flux are out of domain, or dt does not
            match the GIUH interval.
        ConfigurationError: If the state or reservoirs do not fit the parameters.
    """
    if giuh is None:
        giuh = GIUHKernel.identity()

    _validate_step_inputs(dt, input_flux, giuh)

    if reservoirs is None:
        reservoirs = build_reservoirs(params, state)
    elif not reservoirs.matches(state):
        msg = "Reservoir storages do not match the supplied state"
        raise ConfigurationError(msg)

    return _advance_or_restore(dt, params, state, input_flux, et_config, giuh, reservoirs)


class TshirtModel:
    """Stateful Tshirt model instance.

    Owns its reservoirs and rebuilds them only when the parameters or the
    field-capacity threshold change. Each call to run() moves the current
    state to previous_state and stores the newly computed one. Not safe for
    concurrent use; independent catchments need independent instances.

    Args:
        params: Model parameters.
        initial_state: Starting state. An empty state is used if None.
        giuh: Unit-hydrograph operator for surface runoff. Pass-through if None.
    """

    def __init__(
        self,
        params: Parameters,
        initial_state: State | None = None,
        giuh: GIUHKernel | None = None,
    ) -> None:
        state = State.initialize(params) if initial_state is None else initial_state.copy()
        self._params = params
        self._reservoirs = build_reservoirs(params, state)
        self._previous_state = state
        self._current_state = state.copy()
        self._giuh = GIUHKernel.identity() if giuh is None else giuh
        self._fluxes: Fluxes | None = None
        self._mass_balance: MassBalanceResult | None = None

    @property
    def params(self) -> Parameters:
        return self._params

    @params.setter
    def params(self, params: Parameters) -> None:
        """Swap parameters, rebuilding reservoirs from the current state."""
        self._reservoirs = build_reservoirs(params, self._current_state)
        self._params = params

    @property
    def previous_state(self) -> State:
        return self._previous_state.copy()

    @property
    def current_state(self) -> State:
        return self._current_state.copy()

    @property
    def fluxes(self) -> Fluxes | None:
        """Fluxes from the most recent run() call."""
        return self._fluxes

    @property
    def mass_balance(self) -> MassBalanceResult | None:
        """Mass-balance result from the most recent checked run() call."""
        return self._mass_balance

    @property
    def giuh(self) -> GIUHKernel:
        return self._giuh

    @property
    def field_capacity(self) -> float:
        """Field-capacity storage the reservoirs are built with [m]."""
        return self._reservoirs.field_capacity

    def run(
        self,
        dt: float,
        input_flux: float,
        et_config: EvapotranspirationConfig,
        check_mass_balance: bool = False,
    ) -> ErrorCode:
        """Run the model forward one timestep.

        Args:
            dt: Timestep length [s].
            input_flux: Water input rate [m/s].
            et_config: ET forcing for the step.
            check_mass_balance: Verify water conservation after the step.

        Returns:
            NO_ERROR, NUMERICAL_ERROR (state left unchanged), or
            MASS_BALANCE_ERROR when checking is enabled and the step leaks water.

        Raises:
            ValueError: If dt or input_flux are out of domain, or dt does not
                match the GIUH interval. The model state is left unchanged.
        """
        _validate_step_inputs(dt, input_flux, self._giuh)

        sfc = soil_field_capacity_storage(self._params)
        if sfc != self._reservoirs.field_capacity:
            logger.debug("Field capacity changed to %.6g m, rebuilding reservoirs", sfc)
            self._reservoirs = build_reservoirs(self._params, self._current_state, sfc)

        start = self._current_state
        result = _advance_or_restore(dt, self._params, start, input_flux, et_config, self._giuh, self._reservoirs)
        self._fluxes = result.fluxes

        if not result.ok:
            return result.status

        self._previous_state = start
        self._current_state = result.state

        if check_mass_balance:
            self._mass_balance = mass_check(
                self._params, self._previous_state, input_flux, self._current_state, result.fluxes, dt
            )
            return self._mass_balance.status

        return ErrorCode.NO_ERROR


def run(
    params: Parameters,
    forcing: ForcingData,
    initial_state: State | None = None,
    giuh: GIUHKernel | None = None,
) -> ModelOutput[TshirtFluxes]:
    """Run the Tshirt model over a timeseries.

    Args:
        params: Model parameters.
        forcing: Input flux and PET rates with a fixed timestep.
        initial_state: Initial model state. If None, uses State.initialize(params).
        giuh: Unit-hydrograph operator for surface runoff. Pass-through if None.

    Returns:
        ModelOutput containing TshirtFluxes arrays. Convert to DataFrame via
        result.to_dataframe().

    Raises:
        NumericalError: If a timestep produces non-finite values.

    Example:
        >>> result = run(params, forcing)
        >>> result.streamflow
        array([...])
    """
    dt = forcing.dt
    model = TshirtModel(params, initial_state, giuh)
    wilting_point = params.wilting_point_storage
    field_capacity = model.field_capacity

    n = len(forcing)
    names = TshirtFluxes.field_names()
    outputs = {name: np.zeros(n, dtype=np.float64) for name in names}

    for t in range(n):
        precip = float(forcing.precip[t])
        pet = float(forcing.pet[t])
        et_config = EvapotranspirationConfig(
            potential_et=pet * dt,
            wilting_point_storage=wilting_point,
            field_capacity_storage=field_capacity,
        )

        status = model.run(dt, precip, et_config, check_mass_balance=True)
        if status is ErrorCode.NUMERICAL_ERROR:
            msg = f"Non-finite result at timestep {t} ({forcing.time[t]})"
            raise NumericalError(msg)

        fluxes = model.fluxes
        state = model.current_state
        assert fluxes is not None and model.mass_balance is not None

        outputs["precip"][t] = precip
        outputs["pet"][t] = pet
        for key, value in fluxes.to_dict().items():
            outputs[key][t] = value
        outputs["soil_storage"][t] = state.soil_storage
        outputs["groundwater_storage"][t] = state.groundwater_storage
        outputs["nash_storage"][t] = float(state.nash_storages.sum())
        outputs["streamflow"][t] = fluxes.surface_runoff + fluxes.soil_lateral_flow + fluxes.groundwater_flow
        outputs["mass_balance_residual"][t] = model.mass_balance.residual

    return ModelOutput(time=forcing.time, fluxes=TshirtFluxes(**outputs))
