"""Tests for the single-step water-balance check."""

import logging

import numpy as np
import pytest

from tshirt import ErrorCode
from tshirt.model import Fluxes, Parameters, State, mass_check


@pytest.fixture
def params() -> Parameters:
    return Parameters(
        maxsmc=0.439,
        wltsmc=0.066,
        satdk=1e-6,
        satpsi=0.355,
        slope=0.01,
        b=4.05,
        multiplier=0.0,
        alpha_fc=0.33,
        klf=0.01,
        kn=0.03,
        nash_n=2,
        cgw=0.01,
        expon=5.0,
        max_groundwater_storage=0.05,
    )


@pytest.fixture
def current_state() -> State:
    return State(soil_storage=0.1, groundwater_storage=0.01, nash_storages=[0.0, 0.0])


@pytest.fixture
def next_state() -> State:
    # Storage gain of 0.022 m
    return State(soil_storage=0.12, groundwater_storage=0.011, nash_storages=[0.001, 0.0])


class TestMassCheck:
    """Tests for mass_check.

    dt = 100 s and input 1e-3 m/s give 0.1 m of inflow; the balanced fluxes
    remove 0.078 m, matching the 0.022 m storage gain.
    """

    def test_balanced_step_passes(self, params: Parameters, current_state: State, next_state: State) -> None:
        fluxes = Fluxes(
            surface_runoff=5e-4,
            groundwater_flow=1e-4,
            soil_percolation_flow=2e-4,
            soil_lateral_flow=1e-4,
            et_loss=0.008,
            direct_runoff=5e-4,
        )

        result = mass_check(params, current_state, 1e-3, next_state, fluxes, 100.0)

        assert result.ok
        assert result.status is ErrorCode.NO_ERROR
        assert result.residual == pytest.approx(0.0, abs=1e-15)

    def test_uses_direct_runoff_not_routed_runoff(
        self, params: Parameters, current_state: State, next_state: State
    ) -> None:
        """Water held in the unit-hydrograph buffer does not count as a leak."""
        fluxes = Fluxes(
            surface_runoff=1e-4,
            groundwater_flow=1e-4,
            soil_percolation_flow=0.0,
            soil_lateral_flow=1e-4,
            et_loss=0.008,
            direct_runoff=5e-4,
        )

        assert mass_check(params, current_state, 1e-3, next_state, fluxes, 100.0).ok

    def test_leak_is_reported(
        self,
        params: Parameters,
        current_state: State,
        next_state: State,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        fluxes = Fluxes(
            surface_runoff=5e-4,
            groundwater_flow=1e-4,
            soil_percolation_flow=0.0,
            soil_lateral_flow=1e-4,
            et_loss=0.009,
            direct_runoff=5e-4,
        )

        with caplog.at_level(logging.WARNING, logger="tshirt.model.mass_balance"):
            result = mass_check(params, current_state, 1e-3, next_state, fluxes, 100.0)

        assert result.status is ErrorCode.MASS_BALANCE_ERROR
        assert result.residual == pytest.approx(-0.001)
        assert "Mass balance residual" in caplog.text

    def test_tolerance_is_configurable(self, params: Parameters, current_state: State, next_state: State) -> None:
        fluxes = Fluxes(
            surface_runoff=5e-4,
            groundwater_flow=1e-4,
            soil_percolation_flow=0.0,
            soil_lateral_flow=1e-4,
            et_loss=0.008001,
            direct_runoff=5e-4,
        )

        assert not mass_check(params, current_state, 1e-3, next_state, fluxes, 100.0).ok
        assert mass_check(params, current_state, 1e-3, next_state, fluxes, 100.0, rel_tol=1e-3).ok

    def test_does_not_modify_states(self, params: Parameters, current_state: State, next_state: State) -> None:
        before = (np.asarray(current_state).copy(), np.asarray(next_state).copy())
        fluxes = Fluxes(0.0, 0.0, 0.0, 0.0, 1.0)

        mass_check(params, current_state, 0.0, next_state, fluxes, 100.0)

        np.testing.assert_array_equal(np.asarray(current_state), before[0])
        np.testing.assert_array_equal(np.asarray(next_state), before[1])

    def test_rejects_stage_mismatch(self, params: Parameters, current_state: State) -> None:
        short = State(0.1, 0.01, [0.0])

        with pytest.raises(ValueError, match="cascade stages"):
            mass_check(params, current_state, 0.0, short, Fluxes(0.0, 0.0, 0.0, 0.0, 0.0), 100.0)
