"""Tshirt model flux outputs as arrays."""

from __future__ import annotations

from dataclasses import dataclass, fields

import numpy as np


@dataclass(frozen=True)
class TshirtFluxes:
    """Tshirt model flux outputs as arrays.

    All arrays have the same length as the input forcing data.

    Attributes:
        precip: Water input rate [m/s].
        pet: Potential evapotranspiration rate [m/s].
        surface_runoff: Surface runoff after unit-hydrograph routing [m/s].
        groundwater_flow: Baseflow from the groundwater reservoir [m/s].
        soil_percolation_flow: Percolation from soil to groundwater [m/s].
        soil_lateral_flow: Lateral subsurface flow after the Nash cascade [m/s].
        et_loss: Evapotranspiration removed from soil during the step [m].
        direct_runoff: Surface runoff before unit-hydrograph routing [m/s].
        infiltration: Water entering the soil reservoir [m/s].
        soil_storage: Soil storage after timestep [m].
        groundwater_storage: Groundwater storage after timestep [m].
        nash_storage: Total Nash cascade storage after timestep [m].
        streamflow: surface_runoff + soil_lateral_flow + groundwater_flow [m/s].
        mass_balance_residual: Unaccounted water for the step [m].
    """

    # Inputs
    precip: np.ndarray
    pet: np.ndarray

    # Step fluxes
    surface_runoff: np.ndarray
    groundwater_flow: np.ndarray
    soil_percolation_flow: np.ndarray
    soil_lateral_flow: np.ndarray
    et_loss: np.ndarray
    direct_runoff: np.ndarray
    infiltration: np.ndarray

    # Storages
    soil_storage: np.ndarray
    groundwater_storage: np.ndarray
    nash_storage: np.ndarray

    # Final output
    streamflow: np.ndarray
    mass_balance_residual: np.ndarray

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        """Names of the output arrays in declaration order."""
        return tuple(f.name for f in fields(cls))

    def to_dict(self) -> dict[str, np.ndarray]:
        """Convert to dictionary of arrays.

        Returns:
            Dictionary mapping field names to their numpy array values.
        """
        return {field.name: getattr(self, field.name) for field in fields(self)}
