"""Input data structures for the Tshirt model.

This module defines validated input containers:
- ForcingData: Time series of water input and potential ET rates
"""

from __future__ import annotations

import logging

import numpy as np
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

logger = logging.getLogger(__name__)


def _as_rate_array(name: str, v: np.ndarray) -> np.ndarray:
    arr = np.asarray(v, dtype=np.float64)
    if arr.ndim != 1:
        msg = f"{name} array must be 1D, got {arr.ndim}D"
        raise ValueError(msg)
    if np.any(~np.isfinite(arr)):
        msg = f"{name} array contains NaN or infinite values"
        raise ValueError(msg)
    if np.any(arr < 0.0):
        msg = f"{name} array contains negative values"
        raise ValueError(msg)
    return arr


class ForcingData(BaseModel):
    """Validated forcing data for the Tshirt model.

    All arrays must be 1D with the same length. NaN, infinite and negative
    values are rejected. Numeric arrays are coerced to float64.

    Attributes:
        time: Datetime array for each timestep (datetime64).
        precip: Water input rate reaching the soil surface [m/s].
        pet: Potential evapotranspiration rate [m/s].
        timestep_seconds: Step length [s]. Inferred from `time` if None.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    time: np.ndarray  # datetime64
    precip: np.ndarray  # [m/s]
    pet: np.ndarray  # [m/s]
    timestep_seconds: float | None = None  # [s]

    @field_validator("time", mode="before")
    @classmethod
    def validate_time(cls, v: np.ndarray) -> np.ndarray:
        """Validate time array: must be 1D and coerced to datetime64."""
        arr = np.asarray(v)
        if arr.ndim != 1:
            msg = f"time array must be 1D, got {arr.ndim}D"
            raise ValueError(msg)
        return arr.astype("datetime64[ns]")

    @field_validator("precip", mode="before")
    @classmethod
    def validate_precip(cls, v: np.ndarray) -> np.ndarray:
        """Validate precip array: 1D float64, finite and non-negative."""
        return _as_rate_array("precip", v)

    @field_validator("pet", mode="before")
    @classmethod
    def validate_pet(cls, v: np.ndarray) -> np.ndarray:
        """Validate pet array: 1D float64, finite and non-negative."""
        return _as_rate_array("pet", v)

    @field_validator("timestep_seconds")
    @classmethod
    def validate_timestep(cls, v: float | None) -> float | None:
        if v is not None and not (np.isfinite(v) and v > 0.0):
            msg = f"timestep_seconds must be positive, got {v}"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_array_lengths(self) -> ForcingData:
        """Ensure all arrays have the same length and a timestep is known."""
        n = len(self.time)
        if len(self.precip) != n:
            msg = f"precip length {len(self.precip)} does not match time length {n}"
            raise ValueError(msg)
        if len(self.pet) != n:
            msg = f"pet length {len(self.pet)} does not match time length {n}"
            raise ValueError(msg)
        if self.timestep_seconds is None:
            if n < 2:
                msg = "timestep_seconds is required when time has fewer than two entries"
                raise ValueError(msg)
            spacing = np.diff(self.time).astype("timedelta64[ns]").astype(np.int64)
            if np.any(spacing <= 0):
                msg = "time array must be strictly increasing"
                raise ValueError(msg)
            if np.any(spacing != spacing[0]):
                logger.warning("Irregular time spacing; using the median step as the model timestep")
        return self

    @property
    def dt(self) -> float:
        """Model timestep [s]."""
        if self.timestep_seconds is not None:
            return float(self.timestep_seconds)
        spacing = np.diff(self.time).astype("timedelta64[ns]").astype(np.int64)
        return float(np.median(spacing)) / 1e9

    def __len__(self) -> int:
        """Return the number of timesteps."""
        return len(self.time)
