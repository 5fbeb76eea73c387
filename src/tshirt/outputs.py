"""Time-indexed container for model results.

ModelOutput is generic over the flux type so the per-step arrays of a model
travel together with the time axis and convert to a DataFrame in one call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

import numpy as np
import pandas as pd

__all__ = ["ModelOutput"]

# Type variable for flux types
F = TypeVar("F")


@dataclass(frozen=True)
class ModelOutput(Generic[F]):
    """Model output with time index.

    Attributes:
        time: Datetime array for each timestep.
        fluxes: Flux arrays, one value per timestep (type depends on the model).
    """

    time: np.ndarray
    fluxes: F

    @property
    def streamflow(self) -> np.ndarray:
        """Return the streamflow array from flux outputs [m/s]."""
        return self.fluxes.streamflow  # type: ignore[attr-defined, return-value]

    def __len__(self) -> int:
        """Return the number of timesteps."""
        return len(self.time)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to DataFrame with time index.

        Returns:
            DataFrame with all flux outputs as columns and time as index.
        """
        data = self.fluxes.to_dict()  # type: ignore[attr-defined]

        df = pd.DataFrame(data, index=self.time)
        df.index.name = "time"

        return df
