"""
Trajectory: the output of one integration run.

Stores one row per time-grid point:
    time, 4 state values, 7 auxiliary values

Arrays are made read-only on construction; a Trajectory is never
modified after the integrator returns it.
"""

from dataclasses import dataclass
from typing import NamedTuple

import numpy as np
import pandas as pd

from core.exceptions import ConfigurationError
from core.state import (State, AuxiliaryFrame, STATE_NAMES, AUXILIARY_NAMES,
                        COLUMNS, N_STATE, N_AUXILIARY)


class TrajectoryPoint(NamedTuple):
    time: float
    state: State
    auxiliaries: AuxiliaryFrame


@dataclass(frozen=True, eq=False)
class Trajectory:
    """
    Time series of states and diagnostics.

    Attributes:
        times: Grid points [n]
        states: State vectors [n, 4]
        auxiliaries: Auxiliary vectors [n, 7]
    """
    times: np.ndarray
    states: np.ndarray
    auxiliaries: np.ndarray

    def __post_init__(self):
        n = len(self.times)
        if self.states.shape != (n, N_STATE):
            raise ConfigurationError(f"states must be ({n}, {N_STATE}), got {self.states.shape}")
        if self.auxiliaries.shape != (n, N_AUXILIARY):
            raise ConfigurationError(
                f"auxiliaries must be ({n}, {N_AUXILIARY}), got {self.auxiliaries.shape}")
        for arr in (self.times, self.states, self.auxiliaries):
            arr.setflags(write=False)

    def __len__(self) -> int:
        return len(self.times)

    def __getitem__(self, i: int) -> TrajectoryPoint:
        return TrajectoryPoint(
            float(self.times[i]),
            State.from_array(self.states[i].tolist()),
            AuxiliaryFrame(*self.auxiliaries[i].tolist()),
        )

    def __iter__(self):
        for i in range(len(self)):
            yield self[i]

    def column(self, name: str) -> np.ndarray:
        """Series for any output column ('time', a state or an auxiliary name)."""
        if name == 'time':
            return self.times
        if name in STATE_NAMES:
            return self.states[:, STATE_NAMES.index(name)]
        if name in AUXILIARY_NAMES:
            return self.auxiliaries[:, AUXILIARY_NAMES.index(name)]
        raise KeyError(f"unknown column {name!r}; expected one of {COLUMNS}")

    def __getattr__(self, name):
        # Allows traj.population, traj.gap, ...
        if name in STATE_NAMES or name in AUXILIARY_NAMES:
            return self.column(name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    @property
    def initial_state(self) -> State:
        return self[0].state

    @property
    def final_state(self) -> State:
        return self[-1].state

    def is_finite(self) -> bool:
        """True if no NaN/Inf appears anywhere in the run."""
        return bool(np.all(np.isfinite(self.states)) and np.all(np.isfinite(self.auxiliaries)))

    def to_array(self) -> np.ndarray:
        """All columns stacked as an [n, 12] array, in COLUMNS order."""
        return np.column_stack([self.times, self.states, self.auxiliaries])

    def to_dataframe(self) -> pd.DataFrame:
        """
        Row-per-time-point table.

        Columns, in order:
            time, forest, agricultural_land, fertility, population,
            deforestation, fertility_losses, food_produced, demand_for_food,
            gap, emigration, population_natural_increase
        """
        return pd.DataFrame(self.to_array(), columns=list(COLUMNS))
