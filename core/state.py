"""
State and auxiliary records for the collapse model.

State vector:
    [forest, agricultural_land, fertility, population]

Auxiliary (diagnostic) variables, in output column order:
    [deforestation, fertility_losses, food_produced, demand_for_food,
     gap, emigration, population_natural_increase]

Both are NamedTuples so they unpack like the plain tuples used elsewhere
and convert to numpy vectors with np.asarray().
"""

from typing import NamedTuple

import numpy as np


class State(NamedTuple):
    """
    The four integrated quantities.

    Attributes:
        forest: Forested area [area units]
        agricultural_land: Cropland area [area units]
        fertility: Yield per unit area [kg/area/year]
        population: Population [persons]
    """
    forest: float
    agricultural_land: float
    fertility: float
    population: float

    @classmethod
    def from_array(cls, values) -> "State":
        """Build a State from any length-4 sequence."""
        forest, agricultural_land, fertility, population = values
        return cls(forest, agricultural_land, fertility, population)


class AuxiliaryFrame(NamedTuple):
    """Diagnostic quantities computed alongside the derivatives."""
    deforestation: float
    fertility_losses: float
    food_produced: float
    demand_for_food: float
    gap: float
    emigration: float
    population_natural_increase: float


class Evaluation(NamedTuple):
    """Result of one model evaluation: derivatives plus diagnostics."""
    derivatives: State
    auxiliaries: AuxiliaryFrame


STATE_NAMES = State._fields
AUXILIARY_NAMES = AuxiliaryFrame._fields
COLUMNS = ('time',) + STATE_NAMES + AUXILIARY_NAMES

N_STATE = len(STATE_NAMES)
N_AUXILIARY = len(AUXILIARY_NAMES)


def as_vector(state) -> np.ndarray:
    """State (or any length-4 sequence) as a float64 vector."""
    return np.asarray(state, dtype=np.float64)
