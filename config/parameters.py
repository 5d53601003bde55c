"""
Parameter definitions for the "Collapse of Civilizations" toy model.

A minimal system-dynamics model coupling land use, soil fertility,
food production and population dynamics with emigration feedback.
Reference values reproduce the classic Maya lab setup:
- 1.1 intensity (rates damped by ~10%)
- 110 kg of food per person per year
- Population doubling time of 408 years
- Simulation from 1000 years before present to 2000 years after, yearly steps
"""

import math
from dataclasses import dataclass, field

import numpy as np

from core.exceptions import ConfigurationError
from core.state import State


@dataclass(frozen=True)
class CollapseParams:
    """
    Flow coefficients, fixed for a whole run.

    intensity acts like an inertia/dilution factor: values > 1 slow down
    both deforestation and fertility losses. emigration_ratio is the share
    of per-capita food shortage converted into emigrants.
    """
    intensity: float = 1.1  # Damping of land-use flows [dimensionless]
    emigration_ratio: float = 0.01  # Share of shortage triggering emigration
    consumed_food_per_person: float = 110.0  # Demand [kg/person/year]
    natural_increase_rate: float = 2.0 ** (1.0 / 408.0) - 1.0  # [1/year]
    # Justification: population doubles in 408 years without feedback

    def check(self) -> None:
        """
        Raise ConfigurationError if the flow equations would be ill-defined.

        intensity divides both land-use flows and consumed_food_per_person
        divides emigration, so both must be strictly positive. An infinite
        intensity is allowed (it switches the land-use flows off).
        """
        if math.isnan(self.intensity) or self.intensity <= 0:
            raise ConfigurationError(
                f"intensity must be > 0, got {self.intensity!r}")
        if not math.isfinite(self.consumed_food_per_person) or self.consumed_food_per_person <= 0:
            raise ConfigurationError(
                f"consumed_food_per_person must be finite and > 0, got {self.consumed_food_per_person!r}")
        if not math.isfinite(self.emigration_ratio):
            raise ConfigurationError(
                f"emigration_ratio must be finite, got {self.emigration_ratio!r}")
        if not math.isfinite(self.natural_increase_rate):
            raise ConfigurationError(
                f"natural_increase_rate must be finite, got {self.natural_increase_rate!r}")

    @property
    def doubling_time(self) -> float:
        """Population doubling time without emigration [years]."""
        if self.natural_increase_rate <= 0:
            return np.inf
        return math.log(2.0) / math.log1p(self.natural_increase_rate)


@dataclass(frozen=True)
class InitialConditions:
    """
    State at t0.

    Units are such that fertility × area ≈ kg of food per year.
    """
    forest: float = 5000.0  # Area units
    agricultural_land: float = 8.0  # Area units
    fertility: float = 5000000.0  # Yield scalar
    population: float = 100000.0  # Persons

    def to_state(self) -> State:
        return State(self.forest, self.agricultural_land, self.fertility, self.population)


@dataclass
class NumericalParams:
    """
    Integration and simulation control parameters.

    Times are in years. A negative start simply means "years before
    present". One classical RK4 step is taken per grid interval.
    """
    t_start: float = -1000.0
    t_end: float = 2000.0
    dt: float = 1.0

    # Raise NumericDegeneracy instead of carrying NaN/Inf through the run
    strict: bool = False

    # Clamp each new state to >= 0 (off in the reference model)
    clamp_nonnegative: bool = False

    @property
    def times(self) -> np.ndarray:
        """Expanded time grid [years]"""
        return time_grid(self.t_start, self.t_end, self.dt)

    @property
    def n_steps(self) -> int:
        """Number of grid points, including the initial one"""
        return len(self.times)


def time_grid(start: float, stop: float, step: float) -> np.ndarray:
    """
    Expand a (from, to, by) triple into a time grid.

    Follows R's seq(from, to, by): the grid starts at `start`, advances by
    `step`, and includes `stop` when it lies on the grid (to within
    rounding). `step` must point from start towards stop.

    Args:
        start: First time point
        stop: Last requested time point
        step: Grid spacing (negative for a decreasing grid)

    Returns:
        1-D float array of time points
    """
    if not all(math.isfinite(v) for v in (start, stop, step)):
        raise ConfigurationError("time grid bounds and step must be finite")
    if step == 0:
        if start == stop:
            return np.array([float(start)])
        raise ConfigurationError("time grid step must be non-zero")

    span = (stop - start) / step
    if span < 0:
        raise ConfigurationError(
            f"step {step} has the wrong sign for a grid from {start} to {stop}")

    n_intervals = int(math.floor(span + 1e-10))
    return start + step * np.arange(n_intervals + 1, dtype=np.float64)


@dataclass
class ModelParams:
    """
    Complete model parameter set.

    Aggregates all parameter groups with validation.
    """
    collapse: CollapseParams = field(default_factory=CollapseParams)
    initial: InitialConditions = field(default_factory=InitialConditions)
    numerical: NumericalParams = field(default_factory=NumericalParams)

    def validate(self, verbose: bool = True) -> None:
        """
        Run all validation checks.

        Ensures:
        1. Flow equations are well defined (no zero divisors)
        2. Initial state is finite
        3. Time grid can be expanded

        Raises:
            ConfigurationError: on the first failing check
        """
        if verbose:
            print("Validating model parameters...")

        # 1. Flow coefficients
        self.collapse.check()
        if verbose:
            print(f"  ✓ Flows well defined: intensity={self.collapse.intensity}, "
                  f"food/person={self.collapse.consumed_food_per_person:.0f} kg/yr")

        # 2. Initial state
        state = self.initial.to_state()
        if not all(math.isfinite(v) for v in state):
            raise ConfigurationError(f"initial state must be finite, got {state}")
        if verbose:
            food = self.initial.fertility * self.initial.agricultural_land
            demand = self.collapse.consumed_food_per_person * self.initial.population
            print(f"  ✓ Initial food balance: {food:,.0f} produced vs {demand:,.0f} demanded")

        # 3. Time grid
        if self.numerical.dt <= 0:
            raise ConfigurationError(f"dt must be > 0, got {self.numerical.dt}")
        times = self.numerical.times
        if verbose:
            print(f"  ✓ Time grid: {len(times)} points from {times[0]:g} to {times[-1]:g}")
            print("✓ All parameter validations passed\n")

    def summary(self) -> str:
        """
        Generate parameter summary string.

        Returns:
            Formatted summary of key parameters
        """
        c = self.collapse
        ic = self.initial
        num = self.numerical
        lines = [
            "=" * 60,
            "COLLAPSE OF CIVILIZATIONS MODEL PARAMETERS",
            "=" * 60,
            "",
            "FLOWS:",
            f"  Intensity: {c.intensity:g}",
            f"  Emigration ratio: {c.emigration_ratio:.1%}",
            f"  Food demand: {c.consumed_food_per_person:.0f} kg/person/year",
            f"  Natural increase: {c.natural_increase_rate:.4%}/year "
            f"(doubling in {c.doubling_time:.0f} years)",
            "",
            "INITIAL STATE:",
            f"  Forest: {ic.forest:,.0f}",
            f"  Agricultural land: {ic.agricultural_land:,.0f}",
            f"  Fertility: {ic.fertility:,.0f}",
            f"  Population: {ic.population:,.0f} persons",
            "",
            "NUMERICAL:",
            f"  Method: RK4 (fixed step)",
            f"  Timestep: {num.dt:g} years",
            f"  Horizon: {num.t_start:g} to {num.t_end:g}",
            f"  Strict: {num.strict}",
            f"  Clamp to >= 0: {num.clamp_nonnegative}",
            "=" * 60,
        ]
        return "\n".join(lines)


# Convenience function for quick parameter loading
def load_default_params(verbose: bool = False) -> ModelParams:
    """
    Load default parameter set with validation.

    Returns:
        ModelParams: Validated parameter set
    """
    params = ModelParams()
    params.validate(verbose=verbose)
    return params


if __name__ == "__main__":
    print("Testing parameter module...\n")

    params = load_default_params(verbose=True)
    print(params.summary())

    print("\nTesting validation failure...")
    bad_params = ModelParams(collapse=CollapseParams(intensity=0.0))
    try:
        bad_params.validate()
    except ConfigurationError as e:
        print(f"  ✓ Caught invalid parameter: {e}")
