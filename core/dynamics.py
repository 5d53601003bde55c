"""
Dynamics module: flows of the "Collapse of Civilizations" model.

Couples land use, soil fertility, food production and population:

    food_produced   = fertility × agricultural_land
    demand_for_food = consumed_food_per_person × population
    gap             = demand_for_food - food_produced   (> 0 ⇒ shortage)

Flows (per year):
    deforestation:  cropland cleared to close the food gap, bounded by
                    forest/4 per year, damped by intensity
    fertility_losses: degradation growing nonlinearly with cropland
                    pressure relative to forest, damped by intensity
    natural increase = population × natural_increase_rate
    emigration     = (gap / consumed_food_per_person) × emigration_ratio

State derivatives:
    d(forest)/dt            = -deforestation
    d(agricultural_land)/dt =  deforestation
    d(fertility)/dt         = -fertility_losses
    d(population)/dt        =  natural increase - emigration

No non-negativity clamp is applied here: a food surplus makes
deforestation negative (forest regrows), and a vanishing forest makes
the fertility-loss ratio blow up. Both are part of the model.
"""

import math

import numpy as np

from config.parameters import CollapseParams
from core.exceptions import NumericDegeneracy
from core.state import State, AuxiliaryFrame, Evaluation, as_vector


def food_produced(fertility, agricultural_land):
    """Food supply [kg/year]."""
    return fertility * agricultural_land


def demand_for_food(population, consumed_food_per_person):
    """Food demand [kg/year]."""
    return consumed_food_per_person * population


def food_gap(demand, produced):
    """Demand minus supply. Positive means shortage, negative surplus."""
    return demand - produced


def deforestation_rate(gap, fertility, forest, intensity):
    """
    Cropland conversion rate [area/year].

    Formula:
        min(gap / max(fertility, 1), forest / 4) / intensity

    gap / fertility is the new land needed to close the food gap; the
    max(·, 1) guard keeps it finite when fertility collapses. At most a
    quarter of the remaining forest can be cleared per year. The minimum
    is taken first, then damped by intensity. NaN propagates through
    both min and max.
    """
    needed = np.float64(gap) / np.maximum(np.float64(fertility), 1.0)
    cap = np.float64(forest) / 4.0
    return np.minimum(needed, cap) / intensity


def fertility_loss_rate(fertility, agricultural_land, forest, intensity):
    """
    Fertility degradation rate [yield/year].

    Formula:
        fertility × min(2, (agricultural_land / forest)^1.5) / intensity

    The ratio is unguarded: forest == 0 gives an infinite ratio (capped
    at 2), or NaN when agricultural_land is also 0. A negative ratio
    raised to 1.5 is NaN.
    """
    pressure = (np.float64(agricultural_land) / np.float64(forest)) ** 1.5
    return np.float64(fertility) * np.minimum(2.0, pressure) / intensity


def natural_increase(population, natural_increase_rate):
    """Births minus deaths [persons/year]."""
    return population * natural_increase_rate


def emigration_rate(gap, consumed_food_per_person, emigration_ratio):
    """
    Emigration driven by per-capita shortage [persons/year].

    (gap / consumed_food_per_person) is the number of people who cannot
    be fed; emigration_ratio of them leave each year. A surplus gives
    negative emigration (immigration).
    """
    return (gap / consumed_food_per_person) * emigration_ratio


class CollapseDynamics:
    """
    Derivative model for the four-stock system.

    State vector:
        [forest, agricultural_land, fertility, population]

    evaluate() is pure: the same (t, state, params) always gives the same
    result, and parameters are passed on every call rather than stored.
    """

    def __init__(self, strict: bool = False):
        """
        Args:
            strict: Raise NumericDegeneracy on forest == 0 or any
                non-finite output instead of returning it
        """
        self.strict = strict

    def evaluate(self, t: float, state, params: CollapseParams) -> Evaluation:
        """
        Compute derivatives and diagnostics at one point.

        Args:
            t: Time [years] (unused by the equations)
            state: State or any length-4 sequence
            params: CollapseParams instance

        Returns:
            Evaluation(derivatives=State, auxiliaries=AuxiliaryFrame)
        """
        forest, agricultural_land, fertility, population = as_vector(state)

        if self.strict and forest == 0:
            raise NumericDegeneracy(
                f"forest reached zero at t={t}: agricultural_land / forest is undefined",
                time=t, quantities=('fertility_losses',))

        with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
            # Algebraic variables
            produced = food_produced(fertility, agricultural_land)
            demand = demand_for_food(population, params.consumed_food_per_person)
            gap = food_gap(demand, produced)

            # Flows
            deforestation = deforestation_rate(gap, fertility, forest, params.intensity)
            fertility_losses = fertility_loss_rate(
                fertility, agricultural_land, forest, params.intensity)
            increase = natural_increase(population, params.natural_increase_rate)
            emigration = emigration_rate(
                gap, params.consumed_food_per_person, params.emigration_ratio)

            derivatives = State(
                forest=-deforestation,
                agricultural_land=deforestation,
                fertility=-fertility_losses,
                population=increase - emigration,
            )

        auxiliaries = AuxiliaryFrame(
            deforestation=deforestation,
            fertility_losses=fertility_losses,
            food_produced=produced,
            demand_for_food=demand,
            gap=gap,
            emigration=emigration,
            population_natural_increase=increase,
        )

        if self.strict:
            self._check_finite(t, derivatives, auxiliaries)

        return Evaluation(derivatives, auxiliaries)

    def derivative(self, t: float, state, params: CollapseParams) -> np.ndarray:
        """dy/dt as a float vector (what the integrator stages use)."""
        return as_vector(self.evaluate(t, state, params).derivatives)

    @staticmethod
    def _check_finite(t, derivatives: State, auxiliaries: AuxiliaryFrame) -> None:
        bad = [f"d{name}" for name, v in derivatives._asdict().items() if not np.isfinite(v)]
        bad += [name for name, v in auxiliaries._asdict().items() if not np.isfinite(v)]
        if bad:
            raise NumericDegeneracy(
                f"non-finite values at t={t}: {', '.join(bad)}",
                time=t, quantities=bad)

    def land_to_close_gap(self, state, params: CollapseParams) -> float:
        """
        Cropland needed to feed the current population [area].

        At this level of agricultural land the food gap is zero and
        deforestation stops (before the forest/4 cap applies).
        """
        _, _, fertility, population = as_vector(state)
        return params.consumed_food_per_person * population / max(fertility, 1.0)

    def summary(self, state, params: CollapseParams) -> dict:
        """
        Compute all model rates for the current state.

        Args:
            state: State or length-4 sequence
            params: CollapseParams instance

        Returns:
            Dictionary with state, flows, derivatives and derived metrics
        """
        derivatives, auxiliaries = self.evaluate(0.0, state, params)
        current = State.from_array(as_vector(state))

        result = dict(current._asdict())
        result.update(auxiliaries._asdict())
        result.update({f"d_{name}": v for name, v in derivatives._asdict().items()})

        population = current.population
        result['food_per_person'] = (
            auxiliaries.food_produced / population if population > 0 else math.inf)
        result['net_growth_rate'] = (
            derivatives.population / population if population > 0 else math.nan)
        result['land_to_close_gap'] = self.land_to_close_gap(current, params)
        result['doubling_time_yr'] = params.doubling_time
        return result


# Testing
if __name__ == "__main__":
    print("=" * 80)
    print("TESTING DYNAMICS MODULE")
    print("=" * 80)

    from config.parameters import InitialConditions

    params = CollapseParams()
    state0 = InitialConditions().to_state()
    dynamics = CollapseDynamics()

    print("\nTEST 1: Rates at the reference initial state")
    print("-" * 80)
    summary = dynamics.summary(state0, params)
    for key in ('food_produced', 'demand_for_food', 'gap', 'deforestation',
                'fertility_losses', 'emigration', 'population_natural_increase'):
        print(f"  {key:<30} {summary[key]:>18,.4f}")

    print("\nTEST 2: Food gap vs population")
    print("-" * 80)
    print(f"{'Population':<14} {'Gap':>16} {'Deforestation':>16} {'Emigration':>14}")
    for population in [1e5, 3e5, 4e5, 1e6, 3e6]:
        state = state0._replace(population=population)
        aux = dynamics.evaluate(0.0, state, params).auxiliaries
        print(f"{population:<14,.0f} {aux.gap:>16,.0f} {aux.deforestation:>16.3f} {aux.emigration:>14,.1f}")

    print("\nTEST 3: Forest exhausted")
    print("-" * 80)
    aux = dynamics.evaluate(0.0, state0._replace(forest=0.0), params).auxiliaries
    print(f"  fertility_losses = {aux.fertility_losses:,.1f} (ratio capped at 2)")
    try:
        CollapseDynamics(strict=True).evaluate(0.0, state0._replace(forest=0.0), params)
    except NumericDegeneracy as e:
        print(f"  ✓ Strict mode: {e}")

    print("\n" + "=" * 80)
    print("✓ All dynamics tests complete")
    print("=" * 80)
