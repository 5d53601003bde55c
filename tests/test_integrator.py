import math

import numpy as np
import pytest

from config.parameters import (CollapseParams, InitialConditions, NumericalParams,
                               ModelParams, time_grid)
from core.dynamics import CollapseDynamics
from core.exceptions import ConfigurationError, NumericDegeneracy
from core.integrator import integrate, rk4_step, CollapseIntegrator, validate_time_grid
from core.state import State


def rk4_decay_factor(h, rate=1.0):
    z = -rate * h
    return 1 + z + z ** 2 / 2 + z ** 3 / 6 + z ** 4 / 24


class TestRK4Step:

    def test_linear_decay_single_step(self, linear_model):
        y = np.array([1.0, 2.0, 3.0, 4.0])
        y1 = rk4_step(linear_model, 0.0, y, 0.1, CollapseParams())
        np.testing.assert_allclose(y1, y * rk4_decay_factor(0.1), rtol=1e-13)
        assert linear_model.calls == 4

    def test_negative_step(self, linear_model):
        y = np.ones(4)
        y1 = rk4_step(linear_model, 1.0, y, -0.1, CollapseParams())
        np.testing.assert_allclose(y1, y * rk4_decay_factor(-0.1), rtol=1e-13)

    def test_non_uniform_grid(self, linear_model):
        times = [0.0, 0.1, 0.3, 0.35, 1.0]
        traj = integrate(linear_model, [1.0, 1.0, 1.0, 1.0], CollapseParams(), times)
        expected = np.cumprod([1.0] + [rk4_decay_factor(h) for h in np.diff(times)])
        np.testing.assert_allclose(traj.states[:, 0], expected, rtol=1e-12)
        np.testing.assert_allclose(traj.states[-1], np.exp(-1.0), rtol=5e-3)

    def test_decreasing_grid(self, linear_model):
        traj = integrate(linear_model, [1.0] * 4, CollapseParams(), time_grid(1.0, 0.0, -0.01))
        assert traj.times[-1] == pytest.approx(0.0, abs=1e-12)
        np.testing.assert_allclose(traj.states[-1], math.e, rtol=1e-8)


class TestIntegrateContract:

    def test_single_point_grid(self, model, params, initial_state):
        traj = integrate(model, initial_state, params, [-1000.0])
        assert len(traj) == 1
        assert traj.initial_state == initial_state
        expected = model.evaluate(-1000.0, initial_state, params).auxiliaries
        np.testing.assert_array_equal(traj.auxiliaries[0], expected)

    def test_reference_run_shape(self, reference_trajectory):
        assert len(reference_trajectory) == 3001
        assert reference_trajectory.times[0] == -1000
        assert reference_trajectory.times[-1] == 2000

    def test_reference_first_row(self, reference_trajectory):
        first = reference_trajectory[0]
        assert first.time == -1000
        assert first.state == (5000, 8, 5000000, 100000)
        assert first.auxiliaries.food_produced == 40_000_000
        assert first.auxiliaries.demand_for_food == 11_000_000
        assert first.auxiliaries.gap == -29_000_000
        assert first.auxiliaries.deforestation == pytest.approx(-5.272727272727, rel=1e-12)

    def test_auxiliaries_evaluated_at_grid_state(self, model, params, reference_trajectory):
        for i in (1, 10, 500, 1500):
            t = reference_trajectory.times[i]
            state = State.from_array(reference_trajectory.states[i])
            expected = model.evaluate(t, state, params).auxiliaries
            np.testing.assert_array_equal(reference_trajectory.auxiliaries[i], expected)

    def test_deforestation_identity(self, reference_trajectory):
        traj = reference_trajectory
        with np.errstate(all='ignore'):
            expected = np.minimum(traj.gap / np.maximum(traj.fertility, 1.0),
                                  traj.forest / 4.0) / 1.1
        np.testing.assert_array_equal(traj.deforestation, expected)

        finite = np.isfinite(traj.deforestation) & np.isfinite(traj.forest)
        assert np.all(traj.deforestation[finite] <= (traj.forest[finite] / 4.0) / 1.1)

    def test_deterministic(self, model, params, initial_state):
        times = time_grid(-1000, 0, 1)
        a = integrate(model, initial_state, params, times)
        b = integrate(CollapseDynamics(), initial_state, params, times)
        assert np.array_equal(a.to_array(), b.to_array(), equal_nan=True)

    def test_input_grid_not_aliased(self, model, params, initial_state):
        times = np.arange(0.0, 5.0)
        traj = integrate(model, initial_state, params, times)
        times[0] = 99.0
        assert traj.times[0] == 0.0


class TestConfigurationErrors:

    @pytest.mark.parametrize('times', [
        [],
        [0.0, 1.0, 1.0],
        [0.0, 2.0, 1.0],
        [[0.0, 1.0], [2.0, 3.0]],
        [0.0, math.nan, 2.0],
        [0.0, math.inf],
    ])
    def test_bad_grid(self, linear_model, times):
        with pytest.raises(ConfigurationError):
            integrate(linear_model, [1.0] * 4, CollapseParams(), times)
        assert linear_model.calls == 0

    @pytest.mark.parametrize('state', [
        [1.0, 2.0, 3.0],
        [1.0, 2.0, 3.0, math.nan],
        ['a', 'b', 'c', 'd'],
    ])
    def test_bad_initial_state(self, linear_model, state):
        with pytest.raises(ConfigurationError):
            integrate(linear_model, state, CollapseParams(), [0.0, 1.0])
        assert linear_model.calls == 0

    @pytest.mark.parametrize('params', [
        CollapseParams(intensity=0.0),
        CollapseParams(consumed_food_per_person=0.0),
    ])
    def test_bad_params(self, linear_model, params):
        with pytest.raises(ConfigurationError):
            integrate(linear_model, [1.0] * 4, params, [0.0, 1.0])
        assert linear_model.calls == 0

    def test_validate_time_grid_accepts_decreasing(self):
        np.testing.assert_array_equal(validate_time_grid([3, 2, 1]), [3.0, 2.0, 1.0])


class TestNumericCollapse:

    def test_nan_propagates_to_full_trajectory(self, model, params):
        state = State(forest=0.0, agricultural_land=0.0, fertility=5e6, population=1e5)
        traj = integrate(model, state, params, time_grid(0, 50, 1))
        assert len(traj) == 51
        assert math.isnan(traj[0].auxiliaries.fertility_losses)
        assert np.all(np.isnan(traj.states[1:]))
        assert not traj.is_finite()

    def test_strict_mode_raises_instead(self, params):
        state = State(forest=0.0, agricultural_land=0.0, fertility=5e6, population=1e5)
        with pytest.raises(NumericDegeneracy):
            integrate(CollapseDynamics(strict=True), state, params, time_grid(0, 50, 1))

    def test_strict_mode_matches_on_finite_run(self, params, initial_state):
        times = time_grid(-1000, -900, 1)
        relaxed = integrate(CollapseDynamics(), initial_state, params, times)
        strict = integrate(CollapseDynamics(strict=True), initial_state, params, times)
        np.testing.assert_array_equal(relaxed.to_array(), strict.to_array())


class TestClamp:

    def test_off_by_default(self, constant_model):
        traj = integrate(constant_model, [0.5] * 4, CollapseParams(), [0.0, 1.0])
        np.testing.assert_array_equal(traj.states[-1], [-0.5] * 4)

    def test_clamp_to_zero(self, constant_model):
        traj = integrate(constant_model, [0.5] * 4, CollapseParams(), [0.0, 1.0, 2.0],
                         clamp_nonnegative=True)
        np.testing.assert_array_equal(traj.states[1:], np.zeros((2, 4)))


class TestTestableProperties:

    def test_pure_exponential_growth(self, initial_state):
        params = CollapseParams(intensity=math.inf, emigration_ratio=0.0)
        times = time_grid(0, 408, 1)
        traj = integrate(CollapseDynamics(), initial_state, params, times)

        expected = 100_000 * np.exp(params.natural_increase_rate * times)
        np.testing.assert_allclose(traj.population, expected, rtol=1e-9)
        assert np.all(traj.forest == 5000.0)
        assert np.all(traj.agricultural_land == 8.0)
        assert np.all(traj.fertility == 5_000_000.0)

    def test_step_halving_convergence(self, params, initial_state):
        model = CollapseDynamics()
        finals = [integrate(model, initial_state, params, time_grid(0, 2, h)).final_state
                  for h in (0.5, 0.25, 0.125)]
        land = [s.agricultural_land for s in finals]
        ratio = abs(land[0] - land[1]) / abs(land[1] - land[2])
        assert 10 < ratio < 22


class TestCollapseIntegrator:

    def test_simulate_defaults(self):
        params = ModelParams(numerical=NumericalParams(t_start=0, t_end=20, dt=1))
        traj = CollapseIntegrator(params).simulate()
        direct = integrate(CollapseDynamics(), InitialConditions().to_state(),
                           CollapseParams(), time_grid(0, 20, 1))
        np.testing.assert_array_equal(traj.to_array(), direct.to_array())

    def test_simulate_overrides(self):
        integrator = CollapseIntegrator(ModelParams())
        traj = integrator.simulate(times=[0.0, 1.0],
                                   params=CollapseParams(emigration_ratio=0.0))
        assert traj[0].auxiliaries.emigration == 0.0

    def test_step_matches_trajectory(self):
        params = ModelParams(numerical=NumericalParams(t_start=0, t_end=1, dt=1))
        integrator = CollapseIntegrator(params)
        state1 = integrator.step(params.initial.to_state(), t=0.0)
        np.testing.assert_array_equal(state1, integrator.simulate().states[1])

    def test_strict_flag_reaches_model(self):
        params = ModelParams(numerical=NumericalParams(strict=True))
        assert CollapseIntegrator(params).model.strict

    def test_clamp_flag(self):
        params = ModelParams(initial=InitialConditions(forest=0.0, agricultural_land=0.0),
                             numerical=NumericalParams(t_start=0, t_end=3, dt=1,
                                                       clamp_nonnegative=True))
        traj = CollapseIntegrator(params).simulate()
        assert len(traj) == 4
