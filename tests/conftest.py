import matplotlib
matplotlib.use('Agg')

import numpy as np
import pytest

from config.parameters import CollapseParams, InitialConditions, time_grid
from core.dynamics import CollapseDynamics
from core.integrator import integrate
from core.state import State, AuxiliaryFrame, Evaluation


@pytest.fixture
def params():
    return CollapseParams()


@pytest.fixture
def initial_state():
    return InitialConditions().to_state()


@pytest.fixture
def model():
    return CollapseDynamics()


@pytest.fixture(scope='session')
def reference_trajectory():
    """Reference lab run: t = -1000 .. 2000, yearly steps."""
    return integrate(CollapseDynamics(), InitialConditions().to_state(),
                     CollapseParams(), time_grid(-1000, 2000, 1))


class LinearDecay:
    """dy/dt = -rate * y on every component; auxiliaries are zero."""

    def __init__(self, rate=1.0):
        self.rate = rate
        self.calls = 0

    def evaluate(self, t, state, params):
        self.calls += 1
        y = np.asarray(state, dtype=float)
        return Evaluation(State.from_array(-self.rate * y), AuxiliaryFrame(*[0.0] * 7))


class ConstantDecline:
    """dy/dt = -1 on every component, regardless of state."""

    def evaluate(self, t, state, params):
        return Evaluation(State(-1.0, -1.0, -1.0, -1.0), AuxiliaryFrame(*[0.0] * 7))


@pytest.fixture
def linear_model():
    return LinearDecay()


@pytest.fixture
def constant_model():
    return ConstantDecline()
