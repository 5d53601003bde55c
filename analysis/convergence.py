"""
Step-halving convergence check for the RK4 integrator.

Runs the same horizon with dt, dt/2, dt/4, ... and compares final
states. For a 4th-order method the difference between successive runs
should shrink by about 16× per halving (observed order ≈ 4), as long as
the trajectory stays away from the min/max kinks in the flows.
reference_solution() gives a tight-tolerance SciPy solution to measure
the absolute error against.
"""

import numpy as np
from scipy.integrate import solve_ivp

from config.parameters import CollapseParams, InitialConditions, time_grid
from core.dynamics import CollapseDynamics
from core.integrator import integrate
from core.exceptions import NumericDegeneracy
from core.state import STATE_NAMES, as_vector


def step_halving_study(params=None, initial_state=None, t_start=0.0, t_end=10.0,
                       dt=1.0, n_halvings=3):
    """
    Integrate with successively halved steps.

    Args:
        params: CollapseParams (defaults if None)
        initial_state: State at t_start (reference if None)
        t_start, t_end: Horizon
        dt: Coarsest step
        n_halvings: Number of halvings (n_halvings + 1 runs)

    Returns:
        Dict with:
            'dt': step sizes [n_halvings + 1]
            'final_states': final state per run [n_halvings + 1, 4]
            'differences': |final(dt_k) - final(dt_k+1)| [n_halvings, 4]
            'ratios': successive difference ratios [n_halvings - 1, 4]
            'observed_order': log2 of the ratios [n_halvings - 1, 4]
    """
    if params is None:
        params = CollapseParams()
    if initial_state is None:
        initial_state = InitialConditions().to_state()

    model = CollapseDynamics()
    steps = dt / 2.0 ** np.arange(n_halvings + 1)

    finals = np.array([
        integrate(model, initial_state, params, time_grid(t_start, t_end, h)).states[-1]
        for h in steps
    ])
    differences = np.abs(np.diff(finals, axis=0))

    with np.errstate(divide='ignore', invalid='ignore'):
        ratios = differences[:-1] / differences[1:]
        order = np.log2(ratios)

    return {
        'dt': steps,
        'final_states': finals,
        'differences': differences,
        'ratios': ratios,
        'observed_order': order,
        'names': STATE_NAMES,
    }


def reference_solution(times, params=None, initial_state=None, rtol=1e-12, atol=1e-9):
    """
    High-accuracy solution on the same grid, for measuring RK4 error.

    Uses SciPy's adaptive DOP853 with tight tolerances. Only meaningful
    while the trajectory stays finite.

    Returns:
        States at each time [n, 4]
    """
    if params is None:
        params = CollapseParams()
    if initial_state is None:
        initial_state = InitialConditions().to_state()

    model = CollapseDynamics()
    times = np.asarray(times, dtype=float)
    sol = solve_ivp(lambda t, y: model.derivative(t, y, params),
                    (times[0], times[-1]), as_vector(initial_state),
                    method='DOP853', t_eval=times, rtol=rtol, atol=atol)
    if not sol.success:
        raise NumericDegeneracy(f"reference solution failed: {sol.message}")
    return sol.y.T


def global_error(trajectory, params=None):
    """Absolute RK4 error at every grid point of a finite trajectory [n, 4]."""
    reference = reference_solution(trajectory.times, params, trajectory.states[0])
    return np.abs(trajectory.states - reference)


if __name__ == "__main__":
    study = step_halving_study(t_end=2.0, dt=0.5, n_halvings=4)
    print(f"{'dt':<10}" + "".join(f"{n:>20}" for n in STATE_NAMES))
    for h, row in zip(study['dt'][1:], study['differences']):
        print(f"{h:<10g}" + "".join(f"{d:>20.3e}" for d in row))
    print("\nObserved order:")
    for row in study['observed_order']:
        print("          " + "".join(f"{o:>20.2f}" for o in row))
