"""
Parameter sweeps: many independent runs of the model.

A single run cannot be parallelised (every RK4 stage depends on the
previous one), but separate runs share nothing, so a sweep can farm them
out to worker processes. Each run may be given a timeout counted from
its submission; an expired run is killed and reported in 'timed_out'
with NaN statistics.
"""

import concurrent.futures
import dataclasses
import time

import numpy as np

from config.parameters import CollapseParams, InitialConditions, NumericalParams
from core.dynamics import CollapseDynamics
from core.exceptions import ConfigurationError
from core.integrator import integrate
from analysis.statistics import trajectory_statistics

SWEEPABLE = tuple(f.name for f in dataclasses.fields(CollapseParams))

SUMMARY_KEYS = ('population_peak', 'population_peak_time', 'population_final',
                'forest_final', 'agricultural_land_final', 'fertility_final',
                'collapse_time', 'nonfinite_points')


def run_one(params, initial_state, times, strict=False):
    """Integrate one parameter set and summarise it (picklable worker)."""
    trajectory = integrate(CollapseDynamics(strict=strict), initial_state, params, times)
    return trajectory_statistics(trajectory)


def _terminate_pool(ex):
    """Shut an executor down without waiting, killing its worker processes."""
    if hasattr(ex, 'terminate_workers'):
        ex.terminate_workers()
        return
    procs = list((ex._processes or {}).values())
    ex.shutdown(wait=False, cancel_futures=True)
    for proc in procs:
        proc.terminate()
    for proc in procs:
        proc.join()


def _run_pool(param_sets, initial_state, times, strict, max_workers, timeout, on_result):
    """
    Run param_sets on worker processes, at most max_workers at a time.

    Each run's timeout counts from its submission. When a run expires, the
    pool is killed; runs still in flight are resubmitted to a fresh pool
    with new deadlines. on_result(i, stats) is called once per run, with
    stats None for an expired run.
    """
    pending = list(range(len(param_sets)))

    while pending:
        ex = concurrent.futures.ProcessPoolExecutor(max_workers=max_workers)
        running = {}
        expired = []
        try:
            while (pending or running) and not expired:
                while pending and len(running) < max_workers:
                    i = pending.pop(0)
                    fut = ex.submit(run_one, param_sets[i], initial_state, times, strict)
                    deadline = None if timeout is None else time.monotonic() + timeout
                    running[fut] = (i, deadline)

                wait_for = None
                if timeout is not None:
                    nearest = min(deadline for _, deadline in running.values())
                    wait_for = max(0.0, nearest - time.monotonic())
                done, _ = concurrent.futures.wait(
                    running, timeout=wait_for,
                    return_when=concurrent.futures.FIRST_COMPLETED)

                for fut in done:
                    i, _ = running.pop(fut)
                    on_result(i, fut.result())

                now = time.monotonic()
                expired = [fut for fut, (_, deadline) in running.items()
                           if deadline is not None and deadline <= now]
        except BaseException:
            _terminate_pool(ex)
            raise

        if not expired:
            ex.shutdown()
            continue

        _terminate_pool(ex)
        for fut in expired:
            i, _ = running.pop(fut)
            on_result(i, None)
        pending = sorted(i for i, _ in running.values()) + pending


def parameter_sweep(param_name, param_values, base_params=None, initial_state=None,
                    times=None, strict=False, max_workers=None, timeout=None,
                    verbose=False):
    """
    Sweep one CollapseParams field and collect statistics.

    Args:
        param_name: Field of CollapseParams to vary
        param_values: Values to sweep (any iterable)
        base_params: CollapseParams for the other fields (defaults if None)
        initial_state: State at times[0] (reference initial state if None)
        times: Time grid (reference grid if None)
        strict: Run the model in strict mode
        max_workers: Worker processes; None or 1 runs sequentially
        timeout: Per-run timeout [s], counted from submission to a worker
            (only with worker processes). An expired run is killed.
        verbose: Print progress

    Returns:
        results: Dict with one list per summary statistic, in param_values order
    """
    if param_name not in SWEEPABLE:
        raise ConfigurationError(
            f"Parameter {param_name} not supported; choose from {', '.join(SWEEPABLE)}")
    if timeout is not None and timeout <= 0:
        raise ConfigurationError(f"timeout must be positive, got {timeout}")

    param_values = list(param_values)
    if base_params is None:
        base_params = CollapseParams()
    if initial_state is None:
        initial_state = InitialConditions().to_state()
    if times is None:
        times = NumericalParams().times

    # Reject bad values before starting any run
    param_sets = [dataclasses.replace(base_params, **{param_name: float(v)})
                  for v in param_values]
    for p in param_sets:
        p.check()

    n = len(param_sets)
    collected = [None] * n
    completed = 0

    def on_result(i, stats):
        nonlocal completed
        collected[i] = stats
        completed += 1
        if verbose and stats is None:
            print(f"  Timed out: {param_name}={param_values[i]}")
        if verbose and completed % 10 == 0:
            print(f"  Completed {completed}/{n}")

    if verbose:
        print(f"Running sweep over {param_name}: {n} runs...")

    if max_workers is None or max_workers <= 1:
        for i, p in enumerate(param_sets):
            on_result(i, run_one(p, initial_state, times, strict))
    else:
        _run_pool(param_sets, initial_state, times, strict, max_workers, timeout, on_result)

    results = {key: [] for key in SUMMARY_KEYS}
    results['param_name'] = param_name
    results['param_values'] = param_values
    results['timed_out'] = []
    for value, stats in zip(param_values, collected):
        for key in SUMMARY_KEYS:
            results[key].append(stats[key] if stats is not None else np.nan)
        if stats is None:
            results['timed_out'].append(value)
    return results


if __name__ == "__main__":
    """Demo: intensity sweep"""
    from pathlib import Path
    from visualization.phase_plots import plot_sweep

    intensities = np.linspace(1.0, 3.0, 21)
    results = parameter_sweep('intensity', intensities, verbose=True)

    output_dir = Path(__file__).parent.parent / 'output'
    output_dir.mkdir(exist_ok=True)
    output_path = output_dir / 'intensity_sweep.png'
    plot_sweep(results, save_path=str(output_path))
    print(f"\nSaved: {output_path}")
