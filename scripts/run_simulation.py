#!/usr/bin/env python3
"""
Run the "Collapse of Civilizations" simulation.

Integrates the reference (Maya) scenario from 1000 years before present
to 2000 years after with yearly RK4 steps, prints summary statistics and
saves the state and flow time series.

Usage:
    python scripts/run_simulation.py
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.parameters import ModelParams
from config.scenarios import get_scenario
from core.integrator import CollapseIntegrator
from analysis.statistics import trajectory_statistics
from visualization.timeseries import plot_timeseries, plot_auxiliaries


def _fmt_time(t):
    return "never" if t is None else f"t = {t:g}"


def main():
    print("=" * 80)
    print("COLLAPSE OF CIVILIZATIONS MODEL")
    print("=" * 80)

    # 1. Load parameters
    print("\n1. Loading parameters...")
    scenario = get_scenario('MAYA')
    params = ModelParams(collapse=scenario.params, initial=scenario.initial)
    params.validate()
    print(params.summary())

    # 2. Run simulation
    print(f"\n2. Running {scenario.name} scenario...")
    print(f"   {scenario.description}")
    integrator = CollapseIntegrator(params)
    trajectory = integrator.simulate()
    print(f"   {len(trajectory)} time points")

    # 3. Display results
    print("\n3. Results:")
    print("=" * 80)

    stats = trajectory_statistics(trajectory)

    print(f"\nPOPULATION:")
    print(f"  Peak: {stats['population_peak']:,.0f} persons at t = {stats['population_peak_time']:g}")
    print(f"  Final: {stats['population_final']:,.0f} persons")
    print(f"  Collapse (below 50% of peak): {_fmt_time(stats['collapse_time'])}")

    print(f"\nLAND:")
    print(f"  Forest: {stats['forest_max']:,.1f} max, {stats['forest_final']:,.1f} final")
    print(f"  Forest exhausted (below 1%): {_fmt_time(stats['forest_exhaustion_time'])}")
    print(f"  Agricultural land: {stats['agricultural_land_final']:,.1f} final")
    print(f"  Fertility: {stats['fertility_final']:,.1f} final")

    print(f"\nFOOD:")
    print(f"  Time in shortage: {stats['time_in_shortage']:.1f}%")
    if stats['nonfinite_points']:
        print(f"  Model degenerated at t = {stats['first_nonfinite_time']:g} "
              f"({stats['nonfinite_points']} non-finite points)")

    # 4. Create visualization
    print("\n4. Creating visualization...")
    output_dir = Path(__file__).parent.parent / 'output'
    output_dir.mkdir(exist_ok=True)

    output_path = output_dir / 'simulation_MAYA.png'
    plot_timeseries(trajectory, title=f'Collapse of Civilizations: {scenario.name}',
                    save_path=str(output_path))
    print(f"  Saved: {output_path}")

    output_path = output_dir / 'flows_MAYA.png'
    plot_auxiliaries(trajectory, save_path=str(output_path))
    print(f"  Saved: {output_path}")

    print("\n" + "=" * 80)
    print("✓ Simulation complete!")
    print("=" * 80)

    return 0


if __name__ == "__main__":
    sys.exit(main())
