#!/usr/bin/env python3
"""Run an intensity sweep over the reference scenario."""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np

from analysis.sweep import parameter_sweep
from visualization.phase_plots import plot_sweep

if __name__ == "__main__":
    intensity_values = np.linspace(1.0, 3.0, 21)

    results = parameter_sweep('intensity', intensity_values, max_workers=4,
                              timeout=60, verbose=True)

    for value, peak, final in zip(intensity_values, results['population_peak'],
                                  results['population_final']):
        print(f"  intensity={value:.2f}: peak={peak:,.0f} final={final:,.0f}")
    if results['timed_out']:
        print(f"  Timed out: {results['timed_out']}")

    output_dir = Path(__file__).parent.parent / 'output'
    output_dir.mkdir(exist_ok=True)
    output_path = output_dir / 'intensity_sweep.png'
    plot_sweep(results, save_path=str(output_path))
    print(f"\nSaved: {output_path}")
