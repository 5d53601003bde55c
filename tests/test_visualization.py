import matplotlib.pyplot as plt
import numpy as np
import pytest

from config.parameters import time_grid
from analysis.sweep import parameter_sweep
from visualization.timeseries import plot_timeseries, plot_auxiliaries
from visualization.phase_plots import plot_phase_portrait, plot_sweep


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


class TestPlots:

    def test_timeseries(self, reference_trajectory, tmp_path):
        path = tmp_path / 'timeseries.png'
        fig, axes = plot_timeseries(reference_trajectory, title='Maya', save_path=str(path))
        assert len(axes) == 4
        assert path.exists()
        np.testing.assert_array_equal(axes[0].lines[0].get_xdata(), reference_trajectory.times)

    def test_auxiliaries(self, reference_trajectory):
        fig, axes = plot_auxiliaries(reference_trajectory)
        assert len(axes) == 3
        assert len(axes[0].lines) == 2

    def test_phase_portrait(self, reference_trajectory, tmp_path):
        path = tmp_path / 'phase.png'
        fig, axes = plot_phase_portrait(reference_trajectory, save_path=str(path))
        assert len(axes) == 3
        assert path.exists()

    def test_sweep(self):
        results = parameter_sweep('intensity', [1.1, 1.5, 2.0], times=time_grid(0, 10, 1))
        fig, ax = plot_sweep(results)
        assert ax.get_xlabel() == 'intensity'
        assert len(ax.lines) == 2
