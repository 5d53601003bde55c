"""Phase space visualization."""

import matplotlib.pyplot as plt
import numpy as np


def plot_phase_portrait(trajectory, save_path=None):
    """2D phase portraits, colored by time."""
    fig, axes = plt.subplots(1, 3, figsize=(15, 5))

    colors = trajectory.times

    # Forest vs population
    axes[0].scatter(trajectory.forest, trajectory.population, c=colors, s=2, cmap='viridis')
    axes[0].set_xlabel('Forest (area)')
    axes[0].set_ylabel('Population (persons)')
    axes[0].set_title('Forest-Population Phase Space')
    axes[0].grid(True, alpha=0.3)

    # Cropland vs fertility
    axes[1].scatter(trajectory.agricultural_land, trajectory.fertility, c=colors, s=2, cmap='viridis')
    axes[1].set_xlabel('Agricultural land (area)')
    axes[1].set_ylabel('Fertility (yield/area)')
    axes[1].set_title('Land-Fertility Phase Space')
    axes[1].grid(True, alpha=0.3)

    # Food balance vs population
    sc = axes[2].scatter(trajectory.gap, trajectory.population, c=colors, s=2, cmap='viridis')
    axes[2].axvline(0, color='k', linewidth=0.5)
    axes[2].set_xlabel('Food gap (kg/year)')
    axes[2].set_ylabel('Population (persons)')
    axes[2].set_title('Shortage-Population Phase Space')
    axes[2].grid(True, alpha=0.3)
    plt.colorbar(sc, ax=axes[2], label='Time (years)')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig, axes


def plot_sweep(results, save_path=None):
    """Peak and final population across a parameter sweep."""
    fig, ax = plt.subplots(figsize=(10, 6))

    values = np.asarray(results['param_values'], dtype=float)
    ax.plot(values, results['population_peak'], 'b-', linewidth=2, label='Peak')
    ax.plot(values, results['population_final'], 'r--', linewidth=2, label='Final')
    ax.set_xlabel(results['param_name'])
    ax.set_ylabel('Population (persons)')
    ax.set_title(f"Population vs {results['param_name']}")
    ax.legend()
    ax.grid(True, alpha=0.3)

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig, ax
