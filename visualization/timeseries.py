"""Time series visualization."""

import matplotlib.pyplot as plt


def plot_timeseries(trajectory, title=None, save_path=None):
    """Plot standard 4-panel state time series."""
    fig, axes = plt.subplots(4, 1, figsize=(12, 11), sharex=True)

    times = trajectory.times

    # Population
    axes[0].plot(times, trajectory.population, 'b-', alpha=0.8)
    axes[0].set_ylabel('Population (persons)')
    axes[0].set_title('Population')
    axes[0].grid(True, alpha=0.3)

    # Forest
    axes[1].plot(times, trajectory.forest, 'g-', alpha=0.8)
    axes[1].set_ylabel('Forest (area)')
    axes[1].set_title('Forest')
    axes[1].grid(True, alpha=0.3)

    # Cropland
    axes[2].plot(times, trajectory.agricultural_land, color='goldenrod', alpha=0.8)
    axes[2].set_ylabel('Ag land (area)')
    axes[2].set_title('Agricultural Land')
    axes[2].grid(True, alpha=0.3)

    # Fertility
    axes[3].plot(times, trajectory.fertility, 'brown', alpha=0.8)
    axes[3].set_ylabel('Fertility (yield/area)')
    axes[3].set_xlabel('Time (years)')
    axes[3].set_title('Fertility of Lands')
    axes[3].grid(True, alpha=0.3)

    if title:
        fig.suptitle(title, fontsize=14, fontweight='bold')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig, axes


def plot_auxiliaries(trajectory, save_path=None):
    """Food balance and flows."""
    fig, axes = plt.subplots(3, 1, figsize=(12, 9), sharex=True)

    times = trajectory.times

    # Food supply vs demand
    ax = axes[0]
    ax.plot(times, trajectory.food_produced, 'g-', alpha=0.8, label='Produced')
    ax.plot(times, trajectory.demand_for_food, 'r-', alpha=0.8, label='Demand')
    ax.set_ylabel('Food (kg/year)')
    ax.set_title('Food Balance')
    ax.legend(loc='upper left')
    ax.grid(True, alpha=0.3)

    # Land-use flows
    ax = axes[1]
    ax.plot(times, trajectory.deforestation, 'g-', alpha=0.8, label='Deforestation')
    ax.axhline(0, color='k', linewidth=0.5)
    ax.set_ylabel('Area/year')
    ax.set_title('Deforestation')
    ax2 = ax.twinx()
    ax2.plot(times, trajectory.fertility_losses, 'brown', alpha=0.6, label='Fertility losses')
    ax2.set_ylabel('Fertility losses (yield/year)')
    ax.grid(True, alpha=0.3)

    # Demographic flows
    ax = axes[2]
    ax.plot(times, trajectory.population_natural_increase, 'b-', alpha=0.8,
            label='Natural increase')
    ax.plot(times, trajectory.emigration, 'm-', alpha=0.8, label='Emigration')
    ax.axhline(0, color='k', linewidth=0.5)
    ax.set_ylabel('Persons/year')
    ax.set_xlabel('Time (years)')
    ax.set_title('Demographic Flows')
    ax.legend(loc='upper left')
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig, axes


if __name__ == "__main__":
    """Demo: time series for the reference scenario"""
    import sys
    from pathlib import Path
    sys.path.insert(0, str(Path(__file__).parent.parent))

    from config.parameters import ModelParams
    from config.scenarios import get_scenario
    from core.integrator import CollapseIntegrator

    print("Running MAYA simulation for time series visualization...")
    scenario = get_scenario('MAYA')
    integrator = CollapseIntegrator(ModelParams(collapse=scenario.params, initial=scenario.initial))
    trajectory = integrator.simulate()

    output_dir = Path(__file__).parent.parent / 'output'
    output_dir.mkdir(exist_ok=True)
    output_path = output_dir / 'timeseries_MAYA.png'

    plot_timeseries(trajectory, title=scenario.name, save_path=str(output_path))
    print(f"Saved: {output_path}")
