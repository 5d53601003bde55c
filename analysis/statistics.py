"""Statistical summaries of trajectories and ensembles of runs."""

import numpy as np

from core.state import STATE_NAMES


def _first_time(times, mask):
    """Time of the first True entry in mask, or None."""
    idx = np.flatnonzero(mask)
    return float(times[idx[0]]) if len(idx) else None


def trajectory_statistics(trajectory, collapse_fraction=0.5, exhaustion_fraction=0.01):
    """
    Compute summary statistics from one run.

    Non-finite values (a collapsed model) are excluded from the per-variable
    moments and counted separately.

    Args:
        trajectory: Trajectory instance
        collapse_fraction: Population falling below this share of its
            peak (after the peak) marks the collapse time
        exhaustion_fraction: Forest falling below this share of its initial
            value marks the exhaustion time

    Returns:
        Dictionary with statistics
    """
    times = trajectory.times
    stats = {}

    for name in STATE_NAMES:
        x = trajectory.column(name)
        finite = x[np.isfinite(x)]
        if len(finite):
            stats[f'{name}_mean'] = float(np.mean(finite))
            stats[f'{name}_std'] = float(np.std(finite))
            stats[f'{name}_min'] = float(np.min(finite))
            stats[f'{name}_max'] = float(np.max(finite))
        else:
            for key in ('mean', 'std', 'min', 'max'):
                stats[f'{name}_{key}'] = np.nan
        stats[f'{name}_final'] = float(x[-1])

    # Population boom and bust
    population = trajectory.population
    if np.any(np.isfinite(population)):
        peak = int(np.nanargmax(population))
        stats['population_peak'] = float(population[peak])
        stats['population_peak_time'] = float(times[peak])
        after = np.zeros(len(population), dtype=bool)
        with np.errstate(invalid='ignore'):
            after[peak:] = population[peak:] < collapse_fraction * population[peak]
        stats['collapse_time'] = _first_time(times, after)
    else:
        stats['population_peak'] = np.nan
        stats['population_peak_time'] = np.nan
        stats['collapse_time'] = None

    forest = trajectory.forest
    with np.errstate(invalid='ignore'):
        stats['forest_exhaustion_time'] = _first_time(
            times, forest < exhaustion_fraction * forest[0])

        # Critical events
        stats['time_in_shortage'] = float(np.sum(trajectory.gap > 0) / len(times) * 100)
        stats['negative_state_points'] = int(np.sum(np.any(trajectory.states < 0, axis=1)))

    nonfinite = ~np.all(np.isfinite(trajectory.to_array()), axis=1)
    stats['nonfinite_points'] = int(np.sum(nonfinite))
    stats['first_nonfinite_time'] = _first_time(times, nonfinite)

    return stats


def ensemble_statistics(stats_list):
    """
    Compute statistics across runs.

    Args:
        stats_list: List of trajectory_statistics() dictionaries

    Returns:
        stats: Aggregated statistics
    """
    peaks = [s['population_peak'] for s in stats_list]
    finals = [s['population_final'] for s in stats_list]
    forests = [s['forest_final'] for s in stats_list]
    collapsed = [s['collapse_time'] is not None for s in stats_list]

    return {
        'population_peak_mean': np.nanmean(peaks),
        'population_peak_std': np.nanstd(peaks),
        'population_final_mean': np.nanmean(finals),
        'population_final_std': np.nanstd(finals),
        'forest_final_mean': np.nanmean(forests),
        'collapse_fraction': float(np.mean(collapsed)),
    }


def confidence_intervals(data, confidence=0.95):
    """Compute confidence intervals."""
    alpha = 1 - confidence
    lower = np.nanpercentile(data, alpha/2 * 100)
    upper = np.nanpercentile(data, (1 - alpha/2) * 100)
    return lower, upper
