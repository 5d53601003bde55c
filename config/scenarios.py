"""
Pre-defined model scenarios.

MAYA is the reference lab setup; the others vary one mechanism at a
time. Extra scenarios can be loaded from a CSV file with one row per
scenario.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
from pathlib import Path

from config.parameters import CollapseParams, InitialConditions
from core.exceptions import ConfigurationError


@dataclass(frozen=True)
class Scenario:
    """Model scenario definition"""
    name: str
    description: str
    params: CollapseParams = field(default_factory=CollapseParams)
    initial: InitialConditions = field(default_factory=InitialConditions)


BUILTIN_SCENARIOS = {
    'MAYA': Scenario(
        name='Maya',
        description='Reference setup: intensity 1.1, 110 kg/person/yr, doubling in 408 years',
    ),
    'NO_EMIGRATION': Scenario(
        name='No emigration',
        description='Shortage never drives people away',
        params=CollapseParams(emigration_ratio=0.0),
    ),
    'HIGH_EMIGRATION': Scenario(
        name='High emigration',
        description='Five times the reference emigration response',
        params=CollapseParams(emigration_ratio=0.05),
    ),
    'FAST_LAND_USE': Scenario(
        name='Fast land use',
        description='Undamped deforestation and fertility losses',
        params=CollapseParams(intensity=1.0),
    ),
    'SLOW_LAND_USE': Scenario(
        name='Slow land use',
        description='Land-use flows damped by a factor of 2',
        params=CollapseParams(intensity=2.0),
    ),
    'SLOW_GROWTH': Scenario(
        name='Slow growth',
        description='Population doubling in 816 years',
        params=CollapseParams(natural_increase_rate=2.0 ** (1.0 / 816.0) - 1.0),
    ),
}

PARAM_COLUMNS = ('intensity', 'emigration_ratio', 'consumed_food_per_person',
                 'natural_increase_rate')
INITIAL_COLUMNS = ('forest', 'agricultural_land', 'fertility', 'population')

# Cache for loaded scenarios
_SCENARIOS_CACHE: Optional[Dict[str, Scenario]] = None


def load_scenarios_csv(path) -> Dict[str, Scenario]:
    """
    Load scenarios from a CSV file.

    Required columns: name, intensity, emigration_ratio,
    consumed_food_per_person, natural_increase_rate. Optional columns:
    description, forest, agricultural_land, fertility, population
    (missing or empty values fall back to the reference initial state).

    Returns:
        Dict keyed by upper-case scenario name (spaces as underscores)
    """
    import pandas as pd

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found at {path}")

    df = pd.read_csv(path)

    missing = [c for c in ('name',) + PARAM_COLUMNS if c not in df.columns]
    if missing:
        raise ConfigurationError(f"{path.name} is missing columns: {', '.join(missing)}")

    defaults = InitialConditions()
    scenarios = {}
    for row in df.to_dict('records'):
        params = CollapseParams(**{c: float(row[c]) for c in PARAM_COLUMNS})
        params.check()

        initial = {}
        for c in INITIAL_COLUMNS:
            value = row.get(c)
            initial[c] = getattr(defaults, c) if value is None or pd.isna(value) else float(value)

        description = row.get('description')
        if description is None or pd.isna(description):
            description = ''

        name = str(row['name'])
        scenarios[name.upper().replace(' ', '_')] = Scenario(
            name=name,
            description=str(description),
            params=params,
            initial=InitialConditions(**initial),
        )

    return scenarios


def get_scenarios() -> Dict[str, Scenario]:
    """Get all scenarios (built-ins plus any registered from CSV)."""
    global _SCENARIOS_CACHE

    if _SCENARIOS_CACHE is None:
        _SCENARIOS_CACHE = dict(BUILTIN_SCENARIOS)

    return _SCENARIOS_CACHE


def register_scenarios_csv(path) -> Dict[str, Scenario]:
    """Load a scenario CSV and make its entries available to get_scenario()."""
    loaded = load_scenarios_csv(path)
    get_scenarios().update(loaded)
    return loaded


def get_scenario(name: str) -> Scenario:
    """Get scenario by name (case-insensitive)."""
    scenarios = get_scenarios()
    key = name.upper().replace(' ', '_')
    if key not in scenarios:
        raise ConfigurationError(
            f"Unknown scenario {name!r}; available: {', '.join(sorted(scenarios))}")
    return scenarios[key]


# For code that imports SCENARIOS directly
def __getattr__(name):
    if name == 'SCENARIOS':
        return get_scenarios()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
