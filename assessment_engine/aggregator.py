"""
Assessment Engine - Weighted Aggregator.

============================================================
PURPOSE
============================================================
Combines normalized factors into composite indices.

Two aggregation styles are supported per category:
- WEIGHTED_SUM:   score = sum(value_i * weight_i)
- SIMPLE_AVERAGE: score = mean(value_i)

Top-level composites are weighted sums over category scores.
All published outputs are clamped to [0, 100] and rounded to
two decimal places.

============================================================
DOMAIN FORMULAS
============================================================
Energy efficiency:
    (consumption / generation) * (100 - losses%) / 100 * 100
    generation <= 0 -> 0

Climate composite:
    renewable   = min(100, share * 2)
    emission    = max(0, 100 - annual / 50 * 100)
    temperature = max(0, 100 - (temp - 1) * 50)
    overall     = round(0.4 * renewable + 0.4 * emission + 0.2 * temperature)

Grid health:
    round(0.30 * reliability + 0.25 * efficiency
          + 0.25 * stability + 0.20 * min(100, share * 2))

============================================================
"""

import math
from datetime import datetime
from typing import Dict, Mapping, Optional, Sequence

from .config import ClimateScoreConfig, EnergyFlowConfig
from .normalizer import clamp, normalize, round_half_up, round_score
from .types import (
    AggregationStyle,
    ClimateSnapshot,
    CompositeScore,
    FactorCategory,
    GridStability,
)


# ============================================================
# GENERIC AGGREGATION
# ============================================================


def weighted_sum(values: Sequence[float], weights: Sequence[float]) -> float:
    """
    Sum of value_i * weight_i.

    Raises:
        ValueError: If values and weights differ in length
    """
    if len(values) != len(weights):
        raise ValueError(
            f"weighted_sum: {len(values)} values but {len(weights)} weights"
        )
    return sum(v * w for v, w in zip(values, weights))


def simple_average(values: Sequence[float]) -> float:
    """Arithmetic mean; 0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def aggregate_category(category: FactorCategory, values: Mapping[str, float]) -> float:
    """
    Score one category of a factor hierarchy.

    Sub-factors are read in the category's fixed order. A
    missing sub-factor reads as 0. The result is clamped to
    [0, 100] but not rounded.
    """
    ordered = [normalize(values.get(name, 0.0)) for name in category.subfactor_names]

    if category.style == AggregationStyle.SIMPLE_AVERAGE:
        score = simple_average(ordered)
    else:
        score = weighted_sum(ordered, category.weights)

    return clamp(score)


def score_categories(
    categories: Sequence[FactorCategory],
    values: Mapping[str, Mapping[str, float]],
) -> Dict[str, float]:
    """Unrounded score for every category, keyed by category name."""
    return {
        category.name: aggregate_category(category, values.get(category.name, {}))
        for category in categories
    }


def aggregate_hierarchy(
    categories: Sequence[FactorCategory],
    values: Mapping[str, Mapping[str, float]],
    category_weights: Mapping[str, float],
    computed_at: Optional[datetime] = None,
) -> CompositeScore:
    """
    Combine category scores into a composite score.

    Args:
        categories: Ordered categories of the hierarchy
        values: Raw sub-factor readings grouped by category
        category_weights: Top-level weight per category name
        computed_at: Timestamp recorded on the score

    Returns:
        CompositeScore with per-category breakdown
    """
    scores = score_categories(categories, values)
    names = [c.name for c in categories]
    overall = weighted_sum(
        [scores[name] for name in names],
        [category_weights.get(name, 0.0) for name in names],
    )
    return CompositeScore(
        value=round_score(clamp(overall)),
        components={name: round_score(scores[name]) for name in names},
        computed_at=computed_at,
    )


# ============================================================
# ENERGY
# ============================================================


def compute_energy_efficiency(
    generation: Optional[float],
    consumption: Optional[float],
    losses_percent: Optional[float],
) -> float:
    """
    System efficiency on a 0-100 scale.

    Zero or negative generation returns 0 instead of dividing.
    """
    if generation is None or not math.isfinite(generation) or generation <= 0:
        return 0.0
    consumption = consumption or 0.0
    losses_percent = losses_percent or 0.0

    efficiency = (consumption / generation) * (100 - losses_percent) / 100 * 100
    return round_score(clamp(efficiency))


def compute_grid_health(
    reliability_index: Optional[float],
    efficiency: float,
    grid_stability: GridStability,
    renewable_share_percent: float,
    config: Optional[EnergyFlowConfig] = None,
) -> Optional[int]:
    """
    Composite grid health score.

    Returns None when no reliability index was reported.
    """
    if reliability_index is None:
        return None
    config = config or EnergyFlowConfig()

    stability_score = config.grid_stability_scores.get(grid_stability, 50.0)
    renewable_score = min(100.0, renewable_share_percent * config.renewable_score_multiplier)
    components = [
        clamp(reliability_index),
        clamp(efficiency),
        stability_score,
        clamp(renewable_score),
    ]
    return round_half_up(clamp(weighted_sum(components, config.grid_health_weights)))


# ============================================================
# CLIMATE
# ============================================================


def compute_climate_components(
    climate: ClimateSnapshot,
    config: Optional[ClimateScoreConfig] = None,
) -> Dict[str, float]:
    """
    The three weighted components of the climate score.
    """
    config = config or ClimateScoreConfig()

    # Each component is clamped to [0, 100] so a reading outside the
    # modelled range (negative emissions, sub-baseline temperature)
    # cannot outweigh the other components.
    renewable = min(100.0, climate.renewable_share_percent * config.renewable_multiplier)
    emission = max(
        0.0,
        100 - (climate.emissions.annual / config.emissions_reference) * 100,
    )
    temperature = max(
        0.0,
        100 - (climate.global_temperature - config.temperature_baseline) * config.temperature_penalty,
    )
    return {
        "renewable_weight": clamp(renewable),
        "emission_weight": clamp(emission),
        "temperature_weight": clamp(temperature),
    }


def compute_climate_score(
    climate: ClimateSnapshot,
    config: Optional[ClimateScoreConfig] = None,
) -> int:
    """Overall climate score, rounded to an integer."""
    config = config or ClimateScoreConfig()
    components = compute_climate_components(climate, config)
    overall = weighted_sum(
        [
            components["renewable_weight"],
            components["emission_weight"],
            components["temperature_weight"],
        ],
        config.component_weights,
    )
    return round_half_up(clamp(overall))
