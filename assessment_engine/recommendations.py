"""
Assessment Engine - Recommendation Generator.

============================================================
PURPOSE
============================================================
Rule-based mapping from classified state to a prioritized,
human-readable action list.

============================================================
RULES
============================================================
- Remediation strings are appended when a score falls below
  its domain threshold
- At HIGH/CRITICAL classification an urgent set is prepended
  ahead of the baseline set
- No randomness: same input, same list, same order

Recommendation ids are "<prefix>-<nnn>", numbered in output
order starting at 001.

============================================================
"""

from typing import List, Optional, Sequence, Tuple

from .config import EnergyFlowConfig, ResilienceConfig
from .normalizer import round_score
from .types import (
    OptimizationSummary,
    OutlierRecord,
    Recommendation,
    RecommendationPriority,
    ResilienceMetrics,
    RiskLevel,
)


ENERGY_PREFIX = "ENR"
VULNERABILITY_PREFIX = "VUL"
RESILIENCE_PREFIX = "RES"

# Energy
UPGRADE_DISTRIBUTION = "Upgrade distribution infrastructure to reduce losses"
LOAD_BALANCING = "Implement load balancing across distribution nodes"
RENEWABLE_INTEGRATION = "Increase renewable energy integration"
SMART_GRID = "Deploy smart grid technologies for real-time optimization"

# Vulnerability
VULNERABILITY_BASELINE: Tuple[str, ...] = (
    "Strengthen infrastructure resilience",
    "Develop emergency response protocols",
    "Increase renewable energy capacity",
)
VULNERABILITY_URGENT: Tuple[str, ...] = (
    "Immediate infrastructure hardening required",
    "Deploy emergency backup systems",
    "Accelerate clean energy transition",
)

# Resilience remediation pairs
INFRASTRUCTURE_REMEDIATION = (
    "Strengthen critical infrastructure systems",
    "Implement redundant energy distribution networks",
)
COMMUNITY_REMEDIATION = (
    "Develop community emergency response programs",
    "Enhance local knowledge sharing networks",
)
ECONOMIC_REMEDIATION = (
    "Diversify local economic base",
    "Establish climate adaptation fund",
)
ADAPTATION_REMEDIATION = (
    "Invest in nature-based solutions",
    "Build adaptive management capacity",
)


def _number(
    prefix: str,
    items: Sequence[Tuple[RecommendationPriority, str, Optional[float]]],
) -> Tuple[Recommendation, ...]:
    return tuple(
        Recommendation(
            id=f"{prefix}-{index:03d}",
            priority=priority,
            description=description,
            estimated_impact=impact,
        )
        for index, (priority, description, impact) in enumerate(items, start=1)
    )


# ============================================================
# ENERGY
# ============================================================


def potential_savings(efficiency: float, config: Optional[EnergyFlowConfig] = None) -> float:
    """(target - efficiency) * savings per point, 0 at or above target."""
    config = config or EnergyFlowConfig()
    if efficiency >= config.target_efficiency:
        return 0.0
    return round_score((config.target_efficiency - efficiency) * config.savings_per_efficiency_point)


def energy_recommendations(
    efficiency: float,
    bottlenecks: Sequence[OutlierRecord],
    config: Optional[EnergyFlowConfig] = None,
) -> Tuple[Recommendation, ...]:
    config = config or EnergyFlowConfig()
    items: List[Tuple[RecommendationPriority, str, Optional[float]]] = []

    if efficiency < config.target_efficiency:
        items.append((
            RecommendationPriority.HIGH,
            UPGRADE_DISTRIBUTION,
            round_score(config.target_efficiency - efficiency),
        ))
    if len(bottlenecks) > config.load_balancing_bottleneck_count:
        items.append((RecommendationPriority.HIGH, LOAD_BALANCING, None))

    items.append((RecommendationPriority.MEDIUM, RENEWABLE_INTEGRATION, None))
    items.append((RecommendationPriority.MEDIUM, SMART_GRID, None))

    return _number(ENERGY_PREFIX, items)


def optimization_summary(
    efficiency: float,
    bottlenecks: Sequence[OutlierRecord],
    config: Optional[EnergyFlowConfig] = None,
) -> OptimizationSummary:
    return OptimizationSummary(
        potential_savings=potential_savings(efficiency, config),
        recommendations=energy_recommendations(efficiency, bottlenecks, config),
    )


# ============================================================
# VULNERABILITY
# ============================================================


def vulnerability_recommendations(level: RiskLevel) -> Tuple[Recommendation, ...]:
    """
    Baseline actions, preceded by the urgent set at HIGH/CRITICAL.
    """
    items: List[Tuple[RecommendationPriority, str, Optional[float]]] = []
    if level.is_urgent:
        urgent_priority = RecommendationPriority.from_risk_level(level)
        items.extend((urgent_priority, text, None) for text in VULNERABILITY_URGENT)
    items.extend((RecommendationPriority.MEDIUM, text, None) for text in VULNERABILITY_BASELINE)
    return _number(VULNERABILITY_PREFIX, items)


# ============================================================
# RESILIENCE
# ============================================================


def resilience_recommendations(
    metrics: ResilienceMetrics,
    config: Optional[ResilienceConfig] = None,
) -> Tuple[Recommendation, ...]:
    """
    Remediation pairs for every sub-index below its threshold.

    Estimated impact is the gap to the threshold. An empty
    tuple means every sub-index is at or above its threshold.
    """
    config = config or ResilienceConfig()
    priority = (
        RecommendationPriority.HIGH if metrics.risk_level.is_urgent
        else RecommendationPriority.MEDIUM
    )

    gates = (
        (metrics.infrastructure_resilience, config.infrastructure_threshold, INFRASTRUCTURE_REMEDIATION),
        (metrics.community_preparedness, config.community_threshold, COMMUNITY_REMEDIATION),
        (metrics.economic_stability, config.economic_threshold, ECONOMIC_REMEDIATION),
        (metrics.adaptation_capacity, config.adaptation_threshold, ADAPTATION_REMEDIATION),
    )

    items: List[Tuple[RecommendationPriority, str, Optional[float]]] = []
    for score, threshold, pair in gates:
        if score < threshold:
            gap = round_score(threshold - score)
            items.extend((priority, text, gap) for text in pair)

    return _number(RESILIENCE_PREFIX, items)
