"""
Assessment Engine - Configuration.

============================================================
PURPOSE
============================================================
Defines all configuration dataclasses, thresholds and weight
vectors for the Assessment Engine.

============================================================
DESIGN PRINCIPLES
============================================================
- Thresholds are fixed constants per domain
- Threshold tables are ordered from strictest to loosest
- Weight vectors are ordered and paired with sub-factor names
- Immutable configurations

============================================================
THRESHOLD PHILOSOPHY
============================================================
Classification tables are (minimum, label) pairs checked
from the highest minimum down. The first match wins, so the
strictest label is always preferred.

============================================================
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .types import (
    AggregationStyle,
    FactorCategory,
    GridStability,
    RiskLevel,
)


# ============================================================
# ENERGY FLOW CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class EnergyFlowConfig:
    """
    Configuration for the energy flow domain.

    ============================================================
    BOTTLENECK RULES
    ============================================================
    A node is a bottleneck when:
    - efficiency < bottleneck_efficiency_threshold, OR
    - current_load > overload_utilization_ratio * capacity

    Severity:
    - efficiency < high_severity_efficiency -> HIGH
    - efficiency < bottleneck_efficiency_threshold -> MEDIUM
    - otherwise LOW

    ============================================================
    """

    bottleneck_efficiency_threshold: float = 85.0
    high_severity_efficiency: float = 70.0
    overload_utilization_ratio: float = 0.9
    max_bottlenecks: int = 5

    # Savings / recommendation gates
    target_efficiency: float = 80.0
    savings_per_efficiency_point: float = 1000.0
    load_balancing_bottleneck_count: int = 3  # more than this many bottlenecks

    # Grid health weights: reliability, efficiency, stability, renewables
    grid_health_weights: Tuple[float, float, float, float] = (0.30, 0.25, 0.25, 0.20)
    grid_stability_scores: Dict[GridStability, float] = field(default_factory=lambda: {
        GridStability.STABLE: 100.0,
        GridStability.MODERATE: 75.0,
        GridStability.UNSTABLE: 50.0,
        GridStability.CRITICAL: 25.0,
    })
    renewable_score_multiplier: float = 2.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bottleneck_efficiency_threshold": self.bottleneck_efficiency_threshold,
            "high_severity_efficiency": self.high_severity_efficiency,
            "overload_utilization_ratio": self.overload_utilization_ratio,
            "max_bottlenecks": self.max_bottlenecks,
            "target_efficiency": self.target_efficiency,
            "savings_per_efficiency_point": self.savings_per_efficiency_point,
            "load_balancing_bottleneck_count": self.load_balancing_bottleneck_count,
            "grid_health_weights": list(self.grid_health_weights),
        }


# ============================================================
# CLIMATE SCORE CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class ClimateScoreConfig:
    """
    Configuration for the climate composite score.

    renewableWeight   = min(100, share * renewable_multiplier)
    emissionWeight    = max(0, 100 - annual / emissions_reference * 100)
    temperatureWeight = max(0, 100 - (temp - temperature_baseline) * temperature_penalty)
    overall           = round(weighted sum of the three)
    """

    renewable_multiplier: float = 2.0
    emissions_reference: float = 50.0
    temperature_baseline: float = 1.0
    temperature_penalty: float = 50.0

    # renewable, emission, temperature
    component_weights: Tuple[float, float, float] = (0.4, 0.4, 0.2)

    # Trend signals
    renewable_adoption_threshold: float = 30.0
    co2_concentration_threshold: float = 420.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "renewable_multiplier": self.renewable_multiplier,
            "emissions_reference": self.emissions_reference,
            "temperature_baseline": self.temperature_baseline,
            "temperature_penalty": self.temperature_penalty,
            "component_weights": list(self.component_weights),
            "renewable_adoption_threshold": self.renewable_adoption_threshold,
            "co2_concentration_threshold": self.co2_concentration_threshold,
        }


# ============================================================
# VULNERABILITY CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class VulnerabilityConfig:
    """
    Configuration for the vulnerability risk-point classifier.

    ============================================================
    RISK POINTS
    ============================================================
    Temperature:     > temperature_threshold -> 2, else 1
    Grid stability:  critical -> 3, unstable -> 2, else 1
    Renewable share: < renewable_share_threshold -> 2, else 1

    Total: 3-7

    ============================================================
    CLASSIFICATION
    ============================================================
    >= 6 CRITICAL, >= 4 HIGH, >= 3 MEDIUM, else LOW

    ============================================================
    """

    temperature_threshold: float = 1.5
    temperature_points: Tuple[int, int] = (2, 1)  # (above, at-or-below)

    grid_stability_points: Dict[GridStability, int] = field(default_factory=lambda: {
        GridStability.CRITICAL: 3,
        GridStability.UNSTABLE: 2,
    })
    grid_default_points: int = 1

    renewable_share_threshold: float = 30.0
    renewable_points: Tuple[int, int] = (2, 1)  # (below, at-or-above)

    risk_thresholds: Tuple[Tuple[float, RiskLevel], ...] = (
        (6, RiskLevel.CRITICAL),
        (4, RiskLevel.HIGH),
        (3, RiskLevel.MEDIUM),
    )

    affected_region_limit: int = 3
    primary_threats: Tuple[str, ...] = (
        "extreme weather",
        "temperature rise",
        "infrastructure stress",
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature_threshold": self.temperature_threshold,
            "renewable_share_threshold": self.renewable_share_threshold,
            "grid_stability_points": {k.value: v for k, v in self.grid_stability_points.items()},
            "risk_thresholds": [(t, lvl.value) for t, lvl in self.risk_thresholds],
            "affected_region_limit": self.affected_region_limit,
        }


# ============================================================
# RESILIENCE CONFIGURATION
# ============================================================


INFRASTRUCTURE = "infrastructure"
COMMUNITY = "community"
ECONOMIC = "economic"
ENVIRONMENTAL = "environmental"

ENERGY_GRID_STABILITY = "energy_grid_stability"


def default_resilience_hierarchy() -> Tuple[FactorCategory, ...]:
    """The four resilience categories in their fixed order."""
    return (
        FactorCategory(
            name=INFRASTRUCTURE,
            subfactors=(
                (ENERGY_GRID_STABILITY, 0.30),
                ("transportation_resilience", 0.25),
                ("building_standards", 0.25),
                ("water_management", 0.20),
            ),
            style=AggregationStyle.WEIGHTED_SUM,
        ),
        FactorCategory(
            name=COMMUNITY,
            subfactors=(
                ("emergency_preparedness", 0.25),
                ("social_networks", 0.25),
                ("local_knowledge", 0.25),
                ("institutional_capacity", 0.25),
            ),
            style=AggregationStyle.SIMPLE_AVERAGE,
        ),
        FactorCategory(
            name=ECONOMIC,
            subfactors=(
                ("diversification", 0.30),
                ("financial_reserves", 0.30),
                ("insurance_coverage", 0.20),
                ("recovery_capacity", 0.20),
            ),
            style=AggregationStyle.WEIGHTED_SUM,
        ),
        FactorCategory(
            name=ENVIRONMENTAL,
            subfactors=(
                ("ecosystem_health", 0.25),
                ("natural_buffers", 0.25),
                ("biodiversity_index", 0.25),
                ("resource_availability", 0.25),
            ),
            style=AggregationStyle.SIMPLE_AVERAGE,
        ),
    )


@dataclass(frozen=True)
class ResilienceConfig:
    """
    Configuration for the resilience index.

    Remediation thresholds gate the threshold-driven
    recommendation pairs. Deficit thresholds classify
    100 - overall_score into a risk level.
    """

    hierarchy: Tuple[FactorCategory, ...] = field(default_factory=default_resilience_hierarchy)
    category_weights: Dict[str, float] = field(default_factory=lambda: {
        INFRASTRUCTURE: 0.30,
        COMMUNITY: 0.25,
        ECONOMIC: 0.25,
        ENVIRONMENTAL: 0.20,
    })

    infrastructure_threshold: float = 70.0
    community_threshold: float = 60.0
    economic_threshold: float = 65.0
    adaptation_threshold: float = 75.0

    deficit_thresholds: Tuple[Tuple[float, RiskLevel], ...] = (
        (60, RiskLevel.CRITICAL),
        (40, RiskLevel.HIGH),
        (25, RiskLevel.MEDIUM),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hierarchy": {
                c.name: {"style": c.style.value, "subfactors": [list(s) for s in c.subfactors]}
                for c in self.hierarchy
            },
            "category_weights": dict(self.category_weights),
            "infrastructure_threshold": self.infrastructure_threshold,
            "community_threshold": self.community_threshold,
            "economic_threshold": self.economic_threshold,
            "adaptation_threshold": self.adaptation_threshold,
            "deficit_thresholds": [(t, lvl.value) for t, lvl in self.deficit_thresholds],
        }


# ============================================================
# MASTER CONFIGURATION
# ============================================================


def _check_thresholds(name: str, table: Tuple[Tuple[float, RiskLevel], ...]) -> List[str]:
    errors = []
    for (upper, upper_level), (lower, lower_level) in zip(table, table[1:]):
        if not upper > lower:
            errors.append(f"{name}: thresholds must strictly decrease ({upper} !> {lower})")
        if upper_level.severity_order < lower_level.severity_order:
            errors.append(f"{name}: label {upper_level.value} is below {lower_level.value}")
    return errors


@dataclass(frozen=True)
class AssessmentConfig:
    """
    Complete engine configuration.
    """

    energy_flow: EnergyFlowConfig = field(default_factory=EnergyFlowConfig)
    climate_score: ClimateScoreConfig = field(default_factory=ClimateScoreConfig)
    vulnerability: VulnerabilityConfig = field(default_factory=VulnerabilityConfig)
    resilience: ResilienceConfig = field(default_factory=ResilienceConfig)

    engine_version: str = "1.0.0"

    def validate(self) -> List[str]:
        """
        Validate weights and thresholds.

        Returns:
            List of problems (empty if configuration is valid)
        """
        errors: List[str] = []

        for category in self.resilience.hierarchy:
            errors.extend(category.validate())

        names = {c.name for c in self.resilience.hierarchy}
        if set(self.resilience.category_weights) != names:
            errors.append("resilience category weights do not match hierarchy categories")
        total = sum(self.resilience.category_weights.values())
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            errors.append(f"resilience category weights sum to {total:.4f}, expected 1.0")

        for label, weights in (
            ("grid health", self.energy_flow.grid_health_weights),
            ("climate components", self.climate_score.component_weights),
        ):
            if not math.isclose(sum(weights), 1.0, abs_tol=1e-6):
                errors.append(f"{label} weights sum to {sum(weights):.4f}, expected 1.0")

        if self.energy_flow.high_severity_efficiency > self.energy_flow.bottleneck_efficiency_threshold:
            errors.append("high severity efficiency must not exceed bottleneck threshold")
        if self.energy_flow.max_bottlenecks < 0:
            errors.append("max_bottlenecks must be non-negative")

        errors.extend(_check_thresholds("vulnerability", self.vulnerability.risk_thresholds))
        errors.extend(_check_thresholds("resilience deficit", self.resilience.deficit_thresholds))
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "energy_flow": self.energy_flow.to_dict(),
            "climate_score": self.climate_score.to_dict(),
            "vulnerability": self.vulnerability.to_dict(),
            "resilience": self.resilience.to_dict(),
            "engine_version": self.engine_version,
        }


def get_default_config() -> AssessmentConfig:
    """Get the default configuration."""
    return AssessmentConfig()
