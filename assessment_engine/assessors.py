"""
Assessment Engine - Domain Assessors.

============================================================
PURPOSE
============================================================
One assessor per domain. Each assessor sequences the
normalizer, aggregator, classifier, outlier detector and
recommendation generator against a MetricSnapshot.

Each assessor:
1. Reads only the parts of the snapshot it needs
2. Falls back to an empty result when they are missing
3. Returns a frozen result stamped with the snapshot time

============================================================
DESIGN PRINCIPLES
============================================================
- Pure functions: same snapshot = same result
- No external state or side effects
- Threshold-based, deterministic logic
- Missing input degrades to defaults, never raises

============================================================
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional

from .aggregator import (
    compute_climate_components,
    compute_climate_score,
    compute_energy_efficiency,
    compute_grid_health,
    score_categories,
    weighted_sum,
)
from .classifier import (
    accumulate_vulnerability_points,
    classify_resilience_score,
    classify_risk_points,
)
from .config import (
    COMMUNITY,
    ECONOMIC,
    ENERGY_GRID_STABILITY,
    ENVIRONMENTAL,
    INFRASTRUCTURE,
    ClimateScoreConfig,
    EnergyFlowConfig,
    ResilienceConfig,
    VulnerabilityConfig,
)
from .normalizer import clamp, round_score
from .outliers import average_vulnerability, detect_bottlenecks, rank_hotspots
from .recommendations import (
    optimization_summary,
    resilience_recommendations,
    vulnerability_recommendations,
)
from .types import (
    AssessmentDomain,
    ClimateCategories,
    ClimateScoreResult,
    ClimateSnapshot,
    ClimateTrends,
    EnergyFlowResult,
    EnergySnapshot,
    MetricSnapshot,
    ResilienceMetrics,
    VulnerabilityResult,
)


# ============================================================
# BASE ASSESSOR
# ============================================================


class BaseAssessor(ABC):
    """
    Abstract base class for domain assessors.
    """

    @property
    @abstractmethod
    def domain(self) -> AssessmentDomain:
        """Return the domain this assessor handles."""
        pass

    @abstractmethod
    def assess(self, snapshot: MetricSnapshot) -> Any:
        """Compute this domain's result from a snapshot."""
        pass


# ============================================================
# ENERGY FLOW ASSESSOR
# ============================================================


class EnergyFlowAssessor(BaseAssessor):
    """
    Assess grid efficiency and distribution bottlenecks.

    ============================================================
    METRICS EVALUATED
    ============================================================
    1. System efficiency (consumption vs generation, net of losses)
    2. Bottleneck nodes (inefficient or above 90% utilization)
    3. Grid health (only when a reliability index is reported)

    ============================================================
    """

    def __init__(self, config: Optional[EnergyFlowConfig] = None):
        self.config = config or EnergyFlowConfig()

    @property
    def domain(self) -> AssessmentDomain:
        return AssessmentDomain.ENERGY_FLOW

    def assess(self, snapshot: MetricSnapshot) -> EnergyFlowResult:
        energy = snapshot.energy
        if energy is None:
            return EnergyFlowResult.empty(snapshot.captured_at)

        efficiency = efficiency_of(energy)
        bottlenecks = detect_bottlenecks(energy.distribution_nodes, self.config)

        return EnergyFlowResult(
            efficiency=efficiency,
            bottlenecks=bottlenecks,
            optimization=optimization_summary(efficiency, bottlenecks, self.config),
            grid_health_score=compute_grid_health(
                energy.reliability_index,
                efficiency,
                energy.grid_stability,
                energy.renewable_share_percent,
                self.config,
            ),
            computed_at=snapshot.captured_at,
        )


def efficiency_of(energy: EnergySnapshot) -> float:
    return compute_energy_efficiency(
        energy.total_generation,
        energy.total_consumption,
        energy.distribution_losses_percent,
    )


# ============================================================
# CLIMATE SCORE ASSESSOR
# ============================================================


class ClimateScoreAssessor(BaseAssessor):
    """
    Assess the climate action composite score.

    Categories are derived from the overall score:
    mitigation, adaptation and resilience equal it,
    vulnerability is its complement.
    """

    def __init__(self, config: Optional[ClimateScoreConfig] = None):
        self.config = config or ClimateScoreConfig()

    @property
    def domain(self) -> AssessmentDomain:
        return AssessmentDomain.CLIMATE_SCORE

    def assess(self, snapshot: MetricSnapshot) -> ClimateScoreResult:
        climate = snapshot.climate
        if climate is None:
            return ClimateScoreResult.empty(snapshot.captured_at)

        overall = compute_climate_score(climate, self.config)
        components = compute_climate_components(climate, self.config)

        return ClimateScoreResult(
            overall_score=overall,
            categories=ClimateCategories(
                mitigation=float(overall),
                adaptation=float(overall),
                vulnerability=clamp(100.0 - overall),
                resilience=float(overall),
            ),
            trends=self._trends(climate),
            components={name: round_score(value) for name, value in components.items()},
            computed_at=snapshot.captured_at,
        )

    def _trends(self, climate: ClimateSnapshot) -> ClimateTrends:
        """
        Split the fixed trend signals into improving and declining.
        """
        signals = (
            ("renewable energy adoption",
             climate.renewable_share_percent >= self.config.renewable_adoption_threshold),
            ("carbon intensity reduction", climate.emissions.reduction_percent > 0),
            ("emissions trajectory", climate.emissions.annual <= climate.emissions.target),
            ("atmospheric CO2 concentration",
             climate.co2_concentration <= self.config.co2_concentration_threshold),
        )
        return ClimateTrends(
            improving=tuple(name for name, ok in signals if ok),
            declining=tuple(name for name, ok in signals if not ok),
        )


# ============================================================
# VULNERABILITY ASSESSOR
# ============================================================


class VulnerabilityAssessor(BaseAssessor):
    """
    Classify combined climate and grid vulnerability.

    ============================================================
    RISK POINTS
    ============================================================
    Temperature (climate), grid stability (energy) and
    renewable share (energy) each contribute points. Both the
    climate and energy snapshots are required.

    ============================================================
    """

    def __init__(self, config: Optional[VulnerabilityConfig] = None):
        self.config = config or VulnerabilityConfig()

    @property
    def domain(self) -> AssessmentDomain:
        return AssessmentDomain.VULNERABILITY

    def assess(self, snapshot: MetricSnapshot) -> VulnerabilityResult:
        climate, energy = snapshot.climate, snapshot.energy
        if climate is None or energy is None:
            return VulnerabilityResult.empty(snapshot.captured_at)

        points = accumulate_vulnerability_points(
            climate.global_temperature,
            energy.grid_stability,
            energy.renewable_share_percent,
            self.config,
        )
        classification = classify_risk_points(points.total, self.config)

        return VulnerabilityResult(
            risk_level=classification.level,
            risk_points=points.total,
            average_vulnerability=average_vulnerability(climate.regions),
            affected_regions=rank_hotspots(
                climate.regions,
                self.config.affected_region_limit,
                self.config.primary_threats,
            ),
            recommendations=vulnerability_recommendations(classification.level),
            computed_at=snapshot.captured_at,
        )


# ============================================================
# RESILIENCE ASSESSOR
# ============================================================


class ResilienceAssessor(BaseAssessor):
    """
    Compute the community resilience index.

    Infrastructure and economic categories are weighted sums,
    community and environmental are simple averages. The
    energy_grid_stability sub-factor falls back to the
    computed grid efficiency when it is not reported.
    """

    def __init__(
        self,
        config: Optional[ResilienceConfig] = None,
    ):
        self.config = config or ResilienceConfig()

    @property
    def domain(self) -> AssessmentDomain:
        return AssessmentDomain.RESILIENCE

    def assess(self, snapshot: MetricSnapshot) -> ResilienceMetrics:
        if snapshot.resilience is None and snapshot.energy is None:
            return ResilienceMetrics.empty(snapshot.captured_at)

        factors = self._factors(snapshot)
        scores = score_categories(self.config.hierarchy, factors)
        names = [c.name for c in self.config.hierarchy]
        overall = clamp(weighted_sum(
            [scores[name] for name in names],
            [self.config.category_weights.get(name, 0.0) for name in names],
        ))

        community = scores.get(COMMUNITY, 0.0)
        environmental = scores.get(ENVIRONMENTAL, 0.0)
        overall_score = round_score(overall)

        metrics = ResilienceMetrics(
            overall_score=overall_score,
            infrastructure_resilience=round_score(scores.get(INFRASTRUCTURE, 0.0)),
            community_preparedness=round_score(community),
            adaptation_capacity=round_score(clamp((community + environmental) / 2)),
            economic_stability=round_score(scores.get(ECONOMIC, 0.0)),
            social_cohesion=round_score(community),
            risk_level=classify_resilience_score(overall_score, self.config).level,
            computed_at=snapshot.captured_at,
        )
        return replace(metrics, recommendations=resilience_recommendations(metrics, self.config))

    def _factors(self, snapshot: MetricSnapshot) -> Dict[str, Mapping[str, float]]:
        factors: Dict[str, Mapping[str, float]] = {}
        if snapshot.resilience is not None:
            factors = {name: dict(values) for name, values in snapshot.resilience.factors.items()}

        infrastructure = dict(factors.get(INFRASTRUCTURE, {}))
        if ENERGY_GRID_STABILITY not in infrastructure:
            infrastructure[ENERGY_GRID_STABILITY] = (
                efficiency_of(snapshot.energy) if snapshot.energy is not None else 0.0
            )
        factors[INFRASTRUCTURE] = infrastructure
        return factors
