"""
Assessment Engine - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the Assessment Engine.

This module defines the enums, input snapshots, intermediate
scoring records and published result types used by every
assessor. Snapshots come from the Data Provider; results go
to the presentation layer.

============================================================
DESIGN PRINCIPLES
============================================================
- All records are frozen dataclasses
- Enums for discrete labels
- Results are replaced whole, never patched
- Result timestamps come from the snapshot, not the wall clock

============================================================
ASSESSMENT DOMAINS
============================================================
1. ENERGY_FLOW - Grid efficiency and bottlenecks
2. CLIMATE_SCORE - Climate action composite score
3. VULNERABILITY - Climate/grid risk classification
4. RESILIENCE - Community resilience index

============================================================
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


# ============================================================
# ENUMS
# ============================================================


class AssessmentDomain(str, Enum):
    """
    The four assessment domains computed from a snapshot.

    Each domain writes its own output slot and has no data
    dependency on the others.
    """

    ENERGY_FLOW = "energy_flow"
    CLIMATE_SCORE = "climate_score"
    VULNERABILITY = "vulnerability"
    RESILIENCE = "resilience"

    @classmethod
    def all_domains(cls) -> List["AssessmentDomain"]:
        """Return all domains in evaluation order."""
        return [cls.ENERGY_FLOW, cls.CLIMATE_SCORE, cls.VULNERABILITY, cls.RESILIENCE]


class RiskLevel(str, Enum):
    """
    Ordinal risk classification.

    Ordering: LOW < MEDIUM < HIGH < CRITICAL
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def severity_order(self) -> int:
        """Numeric ordering for severity comparison."""
        return {"low": 0, "medium": 1, "high": 2, "critical": 3}[self.value]

    @property
    def is_urgent(self) -> bool:
        """HIGH and CRITICAL levels call for urgent action."""
        return self in (RiskLevel.HIGH, RiskLevel.CRITICAL)


class OutlierSeverity(str, Enum):
    """Severity label attached to a bottleneck or hotspot."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class GridStability(str, Enum):
    """Reported stability of the distribution grid."""

    STABLE = "stable"
    MODERATE = "moderate"
    UNSTABLE = "unstable"
    CRITICAL = "critical"


class AggregationStyle(str, Enum):
    """How sub-factors inside one category are combined."""

    WEIGHTED_SUM = "weighted_sum"
    SIMPLE_AVERAGE = "simple_average"


class RecommendationPriority(str, Enum):
    """Priority of a recommendation."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_risk_level(cls, level: RiskLevel) -> "RecommendationPriority":
        return cls(level.value)


# ============================================================
# FACTOR HIERARCHY
# ============================================================


@dataclass(frozen=True)
class FactorCategory:
    """
    One category of a factor hierarchy.

    Sub-factors are kept in a fixed order. For WEIGHTED_SUM
    categories the weights must sum to 1.0. For SIMPLE_AVERAGE
    categories the weights are ignored (implicitly equal).
    """

    name: str
    subfactors: Tuple[Tuple[str, float], ...]
    style: AggregationStyle = AggregationStyle.WEIGHTED_SUM

    @property
    def subfactor_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.subfactors)

    @property
    def weights(self) -> Tuple[float, ...]:
        return tuple(weight for _, weight in self.subfactors)

    def validate(self) -> List[str]:
        """Return a list of problems with this category (empty if valid)."""
        errors: List[str] = []
        if not self.subfactors:
            errors.append(f"category '{self.name}' has no sub-factors")
        names = self.subfactor_names
        if len(set(names)) != len(names):
            errors.append(f"category '{self.name}' has duplicate sub-factors")
        if self.style == AggregationStyle.WEIGHTED_SUM:
            total = sum(self.weights)
            if not math.isclose(total, 1.0, abs_tol=1e-6):
                errors.append(
                    f"category '{self.name}' weights sum to {total:.4f}, expected 1.0"
                )
            if any(w < 0 for w in self.weights):
                errors.append(f"category '{self.name}' has negative weights")
        return errors


# ============================================================
# INPUT SNAPSHOTS
# ============================================================


@dataclass(frozen=True)
class DistributionNode:
    """A single grid distribution node."""

    id: str
    capacity: float
    current_load: float
    efficiency: float

    @property
    def utilization(self) -> float:
        """Load as a fraction of capacity (0 when capacity is not positive)."""
        if self.capacity <= 0:
            return 0.0
        return self.current_load / self.capacity

    @property
    def is_well_formed(self) -> bool:
        """Non-empty id and finite numbers."""
        if not self.id:
            return False
        return all(
            isinstance(v, (int, float)) and math.isfinite(v)
            for v in (self.capacity, self.current_load, self.efficiency)
        )


@dataclass(frozen=True)
class EnergySnapshot:
    """
    Energy-grid telemetry at one instant.

    `renewable_share_percent`, `grid_stability` and
    `reliability_index` feed the vulnerability and grid health
    calculations.
    """

    total_generation: float = 0.0
    total_consumption: float = 0.0
    distribution_losses_percent: float = 0.0
    distribution_nodes: Tuple[DistributionNode, ...] = ()
    renewable_share_percent: float = 0.0
    grid_stability: GridStability = GridStability.STABLE
    reliability_index: Optional[float] = None


@dataclass(frozen=True)
class EmissionsData:
    """Emission figures (GT CO2) and reduction progress."""

    annual: float = 0.0
    target: float = 0.0
    reduction_percent: float = 0.0


@dataclass(frozen=True)
class RegionData:
    """Per-region vulnerability index on a 0-100 scale."""

    id: str
    vulnerability_index: float


@dataclass(frozen=True)
class ClimateSnapshot:
    """Climate measurements at one instant."""

    global_temperature: float = 0.0
    co2_concentration: float = 0.0
    renewable_share_percent: float = 0.0
    emissions: EmissionsData = field(default_factory=EmissionsData)
    regions: Tuple[RegionData, ...] = ()


@dataclass(frozen=True)
class ResilienceSnapshot:
    """
    Socio-economic resilience factors, grouped by category.

    Keys are category names ("infrastructure", "community",
    "economic", "environmental"); values map sub-factor name
    to a raw 0-100 reading. Missing sub-factors read as 0.
    """

    factors: Mapping[str, Mapping[str, float]] = field(default_factory=dict)

    def category(self, name: str) -> Mapping[str, float]:
        return self.factors.get(name, {})


@dataclass(frozen=True)
class MetricSnapshot:
    """
    Immutable read of upstream state.

    Produced by the Data Provider. Any of the domain snapshots
    may be missing; the engine falls back to default results.
    """

    energy: Optional[EnergySnapshot] = None
    climate: Optional[ClimateSnapshot] = None
    resilience: Optional[ResilienceSnapshot] = None
    version: int = 0
    captured_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.energy is None and self.climate is None and self.resilience is None


# ============================================================
# SCORING RECORDS
# ============================================================


@dataclass(frozen=True)
class CompositeScore:
    """A bounded [0,100] score and its contributing components."""

    value: float
    components: Dict[str, float] = field(default_factory=dict)
    computed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "components": dict(self.components),
            "computed_at": self.computed_at.isoformat() if self.computed_at else None,
        }


@dataclass(frozen=True)
class Classification:
    """An ordinal label and the value it was derived from."""

    level: RiskLevel
    value: float
    basis: str  # "score" or "points"

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level.value, "value": self.value, "basis": self.basis}


@dataclass(frozen=True)
class RiskPoints:
    """Accumulated risk points with a per-signal breakdown."""

    total: int
    breakdown: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class OutlierRecord:
    """An entity crossing a utilization or efficiency threshold."""

    entity_id: str
    severity: OutlierSeverity
    impact: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "severity": self.severity.value,
            "impact": self.impact,
        }


@dataclass(frozen=True)
class Recommendation:
    """A single prioritized action."""

    id: str
    priority: RecommendationPriority
    description: str
    estimated_impact: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "priority": self.priority.value,
            "description": self.description,
            "estimated_impact": self.estimated_impact,
        }


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts else None


# ============================================================
# DOMAIN RESULTS
# ============================================================


@dataclass(frozen=True)
class OptimizationSummary:
    """Potential savings and the ordered recommendation list."""

    potential_savings: float = 0.0
    recommendations: Tuple[Recommendation, ...] = ()

    @property
    def descriptions(self) -> List[str]:
        return [r.description for r in self.recommendations]


@dataclass(frozen=True)
class EnergyFlowResult:
    """Published output of the energy flow domain."""

    efficiency: float = 0.0
    bottlenecks: Tuple[OutlierRecord, ...] = ()
    optimization: OptimizationSummary = field(default_factory=OptimizationSummary)
    grid_health_score: Optional[int] = None
    computed_at: Optional[datetime] = None

    @classmethod
    def empty(cls, computed_at: Optional[datetime] = None) -> "EnergyFlowResult":
        return cls(computed_at=computed_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "efficiency": self.efficiency,
            "bottlenecks": [b.to_dict() for b in self.bottlenecks],
            "optimization": {
                "potential_savings": self.optimization.potential_savings,
                "recommendations": [r.to_dict() for r in self.optimization.recommendations],
            },
            "grid_health_score": self.grid_health_score,
            "computed_at": _iso(self.computed_at),
        }


@dataclass(frozen=True)
class ClimateCategories:
    mitigation: float = 0.0
    adaptation: float = 0.0
    vulnerability: float = 0.0
    resilience: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "mitigation": self.mitigation,
            "adaptation": self.adaptation,
            "vulnerability": self.vulnerability,
            "resilience": self.resilience,
        }


@dataclass(frozen=True)
class ClimateTrends:
    improving: Tuple[str, ...] = ()
    declining: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ClimateScoreResult:
    """Published output of the climate score domain."""

    overall_score: int = 0
    categories: ClimateCategories = field(default_factory=ClimateCategories)
    trends: ClimateTrends = field(default_factory=ClimateTrends)
    components: Dict[str, float] = field(default_factory=dict)
    computed_at: Optional[datetime] = None

    @classmethod
    def empty(cls, computed_at: Optional[datetime] = None) -> "ClimateScoreResult":
        return cls(computed_at=computed_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "categories": self.categories.to_dict(),
            "trends": {
                "improving": list(self.trends.improving),
                "declining": list(self.trends.declining),
            },
            "components": dict(self.components),
            "computed_at": _iso(self.computed_at),
        }


@dataclass(frozen=True)
class AffectedRegion:
    region_id: str
    vulnerability_score: float
    primary_threats: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "region_id": self.region_id,
            "vulnerability_score": self.vulnerability_score,
            "primary_threats": list(self.primary_threats),
        }


@dataclass(frozen=True)
class VulnerabilityResult:
    """Published output of the vulnerability domain."""

    risk_level: RiskLevel = RiskLevel.LOW
    risk_points: int = 0
    average_vulnerability: float = 0.0
    affected_regions: Tuple[AffectedRegion, ...] = ()
    recommendations: Tuple[Recommendation, ...] = ()
    computed_at: Optional[datetime] = None

    @classmethod
    def empty(cls, computed_at: Optional[datetime] = None) -> "VulnerabilityResult":
        return cls(computed_at=computed_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk_level": self.risk_level.value,
            "risk_points": self.risk_points,
            "average_vulnerability": self.average_vulnerability,
            "affected_regions": [r.to_dict() for r in self.affected_regions],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "computed_at": _iso(self.computed_at),
        }


@dataclass(frozen=True)
class ResilienceMetrics:
    """Published output of the resilience domain."""

    overall_score: float = 0.0
    infrastructure_resilience: float = 0.0
    community_preparedness: float = 0.0
    adaptation_capacity: float = 0.0
    economic_stability: float = 0.0
    social_cohesion: float = 0.0
    risk_level: RiskLevel = RiskLevel.LOW
    recommendations: Tuple[Recommendation, ...] = ()
    computed_at: Optional[datetime] = None

    @classmethod
    def empty(cls, computed_at: Optional[datetime] = None) -> "ResilienceMetrics":
        return cls(computed_at=computed_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "infrastructure_resilience": self.infrastructure_resilience,
            "community_preparedness": self.community_preparedness,
            "adaptation_capacity": self.adaptation_capacity,
            "economic_stability": self.economic_stability,
            "social_cohesion": self.social_cohesion,
            "risk_level": self.risk_level.value,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "computed_at": _iso(self.computed_at),
        }


@dataclass(frozen=True)
class AssessmentReport:
    """All four domain results computed from one snapshot."""

    energy_flow: EnergyFlowResult
    climate_score: ClimateScoreResult
    vulnerability: VulnerabilityResult
    resilience: ResilienceMetrics
    snapshot_version: int = 0
    engine_version: str = "1.0.0"

    def get(self, domain: AssessmentDomain) -> Any:
        return getattr(self, domain.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshot_version": self.snapshot_version,
            "engine_version": self.engine_version,
            "energy_flow": self.energy_flow.to_dict(),
            "climate_score": self.climate_score.to_dict(),
            "vulnerability": self.vulnerability.to_dict(),
            "resilience": self.resilience.to_dict(),
        }


# ============================================================
# ERROR TYPES
# ============================================================


class AssessmentError(Exception):
    """Base exception for assessment errors."""

    def __init__(self, message: str, domain: Optional[AssessmentDomain] = None) -> None:
        super().__init__(message)
        self.domain = domain


class SnapshotValidationError(AssessmentError):
    """Raised when a raw payload cannot be turned into a snapshot."""

    def __init__(
        self,
        message: str,
        domain: Optional[AssessmentDomain] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        super().__init__(message, domain)
        self.errors = errors or []


class ConfigurationError(AssessmentError):
    """Raised when weights or thresholds are inconsistent."""
    pass


class ComputationError(AssessmentError):
    """Raised when a domain computation cannot be completed."""
    pass
