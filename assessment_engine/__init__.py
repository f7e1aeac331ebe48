"""
Assessment Engine - Package.

============================================================
PURPOSE
============================================================
The Assessment Engine derives normalized composite scores,
ordinal risk classifications, ranked outliers and rule-based
recommendations from energy, climate and resilience metrics.

============================================================
WHAT IT IS
============================================================
- Deterministic, closed-form weighted aggregation
- Threshold-based classification
- Pure functions over an immutable snapshot

============================================================
WHAT IT IS NOT
============================================================
- NOT a machine-learning model
- NOT an optimization solver
- NOT a real-time control loop

============================================================
FOUR ASSESSMENT DOMAINS
============================================================
1. ENERGY_FLOW: Grid efficiency, bottlenecks, savings
2. CLIMATE_SCORE: Renewables, emissions and temperature composite
3. VULNERABILITY: Risk points from climate and grid signals
4. RESILIENCE: Infrastructure, community, economic, environmental

============================================================
USAGE
============================================================
    from assessment_engine import AssessmentEngine, parse_snapshot

    snapshot = parse_snapshot({
        "version": 1,
        "energy": {
            "totalGeneration": 1000,
            "totalConsumption": 800,
            "distributionLossesPercent": 10,
            "distributionNodes": [],
        },
    })

    report = AssessmentEngine().assess(snapshot)
    print(report.energy_flow.efficiency)  # 72.0

============================================================
"""

from .types import (
    # Enums
    AssessmentDomain,
    RiskLevel,
    OutlierSeverity,
    GridStability,
    AggregationStyle,
    RecommendationPriority,

    # Hierarchy
    FactorCategory,

    # Inputs
    DistributionNode,
    EnergySnapshot,
    EmissionsData,
    RegionData,
    ClimateSnapshot,
    ResilienceSnapshot,
    MetricSnapshot,

    # Scoring records
    CompositeScore,
    Classification,
    RiskPoints,
    OutlierRecord,
    Recommendation,

    # Results
    OptimizationSummary,
    EnergyFlowResult,
    ClimateCategories,
    ClimateTrends,
    ClimateScoreResult,
    AffectedRegion,
    VulnerabilityResult,
    ResilienceMetrics,
    AssessmentReport,

    # Exceptions
    AssessmentError,
    SnapshotValidationError,
    ConfigurationError,
    ComputationError,
)

from .config import (
    EnergyFlowConfig,
    ClimateScoreConfig,
    VulnerabilityConfig,
    ResilienceConfig,
    AssessmentConfig,
    default_resilience_hierarchy,
    get_default_config,
)

from .normalizer import (
    clamp,
    normalize,
    round_score,
    round_half_up,
)

from .aggregator import (
    weighted_sum,
    simple_average,
    aggregate_category,
    aggregate_hierarchy,
    compute_energy_efficiency,
    compute_climate_score,
    compute_grid_health,
)

from .classifier import (
    ThresholdClassifier,
    accumulate_vulnerability_points,
    classify_risk_points,
    classify_resilience_score,
)

from .outliers import (
    detect_bottlenecks,
    rank_hotspots,
)

from .recommendations import (
    energy_recommendations,
    vulnerability_recommendations,
    resilience_recommendations,
    potential_savings,
)

from .assessors import (
    BaseAssessor,
    EnergyFlowAssessor,
    ClimateScoreAssessor,
    VulnerabilityAssessor,
    ResilienceAssessor,
)

from .engine import (
    AssessmentEngine,
    run_assessment,
    format_assessment_summary,
)

from .schemas import parse_snapshot


__all__ = [
    # Enums
    "AssessmentDomain",
    "RiskLevel",
    "OutlierSeverity",
    "GridStability",
    "AggregationStyle",
    "RecommendationPriority",

    # Hierarchy
    "FactorCategory",

    # Inputs
    "DistributionNode",
    "EnergySnapshot",
    "EmissionsData",
    "RegionData",
    "ClimateSnapshot",
    "ResilienceSnapshot",
    "MetricSnapshot",

    # Scoring records
    "CompositeScore",
    "Classification",
    "RiskPoints",
    "OutlierRecord",
    "Recommendation",

    # Results
    "OptimizationSummary",
    "EnergyFlowResult",
    "ClimateCategories",
    "ClimateTrends",
    "ClimateScoreResult",
    "AffectedRegion",
    "VulnerabilityResult",
    "ResilienceMetrics",
    "AssessmentReport",

    # Exceptions
    "AssessmentError",
    "SnapshotValidationError",
    "ConfigurationError",
    "ComputationError",

    # Configuration
    "EnergyFlowConfig",
    "ClimateScoreConfig",
    "VulnerabilityConfig",
    "ResilienceConfig",
    "AssessmentConfig",
    "default_resilience_hierarchy",
    "get_default_config",

    # Normalizer
    "clamp",
    "normalize",
    "round_score",
    "round_half_up",

    # Aggregator
    "weighted_sum",
    "simple_average",
    "aggregate_category",
    "aggregate_hierarchy",
    "compute_energy_efficiency",
    "compute_climate_score",
    "compute_grid_health",

    # Classifier
    "ThresholdClassifier",
    "accumulate_vulnerability_points",
    "classify_risk_points",
    "classify_resilience_score",

    # Outliers
    "detect_bottlenecks",
    "rank_hotspots",

    # Recommendations
    "energy_recommendations",
    "vulnerability_recommendations",
    "resilience_recommendations",
    "potential_savings",

    # Assessors
    "BaseAssessor",
    "EnergyFlowAssessor",
    "ClimateScoreAssessor",
    "VulnerabilityAssessor",
    "ResilienceAssessor",

    # Engine
    "AssessmentEngine",
    "run_assessment",
    "format_assessment_summary",

    # Ingestion
    "parse_snapshot",
]


__version__ = "1.0.0"
