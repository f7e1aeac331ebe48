"""
Assessment Engine - Main Entry Point.

============================================================
PURPOSE
============================================================
The AssessmentEngine runs every domain assessor against one
MetricSnapshot.

It orchestrates:
1. Configuration validation
2. Per-domain assessment
3. Error wrapping per domain
4. Result packaging

============================================================
DESIGN PRINCIPLES
============================================================
- Single responsibility: sequencing only
- Delegates to individual assessors
- Deterministic and stateless per call
- Domains write disjoint results

============================================================
USAGE
============================================================
    from assessment_engine import AssessmentEngine, parse_snapshot

    engine = AssessmentEngine()
    snapshot = parse_snapshot(payload)

    report = engine.assess(snapshot)

    print(f"Efficiency: {report.energy_flow.efficiency}")
    print(f"Risk Level: {report.vulnerability.risk_level.value}")

============================================================
"""

import logging
from typing import Any, Dict, List, Optional

from .assessors import (
    BaseAssessor,
    ClimateScoreAssessor,
    EnergyFlowAssessor,
    ResilienceAssessor,
    VulnerabilityAssessor,
)
from .config import AssessmentConfig
from .types import (
    AssessmentDomain,
    AssessmentError,
    AssessmentReport,
    ComputationError,
    ConfigurationError,
    MetricSnapshot,
)


logger = logging.getLogger(__name__)


class AssessmentEngine:
    """
    Runs the four domain assessors on a snapshot.

    ============================================================
    RESPONSIBILITIES
    ============================================================
    1. Validate configuration at construction
    2. Initialize one assessor per domain
    3. Compute a single domain or all of them
    4. Wrap unexpected failures in ComputationError

    ============================================================
    """

    def __init__(self, config: Optional[AssessmentConfig] = None):
        """
        Initialize the Assessment Engine.

        Args:
            config: Engine and assessor configuration.
                    Uses defaults if not provided.

        Raises:
            ConfigurationError: If weights or thresholds are inconsistent
        """
        self.config = config or AssessmentConfig()

        problems = self.config.validate()
        if problems:
            raise ConfigurationError("Invalid assessment configuration: " + "; ".join(problems))

        self._assessors: Dict[AssessmentDomain, BaseAssessor] = {
            AssessmentDomain.ENERGY_FLOW: EnergyFlowAssessor(self.config.energy_flow),
            AssessmentDomain.CLIMATE_SCORE: ClimateScoreAssessor(self.config.climate_score),
            AssessmentDomain.VULNERABILITY: VulnerabilityAssessor(self.config.vulnerability),
            AssessmentDomain.RESILIENCE: ResilienceAssessor(self.config.resilience),
        }

    @property
    def domains(self) -> List[AssessmentDomain]:
        return list(self._assessors)

    def assess_domain(self, domain: AssessmentDomain, snapshot: MetricSnapshot) -> Any:
        """
        Compute one domain's result.

        Raises:
            ComputationError: If the assessor fails
        """
        assessor = self._assessors[domain]
        try:
            return assessor.assess(snapshot)
        except AssessmentError as e:
            if e.domain is None:
                e.domain = domain
            raise
        except Exception as e:
            raise ComputationError(
                f"{domain.value} assessment failed: {e}", domain=domain
            ) from e

    def assess(self, snapshot: MetricSnapshot) -> AssessmentReport:
        """
        Compute all four domains.

        Raises:
            ComputationError: If any domain fails
        """
        results = {
            domain: self.assess_domain(domain, snapshot)
            for domain in AssessmentDomain.all_domains()
        }
        logger.debug(f"Assessed snapshot v{snapshot.version}")

        return AssessmentReport(
            energy_flow=results[AssessmentDomain.ENERGY_FLOW],
            climate_score=results[AssessmentDomain.CLIMATE_SCORE],
            vulnerability=results[AssessmentDomain.VULNERABILITY],
            resilience=results[AssessmentDomain.RESILIENCE],
            snapshot_version=snapshot.version,
            engine_version=self.config.engine_version,
        )

    def get_config(self) -> AssessmentConfig:
        """Return the current engine configuration."""
        return self.config


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================


def run_assessment(
    snapshot: MetricSnapshot,
    config: Optional[AssessmentConfig] = None,
) -> AssessmentReport:
    """
    Assess a snapshot in one call.

    For repeated assessment, prefer creating a persistent
    AssessmentEngine instance.
    """
    return AssessmentEngine(config=config).assess(snapshot)


def format_assessment_summary(report: AssessmentReport) -> str:
    """
    Format a human-readable assessment summary.

    Useful for logging and the command-line runner.
    """
    energy = report.energy_flow
    climate = report.climate_score
    vulnerability = report.vulnerability
    resilience = report.resilience

    lines = [
        "=" * 50,
        "ASSESSMENT SUMMARY",
        "=" * 50,
        f"Snapshot Version: {report.snapshot_version}",
        f"Engine Version:   {report.engine_version}",
        "",
        "Energy Flow:",
        f"  Efficiency:        {energy.efficiency:.2f}%",
        f"  Bottlenecks:       {len(energy.bottlenecks)}",
        f"  Potential Savings: {energy.optimization.potential_savings:.2f}",
        f"  Grid Health:       {energy.grid_health_score if energy.grid_health_score is not None else 'N/A'}",
        "",
        "Climate Score:",
        f"  Overall:           {climate.overall_score}/100",
        f"  Improving:         {', '.join(climate.trends.improving) or '-'}",
        f"  Declining:         {', '.join(climate.trends.declining) or '-'}",
        "",
        "Vulnerability:",
        f"  Risk Level:        {vulnerability.risk_level.name} ({vulnerability.risk_points} pts)",
        f"  Average Index:     {vulnerability.average_vulnerability:.2f}",
        "",
        "Resilience:",
        f"  Overall:           {resilience.overall_score:.2f}",
        f"  Risk Level:        {resilience.risk_level.name}",
        "",
        "Recommendations:",
    ]
    recommendations = (
        list(energy.optimization.recommendations)
        + list(vulnerability.recommendations)
        + list(resilience.recommendations)
    )
    for rec in recommendations:
        lines.append(f"  [{rec.id}] ({rec.priority.value}) {rec.description}")
    if not recommendations:
        lines.append("  -")
    lines.append("=" * 50)

    return "\n".join(lines)
