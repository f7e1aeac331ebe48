"""
Assessment Engine - Classifier.

============================================================
PURPOSE
============================================================
Maps a composite score or an accumulated risk-point total
onto an ordinal RiskLevel.

============================================================
ASSESSMENT LOGIC PATTERN
============================================================
For a threshold table ordered strictest first:
    for minimum, level in table:
        if value >= minimum:
            return level
    return default

Tables are validated at construction: minimums strictly
decrease and labels never gain severity as minimums drop,
so a higher input can never yield a lower label.

============================================================
"""

from typing import Dict, Optional, Sequence, Tuple

from .config import ResilienceConfig, VulnerabilityConfig
from .types import (
    Classification,
    ConfigurationError,
    GridStability,
    RiskLevel,
    RiskPoints,
)


class ThresholdClassifier:
    """
    Monotonic threshold classifier.
    """

    def __init__(
        self,
        thresholds: Sequence[Tuple[float, RiskLevel]],
        default: RiskLevel = RiskLevel.LOW,
    ):
        """
        Args:
            thresholds: (minimum, level) pairs, highest minimum first
            default: Level returned when no minimum is reached

        Raises:
            ConfigurationError: If the table overlaps or is not monotonic
        """
        self._thresholds: Tuple[Tuple[float, RiskLevel], ...] = tuple(thresholds)
        self._default = default
        self._validate()

    def _validate(self) -> None:
        table = self._thresholds
        for (upper, upper_level), (lower, lower_level) in zip(table, table[1:]):
            if not upper > lower:
                raise ConfigurationError(
                    f"Thresholds must be strictly decreasing: {upper} then {lower}"
                )
            if upper_level.severity_order < lower_level.severity_order:
                raise ConfigurationError(
                    f"Threshold labels are not monotonic: {upper_level.value} "
                    f"above {lower_level.value}"
                )
        if table and table[-1][1].severity_order < self._default.severity_order:
            raise ConfigurationError(
                f"Default level {self._default.value} is more severe than "
                f"lowest threshold level {table[-1][1].value}"
            )

    @property
    def thresholds(self) -> Tuple[Tuple[float, RiskLevel], ...]:
        return self._thresholds

    def classify(self, value: float) -> RiskLevel:
        """Return the strictest level whose minimum is reached."""
        for minimum, level in self._thresholds:
            if value >= minimum:
                return level
        return self._default


# ============================================================
# VULNERABILITY RISK POINTS
# ============================================================


def temperature_risk_points(
    global_temperature: float,
    config: Optional[VulnerabilityConfig] = None,
) -> int:
    config = config or VulnerabilityConfig()
    above, at_or_below = config.temperature_points
    return above if global_temperature > config.temperature_threshold else at_or_below


def grid_risk_points(
    grid_stability: GridStability,
    config: Optional[VulnerabilityConfig] = None,
) -> int:
    config = config or VulnerabilityConfig()
    return config.grid_stability_points.get(grid_stability, config.grid_default_points)


def renewable_risk_points(
    renewable_share_percent: float,
    config: Optional[VulnerabilityConfig] = None,
) -> int:
    config = config or VulnerabilityConfig()
    below, at_or_above = config.renewable_points
    return below if renewable_share_percent < config.renewable_share_threshold else at_or_above


def accumulate_vulnerability_points(
    global_temperature: float,
    grid_stability: GridStability,
    renewable_share_percent: float,
    config: Optional[VulnerabilityConfig] = None,
) -> RiskPoints:
    """
    Sum the three independent vulnerability signals.

    Returns:
        RiskPoints with a per-signal breakdown
    """
    config = config or VulnerabilityConfig()
    breakdown: Dict[str, int] = {
        "temperature": temperature_risk_points(global_temperature, config),
        "grid_stability": grid_risk_points(grid_stability, config),
        "renewable_share": renewable_risk_points(renewable_share_percent, config),
    }
    return RiskPoints(total=sum(breakdown.values()), breakdown=breakdown)


def classify_risk_points(
    points: int,
    config: Optional[VulnerabilityConfig] = None,
) -> Classification:
    """Classify an accumulated risk-point total."""
    config = config or VulnerabilityConfig()
    level = ThresholdClassifier(config.risk_thresholds).classify(points)
    return Classification(level=level, value=points, basis="points")


def classify_resilience_score(
    overall_score: float,
    config: Optional[ResilienceConfig] = None,
) -> Classification:
    """
    Classify a resilience composite.

    The table is applied to the deficit (100 - score), so a
    lower resilience score maps to a higher risk level.
    """
    config = config or ResilienceConfig()
    deficit = 100.0 - overall_score
    level = ThresholdClassifier(config.deficit_thresholds).classify(deficit)
    return Classification(level=level, value=overall_score, basis="score")
