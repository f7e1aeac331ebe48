"""
Assessment Engine - Outlier Detector.

============================================================
PURPOSE
============================================================
Scans entity collections (grid nodes, regions) for those
crossing utilization or efficiency thresholds and returns a
bounded, ranked subset.

============================================================
RANKING
============================================================
1. Filter malformed entities
2. Apply the selection predicate
3. Sort by descending impact, ties by entity id ascending
4. Truncate to the configured maximum

Ranking always happens before truncation so the kept subset
is reproducible.

============================================================
"""

import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import EnergyFlowConfig, VulnerabilityConfig
from .normalizer import clamp, round_score
from .types import (
    AffectedRegion,
    DistributionNode,
    OutlierRecord,
    OutlierSeverity,
    RegionData,
)


logger = logging.getLogger(__name__)


def rank_outliers(records: Iterable[OutlierRecord], limit: int) -> Tuple[OutlierRecord, ...]:
    """Sort by (-impact, entity_id) and keep at most `limit` records."""
    ranked = sorted(records, key=lambda r: (-r.impact, r.entity_id))
    return tuple(ranked[:max(0, limit)])


# ============================================================
# GRID BOTTLENECKS
# ============================================================


def is_bottleneck(node: DistributionNode, config: Optional[EnergyFlowConfig] = None) -> bool:
    config = config or EnergyFlowConfig()
    return (
        node.efficiency < config.bottleneck_efficiency_threshold
        or node.current_load > config.overload_utilization_ratio * node.capacity
    )


def bottleneck_severity(
    efficiency: float,
    config: Optional[EnergyFlowConfig] = None,
) -> OutlierSeverity:
    config = config or EnergyFlowConfig()
    if efficiency < config.high_severity_efficiency:
        return OutlierSeverity.HIGH
    if efficiency < config.bottleneck_efficiency_threshold:
        return OutlierSeverity.MEDIUM
    return OutlierSeverity.LOW


def detect_bottlenecks(
    nodes: Sequence[DistributionNode],
    config: Optional[EnergyFlowConfig] = None,
) -> Tuple[OutlierRecord, ...]:
    """
    Find overloaded or inefficient distribution nodes.

    Args:
        nodes: Distribution nodes from the energy snapshot
        config: Thresholds (defaults if not provided)

    Returns:
        At most `max_bottlenecks` records, highest impact first
    """
    config = config or EnergyFlowConfig()

    records: List[OutlierRecord] = []
    for node in nodes:
        if not node.is_well_formed:
            logger.warning(f"Skipping malformed distribution node: {node!r}")
            continue
        if not is_bottleneck(node, config):
            continue
        records.append(OutlierRecord(
            entity_id=node.id,
            severity=bottleneck_severity(node.efficiency, config),
            impact=max(0.0, 100 - node.efficiency),
        ))

    return rank_outliers(records, config.max_bottlenecks)


# ============================================================
# REGIONAL HOTSPOTS
# ============================================================


def rank_hotspots(
    regions: Sequence[RegionData],
    limit: int = 3,
    primary_threats: Tuple[str, ...] = VulnerabilityConfig().primary_threats,
) -> Tuple[AffectedRegion, ...]:
    """
    Most vulnerable regions, highest index first.

    Regions with an empty id or a non-finite index are dropped.
    """
    valid = [
        r for r in regions
        if r.id and isinstance(r.vulnerability_index, (int, float))
        and math.isfinite(r.vulnerability_index)
    ]
    ranked = sorted(valid, key=lambda r: (-r.vulnerability_index, r.id))
    return tuple(
        AffectedRegion(
            region_id=r.id,
            vulnerability_score=round_score(clamp(r.vulnerability_index)),
            primary_threats=primary_threats,
        )
        for r in ranked[:max(0, limit)]
    )


def average_vulnerability(regions: Sequence[RegionData]) -> float:
    """Mean regional vulnerability index; 0 when there are no usable regions."""
    values = [
        clamp(r.vulnerability_index) for r in regions
        if isinstance(r.vulnerability_index, (int, float))
        and math.isfinite(r.vulnerability_index)
    ]
    if not values:
        return 0.0
    return round_score(sum(values) / len(values))
