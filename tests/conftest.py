"""
Shared fixtures for the assessment engine and orchestrator tests.

All randomized inputs come from seeded random.Random instances
so every run sees the same values.
"""

import logging
import random
from datetime import datetime, timezone
from typing import Any, Dict

import pytest

from assessment_engine import (
    ClimateSnapshot,
    DistributionNode,
    EmissionsData,
    EnergySnapshot,
    GridStability,
    MetricSnapshot,
    RegionData,
    ResilienceSnapshot,
)
from core.clock import MockClock


CAPTURED_AT = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


# ============================================================
# RANDOMNESS
# ============================================================

@pytest.fixture
def rng() -> random.Random:
    """Seeded random source."""
    return random.Random(20240601)


# ============================================================
# SNAPSHOTS
# ============================================================

@pytest.fixture
def energy_snapshot() -> EnergySnapshot:
    """
    Efficiency 72, three bottlenecks (n2, n3, n1), grid health 74.
    """
    return EnergySnapshot(
        total_generation=1000.0,
        total_consumption=800.0,
        distribution_losses_percent=10.0,
        distribution_nodes=(
            DistributionNode(id="n1", capacity=100.0, current_load=95.0, efficiency=90.0),
            DistributionNode(id="n2", capacity=100.0, current_load=50.0, efficiency=60.0),
            DistributionNode(id="n3", capacity=100.0, current_load=50.0, efficiency=80.0),
            DistributionNode(id="n4", capacity=100.0, current_load=50.0, efficiency=95.0),
        ),
        renewable_share_percent=25.0,
        grid_stability=GridStability.MODERATE,
        reliability_index=90.0,
    )


@pytest.fixture
def climate_snapshot() -> ClimateSnapshot:
    """Climate score 75, all four trend signals improving."""
    return ClimateSnapshot(
        global_temperature=1.5,
        co2_concentration=415.0,
        renewable_share_percent=50.0,
        emissions=EmissionsData(annual=25.0, target=30.0, reduction_percent=5.0),
        regions=(
            RegionData(id="r-a", vulnerability_index=40.0),
            RegionData(id="r-b", vulnerability_index=70.0),
            RegionData(id="r-c", vulnerability_index=55.0),
            RegionData(id="r-d", vulnerability_index=70.0),
        ),
    )


@pytest.fixture
def resilience_snapshot() -> ResilienceSnapshot:
    """energy_grid_stability is omitted so it falls back to grid efficiency."""
    return ResilienceSnapshot(factors={
        "infrastructure": {
            "transportation_resilience": 80.0,
            "building_standards": 70.0,
            "water_management": 75.0,
        },
        "community": {
            "emergency_preparedness": 60.0,
            "social_networks": 70.0,
            "local_knowledge": 65.0,
            "institutional_capacity": 55.0,
        },
        "economic": {
            "diversification": 60.0,
            "financial_reserves": 50.0,
            "insurance_coverage": 50.0,
            "recovery_capacity": 60.0,
        },
        "environmental": {
            "ecosystem_health": 70.0,
            "natural_buffers": 65.0,
            "biodiversity_index": 60.0,
            "resource_availability": 75.0,
        },
    })


@pytest.fixture
def snapshot(energy_snapshot, climate_snapshot, resilience_snapshot) -> MetricSnapshot:
    return MetricSnapshot(
        energy=energy_snapshot,
        climate=climate_snapshot,
        resilience=resilience_snapshot,
        version=1,
        captured_at=CAPTURED_AT,
    )


@pytest.fixture
def raw_payload() -> Dict[str, Any]:
    """camelCase payload equivalent to the `snapshot` fixture."""
    return {
        "version": 1,
        "capturedAt": CAPTURED_AT.isoformat(),
        "energy": {
            "totalGeneration": 1000,
            "totalConsumption": 800,
            "distributionLossesPercent": 10,
            "distributionNodes": [
                {"id": "n1", "capacity": 100, "currentLoad": 95, "efficiency": 90},
                {"id": "n2", "capacity": 100, "currentLoad": 50, "efficiency": 60},
                {"id": "n3", "capacity": 100, "currentLoad": 50, "efficiency": 80},
                {"id": "n4", "capacity": 100, "currentLoad": 50, "efficiency": 95},
            ],
            "renewableSharePercent": 25,
            "gridStability": "moderate",
            "reliabilityIndex": 90,
        },
        "climate": {
            "globalTemperature": 1.5,
            "co2Concentration": 415,
            "renewableSharePercent": 50,
            "emissions": {"annual": 25, "target": 30, "reductionPercent": 5},
            "regions": [
                {"id": "r-a", "vulnerabilityIndex": 40},
                {"id": "r-b", "vulnerabilityIndex": 70},
                {"id": "r-c", "vulnerabilityIndex": 55},
                {"id": "r-d", "vulnerabilityIndex": 70},
            ],
        },
        "resilience": {
            "infrastructure": {
                "transportationResilience": 80,
                "buildingStandards": 70,
                "waterManagement": 75,
            },
            "community": {
                "emergencyPreparedness": 60,
                "socialNetworks": 70,
                "localKnowledge": 65,
                "institutionalCapacity": 55,
            },
            "economic": {
                "diversification": 60,
                "financialReserves": 50,
                "insuranceCoverage": 50,
                "recoveryCapacity": 60,
            },
            "environmental": {
                "ecosystemHealth": 70,
                "naturalBuffers": 65,
                "biodiversityIndex": 60,
                "resourceAvailability": 75,
            },
        },
    }


# ============================================================
# CLOCK / LOGGING
# ============================================================

@pytest.fixture
def mock_clock() -> MockClock:
    return MockClock(datetime(2024, 6, 1, 13, 0, tzinfo=timezone.utc))


@pytest.fixture
def restore_logging():
    """Undo root logger changes made by setup_logging()."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
