"""
Pydantic Schemas for Snapshot Ingestion.

Raw payloads from the Data Provider are validated here and
converted into the frozen snapshot records the engine reads.
Both camelCase and snake_case field names are accepted.

Malformed entries inside entity collections (grid nodes,
regions, resilience sub-factors) are dropped with a warning,
and a collection of the wrong shape reads as empty. A null
payload is an empty snapshot. A malformed top-level payload
raises SnapshotValidationError.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    FiniteFloat,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel, to_snake

from .types import (
    ClimateSnapshot,
    DistributionNode,
    EmissionsData,
    EnergySnapshot,
    GridStability,
    MetricSnapshot,
    RegionData,
    ResilienceSnapshot,
    SnapshotValidationError,
)


logger = logging.getLogger(__name__)


class _Schema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        allow_inf_nan=False,
        extra="ignore",
    )


_factor_reading = TypeAdapter(FiniteFloat)


def _drop_malformed(items: Any, schema: type, label: str) -> List[Any]:
    """Validate each entry on its own, keeping only the valid ones."""
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        logger.warning(
            f"Expected a list of {label} entries, got {type(items).__name__}; ignoring"
        )
        return []

    kept = []
    for index, item in enumerate(items):
        try:
            kept.append(schema.model_validate(item))
        except ValidationError as e:
            logger.warning(
                f"Dropping malformed {label} entry #{index}: "
                f"{e.error_count()} validation error(s)"
            )
    return kept


def _drop_malformed_factors(readings: Any, category: str) -> Dict[str, float]:
    """Keep the finite numeric sub-factor readings of one category."""
    if readings is None:
        return {}
    if not isinstance(readings, Mapping):
        logger.warning(
            f"Expected a mapping of {category} factors, got {type(readings).__name__}; ignoring"
        )
        return {}

    kept = {}
    for key, reading in readings.items():
        name = to_snake(str(key))
        try:
            kept[name] = _factor_reading.validate_python(reading)
        except ValidationError:
            logger.warning(f"Dropping malformed {category} factor {name!r}: {reading!r}")
    return kept


# =============================================================
# ENERGY
# =============================================================

class DistributionNodeSchema(_Schema):
    id: str = Field(min_length=1)
    capacity: float
    current_load: float
    efficiency: float

    def to_domain(self) -> DistributionNode:
        return DistributionNode(
            id=self.id,
            capacity=self.capacity,
            current_load=self.current_load,
            efficiency=self.efficiency,
        )


class EnergySnapshotSchema(_Schema):
    total_generation: float
    total_consumption: float
    distribution_losses_percent: float = Field(
        default=0.0,
        validation_alias=AliasChoices(
            "distribution_losses_percent", "distributionLossesPercent", "distributionLosses"
        ),
    )
    distribution_nodes: List[DistributionNodeSchema] = Field(default_factory=list)
    renewable_share_percent: float = Field(
        default=0.0,
        validation_alias=AliasChoices(
            "renewable_share_percent", "renewableSharePercent", "renewableShare"
        ),
    )
    grid_stability: GridStability = GridStability.STABLE
    reliability_index: Optional[float] = None

    @field_validator("distribution_nodes", mode="before")
    @classmethod
    def _filter_nodes(cls, value: Any) -> List[Any]:
        return _drop_malformed(value, DistributionNodeSchema, "distribution node")

    @field_validator("grid_stability", mode="before")
    @classmethod
    def _lower_stability(cls, value: Any) -> Any:
        if value is None:
            return GridStability.STABLE
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def to_domain(self) -> EnergySnapshot:
        return EnergySnapshot(
            total_generation=self.total_generation,
            total_consumption=self.total_consumption,
            distribution_losses_percent=self.distribution_losses_percent,
            distribution_nodes=tuple(n.to_domain() for n in self.distribution_nodes),
            renewable_share_percent=self.renewable_share_percent,
            grid_stability=self.grid_stability,
            reliability_index=self.reliability_index,
        )


# =============================================================
# CLIMATE
# =============================================================

class EmissionsSchema(_Schema):
    annual: float = 0.0
    target: float = 0.0
    reduction_percent: float = Field(
        default=0.0,
        validation_alias=AliasChoices("reduction_percent", "reductionPercent", "reduction"),
    )

    def to_domain(self) -> EmissionsData:
        return EmissionsData(
            annual=self.annual,
            target=self.target,
            reduction_percent=self.reduction_percent,
        )


class RegionSchema(_Schema):
    id: str = Field(min_length=1)
    vulnerability_index: float

    def to_domain(self) -> RegionData:
        return RegionData(id=self.id, vulnerability_index=self.vulnerability_index)


class ClimateSnapshotSchema(_Schema):
    global_temperature: float
    co2_concentration: float
    renewable_share_percent: float = Field(
        validation_alias=AliasChoices(
            "renewable_share_percent", "renewableSharePercent", "renewableShare"
        ),
    )
    emissions: EmissionsSchema = Field(default_factory=EmissionsSchema)
    regions: List[RegionSchema] = Field(default_factory=list)

    @field_validator("regions", mode="before")
    @classmethod
    def _filter_regions(cls, value: Any) -> List[Any]:
        return _drop_malformed(value, RegionSchema, "region")

    def to_domain(self) -> ClimateSnapshot:
        return ClimateSnapshot(
            global_temperature=self.global_temperature,
            co2_concentration=self.co2_concentration,
            renewable_share_percent=self.renewable_share_percent,
            emissions=self.emissions.to_domain(),
            regions=tuple(r.to_domain() for r in self.regions),
        )


# =============================================================
# RESILIENCE
# =============================================================

class ResilienceSnapshotSchema(_Schema):
    """
    Sub-factor readings per category; keys are normalized to snake_case.

    Unreadable sub-factors are dropped so they read as 0.
    """
    infrastructure: Dict[str, float] = Field(default_factory=dict)
    community: Dict[str, float] = Field(default_factory=dict)
    economic: Dict[str, float] = Field(default_factory=dict)
    environmental: Dict[str, float] = Field(default_factory=dict)

    @field_validator(
        "infrastructure", "community", "economic", "environmental", mode="before"
    )
    @classmethod
    def _filter_factors(cls, value: Any, info: ValidationInfo) -> Dict[str, float]:
        return _drop_malformed_factors(value, info.field_name)

    def to_domain(self) -> ResilienceSnapshot:
        return ResilienceSnapshot(factors={
            "infrastructure": dict(self.infrastructure),
            "community": dict(self.community),
            "economic": dict(self.economic),
            "environmental": dict(self.environmental),
        })


# =============================================================
# SNAPSHOT
# =============================================================

class MetricSnapshotSchema(_Schema):
    version: int = Field(default=0, ge=0)
    captured_at: Optional[datetime] = None
    energy: Optional[EnergySnapshotSchema] = None
    climate: Optional[ClimateSnapshotSchema] = None
    resilience: Optional[ResilienceSnapshotSchema] = None

    def to_domain(self) -> MetricSnapshot:
        return MetricSnapshot(
            energy=self.energy.to_domain() if self.energy else None,
            climate=self.climate.to_domain() if self.climate else None,
            resilience=self.resilience.to_domain() if self.resilience else None,
            version=self.version,
            captured_at=self.captured_at,
        )


def parse_snapshot(payload: Any) -> MetricSnapshot:
    """
    Validate a raw payload and build a MetricSnapshot.

    A null payload is an empty snapshot, so every domain falls
    back to its default result.

    Raises:
        SnapshotValidationError: If the payload is not a mapping
            or fails validation
    """
    if payload is None:
        return MetricSnapshot()
    if isinstance(payload, MetricSnapshot):
        return payload
    if not isinstance(payload, Mapping):
        raise SnapshotValidationError(
            f"Snapshot payload must be a mapping, got {type(payload).__name__}"
        )
    try:
        schema = MetricSnapshotSchema.model_validate(dict(payload))
    except ValidationError as e:
        raise SnapshotValidationError(
            f"Invalid snapshot payload: {e.error_count()} validation error(s)",
            errors=e.errors(include_url=False, include_context=False),
        ) from e
    return schema.to_domain()
