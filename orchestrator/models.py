"""
Orchestrator - Models.

============================================================
RESPONSIBILITY
============================================================
Defines data models for the assessment orchestrator.

- Per-domain lifecycle status
- Published domain slots (result + staleness)
- Cycle results for history
- Runtime configuration loaded from the environment

============================================================
"""

from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
import os

from dotenv import load_dotenv

from assessment_engine.types import AssessmentDomain


# ============================================================
# DOMAIN STATUS
# ============================================================

class DomainStatus(Enum):
    """
    Lifecycle of one domain slot.

    IDLE -> COMPUTING -> READY on success
    IDLE -> COMPUTING -> ERROR on failure
    """

    IDLE = "idle"
    """No cycle has touched this domain yet, or the last one finished."""

    COMPUTING = "computing"
    """A cycle is computing this domain."""

    READY = "ready"
    """The slot holds a result from the latest snapshot."""

    ERROR = "error"
    """The latest cycle failed; the last good result is kept as stale."""

    @property
    def is_settled(self) -> bool:
        return self in (DomainStatus.READY, DomainStatus.ERROR)


# ============================================================
# DOMAIN SLOT
# ============================================================

@dataclass(frozen=True)
class DomainSlot:
    """
    Published state of one domain.

    Slots are replaced whole on every transition. `result` is
    the last successfully computed result; when `stale` is
    True it predates the snapshot that failed.
    """

    domain: AssessmentDomain
    status: DomainStatus = DomainStatus.IDLE
    result: Optional[Any] = None
    stale: bool = False
    error: Optional[str] = None
    snapshot_version: Optional[int] = None
    updated_at: Optional[datetime] = None

    @property
    def has_result(self) -> bool:
        return self.result is not None

    @property
    def is_degraded(self) -> bool:
        return self.status == DomainStatus.ERROR or self.stale

    def to_dict(self) -> Dict[str, Any]:
        result = self.result.to_dict() if hasattr(self.result, "to_dict") else self.result
        return {
            "domain": self.domain.value,
            "status": self.status.value,
            "stale": self.stale,
            "error": self.error,
            "snapshot_version": self.snapshot_version,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "result": result,
        }


# ============================================================
# CYCLE RESULT
# ============================================================

@dataclass
class CycleResult:
    """Result of one orchestration cycle."""

    cycle_id: str
    snapshot_version: Optional[int]
    started_at: datetime
    completed_at: Optional[datetime] = None
    success: bool = False
    domain_status: Dict[AssessmentDomain, DomainStatus] = field(default_factory=dict)
    errors: Dict[AssessmentDomain, str] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def failed_domains(self) -> List[AssessmentDomain]:
        return [d for d, s in self.domain_status.items() if s == DomainStatus.ERROR]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "cycle_id": self.cycle_id,
            "snapshot_version": self.snapshot_version,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "success": self.success,
            "duration_seconds": self.duration_seconds,
            "domain_status": {d.value: s.value for d, s in self.domain_status.items()},
            "errors": {d.value: e for d, e in self.errors.items()},
        }


# ============================================================
# ORCHESTRATOR CONFIGURATION
# ============================================================

LOG_FORMATS = ("json", "text")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class OrchestratorConfig:
    """Configuration for the assessment orchestrator."""

    concurrent: bool = True
    """Run the four domain pipelines in worker threads joined before publishing."""

    refresh_interval_seconds: float = 60.0
    """Interval between scheduler ticks."""

    history_size: int = 100
    """Maximum cycles kept in history."""

    log_level: str = "INFO"
    """Logging level."""

    log_format: str = "json"
    """Log output format (json or text)."""

    @classmethod
    def from_env(cls) -> "OrchestratorConfig":
        """Load configuration from environment variables (and a .env file)."""
        load_dotenv()
        return cls(
            concurrent=_env_bool("ASSESSMENT_CONCURRENT", "true"),
            refresh_interval_seconds=float(os.getenv("ASSESSMENT_REFRESH_INTERVAL_SECONDS", "60")),
            history_size=int(os.getenv("ASSESSMENT_HISTORY_SIZE", "100")),
            log_level=os.getenv("ASSESSMENT_LOG_LEVEL", "INFO"),
            log_format=os.getenv("ASSESSMENT_LOG_FORMAT", "json").lower(),
        )

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.refresh_interval_seconds <= 0:
            errors.append("refresh_interval_seconds must be positive")

        if self.history_size < 1:
            errors.append("history_size must be at least 1")

        if self.log_format not in LOG_FORMATS:
            errors.append(f"log_format must be one of {', '.join(LOG_FORMATS)}")

        return errors


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "DomainStatus",
    "DomainSlot",
    "CycleResult",
    "OrchestratorConfig",
]
