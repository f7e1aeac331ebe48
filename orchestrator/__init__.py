"""
Orchestrator Package - Assessment Coordination Layer.

============================================================
PACKAGE OVERVIEW
============================================================
This package re-runs the assessment engine whenever the
upstream metric snapshot changes and publishes one slot per
domain to consumers.

============================================================
CORE PRINCIPLES
============================================================
1. The orchestrator has NO scoring logic
2. At most one cycle runs at a time
3. Signals during a cycle coalesce into one follow-up cycle
4. A failed domain keeps its last good result, flagged stale

============================================================
ARCHITECTURE
============================================================

    +-----------------------------------------------------+
    |               AssessmentOrchestrator                |
    |-----------------------------------------------------|
    |  DomainSlot       |  Published result + status      |
    |  CycleHistory     |  Recent cycle outcomes          |
    |  RefreshScheduler |  start/stop/tick, injected clock|
    |  CLI              |  Command-line runner            |
    +-----------------------------------------------------+

============================================================
DOMAIN STATES
============================================================
IDLE -> COMPUTING -> READY   (success)
IDLE -> COMPUTING -> ERROR   (failure, last READY kept stale)

============================================================
"""

from .models import (
    DomainStatus,
    DomainSlot,
    CycleResult,
    OrchestratorConfig,
)

from .history import CycleHistory

from .scheduler import RefreshScheduler

from .core import (
    AssessmentOrchestrator,
    create_orchestrator,
    setup_logging,
)

from .cli import (
    create_parser,
    validate_args,
    build_config,
    render,
    main,
    async_main,
)


__all__ = [
    # Models
    "DomainStatus",
    "DomainSlot",
    "CycleResult",
    "OrchestratorConfig",

    # History
    "CycleHistory",

    # Scheduler
    "RefreshScheduler",

    # Core - Main orchestrator
    "AssessmentOrchestrator",

    # Core - Factory function
    "create_orchestrator",

    # Core - Logging setup
    "setup_logging",

    # CLI
    "create_parser",
    "validate_args",
    "build_config",
    "render",
    "main",
    "async_main",
]
