"""
Orchestrator - Core.

============================================================
RESPONSIBILITY
============================================================
Runs the assessment engine whenever the upstream snapshot
changes and republishes per-domain results to consumers.

- Single-flight: at most one cycle runs at a time
- Signals arriving mid-cycle coalesce into one follow-up
  cycle that uses the most recent snapshot
- Per-domain state machine: IDLE -> COMPUTING -> READY|ERROR
- ERROR keeps the last READY result, flagged stale

============================================================
ARCHITECTURAL POSITION
============================================================
- This orchestrator has NO scoring logic
- It does NOT mutate snapshots or results
- It ONLY sequences the engine and publishes slots

============================================================
"""

import asyncio
import inspect
import json
import logging
import sys
from dataclasses import replace
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, TextIO, Tuple

from assessment_engine import (
    AssessmentDomain,
    AssessmentEngine,
    AssessmentError,
    ConfigurationError,
    MetricSnapshot,
    SnapshotValidationError,
    parse_snapshot,
)
from core.clock import ClockFactory, ClockProtocol

from .history import CycleHistory
from .models import CycleResult, DomainSlot, DomainStatus, OrchestratorConfig


logger = logging.getLogger(__name__)

Slots = Mapping[AssessmentDomain, DomainSlot]
Subscriber = Callable[[Slots], Any]


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Set up structured logging.

    Args:
        level: Log level
        log_format: Output format (json or text)
        stream: Destination of log records (stdout if not provided)

    Returns:
        Configured logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("orchestrator")


# ============================================================
# ORCHESTRATOR
# ============================================================

class AssessmentOrchestrator:
    """
    Recomputes all domains on snapshot change.

    Published slots are an immutable mapping that is replaced
    whole at the end of every cycle; readers need no locks.
    """

    def __init__(
        self,
        config: Optional[OrchestratorConfig] = None,
        engine: Optional[AssessmentEngine] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            config: Orchestrator configuration (defaults if not provided)
            engine: Assessment engine (default configuration if not provided)
            clock: Clock used to stamp snapshots and cycles

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        self._config = config or OrchestratorConfig()

        errors = self._config.validate()
        if errors:
            raise ConfigurationError(f"Invalid configuration: {', '.join(errors)}")

        self._engine = engine or AssessmentEngine()
        self._clock = clock or ClockFactory.get_clock()
        self._history = CycleHistory(max_size=self._config.history_size)

        self._slots: Slots = MappingProxyType({
            domain: DomainSlot(domain=domain) for domain in AssessmentDomain.all_domains()
        })
        self._subscribers: List[Subscriber] = []

        # Single-flight state
        self._in_flight = False
        self._pending: Optional[MetricSnapshot] = None
        self._latest: Optional[MetricSnapshot] = None
        self._last_version = 0
        self._cycle_count = 0
        self._coalesced_signals = 0

        logger.info(
            f"Orchestrator initialized | concurrent={self._config.concurrent} | "
            f"history_size={self._config.history_size}"
        )

    # --------------------------------------------------------
    # Properties
    # --------------------------------------------------------

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    @property
    def engine(self) -> AssessmentEngine:
        return self._engine

    @property
    def slots(self) -> Slots:
        """Current published slots."""
        return self._slots

    @property
    def is_in_flight(self) -> bool:
        return self._in_flight

    @property
    def latest_snapshot(self) -> Optional[MetricSnapshot]:
        return self._latest

    @property
    def cycle_history(self) -> CycleHistory:
        return self._history

    @property
    def coalesced_signals(self) -> int:
        """Signals parked while a cycle was in flight."""
        return self._coalesced_signals

    def get_slot(self, domain: AssessmentDomain) -> DomainSlot:
        return self._slots[domain]

    def get_result(self, domain: AssessmentDomain) -> Optional[Any]:
        """Last good result for a domain (possibly stale)."""
        return self._slots[domain].result

    def is_stale(self, domain: AssessmentDomain) -> bool:
        return self._slots[domain].stale

    # --------------------------------------------------------
    # Subscription
    # --------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback invoked with the slot mapping after every cycle.

        The callback may be a plain function or a coroutine function.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def _publish(self) -> None:
        slots = self._slots
        for callback in list(self._subscribers):
            try:
                outcome = callback(slots)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(f"Subscriber {callback!r} failed: {e}", exc_info=True)

    # --------------------------------------------------------
    # Signals
    # --------------------------------------------------------

    async def ingest(self, payload: Any) -> Optional[CycleResult]:
        """
        Validate a raw payload and treat it as a snapshot change.

        A null payload is an empty snapshot and publishes every
        domain's default result. A payload that fails validation
        is rejected (see reject()).

        Returns:
            The last cycle run, a failed cycle for an invalid
            payload, or None if the signal was coalesced
        """
        try:
            snapshot = parse_snapshot(payload)
        except SnapshotValidationError as e:
            return await self.reject(str(e))
        return await self.notify_snapshot_changed(snapshot)

    async def reject(self, reason: str) -> CycleResult:
        """
        Record an unusable snapshot.

        Every slot goes to ERROR with the reason; slots with a
        previous result keep it flagged stale.
        """
        logger.warning(f"Rejected snapshot payload: {reason}")
        return await self._fail_all(reason)

    async def notify_snapshot_changed(self, snapshot: MetricSnapshot) -> Optional[CycleResult]:
        """
        Signal that the upstream snapshot changed.

        If a cycle is already running the snapshot is parked and
        this call returns None; the running call performs exactly
        one follow-up cycle with the most recent parked snapshot.

        Returns:
            Result of the last cycle run by this call, or None
        """
        snapshot = self._stamp(snapshot)
        self._latest = snapshot

        if self._in_flight:
            self._coalesced_signals += 1
            self._pending = snapshot
            logger.debug(f"Cycle in flight, parked snapshot v{snapshot.version}")
            return None

        self._in_flight = True
        try:
            result = await self._run_cycle(snapshot)
            while self._pending is not None:
                follow_up, self._pending = self._pending, None
                result = await self._run_cycle(follow_up)
        finally:
            self._in_flight = False

        return result

    async def refresh(self) -> Optional[CycleResult]:
        """Recompute from the latest snapshot, if any."""
        if self._latest is None:
            return None
        return await self.notify_snapshot_changed(self._latest)

    def _stamp(self, snapshot: MetricSnapshot) -> MetricSnapshot:
        """Fill in a missing version and capture time."""
        changes: Dict[str, Any] = {}
        if snapshot.version <= 0:
            changes["version"] = self._last_version + 1
        if snapshot.captured_at is None:
            changes["captured_at"] = self._clock.now()
        if changes:
            snapshot = replace(snapshot, **changes)
        self._last_version = max(self._last_version, snapshot.version)
        return snapshot

    # --------------------------------------------------------
    # Cycle
    # --------------------------------------------------------

    def _next_cycle_id(self) -> str:
        self._cycle_count += 1
        return f"cycle_{self._cycle_count:06d}"

    async def _run_cycle(self, snapshot: MetricSnapshot) -> CycleResult:
        cycle = CycleResult(
            cycle_id=self._next_cycle_id(),
            snapshot_version=snapshot.version,
            started_at=self._clock.now(),
        )
        start = self._clock.monotonic()
        logger.info(f"Cycle started | cycle_id={cycle.cycle_id} | snapshot_version={snapshot.version}")

        self._slots = MappingProxyType({
            domain: replace(slot, status=DomainStatus.COMPUTING)
            for domain, slot in self._slots.items()
        })

        outcomes = await self._compute_all(snapshot)

        now = self._clock.now()
        slots: Dict[AssessmentDomain, DomainSlot] = {}
        for domain, result, error in outcomes:
            previous = self._slots[domain]
            if error is None:
                slots[domain] = DomainSlot(
                    domain=domain,
                    status=DomainStatus.READY,
                    result=result,
                    stale=False,
                    snapshot_version=snapshot.version,
                    updated_at=now,
                )
            else:
                slots[domain] = self._degrade(previous, error, now)
                cycle.errors[domain] = error
            cycle.domain_status[domain] = slots[domain].status

        self._slots = MappingProxyType(slots)

        cycle.completed_at = now
        cycle.duration_seconds = self._clock.elapsed_since(start)
        cycle.success = not cycle.errors
        await self._history.add(cycle)

        if cycle.success:
            logger.info(
                f"Cycle finished | cycle_id={cycle.cycle_id} | "
                f"duration={cycle.duration_seconds:.3f}s"
            )
        else:
            logger.warning(
                f"Cycle degraded | cycle_id={cycle.cycle_id} | "
                f"failed={', '.join(d.value for d in cycle.failed_domains)}"
            )

        await self._publish()
        return cycle

    async def _compute_all(
        self, snapshot: MetricSnapshot
    ) -> List[Tuple[AssessmentDomain, Any, Optional[str]]]:
        domains = AssessmentDomain.all_domains()
        if self._config.concurrent:
            return list(await asyncio.gather(*(
                asyncio.to_thread(self._compute_domain, domain, snapshot)
                for domain in domains
            )))
        return [self._compute_domain(domain, snapshot) for domain in domains]

    def _compute_domain(
        self, domain: AssessmentDomain, snapshot: MetricSnapshot
    ) -> Tuple[AssessmentDomain, Any, Optional[str]]:
        try:
            return domain, self._engine.assess_domain(domain, snapshot), None
        except AssessmentError as e:
            logger.warning(f"Domain {domain.value} failed on snapshot v{snapshot.version}: {e}")
            return domain, None, str(e)

    def _degrade(self, previous: DomainSlot, error: str, now: Any) -> DomainSlot:
        return DomainSlot(
            domain=previous.domain,
            status=DomainStatus.ERROR,
            result=previous.result,
            stale=previous.result is not None,
            error=error,
            snapshot_version=previous.snapshot_version,
            updated_at=now,
        )

    async def _fail_all(self, error: str) -> CycleResult:
        """Mark every slot ERROR without computing."""
        now = self._clock.now()
        cycle = CycleResult(
            cycle_id=self._next_cycle_id(),
            snapshot_version=None,
            started_at=now,
            completed_at=now,
        )
        slots = {}
        for domain, slot in self._slots.items():
            slots[domain] = self._degrade(slot, error, now)
            cycle.domain_status[domain] = DomainStatus.ERROR
            cycle.errors[domain] = error
        self._slots = MappingProxyType(slots)

        await self._history.add(cycle)
        await self._publish()
        return cycle

    # --------------------------------------------------------
    # Status
    # --------------------------------------------------------

    def get_status(self) -> Dict[str, Any]:
        """Get orchestrator status."""
        last = self._history.get_last()
        return {
            "in_flight": self._in_flight,
            "latest_snapshot_version": self._latest.version if self._latest else None,
            "coalesced_signals": self._coalesced_signals,
            "current_time": self._clock.now().isoformat(),
            "slots": {d.value: s.status.value for d, s in self._slots.items()},
            "stale": [d.value for d, s in self._slots.items() if s.stale],
            "cycle_stats": self._history.get_statistics(),
            "last_cycle": last.to_dict() if last else None,
        }


# ============================================================
# ORCHESTRATOR FACTORY
# ============================================================

def create_orchestrator(
    config: Optional[OrchestratorConfig] = None,
    engine: Optional[AssessmentEngine] = None,
    clock: Optional[ClockProtocol] = None,
    configure_logging: bool = True,
    log_stream: Optional[TextIO] = None,
) -> AssessmentOrchestrator:
    """
    Factory function to create an orchestrator.

    Args:
        config: Configuration (or load from environment)
        engine: Assessment engine
        clock: Clock implementation
        configure_logging: Install the root log handler
        log_stream: Stream for log records (stdout if not provided)

    Returns:
        Configured AssessmentOrchestrator instance
    """
    if config is None:
        config = OrchestratorConfig.from_env()

    if configure_logging:
        setup_logging(
            level=config.log_level,
            log_format=config.log_format,
            stream=log_stream,
        )

    return AssessmentOrchestrator(config=config, engine=engine, clock=clock)


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "AssessmentOrchestrator",
    "create_orchestrator",
    "setup_logging",
]
