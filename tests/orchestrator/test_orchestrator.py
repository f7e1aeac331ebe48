"""
Tests for the AssessmentOrchestrator.

============================================================
PURPOSE
============================================================
Covers:
1. Per-domain state machine and slot publication
2. Last-known-good results with the stale flag
   and recovery from malformed or null snapshots
3. Single-flight execution and signal coalescing
4. Snapshot stamping, subscribers and cycle history
5. Environment configuration and logging setup

============================================================
"""

import asyncio
import io
import json
import logging
import threading
from dataclasses import replace

import pytest

from assessment_engine import (
    AssessmentDomain,
    AssessmentEngine,
    ComputationError,
    ConfigurationError,
    EnergyFlowResult,
    EnergySnapshot,
    MetricSnapshot,
    ResilienceMetrics,
)
from orchestrator import (
    AssessmentOrchestrator,
    CycleHistory,
    CycleResult,
    DomainStatus,
    OrchestratorConfig,
    create_orchestrator,
    setup_logging,
)


ALL_DOMAINS = AssessmentDomain.all_domains()


class FlakyEngine(AssessmentEngine):
    """Fails the domains listed in `failing`."""

    def __init__(self):
        super().__init__()
        self.failing = set()

    def assess_domain(self, domain, snapshot):
        if domain in self.failing:
            raise ComputationError(f"{domain.value} exploded", domain=domain)
        return super().assess_domain(domain, snapshot)


class GatedEngine(AssessmentEngine):
    """Blocks every domain computation until `gate` is set."""

    def __init__(self):
        super().__init__()
        self.gate = threading.Event()
        self.versions = []

    def assess_domain(self, domain, snapshot):
        self.gate.wait(timeout=5)
        self.versions.append(snapshot.version)
        return super().assess_domain(domain, snapshot)


@pytest.fixture
def orchestrator(mock_clock):
    return AssessmentOrchestrator(
        config=OrchestratorConfig(concurrent=False),
        clock=mock_clock,
    )


@pytest.fixture
def flaky_engine():
    return FlakyEngine()


@pytest.fixture
def flaky_orchestrator(flaky_engine, mock_clock):
    return AssessmentOrchestrator(
        config=OrchestratorConfig(concurrent=False),
        engine=flaky_engine,
        clock=mock_clock,
    )


# ============================================================
# STATE MACHINE
# ============================================================

class TestDomainStates:

    def test_initial_slots_idle(self, orchestrator):
        for domain in ALL_DOMAINS:
            slot = orchestrator.get_slot(domain)
            assert slot.status == DomainStatus.IDLE
            assert slot.result is None
            assert not slot.stale

    @pytest.mark.asyncio
    async def test_successful_cycle_marks_ready(self, orchestrator, snapshot):
        cycle = await orchestrator.notify_snapshot_changed(snapshot)

        assert cycle.success
        assert cycle.snapshot_version == 1
        for domain in ALL_DOMAINS:
            slot = orchestrator.get_slot(domain)
            assert slot.status == DomainStatus.READY
            assert slot.snapshot_version == 1
            assert not slot.stale

        assert orchestrator.get_result(AssessmentDomain.ENERGY_FLOW).efficiency == 72.0

    @pytest.mark.asyncio
    async def test_results_match_engine(self, orchestrator, snapshot):
        await orchestrator.notify_snapshot_changed(snapshot)
        report = AssessmentEngine().assess(snapshot)

        for domain in ALL_DOMAINS:
            assert orchestrator.get_result(domain) == report.get(domain)

    @pytest.mark.asyncio
    async def test_concurrent_matches_sequential(self, snapshot, mock_clock):
        sequential = AssessmentOrchestrator(OrchestratorConfig(concurrent=False), clock=mock_clock)
        concurrent = AssessmentOrchestrator(OrchestratorConfig(concurrent=True), clock=mock_clock)

        await sequential.notify_snapshot_changed(snapshot)
        await concurrent.notify_snapshot_changed(snapshot)

        for domain in ALL_DOMAINS:
            assert sequential.get_result(domain) == concurrent.get_result(domain)

    @pytest.mark.asyncio
    async def test_computing_while_in_flight(self, snapshot, mock_clock):
        engine = GatedEngine()
        orchestrator = AssessmentOrchestrator(
            OrchestratorConfig(concurrent=True), engine=engine, clock=mock_clock
        )

        task = asyncio.create_task(orchestrator.notify_snapshot_changed(snapshot))
        while not orchestrator.is_in_flight:
            await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert all(
            orchestrator.get_slot(d).status == DomainStatus.COMPUTING for d in ALL_DOMAINS
        )

        engine.gate.set()
        await task

        assert all(orchestrator.get_slot(d).status == DomainStatus.READY for d in ALL_DOMAINS)
        assert not orchestrator.is_in_flight

    def test_slots_are_read_only(self, orchestrator):
        with pytest.raises(TypeError):
            orchestrator.slots[AssessmentDomain.ENERGY_FLOW] = None


# ============================================================
# LAST-KNOWN-GOOD
# ============================================================

class TestStaleResults:

    @pytest.mark.asyncio
    async def test_failure_keeps_last_good_result(self, flaky_orchestrator, flaky_engine, snapshot):
        await flaky_orchestrator.notify_snapshot_changed(snapshot)
        good = flaky_orchestrator.get_result(AssessmentDomain.ENERGY_FLOW)

        flaky_engine.failing = {AssessmentDomain.ENERGY_FLOW}
        cycle = await flaky_orchestrator.notify_snapshot_changed(replace(snapshot, version=2))

        slot = flaky_orchestrator.get_slot(AssessmentDomain.ENERGY_FLOW)
        assert slot.status == DomainStatus.ERROR
        assert slot.result is good
        assert slot.stale
        assert slot.snapshot_version == 1
        assert "exploded" in slot.error

        assert not cycle.success
        assert cycle.failed_domains == [AssessmentDomain.ENERGY_FLOW]

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, flaky_orchestrator, flaky_engine, snapshot):
        flaky_engine.failing = {AssessmentDomain.VULNERABILITY}
        await flaky_orchestrator.notify_snapshot_changed(snapshot)

        for domain in ALL_DOMAINS:
            slot = flaky_orchestrator.get_slot(domain)
            if domain == AssessmentDomain.VULNERABILITY:
                assert slot.status == DomainStatus.ERROR
            else:
                assert slot.status == DomainStatus.READY

    @pytest.mark.asyncio
    async def test_first_failure_has_no_result(self, flaky_orchestrator, flaky_engine, snapshot):
        flaky_engine.failing = {AssessmentDomain.RESILIENCE}
        await flaky_orchestrator.notify_snapshot_changed(snapshot)

        slot = flaky_orchestrator.get_slot(AssessmentDomain.RESILIENCE)
        assert slot.status == DomainStatus.ERROR
        assert slot.result is None
        assert not slot.stale

    @pytest.mark.asyncio
    async def test_recovery_clears_stale(self, flaky_orchestrator, flaky_engine, snapshot):
        await flaky_orchestrator.notify_snapshot_changed(snapshot)
        flaky_engine.failing = {AssessmentDomain.CLIMATE_SCORE}
        await flaky_orchestrator.notify_snapshot_changed(replace(snapshot, version=2))
        assert flaky_orchestrator.is_stale(AssessmentDomain.CLIMATE_SCORE)

        flaky_engine.failing = set()
        await flaky_orchestrator.notify_snapshot_changed(replace(snapshot, version=3))

        slot = flaky_orchestrator.get_slot(AssessmentDomain.CLIMATE_SCORE)
        assert slot.status == DomainStatus.READY
        assert not slot.stale
        assert slot.snapshot_version == 3

    @pytest.mark.asyncio
    async def test_unexpected_assessor_error(self, orchestrator, snapshot):
        broken = replace(snapshot, energy=EnergySnapshot(total_generation="bad"))
        await orchestrator.notify_snapshot_changed(broken)

        assert orchestrator.get_slot(AssessmentDomain.ENERGY_FLOW).status == DomainStatus.ERROR
        assert orchestrator.get_slot(AssessmentDomain.CLIMATE_SCORE).status == DomainStatus.READY

    @pytest.mark.asyncio
    async def test_invalid_payload_marks_all_stale(self, orchestrator, raw_payload):
        await orchestrator.ingest(raw_payload)

        cycle = await orchestrator.ingest({"energy": {"totalGeneration": "n/a"}})

        assert not cycle.success
        assert cycle.snapshot_version is None
        for domain in ALL_DOMAINS:
            slot = orchestrator.get_slot(domain)
            assert slot.status == DomainStatus.ERROR
            assert slot.stale
            assert slot.has_result
            assert slot.is_degraded

    @pytest.mark.asyncio
    async def test_invalid_payload_logged(self, orchestrator, caplog):
        with caplog.at_level(logging.WARNING, logger="orchestrator.core"):
            await orchestrator.ingest("not a snapshot")

        assert any("Rejected snapshot payload" in r.getMessage() for r in caplog.records)


class TestRecoverableInput:

    @pytest.mark.asyncio
    async def test_non_list_nodes_keep_all_domains_ready(self, orchestrator, raw_payload, snapshot):
        raw_payload["energy"]["distributionNodes"] = {"id": "n1"}

        cycle = await orchestrator.ingest(raw_payload)

        assert cycle.success
        for domain in ALL_DOMAINS:
            assert orchestrator.get_slot(domain).status == DomainStatus.READY
        assert orchestrator.get_result(AssessmentDomain.ENERGY_FLOW).bottlenecks == ()
        expected = AssessmentEngine().assess_domain(AssessmentDomain.CLIMATE_SCORE, snapshot)
        assert orchestrator.get_result(AssessmentDomain.CLIMATE_SCORE) == expected

    @pytest.mark.asyncio
    async def test_null_sub_factor_reads_as_zero(self, orchestrator, raw_payload):
        raw_payload["resilience"]["community"]["socialNetworks"] = None

        cycle = await orchestrator.ingest(raw_payload)

        assert cycle.success
        assert orchestrator.get_slot(AssessmentDomain.RESILIENCE).status == DomainStatus.READY

    @pytest.mark.asyncio
    async def test_null_snapshot_publishes_defaults(self, orchestrator, mock_clock):
        cycle = await orchestrator.ingest(None)

        assert cycle.success
        assert cycle.snapshot_version == 1
        for domain in ALL_DOMAINS:
            slot = orchestrator.get_slot(domain)
            assert slot.status == DomainStatus.READY
            assert not slot.stale
        assert orchestrator.get_result(AssessmentDomain.ENERGY_FLOW) == EnergyFlowResult.empty(mock_clock.now())
        assert orchestrator.get_result(AssessmentDomain.RESILIENCE) == ResilienceMetrics.empty(mock_clock.now())

    @pytest.mark.asyncio
    async def test_reject_keeps_last_good(self, orchestrator, snapshot):
        await orchestrator.notify_snapshot_changed(snapshot)
        good = orchestrator.get_result(AssessmentDomain.VULNERABILITY)

        cycle = await orchestrator.reject("feed unreadable")

        assert not cycle.success
        slot = orchestrator.get_slot(AssessmentDomain.VULNERABILITY)
        assert slot.result is good
        assert slot.stale
        assert slot.error == "feed unreadable"


# ============================================================
# SINGLE-FLIGHT
# ============================================================

class TestCoalescing:

    @pytest.mark.asyncio
    async def test_burst_runs_one_follow_up(self, snapshot, mock_clock):
        engine = GatedEngine()
        orchestrator = AssessmentOrchestrator(
            OrchestratorConfig(concurrent=True), engine=engine, clock=mock_clock
        )

        first = asyncio.create_task(orchestrator.notify_snapshot_changed(snapshot))
        while not orchestrator.is_in_flight:
            await asyncio.sleep(0)

        for version in (2, 3, 4):
            assert await orchestrator.notify_snapshot_changed(replace(snapshot, version=version)) is None

        engine.gate.set()
        result = await first

        assert len(orchestrator.cycle_history) == 2
        assert result.snapshot_version == 4
        assert orchestrator.coalesced_signals == 3
        assert sorted(set(engine.versions)) == [1, 4]
        assert all(orchestrator.get_slot(d).snapshot_version == 4 for d in ALL_DOMAINS)

    @pytest.mark.asyncio
    async def test_refresh_without_snapshot(self, orchestrator):
        assert await orchestrator.refresh() is None
        assert len(orchestrator.cycle_history) == 0

    @pytest.mark.asyncio
    async def test_refresh_reruns_latest(self, orchestrator, snapshot):
        await orchestrator.notify_snapshot_changed(snapshot)
        cycle = await orchestrator.refresh()

        assert cycle.success
        assert cycle.snapshot_version == 1
        assert len(orchestrator.cycle_history) == 2


# ============================================================
# STAMPING / SUBSCRIBERS
# ============================================================

class TestSnapshotStamping:

    @pytest.mark.asyncio
    async def test_missing_version_assigned(self, orchestrator):
        first = await orchestrator.notify_snapshot_changed(MetricSnapshot())
        second = await orchestrator.notify_snapshot_changed(MetricSnapshot())

        assert first.snapshot_version == 1
        assert second.snapshot_version == 2

    @pytest.mark.asyncio
    async def test_versions_continue_after_explicit(self, orchestrator, snapshot):
        await orchestrator.notify_snapshot_changed(replace(snapshot, version=7))
        cycle = await orchestrator.notify_snapshot_changed(replace(snapshot, version=0))
        assert cycle.snapshot_version == 8

    @pytest.mark.asyncio
    async def test_missing_capture_time_uses_clock(self, orchestrator, snapshot, mock_clock):
        await orchestrator.notify_snapshot_changed(replace(snapshot, captured_at=None))

        assert orchestrator.latest_snapshot.captured_at == mock_clock.now()
        result = orchestrator.get_result(AssessmentDomain.CLIMATE_SCORE)
        assert result.computed_at == mock_clock.now()


class TestSubscribers:

    @pytest.mark.asyncio
    async def test_sync_and_async_subscribers(self, orchestrator, snapshot):
        seen = []

        async def on_async(slots):
            seen.append(("async", slots[AssessmentDomain.ENERGY_FLOW].status))

        orchestrator.subscribe(lambda slots: seen.append(("sync", len(slots))))
        orchestrator.subscribe(on_async)

        await orchestrator.notify_snapshot_changed(snapshot)

        assert seen == [("sync", 4), ("async", DomainStatus.READY)]

    @pytest.mark.asyncio
    async def test_subscribers_only_see_settled_slots(self, orchestrator, snapshot):
        observed = []
        orchestrator.subscribe(lambda slots: observed.extend(s.status for s in slots.values()))

        await orchestrator.notify_snapshot_changed(snapshot)

        assert observed
        assert all(status.is_settled for status in observed)

    @pytest.mark.asyncio
    async def test_unsubscribe(self, orchestrator, snapshot):
        calls = []
        unsubscribe = orchestrator.subscribe(lambda slots: calls.append(1))

        await orchestrator.notify_snapshot_changed(snapshot)
        unsubscribe()
        await orchestrator.notify_snapshot_changed(replace(snapshot, version=2))

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_failing_subscriber_logged(self, orchestrator, snapshot, caplog):
        def explode(slots):
            raise RuntimeError("boom")

        orchestrator.subscribe(explode)
        with caplog.at_level(logging.ERROR, logger="orchestrator.core"):
            cycle = await orchestrator.notify_snapshot_changed(snapshot)

        assert cycle.success
        assert any("boom" in r.getMessage() for r in caplog.records)


# ============================================================
# HISTORY / STATUS
# ============================================================

class TestCycleHistory:

    @pytest.mark.asyncio
    async def test_bounded(self, mock_clock):
        history = CycleHistory(max_size=3)
        for i in range(5):
            await history.add(CycleResult(
                cycle_id=f"cycle_{i}",
                snapshot_version=i,
                started_at=mock_clock.now(),
                success=i % 2 == 0,
            ))

        assert len(history) == 3
        assert [c.cycle_id for c in history] == ["cycle_2", "cycle_3", "cycle_4"]
        assert history.get_last_successful().cycle_id == "cycle_4"

    def test_empty_statistics(self):
        stats = CycleHistory().get_statistics()
        assert stats["total_cycles"] == 0
        assert stats["failures_by_domain"] == {}
        assert CycleHistory().get_last() is None
        assert CycleHistory().get_last_successful() is None

    @pytest.mark.asyncio
    async def test_cycle_ids_sequential(self, orchestrator, snapshot):
        await orchestrator.notify_snapshot_changed(snapshot)
        await orchestrator.notify_snapshot_changed(replace(snapshot, version=2))

        ids = [c.cycle_id for c in orchestrator.cycle_history]
        assert ids == ["cycle_000001", "cycle_000002"]

    @pytest.mark.asyncio
    async def test_failures_tracked_per_domain(self, flaky_orchestrator, flaky_engine, snapshot):
        await flaky_orchestrator.notify_snapshot_changed(snapshot)
        flaky_engine.failing = {AssessmentDomain.CLIMATE_SCORE}
        await flaky_orchestrator.notify_snapshot_changed(replace(snapshot, version=2))
        await flaky_orchestrator.ingest([])

        history = flaky_orchestrator.cycle_history
        stats = history.get_statistics()

        assert history.failure_counts() == {
            "energy_flow": 1,
            "climate_score": 2,
            "vulnerability": 1,
            "resilience": 1,
        }
        assert stats["rejected_snapshots"] == 1
        assert stats["last_snapshot_version"] is None
        assert stats["last_good_snapshot_version"] == 1
        assert stats["failed_cycles"] == 2

    @pytest.mark.asyncio
    async def test_status(self, orchestrator, snapshot):
        await orchestrator.notify_snapshot_changed(snapshot)
        status = orchestrator.get_status()

        assert status["in_flight"] is False
        assert status["latest_snapshot_version"] == 1
        assert status["slots"] == {d.value: "ready" for d in ALL_DOMAINS}
        assert status["stale"] == []
        assert status["cycle_stats"]["total_cycles"] == 1
        assert status["last_cycle"]["success"] is True


# ============================================================
# CONFIGURATION / LOGGING
# ============================================================

class TestConfiguration:

    def test_invalid_config_rejected(self):
        with pytest.raises(ConfigurationError):
            AssessmentOrchestrator(OrchestratorConfig(history_size=0))

    def test_validate(self):
        config = OrchestratorConfig(refresh_interval_seconds=0, log_format="xml")
        errors = config.validate()

        assert len(errors) == 2

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ASSESSMENT_CONCURRENT", "false")
        monkeypatch.setenv("ASSESSMENT_REFRESH_INTERVAL_SECONDS", "15")
        monkeypatch.setenv("ASSESSMENT_HISTORY_SIZE", "20")
        monkeypatch.setenv("ASSESSMENT_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("ASSESSMENT_LOG_FORMAT", "TEXT")

        config = OrchestratorConfig.from_env()

        assert config.concurrent is False
        assert config.refresh_interval_seconds == 15.0
        assert config.history_size == 20
        assert config.log_level == "DEBUG"
        assert config.log_format == "text"

    def test_setup_logging_replaces_handlers(self, restore_logging):
        setup_logging(level="DEBUG", log_format="text")
        root = logging.getLogger()

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

    def test_setup_logging_stream(self, restore_logging):
        stream = io.StringIO()
        setup_logging(level="WARNING", log_format="json", stream=stream)

        logging.getLogger("orchestrator.core").warning("slot degraded")

        assert json.loads(stream.getvalue())["message"] == "slot degraded"

    def test_factory(self, restore_logging, mock_clock):
        orchestrator = create_orchestrator(
            config=OrchestratorConfig(log_level="ERROR"),
            clock=mock_clock,
        )

        assert isinstance(orchestrator, AssessmentOrchestrator)
        assert logging.getLogger().level == logging.ERROR
