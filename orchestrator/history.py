"""
Orchestrator - Cycle History.

Bounded record of recent orchestration cycles, oldest first.

Rejected snapshots appear as cycles without a snapshot
version. Per-domain failure counts show which domain keeps
serving stale results.
"""

import asyncio
from collections import Counter
from typing import Any, Dict, Iterator, List, Optional

from .models import CycleResult


class CycleHistory:
    """
    Tracks orchestration cycle history.
    """

    def __init__(self, max_size: int = 100):
        """
        Initialize history.

        Args:
            max_size: Maximum cycles to keep
        """
        self._max_size = max_size
        self._cycles: List[CycleResult] = []
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._cycles)

    def __iter__(self) -> Iterator[CycleResult]:
        return iter(list(self._cycles))

    async def add(self, result: CycleResult) -> None:
        """Add a cycle result, evicting the oldest beyond max_size."""
        async with self._lock:
            self._cycles.append(result)
            if len(self._cycles) > self._max_size:
                self._cycles = self._cycles[-self._max_size:]

    def get_last(self) -> Optional[CycleResult]:
        return self._cycles[-1] if self._cycles else None

    def get_last_successful(self) -> Optional[CycleResult]:
        """Most recent cycle in which every domain settled READY."""
        for cycle in reversed(self._cycles):
            if cycle.success:
                return cycle
        return None

    def failure_counts(self) -> Dict[str, int]:
        """Number of retained cycles in which each domain failed."""
        counts: Counter = Counter()
        for cycle in self._cycles:
            counts.update(domain.value for domain in cycle.failed_domains)
        return dict(counts)

    def get_statistics(self) -> Dict[str, Any]:
        """Get cycle statistics."""
        last_good = self.get_last_successful()
        if not self._cycles:
            return {
                "total_cycles": 0,
                "rejected_snapshots": 0,
                "average_duration_seconds": 0.0,
                "last_good_snapshot_version": None,
                "failures_by_domain": {},
            }

        successes = sum(1 for c in self._cycles if c.success)
        durations = [c.duration_seconds for c in self._cycles]

        return {
            "total_cycles": len(self._cycles),
            "successful_cycles": successes,
            "failed_cycles": len(self._cycles) - successes,
            "rejected_snapshots": sum(1 for c in self._cycles if c.snapshot_version is None),
            "average_duration_seconds": sum(durations) / len(durations),
            "last_cycle_time": self._cycles[-1].started_at.isoformat(),
            "last_snapshot_version": self._cycles[-1].snapshot_version,
            "last_good_snapshot_version": last_good.snapshot_version if last_good else None,
            "failures_by_domain": self.failure_counts(),
        }
