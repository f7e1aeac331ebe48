"""
Core Module Package.

Shared infrastructure used by the orchestrator.

Components:
- clock: Injectable time abstraction
"""

from .clock import ClockFactory, ClockProtocol, MockClock, SystemClock

__all__ = [
    "ClockFactory",
    "ClockProtocol",
    "MockClock",
    "SystemClock",
]
