"""
Harness event models.

These events represent immutable facts observed during a test case run.
They are consumed by loggers, recorders, and test instrumentation.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class HarnessStateTransitionEvent:
    ts_ns: int
    test_case: str
    prev_state: str | None
    next_state: str


@dataclass(slots=True)
class VerdictEvent:
    ts_ns: int
    test_case: str

    passed: bool
    reason: str | None

    expected_count: int
    actual_count: int


@dataclass(slots=True)
class CleanupEvent:
    ts_ns: int
    test_case: str

    step: str  # "cancel_job" | "tear_down_server" | "reset_sink"
    ok: bool
