"""Core runtime data model.

These structures are created and consumed within a single harness run.
Test cases and job handles are immutable; the only mutable shared state
lives in the quiet-period sink.
"""

# pylint: disable=missing-class-docstring
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from streamcheck.core.domain.errors import ComparisonFailure

if TYPE_CHECKING:
    from pathlib import Path


# ---------------------------------------------------------------------------
# Test case
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TestCase:
    """
    One fixture directory loaded into memory.

    input_records are written to the source server in order.
    expected_output is the union of all expected output files.
    """

    __test__ = False  # not a pytest class

    name: str
    folder: Path
    input_records: tuple[str, ...]
    expected_output: frozenset[str]


# ---------------------------------------------------------------------------
# Cluster
# ---------------------------------------------------------------------------


class JobStatus(str, Enum):
    RUNNING = "running"
    FINISHED = "finished"
    CANCELED = "canceled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.RUNNING


@dataclass(frozen=True, slots=True)
class JobHandle:
    """Identifies one submitted streaming job."""

    job_id: str
    job_name: str
    submitted_at_ns: int


@dataclass(frozen=True, slots=True)
class Acknowledge:
    job_id: str | None


# ---------------------------------------------------------------------------
# Sink records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CapturedRecord:
    payload: str
    arrived_at_ns: int


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------


class Verdict(str, Enum):
    PASS = "pass"
    FAIL = "fail"


@dataclass(frozen=True, slots=True)
class ComparisonResult:
    """
    Outcome of comparing generated output against a fixture set.

    expected and actual hold the sanitized sets.
    """

    verdict: Verdict
    test_case: str
    expected: frozenset[str] = field(default_factory=frozenset)
    actual: frozenset[str] = field(default_factory=frozenset)
    reason: str | None = None

    @property
    def passed(self) -> bool:
        return self.verdict is Verdict.PASS

    def diagnostic_lines(self) -> list[str]:
        """Return the failure report, one log line per entry."""
        if self.passed:
            return [f"Testcase {self.test_case} passed streaming test!"]

        return [
            "Generated output does not match expected output",
            f"Reason: {self.reason}",
            "Expected: ",
            *sorted(self.expected),
            "Generated: ",
            *sorted(self.actual),
            f"Test case: {self.test_case}",
        ]

    def raise_for_failure(self) -> None:
        if not self.passed:
            raise ComparisonFailure(self)
