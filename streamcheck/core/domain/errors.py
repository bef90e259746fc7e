"""
Harness error kinds.

Setup, submission, transport and fixture errors abort a run and are routed
through mandatory cleanup. Comparison failures are normally reported as a
verdict, not raised. Cancellation errors are logged and never escalated.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from streamcheck.core.domain.types import ComparisonResult


class HarnessError(Exception):
    """Base class for all harness errors."""


class ServerSetupError(HarnessError):
    """A source server could not bind its listening resources."""


class TransportError(HarnessError):
    """The source server channel failed while writing input records."""


class SubmissionError(HarnessError):
    """The cluster rejected the job definition or could not be reached."""


class SinkTimeoutError(HarnessError):
    """The hard wait bound expired before the sink went quiet."""

    def __init__(self, timeout_seconds: float, received: int) -> None:
        super().__init__(
            f"sink did not complete within {timeout_seconds:.1f}s "
            f"({received} records received)"
        )
        self.timeout_seconds = timeout_seconds
        self.received = received


class ComparisonFailure(HarnessError):
    """Generated output is size-deficient or not contained in the expected set."""

    def __init__(self, result: ComparisonResult) -> None:
        super().__init__(result.reason or "comparison failed")
        self.result = result


class CancellationError(HarnessError):
    """Best-effort job cancellation did not complete."""


class JobNotFoundError(HarnessError):
    """The cluster has no job registered under the given id."""


class FixtureError(HarnessError):
    """A fixture directory is missing, unreadable, or malformed."""
