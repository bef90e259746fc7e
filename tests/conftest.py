"""Shared fakes for harness semantics tests.

The fakes stand in for the cluster, the source server and the idle timer so
that orchestration and sink semantics can be exercised deterministically.
"""

from __future__ import annotations

from concurrent.futures import Future
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

import pytest

from streamcheck.cluster.job import JobDefinition
from streamcheck.core.domain.errors import ServerSetupError, TransportError
from streamcheck.core.domain.types import Acknowledge, JobHandle, TestCase
from streamcheck.core.ports.source_server import ServerState
from streamcheck.harness.job_controller import ClusterJobController
from streamcheck.harness.post_processors import NopPostProcessor

# ---------------------------------------------------------------------------
# Idle timer
# ---------------------------------------------------------------------------


class FakeTimer:
    def __init__(
        self,
        interval: float,
        function: Callable[[], None],
        factory: FakeTimerFactory,
    ) -> None:
        self.interval = interval
        self.function = function
        self.factory = factory
        self.due_ns = factory.now_ns + round(interval * 1e9)
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        """Run the callback as if the interval elapsed (even if cancelled)."""
        self.factory.now_ns = max(self.factory.now_ns, self.due_ns)
        self.function()


class FakeTimerFactory:
    """Creates fake timers that share one manual clock."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []
        self.now_ns = 0

    def clock_ns(self) -> int:
        return self.now_ns

    def advance(self, seconds: float) -> None:
        self.now_ns += round(seconds * 1e9)

    def __call__(self, interval: float, function: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval, function, self)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


@pytest.fixture
def timer_factory() -> FakeTimerFactory:
    return FakeTimerFactory()


# ---------------------------------------------------------------------------
# Cluster, controller, server
# ---------------------------------------------------------------------------


class _NoSource:
    exhausted = True

    def open(self) -> None:
        return

    def poll(self, timeout: float) -> list[str]:
        return []

    def close(self) -> None:
        return


class FakeCluster:
    """Accepts jobs immediately and lets the test push output into their sink."""

    def __init__(self, calls: list, *, submit_error: Exception | None = None) -> None:
        self.calls = calls
        self.submit_error = submit_error
        self.job: JobDefinition | None = None
        self.hold_submit = False
        self.pending: Future[str] | None = None

    def submit_job(self, job: JobDefinition) -> Future[str]:
        self.calls.append("submit")
        if self.submit_error is not None:
            raise self.submit_error
        self.job = job
        future: Future[str] = Future()
        if self.hold_submit:
            self.pending = future
        else:
            future.set_result("job-1")
        return future

    def cancel_job(self, job_id: str) -> Future[Acknowledge]:
        self.calls.append(("cluster_cancel", job_id))
        future: Future[Acknowledge] = Future()
        future.set_result(Acknowledge(job_id))
        return future

    def await_job(self, job_id: str) -> Future:
        raise NotImplementedError

    def emit(self, records: Sequence[str]) -> None:
        """Push records through the running job's sink, as the job would."""
        assert self.job is not None
        for record in records:
            self.job.sink.on_record(record)


class SpyController(ClusterJobController):
    def __init__(self, cluster: FakeCluster, calls: list) -> None:
        super().__init__(cluster)
        self.calls = calls

    def submit(self, job: JobDefinition) -> Future[JobHandle]:
        future = super().submit(job)
        future.add_done_callback(lambda _f: self.calls.append("submit_resolved"))
        return future

    def cancel(self, handle: JobHandle | None) -> Future[Acknowledge]:
        self.calls.append(("cancel", handle.job_id if handle else None))
        return super().cancel(handle)


class FakeServer:
    """Source server whose writes are delivered straight to an output callback."""

    kind = "fake"

    def __init__(
        self,
        calls: list,
        *,
        on_write: Callable[[Sequence[str]], None] | None = None,
        fail_setup: bool = False,
        fail_write: bool = False,
        fail_tear_down: bool = False,
    ) -> None:
        self.calls = calls
        self.on_write = on_write
        self.fail_setup = fail_setup
        self.fail_write = fail_write
        self.fail_tear_down = fail_tear_down
        self.state = ServerState.UNINITIALIZED
        self.written: list[str] = []

    @property
    def endpoint(self) -> Mapping[str, Any]:
        return {}

    def setup(self) -> None:
        self.calls.append("setup")
        if self.fail_setup:
            raise ServerSetupError("port in use")
        self.state = ServerState.READY

    def write_data(self, records: Sequence[str]) -> None:
        self.calls.append("write")
        if self.fail_write:
            raise TransportError("connection reset")
        self.written.extend(records)
        if self.on_write is not None:
            self.on_write(records)

    def tear_down(self) -> None:
        self.calls.append("tear_down")
        if self.fail_tear_down:
            raise OSError("close failed")
        self.state = ServerState.CLOSED


def echo_job_factory(calls: list) -> Callable[..., JobDefinition]:
    """Job factory whose transform echoes input records unchanged."""

    def factory(test_case: TestCase, server: Any, sink: Any) -> JobDefinition:
        calls.append("attach_sink")
        return JobDefinition(
            name=test_case.name,
            source=_NoSource(),
            transform=lambda record: [record],
            post_processor=NopPostProcessor(),
            sink=sink,
        )

    return factory


def make_test_case(
    inputs: Sequence[str],
    expected: Sequence[str],
    name: str = "case-1",
) -> TestCase:
    return TestCase(
        name=name,
        folder=Path("."),
        input_records=tuple(inputs),
        expected_output=frozenset(expected),
    )


@pytest.fixture
def calls() -> list:
    return []
