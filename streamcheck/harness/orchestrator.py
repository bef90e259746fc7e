"""
Test case orchestrator.

Sequences one conformance run:

    idle -> server_ready -> job_submitted -> input_sent
         -> awaiting_sink -> compared -> torn_down

torn_down is reached on every path. Cleanup (cancel job, tear down server,
reset sink) runs exactly once from a single ``finally`` block; a failure in
any earlier step propagates only after cleanup finished.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import replace
from typing import Callable

from streamcheck.cluster.job import JobDefinition
from streamcheck.core.domain.errors import SinkTimeoutError, SubmissionError
from streamcheck.core.domain.harness_states import HarnessState, is_valid_transition
from streamcheck.core.domain.types import ComparisonResult, JobHandle, TestCase, Verdict
from streamcheck.core.events.event_bus import EventBus
from streamcheck.core.events.events import (
    CleanupEvent,
    HarnessStateTransitionEvent,
    VerdictEvent,
)
from streamcheck.core.ports.record_consumer import RecordConsumer
from streamcheck.core.ports.source_server import SourceServer
from streamcheck.core.sinks.quiet_period_sink import QuietPeriodSink
from streamcheck.harness.comparator import compare
from streamcheck.harness.job_controller import ClusterJobController

LOGGER = logging.getLogger(__name__)

JobFactory = Callable[[TestCase, SourceServer, RecordConsumer], JobDefinition]
Comparator = Callable[..., ComparisonResult]


class TestCaseOrchestrator:
    """Runs one test case at a time against a shared sink and controller.

    The source server and the job handle are owned by a single run() call
    and passed explicitly through it.
    """

    __test__ = False  # not a pytest class

    def __init__(
        self,
        *,
        controller: ClusterJobController,
        sink: QuietPeriodSink,
        job_factory: JobFactory,
        event_bus: EventBus,
        idle_seconds: float,
        timeout_seconds: float,
        submit_timeout_seconds: float = 30.0,
        cancel_timeout_seconds: float = 10.0,
        comparator: Comparator = compare,
    ) -> None:
        if timeout_seconds <= idle_seconds:
            raise ValueError("timeout_seconds must exceed idle_seconds")

        self._controller = controller
        self._sink = sink
        self._job_factory = job_factory
        self._event_bus = event_bus
        self._idle_seconds = idle_seconds
        self._timeout_seconds = timeout_seconds
        self._submit_timeout_seconds = submit_timeout_seconds
        self._cancel_timeout_seconds = cancel_timeout_seconds
        self._comparator = comparator

        self._state: HarnessState | None = None

    @property
    def state(self) -> HarnessState | None:
        return self._state

    def run(self, test_case: TestCase, server: SourceServer) -> ComparisonResult:
        """Execute a test case and return its verdict.

        Raises ServerSetupError, SubmissionError or TransportError after
        cleanup when the corresponding step fails.
        """
        self._state = None
        handle: JobHandle | None = None
        self._transition(test_case, HarnessState.IDLE)

        try:
            LOGGER.info("Setting up source server", extra={"kind": server.kind})
            server.setup()
            self._transition(test_case, HarnessState.SERVER_READY)

            job = self._job_factory(test_case, server, self._sink)
            handle = self._submit(job)
            self._transition(test_case, HarnessState.JOB_SUBMITTED)

            self._sink.start_countdown(self._idle_seconds)
            LOGGER.info(
                "Writing input records",
                extra={"test_case": test_case.name, "count": len(test_case.input_records)},
            )
            server.write_data(test_case.input_records)
            self._transition(test_case, HarnessState.INPUT_SENT)

            self._transition(test_case, HarnessState.AWAITING_SINK)
            try:
                generated = self._await_sink()
            except SinkTimeoutError as exc:
                LOGGER.error(str(exc), extra={"test_case": test_case.name})
                result = self._compare(test_case, self._sink.snapshot())
                result = replace(result, verdict=Verdict.FAIL, reason=str(exc))
            else:
                result = self._compare(test_case, generated)

            self._transition(test_case, HarnessState.COMPARED)
            self._report(result)
            return result
        finally:
            self._clean_up(test_case, server, handle)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _submit(self, job: JobDefinition) -> JobHandle:
        future = self._controller.submit(job)
        try:
            handle = future.result(timeout=self._submit_timeout_seconds)
        except FutureTimeoutError as exc:
            # The job may still start; cancel it as soon as it does.
            future.add_done_callback(self._cancel_late_job)
            raise SubmissionError(
                f"job {job.name!r} not running after {self._submit_timeout_seconds}s"
            ) from exc

        LOGGER.info(
            "Cluster job started",
            extra={"job_id": handle.job_id, "job_name": handle.job_name},
        )
        return handle

    def _cancel_late_job(self, future) -> None:
        if future.exception() is None:
            self._controller.cancel(future.result())

    def _await_sink(self) -> list[str]:
        completion = self._sink.completion_future()
        try:
            return completion.result(timeout=self._timeout_seconds)
        except FutureTimeoutError as exc:
            raise SinkTimeoutError(self._timeout_seconds, len(self._sink.snapshot())) from exc

    def _compare(self, test_case: TestCase, generated: list[str]) -> ComparisonResult:
        return self._comparator(
            test_case.expected_output,
            generated,
            test_case=test_case.name,
        )

    def _report(self, result: ComparisonResult) -> None:
        if result.passed:
            LOGGER.info(result.diagnostic_lines()[0], extra={"test_case": result.test_case})
        else:
            for line in result.diagnostic_lines():
                LOGGER.error(line, extra={"test_case": result.test_case})

        self._event_bus.emit(
            VerdictEvent(
                ts_ns=time.time_ns(),
                test_case=result.test_case,
                passed=result.passed,
                reason=result.reason,
                expected_count=len(result.expected),
                actual_count=len(result.actual),
            )
        )

    def _clean_up(self, test_case: TestCase, server: SourceServer, handle: JobHandle | None) -> None:
        # Order matters: stop the job before its upstream server disappears.
        ok = True
        try:
            self._controller.cancel(handle).result(timeout=self._cancel_timeout_seconds)
        except Exception:
            ok = False
            LOGGER.exception(
                "Job cancellation failed",
                extra={"job_id": handle.job_id if handle else None},
            )
        else:
            if handle is not None:
                LOGGER.info("Cluster job done", extra={"job_id": handle.job_id})
        self._emit_cleanup(test_case, "cancel_job", ok)

        ok = True
        try:
            server.tear_down()
        except Exception:
            ok = False
            LOGGER.exception("Source server teardown failed", extra={"kind": server.kind})
        self._emit_cleanup(test_case, "tear_down_server", ok)

        ok = True
        try:
            self._sink.reset()
        except Exception:
            ok = False
            LOGGER.exception("Sink reset failed")
        self._emit_cleanup(test_case, "reset_sink", ok)

        self._transition(test_case, HarnessState.TORN_DOWN, best_effort=True)

    # ------------------------------------------------------------------
    # State tracking
    # ------------------------------------------------------------------

    def _transition(
        self,
        test_case: TestCase,
        next_state: HarnessState,
        *,
        best_effort: bool = False,
    ) -> None:
        prev_state = self._state
        if not is_valid_transition(prev_state, next_state):
            LOGGER.warning(
                "Unexpected harness transition",
                extra={"prev_state": prev_state, "next_state": next_state.value},
            )

        self._state = next_state
        LOGGER.debug(
            "Harness state",
            extra={"test_case": test_case.name, "next_state": next_state.value},
        )
        event = HarnessStateTransitionEvent(
            ts_ns=time.time_ns(),
            test_case=test_case.name,
            prev_state=prev_state.value if prev_state is not None else None,
            next_state=next_state.value,
        )
        if best_effort:
            self._emit_best_effort(event)
        else:
            self._event_bus.emit(event)

    def _emit_cleanup(self, test_case: TestCase, step: str, ok: bool) -> None:
        self._emit_best_effort(
            CleanupEvent(ts_ns=time.time_ns(), test_case=test_case.name, step=step, ok=ok)
        )

    def _emit_best_effort(self, event: object) -> None:
        # Cleanup must reach every step even when an event sink fails.
        try:
            self._event_bus.emit(event)
        except Exception:
            LOGGER.exception("Event emission failed", extra={"event_type": type(event).__name__})
