"""
Semantic test: cleanup runs exactly once on every exit path.

Invariant:
Whatever step of a run fails, the orchestrator cancels the job exactly once
(a no-op acknowledgement when submission never resolved), tears the source
server down exactly once, resets the sink, and ends in torn_down. The
original failure is re-raised only after cleanup finished.
"""

from __future__ import annotations

import pytest

from conftest import FakeCluster, FakeServer, SpyController, echo_job_factory, make_test_case
from streamcheck.core.domain.errors import ServerSetupError, SubmissionError, TransportError
from streamcheck.core.domain.harness_states import HarnessState
from streamcheck.core.events.event_bus import EventBus
from streamcheck.core.events.events import CleanupEvent
from streamcheck.core.sinks.quiet_period_sink import QuietPeriodSink
from streamcheck.harness.orchestrator import TestCaseOrchestrator

RECORD = "<http://ex.com/s> <http://ex.com/p> \"v\" ."


class RecordingSink:
    def __init__(self) -> None:
        self.events = []

    def on_event(self, event) -> None:
        self.events.append(event)


class BrokenComparator:
    def __call__(self, *args, **kwargs):
        raise RuntimeError("comparator crashed")


def _build(calls, *, cluster=None, comparator=None, job_factory=None, extra_sinks=()):
    cluster = cluster or FakeCluster(calls)
    sink = QuietPeriodSink(idle_seconds=0.05)
    recorder = RecordingSink()
    kwargs = {}
    if comparator is not None:
        kwargs["comparator"] = comparator
    orchestrator = TestCaseOrchestrator(
        controller=SpyController(cluster, calls),
        sink=sink,
        job_factory=job_factory or echo_job_factory(calls),
        event_bus=EventBus(sinks=[recorder, *extra_sinks]),
        idle_seconds=0.05,
        timeout_seconds=2.0,
        submit_timeout_seconds=1.0,
        cancel_timeout_seconds=1.0,
        **kwargs,
    )
    return orchestrator, cluster, sink, recorder


def _cancel_calls(calls):
    return [c for c in calls if isinstance(c, tuple) and c[0] == "cancel"]


def _assert_cleaned_up(orchestrator, calls, sink, recorder) -> None:
    assert len(_cancel_calls(calls)) == 1
    assert calls.count("tear_down") == 1
    assert sink.epoch == 1
    assert orchestrator.state is HarnessState.TORN_DOWN

    steps = [e.step for e in recorder.events if isinstance(e, CleanupEvent)]
    assert steps == ["cancel_job", "tear_down_server", "reset_sink"]


def test_setup_failure_still_cleans_up(calls) -> None:
    orchestrator, _, sink, recorder = _build(calls)
    server = FakeServer(calls, fail_setup=True)

    with pytest.raises(ServerSetupError):
        orchestrator.run(make_test_case(["r"], [RECORD]), server)

    _assert_cleaned_up(orchestrator, calls, sink, recorder)
    assert _cancel_calls(calls) == [("cancel", None)]
    assert "submit" not in calls


def test_job_factory_failure_still_cleans_up(calls) -> None:
    def failing_factory(test_case, server, sink):
        raise SubmissionError("no connector for server kind 'fake'")

    orchestrator, _, sink, recorder = _build(calls, job_factory=failing_factory)

    with pytest.raises(SubmissionError):
        orchestrator.run(make_test_case(["r"], [RECORD]), FakeServer(calls))

    _assert_cleaned_up(orchestrator, calls, sink, recorder)
    assert _cancel_calls(calls) == [("cancel", None)]


def test_submission_failure_still_cleans_up(calls) -> None:
    cluster = FakeCluster(calls, submit_error=SubmissionError("rejected"))
    orchestrator, _, sink, recorder = _build(calls, cluster=cluster)

    with pytest.raises(SubmissionError):
        orchestrator.run(make_test_case(["r"], [RECORD]), FakeServer(calls))

    _assert_cleaned_up(orchestrator, calls, sink, recorder)
    # Cluster-side cancel is never invoked before submission resolved.
    assert not any(isinstance(c, tuple) and c[0] == "cluster_cancel" for c in calls)


def test_unreachable_cluster_surfaces_as_submission_error(calls) -> None:
    cluster = FakeCluster(calls, submit_error=ConnectionRefusedError("no cluster"))
    orchestrator, _, sink, recorder = _build(calls, cluster=cluster)

    with pytest.raises(SubmissionError):
        orchestrator.run(make_test_case(["r"], [RECORD]), FakeServer(calls))

    _assert_cleaned_up(orchestrator, calls, sink, recorder)


def test_write_failure_still_cleans_up(calls) -> None:
    orchestrator, _, sink, recorder = _build(calls)

    with pytest.raises(TransportError):
        orchestrator.run(make_test_case(["r"], [RECORD]), FakeServer(calls, fail_write=True))

    _assert_cleaned_up(orchestrator, calls, sink, recorder)
    assert ("cluster_cancel", "job-1") in calls


def test_comparator_failure_still_cleans_up(calls) -> None:
    orchestrator, cluster, sink, recorder = _build(calls, comparator=BrokenComparator())
    server = FakeServer(calls, on_write=lambda records: cluster.emit([RECORD]))

    with pytest.raises(RuntimeError):
        orchestrator.run(make_test_case(["r"], [RECORD]), server)

    _assert_cleaned_up(orchestrator, calls, sink, recorder)


def test_teardown_failure_does_not_stop_cleanup(calls) -> None:
    orchestrator, cluster, sink, recorder = _build(calls)
    server = FakeServer(calls, on_write=lambda records: cluster.emit([RECORD]), fail_tear_down=True)

    result = orchestrator.run(make_test_case(["r"], [RECORD]), server)

    assert result.passed
    _assert_cleaned_up(orchestrator, calls, sink, recorder)
    outcome = {e.step: e.ok for e in recorder.events if isinstance(e, CleanupEvent)}
    assert outcome == {"cancel_job": True, "tear_down_server": False, "reset_sink": True}


def test_successful_run_cleans_up_once(calls) -> None:
    orchestrator, cluster, sink, recorder = _build(calls)
    server = FakeServer(calls, on_write=lambda records: cluster.emit([RECORD]))

    result = orchestrator.run(make_test_case(["r"], [RECORD]), server)

    assert result.passed
    _assert_cleaned_up(orchestrator, calls, sink, recorder)
    assert _cancel_calls(calls) == [("cancel", "job-1")]


def test_submit_timeout_cancels_late_job(calls) -> None:
    cluster = FakeCluster(calls)
    cluster.hold_submit = True
    orchestrator, _, sink, recorder = _build(calls, cluster=cluster)

    with pytest.raises(SubmissionError):
        orchestrator.run(make_test_case(["r"], [RECORD]), FakeServer(calls))

    _assert_cleaned_up(orchestrator, calls, sink, recorder)
    assert ("cluster_cancel", "job-1") not in calls

    # The job comes up after the harness gave up on it.
    cluster.pending.set_result("job-1")
    assert ("cluster_cancel", "job-1") in calls


class FailingCleanupSink:
    def __init__(self) -> None:
        self.attempts = 0

    def on_event(self, event) -> None:
        if isinstance(event, CleanupEvent) or getattr(event, "next_state", None) == "torn_down":
            self.attempts += 1
            raise OSError(28, "No space left on device")


def test_failing_event_sink_does_not_skip_cleanup(calls) -> None:
    failing = FailingCleanupSink()
    orchestrator, cluster, sink, recorder = _build(calls, extra_sinks=[failing])
    server = FakeServer(calls, on_write=lambda records: cluster.emit([RECORD]))

    result = orchestrator.run(make_test_case(["r"], [RECORD]), server)

    assert result.passed
    assert failing.attempts == 4
    _assert_cleaned_up(orchestrator, calls, sink, recorder)
