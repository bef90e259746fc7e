"""
Cluster job controller.

Wraps submit / cancel against the opaque cluster service and normalizes
their failure modes:
- submission failures always surface as SubmissionError,
- cancellation is idempotent: a job that is unknown, already cancelled or
  already finished acknowledges successfully; concurrent cancels of one job
  share a single in-flight request,
- cancelling without a handle (submission never resolved) is a no-op ack,
  so cluster-side cancel is never invoked before submit resolved.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future

from streamcheck.cluster.job import JobDefinition
from streamcheck.core.domain.errors import (
    CancellationError,
    JobNotFoundError,
    SubmissionError,
)
from streamcheck.core.domain.types import Acknowledge, JobHandle
from streamcheck.core.ports.cluster_service import ClusterService

LOGGER = logging.getLogger(__name__)


def _resolved(value) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


class ClusterJobController:
    def __init__(self, cluster: ClusterService) -> None:
        self._cluster = cluster
        self._lock = threading.Lock()
        self._cancellations: dict[str, Future[Acknowledge]] = {}

    def submit(self, job: JobDefinition) -> Future[JobHandle]:
        """Submit a job; resolves to a JobHandle once the cluster accepted it."""
        submitted_at_ns = time.time_ns()
        handle_future: Future[JobHandle] = Future()

        try:
            id_future = self._cluster.submit_job(job)
        except SubmissionError as exc:
            handle_future.set_exception(exc)
            return handle_future
        except Exception as exc:
            handle_future.set_exception(SubmissionError(f"cluster unreachable: {exc}"))
            return handle_future

        def on_done(f: Future[str]) -> None:
            exc = f.exception()
            if exc is None:
                handle_future.set_result(
                    JobHandle(job_id=f.result(), job_name=job.name, submitted_at_ns=submitted_at_ns)
                )
            elif isinstance(exc, SubmissionError):
                handle_future.set_exception(exc)
            else:
                handle_future.set_exception(SubmissionError(str(exc)))

        id_future.add_done_callback(on_done)
        return handle_future

    def cancel(self, handle: JobHandle | None) -> Future[Acknowledge]:
        """Cancel a job. Safe to call repeatedly and with no handle."""
        if handle is None:
            return _resolved(Acknowledge(job_id=None))

        with self._lock:
            existing = self._cancellations.get(handle.job_id)
            if existing is not None:
                return existing
            ack_future: Future[Acknowledge] = Future()
            self._cancellations[handle.job_id] = ack_future

        try:
            cluster_future = self._cluster.cancel_job(handle.job_id)
        except Exception as exc:
            with self._lock:
                self._cancellations.pop(handle.job_id, None)
            ack_future.set_exception(CancellationError(f"cancel of {handle.job_id} failed: {exc}"))
            return ack_future

        def on_done(f: Future[Acknowledge]) -> None:
            exc = f.exception()
            if exc is None:
                ack_future.set_result(f.result())
            elif isinstance(exc, JobNotFoundError):
                LOGGER.info("Job already gone", extra={"job_id": handle.job_id})
                ack_future.set_result(Acknowledge(job_id=handle.job_id))
            else:
                ack_future.set_exception(CancellationError(f"cancel of {handle.job_id} failed: {exc}"))

        cluster_future.add_done_callback(on_done)
        ack_future.add_done_callback(lambda _f: self._forget(handle.job_id, ack_future))
        return ack_future

    def _forget(self, job_id: str, ack_future: Future[Acknowledge]) -> None:
        with self._lock:
            if self._cancellations.get(job_id) is ack_future:
                del self._cancellations[job_id]
