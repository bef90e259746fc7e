"""In-process stream-processing cluster.

Runs each submitted job as one long-lived task on an executor supplied by
the caller. Every operation returns a ``concurrent.futures.Future``; nothing
blocks the submitting thread.
"""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Executor, Future
from dataclasses import dataclass, field

from streamcheck.cluster.job import JobDefinition
from streamcheck.core.domain.errors import JobNotFoundError, SubmissionError
from streamcheck.core.domain.types import Acknowledge, JobStatus

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class _RunningJob:
    job_id: str
    definition: JobDefinition
    status: JobStatus = JobStatus.RUNNING
    cancel_requested: threading.Event = field(default_factory=threading.Event)
    started: Future[str] = field(default_factory=Future)
    terminated: Future[JobStatus] = field(default_factory=Future)


def _failed_future(exc: BaseException) -> Future:
    future: Future = Future()
    future.set_exception(exc)
    return future


class LocalCluster:
    """Thread-pool backed implementation of the ClusterService protocol."""

    def __init__(self, executor: Executor) -> None:
        self._executor = executor
        self._jobs: dict[str, _RunningJob] = {}
        self._lock = threading.Lock()
        self._closed = False

    # ------------------------------------------------------------------
    # ClusterService
    # ------------------------------------------------------------------

    def submit_job(self, job: JobDefinition) -> Future[str]:
        """Schedule a job; the future resolves to its id once it is running.

        Raises SubmissionError synchronously for a closed cluster or a
        malformed job; a source that cannot be opened fails the future.
        """
        job.validate()

        job_id = uuid.uuid4().hex
        running = _RunningJob(job_id=job_id, definition=job)

        with self._lock:
            if self._closed:
                raise SubmissionError("cluster is closed")
            self._jobs[job_id] = running

        try:
            self._executor.submit(self._run, running)
        except RuntimeError as exc:
            with self._lock:
                self._jobs.pop(job_id, None)
            raise SubmissionError(f"cannot schedule job {job.name!r}: {exc}") from exc

        LOGGER.info("Job submitted", extra={"job_id": job_id, "job_name": job.name})
        return running.started

    def cancel_job(self, job_id: str) -> Future[Acknowledge]:
        """Request cancellation; resolves once the job task has stopped.

        Cancelling a job that already stopped resolves immediately. Once the
        acknowledgement is out the job is forgotten and its id is unknown.
        """
        with self._lock:
            running = self._jobs.get(job_id)

        if running is None:
            return _failed_future(JobNotFoundError(job_id))

        running.cancel_requested.set()

        ack: Future[Acknowledge] = Future()

        def on_terminated(_f: Future[JobStatus]) -> None:
            with self._lock:
                self._jobs.pop(job_id, None)
            ack.set_result(Acknowledge(job_id))

        running.terminated.add_done_callback(on_terminated)
        return ack

    def await_job(self, job_id: str) -> Future[JobStatus]:
        with self._lock:
            running = self._jobs.get(job_id)

        if running is None:
            return _failed_future(JobNotFoundError(job_id))
        return running.terminated

    def job_status(self, job_id: str) -> JobStatus:
        with self._lock:
            running = self._jobs.get(job_id)
        if running is None:
            raise JobNotFoundError(job_id)
        return running.status

    def close(self) -> None:
        """Refuse new jobs and signal every running job to stop."""
        with self._lock:
            self._closed = True
            jobs = list(self._jobs.values())

        for running in jobs:
            running.cancel_requested.set()

    # ------------------------------------------------------------------
    # Job task
    # ------------------------------------------------------------------

    def _run(self, running: _RunningJob) -> None:
        job = running.definition

        try:
            job.source.open()
        except Exception as exc:
            LOGGER.error(
                "Job source could not be opened",
                extra={"job_id": running.job_id, "job_name": job.name, "error": repr(exc)},
            )
            running.started.set_exception(
                SubmissionError(f"job {job.name!r} failed to start: {exc}")
            )
            self._finish(running, JobStatus.FAILED)
            return

        running.started.set_result(running.job_id)
        LOGGER.info("Job running", extra={"job_id": running.job_id, "job_name": job.name})

        status = JobStatus.CANCELED
        try:
            while not running.cancel_requested.is_set():
                for record in job.source.poll(job.poll_interval_seconds):
                    self._process(running, record)
                if job.source.exhausted:
                    status = JobStatus.FINISHED
                    break
        except Exception:
            LOGGER.exception("Job failed", extra={"job_id": running.job_id})
            status = JobStatus.FAILED
        finally:
            try:
                job.source.close()
            except OSError:
                LOGGER.exception("Closing job source failed", extra={"job_id": running.job_id})
            self._finish(running, status)

    @staticmethod
    def _process(running: _RunningJob, record: str) -> None:
        job = running.definition
        try:
            triples = job.transform(record)
        except ValueError as exc:
            LOGGER.warning(
                "Skipping input record",
                extra={"job_id": running.job_id, "record": record, "error": str(exc)},
            )
            return

        for output in job.post_processor.process(triples):
            job.sink.on_record(output)

    def _finish(self, running: _RunningJob, status: JobStatus) -> None:
        running.status = status
        if not running.started.done():
            running.started.set_exception(
                SubmissionError(f"job {running.definition.name!r} stopped before running")
            )
        running.terminated.set_result(status)
        LOGGER.info(
            "Job stopped",
            extra={"job_id": running.job_id, "status": status.value},
        )
