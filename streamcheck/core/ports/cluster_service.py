"""Cluster service protocol.

The stream-processing cluster is opaque to the harness: it accepts job
definitions and exposes submit / cancel / await operations as futures.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from streamcheck.cluster.job import JobDefinition
    from streamcheck.core.domain.types import Acknowledge, JobStatus


class ClusterService(Protocol):
    def submit_job(self, job: JobDefinition) -> Future[str]:
        """Submit a job; the future resolves to its id once it is running."""

    def cancel_job(self, job_id: str) -> Future[Acknowledge]:
        """Request cancellation; the future resolves once the job stopped."""

    def await_job(self, job_id: str) -> Future[JobStatus]:
        """Return a future resolving to the job's terminal status."""
