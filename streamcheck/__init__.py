"""Public API for the streamcheck package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Cluster
# ----------------------------------------------------------------------
from streamcheck.cluster.job import JobDefinition
from streamcheck.cluster.local_cluster import LocalCluster

# ----------------------------------------------------------------------
# Domain Types and Errors
# ----------------------------------------------------------------------
from streamcheck.core.domain.errors import (
    CancellationError,
    ComparisonFailure,
    FixtureError,
    HarnessError,
    ServerSetupError,
    SinkTimeoutError,
    SubmissionError,
    TransportError,
)
from streamcheck.core.domain.harness_states import HarnessState
from streamcheck.core.domain.types import (
    ComparisonResult,
    JobHandle,
    TestCase,
    Verdict,
)

# ----------------------------------------------------------------------
# Harness
# ----------------------------------------------------------------------
from streamcheck.core.sinks.quiet_period_sink import QuietPeriodSink
from streamcheck.fixtures.loader import FixtureLoader
from streamcheck.harness.comparator import compare
from streamcheck.harness.job_controller import ClusterJobController
from streamcheck.harness.orchestrator import TestCaseOrchestrator
from streamcheck.harness.post_processors import pick_post_processor
from streamcheck.harness.sanitizer import sanitize

# ----------------------------------------------------------------------
# Config API
# ----------------------------------------------------------------------
from streamcheck.runtime.config import HarnessConfig

# ----------------------------------------------------------------------
# Source Servers
# ----------------------------------------------------------------------
from streamcheck.servers.kafka_server import KafkaTestServer
from streamcheck.servers.tcp_server import TCPTestServer

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Harness
    "TestCaseOrchestrator",
    "QuietPeriodSink",
    "ClusterJobController",
    "compare",
    "sanitize",
    "pick_post_processor",
    "FixtureLoader",

    # Cluster
    "LocalCluster",
    "JobDefinition",

    # Servers
    "TCPTestServer",
    "KafkaTestServer",

    # Config
    "HarnessConfig",

    # Domain
    "TestCase",
    "JobHandle",
    "ComparisonResult",
    "Verdict",
    "HarnessState",

    # Errors
    "HarnessError",
    "ServerSetupError",
    "TransportError",
    "SubmissionError",
    "SinkTimeoutError",
    "ComparisonFailure",
    "CancellationError",
    "FixtureError",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("streamcheck")
except PackageNotFoundError:
    __version__ = "0.0.0"
