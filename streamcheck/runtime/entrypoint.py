from __future__ import annotations

import argparse
import logging
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from streamcheck.cluster.local_cluster import LocalCluster
from streamcheck.core.domain.errors import HarnessError
from streamcheck.core.domain.types import ComparisonResult
from streamcheck.core.events.event_bus import EventBus
from streamcheck.core.events.sinks.file_recorder import FileRecorderSink
from streamcheck.core.events.sinks.sink_logging import LoggingEventSink
from streamcheck.core.sinks.quiet_period_sink import QuietPeriodSink
from streamcheck.fixtures.loader import FixtureLoader
from streamcheck.harness.job_controller import ClusterJobController
from streamcheck.harness.job_factory import MappingJobFactory
from streamcheck.harness.orchestrator import TestCaseOrchestrator
from streamcheck.harness.post_processors import pick_post_processor
from streamcheck.runtime.config import HarnessConfig
from streamcheck.runtime.prometheus_metrics import PrometheusMetricsClient
from streamcheck.servers.factory import create_server

LOGGER = logging.getLogger(__name__)

EXIT_PASS = 0
EXIT_FAIL = 1
EXIT_USAGE = 2

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="streamcheck",
        description="Run one streaming conformance test case against a local cluster.",
    )

    parser.add_argument(
        "--path",
        help="Fixture directory (relative to --fixtures-root or the packaged samples).",
    )
    parser.add_argument(
        "--type",
        help="Source protocol: tcp or broker (alias: kafka). Default: broker.",
    )
    parser.add_argument(
        "--post-process",
        dest="post_process",
        help="Output post-processing: none, bulk or json-ld. Default: none.",
    )
    parser.add_argument(
        "--idle-seconds",
        type=float,
        help="Quiet period after which output is considered complete. Default: 10.",
    )
    parser.add_argument(
        "--timeout-seconds",
        type=float,
        help="Hard bound on waiting for the sink. Default: 6x the quiet period.",
    )
    parser.add_argument("--bootstrap-servers", help="Kafka bootstrap servers (host:port,...).")
    parser.add_argument("--topic", help="Kafka topic to use instead of a generated one.")
    parser.add_argument("--tcp-port", type=int, help="Listening port of the TCP source server.")
    parser.add_argument("--fixtures-root", type=Path, help="Root directory for fixture paths.")
    parser.add_argument(
        "--events-path",
        type=Path,
        help="Append harness events as JSON lines to this file.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )

    return parser


def _build_event_bus(events_path: Path | None) -> EventBus:
    sinks = [LoggingEventSink()]
    if events_path is not None:
        sinks.append(FileRecorderSink(events_path))
    return EventBus(sinks=sinks)


def _push_metrics(
    *,
    config: HarnessConfig,
    test_case: str,
    passed: bool,
    duration_seconds: float,
    generated_records: int,
) -> None:
    metrics = PrometheusMetricsClient()
    if not metrics.is_enabled():
        return

    try:
        metrics.record_run(
            test_case=test_case,
            server_type=config.type,
            passed=passed,
            duration_seconds=duration_seconds,
            generated_records=generated_records,
        )
        metrics.push_all(job="streamcheck")
    except Exception:
        LOGGER.exception("Prometheus push failed")


def run_test_case(config: HarnessConfig) -> ComparisonResult:
    """Load the configured test case and run it once.

    Raises HarnessError subclasses for fixture, setup, submission and
    transport failures; cleanup has already run when they surface.
    """
    loader = FixtureLoader(config.fixtures_root)
    test_case = loader.load_test_case(config.path)
    post_processor = pick_post_processor(config.post_process)
    event_bus = _build_event_bus(config.events_path)

    LOGGER.info(
        "Creating source server",
        extra={"server_type": config.type, "test_case": test_case.name},
    )

    with ThreadPoolExecutor(
        max_workers=config.workers,
        thread_name_prefix="streamcheck",
    ) as executor:
        cluster = LocalCluster(executor)
        try:
            orchestrator = TestCaseOrchestrator(
                controller=ClusterJobController(cluster),
                sink=QuietPeriodSink(idle_seconds=config.idle_seconds),
                job_factory=MappingJobFactory(loader=loader, post_processor=post_processor),
                event_bus=event_bus,
                idle_seconds=config.idle_seconds,
                timeout_seconds=config.timeout_seconds,
                submit_timeout_seconds=config.submit_timeout_seconds,
                cancel_timeout_seconds=config.cancel_timeout_seconds,
            )
            return orchestrator.run(test_case, create_server(config, executor))
        finally:
            cluster.close()
            event_bus.close()


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = HarnessConfig.from_args(args)
    except ValidationError as exc:
        LOGGER.error("Invalid configuration:\n%s", exc)
        return EXIT_USAGE

    started = time.monotonic()
    try:
        result = run_test_case(config)
    except Exception as exc:
        if isinstance(exc, HarnessError):
            LOGGER.error("Test run aborted: %s", exc)
        else:
            LOGGER.exception("Test run crashed")
        _push_metrics(
            config=config,
            test_case=Path(config.path).name,
            passed=False,
            duration_seconds=time.monotonic() - started,
            generated_records=0,
        )
        return EXIT_FAIL

    _push_metrics(
        config=config,
        test_case=result.test_case,
        passed=result.passed,
        duration_seconds=time.monotonic() - started,
        generated_records=len(result.actual),
    )

    if result.passed:
        LOGGER.info("Test passed!!")
        return EXIT_PASS
    return EXIT_FAIL


if __name__ == "__main__":
    sys.exit(main())
