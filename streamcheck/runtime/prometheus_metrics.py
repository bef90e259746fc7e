from __future__ import annotations

import json
import logging
import os
from typing import Mapping

from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

LOGGER = logging.getLogger(__name__)

PUSHGATEWAY_URL_ENV = "PROMETHEUS_PUSHGATEWAY_URL"
GROUPING_KEY_ENV = "PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON"


class PrometheusMetricsClient:
    """Pushgateway client for one-shot conformance runs.

    Expected environment:
    - PROMETHEUS_PUSHGATEWAY_URL: URL to the Pushgateway.

    Optional:
    - PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON: JSON object used as grouping
      key, e.g. {"pipeline_id": "1234"}. Without it, runs of different test
      cases overwrite each other unless the caller groups by test case.

    Delivery is best-effort: callers log and ignore push failures.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        env = os.environ if environ is None else environ
        self._pushgateway_url = env.get(PUSHGATEWAY_URL_ENV)
        self._grouping_key = self._load_grouping_key(env.get(GROUPING_KEY_ENV))
        self._registry = CollectorRegistry()
        self._gauges: dict[str, Gauge] = {}

    def is_enabled(self) -> bool:
        return self._pushgateway_url is not None

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    @staticmethod
    def _load_grouping_key(raw: str | None) -> dict[str, str]:
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("Invalid %s; ignoring", GROUPING_KEY_ENV)
            return {}

        if not isinstance(data, dict):
            return {}

        return {
            key: value
            for key, value in data.items()
            if isinstance(key, str) and isinstance(value, str)
        }

    def set_gauge(
        self,
        *,
        name: str,
        value: float,
        labels: dict[str, str],
    ) -> None:
        gauge = self._gauges.get(name)
        if gauge is None:
            gauge = Gauge(
                name,
                documentation=name,
                labelnames=list(labels.keys()),
                registry=self._registry,
            )
            self._gauges[name] = gauge

        gauge.labels(**labels).set(value)

    def record_run(
        self,
        *,
        test_case: str,
        server_type: str,
        passed: bool,
        duration_seconds: float,
        generated_records: int,
    ) -> None:
        labels = {"test_case": test_case, "server_type": server_type}

        self.set_gauge(name="streamcheck_test_passed", value=1.0 if passed else 0.0, labels=labels)
        self.set_gauge(name="streamcheck_test_duration_seconds", value=duration_seconds, labels=labels)
        self.set_gauge(name="streamcheck_generated_records", value=float(generated_records), labels=labels)

    def push_all(self, *, job: str) -> None:
        if not self._pushgateway_url:
            return

        push_to_gateway(
            gateway=self._pushgateway_url,
            job=job,
            registry=self._registry,
            grouping_key=self._grouping_key,
        )

        LOGGER.info(
            "Prometheus metrics pushed",
            extra={"job": job, "grouping_key": self._grouping_key},
        )
