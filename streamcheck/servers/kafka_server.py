"""Broker source server.

Provisions a private topic on an existing Kafka cluster and produces the
input records to it. The topic is deleted again on teardown.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Mapping, Sequence

from kafka import KafkaAdminClient, KafkaProducer
from kafka.admin import NewTopic
from kafka.errors import KafkaError, TopicAlreadyExistsError

from streamcheck.core.domain.errors import ServerSetupError, TransportError
from streamcheck.core.ports.source_server import ServerState

LOGGER = logging.getLogger(__name__)

DEFAULT_BOOTSTRAP_SERVERS = "localhost:9092"


class KafkaTestServer:
    """Topic-backed source server.

    Records are produced without keys to a single-partition topic by default,
    which keeps them in write order for the consumer.
    """

    def __init__(
        self,
        *,
        bootstrap_servers: str = DEFAULT_BOOTSTRAP_SERVERS,
        topic: str | None = None,
        partitions: int = 1,
        replication_factor: int = 1,
        send_timeout_seconds: float = 10.0,
        admin_factory: Callable[..., Any] = KafkaAdminClient,
        producer_factory: Callable[..., Any] = KafkaProducer,
    ) -> None:
        self._bootstrap_servers = bootstrap_servers
        self._topic = topic or f"streamcheck-{uuid.uuid4().hex[:12]}"
        self._partitions = partitions
        self._replication_factor = replication_factor
        self._send_timeout_seconds = send_timeout_seconds
        self._admin_factory = admin_factory
        self._producer_factory = producer_factory

        self._state = ServerState.UNINITIALIZED
        self._admin: Any | None = None
        self._producer: Any | None = None
        self._created_topic = False

    @property
    def kind(self) -> str:
        return "broker"

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def endpoint(self) -> Mapping[str, Any]:
        return {"bootstrap_servers": self._bootstrap_servers, "topic": self._topic}

    def setup(self) -> None:
        if self._state is not ServerState.UNINITIALIZED:
            raise ServerSetupError(f"setup called in state {self._state.value}")

        servers = self._bootstrap_servers.split(",")
        try:
            self._admin = self._admin_factory(
                bootstrap_servers=servers,
                client_id="streamcheck-admin",
            )
            self._create_topic()
            self._producer = self._producer_factory(
                bootstrap_servers=servers,
                acks="all",
                value_serializer=lambda v: v.encode("utf-8"),
            )
        except KafkaError as exc:
            raise ServerSetupError(
                f"cannot prepare topic {self._topic!r} on {self._bootstrap_servers}: {exc}"
            ) from exc

        self._state = ServerState.READY
        LOGGER.info(
            "Kafka source server ready",
            extra={"topic": self._topic, "bootstrap_servers": self._bootstrap_servers},
        )

    def _create_topic(self) -> None:
        try:
            self._admin.create_topics(
                [
                    NewTopic(
                        name=self._topic,
                        num_partitions=self._partitions,
                        replication_factor=self._replication_factor,
                    )
                ]
            )
            self._created_topic = True
        except TopicAlreadyExistsError:
            LOGGER.info("Reusing existing topic", extra={"topic": self._topic})

    def write_data(self, records: Sequence[str]) -> None:
        if self._state is not ServerState.READY:
            raise TransportError(f"write_data called in state {self._state.value}")

        try:
            pending = [self._producer.send(self._topic, value=record) for record in records]
            for future in pending:
                future.get(timeout=self._send_timeout_seconds)
            self._producer.flush(timeout=self._send_timeout_seconds)
        except KafkaError as exc:
            raise TransportError(f"producing to {self._topic!r} failed: {exc}") from exc

        LOGGER.info("Input data sent to topic", extra={"topic": self._topic, "count": len(records)})

    def tear_down(self) -> None:
        if self._state is ServerState.CLOSED:
            return

        if self._producer is not None:
            try:
                self._producer.close(timeout=self._send_timeout_seconds)
            except Exception:
                LOGGER.exception("Closing Kafka producer failed")
            self._producer = None

        if self._admin is not None:
            if self._created_topic:
                try:
                    self._admin.delete_topics([self._topic])
                except Exception:
                    LOGGER.exception("Deleting topic failed", extra={"topic": self._topic})
            try:
                self._admin.close()
            except Exception:
                LOGGER.exception("Closing Kafka admin client failed")
            self._admin = None

        self._state = ServerState.CLOSED
        LOGGER.info("Kafka source server closed", extra={"topic": self._topic})
