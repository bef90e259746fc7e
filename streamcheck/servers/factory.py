"""Source server and source connector selection by protocol kind."""

from __future__ import annotations

from concurrent.futures import Executor
from typing import TYPE_CHECKING, Callable

from streamcheck.cluster.sources import KafkaSourceConnector, SocketSourceConnector
from streamcheck.core.domain.errors import SubmissionError
from streamcheck.core.ports.source_connector import SourceConnector
from streamcheck.core.ports.source_server import SourceServer
from streamcheck.servers.kafka_server import KafkaTestServer
from streamcheck.servers.tcp_server import TCPTestServer

if TYPE_CHECKING:
    from streamcheck.runtime.config import HarnessConfig


def _create_tcp_server(config: HarnessConfig, executor: Executor) -> SourceServer:
    return TCPTestServer(
        executor,
        host=config.tcp.host,
        port=config.tcp.port,
        accept_timeout_seconds=config.tcp.accept_timeout_seconds,
    )


def _create_kafka_server(config: HarnessConfig, executor: Executor) -> SourceServer:
    return KafkaTestServer(
        bootstrap_servers=config.kafka.bootstrap_servers,
        topic=config.kafka.topic,
        partitions=config.kafka.partitions,
        replication_factor=config.kafka.replication_factor,
        send_timeout_seconds=config.kafka.send_timeout_seconds,
    )


SERVER_FACTORIES: dict[str, Callable[[HarnessConfig, Executor], SourceServer]] = {
    "tcp": _create_tcp_server,
    "broker": _create_kafka_server,
}


def create_server(config: HarnessConfig, executor: Executor) -> SourceServer:
    try:
        factory = SERVER_FACTORIES[config.type]
    except KeyError as exc:
        raise ValueError(f"Unknown server type {config.type!r}") from exc
    return factory(config, executor)


def connector_for(server: SourceServer) -> SourceConnector:
    """Build the job-side reader matching a live source server."""
    endpoint = server.endpoint
    if server.kind == "tcp":
        return SocketSourceConnector(endpoint["host"], endpoint["port"])
    if server.kind == "broker":
        return KafkaSourceConnector(endpoint["bootstrap_servers"], endpoint["topic"])
    raise SubmissionError(f"no source connector for server kind {server.kind!r}")
