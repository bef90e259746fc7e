"""Job-side source connectors for the local cluster."""

from __future__ import annotations

import logging
import socket
import time
import uuid
from typing import Any, Callable

from kafka import KafkaConsumer

LOGGER = logging.getLogger(__name__)


class SocketSourceConnector:
    """Reads newline-delimited records from a TCP source server.

    The connector is the client side: it connects to the server's listening
    port, retrying until the server accepts or connect_timeout elapses.
    End of stream (server closed the connection) marks it exhausted.
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        connect_timeout: float = 10.0,
        retry_interval: float = 0.1,
        encoding: str = "utf-8",
    ) -> None:
        self._host = host
        self._port = port
        self._connect_timeout = connect_timeout
        self._retry_interval = retry_interval
        self._encoding = encoding

        self._sock: socket.socket | None = None
        self._buffer = b""
        self._exhausted = False

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def open(self) -> None:
        deadline = time.monotonic() + self._connect_timeout
        while True:
            try:
                self._sock = socket.create_connection(
                    (self._host, self._port),
                    timeout=self._connect_timeout,
                )
                break
            except OSError:
                if time.monotonic() >= deadline:
                    raise
                time.sleep(self._retry_interval)

        LOGGER.info(
            "Socket source connected",
            extra={"host": self._host, "port": self._port},
        )

    def poll(self, timeout: float) -> list[str]:
        if self._sock is None or self._exhausted:
            return []

        self._sock.settimeout(timeout)
        try:
            chunk = self._sock.recv(65536)
        except TimeoutError:
            return []

        if not chunk:
            self._exhausted = True
            tail, self._buffer = self._buffer, b""
            return self._decode([tail])

        self._buffer += chunk
        *lines, self._buffer = self._buffer.split(b"\n")
        return self._decode(lines)

    def _decode(self, lines: list[bytes]) -> list[str]:
        out: list[str] = []
        for raw in lines:
            text = raw.decode(self._encoding).rstrip("\r")
            if text.strip():
                out.append(text)
        return out

    def close(self) -> None:
        if self._sock is None:
            return
        try:
            self._sock.close()
        finally:
            self._sock = None


class KafkaSourceConnector:
    """Consumes records from a broker topic from the earliest offset.

    Each connector uses a private consumer group so that a rerun never
    resumes from another run's committed offsets.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        topic: str,
        *,
        group_id: str | None = None,
        consumer_factory: Callable[..., Any] = KafkaConsumer,
    ) -> None:
        self._bootstrap_servers = bootstrap_servers
        self._topic = topic
        self._group_id = group_id or f"streamcheck-{uuid.uuid4().hex[:12]}"
        self._consumer_factory = consumer_factory
        self._consumer: Any | None = None

    @property
    def exhausted(self) -> bool:
        return False

    def open(self) -> None:
        self._consumer = self._consumer_factory(
            self._topic,
            bootstrap_servers=self._bootstrap_servers.split(","),
            group_id=self._group_id,
            auto_offset_reset="earliest",
            enable_auto_commit=False,
            value_deserializer=lambda v: v.decode("utf-8"),
        )
        LOGGER.info(
            "Kafka source subscribed",
            extra={"topic": self._topic, "group_id": self._group_id},
        )

    def poll(self, timeout: float) -> list[str]:
        if self._consumer is None:
            return []

        batch = self._consumer.poll(timeout_ms=int(timeout * 1000))
        records: list[str] = []
        for _partition, messages in batch.items():
            records.extend(message.value for message in messages)
        return records

    def close(self) -> None:
        if self._consumer is None:
            return
        try:
            self._consumer.close()
        finally:
            self._consumer = None
