"""TCP source server.

Listens on a port and streams input records, newline-terminated, to the
first client that connects (the job's socket source).
"""

from __future__ import annotations

import logging
import socket
import threading
from concurrent.futures import Executor, Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Mapping, Sequence

from streamcheck.core.domain.errors import ServerSetupError, TransportError
from streamcheck.core.ports.source_server import ServerState

LOGGER = logging.getLogger(__name__)

ACCEPT_POLL_SECONDS = 0.2
DEFAULT_TCP_PORT = 9999


class TCPTestServer:
    """Single-client TCP source server.

    The accept loop runs on the executor passed in; write_data blocks until a
    client is connected or accept_timeout_seconds elapse.
    """

    def __init__(
        self,
        executor: Executor,
        *,
        host: str = "127.0.0.1",
        port: int = DEFAULT_TCP_PORT,
        accept_timeout_seconds: float = 30.0,
        send_timeout_seconds: float = 30.0,
        encoding: str = "utf-8",
    ) -> None:
        self._executor = executor
        self._host = host
        self._port = port
        self._accept_timeout_seconds = accept_timeout_seconds
        self._send_timeout_seconds = send_timeout_seconds
        self._encoding = encoding

        self._state = ServerState.UNINITIALIZED
        self._listener: socket.socket | None = None
        self._connection: Future[socket.socket] = Future()
        self._stop = threading.Event()

    @property
    def kind(self) -> str:
        return "tcp"

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def endpoint(self) -> Mapping[str, Any]:
        return {"host": self._host, "port": self._port}

    def setup(self) -> None:
        if self._state is not ServerState.UNINITIALIZED:
            raise ServerSetupError(f"setup called in state {self._state.value}")

        try:
            listener = socket.create_server((self._host, self._port))
            listener.settimeout(ACCEPT_POLL_SECONDS)
        except OSError as exc:
            raise ServerSetupError(f"cannot listen on {self._host}:{self._port}: {exc}") from exc

        self._listener = listener
        # Port 0 binds an ephemeral port; publish the real one.
        self._port = listener.getsockname()[1]

        try:
            self._executor.submit(self._accept_loop, listener)
        except RuntimeError as exc:
            listener.close()
            self._listener = None
            raise ServerSetupError(f"cannot schedule accept loop: {exc}") from exc

        self._state = ServerState.READY
        LOGGER.info("TCP source server listening", extra={"host": self._host, "port": self._port})

    def _accept_loop(self, listener: socket.socket) -> None:
        while not self._stop.is_set():
            try:
                conn, address = listener.accept()
            except TimeoutError:
                continue
            except OSError as exc:
                if not self._connection.done():
                    self._connection.set_exception(TransportError(f"accept failed: {exc}"))
                return

            conn.settimeout(self._send_timeout_seconds)
            LOGGER.info("Input socket connected", extra={"peer": f"{address[0]}:{address[1]}"})
            self._connection.set_result(conn)
            return

        if not self._connection.done():
            self._connection.set_exception(
                TransportError("server closed before a client connected")
            )

    def write_data(self, records: Sequence[str]) -> None:
        if self._state is not ServerState.READY:
            raise TransportError(f"write_data called in state {self._state.value}")

        try:
            conn = self._connection.result(timeout=self._accept_timeout_seconds)
        except FutureTimeoutError as exc:
            raise TransportError(
                f"no client connected within {self._accept_timeout_seconds}s"
            ) from exc

        try:
            for record in records:
                conn.sendall((record + "\n").encode(self._encoding))
        except OSError as exc:
            raise TransportError(f"socket write failed: {exc}") from exc

        LOGGER.info("Input data sent to server", extra={"count": len(records)})

    def tear_down(self) -> None:
        if self._state is ServerState.CLOSED:
            return

        self._stop.set()

        if self._connection.done() and self._connection.exception() is None:
            try:
                self._connection.result().close()
            except OSError:
                LOGGER.exception("Closing client connection failed")

        if self._listener is not None:
            try:
                self._listener.close()
            except OSError:
                LOGGER.exception("Closing TCP listener failed")
            self._listener = None

        self._state = ServerState.CLOSED
        LOGGER.info("TCP source server closed", extra={"port": self._port})
