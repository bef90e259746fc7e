"""
Semantic test: TCP source server delivery.

Invariant:
Records written to the server reach the connected socket source in order,
one newline-terminated line each. Setup fails with ServerSetupError when the
port is taken, writes before a client connects time out with
TransportError, and tear_down is idempotent.
"""

from __future__ import annotations

import socket
from concurrent.futures import ThreadPoolExecutor

import pytest

from streamcheck.cluster.sources import SocketSourceConnector
from streamcheck.core.domain.errors import ServerSetupError, TransportError
from streamcheck.core.ports.source_server import ServerState
from streamcheck.servers.factory import connector_for
from streamcheck.servers.tcp_server import TCPTestServer


@pytest.fixture
def executor():
    with ThreadPoolExecutor(max_workers=4) as pool:
        yield pool


def _drain(connector: SocketSourceConnector, expected: int) -> list[str]:
    received: list[str] = []
    for _ in range(100):
        received.extend(connector.poll(0.05))
        if len(received) >= expected or connector.exhausted:
            break
    return received


def test_records_arrive_in_order(executor) -> None:
    server = TCPTestServer(executor, port=0)
    server.setup()
    assert server.state is ServerState.READY
    assert server.endpoint["port"] != 0

    connector = connector_for(server)
    connector.open()
    try:
        records = [f'{{"id": {i}}}' for i in range(20)]
        server.write_data(records)

        assert _drain(connector, len(records)) == records
    finally:
        connector.close()
        server.tear_down()

    assert server.state is ServerState.CLOSED


def test_tear_down_ends_the_stream(executor) -> None:
    server = TCPTestServer(executor, port=0)
    server.setup()
    connector = SocketSourceConnector("127.0.0.1", server.endpoint["port"])
    connector.open()

    server.write_data(["last"])
    server.tear_down()

    assert _drain(connector, 2) == ["last"]
    assert connector.exhausted
    connector.close()


def test_port_in_use_fails_setup(executor) -> None:
    blocker = socket.create_server(("127.0.0.1", 0))
    try:
        port = blocker.getsockname()[1]
        server = TCPTestServer(executor, port=port)

        with pytest.raises(ServerSetupError):
            server.setup()
    finally:
        blocker.close()


def test_write_without_client_times_out(executor) -> None:
    server = TCPTestServer(executor, port=0, accept_timeout_seconds=0.2)
    server.setup()
    try:
        with pytest.raises(TransportError, match="no client connected"):
            server.write_data(["x"])
    finally:
        server.tear_down()


def test_write_before_setup_is_rejected(executor) -> None:
    with pytest.raises(TransportError):
        TCPTestServer(executor, port=0).write_data(["x"])


def test_tear_down_is_idempotent(executor) -> None:
    server = TCPTestServer(executor, port=0)
    server.setup()

    server.tear_down()
    server.tear_down()

    assert server.state is ServerState.CLOSED
    with pytest.raises(ServerSetupError):
        server.setup()
