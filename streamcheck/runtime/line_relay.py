"""
Standalone line relay.

Feeds a file into a socket-sourced pipeline by hand: listens on a port,
writes every line of the file (newline-terminated) to the first client that
connects, then closes the connection and stops listening.

    streamcheck-relay data/input.json 5005
"""

from __future__ import annotations

import argparse
import logging
import os
import socket
import sys
from pathlib import Path
from typing import Sequence

LOGGER = logging.getLogger(__name__)

DEFAULT_RELAY_PORT = 5005


class LineRelay:
    def __init__(self, path: str | Path, port: int = DEFAULT_RELAY_PORT, host: str = "") -> None:
        self._path = Path(path)
        self._port = port
        self._host = host
        self._listener: socket.socket | None = None

    def bind(self) -> int:
        """Start listening; return the bound port."""
        self._listener = socket.create_server((self._host, self._port))
        self._port = self._listener.getsockname()[1]
        LOGGER.info("Listening on port %d", self._port)
        return self._port

    def serve_once(self) -> int:
        """Relay the file to the first client; return the number of lines sent."""
        if self._listener is None:
            self.bind()

        sent = 0
        try:
            conn, address = self._listener.accept()
            LOGGER.info("Input socket connected: %s:%d", address[0], address[1])
            with conn, self._path.open("r", encoding="utf-8") as fh:
                for line in fh:
                    conn.sendall((line.rstrip("\r\n") + os.linesep).encode("utf-8"))
                    sent += 1
        finally:
            self._listener.close()
            self._listener = None

        LOGGER.info("Relayed %d lines from %s", sent, self._path)
        return sent


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser("streamcheck-relay")
    parser.add_argument("file", type=Path, help="File whose lines are relayed.")
    parser.add_argument("port", type=int, nargs="?", default=DEFAULT_RELAY_PORT)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    if not args.file.is_file():
        print(f"Error: input file does not exist: {args.file}", file=sys.stderr)
        return 2

    relay = LineRelay(args.file, args.port)
    relay.bind()
    relay.serve_once()
    return 0


if __name__ == "__main__":
    sys.exit(main())
