"""Source server protocol.

A source server is a transient protocol endpoint that feeds recorded test
input into the pipeline under test. Concrete variants live in
``streamcheck.servers``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Protocol, Sequence


class ServerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


class SourceServer(Protocol):
    """Capability set {setup, write_data, tear_down}.

    Lifecycle: UNINITIALIZED -> READY (setup) -> CLOSED (tear_down).
    write_data is only valid while READY.
    """

    @property
    def kind(self) -> str:
        """Protocol kind ("tcp" or "broker")."""

    @property
    def state(self) -> ServerState:
        """Current lifecycle state."""

    @property
    def endpoint(self) -> Mapping[str, Any]:
        """Connection details a job source needs to read from this server."""

    def setup(self) -> None:
        """Allocate listening resources. Call exactly once.

        Raises ServerSetupError if resources cannot be bound.
        """

    def write_data(self, records: Sequence[str]) -> None:
        """Transmit records downstream in order.

        Raises TransportError if the channel fails mid-write.
        """

    def tear_down(self) -> None:
        """Release all resources. Never raises."""
