"""Job-side source connector protocol.

A connector is the cluster's reading end of a source server. The job loop
polls it with a bounded timeout so cancellation stays responsive.
"""

from __future__ import annotations

from typing import Protocol


class SourceConnector(Protocol):
    @property
    def exhausted(self) -> bool:
        """True once the source has signalled end of input."""

    def open(self) -> None:
        """Connect to the source. Raises OSError or a client error on failure."""

    def poll(self, timeout: float) -> list[str]:
        """Return the records that arrived within timeout seconds."""

    def close(self) -> None:
        """Release the connection."""
