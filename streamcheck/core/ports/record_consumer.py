from __future__ import annotations

from typing import Protocol


class RecordConsumer(Protocol):
    """Output consumer attached to a streaming job."""

    def on_record(self, record: str) -> None:
        """Consume one output record. Called from the job's thread."""
