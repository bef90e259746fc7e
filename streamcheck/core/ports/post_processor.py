from __future__ import annotations

from typing import Protocol, Sequence


class PostProcessor(Protocol):
    """Turns the serialized triples of one input record into output records."""

    def process(self, records: Sequence[str]) -> list[str]:
        """Return the records handed to the job's sink."""
