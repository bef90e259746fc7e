"""
Event sink interface.

Sinks consume harness events emitted during a run.
"""
from __future__ import annotations

from typing import Any, Protocol


class EventSink(Protocol):
    def on_event(self, event: Any) -> None:
        """Consume a harness event."""
