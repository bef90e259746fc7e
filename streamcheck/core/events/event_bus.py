"""
Synchronous harness event bus.
"""
from __future__ import annotations

import threading
from typing import Any, Iterable

from streamcheck.core.events.event_sink import EventSink


class EventBus:
    """Dispatches events to registered sinks.

    Emission is serialized so that sinks see events in one total order even
    when the orchestrator and cleanup paths emit from different threads.
    A bus without sinks discards everything; a closed bus drops new events.
    """

    def __init__(self, sinks: Iterable[EventSink] | None = None) -> None:
        self._sinks: list[EventSink] = list(sinks or ())
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, sink: EventSink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def emit(self, event: Any) -> None:
        with self._lock:
            if self._closed:
                return
            for sink in self._sinks:
                sink.on_event(event)

    def close(self) -> None:
        """Close every sink that has a close() method; idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            sinks, self._sinks = self._sinks, []

        for sink in sinks:
            close_fn = getattr(sink, "close", None)
            if callable(close_fn):
                close_fn()
