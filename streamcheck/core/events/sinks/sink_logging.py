"""
Logging event sink.
"""
from __future__ import annotations

import logging
from typing import Any

EVENTS_LOGGER_NAME = "streamcheck.events"


class LoggingEventSink:
    """Forwards harness events to a logger, one record per event.

    The message is the event class name; the event itself travels in
    ``extra["event"]`` for handlers that format structured output.
    """

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.DEBUG) -> None:
        self._logger = logger or logging.getLogger(EVENTS_LOGGER_NAME)
        self._level = level

    def on_event(self, event: Any) -> None:
        if not self._logger.isEnabledFor(self._level):
            return
        self._logger.log(
            self._level,
            type(event).__name__,
            extra={"event": event, "test_case": getattr(event, "test_case", None)},
        )
