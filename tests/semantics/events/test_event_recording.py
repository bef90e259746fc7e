"""
Semantic test: harness event delivery.

Invariant:
Every registered sink sees every event in emission order; the file recorder
writes one JSON line per event tagged with the event type; closing the bus
closes each sink once.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from streamcheck.core.events.event_bus import EventBus
from streamcheck.core.events.events import CleanupEvent, HarnessStateTransitionEvent
from streamcheck.core.events.sinks.file_recorder import FileRecorderSink
from streamcheck.core.events.sinks.sink_logging import LoggingEventSink


class CountingSink:
    def __init__(self) -> None:
        self.events = []
        self.closed = 0

    def on_event(self, event) -> None:
        self.events.append(event)

    def close(self) -> None:
        self.closed += 1


def test_sinks_see_events_in_order() -> None:
    first, second = CountingSink(), CountingSink()
    bus = EventBus(sinks=[first])
    bus.register(second)

    events = [
        HarnessStateTransitionEvent(ts_ns=1, test_case="t", prev_state=None, next_state="idle"),
        CleanupEvent(ts_ns=2, test_case="t", step="cancel_job", ok=True),
    ]
    for event in events:
        bus.emit(event)

    assert first.events == events
    assert second.events == events


def test_close_runs_once() -> None:
    sink = CountingSink()
    bus = EventBus(sinks=[sink])

    bus.close()
    bus.close()

    assert sink.closed == 1


def test_file_recorder_writes_json_lines(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "events.jsonl"
    bus = EventBus(sinks=[FileRecorderSink(path)])

    bus.emit(HarnessStateTransitionEvent(ts_ns=1, test_case="t", prev_state=None, next_state="idle"))
    bus.emit(CleanupEvent(ts_ns=2, test_case="t", step="reset_sink", ok=False))
    bus.close()

    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert records == [
        {
            "type": "HarnessStateTransitionEvent",
            "ts_ns": 1,
            "test_case": "t",
            "prev_state": None,
            "next_state": "idle",
        },
        {"type": "CleanupEvent", "ts_ns": 2, "test_case": "t", "step": "reset_sink", "ok": False},
    ]


def test_logging_sink_logs_event_name(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="streamcheck.events")
    sink = LoggingEventSink()

    sink.on_event(CleanupEvent(ts_ns=1, test_case="t", step="cancel_job", ok=True))

    assert caplog.records[0].getMessage() == "CleanupEvent"
    assert caplog.records[0].event.step == "cancel_job"


def test_bus_without_sinks_discards() -> None:
    EventBus().emit(CleanupEvent(ts_ns=1, test_case="t", step="cancel_job", ok=True))


def test_closed_bus_drops_events() -> None:
    sink = CountingSink()
    bus = EventBus(sinks=[sink])
    bus.close()

    bus.emit(CleanupEvent(ts_ns=1, test_case="t", step="cancel_job", ok=True))

    assert bus.closed
    assert sink.events == []


def test_recorder_without_events_creates_no_file(tmp_path: Path) -> None:
    recorder = FileRecorderSink(tmp_path / "events.jsonl")
    recorder.close()

    assert not recorder.path.exists()
