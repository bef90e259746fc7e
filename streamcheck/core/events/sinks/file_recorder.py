"""
JSON-lines event recorder.

One line per event, tagged with the event class name, so a run can be
replayed or inspected after the process exited:

    {"type": "CleanupEvent", "ts_ns": ..., "test_case": "...", "step": "cancel_job", "ok": true}
"""
from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import IO, Any


def event_to_record(event: Any) -> dict[str, Any]:
    if is_dataclass(event) and not isinstance(event, type):
        return {"type": type(event).__name__, **asdict(event)}
    return {"type": type(event).__name__, "event": str(event)}


class FileRecorderSink:
    """Appends events to a file, creating parent directories on first write."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._fh: IO[str] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def on_event(self, event: Any) -> None:
        if self._fh is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self._path.open("a", encoding="utf-8")
        self._fh.write(json.dumps(event_to_record(event), default=str) + "\n")
        self._fh.flush()

    def close(self) -> None:
        if self._fh is None:
            return
        self._fh.close()
        self._fh = None
