"""
Quiet-period sink.

A bounded test input fed through a streaming job has no end-of-stream marker,
so the sink treats a period of silence as "all output has arrived". Records
are appended from the job's thread; the orchestrator only reads the
completion future and the snapshot it resolves to.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from typing import Callable, Protocol

from streamcheck.core.domain.types import CapturedRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_IDLE_SECONDS = 10.0


class IdleTimer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], IdleTimer]


def daemon_timer(interval: float, function: Callable[[], None]) -> IdleTimer:
    """Default timer factory: a daemon ``threading.Timer``."""
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class QuietPeriodSink:
    """Accumulates output records and completes once the stream goes idle.

    Invariants:
    - The completion future of an epoch fires at most once, either on idle
      expiry or on force_complete() / reset().
    - A timer callback from an earlier arm or an earlier epoch is ignored.
    - At most one timer is outstanding. Records only move the idle deadline;
      an expiring timer re-arms itself for whatever is left of it.
    - All state is guarded by one lock; futures are resolved outside it.
    """

    def __init__(
        self,
        *,
        idle_seconds: float = DEFAULT_IDLE_SECONDS,
        timer_factory: TimerFactory = daemon_timer,
        clock_ns: Callable[[], int] = time.monotonic_ns,
    ) -> None:
        if idle_seconds <= 0:
            raise ValueError("idle_seconds must be positive")

        self._idle_seconds = idle_seconds
        self._timer_factory = timer_factory
        self._clock_ns = clock_ns

        self._lock = threading.Lock()
        self._records: list[CapturedRecord] = []
        self._epoch = 0
        self._future: Future[list[str]] = Future()
        self._fired = False

        self._timer: IdleTimer | None = None
        self._timer_generation = 0
        self._armed = False
        self._last_activity_ns = 0

    # ------------------------------------------------------------------
    # Producer side (job thread)
    # ------------------------------------------------------------------

    def on_record(self, record: str) -> None:
        """Append a record and push the idle deadline back by a full period."""
        if not record or not record.strip():
            return

        with self._lock:
            now_ns = self._clock_ns()
            self._records.append(CapturedRecord(record, now_ns))
            self._last_activity_ns = now_ns
            if self._armed and not self._fired and self._timer is None:
                self._arm_locked(self._idle_seconds)

    # ------------------------------------------------------------------
    # Consumer side (orchestrator)
    # ------------------------------------------------------------------

    @property
    def epoch(self) -> int:
        with self._lock:
            return self._epoch

    @property
    def idle_seconds(self) -> float:
        return self._idle_seconds

    def start_countdown(self, idle_seconds: float | None = None) -> None:
        """(Re)arm the idle timer.

        Must be called once the job is running and before input is written;
        until then records accumulate but completion can never fire.
        """
        with self._lock:
            if idle_seconds is not None:
                if idle_seconds <= 0:
                    raise ValueError("idle_seconds must be positive")
                self._idle_seconds = idle_seconds
            if self._fired:
                return
            self._armed = True
            self._last_activity_ns = self._clock_ns()
            self._arm_locked(self._idle_seconds)
            epoch = self._epoch

        LOGGER.debug(
            "Sink countdown armed",
            extra={"idle_seconds": self._idle_seconds, "epoch": epoch},
        )

    def completion_future(self) -> Future[list[str]]:
        """Future of the current epoch, resolving to the accumulated records."""
        with self._lock:
            return self._future

    def snapshot(self) -> list[str]:
        """Consistent copy of the records accumulated so far."""
        with self._lock:
            return [r.payload for r in self._records]

    def force_complete(self) -> bool:
        """Fire the current epoch's completion now.

        Returns False if it had already fired.
        """
        with self._lock:
            self._cancel_timer_locked()
            fired = self._fire_locked()
        if fired is None:
            return False
        future, snapshot = fired
        future.set_result(snapshot)
        return True

    def reset(self) -> None:
        """Start a new epoch with an empty accumulation list.

        A still-pending future of the old epoch is resolved with the old
        snapshot so no waiter is left hanging.
        """
        with self._lock:
            self._cancel_timer_locked()
            fired = self._fire_locked()

            self._records = []
            self._epoch += 1
            self._future = Future()
            self._fired = False
            epoch = self._epoch

        if fired is not None:
            future, snapshot = fired
            future.set_result(snapshot)

        LOGGER.debug("Sink reset", extra={"epoch": epoch})

    # ------------------------------------------------------------------
    # Internals (lock held)
    # ------------------------------------------------------------------

    def _arm_locked(self, duration: float) -> None:
        self._cancel_timer_locked()
        self._timer_generation += 1

        epoch = self._epoch
        generation = self._timer_generation
        timer = self._timer_factory(duration, lambda: self._on_idle(epoch, generation))
        self._timer = timer
        timer.start()

    def _cancel_timer_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        # Invalidate callbacks already past cancel().
        self._timer_generation += 1

    def _fire_locked(self) -> tuple[Future[list[str]], list[str]] | None:
        if self._fired:
            return None
        self._fired = True
        self._armed = False
        return self._future, [r.payload for r in self._records]

    def _on_idle(self, epoch: int, generation: int) -> None:
        with self._lock:
            if epoch != self._epoch or generation != self._timer_generation:
                return
            self._timer = None
            remaining_ns = (
                self._last_activity_ns + int(self._idle_seconds * 1e9) - self._clock_ns()
            )
            if remaining_ns > 0:
                self._arm_locked(remaining_ns / 1e9)
                return
            fired = self._fire_locked()
            count = len(self._records)

        if fired is None:
            return

        LOGGER.info(
            "Sink quiet period elapsed",
            extra={"epoch": epoch, "records": count, "idle_seconds": self._idle_seconds},
        )
        future, snapshot = fired
        future.set_result(snapshot)
