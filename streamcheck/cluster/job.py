from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from streamcheck.core.domain.errors import SubmissionError

if TYPE_CHECKING:
    from streamcheck.core.ports.post_processor import PostProcessor
    from streamcheck.core.ports.record_consumer import RecordConsumer
    from streamcheck.core.ports.source_connector import SourceConnector


@dataclass(frozen=True, slots=True)
class JobDefinition:
    """
    One streaming job topology: source -> transform -> post-process -> sink.

    The sink is attached here, so it is already consuming by the time the
    cluster reports the job as running.
    """

    name: str
    source: SourceConnector
    transform: Callable[[str], list[str]]
    post_processor: PostProcessor
    sink: RecordConsumer
    poll_interval_seconds: float = 0.2

    def validate(self) -> None:
        """Raise SubmissionError for a malformed topology."""
        if not self.name:
            raise SubmissionError("job name must be non-empty")
        if self.poll_interval_seconds <= 0:
            raise SubmissionError("poll_interval_seconds must be positive")
        for attr in ("source", "transform", "post_processor", "sink"):
            if getattr(self, attr) is None:
                raise SubmissionError(f"job {self.name!r} has no {attr}")
