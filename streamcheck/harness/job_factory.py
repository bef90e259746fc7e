from __future__ import annotations

from streamcheck.cluster.job import JobDefinition
from streamcheck.cluster.mapping import TemplateMapping
from streamcheck.core.domain.types import TestCase
from streamcheck.core.ports.post_processor import PostProcessor
from streamcheck.core.ports.record_consumer import RecordConsumer
from streamcheck.core.ports.source_server import SourceServer
from streamcheck.fixtures.loader import FixtureLoader
from streamcheck.servers.factory import connector_for


class MappingJobFactory:
    """Builds the job for a test case from its mapping document.

    The source connector is derived from the live server's endpoint, so the
    factory must be called after the server is set up.
    """

    def __init__(
        self,
        *,
        loader: FixtureLoader,
        post_processor: PostProcessor,
        poll_interval_seconds: float = 0.2,
    ) -> None:
        self._loader = loader
        self._post_processor = post_processor
        self._poll_interval_seconds = poll_interval_seconds

    def __call__(
        self,
        test_case: TestCase,
        server: SourceServer,
        sink: RecordConsumer,
    ) -> JobDefinition:
        mapping = TemplateMapping(self._loader.load_mapping(test_case.folder))
        return JobDefinition(
            name=test_case.name,
            source=connector_for(server),
            transform=mapping,
            post_processor=self._post_processor,
            sink=sink,
            poll_interval_seconds=self._poll_interval_seconds,
        )
