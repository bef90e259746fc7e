"""Output post-processors.

Each processor receives the serialized triples generated for one input
record and returns the records handed to the job's sink.
"""

from __future__ import annotations

import json
import logging
from typing import Sequence

from streamcheck.core.ports.post_processor import PostProcessor
from streamcheck.harness.jsonld import statements_to_jsonld
from streamcheck.harness.ntriples import parse_statement

LOGGER = logging.getLogger(__name__)


class NopPostProcessor:
    """Emits every triple as its own record."""

    def process(self, records: Sequence[str]) -> list[str]:
        return list(records)


class BulkPostProcessor:
    """Emits all triples of one input record as a single newline-joined record."""

    def process(self, records: Sequence[str]) -> list[str]:
        if not records:
            return []
        return ["\n".join(records)]


class JsonLDPostProcessor:
    """Emits all triples of one input record as one expanded JSON-LD document."""

    def process(self, records: Sequence[str]) -> list[str]:
        statements = []
        for record in records:
            statement = parse_statement(record)
            if statement is None:
                LOGGER.warning("Dropping non N-Triples record", extra={"record": record})
                continue
            statements.append(statement)

        if not statements:
            return []
        return [json.dumps(statements_to_jsonld(statements), sort_keys=True)]


POST_PROCESSORS: dict[str, type[PostProcessor]] = {
    "none": NopPostProcessor,
    "bulk": BulkPostProcessor,
    "json-ld": JsonLDPostProcessor,
}


def pick_post_processor(name: str) -> PostProcessor:
    """Return a post-processor for a configuration name."""
    try:
        return POST_PROCESSORS[name]()
    except KeyError as exc:
        raise ValueError(
            f"Unknown post-processor {name!r} (expected one of {sorted(POST_PROCESSORS)})"
        ) from exc
