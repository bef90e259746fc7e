"""Canonicalization of output records for set comparison.

sanitize() is total and deterministic: every input string maps to zero or
more canonical lines, and formatting-insignificant differences (whitespace,
record batching, JSON-LD vs N-Triples, blank node labels) disappear.
"""

from __future__ import annotations

import json
import re
from typing import Iterable

from streamcheck.harness.jsonld import jsonld_to_statements
from streamcheck.harness.ntriples import Statement, is_blank_node, parse_statement

CANONICAL_BLANK_NODE = "_:b"

_WHITESPACE_RE = re.compile(r"\s+")


def _canonical_term(term: str) -> str:
    return CANONICAL_BLANK_NODE if is_blank_node(term) else term


def _canonical_statement(st: Statement) -> str:
    return Statement(
        _canonical_term(st.subject),
        st.predicate,
        _canonical_term(st.object),
        _canonical_term(st.graph) if st.graph is not None else None,
    ).to_line()


def _jsonld_lines(text: str) -> list[str] | None:
    try:
        document = json.loads(text)
        statements = jsonld_to_statements(document)
    except (ValueError, RecursionError):
        # json.JSONDecodeError is a ValueError
        return None
    return [_canonical_statement(st) for st in statements]


def sanitize_line(line: str) -> str | None:
    """Canonical form of one line, or None if it carries no content."""
    text = line.strip()
    if not text or text.startswith("#"):
        return None

    statement = parse_statement(text)
    if statement is not None:
        return _canonical_statement(statement)

    return _WHITESPACE_RE.sub(" ", text)


def sanitize(records: Iterable[str]) -> set[str]:
    """Canonicalize records into a comparable set of lines."""
    out: set[str] = set()

    for record in records:
        text = record.strip()
        if not text:
            continue

        if text[0] in "{[":
            lines = _jsonld_lines(text)
            if lines is not None:
                out.update(lines)
                continue

        for line in text.splitlines():
            canonical = sanitize_line(line)
            if canonical is not None:
                out.add(canonical)

    return out
