"""N-Triples / N-Quads term handling.

Only the line-oriented subset the harness needs: building terms, parsing a
single statement line, and re-serializing it in one normal form.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

RDF_TYPE = "http://www.w3.org/1999/02/22-rdf-syntax-ns#type"
XSD_STRING = "http://www.w3.org/2001/XMLSchema#string"
XSD_INTEGER = "http://www.w3.org/2001/XMLSchema#integer"
XSD_DOUBLE = "http://www.w3.org/2001/XMLSchema#double"
XSD_BOOLEAN = "http://www.w3.org/2001/XMLSchema#boolean"

_TERM_RE = re.compile(
    r"""
      (?P<iri><[^<>"{}|^`\\\s]*>)
    | (?P<bnode>_:[A-Za-z0-9_][A-Za-z0-9_\-]*)
    | (?P<literal>"(?:[^"\\]|\\.)*"(?:@[A-Za-z]+(?:-[A-Za-z0-9]+)*|\^\^<[^<>"\s]*>)?)
    """,
    re.VERBOSE,
)
_WS_RE = re.compile(r"\s*")
_LITERAL_RE = re.compile(
    r'^"(?P<lexical>(?:[^"\\]|\\.)*)"(?:@(?P<language>[A-Za-z0-9\-]+)|\^\^<(?P<datatype>[^>]*)>)?$'
)

_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}
_UNESCAPES = {"\\": "\\", '"': '"', "n": "\n", "r": "\r", "t": "\t", "'": "'"}


# ---------------------------------------------------------------------------
# Term builders
# ---------------------------------------------------------------------------


def iri(value: str) -> str:
    return f"<{value}>"


def literal(value: str, *, datatype: str | None = None, language: str | None = None) -> str:
    escaped = "".join(_ESCAPES.get(ch, ch) for ch in value)
    if language:
        return f'"{escaped}"@{language}'
    if datatype and datatype != XSD_STRING:
        return f'"{escaped}"^^<{datatype}>'
    return f'"{escaped}"'


def is_iri(term: str) -> bool:
    return term.startswith("<") and term.endswith(">")


def is_blank_node(term: str) -> bool:
    return term.startswith("_:")


def is_literal(term: str) -> bool:
    return term.startswith('"')


def iri_value(term: str) -> str:
    return term[1:-1]


def parse_literal(term: str) -> tuple[str, str | None, str | None]:
    """Split a literal term into (lexical form, datatype, language)."""
    match = _LITERAL_RE.match(term)
    if match is None:
        raise ValueError(f"not a literal term: {term!r}")

    raw = match.group("lexical")
    out: list[str] = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == "\\" and i + 1 < len(raw):
            nxt = raw[i + 1]
            if nxt == "u" and i + 6 <= len(raw):
                out.append(chr(int(raw[i + 2:i + 6], 16)))
                i += 6
                continue
            out.append(_UNESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1

    return "".join(out), match.group("datatype"), match.group("language")


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Statement:
    subject: str
    predicate: str
    object: str
    graph: str | None = None

    def to_line(self) -> str:
        terms = [self.subject, self.predicate, self.object]
        if self.graph is not None:
            terms.append(self.graph)
        return " ".join(terms) + " ."


def parse_statement(line: str) -> Statement | None:
    """Parse one N-Triples / N-Quads line, or return None if it is not one."""
    text = line.strip()
    if not text.endswith("."):
        return None

    body = text[:-1]
    terms: list[str] = []
    pos = 0
    while True:
        pos = _WS_RE.match(body, pos).end()
        if pos >= len(body):
            break
        match = _TERM_RE.match(body, pos)
        if match is None:
            return None
        terms.append(match.group(0))
        pos = match.end()

    if len(terms) not in (3, 4):
        return None

    subject, predicate, obj = terms[0], terms[1], terms[2]
    graph = terms[3] if len(terms) == 4 else None

    if is_literal(subject) or not is_iri(predicate):
        return None
    if graph is not None and is_literal(graph):
        return None

    return Statement(subject, predicate, obj, graph)
