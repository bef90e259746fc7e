"""Template mapping engine.

A small stand-in for the mapping engine under test: it turns JSON input
records into N-Triples according to a ``mapping.json`` document.

JSON example:
    {
      "subject": "http://example.com/person/{id}",
      "classes": ["http://xmlns.com/foaf/0.1/Person"],
      "predicate_objects": [
        {"predicate": "http://xmlns.com/foaf/0.1/name", "reference": "name"},
        {"predicate": "http://example.com/knows", "template": "http://example.com/person/{friend}"}
      ]
    }
"""

from __future__ import annotations

import json
import re
from typing import Any, Literal
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, model_validator

from streamcheck.harness.ntriples import RDF_TYPE, Statement, iri, literal

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")

TermType = Literal["iri", "literal"]


class PredicateObjectMap(BaseModel):
    predicate: str = Field(..., min_length=1)

    reference: str | None = None
    template: str | None = None
    constant: str | None = None

    term_type: TermType | None = None
    datatype: str | None = None
    language: str | None = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_object_source(self) -> PredicateObjectMap:
        """Exactly one of reference / template / constant must be given."""
        sources = [s for s in (self.reference, self.template, self.constant) if s is not None]
        if len(sources) != 1:
            raise ValueError("exactly one of reference, template, constant is required")
        if self.datatype and self.language:
            raise ValueError("datatype and language are mutually exclusive")
        if self.term_type == "iri" and (self.datatype or self.language):
            raise ValueError("datatype/language only apply to literal objects")
        return self

    def resolved_term_type(self) -> TermType:
        if self.term_type is not None:
            return self.term_type
        if self.datatype or self.language or self.reference is not None:
            return "literal"
        if self.template is not None:
            return "iri"
        return "iri" if _looks_like_iri(self.constant or "") else "literal"


class MappingDocument(BaseModel):
    """Structured mapping for one logical source."""

    subject: str = Field(..., min_length=1)
    classes: list[str] = Field(default_factory=list)
    predicate_objects: list[PredicateObjectMap] = Field(default_factory=list)
    graph: str | None = None

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> MappingDocument:
        return cls.model_validate(obj)


def _looks_like_iri(value: str) -> bool:
    return ":" in value and not any(ch.isspace() for ch in value)


def _lookup(record: dict[str, Any], path: str) -> Any:
    current: Any = record
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _expand_template(template: str, record: dict[str, Any], *, iri_safe: bool) -> str | None:
    missing = False

    def substitute(match: re.Match[str]) -> str:
        nonlocal missing
        value = _lookup(record, match.group(1))
        if value is None or isinstance(value, (dict, list)):
            missing = True
            return ""
        text = _as_text(value)
        return quote(text, safe="") if iri_safe else text

    expanded = _PLACEHOLDER_RE.sub(substitute, template)
    return None if missing else expanded


class TemplateMapping:
    """Maps one JSON input record to serialized triples."""

    def __init__(self, document: MappingDocument) -> None:
        self._document = document

    @property
    def document(self) -> MappingDocument:
        return self._document

    def __call__(self, record: str) -> list[str]:
        return self.map_record(record)

    def map_record(self, record: str) -> list[str]:
        """Return N-Triples lines for a record.

        Raises ValueError if the record is not a JSON object or array.
        """
        data = json.loads(record)
        items = data if isinstance(data, list) else [data]

        lines: list[str] = []
        for item in items:
            if not isinstance(item, dict):
                raise ValueError(f"input record must be a JSON object, got {type(item).__name__}")
            lines.extend(st.to_line() for st in self._map_object(item))
        return lines

    def _map_object(self, item: dict[str, Any]) -> list[Statement]:
        doc = self._document

        subject_value = _expand_template(doc.subject, item, iri_safe=True)
        if subject_value is None:
            return []
        subject = iri(subject_value)

        graph: str | None = None
        if doc.graph is not None:
            graph_value = _expand_template(doc.graph, item, iri_safe=True)
            graph = iri(graph_value) if graph_value is not None else None

        statements = [
            Statement(subject, iri(RDF_TYPE), iri(class_iri), graph)
            for class_iri in doc.classes
        ]

        for pom in doc.predicate_objects:
            for obj in self._objects(pom, item):
                statements.append(Statement(subject, iri(pom.predicate), obj, graph))

        return statements

    @staticmethod
    def _objects(pom: PredicateObjectMap, item: dict[str, Any]) -> list[str]:
        term_type = pom.resolved_term_type()

        if pom.constant is not None:
            values = [pom.constant]
        elif pom.template is not None:
            expanded = _expand_template(pom.template, item, iri_safe=term_type == "iri")
            values = [] if expanded is None else [expanded]
        else:
            raw = _lookup(item, pom.reference or "")
            if raw is None:
                values = []
            elif isinstance(raw, list):
                values = [_as_text(v) for v in raw if v is not None and not isinstance(v, dict)]
            elif isinstance(raw, dict):
                values = []
            else:
                values = [_as_text(raw)]

        if term_type == "iri":
            return [iri(v) for v in values]
        return [literal(v, datatype=pom.datatype, language=pom.language) for v in values]
