"""
Semantic test: template mapping of JSON records.

Invariant:
Each JSON object maps to the typed statements its mapping document
describes. Objects without a subject value produce nothing, list values
fan out into one statement per element, template values are IRI-encoded,
and a record that is not JSON is rejected with ValueError.
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from streamcheck.cluster.mapping import MappingDocument, PredicateObjectMap, TemplateMapping

FOAF_NAME = "http://xmlns.com/foaf/0.1/name"


def _mapping(**overrides) -> TemplateMapping:
    doc = {
        "subject": "http://ex.com/person/{id}",
        "classes": ["http://xmlns.com/foaf/0.1/Person"],
        "predicate_objects": [
            {"predicate": FOAF_NAME, "reference": "name"},
        ],
    }
    doc.update(overrides)
    return TemplateMapping(MappingDocument.from_json_obj(doc))


def test_object_maps_to_typed_statements() -> None:
    lines = _mapping().map_record(json.dumps({"id": "1", "name": "Ada"}))

    assert lines == [
        "<http://ex.com/person/1> <http://www.w3.org/1999/02/22-rdf-syntax-ns#type> "
        "<http://xmlns.com/foaf/0.1/Person> .",
        f'<http://ex.com/person/1> <{FOAF_NAME}> "Ada" .',
    ]


def test_missing_subject_value_yields_nothing() -> None:
    assert _mapping().map_record('{"name": "Nobody"}') == []


def test_missing_reference_skips_only_that_statement() -> None:
    lines = _mapping().map_record('{"id": "1"}')

    assert len(lines) == 1
    assert "rdf-syntax-ns#type" in lines[0]


def test_template_values_are_iri_encoded() -> None:
    mapping = _mapping(
        predicate_objects=[
            {"predicate": "http://ex.com/home", "template": "http://ex.com/home/{name}"},
        ]
    )

    lines = mapping.map_record('{"id": "1", "name": "Fernando Alonso"}')

    assert lines[-1] == "<http://ex.com/person/1> <http://ex.com/home> <http://ex.com/home/Fernando%20Alonso> ."


def test_list_reference_fans_out() -> None:
    mapping = _mapping(
        predicate_objects=[{"predicate": "http://ex.com/tag", "reference": "tags"}],
        classes=[],
    )

    lines = mapping.map_record('{"id": "1", "tags": ["a", "b"]}')

    assert lines == [
        '<http://ex.com/person/1> <http://ex.com/tag> "a" .',
        '<http://ex.com/person/1> <http://ex.com/tag> "b" .',
    ]


def test_datatype_language_and_constant_objects() -> None:
    mapping = _mapping(
        classes=[],
        predicate_objects=[
            {
                "predicate": "http://ex.com/age",
                "reference": "age",
                "datatype": "http://www.w3.org/2001/XMLSchema#integer",
            },
            {"predicate": "http://ex.com/motto", "reference": "motto", "language": "en"},
            {"predicate": "http://ex.com/kind", "constant": "http://ex.com/Human"},
            {"predicate": "http://ex.com/note", "constant": "plain text"},
        ],
    )

    lines = mapping.map_record('{"id": 7, "age": 36, "motto": "Say \\"hi\\""}')

    assert lines == [
        '<http://ex.com/person/7> <http://ex.com/age> "36"^^<http://www.w3.org/2001/XMLSchema#integer> .',
        '<http://ex.com/person/7> <http://ex.com/motto> "Say \\"hi\\""@en .',
        "<http://ex.com/person/7> <http://ex.com/kind> <http://ex.com/Human> .",
        '<http://ex.com/person/7> <http://ex.com/note> "plain text" .',
    ]


def test_graph_template_produces_quads() -> None:
    mapping = _mapping(classes=[], graph="http://ex.com/graph/{team}")

    lines = mapping.map_record('{"id": "1", "name": "Ada", "team": "red"}')

    assert lines == [f'<http://ex.com/person/1> <{FOAF_NAME}> "Ada" <http://ex.com/graph/red> .']


def test_array_record_maps_each_element() -> None:
    lines = _mapping(classes=[]).map_record('[{"id": "1", "name": "A"}, {"id": "2", "name": "B"}]')

    assert len(lines) == 2


@pytest.mark.parametrize("record", ["not json", '"a string"', "[1, 2]"])
def test_non_object_records_are_rejected(record: str) -> None:
    with pytest.raises(ValueError):
        _mapping().map_record(record)


def test_predicate_object_needs_exactly_one_source() -> None:
    with pytest.raises(ValidationError):
        PredicateObjectMap(predicate="http://ex.com/p")
    with pytest.raises(ValidationError):
        PredicateObjectMap(predicate="http://ex.com/p", reference="a", constant="b")
    with pytest.raises(ValidationError):
        PredicateObjectMap(predicate="http://ex.com/p", reference="a", datatype="x", language="en")


def test_unknown_mapping_keys_are_rejected() -> None:
    with pytest.raises(ValidationError):
        MappingDocument.from_json_obj({"subject": "http://ex.com/{id}", "sources": []})
