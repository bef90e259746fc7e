"""Conversion between statements and expanded JSON-LD.

The JSON-LD post-processor groups the triples produced for one input record
by subject; the sanitizer converts such documents back into statements so
they compare equal to N-Triples fixtures.
"""

from __future__ import annotations

from typing import Any, Iterable

from streamcheck.harness.ntriples import (
    RDF_TYPE,
    XSD_BOOLEAN,
    XSD_DOUBLE,
    XSD_INTEGER,
    Statement,
    iri,
    iri_value,
    is_blank_node,
    is_iri,
    literal,
    parse_literal,
)


def _node_ref(term: str) -> str:
    return iri_value(term) if is_iri(term) else term


def _ref_term(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"JSON-LD node reference must be a string, got {value!r}")
    return value if value.startswith("_:") else iri(value)


def _object_value(term: str) -> dict[str, Any]:
    if is_iri(term) or is_blank_node(term):
        return {"@id": _node_ref(term)}

    lexical, datatype, language = parse_literal(term)
    value: dict[str, Any] = {"@value": lexical}
    if language:
        value["@language"] = language
    elif datatype:
        value["@type"] = datatype
    return value


def statements_to_jsonld(statements: Iterable[Statement]) -> list[dict[str, Any]]:
    """Group statements by (graph, subject) into expanded JSON-LD nodes."""
    graphs: dict[str | None, dict[str, dict[str, Any]]] = {}

    for st in statements:
        nodes = graphs.setdefault(st.graph, {})
        node = nodes.setdefault(st.subject, {"@id": _node_ref(st.subject)})

        if st.predicate == iri(RDF_TYPE) and is_iri(st.object):
            node.setdefault("@type", []).append(iri_value(st.object))
            continue

        node.setdefault(iri_value(st.predicate), []).append(_object_value(st.object))

    document: list[dict[str, Any]] = list(graphs.get(None, {}).values())
    for graph, nodes in graphs.items():
        if graph is None:
            continue
        document.append({"@id": _node_ref(graph), "@graph": list(nodes.values())})

    return document


# ---------------------------------------------------------------------------
# Inverse
# ---------------------------------------------------------------------------


class _BlankNodes:
    def __init__(self) -> None:
        self._count = 0

    def next(self) -> str:
        self._count += 1
        return f"_:n{self._count}"


def _literal_from_value(value: Any) -> str:
    if isinstance(value, bool):
        return literal("true" if value else "false", datatype=XSD_BOOLEAN)
    if isinstance(value, int):
        return literal(str(value), datatype=XSD_INTEGER)
    if isinstance(value, float):
        return literal(repr(value), datatype=XSD_DOUBLE)
    if isinstance(value, str):
        return literal(value)
    raise ValueError(f"unsupported JSON-LD value: {value!r}")


def _node_statements(
    node: dict[str, Any],
    graph: str | None,
    blank_nodes: _BlankNodes,
    out: list[Statement],
) -> str:
    node_id = node.get("@id")
    subject = _ref_term(node_id) if isinstance(node_id, str) else blank_nodes.next()

    types = node.get("@type", [])
    if isinstance(types, str):
        types = [types]
    elif not isinstance(types, list):
        raise ValueError(f"@type must be a string or a list, got {types!r}")
    for type_iri in types:
        out.append(Statement(subject, iri(RDF_TYPE), _ref_term(type_iri), graph))

    for key, values in node.items():
        if key.startswith("@"):
            continue
        if not isinstance(values, list):
            values = [values]
        for value in values:
            out.append(Statement(subject, iri(key), _object_term(value, graph, blank_nodes, out), graph))

    return subject


def _object_term(
    value: Any,
    graph: str | None,
    blank_nodes: _BlankNodes,
    out: list[Statement],
) -> str:
    if not isinstance(value, dict):
        return _literal_from_value(value)

    if "@value" in value:
        raw = value["@value"]
        if not isinstance(raw, str):
            return _literal_from_value(raw)
        datatype = value.get("@type")
        language = value.get("@language")
        for qualifier in (datatype, language):
            if qualifier is not None and not isinstance(qualifier, str):
                raise ValueError(f"literal qualifier must be a string, got {qualifier!r}")
        return literal(raw, datatype=datatype, language=language)

    if set(value.keys()) == {"@id"}:
        return _ref_term(value["@id"])

    # Embedded node object.
    return _node_statements(value, graph, blank_nodes, out)


def jsonld_to_statements(document: Any) -> list[Statement]:
    """Flatten an expanded JSON-LD document (list or single object)."""
    items = document if isinstance(document, list) else [document]
    blank_nodes = _BlankNodes()
    out: list[Statement] = []

    for item in items:
        if not isinstance(item, dict):
            raise ValueError(f"JSON-LD node must be an object, got {type(item).__name__}")

        if "@graph" in item:
            graph_id = item.get("@id")
            graph = _ref_term(graph_id) if isinstance(graph_id, str) else None
            nodes = item["@graph"]
            if not isinstance(nodes, list):
                raise ValueError(f"@graph must be a list, got {type(nodes).__name__}")
            for node in nodes:
                if not isinstance(node, dict):
                    raise ValueError("@graph entries must be objects")
                _node_statements(node, graph, blank_nodes, out)
            continue

        _node_statements(item, None, blank_nodes, out)

    return out
