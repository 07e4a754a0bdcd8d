import pytest
from bson import ObjectId
from pydantic import TypeAdapter, ValidationError

from docgraph.models.graph import (
    Bidirectional,
    Edge,
    EdgeCreate,
    FindByVertex,
    Graph,
    PureId,
    Source,
    Target,
    Vertex,
    VertexCreate,
)


def test_vertex_from_dto_has_no_id():
    vertex = Vertex.from_dto(VertexCreate(name="node-1"), "dev")
    assert vertex.id is None
    assert vertex.name == "node-1"
    assert vertex.cat == "dev"


def test_to_document_leaves_id_to_the_store():
    source, target = ObjectId(), ObjectId()
    edge = Edge.from_dto(EdgeCreate(source=source, target=target, weight=2.0))
    assert edge.to_document() == {"source": source, "target": target, "weight": 2.0, "label": None}


def test_to_document_uses_mongo_id_once_assigned():
    vertex_id = ObjectId()
    vertex = Vertex.model_validate({"_id": vertex_id, "name": "node-1"})
    assert vertex.id == vertex_id
    assert vertex.to_document() == {"_id": vertex_id, "name": "node-1", "cat": None}


def test_to_update_never_sets_id():
    vertex = Vertex(id=ObjectId(), name="node-2", cat="dev")
    assert vertex.to_update() == {"$set": {"name": "node-2", "cat": "dev"}}


def test_dto_accepts_hex_string_ids():
    source = ObjectId()
    dto = EdgeCreate(source=str(source), target=str(source), label="self")
    assert dto.source == source
    assert dto.target == source


@pytest.mark.parametrize("bad_id", ["not-an-id", 42, None, "a" * 23])
def test_dto_rejects_malformed_ids(bad_id):
    with pytest.raises(ValidationError):
        EdgeCreate(source=bad_id, target=ObjectId())


def test_pure_id_reads_projection_rows():
    edge_id = ObjectId()
    assert PureId.model_validate({"_id": edge_id}).id == edge_id


def test_graph_json_dump_renders_ids_as_hex():
    edge = Edge(id=ObjectId(), source=ObjectId(), target=ObjectId())
    dumped = Graph(edges=[edge], vertexes=[]).model_dump(mode="json", by_alias=True)
    assert dumped["edges"][0]["_id"] == str(edge.id)
    assert dumped["edges"][0]["source"] == str(edge.source)


@pytest.mark.parametrize(
    "orientation, expected_type",
    [("source", Source), ("target", Target), ("bidirectional", Bidirectional)],
)
def test_find_by_vertex_is_parsed_by_orientation(orientation, expected_type):
    vertex_id = ObjectId()
    request = TypeAdapter(FindByVertex).validate_python(
        {"orientation": orientation, "vertex_id": str(vertex_id)}
    )
    assert isinstance(request, expected_type)
    assert request.vertex_id == vertex_id


def test_find_by_vertex_rejects_unknown_orientation():
    with pytest.raises(ValidationError):
        TypeAdapter(FindByVertex).validate_python({"orientation": "sideways", "vertex_id": str(ObjectId())})


def test_find_by_vertex_requests_are_immutable():
    request = Source(vertex_id=ObjectId())
    with pytest.raises(ValidationError):
        request.vertex_id = ObjectId()
