import pytest
from bson import ObjectId
from bson.errors import InvalidBSON
from pymongo.errors import AutoReconnect, DuplicateKeyError

from docgraph.core.exceptions import StoreFailureException
from docgraph.db.repositories.graph_repository import (
    GraphRepository,
    edge_collection_name,
    store_errors,
    vertex_collection_name,
)
from docgraph.models.graph import Vertex
from stub_mongo import StubDatabase


def test_collection_naming_convention():
    assert vertex_collection_name("social") == "social_vertex"
    assert edge_collection_name("social") == "social_edge"


@pytest.mark.asyncio
async def test_store_errors_translates_driver_errors():
    with pytest.raises(StoreFailureException) as exc:
        async with store_errors("insert_vertex"):
            raise DuplicateKeyError("E11000 duplicate key")

    assert "insert_vertex failed" in exc.value.message
    assert not exc.value.transient
    assert isinstance(exc.value.__cause__, DuplicateKeyError)


@pytest.mark.asyncio
async def test_store_errors_marks_reconnects_transient():
    with pytest.raises(StoreFailureException) as exc:
        async with store_errors("find_vertex"):
            raise AutoReconnect("not primary")
    assert exc.value.transient


@pytest.mark.asyncio
async def test_store_errors_translates_decode_failures():
    with pytest.raises(StoreFailureException) as exc:
        async with store_errors("find_edges"):
            raise InvalidBSON("objsize too large")

    assert "find_edges failed to decode" in exc.value.message
    assert not exc.value.transient
    assert isinstance(exc.value.__cause__, InvalidBSON)


@pytest.mark.asyncio
async def test_store_errors_leaves_other_exceptions_alone():
    with pytest.raises(KeyError):
        async with store_errors("find_vertex"):
            raise KeyError("_id")


@pytest.mark.asyncio
async def test_insert_and_find_vertex():
    db = StubDatabase()
    repo = GraphRepository(db, "dev")

    vertex_id = await repo.insert_vertex(Vertex(name="node-1", cat="dev"))

    assert isinstance(vertex_id, ObjectId)
    assert db["dev_vertex"].documents == [{"_id": vertex_id, "name": "node-1", "cat": "dev"}]
    assert await repo.find_vertex(vertex_id) == Vertex(id=vertex_id, name="node-1", cat="dev")
    assert await repo.find_vertex(ObjectId()) is None


@pytest.mark.asyncio
async def test_truncate_reports_counts():
    db = StubDatabase()
    repo = GraphRepository(db, "dev")
    await repo.insert_vertex(Vertex(name="node-1"))
    await repo.insert_vertex(Vertex(name="node-2"))

    assert await repo.truncate() == (2, 0)
