# docgraph/db/repositories/graph_repository.py
import logging
from contextlib import asynccontextmanager
from bson import ObjectId
from bson.errors import BSONError
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import AutoReconnect, PyMongoError
from pymongo.read_concern import ReadConcern
from pymongo.write_concern import WriteConcern
from pydantic import ValidationError
from docgraph.models.graph import Edge, PureId, Vertex
from docgraph.core.exceptions import EdgeNotFoundException, StoreFailureException, VertexNotFoundException
from docgraph.db.pipelines import Stage

logger = logging.getLogger(__name__)

def vertex_collection_name(category: str) -> str:
    return f"{category}_vertex"

def edge_collection_name(category: str) -> str:
    return f"{category}_edge"

def _is_transient(exc: PyMongoError) -> bool:
    return isinstance(exc, AutoReconnect) or exc.has_error_label("TransientTransactionError")

@asynccontextmanager
async def store_errors(operation: str):
    """Re-raises driver errors and undecodable documents as StoreFailureException."""
    try:
        yield
    except PyMongoError as exc:
        raise StoreFailureException(f"{operation} failed: {exc}", transient=_is_transient(exc)) from exc
    except (BSONError, ValidationError) as exc:
        logger.error("%s returned a document that could not be decoded: %s", operation, exc)
        raise StoreFailureException(f"{operation} failed to decode a document: {exc}", transient=False) from exc

class GraphRepository:
    def __init__(self, db: AsyncIOMotorDatabase, category: str):
        self.db = db
        self.category = category
        self.vertex_collection = vertex_collection_name(category)
        self.edge_collection = edge_collection_name(category)

    @property
    def vertexes(self) -> AsyncIOMotorCollection:
        return self.db[self.vertex_collection]

    @property
    def edges(self) -> AsyncIOMotorCollection:
        return self.db[self.edge_collection]

    async def truncate(self) -> tuple[int, int]:
        """
        Removes every vertex and edge of the category.
        Returns (vertexes deleted, edges deleted).
        """
        async with store_errors("truncate"):
            vertex_result = await self.vertexes.delete_many({})
            edge_result = await self.edges.delete_many({})
        return vertex_result.deleted_count, edge_result.deleted_count

    async def ensure_indexes(self) -> None:
        async with store_errors("ensure_indexes"):
            await self.edges.create_index([("source", ASCENDING)])
            await self.edges.create_index([("target", ASCENDING)])
            await self.edges.create_index([("label", ASCENDING)])

    # --- Vertex ---
    async def insert_vertex(self, vertex: Vertex) -> ObjectId:
        async with store_errors("insert_vertex"):
            result = await self.vertexes.insert_one(vertex.to_document())
        return result.inserted_id

    async def find_vertex(self, vertex_id: ObjectId) -> Vertex | None:
        async with store_errors("find_vertex"):
            document = await self.vertexes.find_one({"_id": vertex_id})
            return Vertex.model_validate(document) if document else None

    async def find_vertexes(self, filter_: dict | None = None) -> list[Vertex]:
        async with store_errors("find_vertexes"):
            cursor = self.vertexes.find(filter_ or {})
            return [Vertex.model_validate(document) async for document in cursor]

    async def update_vertex(self, vertex_id: ObjectId, vertex: Vertex) -> Vertex | None:
        async with store_errors("update_vertex"):
            document = await self.vertexes.find_one_and_update(
                {"_id": vertex_id},
                vertex.to_update(),
                return_document=ReturnDocument.AFTER,
            )
            return Vertex.model_validate(document) if document else None

    async def delete_vertex(self, vertex_id: ObjectId) -> int:
        async with store_errors("delete_vertex"):
            result = await self.vertexes.delete_one({"_id": vertex_id})
        return result.deleted_count

    # --- Edge ---
    async def insert_edge(self, edge: Edge) -> ObjectId:
        async with store_errors("insert_edge"):
            result = await self.edges.insert_one(edge.to_document())
        return result.inserted_id

    async def find_edge(self, edge_id: ObjectId) -> Edge | None:
        async with store_errors("find_edge"):
            document = await self.edges.find_one({"_id": edge_id})
            return Edge.model_validate(document) if document else None

    async def find_edges(self, filter_: dict | None = None) -> list[Edge]:
        async with store_errors("find_edges"):
            cursor = self.edges.find(filter_ or {})
            return [Edge.model_validate(document) async for document in cursor]

    async def update_edge(self, edge_id: ObjectId, edge: Edge) -> Edge | None:
        async with store_errors("update_edge"):
            document = await self.edges.find_one_and_update(
                {"_id": edge_id},
                edge.to_update(),
                return_document=ReturnDocument.AFTER,
            )
            return Edge.model_validate(document) if document else None

    async def delete_edge(self, edge_id: ObjectId) -> int:
        async with store_errors("delete_edge"):
            result = await self.edges.delete_one({"_id": edge_id})
        return result.deleted_count

    async def delete_edges(self, edge_ids: list[ObjectId]) -> int:
        async with store_errors("delete_edges"):
            result = await self.edges.delete_many({"_id": {"$in": edge_ids}})
        return result.deleted_count

    # --- Pipelines ---
    async def aggregate_edges(self, pipeline: list[Stage]) -> list[Edge]:
        """Runs a pipeline on the vertex collection whose rows are edge documents."""
        logger.debug("Aggregating on %s: %s", self.vertex_collection, pipeline)
        async with store_errors("aggregate_edges"):
            cursor = self.vertexes.aggregate(pipeline)
            return [Edge.model_validate(document) async for document in cursor]

    async def aggregate_ids(self, pipeline: list[Stage]) -> list[ObjectId]:
        logger.debug("Aggregating ids on %s: %s", self.vertex_collection, pipeline)
        async with store_errors("aggregate_ids"):
            cursor = self.vertexes.aggregate(pipeline)
            return [PureId.model_validate(document).id async for document in cursor]

    # --- Cascading delete ---
    async def delete_vertex_with_edges(self, vertex_id: ObjectId, edge_ids: list[ObjectId]) -> None:
        """
        Deletes the edges and then the vertex inside one multi-document transaction.
        Any failure aborts the transaction before the error reaches the caller,
        so the vertex and its edges are removed together or not at all.
        """
        async with store_errors("delete_vertex_with_edges"):
            async with await self.db.client.start_session() as session:
                session.start_transaction(
                    read_concern=ReadConcern("local"),
                    write_concern=WriteConcern("majority"),
                )
                try:
                    await self._delete_vertex_with_edges(session, vertex_id, edge_ids)
                except Exception:
                    logger.error("Aborting cascading delete of vertex %s.", vertex_id)
                    await session.abort_transaction()
                    raise
                await session.commit_transaction()

    async def _delete_vertex_with_edges(self, session, vertex_id: ObjectId, edge_ids: list[ObjectId]) -> None:
        if edge_ids:
            result = await self.edges.delete_many({"_id": {"$in": edge_ids}}, session=session)
            if result.deleted_count == 0:
                raise EdgeNotFoundException(f"None of the edges of vertex {vertex_id} could be deleted.")

        result = await self.vertexes.delete_one({"_id": vertex_id}, session=session)
        if result.deleted_count == 0:
            raise VertexNotFoundException(f"Vertex {vertex_id} not found.")
