# docgraph/services/graph_service.py
import asyncio
import logging
import re
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from docgraph.models.graph import Edge, EdgeCreate, FindByVertex, Graph, Vertex, VertexCreate
from docgraph.db.repositories.graph_repository import GraphRepository
from docgraph.db.pipelines import edge_ids_by_vertex_pipeline, edges_by_vertex_pipeline, traversal_pipeline
from docgraph.core.exceptions import (
    ConsistencyAnomalyException,
    EdgeNotFoundException,
    InvalidArgumentException,
    StoreFailureException,
    VertexNotFoundException,
)

logger = logging.getLogger(__name__)

_CATEGORY_RE = re.compile(r"^[A-Za-z0-9_-]+$")

class GraphService:
    """
    Graph operations for one category, backed by the `{cat}_vertex` and `{cat}_edge` collections.

    Holds no graph state of its own, so one instance can be shared by concurrent tasks.
    """
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        category: str,
        transactional: bool = True,
        retries: int = 3,
        retry_delay: float = 0.5,
    ):
        if not isinstance(category, str) or not _CATEGORY_RE.match(category):
            raise InvalidArgumentException(f"Invalid graph category {category!r}.")
        self.category = category
        self.repo = GraphRepository(db, category)
        self.transactional = transactional
        self.retries = retries
        self.retry_delay = retry_delay

    async def truncate(self) -> None:
        """Deletes every vertex and edge in the category."""
        vertexes, edges = await self.repo.truncate()
        logger.info("Truncated category '%s': %d vertexes, %d edges.", self.category, vertexes, edges)

    async def ensure_indexes(self) -> None:
        await self.repo.ensure_indexes()

    # --- Vertex ---
    async def create_vertex(self, dto: VertexCreate) -> Vertex:
        vertex_id = await self.repo.insert_vertex(Vertex.from_dto(dto, self.category))
        created = await self.repo.find_vertex(vertex_id)
        if created is None:
            logger.error("Vertex %s was inserted into '%s' but could not be read back.", vertex_id, self.category)
            raise ConsistencyAnomalyException(f"Vertex {vertex_id} not found after insert.")
        return created

    async def get_vertex(self, vertex_id: ObjectId) -> Vertex:
        vertex = await self._with_retry(self.repo.find_vertex, vertex_id)
        if vertex is None:
            raise VertexNotFoundException(f"Vertex {vertex_id} not found.")
        return vertex

    async def get_vertexes(self, vertex_ids: list[ObjectId]) -> list[Vertex]:
        if not vertex_ids:
            return []
        return await self._with_retry(self.repo.find_vertexes, {"_id": {"$in": list(vertex_ids)}})

    async def get_all_vertexes(self) -> list[Vertex]:
        return await self._with_retry(self.repo.find_vertexes)

    async def update_vertex(self, vertex_id: ObjectId, dto: VertexCreate) -> Vertex:
        updated = await self.repo.update_vertex(vertex_id, Vertex.from_dto(dto, self.category))
        if updated is None:
            raise VertexNotFoundException(f"Vertex {vertex_id} not found.")
        return updated

    async def delete_vertex(self, vertex_id: ObjectId) -> None:
        """Deletes the vertex together with every edge that references it."""
        edge_ids = await self._with_retry(
            self.repo.aggregate_ids, edge_ids_by_vertex_pipeline(vertex_id, self.repo.edge_collection)
        )

        if self.transactional:
            await self.repo.delete_vertex_with_edges(vertex_id, edge_ids)
        else:
            # no rollback: edges deleted here stay deleted if the vertex delete fails
            if edge_ids:
                await self.delete_edges(edge_ids)
            if await self.repo.delete_vertex(vertex_id) == 0:
                raise VertexNotFoundException(f"Vertex {vertex_id} not found.")

        logger.info("Deleted vertex %s and %d related edges from '%s'.", vertex_id, len(edge_ids), self.category)

    # --- Edge ---
    async def check_edge_legitimacy(self, dto: EdgeCreate) -> None:
        """Both endpoints must exist in this category before an edge may point at them."""
        source = await self.get_vertex(dto.source)
        target = source if dto.target == dto.source else await self.get_vertex(dto.target)
        if source.cat != target.cat:
            raise InvalidArgumentException(
                f"Cross-category edge: source is in '{source.cat}', target is in '{target.cat}'."
            )

    async def create_edge(self, dto: EdgeCreate) -> Edge:
        await self.check_edge_legitimacy(dto)

        edge_id = await self.repo.insert_edge(Edge.from_dto(dto))
        created = await self.repo.find_edge(edge_id)
        if created is None:
            logger.error("Edge %s was inserted into '%s' but could not be read back.", edge_id, self.category)
            raise ConsistencyAnomalyException(f"Edge {edge_id} not found after insert.")
        return created

    async def get_edge(self, edge_id: ObjectId) -> Edge:
        edge = await self._with_retry(self.repo.find_edge, edge_id)
        if edge is None:
            raise EdgeNotFoundException(f"Edge {edge_id} not found.")
        return edge

    async def get_edges(self, edge_ids: list[ObjectId]) -> list[Edge]:
        if not edge_ids:
            return []
        return await self._with_retry(self.repo.find_edges, {"_id": {"$in": list(edge_ids)}})

    async def get_all_edges(self) -> list[Edge]:
        return await self._with_retry(self.repo.find_edges)

    async def update_edge(self, edge_id: ObjectId, dto: EdgeCreate) -> Edge:
        await self.check_edge_legitimacy(dto)

        updated = await self.repo.update_edge(edge_id, Edge.from_dto(dto))
        if updated is None:
            raise EdgeNotFoundException(f"Edge {edge_id} not found.")
        return updated

    async def delete_edge(self, edge_id: ObjectId) -> None:
        if await self.repo.delete_edge(edge_id) == 0:
            raise EdgeNotFoundException(f"Edge {edge_id} not found.")

    async def delete_edges(self, edge_ids: list[ObjectId]) -> None:
        # An empty request has nothing to delete and is not an error.
        if not edge_ids:
            return
        if await self.repo.delete_edges(list(edge_ids)) == 0:
            raise EdgeNotFoundException("None of the given edges were found.")

    # --- Traversal ---
    async def get_edges_by_vertex(self, request: FindByVertex) -> list[Edge]:
        pipeline = edges_by_vertex_pipeline(request, self.repo.edge_collection)
        return await self._with_retry(self.repo.aggregate_edges, pipeline)

    async def get_edges_from_vertex_by_label(
        self,
        vertex_id: ObjectId,
        label: str | None = None,
        depth: int | None = None,
    ) -> list[Edge]:
        """depth=0 follows only the vertex's own out-edges, depth=n follows n further levels."""
        if depth is not None and depth < 0:
            raise InvalidArgumentException(f"Traversal depth must not be negative, got {depth}.")
        pipeline = traversal_pipeline(vertex_id, self.repo.edge_collection, label=label, depth=depth)
        return await self._with_retry(self.repo.aggregate_edges, pipeline)

    async def get_graph_from_vertex_by_label(
        self,
        vertex_id: ObjectId,
        label: str | None = None,
        depth: int | None = None,
    ) -> Graph:
        """
        Edges reachable from the vertex plus the vertexes they point at.
        Only edge targets are resolved: the start vertex and vertexes that are
        never a target are not part of `vertexes`.
        """
        edges = await self.get_edges_from_vertex_by_label(vertex_id, label, depth)
        target_ids = list(dict.fromkeys(edge.target for edge in edges))
        vertexes = await self.get_vertexes(target_ids)
        return Graph(edges=edges, vertexes=vertexes)

    async def _with_retry(self, func, *args, **kwargs):
        attempts = max(self.retries, 1)
        for attempt in range(attempts):
            try:
                return await func(*args, **kwargs)
            except StoreFailureException as exc:
                if not exc.transient or attempt + 1 >= attempts:
                    raise
                logger.warning("Transient store failure (%s), retrying (%d/%d).", exc.message, attempt + 1, attempts)
                await asyncio.sleep(self.retry_delay * (attempt + 1))
