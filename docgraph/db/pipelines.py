# docgraph/db/pipelines.py
# Aggregation programs run against a category's vertex collection.
# Every builder returns plain stage documents so they can be inspected without a store.
from typing import Any, assert_never
from bson import ObjectId
from docgraph.models.graph import Bidirectional, FindByVertex, Source, Target

Stage = dict[str, Any]

def match_id(vertex_id: ObjectId) -> Stage:
    return {"$match": {"_id": vertex_id}}

def lookup(edge_collection: str, foreign_field: str) -> Stage:
    return {"$lookup": {
        "from": edge_collection,
        "localField": "_id",
        "foreignField": foreign_field,
        "as": "edges",
    }}

def lookup_either_end(edge_collection: str, vertex_id: ObjectId) -> Stage:
    return {"$lookup": {
        "from": edge_collection,
        "pipeline": [
            {"$match": {"$or": [{"source": vertex_id}, {"target": vertex_id}]}},
        ],
        "as": "edges",
    }}

def unwind_edges() -> list[Stage]:
    # one bare edge document per row
    return [{"$unwind": "$edges"}, {"$replaceRoot": {"newRoot": "$edges"}}]

def project_id() -> Stage:
    return {"$project": {"_id": 1}}

def edges_by_vertex_pipeline(request: FindByVertex, edge_collection: str) -> list[Stage]:
    match request:
        case Source(vertex_id=vertex_id):
            join = lookup(edge_collection, "source")
        case Target(vertex_id=vertex_id):
            join = lookup(edge_collection, "target")
        case Bidirectional(vertex_id=vertex_id):
            join = lookup_either_end(edge_collection, vertex_id)
        case _:
            assert_never(request)

    return [match_id(vertex_id), join, *unwind_edges()]

def edge_ids_by_vertex_pipeline(vertex_id: ObjectId, edge_collection: str) -> list[Stage]:
    """Ids of every edge touching the vertex, used by the cascading delete."""
    pipeline = edges_by_vertex_pipeline(Bidirectional(vertex_id=vertex_id), edge_collection)
    pipeline.append(project_id())
    return pipeline

def traversal_pipeline(
    vertex_id: ObjectId,
    edge_collection: str,
    label: str | None = None,
    depth: int | None = None,
) -> list[Stage]:
    """
    Walks forward along directed edges (target -> source) starting at the vertex.
    `depth` is passed through as the `$graphLookup` maxDepth: depth=0 returns only the
    vertex's own out-edges and every further level adds one hop. No depth walks the
    whole reachable set.
    """
    graph_lookup: Stage = {
        "from": edge_collection,
        "startWith": "$_id",
        "connectFromField": "target",
        "connectToField": "source",
        "as": "edges",
    }
    if depth is not None:
        graph_lookup["maxDepth"] = depth
    if label is not None:
        graph_lookup["restrictSearchWithMatch"] = {"label": label}

    return [
        match_id(vertex_id),
        {"$graphLookup": graph_lookup},
        *unwind_edges(),
    ]
