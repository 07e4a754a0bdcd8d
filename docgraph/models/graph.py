# docgraph/models/graph.py
from typing import Annotated, Any, Literal
from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

def _to_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError(f"{value!r} is not a valid ObjectId")

# Accepts an ObjectId or its hex string; dumps as hex in JSON mode only.
ObjectIdField = Annotated[
    ObjectId,
    BeforeValidator(_to_object_id),
    PlainSerializer(str, return_type=str, when_used="json"),
]

class _Document(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    id: ObjectIdField | None = Field(default=None, alias="_id")

    def to_document(self) -> dict[str, Any]:
        """Document shape expected by the store; `_id` is left to the store until assigned."""
        document = self.model_dump(by_alias=True)
        if document.get("_id") is None:
            document.pop("_id", None)
        return document

    def to_update(self) -> dict[str, Any]:
        return {"$set": self.model_dump(by_alias=True, exclude={"id"})}

class PureId(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    id: ObjectIdField = Field(alias="_id")

# --- Transfer objects ---
class VertexCreate(BaseModel):
    name: str

class EdgeCreate(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    source: ObjectIdField
    target: ObjectIdField
    weight: float | None = None
    label: str | None = None

# --- Persisted entities ---
class Vertex(_Document):
    name: str
    cat: str | None = None

    @classmethod
    def from_dto(cls, dto: VertexCreate, cat: str | None = None) -> "Vertex":
        return cls(name=dto.name, cat=cat)

class Edge(_Document):
    source: ObjectIdField
    target: ObjectIdField
    weight: float | None = None
    label: str | None = None

    @classmethod
    def from_dto(cls, dto: EdgeCreate) -> "Edge":
        return cls(source=dto.source, target=dto.target, weight=dto.weight, label=dto.label)

class Graph(BaseModel):
    edges: list[Edge]
    vertexes: list[Vertex]

# --- Traversal orientation relative to a single vertex ---
class _VertexRequest(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    vertex_id: ObjectIdField

class Source(_VertexRequest):
    """Edges whose `source` is the vertex."""
    orientation: Literal["source"] = "source"

class Target(_VertexRequest):
    """Edges whose `target` is the vertex."""
    orientation: Literal["target"] = "target"

class Bidirectional(_VertexRequest):
    """Edges touching the vertex on either end."""
    orientation: Literal["bidirectional"] = "bidirectional"

FindByVertex = Annotated[Source | Target | Bidirectional, Field(discriminator="orientation")]
