"""
Core data models for mind maps.

Two representations of the same map live here:
- The canonical tree (TreeNode / MindMapData): single-rooted, ordered
  children, the source of truth for saving and exporting
- The positioned graph (GraphNode / GraphEdge): flat node and edge lists
  with 2-D positions, consumed and mutated by the rendering surface

Field Naming Convention:
- Python attributes are snake_case
- JSON uses camelCase (`createdAt`, `backgroundColor`, `sourcePosition`)
- Both spellings are accepted on input
"""

import time
import uuid
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class NodeCategory(str, Enum):
    """Semantic category assigned by the structuring step."""
    IDEA = "idea"
    TASK = "task"
    QUESTION = "question"
    FACT = "fact"


class NodeShape(str, Enum):
    """Card shape variants."""
    ROUNDED = "rounded"
    SQUARE = "square"
    CIRCLE = "circle"


class FontSize(str, Enum):
    SM = "sm"
    MD = "md"
    LG = "lg"


class FontFamily(str, Enum):
    SANS = "sans"
    SERIF = "serif"
    MONO = "mono"


class HandleSide(str, Enum):
    """Which face of a node an edge attaches to."""
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"


# UI-only fields on NodeData that never round-trip into the canonical tree
TRANSIENT_FIELDS = frozenset({"hovered", "editing", "highlighted"})


def generate_node_id() -> str:
    """Generate a unique node ID."""
    return f"n{uuid.uuid4().hex}"


def edge_id_for(source: str, target: str) -> str:
    """Deterministic edge ID, so re-deriving a graph yields the same edges."""
    return f"e{source}-{target}"


def now_ms() -> int:
    """Current time as epoch milliseconds (the createdAt unit)."""
    return int(time.time() * 1000)


class WireModel(BaseModel):
    """Base for every model serialized with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Convert to a JSON-serializable dict with wire field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Link(WireModel):
    """A reference attached to a node (usually from enrichment)."""
    title: str
    url: str


class NodeStyle(WireModel):
    """
    Visual overrides for a node.

    Every field is independently optional; an unset field falls back to the
    computed default. The set of fields is closed: unknown keys are rejected.
    """
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    background_color: Optional[str] = None
    shape: Optional[NodeShape] = None
    font_size: Optional[FontSize] = None
    font_family: Optional[FontFamily] = None

    def merged(self, patch: "NodeStyle") -> "NodeStyle":
        """Return a new style with the fields set on `patch` overriding ours."""
        updates = {name: getattr(patch, name) for name in patch.model_fields_set}
        return self.model_copy(update=updates)

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in type(self).model_fields)


class TreeNode(WireModel):
    """A node of the canonical mind map tree."""
    id: str = Field(default_factory=generate_node_id)
    label: str
    details: Optional[str] = None
    category: Optional[NodeCategory] = None
    style: Optional[NodeStyle] = None
    links: list[Link] = Field(default_factory=list)
    created_at: Optional[int] = None  # Epoch milliseconds
    children: list["TreeNode"] = Field(default_factory=list)

    def iter_nodes(self):
        """Yield every node of this subtree, depth-first, in child order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


class MindMapData(WireModel):
    """
    The canonical tree document: ``{"root": Node}``.
    This is what the generation step produces and what save/export consume.
    """
    root: TreeNode

    @classmethod
    def from_json_dict(cls, data: dict) -> "MindMapData":
        """Create from a JSON dict, accepting a bare root node as well."""
        if "root" not in data and "label" in data:
            data = {"root": data}
        return cls.model_validate(data)


class Position(WireModel):
    x: float = 0.0
    y: float = 0.0


class NodeData(WireModel):
    """Display payload of a graph node."""
    label: str
    details: Optional[str] = None
    category: Optional[NodeCategory] = None
    style: Optional[NodeStyle] = None
    links: list[Link] = Field(default_factory=list)
    created_at: Optional[int] = None
    # Resolved background color (style override, category default, fallback)
    color: Optional[str] = None
    # Transient UI state
    hovered: bool = False
    editing: bool = False
    highlighted: bool = False

    def to_tree_node(self, node_id: str, children: Optional[list[TreeNode]] = None) -> TreeNode:
        """Copy the canonical fields into a new TreeNode, dropping UI state."""
        fields = self.model_dump(exclude=TRANSIENT_FIELDS | {"color"}, exclude_none=True)
        return TreeNode(id=node_id, children=children or [], **fields)


class GraphNode(WireModel):
    """A positioned node as handed to the rendering surface."""
    id: str = Field(default_factory=generate_node_id)
    position: Position = Field(default_factory=Position)
    data: NodeData
    type: str = "custom"
    # Connection-side hints set by the hierarchical layout
    source_position: Optional[HandleSide] = None
    target_position: Optional[HandleSide] = None


class GraphEdge(WireModel):
    """A directed parent -> child edge."""
    id: str = ""
    source: str
    target: str
    type: str = "smoothstep"
    animated: bool = True

    @model_validator(mode="before")
    @classmethod
    def derive_id(cls, data: Any) -> Any:
        """Fill in the deterministic id when none is given."""
        if isinstance(data, dict) and not data.get("id"):
            if "source" in data and "target" in data:
                data = {**data, "id": edge_id_for(data["source"], data["target"])}
        return data


class PositionedGraph(WireModel):
    """Ordered node list plus edge list."""
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)


# --- API Request Models ---

class NodeDataPatch(WireModel):
    """
    Partial update of a node's display fields.

    Only fields present in the request are applied; an explicit null clears
    details, category or style.
    """
    label: Optional[str] = None
    details: Optional[str] = None
    category: Optional[NodeCategory] = None
    style: Optional[NodeStyle] = None
    links: Optional[list[Link]] = None


class MoveNodeRequest(WireModel):
    x: float
    y: float


class AddChildRequest(WireModel):
    label: str = "New Idea"
    category: NodeCategory = NodeCategory.IDEA


class ReparentRequest(WireModel):
    parent_id: str


class EnrichmentResult(WireModel):
    """What a search/maps grounding call hands back for one node."""
    text: str = ""
    links: list[Link] = Field(default_factory=list)


class EnrichmentRequest(EnrichmentResult):
    source: str = "Search"
