"""
Layout algorithms for mind map graphs.

Provides the layout policies a map can be displayed with:
- Hierarchical (LR / TB): rank = depth, nodes stacked per rank in
  traversal order
- Radial: depth sets the radius, each node's angular span is split
  equally between its children

Every layout is a full rebuild: it returns new GraphNode objects and never
modifies the nodes it is given. All nodes share one fixed footprint
(see LayoutConfig); sizes are never measured.
"""

import logging
import math
from collections import defaultdict, deque
from enum import Enum
from typing import NamedTuple, Optional

from .config import LayoutConfig
from .flatten import flatten_tree
from .models import (
    GraphEdge,
    GraphNode,
    HandleSide,
    MindMapData,
    Position,
    PositionedGraph,
)

logger = logging.getLogger(__name__)


class LayoutType(str, Enum):
    """Layout policies a map can be rebuilt with."""
    LR = "LR"          # Hierarchical, ranks run left to right
    TB = "TB"          # Hierarchical, ranks run top to bottom
    RADIAL = "Radial"


# Edge attachment faces per hierarchical direction: (source side, target side)
HANDLE_SIDES: dict[LayoutType, tuple[HandleSide, HandleSide]] = {
    LayoutType.LR: (HandleSide.RIGHT, HandleSide.LEFT),
    LayoutType.TB: (HandleSide.BOTTOM, HandleSide.TOP),
}


def _children_map(node_ids: list[str], edges: list[GraphEdge]) -> dict[str, list[str]]:
    """Parent -> ordered children, ignoring edges with a missing endpoint."""
    known = set(node_ids)
    children: dict[str, list[str]] = {nid: [] for nid in node_ids}
    for edge in edges:
        if edge.source in known and edge.target in known:
            children[edge.source].append(edge.target)
    return children


# --- Hierarchical ---

def compute_ranks(nodes: list[GraphNode], edges: list[GraphEdge]) -> dict[str, int]:
    """
    Assign every node a rank (its depth).

    Nodes that are never an edge target start at rank 0 and ranks grow by
    one along each edge, breadth first. On a tree this is exactly the depth
    from the root. Nodes not reached from any rank-0 node (isolated nodes,
    pure cycle fragments) also get rank 0.
    """
    node_ids = [n.id for n in nodes]
    children = _children_map(node_ids, edges)

    has_parent: set[str] = set()
    for targets in children.values():
        has_parent.update(targets)

    ranks: dict[str, int] = {}
    queue = deque((nid, 0) for nid in node_ids if nid not in has_parent)

    while queue:
        node_id, rank = queue.popleft()
        if node_id in ranks:
            continue
        ranks[node_id] = rank
        for child in children[node_id]:
            queue.append((child, rank + 1))

    for node_id in node_ids:
        ranks.setdefault(node_id, 0)

    return ranks


def hierarchical_layout(
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    direction: LayoutType | str = LayoutType.LR,
    config: Optional[LayoutConfig] = None
) -> list[GraphNode]:
    """
    Arrange nodes in ranks along a principal axis.

    The rank index goes along the principal axis (x for LR, y for TB) and
    the index within the rank along the perpendicular one. Within a rank
    nodes keep their list order; no crossing minimization is attempted.

    Args:
        nodes: Flattened nodes, in traversal order
        edges: Parent -> child edges
        direction: LayoutType.LR or LayoutType.TB
        config: Footprint and spacing

    Returns:
        New nodes with positions and connection-side hints set
    """
    direction = LayoutType(direction)
    if direction not in HANDLE_SIDES:
        raise ValueError(f"Not a hierarchical direction: {direction.value}")

    config = config or LayoutConfig()
    horizontal = direction == LayoutType.LR
    source_side, target_side = HANDLE_SIDES[direction]

    if horizontal:
        principal, perpendicular = config.node_width, config.node_height
    else:
        principal, perpendicular = config.node_height, config.node_width

    ranks = compute_ranks(nodes, edges)
    rank_counts: dict[int, int] = defaultdict(int)
    layouted: list[GraphNode] = []

    for node in nodes:
        rank = ranks[node.id]
        index = rank_counts[rank]
        rank_counts[rank] += 1

        # Anchor = center of the node's cell
        along = rank * (principal + config.rank_sep) + principal / 2
        across = index * (perpendicular + config.node_sep) + perpendicular / 2
        center_x, center_y = (along, across) if horizontal else (across, along)

        layouted.append(node.model_copy(update={
            "position": Position(
                x=center_x - config.half_width,
                y=center_y - config.half_height,
            ),
            "source_position": source_side,
            "target_position": target_side,
        }))

    return layouted


# --- Radial ---

class RadialPlacement(NamedTuple):
    """Depth and angular span [start, end) of one node, in radians."""
    depth: int
    start: float
    end: float

    @property
    def angle(self) -> float:
        return (self.start + self.end) / 2

    @property
    def width(self) -> float:
        return self.end - self.start


def angular_spans(
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    root_id: str
) -> dict[str, RadialPlacement]:
    """
    Split the full circle recursively from the root.

    Each node's span is divided equally between its children, whatever the
    size of their subtrees, so unbalanced trees look uneven.

    Returns:
        node_id -> RadialPlacement for every node reachable from the root
        (empty if the root is not among the nodes)
    """
    node_ids = [n.id for n in nodes]
    if root_id not in set(node_ids):
        return {}

    adjacency = _children_map(node_ids, edges)

    placements: dict[str, RadialPlacement] = {}
    stack = [(root_id, RadialPlacement(0, 0.0, 2 * math.pi))]

    while stack:
        node_id, placement = stack.pop()
        if node_id in placements:
            continue
        placements[node_id] = placement

        children = [c for c in adjacency[node_id] if c not in placements]
        if not children:
            continue

        step = placement.width / len(children)
        # Reversed so children are placed in canonical order
        for index in reversed(range(len(children))):
            stack.append((children[index], RadialPlacement(
                placement.depth + 1,
                placement.start + index * step,
                placement.start + (index + 1) * step,
            )))

    return placements


def radial_layout(
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    root_id: str,
    config: Optional[LayoutConfig] = None
) -> list[GraphNode]:
    """
    Arrange nodes on concentric circles around the root.

    The root sits at the origin. A node at depth d is placed at radius
    d * radius_increment, at the middle of its angular span, with its
    footprint centered on that polar point.

    Nodes not reachable from the root keep their current position.
    If the root is missing, the nodes are returned unchanged.
    """
    config = config or LayoutConfig()
    placements = angular_spans(nodes, edges, root_id)
    if not placements:
        logger.debug("Radial layout skipped: root %r not found", root_id)
        return [node.model_copy() for node in nodes]

    layouted: list[GraphNode] = []
    for node in nodes:
        placement = placements.get(node.id)
        if placement is None:
            layouted.append(node.model_copy())
            continue

        if placement.depth == 0:
            position = Position(x=0, y=0)
        else:
            radius = placement.depth * config.radius_increment
            position = Position(
                x=radius * math.cos(placement.angle) - config.half_width,
                y=radius * math.sin(placement.angle) - config.half_height,
            )

        layouted.append(node.model_copy(update={
            "position": position,
            "source_position": None,
            "target_position": None,
        }))

    return layouted


# --- Dispatch ---

def apply_layout(
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    root_id: str,
    layout_type: LayoutType | str = LayoutType.LR,
    config: Optional[LayoutConfig] = None
) -> list[GraphNode]:
    """Run the layout selected by `layout_type` over an existing graph."""
    layout_type = LayoutType(layout_type)
    if layout_type == LayoutType.RADIAL:
        return radial_layout(nodes, edges, root_id, config)
    return hierarchical_layout(nodes, edges, layout_type, config)


def get_layouted_elements(
    data: MindMapData,
    layout_type: LayoutType | str = LayoutType.LR,
    config: Optional[LayoutConfig] = None
) -> PositionedGraph:
    """
    Flatten a canonical tree and lay it out.

    Args:
        data: The canonical tree document
        layout_type: LR, TB or Radial
        config: Footprint and spacing

    Returns:
        PositionedGraph ready for the rendering surface
    """
    nodes, edges = flatten_tree(data.root, config)
    layouted = apply_layout(nodes, edges, data.root.id, layout_type, config)
    logger.debug(
        "Laid out %d nodes / %d edges with %s",
        len(layouted), len(edges), LayoutType(layout_type).value,
    )
    return PositionedGraph(nodes=layouted, edges=edges)
