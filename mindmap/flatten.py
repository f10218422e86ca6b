"""
Tree flattening - Turn a canonical tree into graph nodes and edges.

One depth-first pass, root first, children in their canonical order.
Positions are left at the origin; assigning them is the layouts' job.
"""

import logging
from typing import Optional

from .config import DEFAULT_FALLBACK_COLOR, LayoutConfig
from .models import (
    GraphEdge,
    GraphNode,
    NodeCategory,
    NodeData,
    NodeStyle,
    TreeNode,
    edge_id_for,
)

logger = logging.getLogger(__name__)


CATEGORY_COLORS: dict[NodeCategory, str] = {
    NodeCategory.IDEA: "#e0e7ff",      # Indigo 100
    NodeCategory.TASK: "#dcfce7",      # Green 100
    NodeCategory.QUESTION: "#ffedd5",  # Orange 100
    NodeCategory.FACT: "#f1f5f9",      # Slate 100
}


def resolve_background_color(
    style: Optional[NodeStyle],
    category: Optional[NodeCategory],
    fallback: str = DEFAULT_FALLBACK_COLOR,
) -> str:
    """
    Explicit style color, else the category default, else the fallback.

    An uncategorized node gets the idea color; the fallback is only used for
    a category missing from CATEGORY_COLORS.
    """
    if style is not None and style.background_color:
        return style.background_color
    return CATEGORY_COLORS.get(category or NodeCategory.IDEA, fallback)


def node_data_from_tree(node: TreeNode, config: Optional[LayoutConfig] = None) -> NodeData:
    """Build the display payload for one tree node (children not included)."""
    config = config or LayoutConfig()
    return NodeData(
        label=node.label,
        details=node.details,
        category=node.category,
        style=node.style.model_copy() if node.style is not None else None,
        links=[link.model_copy() for link in node.links],
        created_at=node.created_at,
        color=resolve_background_color(node.style, node.category, config.fallback_color),
    )


def flatten_tree(
    root: TreeNode,
    config: Optional[LayoutConfig] = None
) -> tuple[list[GraphNode], list[GraphEdge]]:
    """
    Flatten a tree into an ordered node list and a parent->child edge list.

    Args:
        root: Root of the canonical tree (not modified)
        config: Layout configuration (only the fallback color is used here)

    Returns:
        (nodes, edges) in depth-first, child-order-preserving order
    """
    config = config or LayoutConfig()
    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []
    seen: set[str] = set()

    # (tree node, parent id)
    stack: list[tuple[TreeNode, Optional[str]]] = [(root, None)]

    while stack:
        node, parent_id = stack.pop()
        if node.id in seen:
            logger.warning("Skipping duplicate node id %r while flattening", node.id)
            continue
        seen.add(node.id)

        nodes.append(GraphNode(id=node.id, data=node_data_from_tree(node, config)))

        if parent_id is not None:
            edges.append(GraphEdge(
                id=edge_id_for(parent_id, node.id),
                source=parent_id,
                target=node.id,
            ))

        # Reversed so the first child is popped first
        for child in reversed(node.children):
            stack.append((child, node.id))

    return nodes, edges
