"""
Graph analysis - Structure queries over mind map graphs and trees.

Used by validation (cycles, components), by reconstruction (reachability)
and by the summary endpoints.
"""

from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import GraphEdge, GraphNode, MindMapData


@dataclass
class ConnectedComponent:
    """A connected component of the graph (edges treated as undirected)."""
    node_ids: list[str] = field(default_factory=list)
    edge_count: int = 0

    @property
    def size(self) -> int:
        return len(self.node_ids)


@dataclass
class MapSummary:
    """Shape of a canonical mind map."""
    root_label: str
    total_nodes: int
    max_depth: int
    leaf_count: int
    nodes_by_category: dict[str, int]
    link_count: int

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "root_label": self.root_label,
            "total_nodes": self.total_nodes,
            "max_depth": self.max_depth,
            "leaf_count": self.leaf_count,
            "nodes_by_category": self.nodes_by_category,
            "link_count": self.link_count,
        }


def find_connected_components(
    nodes: list["GraphNode"],
    edges: list["GraphEdge"]
) -> list[ConnectedComponent]:
    """
    Find all connected components using BFS.

    Args:
        nodes: Graph nodes (component order follows node order)
        edges: Graph edges; edges with a missing endpoint are ignored

    Returns:
        List of ConnectedComponent objects
    """
    if not nodes:
        return []

    node_ids = [n.id for n in nodes]

    # Build adjacency list (undirected)
    adjacency: dict[str, set[str]] = {nid: set() for nid in node_ids}
    for edge in edges:
        if edge.source in adjacency and edge.target in adjacency:
            adjacency[edge.source].add(edge.target)
            adjacency[edge.target].add(edge.source)

    visited: set[str] = set()
    components: list[ConnectedComponent] = []

    for start_node in node_ids:
        if start_node in visited:
            continue

        component_nodes: list[str] = []
        queue = deque([start_node])
        visited.add(start_node)

        while queue:
            current = queue.popleft()
            component_nodes.append(current)
            for neighbor in adjacency[current]:
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append(neighbor)

        members = set(component_nodes)
        edge_count = sum(
            1 for e in edges if e.source in members and e.target in members
        )
        components.append(ConnectedComponent(
            node_ids=component_nodes,
            edge_count=edge_count
        ))

    return components


def find_cycles(
    nodes: list["GraphNode"],
    edges: list["GraphEdge"]
) -> list[list[str]]:
    """
    Find directed cycles with an iterative DFS.

    Reports one cycle per back edge found, as a list of node ids that starts
    and ends with the same id. Cycles over the same node set are reported
    once.
    """
    adjacency: dict[str, list[str]] = defaultdict(list)
    for edge in edges:
        adjacency[edge.source].append(edge.target)

    WHITE, GREY, BLACK = 0, 1, 2
    color: dict[str, int] = defaultdict(int)
    cycles: list[list[str]] = []
    seen: set[frozenset[str]] = set()

    for node in nodes:
        if color[node.id] != WHITE:
            continue

        path: list[str] = [node.id]
        color[node.id] = GREY
        # (node id, iterator over its successors)
        stack = [(node.id, iter(adjacency[node.id]))]

        while stack:
            current, successors = stack[-1]
            advanced = False
            for neighbor in successors:
                if color[neighbor] == GREY:
                    cycle = path[path.index(neighbor):] + [neighbor]
                    key = frozenset(cycle)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(cycle)
                elif color[neighbor] == WHITE:
                    color[neighbor] = GREY
                    path.append(neighbor)
                    stack.append((neighbor, iter(adjacency[neighbor])))
                    advanced = True
                    break
            if not advanced:
                color[current] = BLACK
                path.pop()
                stack.pop()

    return cycles


def reachable_from(root_id: str, edges: list["GraphEdge"]) -> set[str]:
    """Ids reachable from `root_id` along edge direction (root included)."""
    adjacency: dict[str, list[str]] = defaultdict(list)
    for edge in edges:
        adjacency[edge.source].append(edge.target)

    reached = {root_id}
    queue = deque([root_id])
    while queue:
        current = queue.popleft()
        for neighbor in adjacency[current]:
            if neighbor not in reached:
                reached.add(neighbor)
                queue.append(neighbor)
    return reached


def summarize_map(data: "MindMapData") -> MapSummary:
    """
    Summarize a canonical tree.

    Args:
        data: The mind map to summarize

    Returns:
        MapSummary with node, depth, leaf, category and link counts
    """
    category_counts: dict[str, int] = defaultdict(int)
    total = 0
    leaves = 0
    links = 0
    max_depth = 0

    stack = [(data.root, 0)]
    while stack:
        node, depth = stack.pop()
        total += 1
        links += len(node.links)
        max_depth = max(max_depth, depth)
        category = node.category.value if node.category else "none"
        category_counts[category] += 1
        if not node.children:
            leaves += 1
        for child in node.children:
            stack.append((child, depth + 1))

    return MapSummary(
        root_label=data.root.label,
        total_nodes=total,
        max_depth=max_depth,
        leaf_count=leaves,
        nodes_by_category=dict(category_counts),
        link_count=links,
    )
