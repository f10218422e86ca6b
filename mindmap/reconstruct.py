"""
Graph-to-tree reconstruction.

Turns the live (possibly edited) node/edge set back into a canonical tree:

1. Structural check: duplicate node ids and dangling edges are refused
2. Root resolution: the preferred root id if it still exists, otherwise the
   first node (in node order) that is never an edge target
3. Tree build: children are attached in edge-list order, starting from the
   root. Nodes the root cannot reach are dropped; reaching a node twice
   (cycle, or a second parent) is refused

Failures are returned as values (RootResolution / ReconstructionResult) so
that save and export callers can fall back to their previous snapshot.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .models import GraphEdge, GraphNode, MindMapData, TreeNode
from .validation import IssueSeverity, ValidationIssue, structural_errors

logger = logging.getLogger(__name__)


class FailureReason(str, Enum):
    """Why a graph could not be turned into a tree."""
    NO_VALID_ROOT = "no_valid_root"
    CYCLE_DETECTED = "cycle_detected"
    MALFORMED_GRAPH = "malformed_graph"


@dataclass(frozen=True)
class RootResolution:
    """Outcome of root resolution."""
    root_id: Optional[str] = None
    fallback: bool = False  # True when the preferred root was missing

    @property
    def ok(self) -> bool:
        return self.root_id is not None


@dataclass
class ReconstructionResult:
    """Outcome of a reconstruction: a tree, or a reason it failed."""
    data: Optional[MindMapData] = None
    reason: Optional[FailureReason] = None
    message: str = ""
    root_id: Optional[str] = None
    pruned_ids: list[str] = field(default_factory=list)
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.data is not None

    @classmethod
    def failure(
        cls,
        reason: FailureReason,
        message: str,
        root_id: Optional[str] = None,
        issues: Optional[list[ValidationIssue]] = None
    ) -> "ReconstructionResult":
        return cls(reason=reason, message=message, root_id=root_id, issues=issues or [])

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        if self.ok:
            return {
                "success": True,
                "data": self.data.to_json_dict(),
                "root_id": self.root_id,
                "pruned_ids": self.pruned_ids,
            }
        return {
            "success": False,
            "reason": self.reason.value,
            "message": self.message,
            "root_id": self.root_id,
            "issues": [i.to_dict() for i in self.issues],
        }


class ReconstructionError(Exception):
    """Raised by tree_from_graph when reconstruction fails."""

    def __init__(self, result: ReconstructionResult):
        super().__init__(result.message)
        self.result = result

    @property
    def reason(self) -> Optional[FailureReason]:
        return self.result.reason


def resolve_root(
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    preferred_root_id: Optional[str]
) -> RootResolution:
    """
    Decide which node is the root.

    Args:
        nodes: Current graph nodes
        edges: Current graph edges
        preferred_root_id: Root id the map was loaded with

    Returns:
        RootResolution; `ok` is False when the preferred root is gone and
        every node has an incoming edge
    """
    if preferred_root_id is not None and any(n.id == preferred_root_id for n in nodes):
        return RootResolution(root_id=preferred_root_id)

    targets = {e.target for e in edges}
    for node in nodes:
        if node.id not in targets:
            logger.info(
                "Root %r not found, falling back to %r", preferred_root_id, node.id
            )
            return RootResolution(root_id=node.id, fallback=True)

    return RootResolution()


def reconstruct_tree(
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    preferred_root_id: Optional[str]
) -> ReconstructionResult:
    """
    Rebuild a canonical tree from the current graph.

    Args:
        nodes: Current graph nodes
        edges: Current graph edges (their order becomes sibling order)
        preferred_root_id: Root id the map was loaded with

    Returns:
        ReconstructionResult holding a fresh MindMapData, or a failure
    """
    issues = structural_errors(nodes, edges)
    if issues:
        return ReconstructionResult.failure(
            FailureReason.MALFORMED_GRAPH,
            f"Graph has {len(issues)} structural error(s)",
            issues=issues,
        )

    resolution = resolve_root(nodes, edges, preferred_root_id)
    if not resolution.ok:
        return ReconstructionResult.failure(
            FailureReason.NO_VALID_ROOT,
            "No node without a parent is left to use as root",
        )
    root_id = resolution.root_id

    children: dict[str, list[str]] = defaultdict(list)
    for edge in edges:
        children[edge.source].append(edge.target)

    # Walk from the root; a node pushed twice means a cycle or a second parent
    order: list[str] = []
    seen = {root_id}
    stack = [root_id]
    while stack:
        node_id = stack.pop()
        order.append(node_id)
        for child_id in reversed(children[node_id]):
            if child_id in seen:
                return ReconstructionResult.failure(
                    FailureReason.CYCLE_DETECTED,
                    f"Node {child_id} is reached more than once from {root_id}",
                    root_id=root_id,
                    issues=[ValidationIssue(
                        severity=IssueSeverity.ERROR,
                        message="Node reached more than once",
                        node_id=child_id,
                    )],
                )
            seen.add(child_id)
            stack.append(child_id)

    # Build bottom-up so every TreeNode is complete when created
    by_id = {n.id: n for n in nodes}
    built: dict[str, TreeNode] = {}
    for node_id in reversed(order):
        built[node_id] = by_id[node_id].data.to_tree_node(
            node_id, [built[c] for c in children[node_id]]
        )

    pruned = [n.id for n in nodes if n.id not in seen]
    if pruned:
        logger.debug("Pruned %d node(s) unreachable from %r", len(pruned), root_id)

    return ReconstructionResult(
        data=MindMapData(root=built[root_id]),
        root_id=root_id,
        pruned_ids=pruned,
    )


def tree_from_graph(
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    preferred_root_id: Optional[str]
) -> MindMapData:
    """Like reconstruct_tree, but raises ReconstructionError on failure."""
    result = reconstruct_tree(nodes, edges, preferred_root_id)
    if not result.ok:
        raise ReconstructionError(result)
    return result.data
