"""
Map validation - Check graphs and trees for structural issues.

Reconstruction refuses graphs with structural errors (duplicate ids,
dangling edges); the full checks are also exposed to the API and CLI.
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .analysis import find_connected_components, find_cycles

if TYPE_CHECKING:
    from .models import GraphEdge, GraphNode, MindMapData


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, cannot become a canonical tree
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a map."""
    severity: IssueSeverity
    message: str
    node_id: str | None = None
    edge_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.node_id:
            result["node_id"] = self.node_id
        if self.edge_id:
            result["edge_id"] = self.edge_id
        return result


def structural_errors(
    nodes: list["GraphNode"],
    edges: list["GraphEdge"]
) -> list[ValidationIssue]:
    """
    Errors that make a graph unusable as a tree source.

    Checks for:
    - Duplicate node ids
    - Edges whose source or target is not a node
    """
    issues: list[ValidationIssue] = []

    id_counts = Counter(n.id for n in nodes)
    for node_id, count in id_counts.items():
        if count > 1:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Duplicate node id {node_id} ({count} nodes)",
                node_id=node_id
            ))

    node_ids = set(id_counts)
    for edge in edges:
        if edge.source not in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Edge references non-existent source node: {edge.source}",
                edge_id=edge.id
            ))
        if edge.target not in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Edge references non-existent target node: {edge.target}",
                edge_id=edge.id
            ))

    return issues


def validate_graph(
    nodes: list["GraphNode"],
    edges: list["GraphEdge"]
) -> list[ValidationIssue]:
    """
    Validate a positioned graph and return a list of issues.

    Checks for:
    - Empty graph - INFO
    - Duplicate node ids, dangling edges - ERROR
    - Self-referencing edges - ERROR
    - Nodes with more than one parent - ERROR
    - Cycles - ERROR
    - Duplicate edge ids - WARNING
    - More than one connected component - WARNING
    - Empty labels - WARNING

    Args:
        nodes: Graph nodes
        edges: Graph edges

    Returns:
        List of ValidationIssue objects
    """
    if not nodes:
        return [ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Map has no nodes"
        )]

    issues = structural_errors(nodes, edges)

    # Self-referencing edges
    for edge in edges:
        if edge.source == edge.target:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message="Self-referencing edge (node points to itself)",
                edge_id=edge.id,
                node_id=edge.source
            ))

    # More than one parent
    parent_counts = Counter(e.target for e in edges if e.source != e.target)
    for node_id, count in parent_counts.items():
        if count > 1:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Node has {count} parents",
                node_id=node_id
            ))

    # Cycles (self-loops were reported above)
    for cycle in find_cycles(nodes, edges):
        if len(cycle) > 2:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Cycle: {' -> '.join(cycle)}",
                node_id=cycle[0]
            ))

    # Duplicate edge ids
    edge_id_counts = Counter(e.id for e in edges)
    for edge_id, count in edge_id_counts.items():
        if count > 1:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Duplicate edge id ({count} edges)",
                edge_id=edge_id
            ))

    components = find_connected_components(nodes, edges)
    if len(components) > 1:
        detached = sum(c.size for c in components[1:])
        issues.append(ValidationIssue(
            severity=IssueSeverity.WARNING,
            message=(
                f"Graph has {len(components)} disconnected parts; "
                f"{detached} node(s) will not be saved unless reattached"
            )
        ))

    for node in nodes:
        if not node.data.label or not node.data.label.strip():
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Node has an empty label",
                node_id=node.id
            ))

    return issues


def validate_tree(data: "MindMapData") -> list[ValidationIssue]:
    """
    Validate a canonical tree.

    Checks for:
    - Ids used by more than one node - ERROR
    - Empty labels - WARNING
    """
    issues: list[ValidationIssue] = []
    seen: set[str] = set()
    reported: set[str] = set()

    for node in data.root.iter_nodes():
        if node.id in seen and node.id not in reported:
            reported.add(node.id)
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Duplicate node id {node.id}",
                node_id=node.id
            ))
        seen.add(node.id)

        if not node.label.strip():
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Node has an empty label",
                node_id=node.id
            ))

    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    errors = len([i for i in issues if i.severity == IssueSeverity.ERROR])
    return {
        "total": len(issues),
        "errors": errors,
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": errors == 0
    }
