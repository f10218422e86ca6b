"""
VoiceMap Engine - Tree/graph layout and reconstruction for mind maps.

This package provides the core used by both the HTTP service and the CLI:
flattening a canonical tree into a positioned graph, laying it out, editing
the live graph, and rebuilding a canonical tree from it.
"""

from .config import LayoutConfig
from .models import (
    # Enums
    NodeCategory,
    NodeShape,
    FontSize,
    FontFamily,
    HandleSide,
    # Canonical tree
    Link,
    NodeStyle,
    TreeNode,
    MindMapData,
    # Positioned graph
    Position,
    NodeData,
    GraphNode,
    GraphEdge,
    PositionedGraph,
    # Request models (for API)
    NodeDataPatch,
    MoveNodeRequest,
    AddChildRequest,
    ReparentRequest,
    EnrichmentResult,
    EnrichmentRequest,
    generate_node_id,
    edge_id_for,
)

from .flatten import flatten_tree, resolve_background_color, CATEGORY_COLORS
from .layout import (
    LayoutType,
    compute_ranks,
    hierarchical_layout,
    angular_spans,
    radial_layout,
    apply_layout,
    get_layouted_elements,
)
from .reconstruct import (
    FailureReason,
    RootResolution,
    ReconstructionResult,
    ReconstructionError,
    resolve_root,
    reconstruct_tree,
    tree_from_graph,
)
from .validation import (
    validate_graph,
    validate_tree,
    validation_summary,
    ValidationIssue,
    IssueSeverity,
)
from .analysis import summarize_map, find_connected_components, find_cycles
from .editor import GraphState, MindMapEditor
from .enrichment import EnrichmentError, merge_enrichment, enrich_node

__all__ = [
    "LayoutConfig",
    # Enums
    "NodeCategory",
    "NodeShape",
    "FontSize",
    "FontFamily",
    "HandleSide",
    # Models
    "Link",
    "NodeStyle",
    "TreeNode",
    "MindMapData",
    "Position",
    "NodeData",
    "GraphNode",
    "GraphEdge",
    "PositionedGraph",
    # Request models
    "NodeDataPatch",
    "MoveNodeRequest",
    "AddChildRequest",
    "ReparentRequest",
    "EnrichmentResult",
    "EnrichmentRequest",
    "generate_node_id",
    "edge_id_for",
    # Flattening
    "flatten_tree",
    "resolve_background_color",
    "CATEGORY_COLORS",
    # Layout
    "LayoutType",
    "compute_ranks",
    "hierarchical_layout",
    "angular_spans",
    "radial_layout",
    "apply_layout",
    "get_layouted_elements",
    # Reconstruction
    "FailureReason",
    "RootResolution",
    "ReconstructionResult",
    "ReconstructionError",
    "resolve_root",
    "reconstruct_tree",
    "tree_from_graph",
    # Validation
    "validate_graph",
    "validate_tree",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
    # Analysis
    "summarize_map",
    "find_connected_components",
    "find_cycles",
    # Editing
    "GraphState",
    "MindMapEditor",
    "EnrichmentError",
    "merge_enrichment",
    "enrich_node",
]
