"""Tests for root resolution and graph-to-tree reconstruction."""

import pytest

from mindmap.flatten import flatten_tree
from mindmap.layout import get_layouted_elements
from mindmap.models import GraphEdge, GraphNode, NodeData
from mindmap.reconstruct import (
    FailureReason,
    ReconstructionError,
    reconstruct_tree,
    resolve_root,
    tree_from_graph,
)


def _child_ids(tree_node):
    return [c.id for c in tree_node.children]


# --- Root resolution ---

def test_resolve_preferred_root(make_graph):
    nodes, edges = make_graph(["A", "B"], [("A", "B")])
    resolution = resolve_root(nodes, edges, "A")
    assert resolution.ok
    assert resolution.root_id == "A"
    assert resolution.fallback is False


def test_root_fallback_determinism(make_graph):
    """Preferred root absent: the unique zero-in-degree node wins."""
    nodes, edges = make_graph(["A", "B", "C"], [("A", "B"), ("B", "C")])
    resolution = resolve_root(nodes, edges, "Z")
    assert resolution.root_id == "A"
    assert resolution.fallback is True


def test_root_fallback_picks_first_in_node_order(make_graph):
    nodes, edges = make_graph(["C", "A", "B"], [("A", "B")])
    assert resolve_root(nodes, edges, None).root_id == "C"


def test_root_resolution_fails_when_every_node_has_a_parent(make_graph):
    nodes, edges = make_graph(["A", "B"], [("A", "B"), ("B", "A")])
    resolution = resolve_root(nodes, edges, "Z")
    assert not resolution.ok
    assert resolution.root_id is None


def test_resolve_root_does_not_mutate(make_graph):
    nodes, edges = make_graph(["A", "B"], [("A", "B")])
    resolve_root(nodes, edges, "Z")
    assert [n.id for n in nodes] == ["A", "B"]
    assert len(edges) == 1


# --- Reconstruction ---

def test_round_trip_identity(sample_tree):
    """Flatten then reconstruct without edits gives the same tree."""
    nodes, edges = flatten_tree(sample_tree.root)
    result = reconstruct_tree(nodes, edges, sample_tree.root.id)
    assert result.ok
    assert result.data.to_json_dict() == sample_tree.to_json_dict()
    assert result.pruned_ids == []


def test_round_trip_after_layout(sample_tree):
    """Positions and connection hints do not leak into the tree."""
    graph = get_layouted_elements(sample_tree, "Radial")
    data = tree_from_graph(graph.nodes, graph.edges, "r")
    assert data.to_json_dict() == sample_tree.to_json_dict()


def test_transient_fields_are_dropped(sample_tree):
    nodes, edges = flatten_tree(sample_tree.root)
    nodes[0] = nodes[0].model_copy(update={
        "data": nodes[0].data.model_copy(update={"hovered": True, "editing": True})
    })
    data = tree_from_graph(nodes, edges, "r")
    dumped = data.root.to_json_dict()
    assert "hovered" not in dumped
    assert "editing" not in dumped
    assert "color" not in dumped


def test_edge_order_becomes_sibling_order(sample_tree):
    """Reordered edges reorder children."""
    nodes, edges = flatten_tree(sample_tree.root)
    edges = list(reversed(edges))
    data = tree_from_graph(nodes, edges, "r")
    assert _child_ids(data.root) == ["c", "b", "a"]
    assert _child_ids(data.root.children[2]) == ["a2", "a1"]


def test_pruning_on_reconstruction(make_graph):
    """Nodes unreachable from the root are left out."""
    nodes, edges = make_graph(["A", "B", "C"], [("A", "B")])
    result = reconstruct_tree(nodes, edges, "A")
    assert result.ok
    assert result.data.root.id == "A"
    assert _child_ids(result.data.root) == ["B"]
    assert result.pruned_ids == ["C"]


def test_cycle_rejection(make_graph):
    """A cycle reachable from the root is a failure, not a hang."""
    nodes, edges = make_graph(["A", "B"], [("A", "B"), ("B", "A")])
    for preferred in ("A", "B"):
        result = reconstruct_tree(nodes, edges, preferred)
        assert not result.ok
        assert result.reason == FailureReason.CYCLE_DETECTED


def test_self_loop_on_root_is_rejected(make_graph):
    nodes, edges = make_graph(["A"], [("A", "A")])
    result = reconstruct_tree(nodes, edges, "A")
    assert result.reason == FailureReason.CYCLE_DETECTED


def test_second_parent_is_rejected(make_graph):
    nodes, edges = make_graph(["A", "B", "C"], [("A", "B"), ("A", "C"), ("B", "C")])
    result = reconstruct_tree(nodes, edges, "A")
    assert result.reason == FailureReason.CYCLE_DETECTED
    assert result.issues[0].node_id == "C"


def test_cycle_outside_the_root_is_pruned(make_graph):
    nodes, edges = make_graph(["A", "X", "Y"], [("X", "Y"), ("Y", "X")])
    result = reconstruct_tree(nodes, edges, "A")
    assert result.ok
    assert result.pruned_ids == ["X", "Y"]


def test_no_valid_root(make_graph):
    nodes, edges = make_graph(["A", "B"], [("A", "B"), ("B", "A")])
    result = reconstruct_tree(nodes, edges, "Z")
    assert not result.ok
    assert result.reason == FailureReason.NO_VALID_ROOT
    assert result.to_dict()["reason"] == "no_valid_root"


def test_duplicate_ids_are_malformed():
    nodes = [
        GraphNode(id="A", data=NodeData(label="one")),
        GraphNode(id="A", data=NodeData(label="two")),
    ]
    result = reconstruct_tree(nodes, [], "A")
    assert result.reason == FailureReason.MALFORMED_GRAPH
    assert result.issues[0].node_id == "A"


def test_dangling_edge_is_malformed(make_graph):
    nodes, edges = make_graph(["A"], [])
    edges = [GraphEdge(source="A", target="ghost")]
    result = reconstruct_tree(nodes, edges, "A")
    assert result.reason == FailureReason.MALFORMED_GRAPH
    assert result.issues[0].edge_id == "eA-ghost"


def test_reconstruction_after_root_deleted(sample_tree):
    """Deleting the root promotes the first parentless node."""
    nodes, edges = flatten_tree(sample_tree.root)
    nodes = [n for n in nodes if n.id != "r"]
    edges = [e for e in edges if e.source != "r"]
    result = reconstruct_tree(nodes, edges, "r")
    assert result.ok
    assert result.root_id == "a"
    assert _child_ids(result.data.root) == ["a1", "a2"]
    assert result.pruned_ids == ["b", "c"]


def test_tree_from_graph_raises(make_graph):
    nodes, edges = make_graph(["A", "B"], [("A", "B"), ("B", "A")])
    with pytest.raises(ReconstructionError) as exc_info:
        tree_from_graph(nodes, edges, "A")
    assert exc_info.value.reason == FailureReason.CYCLE_DETECTED


def test_reconstruction_yields_new_objects(sample_tree):
    """The rebuilt tree shares no node objects with the graph payloads."""
    nodes, edges = flatten_tree(sample_tree.root)
    data = tree_from_graph(nodes, edges, "r")
    data.root.links.append(data.root.children[1].links[0])
    assert nodes[0].data.links == []


def test_deep_tree_does_not_hit_recursion_limit():
    """Reconstruction and layout walk with explicit stacks."""
    depth = 5000
    nodes = [GraphNode(id=f"n{i}", data=NodeData(label=str(i))) for i in range(depth)]
    edges = [GraphEdge(source=f"n{i}", target=f"n{i + 1}") for i in range(depth - 1)]
    result = reconstruct_tree(nodes, edges, "n0")
    assert result.ok
    # Walk the chain iteratively
    node, count = result.data.root, 1
    while node.children:
        node = node.children[0]
        count += 1
    assert count == depth
