"""Tests for the editing session."""

import pytest

from mindmap.editor import MindMapEditor
from mindmap.layout import LayoutType
from mindmap.models import (
    FontSize,
    GraphEdge,
    NodeCategory,
    NodeDataPatch,
    NodeShape,
    NodeStyle,
)
from mindmap.reconstruct import FailureReason


def _child_ids(tree_node):
    return [c.id for c in tree_node.children]


def test_unloaded_editor():
    editor = MindMapEditor()
    assert not editor.is_loaded
    assert editor.get_node("x") is None
    assert editor.get_state()["graph"] is None
    with pytest.raises(ValueError):
        editor.delete_node("x")


def test_load_lays_out(editor):
    assert editor.root_id == "r"
    assert editor.layout_type == LayoutType.LR
    assert [n.id for n in editor.nodes] == ["r", "a", "a1", "a2", "b", "c"]
    assert editor.get_node("a").position.x == 270
    state = editor.get_state()
    assert state["layout"] == "LR"
    assert len(state["graph"]["edges"]) == 5


def test_update_node_data_relabels_and_recolors(editor):
    node = editor.update_node_data("c", NodeDataPatch(label="Hostels", category="task"))
    assert node.data.label == "Hostels"
    assert node.data.color == "#dcfce7"


def test_update_node_data_ignores_nulls(editor):
    node = editor.update_node_data("b", NodeDataPatch(label=None, details="About 3k"))
    assert node.data.label == "Budget"
    assert node.data.details == "About 3k"


def test_update_node_data_clears_explicit_nulls(editor):
    node = editor.update_node_data("b", NodeDataPatch(details=None, category=None))
    assert node.data.details is None
    assert node.data.category is None
    assert node.data.color == "#e0e7ff"
    budget = editor.current_tree().data.root.children[1].to_json_dict()
    assert "details" not in budget and "category" not in budget


def test_update_missing_node_returns_none(editor):
    assert editor.update_node_data("ghost", NodeDataPatch(label="x")) is None
    assert editor.update_style("ghost", NodeStyle(shape="circle")) is None
    assert editor.move_node("ghost", 1, 2) is None


def test_update_style_merges(editor):
    """A style patch keeps the fields it does not mention."""
    node = editor.update_style("a1", NodeStyle(shape=NodeShape.CIRCLE))
    assert node.data.style.shape == NodeShape.CIRCLE
    assert node.data.style.background_color == "#123456"
    assert node.data.style.font_size == FontSize.LG


def test_update_style_background_changes_color(editor):
    node = editor.update_style("c", NodeStyle(background_color="#000000"))
    assert node.data.color == "#000000"
    tree = editor.current_tree().data
    assert tree.root.children[2].style.background_color == "#000000"


def test_style_rejects_unknown_fields():
    with pytest.raises(ValueError):
        NodeStyle.model_validate({"borderColor": "red"})


def test_move_node(editor):
    node = editor.move_node("b", 12.5, -3)
    assert (node.position.x, node.position.y) == (12.5, -3)


def test_add_child(editor):
    child = editor.add_child("b", label="Insurance")
    assert child.data.label == "Insurance"
    assert child.data.category == NodeCategory.IDEA
    assert child.data.created_at is not None
    assert editor.edges[-1].id == f"eb-{child.id}"

    tree = editor.current_tree().data
    budget = tree.root.children[1]
    assert _child_ids(budget) == [child.id]


def test_add_child_ids_are_unique(editor):
    first = editor.add_child("r")
    second = editor.add_child("r")
    assert first.id != second.id


def test_add_child_to_missing_parent(editor):
    assert editor.add_child("ghost") is None
    assert len(editor.nodes) == 6


def test_delete_node_removes_incident_edges(editor):
    assert editor.delete_node("a") is True
    assert editor.get_node("a") is None
    assert all("a" not in (e.source, e.target) for e in editor.edges)
    result = editor.current_tree()
    assert _child_ids(result.data.root) == ["b", "c"]
    assert result.pruned_ids == ["a1", "a2"]


def test_delete_missing_node(editor):
    assert editor.delete_node("ghost") is False


def test_delete_root_falls_back(editor):
    editor.delete_node("r")
    result = editor.current_tree()
    assert result.ok
    assert result.data.root.id == "a"


def test_reparent_node(editor):
    edge = editor.reparent_node("a2", "b")
    assert edge.id == "eb-a2"
    tree = editor.current_tree().data
    assert _child_ids(tree.root.children[0]) == ["a1"]
    assert _child_ids(tree.root.children[1]) == ["a2"]


def test_reparent_under_descendant_is_refused(editor):
    with pytest.raises(ValueError):
        editor.reparent_node("a", "a1")
    with pytest.raises(ValueError):
        editor.reparent_node("a", "a")
    assert editor.current_tree().ok


def test_set_layout_keeps_edits(editor):
    editor.update_node_data("b", NodeDataPatch(label="Money"))
    child = editor.add_child("c", label="Airbnb")
    editor.set_layout(LayoutType.RADIAL)

    assert editor.layout_type == LayoutType.RADIAL
    root = editor.get_node("r")
    assert (root.position.x, root.position.y) == (0, 0)
    assert editor.get_node("b").data.label == "Money"
    assert editor.get_node(child.id) is not None


def test_set_layout_falls_back_to_canonical_on_failure(editor, sample_tree):
    editor.update(lambda s: s.evolve(edges=s.edges + (GraphEdge(source="c", target="r"),)))
    assert editor.current_tree().reason == FailureReason.CYCLE_DETECTED
    editor.set_layout("TB")
    assert len(editor.edges) == 5
    assert editor.current_tree().data.to_json_dict() == sample_tree.to_json_dict()


def test_snapshot_tree_keeps_previous_on_failure(editor, sample_tree):
    editor.update(lambda s: s.evolve(edges=s.edges + (GraphEdge(source="c", target="r"),)))
    assert editor.snapshot_tree().to_json_dict() == sample_tree.to_json_dict()


def test_relayout_after_add_child(editor):
    child = editor.add_child("a2")
    editor.relayout()
    assert editor.get_node(child.id).position.x == 810


def test_search_highlights(editor):
    matches = editor.search("FLIGHT")
    assert matches == ["a"]
    assert editor.get_node("a").data.highlighted is True
    assert editor.get_node("b").data.highlighted is False

    assert editor.search("2k") == ["b"]
    assert editor.get_node("a").data.highlighted is False

    assert editor.search("") == []
    assert not any(n.data.highlighted for n in editor.nodes)


def test_search_state_does_not_reach_tree(editor):
    editor.search("budget")
    dumped = editor.current_tree().data.to_json_dict()
    assert "highlighted" not in dumped["root"]["children"][1]


def test_updates_apply_to_latest_state(editor):
    """Two transforms issued from the same starting snapshot both land."""
    start = editor.state
    editor.update_node_data("a", NodeDataPatch(label="Planes"))
    editor.update_style("a", NodeStyle(font_size="sm"))
    node = editor.get_node("a")
    assert node.data.label == "Planes"
    assert node.data.style.font_size == FontSize.SM
    # The old snapshot is untouched
    assert start.get_node("a").data.label == "Flights"
    assert editor.state.version == start.version + 2


def test_no_op_update_does_not_notify(editor):
    calls = []
    editor.on_change(lambda: calls.append(1))
    assert editor.update(lambda s: None) is None
    editor.delete_node("ghost")
    assert calls == []
    editor.move_node("a", 0, 0)
    assert calls == [1]


def test_failing_callback_does_not_break_mutation(editor):
    def broken():
        raise RuntimeError("boom")

    editor.on_change(broken)
    assert editor.delete_node("c") is True
    assert editor.get_node("c") is None
