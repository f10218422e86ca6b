"""Shared fixtures for the mind map tests."""

import pytest

from mindmap.editor import MindMapEditor
from mindmap.models import GraphEdge, GraphNode, MindMapData, NodeData


SAMPLE_TREE = {
    "root": {
        "id": "r",
        "label": "Trip to Lisbon",
        "category": "idea",
        "createdAt": 1700000000000,
        "children": [
            {
                "id": "a",
                "label": "Flights",
                "category": "task",
                "children": [
                    {
                        "id": "a1",
                        "label": "Book seats",
                        "category": "task",
                        "style": {"backgroundColor": "#123456", "fontSize": "lg"},
                    },
                    {"id": "a2", "label": "Direct or via Madrid?", "category": "question"},
                ],
            },
            {
                "id": "b",
                "label": "Budget",
                "category": "fact",
                "details": "About 2k",
                "links": [{"title": "Rates", "url": "https://example.com/rates"}],
            },
            {"id": "c", "label": "Hotels"},
        ],
    }
}


@pytest.fixture
def sample_tree() -> MindMapData:
    """Six-node map: r -> (a -> (a1, a2), b, c)."""
    return MindMapData.from_json_dict(SAMPLE_TREE)


@pytest.fixture
def editor(sample_tree) -> MindMapEditor:
    """Editor with the sample map loaded in LR layout."""
    ed = MindMapEditor()
    ed.load(sample_tree, "LR")
    return ed


@pytest.fixture
def make_graph():
    """Build (nodes, edges) from ids and (source, target) pairs."""
    def build(node_ids, pairs):
        nodes = [GraphNode(id=nid, data=NodeData(label=nid.upper())) for nid in node_ids]
        edges = [GraphEdge(source=s, target=t) for s, t in pairs]
        return nodes, edges
    return build
