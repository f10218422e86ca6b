"""
Mind Map Editor - Single source of truth for one editing session.

This module implements:
- Immutable graph snapshots (GraphState) swapped under a lock
- Every mutation as a transform from the latest state to the next one,
  so no handler can write back a stale snapshot
- Node operations: relabel/patch, restyle, move, add child, re-parent,
  delete, search highlighting
- Full layout rebuilds on load and on layout change
- Reconstruction of the canonical tree for save/export
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from .analysis import reachable_from
from .config import LayoutConfig
from .flatten import resolve_background_color
from .layout import LayoutType, apply_layout, get_layouted_elements
from .models import (
    GraphEdge,
    GraphNode,
    MindMapData,
    NodeCategory,
    NodeData,
    NodeDataPatch,
    NodeStyle,
    Position,
    PositionedGraph,
    edge_id_for,
    generate_node_id,
    now_ms,
)
from .reconstruct import ReconstructionResult, reconstruct_tree

logger = logging.getLogger(__name__)

# NodeData fields a patch may reset to null
CLEARABLE_FIELDS = frozenset({"details", "category", "style"})


@dataclass(frozen=True)
class GraphState:
    """One immutable snapshot of the live graph."""
    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()
    root_id: Optional[str] = None
    layout_type: LayoutType = LayoutType.LR
    # Last canonical tree loaded or rebuilt from, kept as the save fallback
    canonical: Optional[MindMapData] = None
    version: int = 0
    _index: dict = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "_index", {n.id: n for n in self.nodes})

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        """Get a node by ID (O(1) lookup)."""
        return self._index.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._index

    def evolve(self, **changes) -> "GraphState":
        """Next snapshot with `changes` applied and the version bumped."""
        return replace(self, version=self.version + 1, **changes)

    def replace_node(
        self,
        node_id: str,
        fn: Callable[[GraphNode], GraphNode]
    ) -> Optional["GraphState"]:
        """Next snapshot with one node replaced by fn(node); None if absent."""
        node = self._index.get(node_id)
        if node is None:
            return None
        updated = fn(node)
        return self.evolve(nodes=tuple(
            updated if n.id == node_id else n for n in self.nodes
        ))

    def to_graph(self) -> PositionedGraph:
        return PositionedGraph(nodes=list(self.nodes), edges=list(self.edges))


def _with_data(node: GraphNode, fallback: str, **updates) -> GraphNode:
    """Copy of `node` with data fields replaced and its color re-resolved."""
    data = node.data.model_copy(update=updates)
    color = resolve_background_color(data.style, data.category, fallback)
    data = data.model_copy(update={"color": color})
    return node.model_copy(update={"data": data})


class MindMapEditor:
    """
    Holds the live graph of one editing session.

    All mutations go through `update(transform)`: the transform receives
    the latest snapshot and returns the next one (or None for "no change").
    Mutations on ids that no longer exist are no-ops returning None/False,
    because asynchronous callers may arrive after a node was deleted.
    """

    def __init__(self, config: Optional[LayoutConfig] = None):
        self._config = config or LayoutConfig()
        self._state: Optional[GraphState] = None
        self._lock = threading.RLock()
        self._on_change_callbacks: list[Callable] = []

    # --- Properties ---

    @property
    def config(self) -> LayoutConfig:
        return self._config

    @property
    def state(self) -> Optional[GraphState]:
        """The current snapshot (None before a map is loaded)."""
        return self._state

    @property
    def is_loaded(self) -> bool:
        return self._state is not None

    @property
    def root_id(self) -> Optional[str]:
        return self._state.root_id if self._state else None

    @property
    def layout_type(self) -> LayoutType:
        return self._state.layout_type if self._state else LayoutType.LR

    @property
    def nodes(self) -> list[GraphNode]:
        return list(self._state.nodes) if self._state else []

    @property
    def edges(self) -> list[GraphEdge]:
        return list(self._state.edges) if self._state else []

    # --- Change Callbacks ---

    def on_change(self, callback: Callable):
        """Register a callback for graph changes."""
        if callback not in self._on_change_callbacks:
            self._on_change_callbacks.append(callback)

    def _notify_change(self):
        """Notify all registered callbacks of a change."""
        for callback in self._on_change_callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Change callback %r failed", callback)

    # --- State transitions ---

    def _require_state(self) -> GraphState:
        if self._state is None:
            raise ValueError("No mind map loaded")
        return self._state

    def update(
        self,
        transform: Callable[[GraphState], Optional[GraphState]]
    ) -> Optional[GraphState]:
        """
        Apply `transform` to the latest snapshot atomically.

        Returns the new snapshot, or None when the transform made no change.
        Raises ValueError if no map is loaded.
        """
        with self._lock:
            current = self._require_state()
            next_state = transform(current)
            if next_state is None or next_state is current:
                return None
            self._state = next_state
        self._notify_change()
        return next_state

    def _build_state(
        self,
        data: MindMapData,
        layout_type: LayoutType,
        version: int = 0
    ) -> GraphState:
        graph = get_layouted_elements(data, layout_type, self._config)
        return GraphState(
            nodes=tuple(graph.nodes),
            edges=tuple(graph.edges),
            root_id=data.root.id,
            layout_type=layout_type,
            canonical=data,
            version=version,
        )

    # --- Loading & Layout ---

    def load(self, data: MindMapData, layout_type: LayoutType | str = LayoutType.LR) -> GraphState:
        """Replace the session with a freshly laid out map."""
        layout_type = LayoutType(layout_type)
        with self._lock:
            version = self._state.version + 1 if self._state else 0
            self._state = self._build_state(data, layout_type, version)
            state = self._state
        logger.debug("Loaded map %r (%d nodes)", data.root.id, len(state.nodes))
        self._notify_change()
        return state

    def set_layout(self, layout_type: LayoutType | str) -> GraphState:
        """
        Rebuild the whole graph with another layout policy.

        The current graph is reconstructed first so edits survive; nodes
        detached from the root are dropped. If reconstruction fails the last
        canonical tree is used instead.
        """
        layout_type = LayoutType(layout_type)

        def transform(state: GraphState) -> GraphState:
            result = reconstruct_tree(list(state.nodes), list(state.edges), state.root_id)
            if result.ok:
                data = result.data
            else:
                logger.warning(
                    "Layout change could not reconstruct the map (%s); "
                    "using the last saved tree", result.message
                )
                data = state.canonical
            return self._build_state(data, layout_type, state.version + 1)

        return self.update(transform)

    def relayout(self) -> Optional[GraphState]:
        """Re-run the current layout over the current nodes and edges."""
        def transform(state: GraphState) -> Optional[GraphState]:
            if not state.nodes:
                return None
            nodes = apply_layout(
                list(state.nodes), list(state.edges),
                state.root_id, state.layout_type, self._config
            )
            return state.evolve(nodes=tuple(nodes))

        return self.update(transform)

    # --- Node Operations ---

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        """Get a node by ID from the latest snapshot."""
        state = self._state
        return state.get_node(node_id) if state else None

    def update_node_data(self, node_id: str, patch: NodeDataPatch) -> Optional[GraphNode]:
        """
        Apply the fields set on `patch` to a node's display data.

        An explicit null clears details, category or style. A null label or
        links value is ignored.
        """
        updates = {}
        for name in patch.model_fields_set:
            value = getattr(patch, name)
            if value is not None or name in CLEARABLE_FIELDS:
                updates[name] = value
        if not updates:
            return self.get_node(node_id)

        fallback = self._config.fallback_color
        state = self.update(
            lambda s: s.replace_node(node_id, lambda n: _with_data(n, fallback, **updates))
        )
        return state.get_node(node_id) if state else None

    def update_style(self, node_id: str, style_patch: NodeStyle) -> Optional[GraphNode]:
        """Merge a style patch into a node's style."""
        def restyle(node: GraphNode) -> GraphNode:
            base = node.data.style or NodeStyle()
            style = base.merged(style_patch)
            return _with_data(
                node, self._config.fallback_color,
                style=None if style.is_empty() else style,
            )

        state = self.update(lambda s: s.replace_node(node_id, restyle))
        return state.get_node(node_id) if state else None

    def move_node(self, node_id: str, x: float, y: float) -> Optional[GraphNode]:
        """Set a node's position (e.g. after a drag)."""
        state = self.update(lambda s: s.replace_node(
            node_id, lambda n: n.model_copy(update={"position": Position(x=x, y=y)})
        ))
        return state.get_node(node_id) if state else None

    def add_child(
        self,
        parent_id: str,
        label: str = "New Idea",
        category: NodeCategory = NodeCategory.IDEA
    ) -> Optional[GraphNode]:
        """Create a node under `parent_id`; returns None if the parent is gone."""
        child = GraphNode(
            id=generate_node_id(),
            data=NodeData(
                label=label,
                category=category,
                created_at=now_ms(),
                color=resolve_background_color(None, category, self._config.fallback_color),
            ),
        )
        edge = GraphEdge(
            id=edge_id_for(parent_id, child.id),
            source=parent_id,
            target=child.id,
        )

        def transform(state: GraphState) -> Optional[GraphState]:
            if not state.has_node(parent_id):
                return None
            return state.evolve(
                nodes=state.nodes + (child,),
                edges=state.edges + (edge,),
            )

        state = self.update(transform)
        return state.get_node(child.id) if state else None

    def reparent_node(self, node_id: str, new_parent_id: str) -> Optional[GraphEdge]:
        """
        Move a node (with its subtree) under another parent.

        The new edge goes to the end of the edge list, so the node becomes
        the new parent's last child. Raises ValueError if the new parent is
        the node itself or one of its descendants.
        """
        new_edge = GraphEdge(
            id=edge_id_for(new_parent_id, node_id),
            source=new_parent_id,
            target=node_id,
        )

        def transform(state: GraphState) -> Optional[GraphState]:
            if not state.has_node(node_id) or not state.has_node(new_parent_id):
                return None
            if new_parent_id in reachable_from(node_id, list(state.edges)):
                raise ValueError("Cannot move a node under itself or its descendants")
            edges = tuple(e for e in state.edges if e.target != node_id)
            return state.evolve(edges=edges + (new_edge,))

        state = self.update(transform)
        return new_edge if state else None

    def delete_node(self, node_id: str) -> bool:
        """
        Delete a node and all its edges.

        Its children are not deleted; they become detached fragments that
        the next reconstruction drops unless they are reattached.
        """
        def transform(state: GraphState) -> Optional[GraphState]:
            if not state.has_node(node_id):
                return None
            return state.evolve(
                nodes=tuple(n for n in state.nodes if n.id != node_id),
                edges=tuple(
                    e for e in state.edges
                    if e.source != node_id and e.target != node_id
                ),
            )

        return self.update(transform) is not None

    def search(self, term: str) -> list[str]:
        """
        Highlight nodes whose label or details contain `term`.

        Matching is case-insensitive. An empty term clears all highlights.
        Returns the ids of matching nodes.
        """
        needle = term.strip().lower()
        matches: list[str] = []

        def is_match(node: GraphNode) -> bool:
            if not needle:
                return False
            details = node.data.details or ""
            return needle in node.data.label.lower() or needle in details.lower()

        def transform(state: GraphState) -> Optional[GraphState]:
            matches.clear()
            nodes = []
            changed = False
            for node in state.nodes:
                hit = is_match(node)
                if hit:
                    matches.append(node.id)
                if node.data.highlighted != hit:
                    changed = True
                    node = node.model_copy(update={
                        "data": node.data.model_copy(update={"highlighted": hit})
                    })
                nodes.append(node)
            return state.evolve(nodes=tuple(nodes)) if changed else None

        self.update(transform)
        return matches

    # --- Reconstruction ---

    def current_tree(self) -> ReconstructionResult:
        """Reconstruct the canonical tree from the latest snapshot."""
        state = self._require_state()
        return reconstruct_tree(list(state.nodes), list(state.edges), state.root_id)

    def snapshot_tree(self) -> Optional[MindMapData]:
        """
        The tree to save or export right now.

        Falls back to the last canonical tree when the graph cannot be
        reconstructed.
        """
        state = self._require_state()
        result = reconstruct_tree(list(state.nodes), list(state.edges), state.root_id)
        if result.ok:
            return result.data
        logger.warning("Reconstruction failed (%s); keeping previous tree", result.message)
        return state.canonical

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        state = self._state
        if state is None:
            return {
                "graph": None,
                "root_id": None,
                "layout": None,
                "version": 0,
            }

        return {
            "graph": state.to_graph().to_json_dict(),
            "root_id": state.root_id,
            "layout": state.layout_type.value,
            "version": state.version,
        }
