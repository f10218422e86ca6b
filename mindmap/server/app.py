"""
VoiceMap Backend - FastAPI Application

It provides:
- REST API for the live mind map (load, layout, node edits, enrichment)
- Reconstruction of the canonical tree for save/export
- WebSocket endpoint for real-time updates
- CORS configuration for local frontend development
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..analysis import summarize_map
from ..config import LayoutConfig
from ..editor import MindMapEditor
from ..enrichment import merge_enrichment
from ..layout import LayoutType
from ..models import (
    AddChildRequest,
    EnrichmentRequest,
    MindMapData,
    MoveNodeRequest,
    NodeCategory,
    NodeDataPatch,
    NodeStyle,
    ReparentRequest,
)
from ..validation import validate_graph, validation_summary
from .websocket_manager import ws_manager

logger = logging.getLogger(__name__)

# One editor session per process
editor = MindMapEditor(LayoutConfig.from_env())


# --- Async change notification ---
# Bridge between sync editor callbacks and async WebSocket broadcasts

# Created per lifespan so it belongs to the running event loop
_change_event: Optional[asyncio.Event] = None


def on_map_change():
    """Callback for graph changes - sets event for async handler."""
    if _change_event is not None:
        _change_event.set()


async def change_broadcaster(event: asyncio.Event):
    """Background task that broadcasts changes to WebSocket clients."""
    while True:
        await event.wait()
        event.clear()

        state = editor.state
        await ws_manager.notify_map_updated(
            state.root_id if state else None,
            state.version if state else 0,
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup/shutdown tasks."""
    global _change_event
    _change_event = asyncio.Event()
    editor.on_change(on_map_change)
    broadcaster_task = asyncio.create_task(change_broadcaster(_change_event))

    yield

    broadcaster_task.cancel()
    try:
        await broadcaster_task
    except asyncio.CancelledError:
        pass
    _change_event = None


# --- FastAPI App ---

app = FastAPI(
    title="VoiceMap API",
    description="Layout and reconstruction backend for voice-generated mind maps",
    version="1.0.0",
    lifespan=lifespan
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require_map():
    if not editor.is_loaded:
        raise HTTPException(status_code=400, detail="No mind map loaded")


def _node_response(node):
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return {"success": True, "node": node.to_json_dict()}


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "connections": ws_manager.connection_count}


# --- Map State ---

class LoadMapRequest(BaseModel):
    data: MindMapData
    layout: LayoutType = LayoutType.LR


class LayoutRequest(BaseModel):
    layout: LayoutType


@app.post("/api/map")
async def load_map(request: LoadMapRequest):
    """Load a canonical tree and lay it out."""
    editor.load(request.data, request.layout)
    return {"success": True, **editor.get_state()}


@app.get("/api/map")
async def get_map():
    """Get the current positioned graph."""
    return editor.get_state()


@app.post("/api/map/layout")
async def change_layout(request: LayoutRequest):
    """Rebuild the graph with another layout policy."""
    _require_map()
    editor.set_layout(request.layout)
    return {"success": True, **editor.get_state()}


@app.get("/api/map/tree")
async def get_tree():
    """Reconstruct the canonical tree from the live graph."""
    _require_map()
    result = editor.current_tree()
    if not result.ok:
        raise HTTPException(status_code=409, detail=result.to_dict())
    return result.to_dict()


@app.get("/api/map/validate")
async def validate_map():
    """Check the live graph for structural issues."""
    _require_map()
    issues = validate_graph(editor.nodes, editor.edges)
    return {
        "issues": [i.to_dict() for i in issues],
        "summary": validation_summary(issues),
    }


@app.get("/api/map/summary")
async def get_summary():
    """Summarize the tree that would be saved right now."""
    _require_map()
    data = editor.snapshot_tree()
    return summarize_map(data).to_dict()


# --- Node Operations ---

# Search endpoint MUST be before the parameterized route
@app.get("/api/nodes/search")
async def search_nodes(q: Optional[str] = Query(default="")):
    """Highlight and return nodes whose label or details match."""
    _require_map()
    matches = editor.search(q or "")
    return {"success": True, "node_ids": matches}


@app.get("/api/nodes/{node_id}")
async def get_node(node_id: str):
    """Get a specific node."""
    return _node_response(editor.get_node(node_id))


@app.patch("/api/nodes/{node_id}")
async def update_node(node_id: str, request: NodeDataPatch):
    """Update a node's label, details, category, links or style."""
    _require_map()
    return _node_response(editor.update_node_data(node_id, request))


@app.patch("/api/nodes/{node_id}/style")
async def update_node_style(node_id: str, request: NodeStyle):
    """Merge style overrides into a node's style."""
    _require_map()
    return _node_response(editor.update_style(node_id, request))


@app.patch("/api/nodes/{node_id}/position")
async def move_node(node_id: str, request: MoveNodeRequest):
    """Set a node's position."""
    _require_map()
    return _node_response(editor.move_node(node_id, request.x, request.y))


@app.patch("/api/nodes/{node_id}/parent")
async def reparent_node(node_id: str, request: ReparentRequest):
    """Move a node under another parent."""
    _require_map()
    try:
        edge = editor.reparent_node(node_id, request.parent_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if edge is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return {"success": True, "edge": edge.to_json_dict()}


@app.post("/api/nodes/{node_id}/children")
async def add_child(node_id: str, request: Optional[AddChildRequest] = None):
    """Create a child node under `node_id`."""
    _require_map()
    request = request or AddChildRequest()
    child = editor.add_child(node_id, label=request.label, category=request.category)
    return _node_response(child)


@app.delete("/api/nodes/{node_id}")
async def delete_node(node_id: str):
    """Delete a node and its edges."""
    _require_map()
    if editor.delete_node(node_id):
        return {"success": True}
    raise HTTPException(status_code=404, detail="Node not found")


@app.post("/api/nodes/{node_id}/enrichment")
async def merge_node_enrichment(node_id: str, request: EnrichmentRequest):
    """
    Merge a search/maps grounding result into a node.

    A node deleted while the lookup was running is not an error; the
    response just reports that nothing was merged.
    """
    merged = merge_enrichment(editor, node_id, request, source=request.source)
    return {"success": merged}


# --- Enums for Frontend ---

@app.get("/api/enums/categories")
async def get_categories():
    """Get available node categories."""
    return {"categories": [c.value for c in NodeCategory]}


@app.get("/api/enums/layouts")
async def get_layouts():
    """Get available layout policies."""
    return {"layouts": [layout.value for layout in LayoutType]}


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Real-time update channel."""
    await ws_manager.connect(websocket)
    try:
        while True:
            # Clients only listen; incoming messages are ignored
            await websocket.receive_text()
    except WebSocketDisconnect:
        await ws_manager.disconnect(websocket)
