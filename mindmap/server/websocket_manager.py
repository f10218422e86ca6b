"""
WebSocket Manager - Handles real-time connections and broadcasts.

Every connected client receives a map_updated event when the live graph
changes and then fetches the new state over REST.
"""
import asyncio
import json
import logging
from fastapi import WebSocket

logger = logging.getLogger(__name__)


class WebSocketManager:
    """Manages WebSocket connections and broadcasts."""

    def __init__(self):
        self._connections: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket):
        """Accept and register a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)
        logger.info("WebSocket connected. Total connections: %d", len(self._connections))

    async def disconnect(self, websocket: WebSocket):
        """Remove a WebSocket connection."""
        async with self._lock:
            self._connections.discard(websocket)
        logger.info("WebSocket disconnected. Total connections: %d", len(self._connections))

    async def broadcast(self, message: dict):
        """
        Broadcast a message to all connected clients.

        Clients whose send fails are dropped.
        """
        if not self._connections:
            return

        # Serialize once for all clients
        message_text = json.dumps(message)
        failed: set[WebSocket] = set()

        async with self._lock:
            for websocket in self._connections:
                try:
                    await websocket.send_text(message_text)
                except Exception:
                    logger.debug("Dropping WebSocket after failed send", exc_info=True)
                    failed.add(websocket)

            self._connections -= failed

    async def notify_map_updated(self, root_id: str | None = None, version: int = 0):
        """Tell clients to fetch GET /api/map again."""
        await self.broadcast({
            "type": "map_updated",
            "root_id": root_id,
            "version": version,
        })

    @property
    def connection_count(self) -> int:
        """Get the number of active connections."""
        return len(self._connections)


# Global instance
ws_manager = WebSocketManager()
