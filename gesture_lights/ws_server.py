"""
HTTP / WebSocket surface.

Handles:
- FastAPI WebSocket endpoint at /events for sensors running on another host
- Optional Bearer token authentication
- Health and statistics endpoints
"""

import logging
from typing import Callable, Dict, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, status

logger = logging.getLogger(__name__)


class EventServer:
    """
    WebSocket server that accepts sensor events.

    Each text frame is one event line. Frames are handed to on_line on the
    event loop, so they are routed one at a time together with the local
    sensor's output.
    """

    def __init__(
        self,
        on_line: Callable[[str], None],
        get_stats: Optional[Callable[[], dict]] = None,
        token: Optional[str] = None,
    ):
        """
        Initialize event server.

        Args:
            on_line: Handler for each received event line
            get_stats: Provider for the /stats endpoint
            token: Bearer token required on /events (no auth when None)
        """
        self.on_line = on_line
        self.get_stats = get_stats
        self.token = token

        self._connected_clients: Dict[str, WebSocket] = {}
        self._client_counter = 0
        self._total_messages = 0

        self.app = FastAPI(title="Gesture Lights")
        self._setup_routes()

    def _setup_routes(self):
        """Set up FastAPI routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {
                "status": "ok",
                "connected_clients": len(self._connected_clients),
                "total_messages": self._total_messages,
            }

        @self.app.get("/stats")
        async def stats():
            return self.get_stats() if self.get_stats else {}

        @self.app.websocket("/events")
        async def websocket_events(websocket: WebSocket):
            """WebSocket endpoint for sensor events."""
            await self._handle_websocket(websocket)

    async def _handle_websocket(self, websocket: WebSocket) -> None:
        if self.token and not self._verify_token(websocket.headers.get("authorization", "")):
            logger.warning(f"Authentication failed from {websocket.client}")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await websocket.accept()

        self._client_counter += 1
        client_id = f"sensor_{self._client_counter}"
        self._connected_clients[client_id] = websocket
        logger.info(f"Sensor connected: {client_id} from {websocket.client}")

        try:
            while True:
                data = await websocket.receive_text()
                self._total_messages += 1
                self.on_line(data)
        except WebSocketDisconnect:
            logger.info(f"Sensor disconnected: {client_id}")
        finally:
            self._connected_clients.pop(client_id, None)

    def _verify_token(self, auth_header: str) -> bool:
        """Verify Bearer token."""
        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return False
        return parts[1] == self.token
