"""
Live WebSocket observers.
"""
import asyncio
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import WebSocket, WebSocketDisconnect
import structlog

logger = structlog.get_logger()


class ObserverConnection:
    """
    One browser connection.

    Sending to a closed connection is a no-op that returns False.
    """

    def __init__(self, websocket: WebSocket):
        self.id = uuid4().hex
        self.websocket = websocket
        self._closed = False
        self._send_lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return not self._closed

    def mark_closed(self) -> None:
        self._closed = True

    async def send(self, message: Dict[str, Any]) -> bool:
        if self._closed:
            logger.debug("Dropping message for closed connection",
                         connection_id=self.id, message_type=message.get("type"))
            return False
        async with self._send_lock:
            try:
                await self.websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                self._closed = True
                logger.debug("WebSocket send failed", connection_id=self.id, error=str(e))
                return False
        return True


class ConnectionManager:
    """Tracks open observer connections in the order they arrived."""

    def __init__(self):
        self._connections: Dict[str, ObserverConnection] = {}

    async def connect(self, websocket: WebSocket) -> ObserverConnection:
        await websocket.accept()
        return self.register(websocket)

    def register(self, websocket: WebSocket) -> ObserverConnection:
        connection = ObserverConnection(websocket)
        self._connections[connection.id] = connection
        logger.info("WebSocket client connected", connection_id=connection.id,
                    connections=len(self._connections))
        return connection

    def disconnect(self, connection: ObserverConnection) -> None:
        connection.mark_closed()
        if self._connections.pop(connection.id, None) is not None:
            logger.info("WebSocket client disconnected", connection_id=connection.id,
                        connections=len(self._connections))

    def first_open(self) -> Optional[ObserverConnection]:
        """The oldest connection still open, or None."""
        for connection in self._connections.values():
            if connection.is_open:
                return connection
        return None

    def active(self) -> List[ObserverConnection]:
        return [c for c in self._connections.values() if c.is_open]

    def __len__(self) -> int:
        return len(self._connections)
