"""
Panel Feed
===========
Keeps the open control panels in sync. A panel gets the full snapshot when it
connects; after that every recorded upload, behavior change and log clear is
pushed to all of them. A panel that can no longer be written to is dropped.
"""

import logging
from typing import Any, Dict, List
from fastapi import WebSocket

logger = logging.getLogger("mock_output")


class ConnectionManager:
    def __init__(self):
        self.active_connections: List[WebSocket] = []

    def __len__(self) -> int:
        return len(self.active_connections)

    async def connect(self, websocket: WebSocket, snapshot: Dict[str, Any]):
        await websocket.accept()
        # No await between registering and starting the snapshot send, so the
        # snapshot is always the first frame a panel gets
        self.active_connections.append(websocket)
        logger.info(f"🖥️ Control panel connected ({len(self)} open)")
        await websocket.send_json({"type": "initial", "data": snapshot})

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
            logger.info(f"🖥️ Control panel left ({len(self)} open)")

    async def broadcast(self, message: Dict[str, Any]):
        for connection in list(self.active_connections):
            if not await self._deliver(connection, message):
                self.disconnect(connection)

    async def _deliver(self, connection: WebSocket, message: Dict[str, Any]) -> bool:
        try:
            await connection.send_json(message)
        except Exception as e:
            logger.debug(f"Dropping panel connection after {message.get('type')!r}: {e}")
            return False
        return True
