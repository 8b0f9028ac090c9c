"""
Dashboard Router
=================
Control panel page and the WebSocket feed that keeps it live.
"""

import os
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, FileResponse

from core.state import MockState, get_state

logger = logging.getLogger("mock_output")

router = APIRouter(tags=["dashboard"])

STATIC_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "static")


@router.get("/", include_in_schema=False)
async def get_panel():
    panel_path = os.path.join(STATIC_DIR, "panel.html")
    if os.path.exists(panel_path):
        return FileResponse(panel_path)
    return JSONResponse({"error": "panel.html not found"}, status_code=404)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, state: MockState = Depends(get_state)):
    try:
        await state.manager.connect(websocket, state.snapshot())
        while True:
            # Panels never send anything meaningful; this just waits for the close
            await websocket.receive_text()
    except WebSocketDisconnect:
        state.manager.disconnect(websocket)
