"""
Inbox Router
=============
Request log and route introspection for operators.
"""

from fastapi import APIRouter, Depends

from core.recorder import RequestRecorder
from core.state import MockState, get_manager, get_recorder, get_state
from core.websocket import ConnectionManager

router = APIRouter(prefix="/api", tags=["inbox"])


@router.get("/inbox")
async def get_inbox(recorder: RequestRecorder = Depends(get_recorder)):
    """Every recorded upload, newest first (at most 200)."""
    return [entry.to_json() for entry in recorder.list()]


@router.post("/inbox/clear")
async def clear_inbox(
    recorder: RequestRecorder = Depends(get_recorder),
    manager: ConnectionManager = Depends(get_manager),
):
    recorder.clear()
    await manager.broadcast({"type": "cleared"})
    return {"ok": True}


@router.get("/routes")
async def get_routes(state: MockState = Depends(get_state)):
    """The upload bindings this instance was started with."""
    return {"upload": state.upload_route.to_json()}
