"""
Behavior Router
================
Chaos control API: read, change and reset the behavior every upload follows.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from core.behavior import BehaviorStore, InvalidBehaviorError
from core.state import get_behavior_store, get_manager
from core.websocket import ConnectionManager

logger = logging.getLogger("mock_output")

router = APIRouter(prefix="/api/behavior", tags=["behavior"])


async def _read_partial(request: Request) -> dict:
    """Lenient body parsing: anything that is not a JSON object means 'no changes'."""
    body = await request.body()
    if not body:
        return {}
    try:
        data = json.loads(body)
    except ValueError:
        logger.warning("⚠️ Ignoring non-JSON behavior payload")
        return {}
    return data if isinstance(data, dict) else {}


@router.get("")
async def get_behavior(store: BehaviorStore = Depends(get_behavior_store)):
    return store.get().to_json()


@router.post("")
async def set_behavior(
    request: Request,
    store: BehaviorStore = Depends(get_behavior_store),
    manager: ConnectionManager = Depends(get_manager),
):
    partial = await _read_partial(request)
    try:
        behavior = store.set(partial)
    except InvalidBehaviorError as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    payload = behavior.to_json()
    await manager.broadcast({"type": "behavior", "data": payload})
    return payload


@router.post("/reset")
async def reset_behavior(
    store: BehaviorStore = Depends(get_behavior_store),
    manager: ConnectionManager = Depends(get_manager),
):
    payload = store.reset().to_json()
    await manager.broadcast({"type": "behavior", "data": payload})
    return payload
