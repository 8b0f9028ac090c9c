"""
Health Router
==============
Liveness endpoints. These never go through the chaos engine, so a worker can
tell "the mock is up but misbehaving on purpose" from "the mock is down".
"""

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/printapi/ping")
async def ping():
    return {"status": "ok", "message": "pong"}


@router.get("/health")
async def health():
    return {"status": "ok"}
