"""
Upload Responder
=================
The single handler behind every configured upload route. This is where the
chaos happens: snapshot behavior → optional delay → record → answer, fail or
hold the connection open.
"""

import asyncio
import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException

from core.behavior import ChaosMode
from core.config import UploadRouteConfig
from core.recorder import NO_RESPONSE, LogEntry, UploadDescriptor
from core.state import MockState, get_state

logger = logging.getLogger("mock_output")

TIMEOUT_NOTE = "timeout (no response sent)"
SUCCESS_MESSAGE = "PDF received"
BODYLESS_STATUSES = (204, 205, 304)


async def describe_upload(request: Request, file_field: str) -> UploadDescriptor:
    """
    Pull the bits the log cares about out of the request.

    The document is taken from ``file_field`` when present, otherwise from the
    first file part in the form. Requests without a multipart body (or with a
    broken one) are described with no file.
    """
    upload: Optional[UploadFile] = None
    try:
        form = await request.form()
    except HTTPException as e:
        logger.warning(f"⚠️ Unreadable upload body on {request.url.path}: {e.detail}")
        form = None

    if form is not None:
        candidate = form.get(file_field)
        if isinstance(candidate, UploadFile):
            upload = candidate
        else:
            upload = next((v for v in form.values() if isinstance(v, UploadFile)), None)
        file_name, file_size = _file_metadata(upload)
        await form.close()
    else:
        file_name, file_size = None, None

    return UploadDescriptor(
        method=request.method,
        path=request.url.path,
        file_name=file_name,
        file_size=file_size,
        has_auth=bool(request.headers.get("authorization")),
    )


def _file_metadata(upload: Optional[UploadFile]) -> Tuple[Optional[str], Optional[int]]:
    if upload is None:
        return None, None
    size = upload.size
    if size is None:
        # Older multipart backends leave size unset; measure the spooled file
        upload.file.seek(0, 2)
        size = upload.file.tell()
        upload.file.seek(0)
    return upload.filename or None, size


class NoResponse(Response):
    """Sends nothing at all; used once the client has already gone away."""

    async def __call__(self, scope, receive, send):
        return None


async def hold_connection(request: Request):
    """
    Keep the request open without answering it.

    Returns only when the client (or a proxy in between) gives up, which the
    server sees as ``http.disconnect``. Leftover body chunks are drained.
    """
    logger.warning(f"⏳ Holding {request.method} {request.url.path} open (timeout mode)")
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            break
    logger.info(f"🔌 Client gave up on held {request.method} {request.url.path}")


async def publish_entry(state: MockState, entry: LogEntry):
    await state.manager.broadcast({
        "type": "update",
        "data": entry.to_json(),
        "behavior": state.behavior_store.get().to_json(),
    })


async def handle_upload(request: Request, state: MockState = Depends(get_state)):
    # Read once; later behavior changes only affect later requests
    behavior = state.behavior_store.get()
    descriptor = await describe_upload(request, state.upload_route.file_field)

    # Delay applies to every mode, timeout included
    if behavior.delay_ms > 0:
        await asyncio.sleep(behavior.delay_ms / 1000.0)

    if behavior.mode is ChaosMode.TIMEOUT:
        entry = state.recorder.record(descriptor, NO_RESPONSE, TIMEOUT_NOTE)
        await publish_entry(state, entry)
        await hold_connection(request)
        return NoResponse()

    if behavior.mode is ChaosMode.ERROR:
        code = behavior.error_code
        message = behavior.resolve_error_message()
        entry = state.recorder.record(descriptor, code, f"chaos: {message}")
        await publish_entry(state, entry)
        if code in BODYLESS_STATUSES:
            return Response(status_code=code)
        return JSONResponse(content={"error": message}, status_code=code)

    entry = state.recorder.record(descriptor, 200)
    await publish_entry(state, entry)
    return JSONResponse(
        content={"ok": True, "message": SUCCESS_MESSAGE, "filename": descriptor.file_name},
        status_code=200,
    )


def build_upload_router(upload_route: UploadRouteConfig) -> APIRouter:
    """Bind handle_upload to every configured (method, path) pair."""
    router = APIRouter(tags=["upload"])
    for path in upload_route.paths:
        router.add_api_route(
            path,
            handle_upload,
            methods=[upload_route.method],
            name=f"upload {path}",
            summary=f"Chaos-controlled upload ({upload_route.method} {path})",
        )
    return router
