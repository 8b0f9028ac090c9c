"""
Mock Output Server
===================
HTTP stub for a remote document-output service, with runtime chaos control.

  Control panel:  GET  /                     inbox + chaos controls
  Behavior API:   GET  /api/behavior         current behavior
                  POST /api/behavior         change behavior (partial JSON)
                  POST /api/behavior/reset   back to normal
  Inbox API:      GET  /api/inbox            request log (newest first)
                  POST /api/inbox/clear      empty the log
                  GET  /api/routes           bound upload routes
  Upload:         from config.json           answered per current behavior
  Liveness:       GET  /printapi/ping, GET /health   always 200

Run with `python main.py` or `uvicorn main:app` from src/.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import config
from core.config import UploadRouteConfig, load_upload_config
from core.state import MockState
from routers import behavior, dashboard, health, inbox
from services.responder import build_upload_router

# Logging Setup
logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s [%(levelname)s] %(message)s')
logger = logging.getLogger("mock_output")


def create_app(upload_route: Optional[UploadRouteConfig] = None) -> FastAPI:
    """
    Build a fully wired mock.

    Every call returns an independent instance with its own behavior and
    request log. Without an explicit route config, config.json is read.
    """
    if upload_route is None:
        upload_route = load_upload_config()

    app = FastAPI(title="Mock Output Server")
    app.state.mock = MockState.build(upload_route)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(behavior.router)
    app.include_router(inbox.router)
    app.include_router(dashboard.router)
    # Upload paths last so configured paths never shadow the control API
    app.include_router(build_upload_router(upload_route))

    logger.info(f"📤 Upload (from config): {', '.join(upload_route.bindings())} -> responds based on current behavior")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info(f"🚀 Mock Output server listening on port {config.PORT}")
    logger.info(f"   Control panel: http://localhost:{config.PORT}/")
    logger.info("   GET  /printapi/ping     -> 200 (always)")
    logger.info("   GET  /health            -> 200 (always)")
    uvicorn.run(app, host=config.HOST, port=config.PORT)
