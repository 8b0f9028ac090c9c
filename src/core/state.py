"""
Application State
==================
The mutable state one running mock owns: behavior, request log, live
connections and the bound upload routes.

Each FastAPI app built by create_app() gets its own MockState on app.state,
and handlers reach it through the dependencies below instead of module globals.
"""

from dataclasses import dataclass, field
from typing import Optional

from fastapi import Request
from fastapi.requests import HTTPConnection

from core.behavior import BehaviorStore
from core.config import UploadRouteConfig
from core.recorder import RequestRecorder
from core.websocket import ConnectionManager


@dataclass
class MockState:
    upload_route: UploadRouteConfig
    behavior_store: BehaviorStore
    recorder: RequestRecorder
    manager: ConnectionManager = field(default_factory=ConnectionManager)

    @classmethod
    def build(cls, upload_route: Optional[UploadRouteConfig] = None) -> "MockState":
        store = BehaviorStore()
        return cls(
            upload_route=upload_route or UploadRouteConfig(),
            behavior_store=store,
            recorder=RequestRecorder(store),
        )

    def snapshot(self) -> dict:
        """Payload used for the initial WebSocket message."""
        return {
            "behavior": self.behavior_store.get().to_json(),
            "log": [e.to_json() for e in self.recorder.list()],
            "routes": {"upload": self.upload_route.to_json()},
        }


# ── Dependencies ──

def get_state(connection: HTTPConnection) -> MockState:
    return connection.app.state.mock


def get_behavior_store(request: Request) -> BehaviorStore:
    return get_state(request).behavior_store


def get_recorder(request: Request) -> RequestRecorder:
    return get_state(request).recorder


def get_manager(connection: HTTPConnection) -> ConnectionManager:
    return get_state(connection).manager
