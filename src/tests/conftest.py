import httpx
import pytest
from fastapi.testclient import TestClient

from core.config import UploadRouteConfig
from main import create_app

UPLOAD_PATHS = ["/upload", "/printapi/print"]
PDF_BYTES = b"%PDF-1.4\n%test\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF\n"


class FakeSocket:
    """Stands in for a connected panel; collects whatever is broadcast."""

    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def app():
    return create_app(UploadRouteConfig(method="POST", paths=list(UPLOAD_PATHS)))


@pytest.fixture
def state(app):
    return app.state.mock


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
async def async_client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://mock") as ac:
        yield ac


@pytest.fixture
def panel(state):
    """A fake control panel already connected to the app's manager."""
    socket = FakeSocket()
    state.manager.active_connections.append(socket)
    return socket


@pytest.fixture
def pdf_file():
    return {"pdf": ("report.pdf", PDF_BYTES, "application/pdf")}
