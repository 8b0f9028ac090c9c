"""
Upload Responder: the chaos scenarios end to end.

Synchronous flows go through TestClient. Anything that waits (delays, held
connections, overlapping requests) runs on httpx.AsyncClient under anyio so we
can cancel the request or interleave two of them.
"""
import time

import anyio
import pytest
from fastapi.testclient import TestClient

from core.behavior import ChaosMode
from core.config import UploadRouteConfig
from main import create_app


# ── Scenario A: normal ──

def test_normal_upload(client, state, pdf_file):
    resp = client.post("/upload", files=pdf_file)

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "message": "PDF received", "filename": "report.pdf"}

    entries = state.recorder.list()
    assert len(entries) == 1
    entry = entries[0]
    assert entry.response_status == 200
    assert entry.chaos_mode is ChaosMode.NORMAL
    assert entry.note is None
    assert entry.method == "POST"
    assert entry.path == "/upload"
    assert entry.file_name == "report.pdf"
    assert entry.file_size == len(pdf_file["pdf"][1])
    assert entry.has_auth is False


def test_upload_without_file(client, state):
    resp = client.post("/upload")
    assert resp.status_code == 200
    assert resp.json()["filename"] is None

    entry = state.recorder.list()[0]
    assert entry.file_name is None
    assert entry.file_size is None


def test_form_without_file_part(client, state):
    resp = client.post("/upload", data={"jobId": "42"})
    assert resp.status_code == 200
    assert resp.json()["filename"] is None
    assert state.recorder.list()[0].file_name is None


def test_file_under_another_field_name_is_still_seen(client, state):
    resp = client.post("/upload", files={"document": ("other.pdf", b"%PDF-1.7", "application/pdf")})
    assert resp.json()["filename"] == "other.pdf"
    assert state.recorder.list()[0].file_size == 8


def test_configured_file_field_wins():
    app = create_app(UploadRouteConfig(paths=["/upload"], file_field="document"))
    client = TestClient(app)
    resp = client.post("/upload", files=[
        ("attachment", ("cover.txt", b"hi", "text/plain")),
        ("document", ("invoice.pdf", b"%PDF-1.4", "application/pdf")),
    ])
    assert resp.json()["filename"] == "invoice.pdf"


def test_auth_header_is_recorded_not_checked(client, state, pdf_file):
    resp = client.post("/upload", files=pdf_file, auth=("worker", "wrong-password"))
    assert resp.status_code == 200
    assert state.recorder.list()[0].has_auth is True


def test_every_configured_path_shares_one_behavior(client, state, pdf_file):
    client.post("/api/behavior", json={"mode": "error", "errorCode": 502})
    first = client.post("/upload", files=pdf_file)
    second = client.post("/printapi/print", files=pdf_file)

    assert first.status_code == second.status_code == 502
    assert [e.path for e in state.recorder.list()] == ["/printapi/print", "/upload"]


def test_unconfigured_method_is_not_an_upload(client, state):
    assert client.get("/upload").status_code == 405
    assert state.recorder.list() == []


def test_custom_method_binding():
    app = create_app(UploadRouteConfig(method="PUT", paths=["/documents"]))
    client = TestClient(app)
    assert client.put("/documents", files={"pdf": ("a.pdf", b"x", "application/pdf")}).status_code == 200
    assert client.post("/documents").status_code == 405


# ── Scenario B / E: error ──

def test_error_mode_uses_phrase_table(client, state, pdf_file):
    client.post("/api/behavior", json={"mode": "error", "errorCode": 503})
    resp = client.post("/upload", files=pdf_file)

    assert resp.status_code == 503
    assert resp.json() == {"error": "Service Unavailable"}

    entry = state.recorder.list()[0]
    assert entry.response_status == 503
    assert entry.note == "chaos: Service Unavailable"
    assert entry.chaos_mode is ChaosMode.ERROR


def test_error_mode_custom_message(client, state, pdf_file):
    client.post("/api/behavior", json={"mode": "error", "errorCode": 400, "errorMessage": "Custom"})
    resp = client.post("/upload", files=pdf_file)

    assert resp.status_code == 400
    assert resp.json() == {"error": "Custom"}
    assert state.recorder.list()[0].note == "chaos: Custom"


def test_error_mode_unmapped_code(client, pdf_file):
    client.post("/api/behavior", json={"mode": "error", "errorCode": 418})
    resp = client.post("/upload", files=pdf_file)
    assert resp.status_code == 418
    assert resp.json() == {"error": "Error 418"}


def test_error_mode_default_code(client, pdf_file):
    client.post("/api/behavior", json={"mode": "error"})
    resp = client.post("/upload", files=pdf_file)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal Server Error"}


def test_error_mode_bodyless_status(client, state):
    client.post("/api/behavior", json={"mode": "error", "errorCode": 204})
    resp = client.post("/upload")
    assert resp.status_code == 204
    assert resp.content == b""
    assert state.recorder.list()[0].response_status == 204


def test_uploads_are_broadcast_to_panels(client, panel, pdf_file):
    client.post("/upload", files=pdf_file)
    update = panel.sent[-1]
    assert update["type"] == "update"
    assert update["data"]["fileName"] == "report.pdf"
    assert update["data"]["responseStatus"] == 200
    assert update["behavior"]["mode"] == "normal"


def test_broken_panel_does_not_break_uploads(client, state, panel, pdf_file):
    panel.fail = True
    resp = client.post("/upload", files=pdf_file)
    assert resp.status_code == 200
    assert panel not in state.manager.active_connections


# ── Scenario C: timeout ──

@pytest.mark.anyio
async def test_timeout_mode_never_responds(async_client, state, pdf_file):
    state.behavior_store.set({"mode": "timeout"})

    response = None
    with anyio.move_on_after(0.5) as scope:
        response = await async_client.post("/upload", files=pdf_file)

    assert scope.cancelled_caught
    assert response is None

    entries = state.recorder.list()
    assert len(entries) == 1
    assert entries[0].response_status == 0
    assert entries[0].note == "timeout (no response sent)"
    assert entries[0].chaos_mode is ChaosMode.TIMEOUT
    assert entries[0].file_name == "report.pdf"


@pytest.mark.anyio
async def test_timeout_is_recorded_after_the_delay(async_client, state):
    state.behavior_store.set({"mode": "timeout", "delayMs": 300})

    with anyio.move_on_after(0.15):
        await async_client.post("/upload")
    # Still inside the delay when the client gave up: nothing recorded yet
    assert state.recorder.list() == []

    with anyio.move_on_after(0.6):
        await async_client.post("/upload")
    assert [e.response_status for e in state.recorder.list()] == [0]


@pytest.mark.anyio
async def test_held_request_does_not_block_others(async_client, state, pdf_file):
    state.behavior_store.set({"mode": "timeout"})

    async def hang():
        await async_client.post("/upload", files=pdf_file)

    async with anyio.create_task_group() as tg:
        tg.start_soon(hang)
        await anyio.sleep(0.05)
        state.behavior_store.reset()

        resp = await async_client.post("/printapi/print", files=pdf_file)
        assert resp.status_code == 200
        # Switching back to normal does not release the held request
        await anyio.sleep(0.1)
        assert len(state.recorder.list()) == 2
        tg.cancel_scope.cancel()

    assert [e.response_status for e in state.recorder.list()] == [200, 0]


@pytest.mark.anyio
async def test_held_request_is_released_when_client_disconnects(app, state):
    state.behavior_store.set({"mode": "timeout"})
    client_gone = anyio.Event()
    incoming = [{"type": "http.request", "body": b"", "more_body": False}]
    sent = []

    async def receive():
        if incoming:
            return incoming.pop(0)
        await client_gone.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/upload",
        "raw_path": b"/upload",
        "root_path": "",
        "query_string": b"",
        "headers": [(b"host", b"mock")],
        "client": ("127.0.0.1", 50000),
        "server": ("mock", 80),
    }

    with anyio.fail_after(2):
        async with anyio.create_task_group() as tg:
            tg.start_soon(app, scope, receive, send)
            await anyio.sleep(0.1)
            # Recorded and held: nothing has gone out yet
            assert [e.response_status for e in state.recorder.list()] == [0]
            assert sent == []
            client_gone.set()

    # The handler finished on its own and never wrote a response
    assert sent == []
    assert len(state.recorder.list()) == 1


# ── Scenario D: delay ──

def test_delay_applies_before_responding(client, pdf_file):
    client.post("/api/behavior", json={"mode": "normal", "delayMs": 1000})
    start = time.monotonic()
    resp = client.post("/upload", files=pdf_file)
    elapsed = time.monotonic() - start

    assert resp.status_code == 200
    assert elapsed >= 1.0


def test_delay_applies_in_error_mode(client, pdf_file):
    client.post("/api/behavior", json={"mode": "error", "errorCode": 504, "delayMs": 200})
    start = time.monotonic()
    resp = client.post("/upload", files=pdf_file)
    assert resp.status_code == 504
    assert time.monotonic() - start >= 0.2


# ── Concurrency ──

@pytest.mark.anyio
async def test_mode_change_during_delay_does_not_affect_request(async_client, state, pdf_file):
    state.behavior_store.set({"mode": "normal", "delayMs": 300})
    results = {}

    async def slow_upload():
        results["slow"] = await async_client.post("/upload", files=pdf_file)

    async with anyio.create_task_group() as tg:
        tg.start_soon(slow_upload)
        await anyio.sleep(0.05)
        state.behavior_store.set({"mode": "error", "errorCode": 503})

    assert results["slow"].status_code == 200
    assert results["slow"].json()["ok"] is True
    assert state.recorder.list()[0].response_status == 200


@pytest.mark.anyio
async def test_log_order_follows_recording_not_arrival(async_client, state, pdf_file):
    state.behavior_store.set({"delayMs": 300})
    results = {}

    async def slow_upload():
        results["slow"] = await async_client.post("/upload", files=pdf_file)

    async with anyio.create_task_group() as tg:
        tg.start_soon(slow_upload)
        await anyio.sleep(0.05)
        state.behavior_store.set({"delayMs": 0})
        results["fast"] = await async_client.post("/printapi/print", files=pdf_file)
        # The fast request finished while the slow one is still sleeping
        assert [e.path for e in state.recorder.list()] == ["/printapi/print"]

    assert results["slow"].status_code == results["fast"].status_code == 200
    assert [e.path for e in state.recorder.list()] == ["/upload", "/printapi/print"]
