from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient
from starlette.requests import ClientDisconnect

from voicerelay.api.transcribe import get_relay, read_audio_payload
from voicerelay.main import app
from voicerelay.services.errors import BodyReadError
from voicerelay.services.metrics import metrics
from voicerelay.services.provider_client import AssemblyAIClient
from voicerelay.services.relay import TranscriptionRelay


async def _no_sleep(_: float) -> None:
    return None


def _provider(upload=None, transcript=None):
    """Mock AssemblyAI: `upload` and `transcript` return (status, json or text)."""
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(f"{request.method} {request.url.path}")
        if request.url.path == "/v2/upload":
            status, body = upload or (200, {"upload_url": "ref-123"})
        else:
            status, body = transcript or (200, {"id": "t1", "status": "completed", "text": "hello world"})
        if isinstance(body, dict):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)

    return httpx.MockTransport(handler), calls


@pytest.fixture
def client_for(settings):
    def build(transport: httpx.MockTransport) -> TestClient:
        relay = TranscriptionRelay(AssemblyAIClient(settings, transport=transport, sleep=_no_sleep))
        app.dependency_overrides[get_relay] = lambda: relay
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()


def test_clear_speech_is_transcribed(client_for):
    transport, calls = _provider()
    resp = client_for(transport).post("/api/transcribe", content=b"\x00\x01" * 1000)

    assert resp.status_code == 200
    assert resp.json() == {"transcript": "hello world"}
    assert calls == ["POST /v2/upload", "POST /v2/transcript"]
    assert "x-trace-id" in resp.headers


def test_empty_body_rejected_by_provider(client_for):
    transport, calls = _provider(upload=(422, "File is empty"))
    resp = client_for(transport).post("/api/transcribe", content=b"")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Upload failed: File is empty"}
    assert calls == ["POST /v2/upload"]


def test_provider_job_failure(client_for):
    transport, _ = _provider(
        transcript=(200, {"id": "t1", "status": "error", "error": "Transcription timed out"})
    )
    resp = client_for(transport).post("/api/transcribe", content=b"audio")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Transcription timed out"}


def test_silence_returns_empty_transcript(client_for):
    transport, _ = _provider(transcript=(200, {"id": "t1", "status": "completed", "text": None}))
    resp = client_for(transport).post("/api/transcribe", content=b"\x00" * 128)

    assert resp.status_code == 200
    assert resp.json() == {"transcript": ""}


def test_trace_id_is_echoed_and_requests_counted(client_for):
    transport, _ = _provider()
    resp = client_for(transport).post("/api/transcribe", content=b"audio", headers={"X-Trace-Id": "abc123"})

    assert resp.headers["x-trace-id"] == "abc123"
    labels = {"method": "POST", "path": "/api/transcribe", "status": "200"}
    assert metrics.counter_value("http_requests_total", labels=labels) == 1


def test_unexpected_error_keeps_error_shape():
    class Broken:
        async def run(self, payload):
            raise RuntimeError("boom")

    app.dependency_overrides[get_relay] = lambda: Broken()
    try:
        with TestClient(app, raise_server_exceptions=False) as client:
            resp = client.post("/api/transcribe", content=b"audio")
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


@pytest.mark.asyncio
async def test_unreadable_body_is_client_error():
    class DisconnectedRequest:
        async def body(self) -> bytes:
            raise ClientDisconnect()

    with pytest.raises(BodyReadError) as info:
        await read_audio_payload(DisconnectedRequest())  # type: ignore[arg-type]
    assert info.value.status == 400


def test_recorder_page_health_and_metrics():
    with TestClient(app) as client:
        page = client.get("/")
        assert page.status_code == 200
        assert "/api/transcribe" in page.text

        assert client.get("/healthz").text == "ok"

        exposed = client.get("/metrics").text
        assert "# TYPE http_requests_total counter" in exposed


def _request_series() -> list[str]:
    return [line for line in metrics.to_prometheus().splitlines() if line.startswith("http_requests_total{")]


def test_unknown_paths_share_one_series():
    with TestClient(app) as client:
        for i in range(20):
            assert client.get(f"/nope-{i}").status_code == 404
        client.get('/a"b')

    series = _request_series()
    assert series == ['http_requests_total{method="GET",path="unmatched",status="404"} 21.0']
