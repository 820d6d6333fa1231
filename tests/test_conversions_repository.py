import gzip
import json

import httpx
import pytest

from app.core.config import settings
from app.core.errors import UpstreamError, UpstreamTimeoutError
from app.repositories.conversions_repository import ConversionsRepository


@pytest.fixture(autouse=True)
def meta_settings(monkeypatch):
    monkeypatch.setattr(settings, "meta_pixel_id", "1234567890")
    monkeypatch.setattr(settings, "meta_access_token", "test-token")
    monkeypatch.setattr(settings, "meta_api_version", "v19.0")
    monkeypatch.setattr(settings, "meta_test_event_code", None)
    monkeypatch.setattr(settings, "compression_threshold_bytes", 2048)


def repo_with(handler) -> ConversionsRepository:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://graph.test")
    return ConversionsRepository(client_provider=lambda: client)


def decode(request: httpx.Request) -> dict:
    content = request.content
    if request.headers.get("content-encoding") == "gzip":
        content = gzip.decompress(content)
    return json.loads(content)


@pytest.mark.anyio
async def test_small_batch_is_sent_uncompressed():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"events_received": 1, "fbtrace_id": "trace"})

    result = await repo_with(handler).send_batch([{"event_id": "evt-1"}])

    assert result == {"events_received": 1, "fbtrace_id": "trace"}
    request = seen[0]
    assert request.url.path == "/v19.0/1234567890/events"
    assert request.url.params["access_token"] == "test-token"
    assert "content-encoding" not in request.headers
    assert decode(request) == {"data": [{"event_id": "evt-1"}]}


@pytest.mark.anyio
async def test_large_batch_is_gzip_compressed():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"events_received": 50})

    events = [{"event_id": f"evt-{i}", "custom_data": {"note": "x" * 50}} for i in range(50)]
    await repo_with(handler).send_batch(events)

    request = seen[0]
    assert request.headers["content-encoding"] == "gzip"
    assert decode(request) == {"data": events}


@pytest.mark.anyio
async def test_test_event_code_is_attached(monkeypatch):
    monkeypatch.setattr(settings, "meta_test_event_code", "TEST123")
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(decode(request))
        return httpx.Response(200, json={})

    await repo_with(handler).send_batch([{"event_id": "evt-1"}])
    assert seen[0]["test_event_code"] == "TEST123"


@pytest.mark.anyio
async def test_error_status_raises_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": {"message": "Invalid parameter"}})

    with pytest.raises(UpstreamError) as exc_info:
        await repo_with(handler).send_batch([{"event_id": "evt-1"}])
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail["details"] == {"error": {"message": "Invalid parameter"}}


@pytest.mark.anyio
async def test_timeout_raises_upstream_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamTimeoutError) as exc_info:
        await repo_with(handler).send_batch([{"event_id": "evt-1"}])
    assert exc_info.value.status_code == 408


@pytest.mark.anyio
async def test_connection_failure_is_bad_gateway():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError) as exc_info:
        await repo_with(handler).send_batch([{"event_id": "evt-1"}])
    assert exc_info.value.status_code == 502
