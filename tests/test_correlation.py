from __future__ import annotations

import logging
import uuid

import httpx
import pytest

from github_gateway.middleware import CorrelationIdMiddleware
from github_gateway.request_context import get_correlation_id


def _ok(_request):
    return httpx.Response(200, json={})


def test_caller_correlation_id_is_echoed(gateway, auth_headers):
    client = gateway(_ok)

    resp = client.get("/api/tools", headers={**auth_headers, "X-Correlation-ID": "req-123"})

    assert resp.headers["x-correlation-id"] == "req-123"


def test_correlation_id_is_generated_when_missing(gateway):
    client = gateway(_ok)

    resp = client.get("/healthz")

    generated = resp.headers["x-correlation-id"]
    assert uuid.UUID(generated).version == 4


def test_correlation_id_on_auth_failures_and_errors(gateway):
    client = gateway(_ok)

    resp = client.get("/api/tools", headers={"X-Correlation-ID": "abc"})

    assert resp.status_code == 401
    assert resp.headers["x-correlation-id"] == "abc"
    assert resp.json()["error"]["correlation_id"] == "abc"


def test_oversized_correlation_id_is_replaced(gateway):
    client = gateway(_ok)

    resp = client.get("/healthz", headers={"X-Correlation-ID": "x" * 500})

    assert resp.headers["x-correlation-id"] != "x" * 500


def test_one_audit_line_per_request(gateway, auth_headers, caplog):
    client = gateway(_ok)

    with caplog.at_level(logging.INFO, logger="github_gateway.audit"):
        client.get("/api/tools", headers={**auth_headers, "X-Correlation-ID": "audit-1"})

    records = [r for r in caplog.records if r.name == "github_gateway.audit"]
    assert len(records) == 1
    record = records[0]
    assert record.method == "GET"
    assert record.path == "/api/tools"
    assert record.status == 200
    assert record.correlation_id == "audit-1"
    assert record.latency_ms >= 0
    assert record.payload_size == 0


@pytest.mark.asyncio
async def test_correlation_id_visible_inside_request_and_reset_after():
    seen = {}

    async def app(scope, receive, send):
        seen["inside"] = get_correlation_id()
        await send({"type": "http.response.start", "status": 204, "headers": []})
        await send({"type": "http.response.body", "body": b"", "more_body": False})

    sent: list[dict] = []

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message):
        sent.append(message)

    scope = {
        "type": "http",
        "method": "GET",
        "path": "/x",
        "headers": [(b"x-correlation-id", b"ctx-1")],
    }
    await CorrelationIdMiddleware(app)(scope, receive, send)

    assert seen["inside"] == "ctx-1"
    assert get_correlation_id() is None
    assert (b"x-correlation-id", b"ctx-1") in sent[0]["headers"]


@pytest.mark.asyncio
async def test_downstream_exception_is_logged_and_reraised(caplog):
    async def app(scope, receive, send):
        raise RuntimeError("boom")

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message):
        return None

    scope = {"type": "http", "method": "POST", "path": "/boom", "headers": []}
    with caplog.at_level(logging.INFO, logger="github_gateway.audit"):
        with pytest.raises(RuntimeError):
            await CorrelationIdMiddleware(app)(scope, receive, send)

    [record] = [r for r in caplog.records if r.name == "github_gateway.audit"]
    assert record.status is None
    assert "ERR" in record.getMessage()
