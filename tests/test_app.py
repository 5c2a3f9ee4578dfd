from __future__ import annotations

import importlib

import httpx
from starlette.applications import Starlette
from starlette.testclient import TestClient

from github_gateway import create_app
from github_gateway.etag_cache import MemoryEtagStore, RedisEtagStore
from github_gateway.operations import Operation, OperationRegistry


def test_create_app_exposes_deps(gateway):
    client = gateway(lambda request: httpx.Response(200))

    deps = client.app.state.deps
    assert deps.settings.mounts == ("/api", "/v1")
    assert isinstance(deps.etag_store, MemoryEtagStore)
    assert ("repos", "get") in deps.registry


def test_custom_mounts_replace_defaults(gateway, auth_headers):
    client = gateway(lambda request: httpx.Response(200, json={}), mounts=("/github",))

    assert client.get("/github/tools", headers=auth_headers).status_code == 200
    assert client.get("/api/tools", headers=auth_headers).status_code == 404


def test_custom_registry_is_used(gateway, auth_headers):
    registry = OperationRegistry([Operation("meta", "zen", "GET", "/zen")])
    client = gateway(lambda request: httpx.Response(200, json="Keep it logically awesome."), registry=registry)

    ok = client.get("/api/octokit/meta/zen", headers=auth_headers)
    missing = client.get("/api/octokit/repos/get?owner=o&repo=r", headers=auth_headers)

    assert ok.json() == "Keep it logically awesome."
    assert missing.status_code == 404


def test_lifespan_closes_github_client_and_store(make_settings, github_client):
    settings = make_settings()
    github = github_client(lambda request: httpx.Response(200))
    closed = []

    class _Store(MemoryEtagStore):
        async def aclose(self):
            closed.append(True)

    app = create_app(settings, github=github, etag_store=_Store())
    with TestClient(app) as client:
        assert client.get("/healthz").status_code == 200
        assert github.is_closed is False

    assert github.is_closed is True
    assert closed == [True]


def test_create_app_builds_redis_store_from_settings(make_settings):
    app = create_app(make_settings(redis_url="redis://localhost:6379/0"))

    assert isinstance(app.state.deps.etag_store, RedisEtagStore)


def test_main_module_exposes_app(monkeypatch):
    monkeypatch.setenv("GATEWAY_API_KEY", "k")
    monkeypatch.setenv("GATEWAY_MOUNTS", "/only")
    monkeypatch.delenv("GATEWAY_REDIS_URL", raising=False)

    main = importlib.reload(importlib.import_module("main"))

    assert isinstance(main.app, Starlette)
    assert main.app.state.deps.settings.mounts == ("/only",)
