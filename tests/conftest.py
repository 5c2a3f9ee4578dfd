import asyncio
import inspect

import httpx
import pytest
from starlette.testclient import TestClient

from github_gateway.app import create_app
from github_gateway.config import GatewaySettings
from github_gateway.etag_cache import MemoryEtagStore
from github_gateway.http_clients import GitHubClient

TEST_API_KEY = "test-api-key"
TEST_GITHUB_BASE = "https://github.test"


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test to run in event loop")


def pytest_pyfunc_call(pyfuncitem):
    if "asyncio" not in pyfuncitem.keywords:
        return None

    test_func = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_func):
        return None

    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        # funcargs also carries autouse and internal fixtures such as ``request``.
        kwargs = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
        loop.run_until_complete(test_func(**kwargs))
    finally:
        loop.close()
        asyncio.set_event_loop(None)

    return True


def _settings(**overrides) -> GatewaySettings:
    values = {
        "api_key": TEST_API_KEY,
        "github_token": "ghp_test",
        "github_api_base": TEST_GITHUB_BASE,
    }
    values.update(overrides)
    return GatewaySettings(**values)


@pytest.fixture
def make_settings():
    return _settings


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"X-API-Key": TEST_API_KEY}


@pytest.fixture
def github_client():
    """Factory for a GitHubClient whose transport is ``handler``."""

    def _build(handler, **overrides) -> GitHubClient:
        return GitHubClient(_settings(**overrides), transport=httpx.MockTransport(handler))

    return _build


@pytest.fixture
def gateway():
    """Factory for a TestClient over a full app with a mocked GitHub.

    Requests to GitHub are answered by ``handler``; every request it sees is
    appended to ``client.upstream_requests``.
    """

    def _build(handler, *, etag_store=None, registry=None, **overrides) -> TestClient:
        settings = _settings(**overrides)
        seen: list[httpx.Request] = []

        def _recording_handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        app = create_app(
            settings,
            github=GitHubClient(settings, transport=httpx.MockTransport(_recording_handler)),
            etag_store=etag_store if etag_store is not None else MemoryEtagStore(),
            registry=registry,
        )
        client = TestClient(app)
        client.upstream_requests = seen
        return client

    return _build
