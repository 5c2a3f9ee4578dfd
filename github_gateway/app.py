"""Starlette application factory.

The same API router is mounted under every configured prefix; health, the
OpenAPI document and its Swagger UI page stay at the root and are never
behind the API key.
"""

from __future__ import annotations

import contextlib
from typing import AsyncIterator, Optional

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.routing import Mount, Route, Router

from .config import BASE_LOGGER, GatewaySettings, load_settings
from .deps import GatewayDeps
from .etag_cache import EtagCacheMiddleware, EtagStore, build_etag_store
from .http_clients import GitHubClient
from .http_routes.docs import build_docs_endpoint
from .http_routes.healthz import build_healthz_endpoint
from .http_routes.openapi import build_openapi_endpoint
from .http_routes.proxy import build_proxy_endpoint
from .http_routes.tools import build_tool_catalog_endpoint, build_tool_routes
from .middleware import ApiKeyMiddleware, CorrelationIdMiddleware
from .operations import OperationRegistry, build_default_registry


def build_api_router(deps: GatewayDeps) -> Router:
    # Only the proxy is conditional-request aware; tool calls are writes.
    proxy = EtagCacheMiddleware(
        Router(
            routes=[
                Route(
                    "/{namespace}/{method}",
                    build_proxy_endpoint(deps),
                    methods=["GET", "POST"],
                )
            ]
        ),
        deps.etag_store,
        ttl_seconds=deps.settings.etag_ttl_seconds,
    )
    return Router(
        routes=[
            Route("/tools", build_tool_catalog_endpoint(), methods=["GET"]),
            Mount("/tools", routes=build_tool_routes(deps)),
            Mount("/octokit", app=proxy),
        ]
    )


def create_app(
    settings: Optional[GatewaySettings] = None,
    *,
    github: Optional[GitHubClient] = None,
    etag_store: Optional[EtagStore] = None,
    registry: Optional[OperationRegistry] = None,
) -> Starlette:
    """Assemble the gateway.

    ``github``, ``etag_store`` and ``registry`` default to instances built from
    ``settings``; tests pass their own to avoid network and Redis.
    """
    if settings is None:
        settings = load_settings()

    deps = GatewayDeps(
        settings=settings,
        github=github if github is not None else GitHubClient(settings),
        etag_store=etag_store if etag_store is not None else build_etag_store(settings),
        registry=registry if registry is not None else build_default_registry(settings.blocked_operations),
    )

    if not settings.api_key:
        BASE_LOGGER.warning("GATEWAY_API_KEY is not set; API routes will answer 500")
    if not settings.github_token:
        BASE_LOGGER.warning("No GitHub token configured; upstream calls are unauthenticated")

    api = build_api_router(deps)
    routes = [
        Route("/healthz", build_healthz_endpoint(deps), methods=["GET"]),
        Route("/openapi.json", build_openapi_endpoint(deps), methods=["GET"]),
        Route("/doc", build_docs_endpoint("/openapi.json"), methods=["GET"]),
    ]
    routes.extend(Mount(prefix, app=api) for prefix in settings.mounts)

    @contextlib.asynccontextmanager
    async def lifespan(_: Starlette) -> AsyncIterator[None]:
        BASE_LOGGER.info(
            "github-gateway ready: mounts=%s operations=%d",
            ",".join(settings.mounts),
            len(deps.registry),
        )
        try:
            yield
        finally:
            await deps.github.aclose()
            await deps.etag_store.aclose()

    app = Starlette(
        routes=routes,
        middleware=[
            Middleware(CorrelationIdMiddleware),
            Middleware(ApiKeyMiddleware, api_key=settings.api_key, protected_prefixes=settings.mounts),
        ],
        lifespan=lifespan,
    )
    app.state.deps = deps
    return app


__all__ = ["build_api_router", "create_app"]
