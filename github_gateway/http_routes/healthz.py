from __future__ import annotations

import platform
import sys
import time
from collections.abc import Callable
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from github_gateway.config import SERVER_START_TIME
from github_gateway.deps import GatewayDeps
from github_gateway.etag_cache import RedisEtagStore


def _parse_bool(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _build_health_payload(deps: GatewayDeps, *, verbose: bool) -> dict[str, Any]:
    payload: dict[str, Any] = {"ok": True}
    if not verbose:
        return payload

    payload.update(
        {
            "uptime_seconds": max(0, int(time.time() - SERVER_START_TIME)),
            "github_token_present": bool(deps.settings.github_token),
            "api_key_configured": bool(deps.settings.api_key),
            "etag_store": "redis" if isinstance(deps.etag_store, RedisEtagStore) else "memory",
            "mounts": list(deps.settings.mounts),
            "operations": len(deps.registry.keys()),
            "runtime": {
                "python": sys.version.split()[0],
                "platform": platform.platform(),
            },
        }
    )
    return payload


def build_healthz_endpoint(deps: GatewayDeps) -> Callable[[Request], Any]:
    async def _endpoint(request: Request) -> JSONResponse:
        verbose = _parse_bool(request.query_params.get("verbose"))
        return JSONResponse(_build_health_payload(deps, verbose=verbose))

    return _endpoint


__all__ = ["build_healthz_endpoint"]
