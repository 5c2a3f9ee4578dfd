"""ASGI middleware for request correlation and API-key authentication.

Both avoid ``BaseHTTPMiddleware`` so response streaming is untouched and the
correlation id is visible to everything running inside the request.
"""

from __future__ import annotations

import hmac
import time
import uuid
from typing import Iterable, Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .config import AUDIT_LOGGER, BASE_LOGGER
from .errors import simple_error
from .request_context import CORRELATION_HEADER, REQUEST_CORRELATION_ID

API_KEY_HEADER = "X-API-Key"
_MAX_CORRELATION_ID_CHARS = 128


def _clean_correlation_id(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = value.strip()
    if not value or len(value) > _MAX_CORRELATION_ID_CHARS or not value.isprintable():
        return None
    return value


class CorrelationIdMiddleware:
    """Tag each request with a correlation id and log one audit line for it.

    The id comes from ``X-Correlation-ID`` when the caller supplies a sane
    value, otherwise a fresh UUID4. It is echoed on the response.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        correlation_id = _clean_correlation_id(headers.get(CORRELATION_HEADER)) or str(uuid.uuid4())
        token = REQUEST_CORRELATION_ID.set(correlation_id)
        start = time.time()
        status_code: Optional[int] = None

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message.get("type") == "http.response.start":
                status_code = message.get("status")
                response_headers = MutableHeaders(scope=message)
                response_headers[CORRELATION_HEADER] = correlation_id
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            latency_ms = int((time.time() - start) * 1000)
            method = scope.get("method", "?")
            path = scope.get("path", "")
            AUDIT_LOGGER.info(
                "[route] %s %s -> %s (%sms)",
                method,
                path,
                status_code if status_code is not None else "ERR",
                latency_ms,
                extra={
                    "method": method,
                    "path": path,
                    "status": status_code,
                    "latency_ms": latency_ms,
                    "payload_size": int(headers.get("content-length") or 0),
                    "correlation_id": correlation_id,
                },
            )
            REQUEST_CORRELATION_ID.reset(token)


def _extract_api_key(headers: Headers) -> Optional[str]:
    api_key = headers.get(API_KEY_HEADER)
    if api_key:
        return api_key.strip()

    authorization = headers.get("authorization") or ""
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


class ApiKeyMiddleware:
    """Require the shared API key on every path under a protected prefix.

    ``OPTIONS`` requests pass through so CORS preflights work. A server
    without a configured key answers 500 on protected paths rather than
    serving them unauthenticated.
    """

    def __init__(self, app: ASGIApp, api_key: Optional[str], protected_prefixes: Iterable[str]) -> None:
        self.app = app
        self.api_key = api_key
        self.protected_prefixes = tuple(p.rstrip("/") for p in protected_prefixes)

    def _is_protected(self, path: str) -> bool:
        return any(path == prefix or path.startswith(prefix + "/") for prefix in self.protected_prefixes)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope.get("type") != "http"
            or scope.get("method") == "OPTIONS"
            or not self._is_protected(scope.get("path", ""))
        ):
            await self.app(scope, receive, send)
            return

        if not self.api_key:
            BASE_LOGGER.error("GATEWAY_API_KEY is not configured; refusing %s", scope.get("path"))
            response = JSONResponse(
                simple_error(
                    "GatewayMisconfiguredError",
                    "Server API key is not configured",
                    category="configuration",
                    context="auth",
                ),
                status_code=500,
            )
            await response(scope, receive, send)
            return

        provided = _extract_api_key(Headers(scope=scope))
        if provided is None or not hmac.compare_digest(
            provided.encode("utf-8"), self.api_key.encode("utf-8")
        ):
            response = JSONResponse(
                simple_error("Unauthorized", "Missing or incorrect API key", category="auth", context="auth"),
                status_code=401,
                headers={"WWW-Authenticate": "Bearer"},
            )
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)


__all__ = ["API_KEY_HEADER", "ApiKeyMiddleware", "CorrelationIdMiddleware"]
