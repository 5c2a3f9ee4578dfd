"""Generic ``/octokit/{namespace}/{method}`` proxy.

One route covers every registered operation. Parameters are passed through
without schema validation: the query string for GET, the JSON object body
for POST. The upstream status and headers are relayed and the body is
re-serialized as JSON, whatever its shape.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, Dict, Mapping

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from github_gateway.deps import GatewayDeps
from github_gateway.errors import error_response, simple_error
from github_gateway.exceptions import GitHubAPIError, OperationParameterError
from github_gateway.http_clients import UpstreamResponse

# These describe the upstream byte stream, not the body we re-serialize.
_DROPPED_HEADERS = frozenset(
    {
        "connection",
        "content-encoding",
        "content-length",
        "content-type",
        "keep-alive",
        "transfer-encoding",
    }
)
_NO_BODY_STATUSES = frozenset({204, 304})


class _BadProxyRequest(ValueError):
    pass


async def _json_params(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise _BadProxyRequest(f"Request body is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise _BadProxyRequest("Request body must be a JSON object")
    return payload


def _relay_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in _DROPPED_HEADERS}


def relay_response(upstream: UpstreamResponse) -> Response:
    headers = _relay_headers(upstream.headers)
    if upstream.status_code in _NO_BODY_STATUSES:
        return Response(status_code=upstream.status_code, headers=headers)
    return JSONResponse(upstream.json, status_code=upstream.status_code, headers=headers)


def build_proxy_endpoint(deps: GatewayDeps) -> Callable[[Request], Any]:
    async def _endpoint(request: Request) -> Response:
        namespace = request.path_params["namespace"]
        method = request.path_params["method"]
        context = f"proxy:{namespace}.{method}"

        operation = deps.registry.resolve(namespace, method)
        if operation is None:
            return JSONResponse(
                simple_error(
                    "Not Found",
                    f"Unknown operation {namespace}.{method}",
                    category="not_found",
                    context=context,
                ),
                status_code=404,
            )

        if request.method == "POST":
            try:
                params = await _json_params(request)
            except _BadProxyRequest as exc:
                return JSONResponse(
                    simple_error("BadRequest", str(exc), category="validation", context=context),
                    status_code=400,
                )
        else:
            params = dict(request.query_params)

        try:
            upstream = await operation(deps.github, params)
        except OperationParameterError as exc:
            return error_response(exc, context=context, status_code=400)
        except GitHubAPIError as exc:
            return error_response(exc, context=context, status_code=502)

        return relay_response(upstream)

    return _endpoint


__all__ = ["build_proxy_endpoint", "relay_response"]
