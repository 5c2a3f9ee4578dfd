from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, Iterable

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from github_gateway.config import TOOLS_LOGGER
from github_gateway.deps import GatewayDeps
from github_gateway.errors import error_response
from github_gateway.exceptions import (
    EncodingError,
    GitHubAPIError,
    ToolInputValidationError,
)
from github_gateway.tools import TOOLS, ToolSpec


def _tool_catalog(tools: Iterable[ToolSpec], base_path: str) -> dict[str, Any]:
    return {
        "tools": [
            {
                "name": tool.name,
                "path": f"{base_path}{tool.path}",
                "method": "POST",
                "description": tool.description,
                "request_schema": tool.request_schema,
                "response_schema": tool.response_schema,
            }
            for tool in tools
        ]
    }


def build_tool_catalog_endpoint(tools: Iterable[ToolSpec] = TOOLS) -> Callable[[Request], Any]:
    tools = tuple(tools)

    async def _endpoint(request: Request) -> JSONResponse:
        base_path = request.url.path.rstrip("/")
        return JSONResponse(_tool_catalog(tools, base_path))

    return _endpoint


def build_tool_endpoint(tool: ToolSpec, deps: GatewayDeps) -> Callable[[Request], Any]:
    context = f"tool:{tool.name}"

    async def _endpoint(request: Request) -> Response:
        raw = await request.body()
        try:
            body = json.loads(raw) if raw.strip() else None
        except ValueError:
            return error_response(
                ToolInputValidationError(tool.name, "request body is not valid JSON"),
                context=context,
                status_code=400,
            )

        try:
            result = await tool(deps.github, body)
        except (ToolInputValidationError, EncodingError) as exc:
            return error_response(exc, context=context, status_code=400)
        except GitHubAPIError as exc:
            TOOLS_LOGGER.warning("%s failed upstream: %s", tool.name, exc)
            return error_response(exc, context=context, status_code=502)

        return JSONResponse(result)

    return _endpoint


def build_tool_routes(deps: GatewayDeps, tools: Iterable[ToolSpec] = TOOLS) -> list[Route]:
    return [Route(tool.path, build_tool_endpoint(tool, deps), methods=["POST"]) for tool in tools]


__all__ = ["build_tool_catalog_endpoint", "build_tool_endpoint", "build_tool_routes"]
