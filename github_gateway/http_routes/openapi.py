"""OpenAPI document describing the gateway surface.

Built from the same tool specs and mount list the app is composed from, so
the document cannot drift from the routes actually served.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Dict, Iterable

from starlette.requests import Request
from starlette.responses import JSONResponse

from github_gateway.deps import GatewayDeps
from github_gateway.tools import TOOLS, ToolSpec

OPENAPI_VERSION = "3.0.3"
API_TITLE = "GitHub Gateway"
API_VERSION = "1.0.0"

_ERROR_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "error": {
            "type": "object",
            "properties": {
                "error": {"type": "string"},
                "message": {"type": "string"},
                "category": {"type": "string"},
                "context": {"type": "string"},
                "correlation_id": {"type": "string"},
            },
        }
    },
}


def _json_content(schema: Dict[str, Any]) -> Dict[str, Any]:
    return {"application/json": {"schema": schema}}


def _error(description: str) -> Dict[str, Any]:
    return {"description": description, "content": _json_content({"$ref": "#/components/schemas/Error"})}


def _to_openapi_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Rewrite the JSON Schema subset used by the tools into OpenAPI 3.0 form.

    OpenAPI 3.0 has no type arrays or ``examples``; nullability is a flag.
    """
    converted: Dict[str, Any] = {}
    for key, value in schema.items():
        if key == "type" and isinstance(value, list):
            non_null = [t for t in value if t != "null"]
            converted["type"] = non_null[0] if non_null else "string"
            if "null" in value:
                converted["nullable"] = True
        elif key == "examples":
            if value:
                converted["example"] = value[0]
        elif key == "properties":
            converted[key] = {name: _to_openapi_schema(sub) for name, sub in value.items()}
        elif key == "items" and isinstance(value, dict):
            converted[key] = _to_openapi_schema(value)
        else:
            converted[key] = value
    return converted


def _proxy_path_item(mount: str) -> Dict[str, Any]:
    parameters = [
        {"name": "namespace", "in": "path", "required": True, "schema": {"type": "string"}},
        {"name": "method", "in": "path", "required": True, "schema": {"type": "string"}},
    ]
    relayed = {"description": "Upstream response, relayed.", "content": _json_content({})}
    return {
        "parameters": parameters,
        "get": {
            "operationId": f"{mount.strip('/')}_proxy_get",
            "summary": "Generic GitHub REST proxy (query-string parameters).",
            "security": [{"ApiKey": []}, {"Bearer": []}],
            "parameters": [
                {"name": "If-None-Match", "in": "header", "required": False, "schema": {"type": "string"}}
            ],
            "responses": {
                "200": relayed,
                "304": {"description": "Not Modified."},
                "401": _error("Missing or incorrect API key."),
                "404": _error("Unknown namespace/method."),
            },
        },
        "post": {
            "operationId": f"{mount.strip('/')}_proxy_post",
            "summary": "Generic GitHub REST proxy (JSON body parameters).",
            "security": [{"ApiKey": []}, {"Bearer": []}],
            "requestBody": {
                "required": False,
                "content": _json_content({"type": "object", "additionalProperties": True}),
            },
            "responses": {
                "200": relayed,
                "400": _error("Body is not a JSON object or a path parameter is missing."),
                "401": _error("Missing or incorrect API key."),
                "404": _error("Unknown namespace/method."),
            },
        },
    }


def _tool_path_item(mount: str, tool: ToolSpec) -> Dict[str, Any]:
    return {
        "post": {
            "operationId": f"{mount.strip('/')}_{tool.name}",
            "summary": tool.description,
            "x-agent": True,
            "security": [{"ApiKey": []}, {"Bearer": []}],
            "requestBody": {
                "required": True,
                "content": _json_content(_to_openapi_schema(tool.request_schema)),
            },
            "responses": {
                "200": {
                    "description": "Success.",
                    "content": _json_content(_to_openapi_schema(tool.response_schema)),
                },
                "400": _error("Request body failed validation."),
                "401": _error("Missing or incorrect API key."),
                "502": _error("GitHub call failed."),
            },
        }
    }


def build_openapi_document(mounts: Iterable[str], tools: Iterable[ToolSpec] = TOOLS) -> Dict[str, Any]:
    tools = tuple(tools)
    paths: Dict[str, Any] = {
        "/healthz": {
            "get": {
                "operationId": "healthz",
                "summary": "Liveness check.",
                "responses": {
                    "200": {
                        "description": "Service is up.",
                        "content": _json_content(
                            {"type": "object", "properties": {"ok": {"type": "boolean"}}}
                        ),
                    }
                },
            }
        }
    }
    for mount in mounts:
        paths[f"{mount}/octokit/{{namespace}}/{{method}}"] = _proxy_path_item(mount)
        for tool in tools:
            paths[f"{mount}/tools{tool.path}"] = _tool_path_item(mount, tool)

    return {
        "openapi": OPENAPI_VERSION,
        "info": {"title": API_TITLE, "version": API_VERSION},
        "paths": paths,
        "components": {
            "schemas": {"Error": _ERROR_SCHEMA},
            "securitySchemes": {
                "ApiKey": {"type": "apiKey", "in": "header", "name": "X-API-Key"},
                "Bearer": {"type": "http", "scheme": "bearer"},
            },
        },
    }


def build_openapi_endpoint(deps: GatewayDeps) -> Callable[[Request], Any]:
    document = build_openapi_document(deps.settings.mounts)

    async def _endpoint(_: Request) -> JSONResponse:
        return JSONResponse(document)

    return _endpoint


__all__ = ["build_openapi_document", "build_openapi_endpoint"]
