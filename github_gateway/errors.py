"""Consistent error payloads for HTTP callers.

Every error body produced by the gateway has the same shape::

    {"error": {"error": <exception type>, "message": ..., "category": ...,
               "context": ..., "correlation_id": ...}}

so clients can branch on ``category`` without parsing messages.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import jsonschema
from starlette.responses import JSONResponse

from .exceptions import (
    EncodingError,
    GatewayMisconfiguredError,
    GitHubAPIError,
    GitHubAuthError,
    GitHubRateLimitError,
    OperationParameterError,
    ToolInputValidationError,
)
from .request_context import get_correlation_id


def _summarize_exception(exc: BaseException) -> str:
    """Create a short human-readable message."""
    if isinstance(exc, jsonschema.ValidationError):
        path = list(exc.absolute_path)
        base_message = exc.message or exc.__class__.__name__
        if path:
            return f"{base_message} (at {'.'.join(str(p) for p in path)})"
        return base_message

    return str(exc) or exc.__class__.__name__


def _classify_category(exc: BaseException, message: str) -> str:
    if isinstance(
        exc,
        (
            jsonschema.ValidationError,
            ToolInputValidationError,
            OperationParameterError,
            EncodingError,
        ),
    ):
        return "validation"
    if isinstance(exc, GatewayMisconfiguredError):
        return "configuration"
    if isinstance(exc, GitHubRateLimitError):
        return "rate_limit"
    if isinstance(exc, GitHubAuthError):
        return "auth"
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return "timeout"

    lowered = (message or "").lower()
    if "timeout" in lowered or "timed out" in lowered:
        return "timeout"
    if isinstance(exc, GitHubAPIError):
        return "github_api"
    return "unknown"


def structured_error(
    exc: BaseException, *, context: str, path: Optional[str] = None
) -> Dict[str, Any]:
    """Build a serializable error payload for ``exc``."""
    message = _summarize_exception(exc)
    payload: Dict[str, Any] = {
        "error": {
            "error": exc.__class__.__name__,
            "message": message,
            "category": _classify_category(exc, message),
            "context": context,
        }
    }

    correlation_id = get_correlation_id()
    if correlation_id:
        payload["error"]["correlation_id"] = correlation_id

    if isinstance(exc, GitHubAPIError) and exc.status_code is not None:
        payload["error"]["upstream_status"] = exc.status_code
    if isinstance(exc, ToolInputValidationError) and exc.field:
        payload["error"]["field"] = exc.field
    if isinstance(exc, OperationParameterError):
        payload["error"]["field"] = exc.parameter
    if path:
        payload["error"]["path"] = path

    return payload


def simple_error(error: str, message: str, *, category: str, context: str) -> Dict[str, Any]:
    """Error payload for conditions that are not exceptions (404s, 401s)."""
    payload: Dict[str, Any] = {
        "error": {
            "error": error,
            "message": message,
            "category": category,
            "context": context,
        }
    }
    correlation_id = get_correlation_id()
    if correlation_id:
        payload["error"]["correlation_id"] = correlation_id
    return payload


def error_response(
    exc: BaseException, *, context: str, status_code: int, path: Optional[str] = None
) -> JSONResponse:
    return JSONResponse(structured_error(exc, context=context, path=path), status_code=status_code)


__all__ = ["error_response", "simple_error", "structured_error"]
