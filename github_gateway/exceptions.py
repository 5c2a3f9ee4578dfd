"""Custom exception types used across the GitHub gateway."""

from __future__ import annotations

from typing import Any, Optional


class GatewayError(Exception):
    pass


class GatewayMisconfiguredError(GatewayError):
    """Raised when a required secret or setting is absent at runtime."""

    pass


class GitHubAPIError(GatewayError):
    """An upstream GitHub call failed at the transport level or returned non-2xx."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        response_payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_payload = response_payload


class GitHubAuthError(GitHubAPIError):
    pass


class GitHubRateLimitError(GitHubAPIError):
    """Raised when GitHub responds with a rate limit error."""

    pass


class EncodingError(GatewayError, ValueError):
    """Raised when text cannot be converted to or from its wire encoding."""

    pass


class ToolInputValidationError(GatewayError, ValueError):
    """Raised when a tool request body does not match its declared schema.

    The message is a single line naming the tool and, when known, the field.
    """

    def __init__(self, tool: str, message: str, field: Optional[str] = None) -> None:
        detail = f"{tool}: {message}"
        if field:
            detail = f"{detail} (field={field})"
        super().__init__(detail)
        self.tool = tool
        self.field = field


class OperationParameterError(GatewayError, ValueError):
    """Raised when proxy parameters cannot fill an operation's path template."""

    def __init__(self, operation: str, parameter: str) -> None:
        super().__init__(f"Missing required parameter {parameter!r} for {operation}")
        self.operation = operation
        self.parameter = parameter


__all__ = [
    "EncodingError",
    "GatewayError",
    "GatewayMisconfiguredError",
    "GitHubAPIError",
    "GitHubAuthError",
    "GitHubRateLimitError",
    "OperationParameterError",
    "ToolInputValidationError",
]
