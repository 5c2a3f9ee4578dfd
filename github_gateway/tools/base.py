"""Shared plumbing for fixed-shape tool endpoints.

A tool validates its request body against a JSON Schema, makes exactly one
upstream call, maps the upstream payload onto a narrower response and
validates that too.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping

import jsonschema
from jsonschema.exceptions import best_match

from ..exceptions import GitHubAPIError, ToolInputValidationError
from ..http_clients import GitHubClient

ToolRunner = Callable[[GitHubClient, Mapping[str, Any]], Awaitable[Dict[str, Any]]]

_REQUIRED_FIELD = re.compile(r"^'([^']+)' is a required property")


@dataclass(frozen=True)
class ToolSpec:
    name: str
    path: str
    description: str
    request_schema: Dict[str, Any]
    response_schema: Dict[str, Any]
    run: ToolRunner

    def validate_request(self, body: Any) -> Dict[str, Any]:
        error = best_match(jsonschema.Draft7Validator(self.request_schema).iter_errors(body))
        if error is not None:
            raise ToolInputValidationError(self.name, error.message, _error_field(error))
        return dict(body)

    def validate_response(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        error = best_match(jsonschema.Draft7Validator(self.response_schema).iter_errors(payload))
        if error is not None:
            raise GitHubAPIError(
                f"GitHub response for {self.name} did not match the declared shape: {error.message}"
            )
        return payload

    async def __call__(self, client: GitHubClient, body: Any) -> Dict[str, Any]:
        request = self.validate_request(body)
        return self.validate_response(await self.run(client, request))


def _error_field(error: jsonschema.ValidationError) -> str | None:
    if error.absolute_path:
        return ".".join(str(p) for p in error.absolute_path)
    if error.validator == "required":
        match = _REQUIRED_FIELD.match(error.message)
        if match:
            return match.group(1)
    return None


def pick(source: Any, *fields: str) -> Dict[str, Any]:
    """Copy only ``fields`` out of an upstream object.

    Missing fields come back as ``None`` so the response schema reports them
    instead of a ``KeyError``.
    """
    if not isinstance(source, Mapping):
        raise GitHubAPIError(f"Unexpected GitHub response shape: {type(source).__name__}")
    return {field: source.get(field) for field in fields}


def string_field(example: str, description: str = "") -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "string", "minLength": 1, "examples": [example]}
    if description:
        schema["description"] = description
    return schema


NULLABLE_STRING = {"type": ["string", "null"]}

__all__ = ["NULLABLE_STRING", "ToolRunner", "ToolSpec", "pick", "string_field"]
