"""Open-pull-request tool."""

from __future__ import annotations

from typing import Any, Dict, Mapping
from urllib.parse import quote

from ..config import TOOLS_LOGGER
from ..http_clients import GitHubClient
from .base import NULLABLE_STRING, ToolSpec, pick, string_field

OPEN_PR_REQUEST_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "owner": string_field("octocat"),
        "repo": string_field("Hello-World"),
        "head": string_field("feature-branch", "Branch containing the changes."),
        "base": string_field("main", "Branch to merge into."),
        "title": string_field("feat: new feature"),
        "body": {"type": "string", "examples": ["This PR adds a new feature."]},
        "draft": {"type": "boolean"},
    },
    "required": ["owner", "repo", "head", "base", "title"],
}

# Shared with the issue tool: both resources are reported the same way.
ISSUE_LIKE_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "integer"},
        "number": {"type": "integer"},
        "html_url": {"type": "string"},
        "state": {"type": "string"},
        "title": {"type": "string"},
        "body": NULLABLE_STRING,
    },
    "required": ["id", "number", "html_url", "state", "title", "body"],
    "additionalProperties": False,
}

ISSUE_LIKE_FIELDS = ("id", "number", "html_url", "state", "title", "body")


async def open_pull_request(client: GitHubClient, request: Mapping[str, Any]) -> Dict[str, Any]:
    owner, repo = request["owner"], request["repo"]
    payload: Dict[str, Any] = {
        "head": request["head"],
        "base": request["base"],
        "title": request["title"],
    }
    if request.get("body") is not None:
        payload["body"] = request["body"]
    if request.get("draft") is not None:
        payload["draft"] = request["draft"]

    TOOLS_LOGGER.info("open_pull_request %s/%s %s -> %s", owner, repo, request["head"], request["base"])
    upstream = await client.request(
        "POST",
        f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/pulls",
        json_body=payload,
    )
    return pick(upstream.raise_for_status().json, *ISSUE_LIKE_FIELDS)


OPEN_PULL_REQUEST = ToolSpec(
    name="open_pull_request",
    path="/prs/open",
    description="Open a new pull request in a GitHub repository.",
    request_schema=OPEN_PR_REQUEST_SCHEMA,
    response_schema=ISSUE_LIKE_RESPONSE_SCHEMA,
    run=open_pull_request,
)

__all__ = [
    "ISSUE_LIKE_FIELDS",
    "ISSUE_LIKE_RESPONSE_SCHEMA",
    "OPEN_PR_REQUEST_SCHEMA",
    "OPEN_PULL_REQUEST",
    "open_pull_request",
]
