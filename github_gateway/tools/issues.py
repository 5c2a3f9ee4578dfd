from __future__ import annotations

from typing import Any, Dict, Mapping
from urllib.parse import quote

from ..config import TOOLS_LOGGER
from ..http_clients import GitHubClient
from .base import ToolSpec, pick, string_field
from .prs import ISSUE_LIKE_FIELDS, ISSUE_LIKE_RESPONSE_SCHEMA

CREATE_ISSUE_REQUEST_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "owner": string_field("octocat"),
        "repo": string_field("Hello-World"),
        "title": string_field("Found a bug"),
        "body": {"type": "string"},
        "labels": {"type": "array", "items": {"type": "string"}},
        "assignees": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["owner", "repo", "title"],
}


async def create_issue(client: GitHubClient, request: Mapping[str, Any]) -> Dict[str, Any]:
    """Open an issue; optional fields are only sent when provided."""

    owner, repo = request["owner"], request["repo"]
    payload: Dict[str, Any] = {"title": request["title"]}
    for optional in ("body", "labels", "assignees"):
        if request.get(optional) is not None:
            payload[optional] = request[optional]

    TOOLS_LOGGER.info("create_issue %s/%s", owner, repo)
    upstream = await client.request(
        "POST",
        f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/issues",
        json_body=payload,
    )
    return pick(upstream.raise_for_status().json, *ISSUE_LIKE_FIELDS)


CREATE_ISSUE = ToolSpec(
    name="create_issue",
    path="/issues/create",
    description="Open a new issue in a GitHub repository.",
    request_schema=CREATE_ISSUE_REQUEST_SCHEMA,
    response_schema=ISSUE_LIKE_RESPONSE_SCHEMA,
    run=create_issue,
)

__all__ = ["CREATE_ISSUE", "CREATE_ISSUE_REQUEST_SCHEMA", "create_issue"]
