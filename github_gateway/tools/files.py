"""File upsert tool: create or update one file through the Contents API."""

from __future__ import annotations

from typing import Any, Dict, Mapping
from urllib.parse import quote

from ..config import TOOLS_LOGGER
from ..encoding import encode
from ..http_clients import GitHubClient
from .base import NULLABLE_STRING, ToolSpec, pick, string_field

UPSERT_FILE_REQUEST_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "owner": string_field("octocat"),
        "repo": string_field("Hello-World"),
        "path": string_field("test.txt", "Repository-relative file path."),
        "content": {
            "type": "string",
            "description": "Plain text file content; encoded to base64 by the gateway.",
            "examples": ["Hello, world!"],
        },
        "message": string_field("feat: add test.txt", "Commit message."),
        "sha": string_field(
            "95b966ae1c166bd92f8ae7d1c313e738c731dfc3",
            "Blob SHA of the file being replaced. Required by GitHub for updates.",
        ),
        "branch": string_field("main", "Target branch; defaults to the repository default."),
    },
    "required": ["owner", "repo", "path", "content", "message"],
}

UPSERT_FILE_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "content": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "path": {"type": "string"},
                "sha": {"type": "string"},
                "size": {"type": "integer"},
                "url": {"type": "string"},
                "html_url": {"type": "string"},
                "git_url": {"type": "string"},
                "download_url": NULLABLE_STRING,
                "type": {"type": "string"},
            },
            "required": [
                "name",
                "path",
                "sha",
                "size",
                "url",
                "html_url",
                "git_url",
                "download_url",
                "type",
            ],
            "additionalProperties": False,
        },
        "commit": {
            "type": "object",
            "properties": {
                "sha": {"type": "string"},
                "url": {"type": "string"},
                "html_url": {"type": "string"},
                "message": {"type": "string"},
            },
            "required": ["sha", "url", "html_url", "message"],
            "additionalProperties": False,
        },
    },
    "required": ["content", "commit"],
    "additionalProperties": False,
}


async def upsert_file(client: GitHubClient, request: Mapping[str, Any]) -> Dict[str, Any]:
    owner, repo, path = request["owner"], request["repo"], request["path"]
    payload: Dict[str, Any] = {
        "message": request["message"],
        "content": encode(request["content"]),
    }
    if request.get("sha"):
        payload["sha"] = request["sha"]
    if request.get("branch"):
        payload["branch"] = request["branch"]

    TOOLS_LOGGER.info("upsert_file %s/%s:%s", owner, repo, path)
    upstream = await client.request(
        "PUT",
        f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/contents/{quote(path.lstrip('/'), safe='/')}",
        json_body=payload,
    )
    data = upstream.raise_for_status().json
    if not isinstance(data, Mapping):
        data = {}

    return {
        "content": pick(
            data.get("content"),
            "name",
            "path",
            "sha",
            "size",
            "url",
            "html_url",
            "git_url",
            "download_url",
            "type",
        ),
        "commit": pick(data.get("commit"), "sha", "url", "html_url", "message"),
    }


UPSERT_FILE = ToolSpec(
    name="upsert_file",
    path="/files/upsert",
    description="Create or update a file in a GitHub repository.",
    request_schema=UPSERT_FILE_REQUEST_SCHEMA,
    response_schema=UPSERT_FILE_RESPONSE_SCHEMA,
    run=upsert_file,
)

__all__ = ["UPSERT_FILE", "UPSERT_FILE_REQUEST_SCHEMA", "UPSERT_FILE_RESPONSE_SCHEMA", "upsert_file"]
