"""Registry of GitHub operations reachable through the generic proxy.

Each operation is addressed by ``(namespace, method)`` using Octokit's
naming (``repos.listForUser``, ``pulls.create``...). Most entries are plain
endpoint definitions of the form ``"VERB /path/{param}"``; parameters named
in the path are substituted and the rest become the query string or the JSON
body depending on the verb. ``{+name}`` keeps ``/`` unescaped, which is what
file paths need.

Operations that do not fit that mould (GraphQL) register a handler instead.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, Mapping, Optional, Tuple
from urllib.parse import quote

from .exceptions import OperationParameterError
from .http_clients import GitHubClient, UpstreamResponse

OperationHandler = Callable[[GitHubClient, Mapping[str, Any]], Awaitable[UpstreamResponse]]

_PLACEHOLDER = re.compile(r"\{(\+?)(\w+)\}")
_QUERY_METHODS = frozenset({"GET", "HEAD", "DELETE"})


@dataclass(frozen=True)
class Operation:
    namespace: str
    method: str
    http_method: str = "GET"
    path: str = ""
    handler: Optional[OperationHandler] = None

    @property
    def key(self) -> str:
        return f"{self.namespace}.{self.method}"

    @property
    def path_parameters(self) -> Tuple[str, ...]:
        return tuple(name for _, name in _PLACEHOLDER.findall(self.path))

    def build_request(
        self, params: Mapping[str, Any]
    ) -> Tuple[str, Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """Return ``(path, query, body)`` for ``params``."""

        remaining = dict(params)

        def _substitute(match: re.Match) -> str:
            reserved, name = match.group(1), match.group(2)
            value = remaining.pop(name, None)
            if value is None or value == "":
                raise OperationParameterError(self.key, name)
            return quote(str(value), safe="/" if reserved else "")

        path = _PLACEHOLDER.sub(_substitute, self.path)

        if self.http_method in _QUERY_METHODS:
            return path, remaining or None, None
        return path, None, remaining

    async def __call__(self, client: GitHubClient, params: Mapping[str, Any]) -> UpstreamResponse:
        if self.handler is not None:
            return await self.handler(client, params)
        path, query, body = self.build_request(params)
        return await client.request(self.http_method, path, params=query, json_body=body)


class OperationRegistry:
    """Mapping of ``(namespace, method)`` pairs to operations.

    Populated once at startup and read-only afterwards. Blocked keys resolve
    exactly like unregistered ones.
    """

    def __init__(
        self,
        operations: Iterable[Operation] = (),
        *,
        blocked: Iterable[str] = (),
    ) -> None:
        self._operations: Dict[Tuple[str, str], Operation] = {}
        self._blocked = frozenset(blocked)
        for operation in operations:
            self.register(operation)

    def register(self, operation: Operation) -> Operation:
        key = (operation.namespace, operation.method)
        if key in self._operations:
            raise ValueError(f"Operation {operation.key} is already registered")
        if operation.handler is None and not operation.path:
            raise ValueError(f"Operation {operation.key} needs a path or a handler")
        self._operations[key] = operation
        return operation

    def handler(self, namespace: str, method: str) -> Callable[[OperationHandler], OperationHandler]:
        """Decorator registering a custom handler under ``namespace.method``."""

        def _decorator(func: OperationHandler) -> OperationHandler:
            self.register(Operation(namespace=namespace, method=method, handler=func))
            return func

        return _decorator

    def resolve(self, namespace: str, method: str) -> Optional[Operation]:
        if f"{namespace}.{method}" in self._blocked:
            return None
        return self._operations.get((namespace, method))

    def keys(self) -> list[str]:
        return sorted(op.key for op in self if op.key not in self._blocked)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        return self.resolve(*key) is not None

    def __iter__(self) -> Iterator[Operation]:
        return iter(self._operations.values())

    def __len__(self) -> int:
        return len(self._operations)


# Octokit-style endpoint definitions.
REST_ENDPOINTS: Dict[str, str] = {
    # repos
    "repos.get": "GET /repos/{owner}/{repo}",
    "repos.update": "PATCH /repos/{owner}/{repo}",
    "repos.listForUser": "GET /users/{username}/repos",
    "repos.listForOrg": "GET /orgs/{org}/repos",
    "repos.listForAuthenticatedUser": "GET /user/repos",
    "repos.createForAuthenticatedUser": "POST /user/repos",
    "repos.createInOrg": "POST /orgs/{org}/repos",
    "repos.createFork": "POST /repos/{owner}/{repo}/forks",
    "repos.listBranches": "GET /repos/{owner}/{repo}/branches",
    "repos.getBranch": "GET /repos/{owner}/{repo}/branches/{branch}",
    "repos.listCommits": "GET /repos/{owner}/{repo}/commits",
    "repos.getCommit": "GET /repos/{owner}/{repo}/commits/{ref}",
    "repos.compareCommits": "GET /repos/{owner}/{repo}/compare/{basehead}",
    "repos.getContent": "GET /repos/{owner}/{repo}/contents/{+path}",
    "repos.createOrUpdateFileContents": "PUT /repos/{owner}/{repo}/contents/{+path}",
    "repos.deleteFile": "DELETE /repos/{owner}/{repo}/contents/{+path}",
    "repos.getReadme": "GET /repos/{owner}/{repo}/readme",
    "repos.listTags": "GET /repos/{owner}/{repo}/tags",
    "repos.listReleases": "GET /repos/{owner}/{repo}/releases",
    "repos.getLatestRelease": "GET /repos/{owner}/{repo}/releases/latest",
    "repos.createRelease": "POST /repos/{owner}/{repo}/releases",
    "repos.listContributors": "GET /repos/{owner}/{repo}/contributors",
    "repos.listLanguages": "GET /repos/{owner}/{repo}/languages",
    "repos.listCollaborators": "GET /repos/{owner}/{repo}/collaborators",
    "repos.getCombinedStatusForRef": "GET /repos/{owner}/{repo}/commits/{ref}/status",
    "repos.createDispatchEvent": "POST /repos/{owner}/{repo}/dispatches",
    # pulls
    "pulls.list": "GET /repos/{owner}/{repo}/pulls",
    "pulls.get": "GET /repos/{owner}/{repo}/pulls/{pull_number}",
    "pulls.create": "POST /repos/{owner}/{repo}/pulls",
    "pulls.update": "PATCH /repos/{owner}/{repo}/pulls/{pull_number}",
    "pulls.merge": "PUT /repos/{owner}/{repo}/pulls/{pull_number}/merge",
    "pulls.listFiles": "GET /repos/{owner}/{repo}/pulls/{pull_number}/files",
    "pulls.listCommits": "GET /repos/{owner}/{repo}/pulls/{pull_number}/commits",
    "pulls.listReviews": "GET /repos/{owner}/{repo}/pulls/{pull_number}/reviews",
    "pulls.createReview": "POST /repos/{owner}/{repo}/pulls/{pull_number}/reviews",
    "pulls.listReviewComments": "GET /repos/{owner}/{repo}/pulls/{pull_number}/comments",
    "pulls.requestReviewers": "POST /repos/{owner}/{repo}/pulls/{pull_number}/requested_reviewers",
    # issues
    "issues.listForRepo": "GET /repos/{owner}/{repo}/issues",
    "issues.get": "GET /repos/{owner}/{repo}/issues/{issue_number}",
    "issues.create": "POST /repos/{owner}/{repo}/issues",
    "issues.update": "PATCH /repos/{owner}/{repo}/issues/{issue_number}",
    "issues.listComments": "GET /repos/{owner}/{repo}/issues/{issue_number}/comments",
    "issues.createComment": "POST /repos/{owner}/{repo}/issues/{issue_number}/comments",
    "issues.addLabels": "POST /repos/{owner}/{repo}/issues/{issue_number}/labels",
    "issues.listLabelsForRepo": "GET /repos/{owner}/{repo}/labels",
    "issues.listMilestones": "GET /repos/{owner}/{repo}/milestones",
    # git data
    "git.getRef": "GET /repos/{owner}/{repo}/git/ref/{+ref}",
    "git.createRef": "POST /repos/{owner}/{repo}/git/refs",
    "git.updateRef": "PATCH /repos/{owner}/{repo}/git/refs/{+ref}",
    "git.deleteRef": "DELETE /repos/{owner}/{repo}/git/refs/{+ref}",
    "git.getTree": "GET /repos/{owner}/{repo}/git/trees/{tree_sha}",
    "git.createTree": "POST /repos/{owner}/{repo}/git/trees",
    "git.getBlob": "GET /repos/{owner}/{repo}/git/blobs/{file_sha}",
    "git.createBlob": "POST /repos/{owner}/{repo}/git/blobs",
    "git.getCommit": "GET /repos/{owner}/{repo}/git/commits/{commit_sha}",
    "git.createCommit": "POST /repos/{owner}/{repo}/git/commits",
    # users / orgs
    "users.getAuthenticated": "GET /user",
    "users.getByUsername": "GET /users/{username}",
    "orgs.get": "GET /orgs/{org}",
    "orgs.listForUser": "GET /users/{username}/orgs",
    "orgs.listMembers": "GET /orgs/{org}/members",
    # actions
    "actions.listWorkflowRunsForRepo": "GET /repos/{owner}/{repo}/actions/runs",
    "actions.getWorkflowRun": "GET /repos/{owner}/{repo}/actions/runs/{run_id}",
    "actions.listRepoWorkflows": "GET /repos/{owner}/{repo}/actions/workflows",
    "actions.createWorkflowDispatch": "POST /repos/{owner}/{repo}/actions/workflows/{workflow_id}/dispatches",
    # search
    "search.repos": "GET /search/repositories",
    "search.code": "GET /search/code",
    "search.issuesAndPullRequests": "GET /search/issues",
    "search.commits": "GET /search/commits",
    "search.users": "GET /search/users",
    # misc
    "rateLimit.get": "GET /rate_limit",
    "meta.get": "GET /meta",
}


def _parse_endpoint(key: str, route: str) -> Operation:
    namespace, method = key.split(".", 1)
    http_method, path = route.split(" ", 1)
    return Operation(namespace=namespace, method=method, http_method=http_method.upper(), path=path)


async def _graphql_query(client: GitHubClient, params: Mapping[str, Any]) -> UpstreamResponse:
    query = params.get("query")
    if not isinstance(query, str) or not query.strip():
        raise OperationParameterError("graphql.query", "query")
    variables = params.get("variables")
    return await client.graphql(query, variables if isinstance(variables, Mapping) else None)


def build_default_registry(blocked: Iterable[str] = ()) -> OperationRegistry:
    registry = OperationRegistry(
        (_parse_endpoint(key, route) for key, route in REST_ENDPOINTS.items()),
        blocked=blocked,
    )
    registry.handler("graphql", "query")(_graphql_query)
    return registry


__all__ = [
    "Operation",
    "OperationHandler",
    "OperationRegistry",
    "REST_ENDPOINTS",
    "build_default_registry",
]
