import json

import httpx

from github_gateway.etag_cache import MemoryEtagStore


def _repos_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        json=[{"id": 1, "name": "Hello-World"}],
        headers={"ETag": '"repos-v1"', "X-RateLimit-Remaining": "4999"},
    )


def test_get_relays_status_headers_and_body(gateway, auth_headers):
    client = gateway(_repos_handler)

    resp = client.get("/api/octokit/repos/listForUser?username=octocat&per_page=5", headers=auth_headers)

    assert resp.status_code == 200
    assert resp.json() == [{"id": 1, "name": "Hello-World"}]
    assert resp.headers["etag"] == '"repos-v1"'
    assert resp.headers["x-ratelimit-remaining"] == "4999"

    [upstream] = client.upstream_requests
    assert upstream.method == "GET"
    assert upstream.url.path == "/users/octocat/repos"
    assert dict(upstream.url.params) == {"per_page": "5"}


def test_every_mount_serves_the_proxy(gateway, auth_headers):
    client = gateway(_repos_handler)

    assert client.get("/api/octokit/repos/listForUser?username=a", headers=auth_headers).status_code == 200
    assert client.get("/v1/octokit/repos/listForUser?username=a", headers=auth_headers).status_code == 200
    assert len(client.upstream_requests) == 2


def test_unknown_operation_is_404(gateway, auth_headers):
    client = gateway(_repos_handler)

    resp = client.get("/api/octokit/repos/doesNotExist", headers=auth_headers)

    assert resp.status_code == 404
    error = resp.json()["error"]
    assert error["error"] == "Not Found"
    assert error["context"] == "proxy:repos.doesNotExist"
    assert client.upstream_requests == []


def test_blocked_operation_is_404(gateway, auth_headers):
    client = gateway(_repos_handler, blocked_operations=frozenset({"repos.listForUser"}))

    resp = client.get("/api/octokit/repos/listForUser?username=octocat", headers=auth_headers)

    assert resp.status_code == 404
    assert client.upstream_requests == []


def test_post_uses_json_body_as_parameters(gateway, auth_headers):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json={"number": 7, "title": json.loads(request.content)["title"]})

    client = gateway(handler)

    resp = client.post(
        "/api/octokit/issues/create",
        headers=auth_headers,
        json={"owner": "octocat", "repo": "Hello-World", "title": "Found a bug"},
    )

    assert resp.status_code == 201
    assert resp.json() == {"number": 7, "title": "Found a bug"}
    [upstream] = client.upstream_requests
    assert upstream.method == "POST"
    assert upstream.url.path == "/repos/octocat/Hello-World/issues"
    assert json.loads(upstream.content) == {"title": "Found a bug"}


def test_post_with_empty_body_means_no_parameters(gateway, auth_headers):
    client = gateway(lambda request: httpx.Response(200, json={"login": "octocat"}))

    resp = client.post("/api/octokit/users/getAuthenticated", headers=auth_headers)

    assert resp.status_code == 200
    assert client.upstream_requests[0].url.path == "/user"


def test_post_with_invalid_json_is_400(gateway, auth_headers):
    client = gateway(_repos_handler)

    bad = client.post(
        "/api/octokit/issues/create",
        headers={**auth_headers, "Content-Type": "application/json"},
        content=b"{not json",
    )
    not_object = client.post("/api/octokit/issues/create", headers=auth_headers, json=[1, 2])

    assert bad.status_code == 400
    assert bad.json()["error"]["category"] == "validation"
    assert not_object.status_code == 400
    assert client.upstream_requests == []


def test_missing_path_parameter_is_400_naming_it(gateway, auth_headers):
    client = gateway(_repos_handler)

    resp = client.get("/api/octokit/repos/get?owner=octocat", headers=auth_headers)

    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["error"] == "OperationParameterError"
    assert error["field"] == "repo"
    assert client.upstream_requests == []


def test_upstream_error_status_is_relayed(gateway, auth_headers):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Not Found", "documentation_url": "https://docs.github.com"})

    client = gateway(handler)

    resp = client.get("/api/octokit/repos/get?owner=octocat&repo=missing", headers=auth_headers)

    assert resp.status_code == 404
    assert resp.json()["message"] == "Not Found"


def test_upstream_304_is_relayed_without_body(gateway, auth_headers):
    client = gateway(lambda request: httpx.Response(304, headers={"ETag": '"same"'}))

    resp = client.get("/api/octokit/meta/get", headers=auth_headers)

    assert resp.status_code == 304
    assert resp.content == b""


def test_transport_failure_is_502(gateway, auth_headers):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    client = gateway(handler)

    resp = client.get("/api/octokit/users/getByUsername?username=octocat", headers=auth_headers)

    assert resp.status_code == 502
    error = resp.json()["error"]
    assert error["error"] == "GitHubAPIError"
    assert error["category"] == "github_api"


def test_graphql_operation_is_reachable(gateway, auth_headers):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"viewer": {"login": "octocat"}}})

    client = gateway(handler)

    resp = client.post("/api/octokit/graphql/query", headers=auth_headers, json={"query": "{ viewer { login } }"})

    assert resp.status_code == 200
    assert resp.json()["data"]["viewer"]["login"] == "octocat"
    assert client.upstream_requests[0].url.path == "/graphql"


def test_conditional_get_is_answered_from_etag_store(gateway, auth_headers):
    store = MemoryEtagStore()
    client = gateway(_repos_handler, etag_store=store)
    url = "/api/octokit/repos/listForUser?username=octocat"

    first = client.get(url, headers=auth_headers)
    assert first.status_code == 200
    assert len(store) == 1

    second = client.get(url, headers={**auth_headers, "If-None-Match": '"repos-v1"'})

    assert second.status_code == 304
    assert second.headers["etag"] == '"repos-v1"'
    assert "x-correlation-id" in second.headers
    assert len(client.upstream_requests) == 1


def test_tools_routes_are_not_etag_cached(gateway, auth_headers):
    store = MemoryEtagStore()
    client = gateway(_repos_handler, etag_store=store)

    client.get("/api/tools", headers=auth_headers)

    assert len(store) == 0


def test_repeated_post_with_if_none_match_reaches_upstream(gateway, auth_headers):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json={"number": 1}, headers={"ETag": '"p1"'})

    store = MemoryEtagStore()
    client = gateway(handler, etag_store=store)
    body = {"owner": "octocat", "repo": "Hello-World", "title": "Found a bug"}
    headers = {**auth_headers, "If-None-Match": '"p1"'}

    first = client.post("/api/octokit/issues/create", headers=headers, json=body)
    second = client.post("/api/octokit/issues/create", headers=headers, json=body)

    assert first.status_code == 201
    assert second.status_code == 201
    assert len(client.upstream_requests) == 2
    assert len(store) == 0
