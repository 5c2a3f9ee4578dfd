"""Async GitHub client used by the proxy and the tool endpoints."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import httpx

from .config import GatewaySettings
from .exceptions import GitHubAPIError, GitHubAuthError, GitHubRateLimitError
from .github_logging import record_github_request

GITHUB_API_VERSION = "2022-11-28"

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


@dataclass(frozen=True)
class UpstreamResponse:
    """Status, headers and decoded JSON body of one GitHub call."""

    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    json: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def message(self) -> str:
        if isinstance(self.json, dict):
            message = self.json.get("message")
            if isinstance(message, str):
                return message
        return ""

    def raise_for_status(self) -> "UpstreamResponse":
        if self.ok:
            return self

        message = self.message() or "no message"
        if self.status_code == 401:
            raise GitHubAuthError(
                f"GitHub authentication failed: {message}",
                status_code=self.status_code,
                response_payload=self.json,
            )
        if _is_rate_limited(self):
            reset_hint = self.headers.get("retry-after") or self.headers.get("x-ratelimit-reset")
            suffix = f"; retry after {reset_hint}" if reset_hint else ""
            raise GitHubRateLimitError(
                f"GitHub rate limit exceeded{suffix}",
                status_code=self.status_code,
                response_payload=self.json,
            )
        raise GitHubAPIError(
            f"GitHub API error {self.status_code}: {message}",
            status_code=self.status_code,
            response_payload=self.json,
        )


def _is_rate_limited(resp: UpstreamResponse) -> bool:
    if resp.status_code == 429:
        return True
    if resp.status_code == 403:
        if resp.headers.get("x-ratelimit-remaining") == "0":
            return True
        if "rate limit" in resp.message().lower():
            return True
    return False


def _decode_body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    content_type = resp.headers.get("content-type", "").lower()
    if content_type and "json" not in content_type:
        return resp.text
    try:
        return resp.json()
    except ValueError:
        return resp.text


def _build_http_client(settings: GatewaySettings, transport: Optional[httpx.AsyncBaseTransport]) -> httpx.AsyncClient:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
        "User-Agent": "github-gateway",
    }
    if settings.github_token:
        headers["Authorization"] = f"Bearer {settings.github_token}"

    return httpx.AsyncClient(
        base_url=settings.github_api_base,
        timeout=settings.httpx_timeout,
        limits=httpx.Limits(
            max_connections=settings.httpx_max_connections,
            max_keepalive_connections=settings.httpx_max_keepalive,
        ),
        headers=headers,
        transport=transport,
    )


class GitHubClient:
    """Thin wrapper over one pooled ``httpx.AsyncClient``.

    Non-2xx responses are returned, not raised, so the generic proxy can relay
    them; callers that need success call ``raise_for_status`` themselves.
    Only transport-level failures raise here.
    """

    def __init__(
        self,
        settings: GatewaySettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = settings.github_api_base
        self._client = _build_http_client(settings, transport)

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json_body: Any = None,
    ) -> UpstreamResponse:
        method = method.upper()
        cleaned_params = {k: v for k, v in (params or {}).items() if v is not None} or None
        kwargs: Dict[str, Any] = {"params": cleaned_params}
        if method in _BODY_METHODS and json_body is not None:
            kwargs["json"] = json_body

        start = time.time()
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            record_github_request(
                base_url=self.base_url,
                method=method,
                url=f"{self.base_url}{path}",
                status_code=None,
                duration_ms=int((time.time() - start) * 1000),
                error=True,
                exc=exc,
            )
            raise GitHubAPIError(f"GitHub request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            record_github_request(
                base_url=self.base_url,
                method=method,
                url=f"{self.base_url}{path}",
                status_code=None,
                duration_ms=int((time.time() - start) * 1000),
                error=True,
                exc=exc,
            )
            raise GitHubAPIError(f"GitHub request failed: {exc}") from exc

        record_github_request(
            base_url=self.base_url,
            method=method,
            status_code=resp.status_code,
            duration_ms=int((time.time() - start) * 1000),
            error=resp.is_error,
            resp=resp,
        )

        return UpstreamResponse(
            status_code=resp.status_code,
            headers={k.lower(): v for k, v in resp.headers.items()},
            json=_decode_body(resp),
        )

    async def graphql(
        self, query: str, variables: Optional[Mapping[str, Any]] = None
    ) -> UpstreamResponse:
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = dict(variables)
        return await self.request("POST", "/graphql", json_body=payload)


__all__ = ["GITHUB_API_VERSION", "GitHubClient", "UpstreamResponse"]
