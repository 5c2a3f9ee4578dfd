"""Logging helpers for upstream GitHub requests.

Goals:
- Keep log lines human-readable and clickable.
- Preserve structured metadata in ``extra`` for log processors.
"""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

import httpx

from .config import GITHUB_LOGGER
from .request_context import get_correlation_id


def _derive_github_web_url(api_url: str) -> Optional[str]:
    """Convert an api.github.com URL into a human-friendly github.com URL.

    Raw API links frequently 404 in a browser for private repositories; the
    web equivalent is what a human wants to click on.
    """

    try:
        parsed = urlparse(api_url)
    except ValueError:  # pragma: no cover
        return None

    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 3 or parts[0] != "repos":
        return None

    full_name = f"{parts[1]}/{parts[2]}"

    # /repos/{owner}/{repo}/contents/{path}?ref={ref}
    if len(parts) >= 5 and parts[3] == "contents":
        file_path = "/".join(parts[4:])
        ref = parse_qs(parsed.query).get("ref", ["HEAD"])[0]
        return f"https://github.com/{full_name}/blob/{ref}/{file_path}"

    # /repos/{owner}/{repo}/pulls/{number}
    if len(parts) >= 5 and parts[3] in {"pulls", "issues"}:
        kind = "pull" if parts[3] == "pulls" else "issues"
        return f"https://github.com/{full_name}/{kind}/{parts[4]}"

    return f"https://github.com/{full_name}"


def _shorten_api_url(api_url: str, base_url: str) -> str:
    base = base_url.rstrip("/")
    if api_url.startswith(base):
        return api_url[len(base) :] or "/"
    return api_url


def record_github_request(
    *,
    base_url: str,
    status_code: Optional[int],
    duration_ms: int,
    error: bool,
    method: Optional[str] = None,
    url: Optional[str] = None,
    resp: Optional[httpx.Response] = None,
    exc: Optional[BaseException] = None,
) -> None:
    """Log GitHub request metadata as a single line."""

    if resp is not None and url is None:
        url = str(resp.request.url)

    log_extra: dict[str, Any] = {
        "status_code": status_code,
        "duration_ms": duration_ms,
        "error": error,
        "correlation_id": get_correlation_id(),
    }
    if method:
        log_extra["method"] = method
    if url:
        log_extra["url"] = url
        web_url = _derive_github_web_url(url)
        if web_url:
            log_extra["web_url"] = web_url
    if resp is not None:
        log_extra["rate_limit_remaining"] = resp.headers.get("X-RateLimit-Remaining")
    if exc is not None:
        log_extra["exc_type"] = exc.__class__.__name__

    status = status_code if status_code is not None else "ERR"
    msg = f"GitHub API {method or '?'} {_shorten_api_url(url or '', base_url)} -> {status} ({duration_ms}ms)"
    web_url_val = log_extra.get("web_url")
    if web_url_val:
        # Keep the URL away from the end of the line; some log viewers fold
        # trailing punctuation into the detected hyperlink.
        msg += f" | web: {web_url_val} [web]"

    if error:
        GITHUB_LOGGER.warning(msg, extra=log_extra)
    else:
        GITHUB_LOGGER.info(msg, extra=log_extra)


__all__ = ["record_github_request"]
