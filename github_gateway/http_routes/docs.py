"""Swagger UI page for the OpenAPI document."""

from __future__ import annotations

from typing import Any

from starlette.requests import Request
from starlette.responses import HTMLResponse

SWAGGER_UI_VERSION = "5"

_PAGE = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>GitHub Gateway API</title>
  <link rel="stylesheet" href="https://cdn.jsdelivr.net/npm/swagger-ui-dist@{version}/swagger-ui.css" />
</head>
<body>
  <div id="swagger-ui"></div>
  <script src="https://cdn.jsdelivr.net/npm/swagger-ui-dist@{version}/swagger-ui-bundle.js" crossorigin></script>
  <script>
    window.onload = () => {{
      window.ui = SwaggerUIBundle({{ url: "{spec_url}", dom_id: "#swagger-ui" }});
    }};
  </script>
</body>
</html>
"""


def render_swagger_page(spec_url: str = "/openapi.json") -> str:
    return _PAGE.format(version=SWAGGER_UI_VERSION, spec_url=spec_url)


def build_docs_endpoint(spec_url: str = "/openapi.json") -> Any:
    page = render_swagger_page(spec_url)

    async def _endpoint(_request: Request) -> HTMLResponse:
        return HTMLResponse(page)

    return _endpoint


__all__ = ["build_docs_endpoint", "render_swagger_page"]
