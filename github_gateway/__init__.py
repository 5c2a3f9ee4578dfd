"""HTTP gateway in front of the GitHub API.

``create_app`` is the entry point; everything else is importable for tests
and embedding.
"""

from __future__ import annotations

from .app import build_api_router, create_app
from .config import GatewaySettings, load_settings

__all__ = ["GatewaySettings", "build_api_router", "create_app", "load_settings"]
