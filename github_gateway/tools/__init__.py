"""Fixed-shape tool endpoints built on the GitHub client."""

from __future__ import annotations

from .base import ToolSpec
from .files import UPSERT_FILE
from .issues import CREATE_ISSUE
from .prs import OPEN_PULL_REQUEST

TOOLS: tuple[ToolSpec, ...] = (UPSERT_FILE, OPEN_PULL_REQUEST, CREATE_ISSUE)

__all__ = ["CREATE_ISSUE", "OPEN_PULL_REQUEST", "TOOLS", "ToolSpec", "UPSERT_FILE"]
