"""Per-request context shared between middleware and handlers."""

from __future__ import annotations

from contextvars import ContextVar
from typing import Optional

CORRELATION_HEADER = "X-Correlation-ID"

REQUEST_CORRELATION_ID: ContextVar[Optional[str]] = ContextVar(
    "github_gateway_correlation_id", default=None
)


def get_correlation_id() -> Optional[str]:
    return REQUEST_CORRELATION_ID.get()


__all__ = ["CORRELATION_HEADER", "REQUEST_CORRELATION_ID", "get_correlation_id"]
