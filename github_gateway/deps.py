from __future__ import annotations

from dataclasses import dataclass

from .config import GatewaySettings
from .etag_cache import EtagStore
from .http_clients import GitHubClient
from .operations import OperationRegistry


@dataclass(frozen=True)
class GatewayDeps:
    """Process-wide handles passed into every endpoint factory."""

    settings: GatewaySettings
    github: GitHubClient
    etag_store: EtagStore
    registry: OperationRegistry


__all__ = ["GatewayDeps"]
