"""Configuration and logging helpers for the GitHub gateway."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Mapping, Optional

# Logging
# ------------------------------------------------------------------------------

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_STYLE = os.environ.get("LOG_STYLE", "color").lower()

# Default to a compact, scannable format.
LOG_FORMAT = os.environ.get(
    "LOG_FORMAT",
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)


def _resolve_log_level(level_name: str | None) -> int:
    if not level_name:
        return logging.INFO

    name = str(level_name).strip().upper()
    if not name:
        return logging.INFO

    # Numeric levels are allowed.
    if name.lstrip("-").isdigit():
        return int(name)

    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


class _ColorFormatter(logging.Formatter):
    """Level-colored formatter for stdout logs."""

    _C = {
        "DEBUG": "\x1b[36m",  # cyan
        "INFO": "\x1b[32m",  # green
        "WARNING": "\x1b[33m",  # yellow
        "ERROR": "\x1b[31m",  # red
        "CRITICAL": "\x1b[35m",  # magenta
        "RESET": "\x1b[0m",
    }

    def __init__(self, fmt: str, *, use_color: bool) -> None:
        super().__init__(fmt)
        self._use_color = bool(use_color)

    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - formatting
        levelname = record.levelname
        if self._use_color and levelname in self._C:
            record.levelname = f"{self._C[levelname]}{levelname}{self._C['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def _configure_logging() -> None:
    # Avoid reconfiguring during module reloads.
    root = logging.getLogger()
    if getattr(root, "_github_gateway_configured", False):
        return

    use_color = LOG_STYLE in {"color", "ansi", "colored"}

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(_ColorFormatter(LOG_FORMAT, use_color=use_color))

    logging.basicConfig(
        level=_resolve_log_level(LOG_LEVEL),
        handlers=[console_handler],
        force=True,
    )

    # Reduce noisy framework logs; the audit logger already records each request.
    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    setattr(root, "_github_gateway_configured", True)


_configure_logging()

BASE_LOGGER = logging.getLogger("github_gateway")
GITHUB_LOGGER = logging.getLogger("github_gateway.github_client")
CACHE_LOGGER = logging.getLogger("github_gateway.cache")
AUDIT_LOGGER = logging.getLogger("github_gateway.audit")
TOOLS_LOGGER = logging.getLogger("github_gateway.tools")

SERVER_START_TIME = time.time()

# Settings
# ------------------------------------------------------------------------------

GITHUB_TOKEN_ENV_VARS = ("GITHUB_PAT", "GITHUB_TOKEN")
DEFAULT_GITHUB_API_BASE = "https://api.github.com"
DEFAULT_MOUNTS = ("/api", "/v1")


def _env_str(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _env_str(env, name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        BASE_LOGGER.warning("Invalid %s value %r, falling back to %s", name, raw, default)
        return default


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _env_str(env, name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        BASE_LOGGER.warning("Invalid %s value %r, falling back to %s", name, raw, default)
        return default


def _env_list(env: Mapping[str, str], name: str) -> tuple[str, ...]:
    raw = env.get(name) or ""
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _normalize_mount(prefix: str) -> str:
    cleaned = "/" + prefix.strip().strip("/")
    return cleaned


@dataclass(frozen=True)
class GatewaySettings:
    """Immutable configuration handed to the app factory.

    Handlers never read the environment directly; everything they need is
    threaded through this object at construction time.
    """

    api_key: Optional[str] = None
    github_token: Optional[str] = None
    github_api_base: str = DEFAULT_GITHUB_API_BASE
    redis_url: Optional[str] = None
    etag_ttl_seconds: int = 0
    etag_memory_max_entries: int = 10_000
    mounts: tuple[str, ...] = DEFAULT_MOUNTS
    blocked_operations: frozenset[str] = field(default_factory=frozenset)
    httpx_timeout: float = 30.0
    httpx_max_connections: int = 100
    httpx_max_keepalive: int = 20

    def __post_init__(self) -> None:
        mounts = tuple(dict.fromkeys(_normalize_mount(m) for m in self.mounts if m.strip("/ ")))
        if not mounts:
            raise ValueError("At least one non-root mount prefix is required")
        object.__setattr__(self, "mounts", mounts)
        object.__setattr__(self, "blocked_operations", frozenset(self.blocked_operations))


def _github_token_from_env(env: Mapping[str, str]) -> Optional[str]:
    for env_var in GITHUB_TOKEN_ENV_VARS:
        token = _env_str(env, env_var)
        if token:
            return token
    return None


def load_settings(env: Mapping[str, str] | None = None) -> GatewaySettings:
    """Build :class:`GatewaySettings` from environment variables."""

    if env is None:
        env = os.environ

    mounts = _env_list(env, "GATEWAY_MOUNTS") or DEFAULT_MOUNTS

    return GatewaySettings(
        api_key=_env_str(env, "GATEWAY_API_KEY"),
        github_token=_github_token_from_env(env),
        github_api_base=(_env_str(env, "GITHUB_API_BASE") or DEFAULT_GITHUB_API_BASE).rstrip("/"),
        redis_url=_env_str(env, "GATEWAY_REDIS_URL"),
        etag_ttl_seconds=_env_int(env, "GATEWAY_ETAG_TTL_SECONDS", 0),
        etag_memory_max_entries=_env_int(env, "GATEWAY_ETAG_MEMORY_MAX_ENTRIES", 10_000),
        mounts=mounts,
        blocked_operations=frozenset(_env_list(env, "GATEWAY_BLOCKED_OPERATIONS")),
        httpx_timeout=_env_float(env, "HTTPX_TIMEOUT", 30.0),
        httpx_max_connections=_env_int(env, "HTTPX_MAX_CONNECTIONS", 100),
        httpx_max_keepalive=_env_int(env, "HTTPX_MAX_KEEPALIVE", 20),
    )


__all__ = [
    "AUDIT_LOGGER",
    "BASE_LOGGER",
    "CACHE_LOGGER",
    "DEFAULT_GITHUB_API_BASE",
    "DEFAULT_MOUNTS",
    "GITHUB_LOGGER",
    "GITHUB_TOKEN_ENV_VARS",
    "GatewaySettings",
    "SERVER_START_TIME",
    "TOOLS_LOGGER",
    "load_settings",
]
