from __future__ import annotations

import logging

import pytest

from github_gateway import config
from github_gateway.config import GatewaySettings, load_settings


def test_load_settings_defaults():
    settings = load_settings({})

    assert settings.api_key is None
    assert settings.github_token is None
    assert settings.github_api_base == "https://api.github.com"
    assert settings.redis_url is None
    assert settings.etag_ttl_seconds == 0
    assert settings.etag_memory_max_entries == 10_000
    assert settings.mounts == ("/api", "/v1")
    assert settings.blocked_operations == frozenset()
    assert settings.httpx_timeout == 30.0
    assert settings.httpx_max_connections == 100
    assert settings.httpx_max_keepalive == 20


def test_load_settings_reads_environment():
    settings = load_settings(
        {
            "GATEWAY_API_KEY": "  secret  ",
            "GITHUB_TOKEN": "ghp_token",
            "GITHUB_API_BASE": "https://ghe.example.com/api/v3/",
            "GATEWAY_REDIS_URL": "redis://cache:6379/1",
            "GATEWAY_ETAG_TTL_SECONDS": "300",
            "GATEWAY_MOUNTS": "gh, /v2/ ,gh",
            "GATEWAY_BLOCKED_OPERATIONS": "repos.deleteFile, git.deleteRef",
            "HTTPX_TIMEOUT": "5.5",
        }
    )

    assert settings.api_key == "secret"
    assert settings.github_token == "ghp_token"
    assert settings.github_api_base == "https://ghe.example.com/api/v3"
    assert settings.redis_url == "redis://cache:6379/1"
    assert settings.etag_ttl_seconds == 300
    assert settings.mounts == ("/gh", "/v2")
    assert settings.blocked_operations == frozenset({"repos.deleteFile", "git.deleteRef"})
    assert settings.httpx_timeout == 5.5


def test_github_pat_takes_precedence_over_token():
    settings = load_settings({"GITHUB_PAT": "pat", "GITHUB_TOKEN": "token"})
    assert settings.github_token == "pat"

    settings = load_settings({"GITHUB_PAT": "   ", "GITHUB_TOKEN": "token"})
    assert settings.github_token == "token"


def test_invalid_numbers_fall_back_to_defaults(caplog):
    with caplog.at_level(logging.WARNING, logger="github_gateway"):
        settings = load_settings({"GATEWAY_ETAG_TTL_SECONDS": "soon", "HTTPX_TIMEOUT": "fast"})

    assert settings.etag_ttl_seconds == 0
    assert settings.httpx_timeout == 30.0
    assert any("GATEWAY_ETAG_TTL_SECONDS" in r.getMessage() for r in caplog.records)


def test_root_mount_is_rejected():
    with pytest.raises(ValueError):
        GatewaySettings(mounts=("/",))


def test_settings_are_frozen():
    settings = GatewaySettings()
    with pytest.raises(AttributeError):
        settings.api_key = "changed"  # type: ignore[misc]


@pytest.mark.parametrize(
    "value, expected",
    [(None, logging.INFO), ("", logging.INFO), ("debug", logging.DEBUG), ("15", 15), ("bogus", logging.INFO)],
)
def test_resolve_log_level(value, expected):
    assert config._resolve_log_level(value) == expected


def test_color_formatter_restores_levelname():
    formatter = config._ColorFormatter("%(levelname)s %(message)s", use_color=True)
    record = logging.LogRecord("x", logging.WARNING, __file__, 1, "hello", None, None)

    rendered = formatter.format(record)

    assert "\x1b[33m" in rendered
    assert record.levelname == "WARNING"


def test_noisy_loggers_are_quieted():
    for name in ("uvicorn.access", "httpx", "httpcore"):
        assert logging.getLogger(name).level == logging.WARNING
