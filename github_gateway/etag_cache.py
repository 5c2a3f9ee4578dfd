"""ETag-based conditional responses backed by a key-value store.

Keys are ``"etag:" + <request URL>``. The URL is used verbatim, query string
included, so ``?a=1&b=2`` and ``?b=2&a=1`` are different entries.

The store is best-effort: any failure while reading is treated as a miss and
any failure while writing is logged and dropped. Requests never fail because
the cache is unavailable.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Optional, Tuple

import redis.asyncio as redis
from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .config import CACHE_LOGGER, GatewaySettings

CACHE_KEY_PREFIX = "etag:"
# Writes always reach downstream; a matching ETag must never skip them.
CACHEABLE_METHODS = frozenset({"GET", "HEAD"})


def cache_key(url: str) -> str:
    return f"{CACHE_KEY_PREFIX}{url}"


class EtagStore:
    """Interface shared by the Redis and in-process stores."""

    async def get(self, key: str) -> Optional[str]:  # pragma: no cover - interface
        raise NotImplementedError

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:  # pragma: no cover
        raise NotImplementedError

    async def delete(self, key: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class MemoryEtagStore(EtagStore):
    """Bounded LRU store for local runs and tests.

    Entries carry an optional monotonic deadline and are dropped lazily when
    read after it passes.
    """

    def __init__(self, max_entries: int = 10_000) -> None:
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, Tuple[str, Optional[float]]]" = OrderedDict()

    def _evict_if_needed(self) -> None:
        while self.max_entries > 0 and len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    async def get(self, key: str) -> Optional[str]:
        item = self._entries.get(key)
        if item is None:
            return None
        value, deadline = item
        if deadline is not None and time.monotonic() >= deadline:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        deadline = time.monotonic() + ttl_seconds if ttl_seconds and ttl_seconds > 0 else None
        self._entries.pop(key, None)
        self._entries[key] = (value, deadline)
        self._evict_if_needed()

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class RedisEtagStore(EtagStore):
    def __init__(self, client: "redis.Redis") -> None:
        self._redis = client

    @classmethod
    def from_url(cls, url: str) -> "RedisEtagStore":
        client = redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            health_check_interval=30,
        )
        return cls(client)

    async def get(self, key: str) -> Optional[str]:
        return await self._redis.get(key)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        if ttl_seconds and ttl_seconds > 0:
            await self._redis.set(key, value, ex=ttl_seconds)
        else:
            await self._redis.set(key, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(key)

    async def ping(self) -> bool:
        return bool(await self._redis.ping())

    async def aclose(self) -> None:
        await self._redis.aclose()


def build_etag_store(settings: GatewaySettings) -> EtagStore:
    if settings.redis_url:
        return RedisEtagStore.from_url(settings.redis_url)
    CACHE_LOGGER.info("GATEWAY_REDIS_URL not set; using in-process ETag store")
    return MemoryEtagStore(max_entries=settings.etag_memory_max_entries)


class EtagCacheMiddleware:
    """ASGI middleware answering conditional requests from stored ETags.

    Written against raw ASGI rather than ``BaseHTTPMiddleware`` so the store
    update can run after the downstream response has been fully sent.
    """

    def __init__(self, app: ASGIApp, store: EtagStore, ttl_seconds: int = 0) -> None:
        self.app = app
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def _lookup(self, key: str) -> Optional[str]:
        try:
            return await self.store.get(key)
        except Exception as exc:  # noqa: BLE001
            CACHE_LOGGER.warning("ETag lookup failed for %s: %s", key, exc)
            return None

    async def _record(self, key: str, etag: Optional[str]) -> None:
        try:
            if etag:
                await self.store.set(key, etag, self.ttl_seconds if self.ttl_seconds > 0 else None)
            else:
                # The resource is no longer cacheable; an old ETag must not
                # satisfy a later conditional request.
                await self.store.delete(key)
        except Exception as exc:  # noqa: BLE001
            CACHE_LOGGER.warning("ETag store update failed for %s: %s", key, exc)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http" or scope.get("method") not in CACHEABLE_METHODS:
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        key = cache_key(str(request.url))
        if_none_match = request.headers.get("if-none-match")

        if if_none_match:
            cached = await self._lookup(key)
            if cached is not None and cached == if_none_match:
                CACHE_LOGGER.debug("ETag hit for %s", key)
                await Response(status_code=304, headers={"ETag": cached})(scope, receive, send)
                return

        response_etag: Optional[str] = None
        started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_etag, started
            if message.get("type") == "http.response.start" and not started:
                started = True
                response_etag = Headers(raw=message.get("headers", [])).get("etag")
            await send(message)

        await self.app(scope, receive, send_wrapper)

        if started:
            await self._record(key, response_etag)


__all__ = [
    "CACHEABLE_METHODS",
    "CACHE_KEY_PREFIX",
    "EtagCacheMiddleware",
    "EtagStore",
    "MemoryEtagStore",
    "RedisEtagStore",
    "build_etag_store",
    "cache_key",
]
