"""In-memory response cache middleware for recipe reads.

Includes both a Starlette middleware class and low-level cache functions.

GET responses under /api/v1/recipes are cached for a short TTL. Each entry
remembers the logical resource path it was rendered for (the path without
the /api/v1 prefix) so writes can invalidate exactly the pages they affect
via ``revalidate_path``.
"""
from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

API_PREFIX = "/api/v1"
_DEFAULT_TTL = 30  # seconds
_MAX_ENTRIES = 500


@dataclass
class _Entry:
    path: str
    expires: float
    value: Any


_cache: dict[str, _Entry] = {}


def logical_path(path: str) -> str:
    """/api/v1/recipes/abc -> /recipes/abc"""
    if path.startswith(API_PREFIX):
        path = path[len(API_PREFIX):] or "/"
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def cache_key(path: str, query: str, viewer: str = "") -> str:
    """Generate a cache key from path + query string + caller credentials."""
    raw = f"{path}?{query}#{viewer}"
    return hashlib.md5(raw.encode()).hexdigest()


def get_cached(key: str) -> Any | None:
    """Get cached value if still valid."""
    entry = _cache.get(key)
    if entry is None:
        return None
    if time.time() < entry.expires:
        return entry.value
    del _cache[key]
    return None


def set_cached(key: str, path: str, value: Any, ttl: int = _DEFAULT_TTL):
    """Store value in cache with TTL, tagged with its logical path."""
    _cache[key] = _Entry(path=logical_path(path), expires=time.time() + ttl, value=value)

    if len(_cache) > _MAX_ENTRIES:
        now = time.time()
        expired = [k for k, e in _cache.items() if now >= e.expires]
        for k in expired:
            del _cache[k]


def revalidate_path(path: str, kind: str = "page") -> int:
    """Drop cached responses for a logical path.

    ``kind="page"`` matches the path exactly; ``kind="layout"`` also matches
    everything below it. Returns the number of entries removed.
    """
    if kind not in ("page", "layout"):
        raise ValueError(f"Unknown revalidation kind: {kind}")
    target = logical_path(path)
    prefix = target.rstrip("/") + "/"
    doomed = [
        k for k, e in _cache.items()
        if e.path == target or (kind == "layout" and e.path.startswith(prefix))
    ]
    for k in doomed:
        del _cache[k]
    return len(doomed)


def invalidate_cache():
    """Clear entire cache."""
    _cache.clear()


def cache_stats() -> dict:
    """Return cache statistics."""
    now = time.time()
    valid = sum(1 for e in _cache.values() if now < e.expires)
    return {
        "total_entries": len(_cache),
        "valid_entries": valid,
        "expired_entries": len(_cache) - valid,
    }


# Paths to cache and their TTLs
_CACHEABLE_PATHS = {
    "/api/v1/recipes": 30,
}


class ResponseCacheMiddleware(BaseHTTPMiddleware):
    """Caches successful GET responses for recipe endpoints.

    Writes do not clear the cache here; the services revalidate the paths
    they touched.
    """

    async def dispatch(self, request: Request, call_next):
        if request.method != "GET":
            return await call_next(request)

        path = request.url.path
        ttl = None
        for cacheable_path, path_ttl in _CACHEABLE_PATHS.items():
            if path.startswith(cacheable_path):
                ttl = path_ttl
                break

        if ttl is None:
            return await call_next(request)

        # Responses carry viewer-relative flags, so callers never share entries
        key = cache_key(path, str(request.url.query), request.headers.get("authorization", ""))
        cached = get_cached(key)
        if cached is not None:
            body, status, content_type = cached
            return Response(
                content=body,
                status_code=status,
                headers={"content-type": content_type, "x-cache": "HIT"},
            )

        response = await call_next(request)

        if response.status_code == 200 and "no-store" not in response.headers.get("cache-control", ""):
            body = b""
            async for chunk in response.body_iterator:
                if isinstance(chunk, str):
                    body += chunk.encode()
                else:
                    body += chunk

            content_type = response.headers.get("content-type", "application/json")
            set_cached(key, path, (body, response.status_code, content_type), ttl=ttl)

            return Response(
                content=body,
                status_code=response.status_code,
                headers={**dict(response.headers), "x-cache": "MISS"},
            )

        return response
