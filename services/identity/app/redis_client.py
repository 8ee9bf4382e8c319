"""
Async Redis client — holds the refresh-token revocation set.

Uses a module-level singleton so a single connection pool is reused per
process.  The pool is created lazily on first call to get_redis_client().
"""
from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import Depends

from app.config import Settings, get_settings

_client: aioredis.Redis | None = None


def get_redis_client(redis_url: str) -> aioredis.Redis:
    """Return (and lazily create) the module-level async Redis client."""
    global _client
    if _client is None:
        _client = aioredis.from_url(redis_url, decode_responses=True)
    return _client


async def close_redis_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis(settings: Settings = Depends(get_settings)) -> aioredis.Redis:
    """FastAPI dependency; tests override it with an in-memory double."""
    return get_redis_client(settings.redis_url)
