"""Lightweight Redis cache utilities for short-lived report caching.

Usage guidelines:
- Only cache aggregate reports; never cache per-user or ticket state.
- Keep TTLs short (`REPORT_CACHE_TTL_SECONDS`) so dashboards stay fresh.
- Invalidate on mutations that feed reports (dispersions, uplifts).

Redis is optional.  An empty `REDIS_URL` disables caching and any Redis
error degrades to a cache miss.
"""
from __future__ import annotations

import json
import asyncio
import logging
from typing import Any, Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from fuelops.core.config import settings

logger = logging.getLogger(__name__)

_redis_client: Optional[aioredis.Redis] = None
_lock = asyncio.Lock()

REPORTS_PREFIX = "reports:"


async def get_redis() -> Optional[aioredis.Redis]:
    """Return a singleton async Redis client or None if caching is disabled."""
    global _redis_client
    if not settings.REDIS_URL:
        return None
    if _redis_client is not None:
        return _redis_client
    async with _lock:
        if _redis_client is None:
            _redis_client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


async def cache_get_json(key: str) -> Optional[Any]:
    client = await get_redis()
    if not client:
        return None
    try:
        raw = await client.get(key)
    except RedisError as exc:
        logger.warning("Redis get failed for %s: %s", key, exc)
        return None
    if raw is None:
        return None
    return json.loads(raw)


async def cache_set_json(key: str, value: Any, ttl: int) -> None:
    client = await get_redis()
    if not client:
        return
    try:
        await client.set(key, json.dumps(value), ex=ttl)
    except RedisError as exc:
        logger.warning("Redis set failed for %s: %s", key, exc)


async def cache_delete_pattern(pattern: str) -> None:
    """Best-effort pattern deletion (SCAN + DEL). Avoid for hot paths."""
    client = await get_redis()
    if not client:
        return
    try:
        # Use scan_iter to avoid blocking Redis
        async for key in client.scan_iter(pattern):
            await client.delete(key)
    except RedisError as exc:
        logger.warning("Redis delete failed for %s: %s", pattern, exc)


def report_cache_key(name: str, *parts: Any) -> str:
    suffix = ":".join(str(p) for p in parts if p is not None)
    return f"{REPORTS_PREFIX}{name}:{suffix}" if suffix else f"{REPORTS_PREFIX}{name}"


async def invalidate_reports() -> None:
    await cache_delete_pattern(f"{REPORTS_PREFIX}*")
