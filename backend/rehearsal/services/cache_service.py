"""
Redis caching for the capability catalog.

CACHING STRATEGY
================

What we cache:
  - The full capability listing (JSON-serialized), key "capabilities:list"

Why:
  - Every RSVP form, song editor and coverage view reads the catalog
  - The catalog changes only when an admin edits it

Invalidation:
  - Every catalog mutation (create, update, delete) deletes the key
  - TTL-based expiry as safety net

What we never cache:
  - Coverage gaps, commitments and candidates. They change with every RSVP
    and a stale "covered" status is worse than recomputing.

Redis is advisory: any Redis failure falls back to the database.
"""

import json
from typing import Optional

import redis.asyncio as redis
from rehearsal.core.config import get_settings
from rehearsal.core.logging import get_logger
from rehearsal.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

CAPABILITY_LIST_KEY = "capabilities:list"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None


async def get_cached_capabilities() -> Optional[list[dict]]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(CAPABILITY_LIST_KEY)
        record_cache_operation("get", hit=bool(data))
        if data:
            logger.debug("cache_hit", key=CAPABILITY_LIST_KEY)
            return json.loads(data)
        logger.debug("cache_miss", key=CAPABILITY_LIST_KEY)
    except Exception as e:
        logger.error("cache_get_error", key=CAPABILITY_LIST_KEY, error=str(e))

    return None


async def set_cached_capabilities(data: list[dict]) -> None:
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(CAPABILITY_LIST_KEY, settings.REDIS_CACHE_TTL, json.dumps(data))
        logger.debug("cache_set", key=CAPABILITY_LIST_KEY, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=CAPABILITY_LIST_KEY, error=str(e))


async def invalidate_capability_cache() -> None:
    client = await get_redis()
    if not client:
        return

    try:
        deleted = await client.delete(CAPABILITY_LIST_KEY)
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
