"""
Redis caching service for event listings.

CACHING STRATEGY
================

What we cache:
  - Event listing responses (paginated, JSON-serialized)
  - Key: "events:list:g{generation}:page={page}&size={size}&upcoming={upcoming}&status={status}"

Invalidation:
  Every booking and cancellation changes available_seats, so listings are
  invalidated far more often than they are built. Instead of scanning and
  deleting keys, invalidation bumps a generation counter
  ("events:list:generation"). Readers and writers embed the current
  generation in the key, so entries from an older generation are never read
  again and simply expire (REDIS_CACHE_TTL).

  A listing computed before an invalidation but stored after it lands under
  the old generation, so it cannot bring stale seat counts back.

Not cached:
  - Single events and bookings. The seat ledger always reads live rows.

Redis is optional: when disabled or unreachable every call degrades to a
cache miss or no-op and the database answers.
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from eventbooking.core.config import get_settings
from eventbooking.core.logging import get_logger
from eventbooking.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

EVENT_LIST_PREFIX = "events:list:"
GENERATION_KEY = f"{EVENT_LIST_PREFIX}generation"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create the Redis connection. None when disabled or unreachable."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            await client.aclose()
            return None
        logger.info("redis_connected", url=settings.REDIS_URL)
        _redis_client = client

    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_event_list_key(
    generation: int, page: int, page_size: int, upcoming_only: bool, status: Optional[str]
) -> str:
    return (
        f"{EVENT_LIST_PREFIX}g{generation}:"
        f"page={page}&size={page_size}&upcoming={upcoming_only}&status={status or 'any'}"
    )


async def _current_generation(client: redis.Redis) -> int:
    value = await client.get(GENERATION_KEY)
    return int(value) if value else 0


async def get_cached_events(
    page: int, page_size: int, upcoming_only: bool, status: Optional[str] = None
) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    try:
        generation = await _current_generation(client)
        key = make_event_list_key(generation, page, page_size, upcoming_only, status)
        data = await client.get(key)
    except RedisError as e:
        logger.error("cache_get_error", error=str(e))
        return None

    record_cache_operation("get", "hit" if data else "miss")
    if not data:
        logger.debug("cache_miss", key=key)
        return None
    logger.debug("cache_hit", key=key)
    return json.loads(data)


async def set_cached_events(
    page: int,
    page_size: int,
    upcoming_only: bool,
    status: Optional[str],
    data: dict,
    generation: Optional[int] = None,
) -> None:
    """
    Store a listing. Pass the generation read before querying the database
    so a concurrent invalidation leaves this entry unreachable.
    """
    client = await get_redis()
    if not client:
        return

    try:
        if generation is None:
            generation = await _current_generation(client)
        key = make_event_list_key(generation, page, page_size, upcoming_only, status)
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", "stored")
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except RedisError as e:
        logger.error("cache_set_error", error=str(e))


async def current_generation() -> Optional[int]:
    """The listing generation now in effect, or None without Redis."""
    client = await get_redis()
    if not client:
        return None
    try:
        return await _current_generation(client)
    except RedisError as e:
        logger.error("cache_get_error", error=str(e))
        return None


async def invalidate_event_cache() -> None:
    """Retire every cached listing by moving to the next generation."""
    client = await get_redis()
    if not client:
        return

    try:
        generation = await client.incr(GENERATION_KEY)
    except RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))
        return
    record_cache_operation("invalidate", "bumped")
    logger.info("cache_invalidated", generation=generation)


async def get_cache_stats() -> dict:
    """Redis keyspace hit/miss counters for the health endpoint."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        generation = await _current_generation(client)
    except RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "generation": generation,
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
