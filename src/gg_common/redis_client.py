"""Redis client factory: used for the scheduled-run lock only.

NOT used for balances or schedule state (those go through PostgreSQL).
"""

import redis.asyncio as aioredis

from config.settings import settings

_redis_pool: aioredis.Redis | None = None

RUN_LOCK_KEY = "geogrid:scheduled-run:lock"


async def get_redis() -> aioredis.Redis:
    """Get or create the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
    return _redis_pool


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None


async def acquire_run_lock(redis: aioredis.Redis, owner: str, ttl_seconds: int) -> bool:
    """SET NX EX. True if this invocation now owns the run lock."""
    return bool(await redis.set(RUN_LOCK_KEY, owner, nx=True, ex=ttl_seconds))


async def release_run_lock(redis: aioredis.Redis, owner: str) -> None:
    """Release the lock only if we still own it (it may have expired and been retaken)."""
    current = await redis.get(RUN_LOCK_KEY)
    if current == owner:
        await redis.delete(RUN_LOCK_KEY)
