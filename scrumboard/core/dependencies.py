"""
FastAPI dependency injection functions.

Provides the shared Redis client used for cross-worker ledger locks.
"""

from __future__ import annotations

import redis.asyncio as aioredis

from scrumboard.core.config import settings

# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis | None:
    """
    Return a shared async Redis client, or None when REDIS_URL is unset.

    Uses a module-level pool so connections are reused across requests.
    """
    global _redis_pool
    if settings.REDIS_URL is None:
        return None
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            str(settings.REDIS_URL),
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_pool
