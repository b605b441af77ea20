"""Redis helpers for the progress domain.

Key schema
----------
lock:cascade:training:{training_id}     String TTL=lock timeout   cascade owner token
cascade:last:{training_id}              Hash   TTL 7d             last cascade summary

All functions are best-effort — callers catch exceptions.
"""

from __future__ import annotations

import time
from uuid import UUID

from redis.asyncio import Redis

_LAST_RUN_TTL = 7 * 24 * 3600  # 7 days


# -- Cascade lock --

def _cascade_lock_key(training_id: UUID) -> str:
    return f"lock:cascade:training:{training_id}"


async def acquire_cascade_lock(
    training_id: UUID, token: str, timeout_secs: int, redis: Redis,
) -> bool:
    return bool(await redis.set(_cascade_lock_key(training_id), token, nx=True, ex=timeout_secs))


async def release_cascade_lock(training_id: UUID, token: str, redis: Redis) -> None:
    key = _cascade_lock_key(training_id)
    # Only the owner releases; an expired lock may already belong to someone else
    if await redis.get(key) == token:
        await redis.delete(key)


# -- Last cascade run --

def _last_run_key(training_id: UUID) -> str:
    return f"cascade:last:{training_id}"


async def store_cascade_run(
    training_id: UUID,
    content_version: int,
    recalculated: int,
    affected: int,
    redis: Redis,
) -> None:
    key = _last_run_key(training_id)
    await redis.hset(key, mapping={
        "content_version": str(content_version),
        "recalculated": str(recalculated),
        "affected": str(affected),
        "finished_at": str(int(time.time())),
    })
    await redis.expire(key, _LAST_RUN_TTL)


async def get_cascade_run(training_id: UUID, redis: Redis) -> dict | None:
    data = await redis.hgetall(_last_run_key(training_id))
    return data if data else None
