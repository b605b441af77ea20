"""Recalculation cascade — re-derive every tracked learner after a content edit.

A structural edit (mini-training added or removed, quiz replaced, video
requirement changed) bumps ``Training.content_version`` and then runs
:func:`recalculate_training_progress_for_all_users`. Each existing
TrainingProgress row is recomputed against the current definition.

A learner is *affected* when their recomputed completion differs from where
they stood before the latest edit. That baseline is snapshotted into
``completed_before_update`` the first time the row meets the new version, so
running the cascade again without new signals returns the same set.

Runs are serialized per training: an in-process ``asyncio.Lock`` always, and
a Redis lock across workers when Redis is available.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trainhub.config import Settings, get_settings
from trainhub.models.training import Training
from trainhub.models.training_progress import TrainingProgress
from trainhub.progress import cache as progress_cache
from trainhub.progress.calculator import calculate_training_progress
from trainhub.progress.service import (
    apply_training_result,
    collect_signals,
    load_training_context,
    update_course_progress,
    weight_config_from_settings,
)

logger = logging.getLogger(__name__)

_LOCK_POLL_SECS = 0.2

_local_locks: dict[UUID, asyncio.Lock] = {}
# Holders and waiters per training; the lock is dropped when this reaches zero
_local_lock_users: dict[UUID, int] = {}


@asynccontextmanager
async def _local_training_lock(training_id: UUID) -> AsyncIterator[None]:
    lock = _local_locks.get(training_id)
    if lock is None:
        lock = _local_locks[training_id] = asyncio.Lock()
    _local_lock_users[training_id] = _local_lock_users.get(training_id, 0) + 1
    try:
        async with lock:
            yield
    finally:
        _local_lock_users[training_id] -= 1
        if not _local_lock_users[training_id]:
            del _local_lock_users[training_id]
            del _local_locks[training_id]


@asynccontextmanager
async def _cascade_guard(
    training_id: UUID, redis: Redis | None, timeout_secs: int,
) -> AsyncIterator[None]:
    async with _local_training_lock(training_id):
        token = uuid.uuid4().hex
        acquired = False
        if redis is not None:
            deadline = time.monotonic() + timeout_secs
            try:
                while True:
                    acquired = await progress_cache.acquire_cascade_lock(
                        training_id, token, timeout_secs, redis,
                    )
                    if acquired or time.monotonic() >= deadline:
                        break
                    await asyncio.sleep(_LOCK_POLL_SECS)
                if not acquired:
                    logger.warning(
                        "Cascade lock for training=%s still held after %ss; proceeding",
                        training_id, timeout_secs,
                    )
            except Exception:
                logger.warning("Redis cascade lock unavailable training=%s", training_id, exc_info=True)
        try:
            yield
        finally:
            if acquired:
                try:
                    await progress_cache.release_cascade_lock(training_id, token, redis)
                except Exception:
                    logger.warning("Failed to release cascade lock training=%s", training_id, exc_info=True)


def completion_baseline(record: TrainingProgress, content_version: int) -> bool:
    """Completion before the latest edit, as the cascade compares against it."""
    if record.content_version != content_version:
        return record.is_completed
    if record.completed_before_update is not None:
        return record.completed_before_update
    return record.is_completed


def _batches(items: list[UUID], size: int) -> list[list[UUID]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


async def recalculate_training_progress_for_all_users(
    db: AsyncSession,
    training_id: UUID,
    *,
    redis: Redis | None = None,
    settings: Settings | None = None,
) -> list[UUID]:
    """Recompute every stored TrainingProgress row of a training.

    Returns the learners whose completion changed relative to the pre-edit
    baseline. A learner whose recompute fails is logged and left out; the
    run continues. A missing training returns ``[]``.
    """
    settings = settings or get_settings()
    config = weight_config_from_settings(settings)

    training = await db.get(Training, training_id)
    if training is None:
        logger.warning("Cascade skipped: training=%s not found", training_id)
        return []

    async with _cascade_guard(training_id, redis, settings.cascade_lock_timeout_secs):
        # The lock may have waited on another run; read the definition fresh
        await db.flush()
        await db.refresh(training)
        version = training.content_version
        ctx = await load_training_context(db, training)

        user_ids = list((await db.execute(
            select(TrainingProgress.user_id)
            .where(TrainingProgress.training_id == training_id)
            .order_by(TrainingProgress.user_id),
        )).scalars().all())

        affected: list[UUID] = []
        recalculated = 0
        for batch in _batches(user_ids, settings.cascade_batch_size):
            records = (await db.execute(
                select(TrainingProgress).where(
                    TrainingProgress.training_id == training_id,
                    TrainingProgress.user_id.in_(batch),
                ),
            )).scalars().all()

            for record in sorted(records, key=lambda r: str(r.user_id)):
                user_id = record.user_id
                try:
                    async with db.begin_nested():
                        signals = await collect_signals(db, user_id, ctx, config)
                        result = calculate_training_progress(signals, ctx.definition, config)
                        baseline = completion_baseline(record, version)
                        previous = record.is_completed
                        apply_training_result(record, result, signals, version)
                        await db.flush()
                        if previous != result.is_completed:
                            await update_course_progress(db, user_id, training.course_id)
                except Exception:
                    logger.exception(
                        "Cascade recompute failed user=%s training=%s", user_id, training_id,
                    )
                    continue

                recalculated += 1
                if result.is_completed != baseline:
                    affected.append(user_id)

        await db.flush()

    logger.info(
        "Cascade finished training=%s version=%d recalculated=%d affected=%d",
        training_id, version, recalculated, len(affected),
    )
    if redis is not None:
        try:
            await progress_cache.store_cascade_run(
                training_id, version, recalculated, len(affected), redis,
            )
        except Exception:
            logger.warning("Failed to store cascade summary training=%s", training_id, exc_info=True)
    return affected
