"""Notification service — training update fan-out and the learner inbox.

Dispatch never raises: progress correctness takes priority over delivery, so
every failure is logged and swallowed. Duplicates are suppressed by the
(user_id, training_id, content_version, type) unique key.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from shared.database import dialect_name
from trainhub.config import Settings, get_settings
from trainhub.exceptions import NotificationNotFoundError
from trainhub.models.enums import NotificationType
from trainhub.models.notification import Notification

logger = logging.getLogger(__name__)

_DEDUP_KEY = ["user_id", "training_id", "content_version", "type"]


def _insert(db: AsyncSession):
    if dialect_name(db) == "sqlite":
        return sqlite_insert(Notification)
    return pg_insert(Notification)


def _training_update_row(
    user_id: UUID,
    training_id: UUID,
    training_title: str,
    content_version: int,
    settings: Settings,
) -> dict:
    return {
        "notification_id": uuid.uuid4(),
        "user_id": user_id,
        "type": NotificationType.TRAINING_UPDATE.value,
        "title": settings.training_update_title.format(title=training_title),
        "content": settings.training_update_content,
        "link": settings.training_update_link.format(training_id=training_id),
        "training_id": training_id,
        "content_version": content_version,
        "is_read": False,
        "created_at": datetime.now(timezone.utc),
    }


async def dispatch_training_update(
    db: AsyncSession,
    user_ids: Iterable[UUID],
    training_id: UUID,
    training_title: str,
    content_version: int,
    *,
    settings: Settings | None = None,
) -> int:
    """Notify learners that a training changed under them.

    One batch insert inside a savepoint; if the batch fails, each learner is
    retried individually. Returns how many rows were written.
    """
    recipients = list(dict.fromkeys(user_ids))
    if not recipients:
        return 0
    settings = settings or get_settings()
    rows = [
        _training_update_row(uid, training_id, training_title, content_version, settings)
        for uid in recipients
    ]

    try:
        async with db.begin_nested():
            stmt = _insert(db).values(rows).on_conflict_do_nothing(index_elements=_DEDUP_KEY)
            result = await db.execute(stmt)
        created = max(result.rowcount or 0, 0)
        logger.info(
            "Training update notifications training=%s version=%d recipients=%d created=%d",
            training_id, content_version, len(rows), created,
        )
        return created
    except Exception:
        logger.warning(
            "Batch notification insert failed training=%s; falling back to per-learner inserts",
            training_id, exc_info=True,
        )

    created = 0
    for row in rows:
        try:
            async with db.begin_nested():
                stmt = _insert(db).values(**row).on_conflict_do_nothing(index_elements=_DEDUP_KEY)
                result = await db.execute(stmt)
            created += max(result.rowcount or 0, 0)
        except Exception:
            logger.exception(
                "Failed to notify user=%s training=%s", row["user_id"], training_id,
            )
    return created


async def list_notifications(
    user_id: UUID,
    db: AsyncSession,
    limit: int,
    offset: int,
    only_unread: bool,
) -> tuple[list[Notification], int]:
    base = select(Notification).where(Notification.user_id == user_id)
    if only_unread:
        base = base.where(Notification.is_read.is_(False))

    count_query = select(func.count()).select_from(base.subquery())
    total = (await db.execute(count_query)).scalar_one()

    rows = await db.execute(
        base.order_by(Notification.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    items = list(rows.scalars().all())
    return items, total


async def mark_read(user_id: UUID, notification_id: UUID, db: AsyncSession) -> None:
    result = await db.execute(
        update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.notification_id == notification_id,
        )
        .values(is_read=True)
    )
    if result.rowcount == 0:
        raise NotificationNotFoundError(str(notification_id))
