from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from trainhub.exceptions import NotificationNotFoundError
from trainhub.notifications import service
from trainhub.notifications.schemas import NotificationSummary, NotificationsPageResponse


async def get_notifications(
    user_id: UUID,
    db: AsyncSession,
    limit: int,
    offset: int,
    only_unread: bool,
) -> NotificationsPageResponse:
    items, total = await service.list_notifications(
        user_id=user_id,
        db=db,
        limit=limit,
        offset=offset,
        only_unread=only_unread,
    )

    summaries = [
        NotificationSummary(
            id=n.notification_id,
            type=n.type,
            title=n.title,
            content=n.content,
            link_url=n.link,
            training_id=n.training_id,
            content_version=n.content_version,
            created_at=n.created_at,
            is_read=n.is_read,
        )
        for n in items
    ]

    return NotificationsPageResponse(
        items=summaries,
        total=total,
        limit=limit,
        offset=offset,
    )


async def mark_read(user_id: UUID, notification_id: UUID, db: AsyncSession) -> None:
    try:
        await service.mark_read(user_id=user_id, notification_id=notification_id, db=db)
    except NotificationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
