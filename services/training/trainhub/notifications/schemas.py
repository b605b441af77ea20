from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationSummary(BaseModel):
    """Single notification item for the learner inbox."""

    id: UUID
    type: str
    title: str
    content: str
    link_url: str | None = None
    training_id: UUID | None = None
    content_version: int | None = None
    created_at: datetime
    is_read: bool


class NotificationsPageResponse(BaseModel):
    """Offset-paginated notifications list for the current user."""

    items: list[NotificationSummary]
    total: int = Field(description="Total notifications for this user.")
    limit: int = Field(description="Requested page size.")
    offset: int = Field(description="Requested offset.")
