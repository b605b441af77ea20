"""Progress controller — maps service results to HTTP responses."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from trainhub.config import Settings
from trainhub.exceptions import (
    ContentNotPublishedError,
    CourseNotFoundError,
    InvalidWatchProgressError,
    MiniTrainingNotFoundError,
    TrainingNotFoundError,
)
from trainhub.models.course import Course
from trainhub.progress import service
from trainhub.progress.schemas import (
    CourseProgressResponse,
    MiniTrainingProgressResponse,
    TrainingProgressResponse,
)

logger = logging.getLogger(__name__)


def _handle_domain_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (TrainingNotFoundError, MiniTrainingNotFoundError, CourseNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ContentNotPublishedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Content is not published.")
    if isinstance(exc, InvalidWatchProgressError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Invalid watch progress.")
    logger.exception("Unexpected progress error", exc_info=exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error.")


async def record_training_watch(
    db: AsyncSession,
    training_id: UUID,
    user_id: UUID,
    watched_secs: float,
    settings: Settings,
) -> TrainingProgressResponse:
    try:
        record = await service.record_training_watch(
            db, user_id, training_id, watched_secs=watched_secs, settings=settings,
        )
        return TrainingProgressResponse.model_validate(record)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def get_training_progress(
    db: AsyncSession,
    training_id: UUID,
    user_id: UUID,
    settings: Settings,
) -> TrainingProgressResponse:
    try:
        record = await service.get_training_progress(db, user_id, training_id, settings=settings)
        return TrainingProgressResponse.model_validate(record)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def record_mini_training_watch(
    db: AsyncSession,
    mini_training_id: UUID,
    user_id: UUID,
    watched_secs: float,
    settings: Settings,
) -> MiniTrainingProgressResponse:
    try:
        record = await service.record_mini_training_watch(
            db, user_id, mini_training_id, watched_secs=watched_secs, settings=settings,
        )
        return MiniTrainingProgressResponse.model_validate(record)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def get_course_progress(
    db: AsyncSession,
    course_id: UUID,
    user_id: UUID,
) -> CourseProgressResponse:
    try:
        if await db.get(Course, course_id) is None:
            raise CourseNotFoundError(str(course_id))
        summary = await service.update_course_progress(db, user_id, course_id)
        return CourseProgressResponse(
            course_id=course_id,
            progress=summary.progress,
            is_completed=summary.is_completed,
            completed_training_count=summary.completed_training_count,
            total_training_count=summary.total_training_count,
        )
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
