"""Trainer controller — maps service results to HTTP responses."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser
from trainhub.config import Settings
from trainhub.exceptions import (
    CourseNotFoundError,
    InvalidQuizDefinitionError,
    MiniTrainingNotFoundError,
    NotCourseTrainerError,
    QuizNotFoundError,
    TrainingNotFoundError,
)
from trainhub.trainer import service
from trainhub.trainer.schemas import (
    CascadeResult,
    CreateMiniTrainingRequest,
    MiniTrainingEditResponse,
    MiniTrainingResponse,
    QuizDefinitionRequest,
    QuizEditResponse,
    QuizResponse,
    RecalculateResponse,
    UpdateMiniTrainingRequest,
    UpdateVideoRequest,
    VideoEditResponse,
)

logger = logging.getLogger(__name__)


def _handle_domain_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (TrainingNotFoundError, MiniTrainingNotFoundError, QuizNotFoundError, CourseNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, NotCourseTrainerError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not the course trainer.")
    if isinstance(exc, InvalidQuizDefinitionError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Invalid quiz: {exc}")
    logger.exception("Unexpected trainer error", exc_info=exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error.")


async def create_mini_training(
    db: AsyncSession,
    training_id: UUID,
    trainer: CurrentUser,
    body: CreateMiniTrainingRequest,
    redis: Redis | None,
    settings: Settings,
) -> MiniTrainingEditResponse:
    try:
        mini, cascade = await service.create_mini_training(
            db, training_id, trainer,
            fields=body.model_dump(exclude={"quiz"}),
            quiz=body.quiz.to_fields() if body.quiz else None,
            redis=redis,
            settings=settings,
        )
        return MiniTrainingEditResponse(
            mini_training=MiniTrainingResponse.model_validate(mini),
            cascade=CascadeResult(**cascade),
        )
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def update_mini_training(
    db: AsyncSession,
    mini_training_id: UUID,
    trainer: CurrentUser,
    body: UpdateMiniTrainingRequest,
    redis: Redis | None,
    settings: Settings,
) -> MiniTrainingEditResponse:
    try:
        mini, cascade = await service.update_mini_training(
            db, mini_training_id, trainer,
            fields=body.model_dump(exclude_unset=True, exclude={"quiz"}),
            quiz=body.quiz.to_fields() if body.quiz else None,
            redis=redis,
            settings=settings,
        )
        return MiniTrainingEditResponse(
            mini_training=MiniTrainingResponse.model_validate(mini),
            cascade=CascadeResult(**cascade),
        )
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def delete_mini_training(
    db: AsyncSession,
    mini_training_id: UUID,
    trainer: CurrentUser,
    redis: Redis | None,
    settings: Settings,
) -> CascadeResult:
    try:
        cascade = await service.delete_mini_training(
            db, mini_training_id, trainer, redis=redis, settings=settings,
        )
        return CascadeResult(**cascade)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def upsert_training_quiz(
    db: AsyncSession,
    training_id: UUID,
    trainer: CurrentUser,
    body: QuizDefinitionRequest,
    redis: Redis | None,
    settings: Settings,
) -> QuizEditResponse:
    try:
        quiz, cascade = await service.upsert_training_quiz(
            db, training_id, trainer,
            fields=body.to_fields(),
            redis=redis,
            settings=settings,
        )
        return QuizEditResponse(
            quiz=QuizResponse.model_validate(quiz),
            cascade=CascadeResult(**cascade),
        )
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def delete_training_quiz(
    db: AsyncSession,
    training_id: UUID,
    trainer: CurrentUser,
    redis: Redis | None,
    settings: Settings,
) -> CascadeResult:
    try:
        cascade = await service.delete_training_quiz(
            db, training_id, trainer, redis=redis, settings=settings,
        )
        return CascadeResult(**cascade)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def update_training_video(
    db: AsyncSession,
    training_id: UUID,
    trainer: CurrentUser,
    body: UpdateVideoRequest,
    redis: Redis | None,
    settings: Settings,
) -> VideoEditResponse:
    try:
        training, cascade = await service.update_training_video(
            db, training_id, trainer,
            fields=body.model_dump(exclude_unset=True),
            redis=redis,
            settings=settings,
        )
        return VideoEditResponse(
            training_id=training.training_id,
            video_url=training.video_url,
            video_duration_secs=training.video_duration_secs,
            minimum_watch_secs=training.minimum_watch_secs,
            cascade=CascadeResult(**cascade),
        )
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def recalculate_training(
    db: AsyncSession,
    training_id: UUID,
    trainer: CurrentUser,
    redis: Redis | None,
    settings: Settings,
) -> RecalculateResponse:
    try:
        result = await service.recalculate_training(
            db, training_id, trainer, redis=redis, settings=settings,
        )
        return RecalculateResponse(**result)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
