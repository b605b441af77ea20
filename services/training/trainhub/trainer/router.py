"""Trainer router — structural edits that re-run the recalculation cascade.

Every edit bumps the training's content version, recomputes every tracked
learner and notifies learners whose completion regressed.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser
from trainhub.config import Settings
from trainhub.database import get_db
from trainhub.dependencies import get_redis, get_settings, get_trainer
from trainhub.trainer import controller
from trainhub.trainer.schemas import (
    CascadeResult,
    CreateMiniTrainingRequest,
    MiniTrainingEditResponse,
    QuizDefinitionRequest,
    QuizEditResponse,
    RecalculateResponse,
    UpdateMiniTrainingRequest,
    UpdateVideoRequest,
    VideoEditResponse,
)

router = APIRouter(prefix="/trainer", tags=["Trainer"])


# ======================================================================
# Mini-trainings
# ======================================================================


@router.post(
    "/trainings/{training_id}/mini-trainings",
    response_model=MiniTrainingEditResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a mini-training",
    description="Adds a mini-training (optionally with a mini-quiz). Learners who had "
    "completed the training lose completion until they finish it.",
)
async def create_mini_training(
    training_id: UUID,
    body: CreateMiniTrainingRequest,
    db: AsyncSession = Depends(get_db),
    trainer: CurrentUser = Depends(get_trainer),
    redis: Redis | None = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> MiniTrainingEditResponse:
    return await controller.create_mini_training(db, training_id, trainer, body, redis, settings)


@router.patch(
    "/mini-trainings/{mini_training_id}",
    response_model=MiniTrainingEditResponse,
    summary="Update a mini-training",
)
async def update_mini_training(
    mini_training_id: UUID,
    body: UpdateMiniTrainingRequest,
    db: AsyncSession = Depends(get_db),
    trainer: CurrentUser = Depends(get_trainer),
    redis: Redis | None = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> MiniTrainingEditResponse:
    return await controller.update_mini_training(db, mini_training_id, trainer, body, redis, settings)


@router.delete(
    "/mini-trainings/{mini_training_id}",
    response_model=CascadeResult,
    summary="Delete a mini-training",
)
async def delete_mini_training(
    mini_training_id: UUID,
    db: AsyncSession = Depends(get_db),
    trainer: CurrentUser = Depends(get_trainer),
    redis: Redis | None = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> CascadeResult:
    return await controller.delete_mini_training(db, mini_training_id, trainer, redis, settings)


# ======================================================================
# Training quiz
# ======================================================================


@router.put(
    "/trainings/{training_id}/quiz",
    response_model=QuizEditResponse,
    summary="Create or replace the training quiz",
    description="Stores the question pool as authored; learners get a per-attempt "
    "randomized view of it.",
)
async def upsert_training_quiz(
    training_id: UUID,
    body: QuizDefinitionRequest,
    db: AsyncSession = Depends(get_db),
    trainer: CurrentUser = Depends(get_trainer),
    redis: Redis | None = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> QuizEditResponse:
    return await controller.upsert_training_quiz(db, training_id, trainer, body, redis, settings)


@router.delete(
    "/trainings/{training_id}/quiz",
    response_model=CascadeResult,
    summary="Remove the training quiz",
)
async def delete_training_quiz(
    training_id: UUID,
    db: AsyncSession = Depends(get_db),
    trainer: CurrentUser = Depends(get_trainer),
    redis: Redis | None = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> CascadeResult:
    return await controller.delete_training_quiz(db, training_id, trainer, redis, settings)


# ======================================================================
# Video + manual recalculation
# ======================================================================


@router.patch(
    "/trainings/{training_id}/video",
    response_model=VideoEditResponse,
    summary="Update video requirements",
    description="Changes the video, its duration or the minimum watch time.",
)
async def update_training_video(
    training_id: UUID,
    body: UpdateVideoRequest,
    db: AsyncSession = Depends(get_db),
    trainer: CurrentUser = Depends(get_trainer),
    redis: Redis | None = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> VideoEditResponse:
    return await controller.update_training_video(db, training_id, trainer, body, redis, settings)


@router.post(
    "/trainings/{training_id}/recalculate",
    response_model=RecalculateResponse,
    summary="Re-run the recalculation cascade",
    description="Recomputes every tracked learner at the current content version.",
)
async def recalculate_training(
    training_id: UUID,
    db: AsyncSession = Depends(get_db),
    trainer: CurrentUser = Depends(get_trainer),
    redis: Redis | None = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> RecalculateResponse:
    return await controller.recalculate_training(db, training_id, trainer, redis, settings)
