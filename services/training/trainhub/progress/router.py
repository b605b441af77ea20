"""Progress router — learner watch signals and progress reads.

Every read recomputes the stored rows from the raw signals first.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser
from trainhub.config import Settings
from trainhub.database import get_db
from trainhub.dependencies import get_current_user, get_settings
from trainhub.progress import controller
from trainhub.progress.schemas import (
    CourseProgressResponse,
    MiniTrainingProgressResponse,
    TrainingProgressResponse,
    WatchProgressRequest,
)

router = APIRouter(prefix="/progress", tags=["Progress"])


@router.post(
    "/trainings/{training_id}/watch",
    response_model=TrainingProgressResponse,
    summary="Report training video watch time",
    description="Stores the reported watch position and recomputes the learner's "
    "training and course progress.",
)
async def record_training_watch(
    training_id: UUID,
    body: WatchProgressRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> TrainingProgressResponse:
    return await controller.record_training_watch(
        db, training_id, user.id, body.watched_secs, settings,
    )


@router.get(
    "/trainings/{training_id}",
    response_model=TrainingProgressResponse,
    summary="Get my progress on a training",
    description="Recomputes and returns the learner's progress record for the training.",
)
async def get_training_progress(
    training_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> TrainingProgressResponse:
    return await controller.get_training_progress(db, training_id, user.id, settings)


@router.post(
    "/mini-trainings/{mini_training_id}/watch",
    response_model=MiniTrainingProgressResponse,
    summary="Report mini-training video watch time",
    description="Stores the watch position, re-evaluates the mini-training and "
    "recomputes the parent training.",
)
async def record_mini_training_watch(
    mini_training_id: UUID,
    body: WatchProgressRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> MiniTrainingProgressResponse:
    return await controller.record_mini_training_watch(
        db, mini_training_id, user.id, body.watched_secs, settings,
    )


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get my progress on a course",
    description="Mean progress over the course's published trainings. "
    "Enrolls the learner on first access.",
)
async def get_course_progress(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> CourseProgressResponse:
    return await controller.get_course_progress(db, course_id, user.id)
