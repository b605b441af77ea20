"""Trainer service — structural edits that change how a training is completed.

Pure business logic, no FastAPI imports.

Every structural edit locks the training row, bumps ``content_version``,
re-runs the recalculation cascade and notifies learners who lost their
completion. Notification failures never fail the edit.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from redis.asyncio import Redis
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.constants import Role
from shared.models.user import CurrentUser
from trainhub.config import Settings, get_settings
from trainhub.exceptions import (
    CourseNotFoundError,
    InvalidQuizDefinitionError,
    MiniTrainingNotFoundError,
    NotCourseTrainerError,
    QuizNotFoundError,
    TrainingNotFoundError,
)
from trainhub.models.course import Course
from trainhub.models.mini_training import MiniTraining
from trainhub.models.mini_training_progress import MiniTrainingProgress
from trainhub.models.quiz import Quiz
from trainhub.models.training import Training
from trainhub.models.training_progress import TrainingProgress
from trainhub.notifications.service import dispatch_training_update
from trainhub.progress import cache as progress_cache
from trainhub.progress.cascade import recalculate_training_progress_for_all_users
from trainhub.quiz.content import InvalidQuizContent, parse_quiz_content

logger = logging.getLogger(__name__)

_ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})

QUIZ_FIELDS = ("questions", "questions_to_show", "passing_score", "max_attempts", "allow_retake")


# ---------------------------------------------------------------------------
# Ownership + locking
# ---------------------------------------------------------------------------


async def _lock_training(db: AsyncSession, training_id: UUID) -> Training:
    """Load the training row FOR UPDATE so concurrent edits serialize."""
    result = await db.execute(
        select(Training).where(Training.training_id == training_id).with_for_update(),
    )
    training = result.scalar_one_or_none()
    if training is None:
        raise TrainingNotFoundError(str(training_id))
    return training


async def _check_trainer(db: AsyncSession, training: Training, trainer: CurrentUser) -> None:
    if any(role in _ADMIN_ROLES for role in trainer.roles):
        return
    course = await db.get(Course, training.course_id)
    if course is None:
        raise CourseNotFoundError(str(training.course_id))
    if course.trainer_id != trainer.id:
        raise NotCourseTrainerError()


async def _get_mini_training(db: AsyncSession, mini_training_id: UUID) -> MiniTraining:
    mini = await db.get(MiniTraining, mini_training_id)
    if mini is None:
        raise MiniTrainingNotFoundError(str(mini_training_id))
    return mini


def _validate_quiz_fields(fields: dict[str, Any]) -> None:
    parsed = parse_quiz_content(fields.get("questions"))
    if isinstance(parsed, InvalidQuizContent):
        raise InvalidQuizDefinitionError(parsed.reason)
    if not parsed:
        raise InvalidQuizDefinitionError("quiz has no questions")
    to_show = fields.get("questions_to_show")
    if to_show is not None and not 0 < to_show <= len(parsed):
        raise InvalidQuizDefinitionError(
            f"questions_to_show must be between 1 and {len(parsed)}",
        )


# ---------------------------------------------------------------------------
# Cascade trigger
# ---------------------------------------------------------------------------


async def _regressed_learners(
    db: AsyncSession, training_id: UUID, user_ids: list[UUID],
) -> list[UUID]:
    if not user_ids:
        return []
    rows = await db.execute(
        select(TrainingProgress.user_id).where(
            TrainingProgress.training_id == training_id,
            TrainingProgress.user_id.in_(user_ids),
            TrainingProgress.is_completed.is_(False),
        ),
    )
    regressed = set(rows.scalars().all())
    return [uid for uid in user_ids if uid in regressed]


async def _run_cascade(
    db: AsyncSession,
    training: Training,
    *,
    redis: Redis | None,
    settings: Settings,
) -> dict:
    affected = await recalculate_training_progress_for_all_users(
        db, training.training_id, redis=redis, settings=settings,
    )
    # Only learners who lost their completion are told about new content
    regressed = await _regressed_learners(db, training.training_id, affected)
    notified = 0
    if regressed:
        notified = await dispatch_training_update(
            db,
            regressed,
            training.training_id,
            training.title,
            training.content_version,
            settings=settings,
        )
    return {
        "training_id": training.training_id,
        "content_version": training.content_version,
        "affected_user_ids": affected,
        "notified": notified,
    }


async def _apply_structural_change(
    db: AsyncSession,
    training: Training,
    *,
    redis: Redis | None,
    settings: Settings,
) -> dict:
    training.content_version += 1
    await db.flush()
    logger.info(
        "Training structure changed training=%s version=%d",
        training.training_id, training.content_version,
    )
    return await _run_cascade(db, training, redis=redis, settings=settings)


# ---------------------------------------------------------------------------
# Mini-trainings
# ---------------------------------------------------------------------------


async def _upsert_mini_quiz(
    db: AsyncSession, mini_training_id: UUID, quiz_fields: dict[str, Any],
) -> None:
    _validate_quiz_fields(quiz_fields)
    quiz = await db.scalar(select(Quiz).where(Quiz.mini_training_id == mini_training_id))
    if quiz is None:
        quiz = Quiz(training_id=None, mini_training_id=mini_training_id)
        db.add(quiz)
    for key in QUIZ_FIELDS:
        if key in quiz_fields:
            setattr(quiz, key, quiz_fields[key])
    await db.flush()


async def create_mini_training(
    db: AsyncSession,
    training_id: UUID,
    trainer: CurrentUser,
    *,
    fields: dict[str, Any],
    quiz: dict[str, Any] | None = None,
    redis: Redis | None = None,
    settings: Settings | None = None,
) -> tuple[MiniTraining, dict]:
    settings = settings or get_settings()
    training = await _lock_training(db, training_id)
    await _check_trainer(db, training, trainer)

    mini = MiniTraining(training_id=training_id, **fields)
    db.add(mini)
    await db.flush()
    if quiz is not None:
        await _upsert_mini_quiz(db, mini.mini_training_id, quiz)

    cascade = await _apply_structural_change(db, training, redis=redis, settings=settings)
    return mini, cascade


async def update_mini_training(
    db: AsyncSession,
    mini_training_id: UUID,
    trainer: CurrentUser,
    *,
    fields: dict[str, Any],
    quiz: dict[str, Any] | None = None,
    redis: Redis | None = None,
    settings: Settings | None = None,
) -> tuple[MiniTraining, dict]:
    settings = settings or get_settings()
    mini = await _get_mini_training(db, mini_training_id)
    training = await _lock_training(db, mini.training_id)
    await _check_trainer(db, training, trainer)

    for key, value in fields.items():
        setattr(mini, key, value)
    await db.flush()
    if quiz is not None:
        await _upsert_mini_quiz(db, mini.mini_training_id, quiz)

    cascade = await _apply_structural_change(db, training, redis=redis, settings=settings)
    return mini, cascade


async def delete_mini_training(
    db: AsyncSession,
    mini_training_id: UUID,
    trainer: CurrentUser,
    *,
    redis: Redis | None = None,
    settings: Settings | None = None,
) -> dict:
    settings = settings or get_settings()
    mini = await _get_mini_training(db, mini_training_id)
    training = await _lock_training(db, mini.training_id)
    await _check_trainer(db, training, trainer)

    await db.execute(delete(Quiz).where(Quiz.mini_training_id == mini_training_id))
    await db.execute(
        delete(MiniTrainingProgress).where(
            MiniTrainingProgress.mini_training_id == mini_training_id,
        ),
    )
    await db.delete(mini)
    await db.flush()

    return await _apply_structural_change(db, training, redis=redis, settings=settings)


# ---------------------------------------------------------------------------
# Training quiz
# ---------------------------------------------------------------------------


async def upsert_training_quiz(
    db: AsyncSession,
    training_id: UUID,
    trainer: CurrentUser,
    *,
    fields: dict[str, Any],
    redis: Redis | None = None,
    settings: Settings | None = None,
) -> tuple[Quiz, dict]:
    settings = settings or get_settings()
    training = await _lock_training(db, training_id)
    await _check_trainer(db, training, trainer)
    _validate_quiz_fields(fields)

    quiz = await db.scalar(select(Quiz).where(Quiz.training_id == training_id))
    if quiz is None:
        quiz = Quiz(training_id=training_id, mini_training_id=None)
        db.add(quiz)
    for key in QUIZ_FIELDS:
        if key in fields:
            setattr(quiz, key, fields[key])
    await db.flush()

    cascade = await _apply_structural_change(db, training, redis=redis, settings=settings)
    return quiz, cascade


async def delete_training_quiz(
    db: AsyncSession,
    training_id: UUID,
    trainer: CurrentUser,
    *,
    redis: Redis | None = None,
    settings: Settings | None = None,
) -> dict:
    settings = settings or get_settings()
    training = await _lock_training(db, training_id)
    await _check_trainer(db, training, trainer)

    quiz = await db.scalar(select(Quiz).where(Quiz.training_id == training_id))
    if quiz is None:
        raise QuizNotFoundError(f"training={training_id}")
    await db.delete(quiz)
    await db.flush()

    return await _apply_structural_change(db, training, redis=redis, settings=settings)


# ---------------------------------------------------------------------------
# Video requirements
# ---------------------------------------------------------------------------


async def update_training_video(
    db: AsyncSession,
    training_id: UUID,
    trainer: CurrentUser,
    *,
    fields: dict[str, Any],
    redis: Redis | None = None,
    settings: Settings | None = None,
) -> tuple[Training, dict]:
    settings = settings or get_settings()
    training = await _lock_training(db, training_id)
    await _check_trainer(db, training, trainer)

    for key, value in fields.items():
        setattr(training, key, value)
    await db.flush()

    cascade = await _apply_structural_change(db, training, redis=redis, settings=settings)
    return training, cascade


# ---------------------------------------------------------------------------
# Manual recalculation
# ---------------------------------------------------------------------------


async def recalculate_training(
    db: AsyncSession,
    training_id: UUID,
    trainer: CurrentUser,
    *,
    redis: Redis | None = None,
    settings: Settings | None = None,
) -> dict:
    """Re-run the cascade at the current content version (no version bump)."""
    settings = settings or get_settings()
    training = await _lock_training(db, training_id)
    await _check_trainer(db, training, trainer)

    result = await _run_cascade(db, training, redis=redis, settings=settings)
    result["last_run"] = None
    if redis is not None:
        try:
            result["last_run"] = await progress_cache.get_cascade_run(training_id, redis)
        except Exception:
            logger.warning("Failed to read cascade summary training=%s", training_id, exc_info=True)
    return result
