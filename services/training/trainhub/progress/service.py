"""Progress service — raw learner signals to stored training and course progress.

Pure business logic, no FastAPI imports.

Every write and read path recomputes the derived rows from the persisted
signals (watch signals, passed quiz attempts) instead of trusting what is
stored, so TrainingProgress and CourseProgress behave as materialized views.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trainhub.config import Settings, get_settings
from trainhub.exceptions import (
    ContentNotPublishedError,
    InvalidWatchProgressError,
    MiniTrainingNotFoundError,
    TrainingNotFoundError,
)
from trainhub.models.course import Course
from trainhub.models.course_progress import CourseProgress
from trainhub.models.mini_training import MiniTraining
from trainhub.models.mini_training_progress import MiniTrainingProgress
from trainhub.models.quiz import Quiz
from trainhub.models.quiz_attempt import QuizAttempt
from trainhub.models.training import Training
from trainhub.models.training_progress import TrainingProgress
from trainhub.models.watch_signal import WatchSignal
from trainhub.progress.calculator import (
    MiniTrainingState,
    ProgressSignals,
    TrainingDefinition,
    TrainingProgressResult,
    WeightConfig,
    calculate_training_progress,
    evaluate_mini_training,
    video_ratio,
)

logger = logging.getLogger(__name__)


def weight_config_from_settings(settings: Settings) -> WeightConfig:
    return WeightConfig(
        policy=settings.progress_weight_policy,
        video_completion_ratio=settings.video_completion_ratio,
        mini_video_weight=settings.mini_training_video_weight,
        mini_quiz_weight=settings.mini_training_quiz_weight,
    )


def _pct(value: float) -> Decimal:
    return Decimal(f"{value:.2f}")


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Training definition + signals
# ---------------------------------------------------------------------------


@dataclass
class TrainingContext:
    """A training's current definition, loaded once and reused per learner."""

    training: Training
    definition: TrainingDefinition
    quiz_id: UUID | None
    mini_trainings: list[MiniTraining] = field(default_factory=list)
    # mini_training_id -> quiz_id
    mini_quiz_ids: dict[UUID, UUID] = field(default_factory=dict)


async def get_training(db: AsyncSession, training_id: UUID) -> Training:
    training = await db.get(Training, training_id)
    if training is None:
        raise TrainingNotFoundError(str(training_id))
    return training


async def load_training_context(db: AsyncSession, training: Training) -> TrainingContext:
    quiz_id = await db.scalar(
        select(Quiz.quiz_id).where(Quiz.training_id == training.training_id),
    )

    mini_result = await db.execute(
        select(MiniTraining)
        .where(MiniTraining.training_id == training.training_id)
        .order_by(MiniTraining.sort_order, MiniTraining.created_at),
    )
    minis = list(mini_result.scalars().all())

    mini_quiz_ids: dict[UUID, UUID] = {}
    if minis:
        rows = await db.execute(
            select(Quiz.mini_training_id, Quiz.quiz_id).where(
                Quiz.mini_training_id.in_([m.mini_training_id for m in minis]),
            ),
        )
        mini_quiz_ids = {mini_id: qid for mini_id, qid in rows.all()}

    definition = TrainingDefinition(
        video_duration_secs=training.video_duration_secs,
        minimum_watch_secs=training.minimum_watch_secs,
        has_quiz=quiz_id is not None,
        mini_training_count=len(minis),
    )
    return TrainingContext(
        training=training,
        definition=definition,
        quiz_id=quiz_id,
        mini_trainings=minis,
        mini_quiz_ids=mini_quiz_ids,
    )


async def _passed_quiz_ids(
    db: AsyncSession, user_id: UUID, quiz_ids: list[UUID],
) -> set[UUID]:
    if not quiz_ids:
        return set()
    result = await db.execute(
        select(QuizAttempt.quiz_id)
        .where(
            QuizAttempt.user_id == user_id,
            QuizAttempt.quiz_id.in_(quiz_ids),
            QuizAttempt.passed.is_(True),
        )
        .distinct(),
    )
    return set(result.scalars().all())


async def _watched_secs(
    db: AsyncSession, user_id: UUID, lesson_ids: list[UUID],
) -> dict[UUID, int]:
    result = await db.execute(
        select(WatchSignal.lesson_id, WatchSignal.watched_secs).where(
            WatchSignal.user_id == user_id,
            WatchSignal.lesson_id.in_(lesson_ids),
        ),
    )
    return {lesson_id: secs for lesson_id, secs in result.all()}


async def collect_signals(
    db: AsyncSession,
    user_id: UUID,
    ctx: TrainingContext,
    config: WeightConfig,
) -> ProgressSignals:
    """Gather one learner's raw signals for a training (two queries)."""
    training_id = ctx.training.training_id
    watched = await _watched_secs(
        db, user_id, [training_id] + [m.mini_training_id for m in ctx.mini_trainings],
    )
    quiz_ids = list(ctx.mini_quiz_ids.values())
    if ctx.quiz_id is not None:
        quiz_ids.append(ctx.quiz_id)
    passed = await _passed_quiz_ids(db, user_id, quiz_ids)

    states = []
    for mini in ctx.mini_trainings:
        mini_quiz_id = ctx.mini_quiz_ids.get(mini.mini_training_id)
        evaluation = evaluate_mini_training(
            mini.video_duration_secs,
            watched.get(mini.mini_training_id, 0),
            has_quiz=mini_quiz_id is not None,
            quiz_passed=mini_quiz_id in passed,
            config=config,
        )
        states.append(MiniTrainingState(
            is_completed=evaluation.is_completed,
            video_progress=evaluation.video_progress,
            quiz_completed=mini_quiz_id in passed,
            has_video=bool(mini.video_duration_secs),
            has_quiz=mini_quiz_id is not None,
        ))

    return ProgressSignals(
        video_watched_secs=watched.get(training_id, 0),
        quiz_passed=ctx.quiz_id is not None and ctx.quiz_id in passed,
        mini_trainings_completed=sum(1 for s in states if s.is_completed),
        mini_trainings=tuple(states),
    )


# ---------------------------------------------------------------------------
# Training progress
# ---------------------------------------------------------------------------


async def _get_training_progress(
    db: AsyncSession, user_id: UUID, training_id: UUID,
) -> TrainingProgress | None:
    result = await db.execute(
        select(TrainingProgress).where(
            TrainingProgress.user_id == user_id,
            TrainingProgress.training_id == training_id,
        ),
    )
    return result.scalar_one_or_none()


async def _upsert_training_progress(
    db: AsyncSession, user_id: UUID, training: Training,
) -> TrainingProgress:
    record = await _get_training_progress(db, user_id, training.training_id)
    if record is not None:
        return record

    record = TrainingProgress(
        user_id=user_id,
        training_id=training.training_id,
        video_progress=Decimal("0.00"),
        video_watched_secs=0,
        quiz_completed=False,
        mini_trainings_completed=0,
        total_mini_trainings=0,
        progress=Decimal("0.00"),
        is_completed=False,
        completed_at=None,
        content_version=training.content_version,
        completed_before_update=None,
    )
    db.add(record)
    await db.flush()
    return record


def apply_training_result(
    record: TrainingProgress,
    result: TrainingProgressResult,
    signals: ProgressSignals,
    content_version: int,
) -> None:
    """Write a computed result onto a stored row.

    The first time a row is recomputed against a newer content version its
    current completion is snapshotted into ``completed_before_update``.
    ``completed_at`` is set on the first completion and never cleared.
    """
    if record.content_version != content_version:
        record.completed_before_update = record.is_completed
        record.content_version = content_version

    record.video_progress = _pct(result.video_progress)
    record.video_watched_secs = max(signals.video_watched_secs, 0)
    record.quiz_completed = signals.quiz_passed
    record.mini_trainings_completed = result.mini_trainings_completed
    record.total_mini_trainings = result.total_mini_trainings
    record.progress = _pct(result.progress)
    record.is_completed = result.is_completed
    if result.is_completed and record.completed_at is None:
        record.completed_at = _now()


async def refresh_training_progress(
    db: AsyncSession,
    user_id: UUID,
    training_id: UUID,
    *,
    settings: Settings | None = None,
    update_course: bool = True,
) -> TrainingProgress:
    """Recompute and persist one learner's progress on a training."""
    settings = settings or get_settings()
    config = weight_config_from_settings(settings)

    training = await get_training(db, training_id)
    ctx = await load_training_context(db, training)
    signals = await collect_signals(db, user_id, ctx, config)
    result = calculate_training_progress(signals, ctx.definition, config)

    record = await _upsert_training_progress(db, user_id, training)
    was_completed = record.is_completed
    apply_training_result(record, result, signals, training.content_version)
    if was_completed != record.is_completed:
        # The learner moved on their own; the pre-edit snapshot no longer applies
        record.completed_before_update = None
    await db.flush()

    if was_completed != record.is_completed:
        logger.info(
            "Training completion changed user=%s training=%s completed=%s progress=%s",
            user_id, training_id, record.is_completed, record.progress,
        )
    if update_course:
        await update_course_progress(db, user_id, training.course_id)
    return record


async def get_training_progress(
    db: AsyncSession,
    user_id: UUID,
    training_id: UUID,
    *,
    settings: Settings | None = None,
) -> TrainingProgress:
    """Read path: recompute, then return the stored row."""
    return await refresh_training_progress(db, user_id, training_id, settings=settings)


# ---------------------------------------------------------------------------
# Watch signals
# ---------------------------------------------------------------------------


def _validate_watched_secs(watched_secs: float) -> int:
    if watched_secs is None or not math.isfinite(watched_secs) or watched_secs < 0:
        raise InvalidWatchProgressError()
    return int(watched_secs)


async def _upsert_watch_signal(
    db: AsyncSession, user_id: UUID, lesson_id: UUID,
) -> WatchSignal:
    result = await db.execute(
        select(WatchSignal).where(
            WatchSignal.user_id == user_id,
            WatchSignal.lesson_id == lesson_id,
        ),
    )
    signal = result.scalar_one_or_none()
    if signal is not None:
        return signal

    signal = WatchSignal(user_id=user_id, lesson_id=lesson_id, watched_secs=0, is_completed=False)
    db.add(signal)
    await db.flush()
    return signal


async def record_training_watch(
    db: AsyncSession,
    user_id: UUID,
    training_id: UUID,
    *,
    watched_secs: float,
    settings: Settings | None = None,
) -> TrainingProgress:
    """Store the reported watch position for a training video and recompute."""
    settings = settings or get_settings()
    secs = _validate_watched_secs(watched_secs)

    training = await get_training(db, training_id)
    if not training.is_published:
        raise ContentNotPublishedError()

    signal = await _upsert_watch_signal(db, user_id, training_id)
    signal.watched_secs = secs
    signal.is_completed = video_ratio(
        secs,
        training.video_duration_secs,
        training.minimum_watch_secs,
        weight_config_from_settings(settings),
    ) >= 1.0
    await db.flush()

    return await refresh_training_progress(db, user_id, training_id, settings=settings)


# ---------------------------------------------------------------------------
# Mini-training progress
# ---------------------------------------------------------------------------


async def _upsert_mini_training_progress(
    db: AsyncSession, user_id: UUID, mini_training_id: UUID,
) -> MiniTrainingProgress:
    result = await db.execute(
        select(MiniTrainingProgress).where(
            MiniTrainingProgress.user_id == user_id,
            MiniTrainingProgress.mini_training_id == mini_training_id,
        ),
    )
    record = result.scalar_one_or_none()
    if record is not None:
        return record

    record = MiniTrainingProgress(
        user_id=user_id,
        mini_training_id=mini_training_id,
        video_progress=Decimal("0.00"),
        quiz_completed=False,
        is_completed=False,
        completed_at=None,
    )
    db.add(record)
    await db.flush()
    return record


async def refresh_mini_training_progress(
    db: AsyncSession,
    user_id: UUID,
    mini_training: MiniTraining,
    *,
    settings: Settings | None = None,
) -> MiniTrainingProgress:
    """Recompute one mini-training row, then the parent training."""
    settings = settings or get_settings()
    config = weight_config_from_settings(settings)

    mini_quiz_id = await db.scalar(
        select(Quiz.quiz_id).where(Quiz.mini_training_id == mini_training.mini_training_id),
    )
    watched = await _watched_secs(db, user_id, [mini_training.mini_training_id])
    passed = await _passed_quiz_ids(db, user_id, [mini_quiz_id] if mini_quiz_id else [])

    evaluation = evaluate_mini_training(
        mini_training.video_duration_secs,
        watched.get(mini_training.mini_training_id, 0),
        has_quiz=mini_quiz_id is not None,
        quiz_passed=mini_quiz_id in passed,
        config=config,
    )

    record = await _upsert_mini_training_progress(db, user_id, mini_training.mini_training_id)
    record.video_progress = _pct(evaluation.video_progress)
    record.quiz_completed = mini_quiz_id in passed
    record.is_completed = evaluation.is_completed
    if evaluation.is_completed and record.completed_at is None:
        record.completed_at = _now()
    await db.flush()

    await refresh_training_progress(db, user_id, mini_training.training_id, settings=settings)
    return record


async def record_mini_training_watch(
    db: AsyncSession,
    user_id: UUID,
    mini_training_id: UUID,
    *,
    watched_secs: float,
    settings: Settings | None = None,
) -> MiniTrainingProgress:
    secs = _validate_watched_secs(watched_secs)

    mini = await db.get(MiniTraining, mini_training_id)
    if mini is None:
        raise MiniTrainingNotFoundError(str(mini_training_id))
    training = await get_training(db, mini.training_id)
    if not training.is_published:
        raise ContentNotPublishedError()

    signal = await _upsert_watch_signal(db, user_id, mini_training_id)
    signal.watched_secs = secs
    await db.flush()

    return await refresh_mini_training_progress(db, user_id, mini, settings=settings)


# ---------------------------------------------------------------------------
# Course progress
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CourseProgressSummary:
    progress: float
    is_completed: bool
    completed_training_count: int
    total_training_count: int


EMPTY_COURSE_SUMMARY = CourseProgressSummary(
    progress=0.0, is_completed=False, completed_training_count=0, total_training_count=0,
)


async def _get_or_create_course_progress(
    db: AsyncSession, user_id: UUID, course_id: UUID,
) -> CourseProgress:
    result = await db.execute(
        select(CourseProgress).where(
            CourseProgress.user_id == user_id,
            CourseProgress.course_id == course_id,
        ),
    )
    record = result.scalar_one_or_none()
    if record is not None:
        return record

    record = CourseProgress(
        user_id=user_id,
        course_id=course_id,
        progress=Decimal("0.00"),
        is_completed=False,
        completed_at=None,
    )
    db.add(record)
    await db.flush()
    logger.info("Auto-enrolled user=%s course=%s", user_id, course_id)
    return record


async def calculate_course_progress(
    db: AsyncSession, user_id: UUID, course_id: UUID,
) -> CourseProgressSummary:
    """Mean of the stored progress of every published training (missing = 0).

    Completed only when the course has at least one published training and
    all of them are completed. Auto-enrolls the learner on first evaluation;
    a missing course yields an empty summary and no row.
    """
    course = await db.get(Course, course_id)
    if course is None:
        return EMPTY_COURSE_SUMMARY

    await _get_or_create_course_progress(db, user_id, course_id)

    training_ids = list((await db.execute(
        select(Training.training_id).where(
            Training.course_id == course_id,
            Training.is_published.is_(True),
        ),
    )).scalars().all())
    if not training_ids:
        return EMPTY_COURSE_SUMMARY

    rows = (await db.execute(
        select(TrainingProgress.progress, TrainingProgress.is_completed).where(
            TrainingProgress.user_id == user_id,
            TrainingProgress.training_id.in_(training_ids),
        ),
    )).all()

    total = len(training_ids)
    completed = sum(1 for _, done in rows if done)
    mean = sum(float(p or 0) for p, _ in rows) / total
    is_completed = completed == total

    return CourseProgressSummary(
        progress=100.0 if is_completed else round(max(0.0, min(mean, 100.0)), 2),
        is_completed=is_completed,
        completed_training_count=completed,
        total_training_count=total,
    )


async def update_course_progress(
    db: AsyncSession, user_id: UUID, course_id: UUID,
) -> CourseProgressSummary:
    """Recompute and persist course progress (completed_at set once)."""
    summary = await calculate_course_progress(db, user_id, course_id)
    if await db.get(Course, course_id) is None:
        return summary

    record = await _get_or_create_course_progress(db, user_id, course_id)
    record.progress = _pct(summary.progress)
    record.is_completed = summary.is_completed
    if summary.is_completed and record.completed_at is None:
        record.completed_at = _now()
    await db.flush()
    return summary
