"""Model factories shared by the service and router tests."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth.config import get_auth_settings
from shared.auth.dependencies import encode_token
from shared.constants import Role
from trainhub.models import (
    Course,
    MiniTraining,
    Quiz,
    QuizAttempt,
    Training,
    TrainingProgress,
    WatchSignal,
)

QUESTIONS = [
    {
        "id": "q1",
        "type": "multiple_choice",
        "question": "What is the capital of France?",
        "options": ["Paris", "London", "Berlin", "Madrid"],
        "correctAnswer": 0,
        "explanation": "Paris has been the capital since 987.",
    },
    {
        "id": "q2",
        "type": "multiple_choice",
        "question": "2 + 2 = ?",
        "options": ["3", "4", "5", "22"],
        "correctAnswer": "4",
    },
    {
        "id": "q3",
        "type": "true_false",
        "question": "The earth is flat.",
        "options": ["True", "False"],
        "correctAnswer": "False",
    },
]


def auth_headers(user_id: uuid.UUID, *roles: Role) -> dict[str, str]:
    token = encode_token(user_id, list(roles) or [Role.LEARNER], get_auth_settings())
    return {"Authorization": f"Bearer {token}"}


async def make_course(db: AsyncSession, trainer_id: uuid.UUID | None = None, **kwargs) -> Course:
    course = Course(
        title=kwargs.pop("title", "Clinical Basics"),
        description=kwargs.pop("description", None),
        trainer_id=trainer_id or uuid.uuid4(),
        is_published=kwargs.pop("is_published", True),
        **kwargs,
    )
    db.add(course)
    await db.flush()
    return course


async def make_training(db: AsyncSession, course: Course, **kwargs) -> Training:
    training = Training(
        course_id=course.course_id,
        title=kwargs.pop("title", "Hand Hygiene"),
        description=kwargs.pop("description", None),
        video_url=kwargs.pop("video_url", None),
        video_duration_secs=kwargs.pop("video_duration_secs", None),
        minimum_watch_secs=kwargs.pop("minimum_watch_secs", None),
        is_published=kwargs.pop("is_published", True),
        content_version=kwargs.pop("content_version", 1),
        sort_order=kwargs.pop("sort_order", 0),
        **kwargs,
    )
    db.add(training)
    await db.flush()
    return training


async def make_mini_training(db: AsyncSession, training: Training, **kwargs) -> MiniTraining:
    mini = MiniTraining(
        training_id=training.training_id,
        title=kwargs.pop("title", "Glove Removal"),
        description=kwargs.pop("description", None),
        video_url=kwargs.pop("video_url", None),
        video_duration_secs=kwargs.pop("video_duration_secs", None),
        sort_order=kwargs.pop("sort_order", 0),
        **kwargs,
    )
    db.add(mini)
    await db.flush()
    return mini


async def make_quiz(
    db: AsyncSession,
    *,
    training: Training | None = None,
    mini_training: MiniTraining | None = None,
    questions: list | None = None,
    **kwargs,
) -> Quiz:
    quiz = Quiz(
        training_id=training.training_id if training else None,
        mini_training_id=mini_training.mini_training_id if mini_training else None,
        questions=questions if questions is not None else QUESTIONS,
        questions_to_show=kwargs.pop("questions_to_show", None),
        passing_score=kwargs.pop("passing_score", 70),
        max_attempts=kwargs.pop("max_attempts", None),
        allow_retake=kwargs.pop("allow_retake", True),
        **kwargs,
    )
    db.add(quiz)
    await db.flush()
    return quiz


async def add_watch(db: AsyncSession, user_id: uuid.UUID, lesson_id: uuid.UUID, secs: int) -> WatchSignal:
    signal = WatchSignal(user_id=user_id, lesson_id=lesson_id, watched_secs=secs, is_completed=False)
    db.add(signal)
    await db.flush()
    return signal


async def add_passed_attempt(
    db: AsyncSession, user_id: uuid.UUID, quiz: Quiz, attempt_number: int = 1,
) -> QuizAttempt:
    attempt = QuizAttempt(
        quiz_id=quiz.quiz_id,
        user_id=user_id,
        attempt_number=attempt_number,
        answers={},
        score=100,
        passed=True,
        correct_count=3,
        total_questions=3,
    )
    db.add(attempt)
    await db.flush()
    return attempt


async def add_progress_row(
    db: AsyncSession,
    user_id: uuid.UUID,
    training: Training,
    *,
    is_completed: bool,
    content_version: int | None = None,
) -> TrainingProgress:
    record = TrainingProgress(
        user_id=user_id,
        training_id=training.training_id,
        progress=Decimal("100.00") if is_completed else Decimal("0.00"),
        is_completed=is_completed,
        completed_at=datetime.now(timezone.utc) if is_completed else None,
        content_version=content_version or training.content_version,
        completed_before_update=None,
    )
    db.add(record)
    await db.flush()
    return record
