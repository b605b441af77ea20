"""Quiz service — randomized attempts, grading, and attempt history.

Pure business logic, no FastAPI imports.

The arrangement a learner sees is never stored: ``start_quiz`` and
``submit_attempt`` both regenerate it from (learner, quiz, attempt number),
so grading uses exactly the view that was served. Time limits are not
enforced server-side.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from trainhub.config import Settings, get_settings
from trainhub.exceptions import (
    ContentNotPublishedError,
    MaxAttemptsReachedError,
    QuizHasNoQuestionsError,
    QuizNotFoundError,
    RetakeNotAllowedError,
    TrainingNotFoundError,
)
from trainhub.models.mini_training import MiniTraining
from trainhub.models.quiz import Quiz
from trainhub.models.quiz_attempt import QuizAttempt
from trainhub.models.training import Training
from trainhub.progress.service import (
    refresh_mini_training_progress,
    refresh_training_progress,
)
from trainhub.quiz.grading import grade_attempt
from trainhub.quiz.randomizer import RandomizedQuestion, randomize_quiz_questions

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_quiz_by_id(db: AsyncSession, quiz_id: UUID) -> Quiz:
    quiz = await db.get(Quiz, quiz_id)
    if quiz is None:
        raise QuizNotFoundError(str(quiz_id))
    return quiz


async def _owning_training(db: AsyncSession, quiz: Quiz) -> Training:
    training_id = quiz.training_id
    if training_id is None:
        mini = await db.get(MiniTraining, quiz.mini_training_id)
        if mini is None:
            raise QuizNotFoundError(str(quiz.quiz_id))
        training_id = mini.training_id
    training = await db.get(Training, training_id)
    if training is None:
        raise TrainingNotFoundError(str(training_id))
    return training


async def _count_attempts(db: AsyncSession, quiz_id: UUID, user_id: UUID) -> int:
    stmt = (
        select(func.count())
        .select_from(QuizAttempt)
        .where(
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.user_id == user_id,
        )
    )
    return await db.scalar(stmt) or 0


def _check_can_attempt(quiz: Quiz, attempt_count: int) -> None:
    if quiz.max_attempts is not None and attempt_count >= quiz.max_attempts:
        raise MaxAttemptsReachedError()
    if not quiz.allow_retake and attempt_count >= 1:
        raise RetakeNotAllowedError()


async def _prepare_attempt(
    db: AsyncSession, quiz_id: UUID, user_id: UUID,
) -> tuple[Quiz, int, list[RandomizedQuestion]]:
    """Shared guard for start and submit: returns (quiz, attempt_number, arrangement)."""
    quiz = await get_quiz_by_id(db, quiz_id)
    training = await _owning_training(db, quiz)
    if not training.is_published:
        raise ContentNotPublishedError()

    attempt_count = await _count_attempts(db, quiz_id, user_id)
    _check_can_attempt(quiz, attempt_count)

    attempt_number = attempt_count + 1
    questions = randomize_quiz_questions(
        quiz.questions,
        quiz.questions_to_show,
        user_id,
        attempt_number,
        quiz_id=quiz_id,
    )
    if not questions:
        raise QuizHasNoQuestionsError()
    return quiz, attempt_number, questions


# ---------------------------------------------------------------------------
# Start quiz (randomized)
# ---------------------------------------------------------------------------


async def start_quiz(db: AsyncSession, quiz_id: UUID, user_id: UUID) -> dict:
    """Return the learner's arrangement for their next attempt, answers stripped."""
    quiz, attempt_number, questions = await _prepare_attempt(db, quiz_id, user_id)

    return {
        "quiz_id": quiz.quiz_id,
        "attempt_number": attempt_number,
        "questions": [
            {
                "id": q.id,
                "type": q.type,
                "question": q.question,
                "options": [{"id": opt.id, "text": opt.text} for opt in q.options],
                "points": q.points,
            }
            for q in questions
        ],
        "total_questions": len(questions),
        "passing_score": quiz.passing_score,
        "max_attempts": quiz.max_attempts,
        "attempts_used": attempt_number - 1,
    }


# ---------------------------------------------------------------------------
# Quiz Attempts
# ---------------------------------------------------------------------------


async def submit_attempt(
    db: AsyncSession,
    quiz_id: UUID,
    user_id: UUID,
    *,
    answers: dict[str, Any],
    time_taken_secs: int | None = None,
    settings: Settings | None = None,
) -> dict:
    """Grade a submission keyed by question id and record the attempt.

    Returns dict with quiz_id, attempt_number, score, passed, correct_count,
    total_questions, time_taken_secs, review.
    """
    settings = settings or get_settings()
    quiz, attempt_number, questions = await _prepare_attempt(db, quiz_id, user_id)

    grade = grade_attempt(questions, answers)
    passed = grade.passed(quiz.passing_score)

    attempt = QuizAttempt(
        quiz_id=quiz_id,
        user_id=user_id,
        attempt_number=attempt_number,
        answers=answers,
        score=grade.score,
        passed=passed,
        correct_count=grade.correct_count,
        total_questions=grade.total_questions,
        time_taken_secs=time_taken_secs,
    )
    db.add(attempt)
    await db.flush()

    logger.info(
        "Quiz attempt user=%s quiz=%s attempt=%d score=%d passed=%s",
        user_id, quiz_id, attempt_number, grade.score, passed,
    )

    # Recompute progress from the new signal
    if quiz.training_id is not None:
        await refresh_training_progress(db, user_id, quiz.training_id, settings=settings)
    else:
        mini = await db.get(MiniTraining, quiz.mini_training_id)
        await refresh_mini_training_progress(db, user_id, mini, settings=settings)

    return {
        "quiz_id": quiz.quiz_id,
        "attempt_number": attempt_number,
        "score": grade.score,
        "passed": passed,
        "correct_count": grade.correct_count,
        "total_questions": grade.total_questions,
        "time_taken_secs": time_taken_secs,
        "review": [
            {
                "question_id": r.question_id,
                "is_correct": r.is_correct,
                # Correct options are only revealed once the learner has passed
                "correct_option_id": r.correct_option_id if passed else None,
                "explanation": r.explanation if passed else None,
            }
            for r in grade.results
        ],
    }


async def get_my_attempts(
    db: AsyncSession,
    quiz_id: UUID,
    user_id: UUID,
) -> dict:
    """Return attempt history for the current user on a quiz."""
    quiz = await get_quiz_by_id(db, quiz_id)

    attempt_stmt = (
        select(QuizAttempt)
        .where(
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.user_id == user_id,
        )
        .order_by(QuizAttempt.attempt_number)
    )
    result = await db.execute(attempt_stmt)
    attempts = list(result.scalars().all())

    best_score = max((a.score for a in attempts), default=None)

    return {
        "quiz_id": quiz.quiz_id,
        "total_attempts": len(attempts),
        "max_attempts": quiz.max_attempts,
        "best_score": best_score,
        "passed": any(a.passed for a in attempts),
        "attempts": [
            {
                "attempt_number": a.attempt_number,
                "score": a.score,
                "passed": a.passed,
                "correct_count": a.correct_count,
                "total_questions": a.total_questions,
                "time_taken_secs": a.time_taken_secs,
                "completed_at": a.completed_at,
            }
            for a in attempts
        ],
    }
