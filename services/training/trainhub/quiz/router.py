"""Quiz router — randomized attempts and grading for learners.

Each (learner, quiz, attempt) always gets the same arrangement; a new
attempt gets a reseeded one.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser
from trainhub.config import Settings
from trainhub.database import get_db
from trainhub.dependencies import get_current_user, get_settings
from trainhub.quiz import controller
from trainhub.quiz.schemas import (
    QuizAttemptRequest,
    QuizAttemptResponse,
    QuizAttemptsResponse,
    QuizStartResponse,
)

router = APIRouter(prefix="/quizzes", tags=["Quizzes"])


@router.post(
    "/{quiz_id}/start",
    response_model=QuizStartResponse,
    summary="Start (or resume) my next quiz attempt",
    description="Returns the questions for the learner's next attempt: selected and "
    "ordered per learner and attempt, options shuffled, correct answers stripped. "
    "Calling it again before submitting returns the same arrangement.",
)
async def start_quiz(
    quiz_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> QuizStartResponse:
    return await controller.start_quiz(db, quiz_id, user.id)


@router.post(
    "/{quiz_id}/attempt",
    response_model=QuizAttemptResponse,
    summary="Submit a quiz attempt",
    description="Answers are keyed by question id (option id for choice questions). "
    "Grades against the regenerated arrangement and updates training progress.",
)
async def submit_attempt(
    quiz_id: UUID,
    body: QuizAttemptRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> QuizAttemptResponse:
    return await controller.submit_attempt(db, quiz_id, user.id, body, settings)


@router.get(
    "/{quiz_id}/attempts",
    response_model=QuizAttemptsResponse,
    summary="My attempt history",
    description="All of the learner's attempts on the quiz with best score and pass state.",
)
async def get_my_attempts(
    quiz_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> QuizAttemptsResponse:
    return await controller.get_my_attempts(db, quiz_id, user.id)
