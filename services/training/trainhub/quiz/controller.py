"""Quiz controller — maps service results to HTTP responses."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from trainhub.config import Settings
from trainhub.exceptions import (
    ContentNotPublishedError,
    MaxAttemptsReachedError,
    QuizHasNoQuestionsError,
    QuizNotFoundError,
    RetakeNotAllowedError,
    TrainingNotFoundError,
)
from trainhub.quiz import service
from trainhub.quiz.schemas import (
    QuizAttemptRequest,
    QuizAttemptResponse,
    QuizAttemptsResponse,
    QuizStartResponse,
)

logger = logging.getLogger(__name__)


def _handle_domain_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (QuizNotFoundError, TrainingNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ContentNotPublishedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Content is not published.")
    if isinstance(exc, QuizHasNoQuestionsError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Quiz has no questions.")
    if isinstance(exc, MaxAttemptsReachedError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Maximum quiz attempts reached.")
    if isinstance(exc, RetakeNotAllowedError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Retakes are not allowed for this quiz.")
    if isinstance(exc, IntegrityError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Attempt already submitted.")
    logger.exception("Unexpected quiz error", exc_info=exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error.")


async def start_quiz(
    db: AsyncSession,
    quiz_id: UUID,
    user_id: UUID,
) -> QuizStartResponse:
    """Randomized questions for the learner's next attempt, answers stripped."""
    try:
        result = await service.start_quiz(db, quiz_id, user_id)
        return QuizStartResponse(**result)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def submit_attempt(
    db: AsyncSession,
    quiz_id: UUID,
    user_id: UUID,
    body: QuizAttemptRequest,
    settings: Settings,
) -> QuizAttemptResponse:
    try:
        result = await service.submit_attempt(
            db, quiz_id, user_id,
            answers=body.answers,
            time_taken_secs=body.time_taken_secs,
            settings=settings,
        )
        return QuizAttemptResponse(**result)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def get_my_attempts(
    db: AsyncSession,
    quiz_id: UUID,
    user_id: UUID,
) -> QuizAttemptsResponse:
    try:
        result = await service.get_my_attempts(db, quiz_id, user_id)
        return QuizAttemptsResponse(**result)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
