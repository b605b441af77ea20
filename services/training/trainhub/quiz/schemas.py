"""Quiz domain Pydantic V2 schemas.

Covers quiz authoring (wire format), randomized attempt views, submission
and attempt history.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Authoring (stored as-is in Quiz.questions)
# ---------------------------------------------------------------------------


class QuizOptionIn(BaseModel):
    id: str | None = Field(default=None, max_length=100)
    text: str = Field(min_length=1)


class QuizQuestionIn(BaseModel):
    """One question in the stored wire format.

    ``options`` may be plain strings or ``{id, text}`` objects; leave it empty
    for free-form questions. ``correctAnswer`` is an option index, an option
    id, the option text, or the expected value for free-form questions.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    id: str | None = Field(default=None, max_length=100)
    type: str = Field(default="multiple_choice", max_length=50)
    question: str = Field(min_length=1)
    options: list[str | QuizOptionIn] = Field(default_factory=list, max_length=20)
    correct_answer: int | str = Field(alias="correctAnswer")
    points: int = Field(default=1, ge=0)
    explanation: str | None = None


# ---------------------------------------------------------------------------
# Learner views
# ---------------------------------------------------------------------------


class QuizOptionView(BaseModel):
    id: str
    text: str


class QuizQuestionView(BaseModel):
    """Question as served to a learner — shuffled, no correct answer."""

    id: str
    type: str
    question: str
    options: list[QuizOptionView] = Field(default_factory=list)
    points: int


class QuizStartResponse(BaseModel):
    quiz_id: UUID
    attempt_number: int = Field(description="1-based attempt this arrangement belongs to.")
    questions: list[QuizQuestionView]
    total_questions: int
    passing_score: int
    max_attempts: int | None
    attempts_used: int


class QuizAttemptRequest(BaseModel):
    """Answers keyed by question id: the option id for choice questions, text otherwise."""

    answers: dict[str, Any] = Field(description="question_id -> option id or free text.")
    time_taken_secs: int | None = Field(default=None, ge=0)


class QuestionReview(BaseModel):
    question_id: str
    is_correct: bool
    correct_option_id: str | None = None
    explanation: str | None = None


class QuizAttemptResponse(BaseModel):
    quiz_id: UUID
    attempt_number: int
    score: int = Field(description="Rounded percentage of correct answers.")
    passed: bool
    correct_count: int
    total_questions: int
    time_taken_secs: int | None = None
    review: list[QuestionReview] = Field(default_factory=list)


class AttemptSummary(BaseModel):
    attempt_number: int
    score: int
    passed: bool
    correct_count: int
    total_questions: int
    time_taken_secs: int | None = None
    completed_at: datetime | None = None


class QuizAttemptsResponse(BaseModel):
    quiz_id: UUID
    total_attempts: int
    max_attempts: int | None
    best_score: int | None
    passed: bool
    attempts: list[AttemptSummary]
