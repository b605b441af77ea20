"""Trainer domain Pydantic V2 schemas — structural edits and cascade results."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from trainhub.quiz.schemas import QuizQuestionIn


# ---------------------------------------------------------------------------
# Quiz definitions
# ---------------------------------------------------------------------------


class QuizDefinitionRequest(BaseModel):
    """Quiz attached to a training or a mini-training."""

    questions: list[QuizQuestionIn] = Field(min_length=1, description="Question pool.")
    questions_to_show: int | None = Field(
        default=None, ge=1,
        description="Questions drawn per attempt; null shows the whole pool (order still randomized).",
    )
    passing_score: int = Field(default=70, ge=0, le=100, description="Minimum percentage to pass.")
    max_attempts: int | None = Field(default=None, ge=1, description="Null = unlimited.")
    allow_retake: bool = Field(default=True)

    def to_fields(self) -> dict[str, Any]:
        fields = self.model_dump(exclude={"questions"})
        fields["questions"] = [
            q.model_dump(by_alias=True, exclude_none=True) for q in self.questions
        ]
        return fields


class QuizResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    quiz_id: UUID
    training_id: UUID | None = None
    mini_training_id: UUID | None = None
    questions: Any
    questions_to_show: int | None = None
    passing_score: int
    max_attempts: int | None = None
    allow_retake: bool


# ---------------------------------------------------------------------------
# Mini-trainings
# ---------------------------------------------------------------------------


class CreateMiniTrainingRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=300)
    description: str | None = None
    video_url: str | None = Field(default=None, max_length=500)
    video_duration_secs: int | None = Field(default=None, ge=0)
    sort_order: int = Field(default=0, ge=0)
    quiz: QuizDefinitionRequest | None = Field(default=None, description="Optional mini-quiz.")


class UpdateMiniTrainingRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    video_url: str | None = Field(default=None, max_length=500)
    video_duration_secs: int | None = Field(default=None, ge=0)
    sort_order: int | None = Field(default=None, ge=0)
    quiz: QuizDefinitionRequest | None = Field(default=None, description="Replaces the mini-quiz.")


class MiniTrainingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    mini_training_id: UUID
    training_id: UUID
    title: str
    description: str | None = None
    video_url: str | None = None
    video_duration_secs: int | None = None
    sort_order: int
    created_at: datetime


# ---------------------------------------------------------------------------
# Video requirements
# ---------------------------------------------------------------------------


class UpdateVideoRequest(BaseModel):
    video_url: str | None = Field(default=None, max_length=500)
    video_duration_secs: int | None = Field(default=None, ge=0)
    minimum_watch_secs: int | None = Field(
        default=None, ge=0,
        description="Seconds that must be watched; null falls back to 90% of the duration.",
    )


# ---------------------------------------------------------------------------
# Cascade results
# ---------------------------------------------------------------------------


class CascadeResult(BaseModel):
    training_id: UUID
    content_version: int
    affected_user_ids: list[UUID] = Field(
        default_factory=list,
        description="Learners whose completion changed relative to the last edit.",
    )
    notified: int = Field(default=0, description="Training update notifications written.")


class RecalculateResponse(CascadeResult):
    last_run: dict[str, str] | None = Field(
        default=None, description="Last cascade summary recorded in Redis, when available.",
    )


class MiniTrainingEditResponse(BaseModel):
    mini_training: MiniTrainingResponse
    cascade: CascadeResult


class QuizEditResponse(BaseModel):
    quiz: QuizResponse
    cascade: CascadeResult


class VideoEditResponse(BaseModel):
    training_id: UUID
    video_url: str | None = None
    video_duration_secs: int | None = None
    minimum_watch_secs: int | None = None
    cascade: CascadeResult
