"""Progress domain Pydantic V2 schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class WatchProgressRequest(BaseModel):
    """Playback position reported by the player."""

    watched_secs: float = Field(
        ge=0, description="Seconds of the video watched so far (stored as reported).",
    )


class TrainingProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    training_id: UUID
    user_id: UUID
    video_progress: float = Field(description="Watched share of the required watch time, 0-100.")
    video_watched_secs: int
    quiz_completed: bool
    mini_trainings_completed: int
    total_mini_trainings: int
    progress: float = Field(description="Overall training progress, 0-100.")
    is_completed: bool
    completed_at: datetime | None = Field(
        default=None, description="First completion; kept even if completion later regresses.",
    )
    content_version: int


class MiniTrainingProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    mini_training_id: UUID
    video_progress: float
    quiz_completed: bool
    is_completed: bool
    completed_at: datetime | None = None


class CourseProgressResponse(BaseModel):
    course_id: UUID
    progress: float = Field(description="Mean progress of the course's published trainings.")
    is_completed: bool
    completed_training_count: int
    total_training_count: int
