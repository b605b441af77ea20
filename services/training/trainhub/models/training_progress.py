import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base


class TrainingProgress(Base):
    __tablename__ = "training_progress"

    progress_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Soft reference: User lives in identity_db
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    training_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("trainings.training_id", ondelete="CASCADE"),
        nullable=False,
    )
    video_progress: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0.00")
    )
    video_watched_secs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quiz_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mini_trainings_completed: Mapped[int] = mapped_column(
        SmallInteger, nullable=False, default=0
    )
    # Tracks the current definition, rewritten by the cascade
    total_mini_trainings: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    progress: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0.00")
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Set once, never cleared even if is_completed flips back
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    # Training.content_version this row was last computed against
    content_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # is_completed as it stood before the first recompute at content_version
    completed_before_update: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "training_id", name="uq_training_progress_user_training"),
        Index("ix_training_progress_training_id", "training_id"),
    )
