import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, SmallInteger
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base, JSONType


class Quiz(Base):
    """Quiz attached to a training or to a mini-training (mini-quiz)."""

    __tablename__ = "quizzes"

    quiz_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    training_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("trainings.training_id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
    )
    mini_training_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("mini_trainings.mini_training_id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
    )
    # Array of {id, type, question, options: [str | {id, text}], correctAnswer, points, explanation}
    questions: Mapped[list | dict | str] = mapped_column(JSONType, nullable=False)
    # Null = show the whole pool (order still randomized)
    questions_to_show: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    passing_score: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=70)
    max_attempts: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    allow_retake: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        CheckConstraint(
            "(training_id IS NULL) <> (mini_training_id IS NULL)",
            name="ck_quizzes_single_owner",
        ),
    )
