"""Training progress schema: content, learner signals, derived progress, inbox.

Revision ID: 001
Revises:
Create Date: 2026-10-18

Tables created:
  - courses, trainings, mini_trainings   Authored content (trainings carry content_version)
  - quizzes                              Question pool owned by a training XOR a mini-training
  - quiz_attempts, watch_signals         Raw learner signals (source of truth)
  - mini_training_progress               Derived per mini-training
  - training_progress                    Derived per training, versioned for the cascade
  - course_progress                      Derived per course (auto-enrollment)
  - notifications                        "Training updated" inbox, one row per learner/version

Downgrade: drops all tables in reverse dependency order.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)
TS = sa.TIMESTAMP(timezone=True)


def _now() -> sa.TextClause:
    return sa.text("now()")


# ─────────────────────────────────────────────────────────────────────────────
#  UPGRADE
# ─────────────────────────────────────────────────────────────────────────────

def upgrade() -> None:
    # ── 1. Content ────────────────────────────────────────────────────────────
    op.create_table(
        "courses",
        sa.Column("course_id", UUID, primary_key=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("trainer_id", UUID, nullable=False),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", TS, nullable=False, server_default=_now()),
    )
    op.create_index("ix_courses_trainer_id", "courses", ["trainer_id"])

    op.create_table(
        "trainings",
        sa.Column("training_id", UUID, primary_key=True),
        sa.Column(
            "course_id", UUID,
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("video_url", sa.String(500), nullable=True),
        sa.Column("video_duration_secs", sa.Integer(), nullable=True),
        sa.Column("minimum_watch_secs", sa.Integer(), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sort_order", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column("content_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", TS, nullable=False, server_default=_now()),
        sa.Column("updated_at", TS, nullable=False, server_default=_now()),
    )
    op.create_index("ix_trainings_course_id", "trainings", ["course_id"])

    op.create_table(
        "mini_trainings",
        sa.Column("mini_training_id", UUID, primary_key=True),
        sa.Column(
            "training_id", UUID,
            sa.ForeignKey("trainings.training_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("video_url", sa.String(500), nullable=True),
        sa.Column("video_duration_secs", sa.Integer(), nullable=True),
        sa.Column("sort_order", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column("created_at", TS, nullable=False, server_default=_now()),
    )
    op.create_index("ix_mini_trainings_training_id", "mini_trainings", ["training_id"])

    op.create_table(
        "quizzes",
        sa.Column("quiz_id", UUID, primary_key=True),
        sa.Column(
            "training_id", UUID,
            sa.ForeignKey("trainings.training_id", ondelete="CASCADE"),
            nullable=True, unique=True,
        ),
        sa.Column(
            "mini_training_id", UUID,
            sa.ForeignKey("mini_trainings.mini_training_id", ondelete="CASCADE"),
            nullable=True, unique=True,
        ),
        sa.Column("questions", postgresql.JSONB(), nullable=False),
        sa.Column("questions_to_show", sa.SmallInteger(), nullable=True),
        sa.Column("passing_score", sa.SmallInteger(), nullable=False, server_default="70"),
        sa.Column("max_attempts", sa.SmallInteger(), nullable=True),
        sa.Column("allow_retake", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", TS, nullable=False, server_default=_now()),
        sa.CheckConstraint(
            "(training_id IS NULL) <> (mini_training_id IS NULL)",
            name="ck_quizzes_single_owner",
        ),
    )

    # ── 2. Raw learner signals ────────────────────────────────────────────────
    op.create_table(
        "quiz_attempts",
        sa.Column("attempt_id", UUID, primary_key=True),
        sa.Column(
            "quiz_id", UUID,
            sa.ForeignKey("quizzes.quiz_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("attempt_number", sa.SmallInteger(), nullable=False),
        sa.Column("answers", postgresql.JSONB(), nullable=False),
        sa.Column("score", sa.SmallInteger(), nullable=False),
        sa.Column("passed", sa.Boolean(), nullable=False),
        sa.Column("correct_count", sa.SmallInteger(), nullable=False),
        sa.Column("total_questions", sa.SmallInteger(), nullable=False),
        sa.Column("time_taken_secs", sa.Integer(), nullable=True),
        sa.Column("completed_at", TS, nullable=False, server_default=_now()),
        sa.UniqueConstraint("quiz_id", "user_id", "attempt_number", name="uq_quiz_attempt_number"),
    )
    op.create_index("ix_quiz_attempts_quiz_user", "quiz_attempts", ["quiz_id", "user_id"])

    op.create_table(
        "watch_signals",
        sa.Column("signal_id", UUID, primary_key=True),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("lesson_id", UUID, nullable=False),
        sa.Column("watched_secs", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updated_at", TS, nullable=False, server_default=_now()),
        sa.UniqueConstraint("user_id", "lesson_id", name="uq_watch_signals_user_lesson"),
    )
    op.create_index("ix_watch_signals_lesson_id", "watch_signals", ["lesson_id"])

    # ── 3. Derived progress ───────────────────────────────────────────────────
    op.create_table(
        "mini_training_progress",
        sa.Column("progress_id", UUID, primary_key=True),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column(
            "mini_training_id", UUID,
            sa.ForeignKey("mini_trainings.mini_training_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("video_progress", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("quiz_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", TS, nullable=True),
        sa.Column("updated_at", TS, nullable=False, server_default=_now()),
        sa.UniqueConstraint(
            "user_id", "mini_training_id", name="uq_mini_training_progress_user_mini",
        ),
    )
    op.create_index(
        "ix_mini_training_progress_mini_training_id",
        "mini_training_progress", ["mini_training_id"],
    )

    op.create_table(
        "training_progress",
        sa.Column("progress_id", UUID, primary_key=True),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column(
            "training_id", UUID,
            sa.ForeignKey("trainings.training_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("video_progress", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("video_watched_secs", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quiz_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("mini_trainings_completed", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column("total_mini_trainings", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column("progress", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", TS, nullable=True),
        sa.Column("content_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("completed_before_update", sa.Boolean(), nullable=True),
        sa.Column("updated_at", TS, nullable=False, server_default=_now()),
        sa.UniqueConstraint("user_id", "training_id", name="uq_training_progress_user_training"),
    )
    op.create_index("ix_training_progress_training_id", "training_progress", ["training_id"])

    op.create_table(
        "course_progress",
        sa.Column("progress_id", UUID, primary_key=True),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column(
            "course_id", UUID,
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("progress", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", TS, nullable=True),
        sa.Column("enrolled_at", TS, nullable=False, server_default=_now()),
        sa.Column("updated_at", TS, nullable=False, server_default=_now()),
        sa.UniqueConstraint("user_id", "course_id", name="uq_course_progress_user_course"),
    )
    op.create_index("ix_course_progress_course_id", "course_progress", ["course_id"])

    # ── 4. Notifications ──────────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("notification_id", UUID, primary_key=True),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("type", sa.String(50), nullable=False, server_default="training_update"),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("link", sa.String(500), nullable=True),
        sa.Column("training_id", UUID, nullable=True),
        sa.Column("content_version", sa.Integer(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", TS, nullable=False, server_default=_now()),
        sa.UniqueConstraint(
            "user_id", "training_id", "content_version", "type",
            name="uq_notifications_training_update",
        ),
    )
    op.create_index(
        "ix_notifications_user_id_created_at", "notifications", ["user_id", "created_at"],
    )


# ─────────────────────────────────────────────────────────────────────────────
#  DOWNGRADE
# ─────────────────────────────────────────────────────────────────────────────

def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("course_progress")
    op.drop_table("training_progress")
    op.drop_table("mini_training_progress")
    op.drop_table("watch_signals")
    op.drop_table("quiz_attempts")
    op.drop_table("quizzes")
    op.drop_table("mini_trainings")
    op.drop_table("trainings")
    op.drop_table("courses")
