import uuid

import pytest
from sqlalchemy import select

from factories import QUESTIONS, make_course, make_mini_training, make_training
from shared.constants import Role
from shared.models.user import CurrentUser
from trainhub.exceptions import (
    InvalidQuizDefinitionError,
    NotCourseTrainerError,
    QuizNotFoundError,
)
from trainhub.models import Notification, Quiz, TrainingProgress
from trainhub.progress.service import record_training_watch
from trainhub.trainer import service

NEW_MINI = {
    "title": "Surgical Scrub",
    "description": None,
    "video_url": None,
    "video_duration_secs": 100,
    "sort_order": 1,
}

QUIZ_FIELDS = {
    "questions": QUESTIONS,
    "questions_to_show": None,
    "passing_score": 70,
    "max_attempts": None,
    "allow_retake": True,
}


async def _setup(db, trainer, settings, *watched):
    course = await make_course(db, trainer_id=trainer.id)
    training = await make_training(db, course, video_duration_secs=100, minimum_watch_secs=60)
    learners = []
    for secs in watched:
        learner = uuid.uuid4()
        await record_training_watch(db, learner, training.training_id, watched_secs=secs, settings=settings)
        learners.append(learner)
    return training, learners


@pytest.mark.asyncio
async def test_adding_mini_training_regresses_and_notifies(db_session, trainer, settings) -> None:
    training, (finished, partial) = await _setup(db_session, trainer, settings, 60, 20)

    mini, result = await service.create_mini_training(
        db_session, training.training_id, trainer, fields=NEW_MINI, settings=settings,
    )
    assert mini.training_id == training.training_id
    assert result["content_version"] == 2
    assert result["affected_user_ids"] == [finished]
    assert result["notified"] == 1

    notes = (await db_session.execute(select(Notification))).scalars().all()
    assert len(notes) == 1
    note = notes[0]
    assert note.user_id == finished
    assert note.training_id == training.training_id
    assert note.content_version == 2
    assert note.type == "training_update"
    assert note.title == "Training Updated: Hand Hygiene"
    assert str(training.training_id) in note.link
    assert not note.is_read


@pytest.mark.asyncio
async def test_mini_training_with_quiz(db_session, trainer, settings) -> None:
    training, _ = await _setup(db_session, trainer, settings)
    mini, _ = await service.create_mini_training(
        db_session, training.training_id, trainer,
        fields=NEW_MINI, quiz=QUIZ_FIELDS, settings=settings,
    )
    quiz = await db_session.scalar(select(Quiz).where(Quiz.mini_training_id == mini.mini_training_id))
    assert quiz is not None
    assert quiz.training_id is None


@pytest.mark.asyncio
async def test_only_the_course_trainer_may_edit(db_session, trainer, settings) -> None:
    training, _ = await _setup(db_session, trainer, settings)
    stranger = CurrentUser(id=uuid.uuid4(), roles=[Role.TRAINER])
    with pytest.raises(NotCourseTrainerError):
        await service.create_mini_training(
            db_session, training.training_id, stranger, fields=NEW_MINI, settings=settings,
        )
    assert training.content_version == 1

    admin = CurrentUser(id=uuid.uuid4(), roles=[Role.ADMIN])
    _, result = await service.create_mini_training(
        db_session, training.training_id, admin, fields=NEW_MINI, settings=settings,
    )
    assert result["content_version"] == 2


@pytest.mark.asyncio
async def test_removing_mini_training_completes_without_notifying(db_session, trainer, settings) -> None:
    course = await make_course(db_session, trainer_id=trainer.id)
    training = await make_training(db_session, course, video_duration_secs=100, minimum_watch_secs=60)
    mini = await make_mini_training(db_session, training, video_duration_secs=100)
    learner = uuid.uuid4()
    record = await record_training_watch(db_session, learner, training.training_id, watched_secs=60, settings=settings)
    assert not record.is_completed

    result = await service.delete_mini_training(
        db_session, mini.mini_training_id, trainer, settings=settings,
    )
    # Completion flipped up: affected, but nobody lost anything
    assert result["affected_user_ids"] == [learner]
    assert result["notified"] == 0
    assert record.is_completed
    assert record.total_mini_trainings == 0


@pytest.mark.asyncio
async def test_adding_training_quiz_regresses(db_session, trainer, settings) -> None:
    training, (finished,) = await _setup(db_session, trainer, settings, 60)

    quiz, result = await service.upsert_training_quiz(
        db_session, training.training_id, trainer, fields=QUIZ_FIELDS, settings=settings,
    )
    assert quiz.training_id == training.training_id
    assert quiz.mini_training_id is None
    assert result["affected_user_ids"] == [finished]
    assert result["notified"] == 1

    # Replacing the quiz again: the learner was already incomplete at this version
    _, again = await service.upsert_training_quiz(
        db_session, training.training_id, trainer,
        fields={**QUIZ_FIELDS, "passing_score": 80}, settings=settings,
    )
    assert again["content_version"] == 3
    assert again["affected_user_ids"] == []
    assert quiz.passing_score == 80


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "fields",
    [
        {**QUIZ_FIELDS, "questions": []},
        {**QUIZ_FIELDS, "questions_to_show": 5},
        {**QUIZ_FIELDS, "questions": "not json"},
    ],
)
async def test_invalid_quiz_definitions_are_rejected(db_session, trainer, settings, fields) -> None:
    training, _ = await _setup(db_session, trainer, settings)
    with pytest.raises(InvalidQuizDefinitionError):
        await service.upsert_training_quiz(
            db_session, training.training_id, trainer, fields=fields, settings=settings,
        )


@pytest.mark.asyncio
async def test_deleting_missing_quiz(db_session, trainer, settings) -> None:
    training, _ = await _setup(db_session, trainer, settings)
    with pytest.raises(QuizNotFoundError):
        await service.delete_training_quiz(db_session, training.training_id, trainer, settings=settings)


@pytest.mark.asyncio
async def test_raising_minimum_watch_time_regresses(db_session, trainer, settings) -> None:
    training, (finished, long_watcher) = await _setup(db_session, trainer, settings, 60, 95)

    updated, result = await service.update_training_video(
        db_session, training.training_id, trainer,
        fields={"minimum_watch_secs": 90}, settings=settings,
    )
    assert updated.minimum_watch_secs == 90
    assert result["affected_user_ids"] == [finished]
    assert long_watcher not in result["affected_user_ids"]


@pytest.mark.asyncio
async def test_manual_recalculation_keeps_version_and_does_not_renotify(db_session, trainer, settings) -> None:
    training, (finished,) = await _setup(db_session, trainer, settings, 60)
    await service.create_mini_training(
        db_session, training.training_id, trainer, fields=NEW_MINI, settings=settings,
    )

    result = await service.recalculate_training(db_session, training.training_id, trainer, settings=settings)
    assert result["content_version"] == 2
    assert result["affected_user_ids"] == [finished]
    assert result["notified"] == 0
    assert result["last_run"] is None

    notes = (await db_session.execute(select(Notification))).scalars().all()
    assert len(notes) == 1
