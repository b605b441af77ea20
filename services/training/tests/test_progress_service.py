import uuid

import pytest
from sqlalchemy import func, select

from factories import add_watch, make_course, make_mini_training, make_quiz, make_training
from trainhub.exceptions import ContentNotPublishedError, InvalidWatchProgressError
from trainhub.models import CourseProgress, TrainingProgress
from trainhub.progress.service import (
    EMPTY_COURSE_SUMMARY,
    calculate_course_progress,
    get_training_progress,
    record_mini_training_watch,
    record_training_watch,
    update_course_progress,
)


@pytest.mark.asyncio
async def test_partial_then_complete_video(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course, video_duration_secs=120, minimum_watch_secs=60)
    user_id = uuid.uuid4()

    record = await record_training_watch(db_session, user_id, training.training_id, watched_secs=45, settings=settings)
    assert float(record.progress) == 75.0
    assert not record.is_completed
    assert record.completed_at is None

    record = await record_training_watch(db_session, user_id, training.training_id, watched_secs=60, settings=settings)
    assert float(record.progress) == 100.0
    assert record.is_completed
    assert record.completed_at is not None
    assert record.video_watched_secs == 60
    assert record.content_version == training.content_version


@pytest.mark.asyncio
async def test_watch_upserts_a_single_row(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course, video_duration_secs=100)
    user_id = uuid.uuid4()
    for secs in (10, 20, 30):
        await record_training_watch(db_session, user_id, training.training_id, watched_secs=secs, settings=settings)

    count = await db_session.scalar(
        select(func.count()).select_from(TrainingProgress).where(TrainingProgress.user_id == user_id)
    )
    assert count == 1


@pytest.mark.asyncio
async def test_completed_at_is_kept_when_watch_goes_backwards(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course, video_duration_secs=100, minimum_watch_secs=50)
    user_id = uuid.uuid4()

    done = await record_training_watch(db_session, user_id, training.training_id, watched_secs=50, settings=settings)
    first_completion = done.completed_at
    again = await record_training_watch(db_session, user_id, training.training_id, watched_secs=10, settings=settings)
    assert not again.is_completed
    assert again.completed_at == first_completion


@pytest.mark.asyncio
async def test_invalid_watch_is_rejected(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course, video_duration_secs=100)
    with pytest.raises(InvalidWatchProgressError):
        await record_training_watch(db_session, uuid.uuid4(), training.training_id, watched_secs=-1, settings=settings)
    with pytest.raises(InvalidWatchProgressError):
        await record_training_watch(
            db_session, uuid.uuid4(), training.training_id, watched_secs=float("nan"), settings=settings,
        )


@pytest.mark.asyncio
async def test_unpublished_training_rejects_watch(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course, video_duration_secs=100, is_published=False)
    with pytest.raises(ContentNotPublishedError):
        await record_training_watch(db_session, uuid.uuid4(), training.training_id, watched_secs=10, settings=settings)


@pytest.mark.asyncio
async def test_mini_training_watch_rolls_up(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course, video_duration_secs=100, minimum_watch_secs=50)
    first = await make_mini_training(db_session, training, video_duration_secs=100, sort_order=0)
    await make_mini_training(db_session, training, video_duration_secs=100, sort_order=1)
    user_id = uuid.uuid4()

    await record_training_watch(db_session, user_id, training.training_id, watched_secs=50, settings=settings)
    mini = await record_mini_training_watch(
        db_session, user_id, first.mini_training_id, watched_secs=90, settings=settings,
    )
    assert mini.is_completed
    assert float(mini.video_progress) == 100.0

    record = await get_training_progress(db_session, user_id, training.training_id, settings=settings)
    assert record.mini_trainings_completed == 1
    assert record.total_mini_trainings == 2
    # (1 + 0.5) / 2
    assert float(record.progress) == 75.0
    assert not record.is_completed


@pytest.mark.asyncio
async def test_mini_quiz_gates_mini_training(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course)
    mini = await make_mini_training(db_session, training, video_duration_secs=100)
    await make_quiz(db_session, mini_training=mini)
    user_id = uuid.uuid4()

    record = await record_mini_training_watch(
        db_session, user_id, mini.mini_training_id, watched_secs=100, settings=settings,
    )
    assert not record.is_completed
    progress = await get_training_progress(db_session, user_id, training.training_id, settings=settings)
    # Mini-training only: 70% video credit, mini-quiz not passed
    assert float(progress.progress) == 70.0


@pytest.mark.asyncio
async def test_course_progress_is_mean_of_trainings(db_session, settings) -> None:
    course = await make_course(db_session)
    first = await make_training(db_session, course, video_duration_secs=100, minimum_watch_secs=50)
    second = await make_training(db_session, course, video_duration_secs=100, minimum_watch_secs=50, sort_order=1)
    user_id = uuid.uuid4()

    await record_training_watch(db_session, user_id, first.training_id, watched_secs=50, settings=settings)
    await record_training_watch(db_session, user_id, second.training_id, watched_secs=25, settings=settings)

    summary = await calculate_course_progress(db_session, user_id, course.course_id)
    assert summary.progress == 75.0
    assert not summary.is_completed
    assert summary.completed_training_count == 1
    assert summary.total_training_count == 2

    stored = await db_session.scalar(
        select(CourseProgress).where(CourseProgress.user_id == user_id, CourseProgress.course_id == course.course_id)
    )
    assert float(stored.progress) == 75.0


@pytest.mark.asyncio
async def test_course_completes_when_every_published_training_does(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course, video_duration_secs=100, minimum_watch_secs=50)
    await make_training(db_session, course, video_duration_secs=100, is_published=False, sort_order=1)
    user_id = uuid.uuid4()

    await record_training_watch(db_session, user_id, training.training_id, watched_secs=50, settings=settings)
    summary = await update_course_progress(db_session, user_id, course.course_id)
    assert summary.is_completed
    assert summary.progress == 100.0
    assert summary.total_training_count == 1

    stored = await db_session.scalar(select(CourseProgress).where(CourseProgress.user_id == user_id))
    assert stored.is_completed
    assert stored.completed_at is not None


@pytest.mark.asyncio
async def test_untouched_course_auto_enrolls_at_zero(db_session) -> None:
    course = await make_course(db_session)
    await make_training(db_session, course, video_duration_secs=100)
    user_id = uuid.uuid4()

    summary = await update_course_progress(db_session, user_id, course.course_id)
    assert summary.progress == 0.0
    assert not summary.is_completed

    stored = await db_session.scalar(select(CourseProgress).where(CourseProgress.user_id == user_id))
    assert stored is not None
    assert not stored.is_completed


@pytest.mark.asyncio
async def test_course_without_published_trainings_is_never_complete(db_session) -> None:
    course = await make_course(db_session)
    summary = await update_course_progress(db_session, uuid.uuid4(), course.course_id)
    assert summary == EMPTY_COURSE_SUMMARY


@pytest.mark.asyncio
async def test_missing_course_returns_empty_summary(db_session) -> None:
    user_id = uuid.uuid4()
    summary = await update_course_progress(db_session, user_id, uuid.uuid4())
    assert summary == EMPTY_COURSE_SUMMARY
    count = await db_session.scalar(select(func.count()).select_from(CourseProgress))
    assert count == 0


@pytest.mark.asyncio
async def test_read_path_recomputes_from_signals(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course, video_duration_secs=100, minimum_watch_secs=50)
    user_id = uuid.uuid4()
    # Signal written without going through the service
    await add_watch(db_session, user_id, training.training_id, 25)

    record = await get_training_progress(db_session, user_id, training.training_id, settings=settings)
    assert float(record.progress) == 50.0
