import uuid

import pytest
from sqlalchemy import select

from factories import make_course, make_mini_training, make_quiz, make_training
from trainhub.exceptions import (
    ContentNotPublishedError,
    MaxAttemptsReachedError,
    QuizHasNoQuestionsError,
    QuizNotFoundError,
    RetakeNotAllowedError,
)
from trainhub.models import MiniTrainingProgress, QuizAttempt, TrainingProgress
from trainhub.quiz import service
from trainhub.quiz.randomizer import randomize_quiz_questions


def _correct_answers(quiz, user_id, attempt_number: int) -> dict:
    questions = randomize_quiz_questions(
        quiz.questions, quiz.questions_to_show, user_id, attempt_number, quiz_id=quiz.quiz_id,
    )
    return {q.id: q.correct_option_id for q in questions}


@pytest.mark.asyncio
async def test_start_quiz_serves_arrangement_without_answers(db_session) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course)
    quiz = await make_quiz(db_session, training=training)
    user_id = uuid.uuid4()

    started = await service.start_quiz(db_session, quiz.quiz_id, user_id)
    expected = randomize_quiz_questions(quiz.questions, None, user_id, 1, quiz_id=quiz.quiz_id)
    assert started["attempt_number"] == 1
    assert started["attempts_used"] == 0
    assert [q["id"] for q in started["questions"]] == [q.id for q in expected]
    assert all("correct_answer" not in q for q in started["questions"])

    # Starting again without submitting serves the same arrangement
    again = await service.start_quiz(db_session, quiz.quiz_id, user_id)
    assert again["questions"] == started["questions"]


@pytest.mark.asyncio
async def test_passing_attempt_completes_quiz_only_training(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course)
    quiz = await make_quiz(db_session, training=training)
    user_id = uuid.uuid4()

    result = await service.submit_attempt(
        db_session, quiz.quiz_id, user_id,
        answers=_correct_answers(quiz, user_id, 1), time_taken_secs=42, settings=settings,
    )
    assert result["passed"]
    assert result["score"] == 100
    assert result["review"][0]["correct_option_id"] is not None

    progress = await db_session.scalar(
        select(TrainingProgress).where(TrainingProgress.user_id == user_id)
    )
    assert progress.quiz_completed
    assert progress.is_completed
    assert float(progress.progress) == 100.0


@pytest.mark.asyncio
async def test_failed_attempt_hides_answers_and_next_attempt_reshuffles(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course)
    quiz = await make_quiz(db_session, training=training)
    user_id = uuid.uuid4()

    failed = await service.submit_attempt(db_session, quiz.quiz_id, user_id, answers={}, settings=settings)
    assert not failed["passed"]
    assert failed["score"] == 0
    assert all(r["correct_option_id"] is None for r in failed["review"])
    assert all(r["explanation"] is None for r in failed["review"])

    second = await service.submit_attempt(
        db_session, quiz.quiz_id, user_id, answers=_correct_answers(quiz, user_id, 2), settings=settings,
    )
    assert second["attempt_number"] == 2
    assert second["passed"]

    history = await service.get_my_attempts(db_session, quiz.quiz_id, user_id)
    assert history["total_attempts"] == 2
    assert history["best_score"] == 100
    assert history["passed"]
    assert [a["attempt_number"] for a in history["attempts"]] == [1, 2]


@pytest.mark.asyncio
async def test_max_attempts_enforced(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course)
    quiz = await make_quiz(db_session, training=training, max_attempts=1)
    user_id = uuid.uuid4()

    await service.submit_attempt(db_session, quiz.quiz_id, user_id, answers={}, settings=settings)
    with pytest.raises(MaxAttemptsReachedError):
        await service.start_quiz(db_session, quiz.quiz_id, user_id)


@pytest.mark.asyncio
async def test_retake_not_allowed(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course)
    quiz = await make_quiz(db_session, training=training, allow_retake=False)
    user_id = uuid.uuid4()

    await service.submit_attempt(db_session, quiz.quiz_id, user_id, answers={}, settings=settings)
    with pytest.raises(RetakeNotAllowedError):
        await service.submit_attempt(db_session, quiz.quiz_id, user_id, answers={}, settings=settings)


@pytest.mark.asyncio
async def test_unpublished_and_empty_quizzes(db_session) -> None:
    course = await make_course(db_session)
    hidden = await make_training(db_session, course, is_published=False)
    hidden_quiz = await make_quiz(db_session, training=hidden)
    with pytest.raises(ContentNotPublishedError):
        await service.start_quiz(db_session, hidden_quiz.quiz_id, uuid.uuid4())

    training = await make_training(db_session, course, sort_order=1)
    empty_quiz = await make_quiz(db_session, training=training, questions=[])
    with pytest.raises(QuizHasNoQuestionsError):
        await service.start_quiz(db_session, empty_quiz.quiz_id, uuid.uuid4())

    with pytest.raises(QuizNotFoundError):
        await service.start_quiz(db_session, uuid.uuid4(), uuid.uuid4())


@pytest.mark.asyncio
async def test_mini_quiz_pass_completes_mini_training(db_session, settings) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course)
    mini = await make_mini_training(db_session, training)
    quiz = await make_quiz(db_session, mini_training=mini)
    user_id = uuid.uuid4()

    await service.submit_attempt(
        db_session, quiz.quiz_id, user_id, answers=_correct_answers(quiz, user_id, 1), settings=settings,
    )

    mini_progress = await db_session.scalar(
        select(MiniTrainingProgress).where(MiniTrainingProgress.user_id == user_id)
    )
    assert mini_progress.quiz_completed
    assert mini_progress.is_completed

    training_progress = await db_session.scalar(
        select(TrainingProgress).where(TrainingProgress.user_id == user_id)
    )
    assert training_progress.mini_trainings_completed == 1
    assert training_progress.is_completed

    attempt = await db_session.scalar(select(QuizAttempt).where(QuizAttempt.user_id == user_id))
    assert attempt.passed
