import uuid

import pytest

from factories import QUESTIONS, auth_headers, make_course, make_quiz, make_training
from shared.constants import Role
from trainhub.quiz.randomizer import randomize_quiz_questions

API = "/api/v1"


@pytest.mark.asyncio
async def test_health(async_client) -> None:
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "training"}


@pytest.mark.asyncio
async def test_progress_requires_auth(async_client) -> None:
    response = await async_client.get(f"{API}/progress/trainings/{uuid.uuid4()}")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_watch_and_read_progress(async_client, db_session) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course, video_duration_secs=120, minimum_watch_secs=60)
    learner = uuid.uuid4()
    headers = auth_headers(learner)

    response = await async_client.post(
        f"{API}/progress/trainings/{training.training_id}/watch",
        json={"watched_secs": 45},
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["progress"] == 75.0
    assert body["is_completed"] is False
    assert body["content_version"] == 1

    course_response = await async_client.get(f"{API}/progress/courses/{course.course_id}", headers=headers)
    assert course_response.status_code == 200
    assert course_response.json()["progress"] == 75.0


@pytest.mark.asyncio
async def test_negative_watch_is_a_validation_error(async_client, db_session) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course, video_duration_secs=120)
    response = await async_client.post(
        f"{API}/progress/trainings/{training.training_id}/watch",
        json={"watched_secs": -5},
        headers=auth_headers(uuid.uuid4()),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_training_is_404(async_client) -> None:
    response = await async_client.get(
        f"{API}/progress/trainings/{uuid.uuid4()}", headers=auth_headers(uuid.uuid4()),
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_quiz_start_and_submit(async_client, db_session) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course)
    quiz = await make_quiz(db_session, training=training)
    learner = uuid.uuid4()
    headers = auth_headers(learner)

    start = await async_client.post(f"{API}/quizzes/{quiz.quiz_id}/start", headers=headers)
    assert start.status_code == 200
    served = start.json()
    assert served["attempt_number"] == 1
    assert served["total_questions"] == len(QUESTIONS)

    arrangement = randomize_quiz_questions(QUESTIONS, None, learner, 1, quiz_id=quiz.quiz_id)
    assert [q["id"] for q in served["questions"]] == [q.id for q in arrangement]

    submit = await async_client.post(
        f"{API}/quizzes/{quiz.quiz_id}/attempt",
        json={"answers": {q.id: q.correct_option_id for q in arrangement}, "time_taken_secs": 30},
        headers=headers,
    )
    assert submit.status_code == 200
    assert submit.json()["passed"] is True

    history = await async_client.get(f"{API}/quizzes/{quiz.quiz_id}/attempts", headers=headers)
    assert history.json()["total_attempts"] == 1


@pytest.mark.asyncio
async def test_trainer_routes_require_trainer_role(async_client, db_session) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course)
    response = await async_client.post(
        f"{API}/trainer/trainings/{training.training_id}/recalculate",
        headers=auth_headers(uuid.uuid4(), Role.LEARNER),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_trainer_adds_mini_training_and_learner_is_notified(async_client, db_session) -> None:
    trainer_id = uuid.uuid4()
    course = await make_course(db_session, trainer_id=trainer_id)
    training = await make_training(db_session, course, video_duration_secs=100, minimum_watch_secs=60)
    learner = uuid.uuid4()
    await async_client.post(
        f"{API}/progress/trainings/{training.training_id}/watch",
        json={"watched_secs": 60},
        headers=auth_headers(learner),
    )

    response = await async_client.post(
        f"{API}/trainer/trainings/{training.training_id}/mini-trainings",
        json={"title": "Surgical Scrub", "video_duration_secs": 100},
        headers=auth_headers(trainer_id, Role.TRAINER),
    )
    assert response.status_code == 201
    cascade = response.json()["cascade"]
    assert cascade["content_version"] == 2
    assert cascade["affected_user_ids"] == [str(learner)]
    assert cascade["notified"] == 1

    inbox = await async_client.get(f"{API}/notifications", headers=auth_headers(learner))
    assert inbox.status_code == 200
    page = inbox.json()
    assert page["total"] == 1
    notification_id = page["items"][0]["id"]

    read = await async_client.post(f"{API}/notifications/{notification_id}/read", headers=auth_headers(learner))
    assert read.status_code == 204


@pytest.mark.asyncio
async def test_other_trainer_cannot_edit(async_client, db_session) -> None:
    course = await make_course(db_session)
    training = await make_training(db_session, course)
    response = await async_client.put(
        f"{API}/trainer/trainings/{training.training_id}/quiz",
        json={"questions": QUESTIONS},
        headers=auth_headers(uuid.uuid4(), Role.TRAINER),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invalid_quiz_is_422(async_client, db_session) -> None:
    trainer_id = uuid.uuid4()
    course = await make_course(db_session, trainer_id=trainer_id)
    training = await make_training(db_session, course)
    response = await async_client.put(
        f"{API}/trainer/trainings/{training.training_id}/quiz",
        json={"questions": QUESTIONS, "questions_to_show": 10},
        headers=auth_headers(trainer_id, Role.TRAINER),
    )
    assert response.status_code == 422
