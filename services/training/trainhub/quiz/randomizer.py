"""Per-learner, per-attempt quiz arrangement.

The arrangement is never stored: the same (learner, quiz, attempt) always
regenerates the same questions in the same order with the same option order,
so a submission can be graded against a freshly regenerated view.

1. seed = derive_seed(learner, quiz, attempt)
2. Fisher–Yates shuffle of the whole pool
3. keep the first ``questions_to_show`` when it is smaller than the pool
4. shuffle each question's options with seed + string_hash(question id)
5. remap the correct answer to its shuffled position (index 0 on failure)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from trainhub.quiz.content import (
    ChoiceQuestion,
    InvalidQuizContent,
    QuizQuestion,
    parse_quiz_content,
    resolve_correct_index,
)
from trainhub.quiz.rng import SeededRandom, derive_seed, seeded_shuffle, string_hash

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RandomizedOption:
    id: str
    text: str
    original_index: int


@dataclass(frozen=True)
class RandomizedQuestion:
    id: str
    type: str
    question: str
    options: tuple[RandomizedOption, ...]
    # Shuffled index for choice questions; the authored value for free-form ones
    correct_answer: Any
    original_correct_answer: Any
    points: int
    explanation: str | None

    @property
    def is_choice(self) -> bool:
        return bool(self.options)

    @property
    def correct_option_id(self) -> str | None:
        if not self.options:
            return None
        return self.options[self.correct_answer].id


def attempt_seed(learner_id: object, attempt_number: int, quiz_id: object | None = None) -> int:
    if quiz_id is None:
        return derive_seed(learner_id, attempt_number)
    return derive_seed(learner_id, quiz_id, attempt_number)


def randomize_quiz_questions(
    questions: Any,
    questions_to_show: int | None,
    learner_id: object,
    attempt_number: int,
    *,
    quiz_id: object | None = None,
) -> list[RandomizedQuestion]:
    """Return the arrangement for one attempt; ``[]`` for empty or malformed content."""
    parsed = parse_quiz_content(questions)
    if isinstance(parsed, InvalidQuizContent):
        logger.warning("Unparseable quiz content quiz=%s: %s", quiz_id, parsed.reason)
        return []
    if not parsed:
        return []

    seed = attempt_seed(learner_id, attempt_number, quiz_id)
    rng = SeededRandom(seed)

    selected = seeded_shuffle(parsed, rng)
    if questions_to_show and 0 < questions_to_show < len(selected):
        selected = selected[:questions_to_show]

    return [_arrange_question(q, seed, quiz_id) for q in selected]


def _arrange_question(question: QuizQuestion, seed: int, quiz_id: object | None) -> RandomizedQuestion:
    if not isinstance(question, ChoiceQuestion):
        return RandomizedQuestion(
            id=question.id,
            type=question.type,
            question=question.question,
            options=(),
            correct_answer=question.correct_answer,
            original_correct_answer=question.correct_answer,
            points=question.points,
            explanation=question.explanation,
        )

    indexed = [
        RandomizedOption(id=opt.id, text=opt.text, original_index=i)
        for i, opt in enumerate(question.options)
    ]
    shuffled = seeded_shuffle(indexed, SeededRandom(seed + string_hash(question.id)))

    original_index = resolve_correct_index(question)
    new_index = None
    if original_index is not None:
        new_index = next(
            (i for i, opt in enumerate(shuffled) if opt.original_index == original_index),
            None,
        )
    if new_index is None:
        logger.warning(
            "Correct answer %r not found among options quiz=%s question=%s; using index 0",
            question.correct_answer, quiz_id, question.id,
        )
        new_index = 0
        original_index = shuffled[0].original_index

    return RandomizedQuestion(
        id=question.id,
        type=question.type,
        question=question.question,
        options=tuple(shuffled),
        correct_answer=new_index,
        original_correct_answer=original_index,
        points=question.points,
        explanation=question.explanation,
    )
