"""Quiz content parsing.

The ``questions`` column holds loosely-typed JSON authored by trainers. It is
parsed into a tagged union so option shuffling only ever touches questions
that actually have options:

- :class:`ChoiceQuestion`   options present (multiple choice, true/false)
- :class:`FreeFormQuestion` no options; the correct answer is a value

Anything unparseable becomes an :class:`InvalidQuizContent` value instead of
an exception.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Union

logger = logging.getLogger(__name__)

DEFAULT_QUESTION_TYPE = "multiple_choice"


@dataclass(frozen=True)
class QuizOption:
    id: str
    text: str


@dataclass(frozen=True)
class ChoiceQuestion:
    id: str
    type: str
    question: str
    options: tuple[QuizOption, ...]
    # As authored: index, numeric string, option id or option text
    correct_answer: Any
    points: int = 1
    explanation: str | None = None


@dataclass(frozen=True)
class FreeFormQuestion:
    id: str
    type: str
    question: str
    correct_answer: Any
    points: int = 1
    explanation: str | None = None


@dataclass(frozen=True)
class InvalidQuizContent:
    reason: str


QuizQuestion = Union[ChoiceQuestion, FreeFormQuestion]


def parse_quiz_content(raw: Any) -> list[QuizQuestion] | InvalidQuizContent:
    """Parse a stored quiz payload.

    Accepts JSON text, a list of question objects, or ``{"questions": [...]}``.
    Already-parsed questions pass through unchanged.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            return InvalidQuizContent(f"invalid JSON: {exc}")

    if isinstance(raw, dict):
        raw = raw.get("questions")

    if not isinstance(raw, list):
        return InvalidQuizContent(f"expected a list of questions, got {type(raw).__name__}")

    parsed: list[QuizQuestion] = []
    for index, item in enumerate(raw):
        if isinstance(item, (ChoiceQuestion, FreeFormQuestion)):
            parsed.append(item)
            continue
        if not isinstance(item, dict):
            return InvalidQuizContent(f"question {index} is not an object")
        parsed.append(_parse_question(item, index))
    return parsed


def _parse_question(item: dict, index: int) -> QuizQuestion:
    question_id = str(item.get("id") or f"q-{index}")
    question_type = str(item.get("type") or DEFAULT_QUESTION_TYPE)
    text = str(item.get("question") or "")
    correct = item.get("correctAnswer", item.get("correct_answer"))
    points = _coerce_points(item.get("points"))
    explanation = item.get("explanation")

    raw_options = item.get("options")
    options = _parse_options(question_id, raw_options) if isinstance(raw_options, list) else ()
    if options:
        return ChoiceQuestion(
            id=question_id,
            type=question_type,
            question=text,
            options=options,
            correct_answer=correct,
            points=points,
            explanation=explanation,
        )
    return FreeFormQuestion(
        id=question_id,
        type=question_type,
        question=text,
        correct_answer=correct,
        points=points,
        explanation=explanation,
    )


def _parse_options(question_id: str, raw_options: list) -> tuple[QuizOption, ...]:
    options = []
    for index, opt in enumerate(raw_options):
        synthetic_id = f"opt-{question_id}-{index}"
        if isinstance(opt, dict):
            options.append(QuizOption(
                id=str(opt.get("id") or synthetic_id),
                text=str(opt.get("text") or ""),
            ))
        else:
            options.append(QuizOption(id=synthetic_id, text=str(opt)))
    return tuple(options)


def _coerce_points(value: Any) -> int:
    if isinstance(value, bool):
        return 1
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 1


def resolve_correct_index(question: ChoiceQuestion) -> int | None:
    """Original index of the correct option, or None when it cannot be found.

    Tries, in order: an integer index, an in-range numeric string, an option
    id, the exact option text, then a trimmed case-insensitive text match.
    """
    answer = question.correct_answer
    count = len(question.options)

    if isinstance(answer, bool) or answer is None:
        return None
    if isinstance(answer, int):
        return answer if 0 <= answer < count else None
    if isinstance(answer, float) and answer.is_integer():
        return int(answer) if 0 <= answer < count else None
    if not isinstance(answer, str):
        return None

    stripped = answer.strip()
    # Out-of-range numeric strings may still be option text ("4" in ["3", "4"])
    if stripped.isdecimal() and int(stripped) < count:
        return int(stripped)

    for index, opt in enumerate(question.options):
        if opt.id == answer:
            return index
    for index, opt in enumerate(question.options):
        if opt.text == answer:
            return index
    folded = stripped.lower()
    for index, opt in enumerate(question.options):
        if opt.text.strip().lower() == folded:
            return index
    return None
