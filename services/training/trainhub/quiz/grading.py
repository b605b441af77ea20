"""Score a submission against a regenerated quiz arrangement."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from trainhub.quiz.randomizer import RandomizedQuestion


@dataclass(frozen=True)
class QuestionResult:
    question_id: str
    submitted: Any
    is_correct: bool
    correct_option_id: str | None = None
    explanation: str | None = None


@dataclass
class GradeResult:
    correct_count: int
    total_questions: int
    score: int
    points_earned: int
    points_possible: int
    results: list[QuestionResult] = field(default_factory=list)

    def passed(self, passing_score: int) -> bool:
        return self.total_questions > 0 and self.score >= passing_score


def _normalize(value: Any) -> str:
    return str(value).strip().lower()


def _is_correct(question: RandomizedQuestion, submitted: Any) -> bool:
    if submitted is None:
        return False
    if question.is_choice:
        # Option id as shown, or the shown index
        if isinstance(submitted, str):
            return submitted == question.correct_option_id
        if isinstance(submitted, int) and not isinstance(submitted, bool):
            return submitted == question.correct_answer
        return False
    if question.correct_answer is None:
        return False
    return _normalize(submitted) == _normalize(question.correct_answer)


def grade_attempt(
    questions: Sequence[RandomizedQuestion],
    answers: Mapping[str, Any],
) -> GradeResult:
    """Grade ``answers`` keyed by question id. Unanswered questions count as wrong."""
    results = []
    correct_count = 0
    points_earned = 0
    points_possible = 0
    for q in questions:
        submitted = answers.get(q.id)
        ok = _is_correct(q, submitted)
        points_possible += q.points
        if ok:
            correct_count += 1
            points_earned += q.points
        results.append(QuestionResult(
            question_id=q.id,
            submitted=submitted,
            is_correct=ok,
            correct_option_id=q.correct_option_id,
            explanation=q.explanation,
        ))

    total = len(questions)
    score = round(correct_count / total * 100) if total > 0 else 0
    return GradeResult(
        correct_count=correct_count,
        total_questions=total,
        score=score,
        points_earned=points_earned,
        points_possible=points_possible,
        results=results,
    )
