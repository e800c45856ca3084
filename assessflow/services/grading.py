"""Scoring of finalized quiz attempts.

Objective questions (multiple-choice, true-false) are graded on the spot
by exact string comparison with the single correct answer: no trimming,
no case folding.  Short-answer and essay responses are left for a human
grader; an unanswered question of any kind earns zero and needs no
grading.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import assert_never

from assessflow.models.assessment import (
    AssessmentDefinition,
    EssayQuestion,
    MultipleChoiceQuestion,
    Question,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)
from assessflow.models.attempt import QuestionResult
from assessflow.services.errors import GradeOutOfRangeError, InvalidTransitionError

_MANUAL_KINDS = frozenset({"short-answer", "essay"})


def grade_answer(question: Question, answer: str | None) -> QuestionResult:
    if answer is None or answer == "":
        return QuestionResult(
            question_index=question.index,
            kind=question.kind,
            answer=None,
            points_awarded=0,
            max_points=question.points,
            is_correct=False,
        )

    if isinstance(question, MultipleChoiceQuestion | TrueFalseQuestion):
        correct = answer == question.correct_answer
        return QuestionResult(
            question_index=question.index,
            kind=question.kind,
            answer=answer,
            points_awarded=question.points if correct else 0,
            max_points=question.points,
            is_correct=correct,
        )
    if isinstance(question, ShortAnswerQuestion | EssayQuestion):
        return QuestionResult(
            question_index=question.index,
            kind=question.kind,
            answer=answer,
            points_awarded=0,
            max_points=question.points,
            is_correct=None,
            needs_manual_grading=True,
        )
    assert_never(question)


def grade_answers(
    definition: AssessmentDefinition, answers: Mapping[int, str]
) -> tuple[QuestionResult, ...]:
    return tuple(grade_answer(q, answers.get(q.index)) for q in definition.questions)


def round_half_up(value: float) -> int:
    """Nearest whole number, halves rounded up (66.5 -> 67, 50.5 -> 51)."""
    return math.floor(value + 0.5)


def percentage_of(score: float, total_points: int) -> int:
    """Whole-number percentage (33.3 -> 33, 50.5 -> 51)."""
    if total_points <= 0:
        return 0
    return round_half_up(score / total_points * 100)


def summarize(
    results: tuple[QuestionResult, ...], total_points: int, passing_score: int
) -> tuple[float, int, bool]:
    """Return (score, percentage, passed) for a set of question results."""
    score = sum(r.points_awarded for r in results)
    percentage = percentage_of(score, total_points)
    return score, percentage, percentage >= passing_score


def apply_manual_scores(
    results: tuple[QuestionResult, ...], scores: Mapping[int, float]
) -> tuple[QuestionResult, ...]:
    """Fill in human-assigned points for questions awaiting manual grading.

    Scores may be revised while the attempt stays ungraded or after it is
    graded.  Raises GradeOutOfRangeError for a score outside [0, max_points]
    and InvalidTransitionError for an objective or unanswered question.
    Validation covers every score before anything is applied.
    """
    by_index = {r.question_index: r for r in results}
    for index, points in scores.items():
        result = by_index.get(index)
        if result is None or result.kind not in _MANUAL_KINDS:
            raise InvalidTransitionError(
                f"question {index} is not awaiting manual grading"
            )
        if result.answer is None:
            raise InvalidTransitionError(f"question {index} was not answered")
        if not 0 <= points <= result.max_points:
            raise GradeOutOfRangeError(
                f"question {index} score must be between 0 and {result.max_points}"
            )

    updated = []
    for r in results:
        if r.question_index in scores:
            points = scores[r.question_index]
            updated.append(
                QuestionResult(
                    question_index=r.question_index,
                    kind=r.kind,
                    answer=r.answer,
                    points_awarded=points,
                    max_points=r.max_points,
                    is_correct=points == r.max_points,
                    needs_manual_grading=False,
                )
            )
        else:
            updated.append(r)
    return tuple(updated)
