"""Assessment and assignment definitions supplied by the content provider.

Questions are a tagged union: one frozen dataclass per question kind, each
with a ``kind`` discriminator.  Grading code dispatches on the concrete type
so a new kind cannot be added without the grader noticing.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID, uuid4

QuestionKind = Literal["multiple-choice", "true-false", "short-answer", "essay"]


@dataclass(frozen=True, slots=True)
class MultipleChoiceQuestion:
    index: int
    points: int
    prompt: str
    options: tuple[str, ...]
    correct_answer: str
    kind: Literal["multiple-choice"] = "multiple-choice"

    def __post_init__(self) -> None:
        if len(self.options) < 2:
            raise ValueError("multiple choice questions need at least 2 options")


@dataclass(frozen=True, slots=True)
class TrueFalseQuestion:
    index: int
    points: int
    prompt: str
    correct_answer: str  # "true"|"false"
    kind: Literal["true-false"] = "true-false"


@dataclass(frozen=True, slots=True)
class ShortAnswerQuestion:
    index: int
    points: int
    prompt: str
    correct_answer: str | None = None  # reference for the human grader
    kind: Literal["short-answer"] = "short-answer"


@dataclass(frozen=True, slots=True)
class EssayQuestion:
    index: int
    points: int
    prompt: str
    kind: Literal["essay"] = "essay"


Question = (
    MultipleChoiceQuestion | TrueFalseQuestion | ShortAnswerQuestion | EssayQuestion
)


@dataclass(frozen=True, slots=True)
class AssessmentDefinition:
    """A timed (or untimed) quiz.

    ``total_points`` of 0 means "sum of question points", which is what the
    authoring side stores after every edit anyway.
    """

    id: UUID
    title: str
    questions: tuple[Question, ...]
    available_from: datetime
    available_until: datetime
    total_points: int = 0
    time_limit_seconds: int | None = None
    attempts_allowed: int = 1
    passing_score: int = 60  # percentage
    show_correct_answers: bool = True
    instructor_id: str | None = None

    def __post_init__(self) -> None:
        if not self.questions:
            raise ValueError("an assessment needs at least one question")
        if self.attempts_allowed < 1:
            raise ValueError("attempts_allowed must be at least 1")
        if not 0 <= self.passing_score <= 100:
            raise ValueError("passing_score must be a percentage")
        if self.time_limit_seconds is not None and self.time_limit_seconds <= 0:
            raise ValueError("time_limit_seconds must be positive")
        indexes = [q.index for q in self.questions]
        if len(set(indexes)) != len(indexes):
            raise ValueError("question indexes must be unique")
        if self.total_points == 0:
            # frozen: bypass __setattr__ for the derived default
            object.__setattr__(
                self, "total_points", sum(q.points for q in self.questions)
            )

    @property
    def is_timed(self) -> bool:
        return self.time_limit_seconds is not None

    def question(self, index: int) -> Question | None:
        for q in self.questions:
            if q.index == index:
                return q
        return None

    def is_available(self, at: datetime) -> bool:
        return self.available_from <= at <= self.available_until

    @staticmethod
    def new(
        *,
        title: str,
        questions: tuple[Question, ...],
        available_from: datetime,
        available_until: datetime,
        time_limit_seconds: int | None = None,
        attempts_allowed: int = 1,
        passing_score: int = 60,
        instructor_id: str | None = None,
    ) -> AssessmentDefinition:
        return AssessmentDefinition(
            id=uuid4(),
            title=title,
            questions=questions,
            available_from=available_from,
            available_until=available_until,
            time_limit_seconds=time_limit_seconds,
            attempts_allowed=attempts_allowed,
            passing_score=passing_score,
            instructor_id=instructor_id,
        )


@dataclass(frozen=True, slots=True)
class AssignmentDefinition:
    id: UUID
    title: str
    due_date: datetime
    total_points: int
    allow_resubmission: bool = False
    instructor_id: str | None = None

    def __post_init__(self) -> None:
        if self.total_points < 1:
            raise ValueError("total_points must be at least 1")

    @staticmethod
    def new(
        *,
        title: str,
        due_date: datetime,
        total_points: int,
        allow_resubmission: bool = False,
        instructor_id: str | None = None,
    ) -> AssignmentDefinition:
        return AssignmentDefinition(
            id=uuid4(),
            title=title,
            due_date=due_date,
            total_points=total_points,
            allow_resubmission=allow_resubmission,
            instructor_id=instructor_id,
        )
