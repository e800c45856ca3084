from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal
from uuid import UUID, uuid4

AttemptStatus = Literal["in_progress", "submitted", "graded"]
FinalizeReason = Literal["manual", "timeout"]


@dataclass(frozen=True, slots=True)
class QuestionResult:
    """Per-question outcome fixed at finalize time.

    ``is_correct`` is None while a short-answer or essay response waits
    for a human grader; ``points_awarded`` is 0 until then.
    """

    question_index: int
    kind: str
    answer: str | None
    points_awarded: float
    max_points: int
    is_correct: bool | None = None
    needs_manual_grading: bool = False


@dataclass(frozen=True, slots=True)
class Attempt:
    id: UUID
    assessment_id: UUID
    submitter_id: str
    started_at: datetime
    total_points: int
    time_limit_seconds: int | None = None
    attempt_no: int = 1
    status: AttemptStatus = "in_progress"
    answers: dict[int, str] = field(default_factory=dict)
    submitted_at: datetime | None = None
    finalize_reason: FinalizeReason | None = None
    late: bool = False
    score: float = 0
    percentage: int = 0
    passed: bool = False
    question_results: tuple[QuestionResult, ...] = ()
    time_spent_seconds: int = 0
    graded_at: datetime | None = None
    graded_by: str | None = None

    @property
    def is_in_progress(self) -> bool:
        return self.status == "in_progress"

    @property
    def is_terminal(self) -> bool:
        return self.status != "in_progress"

    @property
    def needs_manual_grading(self) -> bool:
        return any(r.needs_manual_grading for r in self.question_results)

    @staticmethod
    def new(
        *,
        assessment_id: UUID,
        submitter_id: str,
        started_at: datetime,
        total_points: int,
        time_limit_seconds: int | None = None,
        attempt_no: int = 1,
    ) -> Attempt:
        return Attempt(
            id=uuid4(),
            assessment_id=assessment_id,
            submitter_id=submitter_id,
            started_at=started_at,
            total_points=total_points,
            time_limit_seconds=time_limit_seconds,
            attempt_no=attempt_no,
        )


@dataclass(frozen=True, slots=True)
class AssessmentStatistics:
    assessment_id: UUID
    total_attempts: int = 0
    submitted_attempts: int = 0
    average_percentage: int = 0
    highest_percentage: int = 0
    lowest_percentage: int = 0
    pass_rate: int = 0
    average_time_spent_seconds: int = 0


@dataclass(frozen=True, slots=True)
class Eligibility:
    """What the learner's quiz list shows next to each assessment."""

    assessment_id: UUID
    attempts_used: int
    attempts_remaining: int
    can_attempt: bool
